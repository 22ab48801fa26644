"""
所有者私信命令测试

使用内存存储上的真实服务和模拟的机器人、消息对象
"""

from unittest.mock import AsyncMock, Mock
from urllib.parse import parse_qs, urlparse

import discord
import pytest

from duquebot.owner.dm_commands import OWNER_HELP_TEXT, OwnerDMHandler
from duquebot.services.channel_config import ChannelConfigService
from duquebot.services.commands import CommandService
from duquebot.services.guilds import GuildGatekeeper
from duquebot.services.history import HistoryRecorder
from duquebot.storage.schema import APPROVED_GUILDS, CHANNEL_CONFIGS, CUSTOM_COMMANDS

OWNER_ID = 1000
CLIENT_ID = 2000
GUILD_ID = 3000
CHANNEL_ID = 4000


def make_message(content: str, author_id: int = OWNER_ID):
    message = Mock(spec=discord.Message)
    message.content = content
    message.author = Mock()
    message.author.id = author_id
    message.guild = None
    message.reply = AsyncMock()
    return message


def make_guild(guild_id: int = GUILD_ID, name: str = "Test Guild"):
    guild = Mock()
    guild.id = guild_id
    guild.name = name
    guild.member_count = 42
    channel = Mock()
    channel.id = CHANNEL_ID
    channel.name = "general"
    guild.text_channels = [channel]
    guild.leave = AsyncMock()
    return guild


def replies(message):
    return [call.args[0] for call in message.reply.call_args_list]


class TestOwnerDMHandler:
    """测试所有者私信命令"""

    @pytest.fixture(autouse=True)
    def setup(self, store, settings, clock):
        self.store = store
        self.guild = make_guild()
        self.bot = Mock()
        self.bot.guilds = [self.guild]
        self.bot.get_guild = Mock(side_effect=lambda guild_id: self.guild if guild_id == GUILD_ID else None)
        self.bot.user = Mock()
        self.bot.user.id = 9999

        self.gatekeeper = GuildGatekeeper(store, clock)
        channel_configs = ChannelConfigService(store, settings, clock)
        self.commands = CommandService(
            store, HistoryRecorder(store, settings, clock), channel_configs, settings, clock
        )
        self.channel_configs = channel_configs
        self.handler = OwnerDMHandler(self.bot, self.gatekeeper, self.commands, OWNER_ID, CLIENT_ID)

    async def _run(self, content: str):
        message = make_message(content)
        handled = await self.handler.handle(message)
        return handled, message

    def test_is_owner(self):
        assert self.handler.is_owner(OWNER_ID) is True
        assert self.handler.is_owner(1) is False

    def test_no_owner_configured(self):
        handler = OwnerDMHandler(self.bot, self.gatekeeper, self.commands, None)
        assert handler.is_owner(OWNER_ID) is False

    @pytest.mark.asyncio
    async def test_ignores_messages_without_prefix(self):
        handled, message = await self._run("hello there")

        assert handled is False
        message.reply.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_subcommand(self):
        handled, message = await self._run("!owner dance")

        assert handled is True
        assert replies(message) == ["❓ 未知的所有者命令。使用 `!owner help` 查看命令列表。"]

    @pytest.mark.asyncio
    async def test_help(self):
        _, message = await self._run("!owner help")

        assert replies(message) == [OWNER_HELP_TEXT]

    @pytest.mark.asyncio
    async def test_servers(self):
        _, message = await self._run("!owner servers")

        text = replies(message)[0]
        assert "**Test Guild** (`3000`)" in text
        assert "成员: 42" in text
        assert "#general (`4000`)" in text

    @pytest.mark.asyncio
    async def test_servers_empty(self):
        self.bot.guilds = []

        _, message = await self._run("!owner servers")

        assert replies(message) == ["📭 机器人不在任何服务器中。"]

    @pytest.mark.asyncio
    async def test_force_leave_server(self):
        _, message = await self._run(f"!owner force-leave-server {GUILD_ID}")

        self.guild.leave.assert_called_once()
        assert "已强制离开服务器 **Test Guild**" in replies(message)[0]

    @pytest.mark.asyncio
    async def test_leave_server_alias_unknown_guild(self):
        _, message = await self._run("!owner leave-server 1234")

        self.guild.leave.assert_not_called()
        assert replies(message) == ["❌ 机器人不在ID为 `1234` 的服务器中。"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [
        "!owner blacklist-server",
        "!owner blacklist-server abc",
        "!owner approve -5",
    ])
    async def test_invalid_id_shows_usage(self, content):
        _, message = await self._run(content)

        assert replies(message)[0].startswith("❌ 用法: `!owner ")
        assert self.store.rows(APPROVED_GUILDS) == []

    @pytest.mark.asyncio
    async def test_blacklist_and_unblacklist(self):
        _, message = await self._run(f"!owner blacklist-server {GUILD_ID}")
        assert "已被拉黑" in replies(message)[0]
        assert (await self.gatekeeper.get_guild(GUILD_ID)).guild_name == "Test Guild"

        _, message = await self._run(f"!owner blacklist-server {GUILD_ID}")
        assert replies(message) == [f"⚠️ 服务器 `{GUILD_ID}` 已在黑名单中。"]

        _, message = await self._run(f"!owner unblacklist-server {GUILD_ID}")
        assert replies(message) == [f"✅ 服务器 `{GUILD_ID}` 已解除拉黑。"]
        assert await self.gatekeeper.is_approved(GUILD_ID) is True

        _, message = await self._run(f"!owner unblacklist-server {GUILD_ID}")
        assert replies(message) == ["⚠️ 该服务器未被拉黑。"]

    @pytest.mark.asyncio
    async def test_unblacklist_unknown_guild(self):
        _, message = await self._run("!owner unblacklist-server 555")

        assert replies(message) == ["⚠️ 没有该服务器的记录。"]

    @pytest.mark.asyncio
    async def test_approve_states(self):
        _, message = await self._run("!owner approve 555")
        assert replies(message) == ["✅ 服务器 `555` 已批准。"]
        assert (await self.gatekeeper.get_guild(555)).guild_name == "Guild 555"

        _, message = await self._run("!owner approve 555")
        assert replies(message) == ["⚠️ 服务器 `555` 已经是批准状态。"]

        await self.gatekeeper.blacklist_guild(555)
        _, message = await self._run("!owner approve 555")
        assert replies(message) == ["✅ 服务器 `555` 已解除拉黑并批准。"]
        assert await self.gatekeeper.is_approved(555) is True

    @pytest.mark.asyncio
    async def test_revoke_server(self):
        await self.gatekeeper.approve_guild(555, "Some Guild")

        _, message = await self._run("!owner revoke-server 555")
        assert replies(message) == ["✅ 服务器 `555` 的记录已删除。"]
        assert await self.gatekeeper.get_guild(555) is None

        _, message = await self._run("!owner revoke-server 555")
        assert replies(message) == ["⚠️ 没有该服务器的记录。"]

    @pytest.mark.asyncio
    async def test_approved_list(self):
        await self.gatekeeper.approve_guild(1, "Good Guild")
        await self.gatekeeper.blacklist_guild(2, "Bad Guild")

        _, message = await self._run("!owner approved")

        text = replies(message)[0]
        assert "(2)" in text
        assert "✅ 已批准 **Good Guild** (`1`)" in text
        assert "⛔ 已拉黑 **Bad Guild** (`2`)" in text

    @pytest.mark.asyncio
    async def test_approved_list_empty(self):
        _, message = await self._run("!owner approved")

        assert replies(message) == ["📭 没有任何服务器记录。"]

    @pytest.mark.asyncio
    async def test_leave_channel(self):
        await self.channel_configs.set_trigger_prefix(CHANNEL_ID, GUILD_ID, "?")
        for index in range(3):
            await self.commands.add_command(CHANNEL_ID, f"cmd{index}", "x", 1)
        await self.commands.add_command(5000, "keep", "x", 1)

        _, message = await self._run(f"!owner leave-channel {CHANNEL_ID}")

        assert replies(message) == [f"✅ 已清除频道 `{CHANNEL_ID}`：删除了配置和 3 个命令。"]
        assert self.store.rows(CHANNEL_CONFIGS) == []
        assert [row["trigger"] for row in self.store.rows(CUSTOM_COMMANDS)] == ["keep"]

    @pytest.mark.asyncio
    async def test_invite(self):
        _, message = await self._run("!owner invite")

        text = replies(message)[0]
        url = text.split("\n", 1)[1]
        query = parse_qs(urlparse(url).query)
        assert query["client_id"] == [str(CLIENT_ID)]
        assert query["scope"] == ["bot applications.commands"]
        assert "permissions" in query

    @pytest.mark.asyncio
    async def test_invite_falls_back_to_bot_user(self):
        self.handler.client_id = None

        _, message = await self._run("!owner invite")

        assert "client_id=9999" in replies(message)[0]

    @pytest.mark.asyncio
    async def test_storage_error_reported(self):
        self.store.fail_on = ("insert", APPROVED_GUILDS)

        handled, message = await self._run("!owner approve 555")

        assert handled is True
        assert replies(message) == ["❌ 执行 `approve` 失败，请查看日志。"]
