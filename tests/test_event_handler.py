"""
事件处理器测试

- 频道消息的前缀触发
- 所有者私信转发
- 加入服务器时的准入检查
"""

from unittest.mock import AsyncMock, Mock

import discord
import pytest

from duquebot.core.event_handler import EventHandler
from duquebot.services.channel_config import ChannelConfigService
from duquebot.services.commands import CommandService
from duquebot.services.guilds import GuildGatekeeper
from duquebot.services.history import HistoryRecorder
from duquebot.services.trigger_resolver import TriggerResolver
from duquebot.storage.schema import APPROVED_GUILDS, CUSTOM_COMMANDS

CHANNEL_ID = 111
GUILD_ID = 222
OWNER_ID = 1000


def make_bot():
    bot = Mock()
    bot.registered = {}

    def event(coro):
        bot.registered[coro.__name__] = coro
        return coro

    bot.event = Mock(side_effect=event)
    return bot


def make_channel_message(content: str, author_bot: bool = False):
    message = Mock(spec=discord.Message)
    message.content = content
    message.author = Mock()
    message.author.id = 5
    message.author.bot = author_bot
    message.guild = Mock()
    message.channel = Mock()
    message.channel.id = CHANNEL_ID
    message.channel.send = AsyncMock()
    return message


def make_dm(content: str, author_id: int = OWNER_ID):
    message = Mock(spec=discord.Message)
    message.content = content
    message.author = Mock()
    message.author.id = author_id
    message.author.bot = False
    message.guild = None
    message.channel = Mock()
    message.channel.send = AsyncMock()
    return message


class TestEventRegistration:
    """测试事件注册"""

    def test_registers_message_listener(self, store, settings):
        bot = make_bot()
        EventHandler(bot, TriggerResolver(store, settings), GuildGatekeeper(store))

        assert set(bot.registered) == {"on_ready", "on_guild_join", "on_message"}

    def test_skips_message_listener_without_intent(self, store, settings):
        bot = make_bot()
        handler = EventHandler(
            bot, TriggerResolver(store, settings), GuildGatekeeper(store), message_content_enabled=False
        )

        assert set(bot.registered) == {"on_ready", "on_guild_join"}
        assert handler.get_event_stats()["message_content_enabled"] is False


class TestMessageHandling:
    """测试消息处理"""

    @pytest.fixture(autouse=True)
    def setup(self, store, settings, clock):
        self.store = store
        self.channel_configs = ChannelConfigService(store, settings, clock)
        self.commands = CommandService(
            store, HistoryRecorder(store, settings, clock), self.channel_configs, settings, clock
        )
        self.owner_handler = Mock()
        self.owner_handler.is_owner = Mock(side_effect=lambda user_id: user_id == OWNER_ID)
        self.owner_handler.handle = AsyncMock(return_value=True)
        self.handler = EventHandler(
            make_bot(),
            TriggerResolver(store, settings),
            GuildGatekeeper(store, clock),
            owner_handler=self.owner_handler
        )

    @pytest.mark.asyncio
    async def test_trigger_counts_answers(self):
        await self.commands.add_command(CHANNEL_ID, "hello", "Hello world!", 1)

        await self.handler._on_message(make_channel_message("!HeLLo everyone"))

        assert self.handler.triggers_answered == 1

    @pytest.mark.asyncio
    async def test_trigger_sends_response(self):
        await self.commands.add_command(CHANNEL_ID, "hello", "Hello world!", 1)
        message = make_channel_message("!hello")

        await self.handler._on_message(message)

        message.channel.send.assert_called_once_with("Hello world!")

    @pytest.mark.asyncio
    async def test_uses_channel_prefix(self):
        await self.channel_configs.set_trigger_prefix(CHANNEL_ID, GUILD_ID, "?")
        await self.commands.add_command(CHANNEL_ID, "hello", "Hello world!", 1)

        default_prefix = make_channel_message("!hello")
        await self.handler._on_message(default_prefix)
        default_prefix.channel.send.assert_not_called()

        custom_prefix = make_channel_message("?hello")
        await self.handler._on_message(custom_prefix)
        custom_prefix.channel.send.assert_called_once_with("Hello world!")

    @pytest.mark.asyncio
    async def test_unknown_trigger_is_silent(self):
        message = make_channel_message("!nothing")

        await self.handler._on_message(message)

        message.channel.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_ignores_bots(self):
        await self.commands.add_command(CHANNEL_ID, "hello", "Hello world!", 1)
        message = make_channel_message("!hello", author_bot=True)

        await self.handler._on_message(message)

        message.channel.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_storage_error_is_logged(self):
        self.store.fail_on = ("get", CUSTOM_COMMANDS)
        message = make_channel_message("!hello")

        await self.handler._on_message(message)

        message.channel.send.assert_not_called()
        assert self.handler.triggers_answered == 0

    @pytest.mark.asyncio
    async def test_owner_dm_is_forwarded(self):
        message = make_dm("!owner servers")

        await self.handler._on_message(message)

        self.owner_handler.handle.assert_called_once_with(message)

    @pytest.mark.asyncio
    async def test_dm_from_other_user_is_ignored(self):
        message = make_dm("!owner servers", author_id=42)

        await self.handler._on_message(message)

        self.owner_handler.handle.assert_not_called()
        message.channel.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_owner_handler_failure_is_contained(self):
        self.owner_handler.handle.side_effect = RuntimeError("boom")

        await self.handler._on_message(make_dm("!owner help"))

        self.owner_handler.handle.assert_called_once()


class TestGuildJoin:
    """测试加入服务器"""

    @pytest.fixture(autouse=True)
    def setup(self, store, settings, clock):
        self.store = store
        self.gatekeeper = GuildGatekeeper(store, clock)
        self.handler = EventHandler(make_bot(), TriggerResolver(store, settings), self.gatekeeper)

    def _guild(self, name: str = "New Guild"):
        guild = Mock()
        guild.id = GUILD_ID
        guild.name = name
        guild.leave = AsyncMock()
        return guild

    @pytest.mark.asyncio
    async def test_new_guild_is_approved(self):
        guild = self._guild()

        await self.handler._on_guild_join(guild)

        guild.leave.assert_not_called()
        assert await self.gatekeeper.is_approved(GUILD_ID) is True

    @pytest.mark.asyncio
    async def test_blacklisted_guild_is_left(self):
        await self.gatekeeper.blacklist_guild(GUILD_ID, "Old Name")
        guild = self._guild("Renamed Guild")

        await self.handler._on_guild_join(guild)

        guild.leave.assert_called_once()
        assert self.handler.guilds_rejected == 1
        assert (await self.gatekeeper.get_guild(GUILD_ID)).guild_name == "Renamed Guild"

    @pytest.mark.asyncio
    async def test_storage_failure_keeps_guild(self):
        self.store.fail_on = ("insert", APPROVED_GUILDS)
        guild = self._guild()

        await self.handler._on_guild_join(guild)

        guild.leave.assert_not_called()
