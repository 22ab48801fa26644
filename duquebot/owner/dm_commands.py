"""
所有者私信命令处理器

所有者在私信中发送 ``!owner <子命令> [参数]`` 管理机器人所在的服务器。
回复超过 Discord 消息上限时会分段发送。
"""

import logging
from typing import Awaitable, Callable, Dict, List, Optional
import discord
from discord.ext import commands

from duquebot.core.interfaces import ResultReason, StorageError
from duquebot.services.commands import CommandService
from duquebot.services.guilds import GuildGatekeeper
from duquebot.utils.message_utils import split_message

OWNER_PREFIX = "!owner"

INVITE_SCOPES = ("bot", "applications.commands")

OWNER_HELP_TEXT = (
    "📖 **所有者命令：**\n\n"
    "`!owner servers` - 列出所有服务器和文字频道\n"
    "`!owner force-leave-server <服务器ID>` - 立即离开服务器\n"
    "`!owner leave-server <服务器ID>` - force-leave-server 的别名\n"
    "`!owner blacklist-server <服务器ID>` - 拉黑服务器，阻止以后加入\n"
    "`!owner unblacklist-server <服务器ID>` - 解除拉黑\n"
    "`!owner approve <服务器ID>` - 批准服务器（已拉黑的会被解除拉黑）\n"
    "`!owner revoke-server <服务器ID>` - 删除服务器记录\n"
    "`!owner approved` - 列出所有服务器记录\n"
    "`!owner leave-channel <频道ID>` - 清除频道的配置和全部命令\n"
    "`!owner invite` - 生成邀请链接\n"
    "`!owner help` - 显示此帮助信息"
)


def invite_permissions() -> discord.Permissions:
    """邀请链接请求的权限"""
    return discord.Permissions(
        send_messages=True,
        view_channel=True,
        read_message_history=True,
        use_application_commands=True
    )


def _parse_id(raw: Optional[str]) -> Optional[int]:
    if raw is None or not raw.isdigit():
        return None
    return int(raw)


class OwnerDMHandler:
    """
    所有者私信命令处理器

    只处理所有者发来的私信；调用方负责判断发送者身份。
    """

    def __init__(
        self,
        bot: commands.Bot,
        gatekeeper: GuildGatekeeper,
        commands_service: CommandService,
        owner_id: Optional[int],
        client_id: Optional[int] = None
    ):
        """
        初始化处理器

        Args:
            bot: Discord机器人实例
            gatekeeper: 服务器准入管理器
            commands_service: 自定义命令服务（清除频道时使用）
            owner_id: 机器人所有者ID
            client_id: 应用ID，未配置时使用机器人用户ID
        """
        self.bot = bot
        self.gatekeeper = gatekeeper
        self.commands_service = commands_service
        self.owner_id = owner_id
        self.client_id = client_id
        self.logger = logging.getLogger("duquebot.owner")

        self._subcommands: Dict[str, Callable[[discord.Message, List[str]], Awaitable[None]]] = {
            "servers": self._handle_servers,
            "force-leave-server": self._handle_force_leave_server,
            "leave-server": self._handle_force_leave_server,
            "blacklist-server": self._handle_blacklist_server,
            "unblacklist-server": self._handle_unblacklist_server,
            "approve": self._handle_approve,
            "revoke-server": self._handle_revoke_server,
            "approved": self._handle_approved,
            "leave-channel": self._handle_leave_channel,
            "invite": self._handle_invite,
            "help": self._handle_help,
        }

    def is_owner(self, user_id: int) -> bool:
        return self.owner_id is not None and user_id == self.owner_id

    async def handle(self, message: discord.Message) -> bool:
        """
        处理一条所有者私信

        Args:
            message: 私信消息

        Returns:
            消息是否是所有者命令
        """
        if not message.content.startswith(OWNER_PREFIX):
            return False

        args = message.content[len(OWNER_PREFIX):].split()
        subcommand = args[0].lower() if args else ""
        handler = self._subcommands.get(subcommand)

        if handler is None:
            await self._reply(message, "❓ 未知的所有者命令。使用 `!owner help` 查看命令列表。")
            return True

        self.logger.info(f"所有者命令: {subcommand} {' '.join(args[1:])}".rstrip())

        try:
            await handler(message, args[1:])
        except (StorageError, discord.HTTPException) as e:
            self.logger.error(f"所有者命令 {subcommand} 执行失败: {e}", exc_info=True)
            await self._reply(message, f"❌ 执行 `{subcommand}` 失败，请查看日志。")

        return True

    async def _reply(self, message: discord.Message, content: str) -> None:
        for chunk in split_message(content):
            await message.reply(chunk)

    async def _require_id(self, message: discord.Message, args: List[str], usage: str) -> Optional[int]:
        value = _parse_id(args[0] if args else None)
        if value is None:
            await self._reply(message, f"❌ 用法: `{OWNER_PREFIX} {usage}`")
        return value

    def _guild_name(self, guild_id: int) -> Optional[str]:
        guild = self.bot.get_guild(guild_id)
        return guild.name if guild else None

    async def _handle_servers(self, message: discord.Message, args: List[str]) -> None:
        guilds = list(self.bot.guilds)
        if not guilds:
            await self._reply(message, "📭 机器人不在任何服务器中。")
            return

        lines = [f"📡 **服务器** ({len(guilds)}):"]
        for guild in guilds:
            lines.append(f"\n🏠 **{guild.name}** (`{guild.id}`)")
            lines.append(f"   成员: {guild.member_count}")
            for channel in guild.text_channels:
                lines.append(f"   • #{channel.name} (`{channel.id}`)")

        await self._reply(message, "\n".join(lines))

    async def _handle_force_leave_server(self, message: discord.Message, args: List[str]) -> None:
        guild_id = await self._require_id(message, args, "force-leave-server <服务器ID>")
        if guild_id is None:
            return

        guild = self.bot.get_guild(guild_id)
        if guild is None:
            await self._reply(message, f"❌ 机器人不在ID为 `{guild_id}` 的服务器中。")
            return

        guild_name = guild.name
        await guild.leave()
        self.logger.info(f"🚪 已强制离开服务器 {guild_name} ({guild_id})")
        await self._reply(message, f"✅ 已强制离开服务器 **{guild_name}** (`{guild_id}`)。")

    async def _handle_blacklist_server(self, message: discord.Message, args: List[str]) -> None:
        guild_id = await self._require_id(message, args, "blacklist-server <服务器ID>")
        if guild_id is None:
            return

        result = await self.gatekeeper.blacklist_guild(guild_id, self._guild_name(guild_id))
        if result.already_blacklisted:
            await self._reply(message, f"⚠️ 服务器 `{guild_id}` 已在黑名单中。")
            return

        await self._reply(
            message,
            f"✅ 服务器 `{guild_id}` 已被拉黑，以后无法再加入。如果机器人已在其中，需要使用 `force-leave-server` 离开。"
        )

    async def _handle_unblacklist_server(self, message: discord.Message, args: List[str]) -> None:
        guild_id = await self._require_id(message, args, "unblacklist-server <服务器ID>")
        if guild_id is None:
            return

        result = await self.gatekeeper.unblacklist_guild(guild_id)
        if not result.success:
            if result.reason == ResultReason.NOT_FOUND:
                await self._reply(message, "⚠️ 没有该服务器的记录。")
            else:
                await self._reply(message, "⚠️ 该服务器未被拉黑。")
            return

        await self._reply(message, f"✅ 服务器 `{guild_id}` 已解除拉黑。")

    async def _handle_approve(self, message: discord.Message, args: List[str]) -> None:
        guild_id = await self._require_id(message, args, "approve <服务器ID>")
        if guild_id is None:
            return

        guild_name = self._guild_name(guild_id) or f"Guild {guild_id}"
        result = await self.gatekeeper.approve_guild(guild_id, guild_name)

        if not result.success:
            await self._reply(message, f"⚠️ 服务器 `{guild_id}` 已经是批准状态。")
        elif result.reason == ResultReason.UNBLACKLISTED:
            await self._reply(message, f"✅ 服务器 `{guild_id}` 已解除拉黑并批准。")
        else:
            await self._reply(message, f"✅ 服务器 `{guild_id}` 已批准。")

    async def _handle_revoke_server(self, message: discord.Message, args: List[str]) -> None:
        guild_id = await self._require_id(message, args, "revoke-server <服务器ID>")
        if guild_id is None:
            return

        result = await self.gatekeeper.revoke_guild(guild_id)
        if not result.success:
            await self._reply(message, "⚠️ 没有该服务器的记录。")
            return

        await self._reply(message, f"✅ 服务器 `{guild_id}` 的记录已删除。")

    async def _handle_approved(self, message: discord.Message, args: List[str]) -> None:
        guilds = await self.gatekeeper.list_guilds()
        if not guilds:
            await self._reply(message, "📭 没有任何服务器记录。")
            return

        lines = [f"📋 **服务器记录** ({len(guilds)}):"]
        for guild in guilds:
            status = "⛔ 已拉黑" if guild.is_blacklisted else "✅ 已批准"
            lines.append(f"{status} **{guild.guild_name}** (`{guild.guild_id}`)")

        await self._reply(message, "\n".join(lines))

    async def _handle_leave_channel(self, message: discord.Message, args: List[str]) -> None:
        channel_id = await self._require_id(message, args, "leave-channel <频道ID>")
        if channel_id is None:
            return

        deleted = await self.commands_service.clear_channel(channel_id, message.author.id)
        await self._reply(message, f"✅ 已清除频道 `{channel_id}`：删除了配置和 {deleted} 个命令。")

    async def _handle_invite(self, message: discord.Message, args: List[str]) -> None:
        client_id = self.client_id or (self.bot.user.id if self.bot.user else None)
        if client_id is None:
            await self._reply(message, "❌ 无法确定应用ID，请在配置中设置 `discord.client_id`。")
            return

        invite = discord.utils.oauth_url(
            client_id,
            permissions=invite_permissions(),
            scopes=INVITE_SCOPES
        )
        await self._reply(message, f"🔗 **邀请链接：**\n{invite}")

    async def _handle_help(self, message: discord.Message, args: List[str]) -> None:
        await self._reply(message, OWNER_HELP_TEXT)
