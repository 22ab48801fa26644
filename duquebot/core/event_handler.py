"""Duque Bot 事件处理器。"""
import logging
from typing import Optional
import discord
from discord.ext import commands

from duquebot.owner.dm_commands import OwnerDMHandler
from duquebot.services.guilds import GuildGatekeeper
from duquebot.services.trigger_resolver import TriggerResolver


class EventHandler:
    """
    Duque Bot 事件处理器。

    - 就绪日志
    - 频道消息的前缀触发与所有者私信
    - 加入服务器时的准入检查
    """

    def __init__(
        self,
        bot: commands.Bot,
        resolver: TriggerResolver,
        gatekeeper: GuildGatekeeper,
        owner_handler: Optional[OwnerDMHandler] = None,
        message_content_enabled: bool = True
    ):
        """
        初始化事件处理器。

        Args:
            bot: Discord 机器人实例
            resolver: 触发词解析器
            gatekeeper: 服务器准入管理器
            owner_handler: 所有者私信命令处理器
            message_content_enabled: 是否启用了消息内容意图；未启用时不监听消息
        """
        self.logger = logging.getLogger("duquebot.events")
        self.bot = bot
        self.resolver = resolver
        self.gatekeeper = gatekeeper
        self.owner_handler = owner_handler
        self.message_content_enabled = message_content_enabled

        # 事件统计
        self.triggers_answered = 0
        self.guilds_rejected = 0

        self._register_events()

    def _register_events(self) -> None:
        """注册 Discord 事件处理器。"""
        @self.bot.event
        async def on_ready():
            await self._on_ready()

        @self.bot.event
        async def on_guild_join(guild):
            await self._on_guild_join(guild)

        if self.message_content_enabled:
            @self.bot.event
            async def on_message(message):
                await self._on_message(message)
        else:
            self.logger.warning("⚠️ 消息内容意图未启用，前缀触发和所有者私信命令已关闭")

        self.logger.debug("事件处理器注册完成")

    async def _on_ready(self) -> None:
        """处理机器人就绪事件。"""
        if self.bot.user is None:
            self.logger.error("机器人用户在 on_ready 事件中为 None")
            return

        self.logger.info(f"✅ 机器人已上线，登录为 {self.bot.user} ({self.bot.user.id})")
        self.logger.info(f"📡 正在服务 {len(self.bot.guilds)} 个服务器")

    async def _on_message(self, message: discord.Message) -> None:
        """
        处理传入消息。

        Args:
            message: Discord 消息
        """
        if message.author.bot:
            return

        if message.guild is None:
            if self.owner_handler and self.owner_handler.is_owner(message.author.id):
                try:
                    await self.owner_handler.handle(message)
                except Exception as e:
                    self.logger.error(f"处理所有者私信失败: {e}", exc_info=True)
            return

        await self._handle_trigger(message)

    async def _handle_trigger(self, message: discord.Message) -> None:
        """解析前缀触发并在频道中公开回复。"""
        try:
            match = await self.resolver.resolve(message.channel.id, message.content)
            if match is None:
                return

            await message.channel.send(match.response)
            self.triggers_answered += 1
            self.logger.debug(
                f"触发命令 {match.trigger_prefix}{match.trigger} - 频道: {message.channel.id}, 用户: {message.author.id}"
            )

        except Exception as e:
            self.logger.error(f"处理频道 {message.channel.id} 的触发词失败: {e}", exc_info=True)

    async def _on_guild_join(self, guild: discord.Guild) -> None:
        """
        处理机器人加入服务器事件。

        未拉黑的服务器自动批准；已拉黑的服务器立即离开。

        Args:
            guild: 加入的服务器
        """
        try:
            result = await self.gatekeeper.register_guild_join(guild.id, guild.name)

            if result.allowed:
                self.logger.info(f"✅ 加入服务器: {guild.name} ({guild.id}) [{result.reason.value}]")
                return

            self.logger.warning(f"⚠️ 加入了已拉黑的服务器: {guild.name} ({guild.id})，正在离开...")
            self.guilds_rejected += 1
            await guild.leave()

        except Exception as e:
            self.logger.error(f"处理加入服务器 {guild.id} 失败: {e}", exc_info=True)

    def get_event_stats(self) -> dict:
        """
        获取事件处理统计。

        Returns:
            统计字典
        """
        return {
            "triggers_answered": self.triggers_answered,
            "guilds_rejected": self.guilds_rejected,
            "message_content_enabled": self.message_content_enabled,
        }
