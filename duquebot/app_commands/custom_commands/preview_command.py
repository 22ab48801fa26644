"""
触发预览

处理 /preview <text>：用与消息处理器相同的解析规则，
显示这段文本在本频道会触发哪个命令。
"""

from typing import Optional
import discord

from duquebot.services.permissions import PermissionEvaluator
from duquebot.services.trigger_resolver import TriggerResolver
from duquebot.utils.config_manager import ConfigManager

from ..core.base_command import BaseSlashCommand
from ..core.error_handler import AppCommandsErrorHandler
from ..ui import EmbedBuilder, MessageType


class PreviewCommand(BaseSlashCommand):
    """/preview 命令处理器"""

    def __init__(
        self,
        config: ConfigManager,
        permissions: PermissionEvaluator,
        resolver: TriggerResolver,
        error_handler: Optional[AppCommandsErrorHandler] = None
    ):
        super().__init__(config, permissions, error_handler)
        self.resolver = resolver

    async def execute(self, interaction: discord.Interaction, **kwargs) -> None:
        """
        预览触发结果

        Args:
            interaction: Discord交互对象
            **kwargs: text（要测试的消息文本）
        """
        if not await self.check_prerequisites(interaction):
            return

        text = kwargs.get('text', '')
        match = await self.resolver.resolve(interaction.channel_id, text)

        if match is None:
            prefix = await self.resolver.get_trigger_prefix(interaction.channel_id)
            embed = EmbedBuilder.create_info_embed(
                "不会触发任何命令",
                f"本频道的触发前缀是 `{prefix}`，这段文本没有匹配到命令。"
            )
            await self.message_visibility.send_message(interaction, embed, MessageType.PREVIEW)
            return

        await self.message_visibility.send_message(
            interaction,
            EmbedBuilder.create_preview_embed(match),
            MessageType.PREVIEW
        )
