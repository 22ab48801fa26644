"""
触发前缀设置

处理 /trigger <prefix>（仅管理员）。前缀必须恰好是允许集合中的一个特殊字符。
"""

from typing import Optional
import discord

from duquebot.services.channel_config import (
    ALLOWED_TRIGGER_PREFIXES_DISPLAY,
    ChannelConfigService,
    is_allowed_trigger_prefix,
)
from duquebot.services.permissions import PermissionEvaluator
from duquebot.utils.config_manager import ConfigManager

from ..core.base_command import BaseSlashCommand
from ..core.error_handler import AppCommandsErrorHandler
from ..core.logging_config import AppCommandsLogger, log_command_execution

_logger = AppCommandsLogger("channel_settings")


class TriggerPrefixCommand(BaseSlashCommand):
    """/trigger 命令处理器"""

    def __init__(
        self,
        config: ConfigManager,
        permissions: PermissionEvaluator,
        channel_configs: ChannelConfigService,
        error_handler: Optional[AppCommandsErrorHandler] = None
    ):
        super().__init__(config, permissions, error_handler)
        self.channel_configs = channel_configs

    @log_command_execution(_logger, "trigger")
    async def execute(self, interaction: discord.Interaction, **kwargs) -> None:
        """
        设置本频道的触发前缀

        Args:
            interaction: Discord交互对象
            **kwargs: prefix
        """
        if not await self.check_prerequisites(interaction):
            return
        if not await self.check_admin(interaction):
            return

        prefix = kwargs.get('prefix', '').strip()
        if not is_allowed_trigger_prefix(prefix):
            await self.send_error_response(
                interaction,
                f"前缀必须恰好是以下特殊字符之一：\n{ALLOWED_TRIGGER_PREFIXES_DISPLAY}",
                title="无效的前缀"
            )
            return

        await self.channel_configs.set_trigger_prefix(interaction.channel_id, interaction.guild_id, prefix)

        await self.send_success_response(
            interaction,
            "触发前缀已更新",
            f"本频道的触发前缀已设置为 `{prefix}`。\n示例: `{prefix}hello`"
        )
