"""
命令列表

处理 /commands [dm]：列出本频道的所有命令，
超长时按 2000 字符拆分，可选择通过私信发送。
"""

from typing import List, Optional
import discord

from duquebot.core.interfaces import CustomCommand
from duquebot.services.commands import CommandService
from duquebot.services.permissions import PermissionEvaluator
from duquebot.services.trigger_resolver import TriggerResolver
from duquebot.utils.config_manager import ConfigManager
from duquebot.utils.message_utils import send_direct_message

from ..core.base_command import BaseSlashCommand
from ..core.error_handler import AppCommandsErrorHandler
from ..core.logging_config import AppCommandsLogger, log_command_execution
from ..ui import EmbedBuilder, MessageType

_logger = AppCommandsLogger("custom_commands")


def format_command_list(commands: List[CustomCommand], prefix: str) -> str:
    """
    格式化命令列表

    Args:
        commands: 命令列表
        prefix: 频道触发前缀

    Returns:
        列表文本
    """
    lines = [f"• `{prefix}{command.trigger}` → {command.current_response}" for command in commands]
    return f"📋 **本频道的命令** ({len(commands)}):\n\n" + "\n".join(lines)


class CommandListCommand(BaseSlashCommand):
    """/commands 命令处理器"""

    def __init__(
        self,
        config: ConfigManager,
        permissions: PermissionEvaluator,
        commands: CommandService,
        resolver: TriggerResolver,
        error_handler: Optional[AppCommandsErrorHandler] = None
    ):
        super().__init__(config, permissions, error_handler)
        self.commands = commands
        self.resolver = resolver

    @log_command_execution(_logger, "commands")
    async def execute(self, interaction: discord.Interaction, **kwargs) -> None:
        """
        列出命令

        Args:
            interaction: Discord交互对象
            **kwargs: dm（是否通过私信发送）
        """
        if not await self.check_prerequisites(interaction):
            return

        send_via_dm = bool(kwargs.get('dm', False))
        channel_id = interaction.channel_id

        commands = await self.commands.list_commands(channel_id)
        if not commands:
            embed = EmbedBuilder.create_info_embed(
                "暂无命令",
                "本频道还没有注册任何命令。使用 `/command add` 创建一个。"
            )
            await self.message_visibility.send_message(interaction, embed, MessageType.INFO)
            return

        prefix = await self.resolver.get_trigger_prefix(channel_id)
        content = format_command_list(commands, prefix)

        if not send_via_dm:
            count = await self.message_visibility.send_text(interaction, content, MessageType.COMMAND_LIST)
            if count > 1:
                self.logger.info(f"频道 {channel_id} 的命令列表已拆分为 {count} 条消息")
            return

        result = await send_direct_message(interaction.user, content)
        if not result.delivered:
            await self.send_error_response(
                interaction,
                "无法向您发送私信，请检查您的私信隐私设置。",
                title="私信发送失败"
            )
            return

        self.logger.info(f"频道 {channel_id} 的命令列表已通过私信发送，共 {result.message_count} 条消息")
        message = (
            "命令列表已发送到您的私信。"
            if result.message_count == 1
            else f"命令列表已分 {result.message_count} 条消息发送到您的私信。"
        )
        await self.send_success_response(interaction, "已发送", message)
