"""
帮助命令

处理 /help [dm]：显示所有支持的命令，可选择通过私信发送。
"""

import logging
from typing import List, Optional, Tuple
import discord

from duquebot.services.permissions import PermissionEvaluator
from duquebot.utils.config_manager import ConfigManager
from duquebot.utils.message_utils import send_direct_message

from ..core.base_command import BaseSlashCommand
from ..core.error_handler import AppCommandsErrorHandler
from ..ui import EmbedBuilder, MessageType

HELP_SECTIONS: List[Tuple[str, str]] = [
    (
        "📝 自定义命令",
        "`/command add <触发词> <响应>` - 在本频道添加命令\n"
        "`/command edit <触发词> <响应>` - 修改命令的响应\n"
        "`/command remove <触发词>` - 删除命令\n"
        "`/commands [dm]` - 列出本频道的命令\n"
        "`/history [触发词]` - 查看命令变更历史\n"
        "`/preview <文本>` - 预览一段文本会触发哪个命令"
    ),
    (
        "⚙️ 频道设置（仅管理员）",
        "`/roles add|remove|list` - 管理可以编辑命令的角色\n"
        "`/trigger <前缀>` - 设置本频道的单字符触发前缀"
    ),
    (
        "📘 其他",
        "`/help [dm]` - 显示此帮助信息\n\n"
        "提示：`/help` 和 `/commands` 可以使用 `dm` 选项通过私信接收结果。"
    ),
]


def format_help_text() -> str:
    """纯文本形式的帮助（用于私信）"""
    parts = ["📘 **Duque Bot 命令说明**"]
    for name, value in HELP_SECTIONS:
        parts.append(f"**{name}**\n{value}")
    return "\n\n".join(parts)


class HelpCommand(BaseSlashCommand):
    """
    帮助命令处理器

    在服务器和私信中都可以使用。
    """

    def __init__(
        self,
        config: ConfigManager,
        permissions: PermissionEvaluator,
        error_handler: Optional[AppCommandsErrorHandler] = None
    ):
        super().__init__(config, permissions, error_handler)
        self.logger = logging.getLogger("duquebot.app_commands.general.help")

    async def execute(self, interaction: discord.Interaction, **kwargs) -> None:
        """
        执行帮助命令

        Args:
            interaction: Discord交互对象
            **kwargs: dm（是否通过私信发送）
        """
        self.logger.debug(f"帮助命令被 {interaction.user} 调用")

        if not kwargs.get('dm', False):
            await self.message_visibility.send_message(
                interaction,
                EmbedBuilder.create_help_embed(HELP_SECTIONS),
                MessageType.HELP
            )
            return

        result = await send_direct_message(interaction.user, format_help_text())
        if not result.delivered:
            await self.send_error_response(
                interaction,
                "无法向您发送私信，请检查您的私信隐私设置。",
                title="私信发送失败"
            )
            return

        await self.send_success_response(interaction, "已发送", "帮助信息已发送到您的私信。")
