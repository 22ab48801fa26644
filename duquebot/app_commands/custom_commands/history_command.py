"""
命令变更历史

处理 /history [trigger]：显示本频道最近的命令变更记录（新记录在前）。
"""

from typing import List, Optional
import discord

from duquebot.core.interfaces import CommandHistoryEntry, HistoryAction
from duquebot.services.history import HistoryRecorder
from duquebot.services.permissions import PermissionEvaluator
from duquebot.services.trigger_resolver import TriggerResolver
from duquebot.utils.config_manager import ConfigManager
from duquebot.utils.time_utils import format_timestamp

from ..core.base_command import BaseSlashCommand
from ..core.error_handler import AppCommandsErrorHandler
from ..core.logging_config import AppCommandsLogger, log_command_execution
from ..ui import EmbedBuilder, MessageType
from .command_management import normalize_trigger

# 历史中单条响应的显示长度
PREVIEW_LENGTH = 80

_ACTION_LABELS = {
    HistoryAction.CREATE: "🆕 创建",
    HistoryAction.UPDATE: "✏️ 修改",
    HistoryAction.DELETE: "🗑️ 删除",
}

_logger = AppCommandsLogger("custom_commands")


def _preview(text: Optional[str]) -> str:
    if text is None:
        return "—"
    text = " ".join(text.split())
    return EmbedBuilder.truncate(text, PREVIEW_LENGTH)


def format_history(entries: List[CommandHistoryEntry], prefix: str) -> str:
    """
    格式化历史记录

    Args:
        entries: 历史记录（新记录在前）
        prefix: 频道触发前缀

    Returns:
        历史文本
    """
    lines = [f"🕘 **命令变更历史** ({len(entries)}):", ""]
    for entry in entries:
        line = (
            f"{_ACTION_LABELS[entry.action]} `{prefix}{entry.trigger}` "
            f"by <@{entry.actor_user_id}> {format_timestamp(entry.timestamp)}"
        )
        if entry.action == HistoryAction.UPDATE:
            line += f"\n    {_preview(entry.previous_response)} → {_preview(entry.new_response)}"
        elif entry.action == HistoryAction.CREATE:
            line += f"\n    {_preview(entry.new_response)}"
        else:
            line += f"\n    {_preview(entry.previous_response)}"
        lines.append(line)
    return "\n".join(lines)


class HistoryCommand(BaseSlashCommand):
    """/history 命令处理器"""

    def __init__(
        self,
        config: ConfigManager,
        permissions: PermissionEvaluator,
        history: HistoryRecorder,
        resolver: TriggerResolver,
        error_handler: Optional[AppCommandsErrorHandler] = None
    ):
        super().__init__(config, permissions, error_handler)
        self.history = history
        self.resolver = resolver

    @log_command_execution(_logger, "history")
    async def execute(self, interaction: discord.Interaction, **kwargs) -> None:
        """
        显示命令历史

        Args:
            interaction: Discord交互对象
            **kwargs: trigger（可选，只显示该触发词的历史）
        """
        if not await self.check_prerequisites(interaction):
            return
        if not await self.check_editor(interaction):
            return

        channel_id = interaction.channel_id
        trigger = kwargs.get('trigger')

        if trigger:
            entries = await self.history.get_history_for_trigger(channel_id, normalize_trigger(trigger))
            entries = entries[:self.history.settings.history_limit]
        else:
            entries = await self.history.get_history(channel_id)

        if not entries:
            embed = EmbedBuilder.create_info_embed("暂无历史", "没有找到命令变更记录。")
            await self.message_visibility.send_message(interaction, embed, MessageType.INFO)
            return

        prefix = await self.resolver.get_trigger_prefix(channel_id)
        await self.message_visibility.send_text(interaction, format_history(entries, prefix), MessageType.HISTORY)
