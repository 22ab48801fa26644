"""
自定义命令管理

处理 /command add|edit|remove：
- 编辑者或管理员才能使用
- 触发词规范化为小写并去除首尾空白
- 回复中显示带前缀的完整触发命令
"""

from typing import Optional
import discord

from duquebot.core.interfaces import ResultReason
from duquebot.core.settings import RESPONSE_MAX_LENGTH, TRIGGER_MAX_LENGTH
from duquebot.services.commands import CommandService
from duquebot.services.permissions import PermissionEvaluator
from duquebot.services.trigger_resolver import TriggerResolver
from duquebot.utils.config_manager import ConfigManager

from ..core.base_command import BaseSlashCommand
from ..core.error_handler import AppCommandsErrorHandler, InvalidInputError
from ..core.logging_config import AppCommandsLogger, log_command_execution

_logger = AppCommandsLogger("custom_commands")


def normalize_trigger(trigger: str) -> str:
    """触发词转为小写并去除首尾空白"""
    return trigger.lower().strip()


class CommandManagementCommands(BaseSlashCommand):
    """/command 子命令处理器"""

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

    async def execute(self, interaction: discord.Interaction, **kwargs) -> None:
        """
        执行 /command 子命令

        Args:
            interaction: Discord交互对象
            **kwargs: action（add / edit / remove）、trigger、response
        """
        action = kwargs.get('action')
        if action == 'add':
            await self.handle_add(interaction, kwargs['trigger'], kwargs['response'])
        elif action == 'edit':
            await self.handle_edit(interaction, kwargs['trigger'], kwargs['response'])
        elif action == 'remove':
            await self.handle_remove(interaction, kwargs['trigger'])
        else:
            raise ValueError(f"未知的子命令: {action}")

    def _validate(self, trigger: str, response: Optional[str] = None) -> str:
        normalized = normalize_trigger(trigger)
        if not normalized:
            raise InvalidInputError("empty trigger", "触发词不能为空。")
        if len(normalized) > TRIGGER_MAX_LENGTH:
            raise InvalidInputError("trigger too long", f"触发词不能超过 {TRIGGER_MAX_LENGTH} 个字符。")
        if response is not None:
            if not response.strip():
                raise InvalidInputError("empty response", "响应内容不能为空。")
            if len(response) > RESPONSE_MAX_LENGTH:
                raise InvalidInputError("response too long", f"响应内容不能超过 {RESPONSE_MAX_LENGTH} 个字符。")
        return normalized

    @log_command_execution(_logger, "command add")
    async def handle_add(self, interaction: discord.Interaction, trigger: str, response: str) -> None:
        """添加命令"""
        if not await self.check_prerequisites(interaction):
            return
        if not await self.check_editor(interaction):
            return

        trigger = self._validate(trigger, response)
        if any(char.isspace() for char in trigger):
            # 解析时只取第一个空白前的部分，含空白的触发词永远无法触发
            raise InvalidInputError("whitespace in trigger", "触发词不能包含空格。")

        prefix = await self.resolver.get_trigger_prefix(interaction.channel_id)
        result = await self.commands.add_command(interaction.channel_id, trigger, response, interaction.user.id)

        if not result.success:
            await self.send_warning_response(
                interaction,
                "命令已存在",
                f"本频道已存在命令 `{prefix}{trigger}`。使用 `/command edit` 修改它的响应。"
            )
            return

        await self.send_success_response(interaction, "命令已添加", f"本频道已添加命令 `{prefix}{trigger}`。")

    @log_command_execution(_logger, "command edit")
    async def handle_edit(self, interaction: discord.Interaction, trigger: str, response: str) -> None:
        """修改命令响应"""
        if not await self.check_prerequisites(interaction):
            return
        if not await self.check_editor(interaction):
            return

        trigger = self._validate(trigger, response)
        prefix = await self.resolver.get_trigger_prefix(interaction.channel_id)
        result = await self.commands.edit_command(interaction.channel_id, trigger, response, interaction.user.id)

        if not result.success and result.reason == ResultReason.NOT_FOUND:
            await self.send_error_response(
                interaction,
                f"本频道不存在命令 `{prefix}{trigger}`。请先使用 `/command add` 创建。",
                title="命令不存在"
            )
            return

        await self.send_success_response(interaction, "命令已更新", f"命令 `{prefix}{trigger}` 的响应已更新。")

    @log_command_execution(_logger, "command remove")
    async def handle_remove(self, interaction: discord.Interaction, trigger: str) -> None:
        """删除命令"""
        if not await self.check_prerequisites(interaction):
            return
        if not await self.check_editor(interaction):
            return

        trigger = self._validate(trigger)
        prefix = await self.resolver.get_trigger_prefix(interaction.channel_id)
        result = await self.commands.remove_command(interaction.channel_id, trigger, interaction.user.id)

        if not result.success:
            await self.send_error_response(
                interaction,
                f"本频道不存在命令 `{prefix}{trigger}`。",
                title="命令不存在"
            )
            return

        await self.send_success_response(interaction, "命令已删除", f"命令 `{prefix}{trigger}` 已从本频道删除。")
