"""
编辑者角色管理

处理 /roles add|remove|list（仅管理员）：
拥有编辑者角色的成员可以管理本频道的自定义命令。
"""

from typing import Optional
import discord

from duquebot.core.interfaces import ResultReason
from duquebot.services.channel_config import ChannelConfigService
from duquebot.services.permissions import PermissionEvaluator
from duquebot.utils.config_manager import ConfigManager

from ..core.base_command import BaseSlashCommand
from ..core.error_handler import AppCommandsErrorHandler
from ..core.logging_config import AppCommandsLogger, log_command_execution
from ..ui import EmbedBuilder, MessageType

_logger = AppCommandsLogger("channel_settings")


class RolesCommands(BaseSlashCommand):
    """/roles 子命令处理器"""

    def __init__(
        self,
        config: ConfigManager,
        permissions: PermissionEvaluator,
        channel_configs: ChannelConfigService,
        error_handler: Optional[AppCommandsErrorHandler] = None
    ):
        super().__init__(config, permissions, error_handler)
        self.channel_configs = channel_configs

    async def execute(self, interaction: discord.Interaction, **kwargs) -> None:
        """
        执行 /roles 子命令

        Args:
            interaction: Discord交互对象
            **kwargs: action（add / remove / list）、role
        """
        action = kwargs.get('action')
        if action == 'add':
            await self.handle_add(interaction, kwargs['role'])
        elif action == 'remove':
            await self.handle_remove(interaction, kwargs['role'])
        elif action == 'list':
            await self.handle_list(interaction)
        else:
            raise ValueError(f"未知的子命令: {action}")

    async def _precheck(self, interaction: discord.Interaction) -> bool:
        return await self.check_prerequisites(interaction) and await self.check_admin(interaction)

    @log_command_execution(_logger, "roles add")
    async def handle_add(self, interaction: discord.Interaction, role: discord.Role) -> None:
        """添加编辑者角色"""
        if not await self._precheck(interaction):
            return

        result = await self.channel_configs.add_editor_role(interaction.channel_id, interaction.guild_id, role.id)
        if not result.success:
            await self.send_warning_response(
                interaction,
                "角色已存在",
                f"角色 **{role.name}** 已经是本频道的编辑者角色。"
            )
            return

        await self.send_success_response(
            interaction,
            "已添加编辑者角色",
            f"拥有角色 **{role.name}** 的成员现在可以管理本频道的命令。"
        )

    @log_command_execution(_logger, "roles remove")
    async def handle_remove(self, interaction: discord.Interaction, role: discord.Role) -> None:
        """移除编辑者角色"""
        if not await self._precheck(interaction):
            return

        result = await self.channel_configs.remove_editor_role(interaction.channel_id, role.id)
        if not result.success:
            if result.reason == ResultReason.NO_CONFIG:
                message = "本频道还没有配置任何编辑者角色。"
            else:
                message = f"角色 **{role.name}** 不是本频道的编辑者角色。"
            await self.send_error_response(interaction, message, title="无法移除")
            return

        await self.send_success_response(
            interaction,
            "已移除编辑者角色",
            f"拥有角色 **{role.name}** 的成员不再能管理本频道的命令。"
        )

    @log_command_execution(_logger, "roles list")
    async def handle_list(self, interaction: discord.Interaction) -> None:
        """列出编辑者角色"""
        if not await self._precheck(interaction):
            return

        config = await self.channel_configs.get_config(interaction.channel_id)
        if config is None or not config.editor_role_ids:
            embed = EmbedBuilder.create_info_embed(
                "暂无编辑者角色",
                "本频道没有配置编辑者角色，只有管理员可以管理命令。"
            )
        else:
            embed = EmbedBuilder.create_roles_embed(config)

        await self.message_visibility.send_message(interaction, embed, MessageType.INFO)
