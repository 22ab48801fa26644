"""
基础Slash命令类

提供所有Slash命令的通用功能：
- 统一的错误处理
- 日志记录
- 权限检查（管理员 / 编辑者）
- 消息可见性控制
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional
import discord

from duquebot.core.interfaces import MemberInfo
from duquebot.services.permissions import PermissionEvaluator
from duquebot.utils.config_manager import ConfigManager
from .error_handler import AppCommandsErrorHandler
from ..ui import EmbedBuilder, MessageVisibility, MessageType


class BaseSlashCommand(ABC):
    """
    所有Slash命令的基础类

    提供通用功能和标准化的命令处理流程
    """

    def __init__(
        self,
        config: ConfigManager,
        permissions: PermissionEvaluator,
        error_handler: Optional[AppCommandsErrorHandler] = None
    ):
        """
        初始化基础命令

        Args:
            config: 配置管理器
            permissions: 权限判断器
            error_handler: 错误处理器（默认新建）
        """
        self.config = config
        self.permissions = permissions
        self.error_handler = error_handler or AppCommandsErrorHandler()
        self.message_visibility = MessageVisibility()
        self.logger = logging.getLogger(f"duquebot.app_commands.{self.__class__.__name__}")

        self.logger.debug(f"初始化 {self.__class__.__name__}")

    async def check_prerequisites(self, interaction: discord.Interaction) -> bool:
        """
        检查命令是否在服务器频道中执行

        Args:
            interaction: Discord交互对象

        Returns:
            True if prerequisites are met, False otherwise
        """
        if interaction.guild_id is None or interaction.channel_id is None:
            await self.send_error_response(interaction, "此命令只能在服务器频道中使用。")
            return False

        return True

    @staticmethod
    def get_member_info(interaction: discord.Interaction) -> Optional[MemberInfo]:
        """获取调用者的成员信息（私信中为 None）"""
        return MemberInfo.from_member(interaction.user)

    async def check_admin(self, interaction: discord.Interaction) -> bool:
        """
        检查调用者是否为管理员，不是时回复错误

        Args:
            interaction: Discord交互对象

        Returns:
            是否为管理员
        """
        if self.permissions.is_admin(interaction.user.id, self.get_member_info(interaction)):
            return True

        self.logger.info(f"管理员权限不足 - 用户: {interaction.user.id}, 频道: {interaction.channel_id}")
        await self.send_error_response(
            interaction,
            "只有服务器管理员可以使用此命令。",
            title="权限不足"
        )
        return False

    async def check_editor(self, interaction: discord.Interaction) -> bool:
        """
        检查调用者是否可以管理本频道的命令，不可以时回复错误

        Args:
            interaction: Discord交互对象

        Returns:
            是否可以管理
        """
        allowed = await self.permissions.can_manage_commands(
            interaction.user.id,
            self.get_member_info(interaction),
            interaction.channel_id
        )
        if allowed:
            return True

        self.logger.info(f"编辑权限不足 - 用户: {interaction.user.id}, 频道: {interaction.channel_id}")
        await self.send_error_response(
            interaction,
            "您没有管理本频道命令的权限。需要管理员权限或本频道的编辑者角色。",
            title="权限不足"
        )
        return False

    async def send_error_response(
        self,
        interaction: discord.Interaction,
        message: str,
        title: str = "错误"
    ) -> None:
        """
        发送错误响应（仅调用者可见）

        Args:
            interaction: Discord交互对象
            message: 错误消息
            title: 标题
        """
        embed = EmbedBuilder.create_error_embed(title, message)
        await self.message_visibility.send_message(interaction, embed, MessageType.ERROR)

    async def send_warning_response(
        self,
        interaction: discord.Interaction,
        title: str,
        message: str
    ) -> None:
        """发送警告响应（仅调用者可见）"""
        embed = EmbedBuilder.create_warning_embed(title, message)
        await self.message_visibility.send_message(interaction, embed, MessageType.WARNING)

    async def send_success_response(
        self,
        interaction: discord.Interaction,
        title: str,
        message: str
    ) -> None:
        """
        发送成功响应

        Args:
            interaction: Discord交互对象
            title: 标题
            message: 消息内容
        """
        embed = EmbedBuilder.create_success_embed(title, message)
        await self.message_visibility.send_message(interaction, embed, MessageType.SUCCESS)

    async def handle_command_error(
        self,
        interaction: discord.Interaction,
        error: Exception
    ) -> None:
        """
        处理命令执行错误

        Args:
            interaction: Discord交互对象
            error: 异常对象
        """
        command_name = interaction.command.qualified_name if interaction.command else self.__class__.__name__
        await self.error_handler.handle_error(interaction, error, command_name)

    @abstractmethod
    async def execute(self, interaction: discord.Interaction, **kwargs) -> None:
        """
        执行命令的抽象方法

        Args:
            interaction: Discord交互对象
            **kwargs: 命令参数
        """
        pass
