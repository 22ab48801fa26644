"""
App Commands错误处理

命令处理器和命令树共用的错误回复：
- 把异常归类为用户、权限、存储、网络等类别
- 每个失败的交互恰好收到一条仅自己可见的回复
- 按异常类型统计
"""

import asyncio
from enum import Enum
from typing import Dict, NamedTuple, Optional
import discord
from discord import app_commands

from duquebot.core.interfaces import StorageError
from .logging_config import AppCommandsLogger
from ..ui import EmbedBuilder, MessageVisibility, MessageType


class ErrorCategory(Enum):
    """错误分类枚举"""
    USER_ERROR = "user_error"          # 用户输入错误
    PERMISSION_ERROR = "permission"    # 权限错误
    STORAGE_ERROR = "storage"          # 数据存储错误
    SYSTEM_ERROR = "system"            # 系统错误
    NETWORK_ERROR = "network"          # 网络错误
    TIMEOUT_ERROR = "timeout"          # 超时错误
    RATE_LIMIT_ERROR = "rate_limit"    # 频率限制错误


class AppCommandError(Exception):
    """
    命令处理器主动抛出的异常

    ``user_message`` 会原样显示给调用者。
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.SYSTEM_ERROR,
        user_message: Optional[str] = None,
        **context
    ):
        super().__init__(message)
        self.category = category
        self.user_message = user_message or message
        self.context = context


class InvalidInputError(AppCommandError):
    """用户输入错误"""

    def __init__(self, message: str, user_message: Optional[str] = None, **context):
        super().__init__(message, ErrorCategory.USER_ERROR, user_message, **context)


class _Reply(NamedTuple):
    title: str
    description: str


# 每个分类的默认回复
_DEFAULT_REPLIES: Dict[ErrorCategory, _Reply] = {
    ErrorCategory.USER_ERROR: _Reply("输入错误", "请检查您的输入并重试。"),
    ErrorCategory.PERMISSION_ERROR: _Reply("权限不足", "您没有执行此命令的权限。"),
    ErrorCategory.STORAGE_ERROR: _Reply("数据存储错误", "读取或保存数据时发生错误，本次操作未生效，请稍后重试。"),
    ErrorCategory.SYSTEM_ERROR: _Reply("系统错误", "执行此命令时发生错误，请稍后重试。"),
    ErrorCategory.NETWORK_ERROR: _Reply("网络错误", "与 Discord 通信时出现问题，请稍后重试。"),
    ErrorCategory.TIMEOUT_ERROR: _Reply("请求超时", "操作超时，请稍后重试。"),
    ErrorCategory.RATE_LIMIT_ERROR: _Reply("操作过于频繁", "您的操作过于频繁，请稍后重试。"),
}


class AppCommandsErrorHandler:
    """
    App Commands错误处理器

    单例注册在依赖容器中，命令处理器和命令树的 on_error 共用同一个实例。
    """

    def __init__(self):
        self.logger = AppCommandsLogger("error_handler")
        self.message_visibility = MessageVisibility()
        self._error_stats: Dict[str, int] = {}

    async def handle_error(
        self,
        interaction: discord.Interaction,
        error: Exception,
        command_name: Optional[str] = None
    ) -> bool:
        """
        记录错误并回复调用者

        Args:
            interaction: Discord交互对象
            error: 异常对象
            command_name: 命令名称

        Returns:
            是否成功发送了分类回复（失败时已尝试发送通用回复）
        """
        # app_commands 把回调中的异常包装为 CommandInvokeError
        if isinstance(error, app_commands.CommandInvokeError):
            error = error.original

        error_type = type(error).__name__
        self._error_stats[error_type] = self._error_stats.get(error_type, 0) + 1

        category = self._categorize_error(error)
        self.logger.log_command_error(
            interaction,
            command_name or "unknown",
            error,
            error_category=category.value
        )

        try:
            await self.message_visibility.send_message(
                interaction,
                self._build_embed(category, error),
                MessageType.ERROR,
                context={'error_type': category.value}
            )
            return True
        except discord.DiscordException as e:
            self.logger.error(f"发送错误回复失败: {e}", error=e)
            await self._send_fallback(interaction, error)
            return False

    def _categorize_error(self, error: Exception) -> ErrorCategory:
        """
        分类错误

        Args:
            error: 异常对象

        Returns:
            错误分类
        """
        if isinstance(error, AppCommandError):
            return error.category
        if isinstance(error, StorageError):
            return ErrorCategory.STORAGE_ERROR

        # NotFound 和 Forbidden 是 HTTPException 的子类，需先判断
        if isinstance(error, discord.Forbidden):
            return ErrorCategory.PERMISSION_ERROR
        if isinstance(error, discord.NotFound):
            return ErrorCategory.USER_ERROR
        if isinstance(error, discord.HTTPException):
            return ErrorCategory.RATE_LIMIT_ERROR if error.status == 429 else ErrorCategory.NETWORK_ERROR

        if isinstance(error, app_commands.CommandOnCooldown):
            return ErrorCategory.RATE_LIMIT_ERROR
        if isinstance(error, (app_commands.MissingPermissions, app_commands.BotMissingPermissions)):
            return ErrorCategory.PERMISSION_ERROR
        if isinstance(error, (app_commands.NoPrivateMessage, app_commands.CommandNotFound)):
            return ErrorCategory.USER_ERROR

        if isinstance(error, asyncio.TimeoutError):
            return ErrorCategory.TIMEOUT_ERROR

        return ErrorCategory.SYSTEM_ERROR

    @staticmethod
    def _build_embed(category: ErrorCategory, error: Exception) -> discord.Embed:
        reply = _DEFAULT_REPLIES[category]
        embed = EmbedBuilder.create_error_embed(reply.title, reply.description)

        if isinstance(error, AppCommandError) and error.user_message:
            embed.description = error.user_message
        elif isinstance(error, app_commands.NoPrivateMessage):
            embed.description = "此命令只能在服务器频道中使用。"
        elif isinstance(error, app_commands.CommandNotFound):
            embed.title = "❌ 未知命令"
            embed.description = "这个命令不存在或尚未同步，请稍后重试。"
        elif isinstance(error, (discord.Forbidden, app_commands.BotMissingPermissions)):
            embed.description = "机器人缺少执行此操作所需的权限。"
            embed.add_field(name="💡 解决方案", value="请联系服务器管理员检查机器人权限设置。", inline=False)
        elif isinstance(error, app_commands.CommandOnCooldown):
            embed.add_field(name="⏰ 冷却时间", value=f"请等待 {int(error.retry_after)} 秒后重试", inline=False)
        elif category == ErrorCategory.SYSTEM_ERROR:
            embed.add_field(
                name="🔧 如果问题持续存在",
                value="请联系机器人管理员并提供错误发生的时间。",
                inline=False
            )

        return embed

    async def _send_fallback(self, interaction: discord.Interaction, original_error: Exception) -> None:
        """分类回复发送失败时的最后一次尝试"""
        embed = discord.Embed(
            title="❌ 系统错误",
            description="系统发生严重错误，请联系管理员。",
            color=discord.Color.red()
        )
        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.DiscordException:
            # 交互可能已经失效，只能记录日志
            self.logger.error(f"通用错误回复也发送失败，原始错误: {original_error!r}")

    def get_error_stats(self) -> Dict[str, int]:
        """按异常类型名返回错误次数"""
        return self._error_stats.copy()
