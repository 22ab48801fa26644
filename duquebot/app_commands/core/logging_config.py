"""
App Commands日志配置

命令处理器的结构化日志：
- 开始 / 完成 / 失败 三类记录，附带调用者和频道上下文
- 超过交互首次回复时限的慢命令警告
"""

import logging
import time
import functools
from typing import Callable, Optional
import discord

# 交互必须在 3 秒内得到首次回复
INTERACTION_RESPONSE_DEADLINE = 3.0


def _where(interaction: discord.Interaction) -> str:
    if interaction.guild_id is None:
        return "私信"
    return f"服务器 {interaction.guild_id} / 频道 {interaction.channel_id}"


class AppCommandsLogger:
    """命令日志记录器，上下文字段通过 ``extra['context']`` 传给处理器"""

    def __init__(self, name: str):
        self.logger = logging.getLogger(f"duquebot.app_commands.{name}")

    @staticmethod
    def _context(interaction: discord.Interaction, command_name: str, **fields) -> dict:
        return {
            'command': command_name,
            'user_id': interaction.user.id,
            'guild_id': interaction.guild_id,
            'channel_id': interaction.channel_id,
            **fields,
        }

    def log_command_start(self, interaction: discord.Interaction, command_name: str, **kwargs) -> None:
        """记录命令开始执行"""
        self.logger.info(
            f"▶️ /{command_name} 由 {interaction.user.id} 调用 ({_where(interaction)})",
            extra={'context': self._context(interaction, command_name, **kwargs)}
        )

    def log_command_success(
        self,
        interaction: discord.Interaction,
        command_name: str,
        execution_time: Optional[float] = None,
        **kwargs
    ) -> None:
        """
        记录命令完成

        Args:
            interaction: Discord交互对象
            command_name: 命令名称
            execution_time: 耗时（秒）
        """
        elapsed = f"，耗时 {execution_time:.2f}s" if execution_time is not None else ""
        self.logger.info(
            f"✅ /{command_name} 完成{elapsed}",
            extra={'context': self._context(
                interaction, command_name, status='success', execution_time=execution_time, **kwargs
            )}
        )

    def log_command_error(
        self,
        interaction: discord.Interaction,
        command_name: str,
        error: Exception,
        execution_time: Optional[float] = None,
        **kwargs
    ) -> None:
        """
        记录命令失败（带异常堆栈）

        Args:
            interaction: Discord交互对象
            command_name: 命令名称
            error: 异常对象
            execution_time: 耗时（秒）
        """
        self.logger.error(
            f"❌ /{command_name} 失败 ({_where(interaction)}): {type(error).__name__}: {error}",
            extra={'context': self._context(
                interaction,
                command_name,
                status='error',
                error_type=type(error).__name__,
                execution_time=execution_time,
                **kwargs
            )},
            exc_info=error
        )

    def log_performance_warning(
        self,
        command_name: str,
        execution_time: float,
        threshold: float = INTERACTION_RESPONSE_DEADLINE
    ) -> None:
        """耗时超过阈值时记录警告"""
        if execution_time <= threshold:
            return
        self.logger.warning(
            f"🐢 /{command_name} 耗时 {execution_time:.2f}s，超过 {threshold}s",
            extra={'context': {'command': command_name, 'execution_time': execution_time}}
        )

    def info(self, message: str, **kwargs) -> None:
        self.logger.info(message, extra={'context': kwargs})

    def error(self, message: str, error: Optional[Exception] = None, **kwargs) -> None:
        self.logger.error(message, extra={'context': kwargs}, exc_info=error)


def log_command_execution(logger: AppCommandsLogger, command_name: Optional[str] = None):
    """
    为命令处理方法记录开始、完成和失败

    被装饰函数的位置参数中没有交互对象时不做记录。异常记录后原样抛出，
    由命令处理器的错误处理回复用户。

    Args:
        logger: 日志记录器
        command_name: 日志中的命令名称，默认使用函数名
    """
    def decorator(func: Callable) -> Callable:
        name = command_name or func.__name__

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            interaction = next((arg for arg in args if isinstance(arg, discord.Interaction)), None)
            if interaction is None:
                return await func(*args, **kwargs)

            logger.log_command_start(interaction, name)
            started = time.monotonic()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.log_command_error(interaction, name, e, time.monotonic() - started)
                raise

            elapsed = time.monotonic() - started
            logger.log_command_success(interaction, name, elapsed)
            logger.log_performance_warning(name, elapsed)
            return result

        return wrapper
    return decorator
