"""
App Commands Core Infrastructure

提供Slash Commands的核心基础设施，包括：
- 基础命令类
- 命令注册系统
- 命令组管理
- 日志与错误处理
"""

from .base_command import BaseSlashCommand
from .command_group import SlashCommandGroup
from .registry import CommandRegistry
from .logging_config import AppCommandsLogger, log_command_execution
from .error_handler import (
    AppCommandsErrorHandler,
    AppCommandError,
    InvalidInputError,
    ErrorCategory
)

__all__ = [
    'BaseSlashCommand',
    'SlashCommandGroup',
    'CommandRegistry',
    'AppCommandsLogger',
    'log_command_execution',
    'AppCommandsErrorHandler',
    'AppCommandError',
    'InvalidInputError',
    'ErrorCategory'
]
