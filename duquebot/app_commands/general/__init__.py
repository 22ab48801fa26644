"""
通用命令模块

- 帮助信息
"""

from .help_command import HelpCommand

__all__ = [
    'HelpCommand'
]
