"""
自定义命令模块

- /command add|edit|remove
- /commands
- /history
- /preview
"""

from .command_management import CommandManagementCommands, normalize_trigger
from .command_list import CommandListCommand
from .history_command import HistoryCommand
from .preview_command import PreviewCommand

__all__ = [
    'CommandManagementCommands',
    'normalize_trigger',
    'CommandListCommand',
    'HistoryCommand',
    'PreviewCommand'
]
