"""
频道设置模块

- /roles add|remove|list
- /trigger
"""

from .roles_commands import RolesCommands
from .trigger_command import TriggerPrefixCommand

__all__ = [
    'RolesCommands',
    'TriggerPrefixCommand'
]
