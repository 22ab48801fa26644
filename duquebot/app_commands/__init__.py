"""
Duque Bot Slash Commands Module

按业务领域组织的Discord Slash Commands实现：
- 自定义命令：添加、修改、删除、列出、历史、预览
- 频道设置：编辑者角色、触发前缀
- 通用命令：帮助
"""

from .core import (
    BaseSlashCommand,
    SlashCommandGroup,
    CommandRegistry,
    AppCommandsErrorHandler
)

from .custom_commands import (
    CommandManagementCommands,
    CommandListCommand,
    HistoryCommand,
    PreviewCommand
)

from .channel_settings import (
    RolesCommands,
    TriggerPrefixCommand
)

from .general import HelpCommand

from .ui import (
    EmbedBuilder,
    MessageVisibility,
    MessageType
)

from .integration import AppCommandsIntegration, setup_app_commands

__all__ = [
    # Core infrastructure
    'BaseSlashCommand',
    'SlashCommandGroup',
    'CommandRegistry',
    'AppCommandsErrorHandler',

    # Custom command domain
    'CommandManagementCommands',
    'CommandListCommand',
    'HistoryCommand',
    'PreviewCommand',

    # Channel settings
    'RolesCommands',
    'TriggerPrefixCommand',

    # General commands
    'HelpCommand',

    # UI components
    'EmbedBuilder',
    'MessageVisibility',
    'MessageType',

    # Integration
    'AppCommandsIntegration',
    'setup_app_commands'
]
