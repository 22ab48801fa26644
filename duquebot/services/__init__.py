"""
业务服务模块

- 权限判断
- 触发词解析
- 频道配置
- 自定义命令与历史记录
- 服务器准入
"""

from .channel_config import ChannelConfigService, ALLOWED_TRIGGER_PREFIXES, is_allowed_trigger_prefix
from .commands import CommandService
from .guilds import GuildGatekeeper
from .history import HistoryRecorder, HistorySession, COMMAND_HISTORY_META_KEY
from .permissions import PermissionEvaluator
from .trigger_resolver import TriggerResolver, extract_trigger

__all__ = [
    'ChannelConfigService',
    'ALLOWED_TRIGGER_PREFIXES',
    'is_allowed_trigger_prefix',
    'CommandService',
    'GuildGatekeeper',
    'HistoryRecorder',
    'HistorySession',
    'COMMAND_HISTORY_META_KEY',
    'PermissionEvaluator',
    'TriggerResolver',
    'extract_trigger',
]
