"""
存储模块

提供文档存储契约的实现：
- SQLite 文档存储
- 表结构与索引定义
- 写操作日志
"""

from .schema import SCHEMA, CHANNEL_CONFIGS, CUSTOM_COMMANDS, COMMAND_HISTORY, APP_META, APPROVED_GUILDS
from .sqlite_store import SqliteDocumentStore
from .write_log import log_db_write

__all__ = [
    'SCHEMA',
    'CHANNEL_CONFIGS',
    'CUSTOM_COMMANDS',
    'COMMAND_HISTORY',
    'APP_META',
    'APPROVED_GUILDS',
    'SqliteDocumentStore',
    'log_db_write'
]
