"""
存储结构定义

声明所有表、列和命名索引。存储实现只使用这里出现的标识符拼接 SQL，
索引列的顺序同时决定列表查询的排序。
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Tuple


CHANNEL_CONFIGS = "channel_configs"
CUSTOM_COMMANDS = "custom_commands"
COMMAND_HISTORY = "command_history"
APP_META = "app_meta"
APPROVED_GUILDS = "approved_guilds"


@dataclass(frozen=True)
class IndexSchema:
    """命名索引"""
    columns: Tuple[str, ...]
    unique: bool = False


@dataclass(frozen=True)
class TableSchema:
    """表结构"""
    columns: Dict[str, str]
    indexes: Dict[str, IndexSchema]
    json_columns: FrozenSet[str] = field(default_factory=frozenset)

    def index(self, name: str) -> IndexSchema:
        if name not in self.indexes:
            raise ValueError(f"未知索引: {name}")
        return self.indexes[name]

    def check_columns(self, names) -> None:
        unknown = set(names) - set(self.columns)
        if unknown:
            raise ValueError(f"未知列: {', '.join(sorted(unknown))}")


SCHEMA: Dict[str, TableSchema] = {
    CHANNEL_CONFIGS: TableSchema(
        columns={
            "channel_id": "INTEGER NOT NULL",
            "guild_id": "INTEGER NOT NULL",
            "editor_role_ids": "TEXT NOT NULL",
            "trigger_prefix": "TEXT",
            "created_at": "INTEGER NOT NULL",
            "updated_at": "INTEGER NOT NULL",
        },
        indexes={
            "by_channel": IndexSchema(("channel_id",), unique=True),
        },
        json_columns=frozenset({"editor_role_ids"}),
    ),
    CUSTOM_COMMANDS: TableSchema(
        columns={
            "channel_id": "INTEGER NOT NULL",
            "trigger": "TEXT NOT NULL",
            "current_response": "TEXT NOT NULL",
            "created_at": "INTEGER NOT NULL",
            "created_by_user_id": "INTEGER NOT NULL",
            "updated_at": "INTEGER NOT NULL",
            "updated_by_user_id": "INTEGER NOT NULL",
        },
        indexes={
            "by_channel_trigger": IndexSchema(("channel_id", "trigger"), unique=True),
            "by_channel": IndexSchema(("channel_id",)),
        },
    ),
    COMMAND_HISTORY: TableSchema(
        columns={
            "channel_id": "INTEGER NOT NULL",
            "trigger": "TEXT NOT NULL",
            "action": "TEXT NOT NULL",
            "previous_response": "TEXT",
            "new_response": "TEXT",
            "actor_user_id": "INTEGER NOT NULL",
            "timestamp": "INTEGER NOT NULL",
        },
        indexes={
            "by_channel_trigger": IndexSchema(("channel_id", "trigger", "timestamp")),
            "by_channel_timestamp": IndexSchema(("channel_id", "timestamp")),
            "by_timestamp": IndexSchema(("timestamp",)),
        },
    ),
    APP_META: TableSchema(
        columns={
            "key": "TEXT NOT NULL",
            "command_history_count": "INTEGER NOT NULL",
            "updated_at": "INTEGER NOT NULL",
        },
        indexes={
            "by_key": IndexSchema(("key",), unique=True),
        },
    ),
    APPROVED_GUILDS: TableSchema(
        columns={
            "guild_id": "INTEGER NOT NULL",
            "guild_name": "TEXT NOT NULL",
            "blacklisted_at": "INTEGER",
        },
        indexes={
            "by_guild": IndexSchema(("guild_id",), unique=True),
        },
    ),
}


def get_table(name: str) -> TableSchema:
    """获取表结构，未知表名抛出 ValueError"""
    if name not in SCHEMA:
        raise ValueError(f"未知表: {name}")
    return SCHEMA[name]


def split_index_key(table: TableSchema, index: str, key: Dict[str, object]) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """
    将索引列拆分为等值过滤列和排序列

    Args:
        table: 表结构
        index: 索引名
        key: 查询键，必须是索引列的前缀

    Returns:
        (过滤列, 排序列)

    Raises:
        ValueError: 查询键不是索引前缀
    """
    columns = table.index(index).columns
    prefix = columns[:len(key)]
    if set(prefix) != set(key):
        raise ValueError(f"查询键 {sorted(key)} 不是索引 {index}{columns} 的前缀")
    return prefix, columns[len(key):]
