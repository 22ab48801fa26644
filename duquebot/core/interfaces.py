"""
核心接口定义 - 定义系统各模块间的抽象接口

提供依赖倒置的基础，减少模块间的耦合度：
- 文档存储契约（IDocumentStore）
- 业务实体数据类
- 业务结果类型（成功标志 + 原因代码，从不以异常表示预期结果）
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncContextManager, Dict, List, Optional


class StorageError(Exception):
    """存储层故障（连接、IO、约束冲突），向调用方传播"""

    def __init__(self, message: str, operation: Optional[str] = None, table: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.table = table


class HistoryAction(str, Enum):
    """命令历史动作类型"""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ResultReason(str, Enum):
    """
    业务结果原因代码

    继承 str，因此可以直接与字面量代码比较，例如 ``reason == "not_found"``。
    """
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"
    ROLE_ALREADY_ADDED = "role_already_added"
    ROLE_NOT_FOUND = "role_not_found"
    NO_CONFIG = "no_config"
    AUTO_APPROVED = "auto_approved"
    ALREADY_APPROVED = "already_approved"
    BLACKLISTED = "blacklisted"
    UNBLACKLISTED = "unblacklisted"
    NOT_BLACKLISTED = "not_blacklisted"


@dataclass
class ChannelConfig:
    """频道配置（触发前缀 + 编辑者角色）"""
    id: int
    channel_id: int
    guild_id: int
    editor_role_ids: List[int]
    trigger_prefix: Optional[str]
    created_at: int
    updated_at: int

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ChannelConfig":
        return cls(
            id=doc["id"],
            channel_id=doc["channel_id"],
            guild_id=doc["guild_id"],
            editor_role_ids=list(doc.get("editor_role_ids") or []),
            trigger_prefix=doc.get("trigger_prefix"),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )


@dataclass
class CustomCommand:
    """频道自定义命令"""
    id: int
    channel_id: int
    trigger: str
    current_response: str
    created_at: int
    created_by_user_id: int
    updated_at: int
    updated_by_user_id: int

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "CustomCommand":
        return cls(
            id=doc["id"],
            channel_id=doc["channel_id"],
            trigger=doc["trigger"],
            current_response=doc["current_response"],
            created_at=doc["created_at"],
            created_by_user_id=doc["created_by_user_id"],
            updated_at=doc["updated_at"],
            updated_by_user_id=doc["updated_by_user_id"],
        )


@dataclass
class CommandHistoryEntry:
    """命令变更审计记录"""
    channel_id: int
    trigger: str
    action: HistoryAction
    actor_user_id: int
    timestamp: int
    previous_response: Optional[str] = None
    new_response: Optional[str] = None
    id: Optional[int] = None

    def to_fields(self) -> Dict[str, Any]:
        """转换为存储字段（不含 id）"""
        return {
            "channel_id": self.channel_id,
            "trigger": self.trigger,
            "action": self.action.value,
            "previous_response": self.previous_response,
            "new_response": self.new_response,
            "actor_user_id": self.actor_user_id,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "CommandHistoryEntry":
        return cls(
            id=doc["id"],
            channel_id=doc["channel_id"],
            trigger=doc["trigger"],
            action=HistoryAction(doc["action"]),
            actor_user_id=doc["actor_user_id"],
            timestamp=doc["timestamp"],
            previous_response=doc.get("previous_response"),
            new_response=doc.get("new_response"),
        )


@dataclass
class ApprovedGuild:
    """服务器审批记录；blacklisted_at 为空表示已批准"""
    id: int
    guild_id: int
    guild_name: str
    blacklisted_at: Optional[int] = None

    @property
    def is_blacklisted(self) -> bool:
        return self.blacklisted_at is not None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ApprovedGuild":
        return cls(
            id=doc["id"],
            guild_id=doc["guild_id"],
            guild_name=doc["guild_name"],
            blacklisted_at=doc.get("blacklisted_at"),
        )


@dataclass
class OperationResult:
    """通用操作结果"""
    success: bool
    reason: Optional[ResultReason] = None


@dataclass
class GuildJoinResult:
    """服务器加入检查结果"""
    allowed: bool
    reason: ResultReason


@dataclass
class BlacklistResult:
    """服务器拉黑结果"""
    success: bool
    created: bool
    already_blacklisted: bool


@dataclass
class RemoveAllResult:
    """批量删除结果"""
    deleted: int
    has_more: bool


@dataclass
class TriggerMatch:
    """触发词解析结果"""
    trigger: str
    trigger_prefix: str
    response: str


@dataclass
class DirectMessageResult:
    """
    私信发送结果

    平台可能拒绝私信（用户关闭了私信），这是可预期的结果，
    以 delivered=False 表示而不是抛出异常。
    """
    delivered: bool
    message_count: int = 0
    error: Optional[str] = None


@dataclass
class MemberInfo:
    """
    调用者的成员信息

    与 discord.Member 解耦，权限判断只依赖这些字段。
    """
    user_id: int
    guild_owner_id: Optional[int] = None
    is_administrator: bool = False
    role_ids: List[int] = field(default_factory=list)

    @classmethod
    def from_member(cls, member: Any) -> Optional["MemberInfo"]:
        """
        从 discord.Member 构建成员信息

        Args:
            member: Discord 成员对象（私信中可能为 None 或 User）

        Returns:
            成员信息，如果不是服务器成员则返回 None
        """
        guild = getattr(member, "guild", None)
        if member is None or guild is None:
            return None

        permissions = getattr(member, "guild_permissions", None)
        return cls(
            user_id=member.id,
            guild_owner_id=guild.owner_id,
            is_administrator=bool(permissions and permissions.administrator),
            role_ids=[role.id for role in getattr(member, "roles", [])],
        )


class IDocumentStore(ABC):
    """
    文档存储接口

    核心业务只通过此契约访问外部存储：
    - 通过命名索引做唯一查询和有序列表查询
    - 插入、部分更新、删除
    - 事务：同一任务内的操作原子提交，异常时全部回滚
    """

    @abstractmethod
    async def initialize(self) -> None:
        """初始化存储（建表、建索引）"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """关闭存储连接"""
        pass

    @abstractmethod
    async def get(self, table: str, index: str, **key: Any) -> Optional[Dict[str, Any]]:
        """
        通过唯一索引获取单条记录

        Args:
            table: 表名
            index: 索引名
            **key: 索引列的值

        Returns:
            记录字典，不存在时返回 None
        """
        pass

    @abstractmethod
    async def list(
        self,
        table: str,
        index: Optional[str] = None,
        order: str = "asc",
        limit: Optional[int] = None,
        **key: Any
    ) -> List[Dict[str, Any]]:
        """
        按索引列出记录

        结果按索引中未被 key 约束的列排序，再按内部 id 排序（同方向），
        因此相同时间戳的记录保持插入顺序。

        Args:
            table: 表名
            index: 索引名（None 表示按 id 顺序遍历全表）
            order: "asc" 或 "desc"
            limit: 最大返回数量
            **key: 索引前缀列的值

        Returns:
            记录字典列表
        """
        pass

    @abstractmethod
    async def insert(self, table: str, fields: Dict[str, Any]) -> int:
        """插入记录，返回新记录 id"""
        pass

    @abstractmethod
    async def patch(self, table: str, doc_id: int, fields: Dict[str, Any]) -> None:
        """部分更新记录；值为 None 的字段被清空"""
        pass

    @abstractmethod
    async def delete(self, table: str, doc_id: int) -> None:
        """删除记录"""
        pass

    @abstractmethod
    def transaction(self) -> AsyncContextManager[None]:
        """
        开启事务

        用法::

            async with store.transaction():
                ...
        """
        pass
