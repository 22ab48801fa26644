"""
命令历史记录器

为每次命令变更追加审计记录，并把全表记录数限制在上限以内：
- 记录数保存在 app_meta 的计数器行中，避免每次都重新统计
- 计数器在一次用户操作内只解析一次、只写回一次
- 超出上限时按 (timestamp, id) 升序淘汰全局最旧的记录，不按频道分配配额
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from duquebot.core.interfaces import CommandHistoryEntry, IDocumentStore
from duquebot.core.settings import CommandSettings
from duquebot.storage.schema import APP_META, COMMAND_HISTORY
from duquebot.storage.write_log import log_db_write
from duquebot.utils.time_utils import now_ms

COMMAND_HISTORY_META_KEY = "command_history_count"


@dataclass
class HistoryCounterState:
    """计数器状态（单次事务内缓存）"""
    meta_id: int
    count: int
    dirty: bool = False


class HistorySession:
    """
    单次事务的历史写入会话

    一次用户操作（可能包含多次历史插入，例如批量清除频道命令）
    使用同一个会话，最后调用 persist() 写回计数器。
    调用方负责把整个会话放在同一个存储事务中。
    """

    def __init__(
        self,
        store: IDocumentStore,
        max_entries: int,
        clock: Callable[[], int]
    ):
        self.store = store
        self.max_entries = max_entries
        self.clock = clock
        self.state: Optional[HistoryCounterState] = None
        self.logger = logging.getLogger("duquebot.services.history")

    async def ensure_counter_state(self) -> HistoryCounterState:
        """
        解析计数器状态

        已缓存时直接复用；计数器行不存在时统计现有历史记录数并创建
        （只在第一次使用时发生）。

        Returns:
            计数器状态
        """
        if self.state is not None:
            return self.state

        meta = await self.store.get(APP_META, "by_key", key=COMMAND_HISTORY_META_KEY)
        if meta:
            self.state = HistoryCounterState(
                meta_id=meta["id"],
                count=meta["command_history_count"],
            )
            return self.state

        initial_count = len(await self.store.list(COMMAND_HISTORY))
        meta_id = await self.store.insert(APP_META, {
            "key": COMMAND_HISTORY_META_KEY,
            "command_history_count": initial_count,
            "updated_at": self.clock(),
        })
        log_db_write(
            APP_META, "insert",
            meta_id=meta_id,
            key=COMMAND_HISTORY_META_KEY,
            command_history_count=initial_count,
        )
        self.logger.info(f"历史计数器已初始化 - 现有记录: {initial_count}")

        self.state = HistoryCounterState(meta_id=meta_id, count=initial_count)
        return self.state

    async def insert_capped(self, entry: CommandHistoryEntry, **details: Any) -> int:
        """
        插入一条历史记录并执行保留上限

        Args:
            entry: 历史记录
            **details: 写日志的附加上下文

        Returns:
            新记录 id
        """
        state = await self.ensure_counter_state()

        history_id = await self.store.insert(COMMAND_HISTORY, entry.to_fields())
        log_db_write(
            COMMAND_HISTORY, "insert",
            history_id=history_id,
            channel_id=entry.channel_id,
            trigger=entry.trigger,
            action=entry.action.value,
            actor_user_id=entry.actor_user_id,
            **details,
        )

        state.count += 1
        state.dirty = True

        if state.count > self.max_entries:
            await self._evict_overflow(state)

        return history_id

    async def _evict_overflow(self, state: HistoryCounterState) -> None:
        overflow = state.count - self.max_entries
        oldest_entries = await self.store.list(
            COMMAND_HISTORY, "by_timestamp", order="asc", limit=overflow
        )

        for oldest in oldest_entries:
            await self.store.delete(COMMAND_HISTORY, oldest["id"])
            log_db_write(
                COMMAND_HISTORY, "delete",
                history_id=oldest["id"],
                channel_id=oldest["channel_id"],
                trigger=oldest["trigger"],
                action=oldest["action"],
                actor_user_id=oldest["actor_user_id"],
                reason="retention_cap",
                max_entries=self.max_entries,
            )

        if len(oldest_entries) < overflow:
            self.logger.warning(
                f"历史淘汰数量不足 - 需要: {overflow}, 实际: {len(oldest_entries)}"
            )

        # 计数器只是簿记数据，不允许出现负数
        state.count = max(0, state.count - len(oldest_entries))

    async def persist(self) -> None:
        """写回计数器；未使用或未修改时不做任何事"""
        if self.state is None or not self.state.dirty:
            return

        await self.store.patch(APP_META, self.state.meta_id, {
            "command_history_count": self.state.count,
            "updated_at": self.clock(),
        })
        log_db_write(
            APP_META, "patch",
            meta_id=self.state.meta_id,
            key=COMMAND_HISTORY_META_KEY,
            command_history_count=self.state.count,
        )
        self.state.dirty = False


class HistoryRecorder:
    """
    命令历史记录器

    写入通过 begin() 创建的会话完成；读取按频道或触发词倒序返回。
    """

    def __init__(
        self,
        store: IDocumentStore,
        settings: CommandSettings,
        clock: Callable[[], int] = now_ms
    ):
        """
        初始化历史记录器

        Args:
            store: 文档存储
            settings: 命令系统配置
            clock: 毫秒时钟
        """
        self.store = store
        self.settings = settings
        self.clock = clock
        self.logger = logging.getLogger("duquebot.services.history")

    def begin(self) -> HistorySession:
        """创建新的历史写入会话"""
        return HistorySession(self.store, self.settings.max_history_entries, self.clock)

    async def get_history(self, channel_id: int, limit: Optional[int] = None) -> List[CommandHistoryEntry]:
        """
        获取频道的最近历史记录

        Args:
            channel_id: 频道ID
            limit: 返回数量，默认使用配置的 history_limit

        Returns:
            按时间倒序的历史记录
        """
        docs = await self.store.list(
            COMMAND_HISTORY, "by_channel_timestamp",
            order="desc",
            limit=limit if limit is not None else self.settings.history_limit,
            channel_id=channel_id,
        )
        return [CommandHistoryEntry.from_document(doc) for doc in docs]

    async def get_history_for_trigger(self, channel_id: int, trigger: str) -> List[CommandHistoryEntry]:
        """获取某个触发词的全部历史记录（时间倒序）"""
        docs = await self.store.list(
            COMMAND_HISTORY, "by_channel_trigger",
            order="desc",
            channel_id=channel_id,
            trigger=trigger,
        )
        return [CommandHistoryEntry.from_document(doc) for doc in docs]

    async def reconcile_counter(self) -> int:
        """
        重新统计历史记录数并修正计数器

        启动时调用，修复进程崩溃等情况下可能产生的计数偏差。

        Returns:
            实际记录数
        """
        async with self.store.transaction():
            actual = len(await self.store.list(COMMAND_HISTORY))
            session = self.begin()
            state = await session.ensure_counter_state()

            if state.count != actual:
                self.logger.warning(f"历史计数器偏差已修正 - 记录值: {state.count}, 实际: {actual}")
                state.count = actual
                state.dirty = True
                await session.persist()

        return actual
