"""
自定义命令服务

频道内 触发词 -> 响应 的增删改查。每次变更都在同一个存储事务中
写入命令、追加历史记录并写回历史计数器。
"""

import logging
from typing import Callable, List, Optional

from duquebot.core.interfaces import (
    CommandHistoryEntry,
    CustomCommand,
    HistoryAction,
    IDocumentStore,
    OperationResult,
    RemoveAllResult,
    ResultReason,
)
from duquebot.core.settings import CommandSettings
from duquebot.storage.schema import CUSTOM_COMMANDS
from duquebot.storage.write_log import log_db_write
from duquebot.utils.time_utils import now_ms

from .channel_config import ChannelConfigService
from .history import HistoryRecorder


class CommandService:
    """
    自定义命令服务

    触发词由调用方规范化（小写并去除首尾空白）。
    """

    def __init__(
        self,
        store: IDocumentStore,
        history: HistoryRecorder,
        channel_configs: ChannelConfigService,
        settings: CommandSettings,
        clock: Callable[[], int] = now_ms
    ):
        """
        初始化命令服务

        Args:
            store: 文档存储
            history: 历史记录器
            channel_configs: 频道配置服务（用于清除频道）
            settings: 命令系统配置
            clock: 毫秒时钟
        """
        self.store = store
        self.history = history
        self.channel_configs = channel_configs
        self.settings = settings
        self.clock = clock
        self.logger = logging.getLogger("duquebot.services.commands")

    async def get_command(self, channel_id: int, trigger: str) -> Optional[CustomCommand]:
        """获取单个命令"""
        doc = await self.store.get(CUSTOM_COMMANDS, "by_channel_trigger", channel_id=channel_id, trigger=trigger)
        return CustomCommand.from_document(doc) if doc else None

    async def list_commands(self, channel_id: int) -> List[CustomCommand]:
        """列出频道内的全部命令（按创建顺序）"""
        docs = await self.store.list(CUSTOM_COMMANDS, "by_channel", channel_id=channel_id)
        return [CustomCommand.from_document(doc) for doc in docs]

    async def add_command(self, channel_id: int, trigger: str, response: str, actor_user_id: int) -> OperationResult:
        """
        添加命令

        Returns:
            成功，或 already_exists
        """
        async with self.store.transaction():
            existing = await self.store.get(
                CUSTOM_COMMANDS, "by_channel_trigger", channel_id=channel_id, trigger=trigger
            )
            if existing:
                return OperationResult(success=False, reason=ResultReason.ALREADY_EXISTS)

            now = self.clock()
            command_id = await self.store.insert(CUSTOM_COMMANDS, {
                "channel_id": channel_id,
                "trigger": trigger,
                "current_response": response,
                "created_at": now,
                "created_by_user_id": actor_user_id,
                "updated_at": now,
                "updated_by_user_id": actor_user_id,
            })
            log_db_write(
                CUSTOM_COMMANDS, "insert",
                command_id=command_id,
                channel_id=channel_id,
                trigger=trigger,
                actor_user_id=actor_user_id,
                response_length=len(response),
            )

            session = self.history.begin()
            await session.insert_capped(
                CommandHistoryEntry(
                    channel_id=channel_id,
                    trigger=trigger,
                    action=HistoryAction.CREATE,
                    new_response=response,
                    actor_user_id=actor_user_id,
                    timestamp=now,
                ),
                response_length=len(response),
            )
            await session.persist()

        return OperationResult(success=True)

    async def edit_command(self, channel_id: int, trigger: str, new_response: str, actor_user_id: int) -> OperationResult:
        """
        修改命令响应；触发词和创建信息不变

        Returns:
            成功，或 not_found
        """
        async with self.store.transaction():
            existing = await self.store.get(
                CUSTOM_COMMANDS, "by_channel_trigger", channel_id=channel_id, trigger=trigger
            )
            if not existing:
                return OperationResult(success=False, reason=ResultReason.NOT_FOUND)

            now = self.clock()
            previous_response = existing["current_response"]

            await self.store.patch(CUSTOM_COMMANDS, existing["id"], {
                "current_response": new_response,
                "updated_at": now,
                "updated_by_user_id": actor_user_id,
            })
            log_db_write(
                CUSTOM_COMMANDS, "patch",
                command_id=existing["id"],
                channel_id=channel_id,
                trigger=trigger,
                actor_user_id=actor_user_id,
                previous_response_length=len(previous_response),
                new_response_length=len(new_response),
            )

            session = self.history.begin()
            await session.insert_capped(
                CommandHistoryEntry(
                    channel_id=channel_id,
                    trigger=trigger,
                    action=HistoryAction.UPDATE,
                    previous_response=previous_response,
                    new_response=new_response,
                    actor_user_id=actor_user_id,
                    timestamp=now,
                ),
                previous_response_length=len(previous_response),
                new_response_length=len(new_response),
            )
            await session.persist()

        return OperationResult(success=True)

    async def remove_command(self, channel_id: int, trigger: str, actor_user_id: int) -> OperationResult:
        """
        删除命令

        Returns:
            成功，或 not_found
        """
        async with self.store.transaction():
            existing = await self.store.get(
                CUSTOM_COMMANDS, "by_channel_trigger", channel_id=channel_id, trigger=trigger
            )
            if not existing:
                return OperationResult(success=False, reason=ResultReason.NOT_FOUND)

            session = self.history.begin()
            await self._delete_with_history(session, existing, actor_user_id, self.clock())
            await session.persist()

        return OperationResult(success=True)

    async def remove_all_by_channel(self, channel_id: int, actor_user_id: int) -> RemoveAllResult:
        """
        批量删除频道命令（每次最多 batch_size 条）

        每删除一条命令写入一条 DELETE 历史，计数器只写回一次。

        Returns:
            删除数量以及是否还有剩余
        """
        batch_size = self.settings.batch_size

        async with self.store.transaction():
            docs = await self.store.list(CUSTOM_COMMANDS, "by_channel", limit=batch_size, channel_id=channel_id)

            now = self.clock()
            session = self.history.begin()
            for doc in docs:
                await self._delete_with_history(session, doc, actor_user_id, now)
            await session.persist()

            has_more = False
            if len(docs) == batch_size:
                remaining = await self.store.list(CUSTOM_COMMANDS, "by_channel", limit=1, channel_id=channel_id)
                has_more = len(remaining) > 0

        self.logger.debug(f"批量删除频道命令 - 频道: {channel_id}, 删除: {len(docs)}, 剩余: {has_more}")
        return RemoveAllResult(deleted=len(docs), has_more=has_more)

    async def clear_channel(self, channel_id: int, actor_user_id: int) -> int:
        """
        清除频道配置和全部命令

        按批次重复删除直到没有剩余；每批是独立的事务。

        Returns:
            删除的命令总数
        """
        await self.channel_configs.delete_config(channel_id)

        total = 0
        while True:
            result = await self.remove_all_by_channel(channel_id, actor_user_id)
            total += result.deleted
            if not result.has_more:
                break

        self.logger.info(f"频道已清除 - 频道: {channel_id}, 删除命令: {total}")
        return total

    async def _delete_with_history(self, session, doc: dict, actor_user_id: int, timestamp: int) -> None:
        await session.insert_capped(
            CommandHistoryEntry(
                channel_id=doc["channel_id"],
                trigger=doc["trigger"],
                action=HistoryAction.DELETE,
                previous_response=doc["current_response"],
                actor_user_id=actor_user_id,
                timestamp=timestamp,
            ),
            previous_response_length=len(doc["current_response"]),
        )

        await self.store.delete(CUSTOM_COMMANDS, doc["id"])
        log_db_write(
            CUSTOM_COMMANDS, "delete",
            command_id=doc["id"],
            channel_id=doc["channel_id"],
            trigger=doc["trigger"],
            actor_user_id=actor_user_id,
        )
