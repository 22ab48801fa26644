"""
频道配置服务

维护每个频道的触发前缀和编辑者角色列表。配置行在第一次修改时创建。
角色的读取-追加在事务中完成；跨进程并发写入同一频道时以最后一次提交为准。
"""

import logging
from typing import Callable, Optional

from duquebot.core.interfaces import ChannelConfig, IDocumentStore, OperationResult, ResultReason
from duquebot.core.settings import CommandSettings
from duquebot.storage.schema import CHANNEL_CONFIGS
from duquebot.storage.write_log import log_db_write
from duquebot.utils.time_utils import now_ms

# /trigger 命令允许的单字符前缀
ALLOWED_TRIGGER_PREFIXES = frozenset("!@#$%^&*()_+-=[]{}|;:,.?~")
ALLOWED_TRIGGER_PREFIXES_DISPLAY = "! @ # $ % ^ & * ( ) _ + - = [ ] { } | ; : , . ? ~"


def is_allowed_trigger_prefix(prefix: str) -> bool:
    """前缀必须恰好是允许集合中的一个字符"""
    return len(prefix) == 1 and prefix in ALLOWED_TRIGGER_PREFIXES


class ChannelConfigService:
    """频道配置服务"""

    def __init__(
        self,
        store: IDocumentStore,
        settings: CommandSettings,
        clock: Callable[[], int] = now_ms
    ):
        self.store = store
        self.settings = settings
        self.clock = clock
        self.logger = logging.getLogger("duquebot.services.channel_config")

    async def get_config(self, channel_id: int) -> Optional[ChannelConfig]:
        """获取频道配置"""
        doc = await self.store.get(CHANNEL_CONFIGS, "by_channel", channel_id=channel_id)
        return ChannelConfig.from_document(doc) if doc else None

    async def set_trigger_prefix(self, channel_id: int, guild_id: int, prefix: str) -> OperationResult:
        """
        设置频道触发前缀（不存在时创建配置）

        前缀合法性由调用方校验。
        """
        async with self.store.transaction():
            existing = await self.store.get(CHANNEL_CONFIGS, "by_channel", channel_id=channel_id)
            now = self.clock()

            if existing:
                await self.store.patch(CHANNEL_CONFIGS, existing["id"], {
                    "trigger_prefix": prefix,
                    "updated_at": now,
                })
                log_db_write(CHANNEL_CONFIGS, "patch", config_id=existing["id"], channel_id=channel_id, trigger_prefix=prefix)
            else:
                config_id = await self.store.insert(CHANNEL_CONFIGS, {
                    "channel_id": channel_id,
                    "guild_id": guild_id,
                    "editor_role_ids": [],
                    "trigger_prefix": prefix,
                    "created_at": now,
                    "updated_at": now,
                })
                log_db_write(CHANNEL_CONFIGS, "insert", config_id=config_id, channel_id=channel_id, trigger_prefix=prefix)

        return OperationResult(success=True)

    async def add_editor_role(self, channel_id: int, guild_id: int, role_id: int) -> OperationResult:
        """
        添加编辑者角色

        Returns:
            成功，或 role_already_added（不做修改）
        """
        async with self.store.transaction():
            existing = await self.store.get(CHANNEL_CONFIGS, "by_channel", channel_id=channel_id)
            now = self.clock()

            if existing:
                role_ids = list(existing.get("editor_role_ids") or [])
                if role_id in role_ids:
                    return OperationResult(success=False, reason=ResultReason.ROLE_ALREADY_ADDED)

                role_ids.append(role_id)
                await self.store.patch(CHANNEL_CONFIGS, existing["id"], {
                    "editor_role_ids": role_ids,
                    "updated_at": now,
                })
                log_db_write(CHANNEL_CONFIGS, "patch", config_id=existing["id"], channel_id=channel_id,
                             role_id=role_id, role_count=len(role_ids))
            else:
                config_id = await self.store.insert(CHANNEL_CONFIGS, {
                    "channel_id": channel_id,
                    "guild_id": guild_id,
                    "editor_role_ids": [role_id],
                    "trigger_prefix": self.settings.trigger_prefix,
                    "created_at": now,
                    "updated_at": now,
                })
                log_db_write(CHANNEL_CONFIGS, "insert", config_id=config_id, channel_id=channel_id, role_id=role_id)

        return OperationResult(success=True)

    async def remove_editor_role(self, channel_id: int, role_id: int) -> OperationResult:
        """
        移除编辑者角色

        Returns:
            成功，或 no_config / role_not_found
        """
        async with self.store.transaction():
            existing = await self.store.get(CHANNEL_CONFIGS, "by_channel", channel_id=channel_id)
            if not existing:
                return OperationResult(success=False, reason=ResultReason.NO_CONFIG)

            role_ids = list(existing.get("editor_role_ids") or [])
            if role_id not in role_ids:
                return OperationResult(success=False, reason=ResultReason.ROLE_NOT_FOUND)

            role_ids = [existing_id for existing_id in role_ids if existing_id != role_id]
            await self.store.patch(CHANNEL_CONFIGS, existing["id"], {
                "editor_role_ids": role_ids,
                "updated_at": self.clock(),
            })
            log_db_write(CHANNEL_CONFIGS, "patch", config_id=existing["id"], channel_id=channel_id,
                         removed_role_id=role_id, role_count=len(role_ids))

        return OperationResult(success=True)

    async def delete_config(self, channel_id: int) -> OperationResult:
        """删除频道配置；不存在时同样返回成功"""
        async with self.store.transaction():
            existing = await self.store.get(CHANNEL_CONFIGS, "by_channel", channel_id=channel_id)
            if existing:
                await self.store.delete(CHANNEL_CONFIGS, existing["id"])
                log_db_write(CHANNEL_CONFIGS, "delete", config_id=existing["id"], channel_id=channel_id)

        return OperationResult(success=True)
