"""
服务器准入管理

状态：
- 无记录：机器人加入时自动批准
- 已批准（blacklisted_at 为空）
- 已拉黑（blacklisted_at 有值）：加入时被拒绝并离开

所有者可以批准、拉黑、解除拉黑或撤销（删除记录）。
"""

import logging
from typing import Callable, List, Optional

from duquebot.core.interfaces import (
    ApprovedGuild,
    BlacklistResult,
    GuildJoinResult,
    IDocumentStore,
    OperationResult,
    ResultReason,
)
from duquebot.storage.schema import APPROVED_GUILDS
from duquebot.storage.write_log import log_db_write
from duquebot.utils.time_utils import now_ms


class GuildGatekeeper:
    """服务器准入管理器"""

    def __init__(self, store: IDocumentStore, clock: Callable[[], int] = now_ms):
        self.store = store
        self.clock = clock
        self.logger = logging.getLogger("duquebot.services.guilds")

    async def _get(self, guild_id: int) -> Optional[dict]:
        return await self.store.get(APPROVED_GUILDS, "by_guild", guild_id=guild_id)

    async def get_guild(self, guild_id: int) -> Optional[ApprovedGuild]:
        """获取服务器记录"""
        doc = await self._get(guild_id)
        return ApprovedGuild.from_document(doc) if doc else None

    async def is_approved(self, guild_id: int) -> bool:
        """存在记录且未被拉黑"""
        doc = await self._get(guild_id)
        return bool(doc) and doc.get("blacklisted_at") is None

    async def list_guilds(self) -> List[ApprovedGuild]:
        """列出所有服务器记录（按记录创建顺序）"""
        docs = await self.store.list(APPROVED_GUILDS)
        return [ApprovedGuild.from_document(doc) for doc in docs]

    async def register_guild_join(self, guild_id: int, guild_name: str) -> GuildJoinResult:
        """
        机器人加入服务器时调用

        名称变化时更新记录（即使拒绝加入）。

        Returns:
            是否允许留在该服务器以及原因
        """
        async with self.store.transaction():
            existing = await self._get(guild_id)

            if not existing:
                guild_record_id = await self.store.insert(APPROVED_GUILDS, {
                    "guild_id": guild_id,
                    "guild_name": guild_name,
                    "blacklisted_at": None,
                })
                log_db_write(APPROVED_GUILDS, "insert", guild_record_id=guild_record_id,
                             guild_id=guild_id, reason="auto_approved")
                self.logger.info(f"✅ 服务器自动批准: {guild_name} ({guild_id})")
                return GuildJoinResult(allowed=True, reason=ResultReason.AUTO_APPROVED)

            if existing["guild_name"] != guild_name:
                await self.store.patch(APPROVED_GUILDS, existing["id"], {"guild_name": guild_name})
                log_db_write(APPROVED_GUILDS, "patch", guild_record_id=existing["id"],
                             guild_id=guild_id, reason="rename")

        if existing.get("blacklisted_at") is not None:
            self.logger.warning(f"🚫 已拉黑的服务器尝试加入: {guild_name} ({guild_id})")
            return GuildJoinResult(allowed=False, reason=ResultReason.BLACKLISTED)

        return GuildJoinResult(allowed=True, reason=ResultReason.ALREADY_APPROVED)

    async def approve_guild(self, guild_id: int, guild_name: str) -> OperationResult:
        """
        批准服务器

        Returns:
            成功（新建）、成功 + unblacklisted（解除拉黑），或失败 + already_approved
        """
        async with self.store.transaction():
            existing = await self._get(guild_id)

            if existing:
                if existing.get("blacklisted_at") is not None:
                    await self.store.patch(APPROVED_GUILDS, existing["id"], {
                        "guild_name": guild_name,
                        "blacklisted_at": None,
                    })
                    log_db_write(APPROVED_GUILDS, "patch", guild_record_id=existing["id"],
                                 guild_id=guild_id, reason="unblacklisted")
                    return OperationResult(success=True, reason=ResultReason.UNBLACKLISTED)
                return OperationResult(success=False, reason=ResultReason.ALREADY_APPROVED)

            guild_record_id = await self.store.insert(APPROVED_GUILDS, {
                "guild_id": guild_id,
                "guild_name": guild_name,
                "blacklisted_at": None,
            })
            log_db_write(APPROVED_GUILDS, "insert", guild_record_id=guild_record_id,
                         guild_id=guild_id, reason="approved")

        return OperationResult(success=True)

    async def blacklist_guild(self, guild_id: int, guild_name: Optional[str] = None) -> BlacklistResult:
        """
        拉黑服务器（没有记录时创建一条已拉黑记录）

        Args:
            guild_id: 服务器ID
            guild_name: 服务器名称，未知时使用 "Guild <id>"
        """
        async with self.store.transaction():
            existing = await self._get(guild_id)

            if existing:
                if existing.get("blacklisted_at") is not None:
                    return BlacklistResult(success=True, created=False, already_blacklisted=True)

                patch = {"blacklisted_at": self.clock()}
                if guild_name:
                    patch["guild_name"] = guild_name
                await self.store.patch(APPROVED_GUILDS, existing["id"], patch)
                log_db_write(APPROVED_GUILDS, "patch", guild_record_id=existing["id"],
                             guild_id=guild_id, reason="blacklisted")
                return BlacklistResult(success=True, created=False, already_blacklisted=False)

            guild_record_id = await self.store.insert(APPROVED_GUILDS, {
                "guild_id": guild_id,
                "guild_name": guild_name or f"Guild {guild_id}",
                "blacklisted_at": self.clock(),
            })
            log_db_write(APPROVED_GUILDS, "insert", guild_record_id=guild_record_id,
                         guild_id=guild_id, reason="blacklisted")

        return BlacklistResult(success=True, created=True, already_blacklisted=False)

    async def unblacklist_guild(self, guild_id: int) -> OperationResult:
        """
        解除拉黑

        Returns:
            成功，或 not_found / not_blacklisted
        """
        async with self.store.transaction():
            existing = await self._get(guild_id)
            if not existing:
                return OperationResult(success=False, reason=ResultReason.NOT_FOUND)
            if existing.get("blacklisted_at") is None:
                return OperationResult(success=False, reason=ResultReason.NOT_BLACKLISTED)

            await self.store.patch(APPROVED_GUILDS, existing["id"], {"blacklisted_at": None})
            log_db_write(APPROVED_GUILDS, "patch", guild_record_id=existing["id"],
                         guild_id=guild_id, reason="unblacklisted")

        return OperationResult(success=True)

    async def revoke_guild(self, guild_id: int) -> OperationResult:
        """删除服务器记录；下次加入时会被重新自动批准"""
        async with self.store.transaction():
            existing = await self._get(guild_id)
            if not existing:
                return OperationResult(success=False, reason=ResultReason.NOT_FOUND)

            await self.store.delete(APPROVED_GUILDS, existing["id"])
            log_db_write(APPROVED_GUILDS, "delete", guild_record_id=existing["id"], guild_id=guild_id)

        return OperationResult(success=True)
