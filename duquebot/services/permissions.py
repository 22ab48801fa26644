"""
权限判断

管理员：机器人所有者、服务器所有者或拥有管理员权限的成员。
编辑者：管理员，或拥有频道配置中任一编辑者角色的成员。
"""

import logging
from typing import Optional

from duquebot.core.interfaces import IDocumentStore, MemberInfo
from duquebot.storage.schema import CHANNEL_CONFIGS


class PermissionEvaluator:
    """权限判断器"""

    def __init__(self, store: IDocumentStore, bot_owner_id: Optional[int] = None):
        """
        初始化权限判断器

        Args:
            store: 文档存储
            bot_owner_id: 机器人所有者ID（未配置时为 None）
        """
        self.store = store
        self.bot_owner_id = bot_owner_id
        self.logger = logging.getLogger("duquebot.services.permissions")

    def is_bot_owner(self, caller_id: int) -> bool:
        """是否为机器人所有者"""
        return self.bot_owner_id is not None and caller_id == self.bot_owner_id

    def is_admin(self, caller_id: int, member: Optional[MemberInfo]) -> bool:
        """
        检查调用者是否为管理员

        Args:
            caller_id: 调用者用户ID
            member: 调用者在当前服务器的成员信息（私信中为 None）

        Returns:
            是否为管理员
        """
        if self.is_bot_owner(caller_id):
            return True

        if member is None:
            return False

        if member.guild_owner_id is not None and member.guild_owner_id == caller_id:
            return True

        return member.is_administrator

    async def can_manage_commands(self, caller_id: int, member: Optional[MemberInfo], channel_id: int) -> bool:
        """
        检查调用者是否可以管理频道命令

        存储错误向上传播，由调用方决定如何回复。

        Args:
            caller_id: 调用者用户ID
            member: 成员信息
            channel_id: 频道ID

        Returns:
            是否可以管理
        """
        if self.is_admin(caller_id, member):
            return True

        if member is None:
            return False

        config = await self.store.get(CHANNEL_CONFIGS, "by_channel", channel_id=channel_id)
        if not config or not config.get("editor_role_ids"):
            return False

        editor_roles = set(config["editor_role_ids"])
        allowed = any(role_id in editor_roles for role_id in member.role_ids)

        self.logger.debug(f"编辑权限检查 - 用户: {caller_id}, 频道: {channel_id}, 结果: {allowed}")
        return allowed
