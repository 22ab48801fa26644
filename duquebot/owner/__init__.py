"""
机器人所有者私信命令

- 服务器列表、强制离开、拉黑与批准
- 清除频道
- 邀请链接
"""

from .dm_commands import OwnerDMHandler, OWNER_PREFIX

__all__ = [
    'OwnerDMHandler',
    'OWNER_PREFIX'
]
