"""
UI组件库

提供可重用的UI组件，用于构建一致的用户界面：
- 嵌入消息构建器
- 消息可见性控制
"""

from .embed_builder import EmbedBuilder
from .message_visibility import MessageVisibility, MessageType

__all__ = [
    'EmbedBuilder',
    'MessageVisibility',
    'MessageType'
]
