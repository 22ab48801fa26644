"""
消息可见性控制

Slash 命令的回复默认只对调用者可见（ephemeral），
超过 Discord 单条消息上限的文本分段发送。
"""

import logging
from enum import Enum
from typing import List, Optional
import discord

from duquebot.utils.message_utils import split_message


class MessageType(Enum):
    """消息类型枚举"""
    ERROR = "error"
    SUCCESS = "success"
    WARNING = "warning"
    INFO = "info"
    COMMAND_LIST = "command_list"
    HISTORY = "history"
    PREVIEW = "preview"
    HELP = "help"


class MessageVisibility:
    """
    消息可见性控制器

    已回复过的交互改用 followup 发送，保证同一交互不会重复调用 response。
    """

    # 需要公开的类型在这里设为 False
    EPHEMERAL_BY_TYPE = {
        MessageType.ERROR: True,
        MessageType.SUCCESS: True,
        MessageType.WARNING: True,
        MessageType.INFO: True,
        MessageType.COMMAND_LIST: True,
        MessageType.HISTORY: True,
        MessageType.PREVIEW: True,
        MessageType.HELP: True,
    }

    def __init__(self):
        self.logger = logging.getLogger("duquebot.app_commands.message_visibility")

    def should_be_ephemeral(self, message_type: MessageType, context: Optional[dict] = None) -> bool:
        """
        判断消息是否只对调用者可见

        Args:
            message_type: 消息类型
            context: 上下文信息，``public=True`` 时强制公开
        """
        if context and context.get('public'):
            return False
        return self.EPHEMERAL_BY_TYPE.get(message_type, True)

    async def _send(self, interaction: discord.Interaction, ephemeral: bool, **payload) -> None:
        if interaction.response.is_done():
            await interaction.followup.send(ephemeral=ephemeral, **payload)
        else:
            await interaction.response.send_message(ephemeral=ephemeral, **payload)

    async def send_message(
        self,
        interaction: discord.Interaction,
        embed: discord.Embed,
        message_type: MessageType,
        context: Optional[dict] = None
    ) -> None:
        """
        按可见性策略发送嵌入消息

        Args:
            interaction: Discord交互对象
            embed: 嵌入消息
            message_type: 消息类型
            context: 上下文信息
        """
        ephemeral = self.should_be_ephemeral(message_type, context)
        self.logger.debug(f"回复交互 - 类型: {message_type.value}, 仅自己可见: {ephemeral}, 用户: {interaction.user.id}")
        await self._send(interaction, ephemeral, embed=embed)

    async def send_text(
        self,
        interaction: discord.Interaction,
        content: str,
        message_type: MessageType,
        context: Optional[dict] = None
    ) -> int:
        """
        分段发送长文本，第一段作为交互回复，其余作为 followup

        Returns:
            发送的消息数量
        """
        ephemeral = self.should_be_ephemeral(message_type, context)
        chunks: List[str] = split_message(content) or [content]

        for chunk in chunks:
            await self._send(interaction, ephemeral, content=chunk)

        if len(chunks) > 1:
            self.logger.debug(f"长文本已分为 {len(chunks)} 条消息发送 - 类型: {message_type.value}")
        return len(chunks)
