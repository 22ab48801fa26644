"""
消息工具

- 按 Discord 消息长度上限拆分长文本
- 发送私信，把平台拒绝转换为结果值
"""

import logging
from typing import List, Union

import discord

from duquebot.core.interfaces import DirectMessageResult

DISCORD_MESSAGE_LIMIT = 2000

logger = logging.getLogger("duquebot.utils.messages")


def split_message(content: str, max_length: int = DISCORD_MESSAGE_LIMIT) -> List[str]:
    """
    将长文本拆分为不超过 max_length 的片段

    优先在上限之前的最后一个换行处断开；找不到合适的换行时直接在上限处断开。
    后续片段去除开头的空白。

    Args:
        content: 文本内容
        max_length: 单条消息最大长度

    Returns:
        片段列表（空文本返回空列表）
    """
    chunks: List[str] = []
    remaining = content

    while len(remaining) > max_length:
        split_at = remaining.rfind("\n", 0, max_length + 1)
        if split_at <= 0:
            split_at = max_length

        chunks.append(remaining[:split_at])
        remaining = remaining[split_at:].lstrip()

    if remaining:
        chunks.append(remaining)

    return chunks


async def send_direct_message(
    user: Union[discord.User, discord.Member],
    content: str,
    max_length: int = DISCORD_MESSAGE_LIMIT
) -> DirectMessageResult:
    """
    分段发送私信

    用户关闭私信等平台拒绝以 delivered=False 返回。

    Args:
        user: 目标用户
        content: 文本内容
        max_length: 单条消息最大长度

    Returns:
        发送结果
    """
    chunks = split_message(content, max_length)
    sent = 0

    try:
        for chunk in chunks:
            await user.send(chunk)
            sent += 1
    except discord.Forbidden as e:
        logger.info(f"无法向用户 {user.id} 发送私信: {e}")
        return DirectMessageResult(delivered=False, message_count=sent, error="forbidden")
    except discord.HTTPException as e:
        logger.warning(f"发送私信失败 - 用户: {user.id}, 错误: {e}")
        return DirectMessageResult(delivered=False, message_count=sent, error=str(e))

    return DirectMessageResult(delivered=True, message_count=sent)
