"""
触发词解析

消息处理器和 /preview 命令共用同一套规则：
1. 消息必须以频道前缀开头（未配置时使用默认前缀）
2. 取前缀之后到第一个空白字符为止的文本
3. 转为小写并去除首尾空白，为空则不匹配
4. 在本频道中按触发词查找命令
"""

import logging
import re
from typing import Optional

from duquebot.core.interfaces import IDocumentStore, TriggerMatch
from duquebot.core.settings import CommandSettings
from duquebot.storage.schema import CHANNEL_CONFIGS, CUSTOM_COMMANDS

_WHITESPACE = re.compile(r"\s")


def extract_trigger(content: str, prefix: str) -> Optional[str]:
    """
    从消息内容中提取触发词

    Args:
        content: 消息内容
        prefix: 触发前缀（可以是多个字符）

    Returns:
        规范化的触发词，不匹配时返回 None
    """
    if not content.startswith(prefix):
        return None

    rest = content[len(prefix):]
    token = _WHITESPACE.split(rest, maxsplit=1)[0].lower().strip()
    return token or None


class TriggerResolver:
    """触发词解析器"""

    def __init__(self, store: IDocumentStore, settings: CommandSettings):
        self.store = store
        self.settings = settings
        self.logger = logging.getLogger("duquebot.services.trigger_resolver")

    async def get_trigger_prefix(self, channel_id: int) -> str:
        """获取频道的触发前缀"""
        config = await self.store.get(CHANNEL_CONFIGS, "by_channel", channel_id=channel_id)
        if config and config.get("trigger_prefix") is not None:
            return config["trigger_prefix"]
        return self.settings.trigger_prefix

    async def resolve(self, channel_id: int, content: str) -> Optional[TriggerMatch]:
        """
        解析消息对应的命令响应

        Args:
            channel_id: 频道ID
            content: 消息内容

        Returns:
            匹配结果，未匹配时返回 None
        """
        prefix = await self.get_trigger_prefix(channel_id)
        trigger = extract_trigger(content, prefix)
        if trigger is None:
            return None

        command = await self.store.get(
            CUSTOM_COMMANDS, "by_channel_trigger", channel_id=channel_id, trigger=trigger
        )
        if not command:
            return None

        self.logger.debug(f"触发词命中 - 频道: {channel_id}, 触发词: {prefix}{trigger}")
        return TriggerMatch(trigger=trigger, trigger_prefix=prefix, response=command["current_response"])
