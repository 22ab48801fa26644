"""时间工具"""

import time
from datetime import datetime, timezone


def now_ms() -> int:
    """当前时间（毫秒时间戳）"""
    return int(time.time() * 1000)


def format_timestamp(timestamp_ms: int) -> str:
    """
    将毫秒时间戳格式化为 Discord 相对时间标记

    Args:
        timestamp_ms: 毫秒时间戳

    Returns:
        形如 ``<t:1700000000:R>`` 的字符串
    """
    return f"<t:{timestamp_ms // 1000}:R>"


def to_datetime(timestamp_ms: int) -> datetime:
    """毫秒时间戳转换为 UTC datetime"""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
