"""存储写操作日志"""

import logging
from typing import Any

logger = logging.getLogger("duquebot.storage.writes")


def log_db_write(table: str, operation: str, **details: Any) -> None:
    """
    记录一次存储写操作

    只记录标识符和长度等紧凑信息，不记录完整的响应内容。

    Args:
        table: 表名
        operation: insert / patch / delete
        **details: 附加上下文
    """
    summary = ", ".join(f"{key}={value}" for key, value in details.items())
    logger.info(f"[db:{table}] {operation} {summary}")
