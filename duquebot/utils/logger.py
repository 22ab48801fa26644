"""日志配置"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    max_size: int = 10485760,
    backup_count: int = 5
) -> logging.Logger:
    """
    配置 duquebot 日志

    始终输出到控制台；设置了 log_file 时额外写入按大小轮转的日志文件。

    Args:
        log_level: 日志级别名称
        log_file: 日志文件路径（None 表示不写文件）
        max_size: 单个日志文件的最大字节数
        backup_count: 保留的轮转文件数量

    Returns:
        duquebot 根日志记录器
    """
    level = getattr(logging, str(log_level).upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    logger = logging.getLogger("duquebot")
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_size,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # discord.py 自身的日志只保留警告以上
    logging.getLogger("discord").setLevel(logging.WARNING)

    return logger
