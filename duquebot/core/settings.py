"""命令系统配置"""

from dataclasses import dataclass


DEFAULT_TRIGGER_PREFIX = "!"


@dataclass(frozen=True)
class CommandSettings:
    """
    自定义命令系统配置

    Attributes:
        trigger_prefix: 频道未设置前缀时使用的默认触发前缀
        history_limit: /history 默认显示的历史条数
        max_history_entries: 全局保留的最大历史记录数，超出后按时间淘汰最旧记录
        batch_size: 批量清除频道命令时每批处理的数量
    """
    trigger_prefix: str = DEFAULT_TRIGGER_PREFIX
    history_limit: int = 50
    max_history_entries: int = 1000
    batch_size: int = 100


# Discord 选项长度限制
TRIGGER_MAX_LENGTH = 50
RESPONSE_MAX_LENGTH = 2000
