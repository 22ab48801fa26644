"""Duque Bot - 频道自定义命令管理机器人。"""

__version__ = "1.0.0"
