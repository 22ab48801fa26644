"""
Slash命令组

/command 和 /roles 等带子命令的命令组。
"""

import logging
from discord import app_commands


class SlashCommandGroup(app_commands.Group):
    """
    Slash命令组

    只在服务器中注册（guild_only）。子命令回调自行处理异常；
    回调之外的错误（参数转换、检查失败）由命令树的 on_error 统一回复，
    命令组不重复回复。
    """

    def __init__(self, name: str, description: str, **kwargs):
        """
        初始化命令组

        Args:
            name: 命令组名称
            description: 命令组描述
            **kwargs: 其他参数
        """
        super().__init__(name=name, description=description, guild_only=True, **kwargs)
        self.logger = logging.getLogger(f"duquebot.app_commands.{name}")

        self.logger.debug(f"初始化命令组: {name}")
