"""
App Commands集成

在 setup_hook 中把命令注册器和命令树错误处理接入机器人，在 on_ready 中同步
"""

import logging
from typing import Optional
import discord
from discord import app_commands
from discord.ext import commands

from duquebot.core.dependency_container import DependencyContainer
from .core import CommandRegistry, AppCommandsErrorHandler


class AppCommandsIntegration:
    """
    Slash 命令与机器人之间的接线

    命令回调内部的异常由各处理器回复；参数转换失败、未知命令等
    在回调之外抛出的异常由这里注册的命令树 on_error 回复。
    """

    def __init__(self, bot: commands.Bot, container: DependencyContainer):
        self.bot = bot
        self.container = container
        self.logger = logging.getLogger("duquebot.app_commands.integration")

        self.command_registry = CommandRegistry(bot, container)
        self.error_handler: AppCommandsErrorHandler = container.resolve("error_handler")

    async def setup(self) -> None:
        """注册全部命令并安装命令树错误处理"""
        try:
            self.command_registry.register_all()
            self._install_tree_error_handler()
        except Exception as e:
            self.logger.error(f"注册 Slash 命令失败: {e}", exc_info=True)
            raise

        self.logger.info("🔌 Slash 命令已注册")

    async def sync_commands(self, guild_id: Optional[int] = None) -> None:
        """
        同步命令到Discord

        Args:
            guild_id: 只同步到该服务器；为 None 时全局同步
        """
        if guild_id is None:
            await self.command_registry.sync_commands()
            return

        guild = self.bot.get_guild(guild_id)
        if guild is None:
            self.logger.error(f"无法同步命令，机器人不在服务器 {guild_id} 中")
            return
        await self.command_registry.sync_commands(guild)

    def _install_tree_error_handler(self) -> None:
        @self.bot.tree.error
        async def on_app_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError):
            command_name = interaction.command.qualified_name if interaction.command else None
            await self.error_handler.handle_error(interaction, error, command_name)


async def setup_app_commands(bot: commands.Bot, container: DependencyContainer) -> AppCommandsIntegration:
    """
    创建集成器并完成注册

    Args:
        bot: Discord机器人实例
        container: 已注册命令处理器的依赖容器

    Returns:
        集成器实例
    """
    integration = AppCommandsIntegration(bot, container)
    await integration.setup()
    return integration
