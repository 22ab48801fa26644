"""
命令注册系统

提供Slash命令的注册和管理功能：
- 命令与命令组注册
- 从依赖容器获取命令处理器
- 同步控制
"""

import logging
from typing import Optional
import discord
from discord import app_commands
from discord.ext import commands

from duquebot.core.dependency_container import DependencyContainer
from duquebot.core.settings import RESPONSE_MAX_LENGTH, TRIGGER_MAX_LENGTH
from .command_group import SlashCommandGroup


class CommandRegistry:
    """
    命令注册器

    管理所有Slash命令的注册和生命周期。
    命令回调只负责参数转发，业务逻辑在容器中注册的命令处理器里。
    """

    def __init__(self, bot: commands.Bot, container: DependencyContainer):
        """
        初始化命令注册器

        Args:
            bot: Discord机器人实例
            container: 依赖注入容器
        """
        self.bot = bot
        self.container = container
        self.logger = logging.getLogger("duquebot.app_commands.registry")

        self.logger.debug("命令注册器已初始化")

    async def _dispatch(self, interaction: discord.Interaction, handler_name: str, **kwargs) -> None:
        """
        调用命令处理器；任何异常都转交处理器的错误处理，保证用户收到回复

        Args:
            interaction: Discord交互对象
            handler_name: 容器中的处理器名称
            **kwargs: 命令参数
        """
        handler = self.container.resolve(handler_name)
        try:
            await handler.execute(interaction, **kwargs)
        except Exception as e:
            await handler.handle_command_error(interaction, e)

    def register_all(self) -> None:
        """注册所有命令"""
        self.register_custom_commands()
        self.register_channel_settings_commands()
        self.register_general_commands()

    def register_custom_commands(self) -> None:
        """注册自定义命令相关的Slash命令"""
        try:
            self._register_command_group()
            self._register_list_command()
            self._register_history_command()
            self._register_preview_command()

            self.logger.info("自定义命令已注册")

        except Exception as e:
            self.logger.error(f"注册自定义命令失败: {e}", exc_info=True)
            raise

    def register_channel_settings_commands(self) -> None:
        """注册频道设置命令"""
        try:
            self._register_roles_group()
            self._register_trigger_command()

            self.logger.info("频道设置命令已注册")

        except Exception as e:
            self.logger.error(f"注册频道设置命令失败: {e}", exc_info=True)
            raise

    def register_general_commands(self) -> None:
        """注册通用命令"""
        try:
            self._register_help_command()

            self.logger.info("通用命令已注册")

        except Exception as e:
            self.logger.error(f"注册通用命令失败: {e}", exc_info=True)
            raise

    def _register_command_group(self) -> None:
        """注册 /command 命令组"""
        group = SlashCommandGroup(name="command", description="管理本频道的自定义命令")

        @group.command(name="add", description="在本频道添加一个新命令")
        @app_commands.describe(trigger="触发词（不含前缀）", response="机器人发送的响应")
        async def command_add(
            interaction: discord.Interaction,
            trigger: app_commands.Range[str, 1, TRIGGER_MAX_LENGTH],
            response: app_commands.Range[str, 1, RESPONSE_MAX_LENGTH]
        ):
            await self._dispatch(interaction, "command_management", action="add", trigger=trigger, response=response)

        @group.command(name="edit", description="修改本频道已有命令的响应")
        @app_commands.describe(trigger="要修改的触发词", response="新的响应")
        async def command_edit(
            interaction: discord.Interaction,
            trigger: app_commands.Range[str, 1, TRIGGER_MAX_LENGTH],
            response: app_commands.Range[str, 1, RESPONSE_MAX_LENGTH]
        ):
            await self._dispatch(interaction, "command_management", action="edit", trigger=trigger, response=response)

        @group.command(name="remove", description="从本频道删除一个命令")
        @app_commands.describe(trigger="要删除的触发词")
        async def command_remove(
            interaction: discord.Interaction,
            trigger: app_commands.Range[str, 1, TRIGGER_MAX_LENGTH]
        ):
            await self._dispatch(interaction, "command_management", action="remove", trigger=trigger)

        self._add_group(group)

    def _register_list_command(self) -> None:
        """注册 /commands 命令"""
        @self.bot.tree.command(name="commands", description="列出本频道的所有自定义命令")
        @app_commands.guild_only()
        @app_commands.describe(dm="通过私信发送列表")
        async def list_commands(interaction: discord.Interaction, dm: bool = False):
            await self._dispatch(interaction, "command_list", dm=dm)

    def _register_history_command(self) -> None:
        """注册 /history 命令"""
        @self.bot.tree.command(name="history", description="查看本频道的命令变更历史")
        @app_commands.guild_only()
        @app_commands.describe(trigger="只显示该触发词的历史")
        async def command_history(
            interaction: discord.Interaction,
            trigger: Optional[app_commands.Range[str, 1, TRIGGER_MAX_LENGTH]] = None
        ):
            await self._dispatch(interaction, "history_command", trigger=trigger)

    def _register_preview_command(self) -> None:
        """注册 /preview 命令"""
        @self.bot.tree.command(name="preview", description="预览一段文本在本频道会触发哪个命令")
        @app_commands.guild_only()
        @app_commands.describe(text="要测试的消息文本，例如 !hello")
        async def preview(interaction: discord.Interaction, text: app_commands.Range[str, 1, RESPONSE_MAX_LENGTH]):
            await self._dispatch(interaction, "preview_command", text=text)

    def _register_roles_group(self) -> None:
        """注册 /roles 命令组"""
        group = SlashCommandGroup(name="roles", description="管理本频道的编辑者角色（仅管理员）")

        @group.command(name="add", description="添加本频道的编辑者角色")
        @app_commands.describe(role="作为编辑者的角色")
        async def roles_add(interaction: discord.Interaction, role: discord.Role):
            await self._dispatch(interaction, "roles_commands", action="add", role=role)

        @group.command(name="remove", description="移除本频道的编辑者角色")
        @app_commands.describe(role="要移除的角色")
        async def roles_remove(interaction: discord.Interaction, role: discord.Role):
            await self._dispatch(interaction, "roles_commands", action="remove", role=role)

        @group.command(name="list", description="列出本频道的编辑者角色")
        async def roles_list(interaction: discord.Interaction):
            await self._dispatch(interaction, "roles_commands", action="list")

        self._add_group(group)

    def _register_trigger_command(self) -> None:
        """注册 /trigger 命令"""
        @self.bot.tree.command(name="trigger", description="设置本频道的触发前缀（仅管理员）")
        @app_commands.guild_only()
        @app_commands.describe(prefix="一个特殊字符，例如 ! 或 @")
        async def trigger_prefix(interaction: discord.Interaction, prefix: app_commands.Range[str, 1, 1]):
            await self._dispatch(interaction, "trigger_command", prefix=prefix)

    def _register_help_command(self) -> None:
        """注册 /help 命令"""
        @self.bot.tree.command(name="help", description="显示机器人支持的所有命令")
        @app_commands.describe(dm="通过私信发送帮助")
        async def help_command(interaction: discord.Interaction, dm: bool = False):
            await self._dispatch(interaction, "help_command", dm=dm)

    def _add_group(self, group: SlashCommandGroup) -> None:
        self.bot.tree.add_command(group)
        self.logger.debug(f"已注册命令组 /{group.name}")

    async def sync_commands(self, guild: Optional[discord.Guild] = None) -> None:
        """
        同步命令到Discord

        Args:
            guild: 可选的服务器对象，如果为None则全局同步
        """
        try:
            if guild:
                synced = await self.bot.tree.sync(guild=guild)
                self.logger.info(f"已同步 {len(synced)} 个命令到服务器 {guild.name}")
            else:
                synced = await self.bot.tree.sync()
                self.logger.info(f"已全局同步 {len(synced)} 个命令")

        except Exception as e:
            self.logger.error(f"同步命令失败: {e}", exc_info=True)
            raise
