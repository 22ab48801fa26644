"""Duque Bot 主实现"""
import asyncio
import logging
import discord
from discord.ext import commands

from duquebot.core.dependency_container import DependencyContainer
from duquebot.core.event_handler import EventHandler
from duquebot.core.interfaces import IDocumentStore
from duquebot.core.settings import CommandSettings
from duquebot.app_commands.integration import setup_app_commands
from duquebot.app_commands.core.error_handler import AppCommandsErrorHandler
from duquebot.app_commands.custom_commands import (
    CommandManagementCommands,
    CommandListCommand,
    HistoryCommand,
    PreviewCommand
)
from duquebot.app_commands.channel_settings import RolesCommands, TriggerPrefixCommand
from duquebot.app_commands.general import HelpCommand
from duquebot.owner.dm_commands import OwnerDMHandler
from duquebot.services import (
    ChannelConfigService,
    CommandService,
    GuildGatekeeper,
    HistoryRecorder,
    PermissionEvaluator,
    TriggerResolver
)
from duquebot.storage.sqlite_store import SqliteDocumentStore
from duquebot.utils.config_manager import ConfigManager


class DuqueBot:
    """
    Duque Bot 主实现类。

    按频道管理自定义命令的 Discord 机器人：
    - 通过 Slash 命令添加、修改、删除频道命令
    - 以频道前缀触发并公开回复
    - 管理员与编辑者角色的权限控制
    - 服务器准入与黑名单
    - 有上限的命令变更历史
    """

    def __init__(self, config: ConfigManager):
        """
        初始化机器人

        Args:
            config: 配置管理器
        """
        self.logger = logging.getLogger("duquebot.bot")
        self.config = config

        self.container = DependencyContainer()

        self.message_content_enabled = self.config.is_message_content_intent_enabled()
        intents = discord.Intents.default()
        intents.message_content = self.message_content_enabled

        self.bot = commands.Bot(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None
        )

        self._commands_synced = False

        self._register_dependencies()
        self._init_core_modules()
        self._setup_event_handlers()

        self.bot.setup_hook = self._setup_hook
        self.bot.add_listener(self._on_ready, 'on_ready')

        self.logger.info("🤖 Duque Bot 初始化成功")

    def _register_dependencies(self) -> None:
        """
        注册依赖项到依赖注入容器

        存储连接只创建一次，注入所有服务。
        """
        self.container.register_instance("config", self.config)
        self.container.register_instance("bot", self.bot)

        def create_command_settings(config: ConfigManager) -> CommandSettings:
            return config.get_command_settings()

        def create_document_store(config: ConfigManager) -> IDocumentStore:
            return SqliteDocumentStore(
                data_dir=config.get_data_dir(),
                filename=config.get_database_filename()
            )

        def create_permission_evaluator(config: ConfigManager, document_store: IDocumentStore) -> PermissionEvaluator:
            return PermissionEvaluator(document_store, config.get_bot_owner_id())

        def create_trigger_resolver(document_store: IDocumentStore, command_settings: CommandSettings) -> TriggerResolver:
            return TriggerResolver(document_store, command_settings)

        def create_channel_config_service(
            document_store: IDocumentStore,
            command_settings: CommandSettings
        ) -> ChannelConfigService:
            return ChannelConfigService(document_store, command_settings)

        def create_history_recorder(document_store: IDocumentStore, command_settings: CommandSettings) -> HistoryRecorder:
            return HistoryRecorder(document_store, command_settings)

        def create_command_service(
            document_store: IDocumentStore,
            history_recorder: HistoryRecorder,
            channel_config_service: ChannelConfigService,
            command_settings: CommandSettings
        ) -> CommandService:
            return CommandService(document_store, history_recorder, channel_config_service, command_settings)

        def create_guild_gatekeeper(document_store: IDocumentStore) -> GuildGatekeeper:
            return GuildGatekeeper(document_store)

        def create_owner_dm_handler(
            bot: commands.Bot,
            config: ConfigManager,
            guild_gatekeeper: GuildGatekeeper,
            command_service: CommandService
        ) -> OwnerDMHandler:
            return OwnerDMHandler(
                bot,
                guild_gatekeeper,
                command_service,
                owner_id=config.get_bot_owner_id(),
                client_id=config.get_client_id()
            )

        self.container.register_singleton("command_settings", create_command_settings, ["config"])
        self.container.register_singleton("document_store", create_document_store, ["config"])
        self.container.register_singleton(
            "permission_evaluator", create_permission_evaluator, ["config", "document_store"]
        )
        self.container.register_singleton(
            "trigger_resolver", create_trigger_resolver, ["document_store", "command_settings"]
        )
        self.container.register_singleton(
            "channel_config_service", create_channel_config_service, ["document_store", "command_settings"]
        )
        self.container.register_singleton(
            "history_recorder", create_history_recorder, ["document_store", "command_settings"]
        )
        self.container.register_singleton(
            "command_service",
            create_command_service,
            ["document_store", "history_recorder", "channel_config_service", "command_settings"]
        )
        self.container.register_singleton("guild_gatekeeper", create_guild_gatekeeper, ["document_store"])
        self.container.register_singleton("error_handler", AppCommandsErrorHandler)
        self.container.register_singleton(
            "owner_dm_handler",
            create_owner_dm_handler,
            ["bot", "config", "guild_gatekeeper", "command_service"]
        )

        self._register_command_handlers()

        self.container.validate_dependencies()
        self.logger.debug("📝 依赖项注册完成")

    def _register_command_handlers(self) -> None:
        """注册 Slash 命令处理器（名称与命令注册器中使用的一致）"""
        base = ["config", "permission_evaluator"]

        def create_command_management(config, permission_evaluator, command_service, trigger_resolver, error_handler):
            return CommandManagementCommands(
                config, permission_evaluator, command_service, trigger_resolver, error_handler
            )

        def create_command_list(config, permission_evaluator, command_service, trigger_resolver, error_handler):
            return CommandListCommand(config, permission_evaluator, command_service, trigger_resolver, error_handler)

        def create_history_command(config, permission_evaluator, history_recorder, trigger_resolver, error_handler):
            return HistoryCommand(config, permission_evaluator, history_recorder, trigger_resolver, error_handler)

        def create_preview_command(config, permission_evaluator, trigger_resolver, error_handler):
            return PreviewCommand(config, permission_evaluator, trigger_resolver, error_handler)

        def create_roles_commands(config, permission_evaluator, channel_config_service, error_handler):
            return RolesCommands(config, permission_evaluator, channel_config_service, error_handler)

        def create_trigger_command(config, permission_evaluator, channel_config_service, error_handler):
            return TriggerPrefixCommand(config, permission_evaluator, channel_config_service, error_handler)

        def create_help_command(config, permission_evaluator, error_handler):
            return HelpCommand(config, permission_evaluator, error_handler)

        handlers = {
            "command_management": (create_command_management, ["command_service", "trigger_resolver"]),
            "command_list": (create_command_list, ["command_service", "trigger_resolver"]),
            "history_command": (create_history_command, ["history_recorder", "trigger_resolver"]),
            "preview_command": (create_preview_command, ["trigger_resolver"]),
            "roles_commands": (create_roles_commands, ["channel_config_service"]),
            "trigger_command": (create_trigger_command, ["channel_config_service"]),
            "help_command": (create_help_command, []),
        }

        for name, (factory, extra) in handlers.items():
            self.container.register_singleton(name, factory, base + extra + ["error_handler"])

    def _init_core_modules(self) -> None:
        """使用依赖注入容器初始化核心模块"""
        try:
            self.logger.debug("🔧 开始解析核心依赖项...")

            self.store = self.container.resolve("document_store")
            self.history_recorder = self.container.resolve("history_recorder")
            self.trigger_resolver = self.container.resolve("trigger_resolver")
            self.guild_gatekeeper = self.container.resolve("guild_gatekeeper")
            self.owner_handler = self.container.resolve("owner_dm_handler")

            if self.owner_handler.owner_id is None:
                self.logger.warning("⚠️ 未配置机器人所有者，所有者私信命令不可用")

            self.logger.info("✅ 核心模块初始化完成")

        except Exception as e:
            self.logger.error(f"❌ 核心模块初始化失败: {e}", exc_info=True)
            raise RuntimeError(f"核心模块初始化失败: {e}") from e

    def _setup_event_handlers(self) -> None:
        """设置 Discord 事件处理器。"""
        self.event_handler = EventHandler(
            bot=self.bot,
            resolver=self.trigger_resolver,
            gatekeeper=self.guild_gatekeeper,
            owner_handler=self.owner_handler,
            message_content_enabled=self.message_content_enabled
        )

        self.logger.debug("事件处理器设置完成")

    async def _setup_hook(self) -> None:
        """登录后、连接网关前执行：打开存储并注册 Slash 命令"""
        await self.store.initialize()
        count = await self.history_recorder.reconcile_counter()
        self.logger.info(f"✅ 存储初始化完成，历史记录 {count} 条")

        self.app_commands_integration = await setup_app_commands(self.bot, self.container)
        self.logger.info("✅ Slash Commands 初始化完成")

    async def _on_ready(self) -> None:
        """机器人就绪时同步 Slash 命令（只同步一次）"""
        if self._commands_synced:
            return

        try:
            await self.app_commands_integration.sync_commands()
            self._commands_synced = True
            self.logger.info("✅ Slash Commands 已同步到 Discord")

        except discord.HTTPException as e:
            self.logger.error(f"同步 Slash Commands 失败: {e}", exc_info=True)

    async def start(self, token: str) -> None:
        """
        Start the Discord bot.

        Args:
            token: Discord bot token
        """
        try:
            self.logger.info("🚀 启动 Duque Bot...")
            await self.bot.start(token)
        except Exception as e:
            self.logger.error(f"启动机器人失败: {e}", exc_info=True)
            raise

    async def close(self) -> None:
        """关闭 Discord 机器人，记录运行统计并释放存储连接。"""
        try:
            self.logger.info("🛑 正在关闭 Duque Bot...")
            await self.bot.close()
        finally:
            self.logger.info(f"📊 运行统计: {self.get_stats()}")
            await self.store.close()
            self.logger.info("✅ Duque Bot 已关闭")

    def run(self, token: str) -> None:
        """
        运行 Discord 机器人（阻塞式）。

        Args:
            token: Discord 机器人令牌
        """
        try:
            asyncio.run(self._run(token))
        except discord.PrivilegedIntentsRequired:
            self.logger.error(
                "Discord 拒绝了特权意图。请在开发者门户启用 Message Content Intent，"
                "或在配置中关闭 discord.message_content_intent。"
            )
            raise
        except KeyboardInterrupt:
            self.logger.info("用户停止了机器人")

    async def _run(self, token: str) -> None:
        try:
            async with self.bot:
                await self.start(token)
        finally:
            await self.close()

    def get_stats(self) -> dict:
        """
        获取机器人统计信息。

        Returns:
            包含机器人统计信息的字典
        """
        stats = {
            "bot_ready": self.bot.is_ready(),
            "guild_count": len(self.bot.guilds),
            "slash_commands_enabled": hasattr(self, 'app_commands_integration'),
            "message_content_enabled": self.message_content_enabled,
        }
        stats.update(self.event_handler.get_event_stats())
        stats["command_errors"] = self.container.resolve("error_handler").get_error_stats()
        return stats
