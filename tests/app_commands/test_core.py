"""
App Commands核心模块测试

测试基础命令、错误处理、日志装饰器、消息可见性和命令注册器
"""

import asyncio
import pytest
from unittest.mock import Mock, AsyncMock
import discord
from discord import app_commands

from duquebot.app_commands.core import (
    BaseSlashCommand,
    CommandRegistry,
    AppCommandsLogger,
    log_command_execution,
    AppCommandsErrorHandler,
    AppCommandError,
    InvalidInputError,
    ErrorCategory
)
from duquebot.app_commands.ui import MessageVisibility, MessageType
from duquebot.core.dependency_container import DependencyContainer
from duquebot.core.interfaces import StorageError
from duquebot.services.channel_config import ChannelConfigService
from duquebot.services.permissions import PermissionEvaluator

BOT_OWNER_ID = 99
CHANNEL_ID = 11111
GUILD_ID = 12345
GUILD_OWNER_ID = 424242
EDITOR_ROLE_ID = 555


def http_error(status: int, cls=discord.HTTPException):
    response = Mock()
    response.status = status
    response.reason = "Test"
    return cls(response, "test error")


class ConcreteCommand(BaseSlashCommand):
    """用于测试的具体命令类"""

    async def execute(self, interaction: discord.Interaction, **kwargs) -> None:
        await self.send_success_response(interaction, "完成", "测试命令执行成功")


class TestBaseSlashCommand:
    """测试基础Slash命令类"""

    @pytest.fixture(autouse=True)
    def setup(self, mock_config, store, settings, clock):
        self.store = store
        self.permissions = PermissionEvaluator(store, BOT_OWNER_ID)
        self.channel_configs = ChannelConfigService(store, settings, clock)
        self.command = ConcreteCommand(mock_config, self.permissions)

    def test_initialization(self, mock_config):
        assert self.command.config == mock_config
        assert self.command.permissions is self.permissions
        assert isinstance(self.command.error_handler, AppCommandsErrorHandler)
        assert isinstance(self.command.message_visibility, MessageVisibility)

    @pytest.mark.asyncio
    async def test_check_prerequisites_in_guild(self, mock_interaction):
        assert await self.command.check_prerequisites(mock_interaction) is True
        mock_interaction.response.send_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_check_prerequisites_in_dm(self, dm_interaction):
        assert await self.command.check_prerequisites(dm_interaction) is False

        dm_interaction.response.send_message.assert_called_once()
        kwargs = dm_interaction.response.send_message.call_args.kwargs
        assert kwargs['ephemeral'] is True
        assert "服务器频道" in kwargs['embed'].description

    @pytest.mark.asyncio
    async def test_check_admin_with_administrator_permission(self, admin_interaction):
        assert await self.command.check_admin(admin_interaction) is True
        admin_interaction.response.send_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_check_admin_guild_owner(self, interaction_factory):
        interaction = interaction_factory(user_id=GUILD_OWNER_ID)
        assert await self.command.check_admin(interaction) is True

    @pytest.mark.asyncio
    async def test_check_admin_bot_owner(self, interaction_factory):
        interaction = interaction_factory(user_id=BOT_OWNER_ID)
        assert await self.command.check_admin(interaction) is True

    @pytest.mark.asyncio
    async def test_check_admin_denied(self, mock_interaction):
        assert await self.command.check_admin(mock_interaction) is False

        kwargs = mock_interaction.response.send_message.call_args.kwargs
        assert kwargs['ephemeral'] is True
        assert kwargs['embed'].title == "❌ 权限不足"

    @pytest.mark.asyncio
    async def test_check_editor_with_editor_role(self, interaction_factory):
        await self.channel_configs.add_editor_role(CHANNEL_ID, GUILD_ID, EDITOR_ROLE_ID)
        interaction = interaction_factory(role_ids=[EDITOR_ROLE_ID])

        assert await self.command.check_editor(interaction) is True
        interaction.response.send_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_check_editor_role_from_other_channel(self, interaction_factory):
        await self.channel_configs.add_editor_role(22222, GUILD_ID, EDITOR_ROLE_ID)
        interaction = interaction_factory(role_ids=[EDITOR_ROLE_ID])

        assert await self.command.check_editor(interaction) is False
        embed = interaction.response.send_message.call_args.kwargs['embed']
        assert "编辑者角色" in embed.description

    @pytest.mark.asyncio
    async def test_check_editor_admin_without_config(self, admin_interaction):
        assert await self.command.check_editor(admin_interaction) is True

    @pytest.mark.asyncio
    async def test_send_success_response(self, mock_interaction):
        await self.command.execute(mock_interaction)

        mock_interaction.response.send_message.assert_called_once()
        kwargs = mock_interaction.response.send_message.call_args.kwargs
        assert kwargs['ephemeral'] is True
        assert kwargs['embed'].title == "✅ 完成"

    @pytest.mark.asyncio
    async def test_response_uses_followup_when_done(self, mock_interaction):
        mock_interaction.response.is_done.return_value = True

        await self.command.send_error_response(mock_interaction, "出错了")

        mock_interaction.response.send_message.assert_not_called()
        mock_interaction.followup.send.assert_called_once()
        assert mock_interaction.followup.send.call_args.kwargs['embed'].description == "出错了"

    @pytest.mark.asyncio
    async def test_send_warning_response(self, mock_interaction):
        await self.command.send_warning_response(mock_interaction, "注意", "重复")

        embed = mock_interaction.response.send_message.call_args.kwargs['embed']
        assert embed.title == "⚠️ 注意"

    @pytest.mark.asyncio
    async def test_handle_command_error_delegates(self, mock_interaction):
        self.command.error_handler = Mock()
        self.command.error_handler.handle_error = AsyncMock(return_value=True)
        error = RuntimeError("boom")

        await self.command.handle_command_error(mock_interaction, error)

        self.command.error_handler.handle_error.assert_called_once_with(
            mock_interaction, error, "ConcreteCommand"
        )


class TestAppCommandsErrorHandler:
    """测试错误处理器"""

    def setup_method(self):
        self.error_handler = AppCommandsErrorHandler()

    @pytest.mark.parametrize("error, category", [
        (InvalidInputError("bad", "输入无效"), ErrorCategory.USER_ERROR),
        (AppCommandError("denied", ErrorCategory.PERMISSION_ERROR), ErrorCategory.PERMISSION_ERROR),
        (AppCommandError("custom", ErrorCategory.NETWORK_ERROR), ErrorCategory.NETWORK_ERROR),
        (StorageError("disk full"), ErrorCategory.STORAGE_ERROR),
        (asyncio.TimeoutError(), ErrorCategory.TIMEOUT_ERROR),
        (ValueError("unexpected"), ErrorCategory.SYSTEM_ERROR),
        (app_commands.CommandNotFound("missing", []), ErrorCategory.USER_ERROR),
        (app_commands.NoPrivateMessage(), ErrorCategory.USER_ERROR),
    ])
    def test_categorize_error(self, error, category):
        assert self.error_handler._categorize_error(error) == category

    def test_categorize_discord_errors(self):
        assert self.error_handler._categorize_error(http_error(403, discord.Forbidden)) == ErrorCategory.PERMISSION_ERROR
        assert self.error_handler._categorize_error(http_error(404, discord.NotFound)) == ErrorCategory.USER_ERROR
        assert self.error_handler._categorize_error(http_error(429)) == ErrorCategory.RATE_LIMIT_ERROR
        assert self.error_handler._categorize_error(http_error(500)) == ErrorCategory.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_handle_user_error(self, mock_interaction):
        error = InvalidInputError("empty trigger", "触发词不能为空。")

        result = await self.error_handler.handle_error(mock_interaction, error, "command add")

        assert result is True
        mock_interaction.response.send_message.assert_called_once()
        kwargs = mock_interaction.response.send_message.call_args.kwargs
        assert kwargs['ephemeral'] is True
        assert kwargs['embed'].description == "触发词不能为空。"

    @pytest.mark.asyncio
    async def test_handle_storage_error(self, mock_interaction):
        await self.error_handler.handle_error(mock_interaction, StorageError("locked"), "command add")

        embed = mock_interaction.response.send_message.call_args.kwargs['embed']
        assert embed.title == "❌ 数据存储错误"
        assert "未生效" in embed.description

    @pytest.mark.asyncio
    async def test_handle_forbidden_error(self, mock_interaction):
        await self.error_handler.handle_error(mock_interaction, http_error(403, discord.Forbidden))

        embed = mock_interaction.response.send_message.call_args.kwargs['embed']
        assert embed.description == "机器人缺少执行此操作所需的权限。"

    @pytest.mark.asyncio
    async def test_unwraps_command_invoke_error(self, mock_interaction):
        command = Mock()
        command.name = "commands"
        wrapped = app_commands.CommandInvokeError(command, StorageError("locked"))

        await self.error_handler.handle_error(mock_interaction, wrapped, "commands")

        assert self.error_handler.get_error_stats() == {"StorageError": 1}
        embed = mock_interaction.response.send_message.call_args.kwargs['embed']
        assert embed.title == "❌ 数据存储错误"

    @pytest.mark.asyncio
    async def test_single_reply_after_deferred_response(self, mock_interaction):
        mock_interaction.response.is_done.return_value = True

        await self.error_handler.handle_error(mock_interaction, ValueError("boom"))

        mock_interaction.response.send_message.assert_not_called()
        mock_interaction.followup.send.assert_called_once()

    @pytest.mark.asyncio
    async def test_fallback_when_handler_fails(self, mock_interaction):
        mock_interaction.response.send_message.side_effect = [http_error(500), None]

        result = await self.error_handler.handle_error(mock_interaction, ValueError("boom"))

        assert result is False
        assert mock_interaction.response.send_message.call_count == 2
        embed = mock_interaction.response.send_message.call_args.kwargs['embed']
        assert embed.title == "❌ 系统错误"

    @pytest.mark.asyncio
    async def test_fallback_failure_is_logged_only(self, mock_interaction):
        mock_interaction.response.send_message.side_effect = http_error(500)

        result = await self.error_handler.handle_error(mock_interaction, ValueError("boom"))

        assert result is False

    @pytest.mark.asyncio
    async def test_error_stats(self, mock_interaction):
        await self.error_handler.handle_error(mock_interaction, ValueError("a"))
        await self.error_handler.handle_error(mock_interaction, ValueError("b"))
        await self.error_handler.handle_error(mock_interaction, StorageError("c"))

        assert self.error_handler.get_error_stats() == {"ValueError": 2, "StorageError": 1}


class TestLogCommandExecution:
    """测试命令执行日志装饰器"""

    def setup_method(self):
        self.logger = AppCommandsLogger("test")
        self.logger.log_command_start = Mock()
        self.logger.log_command_success = Mock()
        self.logger.log_command_error = Mock()

    @pytest.mark.asyncio
    async def test_logs_success(self, mock_interaction):
        @log_command_execution(self.logger, "demo")
        async def handler(interaction):
            return "ok"

        assert await handler(mock_interaction) == "ok"
        self.logger.log_command_start.assert_called_once_with(mock_interaction, "demo")
        self.logger.log_command_success.assert_called_once()
        self.logger.log_command_error.assert_not_called()

    @pytest.mark.asyncio
    async def test_logs_and_reraises_error(self, mock_interaction):
        @log_command_execution(self.logger)
        async def failing(interaction):
            raise StorageError("locked")

        with pytest.raises(StorageError):
            await failing(mock_interaction)

        args = self.logger.log_command_error.call_args.args
        assert args[1] == "failing"
        assert isinstance(args[2], StorageError)

    @pytest.mark.asyncio
    async def test_without_interaction(self):
        @log_command_execution(self.logger)
        async def plain(value):
            return value * 2

        assert await plain(21) == 42
        self.logger.log_command_start.assert_not_called()


class TestMessageVisibility:
    """测试消息可见性控制"""

    def setup_method(self):
        self.visibility = MessageVisibility()

    def test_ephemeral_rules(self):
        assert self.visibility.should_be_ephemeral(MessageType.ERROR) is True
        assert self.visibility.should_be_ephemeral(MessageType.COMMAND_LIST) is True
        assert self.visibility.should_be_ephemeral(MessageType.INFO, {'public': True}) is False

    @pytest.mark.asyncio
    async def test_send_text_splits_long_content(self, mock_interaction):
        mock_interaction.response.is_done.side_effect = [False, True, True]
        content = "\n".join(f"line {i:04d} " + "x" * 90 for i in range(50))

        count = await self.visibility.send_text(mock_interaction, content, MessageType.COMMAND_LIST)

        assert count == 3
        mock_interaction.response.send_message.assert_called_once()
        assert mock_interaction.followup.send.call_count == 2
        for call in mock_interaction.followup.send.call_args_list:
            assert len(call.kwargs['content']) <= 2000
            assert call.kwargs['ephemeral'] is True

    @pytest.mark.asyncio
    async def test_send_text_short_content(self, mock_interaction):
        count = await self.visibility.send_text(mock_interaction, "hi", MessageType.HELP)

        assert count == 1
        mock_interaction.response.send_message.assert_called_once_with(content="hi", ephemeral=True)


class TestCommandRegistry:
    """测试命令注册器"""

    @pytest.fixture(autouse=True)
    def setup(self, mock_bot):
        self.container = DependencyContainer()
        self.handler = Mock()
        self.handler.execute = AsyncMock()
        self.handler.handle_command_error = AsyncMock()
        self.container.register_instance("command_list", self.handler)
        self.registry = CommandRegistry(mock_bot, self.container)
        self.bot = mock_bot

    @pytest.mark.asyncio
    async def test_dispatch_forwards_arguments(self, mock_interaction):
        await self.registry._dispatch(mock_interaction, "command_list", dm=True)

        self.handler.execute.assert_called_once_with(mock_interaction, dm=True)
        self.handler.handle_command_error.assert_not_called()

    @pytest.mark.asyncio
    async def test_dispatch_routes_errors_to_handler(self, mock_interaction):
        error = StorageError("locked")
        self.handler.execute.side_effect = error

        await self.registry._dispatch(mock_interaction, "command_list", dm=False)

        self.handler.handle_command_error.assert_called_once_with(mock_interaction, error)

    def test_register_all_adds_groups(self):
        self.registry.register_all()

        groups = {call.args[0].name: call.args[0] for call in self.bot.tree.add_command.call_args_list}
        assert set(groups) == {"command", "roles"}

        subcommands = {cmd.name for cmd in groups["command"].commands}
        assert subcommands == {"add", "edit", "remove"}

    @pytest.mark.asyncio
    async def test_sync_commands_globally(self):
        await self.registry.sync_commands()

        self.bot.tree.sync.assert_called_once_with()
