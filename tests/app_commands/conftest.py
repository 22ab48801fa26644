"""
App Commands测试配置

提供测试所需的fixtures和配置
"""

import pytest
import logging
from unittest.mock import Mock, AsyncMock
import discord
from discord.ext import commands

from duquebot.utils.config_manager import ConfigManager

GUILD_ID = 12345
CHANNEL_ID = 11111
USER_ID = 67890
GUILD_OWNER_ID = 424242


def make_interaction(
    user_id: int = USER_ID,
    administrator: bool = False,
    role_ids=(),
    guild_id=GUILD_ID,
    channel_id=CHANNEL_ID
):
    """创建模拟Discord交互对象"""
    interaction = Mock(spec=discord.Interaction)
    interaction.guild_id = guild_id
    interaction.channel_id = channel_id
    interaction.command = None

    interaction.user = Mock()
    interaction.user.id = user_id
    interaction.user.display_name = "TestUser"
    interaction.user.send = AsyncMock()
    if guild_id is None:
        interaction.user.guild = None
    else:
        interaction.user.guild = Mock()
        interaction.user.guild.owner_id = GUILD_OWNER_ID
        interaction.user.guild_permissions = Mock()
        interaction.user.guild_permissions.administrator = administrator
        interaction.user.roles = [Mock(id=role_id) for role_id in role_ids]

    interaction.response = Mock()
    interaction.response.is_done = Mock(return_value=False)
    interaction.response.send_message = AsyncMock()
    interaction.followup = Mock()
    interaction.followup.send = AsyncMock()
    return interaction


@pytest.fixture
def mock_config():
    """创建模拟配置管理器"""
    config = Mock(spec=ConfigManager)
    config.get.return_value = None
    return config


@pytest.fixture
def interaction_factory():
    """按需创建交互对象（成员角色、管理员权限、私信）"""
    return make_interaction


@pytest.fixture
def mock_interaction():
    """普通成员在服务器频道中的交互"""
    return make_interaction()


@pytest.fixture
def admin_interaction():
    """管理员在服务器频道中的交互"""
    return make_interaction(administrator=True)


@pytest.fixture
def dm_interaction():
    """私信中的交互"""
    return make_interaction(guild_id=None, channel_id=None)


@pytest.fixture
def mock_bot():
    """创建模拟Discord机器人"""
    bot = Mock(spec=commands.Bot)
    bot.tree = Mock()
    bot.tree.add_command = Mock()
    bot.tree.sync = AsyncMock(return_value=[])
    bot.get_guild = Mock()
    return bot


@pytest.fixture(autouse=True)
def setup_logging():
    """设置测试日志"""
    # 禁用日志输出以保持测试输出清洁
    logging.getLogger("duquebot.app_commands").setLevel(logging.CRITICAL)
    yield
    # 测试后恢复日志级别
    logging.getLogger("duquebot.app_commands").setLevel(logging.DEBUG)


def pytest_configure(config):
    """配置pytest标记"""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
