#!/usr/bin/env python3
"""
Duque Bot - 按频道管理自定义命令的 Discord 机器人

主程序入口点，负责配置加载、机器人初始化和启动/关闭处理。
"""
import logging

from duquebot.bot import DuqueBot
from duquebot.utils.config_manager import ConfigManager
from duquebot.utils.logger import setup_logger


def main() -> int:
    """
    Duque Bot 主入口函数。

    Returns:
        int: 退出代码（0表示成功，1表示错误）
    """
    try:
        config = ConfigManager()
    except FileNotFoundError as e:
        logging.basicConfig(level=logging.INFO)
        logging.getLogger("duquebot").error(f"❌ 配置文件错误: {e}")
        return 1

    setup_logger(
        log_level=config.get_log_level(),
        log_file=config.get_log_file(),
        max_size=config.get_log_max_size(),
        backup_count=config.get_log_backup_count()
    )
    logger = logging.getLogger("duquebot")

    logger.info("=" * 60)
    logger.info("🤖 Duque Bot 启动中...")
    logger.info("=" * 60)
    logger.info("✅ 配置文件加载成功")
    logger.debug(f"日志配置完成 - 级别: {config.get_log_level()}, 文件: {config.get_log_file()}")

    try:
        logger.info("正在获取 Discord 机器人令牌...")
        try:
            discord_token = config.get_discord_token()
            logger.info("✅ Discord 令牌获取成功")
        except ValueError as e:
            logger.error(f"❌ Discord 令牌配置错误: {e}")
            logger.error("请检查 config/config.yaml 文件或设置 DISCORD_TOKEN 环境变量")
            return 1

        logger.info("正在初始化 Duque Bot...")
        bot = DuqueBot(config)

        _log_bot_configuration(logger, config)

        logger.info("按 Ctrl+C 停止机器人")
        bot.run(discord_token)

    except KeyboardInterrupt:
        logger.info("🛑 用户停止了机器人 (Ctrl+C)")
        return 0
    except ValueError as e:
        logger.error(f"❌ 配置错误: {e}")
        return 1
    except Exception as e:
        logger.error(f"❌ 启动 Duque Bot 时发生意外错误: {e}", exc_info=True)
        return 1

    return 0


def _log_bot_configuration(logger: logging.Logger, config: ConfigManager) -> None:
    """
    记录机器人配置摘要。

    Args:
        logger: 日志记录器实例
        config: 配置管理器
    """
    settings = config.get_command_settings()
    logger.info("📋 机器人配置摘要:")
    logger.info(f"   默认触发前缀: {settings.trigger_prefix}")
    logger.info(f"   历史记录上限: {settings.max_history_entries}")
    logger.info(f"   批量删除大小: {settings.batch_size}")
    logger.info(f"   消息内容意图: {'✅ 已启用' if config.is_message_content_intent_enabled() else '❌ 已禁用'}")
    logger.info(f"   所有者: {config.get_bot_owner_id() or '未配置'}")
    logger.info(f"   数据目录: {config.get_data_dir()}")
    logger.info("=" * 60)


if __name__ == "__main__":
    exit(main())
