"""Configuration manager for DuqueBot."""
import logging
import os
from typing import Any, Dict, Optional
import yaml

from duquebot.core.settings import CommandSettings, DEFAULT_TRIGGER_PREFIX


class ConfigManager:
    """
    Configuration manager for DuqueBot.

    Handles loading and accessing configuration values from the config file.
    The Discord token and bot owner ID may also come from the
    ``DISCORD_TOKEN`` / ``BOT_OWNER_ID`` environment variables, which take
    precedence over the file.
    """

    def __init__(self, config_path: str = "config/config.yaml"):
        """
        Initialize the ConfigManager.

        Args:
            config_path: Path to the configuration file

        Raises:
            FileNotFoundError: If the configuration file does not exist
            yaml.YAMLError: If the configuration file is not valid YAML
        """
        self.logger = logging.getLogger("duquebot.config")
        self.config_path = config_path
        self.config: Dict[str, Any] = {}

        self._load_config()

    def _load_config(self) -> None:
        """
        Load the configuration from the config file.

        Raises:
            FileNotFoundError: If the configuration file does not exist
            yaml.YAMLError: If the configuration file is not valid YAML
        """
        if not os.path.exists(self.config_path):
            example_path = f"{self.config_path}.example"
            if os.path.exists(example_path):
                self.logger.error(
                    f"Configuration file {self.config_path} not found. "
                    f"Please copy {example_path} to {self.config_path} and update it."
                )
            else:
                self.logger.error(f"Configuration file {self.config_path} not found.")
            raise FileNotFoundError(f"Configuration file {self.config_path} not found")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as config_file:
                self.config = yaml.safe_load(config_file) or {}
                self.logger.debug(f"Loaded configuration from {self.config_path}")
        except yaml.YAMLError as e:
            self.logger.error(f"Error parsing configuration file: {e}")
            raise

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key (dot notation for nested keys)
            default: Default value to return if the key is not found

        Returns:
            The configuration value or the default value if not found
        """
        value = self.config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                self.logger.debug(f"Configuration key '{key}' not found, using default: {default}")
                return default

        return value

    def get_discord_token(self) -> str:
        """
        Get the Discord bot token.

        Returns:
            The Discord bot token

        Raises:
            ValueError: If the Discord bot token is not set
        """
        token = os.environ.get('DISCORD_TOKEN') or self.get('discord.token')
        if not token or token == "YOUR_DISCORD_BOT_TOKEN_HERE":
            self.logger.error("Discord bot token not set in configuration")
            raise ValueError("Discord bot token not set in configuration")
        return token

    def get_bot_owner_id(self) -> Optional[int]:
        """
        Get the bot owner's Discord user ID.

        Returns:
            The owner ID, or None if not configured (owner commands disabled)

        Raises:
            ValueError: If the configured value is not a valid ID
        """
        raw = os.environ.get('BOT_OWNER_ID') or self.get('discord.owner_id')
        if raw in (None, ""):
            return None
        try:
            return int(raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid bot owner ID: {raw!r}") from e

    def is_message_content_intent_enabled(self) -> bool:
        """
        Check whether the privileged message content intent is requested.

        Prefix triggers and owner DM commands need it; it must also be
        enabled for the application in the Discord developer portal.

        Returns:
            True if the intent should be requested
        """
        env_value = os.environ.get('ENABLE_MESSAGE_CONTENT_INTENT')
        if env_value is not None:
            return env_value.strip().lower() == 'true'
        return bool(self.get('discord.message_content_intent', False))

    def get_client_id(self) -> Optional[int]:
        """
        Get the application client ID used for invite links.

        Returns:
            The client ID or None to use the logged-in application's ID
        """
        client_id = self.get('discord.client_id')
        return int(client_id) if client_id else None

    def get_data_dir(self) -> str:
        """
        Get the directory holding the SQLite database.

        Returns:
            The data directory path
        """
        return self.get('storage.data_dir', './data')

    def get_database_filename(self) -> str:
        """
        Get the SQLite database file name.

        Returns:
            The database file name
        """
        return self.get('storage.filename', 'duquebot.db')

    def get_log_level(self) -> str:
        """
        Get the logging level.

        Returns:
            The logging level
        """
        return self.get('logging.level', 'INFO')

    def get_log_file(self) -> Optional[str]:
        """
        Get the log file path.

        Returns:
            The log file path or None if not set
        """
        return self.get('logging.file', None)

    def get_log_max_size(self) -> int:
        """
        Get the maximum log file size.

        Returns:
            The maximum log file size in bytes
        """
        return self.get('logging.max_size', 10485760)  # 10 MB

    def get_log_backup_count(self) -> int:
        """
        Get the number of backup log files to keep.

        Returns:
            The number of backup log files
        """
        return self.get('logging.backup_count', 5)

    def get_command_settings(self) -> CommandSettings:
        """
        Build the custom command settings from the ``commands`` section.

        Returns:
            CommandSettings with defaults for missing keys

        Raises:
            ValueError: If a numeric setting is not positive
        """
        settings = CommandSettings(
            trigger_prefix=self.get('commands.default_trigger_prefix', DEFAULT_TRIGGER_PREFIX),
            history_limit=int(self.get('commands.history_limit', 50)),
            max_history_entries=int(self.get('commands.max_history_entries', 1000)),
            batch_size=int(self.get('commands.batch_size', 100)),
        )

        for name in ('history_limit', 'max_history_entries', 'batch_size'):
            if getattr(settings, name) <= 0:
                raise ValueError(f"commands.{name} must be positive")
        if not settings.trigger_prefix:
            raise ValueError("commands.default_trigger_prefix must not be empty")

        return settings
