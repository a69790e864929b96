"""Configuration management for the convert bot.

Handles all application configuration including environment variables, the
optional YAML settings file, and default values. Provides structured
configuration classes for the bot transport, the exchange client, rate
limiting and local storage.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BotConfig(BaseSettings):
    """Main Telegram bot configuration.

    Attributes:
        bot_token: Telegram bot API token from environment.
        admin_chat_id: Chat ID allowed to manage supported pairs and receiving error reports.
        target_chat_id: Chat ID receiving the startup notice, if any.
        port: Server port for webhook mode.
        webhook_domain: Public domain for webhooks; polling is used when unset.
        webhook_secret_token: Secret Telegram echoes back on every webhook call.
        listen_host: Interface the webhook server binds to.
        default_language: Language used for chats without a stored preference.
    """
    bot_token: str = Field(..., validation_alias="BOT_TOKEN")
    admin_chat_id: int = Field(..., validation_alias="ADMIN_CHAT_ID")
    target_chat_id: int | None = Field(default=None, validation_alias="TARGET_CHAT_ID")
    port: int = Field(default=8000, validation_alias="PORT")
    webhook_domain: str | None = Field(default=None, validation_alias="WEBHOOK_DOMAIN")
    webhook_secret_token: str | None = Field(default=None, validation_alias="WEBHOOK_SECRET_TOKEN")
    listen_host: str = Field(default="127.0.0.1", validation_alias="BOT_LISTEN_HOST")
    default_language: str = Field(default="zh", validation_alias="DEFAULT_LANGUAGE")

    @property
    def use_webhook(self) -> bool:
        """Determine if webhook mode should be used.

        Returns:
            True if webhook domain is configured, False for polling mode.
        """
        return bool(self.webhook_domain)


class ExchangeConfig(BaseSettings):
    """Exchange REST API settings.

    Attributes:
        base_url: Root URL of the exchange REST API.
        api_key: API key sent with every request, if configured.
        timeout: Total HTTP request timeout in seconds.
    """
    base_url: str = Field(default="https://api.binance.com", validation_alias="EXCHANGE_BASE_URL")
    api_key: str | None = Field(default=None, validation_alias="EXCHANGE_API_KEY")
    timeout: int = Field(default=20, validation_alias="EXCHANGE_TIMEOUT")


class RateLimitConfig(BaseSettings):
    """Per-chat /convert throttling.

    Attributes:
        window_ms: Length of the counting window in milliseconds.
        max_requests: Requests allowed inside one window.
    """
    model_config = SettingsConfigDict(populate_by_name=True)

    window_ms: int = Field(default=60_000, validation_alias="RATE_LIMIT_WINDOW_MS")
    max_requests: int = Field(default=10, validation_alias="RATE_LIMIT_MAX_REQUESTS")


# settings.yml key -> environment variable overriding it
RATE_LIMIT_ENV = {
    "window_ms": "RATE_LIMIT_WINDOW_MS",
    "max_requests": "RATE_LIMIT_MAX_REQUESTS",
}


class StorageConfig(BaseSettings):
    """Local persistence paths.

    Attributes:
        db_path: Path to the SQLite orders database.
        supported_assets_file: Path to the JSON supported-pairs file.
        history_limit: Number of orders shown by /tradehistory.
    """
    db_path: str = Field(default="data/orders.db", validation_alias="ORDERS_DB_PATH")
    supported_assets_file: str = Field(
        default="data/supported_assets.json", validation_alias="SUPPORTED_ASSETS_FILE"
    )
    history_limit: int = 10


class Config:
    """Application configuration manager.

    Centralizes loading of environment variables, the YAML settings file and
    default values, and provides typed access to each configuration section.
    """

    def __init__(self, config_dir: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_dir: Path to configuration directory, defaults to convertbot/config.
        """
        if config_dir is None:
            config_dir = Path(__file__).parent / "config"

        self.config_dir = Path(config_dir)

        self.bot = BotConfig()
        self.exchange = ExchangeConfig()

        settings_path = self.config_dir / "settings.yml"
        if settings_path.exists():
            with open(settings_path) as f:
                settings_data = yaml.safe_load(f) or {}

            # Environment variables, when set, win over the file
            rate_limit_data = settings_data.get("rate_limit", {})
            rate_limit_kwargs = {
                key: rate_limit_data[key]
                for key, env_name in RATE_LIMIT_ENV.items()
                if key in rate_limit_data and env_name not in os.environ
            }
            self.rate_limit = RateLimitConfig(**rate_limit_kwargs)

            history_data = settings_data.get("history", {})
            self.storage = StorageConfig(history_limit=history_data.get("limit", 10))
        else:
            # Use defaults if settings file not found
            self.rate_limit = RateLimitConfig()
            self.storage = StorageConfig()

    def as_dict(self) -> dict[str, Any]:
        """Flatten all sections into a plain dictionary.

        Returns:
            Mapping of section name to section values, suitable for
            ``providers.Configuration.from_dict``.
        """
        return {
            "bot": self.bot.model_dump(),
            "exchange": self.exchange.model_dump(),
            "rate_limit": self.rate_limit.model_dump(),
            "storage": self.storage.model_dump(),
        }


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Return the process-wide configuration, loading it on first use."""
    return Config()
