"""Application entry point.

Main module that initializes and runs the Telegram bot application. Handles both
webhook mode (when a public domain is configured) and polling mode (for local
development). Configures logging, loads the supported pairs registry and
registers the dispatcher's handlers.
"""

import asyncio
import logging
import os
import sys

from telegram import Bot
from telegram.error import TelegramError
from telegram.ext import Application

from .bot.utils import notify_admin, send_startup_message
from .config import get_config
from .core.container import Container
from .services.pairs import PairsFileError

# Logging
logging.basicConfig(
    format="%(asctime)s - %(levelname)s - %(message)s",
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
)
logger = logging.getLogger(__name__)


async def report_startup_failure(bot_token: str, admin_chat_id: int, message: str) -> None:
    """Best-effort admin notification before the process exits."""
    try:
        async with Bot(bot_token) as bot:
            await notify_admin(bot, admin_chat_id, message)
    except TelegramError as e:
        logger.error(f"Could not reach Telegram to report startup failure: {e}")


def build_application(container: Container) -> Application:
    """Create the Telegram application and register all handlers.

    Args:
        container: Configured DI container.

    Returns:
        Application ready to run.
    """
    config = get_config()
    exchange_client = container.exchange_client()

    async def post_init(application: Application) -> None:
        await send_startup_message(application.bot, config.bot.target_chat_id, config.bot.admin_chat_id)

    async def post_shutdown(application: Application) -> None:
        await exchange_client.close()
        logger.info("Exchange client closed")

    app = (
        Application.builder()
        .token(config.bot.bot_token)
        .concurrent_updates(True)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )
    container.dispatcher().register(app)
    return app


def main() -> None:
    """Main application entry point.

    Loads configuration, hydrates the supported pairs registry and starts the
    bot in either webhook mode (production) or polling mode (development).
    Exits with status 1 if the supported pairs file cannot be loaded.
    """
    config = get_config()

    container = Container()
    container.config.from_dict(config.as_dict())

    try:
        container.pairs_registry().load()
    except PairsFileError as e:
        logger.critical(f"Startup aborted: {e}")
        asyncio.run(report_startup_failure(config.bot.bot_token, config.bot.admin_chat_id, f"Startup aborted: {e}"))
        sys.exit(1)

    app = build_application(container)

    # Run in webhook or polling mode
    if config.bot.use_webhook:
        path = f"/{config.bot.bot_token}"
        webhook_url = f"https://{config.bot.webhook_domain}{path}"
        logger.info(f"Starting webhook at https://{config.bot.webhook_domain}/<token>")

        app.run_webhook(
            listen=config.bot.listen_host,
            port=config.bot.port,
            url_path=path,
            webhook_url=webhook_url,
            secret_token=config.bot.webhook_secret_token,
        )
    else:
        logger.warning("No public domain found; falling back to long-polling")
        app.run_polling()


if __name__ == "__main__":
    main()
