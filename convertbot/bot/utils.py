"""Bot utility functions for message rendering and admin notifications.

Provides MarkdownV2 escaping and template rendering, command argument
parsing, and best-effort notifications to the admin and target chats.
"""

import logging
import re
import string
from decimal import Decimal, InvalidOperation
from typing import Any

from telegram import Bot
from telegram.constants import ParseMode

from ..models import normalize_asset
from .messages import get_text

logger = logging.getLogger(__name__)

# Characters that need escaping in MarkdownV2, plus the escape character itself
_MARKDOWN_V2_SPECIAL = re.compile(r"([_*\[\]()~`>#+\-=|{}.!\\])")
# Same set without "*", so templates keep their bold markers
_MARKDOWN_V2_STATIC = re.compile(r"([_\[\]()~`>#+\-=|{}.!\\])")

_formatter = string.Formatter()


class CommandArgumentError(ValueError):
    """Raised when command arguments cannot be parsed."""


def escape_markdown_v2(text: str) -> str:
    """Escape special characters for MarkdownV2 format.

    Every character of ``_*[]()~`>#+-=|{}.!`` and the backslash is prefixed
    with one backslash. Escaping is not idempotent, so dynamic text must pass
    through here exactly once.

    Args:
        text: Text to escape.

    Returns:
        Escaped text safe for MarkdownV2.
    """
    return _MARKDOWN_V2_SPECIAL.sub(r"\\\1", text)


def render_markdown_v2(template: str, **values: Any) -> str:
    """Fill a message template and escape it for MarkdownV2.

    Literal template text keeps its ``*`` bold markers; every substituted
    value is escaped once, whatever it contains.

    Args:
        template: ``str.format`` style template with named fields.
        **values: Field values.

    Returns:
        MarkdownV2 message text.
    """
    parts: list[str] = []
    for literal, field_name, format_spec, conversion in _formatter.parse(template):
        parts.append(_MARKDOWN_V2_STATIC.sub(r"\\\1", literal))
        if field_name is None:
            continue
        value = values[field_name]
        if conversion:
            value = _formatter.convert_field(value, conversion)
        parts.append(escape_markdown_v2(format(value, format_spec or "")))
    return "".join(parts)


def format_amount(amount: Decimal) -> str:
    """Render a decimal without exponent or trailing zeros (``0.50`` -> ``0.5``)."""
    return f"{amount.normalize():f}"


def parse_amount(text: str) -> Decimal:
    """Parse a user supplied quantity.

    Args:
        text: Raw argument.

    Returns:
        Parsed finite decimal, possibly zero or negative.

    Raises:
        CommandArgumentError: If the text is not a finite number.
    """
    try:
        value = Decimal(text.strip())
    except InvalidOperation as e:
        raise CommandArgumentError(f"Invalid number: {text}") from e
    if not value.is_finite():
        raise CommandArgumentError(f"Invalid number: {text}")
    return value


def parse_asset(text: str) -> str:
    """Parse an asset symbol argument.

    Raises:
        CommandArgumentError: If the symbol is not alphanumeric.
    """
    symbol = normalize_asset(text)
    if not symbol.isalnum():
        raise CommandArgumentError(f"Invalid asset symbol: {text}")
    return symbol


def parse_assets(text: str) -> list[str]:
    """Split a comma separated asset list, dropping empty entries."""
    return [normalize_asset(asset) for asset in text.split(",") if asset.strip()]


async def notify_admin(bot: Bot, admin_chat_id: int | None, message: str) -> None:
    """Send an error report to the admin chat.

    Failures are logged and swallowed so that reporting never masks the
    original error.

    Args:
        bot: Telegram bot used for sending.
        admin_chat_id: Chat receiving the report.
        message: Plain text report; escaped here.
    """
    if not admin_chat_id:
        logger.warning("Admin chat id is not configured; skipping admin notification")
        return

    try:
        await bot.send_message(
            chat_id=admin_chat_id,
            text=render_markdown_v2(get_text("admin_error_report"), message=message),
            parse_mode=ParseMode.MARKDOWN_V2,
        )
        logger.info(f"Admin notification sent: {message}")
    except Exception as e:
        logger.error(f"Failed to send admin notification: {e}")


async def send_startup_message(bot: Bot, target_chat_id: int | None, admin_chat_id: int | None) -> None:
    """Announce that the bot is online.

    Args:
        bot: Telegram bot used for sending.
        target_chat_id: Chat receiving the notice; nothing is sent when unset.
        admin_chat_id: Chat notified if the notice cannot be delivered.
    """
    if not target_chat_id:
        return

    try:
        await bot.send_message(
            chat_id=target_chat_id,
            text=render_markdown_v2(get_text("startup")),
            parse_mode=ParseMode.MARKDOWN_V2,
        )
        logger.info("Startup message sent")
    except Exception as e:
        logger.error(f"Failed to send startup message: {e}")
        await notify_admin(bot, admin_chat_id, f"Failed to send startup message: {e}")
