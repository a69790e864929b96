"""Reply and inline keyboards used by the bot.

Menu buttons are plain text messages on the Telegram side, so incoming text is
matched back to a ``MenuAction`` by label in any supported language.
"""

from decimal import Decimal
from enum import Enum

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, ReplyKeyboardMarkup

from .messages import SUPPORTED_LANGUAGES, get_text
from .utils import CommandArgumentError, format_amount, parse_amount, parse_asset

CONFIRM_CONVERT_PREFIX = "confirm_convert_"
CANCEL_CONVERT = "cancel_convert"


class MenuAction(str, Enum):
    """Persistent menu buttons; values are message catalog keys of the labels."""

    CONVERT_NOW = "menu_convert"
    VIEW_STATUS = "menu_status"
    PERSONAL_INFO = "menu_profile"
    HELP = "menu_help"

    def label(self, language: str) -> str:
        return get_text(self.value, language)

    @classmethod
    def from_label(cls, text: str) -> "MenuAction | None":
        """Match button text against the labels of every language.

        Args:
            text: Incoming message text.

        Returns:
            The matching action or None.
        """
        text = text.strip()
        for action in cls:
            if any(action.label(language) == text for language in SUPPORTED_LANGUAGES):
                return action
        return None


def main_menu_keyboard(language: str) -> ReplyKeyboardMarkup:
    """Persistent two-by-two menu keyboard."""
    return ReplyKeyboardMarkup(
        [
            [MenuAction.CONVERT_NOW.label(language), MenuAction.VIEW_STATUS.label(language)],
            [MenuAction.PERSONAL_INFO.label(language), MenuAction.HELP.label(language)],
        ],
        resize_keyboard=True,
        is_persistent=True,
    )


def confirm_callback_data(from_asset: str, to_asset: str, amount: Decimal) -> str:
    """Callback payload of the confirm button, e.g. ``confirm_convert_ETH_BTC_0.5``."""
    return f"{CONFIRM_CONVERT_PREFIX}{from_asset}_{to_asset}_{format_amount(amount)}"


def parse_confirm_callback(data: str) -> tuple[str, str, Decimal]:
    """Decode a confirm button payload.

    Args:
        data: Callback data starting with ``confirm_convert_``.

    Returns:
        Tuple of (from_asset, to_asset, amount).

    Raises:
        CommandArgumentError: If the payload is malformed.
    """
    parts = data.removeprefix(CONFIRM_CONVERT_PREFIX).split("_")
    if not data.startswith(CONFIRM_CONVERT_PREFIX) or len(parts) != 3:
        raise CommandArgumentError(f"Malformed confirm payload: {data}")

    from_asset, to_asset, amount = parts
    return parse_asset(from_asset), parse_asset(to_asset), parse_amount(amount)


def confirm_keyboard(from_asset: str, to_asset: str, amount: Decimal, language: str) -> InlineKeyboardMarkup:
    """Inline confirm/cancel buttons attached to a conversion prompt."""
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton(
                    get_text("confirm_button", language),
                    callback_data=confirm_callback_data(from_asset, to_asset, amount),
                ),
                InlineKeyboardButton(get_text("cancel_button", language), callback_data=CANCEL_CONVERT),
            ]
        ]
    )
