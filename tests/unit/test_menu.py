"""Tests for menu labels, keyboards and callback payloads."""

from decimal import Decimal

import pytest

from convertbot.bot.menu import (
    CANCEL_CONVERT,
    MenuAction,
    confirm_callback_data,
    confirm_keyboard,
    main_menu_keyboard,
    parse_confirm_callback,
)
from convertbot.bot.messages import MESSAGES, get_text
from convertbot.bot.utils import CommandArgumentError


class TestMenuAction:
    """Label matching across languages."""

    @pytest.mark.parametrize(
        "label, action",
        [
            ("立即兑换", MenuAction.CONVERT_NOW),
            ("查看状态", MenuAction.VIEW_STATUS),
            ("个人信息", MenuAction.PERSONAL_INFO),
            ("帮助", MenuAction.HELP),
            ("Convert now", MenuAction.CONVERT_NOW),
            ("Help", MenuAction.HELP),
        ],
    )
    def test_from_label(self, label, action):
        assert MenuAction.from_label(label) is action

    def test_unknown_text(self):
        assert MenuAction.from_label("hello") is None

    def test_main_menu_is_persistent(self):
        keyboard = main_menu_keyboard("zh")

        labels = [button.text for row in keyboard.keyboard for button in row]
        assert labels == ["立即兑换", "查看状态", "个人信息", "帮助"]
        assert keyboard.is_persistent is True


class TestConfirmCallback:
    """Confirm button payload encoding."""

    def test_payload_uses_normalized_amount(self):
        assert confirm_callback_data("ETH", "BTC", Decimal("0.50")) == "confirm_convert_ETH_BTC_0.5"

    def test_parse_payload(self):
        assert parse_confirm_callback("confirm_convert_ETH_BTC_0.5") == ("ETH", "BTC", Decimal("0.5"))

    @pytest.mark.parametrize("data", ["confirm_convert_ETH_BTC", "confirm_convert_ETH_BTC_x", "convert_ETH_BTC_1"])
    def test_malformed_payload(self, data):
        with pytest.raises(CommandArgumentError):
            parse_confirm_callback(data)

    def test_keyboard_buttons(self):
        keyboard = confirm_keyboard("ETH", "BTC", Decimal("0.5"), "zh")

        confirm, cancel = keyboard.inline_keyboard[0]
        assert (confirm.text, confirm.callback_data) == ("确认兑换", "confirm_convert_ETH_BTC_0.5")
        assert (cancel.text, cancel.callback_data) == ("取消", CANCEL_CONVERT)


class TestCatalog:
    """Message catalog completeness."""

    def test_languages_share_keys(self):
        assert set(MESSAGES["en"]) == set(MESSAGES["zh"])

    def test_unknown_language_falls_back(self):
        assert get_text("startup", "fr") == MESSAGES["zh"]["startup"]
