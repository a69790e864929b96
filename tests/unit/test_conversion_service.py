"""Tests for the conversion service order lifecycle."""

import asyncio
import re
import sqlite3
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from convertbot.models import OrderResult, OrderStatus, Quote
from convertbot.services.conversion import OrderNotRecordedError
from convertbot.services.exchange import ExchangeError, OrderRejectedError

CHAT_ID = 777


class TestInstantConvert:
    """Quote, accept and record."""

    @pytest.mark.asyncio
    async def test_successful_conversion_is_recorded(self, conversion, mock_exchange, order_store):
        order = await conversion.instant_convert(CHAT_ID, "ETH", "BTC", Decimal("0.5"))

        mock_exchange.get_convert_quote.assert_awaited_once_with("ETH", "BTC", Decimal("0.5"))
        mock_exchange.accept_convert_quote.assert_awaited_once_with("q1")
        stored = order_store.get("o1", CHAT_ID)
        assert order == stored
        assert (stored.from_asset, stored.to_asset, stored.amount, stored.status) == (
            "ETH",
            "BTC",
            Decimal("0.5"),
            OrderStatus.COMPLETED,
        )

    @pytest.mark.asyncio
    async def test_missing_quote_fails_fast(self, conversion, mock_exchange, order_store):
        mock_exchange.get_convert_quote.return_value = Quote()

        order = await conversion.instant_convert(CHAT_ID, "ETH", "BTC", Decimal("0.5"))

        mock_exchange.accept_convert_quote.assert_not_awaited()
        assert order.status == OrderStatus.FAILED
        assert order.error == "Failed to obtain a conversion quote"
        assert re.fullmatch(r"[0-9a-f]{32}", order.order_id)
        assert order_store.get(order.order_id, CHAT_ID) == order

    @pytest.mark.asyncio
    async def test_exchange_error_is_recorded_without_retry(self, conversion, mock_exchange, order_store):
        mock_exchange.accept_convert_quote.side_effect = ExchangeError("Quote expired", status_code=400)

        order = await conversion.instant_convert(CHAT_ID, "ETH", "BTC", Decimal("0.5"))

        assert mock_exchange.accept_convert_quote.await_count == 1
        assert order.status == OrderStatus.FAILED
        assert "Quote expired" in order.error
        assert order.amount == Decimal("0.5")
        assert order_store.recent(CHAT_ID) == [order]

    @pytest.mark.asyncio
    async def test_accept_without_order_id_fails(self, conversion, mock_exchange):
        mock_exchange.accept_convert_quote.return_value = OrderResult()

        order = await conversion.instant_convert(CHAT_ID, "ETH", "BTC", Decimal("0.5"))

        assert order.status == OrderStatus.FAILED

    @pytest.mark.asyncio
    async def test_conversions_of_one_chat_are_serialized(self, conversion, mock_exchange):
        active = 0
        peak = 0

        async def slow_quote(*args):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return Quote(quote_id="q1")

        mock_exchange.get_convert_quote.side_effect = slow_quote
        mock_exchange.accept_convert_quote.side_effect = [OrderResult(order_id="o1"), OrderResult(order_id="o2")]

        await asyncio.gather(
            conversion.instant_convert(CHAT_ID, "ETH", "BTC", Decimal("0.5")),
            conversion.instant_convert(CHAT_ID, "ETH", "BTC", Decimal("0.5")),
        )

        assert peak == 1

    @pytest.mark.asyncio
    async def test_store_failure_after_accept_carries_exchange_order(
        self, conversion, mock_exchange, order_store, monkeypatch
    ):
        locked = sqlite3.OperationalError("database is locked")
        monkeypatch.setattr(order_store, "insert", MagicMock(side_effect=locked))

        with pytest.raises(OrderNotRecordedError) as exc_info:
            await conversion.instant_convert(CHAT_ID, "ETH", "BTC", Decimal("0.5"))

        mock_exchange.accept_convert_quote.assert_awaited_once()
        assert exc_info.value.order.order_id == "o1"
        assert exc_info.value.order.status == OrderStatus.COMPLETED
        assert "database is locked" in str(exc_info.value)


class TestLimitOrders:
    """Placement and cancellation."""

    @pytest.mark.asyncio
    async def test_place_records_pending_order(self, conversion, order_store):
        order = await conversion.place_limit_order(CHAT_ID, "XRP", "USD", Decimal("5"), Decimal("0.5"))

        assert order.order_id == "lo1"
        assert order_store.get("lo1", CHAT_ID).status == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_non_positive_values_rejected_before_network(self, conversion, mock_exchange, order_store):
        with pytest.raises(ValueError):
            await conversion.place_limit_order(CHAT_ID, "XRP", "USD", Decimal("-5"), Decimal("0.5"))

        mock_exchange.place_convert_limit_order.assert_not_awaited()
        assert order_store.recent(CHAT_ID) == []

    @pytest.mark.asyncio
    async def test_place_failure_records_failed_order(self, conversion, mock_exchange, order_store):
        mock_exchange.place_convert_limit_order.side_effect = ExchangeError("Insufficient balance")

        order = await conversion.place_limit_order(CHAT_ID, "XRP", "USD", Decimal("5"), Decimal("0.5"))

        assert order.status == OrderStatus.FAILED
        assert order_store.get(order.order_id, CHAT_ID).error == "Insufficient balance"

    @pytest.mark.asyncio
    async def test_cancel_marks_order_canceled(self, conversion, order_store):
        await conversion.place_limit_order(CHAT_ID, "XRP", "USD", Decimal("5"), Decimal("0.5"))

        await conversion.cancel_limit_order("lo1")

        assert order_store.get("lo1", CHAT_ID).status == OrderStatus.CANCELED

    @pytest.mark.asyncio
    async def test_cancel_failure_leaves_row_unchanged(self, conversion, mock_exchange, order_store):
        await conversion.place_limit_order(CHAT_ID, "XRP", "USD", Decimal("5"), Decimal("0.5"))
        mock_exchange.cancel_convert_limit_order.side_effect = ExchangeError("Order does not exist")

        with pytest.raises(ExchangeError):
            await conversion.cancel_limit_order("lo1")

        assert order_store.get("lo1", CHAT_ID).status == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_cancel_without_confirmation_raises(self, conversion, mock_exchange):
        mock_exchange.cancel_convert_limit_order.return_value = OrderResult()

        with pytest.raises(OrderRejectedError):
            await conversion.cancel_limit_order("lo1")

    @pytest.mark.asyncio
    async def test_store_failure_after_place_carries_pending_order(self, conversion, order_store, monkeypatch):
        disk_error = sqlite3.OperationalError("disk I/O error")
        monkeypatch.setattr(order_store, "insert", MagicMock(side_effect=disk_error))

        with pytest.raises(OrderNotRecordedError) as exc_info:
            await conversion.place_limit_order(CHAT_ID, "XRP", "USD", Decimal("5"), Decimal("0.5"))

        assert exc_info.value.order.order_id == "lo1"
        assert exc_info.value.order.status == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_store_failure_after_cancel(self, conversion, mock_exchange, order_store, monkeypatch):
        monkeypatch.setattr(
            order_store, "update_status", MagicMock(side_effect=sqlite3.OperationalError("database is locked"))
        )

        with pytest.raises(OrderNotRecordedError) as exc_info:
            await conversion.cancel_limit_order("lo1")

        mock_exchange.cancel_convert_limit_order.assert_awaited_once_with("lo1")
        assert exc_info.value.order_id == "lo1"
        assert exc_info.value.order is None
