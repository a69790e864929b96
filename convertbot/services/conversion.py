"""Order lifecycle: instant conversions, limit orders and cancellations.

Combines exchange calls with order store writes. Every conversion or limit
order attempt leaves exactly one row behind, successful or failed; nothing is
retried.
"""

import asyncio
import logging
import secrets
import sqlite3
from collections import defaultdict
from decimal import Decimal

from ..models import Order, OrderResult, OrderStatus
from .exchange import ExchangeClient, OrderRejectedError, QuoteUnavailableError
from .orders import OrderStore

logger = logging.getLogger(__name__)


class OrderNotRecordedError(Exception):
    """The exchange call finished but its outcome could not be stored.

    Attributes:
        order_id: Order the write was about.
        order: Outcome that was meant to be inserted; None for status updates.
    """

    def __init__(self, order_id: str, cause: sqlite3.Error, order: Order | None = None):
        super().__init__(f"Order {order_id} could not be recorded: {cause}")
        self.order_id = order_id
        self.order = order


def generate_order_id() -> str:
    """Local identifier for orders the exchange never acknowledged."""
    return secrets.token_hex(16)


class ConversionService:
    """Runs order-affecting exchange operations and records their outcome."""

    def __init__(self, exchange: ExchangeClient, orders: OrderStore):
        """Initialize conversion service.

        Args:
            exchange: Exchange REST client.
            orders: Order store receiving one row per attempt.
        """
        self.exchange = exchange
        self.orders = orders
        # One lock per chat ever seen, kept for the process lifetime
        self._chat_locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _failed_order(
        self, chat_id: int, from_asset: str, to_asset: str, amount: Decimal | None, error: Exception
    ) -> Order:
        return Order(
            order_id=generate_order_id(),
            chat_id=chat_id,
            from_asset=from_asset or "UNKNOWN",
            to_asset=to_asset or "UNKNOWN",
            amount=amount or Decimal("0"),
            status=OrderStatus.FAILED,
            error=str(error),
        )

    def _record(self, order: Order) -> None:
        try:
            self.orders.insert(order)
        except sqlite3.Error as e:
            logger.error(f"Failed to record {order.status.value} order {order.order_id}: {e}")
            raise OrderNotRecordedError(order.order_id, e, order) from e

    async def instant_convert(
        self, chat_id: int, from_asset: str, to_asset: str, amount: Decimal
    ) -> Order:
        """Quote, accept and record an instant conversion.

        Conversions of one chat run one at a time.

        Args:
            chat_id: Chat requesting the conversion.
            from_asset: Source asset symbol.
            to_asset: Target asset symbol.
            amount: Quantity of the source asset.

        Returns:
            The recorded order, either completed or failed.

        Raises:
            OrderNotRecordedError: If the outcome could not be stored; it
                carries the unsaved order.
        """
        async with self._chat_locks[chat_id]:
            try:
                quote = await self.exchange.get_convert_quote(from_asset, to_asset, amount)
                if not quote.quote_id:
                    raise QuoteUnavailableError("Failed to obtain a conversion quote")

                result = await self.exchange.accept_convert_quote(quote.quote_id)
                if not result.order_id:
                    raise OrderRejectedError("Conversion was not executed by the exchange")

                order = Order(
                    order_id=result.order_id,
                    chat_id=chat_id,
                    from_asset=from_asset,
                    to_asset=to_asset,
                    amount=amount,
                    status=OrderStatus.COMPLETED,
                )
            except Exception as e:
                logger.error(f"Instant conversion {from_asset}->{to_asset} for chat {chat_id} failed: {e}")
                order = self._failed_order(chat_id, from_asset, to_asset, amount, e)

            self._record(order)
            return order

    async def place_limit_order(
        self, chat_id: int, from_asset: str, to_asset: str, amount: Decimal, price: Decimal
    ) -> Order:
        """Place and record a limit conversion order.

        Args:
            chat_id: Chat placing the order.
            from_asset: Source asset symbol.
            to_asset: Target asset symbol.
            amount: Quantity of the source asset, must be positive.
            price: Limit price, must be positive.

        Returns:
            The recorded order, either pending or failed.

        Raises:
            ValueError: If amount or price is not positive; nothing is recorded.
            OrderNotRecordedError: If the outcome could not be stored.
        """
        if amount <= 0 or price <= 0:
            raise ValueError("Amount and price must be positive")

        try:
            result = await self.exchange.place_convert_limit_order(from_asset, to_asset, amount, price)
            if not result.order_id:
                raise OrderRejectedError("Limit order was not accepted by the exchange")

            order = Order(
                order_id=result.order_id,
                chat_id=chat_id,
                from_asset=from_asset,
                to_asset=to_asset,
                amount=amount,
                status=OrderStatus.PENDING,
            )
        except Exception as e:
            logger.error(f"Limit order {from_asset}->{to_asset} for chat {chat_id} failed: {e}")
            order = self._failed_order(chat_id, from_asset, to_asset, amount, e)

        self._record(order)
        return order

    async def cancel_limit_order(self, order_id: str) -> OrderResult:
        """Cancel a limit order on the exchange and mark it canceled locally.

        Ownership of the order is not checked.

        Args:
            order_id: Exchange order ID.

        Returns:
            Exchange cancellation result.

        Raises:
            ExchangeError: If the exchange call fails; the stored row is unchanged.
            OrderNotRecordedError: If the exchange canceled the order but the
                stored row could not be updated.
        """
        result = await self.exchange.cancel_convert_limit_order(order_id)
        if not result.order_id:
            raise OrderRejectedError("Limit order cancellation was not confirmed")

        try:
            self.orders.update_status(order_id, OrderStatus.CANCELED)
        except sqlite3.Error as e:
            logger.error(f"Failed to mark order {order_id} canceled: {e}")
            raise OrderNotRecordedError(order_id, e) from e
        return result
