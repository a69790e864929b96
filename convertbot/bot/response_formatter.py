"""Response formatting for bot messages.

Turns orders, exchange payloads and registry changes into localized
MarkdownV2 text. Every value goes through ``render_markdown_v2`` exactly once.
"""

import logging
from decimal import Decimal

from ..models import AssetInfo, ExchangePairInfo, OpenOrder, Order, OrderStatus, SupportedPair
from .messages import get_text
from .utils import format_amount, render_markdown_v2

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _amount_or_dash(amount: Decimal | None) -> str:
    return format_amount(amount) if amount is not None else "-"


class ResponseFormatter:
    """Formats bot responses for orders, exchange queries and admin changes."""

    def render(self, key: str, language: str, **values: object) -> str:
        """Render a single catalog template."""
        return render_markdown_v2(get_text(key, language), **values)

    def format_conversion_result(self, order: Order, language: str) -> str:
        """Format the outcome of an instant conversion.

        Args:
            order: Recorded order, completed or failed.
            language: Chat language.

        Returns:
            Success details or the failure reason.
        """
        if order.status == OrderStatus.FAILED:
            return self.render("convert_failed", language, error=order.error or "")

        return self.render(
            "convert_success",
            language,
            from_asset=order.from_asset,
            to_asset=order.to_asset,
            amount=format_amount(order.amount),
            order_id=order.order_id,
        )

    def format_limit_order_result(self, order: Order, price: Decimal, language: str) -> str:
        """Format the outcome of a limit order placement."""
        if order.status == OrderStatus.FAILED:
            return self.render("limit_order_failed", language, error=order.error or "")

        return self.render(
            "limit_order_placed",
            language,
            from_asset=order.from_asset,
            to_asset=order.to_asset,
            amount=format_amount(order.amount),
            price=format_amount(price),
            order_id=order.order_id,
        )

    def format_order_status(self, order: Order, language: str) -> str:
        """Format status of one order, with the error text for failed orders."""
        text = self.render("order_status", language, order_id=order.order_id, status=order.status.value)
        if order.status == OrderStatus.FAILED and order.error:
            text += self.render("order_status_error", language, error=order.error)
        return text

    def format_history(self, orders: list[Order], language: str) -> str:
        """Format recent orders, newest first.

        Args:
            orders: Orders as returned by the store.
            language: Chat language.

        Returns:
            Numbered list or the empty-history notice.
        """
        if not orders:
            return self.render("history_empty", language)

        lines = [self.render("history_header", language)]
        for index, order in enumerate(orders, start=1):
            lines.append(
                self.render(
                    "history_item",
                    language,
                    index=index,
                    order_id=order.order_id,
                    from_asset=order.from_asset,
                    to_asset=order.to_asset,
                    amount=format_amount(order.amount),
                    status=order.status.value,
                    timestamp=order.timestamp.strftime(TIMESTAMP_FORMAT),
                )
            )
        return "\n".join(lines)

    def format_exchange_info(
        self, found: list[ExchangePairInfo], not_found: list[str], language: str
    ) -> str:
        """Format pair limits, listing unmatched pair queries separately.

        Args:
            found: Pair infos to show.
            not_found: Labels of requested pairs without information.
            language: Chat language.
        """
        if not found and not not_found:
            return self.render("exchange_info_empty", language)

        sections = []
        if found:
            lines = [self.render("exchange_info_header", language)]
            for index, info in enumerate(found, start=1):
                lines.append(
                    self.render(
                        "exchange_info_item",
                        language,
                        index=index,
                        from_asset=info.from_asset,
                        to_asset=info.to_asset,
                        min_amount=_amount_or_dash(info.min_amount),
                        max_amount=_amount_or_dash(info.max_amount),
                    )
                )
            sections.append("\n".join(lines))
        if not_found:
            sections.append(self.render("exchange_info_not_found", language, items="\n".join(not_found)))
        return "\n".join(sections)

    def format_asset_info(self, found: list[AssetInfo], not_found: list[str], language: str) -> str:
        """Format asset precision, listing unknown assets separately."""
        if not found and not not_found:
            return self.render("asset_info_empty", language)

        sections = []
        if found:
            lines = [self.render("asset_info_header", language)]
            for index, info in enumerate(found, start=1):
                precision = info.precision if info.precision is not None else "-"
                lines.append(
                    self.render("asset_info_item", language, index=index, asset=info.asset, precision=precision)
                )
            sections.append("\n".join(lines))
        if not_found:
            sections.append(self.render("asset_info_not_found", language, items="\n".join(not_found)))
        return "\n".join(sections)

    def format_open_orders(self, orders: list[OpenOrder], language: str) -> str:
        """Format open limit orders reported by the exchange."""
        if not orders:
            return self.render("open_orders_empty", language)

        lines = [self.render("open_orders_header", language)]
        for index, order in enumerate(orders, start=1):
            lines.append(
                self.render(
                    "open_orders_item",
                    language,
                    index=index,
                    order_id=order.order_id,
                    from_asset=order.from_asset,
                    to_asset=order.to_asset,
                    amount=_amount_or_dash(order.amount),
                    price=_amount_or_dash(order.price),
                )
            )
        return "\n".join(lines)

    def format_pairs_update(
        self,
        done_key: str,
        done: list[SupportedPair],
        skipped_key: str,
        skipped: list[SupportedPair],
        language: str,
    ) -> str:
        """Format the result of an admin pair mutation.

        Args:
            done_key: Template for pairs that were changed.
            done: Pairs that were added or removed.
            skipped_key: Template for pairs that were left alone.
            skipped: Pairs already present, or not found.
            language: Chat language.
        """
        sections = []
        if done:
            sections.append(self.render(done_key, language, items="\n".join(p.label() for p in done)))
        if skipped:
            sections.append(self.render(skipped_key, language, items="\n".join(p.label() for p in skipped)))
        return "\n".join(sections)
