"""Data models for the convert bot application.

Defines Pydantic models for all data structures used throughout the application
including persisted orders, supported asset pairs, per-chat rate limit state
and exchange API responses. All models include validation and type checking.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


def normalize_asset(symbol: str) -> str:
    """Normalize an asset symbol for comparison and storage.

    Args:
        symbol: Asset symbol in any case, possibly padded with whitespace.

    Returns:
        Upper-cased, stripped symbol.
    """
    return symbol.strip().upper()


class OrderStatus(str, Enum):
    """Lifecycle state of a persisted order."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELED = "canceled"
    FAILED = "failed"


class Order(BaseModel):
    """Conversion or limit order recorded in the order store.

    Attributes:
        order_id: Exchange-issued order ID, or random hex for failed attempts.
        chat_id: Telegram chat that issued the order.
        from_asset: Source asset symbol.
        to_asset: Target asset symbol.
        amount: Source asset quantity (zero when unavailable on failure).
        status: Current lifecycle state.
        error: Upstream error text, only set for failed orders.
        timestamp: Creation time, never changed after insert.
    """

    order_id: str
    chat_id: int
    from_asset: str
    to_asset: str
    amount: Decimal
    status: OrderStatus
    error: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SupportedPair(BaseModel):
    """Asset pair the bot allows conversions for, in either direction.

    Serialized with the ``fromAsset``/``toAsset`` keys of the pairs file.
    """

    model_config = ConfigDict(populate_by_name=True)

    from_asset: str = Field(alias="fromAsset")
    to_asset: str = Field(alias="toAsset")

    @field_validator("from_asset", "to_asset")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_asset(value)

    def matches(self, from_asset: str, to_asset: str) -> bool:
        """Check whether this pair covers the route in either direction."""
        a, b = normalize_asset(from_asset), normalize_asset(to_asset)
        return (self.from_asset, self.to_asset) in ((a, b), (b, a))

    def label(self) -> str:
        """Human readable form used in bot replies."""
        return f"{self.from_asset} ↔️ {self.to_asset}"


class RateLimitState(BaseModel):
    """Per-chat throttling window, held in memory only.

    Attributes:
        count: Requests counted in the current window.
        window_start: Window start in milliseconds since the epoch.
        language: Chat language preference.
    """

    count: int = 0
    window_start: float = 0.0
    language: str = "zh"


class Quote(BaseModel):
    """Convert quote returned by the exchange, consumed immediately."""

    model_config = ConfigDict(populate_by_name=True)

    quote_id: str | None = Field(default=None, alias="quoteId")
    ratio: Decimal | None = None
    inverse_ratio: Decimal | None = Field(default=None, alias="inverseRatio")
    to_amount: Decimal | None = Field(default=None, alias="toAmount")
    valid_time: int | None = Field(default=None, alias="validTimestamp")


class OrderResult(BaseModel):
    """Response of accept-quote, place-limit-order and cancel-limit-order."""

    model_config = ConfigDict(populate_by_name=True)

    order_id: str | None = Field(default=None, alias="orderId")
    status: str | None = None

    @field_validator("order_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> object:
        # Exchange order IDs arrive as JSON numbers.
        if isinstance(value, int):
            return str(value)
        return value


class OpenOrder(BaseModel):
    """Open limit order as listed by the exchange."""

    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(alias="orderId")
    from_asset: str = Field(default="", alias="fromAsset")
    to_asset: str = Field(default="", alias="toAsset")
    amount: Decimal | None = None
    price: Decimal | None = None
    status: str | None = None

    @field_validator("order_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return value


class ExchangePairInfo(BaseModel):
    """Tradable pair limits from the exchange info endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    from_asset: str = Field(alias="fromAsset")
    to_asset: str = Field(alias="toAsset")
    min_amount: Decimal | None = Field(default=None, alias="minAmount")
    max_amount: Decimal | None = Field(default=None, alias="maxAmount")

    def matches(self, from_asset: str, to_asset: str) -> bool:
        """Check whether this info describes the route in either direction."""
        a, b = normalize_asset(from_asset), normalize_asset(to_asset)
        pair = (normalize_asset(self.from_asset), normalize_asset(self.to_asset))
        return pair in ((a, b), (b, a))


class ExchangeInfo(BaseModel):
    """Exchange info payload."""

    pairs: list[ExchangePairInfo] = Field(default_factory=list)


class AssetInfo(BaseModel):
    """Precision of a single asset."""

    asset: str
    precision: int | None = None


class AssetInfoList(BaseModel):
    """Asset info payload."""

    assets: list[AssetInfo] = Field(default_factory=list)
