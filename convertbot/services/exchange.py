"""Exchange REST client for convert quotes, limit orders and market metadata.

Thin request/response wrapper: every operation issues exactly one HTTP call and
either returns the parsed body or raises ExchangeError carrying the upstream
message. There are no retries; callers decide how a failure is recorded.
"""

import json
import logging
from decimal import Decimal
from typing import Any

import aiohttp
from pydantic import ValidationError

from ..models import AssetInfoList, ExchangeInfo, OpenOrder, OrderResult, Quote

logger = logging.getLogger(__name__)


class ExchangeError(Exception):
    """Raised when an exchange call fails or returns an unusable body."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any | None = None,
    ):
        """Initialize exchange error.

        Args:
            message: Upstream or client-side error message.
            status_code: HTTP status code, if a response was received.
            payload: Decoded response body, if any.
        """
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    def __str__(self) -> str:
        if self.status_code:
            return f"{self.args[0]} (HTTP {self.status_code})"
        return str(self.args[0])


class QuoteUnavailableError(ExchangeError):
    """Raised when the exchange answers a quote request without a quote ID."""


class OrderRejectedError(ExchangeError):
    """Raised when an order operation returns no order ID."""


class ExchangeClient:
    """Async client for the exchange convert endpoints."""

    QUOTE_PATH = "/api/v3/convertQuote"
    ACCEPT_QUOTE_PATH = "/api/v3/acceptQuote"
    PLACE_LIMIT_ORDER_PATH = "/api/v3/placeLimitOrder"
    CANCEL_ORDER_PATH = "/api/v3/cancelOrder"
    OPEN_ORDERS_PATH = "/api/v3/openOrders"
    EXCHANGE_INFO_PATH = "/api/v3/exchangeInfo"
    ASSET_INFO_PATH = "/api/v3/assetInfo"

    def __init__(
        self,
        base_url: str = "https://api.binance.com",
        api_key: str | None = None,
        timeout: int = 20,
        session: aiohttp.ClientSession | None = None,
    ):
        """Initialize exchange client.

        Args:
            base_url: Root URL of the exchange REST API.
            api_key: API key sent in the X-MBX-APIKEY header, if configured.
            timeout: Total request timeout in seconds.
            session: Pre-built session; one is created lazily when omitted.
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session = session

    def _get_session(self) -> aiohttp.ClientSession:
        """Return the shared session, creating it on first use."""
        if self._session is None or self._session.closed:
            headers = {"Accept": "application/json", "User-Agent": "ConvertBot/1.0"}
            if self.api_key:
                headers["X-MBX-APIKEY"] = self.api_key
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=headers,
            )
        return self._session

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        """Issue a single request and decode the JSON body.

        Args:
            method: HTTP method, GET or POST.
            path: Endpoint path relative to the base URL.
            payload: JSON body for POST, query parameters for GET.

        Returns:
            Decoded JSON response.

        Raises:
            ExchangeError: On transport failure, non-2xx status or invalid JSON.
        """
        url = f"{self.base_url}{path}"
        kwargs: dict[str, Any] = {}
        if payload is not None:
            if method == "GET":
                kwargs["params"] = payload
            else:
                kwargs["json"] = payload

        try:
            async with self._get_session().request(method, url, **kwargs) as response:
                body = await response.text()
                status = response.status
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.error(f"Exchange request {method} {path} failed: {e}")
            raise ExchangeError(str(e) or e.__class__.__name__) from e

        try:
            data = json.loads(body) if body else None
        except json.JSONDecodeError as e:
            logger.error(f"Exchange returned non-JSON body for {path}: {body[:200]}")
            raise ExchangeError("Invalid response from exchange", status_code=status) from e

        if status >= 400:
            message = body[:200] or "Exchange request failed"
            if isinstance(data, dict):
                message = data.get("msg") or data.get("message") or message
            logger.error(f"Exchange {path} returned {status}: {message}")
            raise ExchangeError(message, status_code=status, payload=data)

        return data

    @staticmethod
    def _parse(model: Any, data: Any, path: str) -> Any:
        try:
            return model.model_validate(data or {})
        except ValidationError as e:
            logger.error(f"Unexpected payload from {path}: {e}")
            raise ExchangeError("Unexpected response from exchange", payload=data) from e

    async def get_convert_quote(self, from_asset: str, to_asset: str, amount: Decimal) -> Quote:
        """Request a convert quote for the given amount of from_asset."""
        data = await self._request(
            "POST",
            self.QUOTE_PATH,
            {"fromAsset": from_asset, "toAsset": to_asset, "amount": str(amount)},
        )
        return self._parse(Quote, data, self.QUOTE_PATH)

    async def accept_convert_quote(self, quote_id: str) -> OrderResult:
        """Accept a previously issued quote."""
        data = await self._request("POST", self.ACCEPT_QUOTE_PATH, {"quoteId": quote_id})
        return self._parse(OrderResult, data, self.ACCEPT_QUOTE_PATH)

    async def place_convert_limit_order(
        self, from_asset: str, to_asset: str, amount: Decimal, price: Decimal
    ) -> OrderResult:
        """Place a limit conversion order."""
        data = await self._request(
            "POST",
            self.PLACE_LIMIT_ORDER_PATH,
            {
                "fromAsset": from_asset,
                "toAsset": to_asset,
                "amount": str(amount),
                "price": str(price),
            },
        )
        return self._parse(OrderResult, data, self.PLACE_LIMIT_ORDER_PATH)

    async def cancel_convert_limit_order(self, order_id: str) -> OrderResult:
        """Cancel an open limit order."""
        data = await self._request("POST", self.CANCEL_ORDER_PATH, {"orderId": order_id})
        return self._parse(OrderResult, data, self.CANCEL_ORDER_PATH)

    async def query_open_convert_limit_orders(self) -> list[OpenOrder]:
        """List open limit orders.

        The endpoint answers either with a bare array or with ``{"list": [...]}``.
        """
        data = await self._request("GET", self.OPEN_ORDERS_PATH)
        if isinstance(data, dict):
            data = data.get("list", [])
        if not isinstance(data, list):
            raise ExchangeError("Unexpected response from exchange", payload=data)
        try:
            return [OpenOrder.model_validate(item) for item in data]
        except ValidationError as e:
            logger.error(f"Unexpected payload from {self.OPEN_ORDERS_PATH}: {e}")
            raise ExchangeError("Unexpected response from exchange", payload=data) from e

    async def get_exchange_info(self) -> ExchangeInfo:
        """Fetch tradable pairs with their amount limits."""
        data = await self._request("GET", self.EXCHANGE_INFO_PATH)
        return self._parse(ExchangeInfo, data, self.EXCHANGE_INFO_PATH)

    async def get_asset_info(self) -> AssetInfoList:
        """Fetch precision information for all assets."""
        data = await self._request("GET", self.ASSET_INFO_PATH)
        return self._parse(AssetInfoList, data, self.ASSET_INFO_PATH)
