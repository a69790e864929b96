"""Global test configuration and fixtures.

Provides shared fixtures for all test levels including environment setup,
temporary storage, a controllable clock, a mocked exchange client and
helpers for building Telegram updates.
"""

import json
import os
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from convertbot.bot.handlers import Dispatcher
from convertbot.bot.response_formatter import ResponseFormatter
from convertbot.models import AssetInfo, AssetInfoList, ExchangeInfo, ExchangePairInfo, OrderResult, Quote
from convertbot.services.conversion import ConversionService
from convertbot.services.exchange import ExchangeClient
from convertbot.services.orders import OrderStore
from convertbot.services.pairs import SupportedPairsRegistry
from convertbot.services.rate_limiter import RateLimiter

# Test constants
TEST_BOT_TOKEN = os.getenv("TEST_BOT_TOKEN", "test_bot_token_placeholder")
TEST_ADMIN_CHAT_ID = int(os.getenv("TEST_ADMIN_CHAT_ID", "12345"))
USER_CHAT_ID = 777


@pytest.fixture(autouse=True)
def test_environment():
    """Setup test environment variables for all tests."""
    test_env = {
        "BOT_TOKEN": TEST_BOT_TOKEN,
        "ADMIN_CHAT_ID": str(TEST_ADMIN_CHAT_ID),
        "LOG_LEVEL": "DEBUG",
    }

    # Store original values
    original_env = {}
    for key, value in test_env.items():
        original_env[key] = os.environ.get(key)
        os.environ[key] = value

    yield

    # Restore original values
    for key, original_value in original_env.items():
        if original_value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original_value


class FakeClock:
    """Millisecond clock advanced manually by tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(window_ms=60_000, max_requests=10, default_language="zh", clock=clock)


@pytest.fixture
def order_store(tmp_path: Path) -> OrderStore:
    return OrderStore(db_path=str(tmp_path / "orders.db"))


@pytest.fixture
def pairs_file(tmp_path: Path) -> Path:
    """Supported pairs file with ETH/BTC and XRP/USD."""
    path = tmp_path / "supported_assets.json"
    path.write_text(
        json.dumps([{"fromAsset": "ETH", "toAsset": "BTC"}, {"fromAsset": "xrp", "toAsset": "usd"}]),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def registry(pairs_file: Path) -> SupportedPairsRegistry:
    registry = SupportedPairsRegistry(pairs_file)
    registry.load()
    return registry


@pytest.fixture
def mock_exchange() -> AsyncMock:
    """Exchange client double with successful default responses."""
    exchange = AsyncMock(spec=ExchangeClient)
    exchange.get_convert_quote.return_value = Quote(quote_id="q1", ratio=Decimal("0.05"))
    exchange.accept_convert_quote.return_value = OrderResult(order_id="o1", status="SUCCESS")
    exchange.place_convert_limit_order.return_value = OrderResult(order_id="lo1", status="PROCESS")
    exchange.cancel_convert_limit_order.return_value = OrderResult(order_id="lo1", status="CANCELED")
    exchange.query_open_convert_limit_orders.return_value = []
    exchange.get_exchange_info.return_value = ExchangeInfo(
        pairs=[
            ExchangePairInfo(from_asset="ETH", to_asset="BTC", min_amount=Decimal("0.01"), max_amount=Decimal("100")),
            ExchangePairInfo(from_asset="BTC", to_asset="USDT", min_amount=Decimal("0.001"), max_amount=Decimal("5")),
        ]
    )
    exchange.get_asset_info.return_value = AssetInfoList(
        assets=[AssetInfo(asset="BTC", precision=8), AssetInfo(asset="ETH", precision=6)]
    )
    return exchange


@pytest.fixture
def conversion(mock_exchange: AsyncMock, order_store: OrderStore) -> ConversionService:
    return ConversionService(exchange=mock_exchange, orders=order_store)


@pytest.fixture
def dispatcher(
    conversion: ConversionService,
    order_store: OrderStore,
    mock_exchange: AsyncMock,
    limiter: RateLimiter,
    registry: SupportedPairsRegistry,
) -> Dispatcher:
    return Dispatcher(
        conversion=conversion,
        orders=order_store,
        exchange=mock_exchange,
        limiter=limiter,
        pairs=registry,
        formatter=ResponseFormatter(),
        admin_chat_id=TEST_ADMIN_CHAT_ID,
        history_limit=10,
    )


@pytest.fixture
def context() -> MagicMock:
    """Handler context with a mocked bot."""
    context = MagicMock()
    context.args = []
    context.bot = MagicMock()
    context.bot.send_message = AsyncMock()
    context.error = None
    return context


@pytest.fixture
def make_update():
    """Factory for updates carrying a text message from a chat."""

    def _make(text: str = "", chat_id: int = USER_CHAT_ID) -> MagicMock:
        update = MagicMock()
        update.effective_chat = MagicMock(id=chat_id)
        update.message = MagicMock()
        update.message.text = text
        update.callback_query = None
        return update

    return _make


@pytest.fixture
def make_callback():
    """Factory for updates carrying an inline button tap on a prompt message."""

    def _make(data: str, chat_id: int = USER_CHAT_ID, message_id: int = 1) -> MagicMock:
        update = MagicMock()
        update.effective_chat = MagicMock(id=chat_id)
        update.callback_query = MagicMock()
        update.callback_query.data = data
        update.callback_query.answer = AsyncMock()
        update.callback_query.edit_message_reply_markup = AsyncMock()
        update.callback_query.message = MagicMock(message_id=message_id)
        update.callback_query.message.chat = MagicMock(id=chat_id)
        return update

    return _make


@pytest.fixture
def sent_texts(context: MagicMock):
    """Return texts sent through the mocked bot, optionally for one chat only."""

    def _texts(chat_id: int | None = None) -> list[str]:
        return [
            call.kwargs["text"]
            for call in context.bot.send_message.await_args_list
            if chat_id is None or call.kwargs["chat_id"] == chat_id
        ]

    return _texts
