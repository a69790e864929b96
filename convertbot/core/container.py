"""Dependency-injection container.

This module defines a dependency-injection (DI) container that wires together
the application's components. Every stateful component (order store, rate
limiter, supported pairs, exchange session) lives here as a singleton instead
of in module globals.
"""

from dependency_injector import containers, providers

from convertbot.bot.handlers import Dispatcher
from convertbot.bot.response_formatter import ResponseFormatter
from convertbot.services.conversion import ConversionService
from convertbot.services.exchange import ExchangeClient
from convertbot.services.orders import OrderStore
from convertbot.services.pairs import SupportedPairsRegistry
from convertbot.services.rate_limiter import RateLimiter


class Container(containers.DeclarativeContainer):
    """DI container for the application.

    Filled from ``Config.as_dict()`` through the ``config`` provider.
    """

    config = providers.Configuration()

    # Services
    exchange_client = providers.Singleton(
        ExchangeClient,
        base_url=config.exchange.base_url,
        api_key=config.exchange.api_key,
        timeout=config.exchange.timeout,
    )
    order_store = providers.Singleton(OrderStore, db_path=config.storage.db_path)
    rate_limiter = providers.Singleton(
        RateLimiter,
        window_ms=config.rate_limit.window_ms,
        max_requests=config.rate_limit.max_requests,
        default_language=config.bot.default_language,
    )
    pairs_registry = providers.Singleton(SupportedPairsRegistry, file_path=config.storage.supported_assets_file)
    conversion_service = providers.Singleton(
        ConversionService, exchange=exchange_client, orders=order_store
    )

    # Bot components
    response_formatter = providers.Singleton(ResponseFormatter)
    dispatcher = providers.Singleton(
        Dispatcher,
        conversion=conversion_service,
        orders=order_store,
        exchange=exchange_client,
        limiter=rate_limiter,
        pairs=pairs_registry,
        formatter=response_formatter,
        admin_chat_id=config.bot.admin_chat_id,
        history_limit=config.storage.history_limit,
    )
