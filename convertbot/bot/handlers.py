"""Telegram bot handlers.

The ``Dispatcher`` maps each inbound command, callback query or menu tap to
one outbound effect. All stateful collaborators are injected, so handlers
hold no module-level state. Each handler catches recoverable errors at its
own boundary; anything else reaches ``error_handler``.
"""

import logging
import sqlite3
from collections import OrderedDict
from collections.abc import Awaitable, Callable

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, ReplyKeyboardMarkup, Update
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from ..models import OrderStatus
from ..services.conversion import ConversionService, OrderNotRecordedError
from ..services.exchange import ExchangeClient, ExchangeError
from ..services.orders import OrderStore
from ..services.pairs import PairsFileError, SupportedPairsRegistry, parse_pairs
from ..services.rate_limiter import RateLimiter
from .menu import (
    CANCEL_CONVERT,
    CONFIRM_CONVERT_PREFIX,
    MenuAction,
    confirm_callback_data,
    confirm_keyboard,
    main_menu_keyboard,
    parse_confirm_callback,
)
from .messages import SUPPORTED_LANGUAGES
from .response_formatter import ResponseFormatter
from .utils import CommandArgumentError, format_amount, notify_admin, parse_amount, parse_asset, parse_assets

logger = logging.getLogger(__name__)

Handler = Callable[[Update, ContextTypes.DEFAULT_TYPE], Awaitable[None]]


class Dispatcher:
    """Command, callback and menu handlers bound to the application's services.

    Attributes:
        admin_chat_id: Only chat allowed to change the supported pairs.
        history_limit: Number of orders shown by /tradehistory.
        max_consumed_prompts: Answered confirm prompts remembered before the
            oldest are forgotten.
    """

    max_consumed_prompts = 5000

    def __init__(
        self,
        conversion: ConversionService,
        orders: OrderStore,
        exchange: ExchangeClient,
        limiter: RateLimiter,
        pairs: SupportedPairsRegistry,
        formatter: ResponseFormatter,
        admin_chat_id: int,
        history_limit: int = 10,
    ):
        """Initialize dispatcher.

        Args:
            conversion: Order lifecycle service.
            orders: Order store for status and history lookups.
            exchange: Exchange client for read-only queries.
            limiter: Per-chat rate limiter, also holding language preferences.
            pairs: Supported pairs registry.
            formatter: Response formatter.
            admin_chat_id: Admin chat ID.
            history_limit: Orders shown by /tradehistory.
        """
        self.conversion = conversion
        self.orders = orders
        self.exchange = exchange
        self.limiter = limiter
        self.pairs = pairs
        self.formatter = formatter
        self.admin_chat_id = admin_chat_id
        self.history_limit = history_limit
        # (chat_id, message_id) of answered confirm prompts, oldest first
        self._consumed_prompts: OrderedDict[tuple[int, int], None] = OrderedDict()

    def register(self, application: Application) -> None:
        """Attach all handlers to the application."""
        commands: dict[str, Handler] = {
            "start": self.start,
            "help": self.help,
            "convert": self.convert,
            "placeorder": self.place_order,
            "cancelorder": self.cancel_order,
            "status": self.status,
            "tradehistory": self.trade_history,
            "exchangeinfo": self.exchange_info,
            "assetinfo": self.asset_info,
            "openorders": self.open_orders,
            "language": self.language,
            "addassets": self.add_assets,
            "removeassets": self.remove_assets,
        }
        for name, callback in commands.items():
            application.add_handler(CommandHandler(name, callback))

        application.add_handler(CallbackQueryHandler(self.handle_callback))
        application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self.handle_text))
        application.add_error_handler(self.error_handler)

    async def _send(
        self,
        context: ContextTypes.DEFAULT_TYPE,
        chat_id: int,
        text: str,
        reply_markup: InlineKeyboardMarkup | ReplyKeyboardMarkup | None = None,
    ) -> None:
        await context.bot.send_message(
            chat_id=chat_id,
            text=text,
            parse_mode=ParseMode.MARKDOWN_V2,
            reply_markup=reply_markup,
        )

    async def _reply(
        self,
        context: ContextTypes.DEFAULT_TYPE,
        chat_id: int,
        key: str,
        reply_markup: InlineKeyboardMarkup | ReplyKeyboardMarkup | None = None,
        **values: object,
    ) -> None:
        text = self.formatter.render(key, self.limiter.language(chat_id), **values)
        await self._send(context, chat_id, text, reply_markup)

    async def _notify_admin(self, context: ContextTypes.DEFAULT_TYPE, message: str) -> None:
        await notify_admin(context.bot, self.admin_chat_id, message)

    def _is_admin(self, chat_id: int) -> bool:
        return chat_id == self.admin_chat_id

    # General commands

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /start: register the chat and show the welcome message with the menu."""
        if not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        language = self.limiter.state(chat_id).language
        await self._reply(context, chat_id, "welcome", main_menu_keyboard(language))

    async def help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /help."""
        if not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        await self._reply(context, chat_id, "help", main_menu_keyboard(self.limiter.language(chat_id)))

    async def language(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /language CODE."""
        if not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        args = context.args or []
        code = args[0].strip().lower() if len(args) == 1 else ""
        if code not in SUPPORTED_LANGUAGES:
            await self._reply(context, chat_id, "language_usage", languages="|".join(SUPPORTED_LANGUAGES))
            return

        self.limiter.set_language(chat_id, code)
        await self._reply(context, chat_id, "language_set", main_menu_keyboard(code))

    # Conversion

    async def convert(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /convert FROM TO AMOUNT.

        Validates the arguments, applies the rate limit and the supported pairs
        check, then asks for confirmation. Nothing is persisted here.
        """
        if not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        args = context.args or []
        if len(args) != 3:
            await self._reply(context, chat_id, "convert_usage")
            return

        try:
            from_asset = parse_asset(args[0])
            to_asset = parse_asset(args[1])
            amount = parse_amount(args[2])
        except CommandArgumentError as e:
            logger.info(f"Rejected /convert arguments from chat {chat_id}: {e}")
            await self._reply(context, chat_id, "convert_usage")
            return

        if amount <= 0:
            await self._reply(context, chat_id, "invalid_amount")
            return

        # Telegram rejects buttons whose callback data exceeds 64 bytes
        callback_data = confirm_callback_data(from_asset, to_asset, amount)
        if len(callback_data.encode()) > InlineKeyboardButton.MAX_CALLBACK_DATA:
            await self._reply(context, chat_id, "amount_too_long")
            return

        if not self.limiter.hit(chat_id):
            await self._reply(context, chat_id, "rate_limit_exceeded")
            return

        if not self.pairs.supports(from_asset, to_asset):
            await self._reply(context, chat_id, "pair_not_supported", from_asset=from_asset, to_asset=to_asset)
            return

        language = self.limiter.language(chat_id)
        await self._reply(
            context,
            chat_id,
            "convert_confirm",
            confirm_keyboard(from_asset, to_asset, amount, language),
            amount=format_amount(amount),
            from_asset=from_asset,
            to_asset=to_asset,
        )

    async def _remove_keyboard(self, update: Update) -> None:
        try:
            await update.callback_query.edit_message_reply_markup(reply_markup=None)
        except TelegramError as e:
            logger.warning(f"Failed to remove confirm keyboard: {e}")

    def _consume_prompt(self, prompt: tuple[int, int]) -> None:
        self._consumed_prompts[prompt] = None
        while len(self._consumed_prompts) > self.max_consumed_prompts:
            self._consumed_prompts.popitem(last=False)

    async def handle_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle confirm and cancel taps on a conversion prompt.

        Each prompt is answered once; later taps on the same prompt get an
        "already processed" reply and trigger no exchange call.
        """
        query = update.callback_query
        if not query or not query.message:
            return

        await query.answer()

        chat_id = query.message.chat.id
        data = query.data or ""
        if not (data.startswith(CONFIRM_CONVERT_PREFIX) or data == CANCEL_CONVERT):
            await self._reply(context, chat_id, "unknown_action")
            return

        prompt = (chat_id, query.message.message_id)
        if prompt in self._consumed_prompts:
            await self._reply(context, chat_id, "convert_already_processed")
            return
        self._consume_prompt(prompt)
        await self._remove_keyboard(update)

        if data == CANCEL_CONVERT:
            await self._reply(context, chat_id, "convert_canceled")
            return

        try:
            from_asset, to_asset, amount = parse_confirm_callback(data)
        except CommandArgumentError as e:
            logger.warning(f"Invalid confirm payload from chat {chat_id}: {e}")
            await self._reply(context, chat_id, "unknown_action")
            return

        try:
            order = await self.conversion.instant_convert(chat_id, from_asset, to_asset, amount)
        except OrderNotRecordedError as e:
            order = e.order
            await self._notify_admin(context, f"Instant conversion for chat {chat_id}: {e}")
        if order.status == OrderStatus.FAILED:
            await self._notify_admin(
                context, f"Instant conversion {from_asset}->{to_asset} for chat {chat_id} failed: {order.error}"
            )

        text = self.formatter.format_conversion_result(order, self.limiter.language(chat_id))
        await self._send(context, chat_id, text)

    # Limit orders

    async def place_order(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /placeorder FROM TO AMOUNT PRICE."""
        if not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        args = context.args or []
        if len(args) != 4:
            await self._reply(context, chat_id, "placeorder_usage")
            return

        try:
            from_asset = parse_asset(args[0])
            to_asset = parse_asset(args[1])
            amount = parse_amount(args[2])
            price = parse_amount(args[3])
        except CommandArgumentError as e:
            logger.info(f"Rejected /placeorder arguments from chat {chat_id}: {e}")
            await self._reply(context, chat_id, "placeorder_usage")
            return

        if amount <= 0 or price <= 0:
            await self._reply(context, chat_id, "invalid_amount_price")
            return

        if not self.pairs.supports(from_asset, to_asset):
            await self._reply(context, chat_id, "pair_not_supported", from_asset=from_asset, to_asset=to_asset)
            return

        try:
            order = await self.conversion.place_limit_order(chat_id, from_asset, to_asset, amount, price)
        except OrderNotRecordedError as e:
            order = e.order
            await self._notify_admin(context, f"Limit order for chat {chat_id}: {e}")
        if order.status == OrderStatus.FAILED:
            await self._notify_admin(
                context, f"Limit order {from_asset}->{to_asset} for chat {chat_id} failed: {order.error}"
            )

        text = self.formatter.format_limit_order_result(order, price, self.limiter.language(chat_id))
        await self._send(context, chat_id, text)

    async def cancel_order(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /cancelorder ORDER_ID."""
        if not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        args = context.args or []
        if len(args) != 1:
            await self._reply(context, chat_id, "cancel_usage")
            return

        order_id = args[0].strip()
        try:
            await self.conversion.cancel_limit_order(order_id)
        except ExchangeError as e:
            logger.error(f"Cancel of order {order_id} for chat {chat_id} failed: {e}")
            await self._reply(context, chat_id, "cancel_failed", error=str(e))
            await self._notify_admin(context, f"Cancel of order {order_id} failed: {e}")
            return
        except OrderNotRecordedError as e:
            await self._notify_admin(context, f"Cancel of order {order_id} for chat {chat_id}: {e}")

        await self._reply(context, chat_id, "order_canceled", order_id=order_id)

    async def open_orders(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /openorders."""
        if not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        try:
            orders = await self.exchange.query_open_convert_limit_orders()
        except ExchangeError as e:
            logger.error(f"Open orders query for chat {chat_id} failed: {e}")
            await self._reply(context, chat_id, "open_orders_failed", error=str(e))
            await self._notify_admin(context, f"Open orders query failed: {e}")
            return

        await self._send(context, chat_id, self.formatter.format_open_orders(orders, self.limiter.language(chat_id)))

    # Order lookups

    async def status(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /status ORDER_ID for orders of the calling chat."""
        if not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        args = context.args or []
        if len(args) != 1:
            await self._reply(context, chat_id, "status_usage")
            return

        order_id = args[0].strip()
        try:
            order = self.orders.get(order_id, chat_id)
        except sqlite3.Error as e:
            logger.error(f"Order lookup {order_id} for chat {chat_id} failed: {e}")
            await self._reply(context, chat_id, "query_failed", error=str(e))
            await self._notify_admin(context, f"Order lookup {order_id} for chat {chat_id} failed: {e}")
            return

        if order is None:
            await self._reply(context, chat_id, "order_not_found", order_id=order_id)
            return

        await self._send(context, chat_id, self.formatter.format_order_status(order, self.limiter.language(chat_id)))

    async def trade_history(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /tradehistory."""
        if not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        try:
            orders = self.orders.recent(chat_id, self.history_limit)
        except sqlite3.Error as e:
            logger.error(f"History lookup for chat {chat_id} failed: {e}")
            await self._reply(context, chat_id, "query_failed", error=str(e))
            await self._notify_admin(context, f"History lookup for chat {chat_id} failed: {e}")
            return

        await self._send(context, chat_id, self.formatter.format_history(orders, self.limiter.language(chat_id)))

    # Exchange queries

    async def exchange_info(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /exchangeinfo [FROM:TO,...].

        Without arguments all pairs reported by the exchange are shown. With
        arguments only requested pairs that are also in the registry are looked
        up; the others are listed as not found.
        """
        if not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        language = self.limiter.language(chat_id)
        query = " ".join(context.args or []).strip()

        if not query:
            try:
                info = await self.exchange.get_exchange_info()
            except ExchangeError as e:
                logger.error(f"Exchange info query for chat {chat_id} failed: {e}")
                await self._reply(context, chat_id, "exchange_info_failed", error=str(e))
                await self._notify_admin(context, f"Exchange info query failed: {e}")
                return
            await self._send(context, chat_id, self.formatter.format_exchange_info(info.pairs, [], language))
            return

        requested = parse_pairs(query)
        if not requested:
            await self._reply(context, chat_id, "pair_query_invalid")
            return

        registered = [pair for pair in requested if self.pairs.supports(*pair)]
        available = []
        if registered:
            try:
                available = (await self.exchange.get_exchange_info()).pairs
            except ExchangeError as e:
                logger.error(f"Exchange info query for chat {chat_id} failed: {e}")
                await self._notify_admin(context, f"Exchange info query failed: {e}")

        found = []
        not_found = []
        for from_asset, to_asset in requested:
            info = None
            if (from_asset, to_asset) in registered:
                info = next((item for item in available if item.matches(from_asset, to_asset)), None)
            if info is None:
                not_found.append(f"{from_asset}:{to_asset}")
            else:
                found.append(info)

        await self._send(context, chat_id, self.formatter.format_exchange_info(found, not_found, language))

    async def asset_info(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /assetinfo ASSET1,ASSET2 with one exchange call per asset."""
        if not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        assets = parse_assets(" ".join(context.args or []))
        if not assets:
            await self._reply(context, chat_id, "asset_query_invalid")
            return

        found = []
        not_found = []
        for asset in assets:
            try:
                info = await self.exchange.get_asset_info()
            except ExchangeError as e:
                logger.error(f"Asset info query for {asset} failed: {e}")
                await self._notify_admin(context, f"Asset info query for {asset} failed: {e}")
                not_found.append(asset)
                continue

            match = next((item for item in info.assets if item.asset.upper() == asset), None)
            if match is None:
                not_found.append(asset)
            else:
                found.append(match)

        text = self.formatter.format_asset_info(found, not_found, self.limiter.language(chat_id))
        await self._send(context, chat_id, text)

    # Admin commands

    async def _update_pairs(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE, removing: bool
    ) -> None:
        if not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        if not self._is_admin(chat_id):
            logger.warning(f"Chat {chat_id} attempted to change supported pairs")
            await self._reply(context, chat_id, "permission_denied")
            return

        requested = parse_pairs(" ".join(context.args or []))
        if not requested:
            await self._reply(context, chat_id, "pair_format_invalid")
            return

        try:
            if removing:
                done, skipped = self.pairs.remove(requested)
            else:
                done, skipped = self.pairs.add(requested)
        except PairsFileError as e:
            await self._reply(context, chat_id, "pairs_update_failed", error=str(e))
            await self._notify_admin(context, f"Supported pairs update failed: {e}")
            return

        done_key, skipped_key = ("pairs_removed", "pairs_not_found") if removing else ("pairs_added", "pairs_existing")
        text = self.formatter.format_pairs_update(
            done_key, done, skipped_key, skipped, self.limiter.language(chat_id)
        )
        await self._send(context, chat_id, text)

    async def add_assets(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /addassets FROM:TO[,FROM:TO...] (admin only)."""
        await self._update_pairs(update, context, removing=False)

    async def remove_assets(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /removeassets FROM:TO[,FROM:TO...] (admin only)."""
        await self._update_pairs(update, context, removing=True)

    # Menu and free text

    async def _menu_convert(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self._reply(context, update.effective_chat.id, "convert_prompt")

    async def _menu_status(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self._reply(context, update.effective_chat.id, "status_prompt")

    async def _menu_profile(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self._reply(context, update.effective_chat.id, "profile_unavailable")

    async def handle_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Route menu button taps; any other text gets the unknown command reply."""
        if not update.effective_chat or not update.message:
            return

        menu_handlers: dict[MenuAction, Handler] = {
            MenuAction.CONVERT_NOW: self._menu_convert,
            MenuAction.VIEW_STATUS: self._menu_status,
            MenuAction.PERSONAL_INFO: self._menu_profile,
            MenuAction.HELP: self.help,
        }
        action = MenuAction.from_label(update.message.text or "")
        if action is None:
            await self._reply(context, update.effective_chat.id, "unknown_command")
            return

        await menu_handlers[action](update, context)

    async def error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Log errors that escaped a handler and report them to the admin."""
        logger.error("Unhandled error while processing update", exc_info=context.error)
        await self._notify_admin(context, f"Unhandled error: {context.error}")
