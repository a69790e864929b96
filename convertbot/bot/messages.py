"""Telegram bot message templates.

Contains all user-facing message templates keyed by language. Templates are
``str.format`` strings in plain text; ``*`` marks bold text and everything
else, including substituted values, is escaped for MarkdownV2 when rendered
(see ``utils.render_markdown_v2``).
"""

FALLBACK_LANGUAGE = "zh"

_ZH = {
    # Start / help / menu
    "welcome": "欢迎使用 *兑换助手*！这是您的专属加密货币兑换伙伴，请从下方菜单选择一个操作。",
    "menu_prompt": "请选择一个操作:",
    "menu_convert": "立即兑换",
    "menu_status": "查看状态",
    "menu_profile": "个人信息",
    "menu_help": "帮助",
    "convert_prompt": "请输入兑换命令，例如：/convert ETH BTC 0.5",
    "status_prompt": "请输入订单 ID，例如：/status 12345",
    "profile_unavailable": "个人信息功能尚未实现。",
    "unknown_command": "⚠️ 未知命令。请使用 /help 查看可用命令。",
    "unknown_action": "未知操作。",
    "help": (
        "*可用命令:*\n"
        "/convert FROM TO AMOUNT - 闪兑\n"
        "/placeorder FROM TO AMOUNT PRICE - 下限价单\n"
        "/cancelorder ORDER_ID - 取消限价单\n"
        "/status ORDER_ID - 查询订单状态\n"
        "/tradehistory - 最近的交易历史\n"
        "/openorders - 当前挂单\n"
        "/exchangeinfo [FROM:TO,...] - 交易对信息\n"
        "/assetinfo ASSET1,ASSET2 - 资产精度信息\n"
        "/language zh|en - 切换语言"
    ),
    "language_set": "✅ 语言已切换为中文。",
    "language_usage": "⚠️ 用法: /language {languages}",
    # Conversion
    "convert_usage": "⚠️ 用法: /convert FROM TO AMOUNT，例如 /convert ETH BTC 0.5",
    "invalid_amount": "❌ 数量必须为正数。",
    "amount_too_long": "❌ 数量位数过多，请减少位数后重试。",
    "rate_limit_exceeded": "⚠️ *速率限制超出:*\n请稍后再试。",
    "pair_not_supported": "⚠️ *货币对不支持:*\n{from_asset} ↔️ {to_asset}",
    "convert_confirm": "您确认要兑换 *{amount}* {from_asset} 为 *{to_asset}* 吗？",
    "confirm_button": "确认兑换",
    "cancel_button": "取消",
    "convert_canceled": "兑换已取消。",
    "convert_already_processed": "⚠️ 该兑换请求已处理，请重新发起 /convert。",
    "convert_success": "✅ *转换成功！*\n\n*从:* {from_asset}\n*到:* {to_asset}\n*数量:* {amount}\n*订单 ID:* {order_id}",
    "convert_failed": "❌ *转换失败:*\n{error}",
    # Limit orders
    "placeorder_usage": "⚠️ 用法: /placeorder FROM TO AMOUNT PRICE",
    "invalid_amount_price": "❌ *下单失败:*\n金额和价格必须为正数。",
    "limit_order_placed": (
        "✅ *限价单已下达！*\n\n*从:* {from_asset}\n*到:* {to_asset}\n"
        "*数量:* {amount}\n*价格:* {price}\n*订单 ID:* {order_id}"
    ),
    "limit_order_failed": "❌ *限价单创建失败:*\n{error}",
    "cancel_usage": "⚠️ 用法: /cancelorder ORDER_ID",
    "order_canceled": "✅ *限价单已取消！*\n\n*订单 ID:* {order_id}",
    "cancel_failed": "❌ *限价单取消失败:*\n{error}",
    "open_orders_header": "📋 *当前挂单:*\n",
    "open_orders_item": "{index}. *订单 ID:* {order_id}\n   *从:* {from_asset}\n   *到:* {to_asset}\n   *数量:* {amount}\n   *价格:* {price}\n",
    "open_orders_empty": "✅ 当前没有挂单。",
    "open_orders_failed": "❌ *查询挂单失败:*\n{error}",
    # Status / history
    "status_usage": "⚠️ 用法: /status ORDER_ID",
    "order_not_found": "⚠️ *订单未找到:*\n未找到订单 ID {order_id}。",
    "order_status": "*订单 ID:* {order_id}\n*状态:* {status}",
    "order_status_error": "\n*错误:* {error}",
    "query_failed": "❌ *查询失败:*\n{error}",
    "history_header": "📄 *最近的闪兑交易历史:*\n",
    "history_item": (
        "{index}. *订单 ID:* {order_id}\n   *从:* {from_asset}\n   *到:* {to_asset}\n"
        "   *数量:* {amount}\n   *状态:* {status}\n   *时间:* {timestamp}\n"
    ),
    "history_empty": "✅ 当前没有闪兑交易历史。",
    # Exchange / asset info
    "pair_query_invalid": "⚠️ 无效的交易对查询格式。请使用 FROM:TO 的格式。",
    "exchange_info_header": "📈 *交易对信息:*\n",
    "exchange_info_item": "{index}. *交易对:* {from_asset} ↔️ {to_asset}\n   *最小金额:* {min_amount}\n   *最大金额:* {max_amount}\n",
    "exchange_info_not_found": "⚠️ 以下交易对信息未找到或获取失败:\n{items}",
    "exchange_info_empty": "⚠️ 未找到任何有效的交易对信息。",
    "exchange_info_failed": "❌ *获取交易对信息失败:*\n{error}",
    "asset_query_invalid": "⚠️ 无效的资产查询格式。请使用 ASSET1,ASSET2 的格式。",
    "asset_info_header": "📊 *资产精度信息:*\n",
    "asset_info_item": "{index}. *资产:* {asset}\n   *精度:* {precision}\n",
    "asset_info_not_found": "⚠️ 以下资产信息未找到或获取失败:\n{items}",
    "asset_info_empty": "⚠️ 未找到任何有效的资产精度信息。",
    # Admin
    "permission_denied": "⚠️ 您没有权限执行此操作。",
    "pair_format_invalid": "⚠️ 无效的资产兑换对格式。请使用 FROM:TO 的格式。",
    "pairs_added": "✅ 成功添加以下资产兑换对:\n{items}\n",
    "pairs_existing": "⚠️ 以下资产兑换对已存在，未重复添加:\n{items}\n",
    "pairs_removed": "✅ 成功移除以下资产兑换对:\n{items}\n",
    "pairs_not_found": "⚠️ 以下资产兑换对不存在，无法移除:\n{items}\n",
    "pairs_update_failed": "❌ *更新资产兑换对失败:*\n{error}",
    # Notifications
    "admin_error_report": "⚠️ *错误报告:*\n{message}",
    "startup": "🚀 机器人已成功上线！",
}

_EN = {
    # Start / help / menu
    "welcome": "Welcome to *Convert Assistant*! Your personal crypto conversion partner. Pick an action from the menu below.",
    "menu_prompt": "Please choose an action:",
    "menu_convert": "Convert now",
    "menu_status": "Order status",
    "menu_profile": "My profile",
    "menu_help": "Help",
    "convert_prompt": "Send a conversion command, e.g. /convert ETH BTC 0.5",
    "status_prompt": "Send an order ID, e.g. /status 12345",
    "profile_unavailable": "Profile is not available yet.",
    "unknown_command": "⚠️ Unknown command. Use /help to see the available commands.",
    "unknown_action": "Unknown action.",
    "help": (
        "*Available commands:*\n"
        "/convert FROM TO AMOUNT - instant conversion\n"
        "/placeorder FROM TO AMOUNT PRICE - place a limit order\n"
        "/cancelorder ORDER_ID - cancel a limit order\n"
        "/status ORDER_ID - order status\n"
        "/tradehistory - recent orders\n"
        "/openorders - open limit orders\n"
        "/exchangeinfo [FROM:TO,...] - pair limits\n"
        "/assetinfo ASSET1,ASSET2 - asset precision\n"
        "/language zh|en - switch language"
    ),
    "language_set": "✅ Language switched to English.",
    "language_usage": "⚠️ Usage: /language {languages}",
    # Conversion
    "convert_usage": "⚠️ Usage: /convert FROM TO AMOUNT, e.g. /convert ETH BTC 0.5",
    "invalid_amount": "❌ Amount must be a positive number.",
    "amount_too_long": "❌ Amount has too many digits, please shorten it.",
    "rate_limit_exceeded": "⚠️ *Rate limit exceeded:*\nPlease try again later.",
    "pair_not_supported": "⚠️ *Pair not supported:*\n{from_asset} ↔️ {to_asset}",
    "convert_confirm": "Do you want to convert *{amount}* {from_asset} to *{to_asset}*?",
    "confirm_button": "Confirm",
    "cancel_button": "Cancel",
    "convert_canceled": "Conversion canceled.",
    "convert_already_processed": "⚠️ This conversion request was already handled. Start a new /convert.",
    "convert_success": "✅ *Conversion completed!*\n\n*From:* {from_asset}\n*To:* {to_asset}\n*Amount:* {amount}\n*Order ID:* {order_id}",
    "convert_failed": "❌ *Conversion failed:*\n{error}",
    # Limit orders
    "placeorder_usage": "⚠️ Usage: /placeorder FROM TO AMOUNT PRICE",
    "invalid_amount_price": "❌ *Order rejected:*\nAmount and price must be positive numbers.",
    "limit_order_placed": (
        "✅ *Limit order placed!*\n\n*From:* {from_asset}\n*To:* {to_asset}\n"
        "*Amount:* {amount}\n*Price:* {price}\n*Order ID:* {order_id}"
    ),
    "limit_order_failed": "❌ *Limit order failed:*\n{error}",
    "cancel_usage": "⚠️ Usage: /cancelorder ORDER_ID",
    "order_canceled": "✅ *Limit order canceled!*\n\n*Order ID:* {order_id}",
    "cancel_failed": "❌ *Limit order cancellation failed:*\n{error}",
    "open_orders_header": "📋 *Open limit orders:*\n",
    "open_orders_item": "{index}. *Order ID:* {order_id}\n   *From:* {from_asset}\n   *To:* {to_asset}\n   *Amount:* {amount}\n   *Price:* {price}\n",
    "open_orders_empty": "✅ There are no open limit orders.",
    "open_orders_failed": "❌ *Could not load open orders:*\n{error}",
    # Status / history
    "status_usage": "⚠️ Usage: /status ORDER_ID",
    "order_not_found": "⚠️ *Order not found:*\nNo order with ID {order_id}.",
    "order_status": "*Order ID:* {order_id}\n*Status:* {status}",
    "order_status_error": "\n*Error:* {error}",
    "query_failed": "❌ *Query failed:*\n{error}",
    "history_header": "📄 *Recent conversions:*\n",
    "history_item": (
        "{index}. *Order ID:* {order_id}\n   *From:* {from_asset}\n   *To:* {to_asset}\n"
        "   *Amount:* {amount}\n   *Status:* {status}\n   *Time:* {timestamp}\n"
    ),
    "history_empty": "✅ No conversion history yet.",
    # Exchange / asset info
    "pair_query_invalid": "⚠️ Invalid pair query. Use the FROM:TO format.",
    "exchange_info_header": "📈 *Pair information:*\n",
    "exchange_info_item": "{index}. *Pair:* {from_asset} ↔️ {to_asset}\n   *Min amount:* {min_amount}\n   *Max amount:* {max_amount}\n",
    "exchange_info_not_found": "⚠️ No information found for:\n{items}",
    "exchange_info_empty": "⚠️ No pair information found.",
    "exchange_info_failed": "❌ *Could not load pair information:*\n{error}",
    "asset_query_invalid": "⚠️ Invalid asset query. Use the ASSET1,ASSET2 format.",
    "asset_info_header": "📊 *Asset precision:*\n",
    "asset_info_item": "{index}. *Asset:* {asset}\n   *Precision:* {precision}\n",
    "asset_info_not_found": "⚠️ No information found for:\n{items}",
    "asset_info_empty": "⚠️ No asset precision information found.",
    # Admin
    "permission_denied": "⚠️ You are not allowed to perform this action.",
    "pair_format_invalid": "⚠️ Invalid pair format. Use FROM:TO.",
    "pairs_added": "✅ Added pairs:\n{items}\n",
    "pairs_existing": "⚠️ Already present, not added again:\n{items}\n",
    "pairs_removed": "✅ Removed pairs:\n{items}\n",
    "pairs_not_found": "⚠️ Not found, nothing removed:\n{items}\n",
    "pairs_update_failed": "❌ *Could not update supported pairs:*\n{error}",
    # Notifications
    "admin_error_report": "⚠️ *Error report:*\n{message}",
    "startup": "🚀 Bot is online!",
}

MESSAGES: dict[str, dict[str, str]] = {
    "zh": _ZH,
    "en": _EN,
}

SUPPORTED_LANGUAGES = tuple(MESSAGES)


def get_text(key: str, language: str = FALLBACK_LANGUAGE) -> str:
    """Look up a message template.

    Args:
        key: Message key.
        language: Preferred language; unknown languages and missing keys fall
            back to the default catalog.

    Returns:
        The template string.

    Raises:
        KeyError: If the key is missing from the fallback catalog too.
    """
    catalog = MESSAGES.get(language, MESSAGES[FALLBACK_LANGUAGE])
    if key in catalog:
        return catalog[key]
    return MESSAGES[FALLBACK_LANGUAGE][key]
