"""Convert Bot Application Package.

A Telegram bot that converts between cryptocurrency assets through an
exchange's convert REST API, keeps a local record of every conversion and
limit order, and reports order status back to the user.

The application follows a modular architecture with separate concerns for:
- Bot handlers, menus and localized message rendering
- Exchange REST client and order bookkeeping
- Per-chat rate limiting and the admin-managed supported-pairs registry
"""
