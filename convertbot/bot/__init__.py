"""Telegram bot implementation package.

Contains the command dispatcher, persistent menu and confirm keyboards,
localized message templates and MarkdownV2 rendering helpers.
"""
