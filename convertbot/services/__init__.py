"""Business logic services package.

Contains the exchange REST client, the SQLite order store, the per-chat rate
limiter, the supported pairs registry and the conversion service that ties
exchange calls to order bookkeeping.
"""
