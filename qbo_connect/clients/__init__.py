"""Expose constructed client wrappers."""

from .intuit_oauth import ApiCallError, ExchangeError, IntuitOAuthClient
from .token_store import PersistenceError, SQLTokenStore

__all__ = [
    "ApiCallError",
    "ExchangeError",
    "IntuitOAuthClient",
    "PersistenceError",
    "SQLTokenStore",
]
