"""Domain model exports."""

from .token import TokenRecord, TokenSet

__all__ = ["TokenRecord", "TokenSet"]
