"""Service layer exports."""

from .connection_flow import ConnectionResult, QuickBooksConnectionService

__all__ = ["ConnectionResult", "QuickBooksConnectionService"]
