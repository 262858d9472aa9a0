"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from qbo_connect.clients import IntuitOAuthClient, SQLTokenStore
from qbo_connect.core.config import AppSettings, get_settings
from qbo_connect.dependencies.config import get_app_settings
from qbo_connect.services import QuickBooksConnectionService


@lru_cache()
def _settings() -> AppSettings:
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_intuit_oauth_client() -> IntuitOAuthClient:
    """Create a singleton Intuit OAuth client."""
    settings = _settings()
    return IntuitOAuthClient(settings.intuit, settings.oauth)


@lru_cache()
def get_token_store() -> SQLTokenStore:
    """Provide the shared credential store."""
    settings = _settings()
    return SQLTokenStore(
        settings.database.sqlalchemy_url(),
        table_name=settings.database.token_table,
        create_table=settings.database.create_table,
    )


def get_connection_service(
    oauth_client: Annotated[IntuitOAuthClient, Depends(get_intuit_oauth_client)],
    token_store: Annotated[SQLTokenStore, Depends(get_token_store)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> QuickBooksConnectionService:
    """Build the connection flow from the shared client and store."""
    return QuickBooksConnectionService(
        oauth_client=oauth_client,
        token_store=token_store,
        oauth_settings=settings.oauth,
    )


__all__ = [
    "get_connection_service",
    "get_intuit_oauth_client",
    "get_token_store",
]
