"""Expose dependency helpers for FastAPI routers."""

from .clients import get_connection_service, get_intuit_oauth_client, get_token_store
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_connection_service",
    "get_intuit_oauth_client",
    "get_token_store",
]
