"""
FastAPI routes for the QuickBooks connection flow.
"""

from __future__ import annotations

import html
import logging
from http import HTTPStatus
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from qbo_connect.clients import ApiCallError, ExchangeError, PersistenceError
from qbo_connect.core.config import AppSettings
from qbo_connect.dependencies import SettingsDependency, get_connection_service
from qbo_connect.services import QuickBooksConnectionService

router = APIRouter()
logger = logging.getLogger(__name__)

EXCHANGE_ERROR_MESSAGE = "Error connecting to QuickBooks. Check Client/Secret/URI."
PERSISTENCE_ERROR_MESSAGE = (
    "Error saving tokens to database. Check DB table structure/credentials."
)
API_CALL_ERROR_MESSAGE = (
    "Error retrieving company data from QuickBooks. Check QBO scope permissions."
)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/", response_class=HTMLResponse)
async def index(settings: AppSettings = SettingsDependency) -> str:
    """Landing page confirming the client configuration loaded."""
    environment = html.escape(settings.intuit.environment)
    return (
        f"QBO Client Initialized. Environment: <strong>{environment}</strong>"
        '<p><a href="/connect">Click here to Connect to QuickBooks</a></p>'
    )


@router.get("/connect")
async def connect(
    service: Annotated[QuickBooksConnectionService, Depends(get_connection_service)],
) -> RedirectResponse:
    """Send the browser to the Intuit consent screen."""
    return RedirectResponse(url=service.authorization_url(), status_code=HTTPStatus.FOUND)


@router.get("/callback", response_class=HTMLResponse)
async def callback(
    request: Request,
    service: Annotated[QuickBooksConnectionService, Depends(get_connection_service)],
) -> HTMLResponse:
    """Complete the exchange, persist the tokens and confirm API access."""
    try:
        result = await service.complete_authorization(str(request.url))
    except ExchangeError as exc:
        logger.error("Token exchange error: %s", exc)
        return HTMLResponse(EXCHANGE_ERROR_MESSAGE, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)
    except PersistenceError as exc:
        logger.error("Database INSERT error: %s", exc)
        return HTMLResponse(
            PERSISTENCE_ERROR_MESSAGE, status_code=HTTPStatus.INTERNAL_SERVER_ERROR
        )
    except ApiCallError as exc:
        logger.error("API call error: %s", exc)
        return HTMLResponse(API_CALL_ERROR_MESSAGE, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)

    company_name = html.escape(result.company.company_name)
    return HTMLResponse(
        "<h1>API Call Success!</h1>"
        "<p>Tokens saved to cloud database and API connection verified.</p>"
        f"<p>Connected to QBO Company: <strong>{company_name}</strong></p>"
    )


__all__ = [
    "API_CALL_ERROR_MESSAGE",
    "EXCHANGE_ERROR_MESSAGE",
    "PERSISTENCE_ERROR_MESSAGE",
    "router",
]
