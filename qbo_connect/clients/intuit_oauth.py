"""
Intuit OAuth utilities.

Builds the QuickBooks consent URL, exchanges authorization codes for tokens and
issues bearer-authenticated calls against the accounting API.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import httpx
from fastapi import status
from pydantic import ValidationError

from qbo_connect.core.config import IntuitSettings, OAuthSettings
from qbo_connect.models import TokenSet
from qbo_connect.schemas import CompanyInfo

logger = logging.getLogger(__name__)


class ExchangeError(Exception):
    """Raised when the authorization code cannot be exchanged for tokens."""


class ApiCallError(Exception):
    """Raised when an authenticated QuickBooks API call fails."""


class IntuitOAuthClient:
    """Build Intuit authorization URLs, exchange codes and call the API.

    The most recent exchange result is kept in :attr:`token`. That slot is
    shared by every request served by this instance, so callers handling more
    than one user should pass the token they obtained explicitly.
    """

    AUTH_BASE_URL = "https://appcenter.intuit.com/connect/oauth2"
    TOKEN_URL = "https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer"
    API_BASE_URLS = {
        "sandbox": "https://sandbox-quickbooks.api.intuit.com",
        "production": "https://quickbooks.api.intuit.com",
    }

    def __init__(
        self,
        intuit_settings: IntuitSettings,
        oauth_settings: OAuthSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._intuit = intuit_settings
        self._oauth = oauth_settings
        self._transport = transport
        self._token: Optional[TokenSet] = None

    @property
    def api_base_url(self) -> str:
        return self.API_BASE_URLS[self._intuit.environment]

    @property
    def token(self) -> Optional[TokenSet]:
        """Token set obtained by the most recent successful exchange."""
        return self._token

    def _http_client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    def build_authorization_url(self, scopes: Iterable[str], state: str) -> str:
        """Construct the Intuit OAuth consent URL."""
        params = {
            "client_id": self._intuit.client_id,
            "response_type": "code",
            "scope": " ".join(scopes),
            "redirect_uri": self._intuit.redirect_uri,
            "state": state,
        }
        return f"{self.AUTH_BASE_URL}?{urlencode(params)}"

    async def exchange_code_for_tokens(
        self, callback_url: str, expected_state: Optional[str] = None
    ) -> TokenSet:
        """
        Exchange the authorization code carried by ``callback_url`` for tokens.

        The callback URL must be the one Intuit redirected the browser to, query
        string included: the code, state and realm id all live there.
        """
        query = parse_qs(urlparse(callback_url).query)

        def _param(name: str) -> Optional[str]:
            values = query.get(name)
            return values[0] if values else None

        error = _param("error")
        if error:
            raise ExchangeError(f"Authorization was not granted: {error}")

        code = _param("code")
        realm_id = _param("realmId")
        if not code:
            raise ExchangeError("Callback URL does not carry an authorization code.")
        if not realm_id:
            raise ExchangeError("Callback URL does not carry a realmId.")
        if expected_state is not None and _param("state") != expected_state:
            raise ExchangeError("OAuth state mismatch.")

        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self._intuit.redirect_uri,
        }
        try:
            async with self._http_client(timeout=20.0) as client:
                response = await client.post(
                    self.TOKEN_URL,
                    data=payload,
                    auth=(self._intuit.client_id, self._intuit.client_secret),
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise ExchangeError(f"Token endpoint unreachable: {exc}") from exc

        if response.status_code != status.HTTP_200_OK:
            raise ExchangeError(response.text)

        try:
            token_payload: Dict[str, Any] = response.json()
        except ValueError as exc:
            raise ExchangeError("Token endpoint returned a non-JSON body.") from exc
        if not isinstance(token_payload, dict):
            raise ExchangeError("Malformed token payload returned from Intuit.")

        access_token = token_payload.get("access_token")
        refresh_token = token_payload.get("refresh_token")
        if not access_token or not refresh_token:
            raise ExchangeError("Incomplete token payload returned from Intuit.")

        try:
            token = TokenSet(
                access_token=access_token,
                refresh_token=refresh_token,
                realm_id=realm_id,
                token_type=token_payload.get("token_type", "bearer"),
                expires_in=token_payload.get("expires_in"),
                x_refresh_token_expires_in=token_payload.get("x_refresh_token_expires_in"),
                id_token=token_payload.get("id_token"),
            )
        except ValidationError as exc:
            raise ExchangeError("Malformed token payload returned from Intuit.") from exc
        self._token = token
        logger.info("Exchanged authorization code for realm %s", realm_id)
        return token

    async def call_authenticated_endpoint(
        self,
        path: str,
        token: Optional[TokenSet] = None,
        timeout: Optional[float] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        GET ``/v3/company/{realm_id}/{path}`` with the given (or current) token.

        Returns the decoded JSON body.
        """
        token = token or self._token
        if token is None:
            raise ApiCallError("No access token available; complete the OAuth flow first.")

        url = f"{self.api_base_url}/v3/company/{token.realm_id}/{path.lstrip('/')}"
        query: Dict[str, Any] = {"minorversion": self._oauth.minor_version}
        if params:
            query.update(params)
        headers = {
            "Authorization": f"Bearer {token.access_token}",
            "Accept": "application/json",
        }
        effective_timeout = timeout if timeout is not None else self._oauth.api_timeout_seconds

        try:
            async with self._http_client(timeout=effective_timeout) as client:
                response = await client.get(url, params=query, headers=headers)
        except httpx.TimeoutException as exc:
            raise ApiCallError(
                f"QuickBooks API call timed out after {effective_timeout:g}s."
            ) from exc
        except httpx.HTTPError as exc:
            raise ApiCallError(f"QuickBooks API unreachable: {exc}") from exc

        if not response.is_success:
            raise ApiCallError(
                f"QuickBooks API returned {response.status_code}: {response.text}"
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ApiCallError("QuickBooks API returned a non-JSON body.") from exc

    async def fetch_company_info(
        self, token: Optional[TokenSet] = None, timeout: Optional[float] = None
    ) -> CompanyInfo:
        """Read the ``CompanyInfo`` entity of the authorized company."""
        token = token or self._token
        if token is None:
            raise ApiCallError("No access token available; complete the OAuth flow first.")

        body = await self.call_authenticated_endpoint(
            f"companyinfo/{token.realm_id}", token=token, timeout=timeout
        )
        try:
            return CompanyInfo.model_validate(body["CompanyInfo"])
        except (KeyError, TypeError, ValidationError) as exc:
            raise ApiCallError("Unexpected CompanyInfo payload.") from exc


__all__ = ["ApiCallError", "ExchangeError", "IntuitOAuthClient"]
