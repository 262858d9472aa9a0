"""
Orchestrates the QuickBooks connection: exchange, persist, verify.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from qbo_connect.clients.intuit_oauth import IntuitOAuthClient
from qbo_connect.clients.token_store import SQLTokenStore
from qbo_connect.core.config import OAuthSettings
from qbo_connect.models import TokenRecord, TokenSet
from qbo_connect.schemas import CompanyInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionResult:
    token: TokenSet
    company: CompanyInfo


class QuickBooksConnectionService:
    """Runs the three callback stages strictly in order.

    The exchanged token set is handed to the verification call directly rather
    than read back from the client's shared slot, so overlapping callbacks each
    verify with their own credentials.
    """

    def __init__(
        self,
        oauth_client: IntuitOAuthClient,
        token_store: SQLTokenStore,
        oauth_settings: OAuthSettings,
    ) -> None:
        self._oauth = oauth_client
        self._store = token_store
        self._settings = oauth_settings

    def authorization_url(self) -> str:
        return self._oauth.build_authorization_url(
            scopes=self._settings.scopes, state=self._settings.state
        )

    async def complete_authorization(self, callback_url: str) -> ConnectionResult:
        """
        Exchange the callback's code, store the tokens and confirm API access.

        Raises ``ExchangeError``, ``PersistenceError`` or ``ApiCallError``
        depending on the stage that failed. A stored record is kept even when
        the verification call fails.
        """
        token = await self._oauth.exchange_code_for_tokens(
            callback_url, expected_state=self._settings.state
        )
        await self._store.insert_token_record(TokenRecord.from_token_set(token))
        company = await self._oauth.fetch_company_info(
            token=token, timeout=self._settings.api_timeout_seconds
        )
        logger.info(
            "Verified QuickBooks connection for realm %s (%s)",
            token.realm_id,
            company.company_name,
        )
        return ConnectionResult(token=token, company=company)


__all__ = ["ConnectionResult", "QuickBooksConnectionService"]
