"""
Domain models for QuickBooks OAuth tokens.
"""

from typing import Optional

from pydantic import BaseModel, Field


class TokenSet(BaseModel):
    """Tokens returned by a successful authorization-code exchange."""

    access_token: str
    refresh_token: str
    realm_id: str = Field(..., description="Authorized QuickBooks company id.")
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    x_refresh_token_expires_in: Optional[int] = None
    id_token: Optional[str] = None


class TokenRecord(BaseModel):
    """Row persisted in the token table."""

    access_token: str
    refresh_token: str
    realm_id: str

    @classmethod
    def from_token_set(cls, token: TokenSet) -> "TokenRecord":
        return cls(
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            realm_id=token.realm_id,
        )


__all__ = ["TokenRecord", "TokenSet"]
