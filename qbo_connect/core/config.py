"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the credential store and
the operator scripts share a consistent configuration surface.
"""

from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from sqlalchemy.engine import URL, make_url

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file into the environment."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class IntuitSettings(BaseSettings):
    """Credentials and environment for the Intuit developer app."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    client_id: str = Field(..., validation_alias="QBO_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="QBO_CLIENT_SECRET")
    redirect_uri: str = Field(
        ...,
        validation_alias="QBO_REDIRECT_URI",
        description="Must match the redirect URI registered with Intuit exactly.",
    )
    environment: Literal["sandbox", "production"] = Field(
        "sandbox", validation_alias="QBO_ENVIRONMENT"
    )

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_environment(cls, value: str) -> str:
        return value.strip().lower() if isinstance(value, str) else value


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        ("com.intuit.quickbooks.accounting", "openid"),
        validation_alias="QBO_SCOPES",
    )
    state: str = Field(
        "security_state_token",
        validation_alias="QBO_OAUTH_STATE",
        description="Fixed anti-forgery value round-tripped through the consent screen.",
    )
    api_timeout_seconds: float = Field(
        60.0,
        validation_alias="QBO_API_TIMEOUT",
        description="Timeout for the verification call; the sandbox is slow.",
    )
    minor_version: str = Field("75", validation_alias="QBO_MINOR_VERSION")

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: Union[str, tuple[str, ...], list[str]]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope.strip() for scope in value.split(",") if scope.strip())


class DatabaseSettings(BaseSettings):
    """Credential store connection settings.

    Either ``DATABASE_URL`` or the discrete ``DB_*`` fields are accepted, never
    both.
    """

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    url: Optional[str] = Field(None, validation_alias="DATABASE_URL")
    host: Optional[str] = Field(None, validation_alias="DB_HOST")
    port: int = Field(5432, validation_alias="DB_PORT")
    user: Optional[str] = Field(None, validation_alias="DB_USER")
    password: Optional[str] = Field(None, validation_alias="DB_PASSWORD")
    name: Optional[str] = Field(None, validation_alias="DB_NAME")
    token_table: str = Field("tokens", validation_alias="DB_TOKEN_TABLE")
    create_table: bool = Field(
        True,
        validation_alias="DB_CREATE_TABLE",
        description="Create the token table at startup when it does not exist.",
    )

    @field_validator("token_table")
    @classmethod
    def _validate_table(cls, value: str) -> str:
        if not _IDENTIFIER.match(value):
            raise ValueError(f"Invalid table name {value!r}.")
        return value

    @model_validator(mode="after")
    def _single_shape(self) -> "DatabaseSettings":
        discrete = any((self.host, self.user, self.name))
        if self.url and discrete:
            raise ValueError(
                "Configure either DATABASE_URL or the DB_HOST/DB_USER/DB_NAME "
                "fields, not both."
            )
        if not self.url and not discrete:
            raise ValueError(
                "No database configured. Set DATABASE_URL or DB_HOST/DB_NAME."
            )
        if discrete and not (self.host and self.name):
            raise ValueError("DB_HOST and DB_NAME are required together.")
        return self

    def sqlalchemy_url(self) -> URL:
        """Return the SQLAlchemy URL for whichever shape is configured."""
        if self.url:
            raw = self.url
            # Heroku/Render still hand out the scheme SQLAlchemy dropped in 1.4.
            if raw.startswith("postgres://"):
                raw = "postgresql://" + raw[len("postgres://"):]
            return make_url(raw)
        return URL.create(
            "postgresql+psycopg2",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.name,
        )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    port: int = Field(3000, validation_alias="PORT")
    intuit: IntuitSettings = Field(default_factory=IntuitSettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "IntuitSettings",
    "OAuthSettings",
    "get_settings",
]
