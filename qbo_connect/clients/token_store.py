"""Relational store for QuickBooks OAuth token records."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Union

from sqlalchemy import Column, MetaData, Table, Text, create_engine, insert, select, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from qbo_connect.models import TokenRecord

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when the credential store rejects or cannot accept a write."""


class SQLTokenStore:
    """Append-only token table accessed through a pooled SQLAlchemy engine.

    Records are only ever inserted. Repeated authorizations for the same realm
    accumulate rows.
    """

    def __init__(
        self,
        url: Union[str, URL],
        table_name: str = "tokens",
        create_table: bool = True,
    ) -> None:
        self._url = make_url(url)
        self._create_table = create_table
        self._metadata = MetaData()
        self._table = Table(
            table_name,
            self._metadata,
            Column("access_token", Text, nullable=False),
            Column("refresh_token", Text, nullable=False),
            Column("realm_id", Text, nullable=False),
        )
        connect_args = {}
        if self._url.get_backend_name() == "sqlite":
            connect_args["check_same_thread"] = False
        self._engine: Engine = create_engine(
            self._url,
            pool_pre_ping=True,
            hide_parameters=True,
            connect_args=connect_args,
        )

    @property
    def table_name(self) -> str:
        return self._table.name

    def connect(self) -> bool:
        """
        Open a first connection and prepare the table.

        Failures are logged, not raised: the service keeps running and the
        flow reports a persistence error when a write is attempted.
        """
        try:
            with self._engine.begin() as conn:
                conn.execute(text("SELECT 1"))
                if self._create_table:
                    self._metadata.create_all(conn, checkfirst=True)
        except SQLAlchemyError:
            logger.exception(
                "Database connection error (%s)",
                self._url.render_as_string(hide_password=True),
            )
            return False
        logger.info("Database connected successfully!")
        return True

    def _insert_sync(self, record: TokenRecord) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                insert(self._table).values(
                    access_token=record.access_token,
                    refresh_token=record.refresh_token,
                    realm_id=record.realm_id,
                )
            )

    async def insert_token_record(self, record: TokenRecord) -> None:
        """Insert one token row; any database failure becomes PersistenceError."""
        try:
            await asyncio.to_thread(self._insert_sync, record)
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc
        logger.info("QBO tokens saved to database for realm %s", record.realm_id)

    def list_token_records(self, realm_id: Optional[str] = None) -> list[TokenRecord]:
        """Return stored records, optionally filtered by realm."""
        query = select(
            self._table.c.access_token,
            self._table.c.refresh_token,
            self._table.c.realm_id,
        )
        if realm_id is not None:
            query = query.where(self._table.c.realm_id == realm_id)
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(query).mappings().all()
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc
        return [TokenRecord(**row) for row in rows]

    def dispose(self) -> None:
        self._engine.dispose()


__all__ = ["PersistenceError", "SQLTokenStore"]
