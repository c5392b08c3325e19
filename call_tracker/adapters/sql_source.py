"""SQLAlchemy record source reading call records from a relational table."""

from __future__ import annotations

import re
from typing import Any

from sqlalchemy import Engine, text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError

from call_tracker.config import FetchJobSettings
from call_tracker.db import db_create_engine

from .errors import RecordSourceConnectionError, RecordSourceQueryError
from .interfaces import CALL_RECORD_COLUMNS, RecordSourcePort

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SQLAlchemyRecordSource(RecordSourcePort):
    """Record source selecting the call record columns from one table."""

    def __init__(self, engine: Engine, table_name: str = "clients"):
        """Initialize SQL record source.

        Args:
            engine: SQLAlchemy engine bound to the source database.
            table_name: Source table name.

        Raises:
            ValueError: Raised when engine is None or table_name is not a plain identifier.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        if not _IDENTIFIER_PATTERN.match(table_name):
            raise ValueError(f"table_name must be a plain SQL identifier, got {table_name!r}")
        self._engine = engine
        self._table_name = table_name

    @classmethod
    def from_settings(cls, settings: FetchJobSettings) -> SQLAlchemyRecordSource:
        """Build a source from `DB_URL` or the individual `DB_*` settings.

        Args:
            settings: Validated fetch job settings.

        Returns:
            SQLAlchemyRecordSource: Source bound to a new engine.
        """

        if settings.db_url:
            database_url: str | URL = settings.db_url
        else:
            database_url = URL.create(
                "postgresql+psycopg",
                username=settings.db_user,
                password=settings.db_password,
                host=settings.db_host,
                port=settings.db_port,
                database=settings.db_name,
            ).render_as_string(hide_password=False)
        return cls(engine=db_create_engine(str(database_url)), table_name=settings.source_table_name)

    def adapter_source_name(self) -> str:
        """Return the source table and target database label."""

        return f"{self._table_name}@{self._engine.url.render_as_string(hide_password=True)}"

    def adapter_fetch_records(self) -> list[dict[str, Any]]:
        """Fetch all rows of the source table.

        Returns:
            list[dict[str, Any]]: Rows keyed by column name.

        Raises:
            RecordSourceConnectionError: Raised when the database cannot be reached.
            RecordSourceQueryError: Raised when the query fails.
        """

        query = text(f"SELECT {', '.join(CALL_RECORD_COLUMNS)} FROM {self._table_name}")
        try:
            try:
                connection = self._engine.connect()
            except SQLAlchemyError as error:
                raise RecordSourceConnectionError(
                    f"database connection failed: {error}",
                    source_name=self.adapter_source_name(),
                ) from error

            with connection:
                try:
                    rows = connection.execute(query).mappings().all()
                except SQLAlchemyError as error:
                    raise RecordSourceQueryError(
                        f"query on {self._table_name} failed: {error}",
                        source_name=self.adapter_source_name(),
                    ) from error
        finally:
            self._engine.dispose()

        return [dict(row) for row in rows]
