"""SQLAlchemy backed run state store for deployments sharing a database."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any

from sqlalchemy import Connection, Engine, text
from sqlalchemy.exc import SQLAlchemyError

from call_tracker.domain import RunState

from .interfaces import RunStateMutator, RunStateStoreError, RunStateStorePort
from .serialization import db_run_state_from_record, db_run_state_to_record

logger = logging.getLogger(__name__)


class SQLAlchemyRunStateStore(RunStateStorePort):
    """Run state store backed by the single-row `run_counter` table.

    The table is created by the Alembic baseline migration. Read-modify-write
    sequences run in one transaction under an in-process lock, and PostgreSQL
    additionally takes a row lock with `SELECT ... FOR UPDATE`.
    """

    _IO_ATTEMPTS = 2
    _ROW_ID = 1

    def __init__(self, engine: Engine):
        """Initialize the SQL store.

        Args:
            engine: SQLAlchemy engine used for all persistence operations.

        Raises:
            ValueError: Raised when engine is None.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine
        self._lock = threading.Lock()
        self._row_lock_clause = " FOR UPDATE" if engine.dialect.name == "postgresql" else ""

    def db_store_label(self) -> str:
        """Return the target database URL for diagnostics."""

        return self._engine.url.render_as_string(hide_password=True)

    def db_run_state_read(self) -> RunState:
        """Return the persisted run state, falling back to defaults.

        Returns:
            RunState: Persisted state or zero-valued defaults.
        """

        with self._lock:
            for attempt in range(1, self._IO_ATTEMPTS + 1):
                try:
                    with self._engine.connect() as connection:
                        return self._db_fetch_state(connection, for_update=False)
                except SQLAlchemyError as error:
                    if attempt < self._IO_ATTEMPTS:
                        logger.warning("Retrying run_counter read after error: %s", error)
                        continue
                    logger.error("run_counter read failed, using defaults: %s", error)
            return RunState()

    def db_run_state_write(self, state: RunState) -> RunState:
        """Persist the full run state.

        Args:
            state: State to persist.

        Returns:
            RunState: The persisted state.

        Raises:
            RunStateStoreError: Raised when the write fails twice.
        """

        return self.db_run_state_update(lambda _current: state)

    def db_run_state_update(self, mutator: RunStateMutator) -> RunState:
        """Apply one atomic read-modify-write sequence in a single transaction.

        Args:
            mutator: Function mapping the current state to the new state.

        Returns:
            RunState: The persisted new state.

        Raises:
            RunStateStoreError: Raised when the write fails twice.
        """

        last_error: SQLAlchemyError | None = None
        with self._lock:
            for attempt in range(1, self._IO_ATTEMPTS + 1):
                try:
                    with self._engine.begin() as connection:
                        updated_state = mutator(self._db_fetch_state(connection, for_update=True))
                        self._db_store_state(connection, updated_state)
                        return updated_state
                except SQLAlchemyError as error:
                    last_error = error
                    if attempt < self._IO_ATTEMPTS:
                        logger.warning("Retrying run_counter write after error: %s", error)
        raise RunStateStoreError("failed to persist run state to run_counter") from last_error

    def _db_fetch_state(self, connection: Connection, for_update: bool) -> RunState:
        lock_clause = self._row_lock_clause if for_update else ""
        row = connection.execute(
            text(
                "SELECT total, success, last_run, last_update, callback_tokens "
                "FROM run_counter WHERE run_counter_id = :row_id" + lock_clause
            ),
            {"row_id": self._ROW_ID},
        ).mappings().first()
        if row is None:
            return RunState()

        try:
            return db_run_state_from_record(self._db_map_row(row))
        except ValueError as error:
            logger.warning("run_counter row is corrupt, using defaults: %s", error)
            return RunState()

    def _db_store_state(self, connection: Connection, state: RunState) -> None:
        record = db_run_state_to_record(state)
        parameters = {
            "row_id": self._ROW_ID,
            "total": record["total"],
            "success": record["success"],
            "last_run": record["lastRun"],
            "last_update": record["lastUpdate"],
            "callback_tokens": json.dumps(record["callbackTokens"]),
        }
        updated = connection.execute(
            text(
                "UPDATE run_counter SET "
                "total = :total, success = :success, last_run = :last_run, "
                "last_update = :last_update, callback_tokens = :callback_tokens "
                "WHERE run_counter_id = :row_id"
            ),
            parameters,
        )
        if updated.rowcount == 0:
            connection.execute(
                text(
                    "INSERT INTO run_counter ("
                    "run_counter_id, total, success, last_run, last_update, callback_tokens"
                    ") VALUES ("
                    ":row_id, :total, :success, :last_run, :last_update, :callback_tokens"
                    ")"
                ),
                parameters,
            )

    def _db_map_row(self, row: Any) -> dict[str, Any]:
        tokens_value = row["callback_tokens"]
        try:
            callback_tokens = json.loads(tokens_value) if tokens_value else []
        except ValueError as error:
            raise ValueError("callback_tokens must be a JSON array") from error
        return {
            "total": row["total"],
            "success": row["success"],
            "lastRun": row["last_run"],
            "lastUpdate": row["last_update"],
            "callbackTokens": callback_tokens,
        }
