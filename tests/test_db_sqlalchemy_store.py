"""Regression tests for the run counter migration and SQL run state store."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect, text

from call_tracker.db import SQLAlchemyRunStateStore, db_create_engine
from call_tracker.domain import RunState, domain_utc_now

_REPOSITORY_ROOT = Path(__file__).resolve().parents[1]


def _migration_upgrade_sqlite(tmp_path: Path) -> str:
    """Apply all migrations to a fresh SQLite database.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        str: SQLAlchemy URL of the migrated database.

    Raises:
        RuntimeError: Raised by Alembic when a migration fails.
    """

    database_url = f"sqlite:///{tmp_path / 'counter.db'}"
    alembic_config = Config()
    alembic_config.set_main_option("script_location", str(_REPOSITORY_ROOT / "alembic"))
    alembic_config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(alembic_config, "head")
    return database_url


def test_migration_creates_seeded_run_counter_table(tmp_path: Path) -> None:
    """Create the single-row counter table with zero-valued seed row.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate migrated schema.

    Raises:
        AssertionError: Raised when table or seed row is missing.
    """

    engine = db_create_engine(_migration_upgrade_sqlite(tmp_path))
    try:
        column_names = {column["name"] for column in inspect(engine).get_columns("run_counter")}
        with engine.connect() as connection:
            seed_row = connection.execute(text("SELECT total, success, last_run FROM run_counter")).one()
    finally:
        engine.dispose()

    assert column_names == {"run_counter_id", "total", "success", "last_run", "last_update", "callback_tokens"}
    assert tuple(seed_row) == (0, 0, None)


def test_sqlalchemy_store_round_trips_state(tmp_path: Path) -> None:
    """Read back the exact state written to the database.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate persistence.

    Raises:
        AssertionError: Raised when persisted state differs.
    """

    engine = db_create_engine(_migration_upgrade_sqlite(tmp_path))
    try:
        store = SQLAlchemyRunStateStore(engine=engine)
        started_at = domain_utc_now()
        written_state = RunState(
            total=6,
            completed=2,
            started_at=started_at,
            last_updated_at=started_at,
            callback_tokens=("exec-1", "exec-2"),
        )

        assert store.db_run_state_read() == RunState()
        store.db_run_state_write(written_state)

        assert SQLAlchemyRunStateStore(engine=engine).db_run_state_read() == written_state
    finally:
        engine.dispose()


def test_sqlalchemy_store_inserts_missing_row(tmp_path: Path) -> None:
    """Recreate the counter row when it was deleted.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate insert fallback.

    Raises:
        AssertionError: Raised when the write is lost.
    """

    engine = db_create_engine(_migration_upgrade_sqlite(tmp_path))
    try:
        with engine.begin() as connection:
            connection.execute(text("DELETE FROM run_counter"))
        store = SQLAlchemyRunStateStore(engine=engine)

        store.db_run_state_write(RunState(total=3))

        assert store.db_run_state_read() == RunState(total=3)
    finally:
        engine.dispose()


def test_sqlalchemy_store_serializes_concurrent_updates(tmp_path: Path) -> None:
    """Apply every concurrent increment without lost updates.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate atomic updates.

    Raises:
        AssertionError: Raised when an increment is lost.
    """

    engine = db_create_engine(_migration_upgrade_sqlite(tmp_path))
    try:
        store = SQLAlchemyRunStateStore(engine=engine)
        update_count = 50

        def _increment(_index: int) -> RunState:
            return store.db_run_state_update(lambda state: state.state_with_increment(updated_at=domain_utc_now()))

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(_increment, range(update_count)))

        assert store.db_run_state_read().completed == update_count
    finally:
        engine.dispose()
