"""Alembic runner for the `run_counter` table of the database state backend.

The target URL comes from `sqlalchemy.url` when the caller sets it (tests),
otherwise from `DATABASE_URL` via the service settings. Revisions are written
by hand, so no metadata is attached for autogenerate.
"""
# pylint: disable=no-member

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from call_tracker.config import config_load_database_url

migration_config = context.config

if migration_config.config_file_name is not None:
    fileConfig(migration_config.config_file_name)


def _migration_database_url() -> str:
    configured_url = migration_config.get_main_option("sqlalchemy.url")
    return configured_url or config_load_database_url()


def _migration_emit_sql() -> None:
    context.configure(url=_migration_database_url(), literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def _migration_apply() -> None:
    engine = create_engine(_migration_database_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    _migration_emit_sql()
else:
    _migration_apply()
