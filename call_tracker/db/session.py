"""Database engine utilities.

This module centralizes database connectivity primitives to enforce the db-layer
boundary for all SQLAlchemy usage.
"""

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url


def db_create_engine(database_url: str) -> Engine:
    """Create a SQLAlchemy engine for the given database.

    SQLite engines allow use from the FastAPI threadpool and from the job
    runner's watcher threads.

    Args:
        database_url: SQLAlchemy database URL.

    Returns:
        Engine: Configured SQLAlchemy engine.

    Raises:
        ValueError: Raised when the database URL is blank.
    """

    if not database_url.strip():
        raise ValueError("database_url must not be blank")

    parsed_url = make_url(database_url)
    if parsed_url.get_backend_name() == "sqlite":
        return create_engine(parsed_url, connect_args={"check_same_thread": False})
    return create_engine(parsed_url, pool_pre_ping=True)
