"""Database layer package for all run state persistence boundaries."""

from .file_store import JsonFileRunStateStore
from .interfaces import RunStateMutator, RunStateStoreError, RunStateStorePort
from .serialization import db_run_state_from_record, db_run_state_to_record
from .session import db_create_engine
from .sqlalchemy_store import SQLAlchemyRunStateStore

__all__ = [
    "JsonFileRunStateStore",
    "RunStateMutator",
    "RunStateStoreError",
    "RunStateStorePort",
    "SQLAlchemyRunStateStore",
    "db_create_engine",
    "db_run_state_from_record",
    "db_run_state_to_record",
]
