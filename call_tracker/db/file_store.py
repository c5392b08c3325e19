"""JSON file backed run state store with serialized atomic updates."""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import TextIO

from call_tracker.domain import RunState

from .interfaces import RunStateMutator, RunStateStoreError, RunStateStorePort
from .serialization import db_run_state_from_record, db_run_state_to_record

logger = logging.getLogger(__name__)


class JsonFileRunStateStore(RunStateStorePort):
    """Run state store persisting one JSON record to the local filesystem.

    Every operation holds an in-process lock plus an exclusive `flock` on a
    sidecar lock file, so store instances in other threads or processes that
    share the counter file are serialized too. Writes go through a temporary
    file renamed over the target, so readers only ever see fully written records.
    """

    _IO_ATTEMPTS = 2

    def __init__(self, counter_path: Path):
        """Initialize the file store.

        Args:
            counter_path: Location of the persisted counter record.

        Raises:
            ValueError: Raised when counter_path is None.
        """

        if counter_path is None:
            raise ValueError("counter_path must not be None")
        self._counter_path = Path(counter_path)
        self._lock_path = self._counter_path.with_name(f".{self._counter_path.name}.lock")
        self._lock = threading.Lock()

    def db_store_label(self) -> str:
        """Return the counter file location for diagnostics."""

        return str(self._counter_path)

    def db_run_state_read(self) -> RunState:
        """Return the persisted run state, falling back to defaults.

        Returns:
            RunState: Persisted state or zero-valued defaults.
        """

        with self._lock:
            try:
                lock_handle = self._db_acquire_file_lock()
            except OSError as error:
                # Writers replace the file atomically; an unlocked read sees a whole record.
                logger.warning("Counter lock %s unavailable, reading without it: %s", self._lock_path, error)
                return self._db_read_unlocked()
            try:
                return self._db_read_unlocked()
            finally:
                self._db_release_file_lock(lock_handle)

    def db_run_state_write(self, state: RunState) -> RunState:
        """Persist the full run state.

        Args:
            state: State to persist.

        Returns:
            RunState: The persisted state.

        Raises:
            RunStateStoreError: Raised when the write fails twice or the lock cannot be taken.
        """

        return self.db_run_state_update(lambda _current: state)

    def db_run_state_update(self, mutator: RunStateMutator) -> RunState:
        """Apply one atomic read-modify-write sequence under the store locks.

        Args:
            mutator: Function mapping the current state to the new state.

        Returns:
            RunState: The persisted new state.

        Raises:
            RunStateStoreError: Raised when the write fails twice or the lock cannot be taken.
        """

        with self._lock:
            try:
                lock_handle = self._db_acquire_file_lock()
            except OSError as error:
                raise RunStateStoreError(f"failed to lock run state file {self._lock_path}") from error
            try:
                updated_state = mutator(self._db_read_unlocked())
                self._db_write_unlocked(updated_state)
                return updated_state
            finally:
                self._db_release_file_lock(lock_handle)

    def _db_acquire_file_lock(self) -> TextIO:
        self._lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock_handle = open(self._lock_path, "a", encoding="utf-8")  # pylint: disable=consider-using-with
        try:
            fcntl.flock(lock_handle, fcntl.LOCK_EX)
        except OSError:
            lock_handle.close()
            raise
        return lock_handle

    @staticmethod
    def _db_release_file_lock(lock_handle: TextIO) -> None:
        try:
            fcntl.flock(lock_handle, fcntl.LOCK_UN)
        finally:
            lock_handle.close()

    def _db_read_unlocked(self) -> RunState:
        for attempt in range(1, self._IO_ATTEMPTS + 1):
            try:
                raw_bytes = self._counter_path.read_bytes()
            except FileNotFoundError:
                return RunState()
            except OSError as error:
                if attempt < self._IO_ATTEMPTS:
                    logger.warning("Retrying counter read from %s after error: %s", self._counter_path, error)
                    continue
                logger.error("Counter read from %s failed, using defaults: %s", self._counter_path, error)
                return RunState()

            try:
                return db_run_state_from_record(json.loads(raw_bytes.decode("utf-8")))
            except (ValueError, RecursionError) as error:
                logger.warning("Counter file %s is corrupt, using defaults: %s", self._counter_path, error)
                return RunState()
        return RunState()

    def _db_write_unlocked(self, state: RunState) -> None:
        body = json.dumps(db_run_state_to_record(state), indent=2)
        last_error: OSError | None = None
        for attempt in range(1, self._IO_ATTEMPTS + 1):
            try:
                self._db_replace_file(body)
                return
            except OSError as error:
                last_error = error
                if attempt < self._IO_ATTEMPTS:
                    logger.warning("Retrying counter write to %s after error: %s", self._counter_path, error)
        raise RunStateStoreError(f"failed to persist run state to {self._counter_path}") from last_error

    def _db_replace_file(self, body: str) -> None:
        self._counter_path.parent.mkdir(parents=True, exist_ok=True)
        file_descriptor, temporary_name = tempfile.mkstemp(
            prefix=f".{self._counter_path.name}.",
            suffix=".tmp",
            dir=self._counter_path.parent,
        )
        try:
            with os.fdopen(file_descriptor, "w", encoding="utf-8") as handle:
                handle.write(body)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temporary_name, self._counter_path)
        except OSError:
            Path(temporary_name).unlink(missing_ok=True)
            raise
