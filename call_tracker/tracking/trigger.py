"""Run trigger service resetting run state and launching the fetch job."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime

from call_tracker.db import RunStateStorePort
from call_tracker.domain import RunState, domain_utc_now
from call_tracker.jobs import JobRunnerPort, RunHandle

logger = logging.getLogger(__name__)


class RunAlreadyActiveError(RuntimeError):
    """Raised when a trigger is rejected because the previous job is still running."""


@dataclass(frozen=True)
class RunTriggerResult:
    """Result contract of one accepted trigger.

    Attributes:
        started: Whether a new run was started.
        pid: Process id of the launched job.
        started_at: Start timestamp of the new run.
        handle: Handle of the launched job.
    """

    started: bool
    pid: int
    started_at: datetime
    handle: RunHandle


class RunTriggerService:
    """Entry point for starting runs.

    The active-run check, the state reset and the job launch happen under one
    lock, so two concurrent triggers cannot both pass the guard.
    """

    def __init__(
        self,
        state_store: RunStateStorePort,
        job_runner: JobRunnerPort,
        overlap_guard_enabled: bool = True,
    ):
        """Initialize run trigger service.

        Args:
            state_store: Run state store.
            job_runner: Runner launching the fetch job.
            overlap_guard_enabled: Whether to reject triggers while a job is still running.

        Raises:
            ValueError: Raised when dependencies are None.
        """

        if state_store is None:
            raise ValueError("state_store must not be None")
        if job_runner is None:
            raise ValueError("job_runner must not be None")
        self._state_store = state_store
        self._job_runner = job_runner
        self._overlap_guard_enabled = overlap_guard_enabled
        self._trigger_lock = threading.Lock()
        self._active_handle: RunHandle | None = None

    def run_active_handle(self) -> RunHandle | None:
        """Return the handle of the most recently launched job, if any."""

        return self._active_handle

    def run_trigger(self) -> RunTriggerResult:
        """Reset run state and launch the fetch job without waiting for it.

        Returns:
            RunTriggerResult: Trigger result with the launched job handle.

        Raises:
            RunAlreadyActiveError: Raised when the guard is enabled and a job is still running.
            JobStartError: Raised when the job process cannot be launched.
            RunStateStoreError: Raised when the reset cannot be persisted.
        """

        with self._trigger_lock:
            if (
                self._overlap_guard_enabled
                and self._active_handle is not None
                and self._active_handle.handle_is_running()
            ):
                raise RunAlreadyActiveError(f"run already active pid={self._active_handle.pid}")

            started_at = domain_utc_now()
            self._state_store.db_run_state_write(RunState.state_reset(started_at))
            handle = self._job_runner.job_start(started_at=started_at)
            self._active_handle = handle

        logger.info("Run started at %s with fetch job pid=%s", started_at.isoformat(), handle.pid)
        return RunTriggerResult(started=True, pid=handle.pid, started_at=started_at, handle=handle)
