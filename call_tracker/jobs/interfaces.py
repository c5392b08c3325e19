"""Typed interfaces for job-layer run execution responsibilities."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Protocol


class JobStartError(RuntimeError):
    """Raised when the fetch job process cannot be launched."""


class RunHandle:
    """Handle of one launched fetch job process.

    The handle is finished exactly once, by the runner's watcher thread, after
    the process has exited and its completion has been observed.

    Attributes:
        pid: Operating system process id of the job.
        started_at: Start timestamp of the run the job belongs to.
        exit_code: Process exit code, None while running.
        record_count: Record count read from the artifact, None while running or when unreadable.
    """

    def __init__(self, pid: int, started_at: datetime):
        self.pid = pid
        self.started_at = started_at
        self.exit_code: int | None = None
        self.record_count: int | None = None
        self._finished = threading.Event()

    def handle_is_running(self) -> bool:
        """Return whether the job has not finished yet."""

        return not self._finished.is_set()

    def handle_wait(self, timeout: float | None = None) -> bool:
        """Block until the job has finished and its completion was observed.

        Args:
            timeout: Optional maximum wait in seconds.

        Returns:
            bool: True when the job finished within the timeout.
        """

        return self._finished.wait(timeout)

    def handle_mark_finished(self, exit_code: int | None, record_count: int | None) -> None:
        """Record the job outcome and release waiters.

        Args:
            exit_code: Process exit code.
            record_count: Observed artifact record count, or None.

        Raises:
            RuntimeError: Raised when the handle was already finished.
        """

        if self._finished.is_set():
            raise RuntimeError(f"run handle pid={self.pid} already finished")
        self.exit_code = exit_code
        self.record_count = record_count
        self._finished.set()


class JobRunnerPort(Protocol):
    """Port definition for launching the fetch-and-notify job."""

    def job_start(self, started_at: datetime) -> RunHandle:
        """Launch the job without waiting for it.

        Args:
            started_at: Start timestamp of the run the job belongs to.

        Returns:
            RunHandle: Handle of the launched job.

        Raises:
            JobStartError: Raised when the job cannot be launched.
        """
