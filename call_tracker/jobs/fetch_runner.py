"""Job runner launching the fetch-and-notify job as a child process."""

from __future__ import annotations

import json
import logging
import os
import subprocess
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Sequence

from call_tracker.db import RunStateStorePort
from call_tracker.domain import RunState, domain_utc_now

from .interfaces import JobRunnerPort, JobStartError, RunHandle

logger = logging.getLogger(__name__)

DEFAULT_FETCH_JOB_COMMAND: tuple[str, ...] = (sys.executable, "-m", "call_tracker.jobs")


class SubprocessFetchJobRunner(JobRunnerPort):
    """Runner for the out-of-process fetch job.

    The job talks back only through its exit and the records artifact. A
    watcher thread per launch waits for exit, logs the captured output, and
    applies the artifact record count to the run state.
    """

    def __init__(
        self,
        state_store: RunStateStorePort,
        records_path: Path,
        command: Sequence[str] = DEFAULT_FETCH_JOB_COMMAND,
        working_dir: Path | None = None,
    ):
        """Initialize subprocess job runner.

        Args:
            state_store: Run state store receiving the total update.
            records_path: Records artifact written by the job.
            command: Job command and arguments.
            working_dir: Optional working directory for the child process.

        Raises:
            ValueError: Raised when dependencies are invalid or the command is empty.
        """

        if state_store is None:
            raise ValueError("state_store must not be None")
        if records_path is None:
            raise ValueError("records_path must not be None")
        if not command:
            raise ValueError("command must not be empty")

        self._state_store = state_store
        self._records_path = Path(records_path)
        self._command = tuple(command)
        self._working_dir = working_dir

    def job_start(self, started_at: datetime) -> RunHandle:
        """Launch the job and return immediately.

        Args:
            started_at: Start timestamp of the run the job belongs to.

        Returns:
            RunHandle: Handle of the launched job.

        Raises:
            JobStartError: Raised when the process cannot be spawned.
        """

        self._job_discard_stale_artifact()
        child_environment = {
            **os.environ,
            "DATA_DIR": str(self._records_path.parent),
            "RECORDS_FILE_NAME": self._records_path.name,
        }
        try:
            process = subprocess.Popen(  # pylint: disable=consider-using-with
                self._command,
                cwd=self._working_dir,
                env=child_environment,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as error:
            raise JobStartError(f"failed to launch fetch job {list(self._command)}: {error}") from error

        handle = RunHandle(pid=process.pid, started_at=started_at)
        logger.info("Fetch job started pid=%s run_started_at=%s", process.pid, started_at.isoformat())
        watcher = threading.Thread(
            target=self._job_watch,
            args=(process, handle),
            name=f"fetch-job-watch-{process.pid}",
            daemon=True,
        )
        watcher.start()
        return handle

    def job_observe_completion(self, started_at: datetime, exit_code: int | None) -> int | None:
        """Apply the artifact record count of a finished job to the run state.

        Only `total` and `last_updated_at` change, so callback increments that
        landed while the job ran are preserved. The update is dropped when a
        newer run has reset the state in the meantime.

        Args:
            started_at: Start timestamp of the run the job belongs to.
            exit_code: Process exit code, used for logging only.

        Returns:
            int | None: Applied record count, or None when the artifact was unreadable.

        Raises:
            RunStateStoreError: Raised when the state write fails twice.
        """

        record_count = job_read_record_count(self._records_path)
        if record_count is None:
            logger.warning(
                "Fetch job exit_code=%s produced no readable records artifact at %s; total left unchanged",
                exit_code,
                self._records_path,
            )
            return None

        stale_run = False

        def _apply_total(current_state: RunState) -> RunState:
            nonlocal stale_run
            if current_state.started_at != started_at:
                stale_run = True
                return current_state
            return current_state.state_with_total(total=record_count, updated_at=domain_utc_now())

        self._state_store.db_run_state_update(_apply_total)
        if stale_run:
            logger.warning(
                "Dropped total=%d from run started at %s; a newer run owns the counter",
                record_count,
                started_at.isoformat(),
            )
            return None

        logger.info("Run total updated to %d", record_count)
        return record_count

    def _job_watch(self, process: subprocess.Popen, handle: RunHandle) -> None:
        record_count: int | None = None
        exit_code: int | None = None
        try:
            stdout, stderr = process.communicate()
            exit_code = process.returncode
            logger.info(
                "Fetch job pid=%s exited with code %s\n--- stdout ---\n%s\n--- stderr ---\n%s",
                process.pid,
                exit_code,
                stdout,
                stderr,
            )
            record_count = self.job_observe_completion(started_at=handle.started_at, exit_code=exit_code)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Completion handling for fetch job pid=%s failed", process.pid)
        finally:
            handle.handle_mark_finished(exit_code=exit_code, record_count=record_count)

    def _job_discard_stale_artifact(self) -> None:
        try:
            self._records_path.unlink(missing_ok=True)
        except OSError as error:
            logger.warning("Could not remove stale records artifact %s: %s", self._records_path, error)


def job_read_record_count(records_path: Path) -> int | None:
    """Read the records artifact and return its length.

    Args:
        records_path: Records artifact location.

    Returns:
        int | None: Number of records, or None when the artifact is missing or not a JSON array.
    """

    try:
        payload = json.loads(Path(records_path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as error:
        logger.warning("Records artifact %s is unreadable: %s", records_path, error)
        return None

    if not isinstance(payload, list):
        logger.warning("Records artifact %s is not a JSON array", records_path)
        return None
    return len(payload)
