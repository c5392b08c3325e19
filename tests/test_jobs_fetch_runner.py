"""Regression tests for the subprocess fetch job runner."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from call_tracker.db import JsonFileRunStateStore
from call_tracker.domain import RunState, domain_utc_now
from call_tracker.jobs import JobStartError, SubprocessFetchJobRunner, job_read_record_count

_JOB_WAIT_SECONDS = 30.0


def _job_command_writing_records(record_count: int, exit_code: int = 0) -> list[str]:
    """Build a child command that writes a records artifact like the real job.

    Args:
        record_count: Number of records to write.
        exit_code: Exit code of the child process.

    Returns:
        list[str]: Interpreter command with inline script.
    """

    script = (
        "import json, os, pathlib, sys\n"
        "path = pathlib.Path(os.environ['DATA_DIR']) / os.environ['RECORDS_FILE_NAME']\n"
        f"path.write_text(json.dumps([{{'id': index}} for index in range({record_count})]))\n"
        "print('wrote records')\n"
        f"sys.exit({exit_code})\n"
    )
    return [sys.executable, "-c", script]


def _job_command_crashing() -> list[str]:
    """Build a child command that fails before writing any artifact.

    Returns:
        list[str]: Interpreter command with inline script.
    """

    return [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(2)"]


def test_job_runner_sets_total_from_artifact_and_keeps_completed(tmp_path: Path) -> None:
    """Apply the artifact count as total without touching callback progress.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate completion observation.

    Raises:
        AssertionError: Raised when total or completed are wrong.
    """

    store = JsonFileRunStateStore(counter_path=tmp_path / "counter.json")
    records_path = tmp_path / "clients.json"
    started_at = domain_utc_now()
    store.db_run_state_write(RunState.state_reset(started_at))
    store.db_run_state_update(lambda state: state.state_with_increment(updated_at=domain_utc_now()))
    runner = SubprocessFetchJobRunner(
        state_store=store,
        records_path=records_path,
        command=_job_command_writing_records(4),
    )

    handle = runner.job_start(started_at=started_at)

    assert handle.handle_wait(_JOB_WAIT_SECONDS) is True
    assert handle.exit_code == 0
    assert handle.record_count == 4
    state = store.db_run_state_read()
    assert state.total == 4
    assert state.completed == 1
    assert state.started_at == started_at


def test_job_runner_applies_artifact_even_on_nonzero_exit(tmp_path: Path) -> None:
    """Use a readable artifact regardless of the job exit code.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate exit code independence.

    Raises:
        AssertionError: Raised when the total is not applied.
    """

    store = JsonFileRunStateStore(counter_path=tmp_path / "counter.json")
    started_at = domain_utc_now()
    store.db_run_state_write(RunState.state_reset(started_at))
    runner = SubprocessFetchJobRunner(
        state_store=store,
        records_path=tmp_path / "clients.json",
        command=_job_command_writing_records(2, exit_code=3),
    )

    handle = runner.job_start(started_at=started_at)

    assert handle.handle_wait(_JOB_WAIT_SECONDS) is True
    assert handle.exit_code == 3
    assert store.db_run_state_read().total == 2


def test_job_runner_leaves_total_unchanged_when_job_crashes(tmp_path: Path) -> None:
    """Keep total at its reset value when no artifact is produced.

    A stale artifact from a previous run is discarded before launch so it is
    never mistaken for the current run's output.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate crash handling.

    Raises:
        AssertionError: Raised when a stale artifact is counted.
    """

    store = JsonFileRunStateStore(counter_path=tmp_path / "counter.json")
    records_path = tmp_path / "clients.json"
    records_path.write_text(json.dumps([{"id": 1}, {"id": 2}, {"id": 3}]), encoding="utf-8")
    started_at = domain_utc_now()
    store.db_run_state_write(RunState.state_reset(started_at))
    runner = SubprocessFetchJobRunner(state_store=store, records_path=records_path, command=_job_command_crashing())

    handle = runner.job_start(started_at=started_at)

    assert handle.handle_wait(_JOB_WAIT_SECONDS) is True
    assert handle.exit_code == 2
    assert handle.record_count is None
    assert store.db_run_state_read().total == 0
    assert not records_path.exists()


def test_job_observe_completion_drops_total_of_stale_run(tmp_path: Path) -> None:
    """Ignore a finished job whose run was superseded by a newer trigger.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate stale-run isolation.

    Raises:
        AssertionError: Raised when a stale job overwrites the new run.
    """

    store = JsonFileRunStateStore(counter_path=tmp_path / "counter.json")
    records_path = tmp_path / "clients.json"
    records_path.write_text(json.dumps([{"id": 1}, {"id": 2}]), encoding="utf-8")
    old_started_at = domain_utc_now().replace(year=2025)
    new_started_at = domain_utc_now()
    store.db_run_state_write(RunState.state_reset(new_started_at))
    runner = SubprocessFetchJobRunner(state_store=store, records_path=records_path)

    applied_count = runner.job_observe_completion(started_at=old_started_at, exit_code=0)

    assert applied_count is None
    assert store.db_run_state_read() == RunState.state_reset(new_started_at)


def test_job_runner_raises_start_error_for_missing_executable(tmp_path: Path) -> None:
    """Raise JobStartError when the job command cannot be spawned.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate launch failure.

    Raises:
        AssertionError: Raised when spawning failure is swallowed.
    """

    runner = SubprocessFetchJobRunner(
        state_store=JsonFileRunStateStore(counter_path=tmp_path / "counter.json"),
        records_path=tmp_path / "clients.json",
        command=[str(tmp_path / "missing-fetch-job")],
    )

    with pytest.raises(JobStartError):
        runner.job_start(started_at=domain_utc_now())


@pytest.mark.parametrize(
    ("artifact_text", "expected_count"),
    [
        ("[]", 0),
        ('[{"id": 1}, {"id": 2}]', 2),
        ('{"id": 1}', None),
        ("not json", None),
    ],
)
def test_job_read_record_count(tmp_path: Path, artifact_text: str, expected_count: int | None) -> None:
    """Return array length for valid artifacts and None otherwise.

    Args:
        tmp_path: Pytest temporary directory fixture.
        artifact_text: Artifact file content.
        expected_count: Expected record count.

    Returns:
        None: Assertions validate artifact parsing.

    Raises:
        AssertionError: Raised when the count is wrong.
    """

    records_path = tmp_path / "clients.json"
    records_path.write_text(artifact_text, encoding="utf-8")

    assert job_read_record_count(records_path) == expected_count
    assert job_read_record_count(tmp_path / "missing.json") is None
