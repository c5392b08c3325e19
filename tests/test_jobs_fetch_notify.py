"""Regression tests for the fetch-and-notify job."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path

import httpx
import pytest
from sqlalchemy import create_engine, text

from call_tracker.adapters import HttpWebhookNotifier, RecordSourceConnectionError, SQLAlchemyRecordSource
from call_tracker.config import FetchJobSettings
from call_tracker.db import db_create_engine
from call_tracker.jobs import (
    JOB_EXIT_CONFIG_ERROR,
    JOB_EXIT_FETCH_ERROR,
    JOB_EXIT_SUCCESS,
    job_clean_record,
    job_fetch_notify_main,
    job_fetch_notify_run,
)

_JOB_ENV_NAMES = (
    "DB_URL",
    "DB_HOST",
    "DB_USER",
    "DB_PASSWORD",
    "DB_NAME",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE",
    "N8N_WEBHOOK_URL",
    "DATA_DIR",
    "RECORDS_FILE_NAME",
)


def _job_create_source_database(tmp_path: Path, row_count: int) -> str:
    """Create a SQLite `clients` table with deterministic rows.

    Args:
        tmp_path: Pytest temporary directory fixture.
        row_count: Number of rows to insert.

    Returns:
        str: SQLAlchemy URL of the created database.
    """

    database_url = f"sqlite:///{tmp_path / 'records.db'}"
    engine = create_engine(database_url)
    try:
        with engine.begin() as connection:
            connection.execute(
                text(
                    "CREATE TABLE clients ("
                    "id INTEGER PRIMARY KEY, name TEXT, phone_number TEXT, email TEXT, "
                    "last_visit TEXT, details TEXT, update_call_summary TEXT, retell_call_id TEXT, "
                    "status TEXT, created_at TEXT, updated_at TEXT)"
                )
            )
            for index in range(row_count):
                connection.execute(
                    text(
                        "INSERT INTO clients (id, name, phone_number, status, created_at) "
                        "VALUES (:id, :name, :phone_number, 'pending', '2026-10-19 08:00:00')"
                    ),
                    {"id": index + 1, "name": f"Client {index + 1}", "phone_number": f"+1555000{index:04d}"},
                )
    finally:
        engine.dispose()
    return database_url


class _FailingRecordSource:
    """Record source test double that cannot reach its database."""

    def adapter_source_name(self) -> str:
        """Return deterministic source label.

        Returns:
            str: Source label.
        """

        return "clients@unreachable"

    def adapter_fetch_records(self) -> list[dict]:
        """Raise deterministic connection failure.

        Returns:
            list[dict]: This method does not return.

        Raises:
            RecordSourceConnectionError: Always raised by this test double.
        """

        raise RecordSourceConnectionError("connection refused", source_name="clients@unreachable")


def test_job_fetch_notify_writes_artifact_and_posts_records(tmp_path: Path) -> None:
    """Write every fetched record and POST the same array to the webhook.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate artifact and webhook payload.

    Raises:
        AssertionError: Raised when artifact or payload is wrong.
    """

    database_url = _job_create_source_database(tmp_path, row_count=3)
    settings = FetchJobSettings(db_url=database_url, data_dir=str(tmp_path / "data"))
    posted_payloads: list[object] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        posted_payloads.append(json.loads(request.content))
        return httpx.Response(200, json={"received": True})

    notifier = HttpWebhookNotifier(
        webhook_url="https://n8n.example.test/webhook/calls",
        transport=httpx.MockTransport(_handler),
    )

    exit_code = job_fetch_notify_run(
        settings=settings,
        record_source=SQLAlchemyRecordSource(engine=db_create_engine(database_url)),
        notifier=notifier,
    )

    records = json.loads((tmp_path / "data" / "clients.json").read_text(encoding="utf-8"))
    assert exit_code == JOB_EXIT_SUCCESS
    assert len(records) == 3
    assert records[0]["name"] == "Client 1"
    assert records[0]["created_at"] == "2026-10-19T08:00:00.000+00:00"
    assert records[0]["updated_at"] is None
    assert posted_payloads == [records]


def test_job_fetch_notify_skips_webhook_without_url(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    """Exit successfully and log a warning when no webhook is configured.

    Args:
        tmp_path: Pytest temporary directory fixture.
        caplog: Pytest log capture fixture.

    Returns:
        None: Assertions validate skip behavior.

    Raises:
        AssertionError: Raised when the job fails without a webhook.
    """

    database_url = _job_create_source_database(tmp_path, row_count=2)
    settings = FetchJobSettings(db_url=database_url, data_dir=str(tmp_path))

    with caplog.at_level(logging.WARNING, logger="call_tracker.jobs.fetch_notify"):
        exit_code = job_fetch_notify_run(
            settings=settings,
            record_source=SQLAlchemyRecordSource(engine=db_create_engine(database_url)),
            notifier=None,
        )

    assert exit_code == JOB_EXIT_SUCCESS
    assert len(json.loads((tmp_path / "clients.json").read_text(encoding="utf-8"))) == 2
    assert "N8N_WEBHOOK_URL not set" in caplog.text


def test_job_fetch_notify_keeps_success_when_webhook_fails(tmp_path: Path) -> None:
    """Treat webhook failure as logged but not fatal once the artifact is written.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate exit code on webhook failure.

    Raises:
        AssertionError: Raised when webhook failure changes the exit code.
    """

    database_url = _job_create_source_database(tmp_path, row_count=1)
    settings = FetchJobSettings(db_url=database_url, data_dir=str(tmp_path))
    notifier = HttpWebhookNotifier(
        webhook_url="https://n8n.example.test/webhook/calls",
        transport=httpx.MockTransport(lambda _request: httpx.Response(502, text="bad gateway")),
    )

    exit_code = job_fetch_notify_run(
        settings=settings,
        record_source=SQLAlchemyRecordSource(engine=db_create_engine(database_url)),
        notifier=notifier,
    )

    assert exit_code == JOB_EXIT_SUCCESS
    assert (tmp_path / "clients.json").exists()


def test_job_fetch_notify_returns_fetch_error_without_artifact(tmp_path: Path) -> None:
    """Exit with the fetch error code and write nothing when the source fails.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate fetch failure handling.

    Raises:
        AssertionError: Raised when a failed fetch writes an artifact.
    """

    settings = FetchJobSettings(db_url="sqlite:///unused.db", data_dir=str(tmp_path))

    exit_code = job_fetch_notify_run(settings=settings, record_source=_FailingRecordSource(), notifier=None)

    assert exit_code == JOB_EXIT_FETCH_ERROR
    assert not (tmp_path / "clients.json").exists()


def test_job_fetch_notify_returns_fetch_error_for_missing_table(tmp_path: Path) -> None:
    """Classify a query against a missing table as a fetch failure.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate query failure handling.

    Raises:
        AssertionError: Raised when the query failure is not reported.
    """

    database_url = f"sqlite:///{tmp_path / 'empty.db'}"
    settings = FetchJobSettings(db_url=database_url, data_dir=str(tmp_path))

    exit_code = job_fetch_notify_run(
        settings=settings,
        record_source=SQLAlchemyRecordSource(engine=db_create_engine(database_url)),
        notifier=None,
    )

    assert exit_code == JOB_EXIT_FETCH_ERROR


def test_job_clean_record_fills_columns_and_formats_timestamps() -> None:
    """Emit every record column and render timestamps with a UTC offset.

    Returns:
        None: Assertions validate record cleaning.

    Raises:
        AssertionError: Raised when the clean record shape is wrong.
    """

    clean_record = job_clean_record(
        {
            "id": 7,
            "name": "Ada",
            "created_at": datetime(2026, 10, 19, 8, 30, 15, 123456, tzinfo=timezone.utc),
            "updated_at": date(2026, 10, 20),
            "unexpected": "dropped",
        }
    )

    assert clean_record["id"] == 7
    assert clean_record["email"] is None
    assert clean_record["created_at"] == "2026-10-19T08:30:15.123+00:00"
    assert clean_record["updated_at"] == "2026-10-20T00:00:00.000+00:00"
    assert "unexpected" not in clean_record
    assert len(clean_record) == 11


def test_job_clean_record_keeps_unparseable_timestamp() -> None:
    """Pass through timestamp values that cannot be parsed.

    Returns:
        None: Assertions validate pass-through.

    Raises:
        AssertionError: Raised when the value is altered.
    """

    assert job_clean_record({"created_at": "yesterday"})["created_at"] == "yesterday"


def test_job_fetch_notify_main_returns_config_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Exit with the configuration error code when no connection is configured.

    Args:
        monkeypatch: Pytest monkeypatch fixture.
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate configuration failure.

    Raises:
        AssertionError: Raised when the exit code is wrong.
    """

    for env_name in _JOB_ENV_NAMES:
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.chdir(tmp_path)

    assert job_fetch_notify_main() == JOB_EXIT_CONFIG_ERROR


def test_job_fetch_notify_main_runs_with_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run the job end to end from environment variables.

    Args:
        monkeypatch: Pytest monkeypatch fixture.
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate the job entrypoint.

    Raises:
        AssertionError: Raised when the entrypoint does not write the artifact.
    """

    for env_name in _JOB_ENV_NAMES:
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DB_URL", _job_create_source_database(tmp_path, row_count=4))
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "out"))
    monkeypatch.setenv("RECORDS_FILE_NAME", "records.json")

    assert job_fetch_notify_main() == JOB_EXIT_SUCCESS
    assert len(json.loads((tmp_path / "out" / "records.json").read_text(encoding="utf-8"))) == 4
