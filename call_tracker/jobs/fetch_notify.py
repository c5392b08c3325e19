"""Fetch-and-notify job: read call records, write the artifact, POST the webhook.

The job runs in its own process. Its exit code and the records artifact are
the only signals the tracking service observes.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError

from call_tracker.adapters import (
    CALL_RECORD_COLUMNS,
    HttpWebhookNotifier,
    RecordSourceError,
    RecordSourcePort,
    SQLAlchemyRecordSource,
    SupabaseRecordSource,
    WebhookNotifierPort,
    WebhookNotifyError,
)
from call_tracker.config import (
    FetchJobSettings,
    SettingsLoadError,
    config_configure_logging,
    config_load_job_settings,
)
from call_tracker.domain import domain_parse_timestamp

logger = logging.getLogger(__name__)

JOB_EXIT_SUCCESS = 0
JOB_EXIT_CONFIG_ERROR = 1
JOB_EXIT_FETCH_ERROR = 2

_TIMESTAMP_COLUMNS = frozenset({"created_at", "updated_at"})


def job_fetch_notify_run(
    settings: FetchJobSettings,
    record_source: RecordSourcePort,
    notifier: WebhookNotifierPort | None,
) -> int:
    """Execute one fetch-and-notify pass.

    Args:
        settings: Validated job settings.
        record_source: Upstream call record source.
        notifier: Webhook notifier, or None when no webhook URL is configured.

    Returns:
        int: Process exit code (`0` success, `2` fetch or artifact failure).
    """

    logger.info("Starting clients fetch from %s", record_source.adapter_source_name())
    records_path = settings.settings_records_path()
    try:
        records = [job_clean_record(row) for row in record_source.adapter_fetch_records()]
        job_write_records(records=records, records_path=records_path)
    except (RecordSourceError, OSError) as error:
        logger.error("Error during fetch: %s", error)
        return JOB_EXIT_FETCH_ERROR

    logger.info("Wrote %d client(s) to %s", len(records), records_path)

    if notifier is None:
        logger.warning("N8N_WEBHOOK_URL not set; skipping webhook POST")
        return JOB_EXIT_SUCCESS

    try:
        response_body = notifier.adapter_post_records(records)
        logger.info("Webhook POST successful. Response: %s", response_body)
    except WebhookNotifyError as error:
        logger.error("Failed to POST to webhook: %s", error)
    return JOB_EXIT_SUCCESS


def job_clean_record(row: Mapping[str, Any]) -> dict[str, Any]:
    """Map one source row into the clean call record shape.

    Args:
        row: Raw row keyed by column name.

    Returns:
        dict[str, Any]: Record with every call record column; absent values are None.
    """

    clean_record: dict[str, Any] = {}
    for column_name in CALL_RECORD_COLUMNS:
        value = row.get(column_name)
        if column_name in _TIMESTAMP_COLUMNS:
            value = job_format_timestamp(value)
        clean_record[column_name] = value
    return clean_record


def job_format_timestamp(value: Any) -> Any:
    """Render a timestamp as ISO-8601 with an explicit `+00:00` UTC offset.

    Args:
        value: Datetime, date, ISO string or None.

    Returns:
        Any: Rendered timestamp, None for None, or the original value when unparseable.
    """

    if value is None:
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    try:
        parsed = domain_parse_timestamp(value)
    except ValueError:
        return value
    if parsed is None:
        return None
    return parsed.isoformat(timespec="milliseconds")


def job_write_records(records: list[dict[str, Any]], records_path: Path) -> None:
    """Write records as a JSON array, overwriting any previous artifact.

    Args:
        records: Clean call records.
        records_path: Artifact location.

    Raises:
        OSError: Raised when the artifact cannot be written.
    """

    records_path.parent.mkdir(parents=True, exist_ok=True)
    records_path.write_text(json.dumps(records, indent=2, default=str), encoding="utf-8")


def job_build_record_source(settings: FetchJobSettings) -> RecordSourcePort:
    """Select the record source; Supabase credentials take precedence.

    Args:
        settings: Validated job settings.

    Returns:
        RecordSourcePort: Configured record source.
    """

    if settings.settings_uses_supabase():
        return SupabaseRecordSource(
            supabase_url=str(settings.supabase_url),
            service_role_key=str(settings.supabase_service_role),
            table_name=settings.supabase_table_name,
        )
    return SQLAlchemyRecordSource.from_settings(settings)


def job_build_notifier(settings: FetchJobSettings) -> WebhookNotifierPort | None:
    """Build the webhook notifier when a webhook URL is configured."""

    if not settings.n8n_webhook_url:
        return None
    return HttpWebhookNotifier(
        webhook_url=settings.n8n_webhook_url,
        timeout_seconds=settings.webhook_timeout_seconds,
    )


def job_fetch_notify_main() -> int:
    """Load settings, wire adapters, and run the job once.

    Returns:
        int: Process exit code (`1` on configuration errors).
    """

    try:
        settings = config_load_job_settings()
    except SettingsLoadError as error:
        config_configure_logging()
        logger.error("%s", error)
        return JOB_EXIT_CONFIG_ERROR

    config_configure_logging(settings.log_level)
    try:
        record_source = job_build_record_source(settings)
        notifier = job_build_notifier(settings)
    except (ValueError, ImportError, SQLAlchemyError) as error:
        logger.error("Fetch job configuration is unusable: %s", error)
        return JOB_EXIT_CONFIG_ERROR

    return job_fetch_notify_run(settings=settings, record_source=record_source, notifier=notifier)
