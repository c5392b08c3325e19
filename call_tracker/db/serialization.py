"""Mapping between the RunState domain model and its persisted record shape."""

from __future__ import annotations

from typing import Any

from call_tracker.domain import RunState, domain_format_timestamp, domain_parse_timestamp


def db_run_state_to_record(state: RunState) -> dict[str, Any]:
    """Serialize run state into the persisted counter record.

    Args:
        state: Run state to serialize.

    Returns:
        dict[str, Any]: Record with `total, success, lastRun, lastUpdate, callbackTokens`.
    """

    return {
        "total": state.total,
        "success": state.completed,
        "lastRun": domain_format_timestamp(state.started_at),
        "lastUpdate": domain_format_timestamp(state.last_updated_at),
        "callbackTokens": list(state.callback_tokens),
    }


def db_run_state_from_record(record: Any) -> RunState:
    """Deserialize a persisted counter record.

    Missing fields fall back to zero-valued defaults so records written by
    older deployments without `callbackTokens` stay readable.

    Args:
        record: Decoded JSON value.

    Returns:
        RunState: Parsed run state.

    Raises:
        ValueError: Raised when the record is structurally invalid.
    """

    if not isinstance(record, dict):
        raise ValueError("counter record must be a JSON object")

    total = _db_parse_counter(record.get("total", 0), "total")
    completed = _db_parse_counter(record.get("success", 0), "success")
    tokens_value = record.get("callbackTokens") or []
    if not isinstance(tokens_value, list) or not all(isinstance(token, str) for token in tokens_value):
        raise ValueError("callbackTokens must be a list of strings")

    return RunState(
        total=total,
        completed=completed,
        started_at=domain_parse_timestamp(record.get("lastRun")),
        last_updated_at=domain_parse_timestamp(record.get("lastUpdate")),
        callback_tokens=tuple(tokens_value),
    )


def _db_parse_counter(value: Any, field_name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer")
    if value < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return value
