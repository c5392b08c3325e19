"""Shared timestamp helpers for persisted and serialized run state."""

from __future__ import annotations

from datetime import datetime, timezone


def domain_utc_now() -> datetime:
    """Return the current UTC timestamp truncated to the persisted millisecond precision."""

    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def domain_format_timestamp(value: datetime | None) -> str | None:
    """Render a timestamp as ISO-8601 UTC with millisecond precision and `Z` suffix.

    Args:
        value: Timestamp to render, naive values are treated as UTC.

    Returns:
        str | None: Rendered timestamp or None when value is None.
    """

    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    rendered = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return rendered.replace("+00:00", "Z")


def domain_parse_timestamp(value: object) -> datetime | None:
    """Parse a persisted ISO-8601 timestamp.

    Args:
        value: Persisted value, expected to be a string or None.

    Returns:
        datetime | None: Timezone-aware UTC timestamp, or None for null values.

    Raises:
        ValueError: Raised when value is not a parseable timestamp.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        parsed = datetime.fromisoformat(normalized)
    else:
        raise ValueError(f"unsupported timestamp value type={type(value).__name__}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
