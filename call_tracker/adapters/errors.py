"""Project-native typed exceptions for fetch job adapter failures."""

from __future__ import annotations


class RecordSourceError(Exception):
    """Base exception for record source failures.

    Attributes:
        source_name: Adapter source identifier that raised the failure.
    """

    def __init__(self, message: str, source_name: str | None = None):
        super().__init__(message)
        self.source_name = source_name


class RecordSourceConnectionError(RecordSourceError, ConnectionError):
    """Transport or connectivity failure while reading source records."""


class RecordSourceQueryError(RecordSourceError, RuntimeError):
    """Query-phase failure reported by the source system."""


class WebhookNotifyError(Exception):
    """Raised when the webhook POST fails.

    Attributes:
        status_code: Optional HTTP status returned by the webhook.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
