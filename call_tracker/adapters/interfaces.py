"""Typed interfaces for fetch job adapter responsibilities."""

from typing import Any, Protocol

CALL_RECORD_COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "phone_number",
    "email",
    "last_visit",
    "details",
    "update_call_summary",
    "retell_call_id",
    "status",
    "created_at",
    "updated_at",
)


class RecordSourcePort(Protocol):
    """Port definition for reading call records from the upstream store."""

    def adapter_source_name(self) -> str:
        """Return adapter source identifier for diagnostics.

        Returns:
            str: Human-readable upstream source identifier.
        """

    def adapter_fetch_records(self) -> list[dict[str, Any]]:
        """Fetch all call record rows.

        Returns:
            list[dict[str, Any]]: Raw rows keyed by column name.

        Raises:
            RecordSourceError: Raised when the upstream read fails.
        """


class WebhookNotifierPort(Protocol):
    """Port definition for posting fetched records to the automation webhook."""

    def adapter_post_records(self, records: list[dict[str, Any]]) -> Any:
        """POST records as one JSON array.

        Args:
            records: Clean call records.

        Returns:
            Any: Decoded webhook response body.

        Raises:
            WebhookNotifyError: Raised when the request fails.
        """
