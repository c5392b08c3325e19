"""Supabase REST record source using service-role credentials."""

from __future__ import annotations

from typing import Any

import httpx

from .errors import RecordSourceConnectionError, RecordSourceQueryError
from .interfaces import CALL_RECORD_COLUMNS, RecordSourcePort


class SupabaseRecordSource(RecordSourcePort):
    """Record source reading one table through the Supabase PostgREST API."""

    def __init__(
        self,
        supabase_url: str,
        service_role_key: str,
        table_name: str = "call_records",
        request_timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize Supabase record source.

        Args:
            supabase_url: Supabase project base URL.
            service_role_key: Server-side service-role key.
            table_name: Table exposed through PostgREST.
            request_timeout_seconds: HTTP request timeout.
            transport: Optional httpx transport override.

        Raises:
            ValueError: Raised when URL or key are blank.
        """

        if not supabase_url.strip():
            raise ValueError("supabase_url must not be blank")
        if not service_role_key.strip():
            raise ValueError("service_role_key must not be blank")
        self._base_url = supabase_url.strip().rstrip("/")
        self._service_role_key = service_role_key.strip()
        self._table_name = table_name
        self._request_timeout_seconds = request_timeout_seconds
        self._transport = transport

    def adapter_source_name(self) -> str:
        """Return the Supabase table endpoint label."""

        return f"supabase:{self._table_name}@{self._base_url}"

    def adapter_fetch_records(self) -> list[dict[str, Any]]:
        """Fetch all rows of the configured table.

        Returns:
            list[dict[str, Any]]: Rows keyed by column name.

        Raises:
            RecordSourceConnectionError: Raised on transport failure or timeout.
            RecordSourceQueryError: Raised when Supabase reports an error or returns a non-array body.
        """

        headers = {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
            "Accept": "application/json",
        }
        try:
            with httpx.Client(timeout=self._request_timeout_seconds, transport=self._transport) as client:
                response = client.get(
                    f"{self._base_url}/rest/v1/{self._table_name}",
                    params={"select": ",".join(CALL_RECORD_COLUMNS)},
                    headers=headers,
                )
        except httpx.TransportError as error:
            raise RecordSourceConnectionError(
                f"Supabase request failed: {error}",
                source_name=self.adapter_source_name(),
            ) from error

        if response.is_error:
            raise RecordSourceQueryError(
                f"Supabase query error: {response.status_code} {_supabase_error_message(response)}",
                source_name=self.adapter_source_name(),
            )

        try:
            payload = response.json()
        except ValueError as error:
            raise RecordSourceQueryError(
                "Supabase returned a non-JSON body",
                source_name=self.adapter_source_name(),
            ) from error
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise RecordSourceQueryError(
                "Supabase returned a non-array body",
                source_name=self.adapter_source_name(),
            )
        return [dict(row) for row in payload if isinstance(row, dict)]


def _supabase_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text
