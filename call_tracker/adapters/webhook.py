"""Webhook notifier posting fetched call records to the n8n automation."""

from __future__ import annotations

from typing import Any

import httpx

from .errors import WebhookNotifyError
from .interfaces import WebhookNotifierPort


class HttpWebhookNotifier(WebhookNotifierPort):
    """Fire-and-forget JSON POST to one configured webhook URL."""

    def __init__(
        self,
        webhook_url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize webhook notifier.

        Args:
            webhook_url: Full webhook URL including scheme.
            timeout_seconds: Request timeout.
            transport: Optional httpx transport override.

        Raises:
            ValueError: Raised when the URL is blank or timeout is not positive.
        """

        if not webhook_url or not webhook_url.strip():
            raise ValueError("Webhook URL is required")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._webhook_url = webhook_url.strip()
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def adapter_post_records(self, records: list[dict[str, Any]]) -> Any:
        """POST records as one JSON array.

        Args:
            records: Clean call records.

        Returns:
            Any: Decoded JSON response, or raw text when the body is not JSON.

        Raises:
            WebhookNotifyError: Raised on transport failure or non-2xx status.
        """

        try:
            with httpx.Client(timeout=self._timeout_seconds, transport=self._transport) as client:
                response = client.post(self._webhook_url, json=records)
        except httpx.HTTPError as error:
            raise WebhookNotifyError(f"Webhook request failed: {error}") from error

        if response.is_error:
            raise WebhookNotifyError(
                f"Webhook request failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError:
            return response.text
