"""Adapter layer package for upstream record sources and webhook delivery."""

from .errors import (
    RecordSourceConnectionError,
    RecordSourceError,
    RecordSourceQueryError,
    WebhookNotifyError,
)
from .interfaces import CALL_RECORD_COLUMNS, RecordSourcePort, WebhookNotifierPort
from .sql_source import SQLAlchemyRecordSource
from .supabase_source import SupabaseRecordSource
from .webhook import HttpWebhookNotifier

__all__ = [
    "CALL_RECORD_COLUMNS",
    "HttpWebhookNotifier",
    "RecordSourceConnectionError",
    "RecordSourceError",
    "RecordSourcePort",
    "RecordSourceQueryError",
    "SQLAlchemyRecordSource",
    "SupabaseRecordSource",
    "WebhookNotifierPort",
    "WebhookNotifyError",
]
