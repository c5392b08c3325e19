"""Domain models used across application layer boundaries."""

from .models import CALLBACK_TOKEN_LIMIT, RunState
from .timestamps import domain_format_timestamp, domain_parse_timestamp, domain_utc_now

__all__ = [
    "CALLBACK_TOKEN_LIMIT",
    "RunState",
    "domain_format_timestamp",
    "domain_parse_timestamp",
    "domain_utc_now",
]
