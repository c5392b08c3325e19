"""Run tracking services for triggers and completion callbacks."""

from .callback import (
    CALLBACK_SUCCESS_PREDICATES,
    CallbackOutcome,
    CallbackReceiver,
    callback_extract_idempotency_key,
    callback_match_success_indicator,
)
from .trigger import RunAlreadyActiveError, RunTriggerResult, RunTriggerService

__all__ = [
    "CALLBACK_SUCCESS_PREDICATES",
    "CallbackOutcome",
    "CallbackReceiver",
    "RunAlreadyActiveError",
    "RunTriggerResult",
    "RunTriggerService",
    "callback_extract_idempotency_key",
    "callback_match_success_indicator",
]
