"""Callback receiver counting success signals from the n8n automation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from call_tracker.db import RunStateStorePort
from call_tracker.domain import RunState, domain_utc_now

logger = logging.getLogger(__name__)

CallbackPredicate = Callable[[Mapping[str, Any]], bool]

IDEMPOTENCY_KEY_FIELDS: tuple[str, ...] = ("idempotencyKey", "idempotency_key")
IDEMPOTENCY_KEY_MAX_LENGTH = 200


def _callback_is_truthy(value: Any) -> bool:
    """Apply JSON truthiness: objects and arrays count as true even when empty."""

    if isinstance(value, (dict, list)):
        return True
    return bool(value)


def _callback_has_success_flag(payload: Mapping[str, Any]) -> bool:
    return _callback_is_truthy(payload.get("success"))


def _callback_has_ok_status(payload: Mapping[str, Any]) -> bool:
    return payload.get("status") == "ok"


def _callback_has_success_flag_name(payload: Mapping[str, Any]) -> bool:
    return payload.get("flag") == "success"


def _callback_has_success_result(payload: Mapping[str, Any]) -> bool:
    return payload.get("result") == "success"


# Evaluated in order; any single match accepts the callback.
CALLBACK_SUCCESS_PREDICATES: tuple[tuple[str, CallbackPredicate], ...] = (
    ("success_flag", _callback_has_success_flag),
    ("status_ok", _callback_has_ok_status),
    ("flag_success", _callback_has_success_flag_name),
    ("result_success", _callback_has_success_result),
)


def callback_match_success_indicator(payload: Any) -> str | None:
    """Return the name of the first success indicator present in the payload.

    Args:
        payload: Decoded JSON callback body of any shape.

    Returns:
        str | None: Matching indicator name, or None when nothing matches.
    """

    if not isinstance(payload, Mapping):
        return None
    for indicator_name, predicate in CALLBACK_SUCCESS_PREDICATES:
        if predicate(payload):
            return indicator_name
    return None


def callback_extract_idempotency_key(payload: Any) -> str | None:
    """Return the optional idempotency token carried by the payload.

    Keys longer than `IDEMPOTENCY_KEY_MAX_LENGTH` are ignored, so such
    callbacks are counted without deduplication.
    """

    if not isinstance(payload, Mapping):
        return None
    for field_name in IDEMPOTENCY_KEY_FIELDS:
        value = payload.get(field_name)
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            normalized_value = str(value).strip()
            if normalized_value and len(normalized_value) <= IDEMPOTENCY_KEY_MAX_LENGTH:
                return normalized_value
    return None


@dataclass(frozen=True)
class CallbackOutcome:
    """Result of handling one callback.

    Attributes:
        accepted: Whether the payload carried a recognized success indicator.
        state: Run state after handling; unchanged state for rejected callbacks.
        duplicate: Whether the callback replayed an idempotency token of the current run.
        indicator: Name of the matched success indicator.
    """

    accepted: bool
    state: RunState
    duplicate: bool = False
    indicator: str | None = None


class CallbackReceiver:
    """Validates callbacks and increments the completed counter atomically.

    Each accepted callback counts as exactly one unit of progress, regardless
    of any quantity in the payload. Callbacks without an idempotency token are
    never deduplicated.
    """

    def __init__(self, state_store: RunStateStorePort):
        """Initialize callback receiver.

        Args:
            state_store: Run state store.

        Raises:
            ValueError: Raised when state_store is None.
        """

        if state_store is None:
            raise ValueError("state_store must not be None")
        self._state_store = state_store

    def callback_accept(self, payload: Any) -> CallbackOutcome:
        """Handle one inbound callback payload.

        Args:
            payload: Decoded JSON callback body.

        Returns:
            CallbackOutcome: Acceptance decision and resulting state.

        Raises:
            RunStateStoreError: Raised when the increment cannot be persisted.
        """

        indicator = callback_match_success_indicator(payload)
        if indicator is None:
            logger.info("Rejected callback without success indicator")
            return CallbackOutcome(accepted=False, state=self._state_store.db_run_state_read())

        idempotency_key = callback_extract_idempotency_key(payload)
        duplicate = False

        def _increment(current_state: RunState) -> RunState:
            nonlocal duplicate
            if idempotency_key is not None and idempotency_key in current_state.callback_tokens:
                duplicate = True
                return current_state
            return current_state.state_with_increment(updated_at=domain_utc_now(), token=idempotency_key)

        updated_state = self._state_store.db_run_state_update(_increment)
        if duplicate:
            logger.info("Ignored replayed callback idempotency_key=%s", idempotency_key)
        return CallbackOutcome(accepted=True, state=updated_state, duplicate=duplicate, indicator=indicator)
