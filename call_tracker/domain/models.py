"""Typed domain models shared across runtime layers.

This module provides the run progress record exchanged between the state
store, the job runner, the callback receiver and the API layer.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

# Most recent idempotency tokens remembered per run; older ones age out.
CALLBACK_TOKEN_LIMIT = 1000


@dataclass(frozen=True)
class RunState:
    """Persisted progress record of the single current run.

    Attributes:
        total: Number of records expected in the current run; 0 until the job reports.
        completed: Number of successful per-record notifications observed so far.
        started_at: When the current run began.
        last_updated_at: When any field last changed.
        callback_tokens: Idempotency tokens already counted in the current run.
    """

    total: int = 0
    completed: int = 0
    started_at: datetime | None = None
    last_updated_at: datetime | None = None
    callback_tokens: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.total < 0:
            raise ValueError("total must be >= 0")
        if self.completed < 0:
            raise ValueError("completed must be >= 0")

    @classmethod
    def state_reset(cls, started_at: datetime) -> RunState:
        """Build the zero-valued state of a freshly started run.

        Args:
            started_at: Run start timestamp.

        Returns:
            RunState: Reset state with both counters at 0.
        """

        return cls(total=0, completed=0, started_at=started_at, last_updated_at=started_at)

    def state_with_total(self, total: int, updated_at: datetime) -> RunState:
        """Return a copy with a new total, leaving `completed` untouched."""

        return replace(self, total=total, last_updated_at=updated_at)

    def state_with_increment(self, updated_at: datetime, token: str | None = None) -> RunState:
        """Return a copy with `completed` increased by exactly one.

        Args:
            updated_at: Mutation timestamp.
            token: Optional idempotency token to remember for this run; only the
                newest `CALLBACK_TOKEN_LIMIT` tokens are kept.

        Returns:
            RunState: Incremented state.
        """

        tokens = self.callback_tokens
        if token is not None:
            tokens = (*tokens, token)[-CALLBACK_TOKEN_LIMIT:]
        return replace(
            self,
            completed=self.completed + 1,
            last_updated_at=updated_at,
            callback_tokens=tokens,
        )
