"""Typed interfaces for run state persistence services.

All file and SQL access for run state must remain in the db package.
"""

from typing import Callable, Protocol

from call_tracker.domain import RunState

RunStateMutator = Callable[[RunState], RunState]


class RunStateStoreError(RuntimeError):
    """Raised when run state cannot be durably persisted after a retry."""


class RunStateStorePort(Protocol):
    """Port definition for the single durable run state record."""

    def db_run_state_read(self) -> RunState:
        """Return the current run state.

        Returns:
            RunState: Persisted state, or zero-valued defaults when absent or unreadable.

        Raises:
            RuntimeError: Never raised; read failures degrade to defaults.
        """

    def db_run_state_write(self, state: RunState) -> RunState:
        """Persist the full state, replacing any prior value.

        Args:
            state: State to persist.

        Returns:
            RunState: The persisted state.

        Raises:
            RunStateStoreError: Raised when the write fails twice.
        """

    def db_run_state_update(self, mutator: RunStateMutator) -> RunState:
        """Apply one atomic read-modify-write sequence.

        Args:
            mutator: Function mapping the current state to the new state.

        Returns:
            RunState: The persisted new state.

        Raises:
            RunStateStoreError: Raised when the write fails twice.
        """
