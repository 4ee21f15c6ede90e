"""
Configuration readiness state.

This module defines the readiness values a configurable service moves through
while its distributed configuration is loaded and judged, together with the
thread-safe cell that holds the authoritative value.
"""

import threading
from enum import Enum
from typing import Dict, FrozenSet

from .exceptions import InvalidStateTransition


class ConfigurationState(Enum):
    """Readiness of the configuration a service depends on."""
    NOT_STARTED = "not_started"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is allowed from this state."""
        return self in (ConfigurationState.SUCCEEDED, ConfigurationState.FAILED)

    def can_transition_to(self, target: 'ConfigurationState') -> bool:
        """Check whether moving from this state to ``target`` is allowed."""
        return target in _TRANSITIONS[self]


_TRANSITIONS: Dict[ConfigurationState, FrozenSet[ConfigurationState]] = {
    ConfigurationState.NOT_STARTED: frozenset({
        ConfigurationState.LOADING,
        ConfigurationState.SUCCEEDED,
        ConfigurationState.FAILED,
    }),
    ConfigurationState.LOADING: frozenset({
        ConfigurationState.SUCCEEDED,
        ConfigurationState.FAILED,
    }),
    ConfigurationState.SUCCEEDED: frozenset(),
    ConfigurationState.FAILED: frozenset(),
}


class ConfigurationStateHolder:
    """
    Single authoritative configuration state value.

    Written by one actor and read by many. Every read and write goes through
    a lock so an update made on a monitor thread is visible to a coroutine
    polling on the event loop thread.
    """

    def __init__(self, initial: ConfigurationState = ConfigurationState.NOT_STARTED) -> None:
        self._state = initial
        self._lock = threading.Lock()

    def get(self) -> ConfigurationState:
        """Get the current state."""
        with self._lock:
            return self._state

    def set(self, state: ConfigurationState) -> ConfigurationState:
        """
        Move to a new state.

        Args:
            state: Target state

        Returns:
            The state held before the call

        Raises:
            InvalidStateTransition: If the transition is not allowed
        """
        with self._lock:
            previous = self._state
            if previous is state:
                return previous
            if not previous.can_transition_to(state):
                raise InvalidStateTransition(previous.value, state.value)
            self._state = state
            return previous

    def advance_to_loading(self) -> bool:
        """
        Move from NOT_STARTED to LOADING.

        Returns:
            True if the state changed, False if it had already moved on
        """
        with self._lock:
            if self._state is not ConfigurationState.NOT_STARTED:
                return False
            self._state = ConfigurationState.LOADING
            return True
