"""Global session state: the api/auth pair and menu visibility.

State transitions are pure except for ``LogOut``, which releases the
current auth object before the cleared state is returned.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Protocol


class Releasable(Protocol):
    def log_out(self) -> None: ...


@dataclass(frozen=True)
class RootState:
    """Session-wide state shared by all screens."""

    api: Any = None
    auth: Releasable | None = None
    show_menu: bool = False


@dataclass(frozen=True)
class InitializeApi:
    api: Any
    auth: Releasable | None


@dataclass(frozen=True)
class LogOut:
    pass


@dataclass(frozen=True)
class OpenMenu:
    pass


@dataclass(frozen=True)
class CloseMenu:
    pass


def reduce(state: RootState, action: object) -> RootState:
    """Apply an action to the session state.

    Args:
        state: Current state
        action: One of the session actions; anything else leaves the
            state untouched

    Returns:
        The next state
    """
    if isinstance(action, InitializeApi):
        return replace(state, api=action.api, auth=action.auth)

    if isinstance(action, LogOut):
        if state.auth is not None:
            state.auth.log_out()
        return replace(state, api=None, auth=None)

    if isinstance(action, OpenMenu):
        return replace(state, show_menu=True)

    if isinstance(action, CloseMenu):
        return replace(state, show_menu=False)

    return state


class SessionStore:
    """Holds the current session state and notifies subscribers of changes."""

    def __init__(self, state: RootState | None = None):
        self.state = state or RootState()
        self._subscribers: list[Callable[[RootState], None]] = []

    def subscribe(self, callback: Callable[[RootState], None]) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def dispatch(self, action: object) -> RootState:
        previous = self.state
        self.state = reduce(previous, action)
        if self.state is not previous:
            for callback in list(self._subscribers):
                callback(self.state)
        return self.state
