# /portal_dashboard/core/auth_effects.py

"""
A small state machine for the transient login/logout "effect" windows.

The presentation layer animates a welcome overlay after login and a fade-out
while the session ends. Those windows are timed, so the machine takes a
`Scheduler` instead of calling timers directly; tests drive it with a fake
scheduler and never sleep.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional, Protocol

logger = logging.getLogger(__name__)

WELCOME_WINDOW_SECONDS = 1.3
LOGOUT_FADE_SECONDS = 0.34
SESSION_END_WINDOW_SECONDS = 0.18


class AuthEffect(str, Enum):
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    JUST_AUTHENTICATED = "justAuthenticated"
    ENDING_SESSION = "endingSession"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules callbacks on the running event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class InvalidTransition(ValueError):
    pass


class AuthEffectsMachine:
    """
    States: idle -> authenticating -> justAuthenticated -> idle (timed), and
    any state -> endingSession -> idle (timed after `session_ended`).

    Only one reset timer is pending at a time; entering a new transition
    cancels it so a stale timer can never overwrite a newer state.
    """

    def __init__(self, scheduler: Scheduler):
        self.scheduler = scheduler
        self.state = AuthEffect.IDLE
        self._timer: Optional[TimerHandle] = None
        self._listeners: List[Callable[[AuthEffect], None]] = []

    def subscribe(self, listener: Callable[[AuthEffect], None]) -> None:
        self._listeners.append(listener)

    def _set(self, state: AuthEffect) -> None:
        self.state = state
        for listener in self._listeners:
            listener(state)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule_reset(self, delay: float) -> None:
        self._cancel_timer()

        def _reset():
            self._timer = None
            self._set(AuthEffect.IDLE)

        self._timer = self.scheduler.call_later(delay, _reset)

    # --- Transitions ---

    def begin_login(self) -> None:
        if self.state == AuthEffect.ENDING_SESSION:
            raise InvalidTransition("Cannot start a login while a session is ending.")
        self._cancel_timer()
        self._set(AuthEffect.AUTHENTICATING)

    def login_succeeded(self) -> None:
        if self.state != AuthEffect.AUTHENTICATING:
            raise InvalidTransition(f"login_succeeded is not valid from '{self.state.value}'.")
        self._set(AuthEffect.JUST_AUTHENTICATED)
        self._schedule_reset(WELCOME_WINDOW_SECONDS)

    def login_failed(self) -> None:
        self._cancel_timer()
        self._set(AuthEffect.IDLE)

    def begin_logout(self) -> None:
        self._cancel_timer()
        self._set(AuthEffect.ENDING_SESSION)

    def session_ended(self) -> None:
        if self.state != AuthEffect.ENDING_SESSION:
            raise InvalidTransition(f"session_ended is not valid from '{self.state.value}'.")
        self._schedule_reset(SESSION_END_WINDOW_SECONDS)

    def dispose(self) -> None:
        self._cancel_timer()
