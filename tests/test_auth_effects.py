# /tests/test_auth_effects.py

import asyncio

import pytest

from portal_dashboard.core.auth_effects import (
    SESSION_END_WINDOW_SECONDS,
    AsyncioScheduler,
    WELCOME_WINDOW_SECONDS,
    AuthEffect,
    AuthEffectsMachine,
    InvalidTransition,
)


class FakeHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


class FakeScheduler:
    """Records scheduled callbacks; tests fire them by hand instead of sleeping."""

    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def machine(scheduler):
    return AuthEffectsMachine(scheduler)


def test_login_flow_shows_welcome_window_then_returns_to_idle(machine, scheduler):
    seen = []
    machine.subscribe(seen.append)

    machine.begin_login()
    machine.login_succeeded()

    assert machine.state == AuthEffect.JUST_AUTHENTICATED
    assert scheduler.handles[-1].delay == WELCOME_WINDOW_SECONDS

    scheduler.handles[-1].fire()
    assert machine.state == AuthEffect.IDLE
    assert seen == [AuthEffect.AUTHENTICATING, AuthEffect.JUST_AUTHENTICATED, AuthEffect.IDLE]


def test_failed_login_returns_to_idle_without_timer(machine, scheduler):
    machine.begin_login()
    machine.login_failed()

    assert machine.state == AuthEffect.IDLE
    assert scheduler.handles == []


def test_logout_during_welcome_cancels_the_pending_reset(machine, scheduler):
    """
    GIVEN: the welcome window is open with its reset timer pending.
    WHEN:  logout begins before that timer fires.
    THEN:  the stale reset is cancelled and cannot overwrite endingSession.
    """
    machine.begin_login()
    machine.login_succeeded()
    welcome_timer = scheduler.handles[-1]

    machine.begin_logout()
    welcome_timer.fire()

    assert welcome_timer.cancelled is True
    assert machine.state == AuthEffect.ENDING_SESSION
    print("\n✅ SUCCESS: test_logout_during_welcome_cancels_the_pending_reset passed.")


def test_session_end_window_resets_to_idle(machine, scheduler):
    machine.begin_logout()
    machine.session_ended()

    assert machine.state == AuthEffect.ENDING_SESSION
    assert scheduler.handles[-1].delay == SESSION_END_WINDOW_SECONDS
    scheduler.handles[-1].fire()
    assert machine.state == AuthEffect.IDLE


def test_invalid_transitions_are_rejected(machine):
    with pytest.raises(InvalidTransition):
        machine.login_succeeded()
    with pytest.raises(InvalidTransition):
        machine.session_ended()

    machine.begin_logout()
    with pytest.raises(InvalidTransition):
        machine.begin_login()


def test_dispose_cancels_pending_timer(machine, scheduler):
    machine.begin_login()
    machine.login_succeeded()

    machine.dispose()

    assert scheduler.handles[-1].cancelled is True


def test_state_values_match_presentation_names():
    assert [effect.value for effect in AuthEffect] == ["idle", "authenticating", "justAuthenticated", "endingSession"]


@pytest.mark.asyncio
async def test_asyncio_scheduler_runs_and_cancels_callbacks():
    fired = []
    scheduler = AsyncioScheduler()

    scheduler.call_later(0, lambda: fired.append("kept"))
    scheduler.call_later(0, lambda: fired.append("cancelled")).cancel()
    await asyncio.sleep(0.01)

    assert fired == ["kept"]
