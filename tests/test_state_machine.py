"""Unit tests for the submission lifecycle.

Tests cover:
- Initial state and transition table
- Submitting on a valid verdict only
- The deferred reset and what it clears
- Teardown cancelling a pending reset
- Lifecycle events

Timers are driven with ManualScheduler, plus one run on a real asyncio loop.
"""

import asyncio

import pytest

from formstate.events import EventEmitter
from formstate.scheduler import ManualScheduler
from formstate.schema import registration_schema
from formstate.state_machine import (
    InvalidStateTransitionError,
    SubmissionLifecycle,
    VALID_TRANSITIONS,
)
from formstate.store import FieldState, FieldStore
from formstate.types import EventType, SubmissionState
from formstate.validation import ValidationResult

PASSED = ValidationResult(errors_by_field={}, is_valid=True)
FAILED = ValidationResult(errors_by_field={}, is_valid=False)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def store():
    store = FieldStore(registration_schema())
    store.set_value("fullName", "Jane Doe")
    store.mark_touched_and_validate("fullName")
    return store


@pytest.fixture
def lifecycle(store, scheduler):
    return SubmissionLifecycle(store, reset_delay_ms=3000, scheduler=scheduler)


class TestInitialization:
    """Test lifecycle defaults."""

    def test_starts_editing(self, lifecycle):
        """Should start in EDITING with nothing pending."""
        assert lifecycle.state == SubmissionState.EDITING
        assert lifecycle.is_submitted is False
        assert lifecycle.reset_pending is False
        assert lifecycle.closed is False

    def test_transition_table(self):
        """Should allow exactly one way out of each state."""
        assert VALID_TRANSITIONS == {
            SubmissionState.EDITING: {SubmissionState.SUBMITTED},
            SubmissionState.SUBMITTED: {SubmissionState.EDITING},
        }


class TestOnValidated:
    """Test reacting to full-form verdicts."""

    def test_failed_verdict_keeps_editing(self, lifecycle, scheduler):
        """Should not submit or schedule anything."""
        assert lifecycle.on_validated(FAILED) is False
        assert lifecycle.state == SubmissionState.EDITING
        assert scheduler.pending == 0

    def test_passed_verdict_submits(self, lifecycle, scheduler):
        """Should submit and schedule one reset."""
        assert lifecycle.on_validated(PASSED) is True
        assert lifecycle.state == SubmissionState.SUBMITTED
        assert lifecycle.reset_pending is True
        assert scheduler.pending == 1

    def test_repeated_pass_does_not_reschedule(self, lifecycle, scheduler):
        """Should ignore a valid verdict while already submitted."""
        lifecycle.on_validated(PASSED)
        scheduler.advance(2.0)
        assert lifecycle.on_validated(PASSED) is False
        assert scheduler.pending == 1
        scheduler.advance(1.0)
        assert lifecycle.state == SubmissionState.EDITING

    def test_failed_verdict_while_submitted(self, lifecycle, scheduler):
        """Should leave a submitted form and its timer alone."""
        lifecycle.on_validated(PASSED)
        assert lifecycle.on_validated(FAILED) is False
        assert lifecycle.is_submitted
        assert lifecycle.reset_pending


class TestResetTimer:
    """Test the deferred reset."""

    def test_fires_after_delay(self, lifecycle, scheduler, store):
        """Should return to EDITING and clear fields after exactly the delay."""
        lifecycle.on_validated(PASSED)
        scheduler.advance(2.5)
        assert lifecycle.is_submitted
        assert store.get("fullName").value == "Jane Doe"

        scheduler.advance(0.5)
        assert lifecycle.state == SubmissionState.EDITING
        assert lifecycle.reset_pending is False
        assert all(state == FieldState() for state in store.states().values())

    def test_custom_delay(self, store, scheduler):
        """Should honor the configured delay."""
        lifecycle = SubmissionLifecycle(store, reset_delay_ms=500, scheduler=scheduler)
        lifecycle.on_validated(PASSED)
        assert scheduler.advance(0.5) == 1
        assert lifecycle.state == SubmissionState.EDITING

    def test_zero_delay(self, store, scheduler):
        """Should still defer the reset to the scheduler."""
        lifecycle = SubmissionLifecycle(store, reset_delay_ms=0, scheduler=scheduler)
        lifecycle.on_validated(PASSED)
        assert lifecycle.is_submitted
        scheduler.advance(0)
        assert lifecycle.state == SubmissionState.EDITING

    def test_can_submit_again_after_reset(self, lifecycle, scheduler):
        """Should allow a new submission once back in EDITING."""
        lifecycle.on_validated(PASSED)
        scheduler.run_all()
        assert lifecycle.on_validated(PASSED) is True
        assert scheduler.pending == 1

    def test_stale_timer_is_ignored(self, lifecycle, store):
        """Should do nothing if a timer callback arrives while editing."""
        lifecycle._on_reset_timer()
        assert lifecycle.state == SubmissionState.EDITING
        assert store.get("fullName").value == "Jane Doe"

    def test_with_asyncio_loop(self, store):
        """Should run the reset on a real event loop."""
        async def scenario():
            lifecycle = SubmissionLifecycle(store, reset_delay_ms=10)
            lifecycle.on_validated(PASSED)
            submitted = lifecycle.is_submitted
            await asyncio.sleep(0.1)
            return submitted, lifecycle.state

        submitted, final_state = asyncio.run(scenario())
        assert submitted is True
        assert final_state == SubmissionState.EDITING
        assert store.get("fullName") == FieldState()

    def test_without_scheduler_or_loop(self, store):
        """Should refuse construction when there is no scheduler and no loop."""
        with pytest.raises(RuntimeError, match="scheduler="):
            SubmissionLifecycle(store)


class TestClose:
    """Test teardown."""

    def test_cancels_pending_reset(self, lifecycle, scheduler, store):
        """Should cancel the timer so the store is never touched again."""
        lifecycle.on_validated(PASSED)
        lifecycle.close()
        assert lifecycle.closed
        assert lifecycle.reset_pending is False
        assert scheduler.pending == 0

        assert scheduler.advance(10) == 0
        assert lifecycle.is_submitted
        assert store.get("fullName").value == "Jane Doe"

    def test_close_is_idempotent(self, lifecycle):
        """Should tolerate repeated calls."""
        lifecycle.on_validated(PASSED)
        lifecycle.close()
        lifecycle.close()
        cancelled = [e for e in lifecycle.get_events() if e.type == EventType.RESET_CANCELLED]
        assert len(cancelled) == 1

    def test_close_without_pending_reset(self, lifecycle):
        """Should emit nothing when there is no timer."""
        lifecycle.close()
        assert lifecycle.get_events() == []

    def test_cancelled_asyncio_timer(self, store):
        """Should cancel a timer on a real event loop."""
        async def scenario():
            lifecycle = SubmissionLifecycle(store, reset_delay_ms=10)
            lifecycle.on_validated(PASSED)
            lifecycle.close()
            await asyncio.sleep(0.05)
            return lifecycle.state

        assert asyncio.run(scenario()) == SubmissionState.SUBMITTED
        assert store.get("fullName").value == "Jane Doe"


class TestTransitionTo:
    """Test direct transitions."""

    def test_invalid_transition(self, lifecycle):
        """Should refuse to reset a form that is not submitted."""
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            lifecycle._transition_to(SubmissionState.EDITING)
        assert exc_info.value.current_state == SubmissionState.EDITING
        assert exc_info.value.target_state == SubmissionState.EDITING
        assert "submitted" in str(exc_info.value)

    def test_cannot_resubmit(self, lifecycle):
        """Should refuse SUBMITTED while already SUBMITTED."""
        lifecycle._transition_to(SubmissionState.SUBMITTED)
        assert lifecycle.can_transition_to(SubmissionState.SUBMITTED) is False
        with pytest.raises(InvalidStateTransitionError):
            lifecycle._transition_to(SubmissionState.SUBMITTED)


class TestLifecycleEvents:
    """Test lifecycle events."""

    def test_submit_and_reset_events(self, scheduler):
        """Should record and emit submitted and reset events in order."""
        emitter = EventEmitter()
        seen = []
        emitter.on_any(seen.append)
        store = FieldStore(registration_schema(), emitter=emitter)
        lifecycle = SubmissionLifecycle(store, scheduler=scheduler, emitter=emitter)

        lifecycle.on_validated(PASSED)
        scheduler.run_all()

        types = [e.type for e in lifecycle.get_events()]
        assert types == [EventType.FORM_SUBMITTED, EventType.FORM_RESET]
        assert lifecycle.get_events()[0].payload == {
            "from_state": "editing", "to_state": "submitted",
        }
        assert [e.type for e in seen] == [
            EventType.FORM_SUBMITTED, EventType.FIELDS_RESET, EventType.FORM_RESET,
        ]
