"""Submission lifecycle for the formstate engine.

This module implements the Editing/Submitted state machine and the deferred
reset that follows a successful submit:

- ``editing -> submitted`` happens only when full-form validation passes, and
  schedules the reset timer
- ``submitted -> editing`` happens only when the reset timer fires, and
  clears every field

There is no way to re-enter ``submitted`` while submitted, and no way to
cancel a pending reset other than tearing the form down with ``close()``.

Usage:
    >>> from formstate.scheduler import ManualScheduler
    >>> from formstate.schema import registration_schema
    >>> from formstate.store import FieldStore
    >>> scheduler = ManualScheduler()
    >>> lifecycle = SubmissionLifecycle(FieldStore(registration_schema()), scheduler=scheduler)
    >>> lifecycle.state
    <SubmissionState.EDITING: 'editing'>
"""

import asyncio
import logging
from typing import Dict, List, Optional, Set

from formstate.config import DEFAULT_RESET_DELAY_MS
from formstate.events import EventEmitter, FormEvent
from formstate.scheduler import Cancellable, Scheduler
from formstate.store import FieldStore
from formstate.types import EventType, SubmissionState
from formstate.validation import ValidationResult

logger = logging.getLogger(__name__)


class InvalidStateTransitionError(Exception):
    """Raised when attempting an invalid state transition.

    Attributes:
        current_state: The current state before the attempted transition
        target_state: The target state that was attempted
    """

    def __init__(self, current_state: SubmissionState, target_state: SubmissionState, message: str):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(message)


# Each state has exactly one way out
VALID_TRANSITIONS: Dict[SubmissionState, Set[SubmissionState]] = {
    SubmissionState.EDITING: {SubmissionState.SUBMITTED},
    SubmissionState.SUBMITTED: {SubmissionState.EDITING},
}

STATE_TO_EVENT_TYPE: Dict[SubmissionState, EventType] = {
    SubmissionState.SUBMITTED: EventType.FORM_SUBMITTED,
    SubmissionState.EDITING: EventType.FORM_RESET,
}


def _running_loop() -> Scheduler:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        raise RuntimeError(
            "No running asyncio loop to schedule the form reset on; "
            "create the form inside the loop or pass scheduler= explicitly"
        ) from None


class SubmissionLifecycle:
    """Owns the submitted flag and the deferred reset timer.

    Args:
        store: Field store to clear when the reset fires
        reset_delay_ms: Delay between submit and reset
        scheduler: Runs the reset timer. When None, the asyncio loop running
            at construction is used; without one, construction fails.
        emitter: Optional emitter for lifecycle events
    """

    def __init__(
        self,
        store: FieldStore,
        reset_delay_ms: int = DEFAULT_RESET_DELAY_MS,
        scheduler: Optional[Scheduler] = None,
        emitter: Optional[EventEmitter] = None,
    ):
        self.store = store
        self.reset_delay_ms = reset_delay_ms
        self._scheduler = scheduler if scheduler is not None else _running_loop()
        self._emitter = emitter or EventEmitter()
        self._state = SubmissionState.EDITING
        self._reset_handle: Optional[Cancellable] = None
        self._closed = False
        self._events: List[FormEvent] = []

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def is_submitted(self) -> bool:
        return self._state == SubmissionState.SUBMITTED

    @property
    def reset_pending(self) -> bool:
        return self._reset_handle is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def can_transition_to(self, target_state: SubmissionState) -> bool:
        """Check if transition to target state is valid."""
        return target_state in VALID_TRANSITIONS.get(self._state, set())

    def on_validated(self, result: ValidationResult) -> bool:
        """React to a full-form validation verdict.

        A passing result moves ``editing`` to ``submitted`` and schedules the
        reset. A failing result, or any result while already submitted,
        changes nothing.

        Returns:
            True if this call moved the form to ``submitted``
        """
        if not result.is_valid:
            return False
        if self.is_submitted:
            logger.debug("Form already submitted; ignoring repeated submit")
            return False
        self._transition_to(SubmissionState.SUBMITTED)
        return True

    def _transition_to(self, target_state: SubmissionState) -> None:
        """Transition to a new state and carry out its effects.

        Entering ``submitted`` schedules the reset timer. Entering
        ``editing`` drops the timer and clears every field.

        Raises:
            InvalidStateTransitionError: If the transition is not allowed
        """
        if not self.can_transition_to(target_state):
            raise InvalidStateTransitionError(
                current_state=self._state,
                target_state=target_state,
                message=(
                    f"Invalid state transition: cannot transition from "
                    f"'{self._state.value}' to '{target_state.value}'. "
                    f"Valid transitions from '{self._state.value}' are: "
                    f"{', '.join(sorted(s.value for s in VALID_TRANSITIONS[self._state]))}"
                ),
            )

        old_state = self._state
        if target_state == SubmissionState.SUBMITTED:
            self._schedule_reset()
            self._state = target_state
            logger.info("Form submitted; reset in %d ms", self.reset_delay_ms)
        else:
            self._cancel_reset()
            self.store.reset()
            self._state = target_state
            logger.info("Form reset after submission")

        self._emit_event(target_state, old_state)

    def close(self) -> None:
        """Tear down: cancel any pending reset. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        if self._reset_handle is not None:
            self._cancel_reset()
            logger.debug("Pending reset cancelled on close")
            event = FormEvent.create(
                EventType.RESET_CANCELLED, payload={"state": self._state.value}
            )
            self._events.append(event)
            self._emitter.emit(event)

    def get_events(self) -> List[FormEvent]:
        """Lifecycle events in chronological order."""
        return list(self._events)

    def _schedule_reset(self) -> None:
        self._reset_handle = self._scheduler.call_later(
            self.reset_delay_ms / 1000.0, self._on_reset_timer
        )

    def _cancel_reset(self) -> None:
        handle, self._reset_handle = self._reset_handle, None
        if handle is not None:
            handle.cancel()

    def _on_reset_timer(self) -> None:
        # A scheduler may still deliver a call that was cancelled too late
        if self._closed or not self.is_submitted:
            logger.debug("Ignoring stale reset timer")
            return
        self._reset_handle = None
        self._transition_to(SubmissionState.EDITING)

    def _emit_event(self, new_state: SubmissionState, old_state: SubmissionState) -> None:
        event = FormEvent.create(
            STATE_TO_EVENT_TYPE[new_state],
            payload={"from_state": old_state.value, "to_state": new_state.value},
        )
        self._events.append(event)
        self._emitter.emit(event)


__all__ = [
    "SubmissionLifecycle",
    "InvalidStateTransitionError",
    "VALID_TRANSITIONS",
]
