"""FormRuntime facade for the formstate engine.

This module provides the FormRuntime class that wires the field store,
validation orchestrator and submission lifecycle together behind the three
event-intake functions a presentation layer calls, plus read access for
rendering.

Usage:
    >>> from formstate.runtime import FormRuntime
    >>> from formstate.scheduler import ManualScheduler
    >>> form = FormRuntime(scheduler=ManualScheduler())
    >>> form.on_value_change("fullName", "Jo")
    >>> form.on_blur("fullName")
    >>> form.field("fullName").error is None
    True
    >>> form.on_submit().is_valid
    False
"""

import logging
from typing import Any, Dict, Optional

from formstate.config import FormConfig
from formstate.errors import FormClosedError
from formstate.events import EventEmitter
from formstate.scheduler import Scheduler
from formstate.schema import FormSchema, registration_schema
from formstate.state_machine import SubmissionLifecycle
from formstate.store import FieldState, FieldStore
from formstate.types import SubmissionState
from formstate.validation import ValidationOrchestrator, ValidationResult

logger = logging.getLogger(__name__)


class FormRuntime:
    """In-process form core consumed by a rendering layer.

    All event-intake methods run to completion synchronously. The reset timer
    is the only deferred work; it is delivered by ``scheduler`` as an ordinary
    callback on the host's event loop. Without ``scheduler`` the form must be
    built inside a running asyncio loop, or construction raises RuntimeError.

    Attributes:
        schema: The form's field declarations
        config: Behavioral settings
        events: Emitter to subscribe to field, validation and form events

    Examples:
        >>> from formstate.scheduler import ManualScheduler
        >>> scheduler = ManualScheduler()
        >>> with FormRuntime(scheduler=scheduler) as form:
        ...     form.submission_state
        <SubmissionState.EDITING: 'editing'>
    """

    def __init__(
        self,
        schema: Optional[FormSchema] = None,
        config: Optional[FormConfig] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.schema = schema if schema is not None else registration_schema()
        self.config = config if config is not None else FormConfig()
        self.events = EventEmitter()
        self._store = FieldStore(
            self.schema,
            emitter=self.events,
            revalidate_dependents=self.config.revalidate_dependents,
        )
        self._orchestrator = ValidationOrchestrator(self._store, emitter=self.events)
        self._lifecycle = SubmissionLifecycle(
            self._store,
            reset_delay_ms=self.config.reset_delay_ms,
            scheduler=scheduler,
            emitter=self.events,
        )

    @classmethod
    def from_dict(
        cls, definition: Dict[str, Any], scheduler: Optional[Scheduler] = None
    ) -> "FormRuntime":
        """Build a runtime from a definition dict.

        The dict holds ``fields`` plus optional ``resetDelayMs`` and
        ``revalidateDependents``.

        Raises:
            FormDefinitionError: If the definition is malformed
        """
        return cls(
            schema=FormSchema.from_dict(definition),
            config=FormConfig.from_dict(definition),
            scheduler=scheduler,
        )

    # Event intake

    def on_value_change(self, field_id: str, new_value: str) -> None:
        """Handle an input change.

        Raises:
            InvalidFieldReferenceError: If the field is not declared
            FormClosedError: If the form has been closed
        """
        self._check_open()
        self._store.set_value(field_id, new_value)

    def on_blur(self, field_id: str) -> None:
        """Handle a field losing focus: mark it touched and validate it.

        Raises:
            InvalidFieldReferenceError: If the field is not declared
            FormClosedError: If the form has been closed
        """
        self._check_open()
        self._store.mark_touched_and_validate(field_id)

    def on_submit(self) -> ValidationResult:
        """Handle a submit: validate everything and submit if valid.

        Returns:
            The full-form ValidationResult

        Raises:
            FormClosedError: If the form has been closed
        """
        self._check_open()
        result = self._orchestrator.validate_all()
        if self._lifecycle.on_validated(result):
            logger.info("Submission accepted for %d fields", len(self.schema))
        return result

    # Read access

    def field(self, field_id: str) -> FieldState:
        """Current state of one field.

        Raises:
            InvalidFieldReferenceError: If the field is not declared
        """
        return self._store.get(field_id)

    @property
    def fields(self) -> Dict[str, FieldState]:
        """Current state of every field, in declaration order."""
        return self._store.states()

    def snapshot(self) -> Dict[str, str]:
        """Current value of every field."""
        return self._store.get_snapshot()

    @property
    def submission_state(self) -> SubmissionState:
        return self._lifecycle.state

    @property
    def is_submitted(self) -> bool:
        return self._lifecycle.is_submitted

    @property
    def reset_pending(self) -> bool:
        return self._lifecycle.reset_pending

    @property
    def closed(self) -> bool:
        return self._lifecycle.closed

    def to_dict(self) -> Dict[str, Any]:
        """Everything a renderer needs, as plain data."""
        return {
            "state": self._lifecycle.state.value,
            "resetPending": self._lifecycle.reset_pending,
            "fields": {
                field_id: state.to_dict() for field_id, state in self._store.states().items()
            },
        }

    # Teardown

    def close(self) -> None:
        """Cancel any pending reset and refuse further events."""
        self._lifecycle.close()

    def __enter__(self) -> "FormRuntime":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._lifecycle.closed:
            raise FormClosedError("Form has been closed")


__all__ = [
    "FormRuntime",
]
