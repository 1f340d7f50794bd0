"""Field store: per-field value, touched flag and error.

The store owns one immutable ``FieldState`` per declared field. Every
operation builds the new record first and then swaps it in with a single
assignment, so an observer never sees a value without its matching
touched/error.

Touched gating lives here, and only here:
- ``set_value`` re-validates only fields that are already touched
- ``mark_touched_and_validate`` always re-validates
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional
import logging

from formstate.errors import ValidationError
from formstate.events import EventEmitter, FormEvent
from formstate.schema import FormSchema
from formstate.types import EventType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldState:
    """Current state of one field.

    Attributes:
        value: Raw input, possibly empty
        touched: Whether the field has been blurred or the form submitted
        error: Result of the field's rule at its last validation, or None

    Examples:
        >>> state = FieldState()
        >>> (state.value, state.touched, state.error)
        ('', False, None)
    """
    value: str = ""
    touched: bool = False
    error: Optional[ValidationError] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None

    @property
    def visible_error(self) -> Optional[ValidationError]:
        """The error to render: errors of untouched fields stay hidden."""
        return self.error if self.touched else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "value": self.value,
            "touched": self.touched,
            "error": self.error.to_dict() if self.error is not None else None,
        }


class FieldStore:
    """Holds the FieldState of every field a FormSchema declares.

    Args:
        schema: The form's field declarations
        emitter: Optional emitter for field events
        revalidate_dependents: Also re-validate touched dependents (such as a
            password confirmation) when the field they read changes

    Examples:
        >>> from formstate.schema import registration_schema
        >>> store = FieldStore(registration_schema())
        >>> store.set_value("age", "12")
        >>> store.get("age").error is None
        True
        >>> store.mark_touched_and_validate("age")
        >>> store.get("age").error.message
        'Age must be between 13 and 120'
    """

    def __init__(
        self,
        schema: FormSchema,
        emitter: Optional[EventEmitter] = None,
        revalidate_dependents: bool = False,
    ):
        self.schema = schema
        self._emitter = emitter or EventEmitter()
        self._revalidate_dependents = revalidate_dependents
        self._states: Dict[str, FieldState] = {
            field_id: FieldState() for field_id in schema.field_ids
        }

    def get(self, field_id: str) -> FieldState:
        """Current state of a field.

        Raises:
            InvalidFieldReferenceError: If the field is not declared
        """
        self.schema.get(field_id)
        return self._states[field_id]

    def states(self) -> Dict[str, FieldState]:
        """All field states, in declaration order."""
        return {field_id: self._states[field_id] for field_id in self.schema.field_ids}

    def get_snapshot(self) -> Dict[str, str]:
        """Current value of every field, freshly built on each call."""
        return {field_id: self._states[field_id].value for field_id in self.schema.field_ids}

    def set_value(self, field_id: str, new_value: str) -> None:
        """Store a new value, re-validating only if the field is touched.

        An untouched field keeps its error as is, so nothing is reported
        before the user first leaves the field.

        Raises:
            InvalidFieldReferenceError: If the field is not declared
        """
        declared = self.schema.get(field_id)
        current = self._states[field_id]

        if current.touched:
            snapshot = self.get_snapshot()
            snapshot[field_id] = new_value
            error = declared.validate(new_value, snapshot)
            self._states[field_id] = replace(current, value=new_value, error=error)
        else:
            self._states[field_id] = replace(current, value=new_value)

        logger.debug("Field %s changed (touched=%s)", field_id, current.touched)
        self._emitter.emit(FormEvent.create(
            EventType.FIELD_CHANGED,
            field_id=field_id,
            payload={"touched": current.touched},
        ))
        if current.touched:
            self._emit_validated(field_id)

        if self._revalidate_dependents:
            for dependent in self.schema.dependents_of(field_id):
                if self._states[dependent].touched:
                    self._validate(dependent)

    def mark_touched_and_validate(self, field_id: str) -> None:
        """Mark a field touched and re-validate it unconditionally.

        Raises:
            InvalidFieldReferenceError: If the field is not declared
        """
        self.schema.get(field_id)
        self._validate(field_id)

    def apply_validation(self, errors_by_field: Mapping[str, Optional[ValidationError]]) -> None:
        """Mark every given field touched and store its precomputed error.

        All records are built before any is written, then swapped in
        together.

        Raises:
            InvalidFieldReferenceError: If any field is not declared
        """
        for field_id in errors_by_field:
            self.schema.get(field_id)

        updated = {
            field_id: replace(self._states[field_id], touched=True, error=error)
            for field_id, error in errors_by_field.items()
        }
        self._states = {**self._states, **updated}

        for field_id in updated:
            self._emit_validated(field_id)

    def reset(self) -> None:
        """Restore every field to its initial empty, untouched, valid state."""
        self._states = {field_id: FieldState() for field_id in self.schema.field_ids}
        logger.debug("All %d fields reset", len(self._states))
        self._emitter.emit(FormEvent.create(
            EventType.FIELDS_RESET,
            payload={"fields": self.schema.field_ids},
        ))

    def _validate(self, field_id: str) -> None:
        declared = self.schema.get(field_id)
        current = self._states[field_id]
        error = declared.validate(current.value, self.get_snapshot())
        self._states[field_id] = replace(current, touched=True, error=error)
        self._emit_validated(field_id)

    def _emit_validated(self, field_id: str) -> None:
        error = self._states[field_id].error
        logger.debug(
            "Field %s validated: %s", field_id, error.code.value if error else "valid"
        )
        self._emitter.emit(FormEvent.create(
            EventType.FIELD_VALIDATED,
            field_id=field_id,
            payload={
                "valid": error is None,
                "code": error.code.value if error is not None else None,
            },
        ))


__all__ = [
    "FieldState",
    "FieldStore",
]
