"""Full-form validation for the formstate engine.

This module provides the ValidationOrchestrator that runs on submit. It
re-checks every declared field against the current values, ignoring what the
store last recorded, then writes all results back in one step and reports
whether the form may be submitted.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging

from formstate.errors import ValidationError
from formstate.events import EventEmitter, FormEvent
from formstate.store import FieldStore
from formstate.types import EventType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating the whole form.

    Attributes:
        errors_by_field: Every declared field id, in declaration order,
            mapped to its error or None
        is_valid: True iff no field produced an error

    Examples:
        >>> result = ValidationResult(errors_by_field={"age": None}, is_valid=True)
        >>> result.errors
        []
    """
    errors_by_field: Dict[str, Optional[ValidationError]]
    is_valid: bool

    @property
    def errors(self) -> List[ValidationError]:
        """The errors that occurred, in declaration order."""
        return [e for e in self.errors_by_field.values() if e is not None]

    @property
    def invalid_fields(self) -> List[str]:
        return [field_id for field_id, e in self.errors_by_field.items() if e is not None]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "invalidFields": self.invalid_fields,
        }


class ValidationOrchestrator:
    """Runs every field's rule against one snapshot of the form.

    Attributes:
        store: The field store read from and written back to

    Examples:
        >>> from formstate.schema import registration_schema
        >>> store = FieldStore(registration_schema())
        >>> result = ValidationOrchestrator(store).validate_all()
        >>> result.is_valid
        False
        >>> store.get("email").touched
        True
    """

    def __init__(self, store: FieldStore, emitter: Optional[EventEmitter] = None):
        self.store = store
        self._emitter = emitter or EventEmitter()

    def validate_all(self) -> ValidationResult:
        """Validate every field, mark all touched, and store the errors.

        Every error is computed from the same snapshot before the store is
        touched, so a partially validated form is never observable.

        Returns:
            ValidationResult with per-field errors and the overall verdict
        """
        snapshot = self.store.get_snapshot()
        errors_by_field: Dict[str, Optional[ValidationError]] = {
            declared.field_id: declared.validate(snapshot[declared.field_id], snapshot)
            for declared in self.store.schema
        }
        self.store.apply_validation(errors_by_field)

        result = ValidationResult(
            errors_by_field=errors_by_field,
            is_valid=all(e is None for e in errors_by_field.values()),
        )

        if result.is_valid:
            logger.debug("Form validation passed")
            self._emitter.emit(FormEvent.create(EventType.VALIDATION_PASSED))
        else:
            logger.debug("Form validation failed for %s", ", ".join(result.invalid_fields))
            self._emitter.emit(FormEvent.create(
                EventType.VALIDATION_FAILED,
                payload={"invalidFields": result.invalid_fields},
            ))
        return result


__all__ = [
    "ValidationOrchestrator",
    "ValidationResult",
]
