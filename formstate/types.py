"""Core type definitions for the formstate validation engine.

This module defines the fundamental types used throughout formstate:
- FieldKind: The closed set of field kinds, one validation rule per kind
- SubmissionState: Editing/Submitted lifecycle states
- FieldErrorCode: Validation error codes for individual fields
- EventType: Event types emitted to presentation-layer listeners

These types form the contract between the form core and whatever renders it.
"""

from enum import Enum


class FieldKind(str, Enum):
    """Kinds of form fields.

    Each kind maps to exactly one rule in ``formstate.rules``. The rule is
    resolved once, when the field is declared.
    """
    NAME = "name"
    EMAIL = "email"
    PASSWORD = "password"
    CONFIRMATION = "confirmation"
    AGE = "age"


class SubmissionState(str, Enum):
    """Submission lifecycle states.

    ``editing`` is the initial state. ``submitted`` lasts until the reset
    timer fires.
    """
    EDITING = "editing"
    SUBMITTED = "submitted"


class FieldErrorCode(str, Enum):
    """Validation error codes for individual field failures."""
    REQUIRED = "required"
    TOO_SHORT = "too_short"
    INVALID_CHARACTERS = "invalid_characters"
    INVALID_FORMAT = "invalid_format"
    MISSING_CHARACTER_CLASS = "missing_character_class"
    MISMATCH = "mismatch"
    NOT_A_NUMBER = "not_a_number"
    OUT_OF_RANGE = "out_of_range"


class EventType(str, Enum):
    """Event types delivered to listeners.

    Field events come from the store, validation events from the
    orchestrator, form events from the submission lifecycle.
    """
    FIELD_CHANGED = "field.changed"
    FIELD_VALIDATED = "field.validated"
    FIELDS_RESET = "fields.reset"
    VALIDATION_PASSED = "validation.passed"
    VALIDATION_FAILED = "validation.failed"
    FORM_SUBMITTED = "form.submitted"
    FORM_RESET = "form.reset"
    RESET_CANCELLED = "reset.cancelled"


__all__ = [
    "FieldKind",
    "SubmissionState",
    "FieldErrorCode",
    "EventType",
]
