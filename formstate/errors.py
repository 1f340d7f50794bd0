"""Error types for the formstate validation engine.

There are two families here. ``ValidationError`` is a plain data record.
Rules return it and the store holds it. It is never raised. The exception
classes signal programmer errors such as an unknown field id or a malformed
form definition, and they fail fast.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from formstate.types import FieldErrorCode


@dataclass(frozen=True)
class ValidationError:
    """Per-field validation failure.

    Attributes:
        field_id: Identifier of the field the error is attached to
        code: Specific validation error code
        message: Human-readable error description

    Examples:
        >>> err = ValidationError(
        ...     field_id="email",
        ...     code=FieldErrorCode.INVALID_FORMAT,
        ...     message="Please enter a valid email address",
        ... )
        >>> err.field_id
        'email'
    """
    field_id: str
    code: FieldErrorCode
    message: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "fieldId": self.field_id,
            "code": self.code.value if isinstance(self.code, FieldErrorCode) else self.code,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationError":
        """Create ValidationError from dict."""
        code = data["code"]
        if isinstance(code, str):
            code = FieldErrorCode(code)
        return cls(
            field_id=data["fieldId"],
            code=code,
            message=data["message"],
        )


class InvalidFieldReferenceError(LookupError):
    """Raised when a caller names a field that the form does not declare.

    Attributes:
        field_id: The unknown identifier
        known_fields: Identifiers the form does declare
    """

    def __init__(self, field_id: str, known_fields: Optional[List[str]] = None):
        self.field_id = field_id
        self.known_fields = list(known_fields or [])
        message = f"Unknown field '{field_id}'"
        if self.known_fields:
            message += f". Declared fields are: {', '.join(self.known_fields)}"
        super().__init__(message)


class FormDefinitionError(ValueError):
    """Raised when a form definition or configuration is malformed.

    Attributes:
        problems: One message per violation found
    """

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("Invalid form definition: " + "; ".join(self.problems))


class FormClosedError(RuntimeError):
    """Raised when an event reaches a form that has been torn down."""


__all__ = [
    "ValidationError",
    "InvalidFieldReferenceError",
    "FormDefinitionError",
    "FormClosedError",
]
