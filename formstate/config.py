"""Form configuration and definition checking.

Form definitions arrive as plain dicts (typically parsed from JSON). They are
checked against JSON Schema (Draft 7) before anything is built from them, and
every violation is reported at once in a single ``FormDefinitionError``.
"""

from dataclasses import dataclass
from typing import Any, Dict

import jsonschema
from jsonschema import Draft7Validator

from formstate.errors import FormDefinitionError

DEFAULT_RESET_DELAY_MS = 3000

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "resetDelayMs": {"type": "integer", "minimum": 0},
        "revalidateDependents": {"type": "boolean"},
    },
}


def _describe(error: jsonschema.ValidationError) -> str:
    """Turn a jsonschema error into a one-line message naming its location."""
    location = "/".join(str(p) for p in error.absolute_path)
    if error.validator == "required":
        return f"{location or '<root>'}: {error.message}"
    if error.validator == "enum":
        return f"{location}: must be one of {error.validator_value}, got {error.instance!r}"
    if error.validator == "type":
        return f"{location or '<root>'}: expected {error.validator_value}"
    return f"{location or '<root>'}: {error.message}"


def check_definition(schema: Dict[str, Any], data: Any) -> None:
    """Validate ``data`` against a JSON Schema.

    Args:
        schema: A JSON Schema definition (Draft 7)
        data: The definition to check

    Raises:
        FormDefinitionError: Listing every violation, in document order
    """
    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])
    if errors:
        raise FormDefinitionError([_describe(e) for e in errors])


@dataclass(frozen=True)
class FormConfig:
    """Behavioral settings for a form.

    Attributes:
        reset_delay_ms: Delay between a successful submit and the automatic
            reset of every field
        revalidate_dependents: When True, changing a field also re-validates
            touched fields whose rule reads it (e.g. a password confirmation)

    Examples:
        >>> FormConfig().reset_delay_ms
        3000
        >>> FormConfig.from_dict({"resetDelayMs": 500}).reset_delay_ms
        500
    """
    reset_delay_ms: int = DEFAULT_RESET_DELAY_MS
    revalidate_dependents: bool = False

    def __post_init__(self):
        if self.reset_delay_ms < 0:
            raise FormDefinitionError([f"resetDelayMs: must be >= 0, got {self.reset_delay_ms}"])

    @property
    def reset_delay_seconds(self) -> float:
        return self.reset_delay_ms / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "resetDelayMs": self.reset_delay_ms,
            "revalidateDependents": self.revalidate_dependents,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormConfig":
        """Create FormConfig from dict, ignoring keys it does not own.

        Raises:
            FormDefinitionError: If a known key has the wrong type or range
        """
        check_definition(CONFIG_SCHEMA, data)
        return cls(
            reset_delay_ms=data.get("resetDelayMs", DEFAULT_RESET_DELAY_MS),
            revalidate_dependents=data.get("revalidateDependents", False),
        )


__all__ = [
    "DEFAULT_RESET_DELAY_MS",
    "CONFIG_SCHEMA",
    "FormConfig",
    "check_definition",
]
