"""Rule library for the formstate validation engine.

Every rule is a pure function ``rule(field_id, value, snapshot)`` returning a
``ValidationError`` or ``None`` when the value is valid. ``snapshot`` maps
field ids to their current values and is only read by cross-field rules.

Each rule runs its checks top to bottom and returns on the first failure,
so later checks never see a value an earlier check rejected.

Usage:
    >>> from formstate.rules import validate_name
    >>> validate_name("fullName", "Jo", {}) is None
    True
    >>> validate_name("fullName", "J", {}).message
    'Name must be at least 2 characters'
"""

import re
from typing import Callable, Dict, Mapping, Optional

from formstate.errors import ValidationError
from formstate.types import FieldErrorCode, FieldKind

Snapshot = Mapping[str, str]
Rule = Callable[[str, str, Snapshot], Optional[ValidationError]]
"""Type alias for rule callables: (field_id, value, snapshot) -> error or None."""

NAME_MIN_LENGTH = 2
PASSWORD_MIN_LENGTH = 8
AGE_MIN = 13
AGE_MAX = 120

# Whitespace as browsers trim it. Unlike str.strip() this leaves the
# \x1c-\x1f separators and \x85 alone, and strips the byte order mark.
WHITESPACE = (
    "\t\n\v\f\r \u00a0\u1680"
    + "".join(chr(c) for c in range(0x2000, 0x200B))
    + "\u2028\u2029\u202f\u205f\u3000\ufeff"
)
_WS = re.escape(WHITESPACE)

_NAME_CHARS = re.compile(f"[a-zA-Z{_WS}]+")
_EMAIL_SHAPE = re.compile(f"[^{_WS}@]+@[^{_WS}@]+\\.[^{_WS}@]+")
_LOWER = re.compile(r"[a-z]")
_UPPER = re.compile(r"[A-Z]")
_DIGIT = re.compile(r"[0-9]")
_DIGITS_ONLY = re.compile(r"[0-9]+")


def _error(field_id: str, code: FieldErrorCode, message: str) -> ValidationError:
    return ValidationError(field_id=field_id, code=code, message=message)


def _trim(value: str) -> str:
    return value.strip(WHITESPACE)


def text_length(value: str) -> int:
    """Length in UTF-16 code units, the way a browser counts characters.

    >>> text_length("ab"), text_length("\\U0001F600")
    (2, 2)
    """
    return len(value.encode("utf-16-le")) // 2


def validate_name(field_id: str, value: str, snapshot: Snapshot) -> Optional[ValidationError]:
    """Validate a person's name.

    Blank is required, fewer than two non-blank characters is too short, and
    anything but ASCII letters and whitespace is rejected.
    """
    trimmed = _trim(value)
    if not trimmed:
        return _error(field_id, FieldErrorCode.REQUIRED, "Full name is required")
    if text_length(trimmed) < NAME_MIN_LENGTH:
        return _error(
            field_id,
            FieldErrorCode.TOO_SHORT,
            f"Name must be at least {NAME_MIN_LENGTH} characters",
        )
    # Checked against the raw value, surrounding whitespace included
    if not _NAME_CHARS.fullmatch(value):
        return _error(
            field_id,
            FieldErrorCode.INVALID_CHARACTERS,
            "Name can only contain letters and spaces",
        )
    return None


def validate_email(field_id: str, value: str, snapshot: Snapshot) -> Optional[ValidationError]:
    """Validate an email address shape (``local@domain.tld``)."""
    if not _trim(value):
        return _error(field_id, FieldErrorCode.REQUIRED, "Email is required")
    if not _EMAIL_SHAPE.fullmatch(value):
        return _error(
            field_id,
            FieldErrorCode.INVALID_FORMAT,
            "Please enter a valid email address",
        )
    return None


def validate_password(field_id: str, value: str, snapshot: Snapshot) -> Optional[ValidationError]:
    """Validate password length and character classes.

    Only the empty string counts as missing. A password made of spaces is
    reported for its length or its character classes instead.
    """
    if not value:
        return _error(field_id, FieldErrorCode.REQUIRED, "Password is required")
    if text_length(value) < PASSWORD_MIN_LENGTH:
        return _error(
            field_id,
            FieldErrorCode.TOO_SHORT,
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters",
        )
    if not (_LOWER.search(value) and _UPPER.search(value) and _DIGIT.search(value)):
        return _error(
            field_id,
            FieldErrorCode.MISSING_CHARACTER_CLASS,
            "Password must contain uppercase, lowercase, and number",
        )
    return None


def validate_age(field_id: str, value: str, snapshot: Snapshot) -> Optional[ValidationError]:
    """Validate an age given as a string of digits within [13, 120]."""
    if not value:
        return _error(field_id, FieldErrorCode.REQUIRED, "Age is required")
    if not _DIGITS_ONLY.fullmatch(value):
        return _error(field_id, FieldErrorCode.NOT_A_NUMBER, "Age must be a number")

    # Strip leading zeros before converting so huge inputs never reach int()
    significant = value.lstrip("0") or "0"
    if len(significant) > len(str(AGE_MAX)) or not AGE_MIN <= int(significant) <= AGE_MAX:
        return _error(
            field_id,
            FieldErrorCode.OUT_OF_RANGE,
            f"Age must be between {AGE_MIN} and {AGE_MAX}",
        )
    return None


def make_confirmation_rule(source_field: str) -> Rule:
    """Build a rule requiring a value equal to ``source_field``'s current value.

    The source value is read from the snapshot on every call, never cached.

    Args:
        source_field: Identifier of the field being confirmed (e.g. "password")

    Returns:
        A rule callable

    Examples:
        >>> rule = make_confirmation_rule("password")
        >>> rule("confirmPassword", "Abcdef12", {"password": "Abcdef12"}) is None
        True
        >>> rule("confirmPassword", "Abcdef1", {"password": "Abcdef12"}).message
        'Passwords do not match'
    """

    def validate_confirmation(
        field_id: str, value: str, snapshot: Snapshot
    ) -> Optional[ValidationError]:
        if not value:
            return _error(field_id, FieldErrorCode.REQUIRED, "Please confirm your password")
        if value != snapshot.get(source_field, ""):
            return _error(field_id, FieldErrorCode.MISMATCH, "Passwords do not match")
        return None

    return validate_confirmation


# Kinds whose rule needs no per-field parameters
STANDALONE_RULES: Dict[FieldKind, Rule] = {
    FieldKind.NAME: validate_name,
    FieldKind.EMAIL: validate_email,
    FieldKind.PASSWORD: validate_password,
    FieldKind.AGE: validate_age,
}


def resolve_rule(kind: FieldKind, depends_on: Optional[str] = None) -> Rule:
    """Resolve the rule for a field kind.

    Args:
        kind: The field kind
        depends_on: For confirmation fields, the field being confirmed

    Returns:
        The rule callable for this kind

    Raises:
        ValueError: If a confirmation kind has no ``depends_on``, or another
            kind is given one
    """
    if kind == FieldKind.CONFIRMATION:
        if not depends_on:
            raise ValueError("Confirmation fields must name the field they confirm")
        return make_confirmation_rule(depends_on)

    if depends_on is not None:
        raise ValueError(f"Fields of kind '{kind.value}' cannot depend on another field")
    return STANDALONE_RULES[kind]


__all__ = [
    "Rule",
    "Snapshot",
    "validate_name",
    "validate_email",
    "validate_password",
    "validate_age",
    "make_confirmation_rule",
    "resolve_rule",
    "STANDALONE_RULES",
]
