"""Field and form schemas.

A ``FormSchema`` is the fixed, ordered list of fields a form declares. Each
``FieldSchema`` resolves its rule once, at declaration time, from its
``FieldKind``. Nothing here changes after construction.

Usage:
    >>> schema = registration_schema()
    >>> schema.field_ids
    ['fullName', 'email', 'password', 'confirmPassword', 'age']
    >>> schema.validate("age", "12", {}).message
    'Age must be between 13 and 120'
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional

from formstate.config import check_definition
from formstate.errors import FormDefinitionError, InvalidFieldReferenceError, ValidationError
from formstate.rules import Rule, resolve_rule
from formstate.types import FieldKind

FORM_DEFINITION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "fields": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "kind": {"enum": [k.value for k in FieldKind]},
                    "dependsOn": {"type": "string", "minLength": 1},
                },
                "required": ["id", "kind"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["fields"],
}


@dataclass(frozen=True)
class FieldSchema:
    """Declaration of a single form field.

    Attributes:
        field_id: Identifier, unique within the form
        kind: Which rule applies to the field
        depends_on: For confirmation fields, the field being confirmed
        rule: The resolved rule (derived from kind and depends_on)
    """
    field_id: str
    kind: FieldKind
    depends_on: Optional[str] = None
    rule: Rule = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if isinstance(self.kind, str) and not isinstance(self.kind, FieldKind):
            object.__setattr__(self, "kind", FieldKind(self.kind))
        try:
            rule = resolve_rule(self.kind, self.depends_on)
        except ValueError as exc:
            raise FormDefinitionError([f"{self.field_id}: {exc}"]) from exc
        object.__setattr__(self, "rule", rule)

    def validate(self, value: str, snapshot: Mapping[str, str]) -> Optional[ValidationError]:
        """Apply this field's rule to ``value``."""
        return self.rule(self.field_id, value, snapshot)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {"id": self.field_id, "kind": self.kind.value}
        if self.depends_on is not None:
            result["dependsOn"] = self.depends_on
        return result


class FormSchema:
    """Ordered, immutable collection of field declarations.

    Raises:
        FormDefinitionError: On duplicate ids, or when a confirmation field
            names a field that is missing or is itself a confirmation
    """

    def __init__(self, fields: List[FieldSchema]):
        problems: List[str] = []
        by_id: Dict[str, FieldSchema] = {}
        for declared in fields:
            if declared.field_id in by_id:
                problems.append(f"{declared.field_id}: duplicate field id")
            by_id[declared.field_id] = declared

        for declared in fields:
            if declared.depends_on is None:
                continue
            target = by_id.get(declared.depends_on)
            if target is None:
                problems.append(f"{declared.field_id}: depends on undeclared field '{declared.depends_on}'")
            elif target.kind == FieldKind.CONFIRMATION:
                problems.append(f"{declared.field_id}: cannot confirm another confirmation field")

        if not fields:
            problems.append("a form needs at least one field")
        if problems:
            raise FormDefinitionError(problems)

        self._fields = by_id
        self._order = [declared.field_id for declared in fields]

    @property
    def field_ids(self) -> List[str]:
        return list(self._order)

    def __iter__(self) -> Iterator[FieldSchema]:
        return (self._fields[field_id] for field_id in self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, field_id: object) -> bool:
        return field_id in self._fields

    def get(self, field_id: str) -> FieldSchema:
        """Look up a field declaration.

        Raises:
            InvalidFieldReferenceError: If the field is not declared
        """
        try:
            return self._fields[field_id]
        except KeyError:
            raise InvalidFieldReferenceError(field_id, self._order) from None

    def dependents_of(self, field_id: str) -> List[str]:
        """Ids of fields whose rule reads ``field_id``, in declaration order."""
        return [declared.field_id for declared in self if declared.depends_on == field_id]

    def validate(
        self, field_id: str, value: str, snapshot: Mapping[str, str]
    ) -> Optional[ValidationError]:
        """Validate ``value`` with the rule declared for ``field_id``.

        Returns:
            A ValidationError, or None when the value is valid

        Raises:
            InvalidFieldReferenceError: If the field is not declared
        """
        return self.get(field_id).validate(value, snapshot)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {"fields": [declared.to_dict() for declared in self]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormSchema":
        """Create FormSchema from a definition dict.

        Examples:
            >>> schema = FormSchema.from_dict({"fields": [
            ...     {"id": "pw", "kind": "password"},
            ...     {"id": "pw2", "kind": "confirmation", "dependsOn": "pw"},
            ... ]})
            >>> schema.dependents_of("pw")
            ['pw2']

        Raises:
            FormDefinitionError: If the definition is malformed
        """
        check_definition(FORM_DEFINITION_SCHEMA, data)
        return cls([
            FieldSchema(
                field_id=item["id"],
                kind=FieldKind(item["kind"]),
                depends_on=item.get("dependsOn"),
            )
            for item in data["fields"]
        ])


def registration_schema() -> FormSchema:
    """The five-field registration form."""
    return FormSchema([
        FieldSchema("fullName", FieldKind.NAME),
        FieldSchema("email", FieldKind.EMAIL),
        FieldSchema("password", FieldKind.PASSWORD),
        FieldSchema("confirmPassword", FieldKind.CONFIRMATION, depends_on="password"),
        FieldSchema("age", FieldKind.AGE),
    ])


__all__ = [
    "FORM_DEFINITION_SCHEMA",
    "FieldSchema",
    "FormSchema",
    "registration_schema",
]
