"""Unit tests for the field store.

Tests cover:
- Initial FieldState defaults
- Touched gating on value changes
- Unconditional validation on blur
- Snapshots and resets
- Optional re-validation of dependent fields
- Unknown field references
"""

import pytest

from formstate.errors import InvalidFieldReferenceError
from formstate.events import EventEmitter
from formstate.schema import registration_schema
from formstate.store import FieldState, FieldStore
from formstate.types import EventType, FieldErrorCode


@pytest.fixture
def store():
    return FieldStore(registration_schema())


class TestInitialState:
    """Test the state of a fresh store."""

    def test_every_field_starts_empty(self, store):
        """Should create one default record per declared field."""
        states = store.states()
        assert list(states) == registration_schema().field_ids
        assert all(state == FieldState() for state in states.values())

    def test_snapshot_of_fresh_store(self, store):
        """Should report empty values for every field."""
        assert store.get_snapshot() == {
            "fullName": "", "email": "", "password": "", "confirmPassword": "", "age": "",
        }


class TestSetValue:
    """Test value changes."""

    def test_untouched_field_keeps_no_error(self, store):
        """Should not validate before the first blur."""
        store.set_value("email", "not-an-email")
        state = store.get("email")
        assert state.value == "not-an-email"
        assert state.touched is False
        assert state.error is None

    @pytest.mark.parametrize("field_id,values", [
        ("fullName", ["J", "Jo3", "", "Jo"]),
        ("age", ["abc", "12", "25", ""]),
        ("confirmPassword", ["x", ""]),
    ])
    def test_untouched_error_never_changes(self, store, field_id, values):
        """Should leave the error alone for any sequence of untouched changes."""
        for value in values:
            store.set_value(field_id, value)
            assert store.get(field_id).error is None
            assert store.get(field_id).touched is False

    def test_touched_field_is_revalidated(self, store):
        """Should re-validate on every change once touched."""
        store.mark_touched_and_validate("fullName")
        assert store.get("fullName").error.code == FieldErrorCode.REQUIRED

        store.set_value("fullName", "J")
        assert store.get("fullName").error.code == FieldErrorCode.TOO_SHORT

        store.set_value("fullName", "Jo")
        assert store.get("fullName").error is None

    def test_revalidation_sees_new_value_in_snapshot(self, store):
        """Should validate a touched confirmation against the stored password."""
        store.set_value("password", "Abcdef12")
        store.mark_touched_and_validate("confirmPassword")
        store.set_value("confirmPassword", "Abcdef12")
        assert store.get("confirmPassword").error is None

    def test_unknown_field(self, store):
        """Should fail fast on an undeclared field."""
        with pytest.raises(InvalidFieldReferenceError):
            store.set_value("nickname", "x")


class TestMarkTouchedAndValidate:
    """Test blur handling."""

    def test_marks_touched_and_validates(self, store):
        """Should set touched and compute the error."""
        store.set_value("age", "12")
        store.mark_touched_and_validate("age")
        state = store.get("age")
        assert state.touched is True
        assert state.error.code == FieldErrorCode.OUT_OF_RANGE

    def test_revalidates_when_already_touched(self, store):
        """Should recompute even for a touched field."""
        store.mark_touched_and_validate("age")
        assert store.get("age").error.code == FieldErrorCode.REQUIRED
        store.set_value("age", "25")
        store.mark_touched_and_validate("age")
        assert store.get("age").error is None

    def test_valid_field_has_no_error(self, store):
        """Should clear the error for a valid value."""
        store.set_value("email", "a@b.com")
        store.mark_touched_and_validate("email")
        assert store.get("email").error is None
        assert store.get("email").is_valid

    def test_unknown_field(self, store):
        """Should fail fast on an undeclared field."""
        with pytest.raises(InvalidFieldReferenceError):
            store.mark_touched_and_validate("nickname")


class TestConfirmationStaleness:
    """Test how a touched confirmation reacts to password changes."""

    def test_confirmation_not_revalidated_by_default(self, store):
        """Should keep the confirmation's earlier verdict until it is validated again."""
        store.set_value("password", "Abcdef12")
        store.set_value("confirmPassword", "Abcdef12")
        store.mark_touched_and_validate("confirmPassword")
        assert store.get("confirmPassword").error is None

        store.set_value("password", "Changed99")
        assert store.get("confirmPassword").error is None

        store.mark_touched_and_validate("confirmPassword")
        assert store.get("confirmPassword").error.code == FieldErrorCode.MISMATCH

    def test_confirmation_revalidated_when_enabled(self):
        """Should re-validate touched dependents when configured to."""
        store = FieldStore(registration_schema(), revalidate_dependents=True)
        store.set_value("password", "Abcdef12")
        store.set_value("confirmPassword", "Abcdef12")
        store.mark_touched_and_validate("confirmPassword")

        store.set_value("password", "Changed99")
        assert store.get("confirmPassword").error.code == FieldErrorCode.MISMATCH

        store.set_value("password", "Abcdef12")
        assert store.get("confirmPassword").error is None

    def test_untouched_dependent_left_alone(self):
        """Should not surface errors on an untouched dependent."""
        store = FieldStore(registration_schema(), revalidate_dependents=True)
        store.set_value("confirmPassword", "x")
        store.set_value("password", "Abcdef12")
        state = store.get("confirmPassword")
        assert state.touched is False
        assert state.error is None


class TestSnapshotAndReset:
    """Test snapshots and resets."""

    def test_snapshot_is_fresh_copy(self, store):
        """Should not be affected by later changes or by mutation."""
        snapshot = store.get_snapshot()
        store.set_value("email", "a@b.com")
        assert snapshot["email"] == ""
        snapshot["email"] = "mutated"
        assert store.get_snapshot()["email"] == "a@b.com"

    def test_reset_restores_defaults(self, store):
        """Should return every field to empty, untouched, valid."""
        store.set_value("fullName", "J")
        store.mark_touched_and_validate("fullName")
        store.mark_touched_and_validate("email")
        store.reset()
        assert all(state == FieldState() for state in store.states().values())


class TestApplyValidation:
    """Test the bulk write used by full-form validation."""

    def test_marks_all_touched(self, store):
        """Should mark each given field touched with its error."""
        schema = registration_schema()
        errors = {field_id: schema.validate(field_id, "", {}) for field_id in schema.field_ids}
        store.apply_validation(errors)
        for field_id, state in store.states().items():
            assert state.touched is True
            assert state.error == errors[field_id]

    def test_unknown_field_writes_nothing(self, store):
        """Should reject the whole write if any field is unknown."""
        with pytest.raises(InvalidFieldReferenceError):
            store.apply_validation({"email": None, "nickname": None})
        assert store.get("email").touched is False


class TestFieldState:
    """Test FieldState helpers."""

    def test_visible_error_requires_touch(self):
        """Should hide errors of untouched fields."""
        error = registration_schema().validate("age", "", {})
        assert FieldState(error=error).visible_error is None
        assert FieldState(touched=True, error=error).visible_error == error

    def test_to_dict(self):
        """Should serialize value, touched and error."""
        error = registration_schema().validate("age", "abc", {})
        assert FieldState("abc", True, error).to_dict() == {
            "value": "abc",
            "touched": True,
            "error": {"fieldId": "age", "code": "not_a_number", "message": "Age must be a number"},
        }
        assert FieldState().to_dict() == {"value": "", "touched": False, "error": None}


class TestStoreEvents:
    """Test events emitted by the store."""

    def test_change_and_validate_events(self):
        """Should emit a change event, plus a validation event when touched."""
        emitter = EventEmitter()
        seen = []
        emitter.on_any(seen.append)
        store = FieldStore(registration_schema(), emitter=emitter)

        store.set_value("age", "12")
        assert [e.type for e in seen] == [EventType.FIELD_CHANGED]

        store.mark_touched_and_validate("age")
        assert seen[-1].type == EventType.FIELD_VALIDATED
        assert seen[-1].payload == {"valid": False, "code": "out_of_range"}

        store.set_value("age", "25")
        assert [e.type for e in seen[-2:]] == [EventType.FIELD_CHANGED, EventType.FIELD_VALIDATED]

    def test_events_do_not_carry_values(self):
        """Should never expose field values to listeners."""
        emitter = EventEmitter()
        seen = []
        emitter.on_any(seen.append)
        store = FieldStore(registration_schema(), emitter=emitter)
        store.set_value("password", "Secret123")
        store.mark_touched_and_validate("password")
        assert all("Secret123" not in e.to_jsonl() for e in seen)

    def test_reset_event(self):
        """Should emit a single reset event."""
        emitter = EventEmitter()
        seen = []
        emitter.on(EventType.FIELDS_RESET, seen.append)
        FieldStore(registration_schema(), emitter=emitter).reset()
        assert len(seen) == 1
        assert seen[0].payload["fields"] == registration_schema().field_ids
