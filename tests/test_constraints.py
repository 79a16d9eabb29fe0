"""
Constraint Validator Test Suite

Tests for constraints.py:
- required / length / pattern / email / membership / type rules
- rule independence on empty input
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from form_engine.core.constraints import validate_field
from form_engine.core.errors import ViolationKind
from form_engine.core.schema import (
    CheckboxField,
    ChoiceField,
    DateField,
    EmailField,
    FieldKind,
    NumberField,
    TextField,
)
from form_engine.core.values import MISSING


def kinds(violations):
    return [v.kind for v in violations]


class TestRequired:
    """Rule 1: required"""

    @pytest.mark.parametrize("value", [MISSING, None, ""])
    def test_absent_values_violate(self, value):
        f = TextField(id="name", label="Name", required=True)
        assert kinds(validate_field(f, value)) == [ViolationKind.REQUIRED]

    def test_default_argument_is_missing(self):
        f = NumberField(id="age", required=True)
        assert kinds(validate_field(f)) == [ViolationKind.REQUIRED]

    def test_unchecked_checkbox_violates(self):
        f = CheckboxField(id="terms", required=True)
        assert kinds(validate_field(f, False)) == [ViolationKind.REQUIRED]
        assert validate_field(f, True) == []

    def test_empty_selection_violates(self):
        f = ChoiceField(id="tags", options=("a", "b"), required=True)
        assert kinds(validate_field(f, [])) == [ViolationKind.REQUIRED]

    def test_optional_empty_is_valid(self):
        f = TextField(id="nick", min_length=3, pattern="^x")
        assert validate_field(f, "") == []
        assert validate_field(CheckboxField(id="c"), False) == []

    def test_zero_is_not_empty(self):
        f = NumberField(id="count", required=True)
        assert validate_field(f, 0) == []

    def test_violation_carries_field_id_and_code(self):
        f = TextField(id="name", label="Name", required=True)
        violation = validate_field(f, "")[0]
        assert violation.field_id == "name"
        assert violation.code == "REQ-001"
        assert "Name" in violation.message


class TestLength:
    """Rule 2: minLength / maxLength on text and textarea"""

    def setup_method(self):
        self.field = TextField(id="t", min_length=2, max_length=4)

    @pytest.mark.parametrize("value,expected", [
        ("a", [ViolationKind.TOO_SHORT]),
        ("ab", []),
        ("abcd", []),
        ("abcde", [ViolationKind.TOO_LONG]),
    ])
    def test_bounds(self, value, expected):
        assert kinds(validate_field(self.field, value)) == expected

    def test_textarea_checked_too(self):
        f = TextField(id="t", kind=FieldKind.TEXTAREA, max_length=1)
        assert kinds(validate_field(f, "ab")) == [ViolationKind.TOO_LONG]

    def test_length_reports_bound_and_actual(self):
        violation = validate_field(self.field, "a")[0]
        assert violation.expected == 2
        assert violation.actual == 1

    def test_required_and_too_short_never_both(self):
        """Empty input reports required only"""
        f = TextField(id="t", required=True, min_length=2, pattern="^[0-9]+$")
        assert kinds(validate_field(f, "")) == [ViolationKind.REQUIRED]


class TestPattern:
    """Rule 3: pattern on text and textarea"""

    def test_mismatch(self):
        f = TextField(id="zip", pattern=r"^\d{5}$")
        assert kinds(validate_field(f, "12ab5")) == [ViolationKind.PATTERN_MISMATCH]
        assert validate_field(f, "12345") == []

    def test_unanchored_pattern_matches_anywhere(self):
        f = TextField(id="t", pattern=r"\d")
        assert validate_field(f, "abc1") == []

    def test_invalid_regex_is_a_violation(self):
        """A broken pattern is reported, not raised"""
        f = TextField(id="t", pattern="([a-z")
        assert kinds(validate_field(f, "abc")) == [ViolationKind.INVALID_PATTERN]

    def test_length_and_pattern_both_reported(self):
        f = TextField(id="t", min_length=5, pattern="^[0-9]+$")
        assert kinds(validate_field(f, "ab")) == [
            ViolationKind.TOO_SHORT,
            ViolationKind.PATTERN_MISMATCH,
        ]


class TestEmail:
    """Rule 4: email address format"""

    @pytest.mark.parametrize("value", ["a@b.co", "first.last@mail.example.org"])
    def test_valid(self, value):
        assert validate_field(EmailField(id="e"), value) == []

    @pytest.mark.parametrize("value", ["plain", "a@b", "a b@c.de", "@b.co", "a@b.", "ü@b.co", "a@b.co\n"])
    def test_invalid(self, value):
        assert kinds(validate_field(EmailField(id="e"), value)) == [ViolationKind.INVALID_EMAIL]


class TestMembership:
    """Rule 5: radio/select values must be options"""

    def test_radio(self):
        f = ChoiceField(id="r", kind=FieldKind.RADIO, options=("yes", "no"))
        assert validate_field(f, "yes") == []
        assert kinds(validate_field(f, "maybe")) == [ViolationKind.NOT_AN_OPTION]

    def test_multi_select(self):
        f = ChoiceField(id="s", options=("a", "b", "c"))
        assert validate_field(f, ["a", "c"]) == []
        violation = validate_field(f, ["a", "z"])[0]
        assert violation.kind is ViolationKind.NOT_AN_OPTION
        assert violation.actual == "z"

    def test_radio_rejects_list(self):
        f = ChoiceField(id="r", kind=FieldKind.RADIO, options=("a",))
        assert kinds(validate_field(f, ["a"])) == [ViolationKind.INVALID_TYPE]


class TestValueType:
    """Rule 6: value shape per kind"""

    def test_number_accepts_numeric_strings(self):
        f = NumberField(id="n")
        assert validate_field(f, 3.5) == []
        assert validate_field(f, "42") == []
        assert kinds(validate_field(f, "forty")) == [ViolationKind.INVALID_TYPE]
        assert kinds(validate_field(f, True)) == [ViolationKind.INVALID_TYPE]

    def test_date(self):
        f = DateField(id="d")
        assert validate_field(f, "2024-02-29") == []
        assert kinds(validate_field(f, "2023-02-29")) == [ViolationKind.INVALID_TYPE]
        assert kinds(validate_field(f, "29/02/2024")) == [ViolationKind.INVALID_TYPE]
        assert kinds(validate_field(f, "2024-02-29\n")) == [ViolationKind.INVALID_TYPE]

    def test_text_non_string_skips_length(self):
        f = TextField(id="t", min_length=5)
        assert kinds(validate_field(f, 12)) == [ViolationKind.INVALID_TYPE]

    def test_checkbox_non_bool(self):
        assert kinds(validate_field(CheckboxField(id="c"), "on")) == [ViolationKind.INVALID_TYPE]
