"""Per-field constraint checks.

Rules run in a fixed order and all applicable rules run:
1. required      - any kind
2. length        - text/textarea
3. pattern       - text/textarea
4. email format  - email
5. membership    - radio/select
6. value type    - every kind except derived

Only rule 1 looks at empty values; rules 2-6 skip them, so an empty
required field yields exactly one violation.
"""

import datetime
import re
from typing import Any

from form_engine.core.errors import Violation, ViolationKind
from form_engine.core.schema import FieldKind, FieldSchema
from form_engine.core.values import MISSING, coerce_number, is_absent, is_number

EMAIL_PATTERN = re.compile(r'[^\s@]+@[^\s@]+\.[^\s@]+')
DATE_PATTERN = re.compile(r'\d{4}-\d{2}-\d{2}')

TEXT_KINDS = (FieldKind.TEXT, FieldKind.TEXTAREA)
CHOICE_KINDS = (FieldKind.RADIO, FieldKind.SELECT)


def _display_name(field: FieldSchema) -> str:
    return field.label.strip() or field.id


def is_empty(field: FieldSchema, value: Any) -> bool:
    """Whether a value counts as not filled in for the required rule"""
    if is_absent(value):
        return True
    if field.kind is FieldKind.CHECKBOX and value is False:
        return True
    if isinstance(value, (list, tuple, set, frozenset)) and len(value) == 0:
        return True
    return False


def _check_required(field: FieldSchema, value: Any) -> list[Violation]:
    if field.required and is_empty(field, value):
        return [Violation(
            field_id=field.id,
            kind=ViolationKind.REQUIRED,
            message=f"{_display_name(field)} is required.",
        )]
    return []


def _check_length(field: FieldSchema, value: str) -> list[Violation]:
    violations = []
    name = _display_name(field)
    if field.min_length is not None and len(value) < field.min_length:
        violations.append(Violation(
            field_id=field.id,
            kind=ViolationKind.TOO_SHORT,
            message=f"{name} must be at least {field.min_length} characters.",
            expected=field.min_length,
            actual=len(value),
        ))
    if field.max_length is not None and len(value) > field.max_length:
        violations.append(Violation(
            field_id=field.id,
            kind=ViolationKind.TOO_LONG,
            message=f"{name} cannot exceed {field.max_length} characters.",
            expected=field.max_length,
            actual=len(value),
        ))
    return violations


def compile_pattern(pattern: str) -> tuple[re.Pattern | None, str | None]:
    """Compile a field pattern, returning (regex, None) or (None, error message)"""
    try:
        return re.compile(pattern), None
    except re.error as e:
        return None, str(e)


def _check_pattern(field: FieldSchema, value: str) -> list[Violation]:
    if field.pattern is None or field.pattern == "":
        return []

    regex, error = compile_pattern(field.pattern)
    if regex is None:
        return [Violation(
            field_id=field.id,
            kind=ViolationKind.INVALID_PATTERN,
            message=f"{_display_name(field)} has an invalid pattern: {error}",
            actual=field.pattern,
        )]

    # Unanchored: a match anywhere in the value passes
    if not regex.search(value):
        return [Violation(
            field_id=field.id,
            kind=ViolationKind.PATTERN_MISMATCH,
            message=f"{_display_name(field)} does not match the required pattern.",
            expected=field.pattern,
            actual=value,
        )]
    return []


def _check_email(field: FieldSchema, value: str) -> list[Violation]:
    if value.isascii() and EMAIL_PATTERN.fullmatch(value):
        return []
    return [Violation(
        field_id=field.id,
        kind=ViolationKind.INVALID_EMAIL,
        message=f"{_display_name(field)} is not a valid email address.",
        expected="local@domain.tld",
        actual=value,
    )]


def _check_membership(field: FieldSchema, value: Any) -> list[Violation]:
    if isinstance(value, (list, tuple)) and field.kind is FieldKind.SELECT:
        chosen = list(value)
    elif isinstance(value, str):
        chosen = [value]
    else:
        # Wrong shape; reported by the type rule
        return []

    invalid = [v for v in chosen if v not in field.options]
    if not invalid:
        return []
    return [Violation(
        field_id=field.id,
        kind=ViolationKind.NOT_AN_OPTION,
        message=f"{_display_name(field)} must be one of: {', '.join(field.options)}.",
        expected=list(field.options),
        actual=invalid[0] if len(invalid) == 1 else invalid,
    )]


def _type_expectation(field: FieldSchema, value: Any) -> str | None:
    """Return a description of the expected type if value does not fit the kind"""
    kind = field.kind

    if kind in TEXT_KINDS or kind is FieldKind.EMAIL:
        return None if isinstance(value, str) else "a string"

    if kind is FieldKind.NUMBER:
        return None if is_number(coerce_number(value)) else "a number"

    if kind is FieldKind.CHECKBOX:
        return None if isinstance(value, bool) else "a boolean"

    if kind is FieldKind.DATE:
        if isinstance(value, str) and DATE_PATTERN.fullmatch(value):
            try:
                datetime.date.fromisoformat(value)
                return None
            except ValueError:
                pass
        return "a date (YYYY-MM-DD)"

    if kind is FieldKind.RADIO:
        return None if isinstance(value, str) else "a string"

    if kind is FieldKind.SELECT:
        if isinstance(value, str):
            return None
        if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            return None
        return "a string or list of strings"

    return None


def _check_type(field: FieldSchema, value: Any) -> list[Violation]:
    expected = _type_expectation(field, value)
    if expected is None:
        return []
    return [Violation(
        field_id=field.id,
        kind=ViolationKind.INVALID_TYPE,
        message=f"{_display_name(field)} must be {expected}.",
        expected=expected,
        actual=value,
    )]


def validate_field(field: FieldSchema, value: Any = MISSING) -> list[Violation]:
    """Check one value against one field's constraints.

    Pass nothing (or MISSING) for a field with no entry in the value set.
    Returns every violation found, in rule order.
    """
    violations = _check_required(field, value)

    if is_empty(field, value) or field.kind is FieldKind.DERIVED:
        return violations

    if field.kind in TEXT_KINDS and isinstance(value, str):
        violations.extend(_check_length(field, value))
        violations.extend(_check_pattern(field, value))

    if field.kind is FieldKind.EMAIL and isinstance(value, str):
        violations.extend(_check_email(field, value))

    if field.kind in CHOICE_KINDS:
        violations.extend(_check_membership(field, value))

    violations.extend(_check_type(field, value))
    return violations
