"""Core schema, constraint and validation components."""

from form_engine.core.errors import (
    DerivationError,
    DerivationErrorKind,
    FormValidationResult,
    GraphError,
    GraphErrorKind,
    SchemaError,
    Unresolved,
    Violation,
    ViolationKind,
    is_unresolved,
)
from form_engine.core.schema import (
    CheckboxField,
    ChoiceField,
    DateField,
    DerivedField,
    EmailField,
    FieldKind,
    FieldSchema,
    FormSchema,
    NumberField,
    TextField,
    field_from_dict,
)
from form_engine.core.values import MISSING
from form_engine.core.constraints import validate_field
from form_engine.core.validator import check_schema, validate_form

__all__ = [
    "DerivationError",
    "DerivationErrorKind",
    "FormValidationResult",
    "GraphError",
    "GraphErrorKind",
    "SchemaError",
    "Unresolved",
    "Violation",
    "ViolationKind",
    "is_unresolved",
    "CheckboxField",
    "ChoiceField",
    "DateField",
    "DerivedField",
    "EmailField",
    "FieldKind",
    "FieldSchema",
    "FormSchema",
    "NumberField",
    "TextField",
    "field_from_dict",
    "MISSING",
    "validate_field",
    "check_schema",
    "validate_form",
]
