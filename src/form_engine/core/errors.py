"""Error types and validation results for the form engine."""

from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import Any


class SchemaError(ValueError):
    """Raised when a field or form definition cannot be represented."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class ViolationKind(Enum):
    REQUIRED = "required"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    PATTERN_MISMATCH = "pattern_mismatch"
    INVALID_PATTERN = "invalid_pattern"
    INVALID_EMAIL = "invalid_email"
    NOT_AN_OPTION = "not_an_option"
    INVALID_TYPE = "invalid_type"
    UNRESOLVED = "unresolved"
    MISSING_LABEL = "missing_label"
    INVALID_FORMULA = "invalid_formula"
    MISSING_NAME = "missing_name"
    NO_FIELDS = "no_fields"
    GRAPH = "graph"


# Error code prefixes
# REQ-xxx: Required-ness
# LEN-xxx: Length bounds
# PAT-xxx: Regular expression patterns
# FMT-xxx: Value format / type
# OPT-xxx: Option membership
# DRV-xxx: Derivation
# CFG-xxx: Schema configuration
VIOLATION_CODES = {
    ViolationKind.REQUIRED: "REQ-001",
    ViolationKind.TOO_SHORT: "LEN-001",
    ViolationKind.TOO_LONG: "LEN-002",
    ViolationKind.PATTERN_MISMATCH: "PAT-001",
    ViolationKind.INVALID_PATTERN: "PAT-002",
    ViolationKind.INVALID_EMAIL: "FMT-001",
    ViolationKind.INVALID_TYPE: "FMT-002",
    ViolationKind.NOT_AN_OPTION: "OPT-001",
    ViolationKind.UNRESOLVED: "DRV-001",
    ViolationKind.INVALID_FORMULA: "DRV-002",
    ViolationKind.MISSING_LABEL: "CFG-001",
    ViolationKind.MISSING_NAME: "CFG-002",
    ViolationKind.NO_FIELDS: "CFG-003",
    ViolationKind.GRAPH: "CFG-004",
}


@dataclass(frozen=True)
class Violation:
    """Why a value (or a schema) fails a constraint.

    ``field_id`` is ``None`` for form-level violations.
    """

    field_id: str | None
    kind: ViolationKind
    message: str
    expected: Any = None
    actual: Any = None

    @property
    def code(self) -> str:
        return VIOLATION_CODES[self.kind]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "field_id": self.field_id,
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "expected": self.expected,
            "actual": self.actual,
        }


class GraphErrorKind(Enum):
    UNKNOWN_PARENT = "unknown_parent"
    CYCLE = "cycle"


@dataclass(frozen=True)
class GraphError:
    """A schema whose derivation graph cannot be evaluated."""

    kind: GraphErrorKind
    field_id: str
    message: str
    missing_id: str | None = None
    cycle: tuple[str, ...] = ()

    def to_violation(self) -> Violation:
        return Violation(
            field_id=None,
            kind=ViolationKind.GRAPH,
            message=self.message,
            actual=list(self.cycle) if self.cycle else self.missing_id,
        )

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "field_id": self.field_id,
            "message": self.message,
            "missing_id": self.missing_id,
            "cycle": list(self.cycle),
        }


class DerivationErrorKind(Enum):
    SYNTAX = "syntax"
    LIMIT = "limit"
    MISSING_INPUT = "missing_input"
    UNDECLARED_REFERENCE = "undeclared_reference"
    TYPE = "type"
    DOMAIN = "domain"
    UPSTREAM = "upstream"


@dataclass(frozen=True)
class DerivationError:
    """Why a derived field could not be computed."""

    field_id: str
    kind: DerivationErrorKind
    message: str

    def to_dict(self) -> dict:
        return {
            "field_id": self.field_id,
            "kind": self.kind.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class Unresolved:
    """Marker stored in a value set in place of a derived value that could not be computed."""

    error: DerivationError

    def __bool__(self) -> bool:
        return False


def is_unresolved(value: Any) -> bool:
    return isinstance(value, Unresolved)


@dataclass
class FormValidationResult:
    """Result of validating one value set against one form schema."""

    overall_valid: bool
    field_errors: dict[str, list[Violation]]
    resolved_values: dict[str, Any]
    form_errors: list[Violation] = dataclass_field(default_factory=list)
    graph_error: GraphError | None = None

    def errors_for(self, field_id: str) -> list[Violation]:
        return self.field_errors.get(field_id, [])

    @property
    def invalid_fields(self) -> list[str]:
        """Ids of fields with at least one violation, in schema order"""
        return [fid for fid, errors in self.field_errors.items() if errors]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        resolved = {}
        for fid, value in self.resolved_values.items():
            if isinstance(value, Unresolved):
                resolved[fid] = {"unresolved": value.error.to_dict()}
            else:
                resolved[fid] = value

        return {
            "valid": self.overall_valid,
            "field_errors": {
                fid: [v.to_dict() for v in errors]
                for fid, errors in self.field_errors.items()
            },
            "form_errors": [v.to_dict() for v in self.form_errors],
            "resolved_values": resolved,
            "graph_error": self.graph_error.to_dict() if self.graph_error else None,
        }
