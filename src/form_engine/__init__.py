"""Form engine - schema-driven form validation and derived fields."""

__version__ = "0.1.0"

from form_engine.core.validator import validate_form, check_schema
from form_engine.core.constraints import validate_field
from form_engine.core.errors import (
    FormValidationResult,
    GraphError,
    SchemaError,
    Unresolved,
    Violation,
    ViolationKind,
)
from form_engine.core.schema import FieldKind, FormSchema
from form_engine.core.loader import load_form, dump_form
from form_engine.graph.graph import DependencyGraph, build_graph
from form_engine.formula.evaluator import evaluate
from form_engine.config.engine import EngineConfig

__all__ = [
    "validate_form",
    "check_schema",
    "validate_field",
    "FormValidationResult",
    "GraphError",
    "SchemaError",
    "Unresolved",
    "Violation",
    "ViolationKind",
    "FieldKind",
    "FormSchema",
    "load_form",
    "dump_form",
    "DependencyGraph",
    "build_graph",
    "evaluate",
    "EngineConfig",
]
