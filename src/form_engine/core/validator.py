"""Form validation: graph, derivation and per-field constraints in one pass."""

import logging
from typing import Any, Mapping

from form_engine.config.engine import EngineConfig
from form_engine.core.constraints import compile_pattern, validate_field
from form_engine.core.errors import (
    FormValidationResult,
    Violation,
    ViolationKind,
    is_unresolved,
)
from form_engine.core.schema import FieldKind, FormSchema
from form_engine.core.values import MISSING
from form_engine.formula.evaluator import evaluate
from form_engine.formula.parser import FormulaError, compile_formula, variables
from form_engine.graph.graph import build_graph

logger = logging.getLogger(__name__)


def _label_violations(schema: FormSchema) -> dict[str, list[Violation]]:
    return {
        f.id: [Violation(
            field_id=f.id,
            kind=ViolationKind.MISSING_LABEL,
            message=f"Field '{f.id}' has no label.",
        )]
        for f in schema.fields
        if not f.label.strip()
    }


def validate_form(
    schema: FormSchema,
    values: Mapping[str, Any],
    config: EngineConfig | None = None,
) -> FormValidationResult:
    """Validate a value set against a form schema.

    Steps:
    1. Build the derivation graph; a graph error invalidates the whole form
       and no per-field checks run.
    2. Compute derived values and merge them over the submitted values.
    3. Check every field; an unresolved derived value is a violation.

    Keys in values that match no field are dropped. Neither argument is
    modified.
    """
    known_values = {f.id: values[f.id] for f in schema.fields if f.id in values}
    field_errors: dict[str, list[Violation]] = {f.id: [] for f in schema.fields}

    built = build_graph(schema)
    if not built.ok:
        logger.debug("Form %s invalid: %s", schema.id, built.error.message)
        return FormValidationResult(
            overall_valid=False,
            field_errors=field_errors,
            resolved_values=known_values,
            form_errors=[built.error.to_violation()],
            graph_error=built.error,
        )

    derived = evaluate(built.graph, schema, known_values, config)
    resolved = {**known_values, **derived}

    for fid, violations in _label_violations(schema).items():
        field_errors[fid].extend(violations)

    for f in schema.fields:
        value = resolved.get(f.id, MISSING)
        if is_unresolved(value):
            field_errors[f.id].append(Violation(
                field_id=f.id,
                kind=ViolationKind.UNRESOLVED,
                message=f"{f.label.strip() or f.id} could not be computed: {value.error.message}",
                actual=value.error.kind.value,
            ))
            continue
        field_errors[f.id].extend(validate_field(f, value))

    overall_valid = all(not errors for errors in field_errors.values())
    return FormValidationResult(
        overall_valid=overall_valid,
        field_errors=field_errors,
        resolved_values=resolved,
    )


def check_schema(schema: FormSchema, config: EngineConfig | None = None) -> list[Violation]:
    """Save-time checks on a form definition.

    Covers what construction allows while a form is being edited: blank
    names and labels, an empty field list, patterns that do not compile,
    and formulas that do not parse or read undeclared fields. Graph errors
    are included as a form-level violation.
    """
    violations = []

    if not schema.name.strip():
        violations.append(Violation(
            field_id=None,
            kind=ViolationKind.MISSING_NAME,
            message="Form name cannot be empty.",
        ))

    if not schema.fields:
        violations.append(Violation(
            field_id=None,
            kind=ViolationKind.NO_FIELDS,
            message="Please add at least one field to the form.",
        ))

    for label_violations in _label_violations(schema).values():
        violations.extend(label_violations)

    for f in schema.fields:
        if f.kind in (FieldKind.TEXT, FieldKind.TEXTAREA) and f.pattern:
            _, error = compile_pattern(f.pattern)
            if error:
                violations.append(Violation(
                    field_id=f.id,
                    kind=ViolationKind.INVALID_PATTERN,
                    message=f"Field '{f.id}' has an invalid pattern: {error}",
                    actual=f.pattern,
                ))

        if f.is_derived:
            try:
                tree = compile_formula(f.formula, config)
            except FormulaError as e:
                violations.append(Violation(
                    field_id=f.id,
                    kind=ViolationKind.INVALID_FORMULA,
                    message=f"Formula for '{f.id}' is invalid: {e}",
                    actual=f.formula,
                ))
                continue
            undeclared = sorted(variables(tree) - set(f.parent_field_ids))
            if undeclared:
                violations.append(Violation(
                    field_id=f.id,
                    kind=ViolationKind.INVALID_FORMULA,
                    message=f"Formula for '{f.id}' references non-parent fields: {', '.join(undeclared)}",
                    actual=undeclared,
                ))

    built = build_graph(schema)
    if not built.ok:
        violations.append(built.error.to_violation())

    return violations
