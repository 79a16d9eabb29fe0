"""
Formula Evaluator: computes derived field values

Formulas are interpreted from the AST built by the parser; nothing is
handed to the host interpreter. Failures are per field: a derived field
that cannot be computed gets an Unresolved marker, its dependents become
Unresolved with an upstream error, and independent fields are unaffected.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from form_engine.config.engine import EngineConfig
from form_engine.core.errors import (
    DerivationError,
    DerivationErrorKind,
    Unresolved,
    is_unresolved,
)
from form_engine.core.schema import DerivedField, FieldKind, FormSchema
from form_engine.core.values import coerce_number, is_absent, is_number
from form_engine.formula.parser import (
    BinaryOp,
    FormulaError,
    FormulaEvaluationError,
    FormulaLimitError,
    Node,
    NumberLiteral,
    StringLiteral,
    UnaryOp,
    Variable,
    compile_formula,
    variables,
)
from form_engine.graph.graph import DependencyGraph

logger = logging.getLogger(__name__)

__all__ = ["EvalContext", "FormulaEvaluator", "Unresolved", "evaluate"]


@dataclass
class EvalContext:
    """Variable bindings visible to one formula"""
    bindings: Dict[str, Any]


class FormulaEvaluator:
    """
    Evaluate a parsed formula against its bindings

    Supported:
    - number + number, string + string
    - number - number, number * number, number / number
    - -number, +number
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()

    def evaluate(self, formula: str, context: EvalContext) -> Any:
        """Parse and evaluate; raises FormulaError on any failure"""
        tree = compile_formula(formula, self.config)
        return self.eval_node(tree, context)

    def eval_node(self, node: Node, context: EvalContext) -> Any:
        if isinstance(node, (NumberLiteral, StringLiteral)):
            return node.value

        if isinstance(node, Variable):
            if node.name not in context.bindings:
                raise FormulaEvaluationError(
                    f"Unknown variable '{node.name}'", kind="undeclared_reference"
                )
            return context.bindings[node.name]

        if isinstance(node, UnaryOp):
            operand = self.eval_node(node.operand, context)
            if not is_number(operand):
                raise FormulaEvaluationError(
                    f"Unary '{node.operator}' needs a number, got {type(operand).__name__}"
                )
            return -operand if node.operator == '-' else operand

        if isinstance(node, BinaryOp):
            left = self.eval_node(node.left, context)
            right = self.eval_node(node.right, context)
            return self._binary(node.operator, left, right)

        raise FormulaEvaluationError(f"Unsupported node: {type(node).__name__}")

    def _binary(self, op: str, left: Any, right: Any) -> Any:
        if op == '+' and isinstance(left, str) and isinstance(right, str):
            return left + right

        if not (is_number(left) and is_number(right)):
            raise FormulaEvaluationError(
                f"Operator '{op}' needs numbers, got {type(left).__name__} and {type(right).__name__}"
            )

        try:
            if op == '+':
                result = left + right
            elif op == '-':
                result = left - right
            elif op == '*':
                result = left * right
            elif right == 0:
                raise FormulaEvaluationError("Division by zero", kind="domain")
            else:
                result = left / right
        except OverflowError:
            raise FormulaEvaluationError("Numeric overflow", kind="domain") from None

        if isinstance(result, float) and not math.isfinite(result):
            raise FormulaEvaluationError("Result is not a finite number", kind="domain")
        return result


def _unresolved(field_id: str, kind: DerivationErrorKind, message: str) -> Unresolved:
    logger.debug("Derived field %s unresolved (%s): %s", field_id, kind.value, message)
    return Unresolved(DerivationError(field_id=field_id, kind=kind, message=message))


def _derive_one(
    evaluator: FormulaEvaluator,
    field: DerivedField,
    schema: FormSchema,
    known: Mapping[str, Any],
) -> Any:
    try:
        tree = compile_formula(field.formula, evaluator.config)
    except FormulaLimitError as e:
        return _unresolved(field.id, DerivationErrorKind.LIMIT, str(e))
    except FormulaError as e:
        return _unresolved(field.id, DerivationErrorKind.SYNTAX, str(e))

    undeclared = sorted(variables(tree) - set(field.parent_field_ids))
    if undeclared:
        return _unresolved(
            field.id,
            DerivationErrorKind.UNDECLARED_REFERENCE,
            f"Formula references fields that are not parents: {', '.join(undeclared)}",
        )

    bindings = {}
    for parent_id in field.parent_field_ids:
        value = known.get(parent_id)
        if is_unresolved(value):
            return _unresolved(
                field.id,
                DerivationErrorKind.UPSTREAM,
                f"Parent '{parent_id}' could not be computed",
            )
        if is_absent(value):
            return _unresolved(
                field.id,
                DerivationErrorKind.MISSING_INPUT,
                f"Parent '{parent_id}' has no value",
            )
        if schema.get_field(parent_id).kind is FieldKind.NUMBER:
            value = coerce_number(value)
        bindings[parent_id] = value

    try:
        value = evaluator.eval_node(tree, EvalContext(bindings))
    except FormulaEvaluationError as e:
        return _unresolved(field.id, DerivationErrorKind(e.kind), str(e))

    # Literals such as 1e999 reach here without passing through _binary
    if isinstance(value, float) and not math.isfinite(value):
        return _unresolved(field.id, DerivationErrorKind.DOMAIN, "Result is not a finite number")
    return value


def evaluate(
    graph: DependencyGraph,
    schema: FormSchema,
    base_values: Mapping[str, Any],
    config: EngineConfig | None = None,
) -> Dict[str, Any]:
    """Compute every derived field in graph evaluation order.

    Returns derived entries only (Unresolved markers for failures); callers
    merge them with base_values. Derived ids present in base_values are
    ignored, derived values are never taken from input.
    """
    evaluator = FormulaEvaluator(config)
    known = {
        fid: value
        for fid, value in base_values.items()
        if fid in graph and not graph.is_derived(fid)
    }
    derived: Dict[str, Any] = {}

    for field_id in graph.evaluation_order:
        field = schema.get_field(field_id)
        value = _derive_one(evaluator, field, schema, known)
        derived[field_id] = value
        known[field_id] = value

    return derived
