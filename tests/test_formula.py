"""
Formula Parser / Evaluator Test Suite

Tests for parser.py and evaluator.py (FormulaEvaluator):
- tokenizer and grammar
- configured size limits
- arithmetic and string semantics
- sandboxing: nothing outside the grammar is accepted
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from form_engine.config.engine import EngineConfig
from form_engine.formula.evaluator import EvalContext, FormulaEvaluator
from form_engine.formula.parser import (
    BinaryOp,
    FormulaEvaluationError,
    FormulaLimitError,
    FormulaSyntaxError,
    NumberLiteral,
    StringLiteral,
    UnaryOp,
    Variable,
    compile_formula,
    tokenize,
    variables,
)


def run(formula, **bindings):
    return FormulaEvaluator().evaluate(formula, EvalContext(bindings))


class TestTokenizer:
    """Test tokenize()"""

    def test_token_types(self):
        tokens = tokenize("age * 2.5 + {a-b} - 'x'")
        assert [t.type for t in tokens] == ["IDENT", "OP", "NUMBER", "OP", "REF", "OP", "STRING"]

    def test_unexpected_character(self):
        with pytest.raises(FormulaSyntaxError, match="pos 4"):
            tokenize("age % 2")


class TestParser:
    """Test compile_formula() AST shape"""

    def test_precedence(self):
        """* binds tighter than +"""
        tree = compile_formula("a + b * 2")
        assert tree == BinaryOp("+", Variable("a"), BinaryOp("*", Variable("b"), NumberLiteral(2)))

    def test_left_associative(self):
        tree = compile_formula("10 - 4 - 3")
        assert tree == BinaryOp("-", BinaryOp("-", NumberLiteral(10), NumberLiteral(4)), NumberLiteral(3))

    def test_parentheses(self):
        tree = compile_formula("(a + b) * 2")
        assert tree == BinaryOp("*", BinaryOp("+", Variable("a"), Variable("b")), NumberLiteral(2))

    def test_unary_and_literals(self):
        assert compile_formula("-x") == UnaryOp("-", Variable("x"))
        assert compile_formula("1.5") == NumberLiteral(1.5)
        assert compile_formula('"it\\"s"') == StringLiteral('it"s')
        assert compile_formula("'hi'") == StringLiteral("hi")

    def test_braced_reference(self):
        """Ids that are not identifiers are written in braces"""
        tree = compile_formula("{3f2a-9c1e} * 2")
        assert variables(tree) == {"3f2a-9c1e"}

    @pytest.mark.parametrize("formula", [
        "",
        "   ",
        "a +",
        "(a + b",
        "a b",
        "2 3",
        "a = 1",
        "{}",
    ])
    def test_syntax_errors(self, formula):
        with pytest.raises(FormulaSyntaxError):
            compile_formula(formula)

    @pytest.mark.parametrize("formula", [
        "__import__('os')",
        "open('x')",
        "a.b",
        "[1, 2]",
        "a if b else c",
        "lambda: 1",
        "a ** 2",
    ])
    def test_host_language_constructs_rejected(self, formula):
        """Calls, attribute access and other constructs are not in the grammar"""
        with pytest.raises(FormulaSyntaxError):
            compile_formula(formula)

    def test_variables(self):
        assert variables(compile_formula("a + b * a - 3")) == {"a", "b"}


class TestLimits:
    """Test EngineConfig formula limits"""

    def test_length_limit(self):
        config = EngineConfig(max_formula_length=10)
        with pytest.raises(FormulaLimitError):
            compile_formula("1 + 2 + 3 + 4", config)

    def test_node_limit(self):
        config = EngineConfig(max_formula_nodes=5)
        compile_formula("1 + 2 + 3", config)
        with pytest.raises(FormulaLimitError):
            compile_formula("1 + 2 + 3 + 4", config)

    def test_depth_limit(self):
        config = EngineConfig(max_formula_depth=3)
        compile_formula("(((1)))", config)
        with pytest.raises(FormulaLimitError):
            compile_formula("((((1))))", config)

    def test_deep_nesting_with_defaults_is_limit_not_crash(self):
        with pytest.raises(FormulaLimitError):
            compile_formula("(" * 400 + "1" + ")" * 400)


class TestEvaluation:
    """Test FormulaEvaluator arithmetic"""

    def test_arithmetic(self):
        assert run("x * 2", x=5) == 10
        assert run("(a + b) / 2", a=3, b=4) == 3.5
        assert run("-a + 1", a=4) == -3

    def test_string_concatenation(self):
        assert run("first + ' ' + last", first="Ada", last="Lovelace") == "Ada Lovelace"

    def test_division_by_zero(self):
        with pytest.raises(FormulaEvaluationError) as exc:
            run("a / b", a=1, b=0)
        assert exc.value.kind == "domain"

    def test_mixed_types_rejected(self):
        with pytest.raises(FormulaEvaluationError) as exc:
            run("a + 1", a="5")
        assert exc.value.kind == "type"

    def test_string_subtraction_rejected(self):
        with pytest.raises(FormulaEvaluationError):
            run("a - b", a="x", b="y")

    def test_booleans_are_not_numbers(self):
        with pytest.raises(FormulaEvaluationError):
            run("a + 1", a=True)

    def test_unknown_variable(self):
        with pytest.raises(FormulaEvaluationError) as exc:
            run("a + b", a=1)
        assert exc.value.kind == "undeclared_reference"

    def test_overflow_is_domain_error(self):
        with pytest.raises(FormulaEvaluationError) as exc:
            run("a * a", a=1e200)
        assert exc.value.kind == "domain"
