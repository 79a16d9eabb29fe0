"""
Formula Parser: derived-field formulas to an AST

Grammar (nothing else is accepted):
- Literals: 100, 2.5, 'text', "text"
- Variables: age, {3f2a-9c1e} (braces for ids that are not identifiers)
- Arithmetic: a + b, a - b, a * b, a / b, -a, +a
- Grouping: (a + b) * c

There are no calls, attribute access, assignment or control flow, so a
formula can only read the bindings it is evaluated with.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Union

from form_engine.config.engine import EngineConfig


class FormulaError(Exception):
    """Base class for formula failures"""


class FormulaSyntaxError(FormulaError):
    pass


class FormulaLimitError(FormulaError):
    """Formula exceeds a configured size limit"""


class FormulaEvaluationError(FormulaError):
    """Runtime failure while evaluating a parsed formula"""

    def __init__(self, message: str, kind: str = "type"):
        super().__init__(message)
        self.kind = kind


# ==================================================
# AST Node Definitions
# ==================================================

@dataclass(frozen=True)
class NumberLiteral:
    value: Union[int, float]


@dataclass(frozen=True)
class StringLiteral:
    value: str


@dataclass(frozen=True)
class Variable:
    """Reference to a parent field by id"""
    name: str


@dataclass(frozen=True)
class BinaryOp:
    operator: str  # +, -, *, /
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class UnaryOp:
    operator: str  # +, -
    operand: "Node"


Node = Union[NumberLiteral, StringLiteral, Variable, BinaryOp, UnaryOp]


def variables(node: Node) -> set[str]:
    """Collect every variable name referenced in the tree"""
    if isinstance(node, Variable):
        return {node.name}
    if isinstance(node, BinaryOp):
        return variables(node.left) | variables(node.right)
    if isinstance(node, UnaryOp):
        return variables(node.operand)
    return set()


# ==================================================
# Tokenizer
# ==================================================

TOKEN_PATTERNS = [
    ('NUMBER', r'(\d+(\.\d*)?|\.\d+)([eE][+\-]?\d+)?'),
    ('STRING', r"'[^'\\]*(\\.[^'\\]*)*'|\"[^\"\\]*(\\.[^\"\\]*)*\""),
    ('IDENT', r'[A-Za-z_][A-Za-z0-9_]*'),
    ('REF', r'\{[^{}]+\}'),
    ('OP', r'[+\-*/]'),
    ('LPAREN', r'\('),
    ('RPAREN', r'\)'),
    ('WS', r'\s+'),
    ('MISMATCH', r'.'),
]

TOKEN_REGEX = re.compile('|'.join(f'(?P<{name}>{pattern})' for name, pattern in TOKEN_PATTERNS))

_ESCAPE = re.compile(r'\\(.)')


@dataclass
class Token:
    type: str
    value: str
    pos: int


def tokenize(formula: str) -> List[Token]:
    """Split a formula into tokens"""
    tokens = []
    for match in TOKEN_REGEX.finditer(formula):
        kind = match.lastgroup
        value = match.group()
        if kind == 'WS':
            continue
        if kind == 'MISMATCH':
            raise FormulaSyntaxError(f"Unexpected character '{value}' at pos {match.start()}")
        tokens.append(Token(kind, value, match.start()))
    return tokens


# ==================================================
# Parser
# ==================================================

class Parser:
    """Recursive-descent parser with node-count and nesting limits"""

    def __init__(self, tokens: List[Token], max_nodes: int, max_depth: int):
        self.tokens = tokens
        self.pos = 0
        self.max_nodes = max_nodes
        self.max_depth = max_depth
        self.node_count = 0
        self.depth = 0

    def current(self) -> Optional[Token]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def consume(self, expected_type=None) -> Token:
        token = self.current()
        if token is None:
            raise FormulaSyntaxError("Unexpected end of formula")
        if expected_type and token.type != expected_type:
            raise FormulaSyntaxError(
                f"Expected {expected_type}, got '{token.value}' at pos {token.pos}"
            )
        self.pos += 1
        return token

    def match_op(self, *ops) -> bool:
        token = self.current()
        return token is not None and token.type == 'OP' and token.value in ops

    def node(self, node: Node) -> Node:
        self.node_count += 1
        if self.node_count > self.max_nodes:
            raise FormulaLimitError(f"Formula exceeds {self.max_nodes} nodes")
        return node

    def enter(self):
        self.depth += 1
        if self.depth > self.max_depth:
            raise FormulaLimitError(f"Formula nesting exceeds depth {self.max_depth}")

    def leave(self):
        self.depth -= 1

    # Grammar rules

    def parse(self) -> Node:
        """Entry point"""
        expr = self.parse_additive()
        remaining = self.current()
        if remaining is not None:
            raise FormulaSyntaxError(
                f"Unexpected token after expression: '{remaining.value}' at pos {remaining.pos}"
            )
        return expr

    def parse_additive(self) -> Node:
        """additive := multiplicative (('+' | '-') multiplicative)*"""
        left = self.parse_multiplicative()
        while self.match_op('+', '-'):
            op = self.consume('OP').value
            right = self.parse_multiplicative()
            left = self.node(BinaryOp(op, left, right))
        return left

    def parse_multiplicative(self) -> Node:
        """multiplicative := unary (('*' | '/') unary)*"""
        left = self.parse_unary()
        while self.match_op('*', '/'):
            op = self.consume('OP').value
            right = self.parse_unary()
            left = self.node(BinaryOp(op, left, right))
        return left

    def parse_unary(self) -> Node:
        """unary := ('-' | '+') unary | primary"""
        if self.match_op('-', '+'):
            op = self.consume('OP').value
            self.enter()
            operand = self.parse_unary()
            self.leave()
            return self.node(UnaryOp(op, operand))
        return self.parse_primary()

    def parse_primary(self) -> Node:
        """primary := NUMBER | STRING | IDENT | REF | '(' additive ')'"""
        token = self.current()

        if token is None:
            raise FormulaSyntaxError("Unexpected end of formula")

        if token.type == 'LPAREN':
            self.consume('LPAREN')
            self.enter()
            expr = self.parse_additive()
            self.leave()
            self.consume('RPAREN')
            return expr

        if token.type == 'NUMBER':
            self.consume('NUMBER')
            text = token.value
            if any(c in text for c in '.eE'):
                return self.node(NumberLiteral(float(text)))
            return self.node(NumberLiteral(int(text)))

        if token.type == 'STRING':
            self.consume('STRING')
            return self.node(StringLiteral(_ESCAPE.sub(r'\1', token.value[1:-1])))

        if token.type == 'IDENT':
            self.consume('IDENT')
            return self.node(Variable(token.value))

        if token.type == 'REF':
            self.consume('REF')
            name = token.value[1:-1].strip()
            if not name:
                raise FormulaSyntaxError(f"Empty field reference at pos {token.pos}")
            return self.node(Variable(name))

        raise FormulaSyntaxError(f"Unexpected token '{token.value}' at pos {token.pos}")


@lru_cache(maxsize=512)
def _compile(formula: str, max_length: int, max_nodes: int, max_depth: int) -> Node:
    if len(formula) > max_length:
        raise FormulaLimitError(f"Formula is longer than {max_length} characters")
    tokens = tokenize(formula)
    if not tokens:
        raise FormulaSyntaxError("Empty formula")
    return Parser(tokens, max_nodes, max_depth).parse()


def compile_formula(formula: str, config: EngineConfig | None = None) -> Node:
    """Parse a formula into an AST, enforcing the configured limits.

    Raises FormulaSyntaxError or FormulaLimitError. Results are memoized;
    ASTs are immutable so sharing them is safe.
    """
    config = config or EngineConfig()
    return _compile(
        formula,
        config.max_formula_length,
        config.max_formula_nodes,
        config.max_formula_depth,
    )
