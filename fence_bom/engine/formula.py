"""
Formula language — tokenizer, recursive-descent parser, tree-walking evaluator.

Formulas are the spreadsheet-style strings stored on formula templates, e.g.

    ROUNDUP([Quantity]/[post_spacing])+1+ROUNDUP(MAX([Lines]-2,0)/2)
    [Quantity]*12/[picket.width_inches]*1.025

Grammar:

    expression := term (("+" | "-") term)*
    term       := unary (("*" | "/") unary)*
    unary      := ("+" | "-") unary | primary
    primary    := NUMBER
                | "[" NAME "]"
                | FUNC "(" expression ("," expression)* ")"
                | "(" expression ")"

Nothing is ever handed to eval() — anything outside the grammar raises
MalformedFormulaError. Unknown variables evaluate to 0 and are reported back
to the caller in FormulaEvaluation.missing_variables.
"""

import math
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Mapping, Optional, Union

from .errors import MalformedFormulaError


# --- Tokens ---

NUMBER = "NUMBER"
VARIABLE = "VARIABLE"
IDENT = "IDENT"
OP = "OP"
LPAREN = "LPAREN"
RPAREN = "RPAREN"
COMMA = "COMMA"
END = "END"

_OPERATORS = "+-*/"


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int


def normalize_variable_name(name: str) -> str:
    """picket.width_inches -> picket_width_inches (context keys are flat)."""
    return name.strip().replace(".", "_")


def _is_name_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def _is_name_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_."


def tokenize(formula: str) -> list:
    """Split a formula string into tokens. Raises MalformedFormulaError."""
    tokens = []
    i = 0
    n = len(formula)

    while i < n:
        ch = formula[i]

        if ch.isspace():
            i += 1
            continue

        if ch.isdigit() or (ch == "." and i + 1 < n and formula[i + 1].isdigit()):
            start = i
            seen_dot = False
            while i < n and (formula[i].isdigit() or formula[i] == "."):
                if formula[i] == ".":
                    if seen_dot:
                        raise MalformedFormulaError(formula, "invalid number literal", start)
                    seen_dot = True
                i += 1
            tokens.append(Token(NUMBER, formula[start:i], start))
            continue

        if ch == "[":
            start = i
            close = formula.find("]", i + 1)
            if close == -1:
                raise MalformedFormulaError(formula, "unterminated variable reference", start)
            name = formula[i + 1:close].strip()
            if not name or not _is_name_start(name[0]) or not all(_is_name_char(c) for c in name):
                raise MalformedFormulaError(formula, f"invalid variable name [{name}]", start)
            tokens.append(Token(VARIABLE, name, start))
            i = close + 1
            continue

        if _is_name_start(ch):
            start = i
            while i < n and (formula[i].isalnum() or formula[i] == "_"):
                i += 1
            tokens.append(Token(IDENT, formula[start:i], start))
            continue

        if ch in _OPERATORS:
            tokens.append(Token(OP, ch, i))
        elif ch == "(":
            tokens.append(Token(LPAREN, ch, i))
        elif ch == ")":
            tokens.append(Token(RPAREN, ch, i))
        elif ch == ",":
            tokens.append(Token(COMMA, ch, i))
        else:
            raise MalformedFormulaError(formula, f"unexpected character {ch!r}", i)
        i += 1

    tokens.append(Token(END, "", n))
    return tokens


# --- AST ---

@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Variable:
    name: str   # as written, e.g. "picket.width_inches"


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class Call:
    function: str   # upper-cased
    args: tuple


Node = Union[Number, Variable, UnaryOp, BinaryOp, Call]


def _round_half_away(x: float) -> float:
    return math.copysign(math.floor(abs(x) + 0.5), x)


# name -> (min_args, max_args or None, implementation)
FUNCTIONS = {
    "ROUNDUP": (1, 1, lambda x: float(math.ceil(x))),
    "ROUNDDOWN": (1, 1, lambda x: float(math.floor(x))),
    "ROUND": (1, 1, _round_half_away),
    "MAX": (2, None, max),
    "MIN": (2, None, min),
}


class _Parser:
    def __init__(self, formula: str):
        self.formula = formula
        self.tokens = tokenize(formula)
        self.pos = 0

    def _peek(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def _expect(self, kind: str, what: str) -> Token:
        token = self._peek()
        if token.kind != kind:
            found = token.text or "end of formula"
            raise MalformedFormulaError(self.formula, f"expected {what}, found {found!r}", token.position)
        return self._advance()

    def parse(self) -> Node:
        if self._peek().kind == END:
            raise MalformedFormulaError(self.formula, "empty formula", 0)
        node = self._expression()
        token = self._peek()
        if token.kind != END:
            raise MalformedFormulaError(self.formula, f"unexpected {token.text!r}", token.position)
        return node

    def _expression(self) -> Node:
        node = self._term()
        while self._peek().kind == OP and self._peek().text in "+-":
            op = self._advance().text
            node = BinaryOp(op, node, self._term())
        return node

    def _term(self) -> Node:
        node = self._unary()
        while self._peek().kind == OP and self._peek().text in "*/":
            op = self._advance().text
            node = BinaryOp(op, node, self._unary())
        return node

    def _unary(self) -> Node:
        token = self._peek()
        if token.kind == OP and token.text in "+-":
            self._advance()
            return UnaryOp(token.text, self._unary())
        return self._primary()

    def _primary(self) -> Node:
        token = self._peek()

        if token.kind == NUMBER:
            self._advance()
            return Number(float(token.text))

        if token.kind == VARIABLE:
            self._advance()
            return Variable(token.text)

        if token.kind == LPAREN:
            self._advance()
            node = self._expression()
            self._expect(RPAREN, "')'")
            return node

        if token.kind == IDENT:
            return self._call()

        found = token.text or "end of formula"
        raise MalformedFormulaError(self.formula, f"unexpected {found!r}", token.position)

    def _call(self) -> Node:
        token = self._advance()
        name = token.text.upper()
        if name not in FUNCTIONS:
            raise MalformedFormulaError(self.formula, f"unknown function {token.text!r}", token.position)
        self._expect(LPAREN, f"'(' after {token.text}")

        args = [self._expression()]
        while self._peek().kind == COMMA:
            self._advance()
            args.append(self._expression())
        self._expect(RPAREN, "')'")

        min_args, max_args, _ = FUNCTIONS[name]
        if len(args) < min_args or (max_args is not None and len(args) > max_args):
            raise MalformedFormulaError(
                self.formula,
                f"{name} takes {min_args if min_args == max_args else f'at least {min_args}'} "
                f"argument(s), got {len(args)}",
                token.position,
            )
        return Call(name, tuple(args))


@lru_cache(maxsize=512)
def parse(formula: str) -> Node:
    """Parse formula text into an immutable AST. Cached per formula string."""
    if formula is None:
        raise MalformedFormulaError("", "formula is missing")
    return _Parser(formula).parse()


def referenced_variables(node: Node) -> list:
    """All variable names referenced by an AST, in source order."""
    if isinstance(node, Variable):
        return [node.name]
    if isinstance(node, UnaryOp):
        return referenced_variables(node.operand)
    if isinstance(node, BinaryOp):
        return referenced_variables(node.left) + referenced_variables(node.right)
    if isinstance(node, Call):
        names = []
        for arg in node.args:
            names.extend(referenced_variables(arg))
        return names
    return []


# --- Evaluation ---

@dataclass
class FormulaEvaluation:
    value: float
    missing_variables: list = field(default_factory=list)


class _Evaluator:
    def __init__(self, formula: str, context: Mapping[str, float]):
        self.formula = formula
        self.context = context
        self.missing = []

    def lookup(self, name: str) -> float:
        if name in self.context:
            raw = self.context[name]
        else:
            key = normalize_variable_name(name)
            if key not in self.context:
                self.missing.append(name)
                return 0.0
            raw = self.context[key]
        try:
            value = float(raw)
        except (TypeError, ValueError):
            raise MalformedFormulaError(self.formula, f"variable [{name}] is not numeric: {raw!r}")
        return self._finite(value, f"variable [{name}]")

    def _finite(self, value: float, what: str) -> float:
        # inf/nan must never reach ceil/floor or the next operation
        if not math.isfinite(value):
            raise MalformedFormulaError(self.formula, f"{what} is not finite ({value})")
        return value

    def _arithmetic(self, op: str, left: float, right: float) -> float:
        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if right == 0:
            raise MalformedFormulaError(self.formula, "division by zero")
        return left / right

    def visit(self, node: Node) -> float:
        if isinstance(node, Number):
            return self._finite(node.value, f"number {node.value}")
        if isinstance(node, Variable):
            return self.lookup(node.name)
        if isinstance(node, UnaryOp):
            value = self.visit(node.operand)
            return -value if node.op == "-" else value
        if isinstance(node, BinaryOp):
            left = self.visit(node.left)
            right = self.visit(node.right)
            try:
                value = self._arithmetic(node.op, left, right)
            except OverflowError:
                raise MalformedFormulaError(self.formula, f"overflow in {left} {node.op} {right}")
            return self._finite(value, f"{left} {node.op} {right}")
        if isinstance(node, Call):
            _, _, fn = FUNCTIONS[node.function]
            args = [self.visit(arg) for arg in node.args]
            return self._finite(fn(*args), f"{node.function} result")
        raise MalformedFormulaError(self.formula, f"unsupported node {type(node).__name__}")


def evaluate(formula: str, context: Mapping[str, float]) -> FormulaEvaluation:
    """
    Evaluate a formula against a variable context.

    Pure function of (formula, context): the context is never modified.
    Raises MalformedFormulaError for grammar violations, division by zero,
    non-numeric variables and non-finite values at any step.
    """
    tree = parse(formula)
    evaluator = _Evaluator(formula, context)
    value = evaluator.visit(tree)
    if not math.isfinite(value):
        raise MalformedFormulaError(formula, f"result is not finite ({value})")
    return FormulaEvaluation(value=value, missing_variables=evaluator.missing)


def check_syntax(formula: str) -> Optional[str]:
    """Return None if the formula parses, otherwise the parse error message."""
    try:
        parse(formula)
    except MalformedFormulaError as e:
        return str(e)
    return None
