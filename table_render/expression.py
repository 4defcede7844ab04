"""Sandboxed expression language for cell formats and footer formulas.

Expressions are parsed into a small node tree once per render and evaluated
per cell. Nothing is handed to :func:`eval`; the only callables reachable from
an expression are the ones registered in ``_FUNCTIONS``.

Two flavours share the grammar:

* format expressions bind the raw cell value to ``cell``, e.g.
  ``number_format(cell, 2, '.', ',') . '%'``;
* footer expressions refer to other footer values by quoting the column key,
  e.g. ``'sales' / 'revenues' * 100``.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Callable, Iterable, Mapping, Sequence

from .errors import ExpressionError
from .values import display, is_number, to_number

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<space>\s+)
    |(?P<number>\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)
    |(?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
    |(?P<name>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<op>==|!=|<=|>=|[-+*/%.<>(),])
    """,
    re.VERBOSE,
)
_REFERENCE_PATTERN = re.compile(r"^\w+$")
_COMPARISONS = {"==", "!=", "<", "<=", ">", ">="}


@dataclass(frozen=True, slots=True)
class _Token:
    kind: str
    text: str
    position: int


@dataclass(frozen=True, slots=True)
class Literal:
    value: object


@dataclass(frozen=True, slots=True)
class Name:
    name: str


@dataclass(frozen=True, slots=True)
class Reference:
    """A quoted column key inside a footer expression."""

    key: str


@dataclass(frozen=True, slots=True)
class Call:
    function: str
    args: tuple["Node", ...]


@dataclass(frozen=True, slots=True)
class Unary:
    op: str
    operand: "Node"


@dataclass(frozen=True, slots=True)
class Binary:
    op: str
    left: "Node"
    right: "Node"


Node = Literal | Name | Reference | Call | Unary | Binary

ReferenceResolver = Callable[[str], object]


@dataclass(frozen=True, slots=True)
class Expression:
    """A parsed expression ready for repeated evaluation."""

    text: str
    root: Node

    @property
    def references(self) -> tuple[str, ...]:
        found: list[str] = []
        _collect_references(self.root, found)
        return tuple(found)

    def evaluate(
        self,
        names: Mapping[str, object] | None = None,
        *,
        resolve: ReferenceResolver | None = None,
    ) -> object:
        evaluator = _Evaluator(self.text, names or {}, resolve)
        return evaluator.visit(self.root)


def compile_expression(
    text: str,
    *,
    names: Iterable[str] = (),
    quoted_references: bool = False,
) -> Expression:
    """Parse ``text`` into an :class:`Expression`.

    Parameters
    ----------
    names:
        Identifiers the expression may use as variables (``cell`` for formats).
    quoted_references:
        When true, single-quoted word tokens are column references rather
        than string literals.
    """

    tokens = _tokenize(text)
    parser = _Parser(text, tokens, frozenset(names), quoted_references)
    root = parser.parse()
    return Expression(text=text, root=root)


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    position = 0
    while position < len(text):
        match = _TOKEN_PATTERN.match(text, position)
        if match is None:
            raise ExpressionError(
                f"Unexpected character {text[position]!r} at position {position}",
                expression=text,
            )
        kind = match.lastgroup or ""
        if kind != "space":
            tokens.append(_Token(kind, match.group(), position))
        position = match.end()
    return tokens


class _Parser:
    def __init__(
        self,
        text: str,
        tokens: Sequence[_Token],
        names: frozenset[str],
        quoted_references: bool,
    ) -> None:
        self._text = text
        self._tokens = tokens
        self._names = names
        self._quoted_references = quoted_references
        self._index = 0

    def parse(self) -> Node:
        if not self._tokens:
            raise ExpressionError("Empty expression", expression=self._text)
        node = self._comparison()
        token = self._peek()
        if token is not None:
            raise self._error(f"Unexpected token {token.text!r}", token)
        return node

    def _comparison(self) -> Node:
        node = self._additive()
        while self._at_op(*_COMPARISONS):
            op = self._advance().text
            node = Binary(op, node, self._additive())
        return node

    def _additive(self) -> Node:
        node = self._multiplicative()
        while self._at_op("+", "-", "."):
            op = self._advance().text
            node = Binary(op, node, self._multiplicative())
        return node

    def _multiplicative(self) -> Node:
        node = self._unary()
        while self._at_op("*", "/", "%"):
            op = self._advance().text
            node = Binary(op, node, self._unary())
        return node

    def _unary(self) -> Node:
        if self._at_op("+", "-"):
            op = self._advance().text
            return Unary(op, self._unary())
        return self._primary()

    def _primary(self) -> Node:
        token = self._peek()
        if token is None:
            raise ExpressionError("Unexpected end of expression", expression=self._text)
        if token.kind == "number":
            self._advance()
            return Literal(to_number(token.text))
        if token.kind == "string":
            self._advance()
            body = _unescape(token.text[1:-1])
            if (
                self._quoted_references
                and token.text.startswith("'")
                and _REFERENCE_PATTERN.match(body)
            ):
                return Reference(body)
            return Literal(body)
        if token.kind == "name":
            self._advance()
            if self._at_op("("):
                return self._call(token)
            if token.text not in self._names:
                raise self._error(f"Unknown name {token.text!r}", token)
            return Name(token.text)
        if self._at_op("("):
            self._advance()
            node = self._comparison()
            self._expect(")")
            return node
        raise self._error(f"Unexpected token {token.text!r}", token)

    def _call(self, name: _Token) -> Node:
        function = name.text.lower()
        if function not in _FUNCTIONS:
            raise self._error(f"Function {name.text!r} is not allowed", name)
        self._expect("(")
        args: list[Node] = []
        if not self._at_op(")"):
            args.append(self._comparison())
            while self._at_op(","):
                self._advance()
                args.append(self._comparison())
        self._expect(")")
        return Call(function, tuple(args))

    def _peek(self) -> _Token | None:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def _advance(self) -> _Token:
        token = self._tokens[self._index]
        self._index += 1
        return token

    def _at_op(self, *ops: str) -> bool:
        token = self._peek()
        return token is not None and token.kind == "op" and token.text in ops

    def _expect(self, op: str) -> None:
        if not self._at_op(op):
            token = self._peek()
            if token is None:
                raise ExpressionError(f"Expected {op!r} at end of expression", expression=self._text)
            raise self._error(f"Expected {op!r} but found {token.text!r}", token)
        self._advance()

    def _error(self, message: str, token: _Token) -> ExpressionError:
        return ExpressionError(f"{message} at position {token.position}", expression=self._text)


def _unescape(body: str) -> str:
    return re.sub(r"\\(.)", r"\1", body)


def _collect_references(node: Node, found: list[str]) -> None:
    if isinstance(node, Reference):
        found.append(node.key)
    elif isinstance(node, Call):
        for arg in node.args:
            _collect_references(arg, found)
    elif isinstance(node, Unary):
        _collect_references(node.operand, found)
    elif isinstance(node, Binary):
        _collect_references(node.left, found)
        _collect_references(node.right, found)


class _Evaluator:
    def __init__(
        self,
        text: str,
        names: Mapping[str, object],
        resolve: ReferenceResolver | None,
    ) -> None:
        self._text = text
        self._names = names
        self._resolve = resolve

    def visit(self, node: Node) -> object:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Name):
            if node.name not in self._names:
                raise ExpressionError(f"Name {node.name!r} is not bound", expression=self._text)
            return self._names[node.name]
        if isinstance(node, Reference):
            if self._resolve is None:
                raise ExpressionError(
                    f"Column reference '{node.key}' is not available here", expression=self._text
                )
            return self._resolve(node.key)
        if isinstance(node, Unary):
            operand = self._number(self.visit(node.operand))
            return -operand if node.op == "-" else operand
        if isinstance(node, Binary):
            return self._binary(node)
        if isinstance(node, Call):
            args = [self.visit(arg) for arg in node.args]
            try:
                return _FUNCTIONS[node.function](*args)
            except ExpressionError:
                raise
            except (TypeError, ValueError, ArithmeticError, InvalidOperation) as exc:
                raise ExpressionError(
                    f"{node.function}() failed: {exc}", expression=self._text
                ) from exc
        raise ExpressionError(f"Unsupported node {node!r}", expression=self._text)  # pragma: no cover

    def _binary(self, node: Binary) -> object:
        left = self.visit(node.left)
        right = self.visit(node.right)
        op = node.op
        if op == ".":
            return display(left) + display(right)
        if op in _COMPARISONS:
            return _compare(op, left, right)
        if op == "+" and isinstance(left, str) and isinstance(right, str):
            if not (is_number(left) and is_number(right)):
                return left + right
        a = self._number(left)
        b = self._number(right)
        if op == "+":
            return a + b
        if op == "-":
            return a - b
        if op == "*":
            return a * b
        if b == 0:
            raise ExpressionError("Division by zero", expression=self._text)
        if op == "/":
            quotient = a / b
            if isinstance(a, int) and isinstance(b, int) and a % b == 0:
                return a // b
            return quotient
        return math.fmod(a, b) if isinstance(a, float) or isinstance(b, float) else a % b

    def _number(self, value: object) -> int | float:
        try:
            return to_number(value)
        except ValueError as exc:
            raise ExpressionError(f"Expected a number, got {value!r}", expression=self._text) from exc


def _compare(op: str, left: object, right: object) -> bool:
    if is_number(left) and is_number(right):
        a: object = to_number(left)
        b: object = to_number(right)
    else:
        a = display(left)
        b = display(right)
    if op == "==":
        return a == b
    if op == "!=":
        return a != b
    if op == "<":
        return a < b  # type: ignore[operator]
    if op == "<=":
        return a <= b  # type: ignore[operator]
    if op == ">":
        return a > b  # type: ignore[operator]
    return a >= b  # type: ignore[operator]


def _round_half_up(value: object, digits: int) -> Decimal:
    number = to_number(value)
    exponent = Decimal(1).scaleb(-digits)
    return Decimal(repr(number)).quantize(exponent, rounding=ROUND_HALF_UP)


def _number_format(
    value: object,
    decimals: object = 0,
    dec_point: object = ".",
    thousands_sep: object = ",",
) -> str:
    digits = max(0, int(to_number(decimals)))
    rounded = _round_half_up(value, digits)
    if rounded == 0:
        rounded = abs(rounded)
    text = format(rounded, f",.{digits}f")
    whole, _, fraction = text.partition(".")
    whole = whole.replace(",", str(thousands_sep))
    if digits:
        return f"{whole}{dec_point}{fraction}"
    return whole


def _round(value: object, digits: object = 0) -> int | float:
    places = int(to_number(digits))
    if places < 0:
        factor = 10 ** -places
        return int(_round_half_up(to_number(value) / factor, 0)) * factor
    rounded = _round_half_up(value, places)
    if places == 0:
        return int(rounded)
    return float(rounded)


def _format(value: object, spec: object) -> str:
    return format(to_number(value), str(spec))


_FUNCTIONS: Mapping[str, Callable[..., object]] = {
    "abs": lambda value: abs(to_number(value)),
    "ceil": lambda value: math.ceil(to_number(value)),
    "float": lambda value: float(to_number(value)),
    "floor": lambda value: math.floor(to_number(value)),
    "format": _format,
    "int": lambda value: int(to_number(value)),
    "lower": lambda value: display(value).lower(),
    "max": lambda *values: max(to_number(value) for value in values),
    "min": lambda *values: min(to_number(value) for value in values),
    "number_format": _number_format,
    "round": _round,
    "str": display,
    "trim": lambda value: display(value).strip(),
    "upper": lambda value: display(value).upper(),
}


__all__ = [
    "Binary",
    "Call",
    "Expression",
    "Literal",
    "Name",
    "Reference",
    "Unary",
    "compile_expression",
]
