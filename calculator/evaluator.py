from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import List, Optional, Union

from calculator.numbers import round_result, to_ascii_operators

_ALLOWED = set("0123456789.+-*/()")
_TOKEN_RE = re.compile(r"\d+\.?\d*|\.\d+|\.|[+\-*/()]")


class EvaluationError(Exception):
    """Base class for every way an expression can fail to produce a number."""


class MalformedExpression(EvaluationError):
    pass


class DivisionByZero(EvaluationError):
    pass


class NonFiniteResult(EvaluationError):
    pass


@dataclass(frozen=True)
class Token:
    kind: str  # NUMBER, OPERATOR, LPAREN, RPAREN
    text: str
    pos: int


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"


Node = Union[Number, UnaryOp, BinaryOp]


@dataclass(frozen=True)
class EvaluationResult:
    value: Optional[float] = None
    error: Optional[EvaluationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def sanitize(expression: str) -> str:
    """Drop every character that is not a digit, '.', an operator or a bracket."""
    return "".join(ch for ch in to_ascii_operators(expression) if ch in _ALLOWED)


def tokenize(expression: str) -> List[Token]:
    """Split a sanitized expression into numbers, operators and brackets."""
    tokens: List[Token] = []
    for match in _TOKEN_RE.finditer(sanitize(expression)):
        text = match.group(0)
        if text == "(":
            kind = "LPAREN"
        elif text == ")":
            kind = "RPAREN"
        elif text in "+-*/":
            kind = "OPERATOR"
        else:
            kind = "NUMBER"
        tokens.append(Token(kind, text, match.start()))
    return tokens


class _Parser:
    """
    Recursive descent over the token list.

        expr    := term (('+' | '-') term)*
        term    := factor (('*' | '/') factor)*
        factor  := ('+' | '-') factor | primary
        primary := NUMBER | '(' expr ')'
    """

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.index = 0

    def _peek(self) -> Optional[Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _next(self) -> Token:
        token = self._peek()
        if token is None:
            raise MalformedExpression("expression ends too early")
        self.index += 1
        return token

    def _at_operator(self, ops: str) -> bool:
        token = self._peek()
        return token is not None and token.kind == "OPERATOR" and token.text in ops

    def parse(self) -> Node:
        if not self.tokens:
            raise MalformedExpression("empty expression")
        node = self._expr()
        leftover = self._peek()
        if leftover is not None:
            if leftover.kind == "RPAREN":
                raise MalformedExpression(f"unmatched ')' at position {leftover.pos}")
            raise MalformedExpression(f"unexpected '{leftover.text}' at position {leftover.pos}")
        return node

    def _expr(self) -> Node:
        node = self._term()
        while self._at_operator("+-"):
            op = self._next().text
            node = BinaryOp(op, node, self._term())
        return node

    def _term(self) -> Node:
        node = self._factor()
        while self._at_operator("*/"):
            op = self._next().text
            node = BinaryOp(op, node, self._factor())
        return node

    def _factor(self) -> Node:
        if self._at_operator("+-"):
            op = self._next().text
            return UnaryOp(op, self._factor())
        return self._primary()

    def _primary(self) -> Node:
        token = self._next()
        if token.kind == "NUMBER":
            if token.text == ".":
                raise MalformedExpression(f"lone '.' at position {token.pos}")
            return Number(float(token.text))
        if token.kind == "LPAREN":
            node = self._expr()
            closing = self._peek()
            if closing is None or closing.kind != "RPAREN":
                raise MalformedExpression(f"unmatched '(' at position {token.pos}")
            self.index += 1
            return node
        raise MalformedExpression(f"unexpected '{token.text}' at position {token.pos}")


def parse(expression: str) -> Node:
    """Build the precedence tree for `expression`; raises MalformedExpression."""
    return _Parser(tokenize(expression)).parse()


def _apply(op: str, left: float, right: float) -> float:
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if right == 0:
        raise DivisionByZero("division by zero")
    return left / right


def evaluate_tree(node: Node) -> float:
    """Post-order walk with an explicit stack, so long operator chains never recurse."""
    values: List[float] = []
    pending = [(node, False)]
    while pending:
        current, expanded = pending.pop()
        if isinstance(current, Number):
            values.append(current.value)
        elif not expanded:
            pending.append((current, True))
            if isinstance(current, UnaryOp):
                pending.append((current.operand, False))
            else:
                pending.append((current.right, False))
                pending.append((current.left, False))
        elif isinstance(current, UnaryOp):
            value = values.pop()
            values.append(-value if current.op == "-" else value)
        else:
            right = values.pop()
            left = values.pop()
            values.append(_apply(current.op, left, right))
    return values[0]


def evaluate(expression: str) -> EvaluationResult:
    """Evaluate an arithmetic expression into a tagged result; never raises."""
    try:
        value = evaluate_tree(parse(expression))
        if not math.isfinite(value):
            raise NonFiniteResult("result is not a finite number")
    except EvaluationError as exc:
        return EvaluationResult(error=exc)
    except OverflowError:
        return EvaluationResult(error=NonFiniteResult("result is not a finite number"))
    except RecursionError:
        return EvaluationResult(error=MalformedExpression("brackets nested too deeply"))
    return EvaluationResult(value=round_result(value))


def calc(expression: str):
    """Evaluate for the HTTP layer: ({"result": n}, 200) or ({"error": ...}, 400)."""
    outcome = evaluate(expression or "")
    if outcome.ok:
        return {"result": outcome.value}, 200
    return {"error": str(outcome.error), "kind": type(outcome.error).__name__}, 400
