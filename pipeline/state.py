from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

from calculator.history import HistoryRecord, HistoryStore
from calculator.numbers import format_number, to_ascii_operators, to_display
from calculator.words import ERROR_MARKER, to_words
from pipeline.graph import build_graph

logger = logging.getLogger(__name__)

_SIMPLE_NUMBER = re.compile(r"^-?\d+\.?\d*$")
_VALUE_KEYS = set("0123456789.")
_OPERATOR_KEYS = set("+-*/×÷")
_BRACKET_KEYS = set("()")


@dataclass(frozen=True)
class CalculatorState:
    """What the display is showing. Transitions return a new state."""

    expression: str = ""

    @property
    def is_error(self) -> bool:
        return self.expression == ERROR_MARKER


@lru_cache(maxsize=1)
def _graph():
    return build_graph()


def _fresh(state: CalculatorState) -> CalculatorState:
    # Typing after an error starts over instead of extending the word "Error".
    return CalculatorState() if state.is_error else state


def append_value(state: CalculatorState, value) -> CalculatorState:
    state = _fresh(state)
    return replace(state, expression=state.expression + str(value))


def append_bracket(state: CalculatorState, value: str) -> CalculatorState:
    state = _fresh(state)
    return replace(state, expression=state.expression + value)


def append_operator(state: CalculatorState, value: str) -> CalculatorState:
    if not state.expression or state.is_error:
        return state
    return replace(state, expression=state.expression + to_ascii_operators(value))


def backspace(state: CalculatorState) -> CalculatorState:
    if state.is_error:
        return CalculatorState()
    return replace(state, expression=state.expression[:-1])


def clear(state: CalculatorState) -> CalculatorState:
    return CalculatorState()


def load_result(state: CalculatorState, record: HistoryRecord) -> CalculatorState:
    return CalculatorState(expression=format_number(record.result))


def calculate(
    state: CalculatorState, history: Optional[HistoryStore] = None
) -> Tuple[CalculatorState, Optional[Dict[str, Any]]]:
    """
    Evaluate the current expression. An empty expression is left alone and
    yields no outcome. Successful results are recorded in `history`.
    """
    if not state.expression:
        return state, None

    outcome = _graph().invoke({"expression": state.expression})
    if outcome.get("error") is not None:
        logger.debug("Evaluation of %r failed: %s", state.expression, outcome["error"])
        return CalculatorState(expression=ERROR_MARKER), outcome

    if history is not None:
        history.add(state.expression, outcome["result"])
    return CalculatorState(expression=format_number(outcome["result"])), outcome


def press(state: CalculatorState, key: str, history: Optional[HistoryStore] = None):
    """Dispatch a single key from the keypad. Returns (state, outcome or None)."""
    key = (key or "").strip()
    lowered = key.lower()
    if key == "=" or lowered in ("enter", "equals"):
        return calculate(state, history)
    if lowered in ("c", "clear", "escape"):
        return clear(state), None
    if lowered in ("back", "backspace"):
        return backspace(state), None
    if key in _VALUE_KEYS:
        return append_value(state, key), None
    if key in _OPERATOR_KEYS:
        return append_operator(state, key), None
    if key in _BRACKET_KEYS:
        return append_bracket(state, key), None
    raise ValueError(f"unknown key: {key!r}")


def display(state: CalculatorState) -> str:
    return to_display(state.expression) or "0"


def word_result(state: CalculatorState) -> str:
    """Words are shown only while the expression is a single number."""
    if state.expression and not state.is_error and _SIMPLE_NUMBER.match(state.expression):
        return to_words(state.expression)
    return ""


def view(state: CalculatorState) -> Dict[str, Any]:
    words = word_result(state)
    return {
        "expression": state.expression,
        "display": display(state),
        "words": words,
        "can_speak": bool(words.strip()),
    }
