from __future__ import annotations

from decimal import InvalidOperation
from typing import List

from calculator.evaluator import EvaluationError, tokenize
from calculator.numbers import plain_decimal

ERROR_MARKER = "Error"

_ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine"]
_TEENS = [
    "Ten",
    "Eleven",
    "Twelve",
    "Thirteen",
    "Fourteen",
    "Fifteen",
    "Sixteen",
    "Seventeen",
    "Eighteen",
    "Nineteen",
]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]
# Groups past Trillion get no scale word at all.
_SCALES = ["", "Thousand", "Million", "Billion", "Trillion"]

_SPOKEN_TOKENS = {
    "+": "plus",
    "-": "minus",
    "*": "times",
    "/": "divided by",
    "(": "open bracket",
    ")": "close bracket",
    ".": "point",
}


def _group_to_words(value: int) -> str:
    """Words for 1..999."""
    parts: List[str] = []
    if value >= 100:
        parts.append(f"{_ONES[value // 100]} Hundred")
        value %= 100
    if 10 <= value <= 19:
        parts.append(_TEENS[value - 10])
    elif value >= 20:
        tens, ones = divmod(value, 10)
        parts.append(_TENS[tens] + (f"-{_ONES[ones]}" if ones else ""))
    elif value > 0:
        parts.append(_ONES[value])
    return " ".join(parts)


def _integer_to_words(value: int) -> str:
    if value == 0:
        return "Zero"
    groups: List[str] = []
    scale = 0
    while value > 0:
        value, chunk = divmod(value, 1000)
        if chunk:
            name = _SCALES[scale] if scale < len(_SCALES) else ""
            words = _group_to_words(chunk)
            groups.insert(0, f"{words} {name}" if name else words)
        scale += 1
    return ", ".join(groups)


def to_words(number) -> str:
    """
    Spell a number out in English.

    >>> to_words(1020.5)
    'One Thousand, Twenty Point Five'

    The "Error" marker (or an EvaluationError) passes through as "Error";
    empty or non-numeric input gives "". Fractional digits are read one by one.
    """
    if number is None or isinstance(number, bool):
        return ""
    if isinstance(number, EvaluationError):
        return ERROR_MARKER
    if isinstance(number, str):
        number = number.strip()
        if number == ERROR_MARKER:
            return ERROR_MARKER
        if not number:
            return ""
    try:
        text = plain_decimal(number)
    except (InvalidOperation, ValueError, TypeError):
        return ""

    negative = text.startswith("-")
    text = text.lstrip("+-")
    integer_text, _, fraction_text = text.partition(".")
    integer_part = int(integer_text or "0")
    if integer_part == 0 and not fraction_text.strip("0"):
        return "Zero"

    result = _integer_to_words(integer_part)
    if fraction_text:
        digits = " ".join(_ONES[int(d)] or "Zero" for d in fraction_text)
        result = f"{result} Point {digits}"
    if negative:
        result = f"Negative {result}"
    return result.strip()


def expression_to_words(expression: str, result) -> str:
    """
    Read an evaluated expression aloud, e.g. "12+3", 15 ->
    "Twelve plus Three equals Fifteen".
    """
    spoken: List[str] = []
    for token in tokenize(expression or ""):
        if token.kind == "NUMBER" and token.text != ".":
            spoken.append(to_words(token.text))
        else:
            spoken.append(_SPOKEN_TOKENS[token.text])
    spoken.append("equals")
    spoken.append(to_words(result))
    return " ".join(word for word in spoken if word)
