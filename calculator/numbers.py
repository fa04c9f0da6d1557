from __future__ import annotations

import math
from decimal import Decimal

from services.config import CALC_RESULT_PRECISION

_TO_ASCII = {"×": "*", "÷": "/"}
_TO_DISPLAY = {"*": "×", "/": "÷"}


def round_result(value: float, places: int = CALC_RESULT_PRECISION) -> float:
    """Round away float noise (0.1 + 0.2 -> 0.3) and fold -0.0 into 0.0."""
    rounded = round(float(value), places)
    return rounded + 0.0 if rounded == 0 else rounded


def plain_decimal(value) -> str:
    """Positional decimal text for `value`, never in exponent notation."""
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"not a finite number: {value!r}")
        text = format(Decimal(repr(value)), "f")
    else:
        parsed = Decimal(str(value).strip())
        if not parsed.is_finite():
            raise ValueError(f"not a finite number: {value!r}")
        text = format(parsed, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def format_number(value) -> str:
    """Render a result the way the display shows it: 14.0 -> '14', 1e-05 -> '0.00001'."""
    text = plain_decimal(value)
    return "0" if text in ("-0", "") else text


def to_ascii_operators(text: str) -> str:
    """Translate the display glyphs × and ÷ into * and /."""
    return "".join(_TO_ASCII.get(ch, ch) for ch in text or "")


def to_display(text: str) -> str:
    """Translate * and / back into the display glyphs."""
    return "".join(_TO_DISPLAY.get(ch, ch) for ch in text or "")
