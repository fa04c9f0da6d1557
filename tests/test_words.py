import pytest

from calculator.evaluator import DivisionByZero
from calculator.words import expression_to_words, to_words


@pytest.mark.parametrize(
    "number, expected",
    [
        (0, "Zero"),
        (-0.0, "Zero"),
        (-5, "Negative Five"),
        (100, "One Hundred"),
        (1020, "One Thousand, Twenty"),
        (19, "Nineteen"),
        (21, "Twenty-One"),
        (40, "Forty"),
        (115, "One Hundred Fifteen"),
        (999, "Nine Hundred Ninety-Nine"),
        (1000000, "One Million"),
        (2000345, "Two Million, Three Hundred Forty-Five"),
        (1234567890123, "One Trillion, Two Hundred Thirty-Four Billion, Five Hundred Sixty-Seven Million, Eight Hundred Ninety Thousand, One Hundred Twenty-Three"),
        (3.05, "Three Point Zero Five"),
        (0.5, "Zero Point Five"),
        (-12.25, "Negative Twelve Point Two Five"),
        (14.0, "Fourteen"),
    ],
)
def test_to_words(number, expected):
    assert to_words(number) == expected


def test_to_words_markers_pass_through():
    assert to_words("Error") == "Error"
    assert to_words(DivisionByZero("division by zero")) == "Error"
    assert to_words("") == ""
    assert to_words(None) == ""
    assert to_words("not a number") == ""
    assert to_words(float("inf")) == ""


def test_to_words_accepts_numeric_strings():
    assert to_words("42") == "Forty-Two"
    assert to_words("-0.75") == "Negative Zero Point Seven Five"
    assert to_words("2.50") == "Two Point Five"


def test_to_words_has_no_stray_whitespace():
    for n in (7, 70, 700, 7000, 70000, 700000, 7000000):
        words = to_words(n)
        assert words == words.strip()
        assert "  " not in words


def test_expression_to_words():
    assert expression_to_words("12+3", 15) == "Twelve plus Three equals Fifteen"
    assert (
        expression_to_words("(2+3)*4", 20)
        == "open bracket Two plus Three close bracket times Four equals Twenty"
    )
    assert expression_to_words("10/4", 2.5) == "Ten divided by Four equals Two Point Five"
    assert expression_to_words("7-9", -2) == "Seven minus Nine equals Negative Two"


def test_expression_to_words_reads_glyphs_and_ignores_noise():
    assert expression_to_words("6 × 7", 42) == "Six times Seven equals Forty-Two"
