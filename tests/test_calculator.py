import pytest

from calculator.evaluator import (
    BinaryOp,
    DivisionByZero,
    MalformedExpression,
    NonFiniteResult,
    calc,
    evaluate,
    parse,
    sanitize,
    tokenize,
)
from calculator.numbers import format_number, round_result, to_ascii_operators, to_display


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("2+3*4", 14),
        ("(2+3)*4", 20),
        ("10-4-3", 3),
        ("100/10/5", 2),
        ("2*(3+(4-1))/3", 4),
        ("-5+2", -3),
        ("2*-3", -6),
        ("1/0.5", 2),
        ("0.1+0.2", 0.3),
        ("7", 7),
        (".5+5.", 5.5),
    ],
)
def test_evaluate_follows_precedence(expression, expected):
    outcome = evaluate(expression)
    assert outcome.ok
    assert outcome.value == expected


def test_sanitize_strips_foreign_characters():
    assert sanitize("2 + 3a × 4") == "2+3*4"
    assert evaluate("12 ÷ 4").value == 3


@pytest.mark.parametrize("expression", ["2++", "+", "(", "(2+3", "2+3)", "", "abc", "1.2.3", "2(3)", "."])
def test_malformed_expressions_return_errors(expression):
    outcome = evaluate(expression)
    assert not outcome.ok
    assert isinstance(outcome.error, MalformedExpression)
    assert outcome.value is None


@pytest.mark.parametrize("expression", ["5/0", "5/0+1", "1/(2-2)", "3/0.0"])
def test_zero_divisor_is_an_error(expression):
    assert isinstance(evaluate(expression).error, DivisionByZero)


def test_huge_numbers_are_non_finite():
    outcome = evaluate("9" * 400 + "*10")
    assert isinstance(outcome.error, NonFiniteResult)


def test_deep_nesting_does_not_crash():
    outcome = evaluate("(" * 5000 + "1" + ")" * 5000)
    assert not outcome.ok


def test_long_operator_chains_evaluate():
    assert evaluate("+".join(["1"] * 1500)).value == 1500
    assert evaluate("*".join(["1"] * 1500) + "-1").value == 0
    assert evaluate("2" + "/1" * 1500).value == 2


def test_tree_is_left_associative():
    tree = parse("8-3-2")
    assert isinstance(tree, BinaryOp)
    assert isinstance(tree.left, BinaryOp)
    assert tree.left.op == "-"


def test_tokenize_classifies_tokens():
    kinds = [t.kind for t in tokenize("(12.5+3)/x4")]
    assert kinds == ["LPAREN", "NUMBER", "OPERATOR", "NUMBER", "RPAREN", "OPERATOR", "NUMBER"]


def test_calc_adapter():
    assert calc("6*7") == ({"result": 42}, 200)
    body, status = calc("6/0")
    assert status == 400
    assert body["kind"] == "DivisionByZero"


def test_number_helpers():
    assert round_result(0.1 + 0.2) == 0.3
    assert str(round_result(-0.0)) == "0.0"
    assert format_number(14.0) == "14"
    assert format_number(2.5) == "2.5"
    assert format_number(1e-05) == "0.00001"
    assert format_number(-3.0) == "-3"
    assert to_ascii_operators("3×4÷2") == "3*4/2"
    assert to_display("3*4/2") == "3×4÷2"
