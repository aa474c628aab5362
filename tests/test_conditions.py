"""
Tests for the condition operators shared by if, filter and switch
"""

import pytest

from nodeflow.workflows.engine.errors import ConditionEvaluationError
from nodeflow.workflows.engine.nodes.logic.conditions import (
    MISSING,
    collection_entries,
    combine,
    convert_value,
    evaluate,
    evaluate_condition,
    get_field_value,
    strict_equal,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("42", 42),
        (" 7 ", 7),
        ("3.5", 3.5),
        ("true", True),
        ("FALSE", False),
        ("1_000", "1_000"),
        ("NaN", "NaN"),
        ("abc", "abc"),
        (None, None),
    ],
)
def test_convert_value(raw, expected):
    assert convert_value(raw) == expected
    assert type(convert_value(raw)) is type(expected)


def test_strict_equal_does_not_mix_types():
    assert strict_equal(1, 1.0)
    assert not strict_equal(True, 1)
    assert not strict_equal("1", 1)
    assert strict_equal({"a": 1}, {"a": 1})


def test_equal_converts_operands_first():
    assert evaluate("10", "equal", 10)
    assert evaluate(True, "equal", "true")
    assert evaluate("abc", "notEqual", "abd")


def test_numeric_comparisons():
    assert evaluate("10", "larger", "9")
    assert evaluate(5, "largerEqual", "5")
    assert evaluate(2.5, "smaller", 3)
    assert evaluate("b", "larger", "a")


def test_uncomparable_operands():
    with pytest.raises(ConditionEvaluationError):
        evaluate("abc", "larger", 5)
    assert evaluate_condition("abc", "larger", 5) is False


def test_string_operators_and_case():
    assert evaluate("Hello World", "contains", "world", case_sensitive=False)
    assert not evaluate("Hello World", "contains", "world", case_sensitive=True)
    assert evaluate("invoice-2024", "startsWith", "INV", case_sensitive=False)
    assert evaluate("report.pdf", "endsWith", ".pdf")
    assert evaluate("report.pdf", "notEndsWith", ".csv")
    assert evaluate(12345, "contains", "234")


def test_regex():
    assert evaluate("order-123", "regex", r"\d+")
    assert evaluate("ORDER", "regex", "^order$", case_sensitive=False)
    assert evaluate("order", "notRegex", r"\d")


def test_invalid_regex_is_false_for_both_operators():
    with pytest.raises(ConditionEvaluationError):
        evaluate("x", "regex", "(")
    assert evaluate_condition("x", "regex", "(") is False
    assert evaluate_condition("x", "notRegex", "(") is False


def test_emptiness_and_existence():
    assert evaluate(MISSING, "isEmpty", None)
    assert evaluate(None, "isEmpty", None)
    assert evaluate("", "isEmpty", None)
    assert not evaluate(0, "isEmpty", None)
    assert evaluate("x", "isNotEmpty", None)

    assert not evaluate(MISSING, "exists", None)
    assert not evaluate(None, "exists", None)
    assert evaluate(0, "exists", None)
    assert evaluate(MISSING, "notExists", None)


def test_unknown_operation():
    with pytest.raises(ConditionEvaluationError, match="Unknown operation"):
        evaluate(1, "between", 2)
    assert evaluate_condition(1, "between", 2) is False


def test_get_field_value():
    data = {"a": {"b": [{"c": 1}]}, "flag": False}
    assert get_field_value(data, "a.b.0.c") == 1
    assert get_field_value(data, "flag") is False
    assert get_field_value(data, "a.x") is MISSING
    assert get_field_value(data, "a.b.5") is MISSING
    assert get_field_value(data, "") is data


def test_combine():
    assert combine([True, True], "all")
    assert not combine([True, False], "all")
    assert combine([False, True], "any")
    assert not combine([], "all")
    assert not combine([], "any")


def test_collection_entries():
    assert collection_entries({"boolean": {"a": 1}}, "boolean") == [{"a": 1}]
    assert collection_entries({"boolean": [{"a": 1}, "junk"]}, "boolean") == [{"a": 1}]
    assert collection_entries({}, "boolean") == []
    assert collection_entries(None, "boolean") == []
