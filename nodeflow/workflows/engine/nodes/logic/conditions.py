"""
Condition operators shared by the if, filter and switch nodes.

Operands are converted before comparing: numeric strings become numbers and
"true"/"false" become booleans. Anything that cannot be evaluated (a bad
pattern, operands that don't compare) makes the condition false.
"""

import logging
import math
import re
from typing import Any, Callable, Dict, List

from nodeflow.workflows.engine.errors import ConditionEvaluationError
from nodeflow.workflows.engine.nodes.schema import SelectOption

logger = logging.getLogger(__name__)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


# A field path that does not exist in the item
MISSING = _Missing()


def convert_value(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    text = value.strip()
    if text and "_" not in text:
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
            if not math.isnan(number):
                return number
        except ValueError:
            pass
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return value


def get_field_value(data: Any, path: str) -> Any:
    """Dot-path lookup into an item's json. Returns MISSING when absent."""
    if not path:
        return data
    value = data
    for key in path.split("."):
        if isinstance(value, dict):
            if key not in value:
                return MISSING
            value = value[key]
        elif isinstance(value, list) and key.isdigit() and int(key) < len(value):
            value = value[int(key)]
        else:
            return MISSING
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _text(value: Any) -> str:
    if value is None or value is MISSING:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def strict_equal(a: Any, b: Any) -> bool:
    """Equality without cross-type coercion: True is not 1, "1" is not 1."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) and _is_number(b):
        return a == b
    if type(a) is not type(b):
        return False
    return a == b


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if _is_number(value):
        return value
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
    raise ConditionEvaluationError(f"Cannot compare {value!r} as a number")


def _compare(a: Any, b: Any, op: Callable[[Any, Any], bool]) -> bool:
    if isinstance(a, str) and isinstance(b, str):
        return op(a, b)
    return op(_as_number(a), _as_number(b))


def _search(pattern: Any, value: Any, case_sensitive: bool) -> bool:
    flags = 0 if case_sensitive else re.IGNORECASE
    try:
        return re.search(_text(pattern), _text(value), flags) is not None
    except re.error as e:
        raise ConditionEvaluationError(f"Invalid regular expression '{pattern}': {e}") from e


def _is_empty(value: Any) -> bool:
    return value is MISSING or value is None or value == ""


OPERATORS: Dict[str, Callable[..., bool]] = {
    "equal": lambda a, b, cs: strict_equal(a, b),
    "notEqual": lambda a, b, cs: not strict_equal(a, b),
    "larger": lambda a, b, cs: _compare(a, b, lambda x, y: x > y),
    "largerEqual": lambda a, b, cs: _compare(a, b, lambda x, y: x >= y),
    "smaller": lambda a, b, cs: _compare(a, b, lambda x, y: x < y),
    "smallerEqual": lambda a, b, cs: _compare(a, b, lambda x, y: x <= y),
    "contains": lambda a, b, cs: _fold(b, cs) in _fold(a, cs),
    "notContains": lambda a, b, cs: _fold(b, cs) not in _fold(a, cs),
    "startsWith": lambda a, b, cs: _fold(a, cs).startswith(_fold(b, cs)),
    "notStartsWith": lambda a, b, cs: not _fold(a, cs).startswith(_fold(b, cs)),
    "endsWith": lambda a, b, cs: _fold(a, cs).endswith(_fold(b, cs)),
    "notEndsWith": lambda a, b, cs: not _fold(a, cs).endswith(_fold(b, cs)),
    "regex": lambda a, b, cs: _search(b, a, cs),
    "notRegex": lambda a, b, cs: not _search(b, a, cs),
    "isEmpty": lambda a, b, cs: _is_empty(a),
    "isNotEmpty": lambda a, b, cs: not _is_empty(a),
    "exists": lambda a, b, cs: a is not MISSING and a is not None,
    "notExists": lambda a, b, cs: a is MISSING or a is None,
}


def _fold(value: Any, case_sensitive: bool) -> str:
    text = _text(value)
    return text if case_sensitive else text.lower()


def evaluate(value: Any, operation: str, compare_value: Any, case_sensitive: bool = True) -> bool:
    """
    Raises:
        ConditionEvaluationError: unknown operation or operands that can't be evaluated
    """
    operator = OPERATORS.get(operation)
    if operator is None:
        raise ConditionEvaluationError(f"Unknown operation '{operation}'")
    try:
        return bool(operator(convert_value(value), convert_value(compare_value), case_sensitive))
    except ConditionEvaluationError:
        raise
    except (TypeError, ValueError) as e:
        raise ConditionEvaluationError(str(e)) from e


def evaluate_condition(
    value: Any, operation: str, compare_value: Any, case_sensitive: bool = True
) -> bool:
    """Like evaluate() but a failed evaluation is simply False."""
    try:
        return evaluate(value, operation, compare_value, case_sensitive)
    except ConditionEvaluationError as e:
        logger.debug(f"Condition '{operation}' evaluated as false: {e}")
        return False


def combine(results: List[bool], combine_operation: str) -> bool:
    """ALL/ANY over condition results. No results is False."""
    if not results:
        return False
    if combine_operation == "any":
        return any(results)
    return all(results)


def operation_options(names: List[str]) -> List[SelectOption]:
    return [SelectOption(name=_display(n), value=n) for n in names]


def _display(operation: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", " ", operation).title()


IF_OPERATIONS = [
    "equal", "notEqual", "larger", "largerEqual", "smaller", "smallerEqual",
    "contains", "notContains", "startsWith", "notStartsWith", "endsWith",
    "notEndsWith", "regex", "notRegex", "isEmpty", "isNotEmpty",
]

FILTER_OPERATIONS = [
    "equal", "notEqual", "larger", "largerEqual", "smaller", "smallerEqual",
    "contains", "notContains", "startsWith", "endsWith", "regex",
    "isEmpty", "isNotEmpty", "exists", "notExists",
]

SWITCH_OPERATIONS = [
    "equal", "notEqual", "contains", "notContains", "startsWith", "endsWith",
    "regex", "larger", "smaller", "isEmpty", "isNotEmpty",
]

COMBINE_OPTIONS = [
    SelectOption(name="ALL", value="all", description="Only if all conditions are met"),
    SelectOption(name="ANY", value="any", description="If any of the conditions is met"),
]


def collection_entries(collection: Any, group: str) -> List[Dict[str, Any]]:
    """Entries of one group of a resolved fixedCollection, always as a list."""
    if not isinstance(collection, dict):
        return []
    entries = collection.get(group)
    if entries is None:
        return []
    if isinstance(entries, dict):
        return [entries]
    return [e for e in entries if isinstance(e, dict)]
