"""
Operator evaluation — one comparison between a resolved value and a literal.

apply() never raises. Bad or absent data makes the comparison fail, except
for not_equals / not_contains, which an absent field trivially satisfies.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable

from hireflow.core.types import ConditionOperator
from hireflow.engine.resolver import MISSING

logger = logging.getLogger(__name__)


def to_number(value: Any) -> float | None:
    """Coerce ints, floats and numeric strings. Booleans are not numbers."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (list, tuple, set, frozenset)):
        return expected in actual
    if isinstance(actual, str):
        return isinstance(expected, str) and expected in actual
    return False


def _member_of(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, (list, tuple, set, frozenset)):
        return False
    return actual in expected


def _numeric(compare: Callable[[float, float], bool]) -> Callable[[Any, Any], bool]:
    def check(actual: Any, expected: Any) -> bool:
        left, right = to_number(actual), to_number(expected)
        if left is None or right is None:
            return False
        return compare(left, right)

    return check


_OPERATORS: dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQUALS: lambda a, e: a == e,
    ConditionOperator.NOT_EQUALS: lambda a, e: a != e,
    ConditionOperator.CONTAINS: _contains,
    ConditionOperator.NOT_CONTAINS: lambda a, e: not _contains(a, e),
    ConditionOperator.GREATER_THAN: _numeric(lambda a, e: a > e),
    ConditionOperator.LESS_THAN: _numeric(lambda a, e: a < e),
    ConditionOperator.GREATER_THAN_OR_EQUAL: _numeric(lambda a, e: a >= e),
    ConditionOperator.LESS_THAN_OR_EQUAL: _numeric(lambda a, e: a <= e),
    ConditionOperator.IN: _member_of,
    ConditionOperator.NOT_IN: lambda a, e: isinstance(e, (list, tuple, set, frozenset))
    and not _member_of(a, e),
}

# Operators an absent field satisfies.
_TRUE_WHEN_MISSING = frozenset({ConditionOperator.NOT_EQUALS, ConditionOperator.NOT_CONTAINS})


def apply(operator: ConditionOperator | str, actual: Any, expected: Any) -> bool:
    """Evaluate `actual <operator> expected`."""
    try:
        op = ConditionOperator(operator)
    except ValueError:
        logger.warning(f"Unknown operator {operator!r}, treating condition as failed")
        return False

    if actual is MISSING:
        return op in _TRUE_WHEN_MISSING

    try:
        return bool(_OPERATORS[op](actual, expected))
    except Exception as e:
        # Unhashable members, exotic __eq__ and the like.
        logger.debug(f"Operator {op.value} failed on {actual!r}: {e}")
        return False
