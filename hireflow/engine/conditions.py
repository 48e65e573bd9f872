"""
Condition evaluation — a strict left-to-right fold over the condition list.

    [A, B(OR), C(AND)]  ==  ((A or B) and C)

There is no grouping and no operator precedence: each condition combines
with the running result using its own logic tag. An empty list passes.

Every condition is evaluated and traced, even once the result can no
longer change, so an operator can see exactly why a rule did or did not
fire.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from hireflow.automation.models import Condition
from hireflow.core.types import ConditionLogic
from hireflow.engine.operators import apply
from hireflow.engine.resolver import resolve
from hireflow.engine.trace import ConditionEvaluation


@dataclass(frozen=True, slots=True)
class ConditionResult:
    passed: bool
    evaluations: list[ConditionEvaluation]


def evaluate_condition(payload: Any, condition: Condition) -> ConditionEvaluation:
    actual = resolve(payload, condition.field)
    return ConditionEvaluation(
        field=condition.field,
        operator=condition.operator.value,
        expected_value=condition.value,
        actual_value=actual,
        passed=apply(condition.operator, actual, condition.value),
        logic=condition.logic.value if condition.logic else None,
    )


def evaluate(payload: Any, conditions: Sequence[Condition]) -> ConditionResult:
    """Evaluate conditions against a payload."""
    evaluations = [evaluate_condition(payload, c) for c in conditions]
    if not evaluations:
        return ConditionResult(passed=True, evaluations=[])

    accumulator = evaluations[0].passed
    for condition, evaluation in zip(conditions[1:], evaluations[1:]):
        if condition.logic is ConditionLogic.OR:
            accumulator = accumulator or evaluation.passed
        else:
            accumulator = accumulator and evaluation.passed
    return ConditionResult(passed=accumulator, evaluations=evaluations)
