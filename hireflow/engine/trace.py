"""
Execution traces — what the engine saw and decided, per condition and action.

Produced by the dry-run tester, and by the rule engine for every real
evaluation so a skipped automation can still be diagnosed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from hireflow.engine.resolver import MISSING


@dataclass(frozen=True, slots=True)
class ConditionEvaluation:
    """One condition's result. actual_value is MISSING for absent fields."""

    field: str
    operator: str
    expected_value: Any
    actual_value: Any
    passed: bool
    logic: str | None = None

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "operator": self.operator,
            "expected_value": self.expected_value,
            # JSON has no MISSING; absent fields are reported as null
            "actual_value": None if self.actual_value is MISSING else self.actual_value,
            "passed": self.passed,
        }


@dataclass(frozen=True, slots=True)
class ActionPreview:
    """Whether an action would fire, without firing it."""

    type: str
    params: dict[str, Any]
    delay_minutes: int
    would_execute: bool

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "params": dict(self.params),
            "delay_minutes": self.delay_minutes,
            "would_execute": self.would_execute,
        }


@dataclass(frozen=True, slots=True)
class ExecutionTrace:
    all_conditions_passed: bool
    conditions_evaluation: list[ConditionEvaluation] = field(default_factory=list)
    actions_preview: list[ActionPreview] = field(default_factory=list)
    trigger_compatible: bool | None = None
    trigger_description: str = ""

    def to_dict(self) -> dict:
        return {
            "all_conditions_passed": self.all_conditions_passed,
            "trigger_compatible": self.trigger_compatible,
            "trigger_description": self.trigger_description,
            "conditions_evaluation": [c.to_dict() for c in self.conditions_evaluation],
            "actions_preview": [a.to_dict() for a in self.actions_preview],
        }
