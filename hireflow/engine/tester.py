"""
Dry-run tester — shows what an automation would do with a sample payload.

Used by rule authors before activating a rule. It evaluates the same
conditions the engine would, but never reaches an executor, never enqueues
a delayed action and never touches run statistics, so calling it twice
with the same input yields the same trace.

The trigger check is informational only: the sample does not have to be a
real event of the trigger's type.
"""

from __future__ import annotations

from typing import Any

from hireflow.automation.models import Automation
from hireflow.engine.conditions import evaluate
from hireflow.engine.trace import ActionPreview, ExecutionTrace
from hireflow.engine.triggers import make_matcher


class DryRunTester:
    def test(self, automation: Automation, sample_payload: dict[str, Any]) -> ExecutionTrace:
        result = evaluate(sample_payload, automation.conditions)
        matcher = make_matcher(automation.trigger)
        # All actions share one gate: the conditions.
        previews = [
            ActionPreview(
                type=action.type.value,
                params=dict(action.params),
                delay_minutes=action.delay_minutes,
                would_execute=result.passed,
            )
            for action in automation.actions
        ]
        return ExecutionTrace(
            all_conditions_passed=result.passed,
            conditions_evaluation=result.evaluations,
            actions_preview=previews,
            trigger_compatible=matcher.check(sample_payload),
            trigger_description=matcher.description,
        )
