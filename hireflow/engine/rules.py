"""
RuleEngine — matches recruiting events against automations and dispatches.

Per (automation, event) the engine walks four gates:

    1. inactive?              → skipped (inactive)
    2. trigger type differs?  → skipped (trigger_type)
    3. trigger params miss?   → skipped (trigger_params)
    4. conditions fail?       → skipped (conditions)

and only then dispatches the action list, bumps run statistics atomically
in the store, and records an AutomationRun. A skip is the normal "rule did
not apply" path: nothing is mutated and nothing is raised.

process_event() fans one event out to every active automation of its
trigger type concurrently. Automations share no mutable state, so a
failure while handling one is reported for that automation only.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from hireflow.actions.dispatcher import ActionDispatcher
from hireflow.actions.executor import ActionContext
from hireflow.automation.models import ActionOutcome, Automation, AutomationRun, new_id
from hireflow.core.bus import EventBus
from hireflow.core.events import Event, EventType
from hireflow.core.types import EvaluationStatus, SkipReason, TriggerType
from hireflow.engine.conditions import ConditionResult, evaluate
from hireflow.engine.trace import ConditionEvaluation
from hireflow.engine.triggers import make_matcher
from hireflow.store.base import AutomationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TriggerEvent:
    """An incoming recruiting event: what happened, and the data around it."""

    trigger_type: TriggerType
    payload: dict[str, Any] = field(default_factory=dict)
    source: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> TriggerEvent:
        return cls(
            trigger_type=TriggerType(d["trigger_type"]),
            payload=d.get("payload") or {},
            source=d.get("source", ""),
        )


@dataclass
class EvaluationResult:
    """What the engine did with one automation for one event."""

    automation_id: str
    automation_name: str
    status: EvaluationStatus
    skip_reason: SkipReason | None = None
    conditions: list[ConditionEvaluation] = field(default_factory=list)
    outcomes: list[ActionOutcome] = field(default_factory=list)
    run: AutomationRun | None = None
    error: str | None = None

    @property
    def dispatched(self) -> bool:
        return self.status is EvaluationStatus.DISPATCHED

    def to_dict(self) -> dict:
        return {
            "automation_id": self.automation_id,
            "automation_name": self.automation_name,
            "status": self.status.value,
            "skip_reason": self.skip_reason.value if self.skip_reason else None,
            "conditions": [c.to_dict() for c in self.conditions],
            "outcomes": [o.to_dict() for o in self.outcomes],
            "run_id": self.run.id if self.run else None,
            "error": self.error,
        }


def check(automation: Automation, event: TriggerEvent) -> tuple[SkipReason | None, ConditionResult | None]:
    """
    Run the four gates without side effects.

    Returns (skip_reason, condition_result); skip_reason is None when the
    automation applies. condition_result is None if a gate before the
    conditions already failed.
    """
    if not automation.is_active:
        return SkipReason.INACTIVE, None
    if automation.trigger.type != event.trigger_type:
        return SkipReason.TRIGGER_TYPE, None
    if not make_matcher(automation.trigger).matches(event.payload):
        return SkipReason.TRIGGER_PARAMS, None
    result = evaluate(event.payload, automation.conditions)
    if not result.passed:
        return SkipReason.CONDITIONS, result
    return None, result


class RuleEngine:
    """
    Usage:
        engine = RuleEngine(store, dispatcher, bus=bus)
        results = await engine.process_event(
            TriggerEvent(TriggerType.APPLICATION_RECEIVED, payload)
        )
    """

    def __init__(
        self,
        store: AutomationStore,
        dispatcher: ActionDispatcher,
        bus: EventBus | None = None,
        max_concurrency: int = 16,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._bus = bus
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._clock = clock

    async def process_event(self, event: TriggerEvent) -> list[EvaluationResult]:
        """Evaluate every active automation listening for this event type."""
        automations = await self._store.list_active(event.trigger_type)
        logger.debug(
            f"Event {event.trigger_type.value}: {len(automations)} candidate automation(s)"
        )
        return list(
            await asyncio.gather(*(self._guarded(a, event) for a in automations))
        )

    async def _guarded(self, automation: Automation, event: TriggerEvent) -> EvaluationResult:
        async with self._semaphore:
            try:
                return await self.evaluate(automation, event)
            except Exception as e:
                logger.error(
                    f"Automation {automation.name!r} ({automation.id}) failed on "
                    f"{event.trigger_type.value}: {e}",
                    exc_info=True,
                )
                await self._emit(
                    EventType.AUTOMATION_ERROR,
                    {"automation_id": automation.id, "error": str(e)},
                )
                return EvaluationResult(
                    automation_id=automation.id,
                    automation_name=automation.name,
                    status=EvaluationStatus.ERROR,
                    error=f"{type(e).__name__}: {e}",
                )

    async def evaluate(self, automation: Automation, event: TriggerEvent) -> EvaluationResult:
        """Evaluate one automation against one event, dispatching on a match."""
        skip_reason, conditions = check(automation, event)
        evaluations = conditions.evaluations if conditions else []

        if skip_reason is not None:
            logger.debug(f"Automation {automation.name!r} skipped: {skip_reason.value}")
            await self._emit(
                EventType.AUTOMATION_SKIPPED,
                {"automation_id": automation.id, "reason": skip_reason.value},
            )
            return EvaluationResult(
                automation_id=automation.id,
                automation_name=automation.name,
                status=EvaluationStatus.SKIPPED,
                skip_reason=skip_reason,
                conditions=evaluations,
            )

        run_id = new_id()
        context = ActionContext(
            automation_id=automation.id,
            automation_name=automation.name,
            trigger_type=event.trigger_type.value,
            payload=event.payload,
            run_id=run_id,
        )
        started = time.perf_counter()
        outcomes = await self._dispatcher.dispatch(automation.actions, context)
        now = self._clock()
        await self._store.record_run(automation.id, now)

        run = AutomationRun(
            id=run_id,
            automation_id=automation.id,
            trigger_type=event.trigger_type,
            context=event.payload,
            outcomes=outcomes,
            duration_ms=int((time.perf_counter() - started) * 1000),
            executed_at=now,
        )
        await self._store.save_run(run)

        logger.info(
            f"Automation {automation.name!r} fired on {event.trigger_type.value}: "
            f"{len(outcomes)} action(s), run {run.status.value}"
        )
        await self._emit(
            EventType.AUTOMATION_MATCHED,
            {
                "automation_id": automation.id,
                "run_id": run.id,
                "status": run.status.value,
                "actions": [o.status.value for o in outcomes],
            },
        )
        return EvaluationResult(
            automation_id=automation.id,
            automation_name=automation.name,
            status=EvaluationStatus.DISPATCHED,
            conditions=evaluations,
            outcomes=outcomes,
            run=run,
        )

    async def _emit(self, event_type: str, data: dict) -> None:
        if self._bus is not None:
            await self._bus.emit(Event(type=event_type, data=data, source="engine"))
