"""
ActionDispatcher — runs an automation's actions in order.

    immediate action  →  executor called now, outcome executed/failed
    delayed action    →  persisted to the delay queue, outcome scheduled
                         (or scheduling_failed if the queue is unavailable)

Failures are per action: one bad action never stops the ones after it,
and nothing is retried here. Every outcome is also announced on the bus.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Sequence

from hireflow.actions.executor import ActionContext, ExecutorRegistry
from hireflow.actions.queue import DelayedAction, DelayedActionQueue
from hireflow.automation.models import Action, ActionOutcome
from hireflow.core.bus import EventBus
from hireflow.core.errors import SchedulingError
from hireflow.core.events import Event, EventType
from hireflow.core.types import ActionStatus

logger = logging.getLogger(__name__)

_EVENT_FOR_STATUS = {
    ActionStatus.EXECUTED: EventType.ACTION_EXECUTED,
    ActionStatus.FAILED: EventType.ACTION_FAILED,
    ActionStatus.SCHEDULED: EventType.ACTION_SCHEDULED,
    ActionStatus.SCHEDULING_FAILED: EventType.ACTION_SCHEDULING_FAILED,
    ActionStatus.CANCELLED: EventType.ACTION_CANCELLED,
}


class ActionDispatcher:
    """
    Usage:
        dispatcher = ActionDispatcher(registry, queue=queue, bus=bus)
        outcomes = await dispatcher.dispatch(automation.actions, context)
    """

    def __init__(
        self,
        registry: ExecutorRegistry,
        queue: DelayedActionQueue | None = None,
        bus: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._registry = registry
        self._queue = queue
        self._bus = bus
        self._clock = clock

    async def dispatch(
        self, actions: Sequence[Action], context: ActionContext
    ) -> list[ActionOutcome]:
        """Dispatch actions in list order. Never raises for a single action."""
        outcomes: list[ActionOutcome] = []
        for action in actions:
            if action.is_delayed:
                outcome = await self._schedule(action, context)
            else:
                action_context = context.for_action(action.id, action.type.value)
                outcome = await self.execute(action, action_context)
            outcomes.append(outcome)
        return outcomes

    async def execute(self, action: Action, context: ActionContext) -> ActionOutcome:
        """Invoke the executor for one action right now."""
        try:
            executor = self._registry.get(action.type)
            result = await executor.execute(action.typed_params(), context)
        except Exception as e:
            logger.warning(
                f"Action {action.type.value} ({action.id}) failed for automation "
                f"{context.automation_id}: {e}"
            )
            outcome = ActionOutcome(
                action_id=action.id,
                action_type=action.type,
                status=ActionStatus.FAILED,
                error=f"{type(e).__name__}: {e}",
                delivery_id=context.delivery_id,
                at=self._clock(),
            )
        else:
            logger.debug(f"Action {action.type.value} ({action.id}) executed")
            outcome = ActionOutcome(
                action_id=action.id,
                action_type=action.type,
                status=ActionStatus.EXECUTED,
                result=result,
                delivery_id=context.delivery_id,
                at=self._clock(),
            )
        await self.announce(outcome, context)
        return outcome

    async def _schedule(self, action: Action, context: ActionContext) -> ActionOutcome:
        now = self._clock()
        item = DelayedAction(
            automation_id=context.automation_id,
            run_id=context.run_id,
            action=action,
            context=context,
            due_at=now + action.delay_minutes * 60,
        )
        item.context = context.for_action(action.id, action.type.value, delivery_id=item.id)
        try:
            if self._queue is None:
                raise SchedulingError(
                    "No delay queue configured", action_type=action.type.value
                )
            await self._queue.enqueue(item)
        except SchedulingError as e:
            logger.error(
                f"Could not schedule {action.type.value} ({action.id}) for automation "
                f"{context.automation_id}: {e.message}"
            )
            outcome = ActionOutcome(
                action_id=action.id,
                action_type=action.type,
                status=ActionStatus.SCHEDULING_FAILED,
                error=e.message,
                at=now,
            )
        else:
            outcome = ActionOutcome(
                action_id=action.id,
                action_type=action.type,
                status=ActionStatus.SCHEDULED,
                result={"due_at": item.due_at},
                delivery_id=item.id,
                at=now,
            )
        await self.announce(outcome, context)
        return outcome

    async def announce(self, outcome: ActionOutcome, context: ActionContext) -> None:
        if self._bus is None:
            return
        data: dict[str, Any] = {
            "automation_id": context.automation_id,
            "run_id": context.run_id,
            **outcome.to_dict(),
        }
        await self._bus.emit(
            Event(type=_EVENT_FOR_STATUS[outcome.status], data=data, source="dispatcher")
        )
