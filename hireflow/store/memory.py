"""
In-memory automation store — for testing.

Dict-based; data is lost when the process exits. Objects are copied on the
way in and out so callers never alias stored state.
"""

from __future__ import annotations

import asyncio
import copy
import time

from hireflow.automation.models import ActionOutcome, Automation, AutomationRun
from hireflow.core.errors import AutomationNotFoundError
from hireflow.core.types import TriggerType
from hireflow.store.base import AutomationFilter, AutomationPage, AutomationStore


class InMemoryAutomationStore(AutomationStore):
    """
    Usage:
        store = InMemoryAutomationStore()
        await store.create(automation)
        assert (await store.get(automation.id)).name == automation.name
    """

    def __init__(self) -> None:
        self._automations: dict[str, Automation] = {}
        self._runs: dict[str, AutomationRun] = {}
        self._lock = asyncio.Lock()

    async def list(self, filters: AutomationFilter | None = None) -> AutomationPage:
        filters = filters or AutomationFilter()
        matched = [a for a in self._automations.values() if filters.matches(a)]
        matched.sort(key=lambda a: a.created_at, reverse=True)
        window = matched[filters.offset : filters.offset + filters.page_size]
        return AutomationPage(
            items=[copy.deepcopy(a) for a in window],
            total=len(matched),
            page=filters.page,
            page_size=filters.page_size,
        )

    async def list_active(self, trigger_type: TriggerType | None = None) -> list[Automation]:
        active = [
            copy.deepcopy(a)
            for a in self._automations.values()
            if a.is_active and (trigger_type is None or a.trigger.type == trigger_type)
        ]
        active.sort(key=lambda a: a.created_at)
        return active

    async def get(self, automation_id: str) -> Automation:
        return copy.deepcopy(self._require(automation_id))

    async def create(self, automation: Automation) -> Automation:
        async with self._lock:
            self._automations[automation.id] = copy.deepcopy(automation)
        return copy.deepcopy(automation)

    async def update(self, automation: Automation) -> Automation:
        async with self._lock:
            current = self._require(automation.id)
            stored = copy.deepcopy(automation)
            # Run statistics belong to the engine, not to the editor.
            stored.run_count = current.run_count
            stored.last_run_at = current.last_run_at
            stored.updated_at = time.time()
            self._automations[automation.id] = stored
        return copy.deepcopy(stored)

    async def delete(self, automation_id: str) -> bool:
        async with self._lock:
            return self._automations.pop(automation_id, None) is not None

    async def toggle(self, automation_id: str) -> Automation:
        async with self._lock:
            automation = self._require(automation_id)
            automation.is_active = not automation.is_active
            automation.updated_at = time.time()
        return copy.deepcopy(automation)

    async def record_run(self, automation_id: str, at: float) -> Automation:
        async with self._lock:
            automation = self._require(automation_id)
            automation.run_count += 1
            automation.last_run_at = at
        return copy.deepcopy(automation)

    async def save_run(self, run: AutomationRun) -> None:
        async with self._lock:
            self._runs[run.id] = copy.deepcopy(run)

    async def append_outcome(self, run_id: str, outcome: ActionOutcome) -> None:
        async with self._lock:
            run = self._runs.get(run_id)
            if run is not None:
                run.outcomes.append(copy.deepcopy(outcome))

    async def list_runs(self, automation_id: str, limit: int = 50) -> list[AutomationRun]:
        runs = [r for r in self._runs.values() if r.automation_id == automation_id]
        runs.sort(key=lambda r: r.executed_at, reverse=True)
        return [copy.deepcopy(r) for r in runs[:limit]]

    async def close(self) -> None:
        self._automations.clear()
        self._runs.clear()

    def _require(self, automation_id: str) -> Automation:
        automation = self._automations.get(automation_id)
        if automation is None:
            raise AutomationNotFoundError(automation_id)
        return automation
