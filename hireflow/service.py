"""
AutomationService — the single entry point host applications talk to.

Composes the store, rule engine, dispatcher, delay queue, scheduler,
dry-run tester and event bus. The service owns the lifecycle rules that
span components:

- definitions are validated before anything is persisted
- new automations (and template clones) start inactive
- deactivating or deleting an automation cancels its pending delayed actions
- every lifecycle change is announced on the bus
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from hireflow.actions.dispatcher import ActionDispatcher
from hireflow.actions.executor import ExecutorRegistry
from hireflow.actions.log_executor import LogActionExecutor
from hireflow.actions.queue import DelayedActionQueue
from hireflow.actions.scheduler import DelayedActionScheduler
from hireflow.automation.models import Automation, AutomationRun
from hireflow.automation.templates import get_template
from hireflow.automation.validation import validate_automation
from hireflow.core.bus import EventBus
from hireflow.core.config import HireflowConfig
from hireflow.core.events import Event, EventType
from hireflow.core.logging import AuditLogger
from hireflow.engine.rules import EvaluationResult, RuleEngine, TriggerEvent
from hireflow.engine.tester import DryRunTester
from hireflow.engine.trace import ExecutionTrace
from hireflow.store.base import AutomationFilter, AutomationPage, AutomationStore
from hireflow.store.memory import InMemoryAutomationStore
from hireflow.store.sqlite import SQLiteAutomationStore

logger = logging.getLogger(__name__)


class AutomationService:
    """
    Usage:
        service = await AutomationService.from_config(HireflowConfig.load())
        automation = await service.create({...})
        await service.toggle(automation.id)            # activate
        results = await service.handle_event(TriggerEvent(...))
        await service.close()

    Or compose it by hand (tests, embedding):
        service = AutomationService(store, registry, queue=queue, bus=bus)
    """

    def __init__(
        self,
        store: AutomationStore,
        registry: ExecutorRegistry,
        queue: DelayedActionQueue | None = None,
        bus: EventBus | None = None,
        max_concurrency: int = 16,
        poll_interval: float = 30,
        lease_timeout: float = 600,
    ) -> None:
        self.store = store
        self.registry = registry
        self.queue = queue
        self.bus = bus or EventBus()
        self.dispatcher = ActionDispatcher(registry, queue=queue, bus=self.bus)
        self.engine = RuleEngine(
            store, self.dispatcher, bus=self.bus, max_concurrency=max_concurrency
        )
        self.tester = DryRunTester()
        self.scheduler = (
            DelayedActionScheduler(
                queue,
                store,
                self.dispatcher,
                poll_interval=poll_interval,
                lease_timeout=lease_timeout,
            )
            if queue is not None
            else None
        )

    @classmethod
    async def from_config(
        cls,
        config: HireflowConfig,
        registry: ExecutorRegistry | None = None,
    ) -> AutomationService:
        """
        Build a service from configuration.

        Action types with no executor in `registry` fall back to the
        LogActionExecutor, so every automation can run end to end.
        """
        if config.store.backend == "memory":
            store: AutomationStore = InMemoryAutomationStore()
        else:
            sqlite_store = SQLiteAutomationStore(config.store_path())
            await sqlite_store.initialize()
            store = sqlite_store

        queue = None
        if config.scheduler.enabled:
            queue = DelayedActionQueue(config.scheduler_path())
            await queue.initialize()

        registry = registry or ExecutorRegistry()
        registry.register_all(LogActionExecutor(Path(config.executors.log_path)))

        bus = EventBus()
        if config.logging.audit_enabled:
            audit = AuditLogger(config.log_dir())
            bus.on(EventType.ALL, audit.handle)

        return cls(
            store,
            registry,
            queue=queue,
            bus=bus,
            max_concurrency=config.engine.max_concurrency,
            poll_interval=config.scheduler.poll_interval,
            lease_timeout=config.scheduler.lease_timeout,
        )

    # ━━━ Lifecycle ━━━

    async def start(self) -> None:
        """Start the delayed-action scheduler, if there is a queue."""
        if self.scheduler is not None:
            await self.scheduler.start()

    async def close(self) -> None:
        if self.scheduler is not None and self.scheduler.running:
            await self.scheduler.stop()
        if self.queue is not None:
            await self.queue.close()
        await self.store.close()

    # ━━━ Automations ━━━

    async def list(self, filters: AutomationFilter | None = None) -> AutomationPage:
        return await self.store.list(filters)

    async def get(self, automation_id: str) -> Automation:
        return await self.store.get(automation_id)

    async def create(self, data: dict[str, Any]) -> Automation:
        """
        Validate and persist a new automation. It is inactive unless the
        definition explicitly says otherwise.

        Raises:
            AutomationValidationError: with every problem found.
        """
        automation = validate_automation({"is_active": False, **data})
        created = await self.store.create(automation)
        logger.info(f"Created automation {created.name!r} ({created.id})")
        await self._emit(EventType.AUTOMATION_CREATED, {"automation_id": created.id})
        return created

    async def update(self, automation_id: str, data: dict[str, Any]) -> Automation:
        """
        Apply a (partial) definition to an existing automation.

        Run statistics are preserved. Deactivating through an update
        cancels pending delayed actions, like toggle() does.
        """
        existing = await self.store.get(automation_id)
        automation = validate_automation(data, base=existing)
        updated = await self.store.update(automation)
        if existing.is_active and not updated.is_active:
            await self._cancel_pending(updated.id)
        await self._emit(EventType.AUTOMATION_UPDATED, {"automation_id": updated.id})
        return updated

    async def delete(self, automation_id: str) -> bool:
        deleted = await self.store.delete(automation_id)
        if deleted:
            await self._cancel_pending(automation_id)
            logger.info(f"Deleted automation {automation_id}")
            await self._emit(EventType.AUTOMATION_DELETED, {"automation_id": automation_id})
        return deleted

    async def toggle(self, automation_id: str) -> Automation:
        automation = await self.store.toggle(automation_id)
        if not automation.is_active:
            await self._cancel_pending(automation_id)
        await self._emit(
            EventType.AUTOMATION_TOGGLED,
            {"automation_id": automation_id, "is_active": automation.is_active},
        )
        return automation

    async def clone_template(self, template_id: str) -> Automation:
        """
        Create an inactive automation from a built-in template.

        Raises:
            TemplateNotFoundError: If no template has this id.
        """
        template = get_template(template_id)
        automation = validate_automation(template.to_definition())
        created = await self.store.create(automation)
        logger.info(f"Cloned template {template_id} into {created.id}")
        await self._emit(
            EventType.AUTOMATION_CREATED,
            {"automation_id": created.id, "template_id": template_id},
        )
        return created

    # ━━━ Evaluation ━━━

    async def test(self, automation_id: str, sample_payload: dict[str, Any]) -> ExecutionTrace:
        """Dry-run a stored automation. No side effects."""
        automation = await self.store.get(automation_id)
        return self.tester.test(automation, sample_payload)

    async def handle_event(self, event: TriggerEvent) -> list[EvaluationResult]:
        return await self.engine.process_event(event)

    async def list_runs(self, automation_id: str, limit: int = 50) -> list[AutomationRun]:
        await self.store.get(automation_id)
        return await self.store.list_runs(automation_id, limit=limit)

    # ━━━ Internal ━━━

    async def _cancel_pending(self, automation_id: str) -> int:
        if self.queue is None:
            return 0
        try:
            cancelled = await self.queue.cancel_for_automation(automation_id)
        except Exception as e:
            # The scheduler re-checks is_active before firing anyway.
            logger.warning(f"Could not cancel delayed actions of {automation_id}: {e}")
            return 0
        if cancelled:
            logger.info(f"Cancelled {cancelled} delayed action(s) of {automation_id}")
        return cancelled

    async def _emit(self, event_type: str, data: dict) -> None:
        await self.bus.emit(Event(type=event_type, data=data, source="service"))
