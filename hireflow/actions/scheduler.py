"""
DelayedActionScheduler — the background asyncio task that fires delayed actions.

Design:
- Polls the delay queue every poll_interval seconds
- Claims due rows, re-checks that the owning automation still exists and
  is active, then executes through the same dispatcher path as immediate
  actions
- Marks rows done/failed only after execution, so a crash mid-action leads
  to a redelivery (at-least-once); on startup, rows a dead process left
  running are requeued
- A row that raises while firing goes back to pending without holding up
  the rest of the batch; every tick also requeues rows whose lease expired
- Late outcomes are appended to the run that scheduled them

No retries: an executor failure marks the row failed and is recorded.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from hireflow.actions.dispatcher import ActionDispatcher
from hireflow.actions.queue import DelayedAction, DelayedActionQueue
from hireflow.automation.models import ActionOutcome
from hireflow.core.errors import AutomationNotFoundError
from hireflow.core.types import ActionStatus
from hireflow.store.base import AutomationStore

logger = logging.getLogger(__name__)

POLL_INTERVAL = 30  # seconds between due-action checks
LEASE_TIMEOUT = 600  # seconds a claimed row may stay running


class DelayedActionScheduler:
    """
    Usage:
        scheduler = DelayedActionScheduler(queue, store, dispatcher)
        await scheduler.start()
        ...
        await scheduler.stop()

    tick() can also be driven directly (tests, cron-style runners).
    """

    def __init__(
        self,
        queue: DelayedActionQueue,
        store: AutomationStore,
        dispatcher: ActionDispatcher,
        poll_interval: float = POLL_INTERVAL,
        lease_timeout: float = LEASE_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._queue = queue
        self._store = store
        self._dispatcher = dispatcher
        self._poll_interval = poll_interval
        self._lease_timeout = lease_timeout
        self._clock = clock
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Recover interrupted deliveries and start the polling loop."""
        await self._queue.requeue_stale()
        self._running = True
        self._task = asyncio.create_task(self._loop(), name="delayed-actions")
        logger.info("DelayedActionScheduler started")

    async def stop(self) -> None:
        """Gracefully stop the background loop."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("DelayedActionScheduler stopped")

    # ── Internal loop ─────────────────────────────────────────────────────────

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.tick()
            except Exception as e:
                logger.warning(f"Scheduler tick error (non-fatal): {e}")
            await asyncio.sleep(self._poll_interval)

    async def tick(self, now: float | None = None) -> list[ActionOutcome]:
        """
        Fire every action due at `now`. Returns the outcomes of the ones that
        fired; rows that raised are back in the queue for the next tick.
        """
        t = self._clock() if now is None else now
        await self._queue.requeue_stale(claimed_before=t - self._lease_timeout)
        due = await self._queue.claim_due(now=t)
        outcomes = []
        for item in due:
            try:
                outcomes.append(await self._fire(item))
            except Exception as e:
                logger.warning(f"Delayed action {item.id} could not fire, requeueing: {e}")
                await self._release(item, str(e))
        return outcomes

    async def _release(self, item: DelayedAction, error: str) -> None:
        try:
            await self._queue.release(item.id, error)
        except Exception as e:
            # Left running; the lease timeout requeues it.
            logger.warning(f"Could not requeue delayed action {item.id}: {e}")

    async def _fire(self, item: DelayedAction) -> ActionOutcome:
        action = item.action
        try:
            automation = await self._store.get(item.automation_id)
            inactive_reason = None if automation.is_active else "automation deactivated"
        except AutomationNotFoundError:
            inactive_reason = "automation deleted"

        if inactive_reason:
            logger.info(
                f"Cancelling delayed {action.type.value} ({item.id}): {inactive_reason}"
            )
            await self._queue.mark_cancelled(item.id, inactive_reason)
            outcome = ActionOutcome(
                action_id=action.id,
                action_type=action.type,
                status=ActionStatus.CANCELLED,
                error=inactive_reason,
                delivery_id=item.id,
                at=self._clock(),
            )
            await self._dispatcher.announce(outcome, item.context)
        else:
            logger.info(
                f"Firing delayed {action.type.value} for automation {item.automation_id} "
                f"(attempt {item.attempts})"
            )
            outcome = await self._dispatcher.execute(action, item.context)
            if outcome.status is ActionStatus.EXECUTED:
                await self._queue.mark_done(item.id)
            else:
                await self._queue.mark_failed(item.id, outcome.error or "failed")

        if item.run_id:
            await self._store.append_outcome(item.run_id, outcome)
        return outcome
