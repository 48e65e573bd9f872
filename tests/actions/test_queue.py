"""Tests for hireflow/actions/queue.py"""
from __future__ import annotations

import datetime

import pytest

from hireflow.actions.executor import ActionContext
from hireflow.actions.queue import (
    CANCELLED,
    DONE,
    FAILED,
    PENDING,
    RUNNING,
    DelayedAction,
    DelayedActionQueue,
)
from hireflow.automation.models import Action
from hireflow.core.errors import SchedulingError
from hireflow.core.types import ActionType

NOW = 1_700_000_000.0


@pytest.fixture
def tmp_queue(tmp_path):
    return DelayedActionQueue(db_path=tmp_path / "test_delayed.db")


def delayed(automation_id="auto1", due_in=60.0, **kwargs) -> DelayedAction:
    action = Action(type=ActionType.ADD_TAG, params={"tag": "later"}, delay_minutes=1)
    context = ActionContext(
        automation_id=automation_id,
        automation_name="A",
        trigger_type="application_received",
        payload={"candidate": {"name": "Ana"}},
        run_id="run1",
    )
    return DelayedAction(
        automation_id=automation_id,
        action=action,
        context=context,
        due_at=NOW + due_in,
        run_id="run1",
        **kwargs,
    )


@pytest.mark.asyncio
class TestDelayedActionQueue:
    async def test_enqueue_and_get(self, tmp_queue):
        await tmp_queue.initialize()
        item = await tmp_queue.enqueue(delayed())
        stored = await tmp_queue.get(item.id)
        assert stored is not None
        assert stored.status == PENDING
        assert stored.action.type is ActionType.ADD_TAG
        assert stored.action.params == {"tag": "later"}
        assert stored.context.payload == {"candidate": {"name": "Ana"}}
        assert stored.run_id == "run1"
        await tmp_queue.close()

    async def test_claim_only_due_rows(self, tmp_queue):
        await tmp_queue.initialize()
        soon = await tmp_queue.enqueue(delayed(due_in=60))
        await tmp_queue.enqueue(delayed(due_in=3600))

        assert await tmp_queue.claim_due(now=NOW + 59) == []

        claimed = await tmp_queue.claim_due(now=NOW + 60)
        assert [c.id for c in claimed] == [soon.id]
        assert claimed[0].status == RUNNING
        assert claimed[0].attempts == 1
        await tmp_queue.close()

    async def test_claimed_rows_are_not_claimed_twice(self, tmp_queue):
        await tmp_queue.initialize()
        await tmp_queue.enqueue(delayed(due_in=0))
        assert len(await tmp_queue.claim_due(now=NOW)) == 1
        assert await tmp_queue.claim_due(now=NOW + 10) == []
        await tmp_queue.close()

    async def test_mark_done_and_failed(self, tmp_queue):
        await tmp_queue.initialize()
        a = await tmp_queue.enqueue(delayed())
        b = await tmp_queue.enqueue(delayed())
        await tmp_queue.mark_done(a.id)
        await tmp_queue.mark_failed(b.id, "boom")
        assert (await tmp_queue.get(a.id)).status == DONE
        failed = await tmp_queue.get(b.id)
        assert failed.status == FAILED
        assert failed.last_error == "boom"
        await tmp_queue.close()

    async def test_requeue_stale_recovers_crashed_deliveries(self, tmp_path):
        path = tmp_path / "crash.db"
        first = DelayedActionQueue(path)
        await first.initialize()
        item = await first.enqueue(delayed(due_in=0))
        await first.claim_due(now=NOW)
        await first.close()  # "crash" before mark_done

        second = DelayedActionQueue(path)
        await second.initialize()
        assert await second.requeue_stale() == 1
        [again] = await second.claim_due(now=NOW)
        assert again.id == item.id
        assert again.attempts == 2
        await second.close()

    async def test_cancel_for_automation_only_touches_pending(self, tmp_queue):
        await tmp_queue.initialize()
        pending = await tmp_queue.enqueue(delayed("auto1", due_in=3600))
        running = await tmp_queue.enqueue(delayed("auto1", due_in=0))
        other = await tmp_queue.enqueue(delayed("auto2", due_in=3600))
        await tmp_queue.claim_due(now=NOW)

        assert await tmp_queue.cancel_for_automation("auto1") == 1
        assert (await tmp_queue.get(pending.id)).status == CANCELLED
        assert (await tmp_queue.get(running.id)).status == RUNNING
        assert (await tmp_queue.get(other.id)).status == PENDING
        await tmp_queue.close()

    async def test_list_filters(self, tmp_queue):
        await tmp_queue.initialize()
        await tmp_queue.enqueue(delayed("auto1"))
        await tmp_queue.enqueue(delayed("auto2"))
        assert len(await tmp_queue.list()) == 2
        assert len(await tmp_queue.list(automation_id="auto1")) == 1
        assert await tmp_queue.list(status=DONE) == []
        await tmp_queue.close()

    async def test_in_memory_queue(self):
        queue = DelayedActionQueue(":memory:")
        await queue.initialize()
        await queue.enqueue(delayed(due_in=0))
        assert len(await queue.claim_due(now=NOW)) == 1
        await queue.close()

    async def test_get_missing_returns_none(self, tmp_queue):
        await tmp_queue.initialize()
        assert await tmp_queue.get("nope") is None
        await tmp_queue.close()

    async def test_release_returns_row_to_pending(self, tmp_queue):
        await tmp_queue.initialize()
        item = await tmp_queue.enqueue(delayed(due_in=0))
        await tmp_queue.claim_due(now=NOW)

        await tmp_queue.release(item.id, "store unavailable")

        released = await tmp_queue.get(item.id)
        assert released.status == PENDING
        assert released.last_error == "store unavailable"
        [again] = await tmp_queue.claim_due(now=NOW)
        assert again.attempts == 2
        await tmp_queue.close()

    async def test_requeue_stale_with_cutoff_only_touches_old_claims(self, tmp_queue):
        await tmp_queue.initialize()
        old = await tmp_queue.enqueue(delayed(due_in=0))
        await tmp_queue.claim_due(now=NOW)
        fresh = await tmp_queue.enqueue(delayed(due_in=0))
        await tmp_queue.claim_due(now=NOW + 500)

        assert await tmp_queue.requeue_stale(claimed_before=NOW + 100) == 1
        assert (await tmp_queue.get(old.id)).status == PENDING
        assert (await tmp_queue.get(fresh.id)).status == RUNNING
        await tmp_queue.close()

    async def test_unserialisable_action_raises_scheduling_error(self, tmp_queue):
        await tmp_queue.initialize()
        item = delayed()
        item.action.params["when"] = datetime.date(2026, 1, 1)

        with pytest.raises(SchedulingError):
            await tmp_queue.enqueue(item)
        assert await tmp_queue.list() == []
        await tmp_queue.close()
