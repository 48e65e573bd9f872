"""Tests for the action dispatcher."""

import datetime

import pytest
import pytest_asyncio

from hireflow.actions.dispatcher import ActionDispatcher
from hireflow.actions.executor import ActionContext, ExecutorRegistry
from hireflow.actions.queue import DelayedActionQueue
from hireflow.automation.models import Action
from hireflow.core.errors import SchedulingError
from hireflow.core.events import Event
from hireflow.core.types import ActionStatus, ActionType


def ctx():
    return ActionContext(
        automation_id="auto1",
        automation_name="Screening",
        trigger_type="application_received",
        payload={"job": {"department": "Tech"}},
        run_id="run1",
    )


def tag(name="t", delay=0):
    return Action(type=ActionType.ADD_TAG, params={"tag": name}, delay_minutes=delay)


@pytest_asyncio.fixture
async def queue():
    queue = DelayedActionQueue(":memory:")
    await queue.initialize()
    yield queue
    await queue.close()


@pytest.mark.asyncio
async def test_immediate_actions_run_in_order(registry, executor, clock):
    dispatcher = ActionDispatcher(registry, clock=clock)
    actions = [
        tag("first"),
        Action(type=ActionType.ADD_NOTE, params={"note": "second"}),
        Action(type=ActionType.MOVE_STAGE, params={"stage_name": "third"}),
    ]

    outcomes = await dispatcher.dispatch(actions, ctx())

    assert executor.action_types == ["add_tag", "add_note", "move_stage"]
    assert [o.status for o in outcomes] == [ActionStatus.EXECUTED] * 3
    assert [o.action_id for o in outcomes] == [a.id for a in actions]
    assert outcomes[0].result["action_id"] == actions[0].id
    assert outcomes[0].at == clock.now


@pytest.mark.asyncio
async def test_executor_receives_typed_params_and_context(registry, executor):
    dispatcher = ActionDispatcher(registry)
    action = Action(
        type=ActionType.SCHEDULE_INTERVIEW,
        params={"type": "video", "duration_minutes": 45},
    )

    await dispatcher.dispatch([action], ctx())

    params, context = executor.calls[0]
    assert params.interview_type == "video"
    assert params.duration_minutes == 45
    assert context.action_id == action.id
    assert context.action_type == "schedule_interview"
    assert context.delivery_id is None


@pytest.mark.asyncio
async def test_failure_does_not_stop_siblings(make_registry):
    registry, executor = make_registry("add_note")
    dispatcher = ActionDispatcher(registry)
    actions = [tag(), Action(type=ActionType.ADD_NOTE, params={"note": "x"}), tag()]

    outcomes = await dispatcher.dispatch(actions, ctx())

    assert [o.status for o in outcomes] == [
        ActionStatus.EXECUTED,
        ActionStatus.FAILED,
        ActionStatus.EXECUTED,
    ]
    assert outcomes[1].error == "ExecutorError: provider down"
    assert len(executor.calls) == 3


@pytest.mark.asyncio
async def test_missing_executor_is_a_failure():
    dispatcher = ActionDispatcher(ExecutorRegistry())
    [outcome] = await dispatcher.dispatch([tag()], ctx())
    assert outcome.status is ActionStatus.FAILED
    assert "No executor registered" in outcome.error


@pytest.mark.asyncio
async def test_delayed_action_is_enqueued_not_executed(registry, executor, queue, clock):
    dispatcher = ActionDispatcher(registry, queue=queue, clock=clock)

    [outcome] = await dispatcher.dispatch([tag(delay=60)], ctx())

    assert outcome.status is ActionStatus.SCHEDULED
    assert outcome.result == {"due_at": clock.now + 3600}
    assert executor.calls == []

    [item] = await queue.list()
    assert item.id == outcome.delivery_id
    assert item.due_at == clock.now + 3600
    assert item.run_id == "run1"
    assert item.context.delivery_id == item.id
    assert item.context.action_type == "add_tag"


@pytest.mark.asyncio
async def test_no_queue_means_scheduling_failed(registry, executor):
    dispatcher = ActionDispatcher(registry)
    [outcome] = await dispatcher.dispatch([tag(delay=5)], ctx())
    assert outcome.status is ActionStatus.SCHEDULING_FAILED
    assert executor.calls == []


@pytest.mark.asyncio
async def test_queue_error_means_scheduling_failed(registry, queue, monkeypatch):
    async def broken(item):
        raise SchedulingError("disk full", action_type="add_tag")

    monkeypatch.setattr(queue, "enqueue", broken)
    dispatcher = ActionDispatcher(registry, queue=queue)

    outcomes = await dispatcher.dispatch([tag(delay=5), tag()], ctx())

    assert [o.status for o in outcomes] == [
        ActionStatus.SCHEDULING_FAILED,
        ActionStatus.EXECUTED,
    ]
    assert outcomes[0].error == "disk full"


@pytest.mark.asyncio
async def test_outcomes_are_announced(make_registry, bus):
    registry, _ = make_registry("add_note")
    seen = []

    async def handler(event: Event):
        seen.append((event.type, event.data["automation_id"], event.data["status"]))

    bus.on("action:*", handler)
    dispatcher = ActionDispatcher(registry, bus=bus)
    await dispatcher.dispatch(
        [tag(), Action(type=ActionType.ADD_NOTE, params={"note": "x"}), tag(delay=1)], ctx()
    )

    assert seen == [
        ("action:executed", "auto1", "executed"),
        ("action:failed", "auto1", "failed"),
        ("action:scheduling_failed", "auto1", "scheduling_failed"),
    ]


@pytest.mark.asyncio
async def test_unserialisable_delayed_action_does_not_block_siblings(
    registry, executor, queue
):
    dispatcher = ActionDispatcher(registry, queue=queue)
    broken = Action(
        type=ActionType.ADD_NOTE,
        params={"note": "n", "when": datetime.date(2026, 1, 1)},
        delay_minutes=5,
    )

    outcomes = await dispatcher.dispatch([broken, tag("after")], ctx())

    assert [o.status for o in outcomes] == [
        ActionStatus.SCHEDULING_FAILED,
        ActionStatus.EXECUTED,
    ]
    assert "not serialisable" in outcomes[0].error
    assert executor.action_types == ["add_tag"]
    assert await queue.list() == []
