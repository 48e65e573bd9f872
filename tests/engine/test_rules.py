"""Tests for the rule engine."""

import asyncio

import pytest

from hireflow.actions.dispatcher import ActionDispatcher
from hireflow.core.events import Event, EventType
from hireflow.core.types import (
    ActionStatus,
    EvaluationStatus,
    RunStatus,
    SkipReason,
    TriggerType,
)
from hireflow.engine.rules import RuleEngine, TriggerEvent, check

SCREENING = {
    "name": "Tech screening",
    "trigger": {"type": "application_received", "params": {}},
    "conditions": [
        {"field": "job.department", "operator": "equals", "value": "Tech"},
        {"field": "candidate.skills", "operator": "contains", "value": "Python", "logic": "AND"},
    ],
    "actions": [
        {"type": "send_test", "params": {"test_type": "python"}},
        {"type": "move_stage", "params": {"stage_name": "Teste Tecnico"}},
    ],
}

APPLICATION = {
    "job": {"department": "Tech"},
    "candidate": {"skills": ["Python", "Django"]},
}


@pytest.fixture
def dispatcher(registry, bus, clock):
    return ActionDispatcher(registry, bus=bus, clock=clock)


@pytest.fixture
def engine(store, dispatcher, bus, clock):
    return RuleEngine(store, dispatcher, bus=bus, clock=clock)


@pytest.mark.asyncio
async def test_end_to_end_screening(engine, store, executor, make_automation, clock):
    automation = await store.create(make_automation(**SCREENING))

    results = await engine.process_event(
        TriggerEvent(TriggerType.APPLICATION_RECEIVED, APPLICATION)
    )

    assert len(results) == 1
    result = results[0]
    assert result.status is EvaluationStatus.DISPATCHED
    assert all(c.passed for c in result.conditions)
    assert [o.status for o in result.outcomes] == [ActionStatus.EXECUTED] * 2
    assert executor.action_types == ["send_test", "move_stage"]

    params, context = executor.calls[0]
    assert params.test_type == "python"
    assert params.duration_hours == 48
    assert context.automation_id == automation.id
    assert context.payload == APPLICATION

    stored = await store.get(automation.id)
    assert stored.run_count == 1
    assert stored.last_run_at == clock.now


@pytest.mark.asyncio
async def test_run_is_recorded(engine, store, make_automation):
    automation = await store.create(make_automation(**SCREENING))
    [result] = await engine.process_event(
        TriggerEvent(TriggerType.APPLICATION_RECEIVED, APPLICATION)
    )

    runs = await store.list_runs(automation.id)
    assert len(runs) == 1
    assert runs[0].id == result.run.id
    assert runs[0].status is RunStatus.SUCCESS
    assert runs[0].context == APPLICATION
    assert len(runs[0].outcomes) == 2


@pytest.mark.asyncio
async def test_non_matching_trigger_type_is_skipped(engine, store, executor, make_automation):
    automation = await store.create(make_automation(**SCREENING))

    result = await engine.evaluate(
        automation, TriggerEvent(TriggerType.STATUS_CHANGED, APPLICATION)
    )

    assert result.status is EvaluationStatus.SKIPPED
    assert result.skip_reason is SkipReason.TRIGGER_TYPE
    assert executor.calls == []
    assert (await store.get(automation.id)).run_count == 0


@pytest.mark.asyncio
async def test_process_event_ignores_other_trigger_types(engine, store, make_automation):
    await store.create(make_automation(**SCREENING))
    results = await engine.process_event(
        TriggerEvent(TriggerType.STATUS_CHANGED, APPLICATION)
    )
    assert results == []


@pytest.mark.asyncio
async def test_failed_conditions_skip_with_trace(engine, store, executor, make_automation):
    automation = await store.create(make_automation(**SCREENING))
    payload = {"job": {"department": "Sales"}, "candidate": {"skills": ["Python"]}}

    [result] = await engine.process_event(
        TriggerEvent(TriggerType.APPLICATION_RECEIVED, payload)
    )

    assert result.skip_reason is SkipReason.CONDITIONS
    assert [c.passed for c in result.conditions] == [False, True]
    assert executor.calls == []
    assert (await store.get(automation.id)).run_count == 0
    assert await store.list_runs(automation.id) == []


@pytest.mark.asyncio
async def test_trigger_params_gate(engine, store, executor, make_automation):
    await store.create(
        make_automation(trigger={"type": "days_without_movement", "params": {"days": 7}})
    )

    [idle] = await engine.process_event(
        TriggerEvent(TriggerType.DAYS_WITHOUT_MOVEMENT, {"days_since_last_movement": 3})
    )
    assert idle.skip_reason is SkipReason.TRIGGER_PARAMS

    [stale] = await engine.process_event(
        TriggerEvent(TriggerType.DAYS_WITHOUT_MOVEMENT, {"days_since_last_movement": 7})
    )
    assert stale.dispatched


@pytest.mark.asyncio
async def test_inactive_automation_is_skipped(engine, make_automation):
    automation = make_automation(is_active=False)
    result = await engine.evaluate(
        automation, TriggerEvent(TriggerType.APPLICATION_RECEIVED, {})
    )
    assert result.skip_reason is SkipReason.INACTIVE


@pytest.mark.asyncio
async def test_partial_action_failure_is_isolated(
    store, bus, clock, make_automation, make_registry
):
    registry, _ = make_registry("send_email")
    engine = RuleEngine(store, ActionDispatcher(registry, bus=bus, clock=clock), bus=bus)

    automation = await store.create(
        make_automation(
            actions=[
                {"type": "add_tag", "params": {"tag": "a"}},
                {"type": "send_email", "params": {"template": "t", "subject": "s"}},
                {"type": "add_note", "params": {"note": "n"}},
            ]
        )
    )
    [result] = await engine.process_event(TriggerEvent(TriggerType.APPLICATION_RECEIVED, {}))

    assert [o.status for o in result.outcomes] == [
        ActionStatus.EXECUTED,
        ActionStatus.FAILED,
        ActionStatus.EXECUTED,
    ]
    assert "provider down" in result.outcomes[1].error
    assert result.run.status is RunStatus.FAILED
    # The rule still matched and ran.
    assert (await store.get(automation.id)).run_count == 1


@pytest.mark.asyncio
async def test_one_broken_automation_does_not_stop_others(
    engine, store, make_automation, monkeypatch
):
    good = await store.create(make_automation(name="good"))
    bad = await store.create(make_automation(name="bad"))

    original = store.record_run

    async def record_run(automation_id, at):
        if automation_id == bad.id:
            raise RuntimeError("disk full")
        return await original(automation_id, at)

    monkeypatch.setattr(store, "record_run", record_run)

    results = await engine.process_event(TriggerEvent(TriggerType.APPLICATION_RECEIVED, {}))
    by_id = {r.automation_id: r for r in results}

    assert by_id[good.id].status is EvaluationStatus.DISPATCHED
    assert by_id[bad.id].status is EvaluationStatus.ERROR
    assert "disk full" in by_id[bad.id].error


@pytest.mark.asyncio
async def test_concurrent_events_count_every_run(engine, store, make_automation):
    automation = await store.create(make_automation())
    event = TriggerEvent(TriggerType.APPLICATION_RECEIVED, {})

    await asyncio.gather(*(engine.process_event(event) for _ in range(20)))

    assert (await store.get(automation.id)).run_count == 20


@pytest.mark.asyncio
async def test_emits_matched_and_skipped(engine, store, bus, make_automation):
    seen = []

    async def handler(event: Event):
        seen.append(event.type)

    bus.on("automation:*", handler)
    await store.create(make_automation(**SCREENING))

    await engine.process_event(TriggerEvent(TriggerType.APPLICATION_RECEIVED, APPLICATION))
    await engine.process_event(TriggerEvent(TriggerType.APPLICATION_RECEIVED, {}))

    assert seen == [EventType.AUTOMATION_MATCHED, EventType.AUTOMATION_SKIPPED]


def test_check_has_no_side_effects(make_automation):
    automation = make_automation(**SCREENING)
    reason, conditions = check(
        automation, TriggerEvent(TriggerType.APPLICATION_RECEIVED, APPLICATION)
    )
    assert reason is None
    assert conditions.passed is True
    assert automation.run_count == 0


def test_trigger_event_from_dict():
    event = TriggerEvent.from_dict(
        {"trigger_type": "interview_scheduled", "payload": {"a": 1}, "source": "ats"}
    )
    assert event.trigger_type is TriggerType.INTERVIEW_SCHEDULED
    assert event.payload == {"a": 1}
    assert event.source == "ats"
