"""Tests for the dry-run tester."""

from hireflow.engine.tester import DryRunTester

AUTOMATION = {
    "trigger": {"type": "match_score_threshold", "params": {"min_score": 80}},
    "conditions": [
        {"field": "job.department", "operator": "equals", "value": "Tech"},
        {"field": "candidate.years_experience", "operator": "greater_than", "value": 3, "logic": "AND"},
    ],
    "actions": [
        {"type": "add_tag", "params": {"tag": "priority"}},
        {"type": "send_whatsapp", "params": {"template": "invite"}, "delay_minutes": 30},
    ],
}


def test_passing_sample(make_automation, tech_payload):
    trace = DryRunTester().test(make_automation(**AUTOMATION), tech_payload)

    assert trace.all_conditions_passed is True
    assert [c.passed for c in trace.conditions_evaluation] == [True, True]
    assert [a.would_execute for a in trace.actions_preview] == [True, True]
    assert trace.actions_preview[1].delay_minutes == 30
    assert trace.trigger_compatible is True
    assert trace.trigger_description == "match score >= 80"


def test_failing_sample_previews_nothing(make_automation):
    trace = DryRunTester().test(make_automation(**AUTOMATION), {"job": {"department": "Sales"}})

    assert trace.all_conditions_passed is False
    assert [a.would_execute for a in trace.actions_preview] == [False, False]
    # The sample carries no score, so compatibility is unknown.
    assert trace.trigger_compatible is None


def test_trigger_incompatibility_is_informational(make_automation, tech_payload):
    payload = {**tech_payload, "match_score": 10}
    trace = DryRunTester().test(make_automation(**AUTOMATION), payload)

    assert trace.trigger_compatible is False
    assert trace.all_conditions_passed is True


def test_is_idempotent_and_side_effect_free(make_automation, tech_payload):
    automation = make_automation(**AUTOMATION)
    tester = DryRunTester()

    first = tester.test(automation, tech_payload)
    second = tester.test(automation, tech_payload)

    assert first.to_dict() == second.to_dict()
    assert automation.run_count == 0
    assert automation.last_run_at is None


def test_to_dict_shape(make_automation):
    trace = DryRunTester().test(make_automation(**AUTOMATION), {})
    data = trace.to_dict()

    assert set(data) == {
        "all_conditions_passed",
        "trigger_compatible",
        "trigger_description",
        "conditions_evaluation",
        "actions_preview",
    }
    assert data["conditions_evaluation"][0] == {
        "field": "job.department",
        "operator": "equals",
        "expected_value": "Tech",
        "actual_value": None,
        "passed": False,
    }
    assert data["actions_preview"][0] == {
        "type": "add_tag",
        "params": {"tag": "priority"},
        "delay_minutes": 0,
        "would_execute": False,
    }


def test_trigger_descriptions(make_automation):
    tester = DryRunTester()
    cases = {
        "application received": {"type": "application_received", "params": {}},
        "status changed": {"type": "status_changed", "params": {}},
        "status changed to 'hired'": {"type": "status_changed", "params": {"new_status": "hired"}},
        "days without movement >= 7": {"type": "days_without_movement", "params": {"days": 7}},
    }
    for description, trigger in cases.items():
        trace = tester.test(make_automation(trigger=trigger), {})
        assert trace.trigger_description == description
