"""
Automation validation — the only gate between operator input and the store.

validate_automation() checks a raw definition dict, collects every problem
it finds, and either returns a fully-typed Automation or raises
AutomationValidationError listing them all. The engine relies on this:
nothing malformed is ever evaluated.

Rules:
    - name is required, trigger is required, at least one action
    - trigger/action types must be known and their params must parse
    - conditions need field + known operator + non-empty value
    - every condition after the first needs logic AND/OR
    - in/not_in take a list; numeric operators take a number
    - delay_minutes is a non-negative integer
    - params and condition values must be plain JSON (they are persisted)
    - is_active, when given, is a real boolean
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from hireflow.automation.models import Action, Automation, Condition, TriggerConfig
from hireflow.automation.params import parse_action_params, parse_trigger_params
from hireflow.core.errors import AutomationValidationError
from hireflow.core.types import ActionType, ConditionLogic, ConditionOperator, TriggerType
from hireflow.engine.operators import to_number


def validate_automation(data: dict[str, Any], base: Automation | None = None) -> Automation:
    """
    Validate a raw definition and build an Automation from it.

    Args:
        data: Definition dict (name, description, trigger, conditions, actions,
              is_active). When base is given, missing keys fall back to it.
        base: Existing automation being updated; its identity and run
              statistics are carried over.

    Raises:
        AutomationValidationError: with every problem found.
    """
    if base is not None:
        data = {**base.definition(), **data}

    errors: list[str] = []

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("name is required")

    trigger = _check_trigger(data.get("trigger"), errors)

    conditions = data.get("conditions") or []
    if not isinstance(conditions, list):
        errors.append("conditions must be a list")
        conditions = []
    checked_conditions = [
        _check_condition(i, c, errors) for i, c in enumerate(conditions)
    ]

    actions = data.get("actions") or []
    if not isinstance(actions, list):
        errors.append("actions must be a list")
        actions = []
    if not actions:
        errors.append("at least one action is required")
    checked_actions = [_check_action(i, a, errors) for i, a in enumerate(actions)]

    is_active = data.get("is_active", True)
    if not isinstance(is_active, bool):
        errors.append(f"is_active must be true or false, got {is_active!r}")

    if errors:
        raise AutomationValidationError(errors)

    automation = Automation(
        name=name.strip(),
        description=data.get("description") or "",
        trigger=trigger,
        conditions=checked_conditions,
        actions=checked_actions,
        is_active=is_active,
    )
    if base is not None:
        automation.id = base.id
        automation.run_count = base.run_count
        automation.last_run_at = base.last_run_at
        automation.created_at = base.created_at
    return automation


def _check_trigger(raw: Any, errors: list[str]) -> TriggerConfig | None:
    if not isinstance(raw, dict):
        errors.append("trigger is required")
        return None
    try:
        trigger_type = TriggerType(raw.get("type"))
    except ValueError:
        errors.append(f"trigger: unknown type {raw.get('type')!r}")
        return None
    params = raw.get("params") or {}
    if not isinstance(params, dict):
        errors.append("trigger: params must be a mapping")
        return None
    try:
        parse_trigger_params(trigger_type, params)
    except PydanticValidationError as e:
        errors.extend(f"trigger: {msg}" for msg in _pydantic_messages(e))
        return None
    if not _is_json(params):
        errors.append("trigger: params must be plain JSON values")
        return None
    return TriggerConfig(type=trigger_type, params=dict(params))


def _check_condition(index: int, raw: Any, errors: list[str]) -> Condition | None:
    label = f"condition {index + 1}"
    if not isinstance(raw, dict):
        errors.append(f"{label}: must be a mapping")
        return None

    ok = True
    field_path = raw.get("field")
    if not isinstance(field_path, str) or not field_path.strip():
        errors.append(f"{label}: field is required")
        ok = False
    elif any(not part for part in field_path.split(".")):
        errors.append(f"{label}: field {field_path!r} is not a valid dot path")
        ok = False

    operator = None
    if not raw.get("operator"):
        errors.append(f"{label}: operator is required")
        ok = False
    else:
        try:
            operator = ConditionOperator(raw["operator"])
        except ValueError:
            errors.append(f"{label}: unknown operator {raw['operator']!r}")
            ok = False

    value = raw.get("value")
    if value is None or value == "":
        errors.append(f"{label}: value is required")
        ok = False
    elif not _is_json(value):
        errors.append(f"{label}: value must be a plain JSON value")
        ok = False
    elif operator is not None:
        if operator.needs_list and not isinstance(value, list):
            errors.append(f"{label}: operator {operator.value!r} needs a list value")
            ok = False
        elif operator.is_numeric and to_number(value) is None:
            errors.append(f"{label}: operator {operator.value!r} needs a numeric value")
            ok = False

    logic = None
    raw_logic = raw.get("logic")
    if raw_logic:
        try:
            logic = ConditionLogic(str(raw_logic).upper())
        except ValueError:
            errors.append(f"{label}: logic must be AND or OR, got {raw_logic!r}")
            ok = False
    elif index > 0:
        errors.append(f"{label}: logic (AND/OR) is required after the first condition")
        ok = False

    if not ok:
        return None
    condition = Condition(field=field_path.strip(), operator=operator, value=value, logic=logic)
    if raw.get("id"):
        condition.id = raw["id"]
    return condition


def _check_action(index: int, raw: Any, errors: list[str]) -> Action | None:
    label = f"action {index + 1}"
    if not isinstance(raw, dict):
        errors.append(f"{label}: must be a mapping")
        return None
    try:
        action_type = ActionType(raw.get("type"))
    except ValueError:
        errors.append(f"{label}: unknown type {raw.get('type')!r}")
        return None

    ok = True
    params = raw.get("params") or {}
    if not isinstance(params, dict):
        errors.append(f"{label}: params must be a mapping")
        ok = False
    else:
        try:
            parse_action_params(action_type, params)
        except PydanticValidationError as e:
            errors.extend(f"{label}: {msg}" for msg in _pydantic_messages(e))
            ok = False
        if ok and not _is_json(params):
            errors.append(f"{label}: params must be plain JSON values")
            ok = False

    delay = raw.get("delay_minutes")
    if delay is None:
        delay = 0
    if isinstance(delay, bool) or not isinstance(delay, int) or delay < 0:
        errors.append(f"{label}: delay_minutes must be a non-negative integer")
        ok = False

    if not ok:
        return None
    action = Action(type=action_type, params=dict(params), delay_minutes=delay)
    if raw.get("id"):
        action.id = raw["id"]
    return action


def _pydantic_messages(error: PydanticValidationError) -> list[str]:
    messages = []
    for item in error.errors():
        where = ".".join(str(part) for part in item.get("loc", ())) or "params"
        messages.append(f"{where}: {item.get('msg', 'invalid')}")
    return messages


def _is_json(value: Any) -> bool:
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError):
        return False
    return True
