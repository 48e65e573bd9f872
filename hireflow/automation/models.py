"""
Automation data model.

An Automation is a named rule: one trigger, an ordered list of conditions
(order drives left-to-right evaluation) and an ordered list of actions
(order drives execution). Everything serialises to plain dicts so the
SQLite store can keep definitions as JSON.

from_dict() trusts its input: it is used on data that already passed
hireflow.automation.validation or came back from the store. Raw operator
input must go through validate_automation() instead.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from hireflow.automation.params import Params, parse_action_params, parse_trigger_params
from hireflow.core.types import (
    ActionStatus,
    ActionType,
    ConditionLogic,
    ConditionOperator,
    RunStatus,
    TriggerType,
)


def new_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class TriggerConfig:
    """The event-type/parameter gate of an automation."""

    type: TriggerType
    params: dict[str, Any] = field(default_factory=dict)

    def typed_params(self) -> Params:
        return parse_trigger_params(self.type, self.params)

    def to_dict(self) -> dict:
        return {"type": self.type.value, "params": dict(self.params)}

    @classmethod
    def from_dict(cls, d: dict) -> TriggerConfig:
        return cls(type=TriggerType(d["type"]), params=dict(d.get("params") or {}))


@dataclass
class Condition:
    """A single comparison against the event payload."""

    field: str
    operator: ConditionOperator
    value: Any
    logic: ConditionLogic | None = None  # None only on the first condition
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "field": self.field,
            "operator": self.operator.value,
            "value": self.value,
        }
        if self.logic is not None:
            d["logic"] = self.logic.value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> Condition:
        logic = d.get("logic")
        return cls(
            id=d.get("id") or new_id(),
            field=d["field"],
            operator=ConditionOperator(d["operator"]),
            value=d.get("value"),
            logic=ConditionLogic(logic) if logic else None,
        )


@dataclass
class Action:
    """A side-effecting step, owned by exactly one automation."""

    type: ActionType
    params: dict[str, Any] = field(default_factory=dict)
    delay_minutes: int = 0
    id: str = field(default_factory=new_id)

    @property
    def is_delayed(self) -> bool:
        return self.delay_minutes > 0

    def typed_params(self) -> Params:
        return parse_action_params(self.type, self.params)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "params": dict(self.params),
            "delay_minutes": self.delay_minutes,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Action:
        return cls(
            id=d.get("id") or new_id(),
            type=ActionType(d["type"]),
            params=dict(d.get("params") or {}),
            delay_minutes=int(d.get("delay_minutes") or 0),
        )


@dataclass
class Automation:
    """A persisted WHEN/IF/THEN rule."""

    name: str
    trigger: TriggerConfig
    description: str = ""
    conditions: list[Condition] = field(default_factory=list)
    actions: list[Action] = field(default_factory=list)
    is_active: bool = True

    id: str = field(default_factory=new_id)
    run_count: int = 0
    last_run_at: float | None = None
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def definition(self) -> dict:
        """The operator-editable part: what validate_automation() accepts."""
        return {
            "name": self.name,
            "description": self.description,
            "trigger": self.trigger.to_dict(),
            "conditions": [c.to_dict() for c in self.conditions],
            "actions": [a.to_dict() for a in self.actions],
            "is_active": self.is_active,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            **self.definition(),
            "run_count": self.run_count,
            "last_run_at": self.last_run_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Automation:
        now = time.time()
        return cls(
            id=d.get("id") or new_id(),
            name=d["name"],
            description=d.get("description") or "",
            trigger=TriggerConfig.from_dict(d["trigger"]),
            conditions=[Condition.from_dict(c) for c in d.get("conditions") or []],
            actions=[Action.from_dict(a) for a in d.get("actions") or []],
            is_active=bool(d.get("is_active", True)),
            run_count=int(d.get("run_count") or 0),
            last_run_at=d.get("last_run_at"),
            created_at=d.get("created_at") or now,
            updated_at=d.get("updated_at") or now,
        )


# ━━━ Run log ━━━


@dataclass
class ActionOutcome:
    """What happened to one action, keyed by automation + action + time."""

    action_id: str
    action_type: ActionType
    status: ActionStatus
    result: Any = None
    error: str | None = None
    delivery_id: str | None = None
    at: float = field(default_factory=time.time)

    @property
    def ok(self) -> bool:
        return self.status in (
            ActionStatus.EXECUTED,
            ActionStatus.SCHEDULED,
            ActionStatus.CANCELLED,
        )

    def to_dict(self) -> dict:
        return {
            "action_id": self.action_id,
            "action_type": self.action_type.value,
            "status": self.status.value,
            "result": self.result,
            "error": self.error,
            "delivery_id": self.delivery_id,
            "at": self.at,
        }

    @classmethod
    def from_dict(cls, d: dict) -> ActionOutcome:
        return cls(
            action_id=d["action_id"],
            action_type=ActionType(d["action_type"]),
            status=ActionStatus(d["status"]),
            result=d.get("result"),
            error=d.get("error"),
            delivery_id=d.get("delivery_id"),
            at=d["at"],
        )


@dataclass
class AutomationRun:
    """One successful match-and-dispatch of an automation."""

    automation_id: str
    trigger_type: TriggerType
    context: dict[str, Any] = field(default_factory=dict)
    outcomes: list[ActionOutcome] = field(default_factory=list)
    duration_ms: int = 0
    id: str = field(default_factory=new_id)
    executed_at: float = field(default_factory=time.time)

    @property
    def status(self) -> RunStatus:
        if all(o.ok for o in self.outcomes):
            return RunStatus.SUCCESS
        return RunStatus.FAILED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "automation_id": self.automation_id,
            "trigger_type": self.trigger_type.value,
            "context": self.context,
            "status": self.status.value,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "duration_ms": self.duration_ms,
            "executed_at": self.executed_at,
        }

    @classmethod
    def from_dict(cls, d: dict) -> AutomationRun:
        return cls(
            id=d["id"],
            automation_id=d["automation_id"],
            trigger_type=TriggerType(d["trigger_type"]),
            context=d.get("context") or {},
            outcomes=[ActionOutcome.from_dict(o) for o in d.get("outcomes") or []],
            duration_ms=int(d.get("duration_ms") or 0),
            executed_at=d["executed_at"],
        )
