"""
Typed parameter records for triggers and actions.

Each trigger/action type owns one pydantic model. Definitions store params
as plain dicts (they serialise to JSON untouched); validation parses them
through these models so executors receive typed objects and never do
stringly-typed lookups.

Unknown keys are kept (extra="allow") so operator-supplied extras survive
a round trip through the store.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from hireflow.core.types import ActionType, TriggerType


class Params(BaseModel):
    """Base for every params record."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


# ━━━ Trigger params ━━━


class NoTriggerParams(Params):
    """Triggers that fire on the event alone."""


class StatusChangedParams(Params):
    new_status: str | None = None  # None = any status change


class DaysWithoutMovementParams(Params):
    days: int = Field(ge=1)


class MatchScoreThresholdParams(Params):
    min_score: int = Field(ge=0, le=100)


TRIGGER_PARAMS: dict[TriggerType, type[Params]] = {
    TriggerType.APPLICATION_RECEIVED: NoTriggerParams,
    TriggerType.STATUS_CHANGED: StatusChangedParams,
    TriggerType.INTERVIEW_SCHEDULED: NoTriggerParams,
    TriggerType.DAYS_WITHOUT_MOVEMENT: DaysWithoutMovementParams,
    TriggerType.MATCH_SCORE_THRESHOLD: MatchScoreThresholdParams,
}


# ━━━ Action params ━━━


class SendEmailParams(Params):
    template: str = Field(min_length=1)
    subject: str = Field(min_length=1)


class SendWhatsAppParams(Params):
    template: str = Field(min_length=1)


class MoveStageParams(Params):
    stage_name: str = Field(min_length=1)


class AddTagParams(Params):
    tag: str = Field(min_length=1)


class AddNoteParams(Params):
    note: str = Field(min_length=1)


class NotifyManagerParams(Params):
    message: str = Field(min_length=1)
    channel: Literal["email", "slack", "system"] = "email"


class SendTestParams(Params):
    test_type: str = Field(min_length=1)
    duration_hours: int = Field(default=48, ge=1)


class ScheduleInterviewParams(Params):
    interview_type: Literal["phone", "video", "onsite"] = Field(alias="type")
    duration_minutes: int = Field(default=30, ge=5)


ACTION_PARAMS: dict[ActionType, type[Params]] = {
    ActionType.SEND_EMAIL: SendEmailParams,
    ActionType.SEND_WHATSAPP: SendWhatsAppParams,
    ActionType.MOVE_STAGE: MoveStageParams,
    ActionType.ADD_TAG: AddTagParams,
    ActionType.ADD_NOTE: AddNoteParams,
    ActionType.NOTIFY_MANAGER: NotifyManagerParams,
    ActionType.SEND_TEST: SendTestParams,
    ActionType.SCHEDULE_INTERVIEW: ScheduleInterviewParams,
}


def parse_trigger_params(trigger_type: TriggerType, params: dict) -> Params:
    """Parse trigger params. Raises pydantic.ValidationError on bad input."""
    return TRIGGER_PARAMS[trigger_type].model_validate(params)


def parse_action_params(action_type: ActionType, params: dict) -> Params:
    """Parse action params. Raises pydantic.ValidationError on bad input."""
    return ACTION_PARAMS[action_type].model_validate(params)
