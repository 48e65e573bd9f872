"""
Trigger matchers — decide whether an event's parameters satisfy a trigger.

The trigger *type* is compared by the rule engine; a matcher only looks at
the type-specific parameters.

Usage:
    matcher = make_matcher(TriggerConfig(TriggerType.DAYS_WITHOUT_MOVEMENT, {"days": 7}))
    matcher.check(payload)   # True / False / None (payload lacks the value)

Event values are read from the payload top level first, then from the
application section:
    days_since_last_movement | application.days_since_last_movement
    match_score              | application.match_score
    new_status               | application.status
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from hireflow.automation.models import TriggerConfig
from hireflow.automation.params import (
    DaysWithoutMovementParams,
    MatchScoreThresholdParams,
    StatusChangedParams,
)
from hireflow.core.types import TriggerType
from hireflow.engine.operators import to_number
from hireflow.engine.resolver import MISSING, resolve_first

DAYS_PATHS = ["days_since_last_movement", "application.days_since_last_movement"]
SCORE_PATHS = ["match_score", "application.match_score"]
STATUS_PATHS = ["new_status", "application.status"]


class TriggerMatcher(ABC):
    """Checks trigger parameters against an event payload."""

    @abstractmethod
    def check(self, payload: Any) -> bool | None:
        """
        Return True/False, or None when the payload does not carry the value
        this trigger needs.
        """
        ...

    def matches(self, payload: Any) -> bool:
        """Strict form used by the engine: an undecidable check is a miss."""
        return self.check(payload) is True

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description, e.g. 'idle for 7+ days'."""
        ...


class AnyEventMatcher(TriggerMatcher):
    """application_received / interview_scheduled: the event alone suffices."""

    def __init__(self, trigger_type: TriggerType) -> None:
        self._type = trigger_type

    def check(self, payload: Any) -> bool | None:
        return True

    @property
    def description(self) -> str:
        return self._type.value.replace("_", " ")


class StatusChangedMatcher(TriggerMatcher):
    def __init__(self, new_status: str | None) -> None:
        self._new_status = new_status

    def check(self, payload: Any) -> bool | None:
        if self._new_status is None:
            return True
        status = resolve_first(payload, STATUS_PATHS)
        if status is MISSING:
            return None
        return status == self._new_status

    @property
    def description(self) -> str:
        if self._new_status is None:
            return "status changed"
        return f"status changed to {self._new_status!r}"


class ThresholdMatcher(TriggerMatcher):
    """Fires when a numeric event value reaches a threshold (>=)."""

    def __init__(self, paths: list[str], threshold: int, label: str) -> None:
        self._paths = paths
        self._threshold = threshold
        self._label = label

    def check(self, payload: Any) -> bool | None:
        raw = resolve_first(payload, self._paths)
        if raw is MISSING:
            return None
        value = to_number(raw)
        if value is None:
            return False
        return value >= self._threshold

    @property
    def description(self) -> str:
        return f"{self._label} >= {self._threshold}"


def make_matcher(trigger: TriggerConfig) -> TriggerMatcher:
    """
    Build a matcher for a validated trigger.

    Raises ValueError for unknown trigger types.
    """
    params = trigger.typed_params()
    if isinstance(params, StatusChangedParams):
        return StatusChangedMatcher(params.new_status or None)
    if isinstance(params, DaysWithoutMovementParams):
        return ThresholdMatcher(DAYS_PATHS, params.days, "days without movement")
    if isinstance(params, MatchScoreThresholdParams):
        return ThresholdMatcher(SCORE_PATHS, params.min_score, "match score")
    if trigger.type in (TriggerType.APPLICATION_RECEIVED, TriggerType.INTERVIEW_SCHEDULED):
        return AnyEventMatcher(trigger.type)
    raise ValueError(f"Unknown trigger type: {trigger.type!r}")
