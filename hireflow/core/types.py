"""
hireflow shared types — the closed vocabularies of the rule engine.

All enums subclass str so they compare equal to their wire values and
serialise cleanly to JSON and SQLite.
"""

from __future__ import annotations

from enum import Enum


class TriggerType(str, Enum):
    """Recruiting events an automation can listen for."""

    APPLICATION_RECEIVED = "application_received"
    STATUS_CHANGED = "status_changed"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    DAYS_WITHOUT_MOVEMENT = "days_without_movement"
    MATCH_SCORE_THRESHOLD = "match_score_threshold"


class ConditionOperator(str, Enum):
    """Comparison applied between a resolved field and a literal."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    IN = "in"
    NOT_IN = "not_in"

    @property
    def is_numeric(self) -> bool:
        return self in _NUMERIC_OPERATORS

    @property
    def needs_list(self) -> bool:
        return self in (ConditionOperator.IN, ConditionOperator.NOT_IN)


_NUMERIC_OPERATORS = frozenset(
    {
        ConditionOperator.GREATER_THAN,
        ConditionOperator.LESS_THAN,
        ConditionOperator.GREATER_THAN_OR_EQUAL,
        ConditionOperator.LESS_THAN_OR_EQUAL,
    }
)


class ConditionLogic(str, Enum):
    """How a condition combines with the running result before it."""

    AND = "AND"
    OR = "OR"


class ActionType(str, Enum):
    """Side effects an automation can perform."""

    SEND_EMAIL = "send_email"
    SEND_WHATSAPP = "send_whatsapp"
    MOVE_STAGE = "move_stage"
    ADD_TAG = "add_tag"
    ADD_NOTE = "add_note"
    NOTIFY_MANAGER = "notify_manager"
    SEND_TEST = "send_test"
    SCHEDULE_INTERVIEW = "schedule_interview"


class EvaluationStatus(str, Enum):
    """Outcome of evaluating one automation against one event."""

    DISPATCHED = "dispatched"
    SKIPPED = "skipped"
    ERROR = "error"


class SkipReason(str, Enum):
    """The stage at which an automation stopped applying to an event."""

    INACTIVE = "inactive"
    TRIGGER_TYPE = "trigger_type"
    TRIGGER_PARAMS = "trigger_params"
    CONDITIONS = "conditions"


class ActionStatus(str, Enum):
    """What happened to a single action during dispatch."""

    EXECUTED = "executed"
    FAILED = "failed"
    SCHEDULED = "scheduled"
    SCHEDULING_FAILED = "scheduling_failed"
    CANCELLED = "cancelled"


class RunStatus(str, Enum):
    """Overall status of a recorded automation run."""

    SUCCESS = "success"
    FAILED = "failed"
