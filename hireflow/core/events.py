"""
hireflow bus events — types and constants.

Every automation lifecycle change and every action outcome produces an
event. Events flow to subscribers (audit log, metrics, UIs).

These are internal notifications. Incoming recruiting events that drive
the rule engine are TriggerEvent objects (see hireflow.engine.rules).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
import time
import uuid


class EventType:
    """
    Event type constants.

    Hierarchical naming: "category:action"
    Supports wildcard matching: "action:*" matches "action:failed"
    """

    # Automation lifecycle
    AUTOMATION_CREATED = "automation:created"
    AUTOMATION_UPDATED = "automation:updated"
    AUTOMATION_DELETED = "automation:deleted"
    AUTOMATION_TOGGLED = "automation:toggled"

    # Evaluation
    AUTOMATION_MATCHED = "automation:matched"
    AUTOMATION_SKIPPED = "automation:skipped"
    AUTOMATION_ERROR = "automation:error"

    # Action outcomes
    ACTION_EXECUTED = "action:executed"
    ACTION_FAILED = "action:failed"
    ACTION_SCHEDULED = "action:scheduled"
    ACTION_SCHEDULING_FAILED = "action:scheduling_failed"
    ACTION_CANCELLED = "action:cancelled"

    # Wildcard
    ALL = "*"


@dataclass(slots=True)
class Event:
    """
    A single bus event.

    - Typed (hierarchical string)
    - Timestamped
    - Attributed (source: the component that emitted it)
    - Extensible (data dict for event-specific payload)
    """

    type: str
    data: dict[str, Any] = field(default_factory=dict)
    source: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    timestamp: float = field(default_factory=time.time)
