"""
hireflow — WHEN/IF/THEN automations for recruiting pipelines.

Public API:
    from hireflow import AutomationService, TriggerEvent, HireflowConfig
"""

__version__ = "0.1.0"

# Core
from hireflow.core.config import HireflowConfig
from hireflow.core.events import Event, EventType
from hireflow.core.types import ActionType, ConditionOperator, TriggerType

# Automations
from hireflow.automation.models import Action, Automation, Condition, TriggerConfig
from hireflow.automation.validation import validate_automation

# Engine
from hireflow.actions.executor import ActionContext, ActionExecutor, ExecutorRegistry
from hireflow.engine.rules import RuleEngine, TriggerEvent
from hireflow.service import AutomationService

__all__ = [
    # Core
    "HireflowConfig",
    "Event",
    "EventType",
    "ActionType",
    "ConditionOperator",
    "TriggerType",
    # Automations
    "Action",
    "Automation",
    "Condition",
    "TriggerConfig",
    "validate_automation",
    # Engine
    "ActionContext",
    "ActionExecutor",
    "ExecutorRegistry",
    "RuleEngine",
    "TriggerEvent",
    "AutomationService",
]
