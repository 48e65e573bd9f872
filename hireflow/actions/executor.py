"""
Action executor primitives — ActionContext, the ActionExecutor ABC, and
the registry the dispatcher selects executors from.

Every side effect (email, WhatsApp, stage move, tag, manager alert, …) is
an ActionExecutor supplied by the host application. The dispatcher only
picks the executor registered for an action's type and hands it typed
params; how the side effect happens is the executor's business, including
retries and timeouts.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from hireflow.automation.params import Params
from hireflow.core.errors import ExecutorNotFoundError, RegistryError
from hireflow.core.types import ActionType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionContext:
    """
    Everything an executor knows about why it is running.

    delivery_id is stable across redeliveries of the same delayed action;
    executors that cannot tolerate duplicates should de-duplicate on it.
    """

    automation_id: str
    automation_name: str
    trigger_type: str
    payload: dict[str, Any] = field(default_factory=dict)
    run_id: str | None = None
    action_id: str | None = None
    action_type: str | None = None
    delivery_id: str | None = None

    def for_action(
        self, action_id: str, action_type: str, delivery_id: str | None = None
    ) -> ActionContext:
        return ActionContext(
            automation_id=self.automation_id,
            automation_name=self.automation_name,
            trigger_type=self.trigger_type,
            payload=self.payload,
            run_id=self.run_id,
            action_id=action_id,
            action_type=action_type,
            delivery_id=delivery_id,
        )

    def to_dict(self) -> dict:
        return {
            "automation_id": self.automation_id,
            "automation_name": self.automation_name,
            "trigger_type": self.trigger_type,
            "payload": self.payload,
            "run_id": self.run_id,
            "action_id": self.action_id,
            "action_type": self.action_type,
            "delivery_id": self.delivery_id,
        }

    @classmethod
    def from_dict(cls, d: dict) -> ActionContext:
        return cls(
            automation_id=d["automation_id"],
            automation_name=d.get("automation_name", ""),
            trigger_type=d.get("trigger_type", ""),
            payload=d.get("payload") or {},
            run_id=d.get("run_id"),
            action_id=d.get("action_id"),
            action_type=d.get("action_type"),
            delivery_id=d.get("delivery_id"),
        )


class ActionExecutor(ABC):
    """
    Performs one kind of side effect.

    execute() returns an optional JSON-friendly result (message id, new
    stage, …) or raises. Any exception is recorded as a failure of that
    single action; sibling actions still run.
    """

    @property
    def name(self) -> str:
        """Short identifier for logs, e.g. 'smtp', 'whatsapp-cloud'."""
        return type(self).__name__

    @abstractmethod
    async def execute(self, params: Params, context: ActionContext) -> Any:
        ...


class ExecutorRegistry:
    """
    Maps action types to executors.

    Usage:
        registry = ExecutorRegistry()
        registry.register(ActionType.SEND_EMAIL, SmtpExecutor(...))
        registry.register_all(LogActionExecutor(path))   # fallback for the rest

        executor = registry.get(ActionType.SEND_EMAIL)
    """

    def __init__(self) -> None:
        self._executors: dict[ActionType, ActionExecutor] = {}

    def register(self, action_type: ActionType | str, executor: ActionExecutor) -> None:
        """Register an executor. Replaces any previous one for the type."""
        try:
            key = ActionType(action_type)
        except ValueError:
            raise RegistryError(f"Unknown action type: {action_type!r}") from None
        self._executors[key] = executor
        logger.debug(f"Registered executor {executor.name} for {key.value}")

    def register_all(self, executor: ActionExecutor, replace: bool = False) -> None:
        """Register one executor for every action type (that has none yet)."""
        for action_type in ActionType:
            if replace or action_type not in self._executors:
                self.register(action_type, executor)

    def get(self, action_type: ActionType | str) -> ActionExecutor:
        """
        Raises:
            ExecutorNotFoundError: If nothing is registered for the type.
        """
        executor = self._executors.get(ActionType(action_type))
        if executor is None:
            raise ExecutorNotFoundError(
                f"No executor registered for action type '{ActionType(action_type).value}'"
            )
        return executor

    def has(self, action_type: ActionType | str) -> bool:
        return ActionType(action_type) in self._executors

    @property
    def action_types(self) -> list[ActionType]:
        return list(self._executors)
