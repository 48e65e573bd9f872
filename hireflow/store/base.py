"""
Automation store interface.

CRUD for automations plus the run log. The rule engine only needs
list_active(), record_run() and save_run(); the rest serves operators.

Implementations:
    SQLiteAutomationStore — file-based, default
    InMemoryAutomationStore — for testing and one-shot CLI use
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from hireflow.automation.models import ActionOutcome, Automation, AutomationRun
from hireflow.core.types import TriggerType


@dataclass
class AutomationFilter:
    """List filters. None means "don't filter on this"."""

    is_active: bool | None = None
    trigger_type: TriggerType | None = None
    search: str = ""
    page: int = 1
    page_size: int = 20

    def matches(self, automation: Automation) -> bool:
        if self.is_active is not None and automation.is_active != self.is_active:
            return False
        if self.trigger_type is not None and automation.trigger.type != self.trigger_type:
            return False
        if self.search:
            needle = self.search.lower()
            haystack = f"{automation.name}\n{automation.description}".lower()
            if needle not in haystack:
                return False
        return True

    @property
    def offset(self) -> int:
        return (max(self.page, 1) - 1) * self.page_size


@dataclass
class AutomationPage:
    items: list[Automation] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20


class AutomationStore(ABC):
    """Abstract base class for automation persistence."""

    @abstractmethod
    async def list(self, filters: AutomationFilter | None = None) -> AutomationPage:
        """Newest first, filtered and paginated."""
        ...

    @abstractmethod
    async def list_active(self, trigger_type: TriggerType | None = None) -> list[Automation]:
        """Every active automation, optionally for one trigger type, oldest first."""
        ...

    @abstractmethod
    async def get(self, automation_id: str) -> Automation:
        """Raises AutomationNotFoundError if absent."""
        ...

    @abstractmethod
    async def create(self, automation: Automation) -> Automation:
        ...

    @abstractmethod
    async def update(self, automation: Automation) -> Automation:
        """Replace the definition. Raises AutomationNotFoundError if absent."""
        ...

    @abstractmethod
    async def delete(self, automation_id: str) -> bool:
        """Returns True if it existed."""
        ...

    @abstractmethod
    async def toggle(self, automation_id: str) -> Automation:
        """Flip is_active. Raises AutomationNotFoundError if absent."""
        ...

    @abstractmethod
    async def record_run(self, automation_id: str, at: float) -> Automation:
        """Atomically run_count += 1 and last_run_at = at."""
        ...

    @abstractmethod
    async def save_run(self, run: AutomationRun) -> None:
        ...

    @abstractmethod
    async def append_outcome(self, run_id: str, outcome: ActionOutcome) -> None:
        """Attach a late outcome (a delayed action firing) to a recorded run."""
        ...

    @abstractmethod
    async def list_runs(self, automation_id: str, limit: int = 50) -> list[AutomationRun]:
        """Newest first."""
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
