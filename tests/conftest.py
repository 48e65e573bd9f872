"""Shared test fixtures for hireflow."""

from __future__ import annotations

from typing import Any

import pytest

from hireflow.actions.executor import ActionContext, ActionExecutor, ExecutorRegistry
from hireflow.automation.models import Automation
from hireflow.automation.params import Params
from hireflow.automation.validation import validate_automation
from hireflow.core.bus import EventBus
from hireflow.core.config import HireflowConfig
from hireflow.core.errors import ExecutorError
from hireflow.store.memory import InMemoryAutomationStore


class RecordingExecutor(ActionExecutor):
    """Remembers every call; raises for the action types listed in fail_types."""

    def __init__(self, fail_types: set[str] | None = None) -> None:
        self.calls: list[tuple[Params, ActionContext]] = []
        self.fail_types = fail_types or set()

    @property
    def name(self) -> str:
        return "recording"

    async def execute(self, params: Params, context: ActionContext) -> Any:
        self.calls.append((params, context))
        if context.action_type in self.fail_types:
            raise ExecutorError("provider down", action_type=context.action_type)
        return {"ok": True, "action_id": context.action_id}

    @property
    def action_types(self) -> list[str]:
        return [ctx.action_type for _, ctx in self.calls]


class FakeClock:
    """Controllable stand-in for time.time."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def config():
    """Create a default config without loading from disk."""
    return HireflowConfig()


@pytest.fixture
def bus():
    """Create a fresh event bus."""
    return EventBus()


@pytest.fixture
def store():
    return InMemoryAutomationStore()


@pytest.fixture
def executor():
    return RecordingExecutor()


@pytest.fixture
def registry(executor):
    registry = ExecutorRegistry()
    registry.register_all(executor)
    return registry


@pytest.fixture
def make_registry():
    """Registry backed by a RecordingExecutor that fails for the given types."""

    def factory(*fail_types: str) -> tuple[ExecutorRegistry, RecordingExecutor]:
        executor = RecordingExecutor(fail_types=set(fail_types))
        registry = ExecutorRegistry()
        registry.register_all(executor)
        return registry, executor

    return factory


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_automation():
    """Build a validated Automation from keyword overrides."""

    def factory(**overrides: Any) -> Automation:
        data: dict[str, Any] = {
            "name": "Test automation",
            "trigger": {"type": "application_received", "params": {}},
            "conditions": [],
            "actions": [{"type": "add_tag", "params": {"tag": "seen"}}],
            "is_active": True,
        }
        data.update(overrides)
        return validate_automation(data)

    return factory


@pytest.fixture
def tech_payload():
    return {
        "job": {"department": "Tech", "title": "Backend Engineer"},
        "candidate": {"skills": ["Python", "SQL"], "years_experience": 6},
        "application": {"status": "new", "match_score": 91},
    }
