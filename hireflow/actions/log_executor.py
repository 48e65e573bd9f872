"""
LogActionExecutor — records actions to a JSON-lines file instead of
performing them.

The CLI registers it for every action type so automations can run end to
end without real email/WhatsApp/ATS integrations. Host applications
replace it, type by type, with real executors.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any

from hireflow.actions.executor import ActionContext, ActionExecutor
from hireflow.automation.params import Params

logger = logging.getLogger(__name__)


class LogActionExecutor(ActionExecutor):
    """Appends one line per executed action. Raises on I/O failure."""

    def __init__(self, log_path: Path | None = None) -> None:
        self._log_path = (log_path or Path.home() / ".hireflow" / "actions.jsonl").expanduser()

    @property
    def name(self) -> str:
        return "log"

    async def execute(self, params: Params, context: ActionContext) -> Any:
        entry = {
            "at": time.time(),
            "automation_id": context.automation_id,
            "automation_name": context.automation_name,
            "run_id": context.run_id,
            "action_id": context.action_id,
            "action_type": context.action_type,
            "delivery_id": context.delivery_id,
            "params": params.model_dump(by_alias=True),
        }
        self._log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, default=str) + "\n")
        logger.debug(f"Logged action {context.action_id} to {self._log_path}")
        return {"logged_to": str(self._log_path)}
