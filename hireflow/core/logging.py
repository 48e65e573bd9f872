"""
Logging setup and the audit trail.

setup_logging() configures the "hireflow" logger once per process.
AuditLogger subscribes to the event bus and appends every event to a
JSON-lines file so operators can see what each automation did and why
an action failed.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from hireflow.core.events import Event


def setup_logging(
    log_dir: Path | None = None,
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
) -> logging.Logger:
    """
    Setup hireflow logging.

    Args:
        log_dir: Directory for log files (default: ~/.hireflow/logs)
        console_level: Minimum level for console output
        file_level: Minimum level for file output

    Returns:
        The configured logger
    """
    log_dir = log_dir or (Path.home() / ".hireflow" / "logs")
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("hireflow")
    logger.setLevel(logging.DEBUG)
    logger.handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(console_handler)

    log_file = log_dir / f"hireflow_{datetime.now().strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(file_handler)

    logger.info(f"Logging initialized. File: {log_file}")
    return logger


class AuditLogger:
    """
    Writes every bus event to a dated JSON-lines file.

    Usage:
        audit = AuditLogger(log_dir=Path("~/.hireflow/logs"))
        bus.on("*", audit.handle)
    """

    def __init__(self, log_dir: Path | None = None) -> None:
        self._log_dir = (log_dir or Path.home() / ".hireflow" / "logs").expanduser()
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._logger = logging.getLogger("hireflow.audit")

    @property
    def path(self) -> Path:
        return self._log_dir / f"audit_{datetime.now().strftime('%Y%m%d')}.jsonl"

    async def handle(self, event: Event) -> None:
        self._logger.debug(f"[{event.type}] source={event.source}")
        record = {
            "timestamp": datetime.fromtimestamp(event.timestamp).isoformat(),
            "id": event.id,
            "type": event.type,
            "source": event.source,
            "data": self._safe_serialize(event.data),
        }
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record) + "\n")
        except OSError as e:
            self._logger.warning(f"Failed to write audit log: {e}")

    @staticmethod
    def _safe_serialize(data: dict) -> dict:
        """Keep JSON-safe values, stringify the rest."""
        result = {}
        for key, value in data.items():
            try:
                json.dumps(value)
                result[key] = value
            except (TypeError, ValueError):
                result[key] = str(value)
        return result
