"""
DelayedActionQueue — SQLite persistence for actions that fire later.

DB: ~/.hireflow/delayed.db  (separate from the automation store)

Table: delayed_actions
    id            TEXT  PK   (doubles as the delivery id executors see)
    automation_id TEXT
    run_id        TEXT
    action        TEXT  (JSON, Action.to_dict())
    context       TEXT  (JSON, ActionContext.to_dict())
    due_at        REAL
    status        TEXT  pending | running | done | failed | cancelled
    attempts      INT
    last_error    TEXT
    created_at    REAL
    updated_at    REAL

Delivery is at-least-once: rows are claimed (running) before execution and
only marked done afterwards. A claim stamps updated_at with the claim time.
requeue_stale() returns rows left running to pending: all of them, or only
those claimed before a lease cutoff. release() returns a single row.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import threading
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from hireflow.actions.executor import ActionContext
from hireflow.automation.models import Action
from hireflow.core.errors import SchedulingError, StorageError

logger = logging.getLogger(__name__)

PENDING = "pending"
RUNNING = "running"
DONE = "done"
FAILED = "failed"
CANCELLED = "cancelled"


@dataclass
class DelayedAction:
    """One action waiting for its due time."""

    automation_id: str
    action: Action
    context: ActionContext
    due_at: float

    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    run_id: str | None = None
    status: str = PENDING
    attempts: int = 0
    last_error: str | None = None
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "automation_id": self.automation_id,
            "run_id": self.run_id,
            "action": json.dumps(self.action.to_dict()),
            "context": json.dumps(self.context.to_dict(), default=str),
            "due_at": self.due_at,
            "status": self.status,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> DelayedAction:
        d = dict(row)
        return cls(
            id=d["id"],
            automation_id=d["automation_id"],
            run_id=d["run_id"],
            action=Action.from_dict(json.loads(d["action"])),
            context=ActionContext.from_dict(json.loads(d["context"])),
            due_at=d["due_at"],
            status=d["status"],
            attempts=d["attempts"],
            last_error=d["last_error"],
            created_at=d["created_at"],
            updated_at=d["updated_at"],
        )


class DelayedActionQueue:
    """
    Thread-safe SQLite queue. All blocking ops run in the default executor.

    Usage:
        queue = DelayedActionQueue()
        await queue.initialize()

        await queue.enqueue(delayed)
        for item in await queue.claim_due(now=time.time()):
            ...
            await queue.mark_done(item.id)
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        self._db_path = str(db_path or (Path.home() / ".hireflow" / "delayed.db"))
        self._db: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    async def initialize(self) -> None:
        await self._run(self._init_sync)

    def _init_sync(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        db = self._get_db()
        db.execute("PRAGMA journal_mode=WAL")
        db.execute("""
            CREATE TABLE IF NOT EXISTS delayed_actions (
                id            TEXT PRIMARY KEY,
                automation_id TEXT NOT NULL,
                run_id        TEXT,
                action        TEXT NOT NULL,
                context       TEXT NOT NULL,
                due_at        REAL NOT NULL,
                status        TEXT NOT NULL DEFAULT 'pending',
                attempts      INTEGER NOT NULL DEFAULT 0,
                last_error    TEXT,
                created_at    REAL NOT NULL,
                updated_at    REAL NOT NULL
            )
        """)
        db.execute(
            "CREATE INDEX IF NOT EXISTS idx_delayed_due ON delayed_actions(status, due_at)"
        )
        db.commit()
        logger.debug(f"DelayedActionQueue initialised at {self._db_path}")

    def _get_db(self) -> sqlite3.Connection:
        if self._db is None:
            path = self._db_path
            if path != ":memory:":
                path = str(Path(path).expanduser())
            db = sqlite3.connect(path, check_same_thread=False)
            db.row_factory = sqlite3.Row
            self._db = db
        return self._db

    async def _run(self, fn: Callable, *args: Any) -> Any:
        def locked() -> Any:
            with self._lock:
                return fn(*args)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, locked)

    # ── Producer side ────────────────────────────────────────────────────────

    async def enqueue(self, item: DelayedAction) -> DelayedAction:
        """
        Persist a delayed action.

        Raises:
            SchedulingError: If the row could not be written.
        """
        try:
            await self._run(self._enqueue_sync, item)
        except (sqlite3.Error, OSError) as e:
            raise SchedulingError(
                f"Could not persist delayed action: {e}",
                action_type=item.action.type.value,
            ) from e
        except (TypeError, ValueError) as e:
            raise SchedulingError(
                f"Delayed action is not serialisable: {e}",
                action_type=item.action.type.value,
            ) from e
        logger.debug(
            f"Delayed {item.action.type.value} for automation {item.automation_id} "
            f"until {item.due_at:.0f}"
        )
        return item

    def _enqueue_sync(self, item: DelayedAction) -> None:
        db = self._get_db()
        db.execute(
            """
            INSERT INTO delayed_actions (id, automation_id, run_id, action, context, due_at,
                                         status, attempts, last_error, created_at, updated_at)
            VALUES (:id, :automation_id, :run_id, :action, :context, :due_at,
                    :status, :attempts, :last_error, :created_at, :updated_at)
            """,
            item.to_row(),
        )
        db.commit()

    async def cancel_for_automation(self, automation_id: str) -> int:
        """Cancel every pending action of an automation. Returns how many."""
        return await self._run(self._cancel_sync, automation_id)

    def _cancel_sync(self, automation_id: str) -> int:
        db = self._get_db()
        cur = db.execute(
            "UPDATE delayed_actions SET status=?, updated_at=? "
            "WHERE automation_id=? AND status=?",
            (CANCELLED, time.time(), automation_id, PENDING),
        )
        db.commit()
        return cur.rowcount

    # ── Consumer side ────────────────────────────────────────────────────────

    async def claim_due(self, now: float | None = None, limit: int = 100) -> list[DelayedAction]:
        """Atomically move due pending rows to running and return them."""
        t = time.time() if now is None else now
        try:
            return await self._run(self._claim_sync, t, limit)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to claim delayed actions: {e}") from e

    def _claim_sync(self, now: float, limit: int) -> list[DelayedAction]:
        db = self._get_db()
        rows = db.execute(
            "SELECT * FROM delayed_actions WHERE status=? AND due_at<=? "
            "ORDER BY due_at ASC, created_at ASC LIMIT ?",
            (PENDING, now, limit),
        ).fetchall()
        items = [DelayedAction.from_row(r) for r in rows]
        for item in items:
            item.status = RUNNING
            item.attempts += 1
            item.updated_at = now
            db.execute(
                "UPDATE delayed_actions SET status=?, attempts=?, updated_at=? WHERE id=?",
                (item.status, item.attempts, item.updated_at, item.id),
            )
        db.commit()
        return items

    async def mark_done(self, item_id: str) -> None:
        await self._run(self._set_status_sync, item_id, DONE, None)

    async def mark_failed(self, item_id: str, error: str) -> None:
        await self._run(self._set_status_sync, item_id, FAILED, error)

    async def mark_cancelled(self, item_id: str, reason: str | None = None) -> None:
        await self._run(self._set_status_sync, item_id, CANCELLED, reason)

    def _set_status_sync(self, item_id: str, status: str, error: str | None) -> None:
        db = self._get_db()
        db.execute(
            "UPDATE delayed_actions SET status=?, last_error=?, updated_at=? WHERE id=?",
            (status, error, time.time(), item_id),
        )
        db.commit()

    async def release(self, item_id: str, error: str | None = None) -> None:
        """Return a claimed row to pending so the next claim picks it up again."""
        await self._run(self._set_status_sync, item_id, PENDING, error)

    async def requeue_stale(self, claimed_before: float | None = None) -> int:
        """
        Return running rows to pending.

        Args:
            claimed_before: Only requeue rows claimed at or before this time.
                None requeues every running row (startup after a crash).
        """
        count = await self._run(self._requeue_sync, claimed_before)
        if count:
            logger.info(f"Requeued {count} delayed action(s) interrupted mid-execution")
        return count

    def _requeue_sync(self, claimed_before: float | None) -> int:
        db = self._get_db()
        q = "UPDATE delayed_actions SET status=?, updated_at=? WHERE status=?"
        args: list[Any] = [PENDING, time.time(), RUNNING]
        if claimed_before is not None:
            q += " AND updated_at<=?"
            args.append(claimed_before)
        cur = db.execute(q, args)
        db.commit()
        return cur.rowcount

    # ── Queries ──────────────────────────────────────────────────────────────

    async def get(self, item_id: str) -> DelayedAction | None:
        return await self._run(self._get_sync, item_id)

    def _get_sync(self, item_id: str) -> DelayedAction | None:
        row = self._get_db().execute(
            "SELECT * FROM delayed_actions WHERE id=?", (item_id,)
        ).fetchone()
        return DelayedAction.from_row(row) if row else None

    async def list(
        self, automation_id: str | None = None, status: str | None = None
    ) -> list[DelayedAction]:
        return await self._run(self._list_sync, automation_id, status)

    def _list_sync(self, automation_id: str | None, status: str | None) -> list[DelayedAction]:
        q = "SELECT * FROM delayed_actions WHERE 1=1"
        args: list[Any] = []
        if automation_id is not None:
            q += " AND automation_id=?"
            args.append(automation_id)
        if status is not None:
            q += " AND status=?"
            args.append(status)
        q += " ORDER BY due_at ASC"
        return [DelayedAction.from_row(r) for r in self._get_db().execute(q, args).fetchall()]

    async def close(self) -> None:
        if self._db:
            await self._run(self._db.close)
            self._db = None
