"""
SQLite automation store.

Uses aiosqlite for async SQLite access.
WAL mode enabled for concurrent read support.

Tables:
    automations   one row per automation; trigger/conditions/actions as JSON
    runs          one row per match-and-dispatch
    run_outcomes  append-only action outcomes, so late (delayed) outcomes
                  are a plain INSERT and never race with each other
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any

import aiosqlite

from hireflow.automation.models import (
    Action,
    ActionOutcome,
    Automation,
    AutomationRun,
    Condition,
    TriggerConfig,
)
from hireflow.core.errors import AutomationNotFoundError, StorageError
from hireflow.core.types import TriggerType
from hireflow.store.base import AutomationFilter, AutomationPage, AutomationStore

logger = logging.getLogger(__name__)

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS automations (
        id           TEXT PRIMARY KEY,
        name         TEXT NOT NULL,
        description  TEXT NOT NULL DEFAULT '',
        trigger_type TEXT NOT NULL,
        trigger      TEXT NOT NULL,
        conditions   TEXT NOT NULL,
        actions      TEXT NOT NULL,
        is_active    INTEGER NOT NULL DEFAULT 1,
        run_count    INTEGER NOT NULL DEFAULT 0,
        last_run_at  REAL,
        created_at   REAL NOT NULL,
        updated_at   REAL NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_automations_active ON automations(is_active, trigger_type)",
    """
    CREATE TABLE IF NOT EXISTS runs (
        id            TEXT PRIMARY KEY,
        automation_id TEXT NOT NULL,
        trigger_type  TEXT NOT NULL,
        context       TEXT NOT NULL,
        duration_ms   INTEGER NOT NULL DEFAULT 0,
        executed_at   REAL NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_runs_automation ON runs(automation_id, executed_at)",
    """
    CREATE TABLE IF NOT EXISTS run_outcomes (
        seq     INTEGER PRIMARY KEY AUTOINCREMENT,
        run_id  TEXT NOT NULL,
        outcome TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_outcomes_run ON run_outcomes(run_id)",
]


class SQLiteAutomationStore(AutomationStore):
    """
    Usage:
        store = SQLiteAutomationStore("~/.hireflow/automations.db")
        await store.initialize()

        await store.create(automation)
        active = await store.list_active(TriggerType.APPLICATION_RECEIVED)
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open the database and create tables."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._db = await aiosqlite.connect(str(self._db_path))
            self._db.row_factory = aiosqlite.Row
            await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.execute("PRAGMA synchronous=NORMAL")
            for statement in _SCHEMA:
                await self._db.execute(statement)
            await self._db.commit()
            logger.debug(f"SQLite automation store initialized at {self._db_path}")
        except Exception as e:
            raise StorageError(f"Failed to initialize SQLite at {self._db_path}: {e}") from e

    async def _ensure_db(self) -> aiosqlite.Connection:
        if self._db is None:
            await self.initialize()
        return self._db  # type: ignore[return-value]

    # ━━━ Automations ━━━

    async def list(self, filters: AutomationFilter | None = None) -> AutomationPage:
        filters = filters or AutomationFilter()
        where, args = self._where(filters)
        db = await self._ensure_db()
        try:
            async with db.execute(f"SELECT COUNT(*) FROM automations{where}", args) as cur:
                total = (await cur.fetchone())[0]
            async with db.execute(
                f"SELECT * FROM automations{where} ORDER BY created_at DESC LIMIT ? OFFSET ?",
                [*args, filters.page_size, filters.offset],
            ) as cur:
                rows = await cur.fetchall()
        except Exception as e:
            raise StorageError(f"Failed to list automations: {e}") from e
        return AutomationPage(
            items=[self._row_to_automation(r) for r in rows],
            total=total,
            page=filters.page,
            page_size=filters.page_size,
        )

    async def list_active(self, trigger_type: TriggerType | None = None) -> list[Automation]:
        q = "SELECT * FROM automations WHERE is_active=1"
        args: list[Any] = []
        if trigger_type is not None:
            q += " AND trigger_type=?"
            args.append(TriggerType(trigger_type).value)
        q += " ORDER BY created_at ASC"
        db = await self._ensure_db()
        try:
            async with db.execute(q, args) as cur:
                rows = await cur.fetchall()
        except Exception as e:
            raise StorageError(f"Failed to list active automations: {e}") from e
        return [self._row_to_automation(r) for r in rows]

    async def get(self, automation_id: str) -> Automation:
        db = await self._ensure_db()
        try:
            async with db.execute(
                "SELECT * FROM automations WHERE id=?", (automation_id,)
            ) as cur:
                row = await cur.fetchone()
        except Exception as e:
            raise StorageError(f"Failed to get automation '{automation_id}': {e}") from e
        if row is None:
            raise AutomationNotFoundError(automation_id)
        return self._row_to_automation(row)

    async def create(self, automation: Automation) -> Automation:
        db = await self._ensure_db()
        try:
            await db.execute(
                """
                INSERT INTO automations (id, name, description, trigger_type, trigger,
                                         conditions, actions, is_active, run_count,
                                         last_run_at, created_at, updated_at)
                VALUES (:id, :name, :description, :trigger_type, :trigger,
                        :conditions, :actions, :is_active, :run_count,
                        :last_run_at, :created_at, :updated_at)
                """,
                self._automation_to_row(automation),
            )
            await db.commit()
        except Exception as e:
            raise StorageError(f"Failed to create automation '{automation.id}': {e}") from e
        return automation

    async def update(self, automation: Automation) -> Automation:
        row = self._automation_to_row(automation)
        row["updated_at"] = time.time()
        db = await self._ensure_db()
        try:
            # run_count / last_run_at are left alone: only record_run() moves them
            cur = await db.execute(
                """
                UPDATE automations SET name=:name, description=:description,
                    trigger_type=:trigger_type, trigger=:trigger, conditions=:conditions,
                    actions=:actions, is_active=:is_active, updated_at=:updated_at
                WHERE id=:id
                """,
                row,
            )
            await db.commit()
        except Exception as e:
            raise StorageError(f"Failed to update automation '{automation.id}': {e}") from e
        if cur.rowcount == 0:
            raise AutomationNotFoundError(automation.id)
        return await self.get(automation.id)

    async def delete(self, automation_id: str) -> bool:
        db = await self._ensure_db()
        try:
            cur = await db.execute("DELETE FROM automations WHERE id=?", (automation_id,))
            await db.commit()
        except Exception as e:
            raise StorageError(f"Failed to delete automation '{automation_id}': {e}") from e
        return cur.rowcount > 0

    async def toggle(self, automation_id: str) -> Automation:
        return await self._update_returning(
            "UPDATE automations SET is_active = 1 - is_active, updated_at=? WHERE id=?",
            (time.time(), automation_id),
            automation_id,
        )

    async def record_run(self, automation_id: str, at: float) -> Automation:
        return await self._update_returning(
            "UPDATE automations SET run_count = run_count + 1, last_run_at=? WHERE id=?",
            (at, automation_id),
            automation_id,
        )

    async def _update_returning(self, sql: str, args: tuple, automation_id: str) -> Automation:
        db = await self._ensure_db()
        try:
            cur = await db.execute(sql, args)
            await db.commit()
        except Exception as e:
            raise StorageError(f"Failed to update automation '{automation_id}': {e}") from e
        if cur.rowcount == 0:
            raise AutomationNotFoundError(automation_id)
        return await self.get(automation_id)

    # ━━━ Runs ━━━

    async def save_run(self, run: AutomationRun) -> None:
        db = await self._ensure_db()
        try:
            await db.execute(
                "INSERT INTO runs (id, automation_id, trigger_type, context, duration_ms, "
                "executed_at) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    run.id,
                    run.automation_id,
                    run.trigger_type.value,
                    json.dumps(run.context, default=str),
                    run.duration_ms,
                    run.executed_at,
                ),
            )
            await db.executemany(
                "INSERT INTO run_outcomes (run_id, outcome) VALUES (?, ?)",
                [(run.id, json.dumps(o.to_dict(), default=str)) for o in run.outcomes],
            )
            await db.commit()
        except Exception as e:
            raise StorageError(f"Failed to save run '{run.id}': {e}") from e

    async def append_outcome(self, run_id: str, outcome: ActionOutcome) -> None:
        db = await self._ensure_db()
        try:
            await db.execute(
                "INSERT INTO run_outcomes (run_id, outcome) VALUES (?, ?)",
                (run_id, json.dumps(outcome.to_dict(), default=str)),
            )
            await db.commit()
        except Exception as e:
            raise StorageError(f"Failed to append outcome to run '{run_id}': {e}") from e

    async def list_runs(self, automation_id: str, limit: int = 50) -> list[AutomationRun]:
        db = await self._ensure_db()
        try:
            async with db.execute(
                "SELECT * FROM runs WHERE automation_id=? ORDER BY executed_at DESC LIMIT ?",
                (automation_id, limit),
            ) as cur:
                rows = await cur.fetchall()
            runs = []
            for row in rows:
                async with db.execute(
                    "SELECT outcome FROM run_outcomes WHERE run_id=? ORDER BY seq ASC",
                    (row["id"],),
                ) as cur:
                    outcomes = [json.loads(r["outcome"]) for r in await cur.fetchall()]
                runs.append(
                    AutomationRun.from_dict(
                        {
                            "id": row["id"],
                            "automation_id": row["automation_id"],
                            "trigger_type": row["trigger_type"],
                            "context": json.loads(row["context"]),
                            "outcomes": outcomes,
                            "duration_ms": row["duration_ms"],
                            "executed_at": row["executed_at"],
                        }
                    )
                )
        except Exception as e:
            raise StorageError(f"Failed to list runs for '{automation_id}': {e}") from e
        return runs

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    # ━━━ Helpers ━━━

    @staticmethod
    def _where(filters: AutomationFilter) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        args: list[Any] = []
        if filters.is_active is not None:
            clauses.append("is_active=?")
            args.append(int(filters.is_active))
        if filters.trigger_type is not None:
            clauses.append("trigger_type=?")
            args.append(TriggerType(filters.trigger_type).value)
        if filters.search:
            clauses.append("LOWER(name || ' ' || description) LIKE ?")
            args.append(f"%{filters.search.lower()}%")
        return (" WHERE " + " AND ".join(clauses) if clauses else ""), args

    @staticmethod
    def _automation_to_row(automation: Automation) -> dict[str, Any]:
        return {
            "id": automation.id,
            "name": automation.name,
            "description": automation.description,
            "trigger_type": automation.trigger.type.value,
            "trigger": json.dumps(automation.trigger.to_dict()),
            "conditions": json.dumps([c.to_dict() for c in automation.conditions]),
            "actions": json.dumps([a.to_dict() for a in automation.actions]),
            "is_active": int(automation.is_active),
            "run_count": automation.run_count,
            "last_run_at": automation.last_run_at,
            "created_at": automation.created_at,
            "updated_at": automation.updated_at,
        }

    @staticmethod
    def _row_to_automation(row: aiosqlite.Row) -> Automation:
        return Automation(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            trigger=TriggerConfig.from_dict(json.loads(row["trigger"])),
            conditions=[Condition.from_dict(c) for c in json.loads(row["conditions"])],
            actions=[Action.from_dict(a) for a in json.loads(row["actions"])],
            is_active=bool(row["is_active"]),
            run_count=row["run_count"],
            last_run_at=row["last_run_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
