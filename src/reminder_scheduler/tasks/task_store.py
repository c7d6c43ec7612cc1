# src/reminder_scheduler/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from .task_models import Task

logger = logging.getLogger(__name__)


def _to_ts(instant: datetime | None) -> float | None:
    if instant is None:
        return None
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.timestamp()


def _from_ts(raw: float | None) -> datetime | None:
    if raw is None:
        return None
    return datetime.fromtimestamp(float(raw), tz=UTC)


class TaskStore:
    """
    SQLite task store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Instants are stored as UTC epoch seconds (REAL).

    Thread-safety:
    - each method opens its own SQLite connection
    - the run-window advance is a single conditional UPDATE, so two callers
      racing on the same due instant cannot both win
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    amount REAL NOT NULL DEFAULT 0,
                    category TEXT NOT NULL DEFAULT '',
                    schedule TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    last_run REAL,
                    next_run REAL NOT NULL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("description", "TEXT NOT NULL DEFAULT ''")
            add_col("amount", "REAL NOT NULL DEFAULT 0")
            add_col("category", "TEXT NOT NULL DEFAULT ''")
            add_col("is_active", "INTEGER NOT NULL DEFAULT 1")
            add_col("last_run", "REAL")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks(user_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_due ON tasks(is_active, next_run)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            user_id=str(row["user_id"] or ""),
            title=str(row["title"] or ""),
            schedule=str(row["schedule"] or ""),
            description=str(row["description"] or ""),
            amount=float(row["amount"] or 0.0),
            category=str(row["category"] or ""),
            is_active=bool(row["is_active"]),
            last_run=_from_ts(row["last_run"]),
            next_run=_from_ts(row["next_run"]),
            created_at=_from_ts(row["created_at"]),
            updated_at=_from_ts(row["updated_at"]),
        )

    @staticmethod
    def _require_times(task: Task) -> None:
        if not task.id:
            raise ValueError("task id is required")
        if task.next_run is None:
            raise ValueError("next_run is required")
        if task.created_at is None or task.updated_at is None:
            raise ValueError("created_at/updated_at are required")

    # ---- public API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM tasks")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def upsert_task(self, task: Task) -> None:
        """
        Insert or overwrite by id (last write wins).

        An overwrite keeps the stored `last_run` and `created_at`: run history
        only ever moves through advance_run_window.
        """
        self._require_times(task)
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO tasks(
                    id, user_id, title, description, amount, category, schedule,
                    is_active, last_run, next_run, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    user_id = excluded.user_id,
                    title = excluded.title,
                    description = excluded.description,
                    amount = excluded.amount,
                    category = excluded.category,
                    schedule = excluded.schedule,
                    is_active = excluded.is_active,
                    next_run = excluded.next_run,
                    updated_at = excluded.updated_at
                """,
                (
                    task.id,
                    task.user_id,
                    task.title,
                    task.description,
                    float(task.amount),
                    task.category,
                    task.schedule,
                    1 if task.is_active else 0,
                    _to_ts(task.last_run),
                    _to_ts(task.next_run),
                    _to_ts(task.created_at),
                    _to_ts(task.updated_at),
                ),
            )
            conn.commit()
            logger.debug("Task upserted id=%s next_run=%s", task.id, task.next_run)
        finally:
            conn.close()

    def update_task(self, task: Task) -> bool:
        """
        Overwrite the mutable fields of an existing task.

        Never inserts. `last_run` and `created_at` are left untouched.
        Returns False if no row with that id exists.
        """
        self._require_times(task)
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                UPDATE tasks
                SET title = ?, description = ?, amount = ?, category = ?,
                    schedule = ?, is_active = ?, next_run = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    task.title,
                    task.description,
                    float(task.amount),
                    task.category,
                    task.schedule,
                    1 if task.is_active else 0,
                    _to_ts(task.next_run),
                    _to_ts(task.updated_at),
                    task.id,
                ),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def delete_task(self, task_id: str) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            conn.commit()
            return cur.rowcount > 0
        finally:
            conn.close()

    def get_task(self, task_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
            row = cur.fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def list_due_tasks(self, *, now: datetime, limit: int = 500) -> list[Task]:
        """Active tasks whose next_run is at or before `now`, oldest first."""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT *
                FROM tasks
                WHERE is_active = 1
                  AND next_run <= ?
                ORDER BY next_run ASC, created_at ASC
                    LIMIT ?
                """,
                (_to_ts(now), int(limit)),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def list_tasks_for_user(self, user_id: str, limit: int = 100) -> list[Task]:
        if not user_id:
            return []

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT *
                FROM tasks
                WHERE user_id = ?
                ORDER BY created_at DESC
                    LIMIT ?
                """,
                (user_id, int(limit)),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def advance_run_window(
        self,
        task_id: str,
        *,
        expected_next_run: datetime,
        expected_last_run: datetime | None,
        last_run: datetime,
        next_run: datetime,
        updated_at: datetime,
    ) -> bool:
        """
        Atomically record a fire.

        Transitions (last_run, next_run) only if the row is still active and its
        next_run and last_run still equal what the caller read
        (`expected_next_run`, `expected_last_run`). An early fire recomputes the
        same next_run, so last_run is what tells two such fires apart. Returns
        True if this caller won the advance.
        """
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                UPDATE tasks
                SET last_run = ?, next_run = ?, updated_at = ?
                WHERE id = ?
                  AND is_active = 1
                  AND next_run = ?
                  AND last_run IS ?
                """,
                (
                    _to_ts(last_run),
                    _to_ts(next_run),
                    _to_ts(updated_at),
                    task_id,
                    _to_ts(expected_next_run),
                    _to_ts(expected_last_run),
                ),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()
