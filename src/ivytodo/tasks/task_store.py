# src/ivytodo/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any

from ..core.ports import TaskListener, Unsubscribe
from .task_models import EisenhowerTag, Priority, Recurrence, RepeatType, Task

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task store with a live full-table subscription.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    - writes are serialized by a store-wide lock; listeners are notified
      with a fresh snapshot after the write commits
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._write_lock = threading.RLock()
        self._listeners: list[TaskListener] = []
        self._listeners_lock = threading.Lock()
        self._ensure_schema()
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    def close(self) -> None:
        """Drop all subscribers. Connections are per call, nothing else to release."""
        with self._listeners_lock:
            self._listeners.clear()

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
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    note TEXT NOT NULL DEFAULT '',
                    is_done INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    due_at REAL,
                    priority TEXT NOT NULL DEFAULT 'MEDIUM',
                    tag TEXT NOT NULL DEFAULT 'DO_NOW',
                    is_repeat INTEGER NOT NULL DEFAULT 0,
                    repeat_type TEXT,
                    repeat_interval INTEGER NOT NULL DEFAULT 1,
                    ivy_date TEXT,
                    ivy_rank INTEGER
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("is_repeat", "INTEGER NOT NULL DEFAULT 0")
            add_col("repeat_type", "TEXT")
            add_col("repeat_interval", "INTEGER NOT NULL DEFAULT 1")
            add_col("ivy_date", "TEXT")
            add_col("ivy_rank", "INTEGER")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_ivy_date ON tasks(ivy_date, ivy_rank)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_due ON tasks(due_at)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        recurrence = None
        repeat_type = RepeatType.from_db(row["repeat_type"])
        if row["is_repeat"] and repeat_type is not None:
            recurrence = Recurrence(type=repeat_type, interval=max(1, int(row["repeat_interval"] or 1)))

        return Task(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            note=str(row["note"] or ""),
            is_done=bool(row["is_done"]),
            created_at=float(row["created_at"] or 0.0),
            due_at=float(row["due_at"]) if row["due_at"] is not None else None,
            priority=Priority.from_db(row["priority"]),
            tag=EisenhowerTag.from_db(row["tag"]),
            recurrence=recurrence,
            ivy_date=row["ivy_date"],
            ivy_rank=int(row["ivy_rank"]) if row["ivy_rank"] is not None else None,
        )

    @staticmethod
    def _task_values(task: Task) -> tuple[Any, ...]:
        rec = task.recurrence
        return (
            task.title,
            task.note,
            int(task.is_done),
            task.due_at,
            task.priority.value,
            task.tag.value,
            int(rec is not None),
            rec.type.value if rec is not None else None,
            rec.interval if rec is not None else 1,
            task.ivy_date,
            task.ivy_rank,
        )

    def _select(self, sql: str, params: tuple[Any, ...] = ()) -> list[Task]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(sql, params)
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def _notify(self) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        if not listeners:
            return

        snapshot = self.list_all()
        for listener in listeners:
            try:
                listener(list(snapshot))
            except Exception:
                logger.exception("Task listener failed")

    # ---- live read ----

    def observe_all(self, listener: TaskListener) -> Unsubscribe:
        """
        Subscribe to full-table snapshots.

        The listener receives the current snapshot immediately, then a new one
        after every committed write. Returns a callable that unsubscribes.
        """
        with self._listeners_lock:
            self._listeners.append(listener)

        listener(self.list_all())

        def unsubscribe() -> None:
            with self._listeners_lock, contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

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

    def list_all(self) -> list[Task]:
        return self._select("SELECT * FROM tasks ORDER BY id ASC")

    def insert(self, task: Task) -> int:
        """Insert a task and return its new id. `task.id` is ignored."""
        with self._write_lock:
            conn = self._get_conn()
            try:
                cur = conn.cursor()
                cur.execute(
                    """
                    INSERT INTO tasks(
                        title, note, is_done, due_at, priority, tag,
                        is_repeat, repeat_type, repeat_interval,
                        ivy_date, ivy_rank, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (*self._task_values(task), float(task.created_at)),
                )
                conn.commit()
                rowid = cur.lastrowid
                if rowid is None:
                    raise RuntimeError("SQLite did not return lastrowid for tasks insert")
                task_id = int(rowid)
            finally:
                conn.close()

            logger.debug("Task inserted id=%s priority=%s tag=%s due_at=%s", task_id, task.priority, task.tag, task.due_at)
            self._notify()
            return task_id

    def update(self, task: Task) -> None:
        """Overwrite every mutable column of `task` (last write wins). `created_at` is never touched."""
        with self._write_lock:
            conn = self._get_conn()
            try:
                conn.execute(
                    """
                    UPDATE tasks
                    SET title = ?, note = ?, is_done = ?, due_at = ?, priority = ?, tag = ?,
                        is_repeat = ?, repeat_type = ?, repeat_interval = ?,
                        ivy_date = ?, ivy_rank = ?
                    WHERE id = ?
                    """,
                    (*self._task_values(task), int(task.id)),
                )
                conn.commit()
            finally:
                conn.close()

            self._notify()

    def delete(self, task: Task) -> None:
        with self._write_lock:
            conn = self._get_conn()
            try:
                conn.execute("DELETE FROM tasks WHERE id = ?", (int(task.id),))
                conn.commit()
            finally:
                conn.close()

            logger.debug("Task deleted id=%s", task.id)
            self._notify()

    def get_by_id(self, task_id: int) -> Task | None:
        rows = self._select("SELECT * FROM tasks WHERE id = ? LIMIT 1", (int(task_id),))
        return rows[0] if rows else None

    def get_by_plan_date(self, date: str) -> list[Task]:
        """Tasks planned for `date` (yyyy-MM-dd), rank ascending."""
        return self._select(
            "SELECT * FROM tasks WHERE ivy_date = ? ORDER BY ivy_rank IS NULL, ivy_rank ASC, id ASC",
            (date,),
        )

    def get_by_due_range(self, start: float, end: float) -> list[Task]:
        """Tasks with start <= due_at < end, due ascending."""
        return self._select(
            "SELECT * FROM tasks WHERE due_at >= ? AND due_at < ? ORDER BY due_at ASC",
            (float(start), float(end)),
        )

    def get_distinct_due_dates(self) -> set[str]:
        """Local calendar dates (yyyy-MM-dd) that have at least one due task."""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT DISTINCT date(due_at, 'unixepoch', 'localtime') AS d
                FROM tasks
                WHERE due_at IS NOT NULL
                """
            )
            return {str(r["d"]) for r in cur.fetchall() if r["d"]}
        finally:
            conn.close()
