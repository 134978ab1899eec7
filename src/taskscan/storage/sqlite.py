import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Sequence

from taskscan.types import STATUSES, Task, TaskStatus, parse_iso, to_iso, utc_now


class SQLiteTaskStore:
    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.create_tables()

    @contextmanager
    def _connect(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def create_tables(self) -> None:
        with self._connect() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    position INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    priority TEXT NOT NULL DEFAULT 'medium',
                    status TEXT NOT NULL DEFAULT 'pending',
                    due_date TEXT,
                    source TEXT NOT NULL DEFAULT 'Unknown',
                    source_url TEXT,
                    screenshot TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);
            """)

    def load(self) -> list[Task]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM tasks ORDER BY position").fetchall()
        return [self._row_to_task(row) for row in rows]

    def save(self, tasks: Sequence[Task]) -> None:
        now = to_iso(utc_now())
        with self._connect() as conn:
            conn.execute("DELETE FROM tasks")
            conn.executemany(
                """
                INSERT INTO tasks
                    (id, position, title, description, priority, status, due_date,
                     source, source_url, screenshot, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        task.id, position, task.title, task.description, task.priority,
                        task.status, to_iso(task.due_date), task.source, task.source_url,
                        task.screenshot, to_iso(task.created_at), now,
                    )
                    for position, task in enumerate(tasks)
                ],
            )

    def get(self, task_id: str) -> Task | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    def update_status(self, task_id: str, status: TaskStatus) -> Task:
        if status not in STATUSES:
            raise ValueError(f"Unknown task status: {status!r}")
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE tasks SET status = ?, updated_at = ? WHERE id = ?",
                (status, to_iso(utc_now()), task_id),
            )
            if cursor.rowcount == 0:
                raise KeyError(task_id)
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return self._row_to_task(row)

    def count(self, status: str | None = None) -> int:
        with self._connect() as conn:
            if status is None:
                row = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) FROM tasks WHERE status = ?", (status,)).fetchone()
        return row[0]

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            priority=row["priority"],
            status=row["status"],
            due_date=parse_iso(row["due_date"]),
            source=row["source"],
            source_url=row["source_url"],
            screenshot=row["screenshot"],
            created_at=parse_iso(row["created_at"]) or utc_now(),
        )
