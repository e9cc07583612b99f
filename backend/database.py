import sqlite3
import json
import logging
import os
import uuid
from datetime import datetime
from typing import Iterable, Optional
from contextlib import contextmanager

from models import (
    AiScores,
    SuggestedTask,
    SuggestionStatus,
    Task,
    TaskHistoryEntry,
)
from recurrence import NoRecurrence, Recurrence, recurrence_from_db, recurrence_to_db

logger = logging.getLogger(__name__)

DATABASE_PATH = os.getenv("TASKMATRIX_DB", "taskmatrix.db")

@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()

def init_db():
    """Initialize database by running Alembic migrations."""
    import subprocess

    # Run alembic upgrade from the backend directory, against the same file we open
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    env = dict(os.environ, TASKMATRIX_DB=os.path.abspath(DATABASE_PATH))
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        env=env,
        check=True
    )
    logger.info("Database ready at %s", env["TASKMATRIX_DB"])


def to_local_naive(value: datetime) -> datetime:
    """Aware datetimes are converted to naive local time; naive ones are already local."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value

def to_db_time(value: Optional[datetime]) -> Optional[str]:
    """
    Store timestamps as naive local ISO strings with fixed precision,
    so that string comparison in SQL matches chronological order.
    """
    if value is None:
        return None
    return to_local_naive(value).isoformat(timespec="microseconds")

def from_db_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _row_to_task(row) -> Task:
    """Convert a database row to a Task model."""
    ai_scores = json.loads(row["ai_scores"]) if row["ai_scores"] else None
    return Task(
        id=row["id"],
        user_id=row["user_id"],
        text=row["text"],
        description=row["description"],
        deadline=from_db_time(row["deadline"]),
        quadrant=row["quadrant"],
        complexity=row["complexity"],
        completed=bool(row["completed"]),
        completed_at=from_db_time(row["completed_at"]),
        show_after=from_db_time(row["show_after"]),
        recurrence=recurrence_from_db(row["recurrence"]),
        xp=row["xp"],
        ai_scores=AiScores(**ai_scores) if ai_scores else None,
        created_at=from_db_time(row["created_at"]),
        updated_at=from_db_time(row["updated_at"]),
    )

def _row_to_suggestion(row) -> SuggestedTask:
    """Convert a database row to a SuggestedTask model."""
    return SuggestedTask(
        id=row["id"],
        user_id=row["user_id"],
        suggested_text=row["suggested_text"],
        source_type=row["source_type"],
        confidence=row["confidence"],
        why=row["why"],
        status=row["status"],
        fingerprint=row["fingerprint"],
        related_task_ids=json.loads(row["related_task_ids"] or "[]"),
        snooze_until=from_db_time(row["snooze_until"]),
        last_shown_at=from_db_time(row["last_shown_at"]),
        created_at=from_db_time(row["created_at"]),
        updated_at=from_db_time(row["updated_at"]),
    )


# Task operations

def create_task_db(
    task_id: str,
    user_id: str,
    text: str,
    quadrant: str,
    description: Optional[str] = None,
    deadline: Optional[datetime] = None,
    complexity: Optional[str] = None,
    show_after: Optional[datetime] = None,
    recurrence: Recurrence = None,
    xp: Optional[int] = None,
    ai_scores: Optional[AiScores] = None,
    completed_at: Optional[datetime] = None,
) -> Task:
    """Create a task for a user.
    If completed_at is given the task is created already completed
    (used when importing history).
    """
    now = to_db_time(datetime.now())
    if recurrence is None:
        recurrence = NoRecurrence()

    with get_db() as conn:
        conn.execute(
            """INSERT INTO tasks
               (id, user_id, text, description, deadline, quadrant, complexity, completed, completed_at,
                show_after, recurrence, xp, ai_scores, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                task_id, user_id, text, description, to_db_time(deadline),
                getattr(quadrant, "value", quadrant), getattr(complexity, "value", complexity),
                int(completed_at is not None), to_db_time(completed_at),
                to_db_time(show_after), recurrence_to_db(recurrence), xp,
                ai_scores.model_dump_json() if ai_scores else None,
                now, now,
            )
        )
        conn.commit()
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(row)

def get_task_db(user_id: str, task_id: str) -> Optional[Task]:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM tasks WHERE id = ? AND user_id = ?",
            (task_id, user_id)
        ).fetchone()
        return _row_to_task(row) if row else None

def get_tasks_for_user(user_id: str) -> list[Task]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM tasks WHERE user_id = ? ORDER BY created_at DESC",
            (user_id,)
        ).fetchall()
        return [_row_to_task(row) for row in rows]

def _to_column(field: str, value):
    if field == "recurrence":
        return recurrence_to_db(value)
    if field == "ai_scores":
        return value.model_dump_json() if value else None
    if isinstance(value, datetime):
        return to_db_time(value)
    if isinstance(value, bool):
        return int(value)
    return getattr(value, "value", value)

def update_task_db(user_id: str, task_id: str, **updates) -> Optional[Task]:
    """
    Update a task with any fields provided.
    Only updates fields that differ from current values.

    Completing a task stamps completed_at (unless one is already set or
    supplied); un-completing clears it.
    """
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM tasks WHERE id = ? AND user_id = ?",
            (task_id, user_id)
        ).fetchone()
        if not row:
            return None

        keys = row.keys()

        if "completed" in updates and "completed_at" not in updates:
            if updates["completed"] and not row["completed_at"]:
                updates["completed_at"] = datetime.now()
            elif not updates["completed"]:
                updates["completed_at"] = None

        # Filter updates: only include fields that differ from current values
        changes = {}
        for field, new_value in updates.items():
            if field not in keys or field in ("id", "user_id", "created_at", "updated_at"):
                continue
            column_value = _to_column(field, new_value)
            if column_value != row[field]:
                changes[field] = column_value

        # Execute UPDATE only if there are actual changes
        if changes:
            changes["updated_at"] = to_db_time(datetime.now())
            set_clause = ", ".join(f"{field} = ?" for field in changes.keys())
            values = list(changes.values()) + [task_id]
            conn.execute(f"UPDATE tasks SET {set_clause} WHERE id = ?", values)
            conn.commit()

        # Return updated task (re-fetch to get current state)
        updated_row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(updated_row)

def delete_task_db(user_id: str, task_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM tasks WHERE id = ? AND user_id = ?",
            (task_id, user_id)
        )
        conn.commit()
        return cursor.rowcount > 0

def get_completed_tasks_since(user_id: str, since: datetime) -> list[TaskHistoryEntry]:
    """Completed tasks with completed_at >= since, most recent first."""
    with get_db() as conn:
        rows = conn.execute(
            """SELECT id, text, completed_at FROM tasks
               WHERE user_id = ? AND completed = 1 AND completed_at >= ?
               ORDER BY completed_at DESC""",
            (user_id, to_db_time(since))
        ).fetchall()
        return [
            TaskHistoryEntry(id=row["id"], text=row["text"], completed_at=from_db_time(row["completed_at"]))
            for row in rows
        ]

def get_open_tasks(user_id: str) -> list[Task]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM tasks WHERE user_id = ? AND completed = 0",
            (user_id,)
        ).fetchall()
        return [_row_to_task(row) for row in rows]


# Suggestion operations

def create_suggestion_db(
    user_id: str,
    suggested_text: str,
    source_type: str,
    confidence: float,
    why: str,
    fingerprint: str,
    related_task_ids: list[str],
    status: SuggestionStatus = SuggestionStatus.PENDING,
    last_shown_at: Optional[datetime] = None,
    snooze_until: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> SuggestedTask:
    suggestion_id = str(uuid.uuid4())
    timestamp = to_db_time(now or datetime.now())
    with get_db() as conn:
        conn.execute(
            """INSERT INTO suggested_tasks
               (id, user_id, suggested_text, source_type, confidence, why, status, fingerprint,
                related_task_ids, snooze_until, last_shown_at, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                suggestion_id, user_id, suggested_text, getattr(source_type, "value", source_type),
                confidence, why, status.value, fingerprint, json.dumps(list(related_task_ids)),
                to_db_time(snooze_until), to_db_time(last_shown_at), timestamp, timestamp,
            )
        )
        conn.commit()
        row = conn.execute("SELECT * FROM suggested_tasks WHERE id = ?", (suggestion_id,)).fetchone()
        logger.debug("Suggestion stored id=%s user=%s fingerprint=%s", suggestion_id, user_id, fingerprint[:12])
        return _row_to_suggestion(row)

def get_suggestion_db(user_id: str, suggestion_id: str) -> Optional[SuggestedTask]:
    """Find a suggestion owned by user_id, any status."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM suggested_tasks WHERE id = ? AND user_id = ?",
            (suggestion_id, user_id)
        ).fetchone()
        return _row_to_suggestion(row) if row else None

def find_suggestions_db(
    user_id: str,
    statuses: Optional[Iterable[SuggestionStatus]] = None,
    fingerprint: Optional[str] = None,
    updated_since: Optional[datetime] = None,
    eligible_at: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> list[SuggestedTask]:
    """
    Query suggestions for a user, ordered by confidence (highest first).

    Args:
        statuses: only these statuses
        fingerprint: exact fingerprint match
        updated_since: updated_at >= this time
        eligible_at: not snoozed past this time (snooze_until NULL or <= eligible_at)
        limit: max rows
    """
    clauses = ["user_id = ?"]
    params: list = [user_id]

    if statuses is not None:
        status_values = [s.value for s in statuses]
        if not status_values:
            return []
        clauses.append(f"status IN ({', '.join('?' for _ in status_values)})")
        params.extend(status_values)
    if fingerprint is not None:
        clauses.append("fingerprint = ?")
        params.append(fingerprint)
    if updated_since is not None:
        clauses.append("updated_at >= ?")
        params.append(to_db_time(updated_since))
    if eligible_at is not None:
        clauses.append("(snooze_until IS NULL OR snooze_until <= ?)")
        params.append(to_db_time(eligible_at))

    query = f"SELECT * FROM suggested_tasks WHERE {' AND '.join(clauses)} ORDER BY confidence DESC, created_at ASC"
    if limit is not None:
        query += " LIMIT ?"
        params.append(int(limit))

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()
        return [_row_to_suggestion(row) for row in rows]

def count_suggestions_shown_since(user_id: str, since: datetime) -> int:
    with get_db() as conn:
        return conn.execute(
            "SELECT COUNT(*) FROM suggested_tasks WHERE user_id = ? AND last_shown_at >= ?",
            (user_id, to_db_time(since))
        ).fetchone()[0]

def update_suggestion_db(suggestion_id: str, now: Optional[datetime] = None, **updates) -> Optional[SuggestedTask]:
    """
    Update suggestion fields (status, snooze_until, last_shown_at).
    updated_at is always stamped; the dismiss cooldown is measured from it.
    """
    allowed = ("status", "snooze_until", "last_shown_at")
    changes = {}
    for field, value in updates.items():
        if field not in allowed:
            raise ValueError(f"Cannot update suggestion field: {field}")
        changes[field] = to_db_time(value) if isinstance(value, datetime) else getattr(value, "value", value)
    changes["updated_at"] = to_db_time(now or datetime.now())

    set_clause = ", ".join(f"{field} = ?" for field in changes.keys())
    with get_db() as conn:
        conn.execute(
            f"UPDATE suggested_tasks SET {set_clause} WHERE id = ?",
            list(changes.values()) + [suggestion_id]
        )
        conn.commit()
        row = conn.execute("SELECT * FROM suggested_tasks WHERE id = ?", (suggestion_id,)).fetchone()
        return _row_to_suggestion(row) if row else None

def release_expired_snoozes_db(user_id: str, now: datetime) -> int:
    """Move SNOOZED suggestions whose snooze_until has passed back to PENDING."""
    timestamp = to_db_time(now)
    with get_db() as conn:
        cursor = conn.execute(
            """UPDATE suggested_tasks
               SET status = ?, snooze_until = NULL, updated_at = ?
               WHERE user_id = ? AND status = ? AND snooze_until IS NOT NULL AND snooze_until <= ?""",
            (SuggestionStatus.PENDING.value, timestamp, user_id, SuggestionStatus.SNOOZED.value, timestamp)
        )
        conn.commit()
        return cursor.rowcount

def check_db() -> bool:
    """Health probe."""
    try:
        with get_db() as conn:
            conn.execute("SELECT 1").fetchone()
        return True
    except sqlite3.Error:
        logger.exception("Database health check failed")
        return False
