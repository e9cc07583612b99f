"""Initial schema - per-user tasks

Revision ID: 001
Revises: None
Create Date: 2026-09-02

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            text TEXT NOT NULL,
            description TEXT,
            deadline TEXT,
            quadrant TEXT NOT NULL,
            complexity TEXT,
            completed INTEGER NOT NULL DEFAULT 0,
            completed_at TEXT,
            show_after TEXT,
            recurrence TEXT,
            xp INTEGER,
            ai_scores TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """))

    # Suggestion generation scans completed history per user by completion time
    conn.execute(text(
        "CREATE INDEX IF NOT EXISTS idx_tasks_user_completed ON tasks(user_id, completed, completed_at)"
    ))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP INDEX IF EXISTS idx_tasks_user_completed"))
    conn.execute(text("DROP TABLE IF EXISTS tasks"))
