"""Add suggested_tasks table for proactive suggestions

Revision ID: 002
Revises: 001
Create Date: 2026-09-16

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS suggested_tasks (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            suggested_text TEXT NOT NULL,
            source_type TEXT NOT NULL,
            confidence REAL NOT NULL,
            why TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'PENDING',
            fingerprint TEXT NOT NULL,
            related_task_ids TEXT NOT NULL DEFAULT '[]',
            snooze_until TEXT,
            last_shown_at TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """))

    conn.execute(text(
        "CREATE INDEX IF NOT EXISTS idx_suggested_user_status ON suggested_tasks(user_id, status)"
    ))
    conn.execute(text(
        "CREATE INDEX IF NOT EXISTS idx_suggested_user_fingerprint ON suggested_tasks(user_id, fingerprint)"
    ))
    conn.execute(text(
        "CREATE INDEX IF NOT EXISTS idx_suggested_user_shown ON suggested_tasks(user_id, last_shown_at)"
    ))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP TABLE IF EXISTS suggested_tasks"))
