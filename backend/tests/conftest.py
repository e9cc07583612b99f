"""
Shared pytest fixtures for backend tests.
Uses a temp-file SQLite database per test for isolation.
"""
import pytest
import sqlite3
import sys
import os
import uuid
from datetime import datetime, timedelta

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
from database import create_task_db

# Fixed "now" for time-dependent tests (a Monday, midday)
NOW = datetime(2026, 10, 19, 12, 0, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE tasks (
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
        );

        CREATE TABLE suggested_tasks (
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
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def complete_history(test_db):
    """
    Seed completed tasks: complete_history("user-1", "Pay rent", [30, 60], now)
    creates one completed task per entry, completed that many days before now.
    """
    def _seed(user_id, text, days_ago, now):
        return [
            create_task_db(
                str(uuid.uuid4()),
                user_id,
                text,
                "not-urgent-important",
                completed_at=now - timedelta(days=days),
            )
            for days in days_ago
        ]
    return _seed


@pytest.fixture
def app_client(test_db, monkeypatch):
    """
    Create a test client for the FastAPI app.
    Skips alembic migrations and logging setup; no Anthropic key is configured.
    """
    from fastapi.testclient import TestClient
    import ai
    import main

    monkeypatch.setattr(main, "init_db", lambda: None)
    monkeypatch.setattr(main, "setup_logging", lambda level: None)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.setattr(ai, "_client", None)

    with TestClient(main.app) as client:
        yield client
