"""
Test fixtures for Homework Helper.

Provides app, client, auth_client, and db fixtures with file-based SQLite.
Countdown threads are off; tests drive ExamSession.tick() directly.
"""

from __future__ import annotations

from datetime import datetime

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

sys.path.insert(0, str(Path(__file__).parent))

from factories import make_questions

TEST_PASSWORD = "Testpass123"


@pytest.fixture(autouse=True)
def llm_keys(monkeypatch):
    """Pretend a provider key is configured; the LLM call itself is always patched."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("LLM_PROVIDER", "openai")


@pytest.fixture
def app(tmp_path):
    """Create app with file-based SQLite for testing."""
    from app import create_app

    db_file = str(tmp_path / "test.db")
    app = create_app({
        "TESTING": True,
        "DATABASE": db_file,
        "SECRET_KEY": "test-secret-key",
        "EXAM_RUN_TIMERS": False,
        "LLM_PROVIDER": "openai",
        "LLM_MODEL": "gpt-4o-mini",
    })

    with app.app_context():
        from database import init_db, run_migrations, get_db

        init_db()
        run_migrations()
        app._db_initialized = True

        # Seed test user
        from werkzeug.security import generate_password_hash
        db = get_db()
        db.execute(
            "INSERT INTO users (id, name, email, password_hash, created_at) "
            "VALUES (1, 'Test Teacher', 'test@example.com', ?, ?)",
            (generate_password_hash(TEST_PASSWORD), datetime.now().isoformat()),
        )
        db.execute("INSERT OR IGNORE INTO user_stats (user_id) VALUES (1)")
        db.commit()

        yield app

    from extensions import exam_sessions
    exam_sessions.clear()


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return app.test_client()


@pytest.fixture
def auth_client(app):
    """Authenticated test client (logged in as test user)."""
    client = app.test_client()
    resp = client.post("/login", json={
        "email": "test@example.com",
        "password": TEST_PASSWORD,
    })
    assert resp.status_code == 200
    yield client


@pytest.fixture
def db(app):
    """Direct database access for store tests."""
    with app.app_context():
        from database import get_db
        yield get_db()


@pytest.fixture
def homework(app):
    """A stored five-question multiple-choice homework owned by user 1."""
    from db_stores import HomeworkStoreDB

    with app.app_context():
        return HomeworkStoreDB(1).create(
            topic="Past simple",
            difficulty="Intermediate",
            hw_type="Multiple Choice",
            questions=make_questions(5),
        )
