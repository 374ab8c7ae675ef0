"""Tests for database.py: schema creation, migrations, constraints."""

import sqlite3

import pytest

import database
from database import get_db, run_migrations


class TestSchema:
    """Verify all tables are created correctly."""

    def test_tables_exist(self, db):
        tables = {r["name"] for r in db.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ).fetchall()}
        for t in ("users", "homework", "exam_submissions", "vocabulary_words", "audit_log",
                  "daily_questions", "user_stats", "user_powerups", "schema_version"):
            assert t in tables, f"Table {t} not found"

    def test_wal_mode(self, db):
        assert db.execute("PRAGMA journal_mode").fetchone()[0] == "wal"

    def test_foreign_keys_enabled(self, db):
        assert db.execute("PRAGMA foreign_keys").fetchone()[0] == 1

    def test_seed_user_has_stats_row(self, db):
        row = db.execute("SELECT * FROM user_stats WHERE user_id=1").fetchone()
        assert row["points"] == 0
        assert row["last_activity_date"] == ""


class TestMigrations:
    def test_fresh_database_is_version_one(self, db):
        versions = [r["version"] for r in db.execute("SELECT version FROM schema_version")]
        assert versions == [1]

    def test_rerun_is_noop(self, app, db):
        with app.app_context():
            run_migrations()
        count = db.execute("SELECT COUNT(*) AS c FROM schema_version").fetchone()["c"]
        assert count == 1

    def test_homework_settings_columns(self, db):
        cols = {r["name"] for r in db.execute("PRAGMA table_info(homework)")}
        assert {"timer_minutes", "question_count", "anti_cheat"} <= cols

    def test_pending_migration_applied_once(self, app, db, monkeypatch):
        monkeypatch.setattr(database, "MIGRATIONS", [
            (2, "ALTER TABLE vocabulary_words ADD COLUMN level TEXT NOT NULL DEFAULT '';"),
        ])
        with app.app_context():
            run_migrations()
            run_migrations()
        versions = [r["version"] for r in db.execute(
            "SELECT version FROM schema_version ORDER BY version")]
        assert versions == [1, 2]
        cols = {r["name"] for r in db.execute("PRAGMA table_info(vocabulary_words)")}
        assert "level" in cols


class TestConstraints:
    def test_one_daily_question_per_user_per_day(self, db):
        db.execute("INSERT INTO daily_questions (user_id, date, question, correct_answer) "
                   "VALUES (1, '2026-03-10', 'Q', 'A')")
        db.commit()
        with pytest.raises(sqlite3.IntegrityError):
            db.execute("INSERT INTO daily_questions (user_id, date, question, correct_answer) "
                       "VALUES (1, '2026-03-10', 'Q2', 'B')")
        db.rollback()

    def test_deleting_homework_cascades_to_submissions(self, db, homework):
        db.execute(
            "INSERT INTO exam_submissions (homework_id, user_id, student_name, score, "
            "total_questions, percentage) VALUES (?, 1, 'Ana', 1, 1, 100)",
            (homework.id,),
        )
        db.commit()
        db.execute("DELETE FROM homework WHERE id=?", (homework.id,))
        db.commit()
        assert db.execute("SELECT COUNT(*) AS c FROM exam_submissions").fetchone()["c"] == 0

    def test_deleting_user_cascades(self, app):
        with app.app_context():
            db = get_db()
            db.execute("INSERT INTO vocabulary_words (user_id, word, definition) VALUES (1, 'w', 'd')")
            db.commit()
            db.execute("DELETE FROM users WHERE id=1")
            db.commit()
            for table in ("vocabulary_words", "user_stats"):
                assert db.execute(f"SELECT COUNT(*) AS c FROM {table}").fetchone()["c"] == 0
