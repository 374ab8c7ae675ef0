"""Tests for the homework, submission and vocabulary routes."""

from unittest.mock import patch

import pytest

from db_stores import HomeworkStoreDB, SubmissionStoreDB
from factories import make_questions, questions_json

VALID = {
    "topic": "Present perfect",
    "difficulty": "Intermediate",
    "type": "Multiple Choice",
    "timerMinutes": 10,
    "questionCount": 3,
    "antiCheat": True,
}


@pytest.fixture
def mock_llm():
    with patch("agents.homework_agent.HomeworkGenAgent._call_llm",
               return_value=questions_json(5)) as call:
        yield call


class TestCreateHomework:
    def test_create(self, auth_client, mock_llm):
        resp = auth_client.post("/api/homework", json=VALID)
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["topic"] == "Present perfect"
        assert data["timerMinutes"] == 10
        assert data["questionCount"] == 3
        assert data["antiCheat"] is True
        assert len(data["content"]["questions"]) == 5
        mock_llm.assert_called_once()

    def test_invalid_difficulty_names_field(self, auth_client, mock_llm):
        resp = auth_client.post("/api/homework", json={**VALID, "difficulty": "Expert"})
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "difficulty"
        mock_llm.assert_not_called()

    def test_blank_topic(self, auth_client, mock_llm):
        resp = auth_client.post("/api/homework", json={**VALID, "topic": "   "})
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "topic"

    def test_timer_out_of_range(self, auth_client, mock_llm):
        resp = auth_client.post("/api/homework", json={**VALID, "timerMinutes": 500})
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "timerMinutes"

    def test_generation_failure_is_500(self, auth_client):
        with patch("agents.homework_agent.HomeworkGenAgent._call_llm",
                   side_effect=RuntimeError("provider down")):
            resp = auth_client.post("/api/homework", json=VALID)
        assert resp.status_code == 500
        assert resp.get_json() == {"message": "Internal server error"}
        assert auth_client.get("/api/homework").get_json() == []

    def test_requires_login(self, client, mock_llm):
        assert client.post("/api/homework", json=VALID).status_code == 401


class TestReadHomework:
    def test_list_is_owner_scoped_newest_first(self, app, auth_client, db):
        db.execute("INSERT INTO users (id, name, email) VALUES (2, 'Other', 'o@example.com')")
        db.commit()
        with app.app_context():
            older = HomeworkStoreDB(1).create(topic="Old", difficulty="Beginner",
                                              hw_type="Short Answer", questions=[])
            newer = HomeworkStoreDB(1).create(topic="New", difficulty="Beginner",
                                              hw_type="Short Answer", questions=[])
            HomeworkStoreDB(2).create(topic="Theirs", difficulty="Beginner",
                                      hw_type="Short Answer", questions=[])
        db.execute("UPDATE homework SET created_at='2020-01-01' WHERE id=?", (older.id,))
        db.commit()
        ids = [h["id"] for h in auth_client.get("/api/homework").get_json()]
        assert ids == [newer.id, older.id]

    def test_get_is_public(self, client, homework):
        resp = client.get(f"/api/homework/{homework.id}")
        assert resp.status_code == 200
        assert resp.get_json()["topic"] == "Past simple"

    def test_get_missing(self, client):
        resp = client.get("/api/homework/999")
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Homework not found"

    def test_share_link(self, auth_client, homework):
        data = auth_client.get(f"/api/homework/{homework.id}/share").get_json()
        assert data["url"] == f"http://localhost:5001/homework/{homework.id}?student=true"
        assert data["settings"] == {"timerSeconds": 0, "questionLimit": 0, "antiCheat": False}


class TestDeleteHomework:
    def test_owner_delete(self, auth_client, homework, db):
        resp = auth_client.delete(f"/api/homework/{homework.id}")
        assert resp.get_json() == {"success": True}
        assert auth_client.get(f"/api/homework/{homework.id}").status_code == 404
        audit = db.execute("SELECT action FROM audit_log WHERE action='homework_delete'").fetchone()
        assert audit is not None

    def test_not_owner_is_404(self, app, auth_client, db):
        db.execute("INSERT INTO users (id, name, email) VALUES (2, 'Other', 'o@example.com')")
        db.commit()
        with app.app_context():
            theirs = HomeworkStoreDB(2).create(topic="Theirs", difficulty="Beginner",
                                               hw_type="Short Answer", questions=make_questions(1))
        assert auth_client.delete(f"/api/homework/{theirs.id}").status_code == 404
        assert auth_client.get(f"/api/homework/{theirs.id}/share").status_code == 404


class TestSubmissions:
    def test_public_post_records_for_owner(self, client, homework):
        resp = client.post("/api/submissions", json={
            "homeworkId": homework.id,
            "studentName": "Ana",
            "score": 2,
            "totalQuestions": 3,
            "answers": [True, True, False],
            "timeSpent": 95,
            "percentage": 12,
        })
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["percentage"] == 67
        assert data["userId"] == 1

    def test_unknown_homework(self, client):
        resp = client.post("/api/submissions", json={
            "homeworkId": 999, "studentName": "Ana", "score": 0, "totalQuestions": 1,
        })
        assert resp.status_code == 404

    def test_score_above_total_rejected(self, client, homework):
        resp = client.post("/api/submissions", json={
            "homeworkId": homework.id, "studentName": "Ana", "score": 4, "totalQuestions": 3,
        })
        assert resp.status_code == 400

    def test_owner_listings(self, app, auth_client, homework):
        with app.app_context():
            SubmissionStoreDB.record(homework, student_name="Ana", score=1,
                                     total_questions=2, answers=[True, False])
        assert len(auth_client.get("/api/submissions").get_json()) == 1
        per_hw = auth_client.get(f"/api/homework/{homework.id}/submissions").get_json()
        assert per_hw[0]["studentName"] == "Ana"


class TestVocabulary:
    def test_crud(self, auth_client):
        resp = auth_client.post("/api/vocabulary", json={
            "word": "ubiquitous", "definition": "found everywhere", "category": "adjectives",
        })
        assert resp.status_code == 201
        word_id = resp.get_json()["id"]
        words = auth_client.get("/api/vocabulary").get_json()
        assert [w["word"] for w in words] == ["ubiquitous"]
        assert auth_client.delete(f"/api/vocabulary/{word_id}").get_json() == {"success": True}
        assert auth_client.delete(f"/api/vocabulary/{word_id}").status_code == 404

    def test_definition_required(self, auth_client):
        resp = auth_client.post("/api/vocabulary", json={"word": "x"})
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "definition"
