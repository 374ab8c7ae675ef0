"""Tests for the daily question, stats and shop routes."""

import json
from unittest.mock import patch

import pytest

DAILY = json.dumps({
    "question": "She ___ to school every day.",
    "options": ["go", "goes", "going", "gone"],
    "correctAnswer": "goes",
    "explanation": "Third person singular takes -s.",
})


@pytest.fixture
def mock_daily():
    with patch("agents.homework_agent.HomeworkGenAgent._call_llm", return_value=DAILY) as call:
        yield call


def _give_points(db, points):
    db.execute("UPDATE user_stats SET points=? WHERE user_id=1", (points,))
    db.commit()


class TestDailyQuestion:
    def test_generated_once_and_answer_hidden(self, auth_client, mock_daily):
        first = auth_client.get("/api/daily-question").get_json()
        second = auth_client.get("/api/daily-question").get_json()
        assert first["id"] == second["id"]
        assert mock_daily.call_count == 1
        assert "correctAnswer" not in first
        assert first["options"] == ["go", "goes", "going", "gone"]
        assert first["answered"] is False

    def test_answer_flow(self, auth_client, mock_daily):
        q = auth_client.get("/api/daily-question").get_json()
        result = auth_client.post(f"/api/daily-question/{q['id']}/answer",
                                  json={"answer": "goes"}).get_json()
        assert result["correct"] is True
        assert result["pointsEarned"] == 10
        assert result["stats"]["points"] == 10
        assert result["stats"]["currentStreak"] == 1

        again = auth_client.post(f"/api/daily-question/{q['id']}/answer", json={"answer": "goes"})
        assert again.status_code == 400
        assert "already answered" in again.get_json()["message"]
        assert auth_client.get("/api/stats").get_json()["points"] == 10

        revealed = auth_client.get("/api/daily-question").get_json()
        assert revealed["answered"] is True
        assert revealed["correctAnswer"] == "goes"

    def test_wrong_id(self, auth_client, mock_daily):
        q = auth_client.get("/api/daily-question").get_json()
        resp = auth_client.post(f"/api/daily-question/{q['id'] + 1}/answer", json={"answer": "goes"})
        assert resp.status_code == 400

    def test_generation_failure(self, auth_client):
        with patch("agents.homework_agent.HomeworkGenAgent._call_llm", return_value="not json"):
            resp = auth_client.get("/api/daily-question")
        assert resp.status_code == 500


class TestShop:
    def test_catalog(self, auth_client):
        data = auth_client.get("/api/shop").get_json()
        assert data["points"] == 0
        assert {i["id"] for i in data["items"]} == {
            "streak_freeze", "double_points", "hint", "second_chance", "extra_time",
        }

    def test_buy_and_use(self, auth_client, db):
        _give_points(db, 100)
        bought = auth_client.post("/api/shop/buy", json={"powerupId": "streak_freeze"}).get_json()
        assert bought["points"] == 50
        owned = auth_client.get("/api/powerups").get_json()
        assert owned[0]["powerupId"] == "streak_freeze"
        assert owned[0]["quantity"] == 1
        assert owned[0]["powerup"]["name"] == "Streak Freeze"

        used = auth_client.post("/api/powerups/streak_freeze/use").get_json()
        assert used["remaining"] == 0
        assert auth_client.get("/api/powerups").get_json() == []
        assert auth_client.post("/api/powerups/streak_freeze/use").status_code == 400

    def test_insufficient_points(self, auth_client, db):
        _give_points(db, 10)
        resp = auth_client.post("/api/shop/buy", json={"powerupId": "hint"})
        assert resp.status_code == 400
        assert "Not enough points" in resp.get_json()["message"]
        assert auth_client.get("/api/stats").get_json()["points"] == 10

    def test_unknown_powerup(self, auth_client):
        resp = auth_client.post("/api/shop/buy", json={"powerupId": "godmode"})
        assert resp.status_code == 400

    def test_missing_powerup_id(self, auth_client):
        resp = auth_client.post("/api/shop/buy", json={})
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "powerupId"

    def test_requires_login(self, client):
        assert client.get("/api/stats").status_code == 401
        assert client.post("/api/shop/buy", json={"powerupId": "hint"}).status_code == 401
