"""Tests for auth.py: register, login, logout, protected routes, lockout."""

from datetime import datetime, timedelta

from conftest import TEST_PASSWORD


class TestRegister:
    def test_register_success(self, app, client):
        resp = client.post("/register", json={
            "name": "New Teacher",
            "email": "New@Test.com",
            "password": "Securepass123",
        })
        assert resp.status_code == 201
        assert resp.get_json()["user"]["email"] == "new@test.com"

        # Logged in straight away, with an empty stats row
        me = client.get("/api/me")
        assert me.get_json()["user"]["name"] == "New Teacher"
        stats = client.get("/api/stats").get_json()
        assert stats["points"] == 0

    def test_register_accepts_form_posts(self, client):
        resp = client.post("/register", data={
            "name": "Form User",
            "email": "form@test.com",
            "password": "Securepass123",
        })
        assert resp.status_code == 201

    def test_register_missing_field(self, client):
        resp = client.post("/register", json={"name": "", "email": "x@test.com", "password": "Pass12345"})
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "name"

    def test_register_weak_password(self, client):
        resp = client.post("/register", json={"name": "U", "email": "weak@test.com", "password": "Ab1"})
        assert resp.status_code == 400
        assert "at least 8" in resp.get_json()["message"]

    def test_register_duplicate_email(self, client):
        resp = client.post("/register", json={
            "name": "Dupe", "email": "test@example.com", "password": "Pass123456",
        })
        assert resp.status_code == 400
        assert "already exists" in resp.get_json()["message"]


class TestLogin:
    def test_login_success(self, client):
        resp = client.post("/login", json={"email": "test@example.com", "password": TEST_PASSWORD})
        assert resp.status_code == 200
        assert resp.get_json()["user"]["id"] == 1

    def test_login_wrong_password(self, client):
        resp = client.post("/login", json={"email": "test@example.com", "password": "Nope12345"})
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Invalid email or password."

    def test_login_unknown_email(self, client):
        resp = client.post("/login", json={"email": "ghost@example.com", "password": TEST_PASSWORD})
        assert resp.status_code == 401

    def test_lockout_after_five_failures(self, app, client, db):
        for _ in range(5):
            client.post("/login", json={"email": "test@example.com", "password": "Wrong1234"})
        row = db.execute("SELECT login_attempts, locked_until FROM users WHERE id=1").fetchone()
        assert row["login_attempts"] == 5
        assert datetime.fromisoformat(row["locked_until"]) > datetime.now()

        resp = client.post("/login", json={"email": "test@example.com", "password": TEST_PASSWORD})
        assert resp.status_code == 403
        assert "locked" in resp.get_json()["message"]

    def test_expired_lock_allows_login(self, client, db):
        past = (datetime.now() - timedelta(minutes=1)).isoformat()
        db.execute("UPDATE users SET login_attempts=5, locked_until=? WHERE id=1", (past,))
        db.commit()
        resp = client.post("/login", json={"email": "test@example.com", "password": TEST_PASSWORD})
        assert resp.status_code == 200
        row = db.execute("SELECT login_attempts FROM users WHERE id=1").fetchone()
        assert row["login_attempts"] == 0

    def test_failures_are_audited(self, client, db):
        client.post("/login", json={"email": "test@example.com", "password": "Wrong1234"})
        row = db.execute("SELECT action FROM audit_log WHERE user_id=1").fetchone()
        assert row["action"] == "login_failed"


class TestProtectedRoutes:
    def test_unauthenticated_gets_json_401(self, client):
        resp = client.get("/api/homework")
        assert resp.status_code == 401
        assert resp.get_json() == {"message": "Authentication required"}

    def test_logout(self, auth_client):
        assert auth_client.get("/api/me").status_code == 200
        resp = auth_client.get("/logout")
        assert resp.get_json() == {"success": True}
        assert auth_client.get("/api/me").status_code == 401
