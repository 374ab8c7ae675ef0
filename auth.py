"""
User Authentication: Flask-Login blueprint.

Provides register, login, logout and the current-user endpoint.
Accepts JSON or form bodies; always answers with JSON.
Uses werkzeug.security for password hashing.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta

from flask import Blueprint, jsonify
from flask_login import LoginManager, UserMixin, current_user, login_required, login_user, logout_user
from werkzeug.security import check_password_hash, generate_password_hash

from audit import log_event
from database import get_db
from extensions import limiter
from helpers import json_body

LOCKOUT_THRESHOLD = 5
LOCKOUT_MINUTES = 15

auth_bp = Blueprint("auth", __name__)
login_manager = LoginManager()


class User(UserMixin):
    """Wraps a DB user row for Flask-Login."""

    def __init__(self, id: int, name: str, email: str):
        self.id = id
        self.name = name
        self.email = email

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}

    @staticmethod
    def get(user_id: int):
        db = get_db()
        row = db.execute("SELECT id, name, email FROM users WHERE id = ?", (user_id,)).fetchone()
        if row:
            return User(row["id"], row["name"], row["email"])
        return None

    @staticmethod
    def get_by_email(email: str):
        db = get_db()
        return db.execute(
            "SELECT id, name, email, password_hash, login_attempts, locked_until "
            "FROM users WHERE email = ?", (email,),
        ).fetchone()


@login_manager.user_loader
def load_user(user_id):
    return User.get(int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"message": "Authentication required"}), 401


def _validate_password(password: str) -> str | None:
    """Return an error message if password is too weak, else None."""
    if len(password) < 8:
        return "Password must be at least 8 characters."
    if not any(c.isupper() for c in password):
        return "Password must contain at least one uppercase letter."
    if not any(c.islower() for c in password):
        return "Password must contain at least one lowercase letter."
    if not any(c.isdigit() for c in password):
        return "Password must contain at least one digit."
    return None


def _error(message: str, status: int, field: str | None = None):
    body = {"message": message}
    if field:
        body["field"] = field
    return jsonify(body), status


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per 15 minutes")
def login():
    data = json_body()
    email = str(data.get("email", "")).strip().lower()
    password = str(data.get("password", ""))

    if not email or not password:
        return _error("Email and password are required.", 400, "email" if not email else "password")

    row = User.get_by_email(email)
    if not row:
        return _error("Invalid email or password.", 401)

    if row["locked_until"]:
        try:
            remaining = (datetime.fromisoformat(row["locked_until"]) - datetime.now()).total_seconds()
        except ValueError:
            remaining = 0
        if remaining > 0:
            mins = math.ceil(remaining / 60)
            log_event("login_locked", row["id"], f"email={email}")
            return _error(f"Account temporarily locked. Try again in {mins} minute(s).", 403)

    db = get_db()
    if not row["password_hash"] or not check_password_hash(row["password_hash"], password):
        attempts = row["login_attempts"] + 1
        if attempts >= LOCKOUT_THRESHOLD:
            db.execute(
                "UPDATE users SET login_attempts=?, locked_until=? WHERE id=?",
                (attempts, (datetime.now() + timedelta(minutes=LOCKOUT_MINUTES)).isoformat(), row["id"]),
            )
        else:
            db.execute("UPDATE users SET login_attempts=? WHERE id=?", (attempts, row["id"]))
        db.commit()
        log_event("login_failed", row["id"], f"email={email} attempts={attempts}")
        return _error("Invalid email or password.", 401)

    db.execute("UPDATE users SET login_attempts=0, locked_until='' WHERE id=?", (row["id"],))
    db.commit()

    user = User(row["id"], row["name"], row["email"])
    login_user(user, remember=True)
    log_event("login_success", row["id"])
    return jsonify({"user": user.to_dict()})


@auth_bp.route("/register", methods=["POST"])
@limiter.limit("3 per hour")
def register():
    data = json_body()
    name = str(data.get("name", "")).strip()
    email = str(data.get("email", "")).strip().lower()
    password = str(data.get("password", ""))

    for field, value in (("name", name), ("email", email), ("password", password)):
        if not value:
            return _error("All fields are required.", 400, field)

    pw_error = _validate_password(password)
    if pw_error:
        return _error(pw_error, 400, "password")

    if User.get_by_email(email):
        return _error("An account with this email already exists.", 400, "email")

    db = get_db()
    cur = db.execute(
        "INSERT INTO users (name, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
        (name, email, generate_password_hash(password), datetime.now().isoformat()),
    )
    user_id = cur.lastrowid
    db.execute("INSERT OR IGNORE INTO user_stats (user_id) VALUES (?)", (user_id,))
    db.commit()

    log_event("register", user_id, f"email={email}")
    user = User(user_id, name, email)
    login_user(user, remember=True)
    return jsonify({"user": user.to_dict()}), 201


@auth_bp.route("/logout")
def logout():
    uid = current_user.id if current_user.is_authenticated else None
    log_event("logout", uid)
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/api/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})
