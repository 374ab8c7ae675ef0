"""Exam session routes: the student (or preview) side of a homework.

Sessions are identified by an opaque token and held by the ExamSessionManager
in extensions. Exam settings always come from the stored homework; anything
the client sends about timers or question counts is ignored.
"""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify

from db_stores import HomeworkStoreDB, SubmissionStoreDB
from errors import NotFound
from extensions import exam_sessions
from helpers import json_body, parse_body
from models import Homework
from schemas import AnswerIn, SessionEventIn, StartSessionIn

logger = logging.getLogger(__name__)

bp = Blueprint("sessions", __name__)


def _submitter(homework: Homework):
    """Persist a finished attempt. May run on the countdown thread."""
    app = current_app._get_current_object()

    def submit(payload: dict) -> None:
        with app.app_context():
            SubmissionStoreDB.record(
                homework,
                student_name=payload["student_name"],
                score=payload["score"],
                total_questions=payload["total_questions"],
                answers=payload["answers"],
                time_spent=payload["time_spent"],
            )

    return submit


def _session_json(token: str, session, status: int = 200, **extra):
    body = session.snapshot()
    body.update(extra)
    body["token"] = token
    body["notices"] = session.drain_notices()
    body["celebrate"] = session.consume_celebration()
    return jsonify(body), status


@bp.route("/api/homework/<int:homework_id>/sessions", methods=["POST"])
def api_session_open(homework_id):
    hw = HomeworkStoreDB.get(homework_id)
    if hw is None:
        raise NotFound("Homework not found")
    student = bool(json_body().get("student", False))
    token, session = exam_sessions.open(hw, student=student, submit=_submitter(hw))
    return _session_json(token, session, 201)


@bp.route("/api/sessions/<token>")
def api_session_get(token):
    return _session_json(token, exam_sessions.get(token))


@bp.route("/api/sessions/<token>", methods=["DELETE"])
def api_session_close(token):
    exam_sessions.close(token)
    return jsonify({"success": True})


@bp.route("/api/sessions/<token>/start", methods=["POST"])
def api_session_start(token):
    session = exam_sessions.get(token)
    name = parse_body(StartSessionIn).student_name if session.student else None
    session.start(name)
    return _session_json(token, session)


@bp.route("/api/sessions/<token>/answer", methods=["POST"])
def api_session_answer(token):
    session = exam_sessions.get(token)
    correct = session.submit_answer(parse_body(AnswerIn).answer)
    return _session_json(token, session, correct=correct)


@bp.route("/api/sessions/<token>/next", methods=["POST"])
def api_session_next(token):
    session = exam_sessions.get(token)
    session.advance()
    return _session_json(token, session)


@bp.route("/api/sessions/<token>/restart", methods=["POST"])
def api_session_restart(token):
    session = exam_sessions.get(token)
    session.restart()
    return _session_json(token, session)


@bp.route("/api/sessions/<token>/events", methods=["POST"])
def api_session_event(token):
    session = exam_sessions.get(token)
    verdict = session.handle_event(parse_body(SessionEventIn).type)
    body = verdict.to_dict()
    body["notices"] = session.drain_notices()
    return jsonify(body)
