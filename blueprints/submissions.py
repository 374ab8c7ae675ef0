"""Exam submission routes. Students post anonymously; teachers read their own."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from db_stores import HomeworkStoreDB, SubmissionStoreDB
from errors import NotFound
from helpers import current_user_id, parse_body
from schemas import SubmissionCreate

bp = Blueprint("submissions", __name__)


@bp.route("/api/submissions", methods=["POST"])
def api_submission_create():
    body = parse_body(SubmissionCreate)
    hw = HomeworkStoreDB.get(body.homework_id)
    if hw is None:
        raise NotFound("Homework not found")
    sub = SubmissionStoreDB.record(
        hw,
        student_name=body.student_name,
        score=body.score,
        total_questions=body.total_questions,
        answers=body.answers,
        time_spent=body.time_spent,
    )
    return jsonify(sub.to_dict()), 201


@bp.route("/api/submissions")
@login_required
def api_submission_list():
    uid = current_user_id()
    return jsonify([s.to_dict() for s in SubmissionStoreDB(uid).list()])
