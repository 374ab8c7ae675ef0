"""Homework generation, listing and sharing routes."""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify
from flask_login import login_required

from agents.homework_agent import HomeworkGenAgent
from audit import log_event
from db_stores import HomeworkStoreDB, SubmissionStoreDB
from errors import GenerationError, NotFound
from exam_session import resolve_settings
from extensions import limiter
from helpers import current_user_id, parse_body
from schemas import HomeworkCreate

logger = logging.getLogger(__name__)

bp = Blueprint("homework", __name__)


def generation_agent() -> HomeworkGenAgent:
    return HomeworkGenAgent(
        provider=current_app.config.get("LLM_PROVIDER", "openai"),
        model=current_app.config.get("LLM_MODEL", ""),
    )


def _owned_or_404(uid: int, homework_id: int):
    hw = HomeworkStoreDB(uid).get_owned(homework_id)
    if hw is None:
        raise NotFound("Homework not found")
    return hw


@bp.route("/api/homework", methods=["POST"])
@login_required
@limiter.limit("20 per hour")
def api_homework_create():
    uid = current_user_id()
    body = parse_body(HomeworkCreate)

    resp = generation_agent().generate_homework(body.topic, body.difficulty, body.type)
    if not resp.ok:
        raise GenerationError(resp.content)

    hw = HomeworkStoreDB(uid).create(
        topic=body.topic,
        difficulty=body.difficulty,
        hw_type=body.type,
        questions=resp.metadata["questions"],
        timer_minutes=body.timer_minutes,
        question_count=body.question_count,
        anti_cheat=body.anti_cheat,
    )
    logger.info("User %s created homework %s (%d questions)", uid, hw.id, len(hw.questions))
    return jsonify(hw.to_dict()), 201


@bp.route("/api/homework")
@login_required
def api_homework_list():
    uid = current_user_id()
    return jsonify([hw.to_dict() for hw in HomeworkStoreDB(uid).list()])


@bp.route("/api/homework/<int:homework_id>")
def api_homework_get(homework_id):
    hw = HomeworkStoreDB.get(homework_id)
    if hw is None:
        raise NotFound("Homework not found")
    return jsonify(hw.to_dict())


@bp.route("/api/homework/<int:homework_id>", methods=["DELETE"])
@login_required
def api_homework_delete(homework_id):
    uid = current_user_id()
    if not HomeworkStoreDB(uid).delete(homework_id):
        raise NotFound("Homework not found")
    log_event("homework_delete", uid, f"homework_id={homework_id}")
    return jsonify({"success": True})


@bp.route("/api/homework/<int:homework_id>/share")
@login_required
def api_homework_share(homework_id):
    hw = _owned_or_404(current_user_id(), homework_id)
    base = current_app.config.get("BASE_URL", "").rstrip("/")
    return jsonify({
        "homeworkId": hw.id,
        "url": f"{base}/homework/{hw.id}?student=true",
        "settings": resolve_settings(hw).to_dict(),
    })


@bp.route("/api/homework/<int:homework_id>/submissions")
@login_required
def api_homework_submissions(homework_id):
    uid = current_user_id()
    _owned_or_404(uid, homework_id)
    subs = SubmissionStoreDB(uid).by_homework(homework_id)
    return jsonify([s.to_dict() for s in subs])
