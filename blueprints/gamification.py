"""Daily question, stats and power-up shop routes."""

from __future__ import annotations

from datetime import date

from flask import Blueprint, jsonify
from flask_login import login_required

from blueprints.homework import generation_agent
from db_stores import DailyQuestionStoreDB, PowerupInventoryDB, UserStatsDB
from errors import GenerationError
from gamification import POWERUPS
from helpers import current_user_id, parse_body
from schemas import AnswerIn, BuyPowerupIn

bp = Blueprint("gamification", __name__)


def _generate_daily():
    resp = generation_agent().generate_daily_question()
    if not resp.ok:
        raise GenerationError(resp.content)
    return resp.metadata["question"], resp.metadata["topic"]


@bp.route("/api/daily-question")
@login_required
def api_daily_question():
    uid = current_user_id()
    dq = DailyQuestionStoreDB(uid).get_or_create(date.today(), _generate_daily)
    data = dq.to_dict()
    if not dq.answered:
        data.pop("correctAnswer")
        data.pop("explanation")
    return jsonify(data)


@bp.route("/api/daily-question/<int:question_id>/answer", methods=["POST"])
@login_required
def api_daily_answer(question_id):
    uid = current_user_id()
    body = parse_body(AnswerIn)
    return jsonify(DailyQuestionStoreDB(uid).answer(question_id, body.answer, date.today()))


@bp.route("/api/stats")
@login_required
def api_stats():
    return jsonify(UserStatsDB(current_user_id()).get().to_dict())


@bp.route("/api/powerups")
@login_required
def api_powerups():
    owned = PowerupInventoryDB(current_user_id()).list()
    return jsonify([
        {**p.to_dict(), "powerup": POWERUPS.get(p.powerup_id)}
        for p in owned
    ])


@bp.route("/api/shop")
@login_required
def api_shop():
    stats = UserStatsDB(current_user_id()).get()
    return jsonify({"items": list(POWERUPS.values()), "points": stats.points})


@bp.route("/api/shop/buy", methods=["POST"])
@login_required
def api_shop_buy():
    body = parse_body(BuyPowerupIn)
    return jsonify(PowerupInventoryDB(current_user_id()).buy(body.powerup_id))


@bp.route("/api/powerups/<powerup_id>/use", methods=["POST"])
@login_required
def api_powerup_use(powerup_id):
    return jsonify(PowerupInventoryDB(current_user_id()).use(powerup_id))
