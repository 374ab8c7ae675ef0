"""Vocabulary bank routes."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from db_stores import VocabularyStoreDB
from errors import NotFound
from helpers import current_user_id, parse_body
from schemas import VocabularyCreate

bp = Blueprint("vocabulary", __name__)


@bp.route("/api/vocabulary")
@login_required
def api_vocabulary_list():
    words = VocabularyStoreDB(current_user_id()).list()
    return jsonify([w.to_dict() for w in words])


@bp.route("/api/vocabulary", methods=["POST"])
@login_required
def api_vocabulary_add():
    body = parse_body(VocabularyCreate)
    word = VocabularyStoreDB(current_user_id()).add(
        body.word, body.definition, body.example, body.category
    )
    return jsonify(word.to_dict()), 201


@bp.route("/api/vocabulary/<int:word_id>", methods=["DELETE"])
@login_required
def api_vocabulary_delete(word_id):
    if not VocabularyStoreDB(current_user_id()).delete(word_id):
        raise NotFound("Word not found")
    return jsonify({"success": True})
