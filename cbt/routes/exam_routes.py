"""
受験者向けルーティング（試験一覧・受験開始・解答提出・受験履歴）
"""
from flask import Blueprint, current_app, g, jsonify

from cbt.core.auth import json_body, login_required
from cbt.core.errors import ForbiddenError, NotFoundError
from cbt.core.policy import can_view_attempt

exam_bp = Blueprint('exam', __name__)


@exam_bp.route('/exams')
@login_required
def list_exams():
    """公開中の試験一覧"""
    return jsonify({'exams': current_app.exam_catalog.list_published_exams()})


@exam_bp.route('/exams/<id:exam_id>/questions')
@login_required
def list_questions(exam_id):
    return jsonify({'questions': current_app.exam_catalog.list_questions_for_exam(exam_id)})


@exam_bp.route('/exams/<id:exam_id>/start', methods=['POST'])
@login_required
def start_attempt(exam_id):
    result = current_app.attempt_ledger.start_attempt(exam_id, g.claims.id)
    return jsonify(result)


@exam_bp.route('/exams/<id:exam_id>/submit', methods=['POST'])
@login_required
def submit_attempt(exam_id):
    data = json_body()
    result = current_app.scoring_engine.submit(
        exam_id, data.get('attemptId'), data.get('answers'), g.claims
    )
    return jsonify(result.model_dump())


@exam_bp.route('/attempts')
@login_required
def my_attempts():
    return jsonify({'attempts': current_app.attempt_ledger.list_attempts_for_user(g.claims.id)})


@exam_bp.route('/attempts/<id:attempt_id>')
@login_required
def get_attempt(attempt_id):
    attempt = current_app.attempt_ledger.get_attempt(attempt_id)
    if attempt is None:
        raise NotFoundError('Attempt not found')
    if not can_view_attempt(g.claims, attempt):
        raise ForbiddenError('Attempt belongs to another user')
    return jsonify({'attempt': attempt})
