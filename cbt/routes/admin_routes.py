"""
管理者用の試験・問題管理
"""
import csv
import io

from flask import Blueprint, Response, current_app, jsonify

from cbt.core.auth import admin_required, json_body
from cbt.core.errors import InternalError, NotFoundError

admin_bp = Blueprint('admin', __name__)

EXPORT_HEADER = ['ID', 'User', 'Email', 'Score', 'Started At', 'Submitted At', 'Answers']


@admin_bp.route('/admin/exams', methods=['POST'])
@admin_required
def create_exam():
    data = json_body()
    exam = current_app.exam_catalog.create_exam(
        data.get('title'), data.get('duration_minutes')
    )
    return jsonify({'exam': exam})


@admin_bp.route('/admin/exams', methods=['GET'])
@admin_required
def list_exams():
    return jsonify({'exams': current_app.exam_catalog.list_exams()})


@admin_bp.route('/admin/exams/<id:exam_id>', methods=['DELETE'])
@admin_required
def delete_exam(exam_id):
    current_app.exam_catalog.delete_exam(exam_id)
    return jsonify({'ok': True})


@admin_bp.route('/admin/exams/<id:exam_id>/questions', methods=['POST'])
@admin_required
def add_question(exam_id):
    data = json_body()
    question = current_app.exam_catalog.add_question(
        exam_id, data.get('text'), data.get('options'), data.get('answer_index')
    )
    return jsonify({'question': question})


@admin_bp.route('/admin/exams/<id:exam_id>/questions', methods=['GET'])
@admin_required
def list_questions(exam_id):
    """正解インデックス付きの問題一覧"""
    return jsonify({'questions': current_app.exam_catalog.list_questions_with_keys(exam_id)})


@admin_bp.route('/admin/exams/<id:exam_id>/publish', methods=['POST'])
@admin_required
def publish_exam(exam_id):
    current_app.exam_catalog.publish_exam(exam_id)
    return jsonify({'ok': True})


@admin_bp.route('/admin/export/<id:exam_id>')
@admin_required
def export_attempts(exam_id):
    """受験結果をCSVでダウンロード"""
    if current_app.exam_catalog.get_exam(exam_id) is None:
        raise NotFoundError('Exam not found')

    try:
        attempts = current_app.attempt_ledger.list_attempts_for_exam(exam_id)
        body = _attempts_to_csv(attempts)
    except Exception as e:
        current_app.logger.error(f"Export failed for exam {exam_id}: {e}")
        raise InternalError('Export failed')

    return Response(
        body,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename=export_exam_{exam_id}.csv'}
    )


def _attempts_to_csv(attempts):
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_HEADER)
    for a in attempts:
        writer.writerow([
            a['id'], a['name'], a['email'], a['score'],
            a['started_at'], a['submitted_at'], a['answers'],
        ])
    return buffer.getvalue()
