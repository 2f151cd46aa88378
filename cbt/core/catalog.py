"""
試験カタログ（試験・問題の作成、公開、一覧）
正解インデックスは管理者向けビューと採点処理以外には出さない
"""
import json
import logging

from .database import INTEGRITY_ERRORS, is_sql_int
from .errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class ExamCatalog:
    """試験・問題管理クラス"""

    def __init__(self, db_manager, default_duration_minutes=30):
        self.db_manager = db_manager
        self.default_duration_minutes = default_duration_minutes

    @staticmethod
    def _exam_view(row):
        return {
            'id': row['id'],
            'title': row['title'],
            'duration_minutes': row['duration_minutes'],
            'published': bool(row['published']),
        }

    @staticmethod
    def _question_view(row, include_answer=False):
        question = {
            'id': row['id'],
            'text': row['text'],
            'options': json.loads(row['options']),
        }
        if include_answer:
            question['exam_id'] = row['exam_id']
            question['answer_index'] = row['answer_index']
        return question

    def get_exam(self, exam_id):
        rows = self.db_manager.execute_query(
            'SELECT id, title, duration_minutes, published FROM exams WHERE id = ?', (exam_id,)
        )
        return self._exam_view(rows[0]) if rows else None

    def _require_exam(self, exam_id):
        exam = self.get_exam(exam_id)
        if exam is None:
            raise NotFoundError('Exam not found')
        return exam

    def create_exam(self, title, duration_minutes=None):
        """試験作成"""
        if not isinstance(title, str) or not title.strip():
            raise ValidationError('title required')
        if duration_minutes is None:
            duration_minutes = self.default_duration_minutes
        elif not is_sql_int(duration_minutes) or duration_minutes <= 0:
            raise ValidationError('duration_minutes must be a positive integer')

        exam_id = self.db_manager.execute_insert(
            'INSERT INTO exams (title, duration_minutes, published) VALUES (?, ?, ?)',
            (title.strip(), duration_minutes, False)
        )
        logger.info(f"Exam created: id={exam_id}")
        return self.get_exam(exam_id)

    def add_question(self, exam_id, text, options, answer_index):
        """問題追加。正解インデックスは選択肢の範囲内であること"""
        if not isinstance(text, str) or not text.strip():
            raise ValidationError('text required')
        if not isinstance(options, list) or len(options) < 2:
            raise ValidationError('options must be a list of at least 2 strings')
        if not all(isinstance(option, str) for option in options):
            raise ValidationError('options must be a list of at least 2 strings')
        if not is_sql_int(answer_index):
            raise ValidationError('answer_index must be an integer')
        if not 0 <= answer_index < len(options):
            raise ValidationError('answer_index out of range')

        self._require_exam(exam_id)
        try:
            question_id = self.db_manager.execute_insert(
                'INSERT INTO questions (exam_id, text, options, answer_index) VALUES (?, ?, ?, ?)',
                (exam_id, text, json.dumps(options, ensure_ascii=False), answer_index)
            )
        except INTEGRITY_ERRORS:
            # 確認後に試験が削除された
            raise NotFoundError('Exam not found')

        rows = self.db_manager.execute_query(
            'SELECT id, exam_id, text, options, answer_index FROM questions WHERE id = ?',
            (question_id,)
        )
        return self._question_view(rows[0], include_answer=True)

    def publish_exam(self, exam_id):
        """公開フラグを立てる（冪等）"""
        self._require_exam(exam_id)
        self.db_manager.execute_query(
            'UPDATE exams SET published = ? WHERE id = ?', (True, exam_id)
        )
        logger.info(f"Exam published: id={exam_id}")

    def delete_exam(self, exam_id):
        """試験削除（問題は連鎖削除される）。受験記録があれば削除不可"""
        self._require_exam(exam_id)
        try:
            self.db_manager.execute_query('DELETE FROM exams WHERE id = ?', (exam_id,))
        except INTEGRITY_ERRORS:
            raise ConflictError('Exam has attempts and cannot be deleted')
        logger.info(f"Exam deleted: id={exam_id}")

    def list_exams(self):
        rows = self.db_manager.execute_query(
            'SELECT id, title, duration_minutes, published FROM exams ORDER BY id'
        )
        return [self._exam_view(row) for row in rows]

    def list_published_exams(self):
        rows = self.db_manager.execute_query(
            'SELECT id, title, duration_minutes, published FROM exams WHERE published = ? ORDER BY id',
            (True,)
        )
        return [self._exam_view(row) for row in rows]

    def list_questions_for_exam(self, exam_id):
        """受験者向け問題一覧（answer_index を含めない）"""
        exam = self.get_exam(exam_id)
        if exam is None or not exam['published']:
            raise NotFoundError('Exam not found')
        rows = self.db_manager.execute_query(
            'SELECT id, text, options FROM questions WHERE exam_id = ? ORDER BY id', (exam_id,)
        )
        return [self._question_view(row) for row in rows]

    def list_questions_with_keys(self, exam_id):
        """管理者向け問題一覧（正解付き）"""
        self._require_exam(exam_id)
        rows = self.db_manager.execute_query(
            'SELECT id, exam_id, text, options, answer_index FROM questions WHERE exam_id = ? ORDER BY id',
            (exam_id,)
        )
        return [self._question_view(row, include_answer=True) for row in rows]

    def get_answer_key(self, exam_id):
        """採点用の (question_id, answer_index) のリスト。id昇順"""
        rows = self.db_manager.execute_query(
            'SELECT id, answer_index FROM questions WHERE exam_id = ? ORDER BY id', (exam_id,)
        )
        return [(row['id'], row['answer_index']) for row in rows]
