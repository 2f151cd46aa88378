"""
受験記録（Attempt）の管理
Open（submitted_at が NULL）から Closed へは一度だけ遷移する
"""
import json
import logging
from datetime import datetime, timezone

from .errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc).isoformat(timespec='seconds')


class AttemptLedger:

    def __init__(self, db_manager, catalog):
        self.db_manager = db_manager
        self.catalog = catalog

    @staticmethod
    def _attempt_view(row):
        answers = row['answers']
        return {
            'id': row['id'],
            'exam_id': row['exam_id'],
            'user_id': row['user_id'],
            'started_at': row['started_at'],
            'submitted_at': row['submitted_at'],
            'score': row['score'],
            'answers': json.loads(answers) if answers is not None else None,
        }

    def start_attempt(self, exam_id, user_id):
        """新しい受験記録を作成する（同じ試験を何度でも受験できる）"""
        exam = self.catalog.get_exam(exam_id)
        if exam is None or not exam['published']:
            raise NotFoundError('Exam not found')

        started_at = _now()
        attempt_id = self.db_manager.execute_insert(
            'INSERT INTO attempts (exam_id, user_id, started_at) VALUES (?, ?, ?)',
            (exam_id, user_id, started_at)
        )
        logger.info(f"Attempt started: id={attempt_id} exam={exam_id} user={user_id}")
        return {'attemptId': attempt_id, 'started_at': started_at}

    def get_attempt(self, attempt_id):
        rows = self.db_manager.execute_query(
            'SELECT id, exam_id, user_id, started_at, submitted_at, score, answers '
            'FROM attempts WHERE id = ?',
            (attempt_id,)
        )
        return self._attempt_view(rows[0]) if rows else None

    def record_submission(self, attempt_id, raw_answers, score):
        """解答・提出時刻・得点を一つの UPDATE で書き込む。提出済みなら拒否"""
        updated = self.db_manager.execute_query(
            'UPDATE attempts SET answers = ?, submitted_at = ?, score = ? '
            'WHERE id = ? AND submitted_at IS NULL',
            (json.dumps(raw_answers, ensure_ascii=False), _now(), score, attempt_id)
        )
        if updated == 0:
            if self.get_attempt(attempt_id) is None:
                raise NotFoundError('Attempt not found')
            raise ConflictError('Attempt already submitted')
        logger.info(f"Attempt submitted: id={attempt_id} score={score}")

    def list_attempts_for_user(self, user_id):
        rows = self.db_manager.execute_query(
            'SELECT id, exam_id, user_id, started_at, submitted_at, score, answers '
            'FROM attempts WHERE user_id = ? ORDER BY id',
            (user_id,)
        )
        return [self._attempt_view(row) for row in rows]

    def list_attempts_for_exam(self, exam_id):
        """エクスポート用。ユーザー名とメールを結合し、answers は生のJSON文字列のまま返す"""
        return self.db_manager.execute_query(
            'SELECT a.id, a.started_at, a.submitted_at, a.score, a.answers, '
            'u.name, u.email '
            'FROM attempts a JOIN users u ON u.id = a.user_id '
            'WHERE a.exam_id = ? ORDER BY a.id',
            (exam_id,)
        )
