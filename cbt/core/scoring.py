"""
採点エンジン

提出された解答は2つの形式を受け付ける:
  - 問題ID指定: [{"questionId": 12, "answerIndex": 1}, ...]
  - 並び順指定: [1, null, 0, ...]  （問題を id 昇順に並べた順）
形式は parse_submission で一度だけ判定し、以降は型で分岐する。
"""
import logging

from pydantic import ValidationError as PydanticValidationError

from .database import is_sql_int
from .errors import ConflictError, NotFoundError, ValidationError
from .policy import require_owner
from .schemas import KeyedSubmission, PositionalSubmission, ScoreResult

logger = logging.getLogger(__name__)


def parse_submission(raw_answers):
    """生の解答ペイロードを KeyedSubmission / PositionalSubmission に変換"""
    if not isinstance(raw_answers, list):
        raise ValidationError('answers array required')

    keyed = bool(raw_answers) and isinstance(raw_answers[0], dict)
    try:
        if keyed:
            return KeyedSubmission(answers=raw_answers)
        return PositionalSubmission(answers=raw_answers)
    except PydanticValidationError:
        raise ValidationError('answers must be all {questionId, answerIndex} objects or all indexes')


def score_submission(answer_key, submission):
    """answer_key: id昇順の (question_id, answer_index) リスト"""
    total = len(answer_key)
    correct = 0

    if isinstance(submission, KeyedSubmission):
        key_map = dict(answer_key)
        chosen = {}
        for answer in submission.answers:
            # 未知の問題IDは無視、同じ問題への複数解答は最後のものを採用
            if answer.questionId in key_map:
                chosen[answer.questionId] = answer.answerIndex
        correct = sum(
            1 for question_id, index in chosen.items() if index == key_map[question_id]
        )
    else:
        answers = submission.answers
        for i, (_, answer_index) in enumerate(answer_key):
            if i < len(answers) and answers[i] == answer_index:
                correct += 1

    score = (correct / total) * 100 if total > 0 else 0.0
    return ScoreResult(score=score, correct=correct, total=total)


class ScoringEngine:

    def __init__(self, catalog, ledger):
        self.catalog = catalog
        self.ledger = ledger

    def submit(self, exam_id, attempt_id, raw_answers, claims):
        """解答を採点し、受験記録に一度だけ書き込む"""
        submission = parse_submission(raw_answers)
        if not is_sql_int(attempt_id):
            raise ValidationError('attemptId required')

        attempt = self.ledger.get_attempt(attempt_id)
        if attempt is None:
            raise NotFoundError('Attempt not found')
        if attempt['exam_id'] != exam_id:
            raise ValidationError('Attempt does not belong to this exam')
        require_owner(claims, attempt)
        if attempt['submitted_at'] is not None:
            raise ConflictError('Attempt already submitted')

        result = score_submission(self.catalog.get_answer_key(exam_id), submission)
        self.ledger.record_submission(attempt_id, raw_answers, result.score)
        logger.info(
            f"Scored attempt {attempt_id} ({submission.kind}): "
            f"{result.correct}/{result.total}"
        )
        return result
