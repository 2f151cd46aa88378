import pytest

from cbt.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from cbt.core.schemas import Claims, KeyedSubmission, PositionalSubmission
from cbt.core.scoring import ScoringEngine, parse_submission, score_submission

ANSWER_KEY = [(10, 1), (11, 0), (12, 2)]


def test_parse_submission_shapes():
    assert isinstance(parse_submission([]), PositionalSubmission)
    assert isinstance(parse_submission([1, None, 2]), PositionalSubmission)

    keyed = parse_submission([{'questionId': 10, 'answerIndex': 1, 'extra': 'ignored'}])
    assert isinstance(keyed, KeyedSubmission)
    assert keyed.answers[0].questionId == 10


@pytest.mark.parametrize('raw', [
    None,
    {'questionId': 1, 'answerIndex': 0},
    'abc',
    [{'questionId': 10, 'answerIndex': 1}, 2],
    [1, {'questionId': 10, 'answerIndex': 1}],
    [{'answerIndex': 1}],
    ['1'],
    [True],
    [{'questionId': '10', 'answerIndex': 1}],
])
def test_parse_submission_rejects_bad_payloads(raw):
    with pytest.raises(ValidationError):
        parse_submission(raw)


def test_keyed_all_correct():
    submission = parse_submission([
        {'questionId': 12, 'answerIndex': 2},
        {'questionId': 10, 'answerIndex': 1},
        {'questionId': 11, 'answerIndex': 0},
    ])

    result = score_submission(ANSWER_KEY, submission)

    assert (result.score, result.correct, result.total) == (100, 3, 3)


def test_keyed_ignores_unknown_ids_and_counts_each_question_once():
    submission = parse_submission([
        {'questionId': 10, 'answerIndex': 1},
        {'questionId': 10, 'answerIndex': 1},
        {'questionId': 999, 'answerIndex': 0},
        {'questionId': 11, 'answerIndex': 0},
        {'questionId': 11, 'answerIndex': 1},
    ])

    result = score_submission(ANSWER_KEY, submission)

    assert result.correct == 1
    assert result.total == 3
    assert result.score == pytest.approx(100 / 3)


def test_keyed_null_answer_is_incorrect():
    result = score_submission(ANSWER_KEY, parse_submission([{'questionId': 10}]))

    assert result.correct == 0


def test_positional_all_correct():
    result = score_submission(ANSWER_KEY, parse_submission([1, 0, 2]))

    assert (result.score, result.correct, result.total) == (100, 3, 3)


@pytest.mark.parametrize('answers,correct', [
    ([1], 1),
    ([1, 0, 2, 3, 4], 3),
    ([None, 0, 7], 1),
    ([0, 1, 0], 0),
])
def test_positional_length_mismatch_and_out_of_range(answers, correct):
    result = score_submission(ANSWER_KEY, parse_submission(answers))

    assert result.correct == correct
    assert result.total == 3


def test_empty_submission_scores_zero():
    assert score_submission(ANSWER_KEY, parse_submission([])).score == 0
    result = score_submission([], parse_submission([]))
    assert result.score == 0.0
    assert result.total == 0


class FakeCatalog:
    def __init__(self, answer_key):
        self.answer_key = answer_key
        self.requested = []

    def get_answer_key(self, exam_id):
        self.requested.append(exam_id)
        return self.answer_key


class FakeLedger:
    def __init__(self, attempts):
        self.attempts = attempts
        self.recorded = []

    def get_attempt(self, attempt_id):
        return self.attempts.get(attempt_id)

    def record_submission(self, attempt_id, raw_answers, score):
        self.recorded.append((attempt_id, raw_answers, score))


STUDENT = Claims(id=7, role='student', email='s@example.com')


def make_engine(submitted_at=None):
    attempt = {'id': 1, 'exam_id': 3, 'user_id': 7, 'submitted_at': submitted_at}
    catalog = FakeCatalog(ANSWER_KEY)
    ledger = FakeLedger({1: attempt})
    return ScoringEngine(catalog, ledger), catalog, ledger


def test_engine_scores_and_records_raw_payload():
    engine, catalog, ledger = make_engine()
    raw = [{'questionId': 10, 'answerIndex': 1}]

    result = engine.submit(3, 1, raw, STUDENT)

    assert (result.correct, result.total) == (1, 3)
    assert catalog.requested == [3]
    assert ledger.recorded == [(1, raw, result.score)]


def test_engine_rejects_before_writing():
    engine, _, ledger = make_engine()

    with pytest.raises(NotFoundError):
        engine.submit(3, 2, [], STUDENT)
    with pytest.raises(ValidationError):
        engine.submit(4, 1, [], STUDENT)
    with pytest.raises(ValidationError):
        engine.submit(3, None, [], STUDENT)
    with pytest.raises(ValidationError):
        engine.submit(3, 10 ** 20, [], STUDENT)
    with pytest.raises(ValidationError):
        engine.submit(3, True, [], STUDENT)
    with pytest.raises(ValidationError):
        engine.submit(3, 1, 'not-a-list', STUDENT)
    with pytest.raises(ForbiddenError):
        engine.submit(3, 1, [], Claims(id=8, role='student', email='o@example.com'))

    assert ledger.recorded == []


def test_engine_rejects_closed_attempt():
    engine, _, ledger = make_engine(submitted_at='2026-01-01T00:00:00+00:00')

    with pytest.raises(ConflictError):
        engine.submit(3, 1, [1, 0, 2], STUDENT)
    assert ledger.recorded == []
