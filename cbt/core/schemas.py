from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr


class Claims(BaseModel):
    """トークンに埋め込む本人情報"""
    id: StrictInt
    role: Literal['student', 'admin']
    email: StrictStr


class KeyedAnswer(BaseModel):
    model_config = ConfigDict(extra='ignore')

    questionId: StrictInt
    answerIndex: Optional[StrictInt] = None


class KeyedSubmission(BaseModel):
    """問題IDで照合する解答 [{questionId, answerIndex}, ...]"""
    kind: Literal['keyed'] = 'keyed'
    answers: List[KeyedAnswer]


class PositionalSubmission(BaseModel):
    """問題の並び順（id昇順）で照合する解答 [index | null, ...]"""
    kind: Literal['positional'] = 'positional'
    answers: List[Optional[StrictInt]]


Submission = Union[KeyedSubmission, PositionalSubmission]


class ScoreResult(BaseModel):
    score: float
    correct: int
    total: int
