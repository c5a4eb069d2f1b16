# Domain Package
from .errors import SnapshotError, UnrecognizedSnapshotError
from .models import (
    AnswerOutcome,
    Card,
    Difficulty,
    MergePolicy,
    Question,
    StoreSnapshot,
    make_question_id,
)
from .ports import QuestionRepository, SnapshotStorage

__all__ = [
    "AnswerOutcome",
    "Card",
    "Difficulty",
    "MergePolicy",
    "Question",
    "QuestionRepository",
    "SnapshotError",
    "SnapshotStorage",
    "StoreSnapshot",
    "UnrecognizedSnapshotError",
    "make_question_id",
]
