"""quizleitner: adaptive Leitner scheduling for quiz questions."""

__version__ = "0.1.0"

from quizleitner.application import CardStore, LeitnerScheduler, MergeReport
from quizleitner.application.factory import build_scheduler
from quizleitner.domain import AnswerOutcome, Card, Difficulty, MergePolicy, Question

__all__ = [
    "AnswerOutcome",
    "Card",
    "CardStore",
    "Difficulty",
    "LeitnerScheduler",
    "MergePolicy",
    "MergeReport",
    "Question",
    "build_scheduler",
]
