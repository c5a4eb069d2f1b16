"""
Domain models for the adaptive Leitner scheduler.

The Card carries its own scheduling rules; everything here is pure state
and arithmetic with no I/O. Time and randomness are passed in by the caller.
"""

import math
import random
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum
from functools import total_ordering

from .constants import (
    BASE_INTERVALS,
    DEFAULT_MAX_RESPONSE_SECONDS,
    DIFFICULTY_FACTORS,
    DIFFICULTY_RANK_WEIGHT,
    EXPECTED_RESPONSE_SECONDS,
    FAST_ANSWER_RATIO,
    MAX_BOX,
    MAX_STREAK_FOR_PROMOTION,
    MIN_ATTEMPTS_FOR_PERFORMANCE,
    MIN_BOX,
    MIN_INTERVAL_DAYS,
    MIN_STREAK_FOR_PROMOTION,
    MIN_SUCCESS_RATE_FOR_PROMOTION,
    NOISE_MIN,
    NOISE_SPAN,
    OVERDUE_DAY_WEIGHT,
    PERFORMANCE_FACTORS,
    POOR_PERFORMANCE_FACTOR,
    PROMOTION_SLOWNESS_LIMIT,
    QUESTION_ID_SEPARATOR,
    RESPONSE_TIME_ALPHA,
    SLOW_ANSWER_RATIO,
    STRICT_PROMOTION_BOX,
)


def make_question_id(topic: str, title: str) -> str:
    """Stable card key for a question: ``"<topic>:<title>"``."""
    return f"{topic}{QUESTION_ID_SEPARATOR}{title}"


def clamp_response_time(seconds: float, limit: float = DEFAULT_MAX_RESPONSE_SECONDS) -> float:
    """Clamp a measured response time into ``[0, limit]``."""
    return min(max(0.0, seconds), limit)


@total_ordering
class Difficulty(Enum):
    """
    Difficulty of a card, ordered EASY < MEDIUM < HARD < VERY_HARD.

    Each member carries a display name and a time factor; the expected
    response time for a card is ``time_factor * 10`` seconds.
    """

    EASY = ("Easy", 0.3)
    MEDIUM = ("Medium", 1.0)
    HARD = ("Hard", 2.0)
    VERY_HARD = ("Very hard", 3.0)

    def __init__(self, display_name: str, time_factor: float):
        self.display_name = display_name
        self.time_factor = time_factor

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    @property
    def interval_factor(self) -> float:
        return DIFFICULTY_FACTORS[self.name]

    @property
    def expected_response_seconds(self) -> float:
        return self.time_factor * EXPECTED_RESPONSE_SECONDS

    def easier(self) -> "Difficulty":
        members = list(type(self))
        return members[max(0, self.rank - 1)]

    def harder(self) -> "Difficulty":
        members = list(type(self))
        return members[min(len(members) - 1, self.rank + 1)]

    def __lt__(self, other):
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self.rank < other.rank


class MergePolicy(Enum):
    """How to resolve a conflict when an imported card id already exists."""

    PREFER_EXISTING = "prefer_existing"
    PREFER_INCOMING = "prefer_incoming"
    PREFER_HIGHER_LEVEL = "prefer_higher_level"
    PREFER_NEWER = "prefer_newer"


@dataclass(frozen=True)
class Question:
    """
    A question as served by the question repository.

    Attributes:
        topic: Topic the question belongs to.
        title: Title, unique within its topic.
        body: Question text.
        answers: Answer options.
        correct_flags: One flag per answer option.
        created_at: When the question was authored, if known.
    """

    topic: str
    title: str
    body: str = ""
    answers: tuple[str, ...] = ()
    correct_flags: tuple[bool, ...] = ()
    created_at: datetime | None = None

    @property
    def question_id(self) -> str:
        return make_question_id(self.topic, self.title)


@dataclass(frozen=True)
class AnswerOutcome:
    """
    A single answered question, as reported by the quiz session.

    Attributes:
        topic: Topic of the question.
        question_title: Title of the question.
        correct: Whether the chosen answer was right.
        answer_time_ms: Time taken to answer, in milliseconds.
        chosen_answer: The answer the user picked, if recorded.
        correct_answer: The expected answer, if recorded.
    """

    topic: str
    question_title: str
    correct: bool
    answer_time_ms: int
    chosen_answer: str | None = None
    correct_answer: str | None = None

    @property
    def question_id(self) -> str:
        return make_question_id(self.topic, self.question_title)

    @property
    def response_time_seconds(self) -> float:
        return self.answer_time_ms / 1000.0


@dataclass
class Card:
    """
    Spaced-repetition state for one question.

    Mutated only through ``apply_result``; ``next_review_date`` is always
    derived from box, difficulty and recent performance.
    """

    question_id: str
    topic: str
    question_title: str
    created_at: datetime = field(default_factory=datetime.now)

    # Leitner state
    box: int = MIN_BOX
    difficulty: Difficulty = Difficulty.MEDIUM

    # Performance tracking
    consecutive_correct: int = 0
    consecutive_wrong: int = 0
    total_attempts: int = 0
    total_correct: int = 0
    average_response_time_seconds: float = 0.0

    # Timing
    last_reviewed_at: datetime | None = None
    next_review_date: date = field(default_factory=date.today)

    @classmethod
    def new(cls, question_id: str, topic: str, title: str, now: datetime | None = None) -> "Card":
        """A fresh card in box 1, due immediately."""
        now = now or datetime.now()
        return cls(
            question_id=question_id,
            topic=topic,
            question_title=title,
            created_at=now,
            next_review_date=now.date(),
        )

    @property
    def level(self) -> int:
        return self.box

    @property
    def success_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.total_correct / self.total_attempts

    def copy(self) -> "Card":
        """Detached copy; every field is an immutable value."""
        return replace(self)

    def apply_result(
        self,
        correct: bool,
        response_time_seconds: float,
        rng: random.Random | None = None,
        now: datetime | None = None,
        max_response_time_seconds: float = DEFAULT_MAX_RESPONSE_SECONDS,
    ) -> None:
        """
        Process one answer and reschedule the card.

        Args:
            correct: Whether the answer was right.
            response_time_seconds: Time taken to answer.
            rng: Source for the interval jitter; a private one is used if omitted.
            now: Review time; defaults to the wall clock.
            max_response_time_seconds: Upper clamp for the response time.
        """
        now = now or datetime.now()
        response_time = clamp_response_time(response_time_seconds, max_response_time_seconds)

        self.total_attempts += 1
        self.last_reviewed_at = now
        self._update_average_response_time(response_time)

        if correct:
            self.total_correct += 1
            self.consecutive_correct += 1
            self.consecutive_wrong = 0

            if self._should_promote(response_time) and self.box < MAX_BOX:
                self.box += 1
                self.consecutive_correct = 0
                self._adjust_difficulty_after_promotion(response_time)
        else:
            self.consecutive_wrong += 1
            self.consecutive_correct = 0
            self._handle_incorrect_answer()

        self._update_next_review_date(rng if rng is not None else random.Random(), now.date())
        self._check_invariants()

    def is_due(self, today: date | None = None) -> bool:
        today = today or date.today()
        return today >= self.next_review_date

    def priority(self, today: date | None = None) -> float:
        """Sort score, higher is more urgent. Not persisted."""
        today = today or date.today()
        score = float(MAX_BOX + 1 - self.box)

        days_overdue = (today - self.next_review_date).days
        if days_overdue > 0:
            score += days_overdue * OVERDUE_DAY_WEIGHT

        score += self.difficulty.rank * DIFFICULTY_RANK_WEIGHT
        return score

    # ---------- rules ----------

    def _should_promote(self, response_time: float) -> bool:
        required = max(MIN_STREAK_FOR_PROMOTION, min(MAX_STREAK_FOR_PROMOTION, self.box))
        if self.consecutive_correct < required:
            return False

        if self.box >= STRICT_PROMOTION_BOX:
            limit = self.difficulty.expected_response_seconds * PROMOTION_SLOWNESS_LIMIT
            if response_time > limit:
                return False
            if self.success_rate < MIN_SUCCESS_RATE_FOR_PROMOTION:
                return False

        return True

    def _adjust_difficulty_after_promotion(self, response_time: float) -> None:
        expected = self.difficulty.expected_response_seconds

        if response_time < expected * FAST_ANSWER_RATIO and self.difficulty is not Difficulty.EASY:
            self.difficulty = self.difficulty.easier()
        elif (
            response_time > expected * SLOW_ANSWER_RATIO
            and self.difficulty is not Difficulty.VERY_HARD
        ):
            self.difficulty = self.difficulty.harder()

    def _handle_incorrect_answer(self) -> None:
        if self.consecutive_wrong == 1:
            # Higher boxes fall further on a first slip
            step = 2 if self.box > 3 else 1
            self.box = max(MIN_BOX, self.box - step)
            if self.difficulty is Difficulty.EASY:
                self.difficulty = Difficulty.MEDIUM
        else:
            self.box = MIN_BOX
            self.difficulty = Difficulty.HARD
            self.consecutive_wrong = 0

    def _update_average_response_time(self, response_time: float) -> None:
        if self.total_attempts == 1:
            self.average_response_time_seconds = response_time
        else:
            self.average_response_time_seconds = (
                RESPONSE_TIME_ALPHA * response_time
                + (1 - RESPONSE_TIME_ALPHA) * self.average_response_time_seconds
            )

    def _performance_factor(self) -> float:
        if self.total_attempts < MIN_ATTEMPTS_FOR_PERFORMANCE:
            return 1.0

        rate = self.success_rate
        for threshold, factor in PERFORMANCE_FACTORS:
            if rate >= threshold:
                return factor
        return POOR_PERFORMANCE_FACTOR

    def _update_next_review_date(self, rng: random.Random, today: date) -> None:
        base_interval = BASE_INTERVALS[self.box - 1]
        noise = NOISE_MIN + rng.random() * NOISE_SPAN

        interval = (
            base_interval * self.difficulty.interval_factor * self._performance_factor() * noise
        )
        # Half-up rounding
        interval_days = max(MIN_INTERVAL_DAYS, math.floor(interval + 0.5))
        self.next_review_date = today + timedelta(days=interval_days)

    def validation_errors(self) -> list[str]:
        """Reasons this card cannot be stored; empty when it is consistent."""
        errors = []
        if not isinstance(self.box, int) or not MIN_BOX <= self.box <= MAX_BOX:
            errors.append(f"box {self.box!r} outside {MIN_BOX}..{MAX_BOX}")
        if not isinstance(self.difficulty, Difficulty):
            errors.append(f"unknown difficulty {self.difficulty!r}")
        counters = (
            self.consecutive_correct,
            self.consecutive_wrong,
            self.total_attempts,
            self.total_correct,
        )
        if any(not isinstance(value, int) or value < 0 for value in counters):
            errors.append("negative or non-integer counter")
        elif self.total_correct > self.total_attempts:
            errors.append("more correct answers than attempts")
        if self.average_response_time_seconds < 0:
            errors.append("negative average response time")
        # Runtime timestamps are naive local time
        for name in ("created_at", "last_reviewed_at"):
            value = getattr(self, name)
            if value is not None and value.tzinfo is not None:
                errors.append(f"{name} carries a timezone")
        return errors

    def _check_invariants(self) -> None:
        assert MIN_BOX <= self.box <= MAX_BOX, f"box out of range: {self.box}"
        assert self.total_correct <= self.total_attempts
        assert self.consecutive_correct == 0 or self.consecutive_wrong == 0


@dataclass
class StoreSnapshot:
    """The minimal store state that is persisted: cards plus counters."""

    cards: dict[str, Card] = field(default_factory=dict)
    total_reviews: int = 0
    last_system_update: date = field(default_factory=date.today)
