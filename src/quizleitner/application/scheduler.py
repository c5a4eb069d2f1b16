"""
Leitner Scheduler: application layer orchestrator.

Feeds answer outcomes into the card store and answers the read-side
queries: which questions are due, in what order, and how cards spread
across levels.
"""

import logging
import random
import threading
from collections.abc import Callable, Mapping
from datetime import date, datetime
from pathlib import Path

from quizleitner.domain.constants import ALL_TOPICS, DEFAULT_MAX_RESPONSE_SECONDS
from quizleitner.domain.errors import UnrecognizedSnapshotError
from quizleitner.domain.models import AnswerOutcome, Card, MergePolicy, Question, make_question_id
from quizleitner.domain.ports import QuestionRepository, SnapshotStorage

from .card_store import CardStore, MergeReport
from .stats import LevelStatistics, TopicSummary

logger = logging.getLogger(__name__)


class LeitnerScheduler:
    """
    Application service for recording answers and selecting due questions.

    Follows Dependency Inversion: depends on the QuestionRepository port and
    on a CardStore, not on concrete adapters. Cards returned to callers are
    copies.
    """

    def __init__(
        self,
        store: CardStore,
        questions: QuestionRepository,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
        all_topics_label: str = ALL_TOPICS,
        max_response_time_seconds: float = DEFAULT_MAX_RESPONSE_SECONDS,
    ):
        """
        Args:
            store: The card store; the scheduler never replaces it.
            questions: The repository (port) for enumerating questions.
            rng: Source for interval jitter; seed it for reproducible dates.
            clock: Returns the current time; defaults to ``datetime.now``.
            all_topics_label: Topic name that means "no topic filter".
            max_response_time_seconds: Upper clamp for recorded response times.
        """
        self._store = store
        self._questions = questions
        self._rng = rng or random.Random()
        self._clock = clock or datetime.now
        self._stats = LevelStatistics(all_topics_label)
        self._max_response_time = max_response_time_seconds

        self._card_locks: dict[str, threading.Lock] = {}
        self._card_locks_guard = threading.Lock()

    @property
    def store(self) -> CardStore:
        return self._store

    @property
    def total_cards(self) -> int:
        return len(self._store)

    @property
    def total_reviews(self) -> int:
        return self._store.total_reviews

    @property
    def last_system_update(self) -> date:
        return self._store.last_system_update

    def _today(self) -> date:
        return self._clock().date()

    def _lock_for(self, question_id: str) -> threading.Lock:
        with self._card_locks_guard:
            lock = self._card_locks.get(question_id)
            if lock is None:
                lock = self._card_locks[question_id] = threading.Lock()
            return lock

    # ---------- write side ----------

    def record_outcome(self, outcome: AnswerOutcome) -> None:
        """
        Apply an answer to its card, creating the card on first sight.

        Persists afterwards unless the store has autosave disabled.
        """
        seconds = outcome.response_time_seconds
        if not 0.0 <= seconds <= self._max_response_time:
            logger.warning(
                f"Response time {seconds:.1f}s for {outcome.question_id!r} is out of range, "
                f"clamping to [0, {self._max_response_time:.0f}]"
            )

        now = self._clock()
        question_id = outcome.question_id
        with self._lock_for(question_id):
            card = self._store.get_or_create(
                question_id, outcome.topic, outcome.question_title, now=now
            )
            card.apply_result(
                outcome.correct,
                seconds,
                rng=self._rng,
                now=now,
                max_response_time_seconds=self._max_response_time,
            )
            logger.debug(
                f"[review] {question_id} correct={outcome.correct} box={card.box} "
                f"difficulty={card.difficulty.name} next={card.next_review_date}"
            )

        self._store.count_review()
        if self._store.autosave:
            self._store.save(now=now)

    def merge_cards(self, incoming: Mapping[str, Card], policy: MergePolicy) -> MergeReport:
        return self._store.merge_cards(incoming, policy, now=self._clock())

    def import_snapshot(
        self,
        source: SnapshotStorage | Path | str,
        policy: MergePolicy = MergePolicy.PREFER_HIGHER_LEVEL,
    ) -> MergeReport:
        """
        Merge the cards of another snapshot into this store.

        Args:
            source: A snapshot file path, or any SnapshotStorage.
            policy: Conflict resolution policy.

        Returns:
            The merge report; empty if the source was missing or unreadable.
            The source itself is never modified.
        """
        if not isinstance(source, SnapshotStorage):
            from quizleitner.infrastructure.persistence import SnapshotFileStorage

            source = SnapshotFileStorage(source)

        try:
            snapshot = source.read()
        except (OSError, UnrecognizedSnapshotError) as e:
            logger.warning(f"Skipping Leitner import from {source}: {e}")
            return MergeReport()

        if snapshot is None:
            logger.info(f"Nothing to import from {source}")
            return MergeReport()

        return self._store.merge_cards(snapshot.cards, policy, now=self._clock())

    def save(self) -> bool:
        return self._store.save(now=self._clock())

    def reset_system(self) -> None:
        """Forget all progress. Cards come back only from new outcomes."""
        self._store.reset(now=self._clock())
        with self._card_locks_guard:
            self._card_locks.clear()

    # ---------- read side ----------

    def due_questions(self, topic: str) -> list[Question]:
        """
        Due questions of a topic, most urgent first.

        Questions without a card are not due; no card is created here.
        Equal priorities keep repository order.
        """
        today = self._today()
        return self._by_priority(self._due_in_topic(topic, today))

    def all_due_questions(self) -> list[Question]:
        """Due questions across every topic, most urgent first."""
        today = self._today()
        due: list[tuple[Question, float]] = []
        for topic in self._questions.list_topics():
            due.extend(self._due_in_topic(topic, today))
        return self._by_priority(due)

    def _due_in_topic(self, topic: str, today: date) -> list[tuple[Question, float]]:
        due = []
        titles = self._questions.list_question_titles(topic)
        for index in range(len(titles)):
            question = self._questions.get_question(topic, index)
            if question is None:
                continue

            card = self._store.get(question.question_id)
            if card is not None and card.is_due(today):
                due.append((question, card.priority(today)))
        return due

    @staticmethod
    def _by_priority(due: list[tuple[Question, float]]) -> list[Question]:
        ordered = sorted(due, key=lambda pair: pair[1], reverse=True)
        return [question for question, _ in ordered]

    def get_card(self, topic: str, title: str) -> Card | None:
        card = self._store.get(make_question_id(topic, title))
        return card.copy() if card is not None else None

    def cards_for_topic(self, topic: str | None = None) -> list[Card]:
        """Copies of the topic's cards, sorted by question title."""
        cards = self._stats.filter(self._store.cards(), topic)
        return sorted((card.copy() for card in cards), key=lambda c: c.question_title)

    def statistics_by_level(self, topic: str | None = None) -> dict[int, list[Card]]:
        levels = self._stats.by_level(self._store.cards(), topic)
        return {level: [card.copy() for card in cards] for level, cards in levels.items()}

    def all_statistics(self) -> dict[int, list[Card]]:
        return self.statistics_by_level(None)

    def due_count_by_level(self, topic: str | None = None) -> dict[int, int]:
        return self._stats.due_count_by_level(self._store.cards(), topic, today=self._today())

    def due_cards_count(self, topic: str | None = None) -> int:
        return sum(self.due_count_by_level(topic).values())

    def topic_summary(self, topic: str | None = None) -> TopicSummary:
        return self._stats.summarize(self._store.cards(), topic, today=self._today())
