"""
Card store: the keyed collection of cards plus persistence around it.

The store owns every Card. It hands out its own references only to the
application layer; anything leaving the package gets a copy.
"""

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime

from quizleitner.domain.errors import UnrecognizedSnapshotError
from quizleitner.domain.models import Card, MergePolicy, StoreSnapshot
from quizleitner.domain.ports import SnapshotStorage

logger = logging.getLogger(__name__)


@dataclass
class MergeReport:
    """
    Outcome of a merge: how many incoming cards were added, replaced or ignored.

    ``rejected`` counts inconsistent incoming cards that were skipped; they
    are not part of ``total``.
    """

    added: int = 0
    replaced: int = 0
    kept: int = 0
    rejected: int = 0

    @property
    def total(self) -> int:
        return self.added + self.replaced + self.kept


def _pick_newer(current: Card, incoming: Card) -> Card:
    # A card that was never reviewed counts as the oldest possible
    if incoming.last_reviewed_at is None:
        return current
    if current.last_reviewed_at is None:
        return incoming
    return incoming if incoming.last_reviewed_at > current.last_reviewed_at else current


def resolve_conflict(current: Card, incoming: Card, policy: MergePolicy) -> Card:
    """Pick the card that survives when both sides have the same id."""
    if policy is MergePolicy.PREFER_INCOMING:
        return incoming
    if policy is MergePolicy.PREFER_HIGHER_LEVEL:
        if incoming.box != current.box:
            return incoming if incoming.box > current.box else current
        return _pick_newer(current, incoming)
    if policy is MergePolicy.PREFER_NEWER:
        return _pick_newer(current, incoming)
    return current


class CardStore:
    """
    In-memory map of question id to Card, with snapshot save/load.

    Inserts and snapshot capture happen under a lock; mutating an existing
    card does not, so callers serialize work on the same card themselves.
    """

    def __init__(self, storage: SnapshotStorage | None = None, autosave: bool = True):
        """
        Args:
            storage: Where snapshots go. Without one the store is memory-only.
            autosave: Persist after each merge; the scheduler also honours it.
        """
        self._storage = storage
        self.autosave = autosave
        self._lock = threading.RLock()
        self._cards: dict[str, Card] = {}
        self._total_reviews = 0
        self._last_system_update = date.today()

    def __len__(self) -> int:
        return len(self._cards)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._cards

    @property
    def total_reviews(self) -> int:
        return self._total_reviews

    @property
    def last_system_update(self) -> date:
        return self._last_system_update

    def get(self, question_id: str) -> Card | None:
        return self._cards.get(question_id)

    def cards(self) -> list[Card]:
        """Stored cards, as a list detached from the underlying map."""
        with self._lock:
            return list(self._cards.values())

    def get_or_create(
        self, question_id: str, topic: str, title: str, now: datetime | None = None
    ) -> Card:
        with self._lock:
            card = self._cards.get(question_id)
            if card is None:
                card = Card.new(question_id, topic, title, now=now)
                self._cards[question_id] = card
                logger.debug(f"Created card {question_id!r}")
            return card

    def count_review(self) -> None:
        with self._lock:
            self._total_reviews += 1

    def merge_cards(
        self, incoming: Mapping[str, Card], policy: MergePolicy, now: datetime | None = None
    ) -> MergeReport:
        """
        Merge externally supplied cards into the store.

        Ids not yet present are inserted; conflicts are resolved per policy.
        Inconsistent cards are skipped with a warning. Persists once after
        all entries are processed.

        Args:
            incoming: Cards keyed by question id.
            policy: Conflict resolution policy.
            now: Time recorded as the last system update on save.

        Returns:
            Counts of added, replaced, kept and rejected cards.
        """
        report = MergeReport()
        if not incoming:
            return report

        with self._lock:
            for question_id, card in incoming.items():
                errors = card.validation_errors()
                if errors:
                    logger.warning(f"Skipping merged card {question_id!r}: {'; '.join(errors)}")
                    report.rejected += 1
                    continue

                current = self._cards.get(question_id)
                if current is None:
                    self._cards[question_id] = card.copy()
                    report.added += 1
                    continue

                chosen = resolve_conflict(current, card, policy)
                if chosen is current:
                    report.kept += 1
                else:
                    self._cards[question_id] = chosen.copy()
                    report.replaced += 1

        logger.info(
            f"Merged {report.total} cards ({policy.name}): "
            f"added={report.added} replaced={report.replaced} kept={report.kept} "
            f"rejected={report.rejected}"
        )
        if self.autosave and report.total:
            self.save(now=now)
        return report

    # ---------- persistence ----------

    def snapshot(self) -> StoreSnapshot:
        """Consistent copy of the persisted state."""
        with self._lock:
            return StoreSnapshot(
                cards={key: card.copy() for key, card in self._cards.items()},
                total_reviews=self._total_reviews,
                last_system_update=self._last_system_update,
            )

    def save(self, now: datetime | None = None) -> bool:
        """
        Write a snapshot. Failures are logged, never raised.

        Args:
            now: Time recorded as the last system update; defaults to the wall clock.

        Returns:
            True if the snapshot reached storage.
        """
        if self._storage is None:
            return False

        with self._lock:
            self._last_system_update = (now or datetime.now()).date()
            snapshot = self.snapshot()
            try:
                self._storage.write(snapshot)
            except (OSError, ValueError) as e:
                logger.error(f"Could not save Leitner state, keeping it in memory only: {e}")
                return False
        return True

    def load(self, now: datetime | None = None) -> None:
        """
        Replace in-memory state with the stored snapshot.

        A missing snapshot is a first run. A corrupt one is deleted and the
        store starts empty; an unreadable one is left alone.
        """
        if self._storage is None:
            return

        try:
            snapshot = self._storage.read()
        except UnrecognizedSnapshotError as e:
            logger.warning(f"Discarding corrupt Leitner state: {e}")
            try:
                self._storage.delete()
            except OSError as delete_error:
                logger.error(f"Unable to remove corrupt Leitner state: {delete_error}")
            self._replace_state(StoreSnapshot(last_system_update=(now or datetime.now()).date()))
            return
        except OSError as e:
            logger.error(f"Could not read Leitner state, starting empty: {e}")
            self._replace_state(StoreSnapshot(last_system_update=(now or datetime.now()).date()))
            return

        if snapshot is None:
            logger.info("No saved Leitner state, starting fresh")
            return

        self._replace_state(snapshot)
        logger.info(f"Loaded {len(snapshot.cards)} cards, {snapshot.total_reviews} reviews")

    def reset(self, now: datetime | None = None) -> None:
        """Drop every card and counter and delete the stored snapshot."""
        self._replace_state(StoreSnapshot(last_system_update=(now or datetime.now()).date()))
        if self._storage is None:
            return
        try:
            self._storage.delete()
        except OSError as e:
            logger.error(f"Could not delete saved Leitner state: {e}")
        logger.info("Leitner state reset")

    def _replace_state(self, snapshot: StoreSnapshot) -> None:
        with self._lock:
            self._cards = dict(snapshot.cards)
            self._total_reviews = snapshot.total_reviews
            self._last_system_update = snapshot.last_system_update
