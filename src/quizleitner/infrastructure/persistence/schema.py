"""
On-disk snapshot schema.

Snapshots are JSON documents tagged with ``format_version``. Each known
version has a reader that turns the payload into a ``StoreSnapshot``;
anything else is rejected as unrecognized.
"""

import json
from collections.abc import Callable
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from quizleitner.domain.constants import MAX_BOX, MIN_BOX, QUESTION_ID_SEPARATOR
from quizleitner.domain.errors import UnrecognizedSnapshotError
from quizleitner.domain.models import Card, Difficulty, StoreSnapshot

CURRENT_FORMAT_VERSION = 2

DifficultyName = Literal["EASY", "MEDIUM", "HARD", "VERY_HARD"]


def _as_local_naive(value: datetime | None) -> datetime | None:
    """Convert timezone-aware timestamps to naive local time, as cards use at runtime."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class CardRecord(BaseModel):
    """
    Serialized form of a Card.

    Every field has a default so that records written by older versions,
    which lack newer fields, still load.
    """

    model_config = ConfigDict(extra="ignore")

    question_id: str | None = None
    topic: str | None = None
    question_title: str | None = None
    created_at: datetime | None = None

    box: int = Field(default=MIN_BOX, ge=MIN_BOX, le=MAX_BOX)
    difficulty: DifficultyName = "MEDIUM"

    consecutive_correct: int = Field(default=0, ge=0)
    consecutive_wrong: int = Field(default=0, ge=0)
    total_attempts: int = Field(default=0, ge=0)
    total_correct: int = Field(default=0, ge=0)
    average_response_time_seconds: float = Field(default=0.0, ge=0.0)

    last_reviewed_at: datetime | None = None
    next_review_date: date | None = None

    @classmethod
    def from_card(cls, card: Card) -> "CardRecord":
        return cls(
            question_id=card.question_id,
            topic=card.topic,
            question_title=card.question_title,
            created_at=card.created_at,
            box=card.box,
            difficulty=card.difficulty.name,
            consecutive_correct=card.consecutive_correct,
            consecutive_wrong=card.consecutive_wrong,
            total_attempts=card.total_attempts,
            total_correct=card.total_correct,
            average_response_time_seconds=card.average_response_time_seconds,
            last_reviewed_at=card.last_reviewed_at,
            next_review_date=card.next_review_date,
        )

    def to_card(self, key: str, now: datetime) -> Card:
        question_id = self.question_id or key
        topic, _, title = question_id.partition(QUESTION_ID_SEPARATOR)

        return Card(
            question_id=question_id,
            topic=self.topic if self.topic is not None else topic,
            question_title=self.question_title if self.question_title is not None else title,
            created_at=_as_local_naive(self.created_at) or now,
            box=self.box,
            difficulty=Difficulty[self.difficulty],
            consecutive_correct=self.consecutive_correct,
            consecutive_wrong=self.consecutive_wrong,
            total_attempts=max(self.total_attempts, self.total_correct),
            total_correct=self.total_correct,
            average_response_time_seconds=self.average_response_time_seconds,
            last_reviewed_at=_as_local_naive(self.last_reviewed_at),
            next_review_date=self.next_review_date or now.date(),
        )


class SnapshotV2(BaseModel):
    """Current snapshot shape."""

    model_config = ConfigDict(extra="ignore")

    format_version: Literal[2] = 2
    cards: dict[str, CardRecord] = Field(default_factory=dict)
    total_reviews: int = Field(default=0, ge=0)
    last_system_update: date | None = None


class LegacySystemState(BaseModel):
    """Whole-system dump written before snapshots were introduced."""

    model_config = ConfigDict(extra="ignore")

    cards: dict[str, CardRecord] = Field(default_factory=dict)
    total_reviews: int = Field(default=0, ge=0)
    last_system_update: date | None = None


class SnapshotV1(BaseModel):
    """Legacy shape: the state is nested under ``system`` next to runtime-only fields."""

    model_config = ConfigDict(extra="ignore")

    format_version: Literal[1] = 1
    system: LegacySystemState


def _to_snapshot(
    cards: dict[str, CardRecord],
    total_reviews: int,
    last_system_update: date | None,
    now: datetime,
) -> StoreSnapshot:
    return StoreSnapshot(
        cards={key: record.to_card(key, now) for key, record in cards.items()},
        total_reviews=total_reviews,
        last_system_update=last_system_update or now.date(),
    )


def _read_v1(payload: dict[str, Any], now: datetime) -> StoreSnapshot:
    legacy = SnapshotV1.model_validate(payload)
    state = legacy.system
    return _to_snapshot(state.cards, state.total_reviews, state.last_system_update, now)


def _read_v2(payload: dict[str, Any], now: datetime) -> StoreSnapshot:
    current = SnapshotV2.model_validate(payload)
    return _to_snapshot(current.cards, current.total_reviews, current.last_system_update, now)


_READERS: dict[int, Callable[[dict[str, Any], datetime], StoreSnapshot]] = {
    1: _read_v1,
    2: _read_v2,
}


def decode_snapshot(data: bytes, now: datetime | None = None) -> StoreSnapshot:
    """
    Parse snapshot bytes of any known version.

    Raises:
        UnrecognizedSnapshotError: Not JSON, not an object, unknown version,
            or the payload fails validation.
    """
    now = now or datetime.now()
    try:
        payload = json.loads(data)
    except (ValueError, RecursionError) as e:
        raise UnrecognizedSnapshotError(f"Snapshot is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise UnrecognizedSnapshotError(
            f"Snapshot payload must be an object, got {type(payload).__name__}"
        )

    version = payload.get("format_version")
    reader = _READERS.get(version) if type(version) is int else None
    if reader is None:
        raise UnrecognizedSnapshotError(f"Unrecognized snapshot format version: {version!r}")

    try:
        return reader(payload, now)
    except ValidationError as e:
        raise UnrecognizedSnapshotError(f"Snapshot v{version} failed validation: {e}") from e


def encode_snapshot(snapshot: StoreSnapshot) -> bytes:
    """Serialize a snapshot in the current format."""
    model = SnapshotV2(
        cards={key: CardRecord.from_card(card) for key, card in snapshot.cards.items()},
        total_reviews=snapshot.total_reviews,
        last_system_update=snapshot.last_system_update,
    )
    return model.model_dump_json(indent=2).encode("utf-8")
