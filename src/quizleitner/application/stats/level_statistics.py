"""
Level statistics over a set of cards.

This is a pure computation module with no I/O.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from quizleitner.domain.constants import ALL_TOPICS, LEVELS
from quizleitner.domain.models import Card


@dataclass
class TopicSummary:
    """
    Aggregate figures for one topic, or for all topics.
    """

    topic: str | None
    total_cards: int
    due_cards: int
    average_level: float | None  # None when there are no cards
    success_rate: float | None  # correct / attempts over all cards
    average_response_time_seconds: float | None  # mean of the per-card averages


class LevelStatistics:
    """
    Groups cards by Leitner level, optionally restricted to a topic.

    Stateless and side-effect free. ``None`` or the all-topics label
    disables the topic filter.
    """

    def __init__(self, all_topics_label: str = ALL_TOPICS):
        self.all_topics_label = all_topics_label

    def matches(self, card: Card, topic: str | None) -> bool:
        if topic is None or topic == self.all_topics_label:
            return True
        return card.topic == topic

    def filter(self, cards: Iterable[Card], topic: str | None) -> list[Card]:
        return [card for card in cards if self.matches(card, topic)]

    def by_level(self, cards: Iterable[Card], topic: str | None = None) -> dict[int, list[Card]]:
        """Cards per level. Every level is present, possibly with an empty list."""
        levels: dict[int, list[Card]] = {level: [] for level in LEVELS}
        for card in self.filter(cards, topic):
            levels[card.level].append(card)
        return levels

    def due_count_by_level(
        self, cards: Iterable[Card], topic: str | None = None, today: date | None = None
    ) -> dict[int, int]:
        """Due cards per level. Every level is present, possibly zero."""
        counts = {level: 0 for level in LEVELS}
        for card in self.filter(cards, topic):
            if card.is_due(today):
                counts[card.level] += 1
        return counts

    def summarize(
        self, cards: Iterable[Card], topic: str | None = None, today: date | None = None
    ) -> TopicSummary:
        selected = self.filter(cards, topic)
        if not selected:
            return TopicSummary(
                topic=topic,
                total_cards=0,
                due_cards=0,
                average_level=None,
                success_rate=None,
                average_response_time_seconds=None,
            )

        attempts = sum(card.total_attempts for card in selected)
        correct = sum(card.total_correct for card in selected)
        answered = [card for card in selected if card.total_attempts > 0]

        return TopicSummary(
            topic=topic,
            total_cards=len(selected),
            due_cards=sum(1 for card in selected if card.is_due(today)),
            average_level=sum(card.level for card in selected) / len(selected),
            success_rate=correct / attempts if attempts else None,
            average_response_time_seconds=(
                sum(card.average_response_time_seconds for card in answered) / len(answered)
                if answered
                else None
            ),
        )
