"""
Scheduler Factory
Centralizes wiring of storage, store and scheduler from configuration.
"""

import random
from collections.abc import Callable
from datetime import datetime

from quizleitner.application.card_store import CardStore
from quizleitner.application.config import LeitnerConfig, resolve_config
from quizleitner.application.scheduler import LeitnerScheduler
from quizleitner.domain.ports import QuestionRepository
from quizleitner.infrastructure.persistence import SnapshotFileStorage


def build_store(config: LeitnerConfig) -> CardStore:
    """
    Returns a CardStore backed by the configured data file, already loaded.
    """
    store = CardStore(SnapshotFileStorage(config.data_file), autosave=config.autosave)
    store.load()
    return store


def build_scheduler(
    questions: QuestionRepository,
    config: LeitnerConfig | None = None,
    rng: random.Random | None = None,
    clock: Callable[[], datetime] | None = None,
) -> LeitnerScheduler:
    """
    Returns a LeitnerScheduler over the given question repository.
    """
    config = config or resolve_config()
    return LeitnerScheduler(
        build_store(config),
        questions,
        rng=rng or random.Random(config.random_seed),
        clock=clock,
        all_topics_label=config.all_topics_label,
        max_response_time_seconds=config.max_response_time_seconds,
    )
