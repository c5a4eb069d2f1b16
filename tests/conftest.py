from datetime import datetime
from unittest.mock import MagicMock

import pytest

from quizleitner.application.card_store import CardStore
from quizleitner.application.scheduler import LeitnerScheduler
from quizleitner.domain.models import Question
from quizleitner.infrastructure.adapters.memory_questions import InMemoryQuestionRepository
from quizleitner.infrastructure.persistence.file_storage import SnapshotFileStorage

NOW = datetime(2026, 3, 10, 9, 30)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def flat_rng():
    """RNG stub pinning the interval noise factor to 1.0."""
    rng = MagicMock()
    rng.random.return_value = 0.5
    return rng


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def questions():
    return InMemoryQuestionRepository(
        [
            Question(topic="Math", title="Addition", body="1 + 1?", answers=("2", "3"),
                     correct_flags=(True, False)),
            Question(topic="Math", title="Division", body="6 / 3?", answers=("2", "3"),
                     correct_flags=(True, False)),
            Question(topic="Math", title="Primes", body="Is 7 prime?", answers=("yes", "no"),
                     correct_flags=(True, False)),
            Question(topic="History", title="Rome", body="Founded?", answers=("753 BC",),
                     correct_flags=(True,)),
        ]
    )


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "leitner_system.json"


@pytest.fixture
def store(data_file):
    return CardStore(SnapshotFileStorage(data_file))


@pytest.fixture
def scheduler(store, questions, flat_rng, now):
    return LeitnerScheduler(store, questions, rng=flat_rng, clock=lambda: now)
