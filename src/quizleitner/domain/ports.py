"""
Ports (interfaces) for the scheduler's collaborators.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import Question, StoreSnapshot


class QuestionRepository(ABC):
    """
    Port for enumerating and fetching quiz questions.

    Implementations:
        - InMemoryQuestionRepository: Questions held in a plain dict.
    """

    @abstractmethod
    def list_topics(self) -> list[str]:
        """Return every topic name."""
        pass

    @abstractmethod
    def list_question_titles(self, topic: str) -> list[str]:
        """
        Return the question titles of a topic, in repository order.

        Args:
            topic: Topic name.

        Returns:
            Titles; index ``i`` matches ``get_question(topic, i)``.
        """
        pass

    @abstractmethod
    def get_question(self, topic: str, index: int) -> Question | None:
        """
        Fetch a question by topic and position.

        Returns:
            The question, or None if the index is out of range.
        """
        pass


class SnapshotStorage(ABC):
    """
    Port for durable snapshot storage.

    Implementations:
        - SnapshotFileStorage: Versioned JSON file with atomic replace.
    """

    @abstractmethod
    def read(self) -> StoreSnapshot | None:
        """
        Read the stored snapshot.

        Returns:
            The snapshot, or None if nothing has been stored yet.

        Raises:
            OSError: The storage could not be read.
            UnrecognizedSnapshotError: The stored payload is corrupt or unknown.
        """
        pass

    @abstractmethod
    def write(self, snapshot: StoreSnapshot) -> None:
        """
        Replace the stored snapshot. Must not leave a partial write behind.

        Raises:
            OSError: The snapshot could not be written; the previous one is intact.
        """
        pass

    @abstractmethod
    def delete(self) -> None:
        """Remove the stored snapshot if present."""
        pass
