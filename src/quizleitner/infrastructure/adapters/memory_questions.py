"""In-memory QuestionRepository, for embedding callers and tests."""

from collections.abc import Iterable

from quizleitner.domain.models import Question
from quizleitner.domain.ports import QuestionRepository


class InMemoryQuestionRepository(QuestionRepository):
    """Holds questions per topic in insertion order."""

    def __init__(self, questions: Iterable[Question] = ()):
        self._by_topic: dict[str, list[Question]] = {}
        for question in questions:
            self.add(question)

    def add(self, question: Question) -> None:
        self._by_topic.setdefault(question.topic, []).append(question)

    def list_topics(self) -> list[str]:
        return list(self._by_topic)

    def list_question_titles(self, topic: str) -> list[str]:
        return [q.title for q in self._by_topic.get(topic, [])]

    def get_question(self, topic: str, index: int) -> Question | None:
        questions = self._by_topic.get(topic, [])
        if 0 <= index < len(questions):
            return questions[index]
        return None
