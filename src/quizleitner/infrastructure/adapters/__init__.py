# Infrastructure Adapters Package
from .memory_questions import InMemoryQuestionRepository

__all__ = ["InMemoryQuestionRepository"]
