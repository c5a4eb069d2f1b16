# Application Stats Package
from .level_statistics import LevelStatistics, TopicSummary

__all__ = ["LevelStatistics", "TopicSummary"]
