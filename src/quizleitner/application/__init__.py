# Application Package
from .card_store import CardStore, MergeReport
from .scheduler import LeitnerScheduler

__all__ = ["CardStore", "LeitnerScheduler", "MergeReport"]
