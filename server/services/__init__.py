"""Services package for the event tracker stats engine."""

from .entity_resolver import EntityResolver, canonical_key
from .stats_service import InvalidStatsQuery, StatsService
from .achievement_criteria import CRITERIA, Measurement
from .achievement_service import AchievementService, progress_percentage

__all__ = [
    "EntityResolver",
    "canonical_key",
    "InvalidStatsQuery",
    "StatsService",
    "CRITERIA",
    "Measurement",
    "AchievementService",
    "progress_percentage",
]
