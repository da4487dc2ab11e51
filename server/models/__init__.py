"""Models package for the event tracker stats engine."""

from .events import (
    Sport,
    TEAM_SPORTS,
    Event,
    InvalidEventError,
    Venue,
    Player,
    Artist,
    SoccerMatch,
    BasketballGame,
    BaseballGame,
    TennisMatch,
    Concert,
    SetlistItem,
    SoccerAppearance,
    BasketballAppearance,
    BaseballAppearance,
    TennisAppearance,
)
from .achievements import (
    AchievementTier,
    AchievementDefinition,
    AchievementProgress,
    UserAchievement,
    ACHIEVEMENTS,
)

__all__ = [
    # Events
    "Sport",
    "TEAM_SPORTS",
    "Event",
    "InvalidEventError",
    "Venue",
    "Player",
    "Artist",
    "SoccerMatch",
    "BasketballGame",
    "BaseballGame",
    "TennisMatch",
    "Concert",
    "SetlistItem",
    "SoccerAppearance",
    "BasketballAppearance",
    "BaseballAppearance",
    "TennisAppearance",
    # Achievements
    "AchievementTier",
    "AchievementDefinition",
    "AchievementProgress",
    "UserAchievement",
    "ACHIEVEMENTS",
]
