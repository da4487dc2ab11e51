"""
Achievement catalog for the event tracker.

Definitions are static and shared by every user. Each one names a criteria
type (the statistic its progress is measured by) and a threshold; the
evaluator in services.achievement_service turns those into per-user
progress and unlock records.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from models.events import Sport


class AchievementTier(str, Enum):
    """Achievement tiers, ordered by TIER_ORDER."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


TIER_ORDER: dict[AchievementTier, int] = {
    AchievementTier.BRONZE: 1,
    AchievementTier.SILVER: 2,
    AchievementTier.GOLD: 3,
    AchievementTier.PLATINUM: 4,
}


@dataclass(frozen=True)
class AchievementDefinition:
    """Achievement definition."""
    id: str
    name: str
    description: str
    icon: str
    tier: AchievementTier
    criteria_type: str
    threshold: int
    sport: Optional[Sport] = None

    @property
    def target(self) -> int:
        return self.threshold or 1


@dataclass
class UserAchievement:
    """Unlock record. Unique per (user_id, achievement_id)."""
    user_id: str
    achievement_id: str
    unlocked_at: datetime
    trigger_event_id: Optional[str] = None


@dataclass
class AchievementProgress:
    """A user's standing against one definition."""
    definition: AchievementDefinition
    current: int
    target: int
    percentage: int
    unlocked: bool = False
    unlocked_at: Optional[datetime] = None
    trigger_event_id: Optional[str] = None
    newly_unlocked: bool = False

    def to_dict(self) -> dict:
        d = self.definition
        return {
            "id": d.id,
            "name": d.name,
            "description": d.description,
            "icon": d.icon,
            "tier": d.tier.value,
            "criteria_type": d.criteria_type,
            "sport": d.sport.value if d.sport else None,
            "unlocked": self.unlocked,
            "unlocked_at": self.unlocked_at.isoformat() if self.unlocked_at else None,
            "trigger_event_id": self.trigger_event_id,
            "newly_unlocked": self.newly_unlocked,
            "progress": {
                "current": self.current,
                "target": self.target,
                "percentage": self.percentage,
            },
        }


def _a(id, name, description, icon, tier, criteria_type, threshold, sport=None):
    return AchievementDefinition(
        id=id,
        name=name,
        description=description,
        icon=icon,
        tier=tier,
        criteria_type=criteria_type,
        threshold=threshold,
        sport=sport,
    )


B, S, G, P = (
    AchievementTier.BRONZE,
    AchievementTier.SILVER,
    AchievementTier.GOLD,
    AchievementTier.PLATINUM,
)

ACHIEVEMENTS: list[AchievementDefinition] = [
    # Event milestones
    _a("first-memory", "First Memory", "Log your first event", "🎉", B, "total_events", 1),
    _a("getting-started", "Getting Started", "Log 10 events", "🌟", B, "total_events", 10),
    _a("dedicated-fan", "Dedicated Fan", "Log 50 events", "💪", S, "total_events", 50),
    _a("century-club", "Century Club", "Log 100 events", "💯", G, "total_events", 100),
    _a("legend", "Legend", "Log 500 events", "👑", P, "total_events", 500),

    # Geography
    _a("explorer", "Explorer", "Attend events at 5 different venues", "🗺️", B, "unique_venues", 5),
    _a("world-traveler", "World Traveler", "Attend events in 5 different countries", "✈️", S, "unique_countries", 5),
    _a("globe-trotter", "Globe Trotter", "Attend events in 10 different countries", "🌍", G, "unique_countries", 10),
    _a("home-ground", "Home Ground", "Attend 10 events at the same venue", "🏠", S, "same_venue_events", 10),
    _a("city-dweller", "City Dweller", "Attend events in 10 different cities", "🏙️", S, "unique_cities", 10),

    # Soccer
    _a("goal-witness", "Goal Witness", "Witness 50 goals", "⚽", B, "goals_witnessed", 50, Sport.SOCCER),
    _a("goal-machine", "Goal Machine", "Witness 100 goals", "🥅", S, "goals_witnessed", 100, Sport.SOCCER),
    _a("clean-sheet-club", "Clean Sheet Club", "Witness 10 clean sheets", "🧤", S, "clean_sheets", 10, Sport.SOCCER),
    _a("red-mist", "Red Mist", "Witness a red card", "🟥", B, "red_cards", 1, Sport.SOCCER),
    _a("soccer-regular", "Soccer Regular", "Attend 25 soccer matches", "⚽", S, "events_by_type", 25, Sport.SOCCER),

    # Basketball
    _a("points-machine", "Points Machine", "Witness 1000 points scored", "🏀", S, "points_witnessed", 1000, Sport.BASKETBALL),
    _a("triple-double-witness", "Triple Double Witness", "Witness a triple-double performance", "🔥", G, "triple_double", 1, Sport.BASKETBALL),
    _a("basketball-regular", "Basketball Regular", "Attend 25 basketball games", "🏀", S, "events_by_type", 25, Sport.BASKETBALL),

    # Baseball
    _a("home-run-hunter", "Home Run Hunter", "Witness 25 home runs", "⚾", S, "home_runs", 25, Sport.BASEBALL),
    _a("grand-slam-witness", "Grand Slam Witness", "Witness a grand slam", "💥", G, "grand_slam", 1, Sport.BASEBALL),
    _a("baseball-regular", "Baseball Regular", "Attend 25 baseball games", "⚾", S, "events_by_type", 25, Sport.BASEBALL),

    # Tennis
    _a("tennis-fan", "Tennis Fan", "Attend 10 tennis matches", "🎾", B, "events_by_type", 10, Sport.TENNIS),
    _a("grand-slam-fan", "Grand Slam Fan", "Attend matches at all 4 Grand Slam tournaments", "🏆", P, "grand_slam_tournaments", 4, Sport.TENNIS),

    # Concerts
    _a("concert-goer", "Concert Goer", "Attend 10 concerts", "🎵", B, "events_by_type", 10, Sport.CONCERT),
    _a("encore", "Encore", "Attend 50 concerts", "🎤", S, "events_by_type", 50, Sport.CONCERT),
    _a("superfan", "Superfan", "See the same artist 5 times", "❤️", S, "same_artist", 5, Sport.CONCERT),
    _a("festival-season", "Festival Season", "Attend 3 festivals in one year", "🎪", G, "festivals_in_year", 3, Sport.CONCERT),
    _a("setlist-collector", "Setlist Collector", "Log complete setlists for 10 concerts", "📝", S, "complete_setlists", 10, Sport.CONCERT),

    # Special
    _a("triple-header", "Triple Header", "Attend 3 events in one day", "⚡", G, "events_same_day", 3),
    _a("streak-master", "Streak Master", "Attend events every month for 6 months", "📅", G, "monthly_streak", 6),
    _a("night-owl", "Night Owl", "Attend an event that ends after midnight", "🦉", B, "late_night", 1),
    _a("early-bird", "Early Bird", "Be first to log an event at a venue", "🐦", B, "first_at_venue", 1),
    _a("variety-pack", "Variety Pack", "Attend all 5 event types", "🎨", S, "all_event_types", 5),
    _a("social-butterfly", "Social Butterfly", "Attend events with 10 different companions", "🦋", S, "unique_companions", 10),
    _a("solo-adventurer", "Solo Adventurer", "Attend 10 events alone", "🧑", B, "solo_events", 10),
]


def get_achievement_by_id(achievement_id: str) -> Optional[AchievementDefinition]:
    return next((a for a in ACHIEVEMENTS if a.id == achievement_id), None)


def get_achievements_by_sport(sport: Sport) -> list[AchievementDefinition]:
    return [a for a in ACHIEVEMENTS if a.sport == sport]
