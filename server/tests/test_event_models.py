"""
Tests for the attendance event models and the achievement catalog.
"""

from datetime import date

import pytest

from models.achievements import (
    ACHIEVEMENTS,
    AchievementDefinition,
    AchievementTier,
    get_achievement_by_id,
    get_achievements_by_sport,
)
from models.events import (
    BasketballAppearance,
    Concert,
    Event,
    InvalidEventError,
    SoccerMatch,
    Sport,
    TennisMatch,
    stat_fields,
)

from factories import concert, soccer, tennis


class TestEventPayload:
    """The sport tag selects exactly one payload type."""

    def test_matching_payload_accepted(self):
        event = Event(
            id="e1",
            user_id="u1",
            sport=Sport.SOCCER,
            date=date(2024, 5, 1),
            payload=SoccerMatch("A", "B", 1, 0),
        )
        assert event.match is event.payload
        assert event.concert is None
        assert event.tennis is None

    def test_mismatched_payload_rejected(self):
        with pytest.raises(InvalidEventError):
            Event(
                id="e1",
                user_id="u1",
                sport=Sport.BASKETBALL,
                date=date(2024, 5, 1),
                payload=SoccerMatch("A", "B"),
            )

    def test_concert_tag_requires_concert(self):
        with pytest.raises(InvalidEventError):
            Event(id="e1", user_id="u1", sport="concert", date=date(2024, 5, 1), payload=SoccerMatch("A", "B"))

    def test_string_tag_coerced(self):
        event = Event(
            id="e1",
            user_id="u1",
            sport="concert",
            date=date(2024, 5, 1),
            payload=Concert(artist_id="a1", artist_name="Artist"),
        )
        assert event.sport is Sport.CONCERT
        assert event.concert is not None
        assert event.match is None

    def test_unknown_tag_rejected(self):
        with pytest.raises(ValueError):
            Event(id="e1", user_id="u1", sport="cricket", date=date(2024, 5, 1), payload=SoccerMatch("A", "B"))

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range_rejected(self, rating):
        with pytest.raises(InvalidEventError):
            Event(
                id="e1",
                user_id="u1",
                sport=Sport.SOCCER,
                date=date(2024, 5, 1),
                payload=SoccerMatch("A", "B"),
                rating=rating,
            )

    def test_tennis_accessor(self):
        event = tennis(tournament="Wimbledon")
        assert isinstance(event.tennis, TennisMatch)
        assert event.match is None


class TestEventHelpers:

    def test_in_year_is_inclusive(self):
        assert soccer("A", "B", on=date(2023, 1, 1)).in_year(2023)
        assert soccer("A", "B", on=date(2023, 12, 31)).in_year(2023)
        assert not soccer("A", "B", on=date(2024, 1, 1)).in_year(2023)

    def test_in_year_none_matches_everything(self):
        assert concert(on=date(1999, 6, 1)).in_year(None)

    def test_has_full_score(self):
        assert soccer("A", "B", 1, 0).match.has_full_score
        assert not soccer("A", "B", 1, None).match.has_full_score

    def test_stat_fields_skip_identity(self):
        columns = stat_fields(BasketballAppearance)
        assert "player_id" not in columns
        assert "team_name" not in columns
        assert columns[:3] == ["points", "rebounds", "assists"]


class TestAchievementCatalog:

    def test_catalog_size_and_unique_ids(self):
        ids = [a.id for a in ACHIEVEMENTS]
        assert len(ids) >= 30
        assert len(ids) == len(set(ids))

    def test_lookup(self):
        getting_started = get_achievement_by_id("getting-started")
        assert getting_started.criteria_type == "total_events"
        assert getting_started.threshold == 10
        assert get_achievement_by_id("missing") is None

    def test_sport_scope(self):
        assert all(a.sport == Sport.TENNIS for a in get_achievements_by_sport(Sport.TENNIS))
        assert get_achievements_by_sport(Sport.TENNIS)

    def test_zero_threshold_targets_one(self):
        definition = AchievementDefinition(
            id="x", name="X", description="", icon="", tier=AchievementTier.BRONZE,
            criteria_type="total_events", threshold=0,
        )
        assert definition.target == 1
