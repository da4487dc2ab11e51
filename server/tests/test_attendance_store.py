"""
Tests for the PostgreSQL attendance store.

The asyncpg pool is mocked; these tests cover row mapping, query
arguments and the unlock insert contract rather than SQL itself.
"""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

from models.achievements import ACHIEVEMENTS, UserAchievement
from models.events import SoccerMatch, Sport
from stores.attendance_store import AttendanceStore


@pytest.fixture
def conn():
    return AsyncMock()


@pytest.fixture
def pool(conn):
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    pool.acquire.return_value.__aexit__.return_value = False
    return pool


@pytest.fixture
def store(pool):
    return AttendanceStore(pool)


def _event_row(event_id: UUID, sport: str = "soccer", **overrides) -> dict:
    row = {
        "id": event_id,
        "user_id": "user-1",
        "sport": sport,
        "event_date": date(2024, 4, 6),
        "rating": 4,
        "notes": None,
        "companions": ["Sam"],
        "venue_id": None,
        "venue_name": None,
        "city": None,
        "country": None,
        "latitude": None,
        "longitude": None,
    }
    row.update(overrides)
    return row


class TestGetEvents:

    @pytest.mark.asyncio
    async def test_assembles_soccer_event(self, store, conn):
        event_id, player_id, venue_id = uuid4(), uuid4(), uuid4()
        conn.fetch.side_effect = [
            [_event_row(event_id, venue_id=venue_id, venue_name="Elland Road", city="Leeds", country="England")],
            [{
                "event_id": event_id,
                "home_team": "Leeds",
                "away_team": "York",
                "home_score": 2,
                "away_score": None,
                "competition": "Cup",
            }],
            [{
                "event_id": event_id,
                "player_id": player_id,
                "player_name": "Striker",
                "team_name": "Leeds",
                "goals": 2,
                "assists": None,
                "yellow_card": None,
                "red_card": False,
                "clean_sheet": None,
                "minutes_played": 90,
            }],
        ]

        events = await store.get_events("user-1")

        assert len(events) == 1
        event = events[0]
        assert event.id == str(event_id)
        assert event.sport is Sport.SOCCER
        assert isinstance(event.payload, SoccerMatch)
        assert event.match.away_score is None
        assert event.venue.name == "Elland Road"
        assert event.companions == ["Sam"]
        app = event.match.appearances[0]
        assert (app.player_id, app.goals, app.minutes_played) == (str(player_id), 2, 90)

    @pytest.mark.asyncio
    async def test_year_and_sport_filters_passed(self, store, conn):
        conn.fetch.return_value = []

        await store.get_events("user-1", year=2023, sports=[Sport.CONCERT])

        args = conn.fetch.call_args[0]
        assert args[1:] == ("user-1", date(2023, 1, 1), date(2023, 12, 31), ["concert"])
        assert "BETWEEN $2 AND $3" in args[0]
        assert "ANY($4" in args[0]

    @pytest.mark.asyncio
    async def test_no_events_single_query(self, store, conn):
        conn.fetch.return_value = []

        assert await store.get_events("user-1") == []
        assert conn.fetch.call_count == 1

    @pytest.mark.asyncio
    async def test_event_without_sub_record_skipped(self, store, conn):
        event_id = uuid4()
        conn.fetch.side_effect = [[_event_row(event_id)], [], []]

        assert await store.get_events("user-1") == []

    @pytest.mark.asyncio
    async def test_assembles_concert_setlist(self, store, conn):
        event_id, artist_id = uuid4(), uuid4()
        conn.fetch.side_effect = [
            [_event_row(event_id, sport="concert")],
            [{
                "event_id": event_id,
                "artist_id": artist_id,
                "artist_name": "Artist X",
                "tour_name": None,
                "opening_acts": None,
            }],
            [
                {"event_id": event_id, "song_name": "Intro", "song_order": 1, "is_encore": False, "notes": None},
                {"event_id": event_id, "song_name": "Hit", "song_order": 2, "is_encore": True, "notes": None},
            ],
        ]

        events = await store.get_events("user-1")

        show = events[0].concert
        assert show.artist_id == str(artist_id)
        assert show.opening_acts == []
        assert [s.song_name for s in show.setlist] == ["Intro", "Hit"]
        assert show.setlist[1].is_encore


class TestEntities:

    @pytest.mark.asyncio
    async def test_malformed_player_id(self, store, pool):
        assert await store.get_player("not-a-uuid") is None
        pool.acquire.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_player(self, store, conn):
        player_id = uuid4()
        conn.fetchrow.return_value = {
            "id": player_id,
            "name": "Guard",
            "sport": "basketball",
            "team": "Bulls",
            "nationality": None,
            "external_id": None,
        }

        player = await store.get_player(str(player_id))

        assert player.id == str(player_id)
        assert player.sport is Sport.BASKETBALL
        assert conn.fetchrow.call_args[0][1] == player_id

    @pytest.mark.asyncio
    async def test_unknown_artist(self, store, conn):
        conn.fetchrow.return_value = None
        assert await store.get_artist(str(uuid4())) is None


class TestAchievements:

    @pytest.mark.asyncio
    async def test_record_unlock_inserted(self, store, conn):
        conn.fetchrow.return_value = {"id": 1}
        trigger = uuid4()
        unlock = UserAchievement("user-1", "first-memory", datetime.now(timezone.utc), str(trigger))

        assert await store.record_unlock(unlock) is True
        args = conn.fetchrow.call_args[0]
        assert "ON CONFLICT (user_id, achievement_id) DO NOTHING" in args[0]
        assert args[1:] == ("user-1", "first-memory", unlock.unlocked_at, trigger)

    @pytest.mark.asyncio
    async def test_record_unlock_conflict(self, store, conn):
        conn.fetchrow.return_value = None
        unlock = UserAchievement("user-1", "first-memory", datetime.now(timezone.utc))

        assert await store.record_unlock(unlock) is False

    @pytest.mark.asyncio
    async def test_user_achievements_mapped(self, store, conn):
        trigger = uuid4()
        conn.fetch.return_value = [
            {
                "user_id": "user-1",
                "achievement_id": "explorer",
                "unlocked_at": datetime(2024, 1, 1, 12, 0),
                "trigger_event_id": trigger,
            },
        ]

        unlocks = await store.get_user_achievements("user-1")

        assert list(unlocks) == ["explorer"]
        assert unlocks["explorer"].unlocked_at.tzinfo == timezone.utc
        assert unlocks["explorer"].trigger_event_id == str(trigger)

    @pytest.mark.asyncio
    async def test_sync_catalog(self, store, conn):
        await store.sync_achievements(ACHIEVEMENTS)

        rows = conn.executemany.call_args[0][1]
        assert len(rows) == len(ACHIEVEMENTS)
        assert rows[0][0] == ACHIEVEMENTS[0].id
        assert rows[-1][-1] == len(ACHIEVEMENTS) - 1
