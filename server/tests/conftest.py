"""Shared fixtures: an in-memory stand-in for the attendance store."""

from typing import Iterable, Optional

import pytest

from models.achievements import UserAchievement
from models.events import Artist, Event, Player, Sport


class InMemoryAttendanceStore:
    """
    Dict-backed store exposing the read/write surface the services use.

    record_unlock honours the (user_id, achievement_id) uniqueness the
    database enforces.
    """

    def __init__(self, events: Iterable[Event] = (), players: Iterable[Player] = (), artists: Iterable[Artist] = ()):
        self.events = list(events)
        self.players = {p.id: p for p in players}
        self.artists = {a.id: a for a in artists}
        self.unlocks: dict[tuple[str, str], UserAchievement] = {}
        self.event_reads = 0
        self.unlock_attempts = 0

    def add(self, *events: Event) -> None:
        self.events.extend(events)

    async def get_events(self, user_id: str, year: Optional[int] = None, sports=None) -> list[Event]:
        self.event_reads += 1
        wanted = None if sports is None else {Sport(s) for s in sports}
        return sorted(
            (
                e for e in self.events
                if e.user_id == user_id and e.in_year(year) and (wanted is None or e.sport in wanted)
            ),
            key=lambda e: e.date,
        )

    async def get_player(self, player_id: str) -> Optional[Player]:
        return self.players.get(player_id)

    async def get_artist(self, artist_id: str) -> Optional[Artist]:
        return self.artists.get(artist_id)

    async def get_user_achievements(self, user_id: str) -> dict[str, UserAchievement]:
        return {a: u for (uid, a), u in self.unlocks.items() if uid == user_id}

    async def get_user_achievement(self, user_id: str, achievement_id: str) -> Optional[UserAchievement]:
        return self.unlocks.get((user_id, achievement_id))

    async def record_unlock(self, unlock: UserAchievement) -> bool:
        self.unlock_attempts += 1
        key = (unlock.user_id, unlock.achievement_id)
        if key in self.unlocks:
            return False
        self.unlocks[key] = unlock
        return True


@pytest.fixture
def store():
    return InMemoryAttendanceStore()
