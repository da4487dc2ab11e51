"""
Event builders for tests.

Keeps test bodies focused on the scenario rather than on constructing
nested sub-records.
"""

import itertools
from datetime import date
from typing import Optional

from models.events import (
    BaseballAppearance,
    BaseballGame,
    BasketballAppearance,
    BasketballGame,
    Concert,
    Event,
    SetlistItem,
    SoccerAppearance,
    SoccerMatch,
    Sport,
    TennisMatch,
    Venue,
)

USER = "user-1"

_ids = itertools.count(1)


def next_id(prefix: str) -> str:
    return f"{prefix}-{next(_ids)}"


def venue(name: str = "Old Trafford", city: str = "Manchester", country: str = "England", id: Optional[str] = None) -> Venue:
    return Venue(id=id or next_id("venue"), name=name, city=city, country=country)


def _event(sport, payload, on, at, user_id, companions, id, rating=None) -> Event:
    return Event(
        id=id or next_id("event"),
        user_id=user_id,
        sport=sport,
        date=on,
        payload=payload,
        venue=at,
        rating=rating,
        companions=list(companions),
    )


def soccer(
    home: str,
    away: str,
    home_score: Optional[int] = None,
    away_score: Optional[int] = None,
    appearances=(),
    on: date = date(2024, 3, 1),
    at: Optional[Venue] = None,
    user_id: str = USER,
    companions=(),
    id: Optional[str] = None,
) -> Event:
    match = SoccerMatch(home, away, home_score, away_score, appearances=list(appearances))
    return _event(Sport.SOCCER, match, on, at, user_id, companions, id)


def basketball(
    home: str,
    away: str,
    home_score: Optional[int] = None,
    away_score: Optional[int] = None,
    appearances=(),
    on: date = date(2024, 3, 1),
    at: Optional[Venue] = None,
    user_id: str = USER,
    companions=(),
    id: Optional[str] = None,
) -> Event:
    game = BasketballGame(home, away, home_score, away_score, appearances=list(appearances))
    return _event(Sport.BASKETBALL, game, on, at, user_id, companions, id)


def baseball(
    home: str,
    away: str,
    home_score: Optional[int] = None,
    away_score: Optional[int] = None,
    appearances=(),
    on: date = date(2024, 3, 1),
    at: Optional[Venue] = None,
    user_id: str = USER,
    companions=(),
    id: Optional[str] = None,
) -> Event:
    game = BaseballGame(home, away, home_score, away_score, appearances=list(appearances))
    return _event(Sport.BASEBALL, game, on, at, user_id, companions, id)


def tennis(
    player1: str = "Player One",
    player2: str = "Player Two",
    tournament: Optional[str] = None,
    score: str = "6-4 6-4",
    on: date = date(2024, 3, 1),
    at: Optional[Venue] = None,
    user_id: str = USER,
    companions=(),
    id: Optional[str] = None,
) -> Event:
    match = TennisMatch(
        player1_id="tp-1",
        player1_name=player1,
        player2_id="tp-2",
        player2_name=player2,
        score=score,
        tournament=tournament,
    )
    return _event(Sport.TENNIS, match, on, at, user_id, companions, id)


def concert(
    artist_id: str = "artist-x",
    artist_name: str = "Artist X",
    songs=(),
    on: date = date(2024, 3, 1),
    at: Optional[Venue] = None,
    user_id: str = USER,
    companions=(),
    id: Optional[str] = None,
) -> Event:
    show = Concert(
        artist_id=artist_id,
        artist_name=artist_name,
        setlist=[SetlistItem(song_name=name, order=i) for i, name in enumerate(songs, start=1)],
    )
    return _event(Sport.CONCERT, show, on, at, user_id, companions, id)


def soccer_app(player_id: str, name: str, team: Optional[str] = None, **stats) -> SoccerAppearance:
    return SoccerAppearance(player_id=player_id, player_name=name, team_name=team, **stats)


def basketball_app(player_id: str, name: str, team: Optional[str] = None, **stats) -> BasketballAppearance:
    return BasketballAppearance(player_id=player_id, player_name=name, team_name=team, **stats)


def baseball_app(player_id: str, name: str, team: Optional[str] = None, **stats) -> BaseballAppearance:
    return BaseballAppearance(player_id=player_id, player_name=name, team_name=team, **stats)
