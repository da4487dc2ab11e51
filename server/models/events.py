"""
Attendance event models for the event tracker.

An Event is one thing a user attended. Every event carries exactly one
sport-specific payload (a match, a game or a concert), selected by its
sport tag:

    Event(sport=Sport.SOCCER, payload=SoccerMatch(...))

The payload type is checked against the tag on construction, so an event
can never hold the wrong sub-record or more than one of them.
"""

from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum
from typing import Optional, Union


class InvalidEventError(ValueError):
    """Raised when an event's payload does not match its sport tag."""
    pass


class Sport(str, Enum):
    """Event type tags."""

    SOCCER = "soccer"
    BASKETBALL = "basketball"
    BASEBALL = "baseball"
    TENNIS = "tennis"
    CONCERT = "concert"


TEAM_SPORTS = (Sport.SOCCER, Sport.BASKETBALL, Sport.BASEBALL)

MIN_YEAR = 1900
MAX_YEAR = 2100


def year_bounds(year: int) -> tuple[date, date]:
    """Inclusive [Jan 1, Dec 31] date range for a year filter."""
    return date(year, 1, 1), date(year, 12, 31)


@dataclass
class Venue:
    """Where an event took place."""
    id: str
    name: str
    city: str = ""
    country: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass
class Player:
    """A player entity, identified by (name, sport)."""
    id: str
    name: str
    sport: Sport
    team: Optional[str] = None
    nationality: Optional[str] = None
    external_id: Optional[str] = None


@dataclass
class Artist:
    """A performing artist, identified by name."""
    id: str
    name: str


# =============================================================================
# Appearances
# =============================================================================
# All stat fields are nullable: manual entry is often partial.


@dataclass
class SoccerAppearance:
    player_id: str
    player_name: str
    team_name: Optional[str] = None
    goals: Optional[int] = None
    assists: Optional[int] = None
    yellow_card: Optional[bool] = None
    red_card: Optional[bool] = None
    clean_sheet: Optional[bool] = None
    minutes_played: Optional[int] = None


@dataclass
class BasketballAppearance:
    player_id: str
    player_name: str
    team_name: Optional[str] = None
    points: Optional[int] = None
    rebounds: Optional[int] = None
    assists: Optional[int] = None
    steals: Optional[int] = None
    blocks: Optional[int] = None
    turnovers: Optional[int] = None


@dataclass
class BaseballAppearance:
    player_id: str
    player_name: str
    team_name: Optional[str] = None
    hits: Optional[int] = None
    home_runs: Optional[int] = None
    rbis: Optional[int] = None
    runs: Optional[int] = None
    at_bats: Optional[int] = None
    strikeouts: Optional[int] = None
    walks: Optional[int] = None
    grand_slam: Optional[bool] = None


@dataclass
class TennisAppearance:
    player_id: str
    player_name: str
    sets_won: Optional[int] = None
    is_winner: Optional[bool] = None


Appearance = Union[SoccerAppearance, BasketballAppearance, BaseballAppearance, TennisAppearance]

_IDENTITY_FIELDS = {"player_id", "player_name", "team_name"}


def stat_fields(appearance_cls: type) -> list[str]:
    """Stat columns of an appearance class, i.e. everything but identity."""
    return [f.name for f in fields(appearance_cls) if f.name not in _IDENTITY_FIELDS]


# =============================================================================
# Sport sub-records
# =============================================================================


@dataclass
class TeamMatch:
    """
    Shared shape of the three team-sport sub-records.

    Scores are nullable. A missing score means "unknown", never zero.
    """
    home_team: str
    away_team: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    competition: Optional[str] = None
    appearances: list = field(default_factory=list)

    @property
    def has_full_score(self) -> bool:
        return self.home_score is not None and self.away_score is not None


@dataclass
class SoccerMatch(TeamMatch):
    appearances: list[SoccerAppearance] = field(default_factory=list)


@dataclass
class BasketballGame(TeamMatch):
    appearances: list[BasketballAppearance] = field(default_factory=list)


@dataclass
class BaseballGame(TeamMatch):
    appearances: list[BaseballAppearance] = field(default_factory=list)


@dataclass
class TennisMatch:
    player1_id: str
    player1_name: str
    player2_id: str
    player2_name: str
    score: str = ""
    winner_id: Optional[str] = None
    tournament: Optional[str] = None
    round: Optional[str] = None
    appearances: list[TennisAppearance] = field(default_factory=list)


@dataclass
class SetlistItem:
    song_name: str
    order: int
    is_encore: bool = False
    notes: Optional[str] = None


@dataclass
class Concert:
    artist_id: str
    artist_name: str
    tour_name: Optional[str] = None
    opening_acts: list[str] = field(default_factory=list)
    setlist: list[SetlistItem] = field(default_factory=list)


Payload = Union[SoccerMatch, BasketballGame, BaseballGame, TennisMatch, Concert]

PAYLOAD_TYPES: dict[Sport, type] = {
    Sport.SOCCER: SoccerMatch,
    Sport.BASKETBALL: BasketballGame,
    Sport.BASEBALL: BaseballGame,
    Sport.TENNIS: TennisMatch,
    Sport.CONCERT: Concert,
}


@dataclass
class Event:
    """
    One attended event.

    Attributes:
        id: Event UUID.
        user_id: Owning user.
        sport: Sport tag selecting the payload type.
        date: Date the event took place (as stored).
        payload: The sport-specific sub-record.
        venue: Where it happened, if known.
        rating: Optional 1-5 rating.
        notes: Free-text notes.
        companions: Names of people the user attended with.
    """

    id: str
    user_id: str
    sport: Sport
    date: date
    payload: Payload
    venue: Optional[Venue] = None
    rating: Optional[int] = None
    notes: Optional[str] = None
    companions: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.sport = Sport(self.sport)
        expected = PAYLOAD_TYPES[self.sport]
        if type(self.payload) is not expected:
            raise InvalidEventError(
                f"Event {self.id} is tagged {self.sport.value} but carries "
                f"{type(self.payload).__name__}, expected {expected.__name__}"
            )
        if self.rating is not None and not 1 <= self.rating <= 5:
            raise InvalidEventError(f"Event {self.id} rating {self.rating} outside 1-5")

    @property
    def match(self) -> Optional[TeamMatch]:
        """The team-sport sub-record, or None for tennis and concerts."""
        if isinstance(self.payload, TeamMatch):
            return self.payload
        return None

    @property
    def concert(self) -> Optional[Concert]:
        return self.payload if isinstance(self.payload, Concert) else None

    @property
    def tennis(self) -> Optional[TennisMatch]:
        return self.payload if isinstance(self.payload, TennisMatch) else None

    @property
    def venue_id(self) -> Optional[str]:
        return self.venue.id if self.venue else None

    def in_year(self, year: Optional[int]) -> bool:
        """Whether the event falls inside an optional year filter."""
        if year is None:
            return True
        start, end = year_bounds(year)
        return start <= self.date <= end
