"""
Stats service for the event tracker.

Aggregates one user's attendance records into cross-sport views:
player leaderboards, team records, venue and artist summaries, the overview,
player/artist profiles, the year in review and the dashboard.

Every call reads the user's events from the attendance store and groups them
in memory. Nothing is cached between calls.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from models.achievements import UserAchievement
from models.events import (
    MAX_YEAR,
    MIN_YEAR,
    TEAM_SPORTS,
    Artist,
    Event,
    Player,
    SetlistItem,
    Sport,
    stat_fields,
)
from services.entity_resolver import EntityResolver, canonical_key
from stores.attendance_store import AttendanceStore

logger = logging.getLogger(__name__)


class InvalidStatsQuery(ValueError):
    """Raised for caller input the stats engine cannot serve."""
    pass


APPEARANCES = "appearances"

# Leaderboard stat name -> appearance field, per sport with player stats
LEADERBOARD_STATS: dict[Sport, dict[str, str]] = {
    Sport.SOCCER: {
        "goals": "goals",
        "assists": "assists",
        "yellow_cards": "yellow_card",
        "red_cards": "red_card",
        "clean_sheets": "clean_sheet",
    },
    Sport.BASKETBALL: {
        "points": "points",
        "rebounds": "rebounds",
        "assists": "assists",
        "steals": "steals",
        "blocks": "blocks",
    },
    Sport.BASEBALL: {
        "home_runs": "home_runs",
        "hits": "hits",
        "rbis": "rbis",
        "runs": "runs",
        "walks": "walks",
    },
}

# Overview aggregate name -> (sport, appearance field)
SIGNATURE_STATS: dict[str, tuple[Sport, str]] = {
    "goals": (Sport.SOCCER, "goals"),
    "assists": (Sport.SOCCER, "assists"),
    "points": (Sport.BASKETBALL, "points"),
    "rebounds": (Sport.BASKETBALL, "rebounds"),
    "hits": (Sport.BASEBALL, "hits"),
    "home_runs": (Sport.BASEBALL, "home_runs"),
}

UNKNOWN_TEAM = "Unknown"

DEFAULT_TOP_SONGS = 10
DEFAULT_PROFILE_SONGS = 20
DEFAULT_RECENT_EVENTS = 5
DEFAULT_YEAR_REVIEW_TOP_N = 5


# =============================================================================
# Result types
# =============================================================================


@dataclass
class PlayerLeaderboardEntry:
    """Single entry on a player leaderboard."""
    rank: int
    player_id: str
    player_name: str
    team_name: str
    value: int
    appearances: int
    totals: dict[str, int] = field(default_factory=dict)


@dataclass
class TeamStatsEntry:
    """Win/loss/draw record for one canonical team."""
    team_name: str
    sport: Sport
    wins: int = 0
    losses: int = 0
    draws: int = 0
    total_games: int = 0
    score_for: int = 0
    score_against: int = 0
    points_for: Optional[int] = None
    points_against: Optional[int] = None
    unknown_scores: int = 0

    def record(self, outcome: str, scored: Optional[int], conceded: Optional[int], known: bool) -> None:
        self.total_games += 1
        if outcome == "win":
            self.wins += 1
        elif outcome == "loss":
            self.losses += 1
        else:
            self.draws += 1

        if not known:
            self.unknown_scores += 1
            return

        self.score_for += scored
        self.score_against += conceded
        if self.points_for is not None:
            self.points_for += scored
            self.points_against += conceded


@dataclass
class VenueStatsEntry:
    """Attendance summary for one venue."""
    venue_id: str
    venue_name: str
    city: str
    country: str
    total_events: int = 0
    event_types: dict[str, int] = field(default_factory=dict)
    wins: int = 0
    losses: int = 0
    draws: int = 0


@dataclass
class SongCount:
    song_name: str
    times_played: int


@dataclass
class ArtistStatsEntry:
    """Concert and setlist summary for one artist."""
    artist_id: str
    artist_name: str
    times_seen: int
    total_songs_heard: int
    unique_songs: int
    top_songs: list[SongCount] = field(default_factory=list)


@dataclass
class OverviewStats:
    total_events: int
    events_by_type: dict[str, int]
    unique_venues: int
    unique_countries: int
    unique_players_witnessed: int
    aggregate_stats: dict[str, int]


@dataclass
class PlayerAppearanceRecord:
    """One event a player was seen at, with their line for that event."""
    event_id: str
    date: date
    sport: Sport
    venue_name: Optional[str]
    home: str
    away: str
    score: str
    team_name: Optional[str]
    stats: dict[str, Optional[int]] = field(default_factory=dict)


@dataclass
class PlayerProfile:
    player: Player
    appearances_count: int
    total_stats: dict[str, int]
    appearances: list[PlayerAppearanceRecord] = field(default_factory=list)


@dataclass
class ConcertRecord:
    event_id: str
    date: date
    venue_name: Optional[str]
    tour_name: Optional[str]
    setlist: list[SetlistItem] = field(default_factory=list)


@dataclass
class ArtistProfile:
    artist: Artist
    times_seen: int
    total_songs_heard: int
    unique_songs: int
    top_songs: list[SongCount] = field(default_factory=list)
    concerts: list[ConcertRecord] = field(default_factory=list)


@dataclass
class RankedName:
    id: str
    name: str
    count: int


@dataclass
class YearReview:
    """Summary of one calendar year of attendance."""
    year: int
    total_events: int
    events_by_type: dict[str, int]
    monthly_breakdown: list[int]
    busiest_month: Optional[int]
    countries_visited: list[str]
    top_venues: list[RankedName] = field(default_factory=list)
    top_artists: list[RankedName] = field(default_factory=list)
    teams_seen: int = 0
    players_witnessed: int = 0
    achievements_unlocked: list[UserAchievement] = field(default_factory=list)


@dataclass
class Dashboard:
    overview: OverviewStats
    recent_events: list[Event]
    top_venues: list[VenueStatsEntry]


# =============================================================================
# Validation
# =============================================================================


def parse_sport(sport) -> Sport:
    """Coerce a sport tag, raising InvalidStatsQuery for unknown tags."""
    if isinstance(sport, Sport):
        return sport
    try:
        return Sport(str(sport).strip().lower())
    except ValueError:
        raise InvalidStatsQuery(f"Unknown sport: {sport!r}")


def validate_year(year: Optional[int]) -> None:
    if year is None:
        return
    if isinstance(year, bool) or not isinstance(year, int) or not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidStatsQuery(f"Year must be between {MIN_YEAR} and {MAX_YEAR}, got {year!r}")


def validate_leaderboard_query(sport, stat_type: str, limit: int) -> Sport:
    """
    Check a leaderboard request before anything is read.

    Args:
        sport: Sport tag.
        stat_type: A tracked field of that sport, or "appearances".
        limit: Maximum entries, must be non-negative.

    Returns:
        The parsed Sport.

    Raises:
        InvalidStatsQuery: On any unservable input.
    """
    sport = parse_sport(sport)
    if sport not in LEADERBOARD_STATS:
        raise InvalidStatsQuery(f"No player leaderboard for {sport.value}")
    if stat_type != APPEARANCES and stat_type not in LEADERBOARD_STATS[sport]:
        valid = ", ".join([APPEARANCES, *LEADERBOARD_STATS[sport]])
        raise InvalidStatsQuery(f"Unknown {sport.value} stat {stat_type!r} (valid: {valid})")
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        raise InvalidStatsQuery(f"Limit must be a non-negative integer, got {limit!r}")
    return sport


# =============================================================================
# Aggregation
# =============================================================================
# Pure functions over already-loaded events. Events are expected in date
# order; helpers that need "most recent" re-sort defensively.


def _n(value) -> int:
    """Null-as-zero for sums. Booleans count as 1."""
    return int(value or 0)


def classify(home_score: Optional[int], away_score: Optional[int]) -> tuple[str, str]:
    """
    Classify a result from each side's perspective.

    Missing scores compare as 0.

    Returns:
        (home outcome, away outcome), each "win", "loss" or "draw".
    """
    home, away = _n(home_score), _n(away_score)
    if home > away:
        return "win", "loss"
    if home < away:
        return "loss", "win"
    return "draw", "draw"


def _by_date(events: list[Event]) -> list[Event]:
    return sorted(events, key=lambda e: e.date)


def build_leaderboard(events: list[Event], sport: Sport, stat_type: str, limit: int) -> list[PlayerLeaderboardEntry]:
    tracked = LEADERBOARD_STATS[sport]
    entries: dict[str, PlayerLeaderboardEntry] = {}

    for event in _by_date(events):
        if event.sport != sport or event.match is None:
            continue
        for app in event.match.appearances:
            entry = entries.get(app.player_id)
            if entry is None:
                entry = PlayerLeaderboardEntry(
                    rank=0,
                    player_id=app.player_id,
                    player_name=app.player_name,
                    team_name="",
                    value=0,
                    appearances=0,
                    totals=dict.fromkeys(tracked, 0),
                )
                entries[app.player_id] = entry
            entry.appearances += 1
            for stat, attr in tracked.items():
                entry.totals[stat] += _n(getattr(app, attr))
            if app.team_name and app.team_name.strip():
                entry.team_name = app.team_name.strip()

    for entry in entries.values():
        entry.value = entry.appearances if stat_type == APPEARANCES else entry.totals[stat_type]

    ranked = sorted(
        entries.values(),
        key=lambda e: (-e.value, -e.appearances, e.player_name.casefold(), e.player_id),
    )[:limit]
    for rank, entry in enumerate(ranked, start=1):
        entry.rank = rank
    return ranked


def build_team_stats(events: list[Event]) -> list[TeamStatsEntry]:
    resolver = EntityResolver()
    table: dict[tuple, TeamStatsEntry] = {}

    for event in events:
        match = event.match
        if match is None:
            continue
        home_outcome, away_outcome = classify(match.home_score, match.away_score)
        known = match.has_full_score
        sides = (
            (match.home_team, match.home_score, match.away_score, home_outcome),
            (match.away_team, match.away_score, match.home_score, away_outcome),
        )
        for name, scored, conceded, outcome in sides:
            key = resolver.resolve(name, event.sport)
            entry = table.get(key)
            if entry is None:
                basketball = event.sport == Sport.BASKETBALL
                entry = TeamStatsEntry(
                    team_name=resolver.display_name(key),
                    sport=event.sport,
                    points_for=0 if basketball else None,
                    points_against=0 if basketball else None,
                )
                table[key] = entry
            entry.record(outcome, scored, conceded, known)

    return sorted(
        table.values(),
        key=lambda e: (-e.total_games, e.team_name.casefold(), e.sport.value),
    )


def build_venue_stats(events: list[Event]) -> list[VenueStatsEntry]:
    table: dict[str, VenueStatsEntry] = {}

    for event in events:
        venue = event.venue
        if venue is None:
            continue
        entry = table.get(venue.id)
        if entry is None:
            entry = VenueStatsEntry(
                venue_id=venue.id,
                venue_name=venue.name,
                city=venue.city,
                country=venue.country,
            )
            table[venue.id] = entry
        entry.total_events += 1
        entry.event_types[event.sport.value] = entry.event_types.get(event.sport.value, 0) + 1

        # Home side only
        match = event.match
        if match is not None:
            outcome, _ = classify(match.home_score, match.away_score)
            if outcome == "win":
                entry.wins += 1
            elif outcome == "loss":
                entry.losses += 1
            else:
                entry.draws += 1

    return sorted(table.values(), key=lambda e: (-e.total_events, e.venue_name.casefold(), e.venue_id))


def top_songs(songs: Counter, limit: int) -> list[SongCount]:
    ranked = sorted(songs.items(), key=lambda kv: (-kv[1], kv[0]))
    return [SongCount(song_name=name, times_played=count) for name, count in ranked[:limit]]


def build_artist_stats(events: list[Event], top_n: int = DEFAULT_TOP_SONGS) -> list[ArtistStatsEntry]:
    names: dict[str, str] = {}
    seen: Counter = Counter()
    songs: dict[str, Counter] = {}

    for event in events:
        concert = event.concert
        if concert is None:
            continue
        names.setdefault(concert.artist_id, concert.artist_name)
        seen[concert.artist_id] += 1
        songs.setdefault(concert.artist_id, Counter()).update(
            item.song_name for item in concert.setlist
        )

    entries = [
        ArtistStatsEntry(
            artist_id=artist_id,
            artist_name=names[artist_id],
            times_seen=seen[artist_id],
            total_songs_heard=sum(songs[artist_id].values()),
            unique_songs=len(songs[artist_id]),
            top_songs=top_songs(songs[artist_id], top_n),
        )
        for artist_id in seen
    ]
    return sorted(entries, key=lambda e: (-e.times_seen, e.artist_name.casefold(), e.artist_id))


def count_by_type(events: list[Event]) -> dict[str, int]:
    counts = dict.fromkeys((s.value for s in Sport), 0)
    for event in events:
        counts[event.sport.value] += 1
    return counts


def witnessed_players(events: list[Event]) -> set[str]:
    """Distinct player ids across all team-sport appearances."""
    players = set()
    for event in events:
        if event.match is not None:
            players.update(app.player_id for app in event.match.appearances)
    return players


def build_overview(events: list[Event]) -> OverviewStats:
    aggregate = dict.fromkeys(SIGNATURE_STATS, 0)
    for event in events:
        match = event.match
        if match is None:
            continue
        for name, (sport, attr) in SIGNATURE_STATS.items():
            if event.sport == sport:
                aggregate[name] += sum(_n(getattr(app, attr)) for app in match.appearances)

    return OverviewStats(
        total_events=len(events),
        events_by_type=count_by_type(events),
        unique_venues=len({e.venue.id for e in events if e.venue}),
        unique_countries=len({
            canonical_key(e.venue.country) for e in events if e.venue and e.venue.country.strip()
        }),
        unique_players_witnessed=len(witnessed_players(events)),
        aggregate_stats=aggregate,
    )


def _matchup(event: Event) -> tuple[str, str, str]:
    """(home, away, score text) for a team match or tennis match."""
    match = event.match
    if match is not None:
        home = "?" if match.home_score is None else str(match.home_score)
        away = "?" if match.away_score is None else str(match.away_score)
        return match.home_team, match.away_team, f"{home}-{away}"
    tennis = event.tennis
    return tennis.player1_name, tennis.player2_name, tennis.score


def build_player_profile(player: Player, events: list[Event]) -> PlayerProfile:
    records = []
    totals: dict[str, int] = {}

    for event in reversed(_by_date(events)):
        payload = event.match or event.tennis
        if payload is None:
            continue
        app = next((a for a in payload.appearances if a.player_id == player.id), None)
        if app is None:
            continue

        stats = {name: getattr(app, name) for name in stat_fields(type(app))}
        for name, value in stats.items():
            totals[name] = totals.get(name, 0) + _n(value)

        home, away, score = _matchup(event)
        records.append(PlayerAppearanceRecord(
            event_id=event.id,
            date=event.date,
            sport=event.sport,
            venue_name=event.venue.name if event.venue else None,
            home=home,
            away=away,
            score=score,
            team_name=getattr(app, "team_name", None),
            stats=stats,
        ))

    return PlayerProfile(
        player=player,
        appearances_count=len(records),
        total_stats=totals,
        appearances=records,
    )


def build_artist_profile(artist: Artist, events: list[Event], top_n: int = DEFAULT_PROFILE_SONGS) -> ArtistProfile:
    songs: Counter = Counter()
    concerts = []

    for event in reversed(_by_date(events)):
        concert = event.concert
        if concert is None or concert.artist_id != artist.id:
            continue
        songs.update(item.song_name for item in concert.setlist)
        concerts.append(ConcertRecord(
            event_id=event.id,
            date=event.date,
            venue_name=event.venue.name if event.venue else None,
            tour_name=concert.tour_name,
            setlist=sorted(concert.setlist, key=lambda item: item.order),
        ))

    return ArtistProfile(
        artist=artist,
        times_seen=len(concerts),
        total_songs_heard=sum(songs.values()),
        unique_songs=len(songs),
        top_songs=top_songs(songs, top_n),
        concerts=concerts,
    )


def build_year_review(
    year: int,
    events: list[Event],
    unlocks: list[UserAchievement],
    top_n: int = DEFAULT_YEAR_REVIEW_TOP_N,
) -> YearReview:
    events = [e for e in events if e.in_year(year)]

    monthly = [0] * 12
    for event in events:
        monthly[event.date.month - 1] += 1
    busiest = max(range(12), key=lambda m: monthly[m]) + 1 if events else None

    resolver = EntityResolver()
    for event in events:
        if event.venue and event.venue.country.strip():
            resolver.resolve(event.venue.country)
    countries = sorted(resolver.display_names(), key=str.casefold)

    venue_counts: Counter = Counter()
    venue_names: dict[str, str] = {}
    artist_counts: Counter = Counter()
    artist_names: dict[str, str] = {}
    teams = EntityResolver()
    for event in events:
        if event.venue:
            venue_counts[event.venue.id] += 1
            venue_names.setdefault(event.venue.id, event.venue.name)
        if event.concert:
            artist_counts[event.concert.artist_id] += 1
            artist_names.setdefault(event.concert.artist_id, event.concert.artist_name)
        if event.match:
            teams.resolve(event.match.home_team, event.sport)
            teams.resolve(event.match.away_team, event.sport)

    def ranked(counts: Counter, names: dict[str, str]) -> list[RankedName]:
        order = sorted(counts.items(), key=lambda kv: (-kv[1], names[kv[0]].casefold(), kv[0]))
        return [RankedName(id=key, name=names[key], count=count) for key, count in order[:top_n]]

    return YearReview(
        year=year,
        total_events=len(events),
        events_by_type=count_by_type(events),
        monthly_breakdown=monthly,
        busiest_month=busiest,
        countries_visited=countries,
        top_venues=ranked(venue_counts, venue_names),
        top_artists=ranked(artist_counts, artist_names),
        teams_seen=len(teams),
        players_witnessed=len(witnessed_players(events)),
        achievements_unlocked=sorted(
            (u for u in unlocks if u.unlocked_at.year == year),
            key=lambda u: u.unlocked_at,
        ),
    )


# =============================================================================
# Service
# =============================================================================


class StatsService:
    """
    Cross-sport statistics service.

    Provides methods for:
    - Player leaderboards per sport and stat
    - Team, venue and artist summaries
    - Overview, profiles, year in review and dashboard
    """

    def __init__(
        self,
        store: AttendanceStore,
        top_songs_limit: int = DEFAULT_TOP_SONGS,
        recent_events_limit: int = DEFAULT_RECENT_EVENTS,
        year_review_top_n: int = DEFAULT_YEAR_REVIEW_TOP_N,
    ):
        """
        Initialize stats service.

        Args:
            store: Attendance store to read events from.
            top_songs_limit: Songs listed per artist in artist stats.
            recent_events_limit: Events listed on the dashboard.
            year_review_top_n: Venues/artists listed in a year review.
        """
        self.store = store
        self.top_songs_limit = top_songs_limit
        self.recent_events_limit = recent_events_limit
        self.year_review_top_n = year_review_top_n

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    async def get_leaderboard(
        self,
        user_id: str,
        sport,
        stat_type: str,
        limit: int,
        year: Optional[int] = None,
    ) -> list[PlayerLeaderboardEntry]:
        """
        Get the player leaderboard for one sport and stat.

        Args:
            user_id: Owning user.
            sport: Soccer, basketball or baseball.
            stat_type: Tracked field name, or "appearances".
            limit: Maximum entries to return.
            year: Optional year filter.

        Returns:
            Entries sorted by value, then appearances, then player name.

        Raises:
            InvalidStatsQuery: Before any read, on unservable input.
        """
        sport = validate_leaderboard_query(sport, stat_type, limit)
        validate_year(year)

        events = await self.store.get_events(user_id, year=year, sports=[sport])
        entries = build_leaderboard(events, sport, stat_type, limit)

        missing_team = [e for e in entries if not e.team_name]
        if missing_team:
            players = await asyncio.gather(*(self.store.get_player(e.player_id) for e in missing_team))
            for entry, player in zip(missing_team, players):
                entry.team_name = (player.team if player and player.team else None) or UNKNOWN_TEAM

        logger.debug(f"Leaderboard {sport.value}/{stat_type} for {user_id}: {len(entries)} entries")
        return entries

    async def get_team_stats(self, user_id: str, year: Optional[int] = None) -> list[TeamStatsEntry]:
        validate_year(year)
        events = await self.store.get_events(user_id, year=year, sports=TEAM_SPORTS)
        return build_team_stats(events)

    async def get_venue_stats(self, user_id: str, year: Optional[int] = None) -> list[VenueStatsEntry]:
        validate_year(year)
        events = await self.store.get_events(user_id, year=year)
        return build_venue_stats(events)

    async def get_artist_stats(self, user_id: str, year: Optional[int] = None) -> list[ArtistStatsEntry]:
        validate_year(year)
        events = await self.store.get_events(user_id, year=year, sports=[Sport.CONCERT])
        return build_artist_stats(events, self.top_songs_limit)

    async def get_overview_stats(self, user_id: str, year: Optional[int] = None) -> OverviewStats:
        validate_year(year)
        events = await self.store.get_events(user_id, year=year)
        return build_overview(events)

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    async def get_player_profile(self, user_id: str, player_id: str) -> Optional[PlayerProfile]:
        """
        Get a player's totals and appearance history for one user.

        Returns:
            PlayerProfile, or None if the player does not exist.
        """
        player = await self.store.get_player(player_id)
        if player is None:
            return None
        events = await self.store.get_events(user_id, sports=[player.sport])
        return build_player_profile(player, events)

    async def get_artist_profile(self, user_id: str, artist_id: str) -> Optional[ArtistProfile]:
        """
        Get an artist's concert history and song counts for one user.

        Returns:
            ArtistProfile, or None if the artist does not exist.
        """
        artist = await self.store.get_artist(artist_id)
        if artist is None:
            return None
        events = await self.store.get_events(user_id, sports=[Sport.CONCERT])
        return build_artist_profile(artist, events)

    # -------------------------------------------------------------------------
    # Composite views
    # -------------------------------------------------------------------------

    async def get_year_review(self, user_id: str, year: int) -> YearReview:
        if year is None:
            raise InvalidStatsQuery("Year is required for a year review")
        validate_year(year)

        events, unlocks = await asyncio.gather(
            self.store.get_events(user_id, year=year),
            self.store.get_user_achievements(user_id),
        )
        return build_year_review(year, events, list(unlocks.values()), self.year_review_top_n)

    async def get_recent_events(self, user_id: str, limit: int, year: Optional[int] = None) -> list[Event]:
        validate_year(year)
        events = await self.store.get_events(user_id, year=year)
        return list(reversed(_by_date(events)))[:limit]

    async def get_dashboard(self, user_id: str, year: Optional[int] = None) -> Dashboard:
        """
        Overview, recent events and top venues in one call.

        The three reads are independent and run concurrently.
        """
        validate_year(year)
        overview, recent, venues = await asyncio.gather(
            self.get_overview_stats(user_id, year),
            self.get_recent_events(user_id, self.recent_events_limit, year),
            self.get_venue_stats(user_id, year),
        )
        return Dashboard(
            overview=overview,
            recent_events=recent,
            top_venues=venues[:self.recent_events_limit],
        )
