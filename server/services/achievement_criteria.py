"""Achievement criteria for the event tracker.

Each criteria function measures one statistic over a user's events and
returns the current value together with the most recent event that counted
towards it. Functions are dispatched by criteria type via the CRITERIA dict;
a catalog entry whose type is missing from CRITERIA measures as zero.

Events are passed in date order.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from models.achievements import AchievementDefinition
from models.events import Event, Sport
from services.entity_resolver import canonical_key


@dataclass
class Measurement:
    """Current value of a criteria statistic."""

    current: int
    trigger_event_id: Optional[str] = None


CriteriaFn = Callable[[list[Event], AchievementDefinition], Measurement]

# Substrings identifying the four tennis majors in free-text tournament names
GRAND_SLAM_TOURNAMENTS = {
    "australian_open": ("australian open",),
    "french_open": ("french open", "roland garros", "roland-garros"),
    "wimbledon": ("wimbledon",),
    "us_open": ("us open", "u.s. open"),
}

TRIPLE_DOUBLE_FIELDS = ("points", "rebounds", "assists", "steals", "blocks")


# =============================================================================
# Reducers
# =============================================================================


def _count(events: list[Event], predicate: Callable[[Event], bool]) -> Measurement:
    qualifying = [e for e in events if predicate(e)]
    return Measurement(len(qualifying), qualifying[-1].id if qualifying else None)


def _sum(events: list[Event], value: Callable[[Event], int]) -> Measurement:
    total, trigger = 0, None
    for event in events:
        amount = value(event)
        if amount > 0:
            total += amount
            trigger = event.id
    return Measurement(total, trigger)


def _distinct(events: list[Event], keys: Callable[[Event], Iterable]) -> Measurement:
    seen = set()
    trigger = None
    for event in events:
        new = {k for k in keys(event) if k is not None} - seen
        if new:
            seen.update(new)
            trigger = event.id
    return Measurement(len(seen), trigger)


def _largest_group(events: list[Event], key: Callable[[Event], object]) -> Measurement:
    groups: dict[object, list[Event]] = {}
    for event in events:
        k = key(event)
        if k is not None:
            groups.setdefault(k, []).append(event)
    if not groups:
        return Measurement(0)
    largest = max(groups.values(), key=len)
    return Measurement(len(largest), largest[-1].id)


def _appearances(event: Event, sport: Sport) -> list:
    if event.sport != sport or event.match is None:
        return []
    return event.match.appearances


def _stat_total(event: Event, sport: Sport, attr: str) -> int:
    return sum(int(getattr(app, attr) or 0) for app in _appearances(event, sport))


def _flag_count(event: Event, sport: Sport, attr: str) -> int:
    """Appearances where a boolean stat is explicitly true."""
    return sum(1 for app in _appearances(event, sport) if getattr(app, attr) is True)


def _companions(event: Event) -> list[str]:
    return [name for name in event.companions if name and name.strip()]


# =============================================================================
# General criteria
# =============================================================================


def measure_total_events(events, definition):
    return _count(events, lambda e: True)


def measure_events_by_type(events, definition):
    return _count(events, lambda e: definition.sport is None or e.sport == definition.sport)


def measure_unique_venues(events, definition):
    return _distinct(events, lambda e: [e.venue_id])


def measure_unique_countries(events, definition):
    return _distinct(events, lambda e: [
        canonical_key(e.venue.country) if e.venue and e.venue.country.strip() else None
    ])


def measure_unique_cities(events, definition):
    return _distinct(events, lambda e: [
        (canonical_key(e.venue.city), canonical_key(e.venue.country))
        if e.venue and e.venue.city.strip() else None
    ])


def measure_same_venue_events(events, definition):
    return _largest_group(events, lambda e: e.venue_id)


def measure_same_artist(events, definition):
    return _largest_group(events, lambda e: e.concert.artist_id if e.concert else None)


def measure_events_same_day(events, definition):
    return _largest_group(events, lambda e: e.date)


def measure_monthly_streak(events, definition):
    """Longest run of consecutive calendar months with at least one event."""
    last_in_month: dict[int, str] = {}
    for event in events:
        last_in_month[event.date.year * 12 + event.date.month - 1] = event.id

    best, best_end = 0, None
    run, previous = 0, None
    for month in sorted(last_in_month):
        run = run + 1 if previous is not None and month == previous + 1 else 1
        previous = month
        if run > best:
            best, best_end = run, month

    return Measurement(best, last_in_month[best_end] if best_end is not None else None)


def measure_all_event_types(events, definition):
    return _distinct(events, lambda e: [e.sport])


def measure_unique_companions(events, definition):
    return _distinct(events, lambda e: [canonical_key(name) for name in _companions(e)])


def measure_solo_events(events, definition):
    return _count(events, lambda e: not _companions(e))


# =============================================================================
# Sport criteria
# =============================================================================


def measure_goals_witnessed(events, definition):
    return _sum(events, lambda e: _stat_total(e, Sport.SOCCER, "goals"))


def measure_points_witnessed(events, definition):
    return _sum(events, lambda e: _stat_total(e, Sport.BASKETBALL, "points"))


def measure_home_runs(events, definition):
    return _sum(events, lambda e: _stat_total(e, Sport.BASEBALL, "home_runs"))


def measure_red_cards(events, definition):
    return _sum(events, lambda e: _flag_count(e, Sport.SOCCER, "red_card"))


def _clean_sheets(event: Event) -> int:
    match = event.match
    if event.sport != Sport.SOCCER or match is None or not match.has_full_score:
        return 0
    return int(match.away_score == 0) + int(match.home_score == 0)


def measure_clean_sheets(events, definition):
    """Sides that conceded nothing, counted only when both scores are known."""
    return _sum(events, _clean_sheets)


def _is_triple_double(app) -> bool:
    return sum(1 for attr in TRIPLE_DOUBLE_FIELDS if (getattr(app, attr) or 0) >= 10) >= 3


def measure_triple_double(events, definition):
    return _sum(events, lambda e: sum(
        1 for app in _appearances(e, Sport.BASKETBALL) if _is_triple_double(app)
    ))


def measure_grand_slam(events, definition):
    return _sum(events, lambda e: _flag_count(e, Sport.BASEBALL, "grand_slam"))


def grand_slam_tournament(tournament: Optional[str]) -> Optional[str]:
    """Identify which major a tournament name refers to, if any."""
    name = (tournament or "").casefold()
    for major, patterns in GRAND_SLAM_TOURNAMENTS.items():
        if any(p in name for p in patterns):
            return major
    return None


def measure_grand_slam_tournaments(events, definition):
    return _distinct(events, lambda e: [
        grand_slam_tournament(e.tennis.tournament) if e.tennis else None
    ])


def measure_complete_setlists(events, definition):
    return _count(events, lambda e: e.concert is not None and bool(e.concert.setlist))


# Criteria type -> measuring function.
# Not registered: festivals_in_year (events carry no festival flag),
# late_night (no end time is stored), first_at_venue (needs other users' data).
CRITERIA: dict[str, CriteriaFn] = {
    "total_events": measure_total_events,
    "events_by_type": measure_events_by_type,
    "unique_venues": measure_unique_venues,
    "unique_countries": measure_unique_countries,
    "unique_cities": measure_unique_cities,
    "same_venue_events": measure_same_venue_events,
    "same_artist": measure_same_artist,
    "events_same_day": measure_events_same_day,
    "monthly_streak": measure_monthly_streak,
    "all_event_types": measure_all_event_types,
    "unique_companions": measure_unique_companions,
    "solo_events": measure_solo_events,
    "goals_witnessed": measure_goals_witnessed,
    "points_witnessed": measure_points_witnessed,
    "home_runs": measure_home_runs,
    "red_cards": measure_red_cards,
    "clean_sheets": measure_clean_sheets,
    "triple_double": measure_triple_double,
    "grand_slam": measure_grand_slam,
    "grand_slam_tournaments": measure_grand_slam_tournaments,
    "complete_setlists": measure_complete_setlists,
}
