"""
Stats API router for the event tracker.

All endpoints are scoped to the calling user, identified by the X-User-Id
header that the upstream gateway sets after authenticating the request.
"""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

from config import config
from models.events import Sport
from services.stats_service import InvalidStatsQuery, StatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["stats"])


# =============================================================================
# Request/Response Models
# =============================================================================


class SongCountResponse(BaseModel):
    song_name: str
    times_played: int


class LeaderboardEntryResponse(BaseModel):
    """Single leaderboard entry."""
    rank: int
    player_id: str
    player_name: str
    team_name: str
    value: int
    appearances: int
    totals: dict[str, int]


class LeaderboardResponse(BaseModel):
    """Leaderboard response."""
    sport: Sport
    stat: str
    year: Optional[int] = None
    entries: list[LeaderboardEntryResponse]


class TeamStatsResponse(BaseModel):
    team_name: str
    sport: Sport
    wins: int
    losses: int
    draws: int
    total_games: int
    score_for: int
    score_against: int
    points_for: Optional[int] = None
    points_against: Optional[int] = None
    unknown_scores: int


class VenueStatsResponse(BaseModel):
    venue_id: str
    venue_name: str
    city: str
    country: str
    total_events: int
    event_types: dict[str, int]
    wins: int
    losses: int
    draws: int


class ArtistStatsResponse(BaseModel):
    artist_id: str
    artist_name: str
    times_seen: int
    total_songs_heard: int
    unique_songs: int
    top_songs: list[SongCountResponse]


class OverviewResponse(BaseModel):
    """Cross-sport overview response."""
    total_events: int
    events_by_type: dict[str, int]
    unique_venues: int
    unique_countries: int
    unique_players_witnessed: int
    aggregate_stats: dict[str, int]


# =============================================================================
# Dependencies
# =============================================================================

# Set by main.py during startup
_stats_service: Optional[StatsService] = None


def set_stats_service(service: Optional[StatsService]) -> None:
    """Set the stats service instance (called from main.py)."""
    global _stats_service
    _stats_service = service


def get_stats_service_dep() -> StatsService:
    """Dependency to get stats service."""
    if _stats_service is None:
        raise HTTPException(status_code=503, detail="Stats service not initialized")
    return _stats_service


def require_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Require the gateway-provided user ID."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


async def _run(awaitable):
    """Await a service call, mapping invalid queries to 400."""
    try:
        return await awaitable
    except InvalidStatsQuery as e:
        raise HTTPException(status_code=400, detail=str(e))


# =============================================================================
# Aggregates
# =============================================================================


@router.get("/overview", response_model=OverviewResponse)
async def get_overview(
    year: Optional[int] = Query(None),
    user_id: str = Depends(require_user_id),
    service: StatsService = Depends(get_stats_service_dep),
):
    """Get totals across every event type."""
    overview = await _run(service.get_overview_stats(user_id, year))
    return asdict(overview)


@router.get("/leaderboards", response_model=LeaderboardResponse)
async def get_leaderboard(
    sport: str = Query(...),
    stat: str = Query("appearances"),
    limit: Optional[int] = Query(None),
    year: Optional[int] = Query(None),
    user_id: str = Depends(require_user_id),
    service: StatsService = Depends(get_stats_service_dep),
):
    """
    Get a player leaderboard.

    Stats by sport:
    - soccer: goals, assists, yellow_cards, red_cards, clean_sheets
    - basketball: points, rebounds, assists, steals, blocks
    - baseball: home_runs, hits, rbis, runs, walks

    Every sport also accepts "appearances".
    """
    if limit is None:
        limit = config.stats.LEADERBOARD_LIMIT
    elif limit > config.stats.LEADERBOARD_MAX_LIMIT:
        limit = config.stats.LEADERBOARD_MAX_LIMIT

    entries = await _run(service.get_leaderboard(user_id, sport, stat, limit, year))

    return {
        "sport": sport.strip().lower(),
        "stat": stat,
        "year": year,
        "entries": [asdict(e) for e in entries],
    }


@router.get("/teams", response_model=dict)
async def get_teams(
    year: Optional[int] = Query(None),
    user_id: str = Depends(require_user_id),
    service: StatsService = Depends(get_stats_service_dep),
):
    """Get win/loss/draw records per team."""
    teams = await _run(service.get_team_stats(user_id, year))
    return {"teams": [TeamStatsResponse(**asdict(t)).model_dump(mode="json") for t in teams]}


@router.get("/venues", response_model=dict)
async def get_venues(
    year: Optional[int] = Query(None),
    user_id: str = Depends(require_user_id),
    service: StatsService = Depends(get_stats_service_dep),
):
    """Get attendance per venue, with home-side results."""
    venues = await _run(service.get_venue_stats(user_id, year))
    return {"venues": [VenueStatsResponse(**asdict(v)).model_dump(mode="json") for v in venues]}


@router.get("/artists", response_model=dict)
async def get_artists(
    year: Optional[int] = Query(None),
    user_id: str = Depends(require_user_id),
    service: StatsService = Depends(get_stats_service_dep),
):
    """Get concert counts and most-heard songs per artist."""
    artists = await _run(service.get_artist_stats(user_id, year))
    return {"artists": [ArtistStatsResponse(**asdict(a)).model_dump(mode="json") for a in artists]}


# =============================================================================
# Profiles and Composite Views
# =============================================================================


@router.get("/artists/{artist_id}", response_model=dict)
async def get_artist_profile(
    artist_id: str,
    user_id: str = Depends(require_user_id),
    service: StatsService = Depends(get_stats_service_dep),
):
    """Get concert history and song counts for one artist."""
    profile = await _run(service.get_artist_profile(user_id, artist_id))
    if profile is None:
        raise HTTPException(status_code=404, detail="Artist not found")
    return jsonable_encoder(profile)


@router.get("/players/{player_id}", response_model=dict)
async def get_player_profile(
    player_id: str,
    user_id: str = Depends(require_user_id),
    service: StatsService = Depends(get_stats_service_dep),
):
    """Get totals and appearance history for one player."""
    profile = await _run(service.get_player_profile(user_id, player_id))
    if profile is None:
        raise HTTPException(status_code=404, detail="Player not found")
    return jsonable_encoder(profile)


@router.get("/year-review/{year}", response_model=dict)
async def get_year_review(
    year: int,
    user_id: str = Depends(require_user_id),
    service: StatsService = Depends(get_stats_service_dep),
):
    """Get the summary of one calendar year."""
    review = await _run(service.get_year_review(user_id, year))
    return jsonable_encoder(review)


@router.get("/dashboard", response_model=dict)
async def get_dashboard(
    year: Optional[int] = Query(None),
    user_id: str = Depends(require_user_id),
    service: StatsService = Depends(get_stats_service_dep),
):
    """Get overview, recent events and top venues in one response."""
    dashboard = await _run(service.get_dashboard(user_id, year))
    return jsonable_encoder(dashboard)
