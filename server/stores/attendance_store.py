"""
PostgreSQL-backed attendance store for the event tracker.

Holds the events a user attended, their sport-specific sub-records,
per-player appearance rows and concert setlists, plus the achievement
catalog and per-user unlock records.

The stats engine only reads attendance data. Its one write is the
achievement unlock, guarded by UNIQUE(user_id, achievement_id) so that
racing evaluations cannot insert the same unlock twice.
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import UUID

import asyncpg

from models.events import (
    Artist,
    BaseballAppearance,
    BaseballGame,
    BasketballAppearance,
    BasketballGame,
    Concert,
    Event,
    InvalidEventError,
    Player,
    SetlistItem,
    SoccerAppearance,
    SoccerMatch,
    Sport,
    TennisAppearance,
    TennisMatch,
    Venue,
    stat_fields,
    year_bounds,
)
from models.achievements import AchievementDefinition, UserAchievement

logger = logging.getLogger(__name__)


# SQL schema for attendance store
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS venues (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name VARCHAR(200) NOT NULL,
    city VARCHAR(120) NOT NULL DEFAULT '',
    country VARCHAR(120) NOT NULL DEFAULT '',
    latitude DOUBLE PRECISION,
    longitude DOUBLE PRECISION,
    UNIQUE(name, city, country)
);

CREATE TABLE IF NOT EXISTS players (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name VARCHAR(200) NOT NULL,
    sport VARCHAR(20) NOT NULL,
    team VARCHAR(200),
    nationality VARCHAR(100),
    external_id VARCHAR(100),
    UNIQUE(name, sport)
);

CREATE TABLE IF NOT EXISTS artists (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name VARCHAR(200) UNIQUE NOT NULL
);

-- One row per attended event; the sport tag selects the sub-record table
CREATE TABLE IF NOT EXISTS events (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id VARCHAR(64) NOT NULL,
    sport VARCHAR(20) NOT NULL
        CHECK (sport IN ('soccer', 'basketball', 'baseball', 'tennis', 'concert')),
    event_date DATE NOT NULL,
    venue_id UUID REFERENCES venues(id),
    rating SMALLINT CHECK (rating BETWEEN 1 AND 5),
    notes TEXT,
    companions TEXT[] NOT NULL DEFAULT '{}',
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS soccer_matches (
    event_id UUID PRIMARY KEY REFERENCES events(id) ON DELETE CASCADE,
    home_team VARCHAR(200) NOT NULL,
    away_team VARCHAR(200) NOT NULL,
    home_score INT,
    away_score INT,
    competition VARCHAR(200)
);

CREATE TABLE IF NOT EXISTS basketball_games (
    event_id UUID PRIMARY KEY REFERENCES events(id) ON DELETE CASCADE,
    home_team VARCHAR(200) NOT NULL,
    away_team VARCHAR(200) NOT NULL,
    home_score INT,
    away_score INT,
    competition VARCHAR(200)
);

CREATE TABLE IF NOT EXISTS baseball_games (
    event_id UUID PRIMARY KEY REFERENCES events(id) ON DELETE CASCADE,
    home_team VARCHAR(200) NOT NULL,
    away_team VARCHAR(200) NOT NULL,
    home_score INT,
    away_score INT,
    competition VARCHAR(200)
);

CREATE TABLE IF NOT EXISTS tennis_matches (
    event_id UUID PRIMARY KEY REFERENCES events(id) ON DELETE CASCADE,
    player1_id UUID NOT NULL REFERENCES players(id),
    player2_id UUID NOT NULL REFERENCES players(id),
    winner_id UUID REFERENCES players(id),
    score VARCHAR(100) NOT NULL DEFAULT '',
    tournament VARCHAR(200),
    round VARCHAR(50)
);

CREATE TABLE IF NOT EXISTS concerts (
    event_id UUID PRIMARY KEY REFERENCES events(id) ON DELETE CASCADE,
    artist_id UUID NOT NULL REFERENCES artists(id),
    tour_name VARCHAR(200),
    opening_acts TEXT[] NOT NULL DEFAULT '{}'
);

CREATE TABLE IF NOT EXISTS setlist_items (
    id BIGSERIAL PRIMARY KEY,
    event_id UUID NOT NULL REFERENCES concerts(event_id) ON DELETE CASCADE,
    song_name VARCHAR(300) NOT NULL,
    song_order INT NOT NULL,
    is_encore BOOLEAN NOT NULL DEFAULT FALSE,
    notes TEXT,
    UNIQUE(event_id, song_order)
);

CREATE TABLE IF NOT EXISTS soccer_appearances (
    id BIGSERIAL PRIMARY KEY,
    event_id UUID NOT NULL REFERENCES soccer_matches(event_id) ON DELETE CASCADE,
    player_id UUID NOT NULL REFERENCES players(id),
    team_name VARCHAR(200),
    goals INT,
    assists INT,
    yellow_card BOOLEAN,
    red_card BOOLEAN,
    clean_sheet BOOLEAN,
    minutes_played INT,
    UNIQUE(event_id, player_id)
);

CREATE TABLE IF NOT EXISTS basketball_appearances (
    id BIGSERIAL PRIMARY KEY,
    event_id UUID NOT NULL REFERENCES basketball_games(event_id) ON DELETE CASCADE,
    player_id UUID NOT NULL REFERENCES players(id),
    team_name VARCHAR(200),
    points INT,
    rebounds INT,
    assists INT,
    steals INT,
    blocks INT,
    turnovers INT,
    UNIQUE(event_id, player_id)
);

CREATE TABLE IF NOT EXISTS baseball_appearances (
    id BIGSERIAL PRIMARY KEY,
    event_id UUID NOT NULL REFERENCES baseball_games(event_id) ON DELETE CASCADE,
    player_id UUID NOT NULL REFERENCES players(id),
    team_name VARCHAR(200),
    hits INT,
    home_runs INT,
    rbis INT,
    runs INT,
    at_bats INT,
    strikeouts INT,
    walks INT,
    grand_slam BOOLEAN,
    UNIQUE(event_id, player_id)
);

CREATE TABLE IF NOT EXISTS tennis_appearances (
    id BIGSERIAL PRIMARY KEY,
    event_id UUID NOT NULL REFERENCES tennis_matches(event_id) ON DELETE CASCADE,
    player_id UUID NOT NULL REFERENCES players(id),
    sets_won INT,
    is_winner BOOLEAN,
    UNIQUE(event_id, player_id)
);

-- Static achievement catalog (synced from models.achievements at startup)
CREATE TABLE IF NOT EXISTS achievements (
    id VARCHAR(50) PRIMARY KEY,
    name VARCHAR(100) NOT NULL,
    description TEXT,
    icon VARCHAR(20),
    tier VARCHAR(20),
    criteria_type VARCHAR(50) NOT NULL,
    threshold INT NOT NULL DEFAULT 1,
    sport VARCHAR(20),
    sort_order INT DEFAULT 0
);

CREATE TABLE IF NOT EXISTS user_achievements (
    id BIGSERIAL PRIMARY KEY,
    user_id VARCHAR(64) NOT NULL,
    achievement_id VARCHAR(50) NOT NULL REFERENCES achievements(id),
    unlocked_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    trigger_event_id UUID REFERENCES events(id) ON DELETE SET NULL,
    UNIQUE(user_id, achievement_id)
);

CREATE INDEX IF NOT EXISTS idx_events_user_date ON events(user_id, event_date);
CREATE INDEX IF NOT EXISTS idx_events_venue ON events(venue_id);
CREATE INDEX IF NOT EXISTS idx_soccer_app_player ON soccer_appearances(player_id);
CREATE INDEX IF NOT EXISTS idx_basketball_app_player ON basketball_appearances(player_id);
CREATE INDEX IF NOT EXISTS idx_baseball_app_player ON baseball_appearances(player_id);
CREATE INDEX IF NOT EXISTS idx_user_achievements_user ON user_achievements(user_id);
"""

# Team-sport sub-record tables: sport -> (match table, appearance table, match cls, appearance cls)
TEAM_TABLES = {
    Sport.SOCCER: ("soccer_matches", "soccer_appearances", SoccerMatch, SoccerAppearance),
    Sport.BASKETBALL: ("basketball_games", "basketball_appearances", BasketballGame, BasketballAppearance),
    Sport.BASEBALL: ("baseball_games", "baseball_appearances", BaseballGame, BaseballAppearance),
}


def _parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (ValueError, TypeError):
        return None


def _utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


class AttendanceStore:
    """
    PostgreSQL-backed attendance store.

    Reads are per user and optionally per year; everything is returned as
    fully assembled Event objects so aggregators never touch SQL rows.
    """

    def __init__(self, pool: asyncpg.Pool):
        """
        Initialize attendance store with connection pool.

        Args:
            pool: asyncpg connection pool.
        """
        self.pool = pool

    @classmethod
    async def create(
        cls,
        postgres_url: str,
        min_size: int = 2,
        max_size: int = 10,
    ) -> "AttendanceStore":
        """
        Create an AttendanceStore with a new connection pool.

        Args:
            postgres_url: PostgreSQL connection URL.
            min_size: Minimum pool connections.
            max_size: Maximum pool connections.

        Returns:
            Configured AttendanceStore instance.
        """
        pool = await asyncpg.create_pool(postgres_url, min_size=min_size, max_size=max_size)
        store = cls(pool)
        await store.initialize_schema()
        return store

    async def initialize_schema(self) -> None:
        """Create database tables if they don't exist."""
        async with self.pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)
        logger.info("Attendance store schema initialized")

    async def close(self) -> None:
        """Close the connection pool."""
        await self.pool.close()

    # -------------------------------------------------------------------------
    # Event Reads
    # -------------------------------------------------------------------------

    async def get_events(
        self,
        user_id: str,
        year: Optional[int] = None,
        sports: Optional[Iterable[Sport]] = None,
    ) -> list[Event]:
        """
        Get a user's events with sub-records, venues and appearances.

        Args:
            user_id: Owning user.
            year: Optional year filter (inclusive Jan 1 - Dec 31).
            sports: Optional sport tags to restrict to.

        Returns:
            Events ordered by date ascending.
        """
        conditions = ["e.user_id = $1"]
        args: list = [user_id]

        if year is not None:
            start, end = year_bounds(year)
            args.extend([start, end])
            conditions.append(f"e.event_date BETWEEN ${len(args) - 1} AND ${len(args)}")

        if sports is not None:
            args.append([Sport(s).value for s in sports])
            conditions.append(f"e.sport = ANY(${len(args)}::varchar[])")

        where = " AND ".join(conditions)

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(f"""
                SELECT e.id, e.user_id, e.sport, e.event_date, e.rating, e.notes, e.companions,
                       v.id AS venue_id, v.name AS venue_name, v.city, v.country,
                       v.latitude, v.longitude
                FROM events e
                LEFT JOIN venues v ON v.id = e.venue_id
                WHERE {where}
                ORDER BY e.event_date, e.created_at
            """, *args)

            if not rows:
                return []

            ids_by_sport: dict[Sport, list] = defaultdict(list)
            for row in rows:
                ids_by_sport[Sport(row["sport"])].append(row["id"])

            payloads = {}
            for sport, event_ids in ids_by_sport.items():
                payloads.update(await self._load_payloads(conn, sport, event_ids))

        events = []
        for row in rows:
            payload = payloads.get(row["id"])
            if payload is None:
                logger.warning(f"Event {row['id']} has no {row['sport']} sub-record, skipping")
                continue
            try:
                events.append(self._row_to_event(row, payload))
            except InvalidEventError as e:
                logger.warning(f"Skipping malformed event {row['id']}: {e}")
        return events

    async def _load_payloads(self, conn: asyncpg.Connection, sport: Sport, event_ids: list) -> dict:
        """Load sub-records for events of one sport, keyed by event id."""
        if sport in TEAM_TABLES:
            return await self._load_team_matches(conn, sport, event_ids)
        if sport == Sport.TENNIS:
            return await self._load_tennis_matches(conn, event_ids)
        return await self._load_concerts(conn, event_ids)

    async def _load_team_matches(self, conn: asyncpg.Connection, sport: Sport, event_ids: list) -> dict:
        match_table, app_table, match_cls, app_cls = TEAM_TABLES[sport]
        columns = stat_fields(app_cls)
        select_stats = ", ".join("a." + c for c in columns)

        match_rows = await conn.fetch(f"""
            SELECT event_id, home_team, away_team, home_score, away_score, competition
            FROM {match_table}
            WHERE event_id = ANY($1::uuid[])
        """, event_ids)

        app_rows = await conn.fetch(f"""
            SELECT a.event_id, a.player_id, p.name AS player_name, a.team_name,
                   {select_stats}
            FROM {app_table} a
            JOIN players p ON p.id = a.player_id
            WHERE a.event_id = ANY($1::uuid[])
            ORDER BY a.id
        """, event_ids)

        appearances = defaultdict(list)
        for row in app_rows:
            appearances[row["event_id"]].append(app_cls(
                player_id=str(row["player_id"]),
                player_name=row["player_name"],
                team_name=row["team_name"],
                **{c: row[c] for c in columns},
            ))

        return {
            row["event_id"]: match_cls(
                home_team=row["home_team"],
                away_team=row["away_team"],
                home_score=row["home_score"],
                away_score=row["away_score"],
                competition=row["competition"],
                appearances=appearances[row["event_id"]],
            )
            for row in match_rows
        }

    async def _load_tennis_matches(self, conn: asyncpg.Connection, event_ids: list) -> dict:
        match_rows = await conn.fetch("""
            SELECT t.event_id, t.player1_id, p1.name AS player1_name,
                   t.player2_id, p2.name AS player2_name,
                   t.winner_id, t.score, t.tournament, t.round
            FROM tennis_matches t
            JOIN players p1 ON p1.id = t.player1_id
            JOIN players p2 ON p2.id = t.player2_id
            WHERE t.event_id = ANY($1::uuid[])
        """, event_ids)

        app_rows = await conn.fetch("""
            SELECT a.event_id, a.player_id, p.name AS player_name, a.sets_won, a.is_winner
            FROM tennis_appearances a
            JOIN players p ON p.id = a.player_id
            WHERE a.event_id = ANY($1::uuid[])
            ORDER BY a.id
        """, event_ids)

        appearances = defaultdict(list)
        for row in app_rows:
            appearances[row["event_id"]].append(TennisAppearance(
                player_id=str(row["player_id"]),
                player_name=row["player_name"],
                sets_won=row["sets_won"],
                is_winner=row["is_winner"],
            ))

        return {
            row["event_id"]: TennisMatch(
                player1_id=str(row["player1_id"]),
                player1_name=row["player1_name"],
                player2_id=str(row["player2_id"]),
                player2_name=row["player2_name"],
                score=row["score"] or "",
                winner_id=str(row["winner_id"]) if row["winner_id"] else None,
                tournament=row["tournament"],
                round=row["round"],
                appearances=appearances[row["event_id"]],
            )
            for row in match_rows
        }

    async def _load_concerts(self, conn: asyncpg.Connection, event_ids: list) -> dict:
        concert_rows = await conn.fetch("""
            SELECT c.event_id, c.artist_id, a.name AS artist_name, c.tour_name, c.opening_acts
            FROM concerts c
            JOIN artists a ON a.id = c.artist_id
            WHERE c.event_id = ANY($1::uuid[])
        """, event_ids)

        song_rows = await conn.fetch("""
            SELECT event_id, song_name, song_order, is_encore, notes
            FROM setlist_items
            WHERE event_id = ANY($1::uuid[])
            ORDER BY event_id, song_order
        """, event_ids)

        setlists = defaultdict(list)
        for row in song_rows:
            setlists[row["event_id"]].append(SetlistItem(
                song_name=row["song_name"],
                order=row["song_order"],
                is_encore=row["is_encore"],
                notes=row["notes"],
            ))

        return {
            row["event_id"]: Concert(
                artist_id=str(row["artist_id"]),
                artist_name=row["artist_name"],
                tour_name=row["tour_name"],
                opening_acts=list(row["opening_acts"] or []),
                setlist=setlists[row["event_id"]],
            )
            for row in concert_rows
        }

    @staticmethod
    def _row_to_event(row, payload) -> Event:
        venue = None
        if row["venue_id"]:
            venue = Venue(
                id=str(row["venue_id"]),
                name=row["venue_name"],
                city=row["city"] or "",
                country=row["country"] or "",
                latitude=row["latitude"],
                longitude=row["longitude"],
            )
        return Event(
            id=str(row["id"]),
            user_id=row["user_id"],
            sport=Sport(row["sport"]),
            date=row["event_date"],
            payload=payload,
            venue=venue,
            rating=row["rating"],
            notes=row["notes"],
            companions=list(row["companions"] or []),
        )

    # -------------------------------------------------------------------------
    # Entity Reads
    # -------------------------------------------------------------------------

    async def get_player(self, player_id: str) -> Optional[Player]:
        """
        Get a player by ID.

        Returns:
            Player or None if the ID is malformed or unknown.
        """
        player_uuid = _parse_uuid(player_id)
        if player_uuid is None:
            return None

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT id, name, sport, team, nationality, external_id
                FROM players
                WHERE id = $1
            """, player_uuid)

        if not row:
            return None

        return Player(
            id=str(row["id"]),
            name=row["name"],
            sport=Sport(row["sport"]),
            team=row["team"],
            nationality=row["nationality"],
            external_id=row["external_id"],
        )

    async def get_artist(self, artist_id: str) -> Optional[Artist]:
        """Get an artist by ID, or None."""
        artist_uuid = _parse_uuid(artist_id)
        if artist_uuid is None:
            return None

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT id, name FROM artists WHERE id = $1", artist_uuid)

        return Artist(id=str(row["id"]), name=row["name"]) if row else None

    # -------------------------------------------------------------------------
    # Achievements
    # -------------------------------------------------------------------------

    async def sync_achievements(self, definitions: list[AchievementDefinition]) -> None:
        """
        Upsert the static achievement catalog.

        Args:
            definitions: Catalog entries, in display order.
        """
        async with self.pool.acquire() as conn:
            await conn.executemany("""
                INSERT INTO achievements
                    (id, name, description, icon, tier, criteria_type, threshold, sport, sort_order)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                ON CONFLICT (id) DO UPDATE SET
                    name = EXCLUDED.name,
                    description = EXCLUDED.description,
                    icon = EXCLUDED.icon,
                    tier = EXCLUDED.tier,
                    criteria_type = EXCLUDED.criteria_type,
                    threshold = EXCLUDED.threshold,
                    sport = EXCLUDED.sport,
                    sort_order = EXCLUDED.sort_order
            """, [
                (
                    d.id, d.name, d.description, d.icon, d.tier.value,
                    d.criteria_type, d.threshold,
                    d.sport.value if d.sport else None,
                    order,
                )
                for order, d in enumerate(definitions)
            ])
        logger.info(f"Synced {len(definitions)} achievement definitions")

    async def get_user_achievements(self, user_id: str) -> dict[str, UserAchievement]:
        """
        Get a user's unlock records.

        Returns:
            Mapping of achievement ID to unlock record.
        """
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT user_id, achievement_id, unlocked_at, trigger_event_id
                FROM user_achievements
                WHERE user_id = $1
                ORDER BY unlocked_at
            """, user_id)

        return {row["achievement_id"]: self._row_to_unlock(row) for row in rows}

    async def get_user_achievement(self, user_id: str, achievement_id: str) -> Optional[UserAchievement]:
        """Get one unlock record, or None if still locked."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT user_id, achievement_id, unlocked_at, trigger_event_id
                FROM user_achievements
                WHERE user_id = $1 AND achievement_id = $2
            """, user_id, achievement_id)

        return self._row_to_unlock(row) if row else None

    async def record_unlock(self, unlock: UserAchievement) -> bool:
        """
        Insert an unlock record unless one already exists.

        Args:
            unlock: The unlock to record.

        Returns:
            True if this call created the record, False if it already existed.
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("""
                INSERT INTO user_achievements (user_id, achievement_id, unlocked_at, trigger_event_id)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (user_id, achievement_id) DO NOTHING
                RETURNING id
            """,
                unlock.user_id,
                unlock.achievement_id,
                unlock.unlocked_at,
                _parse_uuid(unlock.trigger_event_id) if unlock.trigger_event_id else None,
            )
        return row is not None

    @staticmethod
    def _row_to_unlock(row) -> UserAchievement:
        return UserAchievement(
            user_id=row["user_id"],
            achievement_id=row["achievement_id"],
            unlocked_at=_utc(row["unlocked_at"]),
            trigger_event_id=str(row["trigger_event_id"]) if row["trigger_event_id"] else None,
        )


# Global attendance store instance
_attendance_store: Optional[AttendanceStore] = None


async def get_attendance_store(
    postgres_url: str,
    min_size: int = 2,
    max_size: int = 10,
) -> AttendanceStore:
    """
    Get or create the global attendance store instance.

    Args:
        postgres_url: PostgreSQL connection URL.

    Returns:
        AttendanceStore instance.
    """
    global _attendance_store
    if _attendance_store is None:
        _attendance_store = await AttendanceStore.create(postgres_url, min_size, max_size)
    return _attendance_store


async def close_attendance_store() -> None:
    """Close the global attendance store connection pool."""
    global _attendance_store
    if _attendance_store is not None:
        await _attendance_store.close()
        _attendance_store = None
