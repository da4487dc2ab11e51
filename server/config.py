"""
Centralized configuration for the event tracker stats server.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.stats.LEADERBOARD_LIMIT)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if it exists
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


@dataclass
class StatsDefaults:
    """Result sizes for the stats endpoints."""
    LEADERBOARD_LIMIT: int = 20
    LEADERBOARD_MAX_LIMIT: int = 100
    TOP_SONGS_LIMIT: int = 10
    RECENT_EVENTS_LIMIT: int = 5
    YEAR_REVIEW_TOP_N: int = 5


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Database
    POSTGRES_URL: str = ""
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10

    stats: StatsDefaults = field(default_factory=StatsDefaults)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 8000),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            POSTGRES_URL=get_env("POSTGRES_URL", ""),
            DB_POOL_MIN_SIZE=get_env_int("DB_POOL_MIN_SIZE", 2),
            DB_POOL_MAX_SIZE=get_env_int("DB_POOL_MAX_SIZE", 10),
            stats=StatsDefaults(
                LEADERBOARD_LIMIT=get_env_int("LEADERBOARD_LIMIT", 20),
                LEADERBOARD_MAX_LIMIT=get_env_int("LEADERBOARD_MAX_LIMIT", 100),
                TOP_SONGS_LIMIT=get_env_int("TOP_SONGS_LIMIT", 10),
                RECENT_EVENTS_LIMIT=get_env_int("RECENT_EVENTS_LIMIT", 5),
                YEAR_REVIEW_TOP_N=get_env_int("YEAR_REVIEW_TOP_N", 5),
            ),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()


def reload_config() -> ServerConfig:
    """Reload configuration from environment (useful for testing)."""
    global config
    config = ServerConfig.from_env()
    return config
