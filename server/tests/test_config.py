"""Tests for environment-driven server configuration."""

import pytest

import config as config_module
from config import get_env_bool, get_env_int, reload_config


@pytest.fixture
def restore_config():
    original = config_module.config
    yield
    config_module.config = original


class TestEnvHelpers:

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("ON", True),
        ("0", False),
        ("no", False),
        ("maybe", None),
    ])
    def test_env_bool(self, monkeypatch, raw, expected):
        monkeypatch.setenv("STATS_FLAG", raw)
        if expected is None:
            assert get_env_bool("STATS_FLAG", True) is True
            assert get_env_bool("STATS_FLAG", False) is False
        else:
            assert get_env_bool("STATS_FLAG") is expected

    def test_env_int_falls_back_on_garbage(self, monkeypatch):
        monkeypatch.setenv("STATS_NUMBER", "twelve")
        assert get_env_int("STATS_NUMBER", 7) == 7


class TestReloadConfig:

    def test_reload_picks_up_environment(self, monkeypatch, restore_config):
        monkeypatch.setenv("LEADERBOARD_LIMIT", "15")
        monkeypatch.setenv("LEADERBOARD_MAX_LIMIT", "40")
        monkeypatch.setenv("ENVIRONMENT", "production")

        loaded = reload_config()

        assert loaded is config_module.config
        assert loaded.stats.LEADERBOARD_LIMIT == 15
        assert loaded.stats.LEADERBOARD_MAX_LIMIT == 40
        assert loaded.ENVIRONMENT == "production"

    def test_defaults_without_environment(self, monkeypatch, restore_config):
        for key in ("LEADERBOARD_LIMIT", "TOP_SONGS_LIMIT", "PORT"):
            monkeypatch.delenv(key, raising=False)

        loaded = reload_config()

        assert loaded.stats.LEADERBOARD_LIMIT == 20
        assert loaded.stats.TOP_SONGS_LIMIT == 10
        assert loaded.PORT == 8000
