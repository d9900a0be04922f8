"""Tests for Settings and environment overrides."""

import pytest
from pydantic import ValidationError

from miniclawd.domain.models.profile import Profile
from miniclawd.infrastructure.config import Settings, get_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.resolved_profile is Profile.HIGH_POWER
        assert settings.max_turns == 10
        assert settings.backend_timeout_seconds == 30.0
        assert settings.eviction_floor == 10
        assert settings.memory_path is None
        assert settings.store_thoughts is False

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MINICLAWD_MAX_TURNS", "7")
        monkeypatch.setenv("MINICLAWD_PROFILE", "low")
        monkeypatch.setenv("MINICLAWD_MEMORY_PATH", str(tmp_path / "m.json"))

        settings = Settings(_env_file=None)

        assert settings.max_turns == 7
        assert settings.resolved_profile is Profile.LOW_POWER
        assert settings.memory_path == tmp_path / "m.json"

    def test_bounds_validated(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, max_turns=0)
        with pytest.raises(ValidationError):
            Settings(_env_file=None, backend_timeout_seconds=0)

    def test_limits_per_profile(self):
        settings = Settings(_env_file=None, low_power_max_messages=5)
        assert settings.limits_for(Profile.LOW_POWER) == (5, 50_000)
        assert settings.limits_for(Profile.CHAT) == (5, 50_000)
        assert settings.limits_for("high") == (100, 200_000)

    def test_cached_instance(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
