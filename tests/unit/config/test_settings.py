"""
Unit tests for environment-driven settings.
"""

from pathlib import Path

import pytest

from cellgeo.config.settings import Settings, get_settings


@pytest.mark.unit
class TestDefaults:
    def test_defaults(self, isolated_environment):
        settings = Settings()
        assert settings.CACHE_DIR == isolated_environment
        assert settings.STAGING_DIR is None
        assert settings.LOG_LEVEL == "WARNING"
        assert settings.MIN_CELLS == 3
        assert settings.MIN_FEATURES == 200
        assert settings.DOWNLOAD_TIMEOUT == 60
        assert settings.MAX_RETRIES == 3

    def test_default_cache_dir(self, monkeypatch):
        monkeypatch.delenv("CELLGEO_CACHE_DIR")
        assert Settings().CACHE_DIR == Path.home() / ".cellgeo" / "cache"


@pytest.mark.unit
class TestOverrides:
    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CELLGEO_MIN_CELLS", "0")
        monkeypatch.setenv("CELLGEO_MIN_FEATURES", "50")
        monkeypatch.setenv("CELLGEO_LOG_LEVEL", "debug")
        monkeypatch.setenv("CELLGEO_STAGING_DIR", str(tmp_path / "stage"))
        monkeypatch.setenv("CELLGEO_MAX_RETRIES", "0")

        settings = Settings()
        assert settings.MIN_CELLS == 0
        assert settings.MIN_FEATURES == 50
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.STAGING_DIR == tmp_path / "stage"
        assert settings.MAX_RETRIES == 1

    def test_dotenv_file(self, monkeypatch, tmp_path):
        (tmp_path / ".env").write_text("CELLGEO_MIN_FEATURES=123\n")
        monkeypatch.delenv("CELLGEO_MIN_FEATURES")
        assert Settings().MIN_FEATURES == 123

    def test_blank_value_uses_default(self, monkeypatch):
        monkeypatch.setenv("CELLGEO_MIN_CELLS", "  ")
        assert Settings().MIN_CELLS == 3


@pytest.mark.unit
class TestValidation:
    def test_non_integer(self, monkeypatch):
        monkeypatch.setenv("CELLGEO_MIN_CELLS", "three")
        with pytest.raises(ValueError, match="CELLGEO_MIN_CELLS"):
            Settings()

    def test_negative_threshold(self, monkeypatch):
        monkeypatch.setenv("CELLGEO_MIN_FEATURES", "-1")
        with pytest.raises(ValueError):
            Settings()

    def test_bad_log_level(self, monkeypatch):
        monkeypatch.setenv("CELLGEO_LOG_LEVEL", "LOUD")
        with pytest.raises(ValueError, match="CELLGEO_LOG_LEVEL"):
            Settings()


@pytest.mark.unit
class TestAccessors:
    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_get_all_settings(self):
        all_settings = get_settings().get_all_settings()
        assert all_settings["MIN_CELLS"] == 3
        assert "get_setting" not in all_settings

    def test_get_setting(self):
        settings = get_settings()
        assert settings.get_setting("MIN_FEATURES") == 200
        assert settings.get_setting("NOPE", "fallback") == "fallback"
