"""Tests for application settings."""

import pytest

from flowcanvas.core.config import Settings, get_settings


class TestSettingsDefaults:
    """Test default values."""

    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.PROJECT_NAME == "FlowCanvas"
        assert settings.HISTORY_MAX_ENTRIES == 50
        assert settings.HISTORY_DEBOUNCE_SECONDS == 1.0
        assert settings.DSL_LAYOUT_ORIGIN == 50
        assert settings.DSL_LAYOUT_COLUMN_SPACING == 250
        assert settings.DSL_LAYOUT_ROW_SPACING == 150
        assert settings.LOG_FILE is None

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()


class TestSettingsValidation:
    """Test field validators."""

    @pytest.mark.parametrize(("raw", "expected"), [(0, 1), (-5, 1), ("20", 20), (100, 100)])
    def test_history_bound_is_clamped(self, raw, expected: int) -> None:
        assert Settings(HISTORY_MAX_ENTRIES=raw).HISTORY_MAX_ENTRIES == expected

    def test_log_level_is_normalized(self) -> None:
        assert Settings(LOG_LEVEL=" warning ").LOG_LEVEL == "WARNING"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HISTORY_DEBOUNCE_SECONDS", "0.25")
        monkeypatch.setenv("DSL_LAYOUT_ROW_SPACING", "200")

        settings = Settings(_env_file=None)

        assert settings.HISTORY_DEBOUNCE_SECONDS == 0.25
        assert settings.DSL_LAYOUT_ROW_SPACING == 200
