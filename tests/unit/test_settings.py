"""Tests for settings validation and environment loading."""

import pytest
from pydantic import ValidationError

from statcube.settings import EngineSettings, LocaleSettings, PreviewSettings, ProcessingSettings, get_settings
from statcube.settings.main import _reload_settings


class TestLocaleSettings:

    def test_locales_in_declaration_order(self):
        settings = LocaleSettings(supported_locales=" en-GB , cy-GB ")
        assert settings.get_supported_locales() == ["en-GB", "cy-GB"]

    def test_invalid_locale_rejected(self):
        with pytest.raises(ValidationError):
            LocaleSettings(supported_locales="english")

    def test_same_primary_language_rejected(self):
        with pytest.raises(ValidationError):
            LocaleSettings(supported_locales="en-GB,en-US")

    def test_empty_list_rejected(self):
        with pytest.raises(ValidationError):
            LocaleSettings(supported_locales=" , ")


class TestPreviewSettings:

    def test_defaults(self):
        settings = PreviewSettings()
        assert (settings.min_page_size, settings.default_page_size, settings.max_page_size) == (5, 100, 500)

    def test_default_outside_limits_rejected(self):
        with pytest.raises(ValidationError):
            PreviewSettings(default_page_size=1000)


class TestProcessingSettings:

    def test_unknown_time_zone_rejected(self):
        with pytest.raises(ValidationError):
            ProcessingSettings(time_zone="Mars/Olympus")

    def test_log_level_normalized(self):
        assert ProcessingSettings(log_level="debug").log_level == "DEBUG"

    def test_timezone_info(self):
        assert ProcessingSettings(time_zone="Europe/London").timezone_info.zone == "Europe/London"


class TestEngineSettings:

    def test_memory_limit_pattern(self):
        assert EngineSettings(memory_limit="2GB").memory_limit == "2GB"
        with pytest.raises(ValidationError):
            EngineSettings(memory_limit="lots")


class TestGetSettings:

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LOCALE__SUPPORTED_LOCALES", "cy-GB,en-GB")
        monkeypatch.setenv("ENGINE__THREADS", "3")
        try:
            settings = _reload_settings()
            assert settings.supported_locales == ["cy-GB", "en-GB"]
            assert settings.engine.threads == 3
            assert get_settings() is settings
        finally:
            monkeypatch.delenv("LOCALE__SUPPORTED_LOCALES")
            monkeypatch.delenv("ENGINE__THREADS")
            _reload_settings()
