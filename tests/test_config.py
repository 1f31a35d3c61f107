"""Tests for configuration loading and validation."""

from dataclasses import replace

import pytest

from booking_orchestrator.config import (
    AppConfig,
    CalendarApiConfig,
    DirectoryConfig,
    SearchConfig,
    _safe_float,
    _safe_int,
    _safe_int_list,
    _validate_config,
)


def with_search(**overrides) -> AppConfig:
    return replace(AppConfig(), search=replace(SearchConfig(), **overrides))


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        config = AppConfig()
        _validate_config(config)  # should not raise

    def test_defaults(self):
        search = SearchConfig()
        assert search.search_windows_days == (7, 14, 30)
        assert search.lead_minutes == 15
        assert search.max_results == 3
        assert search.max_results_with_time == 5
        assert search.package_search_days == 14
        assert search.default_open_weekdays == (0, 1, 2, 3, 4)

    def test_invalid_timeout(self):
        config = replace(AppConfig(), api=replace(CalendarApiConfig(), timeout_seconds=0))
        with pytest.raises(ValueError, match="CALENDAR_API_TIMEOUT"):
            _validate_config(config)

    def test_negative_lead_time(self):
        with pytest.raises(ValueError, match="SLOT_LEAD_MINUTES"):
            _validate_config(with_search(lead_minutes=-1))

    @pytest.mark.parametrize("windows", [(), (14, 7), (0, 7)])
    def test_invalid_search_windows(self, windows):
        with pytest.raises(ValueError, match="SEARCH_WINDOWS_DAYS"):
            _validate_config(with_search(search_windows_days=windows))

    def test_zero_max_results(self):
        with pytest.raises(ValueError, match="MAX_SLOT_RESULTS"):
            _validate_config(with_search(max_results=0))

    def test_invalid_cache_ttl(self):
        with pytest.raises(ValueError, match="SCHEDULE_CACHE_TTL"):
            _validate_config(with_search(schedule_cache_ttl_seconds=0))

    def test_invalid_open_weekday(self):
        with pytest.raises(ValueError, match="DEFAULT_OPEN_WEEKDAYS"):
            _validate_config(with_search(default_open_weekdays=(0, 7)))

    def test_unknown_directory_backend(self):
        config = replace(AppConfig(), directory=replace(DirectoryConfig(), backend="redis"))
        with pytest.raises(ValueError, match="DIRECTORY_BACKEND"):
            _validate_config(config)


class TestEnvParsing:
    def test_safe_int_parsing(self):
        assert _safe_int("NONEXISTENT_VAR_12345", "42") == 42

    def test_safe_float_parsing(self):
        assert _safe_float("NONEXISTENT_VAR_12345", "3.14") == pytest.approx(3.14)

    def test_safe_int_list_parsing(self, monkeypatch):
        monkeypatch.setenv("SEARCH_WINDOWS_DAYS", "3, 10,21")
        assert _safe_int_list("SEARCH_WINDOWS_DAYS", "7,14,30") == (3, 10, 21)

    def test_bad_int_names_the_variable(self, monkeypatch):
        monkeypatch.setenv("SLOT_LEAD_MINUTES", "soon")
        with pytest.raises(ValueError, match="SLOT_LEAD_MINUTES"):
            _safe_int("SLOT_LEAD_MINUTES", "15")

    def test_bad_list_names_the_variable(self, monkeypatch):
        monkeypatch.setenv("SEARCH_WINDOWS_DAYS", "7,two")
        with pytest.raises(ValueError, match="SEARCH_WINDOWS_DAYS"):
            _safe_int_list("SEARCH_WINDOWS_DAYS", "7,14,30")
