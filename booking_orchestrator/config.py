"""
Centralized configuration with environment variable overrides.

Search windows, lead times, cache lifetimes, and remote API settings are
configurable here. Nothing is hardcoded in the scheduling or tool logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_int_list(env_var: str, default: str) -> tuple[int, ...]:
    """Parse a comma-separated integer list, e.g. ``"7,14,30"``."""
    raw = os.getenv(env_var, default)
    try:
        return tuple(int(part) for part in raw.split(",") if part.strip())
    except (ValueError, TypeError, AttributeError):
        raise ValueError(
            f"Invalid integer list for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class CalendarApiConfig:
    """Remote calendar platform connection settings."""

    base_url: str = os.getenv("CALENDAR_API_URL", "https://services.leadconnectorhq.com")
    api_version: str = os.getenv("CALENDAR_API_VERSION", "2021-07-28")
    timeout_seconds: float = _safe_float("CALENDAR_API_TIMEOUT", "10.0")
    access_token: str = os.getenv("CALENDAR_ACCESS_TOKEN", "")


@dataclass(frozen=True)
class SearchConfig:
    """Availability search and package planning parameters."""

    lead_minutes: int = _safe_int("SLOT_LEAD_MINUTES", "15")
    search_windows_days: tuple[int, ...] = _safe_int_list("SEARCH_WINDOWS_DAYS", "7,14,30")
    max_results: int = _safe_int("MAX_SLOT_RESULTS", "3")
    max_results_with_time: int = _safe_int("MAX_SLOT_RESULTS_WITH_TIME", "5")
    package_search_days: int = _safe_int("PACKAGE_SEARCH_DAYS", "14")
    package_preview_results: int = _safe_int("PACKAGE_PREVIEW_RESULTS", "3")
    schedule_cache_ttl_seconds: float = _safe_float("SCHEDULE_CACHE_TTL", "3600")
    default_open_weekdays: tuple[int, ...] = _safe_int_list("DEFAULT_OPEN_WEEKDAYS", "0,1,2,3,4")
    default_timezone: str = os.getenv("DEFAULT_TIMEZONE", "America/New_York")
    default_slot_duration_minutes: int = _safe_int("DEFAULT_SLOT_DURATION", "60")


@dataclass(frozen=True)
class DirectoryConfig:
    """Where calendars, staff, and packages are read from."""

    backend: str = os.getenv("DIRECTORY_BACKEND", "memory")
    directory_file: str = os.getenv("DIRECTORY_FILE", "")
    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_key: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    api: CalendarApiConfig = field(default_factory=CalendarApiConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    directory: DirectoryConfig = field(default_factory=DirectoryConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    default_phone_region: str = os.getenv("DEFAULT_PHONE_REGION", "US")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.api.timeout_seconds <= 0:
        raise ValueError(
            f"CALENDAR_API_TIMEOUT must be > 0, got {config.api.timeout_seconds}"
        )
    if config.search.lead_minutes < 0:
        raise ValueError(
            f"SLOT_LEAD_MINUTES must be >= 0, got {config.search.lead_minutes}"
        )
    windows = config.search.search_windows_days
    if not windows or any(days < 1 for days in windows) or list(windows) != sorted(windows):
        raise ValueError(
            f"SEARCH_WINDOWS_DAYS must be ascending positive integers, got {windows}"
        )
    for name, value in [
        ("MAX_SLOT_RESULTS", config.search.max_results),
        ("MAX_SLOT_RESULTS_WITH_TIME", config.search.max_results_with_time),
        ("PACKAGE_SEARCH_DAYS", config.search.package_search_days),
        ("PACKAGE_PREVIEW_RESULTS", config.search.package_preview_results),
        ("DEFAULT_SLOT_DURATION", config.search.default_slot_duration_minutes),
    ]:
        if value < 1:
            raise ValueError(f"{name} must be >= 1, got {value}")
    if config.search.schedule_cache_ttl_seconds <= 0:
        raise ValueError(
            "SCHEDULE_CACHE_TTL must be > 0, "
            f"got {config.search.schedule_cache_ttl_seconds}"
        )
    if any(not 0 <= day <= 6 for day in config.search.default_open_weekdays):
        raise ValueError(
            "DEFAULT_OPEN_WEEKDAYS must contain weekday numbers 0-6, "
            f"got {config.search.default_open_weekdays}"
        )
    if config.directory.backend not in ("memory", "supabase"):
        raise ValueError(
            f"DIRECTORY_BACKEND must be 'memory' or 'supabase', got {config.directory.backend!r}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded (calendar API: %s)", config.api.base_url)
    return config


# Singleton instance
settings = load_config()
