"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

_ALLOWED_RESULT_SINKS = {"sheets", "database"}

DEFAULT_BASE_URL = "https://adstransparency.google.com"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class ScannerSettings:
    """
    Browser and page-wait settings for one domain scan.
    """

    base_url: str = DEFAULT_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    headless: bool = True
    page_timeout_seconds: float = 30.0
    wait_poll_seconds: float = 0.5
    settle_seconds: float = 3.0
    detail_settle_seconds: float = 2.0
    default_region: str = "anywhere"
    timezone: str = "Asia/Jerusalem"
    manual_batch_limit: int = 10
    manual_delay_seconds: float = 1.0


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Runtime settings for the recurring batch scan.
    """

    domain_delay_seconds: float = 2.0
    batch_delay_seconds: float = 5.0
    default_batch_size: int = 5
    default_interval_minutes: int = 60
    autostart: bool = False


@dataclass(frozen=True)
class SheetSettings:
    """
    Spreadsheet locations for the domain list and the result sink.
    """

    credentials_path: str | None = None
    spreadsheet_id: str | None = None
    results_worksheet: str = "RESULTS"
    domains_worksheet: str = "CONFIG"


@dataclass(frozen=True)
class DriveSettings:
    """
    Screenshot artifact store settings.
    """

    token_path: str | None = None
    folder_name: str = "ADS Screenshots"


@dataclass(frozen=True)
class ResultSinkSettings:
    kind: str = "sheets"


@lru_cache(maxsize=1)
def get_scanner_settings() -> ScannerSettings:
    """
    Return cached scanner settings from environment variables.
    """

    return ScannerSettings(
        base_url=_get_str_env("SCAN_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        user_agent=_get_str_env("SCAN_USER_AGENT", DEFAULT_USER_AGENT),
        headless=_get_bool_env("SCAN_HEADLESS", True),
        page_timeout_seconds=max(1.0, _get_float_env("SCAN_PAGE_TIMEOUT_SECONDS", 30.0)),
        wait_poll_seconds=max(0.05, _get_float_env("SCAN_WAIT_POLL_SECONDS", 0.5)),
        settle_seconds=max(0.0, _get_float_env("SCAN_SETTLE_SECONDS", 3.0)),
        detail_settle_seconds=max(0.0, _get_float_env("SCAN_DETAIL_SETTLE_SECONDS", 2.0)),
        default_region=_get_str_env("SCAN_DEFAULT_REGION", "anywhere"),
        timezone=_get_str_env("SCAN_TIMEZONE", "Asia/Jerusalem"),
        manual_batch_limit=max(1, _get_int_env("SCAN_MANUAL_BATCH_LIMIT", 10)),
        manual_delay_seconds=max(0.0, _get_float_env("SCAN_MANUAL_DELAY_SECONDS", 1.0)),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return cached batch scheduler settings from environment variables.
    """

    return SchedulerSettings(
        domain_delay_seconds=max(0.0, _get_float_env("SCHEDULER_DOMAIN_DELAY_SECONDS", 2.0)),
        batch_delay_seconds=max(0.0, _get_float_env("SCHEDULER_BATCH_DELAY_SECONDS", 5.0)),
        default_batch_size=max(1, _get_int_env("SCHEDULER_DEFAULT_BATCH_SIZE", 5)),
        default_interval_minutes=max(1, _get_int_env("SCHEDULER_INTERVAL_MINUTES", 60)),
        autostart=_get_bool_env("SCHEDULER_AUTOSTART", False),
    )


@lru_cache(maxsize=1)
def get_sheet_settings() -> SheetSettings:
    """
    Return spreadsheet settings from environment variables.
    """

    return SheetSettings(
        credentials_path=_get_optional_str_env("GOOGLE_SHEETS_CRED"),
        spreadsheet_id=_get_optional_str_env("RESULTS_SPREADSHEET_ID"),
        results_worksheet=_get_str_env("RESULTS_WORKSHEET", "RESULTS"),
        domains_worksheet=_get_str_env("DOMAINS_WORKSHEET", "CONFIG"),
    )


@lru_cache(maxsize=1)
def get_drive_settings() -> DriveSettings:
    """
    Return screenshot artifact store settings from environment variables.
    """

    return DriveSettings(
        token_path=_get_optional_str_env("DRIVE_TOKEN_PATH"),
        folder_name=_get_str_env("DRIVE_FOLDER_NAME", "ADS Screenshots"),
    )


@lru_cache(maxsize=1)
def get_result_sink_settings() -> ResultSinkSettings:
    """
    Return the configured result sink kind.

    Raises RuntimeError if RESULT_SINK names an unknown sink.
    """

    kind = _get_str_env("RESULT_SINK", "sheets").lower()
    if kind not in _ALLOWED_RESULT_SINKS:
        raise RuntimeError(
            f"RESULT_SINK '{kind}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_RESULT_SINKS)}."
        )
    return ResultSinkSettings(kind=kind)
