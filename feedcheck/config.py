"""
feedcheck/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parents[1]


def load_env_files(project_root: Path = _PROJECT_ROOT) -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
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


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class FeedValidationSettings:
    """
    Runtime settings for feed validation runs.
    """

    chunk_size: int = 500
    max_issues: int = 100
    max_valid_records: int = 10000
    max_raw_issues: int = 20
    raw_preview_rows: int = 10
    precheck_raw_preview_rows: int = 20
    log_validation_issues: bool = False


@dataclass(frozen=True)
class UploadSettings:
    """
    Limits applied to uploaded feed files.
    """

    max_upload_bytes: int = 50 * 1024 * 1024


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@lru_cache(maxsize=1)
def get_feed_validation_settings() -> FeedValidationSettings:
    """
    Return cached feed validation settings from environment variables.
    """

    return FeedValidationSettings(
        chunk_size=max(1, _get_int_env("FEED_VALIDATION_CHUNK_SIZE", 500)),
        max_issues=max(0, _get_int_env("FEED_VALIDATION_MAX_ISSUES", 100)),
        max_valid_records=max(0, _get_int_env("FEED_VALIDATION_MAX_VALID_RECORDS", 10000)),
        max_raw_issues=max(0, _get_int_env("FEED_VALIDATION_MAX_RAW_ISSUES", 20)),
        raw_preview_rows=max(0, _get_int_env("FEED_VALIDATION_RAW_PREVIEW_ROWS", 10)),
        precheck_raw_preview_rows=max(0, _get_int_env("FEED_PRECHECK_RAW_PREVIEW_ROWS", 20)),
        log_validation_issues=_get_bool_env("FEED_VALIDATION_LOG_ISSUES", False),
    )


@lru_cache(maxsize=1)
def get_upload_settings() -> UploadSettings:
    """
    Return cached upload limits from environment variables.
    """

    return UploadSettings(
        max_upload_bytes=max(1, _get_int_env("FEED_UPLOAD_MAX_BYTES", 50 * 1024 * 1024)),
    )


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    return LoggingSettings(level=_get_str_env("LOG_LEVEL", "INFO").upper())
