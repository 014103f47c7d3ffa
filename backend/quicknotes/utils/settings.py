from __future__ import annotations

import os
from pathlib import Path

# repository_root/data (we are in backend/quicknotes/utils)
DEFAULT_DATA_DIR = Path(__file__).resolve().parents[3] / "data"
DEFAULT_OWNER_ID = "public"
MAX_TITLE_LENGTH = 255
MAX_OWNER_ID_LENGTH = 64
MAX_IDEMPOTENCY_KEY_LENGTH = 128


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def data_dir() -> Path:
    return Path(os.getenv("APP_DATA_DIR", str(DEFAULT_DATA_DIR)))


def database_url() -> str:
    url = os.getenv("DATABASE_URL", "")
    if url:
        return url
    return f"sqlite:///{data_dir() / 'quicknotes.db'}"


def default_limit() -> int:
    return _int_env("NOTES_DEFAULT_LIMIT", 20)


def max_limit() -> int:
    return _int_env("NOTES_MAX_LIMIT", 100)


def max_content_length() -> int:
    return _int_env("NOTES_MAX_CONTENT_LENGTH", 50_000)


def api_url() -> str:
    return os.getenv("NOTES_API_URL", "http://localhost:8000")


def retry_attempts() -> int:
    return _int_env("NOTES_RETRY_ATTEMPTS", 3)


def retry_delay_base() -> float:
    return _float_env("NOTES_RETRY_DELAY_BASE", 1.0)


def retry_max_delay() -> float:
    return _float_env("NOTES_RETRY_MAX_DELAY", 30.0)


def stale_seconds() -> float:
    return _float_env("NOTES_STALE_SECONDS", 300.0)


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
