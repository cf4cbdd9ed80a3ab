"""
Shared configuration for ContextGate.
"""

from __future__ import annotations

import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("contextgate")


def _get_bool(env_name: str, default: bool) -> bool:
    value = os.environ.get(env_name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(env_name: str, default: int) -> int:
    value = os.environ.get(env_name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(env_name: str, default: float) -> float:
    value = os.environ.get(env_name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


# Database settings
DB_BACKEND = os.environ.get("CONTEXTGATE_DB_BACKEND", "sqlite").strip().lower()
SQLITE_PATH = os.environ.get(
    "CONTEXTGATE_SQLITE_PATH",
    os.path.join(os.path.expanduser("~"), ".contextgate", "context.db"),
)
DATABASE_URL = os.environ.get("DATABASE_URL")

# Database initialization controls
AUTO_MIGRATE_ON_STARTUP = _get_bool("CONTEXTGATE_AUTO_MIGRATE_ON_STARTUP", True)

# Statement serialization
LOCK_TIMEOUT_SECONDS = _get_float("CONTEXTGATE_LOCK_TIMEOUT_SECONDS", 30.0)

# Audit trail
AUDIT_ENABLED = _get_bool("CONTEXTGATE_AUDIT_ENABLED", True)
DEFAULT_ACTOR = os.environ.get("CONTEXTGATE_DEFAULT_ACTOR", "system").strip() or "system"

# Request/input limits
MAX_RESULT_LIMIT = _get_int("CONTEXTGATE_MAX_RESULT_LIMIT", 100)
MAX_TEXT_LENGTH = _get_int("CONTEXTGATE_MAX_TEXT_LENGTH", 8000)
MAX_SHORT_TEXT_LENGTH = _get_int("CONTEXTGATE_MAX_SHORT_TEXT_LENGTH", 255)
MAX_LIST_ITEMS = _get_int("CONTEXTGATE_MAX_LIST_ITEMS", 50)
MAX_LIST_ITEM_LENGTH = _get_int("CONTEXTGATE_MAX_LIST_ITEM_LENGTH", 1000)
MAX_GOAL_STEPS = _get_int("CONTEXTGATE_MAX_GOAL_STEPS", MAX_LIST_ITEMS)


def validate_and_prepare_config() -> None:
    """Validate configuration and apply derived settings at startup."""
    global DATABASE_URL

    errors = []
    if DB_BACKEND not in {"postgres", "sqlite"}:
        errors.append("CONTEXTGATE_DB_BACKEND must be 'postgres' or 'sqlite'")

    if LOCK_TIMEOUT_SECONDS <= 0:
        errors.append("CONTEXTGATE_LOCK_TIMEOUT_SECONDS must be positive")

    if not DATABASE_URL:
        if DB_BACKEND == "sqlite":
            if not SQLITE_PATH:
                errors.append("CONTEXTGATE_SQLITE_PATH is required for sqlite")
            else:
                DATABASE_URL = f"sqlite:///{SQLITE_PATH}"
        else:
            errors.append("DATABASE_URL environment variable is required")
    else:
        is_sqlite_url = DATABASE_URL.lower().startswith("sqlite")
        if DB_BACKEND == "sqlite" and not is_sqlite_url:
            errors.append("DATABASE_URL must be a sqlite URL when CONTEXTGATE_DB_BACKEND=sqlite")
        if DB_BACKEND == "postgres" and is_sqlite_url:
            errors.append("DATABASE_URL must be a postgres URL when CONTEXTGATE_DB_BACKEND=postgres")

    if errors:
        raise RuntimeError("Configuration invalid: " + "; ".join(errors))
