"""
Database handle, initialization and migration helpers.

A ``ContextDatabase`` owns one engine, its session factory and a statement
lock. Repositories receive the handle; at most one session runs at a time
per handle.
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

import contextgate.config as config
from contextgate.errors import LockAcquisitionFailure, StatementError
from contextgate.models import CONTEXT_TABLES


class ContextDatabase:
    """Engine + session factory + statement lock."""

    def __init__(self, engine, lock_timeout: Optional[float] = None):
        self.engine = engine
        self.SessionLocal = sessionmaker(bind=engine)
        self.lock_timeout = config.LOCK_TIMEOUT_SECONDS if lock_timeout is None else lock_timeout
        self._lock = threading.Lock()

    @classmethod
    def from_url(cls, url: str, lock_timeout: Optional[float] = None) -> "ContextDatabase":
        engine_kwargs = {"pool_pre_ping": True}
        if url.lower().startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        return cls(create_engine(url, **engine_kwargs), lock_timeout=lock_timeout)

    @property
    def lock(self) -> threading.Lock:
        return self._lock

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Yield a session under the statement lock and commit on exit.

        SQLAlchemy failures roll back and surface as StatementError; any
        other exception rolls back and propagates unchanged.
        """
        if not self._lock.acquire(timeout=self.lock_timeout):
            raise LockAcquisitionFailure(
                f"Could not acquire database lock within {self.lock_timeout}s"
            )
        try:
            db = self.SessionLocal()
            try:
                yield db
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise StatementError(f"Database statement failed: {exc}") from exc
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()
        finally:
            self._lock.release()

    def dispose(self) -> None:
        self.engine.dispose()


class DB:
    """Database state holder (avoids global scoping issues)."""

    engine = None
    SessionLocal = None
    handle: Optional[ContextDatabase] = None


def get_database() -> ContextDatabase:
    if DB.handle is None:
        raise RuntimeError("Database not initialized; call init_db() first")
    return DB.handle


def _get_alembic_config():
    try:
        from alembic.config import Config
    except ImportError as exc:
        raise RuntimeError("Alembic is required for migrations") from exc

    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    alembic_cfg = Config(os.path.join(base_dir, "alembic.ini"))
    alembic_cfg.set_main_option("script_location", os.path.join(base_dir, "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", config.DATABASE_URL)
    return alembic_cfg


def _get_schema_revisions(engine) -> tuple[Optional[str], Optional[str]]:
    from alembic.runtime.migration import MigrationContext
    from alembic.script import ScriptDirectory

    alembic_cfg = _get_alembic_config()
    script = ScriptDirectory.from_config(alembic_cfg)
    head_revision = script.get_current_head()
    with engine.connect() as conn:
        context = MigrationContext.configure(conn)
        current_revision = context.get_current_revision()
    return current_revision, head_revision


def _ensure_schema_up_to_date(engine) -> None:
    from alembic import command

    current_rev, head_rev = _get_schema_revisions(engine)
    if current_rev == head_rev:
        return

    if config.AUTO_MIGRATE_ON_STARTUP:
        config.logger.info(
            "Migrating database schema",
            extra={"current_revision": current_rev, "head_revision": head_rev},
        )
        alembic_cfg = _get_alembic_config()
        command.upgrade(alembic_cfg, "head")
        new_current, _ = _get_schema_revisions(engine)
        if new_current != head_rev:
            raise RuntimeError("Database migration did not reach expected revision")
    else:
        raise RuntimeError(
            f"Database schema out of date (current={current_rev}, expected={head_rev}). "
            "Run 'alembic upgrade head' or set CONTEXTGATE_AUTO_MIGRATE_ON_STARTUP=true."
        )


def verify_schema(engine) -> None:
    """Raise RuntimeError if any context table is missing."""
    existing = set(inspect(engine).get_table_names())
    missing = [name for name in CONTEXT_TABLES if name not in existing]
    if missing:
        raise RuntimeError(f"Database schema missing tables: {', '.join(missing)}")


def init_db() -> ContextDatabase:
    """Initialize the database handle and bring the schema to head."""
    config.validate_and_prepare_config()

    if config.DB_BACKEND == "sqlite" and config.SQLITE_PATH:
        parent = os.path.dirname(os.path.abspath(config.SQLITE_PATH))
        os.makedirs(parent, exist_ok=True)

    config.logger.info("Connecting to database...")
    handle = ContextDatabase.from_url(config.DATABASE_URL)
    DB.handle = handle
    DB.engine = handle.engine
    DB.SessionLocal = handle.SessionLocal

    _ensure_schema_up_to_date(DB.engine)
    verify_schema(DB.engine)

    config.logger.info("Database initialized")
    return handle


__all__ = [
    "ContextDatabase",
    "DB",
    "get_database",
    "verify_schema",
    "init_db",
]
