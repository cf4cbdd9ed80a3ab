import os

os.environ.setdefault("CONTEXTGATE_DB_BACKEND", "sqlite")

from sqlalchemy import create_engine, inspect

import contextgate.config as config
from contextgate.db import DB, _ensure_schema_up_to_date, _get_schema_revisions, init_db, verify_schema
from contextgate.models import CONTEXT_TABLES, Base


def test_migrations_match_models(tmp_path, monkeypatch):
    db_path = tmp_path / "migrated.sqlite"
    monkeypatch.setattr(config, "DATABASE_URL", f"sqlite:///{db_path}")
    monkeypatch.setattr(config, "AUTO_MIGRATE_ON_STARTUP", True)
    engine = create_engine(f"sqlite:///{db_path}")
    try:
        _ensure_schema_up_to_date(engine)
        verify_schema(engine)
        current, head = _get_schema_revisions(engine)
        assert current == head

        inspector = inspect(engine)
        for table_name in CONTEXT_TABLES:
            migrated = {column["name"] for column in inspector.get_columns(table_name)}
            modeled = {column.name for column in Base.metadata.tables[table_name].columns}
            assert migrated == modeled, table_name
    finally:
        engine.dispose()


def test_init_db_creates_schema(tmp_path, monkeypatch):
    db_path = tmp_path / "nested" / "context.db"
    monkeypatch.setattr(config, "DB_BACKEND", "sqlite")
    monkeypatch.setattr(config, "SQLITE_PATH", str(db_path))
    monkeypatch.setattr(config, "DATABASE_URL", None)
    monkeypatch.setattr(config, "AUTO_MIGRATE_ON_STARTUP", True)
    monkeypatch.setattr(DB, "handle", None)
    monkeypatch.setattr(DB, "engine", None)
    monkeypatch.setattr(DB, "SessionLocal", None)

    handle = init_db()
    try:
        assert DB.handle is handle
        assert db_path.exists()
        verify_schema(handle.engine)
    finally:
        handle.dispose()
