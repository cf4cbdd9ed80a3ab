"""
Shared SQLAlchemy plumbing for the context repositories.

Each repository call opens one session under the handle's statement lock;
the primary write and its audit row commit together.
"""

from __future__ import annotations

import json
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError

import contextgate.config as config
from contextgate.audit import ACTION_CREATE, ACTION_DELETE, ACTION_UPDATE, AuditTrail, snapshot
from contextgate.db import ContextDatabase
from contextgate.domain import AuditEntry, utcnow
from contextgate.errors import ConflictError, EncodingFailure, NotFound

logger = config.logger

IMMUTABLE_COLUMNS = frozenset({"id", "user_id", "created_at"})


class SqlRepository:
    """Base for the relational repositories.

    Subclasses set ``entity_type`` and ``record_cls`` and implement
    ``_to_entity``, ``_to_columns`` and ``_validate``.
    """

    entity_type = ""
    record_cls = None

    def __init__(
        self,
        database: ContextDatabase,
        actor: Optional[str] = None,
        clock: Optional[Callable] = None,
        audit_enabled: Optional[bool] = None,
    ):
        self.database = database
        self.actor = actor or config.DEFAULT_ACTOR
        self.clock = clock or utcnow
        self.audit_enabled = config.AUDIT_ENABLED if audit_enabled is None else audit_enabled

    # -- hooks ---------------------------------------------------------------

    def _to_entity(self, row):
        raise NotImplementedError

    def _to_columns(self, entity) -> dict:
        raise NotImplementedError

    def _validate(self, entity) -> None:
        raise NotImplementedError

    # -- helpers -------------------------------------------------------------

    def _now(self):
        return self.clock()

    def _audit(
        self,
        db,
        user_id: str,
        entity_id: str,
        action: str,
        old=None,
        new=None,
        old_value: Optional[str] = None,
    ) -> None:
        if not self.audit_enabled:
            return
        entry = AuditEntry.record(
            user_id=user_id,
            entity_type=self.entity_type,
            entity_id=entity_id,
            action=action,
            changed_by=self.actor,
            old_value=old_value if old_value is not None else snapshot(old),
            new_value=snapshot(new),
        )
        entry.changed_at = self._now()
        AuditTrail.append(db, entry)

    def _get_row(self, db, entity_id: str):
        return db.query(self.record_cls).filter(self.record_cls.id == entity_id).first()

    def _row_snapshot(self, row) -> str:
        """Audit snapshot of a stored row; raw columns when the row will not decode."""
        try:
            return snapshot(self._to_entity(row))
        except EncodingFailure as exc:
            logger.warning(
                "audit_snapshot_raw_fallback",
                extra={"entity_type": self.entity_type, "entity_id": row.id, "column": exc.column},
            )
            raw = {column.name: getattr(row, column.name) for column in row.__table__.columns}
            return json.dumps(raw, sort_keys=True, default=str)

    def _select(self, *criteria, order_by=()) -> list:
        with self.database.session() as db:
            rows = db.query(self.record_cls).filter(*criteria).order_by(*order_by).all()
            return [self._to_entity(row) for row in rows]

    # -- operations ----------------------------------------------------------

    def create(self, entity):
        self._validate(entity)
        with self.database.session() as db:
            db.add(self.record_cls(**self._to_columns(entity)))
            try:
                db.flush()
            except IntegrityError as exc:
                raise ConflictError(self.entity_type, entity.id) from exc
            self._audit(db, entity.user_id, entity.id, ACTION_CREATE, new=entity)
        return entity

    def find_by_id(self, entity_id: str):
        with self.database.session() as db:
            row = self._get_row(db, entity_id)
            return self._to_entity(row) if row is not None else None

    def update(self, entity):
        self._validate(entity)
        with self.database.session() as db:
            row = self._get_row(db, entity.id)
            if row is None:
                raise NotFound(self.entity_type, entity.id)
            before = self._to_entity(row)
            entity.updated_at = self._now()
            self._write(row, entity)
            try:
                db.flush()
            except IntegrityError as exc:
                raise ConflictError(
                    self.entity_type, entity.id, detail="conflicts with an existing record"
                ) from exc
            stored = self._to_entity(row)
            self._audit(db, row.user_id, entity.id, ACTION_UPDATE, old=before, new=stored)
        return stored

    def delete(self, entity_id: str) -> bool:
        with self.database.session() as db:
            row = self._get_row(db, entity_id)
            if row is None:
                return False
            user_id = row.user_id
            old_value = self._row_snapshot(row)
            db.delete(row)
            self._audit(db, user_id, entity_id, ACTION_DELETE, old_value=old_value)
        return True

    def _mutate(self, entity_id: str, action: str, apply: Callable):
        """Load, apply ``apply(entity, now)``, write back and audit."""
        with self.database.session() as db:
            row = self._get_row(db, entity_id)
            if row is None:
                raise NotFound(self.entity_type, entity_id)
            before = self._to_entity(row)
            entity = self._to_entity(row)
            now = self._now()
            apply(entity, now)
            entity.updated_at = now
            self._validate(entity)
            self._write(row, entity)
            self._audit(db, row.user_id, entity_id, action, old=before, new=entity)
        return entity

    def _write(self, row, entity) -> None:
        for column, value in self._to_columns(entity).items():
            if column in IMMUTABLE_COLUMNS:
                continue
            setattr(row, column, value)


__all__ = ["SqlRepository", "IMMUTABLE_COLUMNS"]
