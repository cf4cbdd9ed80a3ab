"""
Audit trail for user context mutations (append-only).
"""

from __future__ import annotations

import json
from typing import Optional

import contextgate.config as config
from contextgate.codec import decode_required_timestamp, encode_timestamp
from contextgate.db import ContextDatabase
from contextgate.domain import AuditEntry, to_dict
from contextgate.models import UserContextAuditRecord
from contextgate.validators import validate_limit

ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_DELETE = "delete"
ACTION_ARCHIVE = "archive"
ACTION_SUPERSEDE = "supersede"
ACTION_INCREMENT_APPLIED = "increment_applied"
ACTION_INCREMENT_FREQUENCY = "increment_frequency"
ACTION_UPDATE_STATUS = "update_status"
ACTION_RESOLVE = "resolve"


def snapshot(entity) -> Optional[str]:
    """JSON snapshot of a domain record for old_value/new_value."""
    if entity is None:
        return None
    return json.dumps(to_dict(entity), sort_keys=True)


def _to_entry(row: UserContextAuditRecord) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        user_id=row.user_id,
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        action=row.action,
        changed_by=row.changed_by or config.DEFAULT_ACTOR,
        changed_at=decode_required_timestamp(row.changed_at, "changed_at"),
        old_value=row.old_value,
        new_value=row.new_value,
        reason=row.reason,
    )


class AuditTrail:
    def __init__(self, database: ContextDatabase):
        self.database = database

    @staticmethod
    def append(db, entry: AuditEntry) -> UserContextAuditRecord:
        """Add an audit row to an open session; the caller commits."""
        row = UserContextAuditRecord(
            id=entry.id,
            user_id=entry.user_id,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            action=entry.action,
            old_value=entry.old_value,
            new_value=entry.new_value,
            changed_by=entry.changed_by,
            changed_at=encode_timestamp(entry.changed_at),
            reason=entry.reason,
        )
        db.add(row)
        return row

    def list_for_entity(self, entity_id: str) -> list[AuditEntry]:
        with self.database.session() as db:
            rows = (
                db.query(UserContextAuditRecord)
                .filter(UserContextAuditRecord.entity_id == entity_id)
                .order_by(UserContextAuditRecord.changed_at.desc())
                .all()
            )
            return [_to_entry(row) for row in rows]

    def list_for_user(self, user_id: str, limit: int = 100) -> list[AuditEntry]:
        validate_limit(limit, "limit", config.MAX_RESULT_LIMIT)
        with self.database.session() as db:
            rows = (
                db.query(UserContextAuditRecord)
                .filter(UserContextAuditRecord.user_id == user_id)
                .order_by(UserContextAuditRecord.changed_at.desc())
                .limit(limit)
                .all()
            )
            return [_to_entry(row) for row in rows]


__all__ = [
    "AuditTrail",
    "snapshot",
    "ACTION_CREATE",
    "ACTION_UPDATE",
    "ACTION_DELETE",
    "ACTION_ARCHIVE",
    "ACTION_SUPERSEDE",
    "ACTION_INCREMENT_APPLIED",
    "ACTION_INCREMENT_FREQUENCY",
    "ACTION_UPDATE_STATUS",
    "ACTION_RESOLVE",
]
