"""
Relational repository for user decisions.
"""

from __future__ import annotations

import contextgate.config as config
from contextgate.audit import ACTION_ARCHIVE, ACTION_INCREMENT_APPLIED, ACTION_SUPERSEDE
from contextgate.codec import (
    decode_enum,
    decode_list,
    decode_required_timestamp,
    decode_timestamp,
    encode_list,
    encode_timestamp,
)
from contextgate.domain import DecisionCategory, EntityStatus, EntityType, UserDecision
from contextgate.models import UserDecisionRecord
from contextgate.repositories.base import SqlRepository
from contextgate.repositories.contracts import ScopeArg, UserDecisionRepository
from contextgate.scope import coerce_scope, scope_from_columns, scope_to_columns
from contextgate.validators import (
    validate_confidence,
    validate_counter,
    validate_optional_text,
    validate_required_text,
    validate_string_list,
)


class SqlUserDecisionRepository(SqlRepository, UserDecisionRepository):
    entity_type = EntityType.user_decision.value
    record_cls = UserDecisionRecord

    _default_order = (UserDecisionRecord.created_at.desc(),)

    def _to_entity(self, row: UserDecisionRecord) -> UserDecision:
        return UserDecision(
            id=row.id,
            user_id=row.user_id,
            decision_text=row.decision_text,
            reason=row.reason,
            decision_category=decode_enum(DecisionCategory, row.decision_category, "decision_category"),
            scope=scope_from_columns(row.scope_kind, row.scope_value),
            related_project_id=row.related_project_id,
            confidence_score=row.confidence_score if row.confidence_score is not None else 0.5,
            referenced_items=decode_list(row.referenced_items, "referenced_items"),
            created_at=decode_required_timestamp(row.created_at, "created_at"),
            updated_at=decode_timestamp(row.updated_at, "updated_at"),
            applied_count=row.applied_count or 0,
            last_applied=decode_timestamp(row.last_applied, "last_applied"),
            status=decode_enum(EntityStatus, row.status, "status"),
        )

    def _to_columns(self, decision: UserDecision) -> dict:
        scope_kind, scope_value = scope_to_columns(coerce_scope(decision.scope))
        return {
            "id": decision.id,
            "user_id": decision.user_id,
            "decision_text": decision.decision_text,
            "reason": decision.reason,
            "decision_category": DecisionCategory.parse(decision.decision_category).to_code(),
            "scope_kind": scope_kind,
            "scope_value": scope_value,
            "related_project_id": decision.related_project_id,
            "confidence_score": decision.confidence_score,
            "referenced_items": encode_list(decision.referenced_items),
            "created_at": encode_timestamp(decision.created_at),
            "updated_at": encode_timestamp(decision.updated_at),
            "applied_count": decision.applied_count,
            "last_applied": encode_timestamp(decision.last_applied),
            "status": EntityStatus.parse(decision.status).to_code(),
        }

    def _validate(self, decision: UserDecision) -> None:
        validate_required_text(decision.user_id, "user_id", config.MAX_SHORT_TEXT_LENGTH)
        validate_required_text(decision.decision_text, "decision_text", config.MAX_TEXT_LENGTH)
        validate_optional_text(decision.reason, "reason", config.MAX_TEXT_LENGTH)
        validate_optional_text(decision.related_project_id, "related_project_id", config.MAX_SHORT_TEXT_LENGTH)
        validate_confidence(decision.confidence_score, "confidence_score")
        validate_counter(decision.applied_count, "applied_count")
        validate_string_list(
            decision.referenced_items,
            "referenced_items",
            config.MAX_LIST_ITEMS,
            config.MAX_LIST_ITEM_LENGTH,
        )

    # -- finders -------------------------------------------------------------

    def find_by_user(self, user_id: str) -> list[UserDecision]:
        return self._select(UserDecisionRecord.user_id == user_id, order_by=self._default_order)

    def find_by_scope(self, user_id: str, scope: ScopeArg) -> list[UserDecision]:
        scope_kind, scope_value = scope_to_columns(coerce_scope(scope))
        return self._select(
            UserDecisionRecord.user_id == user_id,
            UserDecisionRecord.scope_kind == scope_kind,
            UserDecisionRecord.scope_value == scope_value,
            order_by=self._default_order,
        )

    def find_by_category(self, user_id: str, category) -> list[UserDecision]:
        code = DecisionCategory.parse(category, field="decision_category").to_code()
        return self._select(
            UserDecisionRecord.user_id == user_id,
            UserDecisionRecord.decision_category == code,
            order_by=self._default_order,
        )

    def find_by_status(self, user_id: str, status) -> list[UserDecision]:
        code = EntityStatus.parse(status, field="status").to_code()
        return self._select(
            UserDecisionRecord.user_id == user_id,
            UserDecisionRecord.status == code,
            order_by=self._default_order,
        )

    # -- narrow mutators -----------------------------------------------------

    def increment_applied_count(self, decision_id: str) -> UserDecision:
        def apply(decision: UserDecision, now) -> None:
            decision.applied_count += 1
            decision.last_applied = now

        return self._mutate(decision_id, ACTION_INCREMENT_APPLIED, apply)

    def archive(self, decision_id: str) -> UserDecision:
        return self._set_status(decision_id, EntityStatus.archived, ACTION_ARCHIVE)

    def supersede(self, decision_id: str) -> UserDecision:
        return self._set_status(decision_id, EntityStatus.superseded, ACTION_SUPERSEDE)

    def _set_status(self, decision_id: str, status: EntityStatus, action: str) -> UserDecision:
        def apply(decision: UserDecision, now) -> None:
            decision.status = status

        return self._mutate(decision_id, action, apply)
