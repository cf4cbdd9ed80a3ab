"""
Relational repository for user preferences.
"""

from __future__ import annotations

import contextgate.config as config
from contextgate.audit import ACTION_INCREMENT_FREQUENCY
from contextgate.codec import (
    decode_enum,
    decode_list,
    decode_required_timestamp,
    decode_timestamp,
    encode_list,
    encode_timestamp,
)
from contextgate.domain import EntityType, PreferenceType, UserPreference
from contextgate.models import UserPreferenceRecord
from contextgate.repositories.base import SqlRepository
from contextgate.repositories.contracts import ScopeArg, UserPreferenceRepository
from contextgate.scope import coerce_scope, scope_from_columns, scope_to_columns
from contextgate.validators import (
    validate_counter,
    validate_optional_text,
    validate_priority,
    validate_required_text,
    validate_string_list,
)


class SqlUserPreferenceRepository(SqlRepository, UserPreferenceRepository):
    entity_type = EntityType.user_preference.value
    record_cls = UserPreferenceRecord

    _default_order = (UserPreferenceRecord.priority.asc(), UserPreferenceRecord.created_at.asc())

    def _to_entity(self, row: UserPreferenceRecord) -> UserPreference:
        return UserPreference(
            id=row.id,
            user_id=row.user_id,
            preference_name=row.preference_name,
            preference_value=row.preference_value,
            preference_type=decode_enum(PreferenceType, row.preference_type, "preference_type"),
            scope=scope_from_columns(row.scope_kind, row.scope_value),
            applies_to_automation=bool(row.applies_to_automation),
            rationale=row.rationale,
            priority=row.priority if row.priority is not None else 3,
            frequency_observed=row.frequency_observed if row.frequency_observed is not None else 1,
            tags=decode_list(row.tags, "tags"),
            created_at=decode_required_timestamp(row.created_at, "created_at"),
            updated_at=decode_timestamp(row.updated_at, "updated_at"),
            last_referenced=decode_timestamp(row.last_referenced, "last_referenced"),
        )

    def _to_columns(self, preference: UserPreference) -> dict:
        scope_kind, scope_value = scope_to_columns(coerce_scope(preference.scope))
        return {
            "id": preference.id,
            "user_id": preference.user_id,
            "preference_name": preference.preference_name,
            "preference_value": preference.preference_value,
            "preference_type": PreferenceType.parse(preference.preference_type).to_code(),
            "scope_kind": scope_kind,
            "scope_value": scope_value,
            "applies_to_automation": bool(preference.applies_to_automation),
            "rationale": preference.rationale,
            "priority": preference.priority,
            "frequency_observed": preference.frequency_observed,
            "tags": encode_list(preference.tags),
            "created_at": encode_timestamp(preference.created_at),
            "updated_at": encode_timestamp(preference.updated_at),
            "last_referenced": encode_timestamp(preference.last_referenced),
        }

    def _validate(self, preference: UserPreference) -> None:
        validate_required_text(preference.user_id, "user_id", config.MAX_SHORT_TEXT_LENGTH)
        validate_required_text(preference.preference_name, "preference_name", config.MAX_SHORT_TEXT_LENGTH)
        validate_required_text(preference.preference_value, "preference_value", config.MAX_TEXT_LENGTH)
        validate_optional_text(preference.rationale, "rationale", config.MAX_TEXT_LENGTH)
        validate_priority(preference.priority, "priority")
        validate_counter(preference.frequency_observed, "frequency_observed")
        validate_string_list(preference.tags, "tags", config.MAX_LIST_ITEMS, config.MAX_LIST_ITEM_LENGTH)

    def find_by_user(self, user_id: str) -> list[UserPreference]:
        return self._select(UserPreferenceRecord.user_id == user_id, order_by=self._default_order)

    def find_by_scope(self, user_id: str, scope: ScopeArg) -> list[UserPreference]:
        scope_kind, scope_value = scope_to_columns(coerce_scope(scope))
        return self._select(
            UserPreferenceRecord.user_id == user_id,
            UserPreferenceRecord.scope_kind == scope_kind,
            UserPreferenceRecord.scope_value == scope_value,
            order_by=self._default_order,
        )

    def find_by_type(self, user_id: str, preference_type) -> list[UserPreference]:
        code = PreferenceType.parse(preference_type, field="preference_type").to_code()
        return self._select(
            UserPreferenceRecord.user_id == user_id,
            UserPreferenceRecord.preference_type == code,
            order_by=self._default_order,
        )

    def find_automation_applicable(self, user_id: str) -> list[UserPreference]:
        return self._select(
            UserPreferenceRecord.user_id == user_id,
            UserPreferenceRecord.applies_to_automation.is_(True),
            order_by=(
                UserPreferenceRecord.frequency_observed.desc(),
                UserPreferenceRecord.priority.asc(),
            ),
        )

    def increment_frequency(self, preference_id: str) -> UserPreference:
        def apply(preference: UserPreference, now) -> None:
            preference.frequency_observed += 1
            preference.last_referenced = now

        return self._mutate(preference_id, ACTION_INCREMENT_FREQUENCY, apply)
