"""
Relational repository for known issues.
"""

from __future__ import annotations

from typing import Union

from sqlalchemy import case

import contextgate.config as config
from contextgate.audit import ACTION_RESOLVE
from contextgate.codec import (
    decode_enum,
    decode_list,
    decode_required_timestamp,
    decode_timestamp,
    encode_list,
    encode_timestamp,
)
from contextgate.domain import (
    EntityType,
    IssueCategory,
    IssueSeverity,
    KnownIssue,
    ResolutionStatus,
)
from contextgate.models import KnownIssueRecord
from contextgate.repositories.base import SqlRepository
from contextgate.repositories.contracts import KnownIssueRepository
from contextgate.validators import (
    validate_optional_text,
    validate_required_text,
    validate_string_list,
)

# Unknown severities sort with critical.
_severity_rank = case(
    {severity.value: severity.rank for severity in IssueSeverity},
    value=KnownIssueRecord.severity,
    else_=IssueSeverity.fallback().rank,
)


class SqlKnownIssueRepository(SqlRepository, KnownIssueRepository):
    entity_type = EntityType.known_issue.value
    record_cls = KnownIssueRecord

    _default_order = (KnownIssueRecord.learned_date.desc(),)

    def _to_entity(self, row: KnownIssueRecord) -> KnownIssue:
        return KnownIssue(
            id=row.id,
            user_id=row.user_id,
            issue_description=row.issue_description,
            symptoms=decode_list(row.symptoms, "symptoms"),
            root_cause=row.root_cause,
            workaround=row.workaround,
            permanent_solution=row.permanent_solution,
            affected_components=decode_list(row.affected_components, "affected_components"),
            severity=decode_enum(IssueSeverity, row.severity, "severity"),
            issue_category=decode_enum(IssueCategory, row.issue_category, "issue_category"),
            learned_date=decode_required_timestamp(row.learned_date, "learned_date"),
            resolution_status=decode_enum(ResolutionStatus, row.resolution_status, "resolution_status"),
            resolution_date=decode_timestamp(row.resolution_date, "resolution_date"),
            prevention_notes=row.prevention_notes,
            project_contexts=decode_list(row.project_contexts, "project_contexts"),
            created_at=decode_required_timestamp(row.created_at, "created_at"),
            updated_at=decode_timestamp(row.updated_at, "updated_at"),
        )

    def _to_columns(self, issue: KnownIssue) -> dict:
        return {
            "id": issue.id,
            "user_id": issue.user_id,
            "issue_description": issue.issue_description,
            "symptoms": encode_list(issue.symptoms),
            "root_cause": issue.root_cause,
            "workaround": issue.workaround,
            "permanent_solution": issue.permanent_solution,
            "affected_components": encode_list(issue.affected_components),
            "severity": IssueSeverity.parse(issue.severity).to_code(),
            "issue_category": IssueCategory.parse(issue.issue_category).to_code(),
            "learned_date": encode_timestamp(issue.learned_date),
            "resolution_status": ResolutionStatus.parse(issue.resolution_status).to_code(),
            "resolution_date": encode_timestamp(issue.resolution_date),
            "prevention_notes": issue.prevention_notes,
            "project_contexts": encode_list(issue.project_contexts),
            "created_at": encode_timestamp(issue.created_at),
            "updated_at": encode_timestamp(issue.updated_at),
        }

    def _validate(self, issue: KnownIssue) -> None:
        validate_required_text(issue.user_id, "user_id", config.MAX_SHORT_TEXT_LENGTH)
        validate_required_text(issue.issue_description, "issue_description", config.MAX_TEXT_LENGTH)
        for name in ("root_cause", "workaround", "permanent_solution", "prevention_notes"):
            validate_optional_text(getattr(issue, name), name, config.MAX_TEXT_LENGTH)
        for name in ("symptoms", "affected_components", "project_contexts"):
            validate_string_list(getattr(issue, name), name, config.MAX_LIST_ITEMS, config.MAX_LIST_ITEM_LENGTH)

    def find_by_user(self, user_id: str) -> list[KnownIssue]:
        return self._select(KnownIssueRecord.user_id == user_id, order_by=self._default_order)

    def find_by_status(self, user_id: str, status) -> list[KnownIssue]:
        code = ResolutionStatus.parse(status, field="resolution_status").to_code()
        return self._select(
            KnownIssueRecord.user_id == user_id,
            KnownIssueRecord.resolution_status == code,
            order_by=(_severity_rank.asc(), KnownIssueRecord.learned_date.desc()),
        )

    def find_by_severity(self, user_id: str, severity) -> list[KnownIssue]:
        code = IssueSeverity.parse(severity, field="severity").to_code()
        return self._select(
            KnownIssueRecord.user_id == user_id,
            KnownIssueRecord.severity == code,
            order_by=self._default_order,
        )

    def find_by_category(self, user_id: str, category) -> list[KnownIssue]:
        code = IssueCategory.parse(category, field="issue_category").to_code()
        return self._select(
            KnownIssueRecord.user_id == user_id,
            KnownIssueRecord.issue_category == code,
            order_by=self._default_order,
        )

    def find_by_component(self, user_id: str, component: str) -> list[KnownIssue]:
        # affected_components is a JSON blob; filter after decoding.
        return [issue for issue in self.find_by_user(user_id) if component in issue.affected_components]

    def mark_resolved(
        self,
        issue_id: str,
        resolution_status: Union[ResolutionStatus, str],
    ) -> KnownIssue:
        new_status = ResolutionStatus.parse(resolution_status, field="resolution_status")

        def apply(issue: KnownIssue, now) -> None:
            issue.resolution_status = new_status
            issue.resolution_date = now

        return self._mutate(issue_id, ACTION_RESOLVE, apply)
