"""
ContextGate Database Models
SQLite-first relational schema for user context.

Timestamps are stored as RFC3339 text and list-valued fields as JSON array
text; the repositories own both encodings. Column order here matches the
0001 Alembic revision.
"""

from sqlalchemy import (
    Column, Integer, String, Text, Float, Boolean, Index, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# =============================================================================
# User Decisions
# =============================================================================

class UserDecisionRecord(Base):
    __tablename__ = "user_decisions"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False)
    decision_text = Column(Text, nullable=False)
    reason = Column(Text)
    decision_category = Column(String(50), nullable=False)
    scope_kind = Column(String(20), nullable=False, default="global")
    scope_value = Column(String(255), nullable=False, default="")
    related_project_id = Column(String(255))
    confidence_score = Column(Float, default=0.5)
    referenced_items = Column(Text, default="[]")
    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40))
    applied_count = Column(Integer, default=0, nullable=False)
    last_applied = Column(String(40))
    status = Column(String(20), default="active", nullable=False)

    __table_args__ = (
        Index("idx_user_decisions_user", "user_id"),
        Index("idx_user_decisions_scope", "scope_kind", "scope_value"),
        Index("idx_user_decisions_status", "status"),
        Index("idx_user_decisions_category", "decision_category"),
        Index("idx_user_decisions_created", "created_at"),
    )


# =============================================================================
# User Goals
# =============================================================================

class UserGoalRecord(Base):
    __tablename__ = "user_goals"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False)
    goal_text = Column(Text, nullable=False)
    description = Column(Text)
    project_id = Column(String(255))
    status = Column(String(20), nullable=False)
    priority = Column(Integer, default=3, nullable=False)
    steps = Column(Text, default="[]")
    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40))
    completion_target_date = Column(String(40))
    completion_date = Column(String(40))
    blockers = Column(Text, default="[]")
    related_todos = Column(Text, default="[]")

    __table_args__ = (
        Index("idx_user_goals_user", "user_id"),
        Index("idx_user_goals_status", "status"),
        Index("idx_user_goals_project", "project_id"),
        Index("idx_user_goals_priority", "priority"),
    )


# =============================================================================
# User Preferences
# =============================================================================

class UserPreferenceRecord(Base):
    __tablename__ = "user_preferences"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False)
    preference_name = Column(String(255), nullable=False)
    preference_value = Column(Text, nullable=False)
    preference_type = Column(String(50), nullable=False)
    scope_kind = Column(String(20), nullable=False, default="global")
    scope_value = Column(String(255), nullable=False, default="")
    applies_to_automation = Column(Boolean, default=True, nullable=False)
    rationale = Column(Text)
    priority = Column(Integer, default=3, nullable=False)
    frequency_observed = Column(Integer, default=1, nullable=False)
    tags = Column(Text, default="[]")
    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40))
    last_referenced = Column(String(40))

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "preference_name",
            "scope_kind",
            "scope_value",
            name="uq_user_preferences_user_name_scope",
        ),
        Index("idx_user_preferences_user", "user_id"),
        Index("idx_user_preferences_scope", "scope_kind", "scope_value"),
        Index("idx_user_preferences_type", "preference_type"),
        Index("idx_user_preferences_automation", "applies_to_automation"),
    )


# =============================================================================
# Known Issues
# =============================================================================

class KnownIssueRecord(Base):
    __tablename__ = "known_issues"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False)
    issue_description = Column(Text, nullable=False)
    symptoms = Column(Text, default="[]")
    root_cause = Column(Text)
    workaround = Column(Text)
    permanent_solution = Column(Text)
    affected_components = Column(Text, default="[]")
    severity = Column(String(20), nullable=False)
    issue_category = Column(String(50), nullable=False)
    learned_date = Column(String(40), nullable=False)
    resolution_status = Column(String(30), nullable=False)
    resolution_date = Column(String(40))
    prevention_notes = Column(Text)
    project_contexts = Column(Text, default="[]")
    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40))

    __table_args__ = (
        Index("idx_known_issues_user", "user_id"),
        Index("idx_known_issues_status", "resolution_status"),
        Index("idx_known_issues_severity", "severity"),
        Index("idx_known_issues_category", "issue_category"),
        Index("idx_known_issues_learned", "learned_date"),
    )


# =============================================================================
# Contextual Todos
# =============================================================================

class ContextualTodoRecord(Base):
    __tablename__ = "contextual_todos"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False)
    task_description = Column(Text, nullable=False)
    context_type = Column(String(50), nullable=False)
    related_entity_id = Column(String(36))
    related_entity_type = Column(String(30))
    project_id = Column(String(255))
    assigned_to = Column(String(255))
    due_date = Column(String(40))
    status = Column(String(20), default="pending", nullable=False)
    priority = Column(Integer, default=3, nullable=False)
    created_from_conversation_date = Column(String(40))
    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40))
    completion_date = Column(String(40))

    __table_args__ = (
        Index("idx_contextual_todos_user", "user_id"),
        Index("idx_contextual_todos_status", "status"),
        Index("idx_contextual_todos_entity", "related_entity_id"),
        Index("idx_contextual_todos_project", "project_id"),
        Index("idx_contextual_todos_due", "due_date"),
    )


# =============================================================================
# Audit Trail
# =============================================================================

class UserContextAuditRecord(Base):
    __tablename__ = "user_context_audit"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False)
    entity_type = Column(String(30), nullable=False)
    entity_id = Column(String(36), nullable=False)
    action = Column(String(30), nullable=False)
    old_value = Column(Text)
    new_value = Column(Text)
    changed_by = Column(String(255))
    changed_at = Column(String(40), nullable=False)
    reason = Column(Text)

    __table_args__ = (
        Index("idx_audit_user", "user_id"),
        Index("idx_audit_entity", "entity_id"),
        Index("idx_audit_timestamp", "changed_at"),
    )


CONTEXT_TABLES = (
    "user_decisions",
    "user_goals",
    "user_preferences",
    "known_issues",
    "contextual_todos",
    "user_context_audit",
)

__all__ = [
    "Base",
    "UserDecisionRecord",
    "UserGoalRecord",
    "UserPreferenceRecord",
    "KnownIssueRecord",
    "ContextualTodoRecord",
    "UserContextAuditRecord",
    "CONTEXT_TABLES",
]
