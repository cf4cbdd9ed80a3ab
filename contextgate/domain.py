"""
Domain records for user context: decisions, goals, preferences, known
issues, contextual todos, and the audit entry written alongside mutations.

Records are plain dataclasses. ``new(...)`` builds a fresh record with a
generated id and ``created_at``; ``with_*`` helpers return an adjusted copy
and clamp numeric fields. Direct attribute assignment is not validated here;
the repositories validate ranges on write.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Optional

from contextgate.errors import UnrecognizedValue
from contextgate.scope import GLOBAL, ContextScope, ScopeKind, encode_scope


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _clamp(value, lower, upper):
    return max(lower, min(upper, value))


# =============================================================================
# Enums
# =============================================================================

class CodedEnum(str, PyEnum):
    """Closed set of string codes with a designated fallback member."""

    @classmethod
    def fallback(cls) -> "CodedEnum":
        raise NotImplementedError

    def to_code(self) -> str:
        return self.value

    @classmethod
    def parse(cls, code, field: str = "unknown"):
        """Strict decode: raises UnrecognizedValue for unknown codes."""
        if isinstance(code, cls):
            return code
        try:
            return cls(code)
        except ValueError as exc:
            raise UnrecognizedValue(cls.__name__, code, field=field) from exc

    @classmethod
    def from_code(cls, code):
        """Total decode: unknown codes map to the fallback member."""
        try:
            return cls.parse(code)
        except UnrecognizedValue:
            return cls.fallback()

    @classmethod
    def codes(cls) -> list[str]:
        return [member.value for member in cls]


class DecisionCategory(CodedEnum):
    architecture = "architecture"
    tool_choice = "tool_choice"
    constraint = "constraint"
    workflow = "workflow"
    performance = "performance"
    security = "security"
    other = "other"

    @classmethod
    def fallback(cls):
        return cls.other


class EntityStatus(CodedEnum):
    active = "active"
    archived = "archived"
    superseded = "superseded"

    @classmethod
    def fallback(cls):
        return cls.active


class GoalStatus(CodedEnum):
    planned = "planned"
    in_progress = "in_progress"
    completed = "completed"
    blocked = "blocked"

    @classmethod
    def fallback(cls):
        return cls.planned


class PreferenceType(CodedEnum):
    tool = "tool"
    framework = "framework"
    constraint = "constraint"
    pattern = "pattern"
    other = "other"

    @classmethod
    def fallback(cls):
        return cls.other


class IssueSeverity(CodedEnum):
    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"

    @classmethod
    def fallback(cls):
        # Unknown severities are treated as the most severe.
        return cls.critical

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    IssueSeverity.critical: 0,
    IssueSeverity.high: 1,
    IssueSeverity.medium: 2,
    IssueSeverity.low: 3,
}


class IssueCategory(CodedEnum):
    integration = "integration"
    performance = "performance"
    deployment = "deployment"
    data = "data"
    workflow = "workflow"
    other = "other"

    @classmethod
    def fallback(cls):
        return cls.other


class ResolutionStatus(CodedEnum):
    unresolved = "unresolved"
    workaround_available = "workaround_available"
    fixed = "fixed"
    no_action_needed = "no_action_needed"

    @classmethod
    def fallback(cls):
        return cls.unresolved


class TodoContextType(CodedEnum):
    decision_implementation = "decision_implementation"
    goal_step = "goal_step"
    issue_resolution = "issue_resolution"
    preference_adoption = "preference_adoption"
    other = "other"

    @classmethod
    def fallback(cls):
        return cls.other


class TodoStatus(CodedEnum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    blocked = "blocked"

    @classmethod
    def fallback(cls):
        return cls.pending


class EntityType(CodedEnum):
    user_decision = "user_decision"
    user_goal = "user_goal"
    known_issue = "known_issue"
    user_preference = "user_preference"

    @classmethod
    def fallback(cls):
        return cls.user_decision


# =============================================================================
# User Decision
# =============================================================================

@dataclass
class UserDecision:
    id: str
    user_id: str
    decision_text: str
    decision_category: DecisionCategory
    scope: ContextScope = GLOBAL
    reason: Optional[str] = None
    related_project_id: Optional[str] = None
    confidence_score: float = 0.5
    referenced_items: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    applied_count: int = 0
    last_applied: Optional[datetime] = None
    status: EntityStatus = EntityStatus.active

    @classmethod
    def new(
        cls,
        user_id: str,
        decision_text: str,
        decision_category: DecisionCategory,
        scope: ContextScope = GLOBAL,
        confidence_score: float = 0.5,
    ) -> "UserDecision":
        decision = cls(
            id=new_id(),
            user_id=user_id,
            decision_text=decision_text,
            decision_category=decision_category,
            scope=scope,
        )
        return decision.with_confidence(confidence_score)

    def with_reason(self, reason: str) -> "UserDecision":
        return replace(self, reason=reason)

    def with_project(self, project_id: str) -> "UserDecision":
        return replace(self, related_project_id=project_id)

    def with_confidence(self, score: float) -> "UserDecision":
        return replace(self, confidence_score=float(_clamp(score, 0.0, 1.0)))

    def with_referenced_items(self, items: list[str]) -> "UserDecision":
        return replace(self, referenced_items=list(items))

    def increment_applied_count(self) -> None:
        now = utcnow()
        self.applied_count += 1
        self.last_applied = now
        self.updated_at = now

    def archive(self) -> None:
        self.status = EntityStatus.archived
        self.updated_at = utcnow()


# =============================================================================
# User Goal
# =============================================================================

@dataclass
class GoalStep:
    step_number: int
    description: str
    status: GoalStatus = GoalStatus.planned
    due_date: Optional[datetime] = None

    def with_due_date(self, due_date: datetime) -> "GoalStep":
        return replace(self, due_date=due_date)


@dataclass
class UserGoal:
    id: str
    user_id: str
    goal_text: str
    description: Optional[str] = None
    project_id: Optional[str] = None
    status: GoalStatus = GoalStatus.planned
    priority: int = 3
    steps: list[GoalStep] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    completion_target_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    blockers: list[str] = field(default_factory=list)
    related_todos: list[str] = field(default_factory=list)

    @classmethod
    def new(cls, user_id: str, goal_text: str, priority: int = 3) -> "UserGoal":
        goal = cls(id=new_id(), user_id=user_id, goal_text=goal_text)
        return goal.with_priority(priority)

    def with_description(self, description: str) -> "UserGoal":
        return replace(self, description=description)

    def with_project(self, project_id: str) -> "UserGoal":
        return replace(self, project_id=project_id)

    def with_priority(self, priority: int) -> "UserGoal":
        return replace(self, priority=int(_clamp(priority, 1, 5)))

    def add_step(self, step: GoalStep) -> None:
        self.steps.append(step)
        self.updated_at = utcnow()

    def mark_started(self) -> None:
        self.status = GoalStatus.in_progress
        self.updated_at = utcnow()

    def mark_completed(self) -> None:
        now = utcnow()
        self.status = GoalStatus.completed
        self.completion_date = now
        self.updated_at = now

    @property
    def completion_percentage(self) -> float:
        if not self.steps:
            return 0.0
        completed = sum(1 for step in self.steps if step.status == GoalStatus.completed)
        return completed / len(self.steps) * 100.0


# =============================================================================
# User Preference
# =============================================================================

@dataclass
class UserPreference:
    id: str
    user_id: str
    preference_name: str
    preference_value: str
    preference_type: PreferenceType
    scope: ContextScope = GLOBAL
    applies_to_automation: bool = True
    rationale: Optional[str] = None
    priority: int = 3
    frequency_observed: int = 1
    tags: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    last_referenced: Optional[datetime] = None

    @classmethod
    def new(
        cls,
        user_id: str,
        preference_name: str,
        preference_value: str,
        preference_type: PreferenceType,
        scope: ContextScope = GLOBAL,
    ) -> "UserPreference":
        return cls(
            id=new_id(),
            user_id=user_id,
            preference_name=preference_name,
            preference_value=preference_value,
            preference_type=preference_type,
            scope=scope,
        )

    def with_rationale(self, rationale: str) -> "UserPreference":
        return replace(self, rationale=rationale)

    def with_tags(self, tags: list[str]) -> "UserPreference":
        return replace(self, tags=list(tags))

    def with_priority(self, priority: int) -> "UserPreference":
        return replace(self, priority=int(_clamp(priority, 1, 5)))

    def increment_frequency(self) -> None:
        now = utcnow()
        self.frequency_observed += 1
        self.last_referenced = now
        self.updated_at = now


# =============================================================================
# Known Issue
# =============================================================================

@dataclass
class KnownIssue:
    id: str
    user_id: str
    issue_description: str
    severity: IssueSeverity
    issue_category: IssueCategory
    symptoms: list[str] = field(default_factory=list)
    root_cause: Optional[str] = None
    workaround: Optional[str] = None
    permanent_solution: Optional[str] = None
    affected_components: list[str] = field(default_factory=list)
    learned_date: datetime = field(default_factory=utcnow)
    resolution_status: ResolutionStatus = ResolutionStatus.unresolved
    resolution_date: Optional[datetime] = None
    prevention_notes: Optional[str] = None
    project_contexts: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    @classmethod
    def new(
        cls,
        user_id: str,
        issue_description: str,
        severity: IssueSeverity,
        issue_category: IssueCategory,
    ) -> "KnownIssue":
        now = utcnow()
        return cls(
            id=new_id(),
            user_id=user_id,
            issue_description=issue_description,
            severity=severity,
            issue_category=issue_category,
            learned_date=now,
            created_at=now,
        )

    def with_workaround(self, workaround: str) -> "KnownIssue":
        return replace(self, workaround=workaround)

    def add_symptom(self, symptom: str) -> None:
        self.symptoms.append(symptom)

    def mark_resolved(self, status: ResolutionStatus) -> None:
        now = utcnow()
        self.resolution_status = status
        self.resolution_date = now
        self.updated_at = now


# =============================================================================
# Contextual Todo
# =============================================================================

@dataclass
class ContextualTodo:
    id: str
    user_id: str
    task_description: str
    context_type: TodoContextType
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[EntityType] = None
    project_id: Optional[str] = None
    assigned_to: Optional[str] = None
    due_date: Optional[datetime] = None
    status: TodoStatus = TodoStatus.pending
    priority: int = 3
    created_from_conversation_date: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    completion_date: Optional[datetime] = None

    @classmethod
    def new(
        cls,
        user_id: str,
        task_description: str,
        context_type: TodoContextType,
    ) -> "ContextualTodo":
        return cls(
            id=new_id(),
            user_id=user_id,
            task_description=task_description,
            context_type=context_type,
        )

    def linked_to(self, entity_type: EntityType, entity_id: str) -> "ContextualTodo":
        return replace(self, related_entity_type=entity_type, related_entity_id=entity_id)

    def with_priority(self, priority: int) -> "ContextualTodo":
        return replace(self, priority=int(_clamp(priority, 1, 5)))

    def mark_started(self) -> None:
        self.status = TodoStatus.in_progress
        self.updated_at = utcnow()

    def mark_completed(self) -> None:
        now = utcnow()
        self.status = TodoStatus.completed
        self.completion_date = now
        self.updated_at = now


# =============================================================================
# Audit Trail
# =============================================================================

@dataclass
class AuditEntry:
    id: str
    user_id: str
    entity_type: str
    entity_id: str
    action: str
    changed_by: str
    changed_at: datetime = field(default_factory=utcnow)
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def create(
        cls,
        user_id: str,
        entity_type: str,
        entity_id: str,
        new_value: str,
        changed_by: str,
    ) -> "AuditEntry":
        return cls.record(
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action="create",
            changed_by=changed_by,
            new_value=new_value,
        )

    @classmethod
    def record(
        cls,
        user_id: str,
        entity_type: str,
        entity_id: str,
        action: str,
        changed_by: str,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> "AuditEntry":
        return cls(
            id=new_id(),
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            changed_by=changed_by,
            changed_at=utcnow(),
            old_value=old_value,
            new_value=new_value,
            reason=reason,
        )


# =============================================================================
# Plain-data projection
# =============================================================================

def _plain(value: Any) -> Any:
    if isinstance(value, PyEnum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, ContextScope):
        return encode_scope(value)
    if isinstance(value, GoalStep):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def to_dict(entity) -> dict:
    """JSON-ready dict of a domain record (enums as codes, scope encoded)."""
    data = {f.name: _plain(getattr(entity, f.name)) for f in fields(entity)}
    if isinstance(entity, UserGoal):
        data["completion_percentage"] = round(entity.completion_percentage, 2)
    return data


__all__ = [
    "utcnow",
    "new_id",
    "CodedEnum",
    "DecisionCategory",
    "EntityStatus",
    "GoalStatus",
    "PreferenceType",
    "IssueSeverity",
    "IssueCategory",
    "ResolutionStatus",
    "TodoContextType",
    "TodoStatus",
    "EntityType",
    "ContextScope",
    "ScopeKind",
    "UserDecision",
    "GoalStep",
    "UserGoal",
    "UserPreference",
    "KnownIssue",
    "ContextualTodo",
    "AuditEntry",
    "to_dict",
]
