import os

os.environ.setdefault("CONTEXTGATE_DB_BACKEND", "sqlite")

import pytest

from contextgate.domain import (
    ContextualTodo,
    DecisionCategory,
    EntityStatus,
    EntityType,
    GoalStatus,
    GoalStep,
    IssueCategory,
    IssueSeverity,
    PreferenceType,
    ResolutionStatus,
    TodoContextType,
    TodoStatus,
    UserDecision,
    UserGoal,
    to_dict,
)
from contextgate.errors import UnrecognizedValue
from contextgate.scope import ContextScope

ALL_ENUMS = [
    (DecisionCategory, DecisionCategory.other),
    (EntityStatus, EntityStatus.active),
    (GoalStatus, GoalStatus.planned),
    (PreferenceType, PreferenceType.other),
    (IssueSeverity, IssueSeverity.critical),
    (IssueCategory, IssueCategory.other),
    (ResolutionStatus, ResolutionStatus.unresolved),
    (TodoContextType, TodoContextType.other),
    (TodoStatus, TodoStatus.pending),
    (EntityType, EntityType.user_decision),
]


@pytest.mark.parametrize("enum_cls,fallback", ALL_ENUMS)
def test_every_member_code_parses_back(enum_cls, fallback):
    for member in enum_cls:
        assert enum_cls.parse(member.to_code()) is member
        assert enum_cls.from_code(member.to_code()) is member
    assert enum_cls.fallback() is fallback


@pytest.mark.parametrize("enum_cls,fallback", ALL_ENUMS)
def test_unknown_code_strict_and_total(enum_cls, fallback):
    with pytest.raises(UnrecognizedValue) as excinfo:
        enum_cls.parse("definitely-not-a-code", field="some_column")
    assert excinfo.value.raw_value == "definitely-not-a-code"
    assert excinfo.value.field == "some_column"
    assert enum_cls.from_code("definitely-not-a-code") is fallback


def test_codes_are_case_sensitive():
    with pytest.raises(UnrecognizedValue):
        DecisionCategory.parse("Architecture")
    assert DecisionCategory.from_code("Architecture") is DecisionCategory.other


def test_severity_ranks_critical_first():
    ordered = sorted(IssueSeverity, key=lambda severity: severity.rank)
    assert ordered == [IssueSeverity.critical, IssueSeverity.high, IssueSeverity.medium, IssueSeverity.low]


def test_decision_confidence_is_clamped():
    high = UserDecision.new("u1", "Use Postgres", DecisionCategory.tool_choice, confidence_score=1.7)
    low = high.with_confidence(-0.3)
    assert high.confidence_score == 1.0
    assert low.confidence_score == 0.0


def test_decision_new_defaults():
    decision = UserDecision.new("u1", "Prefer composition", DecisionCategory.architecture)
    assert decision.id
    assert decision.scope == ContextScope.global_scope()
    assert decision.status == EntityStatus.active
    assert decision.applied_count == 0
    assert decision.last_applied is None
    assert decision.created_at.tzinfo is not None


def test_priority_builders_clamp():
    assert UserGoal.new("u1", "Ship v1", priority=9).priority == 5
    assert UserGoal.new("u1", "Ship v1", priority=0).priority == 1
    todo = ContextualTodo.new("u1", "Write docs", TodoContextType.other)
    assert todo.with_priority(42).priority == 5
    assert todo.with_priority(-1).priority == 1


def test_goal_completion_percentage():
    goal = UserGoal.new("u1", "Migrate storage")
    assert goal.completion_percentage == 0.0
    goal.add_step(GoalStep(1, "Design schema", status=GoalStatus.completed))
    goal.add_step(GoalStep(2, "Write migration"))
    goal.add_step(GoalStep(3, "Backfill"))
    goal.add_step(GoalStep(4, "Cut over", status=GoalStatus.completed))
    assert goal.completion_percentage == 50.0
    assert to_dict(goal)["completion_percentage"] == 50.0


def test_goal_mark_completed_sets_completion_date():
    goal = UserGoal.new("u1", "Finish migration")
    goal.mark_completed()
    assert goal.status == GoalStatus.completed
    assert goal.completion_date is not None
    assert goal.updated_at == goal.completion_date


def test_todo_linked_to_sets_both_fields():
    todo = ContextualTodo.new("u1", "Implement caching", TodoContextType.decision_implementation)
    linked = todo.linked_to(EntityType.user_decision, "dec-1")
    assert linked.related_entity_type == EntityType.user_decision
    assert linked.related_entity_id == "dec-1"
    assert todo.related_entity_id is None


def test_to_dict_uses_codes_and_scope_strings():
    decision = UserDecision.new(
        "u1",
        "Use Redis for sessions",
        DecisionCategory.tool_choice,
        scope=ContextScope.project("p-9"),
    )
    data = to_dict(decision)
    assert data["decision_category"] == "tool_choice"
    assert data["status"] == "active"
    assert data["scope"] == "project_id:p-9"
    assert isinstance(data["created_at"], str)
