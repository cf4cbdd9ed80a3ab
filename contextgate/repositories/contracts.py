"""
Repository contracts, one per context kind.

Finders return records ordered by the kind's default ordering. Narrow
mutators stamp ``updated_at``, return the refreshed record and raise
NotFound for an unknown id.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Union

from contextgate.domain import (
    ContextualTodo,
    GoalStatus,
    KnownIssue,
    ResolutionStatus,
    TodoStatus,
    UserDecision,
    UserGoal,
    UserPreference,
)
from contextgate.scope import ContextScope

ScopeArg = Union[ContextScope, str]


class UserDecisionRepository(ABC):
    @abstractmethod
    def create(self, decision: UserDecision) -> UserDecision: ...

    @abstractmethod
    def find_by_id(self, decision_id: str) -> Optional[UserDecision]: ...

    @abstractmethod
    def find_by_user(self, user_id: str) -> list[UserDecision]: ...

    @abstractmethod
    def find_by_scope(self, user_id: str, scope: ScopeArg) -> list[UserDecision]: ...

    @abstractmethod
    def find_by_category(self, user_id: str, category) -> list[UserDecision]: ...

    @abstractmethod
    def find_by_status(self, user_id: str, status) -> list[UserDecision]: ...

    @abstractmethod
    def update(self, decision: UserDecision) -> UserDecision: ...

    @abstractmethod
    def delete(self, decision_id: str) -> bool: ...

    @abstractmethod
    def increment_applied_count(self, decision_id: str) -> UserDecision: ...

    @abstractmethod
    def archive(self, decision_id: str) -> UserDecision: ...

    @abstractmethod
    def supersede(self, decision_id: str) -> UserDecision: ...


class UserGoalRepository(ABC):
    @abstractmethod
    def create(self, goal: UserGoal) -> UserGoal: ...

    @abstractmethod
    def find_by_id(self, goal_id: str) -> Optional[UserGoal]: ...

    @abstractmethod
    def find_by_user(self, user_id: str) -> list[UserGoal]: ...

    @abstractmethod
    def find_by_status(self, user_id: str, status) -> list[UserGoal]: ...

    @abstractmethod
    def find_by_project(self, user_id: str, project_id: str) -> list[UserGoal]: ...

    @abstractmethod
    def update(self, goal: UserGoal) -> UserGoal: ...

    @abstractmethod
    def delete(self, goal_id: str) -> bool: ...

    @abstractmethod
    def update_status(self, goal_id: str, status: Union[GoalStatus, str]) -> UserGoal: ...


class UserPreferenceRepository(ABC):
    @abstractmethod
    def create(self, preference: UserPreference) -> UserPreference: ...

    @abstractmethod
    def find_by_id(self, preference_id: str) -> Optional[UserPreference]: ...

    @abstractmethod
    def find_by_user(self, user_id: str) -> list[UserPreference]: ...

    @abstractmethod
    def find_by_scope(self, user_id: str, scope: ScopeArg) -> list[UserPreference]: ...

    @abstractmethod
    def find_by_type(self, user_id: str, preference_type) -> list[UserPreference]: ...

    @abstractmethod
    def find_automation_applicable(self, user_id: str) -> list[UserPreference]: ...

    @abstractmethod
    def update(self, preference: UserPreference) -> UserPreference: ...

    @abstractmethod
    def delete(self, preference_id: str) -> bool: ...

    @abstractmethod
    def increment_frequency(self, preference_id: str) -> UserPreference: ...


class KnownIssueRepository(ABC):
    @abstractmethod
    def create(self, issue: KnownIssue) -> KnownIssue: ...

    @abstractmethod
    def find_by_id(self, issue_id: str) -> Optional[KnownIssue]: ...

    @abstractmethod
    def find_by_user(self, user_id: str) -> list[KnownIssue]: ...

    @abstractmethod
    def find_by_status(self, user_id: str, status) -> list[KnownIssue]: ...

    @abstractmethod
    def find_by_severity(self, user_id: str, severity) -> list[KnownIssue]: ...

    @abstractmethod
    def find_by_category(self, user_id: str, category) -> list[KnownIssue]: ...

    @abstractmethod
    def find_by_component(self, user_id: str, component: str) -> list[KnownIssue]: ...

    @abstractmethod
    def update(self, issue: KnownIssue) -> KnownIssue: ...

    @abstractmethod
    def delete(self, issue_id: str) -> bool: ...

    @abstractmethod
    def mark_resolved(
        self,
        issue_id: str,
        resolution_status: Union[ResolutionStatus, str],
    ) -> KnownIssue: ...


class ContextualTodoRepository(ABC):
    @abstractmethod
    def create(self, todo: ContextualTodo) -> ContextualTodo: ...

    @abstractmethod
    def find_by_id(self, todo_id: str) -> Optional[ContextualTodo]: ...

    @abstractmethod
    def find_by_user(self, user_id: str) -> list[ContextualTodo]:
        """Ordered by priority, then due date; todos without a due date come last."""

    @abstractmethod
    def find_by_status(self, user_id: str, status) -> list[ContextualTodo]: ...

    @abstractmethod
    def find_by_project(self, user_id: str, project_id: str) -> list[ContextualTodo]: ...

    @abstractmethod
    def find_by_entity(self, user_id: str, entity_id: str) -> list[ContextualTodo]: ...

    @abstractmethod
    def update(self, todo: ContextualTodo) -> ContextualTodo: ...

    @abstractmethod
    def delete(self, todo_id: str) -> bool: ...

    @abstractmethod
    def update_status(self, todo_id: str, status: Union[TodoStatus, str]) -> ContextualTodo: ...


__all__ = [
    "UserDecisionRepository",
    "UserGoalRepository",
    "UserPreferenceRepository",
    "KnownIssueRepository",
    "ContextualTodoRepository",
]
