from contextgate.repositories.contracts import (
    ContextualTodoRepository,
    KnownIssueRepository,
    UserDecisionRepository,
    UserGoalRepository,
    UserPreferenceRepository,
)
from contextgate.repositories.decisions import SqlUserDecisionRepository
from contextgate.repositories.goals import SqlUserGoalRepository
from contextgate.repositories.issues import SqlKnownIssueRepository
from contextgate.repositories.preferences import SqlUserPreferenceRepository
from contextgate.repositories.todos import SqlContextualTodoRepository

__all__ = [
    "UserDecisionRepository",
    "UserGoalRepository",
    "UserPreferenceRepository",
    "KnownIssueRepository",
    "ContextualTodoRepository",
    "SqlUserDecisionRepository",
    "SqlUserGoalRepository",
    "SqlUserPreferenceRepository",
    "SqlKnownIssueRepository",
    "SqlContextualTodoRepository",
]
