"""
Shared helpers and configuration for context services.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Optional, Sequence

import contextgate.config as config
from contextgate.audit import AuditTrail
from contextgate.context import RequestContext, resolve_actor
from contextgate.db import get_database
from contextgate.errors import ConflictError, NotFound, ValidationIssue
from contextgate.repositories import (
    SqlContextualTodoRepository,
    SqlKnownIssueRepository,
    SqlUserDecisionRepository,
    SqlUserGoalRepository,
    SqlUserPreferenceRepository,
)
from contextgate.validators import (
    validate_choice as _validate_choice,
    validate_limit as _validate_limit,
    validate_required_text as _validate_required_text,
)

# =============================================================================
# Configuration
# =============================================================================

logger = config.logger

MAX_RESULT_LIMIT = config.MAX_RESULT_LIMIT
MAX_TEXT_LENGTH = config.MAX_TEXT_LENGTH
MAX_SHORT_TEXT_LENGTH = config.MAX_SHORT_TEXT_LENGTH
MAX_LIST_ITEMS = config.MAX_LIST_ITEMS
MAX_LIST_ITEM_LENGTH = config.MAX_LIST_ITEM_LENGTH


# =============================================================================
# Repository wiring
# =============================================================================

@dataclass
class ContextRepositories:
    decisions: SqlUserDecisionRepository
    goals: SqlUserGoalRepository
    preferences: SqlUserPreferenceRepository
    issues: SqlKnownIssueRepository
    todos: SqlContextualTodoRepository
    audit: AuditTrail


def build_repositories(database, actor: Optional[str] = None) -> ContextRepositories:
    return ContextRepositories(
        decisions=SqlUserDecisionRepository(database, actor=actor),
        goals=SqlUserGoalRepository(database, actor=actor),
        preferences=SqlUserPreferenceRepository(database, actor=actor),
        issues=SqlKnownIssueRepository(database, actor=actor),
        todos=SqlContextualTodoRepository(database, actor=actor),
        audit=AuditTrail(database),
    )


def _repositories(context: Optional[RequestContext]) -> ContextRepositories:
    return build_repositories(get_database(), actor=resolve_actor(context))


# =============================================================================
# Helper Functions
# =============================================================================

def _tool_error_payload(tool_name: str, exc: ValidationIssue) -> dict:
    return {
        "status": "error",
        "error_type": "validation_error",
        "tool": tool_name,
        "field": exc.field,
        "message": str(exc),
    }


def _log_validation_issue(tool_name: str, exc: ValidationIssue, warn: bool = False) -> None:
    payload = {
        "tool": tool_name,
        "field": exc.field,
        "error_type": exc.error_type,
        "detail": str(exc),
    }
    if warn:
        logger.warning("tool_validation_error", extra=payload)
    else:
        logger.info("tool_validation_error", extra=payload)


def _tool_error_handler(fn: Callable[..., dict]) -> Callable[..., dict]:
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ValidationIssue as exc:
            _log_validation_issue(fn.__name__, exc, warn=False)
            return _tool_error_payload(fn.__name__, exc)
        except ValueError as exc:
            issue = ValidationIssue(str(exc), field="unknown", error_type="value_error")
            _log_validation_issue(fn.__name__, issue, warn=True)
            return _tool_error_payload(fn.__name__, issue)
        except NotFound as exc:
            return {
                "status": "not_found",
                "tool": fn.__name__,
                "entity_type": exc.entity_type,
                "id": exc.entity_id,
                "message": str(exc),
            }
        except ConflictError as exc:
            logger.info(
                "tool_conflict",
                extra={"tool": fn.__name__, "entity_type": exc.entity_type, "entity_id": exc.entity_id},
            )
            return {
                "status": "error",
                "error_type": "conflict",
                "tool": fn.__name__,
                "entity_type": exc.entity_type,
                "id": exc.entity_id,
                "message": str(exc),
            }
    return wrapper


def service_tool(fn: Callable[..., dict]) -> Callable[..., dict]:
    return _tool_error_handler(fn)


def _validate_action(action: str, actions: Sequence[str]) -> str:
    _validate_required_text(action, "action", MAX_SHORT_TEXT_LENGTH)
    normalized = action.strip().lower()
    _validate_choice(normalized, "action", actions)
    return normalized


def _require(value: Optional[str], field: str, action: str) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationIssue(f"{field} is required for {action}", field=field, error_type="required")
    _validate_required_text(value, field, MAX_SHORT_TEXT_LENGTH if field.endswith("_id") else MAX_TEXT_LENGTH)
    return value


def _resolve_limit(limit: Optional[int]) -> int:
    if limit is None:
        return MAX_RESULT_LIMIT
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValidationIssue("limit must be an integer", field="limit", error_type="invalid_type")
    _validate_limit(limit, "limit", MAX_RESULT_LIMIT)
    return limit


def _parse_datetime_arg(value: Any, field: str) -> Optional[datetime]:
    """Accept a datetime or an ISO-8601 string; naive values are UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationIssue(
                f"{field} must be an ISO-8601 timestamp",
                field=field,
                error_type="invalid_format",
            ) from exc
    else:
        raise ValidationIssue(f"{field} must be an ISO-8601 timestamp", field=field, error_type="invalid_type")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _load_owned(repo, entity_id: str, user_id: str):
    """Fetch a record and hide it from other users."""
    entity = repo.find_by_id(entity_id)
    if entity is None or entity.user_id != user_id:
        raise NotFound(repo.entity_type, entity_id)
    return entity


__all__ = [
    "ContextRepositories",
    "build_repositories",
    "service_tool",
    "logger",
]
