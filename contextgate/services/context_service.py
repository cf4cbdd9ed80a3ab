"""
User context services: CRUD tools for each context kind plus query and
export across kinds.

Every tool returns a plain dict payload. Records are serialized with
``contextgate.domain.to_dict`` so enums are codes, timestamps are RFC3339
strings and scopes use their string form.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Optional, Sequence

from contextgate.context import RequestContext
from contextgate.domain import (
    ContextualTodo,
    DecisionCategory,
    EntityStatus,
    EntityType,
    GoalStatus,
    GoalStep,
    IssueCategory,
    IssueSeverity,
    KnownIssue,
    PreferenceType,
    ResolutionStatus,
    TodoContextType,
    TodoStatus,
    UserDecision,
    UserGoal,
    UserPreference,
    to_dict,
    utcnow,
)
from contextgate.errors import ValidationIssue
from contextgate.scope import coerce_scope, decode_scope, encode_scope
from contextgate.services.context_shared import (
    MAX_LIST_ITEM_LENGTH,
    MAX_LIST_ITEMS,
    MAX_SHORT_TEXT_LENGTH,
    MAX_TEXT_LENGTH,
    _load_owned,
    _parse_datetime_arg,
    _repositories,
    _require,
    _resolve_limit,
    _validate_action,
    logger,
    service_tool,
)
from contextgate.validators import (
    validate_choice as _validate_choice,
    validate_confidence as _validate_confidence,
    validate_optional_text as _validate_optional_text,
    validate_priority as _validate_priority,
    validate_required_text as _validate_required_text,
    validate_string_list as _validate_string_list,
)

DECISION_ACTIONS = ("create", "read", "update", "delete", "list", "archive", "supersede", "increment_applied")
GOAL_ACTIONS = ("create", "read", "update", "delete", "list", "update_status")
PREFERENCE_ACTIONS = ("create", "read", "update", "delete", "list", "increment_frequency")
ISSUE_ACTIONS = ("create", "read", "update", "delete", "list", "resolve")
TODO_ACTIONS = ("create", "read", "update", "delete", "list", "update_status")

CONTEXT_KINDS = ("decisions", "goals", "preferences", "issues", "todos")
CONTEXT_TYPES = CONTEXT_KINDS + ("all",)
EXPORT_FORMATS = ("json", "markdown")
FILTER_KEYS = (
    "status",
    "category",
    "severity",
    "scope",
    "project_id",
    "preference_type",
    "component",
    "applies_to_automation",
)


def _set_if_given(entity, **updates) -> None:
    for name, value in updates.items():
        if value is not None:
            setattr(entity, name, value)


def _list_payload(key: str, records: Sequence, user_id: str, limit: int) -> dict:
    items = list(records)[:limit]
    return {
        "status": "ok",
        "user_id": user_id,
        "count": len(items),
        key: [to_dict(item) for item in items],
    }


def _validate_scope_arg(scope: Optional[str]) -> None:
    if scope is None:
        return
    if not isinstance(scope, str):
        raise ValidationIssue("scope must be a string", field="scope", error_type="invalid_type")
    _validate_optional_text(scope, "scope", MAX_SHORT_TEXT_LENGTH)


def _validate_list_arg(values: Optional[list[str]], field: str) -> Optional[list[str]]:
    _validate_string_list(values, field, MAX_LIST_ITEMS, MAX_LIST_ITEM_LENGTH)
    return list(values) if values is not None else None


# =============================================================================
# Decisions
# =============================================================================

@service_tool
def manage_user_decision(
    action: str,
    user_id: str,
    decision_id: Optional[str] = None,
    decision_text: Optional[str] = None,
    reason: Optional[str] = None,
    decision_category: Optional[str] = None,
    scope: Optional[str] = None,
    related_project_id: Optional[str] = None,
    confidence_score: Optional[float] = None,
    referenced_items: Optional[list[str]] = None,
    status: Optional[str] = None,
    limit: Optional[int] = None,
    context: Optional[RequestContext] = None,
) -> dict:
    """
    Create, read, update, delete and track user decisions.

    Actions: create, read, update, delete, list, archive, supersede,
    increment_applied. ``list`` filters by scope, decision_category or
    status (first one given wins).
    """
    action = _validate_action(action, DECISION_ACTIONS)
    _validate_required_text(user_id, "user_id", MAX_SHORT_TEXT_LENGTH)
    _validate_optional_text(reason, "reason", MAX_TEXT_LENGTH)
    _validate_optional_text(related_project_id, "related_project_id", MAX_SHORT_TEXT_LENGTH)
    _validate_scope_arg(scope)
    if confidence_score is not None:
        _validate_confidence(confidence_score, "confidence_score")
    referenced_items = _validate_list_arg(referenced_items, "referenced_items")
    category = DecisionCategory.parse(decision_category, field="decision_category") if decision_category else None
    entity_status = EntityStatus.parse(status, field="status") if status else None

    repos = _repositories(context)
    repo = repos.decisions

    if action == "create":
        _require(decision_text, "decision_text", action)
        decision = UserDecision.new(
            user_id=user_id,
            decision_text=decision_text,
            decision_category=category or DecisionCategory.other,
            scope=decode_scope(scope),
            confidence_score=confidence_score if confidence_score is not None else 0.5,
        )
        _set_if_given(
            decision,
            reason=reason,
            related_project_id=related_project_id,
            referenced_items=referenced_items,
        )
        created = repo.create(decision)
        logger.info("decision_created", extra={"decision_id": created.id, "user_id": user_id})
        return {"status": "created", "decision": to_dict(created)}

    if action == "list":
        resolved_limit = _resolve_limit(limit)
        if scope is not None:
            records = repo.find_by_scope(user_id, scope)
        elif category is not None:
            records = repo.find_by_category(user_id, category)
        elif entity_status is not None:
            records = repo.find_by_status(user_id, entity_status)
        else:
            records = repo.find_by_user(user_id)
        return _list_payload("decisions", records, user_id, resolved_limit)

    _require(decision_id, "decision_id", action)
    existing = _load_owned(repo, decision_id, user_id)

    if action == "read":
        return {"status": "found", "decision": to_dict(existing)}

    if action == "update":
        if decision_text is not None:
            _validate_required_text(decision_text, "decision_text", MAX_TEXT_LENGTH)
        _set_if_given(
            existing,
            decision_text=decision_text,
            reason=reason,
            decision_category=category,
            scope=decode_scope(scope) if scope is not None else None,
            related_project_id=related_project_id,
            confidence_score=confidence_score,
            referenced_items=referenced_items,
            status=entity_status,
        )
        updated = repo.update(existing)
        return {"status": "updated", "decision": to_dict(updated)}

    if action == "delete":
        deleted = repo.delete(decision_id)
        return {"status": "deleted" if deleted else "not_found", "id": decision_id}

    if action == "archive":
        return {"status": "updated", "decision": to_dict(repo.archive(decision_id))}

    if action == "supersede":
        return {"status": "updated", "decision": to_dict(repo.supersede(decision_id))}

    # increment_applied
    return {"status": "updated", "decision": to_dict(repo.increment_applied_count(decision_id))}


# =============================================================================
# Goals
# =============================================================================

def _parse_steps(steps: Optional[list]) -> Optional[list[GoalStep]]:
    """Steps may be plain strings or dicts with description/status/due_date."""
    if steps is None:
        return None
    if not isinstance(steps, list):
        raise ValidationIssue("steps must be a list", field="steps", error_type="invalid_type")
    if len(steps) > MAX_LIST_ITEMS:
        raise ValidationIssue(f"steps exceeds max items {MAX_LIST_ITEMS}", field="steps", error_type="max_items")
    parsed = []
    for index, item in enumerate(steps, start=1):
        if isinstance(item, str):
            _validate_required_text(item, "steps", MAX_LIST_ITEM_LENGTH)
            parsed.append(GoalStep(step_number=index, description=item))
            continue
        if not isinstance(item, dict):
            raise ValidationIssue("steps must contain strings or objects", field="steps", error_type="invalid_type")
        description = item.get("description")
        _validate_required_text(description, "steps.description", MAX_LIST_ITEM_LENGTH)
        step_status = item.get("status")
        parsed.append(
            GoalStep(
                step_number=item.get("step_number") or index,
                description=description,
                status=GoalStatus.parse(step_status, field="steps.status") if step_status else GoalStatus.planned,
                due_date=_parse_datetime_arg(item.get("due_date"), "steps.due_date"),
            )
        )
    return parsed


@service_tool
def manage_user_goal(
    action: str,
    user_id: str,
    goal_id: Optional[str] = None,
    goal_text: Optional[str] = None,
    description: Optional[str] = None,
    project_id: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[int] = None,
    steps: Optional[list] = None,
    completion_target_date: Optional[str] = None,
    blockers: Optional[list[str]] = None,
    related_todos: Optional[list[str]] = None,
    limit: Optional[int] = None,
    context: Optional[RequestContext] = None,
) -> dict:
    """
    Create, read, update, delete and track progress on user goals.

    Actions: create, read, update, delete, list, update_status.
    """
    action = _validate_action(action, GOAL_ACTIONS)
    _validate_required_text(user_id, "user_id", MAX_SHORT_TEXT_LENGTH)
    _validate_optional_text(description, "description", MAX_TEXT_LENGTH)
    _validate_optional_text(project_id, "project_id", MAX_SHORT_TEXT_LENGTH)
    if priority is not None:
        _validate_priority(priority, "priority")
    goal_status = GoalStatus.parse(status, field="status") if status else None
    parsed_steps = _parse_steps(steps)
    target_date = _parse_datetime_arg(completion_target_date, "completion_target_date")
    blockers = _validate_list_arg(blockers, "blockers")
    related_todos = _validate_list_arg(related_todos, "related_todos")

    repos = _repositories(context)
    repo = repos.goals

    if action == "create":
        _require(goal_text, "goal_text", action)
        goal = UserGoal.new(user_id=user_id, goal_text=goal_text, priority=priority or 3)
        _set_if_given(
            goal,
            description=description,
            project_id=project_id,
            status=goal_status,
            steps=parsed_steps,
            completion_target_date=target_date,
            blockers=blockers,
            related_todos=related_todos,
        )
        if goal.status == GoalStatus.completed:
            goal.completion_date = goal.created_at
        created = repo.create(goal)
        logger.info("goal_created", extra={"goal_id": created.id, "user_id": user_id})
        return {"status": "created", "goal": to_dict(created)}

    if action == "list":
        resolved_limit = _resolve_limit(limit)
        if goal_status is not None:
            records = repo.find_by_status(user_id, goal_status)
        elif project_id is not None:
            records = repo.find_by_project(user_id, project_id)
        else:
            records = repo.find_by_user(user_id)
        return _list_payload("goals", records, user_id, resolved_limit)

    _require(goal_id, "goal_id", action)
    existing = _load_owned(repo, goal_id, user_id)

    if action == "read":
        return {"status": "found", "goal": to_dict(existing)}

    if action == "update":
        if goal_text is not None:
            _validate_required_text(goal_text, "goal_text", MAX_TEXT_LENGTH)
        _set_if_given(
            existing,
            goal_text=goal_text,
            description=description,
            project_id=project_id,
            priority=priority,
            steps=parsed_steps,
            completion_target_date=target_date,
            blockers=blockers,
            related_todos=related_todos,
        )
        if goal_status is not None and goal_status != existing.status:
            existing.status = goal_status
            if goal_status == GoalStatus.completed:
                existing.completion_date = utcnow()
        updated = repo.update(existing)
        return {"status": "updated", "goal": to_dict(updated)}

    if action == "delete":
        deleted = repo.delete(goal_id)
        return {"status": "deleted" if deleted else "not_found", "id": goal_id}

    # update_status
    if goal_status is None:
        raise ValidationIssue("status is required for update_status", field="status", error_type="required")
    return {"status": "updated", "goal": to_dict(repo.update_status(goal_id, goal_status))}


# =============================================================================
# Preferences
# =============================================================================

@service_tool
def manage_user_preference(
    action: str,
    user_id: str,
    preference_id: Optional[str] = None,
    preference_name: Optional[str] = None,
    preference_value: Optional[str] = None,
    preference_type: Optional[str] = None,
    scope: Optional[str] = None,
    applies_to_automation: Optional[bool] = None,
    rationale: Optional[str] = None,
    priority: Optional[int] = None,
    tags: Optional[list[str]] = None,
    limit: Optional[int] = None,
    context: Optional[RequestContext] = None,
) -> dict:
    """
    Manage preferences used for automation and code generation.

    Actions: create, read, update, delete, list, increment_frequency.
    ``list`` with ``applies_to_automation=True`` returns automation
    preferences ordered by observed frequency.
    """
    action = _validate_action(action, PREFERENCE_ACTIONS)
    _validate_required_text(user_id, "user_id", MAX_SHORT_TEXT_LENGTH)
    _validate_optional_text(preference_name, "preference_name", MAX_SHORT_TEXT_LENGTH)
    _validate_optional_text(preference_value, "preference_value", MAX_TEXT_LENGTH)
    _validate_optional_text(rationale, "rationale", MAX_TEXT_LENGTH)
    _validate_scope_arg(scope)
    if priority is not None:
        _validate_priority(priority, "priority")
    if applies_to_automation is not None and not isinstance(applies_to_automation, bool):
        raise ValidationIssue(
            "applies_to_automation must be a boolean",
            field="applies_to_automation",
            error_type="invalid_type",
        )
    pref_type = PreferenceType.parse(preference_type, field="preference_type") if preference_type else None
    tags = _validate_list_arg(tags, "tags")

    repos = _repositories(context)
    repo = repos.preferences

    if action == "create":
        _require(preference_name, "preference_name", action)
        _require(preference_value, "preference_value", action)
        preference = UserPreference.new(
            user_id=user_id,
            preference_name=preference_name,
            preference_value=preference_value,
            preference_type=pref_type or PreferenceType.other,
            scope=decode_scope(scope),
        )
        _set_if_given(
            preference,
            applies_to_automation=applies_to_automation,
            rationale=rationale,
            priority=priority,
            tags=tags,
        )
        created = repo.create(preference)
        logger.info("preference_created", extra={"preference_id": created.id, "user_id": user_id})
        return {"status": "created", "preference": to_dict(created)}

    if action == "list":
        resolved_limit = _resolve_limit(limit)
        if applies_to_automation:
            records = repo.find_automation_applicable(user_id)
        elif scope is not None:
            records = repo.find_by_scope(user_id, scope)
        elif pref_type is not None:
            records = repo.find_by_type(user_id, pref_type)
        else:
            records = repo.find_by_user(user_id)
        return _list_payload("preferences", records, user_id, resolved_limit)

    _require(preference_id, "preference_id", action)
    existing = _load_owned(repo, preference_id, user_id)

    if action == "read":
        return {"status": "found", "preference": to_dict(existing)}

    if action == "update":
        _set_if_given(
            existing,
            preference_name=preference_name,
            preference_value=preference_value,
            preference_type=pref_type,
            scope=decode_scope(scope) if scope is not None else None,
            applies_to_automation=applies_to_automation,
            rationale=rationale,
            priority=priority,
            tags=tags,
        )
        updated = repo.update(existing)
        return {"status": "updated", "preference": to_dict(updated)}

    if action == "delete":
        deleted = repo.delete(preference_id)
        return {"status": "deleted" if deleted else "not_found", "id": preference_id}

    # increment_frequency
    return {"status": "updated", "preference": to_dict(repo.increment_frequency(preference_id))}


# =============================================================================
# Known issues
# =============================================================================

@service_tool
def manage_known_issue(
    action: str,
    user_id: str,
    issue_id: Optional[str] = None,
    issue_description: Optional[str] = None,
    severity: Optional[str] = None,
    issue_category: Optional[str] = None,
    symptoms: Optional[list[str]] = None,
    root_cause: Optional[str] = None,
    workaround: Optional[str] = None,
    permanent_solution: Optional[str] = None,
    affected_components: Optional[list[str]] = None,
    resolution_status: Optional[str] = None,
    prevention_notes: Optional[str] = None,
    project_contexts: Optional[list[str]] = None,
    component: Optional[str] = None,
    limit: Optional[int] = None,
    context: Optional[RequestContext] = None,
) -> dict:
    """
    Track known issues, their workarounds and resolutions.

    Actions: create, read, update, delete, list, resolve. ``list`` filters
    by resolution_status (most severe first), severity, issue_category or
    component. ``resolve`` defaults to ``fixed``.
    """
    action = _validate_action(action, ISSUE_ACTIONS)
    _validate_required_text(user_id, "user_id", MAX_SHORT_TEXT_LENGTH)
    for field_name, value in (
        ("root_cause", root_cause),
        ("workaround", workaround),
        ("permanent_solution", permanent_solution),
        ("prevention_notes", prevention_notes),
    ):
        _validate_optional_text(value, field_name, MAX_TEXT_LENGTH)
    _validate_optional_text(component, "component", MAX_LIST_ITEM_LENGTH)
    issue_severity = IssueSeverity.parse(severity, field="severity") if severity else None
    category = IssueCategory.parse(issue_category, field="issue_category") if issue_category else None
    res_status = (
        ResolutionStatus.parse(resolution_status, field="resolution_status") if resolution_status else None
    )
    symptoms = _validate_list_arg(symptoms, "symptoms")
    affected_components = _validate_list_arg(affected_components, "affected_components")
    project_contexts = _validate_list_arg(project_contexts, "project_contexts")

    repos = _repositories(context)
    repo = repos.issues

    if action == "create":
        _require(issue_description, "issue_description", action)
        issue = KnownIssue.new(
            user_id=user_id,
            issue_description=issue_description,
            severity=issue_severity or IssueSeverity.medium,
            issue_category=category or IssueCategory.other,
        )
        _set_if_given(
            issue,
            symptoms=symptoms,
            root_cause=root_cause,
            workaround=workaround,
            permanent_solution=permanent_solution,
            affected_components=affected_components,
            resolution_status=res_status,
            prevention_notes=prevention_notes,
            project_contexts=project_contexts,
        )
        created = repo.create(issue)
        logger.info("known_issue_created", extra={"issue_id": created.id, "user_id": user_id})
        return {"status": "created", "issue": to_dict(created)}

    if action == "list":
        resolved_limit = _resolve_limit(limit)
        if res_status is not None:
            records = repo.find_by_status(user_id, res_status)
        elif issue_severity is not None:
            records = repo.find_by_severity(user_id, issue_severity)
        elif category is not None:
            records = repo.find_by_category(user_id, category)
        elif component is not None:
            records = repo.find_by_component(user_id, component)
        else:
            records = repo.find_by_user(user_id)
        return _list_payload("issues", records, user_id, resolved_limit)

    _require(issue_id, "issue_id", action)
    existing = _load_owned(repo, issue_id, user_id)

    if action == "read":
        return {"status": "found", "issue": to_dict(existing)}

    if action == "update":
        if issue_description is not None:
            _validate_required_text(issue_description, "issue_description", MAX_TEXT_LENGTH)
        _set_if_given(
            existing,
            issue_description=issue_description,
            severity=issue_severity,
            issue_category=category,
            symptoms=symptoms,
            root_cause=root_cause,
            workaround=workaround,
            permanent_solution=permanent_solution,
            affected_components=affected_components,
            prevention_notes=prevention_notes,
            project_contexts=project_contexts,
        )
        if res_status is not None and res_status != existing.resolution_status:
            existing.resolution_status = res_status
            existing.resolution_date = utcnow()
        updated = repo.update(existing)
        return {"status": "updated", "issue": to_dict(updated)}

    if action == "delete":
        deleted = repo.delete(issue_id)
        return {"status": "deleted" if deleted else "not_found", "id": issue_id}

    # resolve
    resolved = repo.mark_resolved(issue_id, res_status or ResolutionStatus.fixed)
    return {"status": "updated", "issue": to_dict(resolved)}


# =============================================================================
# Contextual todos
# =============================================================================

@service_tool
def manage_contextual_todo(
    action: str,
    user_id: str,
    todo_id: Optional[str] = None,
    task_description: Optional[str] = None,
    context_type: Optional[str] = None,
    related_entity_id: Optional[str] = None,
    related_entity_type: Optional[str] = None,
    project_id: Optional[str] = None,
    assigned_to: Optional[str] = None,
    due_date: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[int] = None,
    created_from_conversation_date: Optional[str] = None,
    limit: Optional[int] = None,
    context: Optional[RequestContext] = None,
) -> dict:
    """
    Create and manage todos linked to decisions, goals, issues or
    preferences.

    Actions: create, read, update, delete, list, update_status. ``list``
    filters by status, project_id or related_entity_id.
    """
    action = _validate_action(action, TODO_ACTIONS)
    _validate_required_text(user_id, "user_id", MAX_SHORT_TEXT_LENGTH)
    _validate_optional_text(related_entity_id, "related_entity_id", MAX_SHORT_TEXT_LENGTH)
    _validate_optional_text(project_id, "project_id", MAX_SHORT_TEXT_LENGTH)
    _validate_optional_text(assigned_to, "assigned_to", MAX_SHORT_TEXT_LENGTH)
    if priority is not None:
        _validate_priority(priority, "priority")
    todo_context = TodoContextType.parse(context_type, field="context_type") if context_type else None
    entity_type = EntityType.parse(related_entity_type, field="related_entity_type") if related_entity_type else None
    todo_status = TodoStatus.parse(status, field="status") if status else None
    due = _parse_datetime_arg(due_date, "due_date")
    conversation_date = _parse_datetime_arg(created_from_conversation_date, "created_from_conversation_date")
    if related_entity_id and entity_type is None and action == "create":
        raise ValidationIssue(
            "related_entity_type is required with related_entity_id",
            field="related_entity_type",
            error_type="required",
        )

    repos = _repositories(context)
    repo = repos.todos

    if action == "create":
        _require(task_description, "task_description", action)
        todo = ContextualTodo.new(
            user_id=user_id,
            task_description=task_description,
            context_type=todo_context or TodoContextType.other,
        )
        if related_entity_id:
            todo = todo.linked_to(entity_type, related_entity_id)
        _set_if_given(
            todo,
            project_id=project_id,
            assigned_to=assigned_to,
            due_date=due,
            status=todo_status,
            priority=priority,
            created_from_conversation_date=conversation_date,
        )
        if todo.status == TodoStatus.completed:
            todo.completion_date = todo.created_at
        created = repo.create(todo)
        logger.info("todo_created", extra={"todo_id": created.id, "user_id": user_id})
        return {"status": "created", "todo": to_dict(created)}

    if action == "list":
        resolved_limit = _resolve_limit(limit)
        if todo_status is not None:
            records = repo.find_by_status(user_id, todo_status)
        elif project_id is not None:
            records = repo.find_by_project(user_id, project_id)
        elif related_entity_id is not None:
            records = repo.find_by_entity(user_id, related_entity_id)
        else:
            records = repo.find_by_user(user_id)
        return _list_payload("todos", records, user_id, resolved_limit)

    _require(todo_id, "todo_id", action)
    existing = _load_owned(repo, todo_id, user_id)

    if action == "read":
        return {"status": "found", "todo": to_dict(existing)}

    if action == "update":
        if task_description is not None:
            _validate_required_text(task_description, "task_description", MAX_TEXT_LENGTH)
        _set_if_given(
            existing,
            task_description=task_description,
            context_type=todo_context,
            related_entity_id=related_entity_id,
            related_entity_type=entity_type,
            project_id=project_id,
            assigned_to=assigned_to,
            due_date=due,
            priority=priority,
            created_from_conversation_date=conversation_date,
        )
        if todo_status is not None and todo_status != existing.status:
            existing.status = todo_status
            if todo_status == TodoStatus.completed:
                existing.completion_date = utcnow()
        updated = repo.update(existing)
        return {"status": "updated", "todo": to_dict(updated)}

    if action == "delete":
        deleted = repo.delete(todo_id)
        return {"status": "deleted" if deleted else "not_found", "id": todo_id}

    # update_status
    if todo_status is None:
        raise ValidationIssue("status is required for update_status", field="status", error_type="required")
    return {"status": "updated", "todo": to_dict(repo.update_status(todo_id, todo_status))}


# =============================================================================
# Query
# =============================================================================

def _normalize_filter(filter: Optional[dict]) -> dict:
    if filter is None:
        return {}
    if not isinstance(filter, dict):
        raise ValidationIssue("filter must be an object", field="filter", error_type="invalid_type")
    unknown = sorted(set(filter) - set(FILTER_KEYS))
    if unknown:
        raise ValidationIssue(
            f"unsupported filter keys: {', '.join(unknown)}",
            field="filter",
            error_type="invalid_choice",
        )
    return {key: value for key, value in filter.items() if value is not None}


def _keep(records: Iterable, predicate) -> list:
    return [record for record in records if predicate(record)]


def _query_decisions(repos, user_id: str, criteria: dict) -> list:
    repo = repos.decisions
    if "status" in criteria:
        status = EntityStatus.parse(criteria["status"], field="filter.status")
        records = repo.find_by_status(user_id, status)
    else:
        records = repo.find_by_user(user_id)
    if "category" in criteria:
        category = DecisionCategory.parse(criteria["category"], field="filter.category")
        records = _keep(records, lambda d: d.decision_category == category)
    if "scope" in criteria:
        scope = coerce_scope(criteria["scope"])
        records = _keep(records, lambda d: d.scope == scope)
    if "project_id" in criteria:
        project_id = criteria["project_id"]
        records = _keep(
            records,
            lambda d: d.related_project_id == project_id or d.scope.project_id == project_id,
        )
    return records


def _query_goals(repos, user_id: str, criteria: dict) -> list:
    repo = repos.goals
    if "status" in criteria:
        records = repo.find_by_status(user_id, GoalStatus.parse(criteria["status"], field="filter.status"))
    else:
        records = repo.find_by_user(user_id)
    if "project_id" in criteria:
        records = _keep(records, lambda g: g.project_id == criteria["project_id"])
    return records


def _query_preferences(repos, user_id: str, criteria: dict) -> list:
    repo = repos.preferences
    if criteria.get("applies_to_automation") is True:
        records = repo.find_automation_applicable(user_id)
    else:
        records = repo.find_by_user(user_id)
        if criteria.get("applies_to_automation") is False:
            records = _keep(records, lambda p: not p.applies_to_automation)
    if "preference_type" in criteria:
        pref_type = PreferenceType.parse(criteria["preference_type"], field="filter.preference_type")
        records = _keep(records, lambda p: p.preference_type == pref_type)
    if "scope" in criteria:
        scope = coerce_scope(criteria["scope"])
        records = _keep(records, lambda p: p.scope == scope)
    return records


def _query_issues(repos, user_id: str, criteria: dict) -> list:
    repo = repos.issues
    if "status" in criteria:
        status = ResolutionStatus.parse(criteria["status"], field="filter.status")
        records = repo.find_by_status(user_id, status)
    else:
        records = repo.find_by_user(user_id)
    if "severity" in criteria:
        severity = IssueSeverity.parse(criteria["severity"], field="filter.severity")
        records = _keep(records, lambda i: i.severity == severity)
    if "category" in criteria:
        category = IssueCategory.parse(criteria["category"], field="filter.category")
        records = _keep(records, lambda i: i.issue_category == category)
    if "component" in criteria:
        records = _keep(records, lambda i: criteria["component"] in i.affected_components)
    if "project_id" in criteria:
        records = _keep(records, lambda i: criteria["project_id"] in i.project_contexts)
    return records


def _query_todos(repos, user_id: str, criteria: dict) -> list:
    repo = repos.todos
    if "status" in criteria:
        records = repo.find_by_status(user_id, TodoStatus.parse(criteria["status"], field="filter.status"))
    else:
        records = repo.find_by_user(user_id)
    if "project_id" in criteria:
        records = _keep(records, lambda t: t.project_id == criteria["project_id"])
    return records


_QUERY_HANDLERS = {
    "decisions": _query_decisions,
    "goals": _query_goals,
    "preferences": _query_preferences,
    "issues": _query_issues,
    "todos": _query_todos,
}


@service_tool
def query_user_context(
    user_id: str,
    context_type: str = "all",
    filter: Optional[dict] = None,
    limit: Optional[int] = None,
    context: Optional[RequestContext] = None,
) -> dict:
    """
    Query user context for AI-assisted code generation and analysis.

    Filter keys apply to the kinds that carry the field and are ignored by
    the others: status, category, severity, scope, project_id,
    preference_type, component, applies_to_automation.
    """
    _validate_required_text(user_id, "user_id", MAX_SHORT_TEXT_LENGTH)
    _validate_choice(context_type, "context_type", CONTEXT_TYPES)
    criteria = _normalize_filter(filter)
    if "scope" in criteria:
        _validate_scope_arg(criteria["scope"])
    resolved_limit = _resolve_limit(limit)

    kinds = CONTEXT_KINDS if context_type == "all" else (context_type,)
    repos = _repositories(context)

    payload: dict[str, Any] = {
        "status": "ok",
        "user_id": user_id,
        "context_type": context_type,
        "filter": criteria,
    }
    results = {}
    for kind in kinds:
        records = _QUERY_HANDLERS[kind](repos, user_id, criteria)
        total = len(records)
        payload[kind] = [to_dict(record) for record in records[:resolved_limit]]
        results[f"{kind}_count"] = total
    payload["results"] = results
    return payload


# =============================================================================
# Export
# =============================================================================

def _collect_all(repos, user_id: str, kinds: Sequence[str]) -> dict:
    finders = {
        "decisions": repos.decisions.find_by_user,
        "goals": repos.goals.find_by_user,
        "preferences": repos.preferences.find_by_user,
        "issues": repos.issues.find_by_user,
        "todos": repos.todos.find_by_user,
    }
    return {kind: finders[kind](user_id) for kind in kinds}


def _md_line(text: str) -> str:
    return " ".join(str(text).split())


def _render_markdown(user_id: str, exported_at: str, records: dict) -> str:
    lines = [f"# User Context: {user_id}", "", f"_Exported {exported_at}_", ""]

    if "decisions" in records:
        lines += ["## Decisions", ""]
        for d in records["decisions"]:
            lines.append(
                f"- **{_md_line(d.decision_text)}** "
                f"[{d.decision_category.value}, {encode_scope(d.scope)}, {d.status.value}] "
                f"confidence {d.confidence_score:.2f}, applied {d.applied_count}x"
            )
            if d.reason:
                lines.append(f"  - Reason: {_md_line(d.reason)}")
        lines.append("")

    if "goals" in records:
        lines += ["## Goals", ""]
        for g in records["goals"]:
            lines.append(
                f"- **{_md_line(g.goal_text)}** [{g.status.value}, priority {g.priority}] "
                f"{g.completion_percentage:.0f}% complete"
            )
            for step in g.steps:
                mark = "x" if step.status == GoalStatus.completed else " "
                lines.append(f"  - [{mark}] {step.step_number}. {_md_line(step.description)}")
            for blocker in g.blockers:
                lines.append(f"  - Blocker: {_md_line(blocker)}")
        lines.append("")

    if "preferences" in records:
        lines += ["## Preferences", ""]
        for p in records["preferences"]:
            automation = "automation" if p.applies_to_automation else "manual"
            lines.append(
                f"- **{_md_line(p.preference_name)}**: {_md_line(p.preference_value)} "
                f"[{p.preference_type.value}, {encode_scope(p.scope)}, {automation}] "
                f"seen {p.frequency_observed}x"
            )
        lines.append("")

    if "issues" in records:
        lines += ["## Known Issues", ""]
        for i in records["issues"]:
            lines.append(
                f"- **{_md_line(i.issue_description)}** "
                f"[{i.severity.value}, {i.issue_category.value}, {i.resolution_status.value}]"
            )
            if i.workaround:
                lines.append(f"  - Workaround: {_md_line(i.workaround)}")
            if i.affected_components:
                lines.append(f"  - Components: {', '.join(i.affected_components)}")
        lines.append("")

    if "todos" in records:
        lines += ["## Todos", ""]
        for t in records["todos"]:
            mark = "x" if t.status == TodoStatus.completed else " "
            due = f", due {t.due_date.date().isoformat()}" if t.due_date else ""
            lines.append(
                f"- [{mark}] {_md_line(t.task_description)} "
                f"[{t.context_type.value}, priority {t.priority}{due}]"
            )
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


@service_tool
def export_user_context(
    user_id: str,
    format: str = "json",
    include: Optional[list[str]] = None,
    context: Optional[RequestContext] = None,
) -> dict:
    """
    Export user context for backup or transfer.

    ``json`` returns the records under ``document``; ``markdown`` returns a
    rendered summary under ``content``.
    """
    _validate_required_text(user_id, "user_id", MAX_SHORT_TEXT_LENGTH)
    _validate_choice(format, "format", EXPORT_FORMATS)
    if include is None:
        kinds: Sequence[str] = CONTEXT_KINDS
    else:
        if not isinstance(include, list) or not include:
            raise ValidationIssue("include must be a non-empty list", field="include", error_type="invalid_type")
        for kind in include:
            _validate_choice(kind, "include", CONTEXT_KINDS)
        kinds = [kind for kind in CONTEXT_KINDS if kind in include]

    repos = _repositories(context)
    records = _collect_all(repos, user_id, kinds)
    exported_at = utcnow().isoformat()
    counts = {kind: len(items) for kind, items in records.items()}

    payload = {
        "status": "ok",
        "user_id": user_id,
        "format": format,
        "exported_at": exported_at,
        "counts": counts,
    }
    if format == "markdown":
        content = _render_markdown(user_id, exported_at, records)
        payload["content"] = content
        payload["size_bytes"] = len(content.encode("utf-8"))
    else:
        document = {kind: [to_dict(item) for item in items] for kind, items in records.items()}
        payload["document"] = document
        payload["size_bytes"] = len(json.dumps(document).encode("utf-8"))
    logger.info(
        "user_context_exported",
        extra={"user_id": user_id, "format": format, "size_bytes": payload["size_bytes"]},
    )
    return payload


__all__ = [
    "manage_user_decision",
    "manage_user_goal",
    "manage_user_preference",
    "manage_known_issue",
    "manage_contextual_todo",
    "query_user_context",
    "export_user_context",
]
