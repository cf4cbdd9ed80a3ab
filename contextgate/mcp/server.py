"""
MCP server wiring and tool registration.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from fastmcp import FastMCP

import contextgate.config as config
from contextgate.context import AuthContext, RequestContext, get_current_request_context
from contextgate.db import init_db
from contextgate.services import context_service

READ_ONLY_TOOL_ANNOTATIONS = {"readOnlyHint": True}
DESTRUCTIVE_TOOL_ANNOTATIONS = {"destructiveHint": True}

mcp = FastMCP("ContextGate")

_REGISTERED_TOOLS: list[tuple[Callable[..., dict], tuple[Any, ...], dict[str, Any]]] = []
_TOOL_REGISTRY_LOCK = threading.Lock()


def mcp_tool(*args, **kwargs):
    """Register a tool with FastMCP and keep a local registry for inventory checks."""
    def decorator(fn: Callable[..., dict]):
        with _TOOL_REGISTRY_LOCK:
            _REGISTERED_TOOLS.append((fn, args, kwargs))
        mcp.tool(*args, **kwargs)(fn)
        return fn
    return decorator


def registered_tool_names() -> list[str]:
    with _TOOL_REGISTRY_LOCK:
        return sorted(fn.__name__ for fn, _, _ in _REGISTERED_TOOLS)


def get_current_context() -> RequestContext:
    """Get current request context, or the MCP default if not set."""
    ctx = get_current_request_context()
    if ctx is not None:
        return ctx
    return RequestContext(auth=AuthContext(actor="mcp"), source="mcp")


@mcp_tool(annotations=DESTRUCTIVE_TOOL_ANNOTATIONS)
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
) -> dict:
    """Create, read, update, delete user decisions and track their application."""
    return context_service.manage_user_decision(
        action=action,
        user_id=user_id,
        decision_id=decision_id,
        decision_text=decision_text,
        reason=reason,
        decision_category=decision_category,
        scope=scope,
        related_project_id=related_project_id,
        confidence_score=confidence_score,
        referenced_items=referenced_items,
        status=status,
        limit=limit,
        context=get_current_context(),
    )


@mcp_tool(annotations=DESTRUCTIVE_TOOL_ANNOTATIONS)
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
) -> dict:
    """Create, read, update, delete user goals and track progress."""
    return context_service.manage_user_goal(
        action=action,
        user_id=user_id,
        goal_id=goal_id,
        goal_text=goal_text,
        description=description,
        project_id=project_id,
        status=status,
        priority=priority,
        steps=steps,
        completion_target_date=completion_target_date,
        blockers=blockers,
        related_todos=related_todos,
        limit=limit,
        context=get_current_context(),
    )


@mcp_tool(annotations=DESTRUCTIVE_TOOL_ANNOTATIONS)
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
) -> dict:
    """Manage user preferences for automation and code generation."""
    return context_service.manage_user_preference(
        action=action,
        user_id=user_id,
        preference_id=preference_id,
        preference_name=preference_name,
        preference_value=preference_value,
        preference_type=preference_type,
        scope=scope,
        applies_to_automation=applies_to_automation,
        rationale=rationale,
        priority=priority,
        tags=tags,
        limit=limit,
        context=get_current_context(),
    )


@mcp_tool(annotations=DESTRUCTIVE_TOOL_ANNOTATIONS)
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
) -> dict:
    """Track and manage known issues, workarounds, and resolutions."""
    return context_service.manage_known_issue(
        action=action,
        user_id=user_id,
        issue_id=issue_id,
        issue_description=issue_description,
        severity=severity,
        issue_category=issue_category,
        symptoms=symptoms,
        root_cause=root_cause,
        workaround=workaround,
        permanent_solution=permanent_solution,
        affected_components=affected_components,
        resolution_status=resolution_status,
        prevention_notes=prevention_notes,
        project_contexts=project_contexts,
        component=component,
        limit=limit,
        context=get_current_context(),
    )


@mcp_tool(annotations=DESTRUCTIVE_TOOL_ANNOTATIONS)
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
) -> dict:
    """Create and manage contextual tasks linked to context entities."""
    return context_service.manage_contextual_todo(
        action=action,
        user_id=user_id,
        todo_id=todo_id,
        task_description=task_description,
        context_type=context_type,
        related_entity_id=related_entity_id,
        related_entity_type=related_entity_type,
        project_id=project_id,
        assigned_to=assigned_to,
        due_date=due_date,
        status=status,
        priority=priority,
        created_from_conversation_date=created_from_conversation_date,
        limit=limit,
        context=get_current_context(),
    )


@mcp_tool(annotations=READ_ONLY_TOOL_ANNOTATIONS)
def query_user_context(
    user_id: str,
    context_type: str = "all",
    filter: Optional[dict] = None,
    limit: Optional[int] = None,
) -> dict:
    """Query user context for AI-assisted code generation and analysis."""
    return context_service.query_user_context(
        user_id=user_id,
        context_type=context_type,
        filter=filter,
        limit=limit,
        context=get_current_context(),
    )


@mcp_tool(annotations=READ_ONLY_TOOL_ANNOTATIONS)
def export_user_context(
    user_id: str,
    format: str = "json",
    include: Optional[list[str]] = None,
) -> dict:
    """Export user context for backup or transfer."""
    return context_service.export_user_context(
        user_id=user_id,
        format=format,
        include=include,
        context=get_current_context(),
    )


def main() -> None:
    init_db()
    config.logger.info("tool_inventory", extra={"tools": registered_tool_names()})
    mcp.run()


if __name__ == "__main__":
    main()
