"""
Request-scoped context objects for context services.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import contextvars

import contextgate.config as config


@dataclass(frozen=True)
class AuthContext:
    user_id: Optional[str] = None
    actor: Optional[str] = None


@dataclass(frozen=True)
class RequestContext:
    auth: AuthContext
    request_id: Optional[str] = None
    source: Optional[str] = None


_CURRENT_REQUEST_CONTEXT: contextvars.ContextVar[Optional["RequestContext"]] = contextvars.ContextVar(
    "contextgate_request_context",
    default=None,
)


def get_current_request_context() -> Optional["RequestContext"]:
    return _CURRENT_REQUEST_CONTEXT.get()


def set_current_request_context(context: Optional["RequestContext"]) -> contextvars.Token:
    return _CURRENT_REQUEST_CONTEXT.set(context)


def reset_current_request_context(token: contextvars.Token) -> None:
    _CURRENT_REQUEST_CONTEXT.reset(token)


def resolve_actor(context: Optional["RequestContext"] = None) -> str:
    """Actor recorded as ``changed_by`` on audit rows."""
    if context is None:
        context = get_current_request_context()
    if context is None or context.auth is None:
        return config.DEFAULT_ACTOR
    return context.auth.actor or context.auth.user_id or config.DEFAULT_ACTOR


__all__ = [
    "AuthContext",
    "RequestContext",
    "get_current_request_context",
    "set_current_request_context",
    "reset_current_request_context",
    "resolve_actor",
]
