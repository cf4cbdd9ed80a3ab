"""
Applicability scope for decisions and preferences, and its string codec.

Wire format (single string):

    "global"                 -> Global
    "project_id:<id>"        -> Project(<id>), id may be empty
    "workflow:<name>"        -> Workflow(<name>)

Anything else decodes to Global. Storage keeps the scope in two columns
(``scope_kind``, ``scope_value``) so the kind stays queryable; the string
form is what callers and tool payloads exchange.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum as PyEnum
from typing import Optional

PROJECT_PREFIX = "project_id:"
WORKFLOW_PREFIX = "workflow:"
GLOBAL_CODE = "global"


class ScopeKind(str, PyEnum):
    global_ = "global"
    project = "project"
    workflow = "workflow"


@dataclass(frozen=True)
class ContextScope:
    kind: ScopeKind = ScopeKind.global_
    value: str = ""

    @classmethod
    def global_scope(cls) -> "ContextScope":
        return cls(ScopeKind.global_, "")

    @classmethod
    def project(cls, project_id: str) -> "ContextScope":
        return cls(ScopeKind.project, project_id)

    @classmethod
    def workflow(cls, workflow_name: str) -> "ContextScope":
        return cls(ScopeKind.workflow, workflow_name)

    @property
    def scope_type(self) -> str:
        return self.kind.value

    @property
    def is_global(self) -> bool:
        return self.kind == ScopeKind.global_

    @property
    def project_id(self) -> Optional[str]:
        return self.value if self.kind == ScopeKind.project else None

    @property
    def workflow_name(self) -> Optional[str]:
        return self.value if self.kind == ScopeKind.workflow else None

    def __str__(self) -> str:
        return encode_scope(self)


GLOBAL = ContextScope.global_scope()


def encode_scope(scope: ContextScope) -> str:
    if scope.kind == ScopeKind.project:
        return f"{PROJECT_PREFIX}{scope.value}"
    if scope.kind == ScopeKind.workflow:
        return f"{WORKFLOW_PREFIX}{scope.value}"
    return GLOBAL_CODE


def decode_scope(text: Optional[str]) -> ContextScope:
    """Decode the string form. Unrecognized input silently becomes Global."""
    if not isinstance(text, str) or text == GLOBAL_CODE:
        return GLOBAL
    if text.startswith(PROJECT_PREFIX):
        return ContextScope.project(text[len(PROJECT_PREFIX):])
    if text.startswith(WORKFLOW_PREFIX):
        return ContextScope.workflow(text[len(WORKFLOW_PREFIX):])
    return GLOBAL


def coerce_scope(scope) -> ContextScope:
    """Accept either a ContextScope or its encoded string."""
    if isinstance(scope, ContextScope):
        return scope
    return decode_scope(scope)


def scope_to_columns(scope: ContextScope) -> tuple[str, str]:
    if scope.kind == ScopeKind.global_:
        return ScopeKind.global_.value, ""
    return scope.kind.value, scope.value


def scope_from_columns(kind: Optional[str], value: Optional[str]) -> ContextScope:
    if kind == ScopeKind.project.value:
        return ContextScope.project(value or "")
    if kind == ScopeKind.workflow.value:
        return ContextScope.workflow(value or "")
    return GLOBAL


__all__ = [
    "ScopeKind",
    "ContextScope",
    "GLOBAL",
    "encode_scope",
    "decode_scope",
    "coerce_scope",
    "scope_to_columns",
    "scope_from_columns",
]
