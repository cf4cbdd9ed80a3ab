import os

os.environ.setdefault("CONTEXTGATE_DB_BACKEND", "sqlite")

import pytest

from contextgate.scope import (
    GLOBAL,
    ContextScope,
    ScopeKind,
    coerce_scope,
    decode_scope,
    encode_scope,
    scope_from_columns,
    scope_to_columns,
)


@pytest.mark.parametrize(
    "scope",
    [
        GLOBAL,
        ContextScope.project("proj-1"),
        ContextScope.project(""),
        ContextScope.project("a:b:c"),
        ContextScope.workflow("release"),
        ContextScope.workflow(""),
    ],
)
def test_decode_inverts_encode(scope):
    assert decode_scope(encode_scope(scope)) == scope
    assert scope_from_columns(*scope_to_columns(scope)) == scope


def test_encoded_forms():
    assert encode_scope(GLOBAL) == "global"
    assert encode_scope(ContextScope.project("p1")) == "project_id:p1"
    assert encode_scope(ContextScope.workflow("ci")) == "workflow:ci"
    assert str(ContextScope.workflow("ci")) == "workflow:ci"


@pytest.mark.parametrize("text", ["", "Global", "project:p1", "workflow", "team:core", None, 17])
def test_malformed_scope_decodes_to_global(text):
    assert decode_scope(text) == GLOBAL


def test_scope_accessors():
    project = ContextScope.project("p1")
    assert project.scope_type == "project"
    assert project.project_id == "p1"
    assert project.workflow_name is None
    assert not project.is_global
    assert GLOBAL.is_global
    assert GLOBAL.project_id is None


def test_global_columns_are_normalized():
    assert scope_to_columns(ContextScope(ScopeKind.global_, "ignored")) == ("global", "")
    assert scope_from_columns("unknown", "x") == GLOBAL


def test_coerce_scope_accepts_string_or_scope():
    scope = ContextScope.workflow("deploy")
    assert coerce_scope(scope) is scope
    assert coerce_scope("workflow:deploy") == scope
