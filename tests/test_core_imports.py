import os

os.environ.setdefault("CONTEXTGATE_DB_BACKEND", "sqlite")


def test_core_imports():
    import contextgate.audit  # noqa: F401
    import contextgate.models  # noqa: F401
    import contextgate.repositories  # noqa: F401
    import contextgate.services.context_service  # noqa: F401


def test_mcp_tool_inventory():
    from contextgate.mcp import registered_tool_names

    assert registered_tool_names() == [
        "export_user_context",
        "manage_contextual_todo",
        "manage_known_issue",
        "manage_user_decision",
        "manage_user_goal",
        "manage_user_preference",
        "query_user_context",
    ]


def test_mcp_default_context_actor():
    from contextgate.context import resolve_actor
    from contextgate.mcp import get_current_context

    context = get_current_context()
    assert context.source == "mcp"
    assert resolve_actor(context) == "mcp"


def test_repository_contracts_are_implemented():
    from contextgate import repositories

    pairs = [
        (repositories.SqlUserDecisionRepository, repositories.UserDecisionRepository),
        (repositories.SqlUserGoalRepository, repositories.UserGoalRepository),
        (repositories.SqlUserPreferenceRepository, repositories.UserPreferenceRepository),
        (repositories.SqlKnownIssueRepository, repositories.KnownIssueRepository),
        (repositories.SqlContextualTodoRepository, repositories.ContextualTodoRepository),
    ]
    for concrete, contract in pairs:
        assert issubclass(concrete, contract)
        assert not getattr(concrete, "__abstractmethods__", None)
