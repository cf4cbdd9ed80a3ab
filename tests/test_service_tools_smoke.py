import os

os.environ.setdefault("CONTEXTGATE_DB_BACKEND", "sqlite")

from contextgate.audit import AuditTrail
from contextgate.context import AuthContext, RequestContext
from contextgate.services import context_service


def test_service_tools_smoke(server_db):
    decision = context_service.manage_user_decision(
        action="create",
        user_id="smoke-user",
        decision_text="Use SQLAlchemy for persistence",
        reason="Shared team knowledge",
        decision_category="tool_choice",
        scope="project_id:contextgate",
        confidence_score=0.9,
        referenced_items=["adr-1"],
    )
    assert decision["status"] == "created"
    decision_id = decision["decision"]["id"]
    assert decision["decision"]["scope"] == "project_id:contextgate"

    applied = context_service.manage_user_decision(
        action="increment_applied", user_id="smoke-user", decision_id=decision_id
    )
    assert applied["decision"]["applied_count"] == 1
    assert applied["decision"]["last_applied"] is not None

    goal = context_service.manage_user_goal(
        action="create",
        user_id="smoke-user",
        goal_text="Release 1.0",
        priority=2,
        steps=["Freeze API", {"description": "Publish", "status": "completed"}],
        completion_target_date="2030-01-01T00:00:00Z",
    )
    assert goal["status"] == "created"
    assert goal["goal"]["completion_percentage"] == 50.0
    goal_id = goal["goal"]["id"]

    completed = context_service.manage_user_goal(
        action="update_status", user_id="smoke-user", goal_id=goal_id, status="completed"
    )
    assert completed["goal"]["status"] == "completed"
    assert completed["goal"]["completion_date"] is not None

    preference = context_service.manage_user_preference(
        action="create",
        user_id="smoke-user",
        preference_name="formatter",
        preference_value="black",
        preference_type="tool",
        tags=["python"],
    )
    assert preference["status"] == "created"
    bumped = context_service.manage_user_preference(
        action="increment_frequency",
        user_id="smoke-user",
        preference_id=preference["preference"]["id"],
    )
    assert bumped["preference"]["frequency_observed"] == 2

    issue = context_service.manage_known_issue(
        action="create",
        user_id="smoke-user",
        issue_description="Migrations hang on sqlite",
        severity="high",
        affected_components=["alembic"],
    )
    assert issue["issue"]["issue_category"] == "other"
    resolved = context_service.manage_known_issue(
        action="resolve", user_id="smoke-user", issue_id=issue["issue"]["id"]
    )
    assert resolved["issue"]["resolution_status"] == "fixed"
    assert resolved["issue"]["resolution_date"] is not None

    todo = context_service.manage_contextual_todo(
        action="create",
        user_id="smoke-user",
        task_description="Document the release",
        context_type="goal_step",
        related_entity_id=goal_id,
        related_entity_type="user_goal",
        due_date="2030-01-01",
    )
    assert todo["status"] == "created"
    linked = context_service.manage_contextual_todo(
        action="list", user_id="smoke-user", related_entity_id=goal_id
    )
    assert linked["count"] == 1
    assert linked["todos"][0]["related_entity_type"] == "user_goal"

    query = context_service.query_user_context(user_id="smoke-user")
    assert query["status"] == "ok"
    assert query["results"] == {
        "decisions_count": 1,
        "goals_count": 1,
        "preferences_count": 1,
        "issues_count": 1,
        "todos_count": 1,
    }

    exported = context_service.export_user_context(user_id="smoke-user", format="json")
    assert exported["counts"]["decisions"] == 1
    assert exported["document"]["goals"][0]["id"] == goal_id

    deleted = context_service.manage_user_decision(
        action="delete", user_id="smoke-user", decision_id=decision_id
    )
    assert deleted == {"status": "deleted", "id": decision_id}


def test_validation_errors_are_payloads(server_db):
    bad_action = context_service.manage_user_decision(action="explode", user_id="u1")
    assert bad_action["status"] == "error"
    assert bad_action["error_type"] == "validation_error"
    assert bad_action["field"] == "action"

    missing_text = context_service.manage_user_decision(action="create", user_id="u1")
    assert missing_text["field"] == "decision_text"

    bad_category = context_service.manage_user_decision(
        action="create", user_id="u1", decision_text="x", decision_category="vibes"
    )
    assert bad_category["status"] == "error"
    assert bad_category["field"] == "decision_category"

    bad_confidence = context_service.manage_user_decision(
        action="create", user_id="u1", decision_text="x", confidence_score=3.0
    )
    assert bad_confidence["field"] == "confidence_score"

    text_confidence = context_service.manage_user_decision(
        action="create", user_id="u1", decision_text="x", confidence_score="very"
    )
    assert text_confidence["status"] == "error"
    assert text_confidence["field"] == "confidence_score"

    bad_priority = context_service.manage_user_goal(action="create", user_id="u1", goal_text="x", priority=9)
    assert bad_priority["field"] == "priority"

    bad_date = context_service.manage_contextual_todo(
        action="create", user_id="u1", task_description="x", due_date="next tuesday"
    )
    assert bad_date["field"] == "due_date"

    unlinked = context_service.manage_contextual_todo(
        action="create", user_id="u1", task_description="x", related_entity_id="goal-1"
    )
    assert unlinked["field"] == "related_entity_type"

    bad_limit = context_service.manage_known_issue(action="list", user_id="u1", limit=0)
    assert bad_limit["field"] == "limit"


def test_missing_and_foreign_records_are_not_found(server_db):
    missing = context_service.manage_user_goal(action="read", user_id="u1", goal_id="missing")
    assert missing["status"] == "not_found"
    assert missing["entity_type"] == "user_goal"
    assert missing["id"] == "missing"

    created = context_service.manage_known_issue(
        action="create", user_id="owner", issue_description="Private issue"
    )
    issue_id = created["issue"]["id"]
    foreign = context_service.manage_known_issue(action="read", user_id="intruder", issue_id=issue_id)
    assert foreign["status"] == "not_found"
    foreign_delete = context_service.manage_known_issue(action="delete", user_id="intruder", issue_id=issue_id)
    assert foreign_delete["status"] == "not_found"
    still_there = context_service.manage_known_issue(action="read", user_id="owner", issue_id=issue_id)
    assert still_there["status"] == "found"


def test_duplicate_preference_is_conflict_payload(server_db):
    first = context_service.manage_user_preference(
        action="create", user_id="u1", preference_name="indent", preference_value="4"
    )
    assert first["status"] == "created"
    second = context_service.manage_user_preference(
        action="create", user_id="u1", preference_name="indent", preference_value="2"
    )
    assert second["status"] == "error"
    assert second["error_type"] == "conflict"


def test_update_keeps_unspecified_fields(server_db):
    created = context_service.manage_user_decision(
        action="create",
        user_id="u1",
        decision_text="Prefer small PRs",
        reason="Easier review",
        decision_category="workflow",
    )
    decision_id = created["decision"]["id"]

    updated = context_service.manage_user_decision(
        action="update", user_id="u1", decision_id=decision_id, confidence_score=0.7
    )
    assert updated["status"] == "updated"
    assert updated["decision"]["reason"] == "Easier review"
    assert updated["decision"]["confidence_score"] == 0.7
    assert updated["decision"]["updated_at"] is not None


def test_request_context_actor_is_audited(server_db):
    context = RequestContext(auth=AuthContext(user_id="u1", actor="assistant"), source="test")
    created = context_service.manage_contextual_todo(
        action="create", user_id="u1", task_description="Audit me", context=context
    )
    entries = AuditTrail(server_db).list_for_entity(created["todo"]["id"])
    assert [entry.changed_by for entry in entries] == ["assistant"]
    assert entries[0].entity_type == "contextual_todo"
