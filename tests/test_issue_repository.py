import os

os.environ.setdefault("CONTEXTGATE_DB_BACKEND", "sqlite")

import pytest

from conftest import at
from contextgate.domain import IssueCategory, IssueSeverity, KnownIssue, ResolutionStatus
from contextgate.errors import NotFound


def _issue(text="Deploy hangs", severity=IssueSeverity.medium, user_id="u1", minutes=0, **fields):
    issue = KnownIssue.new(user_id, text, severity, fields.pop("issue_category", IssueCategory.deployment))
    issue.learned_date = at(minutes)
    issue.created_at = at(minutes)
    for key, value in fields.items():
        setattr(issue, key, value)
    return issue


def test_issue_round_trip(issue_repo):
    issue = _issue(
        symptoms=["timeout", "timeout", "502"],
        affected_components=["gateway", "worker"],
        project_contexts=["p1"],
    ).with_workaround("Restart the worker")
    issue.root_cause = "Connection pool exhaustion"

    issue_repo.create(issue)
    assert issue_repo.find_by_id(issue.id) == issue


def test_find_by_user_newest_learned_first(issue_repo):
    old = issue_repo.create(_issue(text="old", minutes=0))
    new = issue_repo.create(_issue(text="new", minutes=10))
    assert [i.id for i in issue_repo.find_by_user("u1")] == [new.id, old.id]


def test_find_by_status_orders_by_severity_then_newest(issue_repo):
    low = issue_repo.create(_issue(text="low", severity=IssueSeverity.low, minutes=9))
    critical = issue_repo.create(_issue(text="critical", severity=IssueSeverity.critical, minutes=1))
    medium_old = issue_repo.create(_issue(text="medium old", severity=IssueSeverity.medium, minutes=2))
    medium_new = issue_repo.create(_issue(text="medium new", severity=IssueSeverity.medium, minutes=5))
    high = issue_repo.create(_issue(text="high", severity=IssueSeverity.high, minutes=3))
    issue_repo.create(_issue(text="fixed", resolution_status=ResolutionStatus.fixed))

    found = issue_repo.find_by_status("u1", ResolutionStatus.unresolved)
    assert [i.id for i in found] == [critical.id, high.id, medium_new.id, medium_old.id, low.id]


def test_find_by_severity_and_category(issue_repo):
    data = issue_repo.create(_issue(text="data", issue_category=IssueCategory.data, severity=IssueSeverity.high))
    issue_repo.create(_issue(text="deploy", minutes=1))

    assert [i.id for i in issue_repo.find_by_severity("u1", "high")] == [data.id]
    assert [i.id for i in issue_repo.find_by_category("u1", IssueCategory.data)] == [data.id]


def test_find_by_component_matches_whole_items(issue_repo):
    gateway = issue_repo.create(_issue(text="gw", affected_components=["gateway", "auth"]))
    issue_repo.create(_issue(text="gw2", affected_components=["gateway-v2"], minutes=1))
    issue_repo.create(_issue(text="foreign", user_id="u2", affected_components=["gateway"]))

    assert [i.id for i in issue_repo.find_by_component("u1", "gateway")] == [gateway.id]
    assert issue_repo.find_by_component("u1", "missing") == []


def test_mark_resolved_sets_resolution_date(issue_repo, clock):
    issue = issue_repo.create(_issue())
    clock.advance(300)

    resolved = issue_repo.mark_resolved(issue.id, "workaround_available")
    fetched = issue_repo.find_by_id(issue.id)
    assert resolved.resolution_status == ResolutionStatus.workaround_available
    assert fetched.resolution_status == ResolutionStatus.workaround_available
    assert fetched.resolution_date == clock.now


def test_update_replaces_fields_and_returns_stored_issue(issue_repo, clock):
    issue = issue_repo.create(_issue())
    issue.severity = IssueSeverity.high
    issue.symptoms = ["timeout"]
    clock.advance(30)

    returned = issue_repo.update(issue)
    fetched = issue_repo.find_by_id(issue.id)
    assert returned == fetched
    assert fetched.severity == IssueSeverity.high
    assert fetched.updated_at == clock.now


def test_missing_issue_ids(issue_repo):
    assert issue_repo.delete("missing") is False
    with pytest.raises(NotFound):
        issue_repo.update(_issue())
    with pytest.raises(NotFound):
        issue_repo.mark_resolved("missing", ResolutionStatus.fixed)
