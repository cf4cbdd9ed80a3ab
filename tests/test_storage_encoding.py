import logging
import os

os.environ.setdefault("CONTEXTGATE_DB_BACKEND", "sqlite")

from datetime import datetime, timedelta, timezone

import pytest

from contextgate.codec import (
    decode_list,
    decode_required_timestamp,
    decode_timestamp,
    encode_timestamp,
)
from contextgate.domain import (
    DecisionCategory,
    EntityStatus,
    IssueCategory,
    IssueSeverity,
    KnownIssue,
    UserDecision,
)
from contextgate.errors import EncodingFailure
from contextgate.models import KnownIssueRecord, UserDecisionRecord


def _stored_decision(decision_repo):
    return decision_repo.create(UserDecision.new("u1", "Use Postgres", DecisionCategory.tool_choice))


def test_timestamps_are_utc_with_microseconds():
    local = datetime(2025, 3, 1, 10, 0, 0, 5, tzinfo=timezone(timedelta(hours=2)))
    encoded = encode_timestamp(local)
    assert encoded == "2025-03-01T08:00:00.000005+00:00"
    assert decode_required_timestamp(encoded, "created_at") == local
    assert encode_timestamp(None) is None


def test_timestamp_text_order_is_chronological():
    earlier = encode_timestamp(datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc))
    later = encode_timestamp(datetime(2025, 1, 1, 0, 0, 0, 1, tzinfo=timezone.utc))
    assert earlier < later


def test_optional_timestamp_decode_is_lenient(caplog):
    with caplog.at_level(logging.WARNING, logger="contextgate"):
        assert decode_timestamp("yesterday-ish", "last_applied") is None
    assert "timestamp_decode_fallback" in caplog.text
    assert decode_timestamp(None, "last_applied") is None
    assert decode_timestamp("2025-01-01T00:00:00Z", "x") == datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_required_timestamp_decode_is_strict():
    with pytest.raises(EncodingFailure) as excinfo:
        decode_required_timestamp("not a date", "created_at")
    assert excinfo.value.column == "created_at"
    with pytest.raises(EncodingFailure):
        decode_required_timestamp(None, "created_at")


def test_corrupt_created_at_surfaces_encoding_failure(decision_repo, db_session):
    decision = _stored_decision(decision_repo)
    row = db_session.get(UserDecisionRecord, decision.id)
    row.created_at = "garbage"
    db_session.commit()

    with pytest.raises(EncodingFailure):
        decision_repo.find_by_id(decision.id)
    with pytest.raises(EncodingFailure):
        decision_repo.find_by_user("u1")


def test_corrupt_list_json_decodes_to_empty(decision_repo, db_session, caplog):
    decision = _stored_decision(decision_repo)
    row = db_session.get(UserDecisionRecord, decision.id)
    row.referenced_items = "[not json"
    db_session.commit()

    with caplog.at_level(logging.WARNING, logger="contextgate"):
        fetched = decision_repo.find_by_id(decision.id)
    assert fetched.referenced_items == []
    assert "list_decode_fallback" in caplog.text


def test_non_list_json_decodes_to_empty():
    assert decode_list('{"a": 1}', "tags") == []
    assert decode_list("", "tags") == []
    assert decode_list('["a", "a"]', "tags") == ["a", "a"]


def test_unknown_enum_code_falls_back_with_warning(decision_repo, issue_repo, db_session, caplog):
    decision = _stored_decision(decision_repo)
    issue = issue_repo.create(KnownIssue.new("u1", "Slow build", IssueSeverity.low, IssueCategory.workflow))
    decision_row = db_session.get(UserDecisionRecord, decision.id)
    decision_row.decision_category = "vibes"
    decision_row.status = "retired"
    issue_row = db_session.get(KnownIssueRecord, issue.id)
    issue_row.severity = "catastrophic"
    db_session.commit()

    with caplog.at_level(logging.WARNING, logger="contextgate"):
        fetched = decision_repo.find_by_id(decision.id)
        fetched_issue = issue_repo.find_by_id(issue.id)

    assert fetched.decision_category == DecisionCategory.other
    assert fetched.status == EntityStatus.active
    assert fetched_issue.severity == IssueSeverity.critical
    assert "enum_decode_fallback" in caplog.text


def test_unknown_severity_sorts_with_critical(issue_repo, db_session):
    medium = issue_repo.create(KnownIssue.new("u1", "medium", IssueSeverity.medium, IssueCategory.data))
    odd = issue_repo.create(KnownIssue.new("u1", "odd", IssueSeverity.low, IssueCategory.data))
    db_session.get(KnownIssueRecord, odd.id).severity = "catastrophic"
    db_session.commit()

    found = issue_repo.find_by_status("u1", "unresolved")
    assert [i.id for i in found] == [odd.id, medium.id]
