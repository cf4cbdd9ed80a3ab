import os

os.environ.setdefault("CONTEXTGATE_DB_BACKEND", "sqlite")

import pytest

from conftest import at
from contextgate.domain import PreferenceType, UserPreference
from contextgate.errors import ConflictError, NotFound
from contextgate.scope import GLOBAL, ContextScope


def _preference(name="formatter", value="black", user_id="u1", minutes=0, scope=GLOBAL, **fields):
    preference = UserPreference.new(user_id, name, value, fields.pop("preference_type", PreferenceType.tool), scope=scope)
    preference.created_at = at(minutes)
    for key, field_value in fields.items():
        setattr(preference, key, field_value)
    return preference


def test_preference_round_trip(preference_repo):
    preference = _preference(scope=ContextScope.workflow("ci"), tags=["python", "style", "python"])
    preference = preference.with_rationale("Consistent diffs").with_priority(2)

    preference_repo.create(preference)
    assert preference_repo.find_by_id(preference.id) == preference


def test_find_by_user_orders_by_priority_then_oldest(preference_repo):
    later = preference_repo.create(_preference(name="a", priority=2, minutes=5))
    earlier = preference_repo.create(_preference(name="b", priority=2, minutes=1))
    urgent = preference_repo.create(_preference(name="c", priority=1, minutes=9))

    assert [p.id for p in preference_repo.find_by_user("u1")] == [urgent.id, earlier.id, later.id]


def test_find_by_scope_and_type(preference_repo):
    ci = preference_repo.create(_preference(name="runner", scope=ContextScope.workflow("ci")))
    framework = preference_repo.create(
        _preference(name="web", value="fastapi", preference_type=PreferenceType.framework, minutes=1)
    )

    assert [p.id for p in preference_repo.find_by_scope("u1", "workflow:ci")] == [ci.id]
    assert [p.id for p in preference_repo.find_by_scope("u1", GLOBAL)] == [framework.id]
    assert [p.id for p in preference_repo.find_by_type("u1", "framework")] == [framework.id]


def test_automation_applicable_ordered_by_frequency(preference_repo):
    rare = preference_repo.create(_preference(name="rare", frequency_observed=1, priority=1))
    common = preference_repo.create(_preference(name="common", frequency_observed=7, priority=5, minutes=1))
    tie_high = preference_repo.create(_preference(name="tie-high", frequency_observed=3, priority=1, minutes=2))
    tie_low = preference_repo.create(_preference(name="tie-low", frequency_observed=3, priority=4, minutes=3))
    preference_repo.create(_preference(name="manual", applies_to_automation=False, frequency_observed=50, minutes=4))

    found = preference_repo.find_automation_applicable("u1")
    assert [p.id for p in found] == [common.id, tie_high.id, tie_low.id, rare.id]


def test_increment_frequency(preference_repo, clock):
    preference = preference_repo.create(_preference())
    clock.advance(45)

    bumped = preference_repo.increment_frequency(preference.id)
    assert bumped.frequency_observed == 2
    fetched = preference_repo.find_by_id(preference.id)
    assert fetched.frequency_observed == 2
    assert fetched.last_referenced == clock.now


def test_same_name_and_scope_conflicts(preference_repo):
    preference_repo.create(_preference(name="indent", value="4 spaces"))
    with pytest.raises(ConflictError):
        preference_repo.create(_preference(name="indent", value="tabs", minutes=1))

    # Different scope or different user is allowed.
    preference_repo.create(_preference(name="indent", value="2 spaces", scope=ContextScope.project("js")))
    preference_repo.create(_preference(name="indent", value="tabs", user_id="u2"))
    assert len(preference_repo.find_by_user("u1")) == 2


def test_update_into_existing_key_conflicts(preference_repo):
    preference_repo.create(_preference(name="indent"))
    other = preference_repo.create(_preference(name="quotes", minutes=1))
    other.preference_name = "indent"
    with pytest.raises(ConflictError):
        preference_repo.update(other)
    assert preference_repo.find_by_id(other.id).preference_name == "quotes"


def test_repeated_increment_frequency_is_monotonic(preference_repo, clock):
    preference = preference_repo.create(_preference())
    for _ in range(4):
        clock.advance(10)
        preference_repo.increment_frequency(preference.id)

    fetched = preference_repo.find_by_id(preference.id)
    assert fetched.frequency_observed == 5
    assert fetched.last_referenced == clock.now
    assert fetched.updated_at == clock.now


def test_missing_preference_ids(preference_repo):
    assert preference_repo.delete("missing") is False
    with pytest.raises(NotFound):
        preference_repo.update(_preference())
    with pytest.raises(NotFound):
        preference_repo.increment_frequency("missing")
