import os

os.environ.setdefault("CONTEXTGATE_DB_BACKEND", "sqlite")

import pytest

from conftest import at
from contextgate.domain import GoalStatus, GoalStep, UserGoal
from contextgate.errors import NotFound
from contextgate.models import UserGoalRecord


def _goal(user_id="u1", text="Ship v1", priority=3, minutes=0):
    goal = UserGoal.new(user_id, text, priority=priority)
    goal.created_at = at(minutes)
    return goal


def test_goal_round_trip_with_steps(goal_repo):
    goal = _goal().with_description("First public release").with_project("p1")
    goal.steps = [
        GoalStep(1, "Freeze API", status=GoalStatus.completed),
        GoalStep(2, "Write changelog", due_date=at(60)),
    ]
    goal.blockers = ["waiting on legal", "waiting on legal"]
    goal.related_todos = ["todo-1"]
    goal.completion_target_date = at(600)

    goal_repo.create(goal)
    fetched = goal_repo.find_by_id(goal.id)

    assert fetched == goal
    assert fetched.completion_percentage == 50.0
    assert fetched.blockers == ["waiting on legal", "waiting on legal"]


def test_find_by_user_orders_by_priority_then_newest(goal_repo):
    low_old = goal_repo.create(_goal(text="low old", priority=4, minutes=0))
    high = goal_repo.create(_goal(text="high", priority=1, minutes=1))
    low_new = goal_repo.create(_goal(text="low new", priority=4, minutes=2))

    assert [g.id for g in goal_repo.find_by_user("u1")] == [high.id, low_new.id, low_old.id]


def test_find_by_status_and_project(goal_repo):
    planned = goal_repo.create(_goal(text="planned").with_project("p1"))
    other = goal_repo.create(_goal(text="other project", minutes=1).with_project("p2"))
    goal_repo.update_status(other.id, GoalStatus.in_progress)
    goal_repo.create(_goal(user_id="u2", text="foreign").with_project("p1"))

    assert [g.id for g in goal_repo.find_by_status("u1", "planned")] == [planned.id]
    assert [g.id for g in goal_repo.find_by_status("u1", GoalStatus.in_progress)] == [other.id]
    assert [g.id for g in goal_repo.find_by_project("u1", "p1")] == [planned.id]


def test_update_status_completed_sets_completion_date(goal_repo, clock):
    goal = goal_repo.create(_goal())
    clock.advance(90)

    started = goal_repo.update_status(goal.id, "in_progress")
    assert started.completion_date is None

    clock.advance(90)
    done = goal_repo.update_status(goal.id, GoalStatus.completed)
    fetched = goal_repo.find_by_id(goal.id)
    assert done.completion_date == clock.now
    assert fetched.status == GoalStatus.completed
    assert fetched.completion_date == clock.now
    assert fetched.updated_at == clock.now


def test_update_status_missing_raises(goal_repo):
    with pytest.raises(NotFound):
        goal_repo.update_status("missing", GoalStatus.completed)


def test_corrupt_steps_are_skipped(goal_repo, db_session):
    goal = goal_repo.create(_goal())
    row = db_session.get(UserGoalRecord, goal.id)
    row.steps = '[{"description": "kept", "step_number": "x"}, 7, {"no_description": true}]'
    db_session.commit()

    fetched = goal_repo.find_by_id(goal.id)
    assert len(fetched.steps) == 1
    assert fetched.steps[0].description == "kept"
    assert fetched.steps[0].step_number == 1
    assert fetched.steps[0].status == GoalStatus.planned
