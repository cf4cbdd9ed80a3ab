"""
Relational repository for user goals. Steps are stored as a JSON array of
objects in the ``steps`` column.
"""

from __future__ import annotations

import json
from typing import Union

import contextgate.config as config
from contextgate.audit import ACTION_UPDATE_STATUS
from contextgate.codec import (
    decode_enum,
    decode_list,
    decode_required_timestamp,
    decode_timestamp,
    encode_list,
    encode_timestamp,
)
from contextgate.domain import EntityType, GoalStatus, GoalStep, UserGoal
from contextgate.models import UserGoalRecord
from contextgate.repositories.base import SqlRepository
from contextgate.repositories.contracts import UserGoalRepository
from contextgate.validators import (
    validate_optional_text,
    validate_priority,
    validate_required_text,
    validate_string_list,
)

logger = config.logger


def _encode_steps(steps: list[GoalStep]) -> str:
    return json.dumps(
        [
            {
                "step_number": step.step_number,
                "description": step.description,
                "status": GoalStatus.parse(step.status).to_code(),
                "due_date": encode_timestamp(step.due_date),
            }
            for step in steps
        ]
    )


def _decode_steps(value) -> list[GoalStep]:
    steps = []
    for item in decode_list(value, "steps"):
        if not isinstance(item, dict) or "description" not in item:
            logger.warning("goal_step_decode_skipped", extra={"raw_value": item})
            continue
        step_number = item.get("step_number")
        if isinstance(step_number, bool) or not isinstance(step_number, int):
            step_number = len(steps) + 1
        steps.append(
            GoalStep(
                step_number=step_number,
                description=str(item["description"]),
                status=decode_enum(GoalStatus, item.get("status"), "steps.status"),
                due_date=decode_timestamp(item.get("due_date"), "steps.due_date"),
            )
        )
    return steps


class SqlUserGoalRepository(SqlRepository, UserGoalRepository):
    entity_type = EntityType.user_goal.value
    record_cls = UserGoalRecord

    _default_order = (UserGoalRecord.priority.asc(), UserGoalRecord.created_at.desc())

    def _to_entity(self, row: UserGoalRecord) -> UserGoal:
        return UserGoal(
            id=row.id,
            user_id=row.user_id,
            goal_text=row.goal_text,
            description=row.description,
            project_id=row.project_id,
            status=decode_enum(GoalStatus, row.status, "status"),
            priority=row.priority if row.priority is not None else 3,
            steps=_decode_steps(row.steps),
            created_at=decode_required_timestamp(row.created_at, "created_at"),
            updated_at=decode_timestamp(row.updated_at, "updated_at"),
            completion_target_date=decode_timestamp(row.completion_target_date, "completion_target_date"),
            completion_date=decode_timestamp(row.completion_date, "completion_date"),
            blockers=decode_list(row.blockers, "blockers"),
            related_todos=decode_list(row.related_todos, "related_todos"),
        )

    def _to_columns(self, goal: UserGoal) -> dict:
        return {
            "id": goal.id,
            "user_id": goal.user_id,
            "goal_text": goal.goal_text,
            "description": goal.description,
            "project_id": goal.project_id,
            "status": GoalStatus.parse(goal.status).to_code(),
            "priority": goal.priority,
            "steps": _encode_steps(goal.steps),
            "created_at": encode_timestamp(goal.created_at),
            "updated_at": encode_timestamp(goal.updated_at),
            "completion_target_date": encode_timestamp(goal.completion_target_date),
            "completion_date": encode_timestamp(goal.completion_date),
            "blockers": encode_list(goal.blockers),
            "related_todos": encode_list(goal.related_todos),
        }

    def _validate(self, goal: UserGoal) -> None:
        validate_required_text(goal.user_id, "user_id", config.MAX_SHORT_TEXT_LENGTH)
        validate_required_text(goal.goal_text, "goal_text", config.MAX_TEXT_LENGTH)
        validate_optional_text(goal.description, "description", config.MAX_TEXT_LENGTH)
        validate_optional_text(goal.project_id, "project_id", config.MAX_SHORT_TEXT_LENGTH)
        validate_priority(goal.priority, "priority")
        validate_string_list(
            [step.description for step in goal.steps],
            "steps",
            config.MAX_GOAL_STEPS,
            config.MAX_LIST_ITEM_LENGTH,
        )
        validate_string_list(goal.blockers, "blockers", config.MAX_LIST_ITEMS, config.MAX_LIST_ITEM_LENGTH)
        validate_string_list(
            goal.related_todos,
            "related_todos",
            config.MAX_LIST_ITEMS,
            config.MAX_LIST_ITEM_LENGTH,
        )

    def find_by_user(self, user_id: str) -> list[UserGoal]:
        return self._select(UserGoalRecord.user_id == user_id, order_by=self._default_order)

    def find_by_status(self, user_id: str, status) -> list[UserGoal]:
        code = GoalStatus.parse(status, field="status").to_code()
        return self._select(
            UserGoalRecord.user_id == user_id,
            UserGoalRecord.status == code,
            order_by=self._default_order,
        )

    def find_by_project(self, user_id: str, project_id: str) -> list[UserGoal]:
        return self._select(
            UserGoalRecord.user_id == user_id,
            UserGoalRecord.project_id == project_id,
            order_by=self._default_order,
        )

    def update_status(self, goal_id: str, status: Union[GoalStatus, str]) -> UserGoal:
        new_status = GoalStatus.parse(status, field="status")

        def apply(goal: UserGoal, now) -> None:
            goal.status = new_status
            if new_status == GoalStatus.completed:
                goal.completion_date = now

        return self._mutate(goal_id, ACTION_UPDATE_STATUS, apply)
