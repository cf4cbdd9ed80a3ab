"""
Relational repository for contextual todos.
"""

from __future__ import annotations

from typing import Union

import contextgate.config as config
from contextgate.audit import ACTION_UPDATE_STATUS
from contextgate.codec import (
    decode_enum,
    decode_optional_enum,
    decode_required_timestamp,
    decode_timestamp,
    encode_timestamp,
)
from contextgate.domain import ContextualTodo, EntityType, TodoContextType, TodoStatus
from contextgate.models import ContextualTodoRecord
from contextgate.repositories.base import SqlRepository
from contextgate.repositories.contracts import ContextualTodoRepository
from contextgate.validators import (
    validate_optional_text,
    validate_priority,
    validate_required_text,
)

TODO_ENTITY_TYPE = "contextual_todo"


class SqlContextualTodoRepository(SqlRepository, ContextualTodoRepository):
    entity_type = TODO_ENTITY_TYPE
    record_cls = ContextualTodoRecord

    # Nulls sort after dated todos on every backend.
    _default_order = (
        ContextualTodoRecord.priority.asc(),
        ContextualTodoRecord.due_date.is_(None).asc(),
        ContextualTodoRecord.due_date.asc(),
    )

    def _to_entity(self, row: ContextualTodoRecord) -> ContextualTodo:
        return ContextualTodo(
            id=row.id,
            user_id=row.user_id,
            task_description=row.task_description,
            context_type=decode_enum(TodoContextType, row.context_type, "context_type"),
            related_entity_id=row.related_entity_id,
            related_entity_type=decode_optional_enum(EntityType, row.related_entity_type, "related_entity_type"),
            project_id=row.project_id,
            assigned_to=row.assigned_to,
            due_date=decode_timestamp(row.due_date, "due_date"),
            status=decode_enum(TodoStatus, row.status, "status"),
            priority=row.priority if row.priority is not None else 3,
            created_from_conversation_date=decode_timestamp(
                row.created_from_conversation_date, "created_from_conversation_date"
            ),
            created_at=decode_required_timestamp(row.created_at, "created_at"),
            updated_at=decode_timestamp(row.updated_at, "updated_at"),
            completion_date=decode_timestamp(row.completion_date, "completion_date"),
        )

    def _to_columns(self, todo: ContextualTodo) -> dict:
        related_type = None
        if todo.related_entity_type is not None:
            related_type = EntityType.parse(todo.related_entity_type).to_code()
        return {
            "id": todo.id,
            "user_id": todo.user_id,
            "task_description": todo.task_description,
            "context_type": TodoContextType.parse(todo.context_type).to_code(),
            "related_entity_id": todo.related_entity_id,
            "related_entity_type": related_type,
            "project_id": todo.project_id,
            "assigned_to": todo.assigned_to,
            "due_date": encode_timestamp(todo.due_date),
            "status": TodoStatus.parse(todo.status).to_code(),
            "priority": todo.priority,
            "created_from_conversation_date": encode_timestamp(todo.created_from_conversation_date),
            "created_at": encode_timestamp(todo.created_at),
            "updated_at": encode_timestamp(todo.updated_at),
            "completion_date": encode_timestamp(todo.completion_date),
        }

    def _validate(self, todo: ContextualTodo) -> None:
        validate_required_text(todo.user_id, "user_id", config.MAX_SHORT_TEXT_LENGTH)
        validate_required_text(todo.task_description, "task_description", config.MAX_TEXT_LENGTH)
        validate_optional_text(todo.related_entity_id, "related_entity_id", config.MAX_SHORT_TEXT_LENGTH)
        validate_optional_text(todo.project_id, "project_id", config.MAX_SHORT_TEXT_LENGTH)
        validate_optional_text(todo.assigned_to, "assigned_to", config.MAX_SHORT_TEXT_LENGTH)
        validate_priority(todo.priority, "priority")

    def find_by_user(self, user_id: str) -> list[ContextualTodo]:
        return self._select(ContextualTodoRecord.user_id == user_id, order_by=self._default_order)

    def find_by_status(self, user_id: str, status) -> list[ContextualTodo]:
        code = TodoStatus.parse(status, field="status").to_code()
        return self._select(
            ContextualTodoRecord.user_id == user_id,
            ContextualTodoRecord.status == code,
            order_by=self._default_order,
        )

    def find_by_project(self, user_id: str, project_id: str) -> list[ContextualTodo]:
        return self._select(
            ContextualTodoRecord.user_id == user_id,
            ContextualTodoRecord.project_id == project_id,
            order_by=self._default_order,
        )

    def find_by_entity(self, user_id: str, entity_id: str) -> list[ContextualTodo]:
        return self._select(
            ContextualTodoRecord.user_id == user_id,
            ContextualTodoRecord.related_entity_id == entity_id,
            order_by=(ContextualTodoRecord.created_at.desc(),),
        )

    def update_status(self, todo_id: str, status: Union[TodoStatus, str]) -> ContextualTodo:
        new_status = TodoStatus.parse(status, field="status")

        def apply(todo: ContextualTodo, now) -> None:
            todo.status = new_status
            if new_status == TodoStatus.completed:
                todo.completion_date = now

        return self._mutate(todo_id, ACTION_UPDATE_STATUS, apply)
