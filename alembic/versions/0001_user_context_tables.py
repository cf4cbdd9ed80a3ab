"""Create user context tables.

Revision ID: 0001_user_context_tables
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_user_context_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "user_decisions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("decision_text", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text()),
        sa.Column("decision_category", sa.String(length=50), nullable=False),
        sa.Column("scope_kind", sa.String(length=20), nullable=False, server_default="global"),
        sa.Column("scope_value", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("related_project_id", sa.String(length=255)),
        sa.Column("confidence_score", sa.Float(), server_default="0.5"),
        sa.Column("referenced_items", sa.Text(), server_default="[]"),
        sa.Column("created_at", sa.String(length=40), nullable=False),
        sa.Column("updated_at", sa.String(length=40)),
        sa.Column("applied_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_applied", sa.String(length=40)),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
    )
    op.create_index("idx_user_decisions_user", "user_decisions", ["user_id"])
    op.create_index("idx_user_decisions_scope", "user_decisions", ["scope_kind", "scope_value"])
    op.create_index("idx_user_decisions_status", "user_decisions", ["status"])
    op.create_index("idx_user_decisions_category", "user_decisions", ["decision_category"])
    op.create_index("idx_user_decisions_created", "user_decisions", ["created_at"])

    op.create_table(
        "user_goals",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("goal_text", sa.Text(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("project_id", sa.String(length=255)),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("steps", sa.Text(), server_default="[]"),
        sa.Column("created_at", sa.String(length=40), nullable=False),
        sa.Column("updated_at", sa.String(length=40)),
        sa.Column("completion_target_date", sa.String(length=40)),
        sa.Column("completion_date", sa.String(length=40)),
        sa.Column("blockers", sa.Text(), server_default="[]"),
        sa.Column("related_todos", sa.Text(), server_default="[]"),
    )
    op.create_index("idx_user_goals_user", "user_goals", ["user_id"])
    op.create_index("idx_user_goals_status", "user_goals", ["status"])
    op.create_index("idx_user_goals_project", "user_goals", ["project_id"])
    op.create_index("idx_user_goals_priority", "user_goals", ["priority"])

    op.create_table(
        "user_preferences",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("preference_name", sa.String(length=255), nullable=False),
        sa.Column("preference_value", sa.Text(), nullable=False),
        sa.Column("preference_type", sa.String(length=50), nullable=False),
        sa.Column("scope_kind", sa.String(length=20), nullable=False, server_default="global"),
        sa.Column("scope_value", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("applies_to_automation", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("rationale", sa.Text()),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("frequency_observed", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("tags", sa.Text(), server_default="[]"),
        sa.Column("created_at", sa.String(length=40), nullable=False),
        sa.Column("updated_at", sa.String(length=40)),
        sa.Column("last_referenced", sa.String(length=40)),
        sa.UniqueConstraint(
            "user_id",
            "preference_name",
            "scope_kind",
            "scope_value",
            name="uq_user_preferences_user_name_scope",
        ),
    )
    op.create_index("idx_user_preferences_user", "user_preferences", ["user_id"])
    op.create_index("idx_user_preferences_scope", "user_preferences", ["scope_kind", "scope_value"])
    op.create_index("idx_user_preferences_type", "user_preferences", ["preference_type"])
    op.create_index("idx_user_preferences_automation", "user_preferences", ["applies_to_automation"])

    op.create_table(
        "known_issues",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("issue_description", sa.Text(), nullable=False),
        sa.Column("symptoms", sa.Text(), server_default="[]"),
        sa.Column("root_cause", sa.Text()),
        sa.Column("workaround", sa.Text()),
        sa.Column("permanent_solution", sa.Text()),
        sa.Column("affected_components", sa.Text(), server_default="[]"),
        sa.Column("severity", sa.String(length=20), nullable=False),
        sa.Column("issue_category", sa.String(length=50), nullable=False),
        sa.Column("learned_date", sa.String(length=40), nullable=False),
        sa.Column("resolution_status", sa.String(length=30), nullable=False),
        sa.Column("resolution_date", sa.String(length=40)),
        sa.Column("prevention_notes", sa.Text()),
        sa.Column("project_contexts", sa.Text(), server_default="[]"),
        sa.Column("created_at", sa.String(length=40), nullable=False),
        sa.Column("updated_at", sa.String(length=40)),
    )
    op.create_index("idx_known_issues_user", "known_issues", ["user_id"])
    op.create_index("idx_known_issues_status", "known_issues", ["resolution_status"])
    op.create_index("idx_known_issues_severity", "known_issues", ["severity"])
    op.create_index("idx_known_issues_category", "known_issues", ["issue_category"])
    op.create_index("idx_known_issues_learned", "known_issues", ["learned_date"])

    op.create_table(
        "contextual_todos",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("task_description", sa.Text(), nullable=False),
        sa.Column("context_type", sa.String(length=50), nullable=False),
        sa.Column("related_entity_id", sa.String(length=36)),
        sa.Column("related_entity_type", sa.String(length=30)),
        sa.Column("project_id", sa.String(length=255)),
        sa.Column("assigned_to", sa.String(length=255)),
        sa.Column("due_date", sa.String(length=40)),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("created_from_conversation_date", sa.String(length=40)),
        sa.Column("created_at", sa.String(length=40), nullable=False),
        sa.Column("updated_at", sa.String(length=40)),
        sa.Column("completion_date", sa.String(length=40)),
    )
    op.create_index("idx_contextual_todos_user", "contextual_todos", ["user_id"])
    op.create_index("idx_contextual_todos_status", "contextual_todos", ["status"])
    op.create_index("idx_contextual_todos_entity", "contextual_todos", ["related_entity_id"])
    op.create_index("idx_contextual_todos_project", "contextual_todos", ["project_id"])
    op.create_index("idx_contextual_todos_due", "contextual_todos", ["due_date"])

    op.create_table(
        "user_context_audit",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=30), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("action", sa.String(length=30), nullable=False),
        sa.Column("old_value", sa.Text()),
        sa.Column("new_value", sa.Text()),
        sa.Column("changed_by", sa.String(length=255)),
        sa.Column("changed_at", sa.String(length=40), nullable=False),
        sa.Column("reason", sa.Text()),
    )
    op.create_index("idx_audit_user", "user_context_audit", ["user_id"])
    op.create_index("idx_audit_entity", "user_context_audit", ["entity_id"])
    op.create_index("idx_audit_timestamp", "user_context_audit", ["changed_at"])


def downgrade() -> None:
    op.drop_index("idx_audit_timestamp", table_name="user_context_audit")
    op.drop_index("idx_audit_entity", table_name="user_context_audit")
    op.drop_index("idx_audit_user", table_name="user_context_audit")
    op.drop_table("user_context_audit")

    op.drop_index("idx_contextual_todos_due", table_name="contextual_todos")
    op.drop_index("idx_contextual_todos_project", table_name="contextual_todos")
    op.drop_index("idx_contextual_todos_entity", table_name="contextual_todos")
    op.drop_index("idx_contextual_todos_status", table_name="contextual_todos")
    op.drop_index("idx_contextual_todos_user", table_name="contextual_todos")
    op.drop_table("contextual_todos")

    op.drop_index("idx_known_issues_learned", table_name="known_issues")
    op.drop_index("idx_known_issues_category", table_name="known_issues")
    op.drop_index("idx_known_issues_severity", table_name="known_issues")
    op.drop_index("idx_known_issues_status", table_name="known_issues")
    op.drop_index("idx_known_issues_user", table_name="known_issues")
    op.drop_table("known_issues")

    op.drop_index("idx_user_preferences_automation", table_name="user_preferences")
    op.drop_index("idx_user_preferences_type", table_name="user_preferences")
    op.drop_index("idx_user_preferences_scope", table_name="user_preferences")
    op.drop_index("idx_user_preferences_user", table_name="user_preferences")
    op.drop_table("user_preferences")

    op.drop_index("idx_user_goals_priority", table_name="user_goals")
    op.drop_index("idx_user_goals_project", table_name="user_goals")
    op.drop_index("idx_user_goals_status", table_name="user_goals")
    op.drop_index("idx_user_goals_user", table_name="user_goals")
    op.drop_table("user_goals")

    op.drop_index("idx_user_decisions_created", table_name="user_decisions")
    op.drop_index("idx_user_decisions_category", table_name="user_decisions")
    op.drop_index("idx_user_decisions_status", table_name="user_decisions")
    op.drop_index("idx_user_decisions_scope", table_name="user_decisions")
    op.drop_index("idx_user_decisions_user", table_name="user_decisions")
    op.drop_table("user_decisions")
