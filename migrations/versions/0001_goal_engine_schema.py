"""goal engine schema

Revision ID: 0001
Revises:
Create Date: 2026-10-16 00:00:00.000000

normalized_events  — immutable facts, ordered by occurred_at
goal_rules         — user-authored rules (read-only to the evaluator)
goal_evaluations   — append-only snapshots, one per rule per pass
decision_impacts   — append-only audit trail for triggering events
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- normalized_events ---
    op.create_table(
        "normalized_events",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("event_name", sa.String(128), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("magnitude", sa.Float(), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=False, server_default="1.0"),
        sa.Column("metadata", sa.Text(), nullable=True),
        sa.Column("source_type", sa.String(32), nullable=True),
        sa.Column("source_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_normalized_events_occurred_at", "normalized_events", ["occurred_at"])
    op.create_index("ix_normalized_events_type_time", "normalized_events", ["event_type", "occurred_at"])
    op.create_index("ix_normalized_events_name_time", "normalized_events", ["event_name", "occurred_at"])
    op.create_index("ix_normalized_events_source", "normalized_events", ["source_type", "source_id"])

    # --- goal_rules ---
    op.create_table(
        "goal_rules",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("rule_type", sa.String(32), nullable=False),
        sa.Column("rule_config", sa.Text(), nullable=False),
        sa.Column("rolling_window_days", sa.Integer(), nullable=True, server_default="7"),
        sa.Column("required_completions", sa.Integer(), nullable=True, server_default="1"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_goal_rules_priority", "goal_rules", ["priority"])

    # --- goal_evaluations ---
    op.create_table(
        "goal_evaluations",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("goal_rule_id", sa.String(36), nullable=False),
        sa.Column("evaluated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("completions_in_window", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("required_in_window", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("pending_windows", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("last_success_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_fail_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_fail_reason", sa.Text(), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=False, server_default="1.0"),
        sa.Column("details", sa.Text(), nullable=False, server_default="{}"),
        sa.ForeignKeyConstraint(["goal_rule_id"], ["goal_rules.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_goal_evaluations_rule_time", "goal_evaluations", ["goal_rule_id", "evaluated_at"]
    )

    # --- decision_impacts ---
    op.create_table(
        "decision_impacts",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("event_id", sa.String(36), nullable=False),
        sa.Column("goal_rule_id", sa.String(36), nullable=False),
        sa.Column("impact_type", sa.String(32), nullable=False),
        sa.Column("impact_details", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["event_id"], ["normalized_events.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["goal_rule_id"], ["goal_rules.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_decision_impacts_event_id", "decision_impacts", ["event_id"])
    op.create_index("ix_decision_impacts_goal_rule_id", "decision_impacts", ["goal_rule_id"])


def downgrade() -> None:
    op.drop_index("ix_decision_impacts_goal_rule_id", table_name="decision_impacts")
    op.drop_index("ix_decision_impacts_event_id", table_name="decision_impacts")
    op.drop_table("decision_impacts")
    op.drop_index("ix_goal_evaluations_rule_time", table_name="goal_evaluations")
    op.drop_table("goal_evaluations")
    op.drop_index("ix_goal_rules_priority", table_name="goal_rules")
    op.drop_table("goal_rules")
    op.drop_index("ix_normalized_events_source", table_name="normalized_events")
    op.drop_index("ix_normalized_events_name_time", table_name="normalized_events")
    op.drop_index("ix_normalized_events_type_time", table_name="normalized_events")
    op.drop_index("ix_normalized_events_occurred_at", table_name="normalized_events")
    op.drop_table("normalized_events")
