"""Initial schema — rules, territories, leads, directory, history, fairness counters.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Assignment rules
    op.create_table(
        "assignment_rules",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("organization_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("target_model", sa.String(50), nullable=False),
        sa.Column("rule_type", sa.String(50), nullable=False),
        sa.Column("strategy", sa.String(50), nullable=True),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("conditions", JSONB, nullable=False, server_default="[]"),
        sa.Column("assign_to_type", sa.String(20), nullable=False, server_default="user"),
        sa.Column("candidate_ids", ARRAY(sa.String(64)), nullable=False, server_default="{}"),
        sa.Column("candidate_weights", JSONB, nullable=False, server_default="{}"),
        sa.Column("max_assignments_per_user", sa.Integer, nullable=False, server_default="0"),
        sa.Column("assignment_window_start", sa.Time, nullable=True),
        sa.Column("assignment_window_end", sa.Time, nullable=True),
        sa.Column("active_days", ARRAY(sa.Integer), nullable=False, server_default="{}"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index(
        "idx_assignment_rules_lookup",
        "assignment_rules",
        ["organization_id", "target_model", "is_active"],
    )

    # Territories
    op.create_table(
        "territories",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("organization_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("territory_type", sa.String(50), nullable=False, server_default="geographic"),
        sa.Column("strategy", sa.String(50), nullable=True),
        sa.Column("conditions", JSONB, nullable=False, server_default="{}"),
        sa.Column("assigned_users", ARRAY(sa.String(64)), nullable=False, server_default="{}"),
        sa.Column("assigned_teams", ARRAY(sa.String(64)), nullable=False, server_default="{}"),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.UniqueConstraint("organization_id", "name", name="uq_territories_org_name"),
    )
    op.create_index("idx_territories_org_active", "territories", ["organization_id", "is_active"])

    # Leads
    op.create_table(
        "leads",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("organization_id", sa.String(64), nullable=False),
        sa.Column("attributes", JSONB, nullable=False, server_default="{}"),
        sa.Column("assigned_to", sa.String(64), nullable=True),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("idx_leads_org", "leads", ["organization_id"])

    # Users + team membership
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("organization_id", sa.String(64), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
    )
    op.create_table(
        "team_members",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("team_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column(
            "joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )
    op.create_index("idx_team_members_team", "team_members", ["team_id"])

    # Assignment history (append-only)
    op.create_table(
        "assignment_history",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("organization_id", sa.String(64), nullable=False),
        sa.Column("target_model", sa.String(50), nullable=False),
        sa.Column("target_id", sa.String(64), nullable=False),
        sa.Column("rule_id", sa.String(64), nullable=True),
        sa.Column("rule_name", sa.String(200), nullable=True),
        sa.Column("assigned_to_id", sa.String(64), nullable=True),
        sa.Column("assigned_to_name", sa.String(255), nullable=True),
        sa.Column("previous_assigned_to_id", sa.String(64), nullable=True),
        sa.Column("assignment_reason", sa.String(50), nullable=False),
        sa.Column(
            "assigned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index(
        "idx_assignment_history_org_date", "assignment_history", ["organization_id", "assigned_at"]
    )
    op.create_index("idx_assignment_history_rule", "assignment_history", ["rule_id"])
    op.create_index(
        "idx_assignment_history_target", "assignment_history", ["target_model", "target_id"]
    )

    # Fairness counters
    op.create_table(
        "fairness_counters",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("organization_id", sa.String(64), nullable=False),
        sa.Column("rule_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("assignment_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "organization_id", "rule_id", "user_id", name="uq_fairness_counters_key"
        ),
    )

    # Round-robin cursor
    op.create_table(
        "round_robin_state",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("rr_key", sa.String(500), unique=True, nullable=False),
        sa.Column("counter", sa.Integer, nullable=False, server_default="-1"),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )


def downgrade() -> None:
    op.drop_table("round_robin_state")
    op.drop_table("fairness_counters")
    op.drop_table("assignment_history")
    op.drop_table("team_members")
    op.drop_table("users")
    op.drop_table("leads")
    op.drop_table("territories")
    op.drop_table("assignment_rules")
