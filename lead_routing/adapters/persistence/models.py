"""SQLAlchemy ORM models — maps to PostgreSQL tables."""

from datetime import datetime, time

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Time,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from lead_routing.adapters.persistence.database import Base


class AssignmentRuleModel(Base):
    __tablename__ = "assignment_rules"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    target_model: Mapped[str] = mapped_column(String(50), nullable=False)
    rule_type: Mapped[str] = mapped_column(String(50), nullable=False)
    strategy: Mapped[str | None] = mapped_column(String(50), nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    conditions: Mapped[list | dict] = mapped_column(JSONB, nullable=False, default=list)
    assign_to_type: Mapped[str] = mapped_column(String(20), nullable=False, default="user")
    candidate_ids: Mapped[list[str]] = mapped_column(ARRAY(String(64)), nullable=False, default=list)
    candidate_weights: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    max_assignments_per_user: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    assignment_window_start: Mapped[time | None] = mapped_column(Time, nullable=True)
    assignment_window_end: Mapped[time | None] = mapped_column(Time, nullable=True)
    active_days: Mapped[list[int]] = mapped_column(ARRAY(Integer), nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_assignment_rules_lookup", "organization_id", "target_model", "is_active"),
    )


class TerritoryModel(Base):
    __tablename__ = "territories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    territory_type: Mapped[str] = mapped_column(String(50), nullable=False, default="geographic")
    strategy: Mapped[str | None] = mapped_column(String(50), nullable=True)
    conditions: Mapped[list | dict] = mapped_column(JSONB, nullable=False, default=dict)
    assigned_users: Mapped[list[str]] = mapped_column(ARRAY(String(64)), nullable=False, default=list)
    assigned_teams: Mapped[list[str]] = mapped_column(ARRAY(String(64)), nullable=False, default=list)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_territories_org_name"),
        Index("idx_territories_org_active", "organization_id", "is_active"),
    )


class LeadModel(Base):
    __tablename__ = "leads"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    attributes: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    assigned_to: Mapped[str | None] = mapped_column(String(64), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (Index("idx_leads_org", "organization_id"),)


class UserModel(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)


class TeamMemberModel(Base):
    __tablename__ = "team_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    team_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
        Index("idx_team_members_team", "team_id"),
    )


class AssignmentHistoryModel(Base):
    __tablename__ = "assignment_history"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    target_model: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    rule_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    rule_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    assigned_to_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    assigned_to_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    previous_assigned_to_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    assignment_reason: Mapped[str] = mapped_column(String(50), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_assignment_history_org_date", "organization_id", "assigned_at"),
        Index("idx_assignment_history_rule", "rule_id"),
        Index("idx_assignment_history_target", "target_model", "target_id"),
    )


class FairnessCounterModel(Base):
    __tablename__ = "fairness_counters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    rule_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    assignment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("organization_id", "rule_id", "user_id", name="uq_fairness_counters_key"),
    )


class RoundRobinStateModel(Base):
    __tablename__ = "round_robin_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rr_key: Mapped[str] = mapped_column(String(500), unique=True, nullable=False)
    counter: Mapped[int] = mapped_column(Integer, nullable=False, default=-1)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )
