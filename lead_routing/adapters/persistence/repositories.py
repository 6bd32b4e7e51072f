"""SQLAlchemy repository implementations."""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from lead_routing.adapters.persistence.models import (
    AssignmentHistoryModel,
    AssignmentRuleModel,
    FairnessCounterModel,
    LeadModel,
    RoundRobinStateModel,
    TeamMemberModel,
    TerritoryModel,
    UserModel,
)
from lead_routing.application.ports.assignment_log_repo import AssignmentLogRepository
from lead_routing.application.ports.counter_store import CounterStore
from lead_routing.application.ports.lead_store import LeadStore
from lead_routing.application.ports.rule_repo import RuleRepository
from lead_routing.application.ports.team_directory import TeamDirectory
from lead_routing.application.ports.unit_of_work import UnitOfWork
from lead_routing.domain.entities.assignment import AssignmentLogEntry
from lead_routing.domain.entities.assignment_rule import AssignmentRule
from lead_routing.domain.entities.fairness import FairnessState
from lead_routing.domain.entities.territory import Territory
from lead_routing.domain.value_objects.conditions import ConditionSet
from lead_routing.domain.value_objects.enums import (
    AssignmentReason,
    AssignToType,
    RuleType,
    TargetModel,
)

# ─── Mappers ─────────────────────────────────────────────────────────


def _rule_to_domain(m: AssignmentRuleModel) -> AssignmentRule:
    return AssignmentRule(
        id=m.id,
        organization_id=m.organization_id,
        name=m.name,
        target_model=TargetModel(m.target_model),
        rule_type=RuleType(m.rule_type),
        priority=m.priority,
        is_active=m.is_active,
        conditions=ConditionSet.from_raw(m.conditions),
        assign_to_type=AssignToType(m.assign_to_type),
        candidate_ids=list(m.candidate_ids or []),
        candidate_weights={k: int(v) for k, v in (m.candidate_weights or {}).items()},
        max_assignments_per_user=m.max_assignments_per_user,
        assignment_window_start=m.assignment_window_start,
        assignment_window_end=m.assignment_window_end,
        active_days=frozenset(m.active_days or ()),
        strategy=RuleType(m.strategy) if m.strategy else None,
        created_at=m.created_at,
    )


def _territory_to_domain(m: TerritoryModel) -> Territory:
    return Territory(
        id=m.id,
        organization_id=m.organization_id,
        name=m.name,
        conditions=ConditionSet.from_raw(m.conditions),
        assigned_users=list(m.assigned_users or []),
        assigned_teams=list(m.assigned_teams or []),
        priority=m.priority,
        is_active=m.is_active,
        territory_type=m.territory_type,
        strategy=RuleType(m.strategy) if m.strategy else None,
        created_at=m.created_at,
    )


def _history_to_domain(m: AssignmentHistoryModel) -> AssignmentLogEntry:
    return AssignmentLogEntry(
        id=m.id,
        organization_id=m.organization_id,
        lead_id=m.target_id,
        target_model=TargetModel(m.target_model),
        rule_id=m.rule_id,
        user_id=m.assigned_to_id,
        reason=AssignmentReason(m.assignment_reason),
        rule_name=m.rule_name,
        assigned_to_name=m.assigned_to_name,
        previous_owner_id=m.previous_assigned_to_id,
        assigned_at=m.assigned_at,
    )


def rr_key(organization_id: str, rule_id: str) -> str:
    return f"{organization_id}:{rule_id}"


# ─── Repositories ────────────────────────────────────────────────────


class SqlLeadStore(LeadStore):
    def __init__(self, session: AsyncSession, lock_rows: bool = False):
        self._s = session
        self._lock_rows = lock_rows

    async def get_record(self, organization_id, lead_id):
        result = await self._s.execute(
            select(LeadModel.attributes).where(
                LeadModel.id == lead_id, LeadModel.organization_id == organization_id
            )
        )
        row = result.one_or_none()
        return dict(row[0] or {}) if row else None

    async def get_owner(self, organization_id, lead_id):
        stmt = select(LeadModel.assigned_to).where(
            LeadModel.id == lead_id, LeadModel.organization_id == organization_id
        )
        if self._lock_rows:
            stmt = stmt.with_for_update()
        result = await self._s.execute(stmt)
        return result.scalar_one_or_none()

    async def set_owner(self, organization_id, lead_id, user_id):
        result = await self._s.execute(
            update(LeadModel)
            .where(LeadModel.id == lead_id, LeadModel.organization_id == organization_id)
            .values(assigned_to=user_id)
        )
        if result.rowcount == 0:
            raise LookupError(f"lead {lead_id} not found")
        await self._s.flush()


class SqlTeamDirectory(TeamDirectory):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def members_of(self, team_id):
        result = await self._s.execute(
            select(TeamMemberModel.user_id)
            .where(TeamMemberModel.team_id == team_id)
            .order_by(TeamMemberModel.joined_at, TeamMemberModel.id)
        )
        return list(result.scalars())

    async def display_name(self, user_id):
        result = await self._s.execute(select(UserModel.full_name).where(UserModel.id == user_id))
        return result.scalar_one_or_none()


class SqlRuleRepository(RuleRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def list_active_rules(self, organization_id, target_model):
        result = await self._s.execute(
            select(AssignmentRuleModel)
            .where(
                AssignmentRuleModel.organization_id == organization_id,
                AssignmentRuleModel.target_model == target_model.value,
                AssignmentRuleModel.is_active.is_(True),
            )
            .order_by(
                AssignmentRuleModel.priority,
                AssignmentRuleModel.created_at,
                AssignmentRuleModel.id,
            )
        )
        return [_rule_to_domain(m) for m in result.scalars()]

    async def list_active_territories(self, organization_id):
        result = await self._s.execute(
            select(TerritoryModel)
            .where(
                TerritoryModel.organization_id == organization_id,
                TerritoryModel.is_active.is_(True),
            )
            .order_by(TerritoryModel.priority, TerritoryModel.created_at, TerritoryModel.id)
        )
        return [_territory_to_domain(m) for m in result.scalars()]


class SqlCounterStore(CounterStore):
    def __init__(self, session: AsyncSession, lock_rows: bool = False):
        self._s = session
        self._lock_rows = lock_rows

    async def load_state(self, organization_id, rule_id):
        key = rr_key(organization_id, rule_id)
        if self._lock_rows:
            # Materialize the cursor row so FOR UPDATE has something to lock;
            # it is held until the unit of work ends.
            await self._s.execute(
                pg_insert(RoundRobinStateModel)
                .values(rr_key=key, counter=-1)
                .on_conflict_do_nothing(index_elements=["rr_key"])
            )
        cursor_stmt = select(RoundRobinStateModel.counter).where(RoundRobinStateModel.rr_key == key)
        if self._lock_rows:
            cursor_stmt = cursor_stmt.with_for_update()
        cursor = await self._s.execute(cursor_stmt)
        last_index = cursor.scalar_one_or_none()

        counts = await self._s.execute(
            select(FairnessCounterModel.user_id, FairnessCounterModel.assignment_count).where(
                FairnessCounterModel.organization_id == organization_id,
                FairnessCounterModel.rule_id == rule_id,
            )
        )
        return FairnessState(
            rule_id=rule_id,
            assignment_counts={user_id: count for user_id, count in counts.all()},
            last_assigned_index=-1 if last_index is None else last_index,
        )

    async def increment(self, organization_id, rule_id, user_id, cursor, cap=0):
        stmt = pg_insert(FairnessCounterModel).values(
            organization_id=organization_id,
            rule_id=rule_id,
            user_id=user_id,
            assignment_count=1,
            last_assigned_at=func.now(),
        )
        # Check-and-increment in one statement; a row at cap is left untouched
        # and RETURNING yields nothing.
        stmt = stmt.on_conflict_do_update(
            index_elements=["organization_id", "rule_id", "user_id"],
            set_={
                "assignment_count": FairnessCounterModel.assignment_count + 1,
                "last_assigned_at": func.now(),
            },
            where=(FairnessCounterModel.assignment_count < cap) if cap > 0 else None,
        ).returning(FairnessCounterModel.assignment_count)
        result = await self._s.execute(stmt)
        if result.scalar_one_or_none() is None:
            return False

        await self._s.execute(
            pg_insert(RoundRobinStateModel)
            .values(rr_key=rr_key(organization_id, rule_id), counter=cursor)
            .on_conflict_do_update(
                index_elements=["rr_key"],
                set_={"counter": cursor, "updated_at": func.now()},
            )
        )
        await self._s.flush()
        return True


class SqlAssignmentLogRepository(AssignmentLogRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def append(self, entry):
        self._s.add(
            AssignmentHistoryModel(
                id=entry.id,
                organization_id=entry.organization_id,
                target_model=entry.target_model.value,
                target_id=entry.lead_id,
                rule_id=entry.rule_id,
                rule_name=entry.rule_name,
                assigned_to_id=entry.user_id,
                assigned_to_name=entry.assigned_to_name,
                previous_assigned_to_id=entry.previous_owner_id,
                assignment_reason=entry.reason.value,
                assigned_at=entry.assigned_at,
            )
        )
        await self._s.flush()
        return entry

    async def list_entries(self, organization_id, target_model=None, since=None):
        stmt = select(AssignmentHistoryModel).where(
            AssignmentHistoryModel.organization_id == organization_id
        )
        if target_model is not None:
            stmt = stmt.where(AssignmentHistoryModel.target_model == target_model.value)
        if since is not None:
            stmt = stmt.where(AssignmentHistoryModel.assigned_at >= since)
        result = await self._s.execute(stmt.order_by(AssignmentHistoryModel.assigned_at))
        return [_history_to_domain(m) for m in result.scalars()]


class SqlUnitOfWork(UnitOfWork):
    """All writes go through the request session; commit() ends its transaction."""

    def __init__(self, session: AsyncSession):
        self._s = session
        self.leads = SqlLeadStore(session, lock_rows=True)
        self.assignment_log = SqlAssignmentLogRepository(session)
        self.counters = SqlCounterStore(session, lock_rows=True)

    async def commit(self) -> None:
        await self._s.commit()

    async def rollback(self) -> None:
        await self._s.rollback()
