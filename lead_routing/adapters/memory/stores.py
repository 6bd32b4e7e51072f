"""In-process implementations of the storage ports.

Used by the ``memory`` store backend and by the test-suite. State lives for
the lifetime of the process only; use the SQL backend when fairness has to
survive restarts.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from lead_routing.application.errors import CapacityConflict
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
from lead_routing.domain.value_objects.enums import TargetModel


@dataclass
class _Lead:
    record: dict[str, Any]
    owner: str | None = None


class InMemoryLeadStore(LeadStore):
    def __init__(self):
        self._leads: dict[tuple[str, str], _Lead] = {}

    def add_lead(
        self, organization_id: str, lead_id: str, record: dict[str, Any], owner: str | None = None
    ) -> None:
        self._leads[(organization_id, lead_id)] = _Lead(record=dict(record), owner=owner)

    async def get_record(self, organization_id, lead_id):
        lead = self._leads.get((organization_id, lead_id))
        return dict(lead.record) if lead else None

    async def get_owner(self, organization_id, lead_id):
        lead = self._leads.get((organization_id, lead_id))
        return lead.owner if lead else None

    async def set_owner(self, organization_id, lead_id, user_id):
        self.write_owner(organization_id, lead_id, user_id)

    def write_owner(self, organization_id: str, lead_id: str, user_id: str) -> None:
        lead = self._leads.get((organization_id, lead_id))
        if lead is None:
            raise KeyError(f"lead {lead_id} not found")
        lead.owner = user_id


class InMemoryTeamDirectory(TeamDirectory):
    def __init__(self, teams: dict[str, list[str]] | None = None, names: dict[str, str] | None = None):
        self._teams = {k: list(v) for k, v in (teams or {}).items()}
        self._names = dict(names or {})

    def add_member(self, team_id: str, user_id: str) -> None:
        self._teams.setdefault(team_id, []).append(user_id)

    def set_name(self, user_id: str, name: str) -> None:
        self._names[user_id] = name

    async def members_of(self, team_id):
        return list(self._teams.get(team_id, []))

    async def display_name(self, user_id):
        return self._names.get(user_id)


class InMemoryRuleRepository(RuleRepository):
    def __init__(
        self,
        rules: list[AssignmentRule] | None = None,
        territories: list[Territory] | None = None,
    ):
        self.rules: list[AssignmentRule] = list(rules or [])
        self.territories: list[Territory] = list(territories or [])

    async def list_active_rules(self, organization_id, target_model):
        return [
            r for r in self.rules
            if r.organization_id == organization_id and r.target_model == target_model and r.is_active
        ]

    async def list_active_territories(self, organization_id):
        return [t for t in self.territories if t.organization_id == organization_id and t.is_active]


class InMemoryCounterStore(CounterStore):
    def __init__(self):
        self._states: dict[tuple[str, str], FairnessState] = {}
        self._locks: dict[tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)

    async def load_state(self, organization_id, rule_id):
        state = self._states.get((organization_id, rule_id))
        if state is None:
            return FairnessState(rule_id=rule_id)
        return replace(state, assignment_counts=dict(state.assignment_counts))

    async def increment(self, organization_id, rule_id, user_id, cursor, cap=0):
        async with self._locks[(organization_id, rule_id)]:
            return self.apply(organization_id, rule_id, user_id, cursor, cap)

    def apply(self, organization_id: str, rule_id: str, user_id: str, cursor: int, cap: int = 0) -> bool:
        """Synchronous check-and-increment; callers inside the event loop are atomic."""
        state = self._states.setdefault((organization_id, rule_id), FairnessState(rule_id=rule_id))
        if state.is_capped(user_id, cap):
            return False
        state.assignment_counts[user_id] = state.count_for(user_id) + 1
        state.last_assigned_index = cursor
        return True

    def can_apply(self, organization_id: str, rule_id: str, user_id: str, extra: int, cap: int) -> bool:
        state = self._states.get((organization_id, rule_id))
        current = state.count_for(user_id) if state else 0
        return cap <= 0 or current + extra <= cap


class InMemoryAssignmentLog(AssignmentLogRepository):
    def __init__(self):
        self.entries: list[AssignmentLogEntry] = []

    async def append(self, entry):
        self.entries.append(entry)
        return entry

    async def list_entries(self, organization_id, target_model=None, since=None):
        return _filter_entries(self.entries, organization_id, target_model, since)


def _filter_entries(
    entries: list[AssignmentLogEntry],
    organization_id: str,
    target_model: TargetModel | None,
    since: datetime | None,
) -> list[AssignmentLogEntry]:
    out = [
        e for e in entries
        if e.organization_id == organization_id
        and (target_model is None or e.target_model == target_model)
        and (since is None or e.assigned_at >= since)
    ]
    return sorted(out, key=lambda e: e.assigned_at)


# ─── Unit of work ───────────────────────────────────────────────────


class _StagedLeadStore(LeadStore):
    def __init__(self, base: InMemoryLeadStore):
        self._base = base
        self.pending: dict[tuple[str, str], str] = {}

    async def get_record(self, organization_id, lead_id):
        return await self._base.get_record(organization_id, lead_id)

    async def get_owner(self, organization_id, lead_id):
        if (organization_id, lead_id) in self.pending:
            return self.pending[(organization_id, lead_id)]
        return await self._base.get_owner(organization_id, lead_id)

    async def set_owner(self, organization_id, lead_id, user_id):
        if await self._base.get_record(organization_id, lead_id) is None:
            raise KeyError(f"lead {lead_id} not found")
        self.pending[(organization_id, lead_id)] = user_id


class _StagedLog(AssignmentLogRepository):
    def __init__(self, base: InMemoryAssignmentLog):
        self._base = base
        self.pending: list[AssignmentLogEntry] = []

    async def append(self, entry):
        self.pending.append(entry)
        return entry

    async def list_entries(self, organization_id, target_model=None, since=None):
        return _filter_entries(self._base.entries + self.pending, organization_id, target_model, since)


@dataclass
class _PendingIncrement:
    organization_id: str
    rule_id: str
    user_id: str
    cursor: int
    cap: int


class _StagedCounters(CounterStore):
    def __init__(self, base: InMemoryCounterStore):
        self._base = base
        self.pending: list[_PendingIncrement] = []

    async def load_state(self, organization_id, rule_id):
        state = await self._base.load_state(organization_id, rule_id)
        for inc in self.pending:
            if (inc.organization_id, inc.rule_id) == (organization_id, rule_id):
                state.assignment_counts[inc.user_id] = state.count_for(inc.user_id) + 1
                state.last_assigned_index = inc.cursor
        return state

    async def increment(self, organization_id, rule_id, user_id, cursor, cap=0):
        state = await self.load_state(organization_id, rule_id)
        if state.is_capped(user_id, cap):
            return False
        self.pending.append(_PendingIncrement(organization_id, rule_id, user_id, cursor, cap))
        return True


class InMemoryUnitOfWork(UnitOfWork):
    """Stages writes and applies them in one synchronous step on commit().

    There is no await between the first and last applied write, so a task
    cancelled before commit() leaves the stores untouched.
    """

    def __init__(
        self,
        leads: InMemoryLeadStore,
        assignment_log: InMemoryAssignmentLog,
        counters: InMemoryCounterStore,
    ):
        self._base_leads = leads
        self._base_log = assignment_log
        self._base_counters = counters
        self.leads = _StagedLeadStore(leads)
        self.assignment_log = _StagedLog(assignment_log)
        self.counters = _StagedCounters(counters)
        self.committed = False

    async def commit(self) -> None:
        increments = self.counters.pending
        # Re-check caps against live state: another unit of work may have
        # committed since this one staged its increments.
        per_key: dict[tuple[str, str, str], int] = defaultdict(int)
        for inc in increments:
            per_key[(inc.organization_id, inc.rule_id, inc.user_id)] += 1
        for inc in increments:
            key = (inc.organization_id, inc.rule_id, inc.user_id)
            if not self._base_counters.can_apply(*key, extra=per_key[key], cap=inc.cap):
                self._discard()
                raise CapacityConflict(inc.rule_id, inc.user_id)

        for (organization_id, lead_id), user_id in self.leads.pending.items():
            self._base_leads.write_owner(organization_id, lead_id, user_id)
        self._base_log.entries.extend(self.assignment_log.pending)
        for inc in increments:
            self._base_counters.apply(inc.organization_id, inc.rule_id, inc.user_id, inc.cursor, cap=0)
        self._discard()
        self.committed = True

    async def rollback(self) -> None:
        self._discard()

    def _discard(self) -> None:
        self.leads.pending.clear()
        self.assignment_log.pending.clear()
        self.counters.pending.clear()


class InMemoryBackend:
    """Bundle of in-memory stores sharing state, plus a unit-of-work factory."""

    def __init__(self):
        self.leads = InMemoryLeadStore()
        self.directory = InMemoryTeamDirectory()
        self.rules = InMemoryRuleRepository()
        self.counters = InMemoryCounterStore()
        self.assignment_log = InMemoryAssignmentLog()

    def unit_of_work(self) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(self.leads, self.assignment_log, self.counters)
