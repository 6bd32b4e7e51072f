"""StatsReporter — read-only projections over the assignment log."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from lead_routing.application.errors import collaborator
from lead_routing.application.ports.assignment_log_repo import AssignmentLogRepository
from lead_routing.domain.entities.assignment import AssignmentLogEntry
from lead_routing.domain.entities.stats import RuleEffectiveness, UserAssignmentStats
from lead_routing.domain.value_objects.enums import TargetModel


class StatsReporter:
    def __init__(
        self,
        log: AssignmentLogRepository,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._log = log
        self._clock = clock

    async def stats_by_user(
        self, organization_id: str, target_model: TargetModel | None = None
    ) -> list[UserAssignmentStats]:
        """Committed assignments per user, busiest first."""
        entries = await self._entries(organization_id, target_model)
        today = self._start_of_day()

        by_user: dict[str, UserAssignmentStats] = {}
        for e in entries:
            if not e.reason.is_assignment or e.user_id is None:
                continue
            row = by_user.get(e.user_id)
            if row is None:
                row = by_user[e.user_id] = UserAssignmentStats(
                    user_id=e.user_id, user_name=None, assigned_count=0, last_assigned_at=None,
                )
            row.assigned_count += 1
            if row.last_assigned_at is None or _aware(e.assigned_at) >= _aware(row.last_assigned_at):
                row.last_assigned_at = e.assigned_at
                row.user_name = e.assigned_to_name or row.user_name
            if _aware(e.assigned_at) >= today:
                row.assignments_today += 1

        return sorted(by_user.values(), key=lambda r: (-r.assigned_count, r.user_id))

    async def rule_effectiveness(self, organization_id: str) -> list[RuleEffectiveness]:
        """Per rule: decisions it matched vs. assignments it produced.

        ``match_rate`` is the share of all routing decisions in the
        organization that the rule matched.
        """
        entries = await self._entries(organization_id, None)
        total_decisions = len(entries)
        today = self._start_of_day()
        week_start = today - timedelta(days=today.weekday())

        matched: dict[str, list[AssignmentLogEntry]] = defaultdict(list)
        for e in entries:
            if e.rule_id is not None:
                matched[e.rule_id].append(e)

        rows: list[RuleEffectiveness] = []
        for rule_id, rule_entries in matched.items():
            assignments = [e for e in rule_entries if e.reason.is_assignment]
            rows.append(
                RuleEffectiveness(
                    rule_id=rule_id,
                    rule_name=next((e.rule_name for e in reversed(rule_entries) if e.rule_name), None),
                    total_matches=len(rule_entries),
                    total_assignments=len(assignments),
                    match_rate=round(len(rule_entries) / total_decisions, 4) if total_decisions else 0.0,
                    assignments_today=sum(1 for e in assignments if _aware(e.assigned_at) >= today),
                    assignments_this_week=sum(1 for e in assignments if _aware(e.assigned_at) >= week_start),
                    last_used_at=max((e.assigned_at for e in assignments), key=_aware, default=None),
                    unique_assignees=len({e.user_id for e in assignments}),
                )
            )
        return sorted(rows, key=lambda r: (-r.total_assignments, r.rule_id))

    async def _entries(
        self, organization_id: str, target_model: TargetModel | None
    ) -> list[AssignmentLogEntry]:
        with collaborator("assignment_log"):
            return await self._log.list_entries(organization_id, target_model)

    def _start_of_day(self) -> datetime:
        now = _aware(self._clock())
        return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)
