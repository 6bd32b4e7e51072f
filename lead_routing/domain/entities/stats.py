"""Read-model rows produced by StatsReporter."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class UserAssignmentStats:
    user_id: str
    user_name: str | None
    assigned_count: int
    last_assigned_at: datetime | None
    assignments_today: int = 0


@dataclass
class RuleEffectiveness:
    rule_id: str
    rule_name: str | None
    total_matches: int
    total_assignments: int
    match_rate: float
    assignments_today: int = 0
    assignments_this_week: int = 0
    last_used_at: datetime | None = None
    unique_assignees: int = 0
