"""AssignmentRule entity — a priority-ordered routing policy for one organization."""

from dataclasses import dataclass, field
from datetime import datetime, time, timezone

from lead_routing.domain.value_objects.conditions import ConditionSet
from lead_routing.domain.value_objects.enums import AssignToType, RuleType, TargetModel

# Default creation time; aware so it orders against timestamps loaded from the database.
EPOCH_START = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class AssignmentRule:
    id: str
    organization_id: str
    name: str
    target_model: TargetModel
    rule_type: RuleType
    priority: int = 0
    is_active: bool = True
    conditions: ConditionSet = field(default_factory=ConditionSet)
    assign_to_type: AssignToType = AssignToType.USER
    candidate_ids: list[str] = field(default_factory=list)  # user ids, or team ids when assign_to_type == TEAM
    team_ids: list[str] = field(default_factory=list)  # extra teams (territories)
    candidate_weights: dict[str, int] = field(default_factory=dict)
    max_assignments_per_user: int = 0  # 0 = unlimited
    assignment_window_start: time | None = None
    assignment_window_end: time | None = None
    active_days: frozenset[int] = frozenset()  # ISO weekdays, empty = every day
    strategy: RuleType | None = None  # territory sub-strategy
    created_at: datetime = EPOCH_START

    @property
    def selection_strategy(self) -> RuleType:
        if self.rule_type == RuleType.TERRITORY:
            return self.strategy or RuleType.MANUAL
        return self.rule_type

    @property
    def is_territory(self) -> bool:
        return self.rule_type == RuleType.TERRITORY

    def has_cap(self) -> bool:
        return self.max_assignments_per_user > 0

    def sort_key(self) -> tuple[int, datetime, str]:
        """Total evaluation order: priority ASC, then creation order, then id."""
        return (self.priority, self.created_at, self.id)
