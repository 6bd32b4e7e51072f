"""Territory entity — a segment-scoped routing unit keyed by users and teams."""

from dataclasses import dataclass, field
from datetime import datetime

from lead_routing.domain.entities.assignment_rule import EPOCH_START, AssignmentRule
from lead_routing.domain.value_objects.conditions import ConditionSet
from lead_routing.domain.value_objects.enums import AssignToType, RuleType, TargetModel


@dataclass
class Territory:
    id: str
    organization_id: str
    name: str
    conditions: ConditionSet = field(default_factory=ConditionSet)
    assigned_users: list[str] = field(default_factory=list)
    assigned_teams: list[str] = field(default_factory=list)
    priority: int = 0
    is_active: bool = True
    territory_type: str = "geographic"
    strategy: RuleType | None = None
    created_at: datetime = EPOCH_START

    def as_rule(self, target_model: TargetModel) -> AssignmentRule:
        """Territories are evaluated in the same pass as rules."""
        return AssignmentRule(
            id=self.id,
            organization_id=self.organization_id,
            name=self.name,
            target_model=target_model,
            rule_type=RuleType.TERRITORY,
            priority=self.priority,
            is_active=self.is_active,
            conditions=self.conditions,
            assign_to_type=AssignToType.USER,
            candidate_ids=list(self.assigned_users),
            team_ids=list(self.assigned_teams),
            strategy=self.strategy,
            created_at=self.created_at,
        )
