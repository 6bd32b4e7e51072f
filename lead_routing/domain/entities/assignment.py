"""Assignment entities — the routing decision and its immutable log record."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import uuid4

from lead_routing.domain.entities.assignment_rule import AssignmentRule
from lead_routing.domain.value_objects.enums import AssignmentReason, TargetModel


@dataclass(frozen=True)
class AssignmentDecision:
    lead_id: str
    organization_id: str
    assigned_to_id: str | None
    assigned_to_name: str
    reason: AssignmentReason
    changed: bool
    matched_rule_id: str | None = None
    matched_rule_name: str | None = None
    previous_owner_id: str | None = None
    target_model: TargetModel = TargetModel.LEADS
    candidate_index: int | None = None  # position of assignee in the resolved pool
    rule_cap: int = 0
    # Matched rule and its resolved pool, so the commit can re-pick against
    # counters read under the rule lock.
    rule: AssignmentRule | None = field(default=None, compare=False, repr=False)
    candidate_pool: tuple[str, ...] = field(default=(), compare=False, repr=False)

    @property
    def is_no_match(self) -> bool:
        return self.reason == AssignmentReason.NO_MATCH


@dataclass(frozen=True)
class AssignmentLogEntry:
    """Append-only history record; never mutated after creation."""

    organization_id: str
    lead_id: str
    target_model: TargetModel
    rule_id: str | None
    user_id: str | None
    reason: AssignmentReason
    rule_name: str | None = None
    assigned_to_name: str | None = None
    previous_owner_id: str | None = None
    assigned_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=lambda: str(uuid4()))

    @classmethod
    def from_decision(cls, decision: AssignmentDecision, at: datetime | None = None) -> "AssignmentLogEntry":
        return cls(
            organization_id=decision.organization_id,
            lead_id=decision.lead_id,
            target_model=decision.target_model,
            rule_id=decision.matched_rule_id,
            user_id=decision.assigned_to_id,
            reason=decision.reason,
            rule_name=decision.matched_rule_name,
            assigned_to_name=decision.assigned_to_name or None,
            previous_owner_id=decision.previous_owner_id,
            assigned_at=at or datetime.now(timezone.utc),
        )
