"""FairnessState — per-rule counters and round-robin cursor."""

from dataclasses import dataclass, field


@dataclass
class FairnessState:
    rule_id: str
    assignment_counts: dict[str, int] = field(default_factory=dict)
    last_assigned_index: int = -1  # -1 = nothing assigned yet

    def count_for(self, user_id: str) -> int:
        return self.assignment_counts.get(user_id, 0)

    def is_capped(self, user_id: str, cap: int) -> bool:
        return cap > 0 and self.count_for(user_id) >= cap
