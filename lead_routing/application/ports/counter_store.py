"""Port interface for durable fairness counters."""

from abc import ABC, abstractmethod

from lead_routing.domain.entities.fairness import FairnessState


class CounterStore(ABC):
    @abstractmethod
    async def load_state(self, organization_id: str, rule_id: str) -> FairnessState:
        """Snapshot of per-user counts and the round-robin cursor for a rule.

        Unknown rules yield an empty state (created lazily on first commit).
        """
        ...

    @abstractmethod
    async def increment(
        self,
        organization_id: str,
        rule_id: str,
        user_id: str,
        cursor: int,
        cap: int = 0,
    ) -> bool:
        """Atomically bump the (org, rule, user) counter and move the cursor.

        When *cap* > 0 the increment is refused (returns False) if the counter
        already reached it; nothing is changed in that case.
        """
        ...
