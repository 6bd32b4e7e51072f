"""FairnessTracker — cap-aware candidate choice over durable counters."""

from __future__ import annotations

import logging

from lead_routing.application.errors import CapacityConflict, collaborator
from lead_routing.application.ports.counter_store import CounterStore
from lead_routing.domain.entities.assignment import AssignmentDecision
from lead_routing.domain.entities.assignment_rule import AssignmentRule
from lead_routing.domain.policies.round_robin import Selection, pick_next

logger = logging.getLogger(__name__)


class FairnessTracker:
    def __init__(self, counters: CounterStore):
        self._counters = counters

    async def next_candidate(
        self,
        organization_id: str,
        rule: AssignmentRule,
        pool: list[str],
        counters: CounterStore | None = None,
    ) -> Selection | None:
        """Dry run: which candidate would *rule* pick next? Never mutates state.

        The state snapshot is read first; the strategy itself is pure, so no
        I/O happens while deciding. *counters* lets the commit path read
        through its unit of work while it holds the rule lock.
        """
        if not pool:
            return None
        store = counters or self._counters
        with collaborator("counter_store"):
            state = await store.load_state(organization_id, rule.id)
        return pick_next(
            rule.selection_strategy,
            pool,
            state,
            cap=rule.max_assignments_per_user,
            weights=rule.candidate_weights,
        )

    async def record(self, decision: AssignmentDecision, counters: CounterStore | None = None) -> None:
        """Count a committed assignment. *counters* lets the caller pass the
        transaction-bound store of its unit of work.

        Raises CapacityConflict if the store refused the increment.
        """
        if decision.matched_rule_id is None or decision.assigned_to_id is None:
            return
        store = counters or self._counters
        with collaborator("counter_store"):
            accepted = await store.increment(
                decision.organization_id,
                decision.matched_rule_id,
                decision.assigned_to_id,
                cursor=decision.candidate_index if decision.candidate_index is not None else -1,
                cap=decision.rule_cap,
            )
        if not accepted:
            logger.warning(
                "Rule %s: counter for %s hit cap %d concurrently",
                decision.matched_rule_id, decision.assigned_to_id, decision.rule_cap,
            )
            raise CapacityConflict(decision.matched_rule_id, decision.assigned_to_id)
