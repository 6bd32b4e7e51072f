"""AssignmentSelector — first-match-wins routing decision for one lead."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from lead_routing.application.errors import collaborator
from lead_routing.application.ports.team_directory import TeamDirectory
from lead_routing.application.services.candidate_pool import CandidatePool
from lead_routing.application.services.fairness_tracker import FairnessTracker
from lead_routing.application.services.rule_catalog import RuleCatalog
from lead_routing.domain.entities.assignment import AssignmentDecision
from lead_routing.domain.policies.condition_evaluator import matches
from lead_routing.domain.value_objects.enums import AssignmentReason, TargetModel

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AssignmentSelector:
    """Composes RuleCatalog + CandidatePool + FairnessTracker. Writes nothing."""

    def __init__(
        self,
        catalog: RuleCatalog,
        pool: CandidatePool,
        fairness: FairnessTracker,
        directory: TeamDirectory,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._catalog = catalog
        self._pool = pool
        self._fairness = fairness
        self._directory = directory
        self._clock = clock

    async def assign(
        self,
        organization_id: str,
        lead_id: str,
        record: Mapping[str, Any],
        current_owner: str | None,
        target_model: TargetModel = TargetModel.LEADS,
        now: datetime | None = None,
    ) -> AssignmentDecision:
        """Pick exactly one assignee, or report no match.

        Pipeline:
        1. Ordered eligible rules from the catalog
        2. Skip rules whose conditions don't match the record
        3. Resolve candidates; an empty pool falls through
        4. Ask the fairness tracker; a fully capped pool falls through
        5. Same as current owner → already_assigned, otherwise auto/re-assignment
        """
        now = now or self._clock()
        rules = await self._catalog.active_rules_for(organization_id, target_model, now)

        for rule in rules:
            if not matches(rule.conditions, record):
                continue

            candidates = await self._pool.resolve(rule)
            if not candidates:
                logger.warning("Lead %s: rule %s matched but has no candidates", lead_id, rule.id)
                continue

            selection = await self._fairness.next_candidate(organization_id, rule, candidates)
            if selection is None:
                logger.info("Lead %s: rule %s matched but every candidate is at cap", lead_id, rule.id)
                continue

            with collaborator("team_directory"):
                name = await self._directory.display_name(selection.user_id) or ""

            if selection.user_id == current_owner:
                reason, changed = AssignmentReason.ALREADY_ASSIGNED, False
            elif current_owner is None:
                reason, changed = AssignmentReason.AUTO_ASSIGNMENT, True
            else:
                reason, changed = AssignmentReason.REASSIGNMENT, True

            return AssignmentDecision(
                lead_id=lead_id,
                organization_id=organization_id,
                assigned_to_id=selection.user_id,
                assigned_to_name=name,
                reason=reason,
                changed=changed,
                matched_rule_id=rule.id,
                matched_rule_name=rule.name,
                previous_owner_id=current_owner,
                target_model=target_model,
                candidate_index=selection.index,
                rule_cap=rule.max_assignments_per_user,
                rule=rule,
                candidate_pool=tuple(candidates),
            )

        return AssignmentDecision(
            lead_id=lead_id,
            organization_id=organization_id,
            assigned_to_id=None,
            assigned_to_name="",
            reason=AssignmentReason.NO_MATCH,
            changed=False,
            previous_owner_id=current_owner,
            target_model=target_model,
        )
