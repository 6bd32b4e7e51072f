"""AssignmentExecutor — commit a decision under the per-lead lock."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace

from lead_routing.application.errors import CapacityConflict, collaborator
from lead_routing.application.ports.lead_lock import LeadLock
from lead_routing.application.ports.team_directory import TeamDirectory
from lead_routing.application.ports.unit_of_work import UnitOfWork
from lead_routing.application.services.fairness_tracker import FairnessTracker
from lead_routing.domain.entities.assignment import AssignmentDecision, AssignmentLogEntry
from lead_routing.domain.value_objects.enums import AssignmentReason

logger = logging.getLogger(__name__)


def lead_lock_key(organization_id: str, lead_id: str) -> str:
    return f"lead-assign:{organization_id}:{lead_id}"


def rule_lock_key(organization_id: str, rule_id: str) -> str:
    return f"rule-fairness:{organization_id}:{rule_id}"


class AssignmentExecutor:
    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        lock: LeadLock,
        fairness: FairnessTracker,
        lock_timeout: float = 5.0,
        directory: TeamDirectory | None = None,
    ):
        self._uow_factory = uow_factory
        self._lock = lock
        self._fairness = fairness
        self._lock_timeout = lock_timeout
        self._directory = directory

    async def commit(self, decision: AssignmentDecision) -> AssignmentDecision:
        """Apply a changing decision; returns the decision that took effect.

        Order, all-or-nothing: lead lock → rule lock → owner check → re-pick
        → owner write → log append → counter increment → transaction commit.

        The owner write is conditional on the owner the decision was computed
        against: if a concurrent trigger got there first, nothing is written
        and an already_assigned decision for the actual owner is returned.

        The rule lock serializes the fairness choice with the counter update,
        so concurrent leads on one rule never pick from the same cursor. The
        candidate is re-picked from the counters seen under that lock and may
        differ from the selector's dry run. Locks are always taken lead first,
        then rule.

        The team directory is never called under the rule lock. A re-pick
        onto a user whose name is not known yet writes nothing, releases the
        rule lock, looks the name up and runs the pass again.
        """
        if not decision.changed:
            return decision

        lead_key = lead_lock_key(decision.organization_id, decision.lead_id)
        rule_key = rule_lock_key(decision.organization_id, decision.matched_rule_id or "")
        names = {decision.assigned_to_id: decision.assigned_to_name}
        async with self._lock.hold(lead_key, self._lock_timeout):
            while True:
                async with self._lock.hold(rule_key, self._lock_timeout):
                    result, unnamed = await self._apply(decision, names)
                if unnamed is None:
                    return result
                with collaborator("team_directory"):
                    names[unnamed] = await self._directory.display_name(unnamed) or ""

    async def _apply(
        self, decision: AssignmentDecision, names: dict[str | None, str]
    ) -> tuple[AssignmentDecision, str | None]:
        """One pass under both locks.

        Returns the decision that took effect, or the user whose display
        name has to be fetched before the pass is repeated.
        """
        async with self._uow_factory() as uow:
            with collaborator("lead_store"):
                owner = await uow.leads.get_owner(decision.organization_id, decision.lead_id)

            if owner != decision.previous_owner_id:
                logger.info(
                    "Lead %s: owner changed concurrently (%s → %s), skipping write",
                    decision.lead_id, decision.previous_owner_id, owner,
                )
                await uow.rollback()
                return _already_owned(decision, owner), None

            repicked, unnamed = await self._repick(decision, uow, names)
            if unnamed is not None or not repicked.changed:
                await uow.rollback()
                return repicked, unnamed

            with collaborator("lead_store"):
                await uow.leads.set_owner(
                    repicked.organization_id, repicked.lead_id, repicked.assigned_to_id
                )
            with collaborator("assignment_log"):
                await uow.assignment_log.append(AssignmentLogEntry.from_decision(repicked))
            await self._fairness.record(repicked, counters=uow.counters)

            with collaborator("unit_of_work"):
                await uow.commit()

        logger.info(
            "Lead %s → %s via rule %s (%s)",
            repicked.lead_id, repicked.assigned_to_id,
            repicked.matched_rule_id, repicked.reason.value,
        )
        return repicked, None

    async def _repick(
        self, decision: AssignmentDecision, uow: UnitOfWork, names: dict[str | None, str]
    ) -> tuple[AssignmentDecision, str | None]:
        """Run the rule's strategy again against the locked counter snapshot."""
        if decision.rule is None or not decision.candidate_pool:
            return decision, None

        selection = await self._fairness.next_candidate(
            decision.organization_id,
            decision.rule,
            list(decision.candidate_pool),
            counters=uow.counters,
        )
        if selection is None:
            # Pool filled up since the dry run; the caller re-selects.
            raise CapacityConflict(decision.matched_rule_id, decision.assigned_to_id)
        if selection.user_id == decision.assigned_to_id:
            return replace(decision, candidate_index=selection.index), None
        if self._directory is not None and selection.user_id not in names:
            return decision, selection.user_id

        logger.info(
            "Lead %s: rule %s advanced concurrently, %s → %s",
            decision.lead_id, decision.matched_rule_id, decision.assigned_to_id, selection.user_id,
        )
        if selection.user_id == decision.previous_owner_id:
            reason, changed = AssignmentReason.ALREADY_ASSIGNED, False
        elif decision.previous_owner_id is None:
            reason, changed = AssignmentReason.AUTO_ASSIGNMENT, True
        else:
            reason, changed = AssignmentReason.REASSIGNMENT, True
        return replace(
            decision,
            assigned_to_id=selection.user_id,
            assigned_to_name=names.get(selection.user_id, ""),
            reason=reason,
            changed=changed,
            candidate_index=selection.index,
        ), None


def _already_owned(decision: AssignmentDecision, owner: str | None) -> AssignmentDecision:
    if owner == decision.assigned_to_id:
        return replace(
            decision,
            reason=AssignmentReason.ALREADY_ASSIGNED,
            changed=False,
            previous_owner_id=owner,
        )
    return replace(
        decision,
        assigned_to_id=owner,
        assigned_to_name="",
        reason=AssignmentReason.ALREADY_ASSIGNED,
        changed=False,
        matched_rule_id=None,
        matched_rule_name=None,
        previous_owner_id=owner,
        candidate_index=None,
        rule=None,
        candidate_pool=(),
    )
