"""AssignLeadUseCase — full pipeline: record → select → commit → notify."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from lead_routing.application.errors import (
    CapacityConflict,
    LeadNotFoundError,
    RoutingError,
    collaborator,
)
from lead_routing.application.ports.event_sink import (
    LEAD_ASSIGNED,
    LEAD_REASSIGNMENT_FAILED,
    EventSink,
)
from lead_routing.application.ports.lead_store import LeadStore
from lead_routing.application.ports.unit_of_work import UnitOfWork
from lead_routing.application.services.assignment_executor import AssignmentExecutor
from lead_routing.application.services.assignment_selector import AssignmentSelector
from lead_routing.domain.entities.assignment import AssignmentDecision, AssignmentLogEntry
from lead_routing.domain.value_objects.enums import TargetModel

logger = logging.getLogger(__name__)


class AssignLeadUseCase:
    """The engine's single entry point for routing one lead."""

    def __init__(
        self,
        leads: LeadStore,
        selector: AssignmentSelector,
        executor: AssignmentExecutor,
        uow_factory: Callable[[], UnitOfWork],
        events: EventSink,
        max_attempts: int = 3,
        event_timeout: float = 0.5,
    ):
        self._leads = leads
        self._selector = selector
        self._executor = executor
        self._uow_factory = uow_factory
        self._events = events
        self._max_attempts = max(1, max_attempts)
        self._event_timeout = event_timeout

    async def execute(
        self,
        organization_id: str,
        lead_id: str,
        override_conditions: dict[str, Any] | None = None,
        target_model: TargetModel = TargetModel.LEADS,
        timeout: float | None = None,
    ) -> AssignmentDecision:
        """Route a lead and commit the result.

        Args:
            organization_id: tenant scope of the lead.
            lead_id: lead to route.
            override_conditions: attributes merged over the stored record.
            target_model: which rule set to evaluate.
            timeout: optional deadline for the whole assign + commit sequence.

        Returns:
            The decision that took effect. no_match and already_assigned are
            ordinary results, not errors.

        Raises:
            LeadNotFoundError: the lead does not exist in the organization.
            CollaboratorFailure / LockTimeoutError: retryable infrastructure errors.
            CapacityConflict: every attempt lost a capacity race.
            Retryable errors also publish a lead.reassignment_failed event.
        """
        if timeout is None:
            return await self._run(organization_id, lead_id, override_conditions, target_model)
        async with asyncio.timeout(timeout):
            return await self._run(organization_id, lead_id, override_conditions, target_model)

    async def _run(
        self,
        organization_id: str,
        lead_id: str,
        override_conditions: dict[str, Any] | None,
        target_model: TargetModel,
    ) -> AssignmentDecision:
        conflict: CapacityConflict | None = None

        for attempt in range(1, self._max_attempts + 1):
            with collaborator("lead_store"):
                record = await self._leads.get_record(organization_id, lead_id)
                if record is None:
                    raise LeadNotFoundError(organization_id, lead_id)
                owner = await self._leads.get_owner(organization_id, lead_id)
            if override_conditions:
                record = {**record, **override_conditions}

            decision = await self._selector.assign(
                organization_id, lead_id, record, owner, target_model=target_model
            )
            logger.info(
                "Lead %s: decision=%s rule=%s assignee=%s",
                lead_id, decision.reason.value, decision.matched_rule_id, decision.assigned_to_id,
            )

            if not decision.changed:
                await self._log_decision(decision)
                return decision

            try:
                final = await self._executor.commit(decision)
            except CapacityConflict as exc:
                logger.warning(
                    "Lead %s: capacity race on attempt %d/%d, re-selecting",
                    lead_id, attempt, self._max_attempts,
                )
                conflict = exc
                continue
            except RoutingError as exc:
                if exc.retryable:
                    await self._notify_failure(decision, exc)
                raise

            if final.changed:
                await self._notify(LEAD_ASSIGNED, _payload(final))
            else:
                await self._log_decision(final)
            return final

        assert conflict is not None
        await self._notify_failure(decision, conflict)
        raise conflict

    async def _log_decision(self, decision: AssignmentDecision) -> None:
        """Non-changing decisions are logged too; stats count matches from them."""
        async with self._uow_factory() as uow:
            with collaborator("assignment_log"):
                await uow.assignment_log.append(AssignmentLogEntry.from_decision(decision))
                await uow.commit()

    async def _notify_failure(self, decision: AssignmentDecision, exc: RoutingError) -> None:
        await self._notify(LEAD_REASSIGNMENT_FAILED, {**_payload(decision), "error": str(exc)})

    async def _notify(self, event_type: str, payload: dict) -> None:
        """Best effort: a slow or broken sink never fails the assignment."""
        try:
            await asyncio.wait_for(self._events.publish(event_type, payload), self._event_timeout)
        except Exception as e:
            logger.warning("Event %s for lead %s not delivered: %s", event_type, payload.get("lead_id"), e)


def _payload(decision: AssignmentDecision) -> dict:
    return {
        "lead_id": decision.lead_id,
        "organization_id": decision.organization_id,
        "target_model": decision.target_model.value,
        "assigned_to_id": decision.assigned_to_id,
        "assigned_to_name": decision.assigned_to_name,
        "previous_owner_id": decision.previous_owner_id,
        "reason": decision.reason.value,
        "rule_id": decision.matched_rule_id,
    }
