"""Assignment endpoints — route one lead, invalidate the rule cache."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from lead_routing.application.errors import LeadNotFoundError, RoutingError
from lead_routing.application.services.rule_catalog import RuleCatalog
from lead_routing.application.use_cases.assign_lead import AssignLeadUseCase
from lead_routing.domain.entities.assignment import AssignmentDecision
from lead_routing.domain.value_objects.enums import AssignmentReason, TargetModel
from lead_routing.infrastructure.api.dependencies import get_assign_lead_uc, get_rule_catalog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations/{org_id}", tags=["assignment"])


class AssignRequest(BaseModel):
    target_model: TargetModel = TargetModel.LEADS
    override_conditions: dict[str, Any] = Field(default_factory=dict)


class AssignResponse(BaseModel):
    lead_id: str
    assigned_to_id: str | None
    assigned_to_name: str
    reason: AssignmentReason
    changed: bool
    matched_rule_id: str | None
    matched_rule_name: str | None
    previous_owner_id: str | None

    @classmethod
    def from_decision(cls, decision: AssignmentDecision) -> "AssignResponse":
        return cls(
            lead_id=decision.lead_id,
            assigned_to_id=decision.assigned_to_id,
            assigned_to_name=decision.assigned_to_name,
            reason=decision.reason,
            changed=decision.changed,
            matched_rule_id=decision.matched_rule_id,
            matched_rule_name=decision.matched_rule_name,
            previous_owner_id=decision.previous_owner_id,
        )


@router.post("/leads/{lead_id}/assign", response_model=AssignResponse)
async def assign_lead(
    org_id: str,
    lead_id: str,
    body: AssignRequest | None = None,
    uc: AssignLeadUseCase = Depends(get_assign_lead_uc),
):
    """Route a lead through the organization's rules and commit the result.

    no_match and already_assigned are 200 responses with ``changed: false``.
    """
    body = body or AssignRequest()
    try:
        decision = await uc.execute(
            org_id,
            lead_id,
            override_conditions=body.override_conditions,
            target_model=body.target_model,
        )
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RoutingError as e:
        if e.retryable:
            logger.warning("Assignment of lead %s failed (retryable): %s", lead_id, e)
            raise HTTPException(status_code=503, detail=str(e))
        logger.exception("Assignment of lead %s failed", lead_id)
        raise HTTPException(status_code=500, detail=str(e))
    return AssignResponse.from_decision(decision)


@router.post("/rules/invalidate")
async def invalidate_rules(org_id: str, catalog: RuleCatalog = Depends(get_rule_catalog)):
    """Drop cached rules so CRUD changes take effect on the next assignment."""
    catalog.invalidate(org_id)
    return {"status": "ok", "organization_id": org_id}
