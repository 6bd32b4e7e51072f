"""Stats endpoints — per-user load and rule effectiveness."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from lead_routing.application.errors import RoutingError
from lead_routing.application.services.stats_reporter import StatsReporter
from lead_routing.domain.value_objects.enums import TargetModel
from lead_routing.infrastructure.api.dependencies import get_stats_reporter

router = APIRouter(prefix="/organizations/{org_id}/stats", tags=["stats"])


class UserStatsItem(BaseModel):
    user_id: str
    user_name: str | None
    assigned_count: int
    last_assigned_at: datetime | None
    assignments_today: int


class RuleStatsItem(BaseModel):
    rule_id: str
    rule_name: str | None
    total_matches: int
    total_assignments: int
    match_rate: float
    assignments_today: int
    assignments_this_week: int
    last_used_at: datetime | None
    unique_assignees: int


@router.get("/users", response_model=list[UserStatsItem])
async def stats_by_user(
    org_id: str,
    target_model: TargetModel | None = None,
    reporter: StatsReporter = Depends(get_stats_reporter),
):
    try:
        rows = await reporter.stats_by_user(org_id, target_model)
    except RoutingError as e:
        raise HTTPException(status_code=503 if e.retryable else 500, detail=str(e))
    return [UserStatsItem(**vars(r)) for r in rows]


@router.get("/rules", response_model=list[RuleStatsItem])
async def rule_effectiveness(
    org_id: str,
    reporter: StatsReporter = Depends(get_stats_reporter),
):
    try:
        rows = await reporter.rule_effectiveness(org_id)
    except RoutingError as e:
        raise HTTPException(status_code=503 if e.retryable else 500, detail=str(e))
    return [RuleStatsItem(**vars(r)) for r in rows]
