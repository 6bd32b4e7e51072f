"""Seed the routing tables from a JSON fixture file.

Usage:
    python -m lead_routing.tools.seed_db fixtures.json
    python -m lead_routing.tools.seed_db fixtures.json --drop  # drop existing data first

Fixture layout::

    {
      "organization_id": "O1",
      "users": [{"id": "U1", "full_name": "Ada"}],
      "teams": [{"id": "T1", "members": ["U1", "U2"]}],
      "rules": [{"id": "R1", "name": "US", "rule_type": "round_robin", ...}],
      "territories": [{"id": "TR1", "name": "West", "conditions": {"state": ["CA"]}, ...}],
      "leads": [{"id": "L1", "attributes": {"country_id": "US"}, "assigned_to": null}]
    }
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, time, timedelta, timezone
from pathlib import Path
from typing import Any

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from lead_routing.adapters.persistence.database import async_session_factory
from lead_routing.adapters.persistence.models import (
    AssignmentHistoryModel,
    AssignmentRuleModel,
    FairnessCounterModel,
    LeadModel,
    RoundRobinStateModel,
    TeamMemberModel,
    TerritoryModel,
    UserModel,
)
from lead_routing.domain.value_objects.conditions import ConditionSet
from lead_routing.domain.value_objects.enums import AssignToType, RuleType, TargetModel

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)


def _parse_time(raw: str | None) -> time | None:
    if not raw:
        return None
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(raw.strip(), fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Unrecognized time of day: {raw!r}")


def rule_values(raw: dict[str, Any], organization_id: str) -> dict[str, Any]:
    """Validate one fixture rule and map it to AssignmentRuleModel columns."""
    conditions = ConditionSet.from_raw(raw.get("conditions"))
    for error in conditions.errors:
        logger.warning("Rule %s: invalid condition will never match: %s", raw["id"], error)

    strategy = raw.get("strategy")
    return {
        "id": str(raw["id"]),
        "organization_id": str(raw.get("organization_id", organization_id)),
        "name": raw["name"],
        "target_model": TargetModel(raw.get("target_model", "leads")).value,
        "rule_type": RuleType(raw["rule_type"]).value,
        "strategy": RuleType(strategy).value if strategy else None,
        "priority": int(raw.get("priority", 0)),
        "is_active": bool(raw.get("is_active", True)),
        "conditions": raw.get("conditions") or [],
        "assign_to_type": AssignToType(raw.get("assign_to_type", "user")).value,
        "candidate_ids": [str(c) for c in raw.get("candidate_ids", [])],
        "candidate_weights": {str(k): int(v) for k, v in raw.get("candidate_weights", {}).items()},
        "max_assignments_per_user": int(raw.get("max_assignments_per_user", 0)),
        "assignment_window_start": _parse_time(raw.get("assignment_window_start")),
        "assignment_window_end": _parse_time(raw.get("assignment_window_end")),
        "active_days": _active_days(raw.get("active_days")),
    }


def territory_values(raw: dict[str, Any], organization_id: str) -> dict[str, Any]:
    """Validate one fixture territory and map it to TerritoryModel columns."""
    conditions = ConditionSet.from_raw(raw.get("conditions"))
    for error in conditions.errors:
        logger.warning("Territory %s: invalid condition will never match: %s", raw["id"], error)

    strategy = raw.get("strategy")
    return {
        "id": str(raw["id"]),
        "organization_id": str(raw.get("organization_id", organization_id)),
        "name": raw["name"],
        "territory_type": raw.get("territory_type", "geographic"),
        "strategy": RuleType(strategy).value if strategy else None,
        "conditions": raw.get("conditions") or {},
        "assigned_users": [str(u) for u in raw.get("assigned_users", [])],
        "assigned_teams": [str(t) for t in raw.get("assigned_teams", [])],
        "priority": int(raw.get("priority", 0)),
        "is_active": bool(raw.get("is_active", True)),
    }


def _active_days(raw: list[int] | None) -> list[int]:
    days = sorted({int(d) for d in raw or []})
    bad = [d for d in days if not 1 <= d <= 7]
    if bad:
        raise ValueError(f"active_days must be ISO weekdays 1-7, got {bad}")
    return days


async def _drop_data(session: AsyncSession) -> None:
    """Delete all routing data."""
    for model in [
        AssignmentHistoryModel,
        FairnessCounterModel,
        RoundRobinStateModel,
        LeadModel,
        TeamMemberModel,
        TerritoryModel,
        AssignmentRuleModel,
        UserModel,
    ]:
        await session.execute(delete(model))
    await session.commit()
    logger.info("Dropped all existing data")


async def seed(fixtures: dict[str, Any], drop: bool = False) -> dict[str, int]:
    """Main seed function. Existing rows (by id) are skipped. Returns counts."""
    org = str(fixtures.get("organization_id", ""))
    counts = {"users": 0, "team_members": 0, "rules": 0, "territories": 0, "leads": 0}

    async with async_session_factory() as session:
        if drop:
            await _drop_data(session)

        for u in fixtures.get("users", []):
            if await session.get(UserModel, str(u["id"])):
                logger.debug("User '%s' already exists, skipping", u["id"])
                continue
            session.add(UserModel(id=str(u["id"]), organization_id=org, full_name=u["full_name"]))
            counts["users"] += 1

        # joined_at follows fixture order so round-robin over team members is reproducible
        base = datetime.now(timezone.utc)
        for team in fixtures.get("teams", []):
            for pos, user_id in enumerate(team.get("members", [])):
                session.add(
                    TeamMemberModel(
                        team_id=str(team["id"]),
                        user_id=str(user_id),
                        joined_at=base + timedelta(microseconds=pos),
                    )
                )
                counts["team_members"] += 1

        for raw in fixtures.get("rules", []):
            values = rule_values(raw, org)
            if await session.get(AssignmentRuleModel, values["id"]):
                logger.debug("Rule '%s' already exists, skipping", values["id"])
                continue
            session.add(AssignmentRuleModel(**values))
            counts["rules"] += 1

        for raw in fixtures.get("territories", []):
            values = territory_values(raw, org)
            if await session.get(TerritoryModel, values["id"]):
                logger.debug("Territory '%s' already exists, skipping", values["id"])
                continue
            session.add(TerritoryModel(**values))
            counts["territories"] += 1

        for lead in fixtures.get("leads", []):
            if await session.get(LeadModel, str(lead["id"])):
                logger.debug("Lead '%s' already exists, skipping", lead["id"])
                continue
            session.add(
                LeadModel(
                    id=str(lead["id"]),
                    organization_id=str(lead.get("organization_id", org)),
                    attributes=lead.get("attributes", {}),
                    assigned_to=lead.get("assigned_to"),
                )
            )
            counts["leads"] += 1

        await session.commit()

    logger.info(
        "Seed complete: %d users, %d team members, %d rules, %d territories, %d leads",
        counts["users"], counts["team_members"], counts["rules"], counts["territories"], counts["leads"],
    )
    return counts


def main():
    parser = argparse.ArgumentParser(description="Seed the lead routing database from JSON")
    parser.add_argument("fixtures", type=str, help="Path to the JSON fixture file")
    parser.add_argument(
        "--drop", action="store_true",
        help="Drop existing data before seeding",
    )
    args = parser.parse_args()

    path = Path(args.fixtures)
    if not path.exists():
        logger.error("Fixture file not found: %s", path)
        sys.exit(1)

    fixtures = json.loads(path.read_text(encoding="utf-8"))
    asyncio.run(seed(fixtures, drop=args.drop))


if __name__ == "__main__":
    main()
