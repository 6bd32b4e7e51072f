"""RuleCatalog — priority-ordered, currently-eligible rules for an organization."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime

from lead_routing.application.errors import collaborator
from lead_routing.application.ports.rule_repo import RuleRepository
from lead_routing.domain.entities.assignment_rule import AssignmentRule
from lead_routing.domain.policies.rule_window import is_rule_eligible
from lead_routing.domain.value_objects.enums import TargetModel

logger = logging.getLogger(__name__)


class RuleCache:
    """Process-wide TTL cache shared by the per-request catalogs.

    Staleness only delays a rule change taking effect, so a few seconds is fine.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, str], tuple[float, list[AssignmentRule]]] = {}

    def get(self, organization_id: str, target_model: TargetModel) -> list[AssignmentRule] | None:
        key = (organization_id, target_model.value)
        hit = self._entries.get(key)
        if hit is None:
            return None
        expires_at, rules = hit
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return rules

    def put(self, organization_id: str, target_model: TargetModel, rules: list[AssignmentRule]) -> None:
        if self._ttl <= 0:
            return
        self._entries[(organization_id, target_model.value)] = (self._clock() + self._ttl, rules)

    def invalidate(self, organization_id: str) -> int:
        keys = [k for k in self._entries if k[0] == organization_id]
        for key in keys:
            del self._entries[key]
        return len(keys)


class RuleCatalog:
    """Loads rules + territories, merges them into one evaluation order."""

    def __init__(self, repository: RuleRepository, cache: RuleCache | None = None):
        self._repo = repository
        self._cache = cache

    async def active_rules_for(
        self, organization_id: str, target_model: TargetModel, now: datetime
    ) -> list[AssignmentRule]:
        """Rules sorted by (priority ASC, created_at ASC), minus those that are
        inactive or outside their assignment window / active days at *now*.
        """
        rules = await self._load(organization_id, target_model)
        return [r for r in rules if is_rule_eligible(r, now)]

    def invalidate(self, organization_id: str) -> None:
        if self._cache is not None:
            dropped = self._cache.invalidate(organization_id)
            logger.info("Rule cache invalidated for org %s (%d entries)", organization_id, dropped)

    async def _load(self, organization_id: str, target_model: TargetModel) -> list[AssignmentRule]:
        if self._cache is not None:
            cached = self._cache.get(organization_id, target_model)
            if cached is not None:
                return cached

        with collaborator("rule_repository"):
            rules = await self._repo.list_active_rules(organization_id, target_model)
            territories = await self._repo.list_active_territories(organization_id)

        merged = [
            r for r in rules
            if r.organization_id == organization_id and r.target_model == target_model
        ]
        merged.extend(
            t.as_rule(target_model) for t in territories if t.organization_id == organization_id
        )
        merged.sort(key=AssignmentRule.sort_key)

        for rule in merged:
            for error in rule.conditions.errors:
                # Inert, but operators need to hear about it
                logger.warning(
                    "Rule %s (%s) has an invalid condition and will never match: %s",
                    rule.id, rule.name, error,
                )

        if self._cache is not None:
            self._cache.put(organization_id, target_model, merged)
        return merged
