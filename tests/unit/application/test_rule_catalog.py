"""Tests for RuleCatalog and its TTL cache."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from lead_routing.adapters.memory.stores import InMemoryRuleRepository
from lead_routing.application.errors import CollaboratorFailure
from lead_routing.application.ports.rule_repo import RuleRepository
from lead_routing.application.services.rule_catalog import RuleCache, RuleCatalog
from lead_routing.domain.entities.territory import Territory
from lead_routing.domain.value_objects.enums import RuleType, TargetModel

# ─── Fakes ──────────────────────────────────────────────────────────


class CountingRuleRepo(InMemoryRuleRepository):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.loads = 0

    async def list_active_rules(self, organization_id, target_model):
        self.loads += 1
        return await super().list_active_rules(organization_id, target_model)


class BrokenRuleRepo(RuleRepository):
    async def list_active_rules(self, organization_id, target_model):
        raise ConnectionError("db down")

    async def list_active_territories(self, organization_id):
        return []


class FakeClock:
    def __init__(self):
        self.t = 1000.0

    def __call__(self):
        return self.t


# ─── Tests ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_rules_sorted_by_priority_then_creation(make_rule, org, now):
    repo = InMemoryRuleRepository([
        make_rule("R-late", priority=1, created_at=datetime(2026, 5, 1, tzinfo=timezone.utc)),
        make_rule("R-low", priority=9),
        make_rule("R-early", priority=1, created_at=datetime(2026, 1, 1, tzinfo=timezone.utc)),
    ])
    rules = await RuleCatalog(repo).active_rules_for(org, TargetModel.LEADS, now)
    assert [r.id for r in rules] == ["R-early", "R-late", "R-low"]


@pytest.mark.asyncio
async def test_territories_merged_into_same_pass(make_rule, org, now):
    repo = InMemoryRuleRepository(
        rules=[make_rule("R1", priority=2)],
        territories=[Territory(id="T1", organization_id=org, name="West", priority=1)],
    )
    rules = await RuleCatalog(repo).active_rules_for(org, TargetModel.LEADS, now)
    assert [r.id for r in rules] == ["T1", "R1"]
    assert rules[0].rule_type == RuleType.TERRITORY


@pytest.mark.asyncio
async def test_filters_inactive_other_orgs_and_target_models(make_rule, org, now):
    repo = InMemoryRuleRepository([
        make_rule("R1"),
        make_rule("R-off", is_active=False),
        make_rule("R-other-org", organization_id="O2"),
        make_rule("R-contacts", target_model=TargetModel.CONTACTS),
    ])
    rules = await RuleCatalog(repo).active_rules_for(org, TargetModel.LEADS, now)
    assert [r.id for r in rules] == ["R1"]


@pytest.mark.asyncio
async def test_window_excluded_rule_is_not_returned(make_rule, org, now):
    """now is Monday: a weekend-only rule must not appear, even though it exists."""
    repo = InMemoryRuleRepository([
        make_rule("R-weekend", priority=1, active_days=frozenset({6, 7})),
        make_rule("R-any", priority=2),
    ])
    rules = await RuleCatalog(repo).active_rules_for(org, TargetModel.LEADS, now)
    assert [r.id for r in rules] == ["R-any"]


@pytest.mark.asyncio
async def test_cache_serves_repeated_loads(make_rule, org, now):
    repo = CountingRuleRepo([make_rule("R1")])
    catalog = RuleCatalog(repo, RuleCache(ttl_seconds=30))
    await catalog.active_rules_for(org, TargetModel.LEADS, now)
    await catalog.active_rules_for(org, TargetModel.LEADS, now)
    assert repo.loads == 1


@pytest.mark.asyncio
async def test_cache_expires_after_ttl(make_rule, org, now):
    clock = FakeClock()
    repo = CountingRuleRepo([make_rule("R1")])
    catalog = RuleCatalog(repo, RuleCache(ttl_seconds=5, clock=clock))
    await catalog.active_rules_for(org, TargetModel.LEADS, now)
    clock.t += 5
    await catalog.active_rules_for(org, TargetModel.LEADS, now)
    assert repo.loads == 2


@pytest.mark.asyncio
async def test_invalidate_drops_cached_rules(make_rule, org, now):
    repo = CountingRuleRepo([make_rule("R1")])
    catalog = RuleCatalog(repo, RuleCache(ttl_seconds=30))
    await catalog.active_rules_for(org, TargetModel.LEADS, now)

    repo.rules.append(make_rule("R2", priority=-1))
    catalog.invalidate(org)
    rules = await catalog.active_rules_for(org, TargetModel.LEADS, now)
    assert [r.id for r in rules] == ["R2", "R1"]
    assert repo.loads == 2


def test_zero_ttl_disables_cache(make_rule, org):
    cache = RuleCache(ttl_seconds=0)
    cache.put(org, TargetModel.LEADS, [make_rule()])
    assert cache.get(org, TargetModel.LEADS) is None


def test_cache_invalidate_is_scoped_to_organization(make_rule):
    cache = RuleCache(ttl_seconds=30)
    cache.put("O1", TargetModel.LEADS, [make_rule()])
    cache.put("O1", TargetModel.CONTACTS, [make_rule()])
    cache.put("O2", TargetModel.LEADS, [make_rule()])
    assert cache.invalidate("O1") == 2
    assert cache.get("O2", TargetModel.LEADS) is not None


@pytest.mark.asyncio
async def test_invalid_condition_is_logged_and_rule_kept(make_rule, org, now, caplog):
    repo = InMemoryRuleRepository([
        make_rule("R-bad", conditions=[{"field": "x", "operator": "regex", "value": "."}]),
    ])
    rules = await RuleCatalog(repo).active_rules_for(org, TargetModel.LEADS, now)
    assert [r.id for r in rules] == ["R-bad"]
    assert "R-bad" in caplog.text


@pytest.mark.asyncio
async def test_repository_failure_is_retryable(org, now):
    with pytest.raises(CollaboratorFailure) as exc_info:
        await RuleCatalog(BrokenRuleRepo()).active_rules_for(org, TargetModel.LEADS, now)
    assert exc_info.value.retryable
    assert exc_info.value.collaborator == "rule_repository"


@pytest.mark.asyncio
async def test_default_and_stored_creation_times_sort_together(make_rule, org, now):
    repo = InMemoryRuleRepository(
        rules=[make_rule("R-new", priority=1)],
        territories=[
            Territory(
                id="T-db",
                organization_id=org,
                name="West",
                priority=1,
                created_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
            )
        ],
    )
    rules = await RuleCatalog(repo).active_rules_for(org, TargetModel.LEADS, now)
    assert [r.id for r in rules] == ["R-new", "T-db"]
