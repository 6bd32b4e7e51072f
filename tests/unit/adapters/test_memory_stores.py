"""Tests for the in-memory storage adapters and their unit of work."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from lead_routing.adapters.memory.stores import (
    InMemoryAssignmentLog,
    InMemoryBackend,
    InMemoryCounterStore,
    InMemoryLeadStore,
)
from lead_routing.application.errors import CapacityConflict
from lead_routing.domain.entities.assignment import AssignmentLogEntry
from lead_routing.domain.value_objects.enums import AssignmentReason, TargetModel


def _entry(lead_id, org="O1", target_model=TargetModel.LEADS, at=None):
    return AssignmentLogEntry(
        organization_id=org,
        lead_id=lead_id,
        target_model=target_model,
        rule_id="R1",
        user_id="U1",
        reason=AssignmentReason.AUTO_ASSIGNMENT,
        assigned_at=at or datetime.now(timezone.utc),
    )


# ─── Lead store ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_lead_store_returns_copy_of_record():
    store = InMemoryLeadStore()
    store.add_lead("O1", "L1", {"country_id": "US"})

    record = await store.get_record("O1", "L1")
    record["country_id"] = "DE"

    assert await store.get_record("O1", "L1") == {"country_id": "US"}


@pytest.mark.asyncio
async def test_lead_store_is_scoped_by_organization():
    store = InMemoryLeadStore()
    store.add_lead("O1", "L1", {}, owner="U1")
    assert await store.get_record("O2", "L1") is None
    assert await store.get_owner("O2", "L1") is None


@pytest.mark.asyncio
async def test_set_owner_on_unknown_lead_raises():
    with pytest.raises(KeyError):
        await InMemoryLeadStore().set_owner("O1", "nope", "U1")


# ─── Counter store ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_increment_refuses_at_cap():
    counters = InMemoryCounterStore()
    assert await counters.increment("O1", "R1", "U1", cursor=0, cap=2)
    assert await counters.increment("O1", "R1", "U1", cursor=0, cap=2)
    assert not await counters.increment("O1", "R1", "U1", cursor=0, cap=2)

    state = await counters.load_state("O1", "R1")
    assert state.assignment_counts == {"U1": 2}


@pytest.mark.asyncio
async def test_load_state_is_a_snapshot():
    counters = InMemoryCounterStore()
    await counters.increment("O1", "R1", "U1", cursor=3)

    state = await counters.load_state("O1", "R1")
    state.assignment_counts["U1"] = 99

    fresh = await counters.load_state("O1", "R1")
    assert fresh.assignment_counts == {"U1": 1}
    assert fresh.last_assigned_index == 3


@pytest.mark.asyncio
async def test_counters_are_scoped_by_organization_and_rule():
    counters = InMemoryCounterStore()
    await counters.increment("O1", "R1", "U1", cursor=0)
    assert (await counters.load_state("O2", "R1")).assignment_counts == {}
    assert (await counters.load_state("O1", "R2")).assignment_counts == {}


# ─── Assignment log ─────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_log_filters_and_orders_by_time():
    log = InMemoryAssignmentLog()
    t0 = datetime(2026, 10, 12, 9, 0, tzinfo=timezone.utc)
    log.entries += [
        _entry("L2", at=t0 + timedelta(minutes=5)),
        _entry("L1", at=t0),
        _entry("C1", target_model=TargetModel.CONTACTS, at=t0),
        _entry("X1", org="O2", at=t0),
    ]

    all_o1 = await log.list_entries("O1")
    leads_only = await log.list_entries("O1", TargetModel.LEADS)
    recent = await log.list_entries("O1", since=t0 + timedelta(minutes=1))

    assert [e.lead_id for e in leads_only] == ["L1", "L2"]
    assert {e.lead_id for e in all_o1} == {"L1", "L2", "C1"}
    assert [e.lead_id for e in recent] == ["L2"]


# ─── Unit of work ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_unit_of_work_writes_are_invisible_until_commit():
    backend = InMemoryBackend()
    backend.leads.add_lead("O1", "L1", {})

    async with backend.unit_of_work() as uow:
        await uow.leads.set_owner("O1", "L1", "U1")
        await uow.assignment_log.append(_entry("L1"))
        await uow.counters.increment("O1", "R1", "U1", cursor=0)

        assert await uow.leads.get_owner("O1", "L1") == "U1"
        assert await backend.leads.get_owner("O1", "L1") is None
        assert backend.assignment_log.entries == []

        await uow.commit()

    assert await backend.leads.get_owner("O1", "L1") == "U1"
    assert len(backend.assignment_log.entries) == 1
    assert (await backend.counters.load_state("O1", "R1")).assignment_counts == {"U1": 1}


@pytest.mark.asyncio
async def test_unit_of_work_rolls_back_on_error():
    backend = InMemoryBackend()
    backend.leads.add_lead("O1", "L1", {})

    with pytest.raises(RuntimeError):
        async with backend.unit_of_work() as uow:
            await uow.leads.set_owner("O1", "L1", "U1")
            await uow.counters.increment("O1", "R1", "U1", cursor=0)
            raise RuntimeError("boom")

    assert await backend.leads.get_owner("O1", "L1") is None
    assert (await backend.counters.load_state("O1", "R1")).assignment_counts == {}


@pytest.mark.asyncio
async def test_unit_of_work_without_commit_leaves_nothing():
    backend = InMemoryBackend()
    backend.leads.add_lead("O1", "L1", {})

    async with backend.unit_of_work() as uow:
        await uow.leads.set_owner("O1", "L1", "U1")

    assert await backend.leads.get_owner("O1", "L1") is None
    assert uow.committed is False


@pytest.mark.asyncio
async def test_commit_rechecks_caps_against_live_counters():
    backend = InMemoryBackend()
    backend.leads.add_lead("O1", "L1", {})
    backend.leads.add_lead("O1", "L2", {})

    first = backend.unit_of_work()
    second = backend.unit_of_work()
    await first.leads.set_owner("O1", "L1", "U1")
    assert await first.counters.increment("O1", "R1", "U1", cursor=0, cap=1)
    await second.leads.set_owner("O1", "L2", "U1")
    assert await second.counters.increment("O1", "R1", "U1", cursor=0, cap=1)

    await first.commit()
    with pytest.raises(CapacityConflict):
        await second.commit()

    assert await backend.leads.get_owner("O1", "L2") is None
    assert (await backend.counters.load_state("O1", "R1")).assignment_counts == {"U1": 1}
