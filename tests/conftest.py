"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from lead_routing.adapters.memory.lead_lock import InMemoryLeadLock
from lead_routing.adapters.memory.stores import InMemoryBackend
from lead_routing.application.ports.event_sink import EventSink
from lead_routing.application.services.assignment_executor import AssignmentExecutor
from lead_routing.application.services.assignment_selector import AssignmentSelector
from lead_routing.application.services.candidate_pool import CandidatePool
from lead_routing.application.services.fairness_tracker import FairnessTracker
from lead_routing.application.services.rule_catalog import RuleCatalog
from lead_routing.application.services.stats_reporter import StatsReporter
from lead_routing.application.use_cases.assign_lead import AssignLeadUseCase
from lead_routing.domain.entities.assignment_rule import AssignmentRule
from lead_routing.domain.value_objects.conditions import ConditionSet
from lead_routing.domain.value_objects.enums import RuleType, TargetModel

ORG = "O1"
# 2026-10-12 is a Monday
MONDAY_10AM = datetime(2026, 10, 12, 10, 0, tzinfo=timezone.utc)


class RecordingEventSink(EventSink):
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    async def publish(self, event_type, payload):
        self.events.append((event_type, payload))


@pytest.fixture
def org():
    return ORG


@pytest.fixture
def now():
    return MONDAY_10AM


@pytest.fixture
def make_rule():
    def _make(rule_id: str = "R1", **overrides) -> AssignmentRule:
        conditions = overrides.pop("conditions", None)
        fields = {
            "id": rule_id,
            "organization_id": ORG,
            "name": f"rule {rule_id}",
            "target_model": TargetModel.LEADS,
            "rule_type": RuleType.ROUND_ROBIN,
            "conditions": ConditionSet.from_raw(conditions),
        }
        fields.update(overrides)
        return AssignmentRule(**fields)

    return _make


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def engine(backend):
    """The full routing stack over in-memory adapters with a fixed clock."""
    events = RecordingEventSink()
    lock = InMemoryLeadLock()
    fairness = FairnessTracker(backend.counters)
    catalog = RuleCatalog(backend.rules)
    selector = AssignmentSelector(
        catalog=catalog,
        pool=CandidatePool(backend.directory),
        fairness=fairness,
        directory=backend.directory,
        clock=lambda: MONDAY_10AM,
    )
    executor = AssignmentExecutor(
        backend.unit_of_work, lock, fairness, lock_timeout=1.0, directory=backend.directory
    )
    use_case = AssignLeadUseCase(
        leads=backend.leads,
        selector=selector,
        executor=executor,
        uow_factory=backend.unit_of_work,
        events=events,
    )
    return SimpleNamespace(
        backend=backend,
        events=events,
        lock=lock,
        fairness=fairness,
        catalog=catalog,
        selector=selector,
        executor=executor,
        use_case=use_case,
        stats=StatsReporter(backend.assignment_log, clock=lambda: MONDAY_10AM),
    )
