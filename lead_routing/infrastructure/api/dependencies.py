"""FastAPI dependency injection — wires adapters into services and use cases."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import Depends
from redis.asyncio import Redis
from redis.asyncio import from_url as redis_from_url
from sqlalchemy.ext.asyncio import AsyncSession

from lead_routing.adapters.events.logging_sink import LoggingEventSink
from lead_routing.adapters.memory.lead_lock import InMemoryLeadLock
from lead_routing.adapters.memory.stores import InMemoryBackend
from lead_routing.adapters.persistence.database import get_session
from lead_routing.adapters.persistence.repositories import (
    SqlAssignmentLogRepository,
    SqlCounterStore,
    SqlLeadStore,
    SqlRuleRepository,
    SqlTeamDirectory,
    SqlUnitOfWork,
)
from lead_routing.adapters.redis.event_sink import RedisEventSink
from lead_routing.adapters.redis.lead_lock import RedisLeadLock
from lead_routing.application.ports.assignment_log_repo import AssignmentLogRepository
from lead_routing.application.ports.counter_store import CounterStore
from lead_routing.application.ports.event_sink import EventSink
from lead_routing.application.ports.lead_lock import LeadLock
from lead_routing.application.ports.lead_store import LeadStore
from lead_routing.application.ports.rule_repo import RuleRepository
from lead_routing.application.ports.team_directory import TeamDirectory
from lead_routing.application.ports.unit_of_work import UnitOfWork
from lead_routing.application.services.assignment_executor import AssignmentExecutor
from lead_routing.application.services.assignment_selector import AssignmentSelector
from lead_routing.application.services.candidate_pool import CandidatePool
from lead_routing.application.services.fairness_tracker import FairnessTracker
from lead_routing.application.services.rule_catalog import RuleCache, RuleCatalog
from lead_routing.application.services.stats_reporter import StatsReporter
from lead_routing.application.use_cases.assign_lead import AssignLeadUseCase
from lead_routing.config import settings

logger = logging.getLogger(__name__)


@dataclass
class Stores:
    """One request's view of the storage ports."""

    leads: LeadStore
    directory: TeamDirectory
    rules: RuleRepository
    counters: CounterStore
    assignment_log: AssignmentLogRepository
    unit_of_work: Callable[[], UnitOfWork]


class ProviderRegistry:
    """Process-wide adapters, created on first use from settings."""

    _rule_cache: RuleCache | None = None
    _memory: InMemoryBackend | None = None
    _redis: Redis | None = None
    _lock: LeadLock | None = None
    _sink: EventSink | None = None

    @classmethod
    def rule_cache(cls) -> RuleCache:
        if cls._rule_cache is None:
            cls._rule_cache = RuleCache(settings.rule_cache_ttl_seconds)
        return cls._rule_cache

    @classmethod
    def memory_backend(cls) -> InMemoryBackend:
        if cls._memory is None:
            cls._memory = InMemoryBackend()
        return cls._memory

    @classmethod
    def redis(cls) -> Redis:
        if cls._redis is None:
            if not settings.redis_url:
                raise RuntimeError("REDIS_URL not configured")
            cls._redis = redis_from_url(settings.redis_url, decode_responses=True)
        return cls._redis

    @classmethod
    def lead_lock(cls) -> LeadLock:
        if cls._lock is None:
            if settings.lock_backend.lower() == "redis":
                cls._lock = RedisLeadLock(cls.redis())
                logger.info("Using Redis for per-lead locks")
            else:
                cls._lock = InMemoryLeadLock()
        return cls._lock

    @classmethod
    def event_sink(cls) -> EventSink:
        if cls._sink is None:
            if settings.event_sink.lower() == "redis":
                cls._sink = RedisEventSink(cls.redis(), settings.event_stream)
                logger.info("Publishing assignment events to Redis stream %s", settings.event_stream)
            else:
                cls._sink = LoggingEventSink()
        return cls._sink

    @classmethod
    async def close(cls) -> None:
        if cls._redis is not None:
            await cls._redis.aclose()
            cls._redis = None


registry = ProviderRegistry()


def routing_clock() -> datetime:
    """Wall clock in the zone assignment windows are configured in."""
    return datetime.now(ZoneInfo(settings.timezone))


def get_stores(session: AsyncSession = Depends(get_session)) -> Stores:
    if settings.store_backend.lower() == "memory":
        backend = registry.memory_backend()
        return Stores(
            leads=backend.leads,
            directory=backend.directory,
            rules=backend.rules,
            counters=backend.counters,
            assignment_log=backend.assignment_log,
            unit_of_work=backend.unit_of_work,
        )
    return Stores(
        leads=SqlLeadStore(session),
        directory=SqlTeamDirectory(session),
        rules=SqlRuleRepository(session),
        counters=SqlCounterStore(session),
        assignment_log=SqlAssignmentLogRepository(session),
        unit_of_work=lambda: SqlUnitOfWork(session),
    )


def get_rule_catalog(stores: Stores = Depends(get_stores)) -> RuleCatalog:
    return RuleCatalog(stores.rules, registry.rule_cache())


def get_assign_lead_uc(
    stores: Stores = Depends(get_stores),
    catalog: RuleCatalog = Depends(get_rule_catalog),
) -> AssignLeadUseCase:
    fairness = FairnessTracker(stores.counters)
    selector = AssignmentSelector(
        catalog=catalog,
        pool=CandidatePool(stores.directory),
        fairness=fairness,
        directory=stores.directory,
        clock=routing_clock,
    )
    executor = AssignmentExecutor(
        uow_factory=stores.unit_of_work,
        lock=registry.lead_lock(),
        fairness=fairness,
        lock_timeout=settings.lead_lock_timeout_seconds,
        directory=stores.directory,
    )
    return AssignLeadUseCase(
        leads=stores.leads,
        selector=selector,
        executor=executor,
        uow_factory=stores.unit_of_work,
        events=registry.event_sink(),
        max_attempts=settings.assign_max_attempts,
        event_timeout=settings.event_publish_timeout_seconds,
    )


def get_stats_reporter(stores: Stores = Depends(get_stores)) -> StatsReporter:
    return StatsReporter(stores.assignment_log)
