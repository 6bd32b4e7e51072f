"""Port interface for the all-or-nothing commit boundary."""

from __future__ import annotations

from abc import ABC, abstractmethod

from lead_routing.application.ports.assignment_log_repo import AssignmentLogRepository
from lead_routing.application.ports.counter_store import CounterStore
from lead_routing.application.ports.lead_store import LeadStore


class UnitOfWork(ABC):
    """Owner write, log append and counter increment share one transaction.

    Leaving the ``async with`` block without ``commit()`` (error, cancellation)
    rolls everything back.
    """

    leads: LeadStore
    assignment_log: AssignmentLogRepository
    counters: CounterStore

    async def __aenter__(self) -> UnitOfWork:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            await self.rollback()

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...
