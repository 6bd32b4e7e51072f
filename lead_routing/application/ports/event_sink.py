"""Port interface for fire-and-forget assignment notifications."""

from abc import ABC, abstractmethod

LEAD_ASSIGNED = "lead.assigned"
LEAD_REASSIGNMENT_FAILED = "lead.reassignment_failed"


class EventSink(ABC):
    @abstractmethod
    async def publish(self, event_type: str, payload: dict) -> None:
        ...
