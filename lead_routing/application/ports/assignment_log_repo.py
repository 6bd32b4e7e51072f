"""Port interface for the append-only assignment log."""

from abc import ABC, abstractmethod
from datetime import datetime

from lead_routing.domain.entities.assignment import AssignmentLogEntry
from lead_routing.domain.value_objects.enums import TargetModel


class AssignmentLogRepository(ABC):
    @abstractmethod
    async def append(self, entry: AssignmentLogEntry) -> AssignmentLogEntry:
        ...

    @abstractmethod
    async def list_entries(
        self,
        organization_id: str,
        target_model: TargetModel | None = None,
        since: datetime | None = None,
    ) -> list[AssignmentLogEntry]:
        """Entries ordered by assigned_at ascending."""
        ...
