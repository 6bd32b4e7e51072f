"""Port interface for the org-scoped lead store."""

from abc import ABC, abstractmethod
from typing import Any


class LeadStore(ABC):
    @abstractmethod
    async def get_record(self, organization_id: str, lead_id: str) -> dict[str, Any] | None:
        """Return the flat attribute record used for condition matching.

        Returns None if the lead does not exist in the organization.
        """
        ...

    @abstractmethod
    async def get_owner(self, organization_id: str, lead_id: str) -> str | None:
        ...

    @abstractmethod
    async def set_owner(self, organization_id: str, lead_id: str, user_id: str) -> None:
        ...
