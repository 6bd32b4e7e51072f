"""Port interface for team membership and user display names."""

from abc import ABC, abstractmethod


class TeamDirectory(ABC):
    @abstractmethod
    async def members_of(self, team_id: str) -> list[str]:
        """Return member user ids in a stable order (membership join order)."""
        ...

    @abstractmethod
    async def display_name(self, user_id: str) -> str | None:
        ...
