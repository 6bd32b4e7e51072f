"""Port interface for assignment rule and territory loading."""

from abc import ABC, abstractmethod

from lead_routing.domain.entities.assignment_rule import AssignmentRule
from lead_routing.domain.entities.territory import Territory
from lead_routing.domain.value_objects.enums import TargetModel


class RuleRepository(ABC):
    @abstractmethod
    async def list_active_rules(
        self, organization_id: str, target_model: TargetModel
    ) -> list[AssignmentRule]:
        ...

    @abstractmethod
    async def list_active_territories(self, organization_id: str) -> list[Territory]:
        ...
