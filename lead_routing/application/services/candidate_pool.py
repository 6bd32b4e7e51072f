"""CandidatePool — expand a matched rule into an ordered list of user ids."""

from __future__ import annotations

from lead_routing.application.errors import collaborator
from lead_routing.application.ports.team_directory import TeamDirectory
from lead_routing.domain.entities.assignment_rule import AssignmentRule
from lead_routing.domain.value_objects.enums import AssignToType


class CandidatePool:
    def __init__(self, directory: TeamDirectory):
        self._directory = directory

    async def resolve(self, rule: AssignmentRule) -> list[str]:
        """Ordered candidates for *rule*. An empty list means "no candidates".

        - user rules: candidate ids verbatim
        - team rules: flattened membership of each team, in directory order
        - territories: assigned users, then members of assigned teams,
          de-duplicated by first occurrence
        """
        if rule.is_territory:
            members = await self._members(rule.team_ids)
            return _dedupe([*rule.candidate_ids, *members])

        if rule.assign_to_type == AssignToType.TEAM:
            return _dedupe(await self._members(rule.candidate_ids))

        return list(rule.candidate_ids)

    async def _members(self, team_ids: list[str]) -> list[str]:
        users: list[str] = []
        with collaborator("team_directory"):
            for team_id in team_ids:
                users.extend(await self._directory.members_of(team_id))
        return users


def _dedupe(user_ids: list[str]) -> list[str]:
    return list(dict.fromkeys(user_ids))
