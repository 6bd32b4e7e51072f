"""Routing error taxonomy.

No-match and already-assigned outcomes are decisions, not errors. Only
infrastructure problems surface as exceptions.
"""

from collections.abc import Iterator
from contextlib import contextmanager


class RoutingError(Exception):
    retryable: bool = False


class CollaboratorFailure(RoutingError):
    """A store / directory / counter call failed. Nothing was committed."""

    retryable = True

    def __init__(self, collaborator: str, message: str):
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator


class LeadNotFoundError(RoutingError):
    def __init__(self, organization_id: str, lead_id: str):
        super().__init__(f"Lead {lead_id} not found in organization {organization_id}")
        self.organization_id = organization_id
        self.lead_id = lead_id


class LockTimeoutError(RoutingError):
    retryable = True

    def __init__(self, key: str, timeout: float):
        super().__init__(f"Timed out after {timeout:.1f}s waiting for lock {key!r}")
        self.key = key


class CapacityConflict(RoutingError):
    """A concurrent commit filled the candidate's cap first."""

    retryable = True

    def __init__(self, rule_id: str, user_id: str):
        super().__init__(f"Rule {rule_id}: user {user_id} reached capacity concurrently")
        self.rule_id = rule_id
        self.user_id = user_id


@contextmanager
def collaborator(name: str) -> Iterator[None]:
    """Convert unexpected failures of a port call into CollaboratorFailure."""
    try:
        yield
    except RoutingError:
        raise
    except Exception as exc:
        raise CollaboratorFailure(name, str(exc) or type(exc).__name__) from exc
