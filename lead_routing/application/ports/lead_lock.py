"""Port interface for the per-lead mutual exclusion lock."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager


class LeadLock(ABC):
    @abstractmethod
    def hold(self, key: str, timeout: float) -> AbstractAsyncContextManager[None]:
        """Async context manager holding the lock for *key*.

        Raises LockTimeoutError if it cannot be acquired within *timeout* seconds.
        """
        ...
