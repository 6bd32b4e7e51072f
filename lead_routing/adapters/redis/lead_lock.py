"""Cross-process per-lead lock backed by Redis (SET NX with expiry)."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from redis.asyncio import Redis
from redis.exceptions import LockError

from lead_routing.application.errors import LockTimeoutError
from lead_routing.application.ports.lead_lock import LeadLock

logger = logging.getLogger(__name__)


class RedisLeadLock(LeadLock):
    def __init__(self, redis: Redis, lease_seconds: float = 30.0):
        self._redis = redis
        # Upper bound on how long a crashed holder can block a lead.
        self._lease = lease_seconds

    @asynccontextmanager
    async def hold(self, key: str, timeout: float) -> AsyncIterator[None]:
        lock = self._redis.lock(key, timeout=self._lease, blocking_timeout=timeout)
        if not await lock.acquire():
            raise LockTimeoutError(key, timeout)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                logger.warning("Lock %s expired before release: %s", key, e)
