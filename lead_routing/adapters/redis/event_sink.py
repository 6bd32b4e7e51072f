import json
import logging

from redis.asyncio import Redis

from lead_routing.application.ports.event_sink import EventSink

log = logging.getLogger("events.redis")


class RedisEventSink(EventSink):
    """Appends events to a Redis stream (XADD, approximately trimmed)."""

    def __init__(self, redis: Redis, stream: str, maxlen: int = 100_000):
        self._redis = redis
        self._stream = stream
        self._maxlen = maxlen

    async def publish(self, event_type: str, payload: dict) -> None:
        fields = {
            "type": event_type,
            "key": str(payload.get("lead_id", "")),
            "value": json.dumps(payload, default=str),
        }
        await self._redis.xadd(self._stream, fields, maxlen=self._maxlen, approximate=True)
        log.debug("XADD stream=%s type=%s key=%s", self._stream, event_type, fields["key"])
