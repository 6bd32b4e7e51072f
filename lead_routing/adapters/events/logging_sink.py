import json
import logging

from lead_routing.application.ports.event_sink import EventSink

log = logging.getLogger("events.logging")


class LoggingEventSink(EventSink):
    """Default sink: events go to the application log only."""

    async def publish(self, event_type: str, payload: dict) -> None:
        log.info("[EVENT] type=%s payload=%s", event_type, json.dumps(payload, default=str))
