"""Validates inbound GitLab webhooks and dispatches them to plugins."""

import asyncio
import logging
from dataclasses import dataclass
from typing import List

from fastapi import HTTPException, Request
from starlette.datastructures import Headers
from starlette.requests import ClientDisconnect

from .errors import ClassificationError, UnsupportedEventTypeError
from .events import classify
from .logging_config import EventLogAdapter
from .routing import ConfigStore
from .transport import FanOut

logger = logging.getLogger(__name__)

EVENT_TYPE_HEADER = "X-Gitlab-Event"
EVENT_UUID_HEADER = "X-Gitlab-Event-UUID"

ACCEPTED_MESSAGE = "Event received. Have a nice day."


@dataclass(frozen=True)
class InboundEvent:
    """A webhook that passed request validation."""

    event_type: str
    event_id: str
    payload: bytes
    headers: Headers


class Dispatcher:
    """Entry point for webhook deliveries.

    Requests are validated before being acknowledged; everything after the
    acknowledgment is best-effort and only visible in the logs.
    """

    def __init__(self, store: ConfigStore, fan_out: FanOut, user_agent: str):
        self.store = store
        self.fan_out = fan_out
        self.user_agent = user_agent

    async def parse_request(self, request: Request) -> InboundEvent:
        """Check the delivery headers and read the body.

        Raises:
            HTTPException: 400 for a bad or missing header, 500 if the body
                cannot be read.
        """
        if request.headers.get("User-Agent") != self.user_agent:
            raise HTTPException(status_code=400, detail="400 Bad Request: unknown User-Agent Header")

        event_type = request.headers.get(EVENT_TYPE_HEADER, "")
        if not event_type:
            raise HTTPException(
                status_code=400, detail=f"400 Bad Request: Missing {EVENT_TYPE_HEADER} Header"
            )

        event_id = request.headers.get(EVENT_UUID_HEADER, "")
        if not event_id:
            raise HTTPException(
                status_code=400, detail=f"400 Bad Request: Missing {EVENT_UUID_HEADER} Header"
            )

        try:
            payload = await request.body()
        except (ClientDisconnect, OSError) as e:
            logger.error(f"Failed to read body of event {event_id}: {e}")
            raise HTTPException(
                status_code=500, detail="500 Internal Server Error: Failed to read request body"
            )

        return InboundEvent(
            event_type=event_type,
            event_id=event_id,
            payload=payload,
            headers=request.headers,
        )

    async def dispatch(self, event: InboundEvent) -> List[asyncio.Task]:
        """Classify an acknowledged event and forward it to its subscribers.

        Returns:
            The delivery tasks started, empty if the event was dropped.
        """
        log = EventLogAdapter(logger, {"event-type": event.event_type, "event-id": event.event_id})

        try:
            classified = classify(event.event_type, event.payload)
        except UnsupportedEventTypeError as e:
            log.debug(f"Ignoring unknown event type: {e}")
            return []
        except ClassificationError as e:
            log.error(f"{type(e).__name__}: {e}")
            return []

        if classified is None:
            log.debug("Ignoring note event with a non-note object kind")
            return []

        log = log.with_fields(org=classified.org, repo=classified.repo)

        endpoints = self.store.lookup(event.event_type)
        log.with_fields(endpoints=", ".join(endpoints)).info("start dispatching event.")

        return self.fan_out.forward(endpoints, event.payload, event.headers, log)
