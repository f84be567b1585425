"""Logging configuration for the application."""

import logging
from typing import Any, MutableMapping, Tuple


def configure_logging(level: str = "INFO", debug: bool = False) -> None:
    """Configure application-wide logging settings."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)7s %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger().setLevel(logging.DEBUG if debug else level)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    if debug:
        logging.getLogger(__name__).debug("debug enabled.")


class EventLogAdapter(logging.LoggerAdapter):
    """Prefixes messages with the event's context fields.

    Fields render in insertion order as ``key=value`` pairs, e.g.
    ``[event-type=Push Hook event-id=abc org=group repo=proj] start dispatching event.``
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        if not self.extra:
            return msg, kwargs
        fields = " ".join(f"{k}={v}" for k, v in self.extra.items())
        return f"[{fields}] {msg}", kwargs

    def with_fields(self, **fields: Any) -> "EventLogAdapter":
        """Return a new adapter carrying these fields in addition to ours."""
        return EventLogAdapter(self.logger, {**self.extra, **fields})
