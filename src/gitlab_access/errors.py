"""Exceptions raised by the gitlab-access event router."""

from typing import Optional


class GitlabAccessError(Exception):
    """Base class for all gitlab-access errors."""


# -----------------------------------
# Routing configuration
# -----------------------------------


class ConfigError(GitlabAccessError):
    """The routing configuration is unusable."""


class MissingFieldError(ConfigError):
    """A plugin entry lacks a mandatory field."""

    def __init__(self, field: str, plugin_index: Optional[int] = None):
        self.field = field
        self.plugin_index = plugin_index
        where = f" in plugin #{plugin_index}" if plugin_index is not None else ""
        super().__init__(f"missing {field}{where}")


class DuplicatePluginNameError(ConfigError):
    """Two or more plugin entries share a name."""

    def __init__(self, count: int):
        self.count = count
        super().__init__(f"{count} duplicate plugin names exist")


class ConfigLoadError(ConfigError):
    """The configuration document could not be read or parsed."""


# -----------------------------------
# Event classification
# -----------------------------------


class ClassificationError(GitlabAccessError):
    """An inbound event could not be classified."""


class UnsupportedEventTypeError(ClassificationError):
    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"unexpected event type: {event_type}")


class UnsupportedNoteableTypeError(ClassificationError):
    def __init__(self, noteable_type: str):
        self.noteable_type = noteable_type
        super().__init__(f"unexpected noteable type {noteable_type}")


class PayloadParseError(ClassificationError):
    """The payload does not match the shape declared by its event type."""


# -----------------------------------
# Delivery
# -----------------------------------


class DeliveryError(GitlabAccessError):
    """Forwarding to a plugin endpoint failed."""


class InvalidEndpointError(DeliveryError):
    def __init__(self, endpoint: str, reason: str):
        self.endpoint = endpoint
        super().__init__(f"invalid endpoint {endpoint!r}: {reason}")


class ForwardError(DeliveryError):
    def __init__(self, endpoint: str, attempts: int, cause: Optional[BaseException] = None):
        self.endpoint = endpoint
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"forwarding to {endpoint} failed after {attempts} attempts: {cause}")
