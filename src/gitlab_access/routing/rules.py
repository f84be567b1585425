"""Routing rules for GitLab webhooks.

This module defines how GitLab events are routed to plugin endpoints.
Each plugin declares the event types it wants; the routing table maps
every event type to the ordered list of endpoints that asked for it.
"""

from collections import Counter
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConfigLoadError, DuplicatePluginNameError, MissingFieldError

EventsDemux = Mapping[str, Tuple[str, ...]]
"""Read-only mapping of event type to the endpoints subscribed to it."""


class PluginConfig(BaseModel):
    """One subscriber of forwarded events."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    """Name of the plugin, unique across the configuration."""

    endpoint: str = ""
    """Location the plugin receives forwarded events at."""

    events: Tuple[str, ...] = ()
    """Events this plugin handles and should be forwarded to it.

    The documented intent is that a plugin without events receives
    everything, but such a plugin is currently routed nothing.
    """

    @field_validator("name", "endpoint", mode="before")
    @classmethod
    def empty_fields(cls, v: Any) -> Any:
        # "name:" with no value loads as None; validate_fields reports it.
        return "" if v is None else v

    @field_validator("events", mode="before")
    @classmethod
    def empty_events(cls, v: Any) -> Any:
        # "events:" with no value loads as None.
        return () if v is None else v

    def validate_fields(self, index: Optional[int] = None) -> None:
        """Check the mandatory fields are present.

        Raises:
            MissingFieldError: If name or endpoint is empty.
        """
        if not self.name:
            raise MissingFieldError("name", index)
        if not self.endpoint:
            raise MissingFieldError("endpoint", index)


class AccessConfig(BaseModel):
    """The list of available plugins."""

    model_config = ConfigDict(frozen=True)

    plugins: Tuple[PluginConfig, ...] = ()


class Configuration(BaseModel):
    """Top-level routing document."""

    model_config = ConfigDict(frozen=True)

    access: AccessConfig = Field(default_factory=AccessConfig)

    @classmethod
    def from_document(cls, document: Any) -> "Configuration":
        """Build a configuration from a parsed YAML document.

        An empty document yields an empty configuration.

        Raises:
            ConfigLoadError: If the document does not have the expected shape.
        """
        if document is None:
            return cls()
        if not isinstance(document, dict):
            raise ConfigLoadError(
                f"configuration must be a mapping, got {type(document).__name__}"
            )
        try:
            return cls.model_validate(document)
        except ValidationError as e:
            raise ConfigLoadError(f"invalid configuration: {e}") from e

    @property
    def plugins(self) -> Tuple[PluginConfig, ...]:
        return self.access.plugins


def validate(plugins: Tuple[PluginConfig, ...]) -> None:
    """Validate every plugin entry and the uniqueness of their names.

    Args:
        plugins: The plugin entries, in declaration order.

    Raises:
        MissingFieldError: If an entry lacks its name or endpoint.
        DuplicatePluginNameError: If names repeat; ``count`` is the number of
            entries beyond the first for every repeated name.
    """
    for i, plugin in enumerate(plugins):
        plugin.validate_fields(i)

    counts = Counter(p.name for p in plugins)
    duplicates = sum(n - 1 for n in counts.values())
    if duplicates:
        raise DuplicatePluginNameError(duplicates)


def build_demux(plugins: Tuple[PluginConfig, ...]) -> EventsDemux:
    """Compile the plugins into an event type -> endpoints table.

    Endpoints are listed in the order their plugins are declared.

    Args:
        plugins: Validated plugin entries.

    Returns:
        A read-only mapping; it is never modified after being returned.
    """
    demux: Dict[str, List[str]] = {}
    for plugin in plugins:
        for event in plugin.events:
            demux.setdefault(event, []).append(plugin.endpoint)

    return MappingProxyType({event: tuple(endpoints) for event, endpoints in demux.items()})
