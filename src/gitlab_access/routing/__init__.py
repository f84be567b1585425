"""Event routing for GitLab webhooks."""

from .rules import (
    AccessConfig,
    Configuration,
    EventsDemux,
    PluginConfig,
    build_demux,
    validate,
)
from .store import ConfigSource, ConfigStore, FileConfigSource, RoutingSnapshot

__all__ = [
    "AccessConfig",
    "Configuration",
    "EventsDemux",
    "PluginConfig",
    "build_demux",
    "validate",
    "ConfigSource",
    "ConfigStore",
    "FileConfigSource",
    "RoutingSnapshot",
]
