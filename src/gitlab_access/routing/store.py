"""Hot-reloadable holder of the routing table."""

import asyncio
import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import yaml

from ..errors import ConfigError, ConfigLoadError
from .rules import Configuration, EventsDemux, build_demux, validate

logger = logging.getLogger(__name__)

DEFAULT_RELOAD_INTERVAL = 60.0


class ConfigSource(ABC):
    """Where the routing configuration comes from."""

    @abstractmethod
    def fetch(self) -> Tuple[str, Configuration]:
        """Return the current version tag and configuration.

        Raises:
            ConfigLoadError: If the configuration cannot be read or parsed.
        """
        ...


class FileConfigSource(ConfigSource):
    """Reads a YAML routing file; its version is the digest of the file's bytes."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def fetch(self) -> Tuple[str, Configuration]:
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise ConfigLoadError(f"cannot read {self.path}: {e}") from e

        version = hashlib.sha256(raw).hexdigest()
        try:
            document = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"cannot parse {self.path}: {e}") from e

        return version, Configuration.from_document(document)


@dataclass(frozen=True)
class RoutingSnapshot:
    """A routing table together with the configuration version it came from."""

    version: str
    demux: EventsDemux


class ConfigStore:
    """Holds the current routing table and refreshes it periodically.

    Lookups read whichever snapshot is current without locking; a snapshot is
    never modified once published, so a reader sees either the table before
    a reload or the one after it. Reloads publish a new snapshot by replacing
    the reference and only ever run from one caller at a time.
    """

    def __init__(self, source: ConfigSource, interval: float = DEFAULT_RELOAD_INTERVAL):
        self._source = source
        self._interval = interval

        self._snapshot: Optional[RoutingSnapshot] = None

        # Only read and written on the reload path, which never runs concurrently.
        self._version: Optional[str] = None

        self._stopping: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def version(self) -> Optional[str]:
        return self._version

    @property
    def snapshot(self) -> Optional[RoutingSnapshot]:
        return self._snapshot

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def reload(self, strict: bool = False) -> bool:
        """Fetch the configuration and install it if its version changed.

        Args:
            strict: Raise configuration errors instead of logging them.

        Returns:
            True if a new routing table was installed.

        Raises:
            ConfigError: Only when ``strict`` is set.
        """
        try:
            version, config = self._source.fetch()
            if version == self._version:
                return False

            validate(config.plugins)
            demux = build_demux(config.plugins)
        except ConfigError as e:
            if strict:
                raise
            logger.error(f"Failed to reload routing configuration, keeping the previous one: {e}")
            return False

        snapshot = RoutingSnapshot(version=version, demux=demux)
        self._snapshot = snapshot
        self._version = version

        logger.info(
            f"Loaded routing configuration {version[:12]} "
            f"({len(config.plugins)} plugins, events: {sorted(demux)})"
        )
        return True

    def lookup(self, event_type: str) -> Tuple[str, ...]:
        """Return the endpoints subscribed to an event type, in declaration order."""
        snapshot = self._snapshot
        if snapshot is None:
            return ()
        return snapshot.demux.get(event_type, ())

    async def start(self, interval: Optional[float] = None) -> None:
        """Load the configuration once, then keep reloading it in the background.

        Raises:
            ConfigError: If the initial load fails.
            RuntimeError: If the store is already running.
        """
        if self.running:
            raise RuntimeError("config store is already running")
        if interval is not None:
            self._interval = interval

        await asyncio.to_thread(self.reload, True)

        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._run(self._stopping), name="config-reload")

    async def stop(self) -> None:
        """Stop the periodic reload, waiting for one already in progress.

        Safe to call more than once, or before ``start``.
        """
        task, self._task = self._task, None
        if task is None:
            return

        self._stopping.set()
        await task
        logger.info("Stopped routing configuration reloads")

    async def _run(self, stopping: asyncio.Event) -> None:
        while True:
            try:
                await asyncio.wait_for(stopping.wait(), timeout=self._interval)
                return
            except asyncio.TimeoutError:
                pass

            try:
                await asyncio.to_thread(self.reload)
            except Exception as e:
                logger.error(f"Unexpected error reloading routing configuration: {e}", exc_info=True)
