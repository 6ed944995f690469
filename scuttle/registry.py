"""Process-wide registry of cloud configurations.

Nodes refer to their cloud by name and resolve it here at termination
time. The registry is read-mostly: writers swap in a new mapping under a
lock, readers take whatever mapping is current without locking. Looking
up a cloud that was removed while a node was still running makes
``require`` raise ``CloudNotFoundError``; ``get`` returns ``None``.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from loguru import logger

from scuttle.providers.digitalocean.config import DigitalOceanCloud

__all__ = [
    "CloudConfig",
    "CloudNotFoundError",
    "CloudRegistry",
    "get_registry",
    "init_registry",
]

log = logger.bind(component="registry")

type CloudConfig = DigitalOceanCloud


class CloudNotFoundError(LookupError):
    """Named cloud configuration does not exist (any more)."""

    def __init__(self, name: str, available: Iterable[str] = ()) -> None:
        self.name = name
        names = ", ".join(sorted(available)) or "none"
        super().__init__(f"Cloud '{name}' not found. Available: {names}")


class CloudRegistry:
    """Named cloud configurations, shared by every node in the process."""

    def __init__(self, clouds: Iterable[CloudConfig] = ()) -> None:
        self._lock = threading.Lock()
        self._clouds: Mapping[str, CloudConfig] = MappingProxyType(
            {cloud.name: cloud for cloud in clouds}
        )

    def add(self, cloud: CloudConfig) -> None:
        """Register or replace a cloud configuration."""
        with self._lock:
            self._clouds = MappingProxyType({**self._clouds, cloud.name: cloud})
        log.debug("Registered cloud {name}", name=cloud.name)

    def remove(self, name: str) -> CloudConfig | None:
        with self._lock:
            clouds = dict(self._clouds)
            removed = clouds.pop(name, None)
            self._clouds = MappingProxyType(clouds)
        if removed is not None:
            log.debug("Removed cloud {name}", name=name)
        return removed

    def get(self, name: str) -> CloudConfig | None:
        return self._clouds.get(name)

    def require(self, name: str) -> CloudConfig:
        snapshot = self._clouds
        if (cloud := snapshot.get(name)) is None:
            raise CloudNotFoundError(name, snapshot)
        return cloud

    def snapshot(self) -> Mapping[str, CloudConfig]:
        return self._clouds

    def names(self) -> list[str]:
        return sorted(self._clouds)

    def __contains__(self, name: object) -> bool:
        return name in self._clouds

    def __len__(self) -> int:
        return len(self._clouds)


_registry: CloudRegistry | None = None
_registry_lock = threading.Lock()


def init_registry(clouds: Iterable[CloudConfig] = ()) -> CloudRegistry:
    """Install a fresh process-wide registry. Call once at process start."""
    global _registry
    registry = CloudRegistry(clouds)
    with _registry_lock:
        _registry = registry
    log.info("Cloud registry initialized with {n} cloud(s)", n=len(registry))
    return registry


def get_registry() -> CloudRegistry:
    """Return the process-wide registry, creating an empty one on first use."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = CloudRegistry()
    return _registry
