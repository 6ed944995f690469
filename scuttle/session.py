"""Compute session bound to a provisioned node."""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scuttle.node import ProvisionedNode
    from scuttle.providers.digitalocean.config import DigitalOceanCloud

__all__ = ["ComputeSession"]


def _now_millis() -> int:
    return int(time.time() * 1000)


class ComputeSession:
    """Runtime counterpart of a ``ProvisionedNode``.

    A session is bound to exactly one node for its whole life. It tracks
    whether the node is busy so the retention strategy can measure idle time.
    """

    def __init__(self, node: ProvisionedNode) -> None:
        self._node = node
        self._connect_time_millis = _now_millis()
        self._idle_start_millis: int | None = self._connect_time_millis
        self._lock = threading.Lock()

    @property
    def node(self) -> ProvisionedNode:
        return self._node

    @property
    def name(self) -> str:
        return self._node.name

    @property
    def droplet_id(self) -> int | None:
        return self._node.droplet_id

    @property
    def cloud(self) -> DigitalOceanCloud:
        """Cloud backing this session's node. Raises CloudNotFoundError."""
        return self._node.resolve_cloud()

    @property
    def connect_time_millis(self) -> int:
        return self._connect_time_millis

    @property
    def is_idle(self) -> bool:
        return self._idle_start_millis is not None

    @property
    def idle_start_millis(self) -> int | None:
        return self._idle_start_millis

    def set_busy(self) -> None:
        with self._lock:
            self._idle_start_millis = None

    def set_idle(self) -> None:
        with self._lock:
            if self._idle_start_millis is None:
                self._idle_start_millis = _now_millis()

    def idle_millis(self, now_millis: int | None = None) -> int:
        """Milliseconds spent idle so far, 0 while busy."""
        start = self._idle_start_millis
        if start is None:
            return 0
        return max(0, (now_millis if now_millis is not None else _now_millis()) - start)

    def age_millis(self, now_millis: int | None = None) -> int:
        """Milliseconds since the node was created."""
        now = now_millis if now_millis is not None else _now_millis()
        return max(0, now - self._node.start_time_millis)

    def __repr__(self) -> str:
        return f"ComputeSession(node={self.name!r}, droplet_id={self.droplet_id})"
