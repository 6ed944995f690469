"""Idle-timeout retention for provisioned nodes."""

from __future__ import annotations

import time

from loguru import logger

from scuttle.constants import RETENTION_CHECK_INTERVAL_MINUTES, NodeState
from scuttle.session import ComputeSession

__all__ = ["IdleRetentionStrategy"]

log = logger.bind(component="retention")


class IdleRetentionStrategy:
    """Terminate a node once it has been idle for its configured minutes.

    The threshold comes from the node's ``idle_termination_minutes``. Zero or
    a negative value keeps the node around until something else releases it.
    """

    def __init__(self, check_interval_minutes: int = RETENTION_CHECK_INTERVAL_MINUTES) -> None:
        self._interval = check_interval_minutes

    def check(self, session: ComputeSession, now_millis: int | None = None) -> int:
        node = session.node
        if node.state is not NodeState.ACTIVE:
            return self._interval

        minutes = node.idle_termination_minutes
        if minutes <= 0 or not session.is_idle:
            return self._interval

        now = now_millis if now_millis is not None else int(time.time() * 1000)
        idle_millis = session.idle_millis(now)
        if idle_millis > minutes * 60_000:
            log.info(
                "Node {node} idle for {idle}s (limit {limit}m), terminating",
                node=node.name,
                idle=idle_millis // 1000,
                limit=minutes,
            )
            node.terminate()
        return self._interval
