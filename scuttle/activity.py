"""Provisioning activity tracking.

Every provisioned node carries a ``ProvisioningId``. Observability tooling
uses it to correlate the node's existence and termination with the timeline
of the provisioning event that created it.

Example:
    tracker = ActivityTracker()
    pid = ProvisioningId(cloud_name="do-east", template_name="builder")
    activity = tracker.start(pid)
    activity.enter(ActivityPhase.LAUNCHING)
"""

from __future__ import annotations

import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import IntEnum

from loguru import logger

__all__ = [
    "ActivityPhase",
    "ActivityAttachment",
    "ProvisioningActivity",
    "ProvisioningId",
    "ActivityTracker",
]

log = logger.bind(component="activity")

DEFAULT_MAX_COMPLETED = 100


class ActivityPhase(IntEnum):
    """Phases of a provisioning activity, in the order they are entered."""

    PROVISIONING = 0
    LAUNCHING = 1
    OPERATING = 2
    COMPLETED = 3


@dataclass(frozen=True, slots=True)
class ProvisioningId:
    """Identifier correlating a node with its provisioning activity.

    The fingerprint is generated at creation, so two ids built from the
    same names never compare equal and an id is never reused.
    """

    cloud_name: str
    template_name: str | None = None
    node_name: str | None = None
    fingerprint: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __str__(self) -> str:
        parts = [self.cloud_name, self.template_name or "-", self.node_name or "-"]
        return f"{'/'.join(parts)}#{self.fingerprint[:8]}"


@dataclass(frozen=True, slots=True)
class ActivityAttachment:
    """Operator-visible note attached to an activity (warning or error)."""

    level: str
    title: str
    timestamp_millis: int


@dataclass
class ProvisioningActivity:
    """Timeline of one provisioning activity.

    Phases are entered at most once and only forward. Entering a later
    phase implicitly skips the ones in between.
    """

    id: ProvisioningId
    started_millis: int = field(default_factory=lambda: int(time.time() * 1000))
    phases: dict[ActivityPhase, int] = field(default_factory=dict)
    attachments: list[ActivityAttachment] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.phases.setdefault(ActivityPhase.PROVISIONING, self.started_millis)

    @property
    def current_phase(self) -> ActivityPhase:
        return max(self.phases)

    @property
    def is_completed(self) -> bool:
        return ActivityPhase.COMPLETED in self.phases

    def enter(self, phase: ActivityPhase) -> bool:
        """Enter a phase. Returns False if it was already entered or passed."""
        with self._lock:
            if phase <= self.current_phase:
                return False
            self.phases[phase] = int(time.time() * 1000)
        log.debug("Activity {id} entered {phase}", id=str(self.id), phase=phase.name)
        return True

    def attach(self, level: str, title: str) -> None:
        with self._lock:
            self.attachments.append(
                ActivityAttachment(level=level, title=title, timestamp_millis=int(time.time() * 1000))
            )

    def warn(self, title: str) -> None:
        self.attach("warning", title)

    def error(self, title: str) -> None:
        self.attach("error", title)


class ActivityTracker:
    """In-process registry of provisioning activities keyed by fingerprint.

    Running activities are kept until they complete. Completed ones move to
    a store holding only the most recent ``max_completed`` of them.
    """

    def __init__(self, max_completed: int = DEFAULT_MAX_COMPLETED) -> None:
        if max_completed < 0:
            raise ValueError(f"max_completed must be >= 0, got {max_completed}")
        self._max_completed = max_completed
        self._activities: dict[str, ProvisioningActivity] = {}
        self._completed: OrderedDict[str, ProvisioningActivity] = OrderedDict()
        self._lock = threading.Lock()

    def start(self, provisioning_id: ProvisioningId) -> ProvisioningActivity:
        """Begin tracking an activity; returns the existing one if already tracked."""
        with self._lock:
            existing = self._lookup(provisioning_id.fingerprint)
            if existing is not None:
                return existing
            activity = ProvisioningActivity(id=provisioning_id)
            self._activities[provisioning_id.fingerprint] = activity
        log.debug("Tracking activity {id}", id=str(provisioning_id))
        return activity

    def _lookup(self, fingerprint: str) -> ProvisioningActivity | None:
        activity = self._activities.get(fingerprint)
        if activity is None:
            activity = self._completed.get(fingerprint)
        return activity

    def get(self, provisioning_id: ProvisioningId) -> ProvisioningActivity | None:
        with self._lock:
            return self._lookup(provisioning_id.fingerprint)

    def enter(self, provisioning_id: ProvisioningId, phase: ActivityPhase) -> None:
        """Move a tracked activity forward. Untracked ids are ignored."""
        fingerprint = provisioning_id.fingerprint
        with self._lock:
            activity = self._activities.get(fingerprint)
        if activity is None or not activity.enter(phase):
            return
        if phase is ActivityPhase.COMPLETED:
            self._retire(fingerprint, activity)

    def _retire(self, fingerprint: str, activity: ProvisioningActivity) -> None:
        with self._lock:
            self._activities.pop(fingerprint, None)
            if self._max_completed == 0:
                return
            self._completed[fingerprint] = activity
            while len(self._completed) > self._max_completed:
                self._completed.popitem(last=False)

    def attach(self, provisioning_id: ProvisioningId, level: str, title: str) -> None:
        if activity := self.get(provisioning_id):
            activity.attach(level, title)

    def active(self) -> list[ProvisioningActivity]:
        """Activities that have not reached COMPLETED."""
        with self._lock:
            return list(self._activities.values())

    def completed(self) -> list[ProvisioningActivity]:
        """Most recently completed activities, oldest first."""
        with self._lock:
            return list(self._completed.values())

    def __len__(self) -> int:
        return len(self._activities) + len(self._completed)
