"""DigitalOcean-backed build node.

A ``ProvisionedNode`` is responsible for

- creating its ``ComputeSession``, and
- destroying its droplet once the framework no longer needs the node.

The node is created after its droplet exists. Termination resolves the
owning cloud by name, turns the cloud's credential id into an API token and
hands the droplet to the ``DestructionCoordinator`` without waiting for the
result. A missing cloud or credential leaves the droplet running; that is
logged as a possible orphan and recorded on the provisioning activity.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any

from loguru import logger

from scuttle.activity import ActivityPhase, ActivityTracker, ProvisioningId
from scuttle.constants import DEFAULT_REMOTE_ADMIN, DEFAULT_SSH_PORT
from scuttle.credentials import CredentialError, CredentialStore, EnvCredentials
from scuttle.destroy import DestructionCoordinator, default_coordinator
from scuttle.framework import (
    ComputerLauncher,
    Node,
    NodeMode,
    RetentionStrategy,
    TaskListener,
)
from scuttle.providers.digitalocean.config import DigitalOceanCloud
from scuttle.registry import CloudNotFoundError, CloudRegistry, get_registry
from scuttle.session import ComputeSession

__all__ = ["ProvisionedNode"]

log = logger.bind(component="node")


class ProvisionedNode(Node):
    """Build node running on a DigitalOcean droplet."""

    def __init__(
        self,
        provisioning_id: ProvisioningId,
        cloud_name: str,
        name: str,
        node_description: str,
        droplet_id: int | None,
        private_key: str,
        remote_admin: str | None,
        remote_fs: str,
        ssh_port: int = DEFAULT_SSH_PORT,
        num_executors: int = 1,
        idle_termination_minutes: int = 0,
        label_string: str | None = None,
        launcher: ComputerLauncher | None = None,
        retention_strategy: RetentionStrategy | None = None,
        node_properties: Sequence[Any] = (),
        init_script: str | None = None,
        *,
        registry: CloudRegistry | None = None,
        credentials: CredentialStore | None = None,
        coordinator: DestructionCoordinator | None = None,
        tracker: ActivityTracker | None = None,
    ) -> None:
        super().__init__(
            name,
            node_description,
            remote_fs,
            num_executors,
            NodeMode.NORMAL,
            label_string,
            launcher,
            retention_strategy,
            node_properties,
        )

        self._provisioning_id = provisioning_id
        self._cloud_name = cloud_name
        self._droplet_id = droplet_id
        self._private_key = private_key
        self._remote_admin = remote_admin
        self._idle_termination_minutes = idle_termination_minutes
        self._init_script = init_script
        self._ssh_port = ssh_port

        self._registry = registry
        self._credentials = credentials if credentials is not None else EnvCredentials()
        self._coordinator = coordinator
        self._tracker = tracker

        self._start_time_millis = int(time.time() * 1000)

        if tracker is not None:
            tracker.start(provisioning_id)
            tracker.enter(provisioning_id, ActivityPhase.LAUNCHING)

    # -------------------------------------------------------------------------
    # Framework hooks
    # -------------------------------------------------------------------------

    def create_compute_session(self) -> ComputeSession:
        """Create a session bound to this node and mark the activity operating."""
        session = ComputeSession(self)
        if self._tracker is not None:
            self._tracker.enter(self._provisioning_id, ActivityPhase.OPERATING)
        return session

    def resolve_cloud(self) -> DigitalOceanCloud:
        """Look up the cloud this node belongs to.

        Raises:
            CloudNotFoundError: The cloud was removed while the node was running.
        """
        registry = self.registry
        cloud = registry.require(self._cloud_name)
        if not isinstance(cloud, DigitalOceanCloud):
            raise CloudNotFoundError(self._cloud_name, registry.names())
        return cloud

    def _terminate(self, listener: TaskListener) -> None:
        """Request destruction of the droplet. Does not wait for it."""
        if self._droplet_id is None:
            log.debug("Node {node} has no droplet, nothing to destroy", node=self.name)
            return

        try:
            cloud = self.resolve_cloud()
            token = cloud.auth_token(self._credentials)
        except (CloudNotFoundError, CredentialError) as e:
            self._report_orphan(listener, e)
            return

        listener.info(f"Destroying droplet {self._droplet_id} of node {self.name}")
        self.coordinator.destroy_async(
            token,
            self._droplet_id,
            cloud.name,
            timeout=cloud.request_timeout,
        )

    def _report_orphan(self, listener: TaskListener, error: Exception) -> None:
        message = (
            f"Cannot destroy droplet {self._droplet_id} of node {self.name} "
            f"(cloud={self._cloud_name}); it may be orphaned: {error}"
        )
        log.bind(orphan=True).error(
            "Cannot destroy droplet {droplet_id} of node {node} (cloud={cloud}); "
            "it may be orphaned: {error}",
            droplet_id=self._droplet_id,
            node=self.name,
            cloud=self._cloud_name,
            error=error,
        )
        listener.error(message)
        if self._tracker is not None:
            self._tracker.attach(self._provisioning_id, "warning", message)

    def _on_terminated(self) -> None:
        if self._tracker is not None:
            self._tracker.enter(self._provisioning_id, ActivityPhase.COMPLETED)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def registry(self) -> CloudRegistry:
        """Registry given at construction, else the process-wide one at call time."""
        return self._registry if self._registry is not None else get_registry()

    @property
    def coordinator(self) -> DestructionCoordinator:
        return self._coordinator if self._coordinator is not None else default_coordinator()

    @property
    def provisioning_id(self) -> ProvisioningId:
        return self._provisioning_id

    @property
    def cloud_name(self) -> str:
        return self._cloud_name

    @property
    def droplet_id(self) -> int | None:
        return self._droplet_id

    @property
    def private_key(self) -> str:
        return self._private_key

    @property
    def remote_admin(self) -> str | None:
        return self._remote_admin

    @property
    def effective_remote_admin(self) -> str:
        """Login user, defaulting to "root" when none was configured."""
        return self._remote_admin or DEFAULT_REMOTE_ADMIN

    @property
    def idle_termination_minutes(self) -> int:
        return self._idle_termination_minutes

    @property
    def init_script(self) -> str | None:
        return self._init_script

    @property
    def ssh_port(self) -> int:
        return self._ssh_port

    @property
    def start_time_millis(self) -> int:
        return self._start_time_millis
