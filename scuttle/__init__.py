"""Scuttle - lifecycle and teardown of ephemeral DigitalOcean build nodes.

Example:

    from scuttle import (
        DestructionCoordinator,
        DigitalOceanCloud,
        ProvisionedNode,
        ProvisioningId,
        StaticCredentials,
        init_registry,
    )

    registry = init_registry([DigitalOceanCloud(name="do-east", credential_id="do-token")])
    coordinator = DestructionCoordinator()

    node = ProvisionedNode(
        ProvisioningId(cloud_name="do-east", template_name="builder"),
        cloud_name="do-east",
        name="builder-1",
        node_description="build node",
        droplet_id=12345,
        private_key=key,
        remote_admin="",
        remote_fs="/home/build",
        coordinator=coordinator,
        credentials=StaticCredentials({"do-token": token}),
    )
    node.terminate()  # returns at once; the droplet is destroyed in the background
"""

# Library logging stays off until setup_logging() is called
from scuttle.observability import LogConfig, setup_logging, teardown_logging

# Activity tracking
from scuttle.activity import ActivityPhase, ActivityTracker, ProvisioningActivity, ProvisioningId

# Configuration
from scuttle.config import ConfigError, Runtime, bootstrap, load_config, load_registry

# Credentials
from scuttle.credentials import CredentialError, CredentialStore, EnvCredentials, StaticCredentials

# Teardown
from scuttle.destroy import DestroySettings, DestructionCoordinator, default_coordinator

# Framework contract
from scuttle.framework import FormError, Inventory, Node, NodeMode, TaskListener

# Nodes
from scuttle.node import ProvisionedNode
from scuttle.retention import IdleRetentionStrategy
from scuttle.session import ComputeSession

# Providers
from scuttle.providers.digitalocean import (
    DestroyOutcome,
    DigitalOceanClient,
    DigitalOceanCloud,
    DigitalOceanError,
)

# Registry
from scuttle.registry import CloudNotFoundError, CloudRegistry, get_registry, init_registry

from scuttle.constants import NodeState

__version__ = "0.1.0"

__all__ = [
    "ActivityPhase",
    "ActivityTracker",
    "CloudNotFoundError",
    "CloudRegistry",
    "ComputeSession",
    "ConfigError",
    "CredentialError",
    "CredentialStore",
    "DestroyOutcome",
    "DestroySettings",
    "DestructionCoordinator",
    "DigitalOceanClient",
    "DigitalOceanCloud",
    "DigitalOceanError",
    "EnvCredentials",
    "FormError",
    "IdleRetentionStrategy",
    "Inventory",
    "LogConfig",
    "Node",
    "NodeMode",
    "NodeState",
    "ProvisionedNode",
    "ProvisioningActivity",
    "ProvisioningId",
    "Runtime",
    "StaticCredentials",
    "TaskListener",
    "bootstrap",
    "default_coordinator",
    "get_registry",
    "init_registry",
    "load_config",
    "load_registry",
    "setup_logging",
    "teardown_logging",
]
