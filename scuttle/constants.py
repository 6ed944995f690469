"""Centralized constants and enums for Scuttle.

Defaults shared by the node model, the destroy coordinator and the
configuration loader live here so every layer agrees on them.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

# =============================================================================
# Node Defaults
# =============================================================================

DEFAULT_REMOTE_ADMIN: Final = "root"
DEFAULT_SSH_PORT: Final = 22

# Characters rejected in node names
UNSAFE_NAME_CHARS: Final = frozenset("?*/\\%!@#$^&|<>[]:;")


# =============================================================================
# Node Lifecycle
# =============================================================================


class NodeState(StrEnum):
    """Lifecycle states of a provisioned node. Transitions are one-way."""

    ACTIVE = "active"
    TERMINATING = "terminating"
    TERMINATED = "terminated"


# =============================================================================
# Destroy Coordinator
# =============================================================================

DESTROY_THREAD_PREFIX: Final = "droplet-destroy"
DESTROY_MAX_WORKERS: Final = 4
DESTROY_MAX_ATTEMPTS: Final = 3

# Timeouts (in seconds)
DESTROY_REQUEST_TIMEOUT: Final = 30
DESTROY_BACKOFF_MIN: Final = 1.0
DESTROY_BACKOFF_MAX: Final = 30.0


# =============================================================================
# Retention
# =============================================================================

RETENTION_CHECK_INTERVAL_MINUTES: Final = 1


# =============================================================================
# Environment Variables
# =============================================================================

DIGITALOCEAN_TOKEN_ENV: Final = "DIGITALOCEAN_TOKEN"
CREDENTIAL_ENV_PREFIX: Final = "SCUTTLE_CREDENTIAL_"
