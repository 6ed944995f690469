"""DigitalOcean cloud configuration.

Immutable configuration dataclass for one named DigitalOcean cloud.
"""

from __future__ import annotations

from dataclasses import dataclass

from scuttle.constants import DESTROY_REQUEST_TIMEOUT
from scuttle.credentials import CredentialStore


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True, slots=True)
class DigitalOceanCloud:
    """DigitalOcean cloud configuration.

    Nodes refer to a cloud by ``name`` and resolve it through the
    ``CloudRegistry`` when they need its credentials.

    Example:
        >>> from scuttle.providers.digitalocean import DigitalOceanCloud
        >>> cloud = DigitalOceanCloud(name="do-east", credential_id="do-token")

    Args:
        name: Symbolic cloud name nodes refer to.
        credential_id: Identifier handed to the credential store for the API token.
        region: DigitalOcean region (e.g., "nyc3", "sfo3", "ams3"). Default: nyc3.
        request_timeout: Per-request API timeout in seconds. Default: 30.
    """

    name: str
    credential_id: str
    region: str = "nyc3"
    request_timeout: int = DESTROY_REQUEST_TIMEOUT

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("DigitalOcean cloud requires a name")
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got {self.request_timeout}")

    def auth_token(self, credentials: CredentialStore) -> str:
        """Resolve this cloud's API token. Raises CredentialError."""
        return credentials.get_secret(self.credential_id)


# =============================================================================
# Exports
# =============================================================================

__all__ = ["DigitalOceanCloud"]
