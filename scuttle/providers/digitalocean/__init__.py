"""DigitalOcean provider for Scuttle.

Example:
    from scuttle.providers.digitalocean import DigitalOceanCloud

    registry.add(DigitalOceanCloud(name="do-east", credential_id="do-token"))
"""

from scuttle.providers.digitalocean.client import DigitalOceanClient, DigitalOceanError
from scuttle.providers.digitalocean.config import DigitalOceanCloud
from scuttle.providers.digitalocean.types import DestroyOutcome

__all__ = [
    "DestroyOutcome",
    "DigitalOceanClient",
    "DigitalOceanCloud",
    "DigitalOceanError",
]
