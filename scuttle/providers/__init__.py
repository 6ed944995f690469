"""Cloud providers backing Scuttle nodes."""

from scuttle.providers.digitalocean import DigitalOceanCloud

__all__ = ["DigitalOceanCloud"]
