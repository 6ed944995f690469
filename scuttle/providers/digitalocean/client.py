"""DigitalOcean API client wrapper using pydo SDK.

Only droplet teardown goes through here. Errors from pydo's transport
(azure-core) are translated into ``DigitalOceanError`` carrying the HTTP
status and whether a retry could help.
"""

from __future__ import annotations

from azure.core.exceptions import (
    ClientAuthenticationError,
    HttpResponseError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)
from pydo import Client

from scuttle.constants import DESTROY_REQUEST_TIMEOUT

from .types import DestroyOutcome

_TRANSIENT_STATUS = frozenset({408, 425, 429, 500, 502, 503, 504})


class DigitalOceanError(Exception):
    """Error from DigitalOcean API."""

    def __init__(self, message: str, *, status_code: int | None = None, transient: bool = False) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.transient = transient


class DigitalOceanClient:
    """Synchronous DigitalOcean client for droplet teardown.

    Example:
        client = DigitalOceanClient(token, timeout=30)
        outcome = client.delete_droplet(12345)
    """

    def __init__(self, token: str, *, timeout: int = DESTROY_REQUEST_TIMEOUT) -> None:
        self._client = Client(token=token, timeout=timeout)

    def delete_droplet(self, droplet_id: int) -> DestroyOutcome:
        """Delete a droplet. A droplet that no longer exists is not an error."""
        try:
            self._client.droplets.destroy(droplet_id=droplet_id)
        except ResourceNotFoundError:
            return DestroyOutcome.NOT_FOUND
        except ClientAuthenticationError as e:
            raise DigitalOceanError(
                f"Failed to delete droplet {droplet_id}: authentication rejected: {e}",
                status_code=_status_of(e),
            ) from e
        except HttpResponseError as e:
            status = _status_of(e)
            if status == 404:
                return DestroyOutcome.NOT_FOUND
            raise DigitalOceanError(
                f"Failed to delete droplet {droplet_id}: {e}",
                status_code=status,
                transient=status is None or status in _TRANSIENT_STATUS,
            ) from e
        except (ServiceRequestError, ServiceResponseError, TimeoutError, ConnectionError) as e:
            raise DigitalOceanError(
                f"Failed to delete droplet {droplet_id}: {e}",
                transient=True,
            ) from e
        return DestroyOutcome.DESTROYED


def _status_of(error: HttpResponseError) -> int | None:
    status = getattr(error, "status_code", None)
    if status is None and error.response is not None:
        status = getattr(error.response, "status_code", None)
    return status


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    "DigitalOceanClient",
    "DigitalOceanError",
]
