"""DigitalOcean-specific types."""

from __future__ import annotations

from enum import StrEnum


class DestroyOutcome(StrEnum):
    """Result of a droplet destroy request.

    ``NOT_FOUND`` means the droplet was already gone, which counts as success.
    """

    DESTROYED = "destroyed"
    NOT_FOUND = "not_found"
    FAILED = "failed"

    @property
    def succeeded(self) -> bool:
        return self is not DestroyOutcome.FAILED


__all__ = ["DestroyOutcome"]
