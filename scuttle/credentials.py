"""Credential resolution.

Cloud configurations store a credential *identifier*, never the secret
itself. A ``CredentialStore`` turns that identifier into an API token at
the moment it is needed. Lookups are synchronous so they can run inside
node termination.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from scuttle.constants import CREDENTIAL_ENV_PREFIX, DIGITALOCEAN_TOKEN_ENV

__all__ = [
    "CredentialError",
    "CredentialStore",
    "EnvCredentials",
    "StaticCredentials",
]


class CredentialError(Exception):
    """Credential could not be resolved to a usable secret."""

    def __init__(self, credential_id: str, reason: str) -> None:
        self.credential_id = credential_id
        super().__init__(f"Credential '{credential_id}' unavailable: {reason}")


@runtime_checkable
class CredentialStore(Protocol):
    def get_secret(self, credential_id: str) -> str:
        """Return the secret for ``credential_id`` or raise CredentialError."""
        ...


class StaticCredentials:
    """In-memory credential store, mainly for embedding and tests."""

    def __init__(self, secrets: Mapping[str, str] | None = None) -> None:
        self._secrets = dict(secrets or {})

    def get_secret(self, credential_id: str) -> str:
        secret = self._secrets.get(credential_id)
        if not secret:
            raise CredentialError(credential_id, "not found")
        return secret


class EnvCredentials:
    """Resolve credentials from environment variables.

    ``do-token`` is looked up as ``SCUTTLE_CREDENTIAL_DO_TOKEN``. When that is
    unset and ``fallback`` is true, ``DIGITALOCEAN_TOKEN`` is used instead.
    """

    def __init__(
        self,
        prefix: str = CREDENTIAL_ENV_PREFIX,
        *,
        fallback: bool = True,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._prefix = prefix
        self._fallback = fallback
        self._environ = environ if environ is not None else os.environ

    def env_name(self, credential_id: str) -> str:
        return self._prefix + re.sub(r"[^A-Za-z0-9]", "_", credential_id).upper()

    def get_secret(self, credential_id: str) -> str:
        if not credential_id:
            raise CredentialError(credential_id, "empty credential id")

        secret = self._environ.get(self.env_name(credential_id))
        if not secret and self._fallback:
            secret = self._environ.get(DIGITALOCEAN_TOKEN_ENV)
        if not secret:
            raise CredentialError(
                credential_id,
                f"set {self.env_name(credential_id)} or {DIGITALOCEAN_TOKEN_ENV}",
            )
        return secret
