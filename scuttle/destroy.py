"""Asynchronous droplet destruction.

``DestructionCoordinator.destroy_async`` hands the blocking DigitalOcean
call to a bounded worker pool and returns at once. The worker holds only
the token, the droplet id and the cloud name, never the node that asked
for the destroy, so a node can be disposed while its droplet is still
being deleted.

Failure handling:
    - 404 from the API: the droplet is already gone, reported as NOT_FOUND.
    - Transient errors (timeouts, connection resets, 429, 5xx): retried
      with exponential backoff up to ``max_attempts``, then logged.
    - Anything else (401, 403, other 4xx, unexpected errors): logged once.

No error ever reaches the caller; the returned future always resolves to
a ``DestroyOutcome``.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from scuttle.constants import (
    DESTROY_BACKOFF_MAX,
    DESTROY_BACKOFF_MIN,
    DESTROY_MAX_ATTEMPTS,
    DESTROY_MAX_WORKERS,
    DESTROY_REQUEST_TIMEOUT,
    DESTROY_THREAD_PREFIX,
)
from scuttle.providers.digitalocean.client import DigitalOceanClient, DigitalOceanError
from scuttle.providers.digitalocean.types import DestroyOutcome

__all__ = [
    "DestroyClient",
    "DestroySettings",
    "DestructionCoordinator",
    "default_coordinator",
    "install_default_coordinator",
    "release_default_coordinator",
]

log = logger.bind(component="destroy")


class DestroyClient(Protocol):
    def delete_droplet(self, droplet_id: int) -> DestroyOutcome: ...


type ClientFactory = Callable[[str, int], DestroyClient]


def _default_client(token: str, timeout: int) -> DestroyClient:
    return DigitalOceanClient(token, timeout=timeout)


@dataclass(frozen=True, slots=True)
class DestroySettings:
    """Tuning for the destroy worker pool.

    Attributes:
        max_workers: Concurrent destroy calls.
        max_attempts: Attempts per droplet, including the first one.
        request_timeout: Per-request API timeout in seconds.
        backoff_min: Initial retry wait in seconds.
        backoff_max: Upper bound on a single retry wait in seconds.
    """

    max_workers: int = DESTROY_MAX_WORKERS
    max_attempts: int = DESTROY_MAX_ATTEMPTS
    request_timeout: int = DESTROY_REQUEST_TIMEOUT
    backoff_min: float = DESTROY_BACKOFF_MIN
    backoff_max: float = DESTROY_BACKOFF_MAX

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got {self.request_timeout}")


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, DigitalOceanError) and error.transient


class DestructionCoordinator:
    """Best-effort, non-blocking droplet destruction.

    Example:
        with DestructionCoordinator() as coordinator:
            coordinator.destroy_async(token, 12345, cloud_name="do-east")
    """

    def __init__(
        self,
        settings: DestroySettings | None = None,
        *,
        client_factory: ClientFactory = _default_client,
    ) -> None:
        self._settings = settings or DestroySettings()
        self._client_factory = client_factory
        self._pool = ThreadPoolExecutor(
            max_workers=self._settings.max_workers,
            thread_name_prefix=DESTROY_THREAD_PREFIX,
        )

    @property
    def settings(self) -> DestroySettings:
        return self._settings

    def destroy_async(
        self,
        token: str,
        droplet_id: int,
        cloud_name: str = "",
        *,
        timeout: int | None = None,
    ) -> Future[DestroyOutcome]:
        """Schedule destruction of ``droplet_id`` and return immediately."""
        request_timeout = timeout or self._settings.request_timeout
        try:
            return self._pool.submit(
                _destroy,
                self._client_factory,
                self._settings,
                token,
                droplet_id,
                cloud_name,
                request_timeout,
            )
        except RuntimeError as e:
            log.bind(orphan=True).error(
                "Cannot schedule destroy of droplet {droplet_id} (cloud={cloud}): {error}",
                droplet_id=droplet_id,
                cloud=cloud_name,
                error=e,
            )
            rejected: Future[DestroyOutcome] = Future()
            rejected.set_result(DestroyOutcome.FAILED)
            return rejected

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting destroys; with ``wait`` drain the ones in flight."""
        self._pool.shutdown(wait=wait)

    def __enter__(self) -> DestructionCoordinator:
        return self

    def __exit__(self, *_: Any) -> None:
        self.shutdown(wait=True)


_default: DestructionCoordinator | None = None
_default_lock = threading.Lock()


def default_coordinator() -> DestructionCoordinator:
    """Process-wide coordinator used by nodes that are not given one."""
    global _default
    coordinator = _default
    if coordinator is None:
        with _default_lock:
            if _default is None:
                _default = DestructionCoordinator()
            coordinator = _default
    return coordinator


def install_default_coordinator(coordinator: DestructionCoordinator) -> DestructionCoordinator:
    """Make ``coordinator`` the process-wide default.

    The coordinator it replaces stops accepting work; destroys already
    queued on it still run.
    """
    global _default
    with _default_lock:
        previous, _default = _default, coordinator
    if previous is not None and previous is not coordinator:
        previous.shutdown(wait=False)
    return coordinator


def release_default_coordinator(coordinator: DestructionCoordinator) -> None:
    """Forget ``coordinator`` as the default if it still is one."""
    global _default
    with _default_lock:
        if _default is coordinator:
            _default = None


def _destroy(
    client_factory: ClientFactory,
    settings: DestroySettings,
    token: str,
    droplet_id: int,
    cloud_name: str,
    timeout: int,
) -> DestroyOutcome:
    """Worker body. Must not raise."""
    ctx = log.bind(droplet_id=droplet_id, cloud=cloud_name)

    def _before_sleep(state: RetryCallState) -> None:
        ctx.warning(
            "Destroy of droplet {droplet_id} failed (attempt {attempt}/{max}), retrying: {error}",
            droplet_id=droplet_id,
            attempt=state.attempt_number,
            max=settings.max_attempts,
            error=state.outcome.exception() if state.outcome else None,
        )

    @retry(
        stop=stop_after_attempt(settings.max_attempts),
        wait=wait_exponential(multiplier=settings.backoff_min, max=settings.backoff_max),
        retry=retry_if_exception(_is_transient),
        before_sleep=_before_sleep,
        reraise=True,
    )
    def _attempt() -> DestroyOutcome:
        return client_factory(token, timeout).delete_droplet(droplet_id)

    try:
        outcome = _attempt()
    except DigitalOceanError as e:
        ctx.bind(orphan=True).error(
            "Failed to destroy droplet {droplet_id} (cloud={cloud}, status={status}); "
            "it may need manual cleanup: {error}",
            droplet_id=droplet_id,
            cloud=cloud_name,
            status=e.status_code,
            error=e,
        )
        return DestroyOutcome.FAILED
    except Exception as e:
        ctx.bind(orphan=True).exception(
            "Unexpected error destroying droplet {droplet_id} (cloud={cloud}): {error}",
            droplet_id=droplet_id,
            cloud=cloud_name,
            error=e,
        )
        return DestroyOutcome.FAILED

    match outcome:
        case DestroyOutcome.NOT_FOUND:
            ctx.debug("Droplet {droplet_id} already gone", droplet_id=droplet_id)
        case _:
            ctx.info("Destroyed droplet {droplet_id}", droplet_id=droplet_id)
    return outcome
