"""Orchestration framework contract.

The build scheduler that owns nodes is external. This module defines the
surface it relies on: a ``Node`` base type with identity, a compute-session
factory and a ``terminate(listener)`` hook, plus the ``Inventory`` that
holds live nodes and disposes them.

``Node.terminate`` is a template: it moves the node to TERMINATING, runs
the subclass ``_terminate`` hook, and always finishes disposal afterwards,
whatever the hook did.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from loguru import logger

from scuttle.constants import UNSAFE_NAME_CHARS, NodeState

if TYPE_CHECKING:
    from scuttle.session import ComputeSession

__all__ = [
    "ComputerLauncher",
    "FormError",
    "Inventory",
    "LogListener",
    "Node",
    "NodeMode",
    "RetentionStrategy",
    "TaskListener",
]

log = logger.bind(component="framework")


class FormError(ValueError):
    """Invalid node configuration."""

    def __init__(self, message: str, field: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")


class NodeMode(StrEnum):
    """How the scheduler hands work to a node."""

    NORMAL = "normal"
    EXCLUSIVE = "exclusive"


# =============================================================================
# Collaborator Protocols
# =============================================================================


@runtime_checkable
class TaskListener(Protocol):
    """Sink for operator-facing progress of a framework task."""

    def info(self, message: str) -> None: ...
    def error(self, message: str) -> None: ...


class LogListener:
    """TaskListener that writes to the scuttle log."""

    def __init__(self, node_name: str) -> None:
        self._log = log.bind(node=node_name)

    def info(self, message: str) -> None:
        self._log.info(message)

    def error(self, message: str) -> None:
        self._log.error(message)


class ComputerLauncher(Protocol):
    """Connects a booted node to the scheduler (SSH launch lives outside)."""

    def launch(self, session: ComputeSession, listener: TaskListener) -> None: ...


class RetentionStrategy(Protocol):
    """Decides when an idle node is reclaimed.

    ``check`` returns the number of minutes until it wants to be called again.
    """

    def check(self, session: ComputeSession) -> int: ...


# =============================================================================
# Node
# =============================================================================


def _check_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise FormError("node name is required", "name")
    if name in (".", ".."):
        raise FormError(f"'{name}' is not a valid node name", "name")
    if bad := sorted(set(name) & UNSAFE_NAME_CHARS):
        raise FormError(f"unsafe character(s) {''.join(bad)!r} in '{name}'", "name")
    return name


class Node(ABC):
    """Base for nodes managed by the orchestration framework."""

    def __init__(
        self,
        name: str,
        node_description: str,
        remote_fs: str,
        num_executors: int,
        mode: NodeMode,
        label_string: str | None,
        launcher: ComputerLauncher | None,
        retention_strategy: RetentionStrategy | None,
        node_properties: Sequence[Any] = (),
    ) -> None:
        self._name = _check_name(name)
        if num_executors < 1:
            raise FormError(f"invalid number of executors: {num_executors}", "num_executors")
        if not remote_fs or not remote_fs.strip():
            raise FormError("remote root directory is required", "remote_fs")

        self._node_description = node_description or ""
        self._remote_fs = remote_fs.strip()
        self._num_executors = num_executors
        self._mode = NodeMode(mode)
        self._label_string = (label_string or "").strip()
        self._launcher = launcher
        self._retention_strategy = retention_strategy
        self._node_properties = tuple(node_properties)

        self._state = NodeState.ACTIVE
        self._state_lock = threading.Lock()
        self._inventory: Inventory | None = None

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def node_description(self) -> str:
        return self._node_description

    @property
    def remote_fs(self) -> str:
        return self._remote_fs

    @property
    def num_executors(self) -> int:
        return self._num_executors

    @property
    def mode(self) -> NodeMode:
        return self._mode

    @property
    def label_string(self) -> str:
        return self._label_string

    @property
    def labels(self) -> frozenset[str]:
        return frozenset(self._label_string.split())

    @property
    def launcher(self) -> ComputerLauncher | None:
        return self._launcher

    @property
    def retention_strategy(self) -> RetentionStrategy | None:
        return self._retention_strategy

    @property
    def node_properties(self) -> tuple[Any, ...]:
        return self._node_properties

    @property
    def state(self) -> NodeState:
        return self._state

    # -------------------------------------------------------------------------
    # Lifecycle hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    def create_compute_session(self) -> ComputeSession:
        """Create the runtime counterpart bound to this node."""

    @abstractmethod
    def _terminate(self, listener: TaskListener) -> None:
        """Release whatever backs this node. Called once, from ``terminate``."""

    def _on_terminated(self) -> None:
        """Called after disposal completed."""

    def terminate(self, listener: TaskListener | None = None) -> None:
        """Tear the node down. Never raises; disposal always completes."""
        listener = listener or LogListener(self._name)

        with self._state_lock:
            if self._state is not NodeState.ACTIVE:
                log.warning("Node {node} already {state}", node=self._name, state=self._state)
                return
            self._state = NodeState.TERMINATING

        try:
            self._terminate(listener)
        except Exception as e:
            log.exception("Teardown of node {node} failed: {error}", node=self._name, error=e)
            listener.error(f"Teardown of {self._name} failed: {e}")
        finally:
            if self._inventory is not None:
                self._inventory.remove(self)
            self._state = NodeState.TERMINATED
            self._on_terminated()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r}, state={self._state})"


# =============================================================================
# Inventory
# =============================================================================


class Inventory:
    """Live nodes known to the framework, keyed by name."""

    def __init__(self) -> None:
        self._nodes: dict[str, Node] = {}
        self._lock = threading.Lock()

    def add(self, node: Node) -> None:
        with self._lock:
            if node.name in self._nodes:
                raise FormError(f"node '{node.name}' already exists", "name")
            self._nodes[node.name] = node
            node._inventory = self
        log.debug("Node {node} added to inventory", node=node.name)

    def remove(self, node: Node) -> None:
        with self._lock:
            if self._nodes.get(node.name) is node:
                del self._nodes[node.name]
            node._inventory = None
        log.debug("Node {node} removed from inventory", node=node.name)

    def get(self, name: str) -> Node | None:
        return self._nodes.get(name)

    def __contains__(self, node: object) -> bool:
        return isinstance(node, Node) and self._nodes.get(node.name) is node

    def __iter__(self) -> Iterator[Node]:
        with self._lock:
            return iter(list(self._nodes.values()))

    def __len__(self) -> int:
        return len(self._nodes)
