from __future__ import annotations

import pytest
from conftest import errors

from scuttle.constants import NodeState
from scuttle.framework import FormError, Inventory, LogListener, Node, NodeMode, TaskListener

pytestmark = [pytest.mark.unit]


class _RecordingListener:
    def __init__(self) -> None:
        self.lines: list[tuple[str, str]] = []

    def info(self, message: str) -> None:
        self.lines.append(("info", message))

    def error(self, message: str) -> None:
        self.lines.append(("error", message))


class _StaticNode(Node):
    def __init__(self, name: str = "n1", fail: bool = False) -> None:
        super().__init__(name, "", "/srv", 1, NodeMode.EXCLUSIVE, None, None, None)
        self.fail = fail
        self.terminated_with: list[TaskListener] = []

    def create_compute_session(self):
        raise NotImplementedError

    def _terminate(self, listener: TaskListener) -> None:
        self.terminated_with.append(listener)
        if self.fail:
            raise OSError("disk gone")


class TestNode:
    def test_defaults(self):
        node = _StaticNode()
        assert node.mode is NodeMode.EXCLUSIVE
        assert node.labels == frozenset()
        assert node.state is NodeState.ACTIVE

    def test_name_is_trimmed(self):
        assert _StaticNode(" n1 ").name == "n1"

    def test_listener_passed_to_hook(self):
        listener = _RecordingListener()
        node = _StaticNode()
        node.terminate(listener)
        assert node.terminated_with == [listener]

    def test_default_listener(self):
        node = _StaticNode()
        node.terminate()
        assert isinstance(node.terminated_with[0], LogListener)

    def test_hook_failure_reported_to_listener(self, log_records):
        listener = _RecordingListener()
        node = _StaticNode(fail=True)
        node.terminate(listener)
        assert node.state is NodeState.TERMINATED
        assert listener.lines == [("error", "Teardown of n1 failed: disk gone")]
        assert any("disk gone" in m for m in errors(log_records))

    def test_hook_runs_once(self):
        node = _StaticNode()
        node.terminate()
        node.terminate()
        assert len(node.terminated_with) == 1


class TestInventory:
    def test_duplicate_name_rejected(self):
        inventory = Inventory()
        inventory.add(_StaticNode("a"))
        with pytest.raises(FormError, match="already exists"):
            inventory.add(_StaticNode("a"))

    def test_iteration_and_lookup(self):
        inventory = Inventory()
        a, b = _StaticNode("a"), _StaticNode("b")
        inventory.add(a)
        inventory.add(b)
        assert inventory.get("a") is a
        assert sorted(n.name for n in inventory) == ["a", "b"]

    def test_remove_other_node_with_same_name_is_ignored(self):
        inventory = Inventory()
        a = _StaticNode("a")
        inventory.add(a)
        inventory.remove(_StaticNode("a"))
        assert a in inventory
