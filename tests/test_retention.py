from __future__ import annotations

import pytest

from scuttle.constants import NodeState
from scuttle.retention import IdleRetentionStrategy

pytestmark = [pytest.mark.unit]

MINUTE = 60_000


class TestComputeSession:
    def test_starts_idle(self, make_node):
        session = make_node().create_compute_session()
        assert session.is_idle
        assert session.idle_start_millis == session.connect_time_millis

    def test_busy_resets_idle(self, make_node):
        session = make_node().create_compute_session()
        session.set_busy()
        assert not session.is_idle
        assert session.idle_millis() == 0
        session.set_idle()
        assert session.is_idle

    def test_set_idle_keeps_first_idle_start(self, make_node):
        session = make_node().create_compute_session()
        start = session.idle_start_millis
        session.set_idle()
        assert session.idle_start_millis == start

    def test_age_from_node_start(self, make_node):
        node = make_node()
        session = node.create_compute_session()
        assert session.age_millis(node.start_time_millis + 5_000) == 5_000

    def test_cloud_delegates_to_node(self, make_node):
        assert make_node().create_compute_session().cloud.name == "do-east"


class TestIdleRetentionStrategy:
    def test_terminates_after_idle_limit(self, make_node):
        node = make_node(idle_termination_minutes=10)
        session = node.create_compute_session()
        strategy = IdleRetentionStrategy()
        now = session.idle_start_millis + 10 * MINUTE + 1
        assert strategy.check(session, now) == 1
        assert node.state is NodeState.TERMINATED

    def test_keeps_node_within_limit(self, make_node):
        node = make_node(idle_termination_minutes=10)
        session = node.create_compute_session()
        IdleRetentionStrategy().check(session, session.idle_start_millis + 9 * MINUTE)
        assert node.state is NodeState.ACTIVE

    def test_busy_node_kept(self, make_node):
        node = make_node(idle_termination_minutes=1)
        session = node.create_compute_session()
        session.set_busy()
        IdleRetentionStrategy().check(session, session.connect_time_millis + 60 * MINUTE)
        assert node.state is NodeState.ACTIVE

    @pytest.mark.parametrize("minutes", [0, -5])
    def test_disabled_when_not_positive(self, make_node, minutes):
        node = make_node(idle_termination_minutes=minutes)
        session = node.create_compute_session()
        IdleRetentionStrategy().check(session, session.idle_start_millis + 600 * MINUTE)
        assert node.state is NodeState.ACTIVE

    def test_terminated_node_ignored(self, make_node, coordinator, fake_client):
        node = make_node(idle_termination_minutes=1)
        session = node.create_compute_session()
        node.terminate()
        IdleRetentionStrategy(check_interval_minutes=5).check(session, session.idle_start_millis + 60 * MINUTE)
        coordinator.shutdown(wait=True)
        assert len(fake_client.calls) == 1
