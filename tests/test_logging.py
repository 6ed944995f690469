from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FAST, FakeDropletClient, permanent_error
from loguru import logger

from scuttle.destroy import DestructionCoordinator
from scuttle.observability.logging import LogConfig, _context_suffix, setup_logging, teardown_logging
from scuttle.providers.digitalocean import DigitalOceanCloud
from scuttle.registry import CloudRegistry

pytestmark = [pytest.mark.unit]


class TestContextSuffix:
    def test_known_keys_in_order(self):
        record = {"extra": {"droplet_id": 42, "component": "destroy", "other": "x"}}
        assert _context_suffix(record) == " [component=destroy droplet_id=42]"

    def test_no_context(self):
        assert _context_suffix({"extra": {}}) == ""


class TestSetupLogging:
    def test_file_sink_receives_library_logs(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "scuttle.log"
        ids = setup_logging(LogConfig(file=str(log_file), orphan_file=None, console=False))
        try:
            CloudRegistry().add(DigitalOceanCloud(name="do-east", credential_id="t"))
        finally:
            teardown_logging(ids)
        text = log_file.read_text()
        assert "Registered cloud do-east" in text
        assert "component=registry" in text

    def test_orphan_report_lists_undestroyed_droplets(self, tmp_path: Path):
        orphans = tmp_path / "orphans.log"
        ids = setup_logging(LogConfig(file=None, orphan_file=str(orphans), console=False))
        client = FakeDropletClient(permanent_error())
        try:
            CloudRegistry().add(DigitalOceanCloud(name="do-east", credential_id="t"))
            with DestructionCoordinator(FAST, client_factory=client.factory) as coordinator:
                coordinator.destroy_async("tok", 42, "do-east")
        finally:
            teardown_logging(ids)

        lines = orphans.read_text().splitlines()
        assert len(lines) == 1
        assert "Failed to destroy droplet 42" in lines[0]
        assert "cloud=do-east droplet_id=42" in lines[0]

    def test_teardown_disables_library(self):
        ids = setup_logging(LogConfig(file=None, orphan_file=None, console=False))
        assert ids == []
        teardown_logging(ids)

        records: list = []
        hid = logger.add(lambda m: records.append(m), level="DEBUG")
        try:
            CloudRegistry().add(DigitalOceanCloud(name="x", credential_id="t"))
        finally:
            logger.remove(hid)
        assert records == []
