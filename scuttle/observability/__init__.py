"""Observability for Scuttle: log configuration."""

from scuttle.observability.logging import LogConfig, setup_logging, teardown_logging

__all__ = ["LogConfig", "setup_logging", "teardown_logging"]
