"""TOML-based cloud and teardown configuration.

Loads ~/.scuttle/defaults.toml (global) and scuttle.toml (project), merges
them, and resolves the ``[clouds.*]``, ``[destroy]`` and ``[logging]`` tables
into typed objects.

Example scuttle.toml::

    [clouds.do-east]
    type = "digitalocean"
    credential_id = "do-token"
    region = "nyc3"

    [destroy]
    max_attempts = 5

    [logging]
    level = "DEBUG"
    orphan_file = ".scuttle/orphans.log"

Applications call ``bootstrap()`` once at startup to apply all three.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from scuttle.destroy import (
    DestroySettings,
    DestructionCoordinator,
    install_default_coordinator,
    release_default_coordinator,
)
from scuttle.observability.logging import LogConfig, setup_logging, teardown_logging
from scuttle.providers.digitalocean.config import DigitalOceanCloud
from scuttle.registry import CloudConfig, CloudRegistry, init_registry

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".scuttle" / "defaults.toml"
PROJECT_CONFIG_NAME = "scuttle.toml"


class ConfigError(ValueError):
    """Configuration file content is invalid."""


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("clouds", {})
    merged.setdefault("destroy", {})
    merged.setdefault("logging", {})
    return merged


def _get_cloud_map() -> dict[str, type]:
    return {
        "digitalocean": DigitalOceanCloud,
    }


def _build(cls: type, section: str, raw: RawConfig) -> Any:
    try:
        return cls(**raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid [{section}]: {e}") from e


def _build_cloud(name: str, raw: RawConfig) -> CloudConfig:
    raw = dict(raw)
    cloud_type = raw.pop("type", None)
    if cloud_type is None:
        raise ConfigError(f"Cloud '{name}' missing 'type' field")

    cloud_map = _get_cloud_map()
    cls = cloud_map.get(cloud_type)
    if cls is None:
        raise ConfigError(
            f"Unknown cloud type '{cloud_type}'. "
            f"Valid: {', '.join(cloud_map)}"
        )
    if "credential_id" not in raw:
        raise ConfigError(f"Cloud '{name}' missing 'credential_id' field")
    return _build(cls, f"clouds.{name}", {"name": name, **raw})


def resolve_clouds(config: RawConfig) -> list[CloudConfig]:
    return [_build_cloud(name, raw) for name, raw in config["clouds"].items()]


def resolve_destroy_settings(config: RawConfig) -> DestroySettings:
    return _build(DestroySettings, "destroy", config["destroy"])


def resolve_log_config(config: RawConfig) -> LogConfig:
    return _build(LogConfig, "logging", config["logging"])


def load_registry(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
    install: bool = True,
) -> CloudRegistry:
    """Build a registry from configuration files.

    With ``install`` (the default) it also becomes the process-wide registry.
    """
    config = load_config(project_dir=project_dir, global_path=global_path)
    clouds = resolve_clouds(config)
    if install:
        return init_registry(clouds)
    return CloudRegistry(clouds)


@dataclass
class Runtime:
    """Process-wide state installed by ``bootstrap``."""

    registry: CloudRegistry
    coordinator: DestructionCoordinator
    log_handler_ids: list[int] = field(default_factory=list)
    owns_logging: bool = False

    def close(self, wait: bool = True) -> None:
        """Drain pending destroys and remove the log sinks."""
        release_default_coordinator(self.coordinator)
        self.coordinator.shutdown(wait=wait)
        if self.owns_logging:
            teardown_logging(self.log_handler_ids)
            self.log_handler_ids = []
            self.owns_logging = False

    def __enter__(self) -> Runtime:
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()


def bootstrap(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
    configure_logging: bool = True,
) -> Runtime:
    """Load configuration and install it process-wide.

    ``[logging]`` sets up the log sinks, ``[clouds.*]`` becomes the registry
    returned by ``get_registry()`` and ``[destroy]`` configures the
    coordinator returned by ``default_coordinator()``. Nodes built without
    explicit collaborators pick these up. Every table is validated before
    anything is installed.
    """
    config = load_config(project_dir=project_dir, global_path=global_path)
    log_config = resolve_log_config(config)
    clouds = resolve_clouds(config)
    settings = resolve_destroy_settings(config)

    handler_ids = setup_logging(log_config) if configure_logging else []
    registry = init_registry(clouds)
    coordinator = install_default_coordinator(DestructionCoordinator(settings))
    return Runtime(
        registry=registry,
        coordinator=coordinator,
        log_handler_ids=handler_ids,
        owns_logging=configure_logging,
    )
