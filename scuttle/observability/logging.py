"""Log sinks for Scuttle.

Scuttle logs through loguru and stays silent until ``setup_logging`` is
called. Three sinks can be configured:

- console: colored, one line per record, at ``LogConfig.level``.
- file: everything from DEBUG up, rotated and compressed.
- orphan report: only records bound with ``orphan=True``. Those are logged
  when a droplet could not be destroyed (missing cloud or credential, API
  failure after retries), so the file lists the droplets an operator may
  have to delete by hand.

Records are suffixed with the node/cloud/droplet context they were bound
with, e.g. ``[component=destroy cloud=do-east droplet_id=42]``.

Example:
    handler_ids = setup_logging(LogConfig(level="DEBUG", file=None))
    ...
    teardown_logging(handler_ids)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from loguru import logger

logger.disable("scuttle")

type LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]

PACKAGE = "scuttle"
ORPHAN_KEY = "orphan"

_CONTEXT_KEYS = ("component", "node", "cloud", "droplet_id")


@dataclass(frozen=True, slots=True)
class LogConfig:
    """The ``[logging]`` table.

    Attributes:
        level: Console threshold.
        console: Log to stderr.
        file: Full debug log, or None to skip it.
        orphan_file: Report of droplets that may have been left running,
            or None to skip it.
        rotation: Rotation policy for both files (e.g. "50 MB", "1 day").
        retention: Rotated files to keep.
    """

    level: LogLevel = "INFO"
    console: bool = True
    file: str | None = ".scuttle/scuttle.log"
    orphan_file: str | None = ".scuttle/orphans.log"
    rotation: str = "50 MB"
    retention: int = 10


def _context_suffix(record: Any) -> str:
    extra = record.get("extra", {})
    pairs = " ".join(f"{key}={extra[key]}" for key in _CONTEXT_KEYS if key in extra)
    return f" [{pairs}]" if pairs else ""


def _console_format(record: Any) -> str:
    record["extra"]["_ctx"] = _context_suffix(record)
    return (
        "<green>{time:HH:mm:ss.SSS}</green> <level>{level: <7}</level> "
        "<level>{message}</level><dim>{extra[_ctx]}</dim>\n{exception}"
    )


def _file_format(record: Any) -> str:
    record["extra"]["_ctx"] = _context_suffix(record)
    return "{time:YYYY-MM-DD HH:mm:ss.SSS} {level: <7} {thread.name} {name}{extra[_ctx]} {message}\n{exception}"


def _orphan_format(record: Any) -> str:
    record["extra"]["_ctx"] = _context_suffix(record)
    return "{time:YYYY-MM-DD HH:mm:ss}{extra[_ctx]} {message}\n"


def _from_scuttle(record: Any) -> bool:
    name = record["name"] or ""
    return name == PACKAGE or name.startswith(PACKAGE + ".")


def _is_orphan_report(record: Any) -> bool:
    return _from_scuttle(record) and bool(record["extra"].get(ORPHAN_KEY))


def _prepare(path: str) -> str:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    return path


def setup_logging(config: LogConfig) -> list[int]:
    """Install the configured sinks and enable Scuttle's logs.

    Loguru's default stderr handler is removed. Returns the handler ids to
    pass to ``teardown_logging``.
    """
    logger.remove()
    logger.enable(PACKAGE)

    handler_ids: list[int] = []
    if config.console:
        handler_ids.append(
            logger.add(sys.stderr, level=config.level, format=_console_format, filter=_from_scuttle, colorize=True)
        )
    if config.file:
        handler_ids.append(
            logger.add(
                _prepare(config.file),
                level="DEBUG",
                format=_file_format,
                filter=_from_scuttle,
                rotation=config.rotation,
                retention=config.retention,
                compression="zip",
                diagnose=False,
            )
        )
    if config.orphan_file:
        handler_ids.append(
            logger.add(
                _prepare(config.orphan_file),
                level="WARNING",
                format=_orphan_format,
                filter=_is_orphan_report,
                rotation=config.rotation,
                retention=config.retention,
            )
        )
    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    """Remove the handlers installed by ``setup_logging`` and silence Scuttle again."""
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable(PACKAGE)
