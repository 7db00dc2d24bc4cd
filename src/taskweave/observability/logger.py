"""
observability/logger.py — taskweave Structured Logging

structlog on top of stdlib logging. The log file is always JSON; the console
stream is JSON or the coloured dev renderer. Every line carries timestamp,
level, logger name and whatever session_context() has bound (session_id,
agent_id).

Usage:
    from taskweave.observability.logger import get_logger, session_context

    log = get_logger(__name__)
    with session_context(session_id, agent_id):
        log.info("agent.turn_start", iteration=1)
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import structlog

LOG_FILE_NAME = "taskweave.log"


def _pre_chain() -> list[Any]:
    """Processors applied to structlog and foreign (stdlib) records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_pre_chain(),
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def setup_logging(
    level: str = "INFO",
    log_dir: str | Path | None = "./data/logs",
    json_format: bool = True,
    console_output: bool = True,
    max_bytes: int = 100 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure logging for the process. Safe to call again; handlers are replaced.

    Args:
        level:          DEBUG | INFO | WARNING | ERROR | CRITICAL
        log_dir:        Directory for the rotating JSON log file, or None for no file.
        json_format:    Console renderer: JSON when True, coloured key=value otherwise.
        console_output: Attach a stdout handler.
        max_bytes:      Rotation threshold for the log file.
        backup_count:   Rotated files kept.
    """
    threshold = logging.getLevelName(level.upper())
    if not isinstance(threshold, int):
        threshold = logging.INFO

    handlers: list[logging.Handler] = []

    if log_dir is not None:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            directory / LOG_FILE_NAME,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
        handlers.append(file_handler)

    if console_output:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(_formatter(
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(colors=True)
        ))
        handlers.append(console)

    if not handlers:
        handlers.append(logging.NullHandler())

    for handler in handlers:
        handler.setLevel(threshold)
    logging.basicConfig(level=threshold, handlers=handlers, force=True)

    structlog.configure(
        processors=[*_pre_chain(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_logging_from_settings(settings) -> None:
    """Apply the `logging` section of Settings."""
    cfg = settings.logging
    setup_logging(
        level=cfg.level,
        log_dir=cfg.log_dir,
        json_format=cfg.json_format,
        console_output=cfg.console_output,
        max_bytes=cfg.max_file_size_mb * 1024 * 1024,
        backup_count=cfg.backup_count,
    )


def get_logger(name: str = "taskweave", **bound: Any) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger(name)
    return logger.bind(**bound) if bound else logger


@contextmanager
def session_context(session_id: str, agent_id: Optional[str] = None) -> Iterator[None]:
    """
    Bind session_id / agent_id to every log line emitted inside the block.

    The outer binding is restored on exit, so a subagent turn nested in a
    parent turn leaves the parent's ids in place afterwards.
    """
    values: dict[str, Any] = {"session_id": session_id}
    if agent_id:
        values["agent_id"] = agent_id
    with structlog.contextvars.bound_contextvars(**values):
        yield
