"""
Structured logging for smartchunk.

Events are emitted through structlog and rendered by the standard logging
handlers. Every event carries the emitting thread's name, which is how worker
and writer activity are told apart in a run's log. The CLI keeps the console
quiet by default and can send a plain-text or JSON log to a file instead.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import structlog
from structlog.stdlib import BoundLogger, ProcessorFormatter
from structlog.typing import Processor

LevelLike = Union[int, str]

_PRE_CHAIN: tuple[Processor, ...] = (
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.CallsiteParameterAdder(
        {structlog.processors.CallsiteParameter.THREAD_NAME}
    ),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.TimeStamper(fmt="iso"),
)


def resolve_level(level: LevelLike) -> int:
    """Accept ``logging.DEBUG`` as well as ``"debug"``."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def _configure_structlog(min_level: int) -> None:
    structlog.configure(
        processors=_PRE_CHAIN + (ProcessorFormatter.wrap_for_formatter,),
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def _formatter(json_output: bool = False) -> ProcessorFormatter:
    renderer: Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    return ProcessorFormatter(
        processors=[ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=_PRE_CHAIN,
    )


def _install(handler: logging.Handler, level: int) -> None:
    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()
    root.addHandler(handler)
    root.setLevel(level)


def configure_logging(
    level: LevelLike = logging.INFO,
    enable_console: bool = True,
    console_level: Optional[LevelLike] = None,
) -> None:
    """
    Configure global logging.

    Parameters
    ----------
    level:
        Minimum severity that is emitted at all.
    enable_console:
        When False, events are dropped instead of written to stderr.
    console_level:
        Severity threshold for the stderr handler. Defaults to ``level``.
    """
    min_level = resolve_level(level)
    _configure_structlog(min_level)
    logging.captureWarnings(True)

    handler: logging.Handler
    if enable_console:
        handler = logging.StreamHandler()
        handler.setLevel(resolve_level(console_level) if console_level is not None else min_level)
        handler.setFormatter(_formatter())
    else:
        handler = logging.NullHandler()
    _install(handler, min_level)


def get_logger(name: Optional[str] = None) -> BoundLogger:
    return structlog.get_logger(name)


def redirect_logging_to_file(
    path: Path, level: LevelLike = logging.INFO, json_output: bool = False
) -> None:
    """Write every event at ``level`` or above to ``path`` (truncated first)."""
    min_level = resolve_level(level)
    _configure_structlog(min_level)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setFormatter(_formatter(json_output))
    _install(handler, min_level)
