"""structlog setup driven by the ``logging`` settings section."""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any, TextIO

import structlog

if TYPE_CHECKING:
    from dinghy.settings import Settings

__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "correlation_id_var",
    "new_correlation_id",
]

# One id per pipeline update run
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def new_correlation_id() -> str:
    """Generate and set a new correlation ID for the current context."""
    cid = str(uuid.uuid4())
    correlation_id_var.set(cid)
    return cid


def _add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    cid = correlation_id_var.get("")
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def _level_number(level: str) -> int:
    value = logging.getLevelName((level or "INFO").upper())
    return value if isinstance(value, int) else logging.INFO


# Root handler installed by configure_logging; replaced on reconfiguration
_handler: logging.Handler | None = None


def configure_logging(
    *,
    json_output: bool = True,
    level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and stdlib logging for the process.

    Records from ``logging.getLogger(...)`` loggers and from structlog
    loggers go through one root handler and the same processor chain.

    Args:
        json_output: True for JSON lines, False for the console renderer.
        level: Level name; unknown or empty names mean INFO.
        stream: Where to write. Defaults to stdout.
    """
    global _handler

    level_no = _level_number(level)
    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _add_correlation_id,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(level_no)
    _handler = handler


def configure_from_settings(settings: Settings) -> TextIO | None:
    """Apply ``settings.logging``.

    JSON goes to ``settings.logging.file`` when set (the opened file is
    returned so the caller can close it at shutdown), else to stdout.
    """
    log_file: TextIO | None = None
    if settings.logging.file:
        path = Path(settings.logging.file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        log_file = path.open("a", encoding="utf-8")
    configure_logging(
        json_output=True,
        level=settings.logging.level,
        stream=log_file,
    )
    return log_file


def get_logger(**kwargs: Any) -> structlog.BoundLogger:
    """Get a bound logger with optional initial context."""
    return structlog.get_logger(**kwargs)  # type: ignore[no-any-return]
