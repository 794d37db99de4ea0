"""
Structured logging for SteadyFocus (structlog over stdlib logging).

Engine modules only emit key/value events through get_logger(__name__);
the host application (or the CLI) calls setup_logging() once. Every
event is tagged with the engine component that emitted it, and with the
user being processed once bind_user() has been called.

Usage:
    from tools.logging_config import bind_user, get_logger, setup_logging

    setup_logging()                  # STEADYFOCUS_LOG_LEVEL / STEADYFOCUS_LOG_FORMAT
    bind_user("alice")
    logger = get_logger(__name__)
    logger.info("strictness_changed", old_level=3, new_level=4)
"""

from __future__ import annotations

import logging
import os
import sys

import structlog


LOG_LEVEL_ENV = "STEADYFOCUS_LOG_LEVEL"
LOG_FORMAT_ENV = "STEADYFOCUS_LOG_FORMAT"

ENGINE_PACKAGE = "tools.personalization."


def _add_component(logger, method_name: str, event_dict: dict) -> dict:
    """Short component name ("adaptation", "store", ...) from the logger name."""
    name = event_dict.get("logger") or ""
    if name.startswith(ENGINE_PACKAGE):
        event_dict.setdefault("component", name[len(ENGINE_PACKAGE):])
    return event_dict


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Route structlog events through a single stderr handler.

    Args:
        level: Log level name (default: STEADYFOCUS_LOG_LEVEL or INFO)
        json_output: JSON lines instead of console rendering
            (default: STEADYFOCUS_LOG_FORMAT == "json")
    """
    level = level or os.environ.get(LOG_LEVEL_ENV) or "INFO"
    if json_output is None:
        json_output = os.environ.get(LOG_FORMAT_ENV, "").strip().lower() == "json"

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _add_component,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    # stdout is reserved for CLI results
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def bind_user(user_id: str | None) -> None:
    """Tag every following event with the user being processed."""
    structlog.contextvars.clear_contextvars()
    if user_id:
        structlog.contextvars.bind_contextvars(user_id=user_id)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["bind_user", "get_logger", "setup_logging"]
