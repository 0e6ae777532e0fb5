"""Structured logging for TrustGate — always written to stderr."""

import sys
from typing import Any

import structlog

from trustgate.constants import PROJECT_NAME


def _add_project_info(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add project metadata to every log entry."""
    event_dict["service"] = PROJECT_NAME
    return event_dict


def _shorten_object_ids(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Abbreviate full object ids in the commit/parent fields."""
    for key in ("commit", "parent", "old", "new", "trusted_parent"):
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) == 40:
            event_dict[key] = value[:12]
    return event_dict


def setup_logging(level: str = "INFO", json_format: bool = False, cache_loggers: bool = True) -> None:
    """
    Configure structured logging for TrustGate.

    Git hooks share stdout with the transport protocol, so every
    renderer writes to stderr. Console output is the default since
    the hook's diagnostics are read by the person pushing.

    Pass ``cache_loggers=False`` for a provisional configuration that a
    later call will replace; cached loggers keep the settings they were
    first used with.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _add_project_info,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(_shorten_object_ids)
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            _level_to_int(level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=cache_loggers,
    )


def get_logger(name: str = "") -> structlog.BoundLogger:
    """Get a logger instance bound to a component name.

    The component is passed as an initial value so the proxy stays lazy
    and picks up whatever ``setup_logging`` configures later.
    """
    if name:
        return structlog.get_logger(component=name)
    return structlog.get_logger()


def _level_to_int(level: str) -> int:
    """Convert string log level to integer."""
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)
