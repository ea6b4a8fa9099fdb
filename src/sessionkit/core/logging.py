"""Structured logging configuration for sessionkit.

sessionkit modules log through structlog.get_logger(__name__).
configure_logging() renders those events, and stdlib records from other
libraries, through one ProcessorFormatter handler in the format the
settings ask for (JSON lines or console).

Session values are never logged. Every event passes through
_keys_not_values(): a mapping is reduced to its sorted keys, and fields
that carry session values by name are replaced with REDACTED.
"""

import logging
import sys
from collections.abc import Mapping
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

from sessionkit.core.config import DEFAULT_SETTINGS, SessionSettings

REDACTED = "<redacted>"

_HANDLER_NAME = "sessionkit"

_VALUE_FIELDS = frozenset({"value", "values", "data", "fallback", "default"})

# Libraries we drive that are chatty at DEBUG
_QUIET_LOGGERS: tuple[str, ...] = ("dynaconf", "asyncio")


def _keys_not_values(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    for name, field in event_dict.items():
        if name in _VALUE_FIELDS:
            event_dict[name] = REDACTED
        elif isinstance(field, Mapping):
            event_dict[name] = sorted(str(key) for key in field)
    return event_dict


def _drop_formatter_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    event_dict.pop("_record", None)
    event_dict.pop("_from_structlog", None)
    return event_dict


def configure_logging(settings: SessionSettings = DEFAULT_SETTINGS, *, stream: TextIO | None = None) -> None:
    """Configure structlog and stdlib logging from ``settings``.

    Uses ``settings.log_level`` and ``settings.json_logs``. Calling again
    replaces the handler installed by the previous call; handlers added
    by the application are left alone.

    Args:
        settings: Logging level and output format
        stream: Where log lines go (stdout by default)
    """
    level = logging.getLevelNamesMapping()[settings.log_level]

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        _keys_not_values,
    ]

    renderer: Any
    if settings.json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        ProcessorFormatter(
            processors=[_drop_formatter_fields, structlog.processors.format_exc_info, renderer],
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
