"""Core infrastructure: schema vocabulary, coercion, configuration, logging, raw stores."""

from sessionkit.core.coercion import (
    DEFAULT_OPTIONS,
    CoercionOptions,
    FileSupport,
    coerce_file,
    coerce_string,
    enable_type_coercion,
    is_file_schema,
)
from sessionkit.core.config import DEFAULT_SETTINGS, SessionSettings, load_settings
from sessionkit.core.logging import REDACTED, configure_logging
from sessionkit.core.schema import MISSING, ParseResult, SchemaNode
from sessionkit.core.storage import MemorySessionStorage, Session

__all__ = [
    "DEFAULT_OPTIONS",
    "DEFAULT_SETTINGS",
    "MISSING",
    "REDACTED",
    "CoercionOptions",
    "FileSupport",
    "MemorySessionStorage",
    "ParseResult",
    "SchemaNode",
    "Session",
    "SessionSettings",
    "coerce_file",
    "coerce_string",
    "configure_logging",
    "enable_type_coercion",
    "is_file_schema",
    "load_settings",
]
