"""
sessionkit: Schema-typed sessions with form-input coercion.

Wraps a key/value session store so stored data is validated against a
schema, and rewrites schemas so raw form input (strings, empty values,
blank uploads) is coerced into the types the schema expects.

Application startup:
    settings = sessionkit.configure(Path("sessionkit.yaml"))
    storage = create_typed_session_storage(
        MemorySessionStorage(settings=settings), schema, settings=settings
    )
"""

from pathlib import Path

from sessionkit.core.config import SessionSettings, load_settings
from sessionkit.core.logging import configure_logging

__version__ = "0.1.0"

__all__ = ["configure"]


def configure(config_path: Path | None = None) -> SessionSettings:
    """Load settings and set up logging from them. Call once at startup."""
    settings = load_settings(config_path)
    configure_logging(settings)
    return settings
