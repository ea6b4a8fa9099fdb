"""Shared contracts for cross-boundary data types.

Enums, error types and session protocols used by core/ and engine/.
This package is a LEAF MODULE with no outbound dependencies to
core/engine.

Import patterns:
    from sessionkit.contracts import SchemaKind, SchemaCorruptionError, SessionLike
"""

from sessionkit.contracts.enums import EffectType, SchemaKind, UnknownKeys
from sessionkit.contracts.errors import (
    CommitValidationError,
    InvalidKeyError,
    Issue,
    IssuePath,
    SchemaCorruptionError,
    error_codes,
    issues_from,
)
from sessionkit.contracts.session import SessionLike, SessionStorage, is_session

__all__ = [
    "CommitValidationError",
    "EffectType",
    "InvalidKeyError",
    "Issue",
    "IssuePath",
    "SchemaCorruptionError",
    "SchemaKind",
    "SessionLike",
    "SessionStorage",
    "UnknownKeys",
    "error_codes",
    "is_session",
    "issues_from",
]
