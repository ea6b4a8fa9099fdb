"""Error types for schema validation and typed sessions.

Schema nodes raise pydantic_core.ValidationError. Issue is the flattened
form of one entry of its ``errors()`` list, which session errors carry.

Three session-level failures are distinguished by where they originate:

- SchemaCorruptionError: stored data does not match the schema (the store
  handed us something we never wrote)
- InvalidKeyError: the caller asked for a key the schema does not declare
  (programmer error)
- CommitValidationError: in-process mutations left the data invalid

None of these are retried. Coercion failures are NOT errors at this
level: an unparseable value is passed through so the schema's own check
reports it as a ValidationError.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from pydantic_core import ErrorDetails, ValidationError

IssuePath = tuple[str | int, ...]


@dataclass(frozen=True, slots=True)
class Issue:
    """A single validation failure at a location in the input.

    Attributes:
        code: Machine-readable failure code (e.g. "missing", "bool_type")
        path: Keys/indexes from the root value to the failing value
        message: Human-readable description
    """

    code: str
    path: IssuePath
    message: str

    @classmethod
    def from_error(cls, error: ErrorDetails) -> Issue:
        return cls(code=error["type"], path=tuple(error["loc"]), message=error["msg"])

    @property
    def location(self) -> str:
        """Dotted path for display ("" for the root value)."""
        return ".".join(str(part) for part in self.path)

    def __str__(self) -> str:
        if not self.path:
            return self.message
        return f"{self.location}: {self.message}"


def issues_from(exc: ValidationError) -> tuple[Issue, ...]:
    return tuple(Issue.from_error(error) for error in exc.errors())


def error_codes(exc: ValidationError) -> list[str]:
    """Error types in report order, e.g. ["missing", "string_type"]."""
    return [error["type"] for error in exc.errors()]


def _summary(issues: tuple[Issue, ...]) -> str:
    return "; ".join(str(issue) for issue in issues) or "Invalid input"


class SchemaCorruptionError(Exception):
    """Raised when a raw session record fails strict validation.

    The record contains an undeclared key, or a declared key holds a
    value that cannot be coerced into its type. This indicates tampering
    or a schema change without migration; it is not recoverable.
    """

    def __init__(self, session_id: str, cause: ValidationError) -> None:
        self.session_id = session_id
        self.issues = issues_from(cause)
        label = session_id or "<new>"
        super().__init__(f"Session {label} does not match its schema: {_summary(self.issues)}")


class InvalidKeyError(KeyError):
    """Raised when a session key is not declared by the schema."""

    def __init__(self, key: object, allowed: Iterable[str]) -> None:
        self.key = key
        self.allowed = tuple(sorted(allowed))
        super().__init__(f"Invalid session key {key!r}. Expected one of: {', '.join(self.allowed)}")

    def __str__(self) -> str:
        # KeyError.__str__ repr()s the message; keep it readable
        return str(self.args[0])


class CommitValidationError(Exception):
    """Raised when a session's working data fails the original schema at commit/destroy."""

    def __init__(self, operation: str, session_id: str, cause: ValidationError) -> None:
        self.operation = operation
        self.session_id = session_id
        self.issues = issues_from(cause)
        label = session_id or "<new>"
        super().__init__(f"Cannot {operation} session {label}: {_summary(self.issues)}")
