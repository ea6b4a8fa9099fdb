"""Session protocols consumed by the typed session layer.

The raw session store is a collaborator: it owns parsing and serializing
the header that identifies a session and persisting the data behind it.
sessionkit only relies on the narrow shapes defined here.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SessionLike(Protocol):
    """Shape of a session value: an id, a data mapping and untyped accessors.

    Note: ``id`` is the empty string for sessions without a durable
    identity (new sessions, or stores that keep data in the header).
    """

    @property
    def id(self) -> str: ...

    @property
    def data(self) -> dict[str, Any]: ...

    def has(self, name: str) -> bool: ...

    def get(self, name: str) -> Any: ...

    def set(self, name: str, value: Any) -> None: ...

    def flash(self, name: str, value: Any) -> None: ...

    def unset(self, name: str) -> None: ...


@runtime_checkable
class SessionStorage(Protocol):
    """Protocol for raw session stores.

    All three operations are awaitable; implementations may hit a
    database or a remote cache.
    """

    async def get_session(
        self,
        header: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> SessionLike:
        """Load the session identified by ``header`` (a new one if absent)."""
        ...

    async def commit_session(
        self,
        session: SessionLike,
        options: Mapping[str, Any] | None = None,
    ) -> str:
        """Persist the session and return the header that identifies it."""
        ...

    async def destroy_session(
        self,
        session: SessionLike,
        options: Mapping[str, Any] | None = None,
    ) -> str:
        """Remove the session and return a header that clears it."""
        ...


def is_session(value: object) -> bool:
    """Return True if ``value`` has the generic session shape."""
    if not isinstance(value, SessionLike):
        return False
    # Protocol isinstance() only checks attribute presence
    return isinstance(value.id, str) and isinstance(value.data, Mapping)
