"""Raw (untyped) sessions and an in-process session store.

The store here keeps records in a dict keyed by session id and uses the
id itself as the header. Signing the header and carrying it in a cookie
belong to the transport, not to this module.
"""

from __future__ import annotations

import copy
import uuid
from collections.abc import Mapping
from typing import Any

import structlog

from sessionkit.contracts.session import SessionLike
from sessionkit.core.config import DEFAULT_SETTINGS, SessionSettings

logger = structlog.get_logger(__name__)


class Session:
    """A mutable key/value session with flash values.

    A flashed value is stored under a shadow key and removed by the first
    get() that returns it.
    """

    def __init__(
        self,
        data: Mapping[str, Any] | None = None,
        id: str = "",
        *,
        settings: SessionSettings = DEFAULT_SETTINGS,
    ) -> None:
        self._id = id
        self._data: dict[str, Any] = dict(data or {})
        self._settings = settings

    @property
    def id(self) -> str:
        return self._id

    @property
    def data(self) -> dict[str, Any]:
        return self._data

    def has(self, name: str) -> bool:
        return name in self._data or self._settings.flash_key(name) in self._data

    def get(self, name: str) -> Any:
        if name in self._data:
            return self._data[name]
        flash_key = self._settings.flash_key(name)
        if flash_key in self._data:
            return self._data.pop(flash_key)
        return None

    def set(self, name: str, value: Any) -> None:
        self._data[name] = value

    def flash(self, name: str, value: Any) -> None:
        self._data[self._settings.flash_key(name)] = value

    def unset(self, name: str) -> None:
        self._data.pop(name, None)

    def __repr__(self) -> str:
        return f"Session(id={self._id!r}, keys={sorted(self._data)!r})"


class MemorySessionStorage:
    """Session store keeping records in process memory.

    Records are deep-copied on load and on commit so no two sessions
    (or a session and the store) share mutable state.
    """

    def __init__(self, *, settings: SessionSettings = DEFAULT_SETTINGS) -> None:
        self._records: dict[str, dict[str, Any]] = {}
        self._settings = settings

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._records

    async def get_session(
        self,
        header: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Session:
        """Load the session for ``header``; unknown or empty headers yield a new session."""
        if header and header in self._records:
            data = copy.deepcopy(self._records[header])
            return Session(data, header, settings=self._settings)
        if header:
            logger.debug("session_not_found", session_id=header)
        return Session(settings=self._settings)

    async def commit_session(
        self,
        session: SessionLike,
        options: Mapping[str, Any] | None = None,
    ) -> str:
        """Store the session's data and return its id (allocated if new)."""
        session_id = session.id or uuid.uuid4().hex
        self._records[session_id] = copy.deepcopy(dict(session.data))
        logger.debug("session_committed", session_id=session_id, keys=sorted(session.data))
        return session_id

    async def destroy_session(
        self,
        session: SessionLike,
        options: Mapping[str, Any] | None = None,
    ) -> str:
        """Remove the session's record and return an empty header."""
        if session.id:
            self._records.pop(session.id, None)
            logger.debug("session_destroyed", session_id=session.id)
        return ""
