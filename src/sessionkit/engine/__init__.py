"""Typed sessions and the typed session store.

Example:
    from sessionkit.core import MemorySessionStorage
    from sessionkit.core.schema import Number, Object, String
    from sessionkit.engine import create_typed_session_storage

    storage = create_typed_session_storage(
        MemorySessionStorage(),
        Object({"user": String().optional(), "visits": Number().default(0)}),
    )

    session = await storage.get_session(header)
    session.set("visits", session.get("visits") + 1)
    session.flash("user", "Welcome back")
    header = await storage.commit_session(session)
"""

from sessionkit.engine.typed_session import SessionSchema, TypedSession, create_typed_session, is_typed_session
from sessionkit.engine.typed_storage import TypedSessionStorage, create_typed_session_storage

__all__ = [
    "SessionSchema",
    "TypedSession",
    "TypedSessionStorage",
    "create_typed_session",
    "create_typed_session_storage",
    "is_typed_session",
]
