"""Typed session store: wraps a raw SessionStorage with schema validation.

The schema is rewritten for coercion once, when the store is created.
Loading validates through the coerced, flash-extended schema; committing
and destroying re-validate the working data against the schema as
written, so a value stored by set() that the schema rejects never
reaches the raw store.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from pydantic_core import ValidationError

from sessionkit.contracts.errors import CommitValidationError, error_codes, issues_from
from sessionkit.contracts.session import SessionStorage
from sessionkit.core.coercion import DEFAULT_OPTIONS, CoercionOptions
from sessionkit.core.config import DEFAULT_SETTINGS, SessionSettings
from sessionkit.core.schema import Object
from sessionkit.engine.typed_session import SessionSchema, TypedSession, create_typed_session

logger = structlog.get_logger(__name__)


class TypedSessionStorage:
    """Produces TypedSessions from a raw store and validates them before persisting."""

    def __init__(
        self,
        session_storage: SessionStorage,
        schema: Object,
        *,
        settings: SessionSettings = DEFAULT_SETTINGS,
        options: CoercionOptions = DEFAULT_OPTIONS,
    ) -> None:
        self._storage = session_storage
        self._schema = SessionSchema.build(schema, settings=settings, options=options)

    @property
    def schema(self) -> SessionSchema:
        return self._schema

    async def get_session(
        self,
        header: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> TypedSession:
        """Load and validate the session identified by ``header``.

        Raises:
            SchemaCorruptionError: If the stored record does not match the schema
        """
        session = await self._storage.get_session(header, options)
        return await create_typed_session(session, self._schema)

    async def commit_session(
        self,
        session: TypedSession,
        options: Mapping[str, Any] | None = None,
    ) -> str:
        """Validate the working data and persist it through the raw store.

        Raises:
            CommitValidationError: If the data no longer matches the schema
        """
        await self._validate("commit", session)
        return await self._storage.commit_session(session, options)

    async def destroy_session(
        self,
        session: TypedSession,
        options: Mapping[str, Any] | None = None,
    ) -> str:
        """Validate the working data, then destroy the session through the raw store.

        Raises:
            CommitValidationError: If the data no longer matches the schema
        """
        await self._validate("destroy", session)
        return await self._storage.destroy_session(session, options)

    async def _validate(self, operation: str, session: TypedSession) -> None:
        try:
            await self._schema.source.parse_async(session.data)
        except ValidationError as exc:
            logger.warning(
                "session_commit_validation_failed",
                operation=operation,
                session_id=session.id,
                codes=error_codes(exc),
                locations=[issue.location for issue in issues_from(exc)],
            )
            raise CommitValidationError(operation, session.id, exc) from exc


def create_typed_session_storage(
    session_storage: SessionStorage,
    schema: Object,
    *,
    settings: SessionSettings = DEFAULT_SETTINGS,
    options: CoercionOptions = DEFAULT_OPTIONS,
) -> TypedSessionStorage:
    return TypedSessionStorage(session_storage, schema, settings=settings, options=options)
