"""Typed sessions: a raw session record validated against an object schema.

A record holds two kinds of keys in one mapping:

- real keys, declared by the schema
- flash keys, one shadow per real key (``__flash_<name>__`` by default)
  holding an optional value of the same type

On load the record is validated in strict mode against the coercion-
enabled schema extended with the flash keys. An undeclared key means the
record was not written by us, so loading fails with SchemaCorruptionError.

Flash lifecycle for key ``k``:

    flash(k, v)  -> shadow holds v
    get(k)       -> returns v, shadow removed (unless real key k is set,
                    which always wins and leaves the shadow in place)
    get(k)       -> real value or None
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from pydantic_core import ValidationError

from sessionkit.contracts.errors import InvalidKeyError, SchemaCorruptionError, error_codes, issues_from
from sessionkit.contracts.session import SessionLike, is_session
from sessionkit.core.coercion import DEFAULT_OPTIONS, CoercionOptions, enable_type_coercion
from sessionkit.core.config import DEFAULT_SETTINGS, SessionSettings
from sessionkit.core.schema import Object

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SessionSchema:
    """The schemas derived from one object schema, computed once.

    Attributes:
        source: The schema as written; commit/destroy validate against it
        coerced: ``source`` rewritten by enable_type_coercion()
        validator: ``coerced`` extended with optional flash keys, strict
        keys: Declared (real) key names
        settings: Settings that define the flash key pattern
    """

    source: Object
    coerced: Object
    validator: Object
    keys: frozenset[str]
    settings: SessionSettings

    @classmethod
    def build(
        cls,
        schema: Object,
        *,
        settings: SessionSettings = DEFAULT_SETTINGS,
        options: CoercionOptions = DEFAULT_OPTIONS,
    ) -> SessionSchema:
        coerced = enable_type_coercion(schema, options=options)
        if not isinstance(coerced, Object):
            raise TypeError(f"Session schema must be an Object, got {schema.kind}")

        flash_shape = {settings.flash_key(key): node.optional() for key, node in coerced.shape.items()}
        validator = coerced.extend(flash_shape).strict()
        return cls(
            source=schema,
            coerced=coerced,
            validator=validator,
            keys=frozenset(coerced.shape),
            settings=settings,
        )

    def flash_key(self, name: str) -> str:
        return self.settings.flash_key(name)

    def check_key(self, name: object) -> str:
        """Return ``name`` if the schema declares it.

        Raises:
            InvalidKeyError: If it does not
        """
        if not isinstance(name, str) or name not in self.keys:
            raise InvalidKeyError(name, self.keys)
        return name


class TypedSession:
    """A session whose data is validated against a schema.

    The working data is owned by this object: mutations are only visible
    to the store when the session is committed.
    """

    is_typed = True

    def __init__(self, session: SessionLike, schema: SessionSchema, data: dict[str, Any]) -> None:
        self._session = session
        self._schema = schema
        self._data = data

    @property
    def id(self) -> str:
        """Id of the wrapped session ("" for new or header-only sessions)."""
        return self._session.id

    @property
    def data(self) -> dict[str, Any]:
        return self._data

    @property
    def schema(self) -> SessionSchema:
        return self._schema

    def has(self, name: str) -> bool:
        key = self._schema.check_key(name)
        return key in self._data or self._schema.flash_key(key) in self._data

    def get(self, name: str) -> Any:
        """Return the value for ``name``, consuming a flashed value.

        Returns None when neither the key nor its flash shadow is set.
        """
        key = self._schema.check_key(name)
        if key in self._data:
            return self._data[key]
        flash_key = self._schema.flash_key(key)
        if flash_key in self._data:
            return self._data.pop(flash_key)
        return None

    def set(self, name: str, value: Any) -> None:
        key = self._schema.check_key(name)
        self._data[key] = value

    def flash(self, name: str, value: Any) -> None:
        """Set a value that is only visible to the next get()."""
        key = self._schema.check_key(name)
        self._data[self._schema.flash_key(key)] = value

    def unset(self, name: str) -> None:
        key = self._schema.check_key(name)
        self._data.pop(key, None)

    def __repr__(self) -> str:
        return f"TypedSession(id={self.id!r}, keys={sorted(self._data)!r})"


async def create_typed_session(
    session: SessionLike,
    schema: Object | SessionSchema,
    *,
    settings: SessionSettings = DEFAULT_SETTINGS,
    options: CoercionOptions = DEFAULT_OPTIONS,
) -> TypedSession:
    """Validate a raw session and wrap it.

    Defaults are filled in and raw values are coerced. ``settings`` and
    ``options`` are only used when ``schema`` is a plain Object.

    Raises:
        SchemaCorruptionError: If the record has undeclared keys or
            values that do not validate
    """
    if isinstance(schema, Object):
        schema = SessionSchema.build(schema, settings=settings, options=options)

    try:
        data = await schema.validator.parse_async(session.data)
    except ValidationError as exc:
        logger.warning(
            "session_schema_corruption",
            session_id=session.id,
            codes=error_codes(exc),
            locations=[issue.location for issue in issues_from(exc)],
        )
        raise SchemaCorruptionError(session.id, exc) from exc

    logger.debug("typed_session_loaded", session_id=session.id, keys=sorted(data))
    return TypedSession(session, schema, data)


def is_typed_session(value: object) -> bool:
    """Return True if ``value`` is a session carrying the typed marker."""
    return is_session(value) and getattr(value, "is_typed", False) is True
