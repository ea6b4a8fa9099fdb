"""Type coercion for raw form input.

Form submissions arrive as strings (or lists of strings, or blank file
uploads). enable_type_coercion() rewrites a schema tree so each node
first normalizes that raw input, then validates with the original node:

- "" becomes MISSING, so Optional/Default fields behave as if unset
- "42" becomes 42.0 for Number, "on" becomes True for Boolean
- A single value for an Array becomes a one-element list
- A blank upload (empty name, zero size) becomes MISSING

Coercion never produces its own errors. A value that cannot be converted
("abc" for a Number, "off" for a Boolean) is passed on so the original
node reports it.

Cycles:
    Trees can only be cyclic through Lazy nodes. Every rewritten node is
    memoized by source identity, and Lazy nodes are rewritten into new
    Lazy nodes whose getter resolves through the same memo. A recursive
    definition therefore rewrites each distinct node at most once and
    terminates.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from functools import partial
from typing import Any

import structlog

from sessionkit.contracts.enums import EffectType
from sessionkit.core.schema import (
    MISSING,
    AnyValue,
    Array,
    BigInt,
    Boolean,
    Catch,
    Date,
    Default,
    DiscriminatedUnion,
    Effect,
    Enum,
    Intersection,
    Lazy,
    Literal,
    Nullable,
    Number,
    Object,
    Optional,
    Pipeline,
    SchemaNode,
    String,
    Tuple,
    Union,
)

logger = structlog.get_logger(__name__)

CoercionMemo = dict[SchemaNode, SchemaNode]


@dataclass(frozen=True, slots=True)
class FileSupport:
    """Capability describing the platform's uploaded-file type.

    Attributes:
        file_type: Class of uploaded file values
        empty_factory: Builds a well-formed file with empty name and zero size,
            used to recognize file schemas by trying them on it
        name_attr: Attribute holding the file name
        size_attr: Attribute holding the size in bytes
    """

    file_type: type
    empty_factory: Callable[[], Any]
    name_attr: str = "name"
    size_attr: str = "size"

    def is_empty_file(self, value: Any) -> bool:
        return (
            isinstance(value, self.file_type)
            and getattr(value, self.name_attr) == ""
            and getattr(value, self.size_attr) == 0
        )


@dataclass(frozen=True, slots=True)
class CoercionOptions:
    """Configuration for enable_type_coercion().

    ``files=None`` means the environment has no file type: file
    normalization is a no-op and no Effect is treated as a file schema.
    """

    files: FileSupport | None = None


DEFAULT_OPTIONS = CoercionOptions()


# =============================================================================
# Raw-value normalizers
# =============================================================================


def coerce_string(value: Any, transform: Callable[[str], Any] | None = None) -> Any:
    """Normalize a raw string.

    Non-strings are returned as-is. The empty string becomes MISSING. Any
    other string is passed to ``transform`` if given.
    """
    if not isinstance(value, str):
        return value
    if value == "":
        return MISSING
    if transform is None:
        return value
    return transform(value)


def coerce_file(value: Any, files: FileSupport | None = None) -> Any:
    """Normalize a blank file upload (empty name, zero size) to MISSING."""
    if files is not None and files.is_empty_file(value):
        return MISSING
    return value


# Browser number syntax: ASCII digits only, no "_" separators
_DECIMAL = re.compile(r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)", re.ASCII)
_NON_DECIMAL = re.compile(r"0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+", re.ASCII)
_INTEGER = re.compile(r"[+-]?\d+", re.ASCII)


def _parse_number(text: str) -> float:
    text = text.strip()
    if text == "":
        return math.nan
    if _NON_DECIMAL.fullmatch(text):
        try:
            return float(int(text, 0))
        except OverflowError:
            return math.inf
    if _DECIMAL.fullmatch(text):
        return float(text.replace("Infinity", "inf"))
    return math.nan


def _parse_boolean(text: str) -> Any:
    # Unchecked checkboxes are not submitted at all; checked ones send "on"
    return True if text == "on" else text


def _parse_date(text: str) -> Any:
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return text
    # No offset given: read as UTC
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _parse_bigint(text: str) -> Any:
    stripped = text.strip()
    if _INTEGER.fullmatch(stripped):
        return int(stripped, 10)
    if _NON_DECIMAL.fullmatch(stripped):
        return int(stripped, 0)
    return text


def _coerce_array(value: Any, files: FileSupport | None) -> Any:
    if isinstance(value, (list, tuple)):
        return value
    if value is MISSING or coerce_file(coerce_string(value), files) is MISSING:
        return []
    return [value]


def _coerce_empty(value: Any, files: FileSupport | None) -> Any:
    return coerce_file(coerce_string(value), files)


def _accepts(node: SchemaNode, value: Any) -> bool:
    # Predicates may raise on sample values of a type they never expect
    try:
        return node.safe_parse(value).success
    except Exception as exc:
        logger.debug("file_schema_check_failed", error_type=type(exc).__name__)
        return False


def is_file_schema(node: Effect, files: FileSupport | None) -> bool:
    """Recognize an ``instance_of(<file type>)`` schema.

    The node must be a refinement over AnyValue that accepts an empty file
    and rejects the empty string. A predicate that raises on either sample
    makes the node an ordinary refinement.
    """
    if files is None:
        return False
    return (
        node.effect is EffectType.REFINEMENT
        and isinstance(node.schema, AnyValue)
        and _accepts(node, files.empty_factory())
        and not _accepts(node, "")
    )


def _with_preprocess(function: Callable[[Any], Any], node: SchemaNode) -> Pipeline:
    """Run ``function`` on the raw value, then validate with ``node``."""
    return Pipeline(Effect(AnyValue(), EffectType.TRANSFORM, function), node)


# =============================================================================
# Engine
# =============================================================================


def enable_type_coercion(
    node: SchemaNode,
    memo: CoercionMemo | None = None,
    *,
    options: CoercionOptions = DEFAULT_OPTIONS,
) -> SchemaNode:
    """Rebuild ``node`` with input-normalization steps for raw form data.

    Args:
        node: Schema to rewrite (never modified)
        memo: Source node -> rewritten node. Created per top-level call and
            shared by all recursive calls; never reuse it across schemas
        options: File capability and other coercion settings

    Returns:
        A schema that accepts what ``node`` accepts, plus raw form input
        that normalizes into it. Nodes of kinds with no coercion rule are
        returned unchanged.
    """
    top_level = memo is None
    if memo is None:
        memo = {}

    cached = memo.get(node)
    if cached is not None:
        return cached

    result = _rewrite(node, memo, options)
    if result is not node:
        memo[node] = result

    if top_level:
        logger.debug("schema_coercion_enabled", kind=str(node.kind), rewritten_nodes=len(memo))
    return result


def _rewrite(node: SchemaNode, memo: CoercionMemo, options: CoercionOptions) -> SchemaNode:
    files = options.files

    def recurse(child: SchemaNode) -> SchemaNode:
        return enable_type_coercion(child, memo, options=options)

    match node:
        case String() | Literal() | Enum():
            return _with_preprocess(coerce_string, node)
        case Number():
            return _with_preprocess(partial(coerce_string, transform=_parse_number), node)
        case Boolean():
            return _with_preprocess(partial(coerce_string, transform=_parse_boolean), node)
        case Date():
            return _with_preprocess(partial(coerce_string, transform=_parse_date), node)
        case BigInt():
            return _with_preprocess(partial(coerce_string, transform=_parse_bigint), node)
        case Array():
            return _with_preprocess(
                partial(_coerce_array, files=files),
                replace(node, element=recurse(node.element)),
            )
        case Object():
            shape = {key: recurse(field) for key, field in node.shape.items()}
            return replace(node, shape=shape)
        case Effect() if is_file_schema(node, files):
            # File leaf: nothing inside to rewrite
            return _with_preprocess(partial(coerce_file, files=files), node)
        case Effect():
            return replace(node, schema=recurse(node.schema))
        case Optional() | Default():
            return _with_preprocess(
                partial(_coerce_empty, files=files),
                replace(node, schema=recurse(node.schema)),
            )
        case Catch() | Nullable():
            return replace(node, schema=recurse(node.schema))
        case Intersection():
            return replace(node, left=recurse(node.left), right=recurse(node.right))
        case Union():
            return replace(node, options=tuple(recurse(option) for option in node.options))
        case DiscriminatedUnion():
            return replace(
                node,
                options=tuple(recurse(option) for option in node.options),
                options_map={tag: recurse(option) for tag, option in node.options_map.items()},
            )
        case Tuple():
            return replace(node, items=tuple(recurse(item) for item in node.items))
        case Pipeline():
            return replace(
                node,
                input_schema=recurse(node.input_schema),
                output_schema=recurse(node.output_schema),
            )
        case Lazy():
            inner = node.schema
            return Lazy(lambda: enable_type_coercion(inner, memo, options=options))
        case _:
            return node
