"""Schema node vocabulary for session and form data.

A schema is a tree of immutable nodes. Each node class is tagged with a
SchemaKind; the coercion engine dispatches on these classes and rebuilds
trees from them. Validation is done by pydantic-core: a node tree is
compiled once into a core schema and run by a SchemaValidator.

Validation is STRICT about types: "42" is not a number and "on" is not a
boolean. Turning raw form input into typed values is the job of
sessionkit.core.coercion, which rewrites a schema tree rather than
loosening it.

Absent values:
    A missing key and an explicit None are different things. Absence is
    represented by MISSING (pydantic's PydanticUndefined). Objects hand
    every declared key to its field schema, as MISSING when the key is
    absent, and drop fields whose result is MISSING. Optional and Default
    react to MISSING, Nullable reacts to None, everything else reports a
    "missing" error.

Example:
    schema = Object({
        "name": String(),
        "count": Number().default(0),
        "tags": Array(String()).optional(),
    })
    schema.parse({"name": "Ann"})  # {"name": "Ann", "count": 0}
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass, field, replace
from functools import cached_property, partial
from types import MappingProxyType
from typing import Any, ClassVar, cast

from pydantic_core import (
    PydanticCustomError,
    PydanticKnownError,
    PydanticUndefined,
    SchemaValidator,
    ValidationError,
    core_schema,
)
from pydantic_core.core_schema import CoreSchema

from sessionkit.contracts.enums import EffectType, SchemaKind, UnknownKeys

MISSING: Any = PydanticUndefined

_EXTRA_BEHAVIOR: dict[UnknownKeys, core_schema.ExtraBehavior] = {
    UnknownKeys.STRIP: "ignore",
    UnknownKeys.STRICT: "forbid",
    UnknownKeys.PASSTHROUGH: "allow",
}


@dataclass(frozen=True, slots=True)
class ParseResult:
    """Outcome of safe_parse(): either data or the error, never both."""

    success: bool
    data: Any = None
    error: ValidationError | None = None


class _SchemaBuilder:
    """Compiles one node tree into a core schema.

    Each Lazy node becomes a named definition the first time it is seen;
    later occurrences refer to it, which is how cycles stay finite.
    """

    def __init__(self) -> None:
        self._refs: dict[SchemaNode, str] = {}
        self._definitions: list[CoreSchema] = []

    def compile(self, node: SchemaNode) -> CoreSchema:
        return node._core_schema(self)

    def reference(self, node: Lazy) -> CoreSchema:
        ref = self._refs.get(node)
        if ref is None:
            ref = f"lazy-{len(self._refs)}"
            self._refs[node] = ref
            target = dict(self.compile(node.schema))
            target["ref"] = ref
            self._definitions.append(cast(CoreSchema, target))
        return core_schema.definition_reference_schema(ref)

    def build(self, node: SchemaNode) -> CoreSchema:
        schema = self.compile(node)
        if self._definitions:
            return core_schema.definitions_schema(schema, self._definitions)
        return schema


def _reject_missing(value: Any) -> Any:
    if value is MISSING:
        raise PydanticKnownError("missing")
    return value


def _required(schema: CoreSchema) -> CoreSchema:
    return core_schema.no_info_before_validator_function(_reject_missing, schema)


# eq=False keeps identity hashing: nodes are used as memo keys by the
# coercion engine, and two structurally equal nodes are still distinct.
@dataclass(frozen=True, eq=False)
class SchemaNode:
    """Base class for all schema nodes."""

    kind: ClassVar[SchemaKind]

    @cached_property
    def compiled(self) -> SchemaValidator:
        """The pydantic-core validator for this tree, built on first use."""
        return SchemaValidator(_SchemaBuilder().build(self))

    def parse(self, value: Any) -> Any:
        """Validate ``value`` and return the parsed result.

        Raises:
            ValidationError: With every issue found
        """
        return self.compiled.validate_python(value)

    def safe_parse(self, value: Any) -> ParseResult:
        try:
            return ParseResult(success=True, data=self.parse(value))
        except ValidationError as exc:
            return ParseResult(success=False, error=exc)

    async def parse_async(self, value: Any) -> Any:
        """Awaitable entry point used at session store boundaries."""
        return self.parse(value)

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        raise NotImplementedError

    # Builders -----------------------------------------------------------------

    def optional(self) -> Optional:
        return Optional(self)

    def nullable(self) -> Nullable:
        return Nullable(self)

    def default(self, value: Any = MISSING, *, factory: Callable[[], Any] | None = None) -> Default:
        return Default(self, value=value, factory=factory)

    def catch(self, fallback: Any) -> Catch:
        return Catch(self, fallback)

    def refine(self, check: Callable[[Any], bool], message: str = "Invalid input") -> Effect:
        return Effect(self, EffectType.REFINEMENT, check, message)

    def transform(self, function: Callable[[Any], Any]) -> Effect:
        return Effect(self, EffectType.TRANSFORM, function)

    def pipe(self, target: SchemaNode) -> Pipeline:
        return Pipeline(self, target)

    def array(self) -> Array:
        return Array(self)


# =============================================================================
# Scalars
# =============================================================================


@dataclass(frozen=True, eq=False)
class String(SchemaNode):
    kind: ClassVar[SchemaKind] = SchemaKind.STRING

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return _required(core_schema.str_schema(strict=True))


@dataclass(frozen=True, eq=False)
class Number(SchemaNode):
    """A finite float (ints are accepted, bools and NaN/Infinity are not)."""

    kind: ClassVar[SchemaKind] = SchemaKind.NUMBER

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return _required(core_schema.float_schema(allow_inf_nan=False, strict=True))


@dataclass(frozen=True, eq=False)
class Boolean(SchemaNode):
    kind: ClassVar[SchemaKind] = SchemaKind.BOOLEAN

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return _required(core_schema.bool_schema(strict=True))


@dataclass(frozen=True, eq=False)
class Date(SchemaNode):
    """A datetime instance."""

    kind: ClassVar[SchemaKind] = SchemaKind.DATE

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return _required(core_schema.datetime_schema(strict=True))


@dataclass(frozen=True, eq=False)
class BigInt(SchemaNode):
    """An arbitrary-precision integer."""

    kind: ClassVar[SchemaKind] = SchemaKind.BIGINT

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return _required(core_schema.int_schema(strict=True))


@dataclass(frozen=True, eq=False)
class Literal(SchemaNode):
    kind: ClassVar[SchemaKind] = SchemaKind.LITERAL

    value: Any

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return _required(core_schema.literal_schema([self.value]))


@dataclass(frozen=True, eq=False)
class Enum(SchemaNode):
    """One of a fixed set of strings."""

    kind: ClassVar[SchemaKind] = SchemaKind.ENUM

    values: tuple[str, ...]

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return _required(core_schema.literal_schema(list(self.values)))


@dataclass(frozen=True, eq=False)
class AnyValue(SchemaNode):
    """Accepts everything, including MISSING."""

    kind: ClassVar[SchemaKind] = SchemaKind.ANY

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return core_schema.any_schema()


# =============================================================================
# Composites
# =============================================================================


@dataclass(frozen=True, eq=False)
class Array(SchemaNode):
    kind: ClassVar[SchemaKind] = SchemaKind.ARRAY

    element: SchemaNode
    min_length: int | None = None
    max_length: int | None = None

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return _required(
            core_schema.list_schema(
                builder.compile(self.element),
                min_length=self.min_length,
                max_length=self.max_length,
            )
        )


def _fill_missing(keys: tuple[str, ...], value: Any) -> Any:
    if value is MISSING:
        raise PydanticKnownError("missing")
    if isinstance(value, Mapping):
        return {**dict.fromkeys(keys, MISSING), **value}
    return value


def _drop_missing(value: dict[str, Any]) -> dict[str, Any]:
    return {key: item for key, item in value.items() if item is not MISSING}


@dataclass(frozen=True, eq=False)
class Object(SchemaNode):
    """A mapping with a declared set of string keys.

    Parsed fields whose value is MISSING are left out of the result.
    Undeclared keys are dropped (STRIP), rejected (STRICT) or copied
    through unvalidated (PASSTHROUGH).
    """

    kind: ClassVar[SchemaKind] = SchemaKind.OBJECT

    shape: Mapping[str, SchemaNode]
    unknown_keys: UnknownKeys = UnknownKeys.STRIP

    def __post_init__(self) -> None:
        object.__setattr__(self, "shape", MappingProxyType(dict(self.shape)))

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self.shape)

    def extend(self, shape: Mapping[str, SchemaNode]) -> Object:
        return Object({**self.shape, **shape}, self.unknown_keys)

    def strict(self) -> Object:
        return replace(self, unknown_keys=UnknownKeys.STRICT)

    def passthrough(self) -> Object:
        return replace(self, unknown_keys=UnknownKeys.PASSTHROUGH)

    def keyof(self) -> Enum:
        return Enum(self.keys)

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        fields = {
            key: core_schema.typed_dict_field(builder.compile(node), required=True)
            for key, node in self.shape.items()
        }
        typed_dict = core_schema.typed_dict_schema(fields, extra_behavior=_EXTRA_BEHAVIOR[self.unknown_keys])
        return core_schema.no_info_after_validator_function(
            _drop_missing,
            core_schema.no_info_before_validator_function(partial(_fill_missing, self.keys), typed_dict),
        )


@dataclass(frozen=True, eq=False)
class Record(SchemaNode):
    """A mapping of arbitrary string keys to values of one schema."""

    kind: ClassVar[SchemaKind] = SchemaKind.RECORD

    values: SchemaNode

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return _required(core_schema.dict_schema(core_schema.str_schema(strict=True), builder.compile(self.values)))


@dataclass(frozen=True, eq=False)
class Tuple(SchemaNode):
    """A fixed-length sequence with one schema per position."""

    kind: ClassVar[SchemaKind] = SchemaKind.TUPLE

    items: tuple[SchemaNode, ...]

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return _required(core_schema.tuple_schema([builder.compile(item) for item in self.items]))


# =============================================================================
# Wrappers
# =============================================================================


@dataclass(frozen=True, eq=False)
class Effect(SchemaNode):
    """Runs a function before (PREPROCESS) or after (REFINEMENT, TRANSFORM) the inner schema."""

    kind: ClassVar[SchemaKind] = SchemaKind.EFFECT

    schema: SchemaNode
    effect: EffectType
    function: Callable[[Any], Any]
    message: str = "Invalid input"

    def _check(self, value: Any) -> Any:
        if not self.function(value):
            raise PydanticCustomError("custom", self.message)
        return value

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        inner = builder.compile(self.schema)
        if self.effect is EffectType.PREPROCESS:
            return core_schema.no_info_before_validator_function(self.function, inner)
        if self.effect is EffectType.TRANSFORM:
            return core_schema.no_info_after_validator_function(self.function, inner)
        return core_schema.no_info_after_validator_function(self._check, inner)


def _skip_missing(value: Any, handler: core_schema.ValidatorFunctionWrapHandler) -> Any:
    if value is MISSING:
        return MISSING
    return handler(value)


@dataclass(frozen=True, eq=False)
class Optional(SchemaNode):
    kind: ClassVar[SchemaKind] = SchemaKind.OPTIONAL

    schema: SchemaNode

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return core_schema.no_info_wrap_validator_function(_skip_missing, builder.compile(self.schema))


@dataclass(frozen=True, eq=False)
class Default(SchemaNode):
    """Substitutes a default for MISSING, then validates it.

    Use ``factory`` for mutable defaults so parses never share one object.
    """

    kind: ClassVar[SchemaKind] = SchemaKind.DEFAULT

    schema: SchemaNode
    value: Any = MISSING
    factory: Callable[[], Any] | None = None

    def __post_init__(self) -> None:
        if (self.value is MISSING) == (self.factory is None):
            raise TypeError("Default requires exactly one of value or factory")

    def default_value(self) -> Any:
        if self.factory is not None:
            return self.factory()
        return self.value

    def _fill(self, value: Any, handler: core_schema.ValidatorFunctionWrapHandler) -> Any:
        return handler(self.default_value() if value is MISSING else value)

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return core_schema.no_info_wrap_validator_function(self._fill, builder.compile(self.schema))


@dataclass(frozen=True, eq=False)
class Catch(SchemaNode):
    """Returns ``fallback`` instead of failing."""

    kind: ClassVar[SchemaKind] = SchemaKind.CATCH

    schema: SchemaNode
    fallback: Any

    def _recover(self, value: Any, handler: core_schema.ValidatorFunctionWrapHandler) -> Any:
        try:
            return handler(value)
        except ValidationError:
            return self.fallback

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return core_schema.no_info_wrap_validator_function(self._recover, builder.compile(self.schema))


@dataclass(frozen=True, eq=False)
class Nullable(SchemaNode):
    kind: ClassVar[SchemaKind] = SchemaKind.NULLABLE

    schema: SchemaNode

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return core_schema.nullable_schema(builder.compile(self.schema))


@dataclass(frozen=True, eq=False)
class Pipeline(SchemaNode):
    """Validates with ``input_schema``, then feeds its output to ``output_schema``."""

    kind: ClassVar[SchemaKind] = SchemaKind.PIPELINE

    input_schema: SchemaNode
    output_schema: SchemaNode

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return core_schema.chain_schema([builder.compile(self.input_schema), builder.compile(self.output_schema)])


@dataclass(frozen=True, eq=False)
class Lazy(SchemaNode):
    """Defers to the node returned by ``getter``; the only way to build a cycle.

    ``schema`` calls the getter on every access. A compiled validator
    resolves it once, when the tree is compiled.
    """

    kind: ClassVar[SchemaKind] = SchemaKind.LAZY

    getter: Callable[[], SchemaNode]

    @property
    def schema(self) -> SchemaNode:
        return self.getter()

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return builder.reference(self)


# =============================================================================
# Combinators
# =============================================================================


def _merge_pair(pair: tuple[Any, Any]) -> Any:
    left, right = pair
    if isinstance(left, dict) and isinstance(right, dict):
        if all(left[key] == right[key] for key in left.keys() & right.keys()):
            return {**left, **right}
    elif type(left) is type(right) and left == right:
        return left
    raise PydanticCustomError("invalid_intersection_types", "Intersection results could not be merged")


@dataclass(frozen=True, eq=False)
class Intersection(SchemaNode):
    """Validates the value against both sides and merges the results.

    Errors are reported under index 0 (left) or 1 (right).
    """

    kind: ClassVar[SchemaKind] = SchemaKind.INTERSECTION

    left: SchemaNode
    right: SchemaNode

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        both = core_schema.tuple_schema([builder.compile(self.left), builder.compile(self.right)])
        return core_schema.no_info_after_validator_function(
            _merge_pair,
            core_schema.no_info_before_validator_function(lambda value: (value, value), both),
        )


@dataclass(frozen=True, eq=False)
class Union(SchemaNode):
    """The first option that validates wins."""

    kind: ClassVar[SchemaKind] = SchemaKind.UNION

    options: tuple[SchemaNode, ...]

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        return core_schema.union_schema([builder.compile(option) for option in self.options], mode="left_to_right")


@dataclass(frozen=True, eq=False)
class DiscriminatedUnion(SchemaNode):
    """Selects an Object option by the value of its ``discriminator`` field.

    When ``options_map`` is not given it is built from the options, whose
    discriminator field must be a Literal or an Enum.
    """

    kind: ClassVar[SchemaKind] = SchemaKind.DISCRIMINATED_UNION

    discriminator: str
    options: tuple[Object, ...]
    options_map: Mapping[Hashable, SchemaNode] = field(default_factory=dict)

    def __post_init__(self) -> None:
        options_map = dict(self.options_map)
        if not options_map:
            for option in self.options:
                for tag in _discriminator_values(option, self.discriminator):
                    if tag in options_map:
                        raise TypeError(f"Duplicate discriminator value {tag!r} for {self.discriminator!r}")
                    options_map[tag] = option
        object.__setattr__(self, "options_map", MappingProxyType(options_map))

    def _core_schema(self, builder: _SchemaBuilder) -> CoreSchema:
        choices = {tag: builder.compile(option) for tag, option in self.options_map.items()}
        return _required(core_schema.tagged_union_schema(choices, self.discriminator))


def _discriminator_values(option: Object, discriminator: str) -> tuple[Hashable, ...]:
    try:
        node = option.shape[discriminator]
    except KeyError:
        raise TypeError(f"Option is missing discriminator field {discriminator!r}") from None
    if isinstance(node, Literal):
        return (node.value,)
    if isinstance(node, Enum):
        return node.values
    raise TypeError(f"Discriminator field {discriminator!r} must be a Literal or Enum, got {node.kind}")


# =============================================================================
# Helpers
# =============================================================================


def instance_of(cls: type, message: str | None = None) -> Effect:
    """Schema accepting instances of ``cls`` (a refinement over AnyValue)."""
    return Effect(
        AnyValue(),
        EffectType.REFINEMENT,
        lambda value: isinstance(value, cls),
        message or f"Input should be an instance of {cls.__name__}",
    )


def preprocess(function: Callable[[Any], Any], schema: SchemaNode) -> Effect:
    return Effect(schema, EffectType.PREPROCESS, function)
