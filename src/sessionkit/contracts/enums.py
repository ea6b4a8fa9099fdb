"""Enumerations shared across sessionkit subsystems.

All enums use StrEnum so tags can be logged and compared as plain
strings.
"""

from enum import StrEnum


class SchemaKind(StrEnum):
    """Tag identifying the kind of a schema node.

    The vocabulary is closed: the coercion engine dispatches on these
    tags and passes any kind it has no rule for through unchanged.
    """

    # Scalars
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    BIGINT = "bigint"
    LITERAL = "literal"
    ENUM = "enum"
    ANY = "any"

    # Composites
    ARRAY = "array"
    OBJECT = "object"
    RECORD = "record"
    TUPLE = "tuple"

    # Wrappers
    EFFECT = "effect"
    OPTIONAL = "optional"
    DEFAULT = "default"
    CATCH = "catch"
    NULLABLE = "nullable"
    PIPELINE = "pipeline"
    LAZY = "lazy"

    # Combinators
    INTERSECTION = "intersection"
    UNION = "union"
    DISCRIMINATED_UNION = "discriminated_union"


class EffectType(StrEnum):
    """What an Effect node does with the value of its inner schema.

    - REFINEMENT: Check the parsed value with a predicate
    - TRANSFORM: Map the parsed value to a new value
    - PREPROCESS: Map the raw value before the inner schema sees it
    """

    REFINEMENT = "refinement"
    TRANSFORM = "transform"
    PREPROCESS = "preprocess"


class UnknownKeys(StrEnum):
    """How an Object schema treats keys it does not declare."""

    STRIP = "strip"
    STRICT = "strict"
    PASSTHROUGH = "passthrough"
