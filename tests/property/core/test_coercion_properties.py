# tests/property/core/test_coercion_properties.py
"""Property-based tests for form-input coercion.

COERCION INVARIANTS:
1. Integer text (optionally padded with whitespace) parses to that number
2. Text that is not a number literal never raises; it fails validation
3. Any non-empty string passes through a coerced String unchanged
4. Only "on" becomes True for a coerced Boolean
5. Coercing an already coerced schema accepts and rejects the same inputs
6. Recursive schemas coerce every level of arbitrarily deep input
"""

from __future__ import annotations

import re
from typing import Any

from hypothesis import assume, given
from hypothesis import strategies as st

from sessionkit.contracts.errors import error_codes
from sessionkit.core.coercion import enable_type_coercion
from sessionkit.core.schema import Array, Boolean, Lazy, Number, Object, SchemaNode, String
from tests.property.settings import QUICK_SETTINGS, STANDARD_SETTINGS

# =============================================================================
# Strategies
# =============================================================================

# Integers a double represents exactly
exact_integers = st.integers(min_value=-(2**53), max_value=2**53)

padding = st.sampled_from(["", " ", "\t", "  \n"])

form_scalars = st.one_of(
    st.text(max_size=8),
    exact_integers.map(str),
    st.sampled_from(["", "on", "off", " ", "1e3", "nan", "inf"]),
)

form_values = st.one_of(form_scalars, st.lists(form_scalars, max_size=3))


# What a browser number input accepts: ASCII digits, no "_" separators
_NUMBER_LITERAL = re.compile(
    r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)|0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+",
    re.ASCII,
)


def _is_number_literal(text: str) -> bool:
    return _NUMBER_LITERAL.fullmatch(text.strip()) is not None


def _form_schema() -> Object:
    return Object(
        {
            "name": String().optional(),
            "count": Number().optional(),
            "enabled": Boolean().default(False),
            "tags": Array(String()).default(factory=list),
        }
    )


# =============================================================================
# Scalar Properties
# =============================================================================


class TestNumberCoercion:
    """Property tests for Number coercion of raw text."""

    @given(number=exact_integers, left=padding, right=padding)
    @STANDARD_SETTINGS
    def test_integer_text_parses(self, number: int, left: str, right: str) -> None:
        """Property: str(n) with surrounding whitespace parses to n."""
        schema = enable_type_coercion(Number())
        assert schema.parse(f"{left}{number}{right}") == number

    @given(text=st.text(min_size=1))
    @STANDARD_SETTINGS
    def test_non_numeric_text_is_rejected(self, text: str) -> None:
        """Property: unparseable text is reported as a validation issue."""
        assume(not _is_number_literal(text))
        result = enable_type_coercion(Number()).safe_parse(text)
        assert not result.success
        assert result.error is not None
        assert error_codes(result.error) == ["finite_number"]


class TestStringCoercion:
    """Property tests for String and Boolean coercion."""

    @given(text=st.text(min_size=1))
    @STANDARD_SETTINGS
    def test_non_empty_text_unchanged(self, text: str) -> None:
        """Property: a coerced String returns non-empty input as-is."""
        assert enable_type_coercion(String()).parse(text) == text

    @given(text=st.text(min_size=1))
    @STANDARD_SETTINGS
    def test_only_on_is_true(self, text: str) -> None:
        """Property: a coerced Boolean accepts "on" and nothing else textual."""
        result = enable_type_coercion(Boolean()).safe_parse(text)
        assert result.success is (text == "on")
        if result.success:
            assert result.data is True


# =============================================================================
# Structural Properties
# =============================================================================


class TestIdempotence:
    """Coercing twice must not change what a schema accepts."""

    @given(form=st.dictionaries(st.sampled_from(["name", "count", "enabled", "tags"]), form_values))
    @STANDARD_SETTINGS
    def test_double_coercion_matches_single(self, form: dict[str, Any]) -> None:
        """Property: enable_type_coercion is idempotent in behavior."""
        once = enable_type_coercion(_form_schema())
        twice = enable_type_coercion(once)

        first = once.safe_parse(form)
        second = twice.safe_parse(form)

        assert first.success == second.success
        if first.success:
            assert first.data == second.data
        else:
            assert first.error is not None and second.error is not None
            assert error_codes(first.error) == error_codes(second.error)

    @given(form=st.dictionaries(st.sampled_from(["name", "count", "enabled", "tags"]), form_values))
    @STANDARD_SETTINGS
    def test_coercion_never_raises_other_errors(self, form: dict[str, Any]) -> None:
        """Property: arbitrary form input yields a result, never an exception."""
        result = enable_type_coercion(_form_schema()).safe_parse(form)
        if result.success:
            assert isinstance(result.data["tags"], list)
            assert isinstance(result.data["enabled"], bool)


# =============================================================================
# Recursive Schemas
# =============================================================================


def _tree_schema() -> SchemaNode:
    tree: SchemaNode

    def node() -> SchemaNode:
        return Object({"value": Number(), "children": Array(tree).default(factory=list)})

    tree = Lazy(node)
    return tree


raw_trees = st.recursive(
    exact_integers.map(lambda n: {"value": str(n)}),
    lambda children: st.builds(
        lambda n, kids: {"value": str(n), "children": kids},
        exact_integers,
        st.lists(children, max_size=3),
    ),
    max_leaves=15,
)


def _numbers(tree: dict[str, Any]) -> list[Any]:
    values = [tree["value"]]
    for child in tree.get("children", []):
        values.extend(_numbers(child))
    return values


class TestRecursiveSchemas:
    """Lazy-defined trees are coerced at every depth."""

    @given(raw=raw_trees)
    @QUICK_SETTINGS
    def test_every_level_is_coerced(self, raw: dict[str, Any]) -> None:
        """Property: all numeric text in a recursive structure becomes numbers."""
        parsed = enable_type_coercion(_tree_schema()).parse(raw)
        assert _numbers(parsed) == [int(text) for text in _numbers(raw)]
        assert all(isinstance(value, float) for value in _numbers(parsed))
