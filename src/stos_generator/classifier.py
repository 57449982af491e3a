"""Decide how a source shape is converted into a target shape.

The decision is a closed, ordered rule set; the first rule that matches wins:

1. identical shapes are assigned directly,
2. pointer to pointer,
3. value to pointer,
4. pointer to value,
5. slice to slice (elements classified with rules 1-4 and 6),
6. struct to struct through a nested helper,
7. anything else is unresolved and left for manual completion.

Primitives that differ only by their named type but share the same builtin kind are
converted with a Go type conversion; primitives of different kinds are unresolved.
"""

from __future__ import annotations

from dataclasses import dataclass

from stos_generator.go_types import GO_BUILTIN_ALIASES
from stos_generator.shapes import PointerShape, PrimitiveShape, SliceShape, StructShape, TypeShape


class ConversionCategory:
    """Categories of conversions."""

    IDENTICAL = "identical"
    CONVERTIBLE = "convertible"
    POINTER_TO_POINTER = "pointer_to_pointer"
    VALUE_TO_POINTER = "value_to_pointer"
    POINTER_TO_VALUE = "pointer_to_value"
    SLICE_TO_SLICE = "slice_to_slice"
    STRUCT_TO_STRUCT = "struct_to_struct"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class ConversionPlan:
    """The outcome of classifying one pair of shapes.

    Attributes:
        category: One of the `ConversionCategory` values.
        source: The source shape.
        target: The target shape.
        inner: For pointer categories, the plan of the values behind the pointers.
            For slices, the plan of the elements.
        reason: Why the pair is unresolved, for the placeholder comment.
    """

    category: str
    source: TypeShape
    target: TypeShape
    inner: ConversionPlan | None = None
    reason: str = ""

    @property
    def is_resolved(self) -> bool:
        return self.category != ConversionCategory.UNRESOLVED

    @property
    def helper_pair(self) -> tuple[StructShape, StructShape] | None:
        """The struct pair that needs a nested helper, if any, looking through pointers and slices."""
        if self.category == ConversionCategory.STRUCT_TO_STRUCT:
            assert isinstance(self.source, StructShape) and isinstance(self.target, StructShape)
            return self.source, self.target
        if self.inner is not None:
            return self.inner.helper_pair
        return None


def underlying_kind(shape: PrimitiveShape) -> str:
    """The builtin a primitive is declared as, with `byte` and `rune` normalised."""
    return GO_BUILTIN_ALIASES.get(shape.underlying, shape.underlying)


def _unresolved(source: TypeShape, target: TypeShape, reason: str) -> ConversionPlan:
    return ConversionPlan(ConversionCategory.UNRESOLVED, source, target, reason=reason)


def _classify_value(source: TypeShape, target: TypeShape) -> ConversionPlan:
    """Classify two shapes that are neither pointers nor slices around the values to convert."""
    if source == target:
        return ConversionPlan(ConversionCategory.IDENTICAL, source, target)

    if isinstance(source, StructShape) and isinstance(target, StructShape):
        return ConversionPlan(ConversionCategory.STRUCT_TO_STRUCT, source, target)

    if isinstance(source, PrimitiveShape) and isinstance(target, PrimitiveShape):
        source_kind = underlying_kind(source)
        if source_kind and source_kind == underlying_kind(target):
            return ConversionPlan(ConversionCategory.CONVERTIBLE, source, target)
        return _unresolved(source, target, "mismatched primitive kinds")

    return _unresolved(source, target, "unsupported shape combination")


def _wrap(category: str, source: TypeShape, target: TypeShape, inner: ConversionPlan) -> ConversionPlan:
    if not inner.is_resolved:
        return _unresolved(source, target, inner.reason)
    return ConversionPlan(category, source, target, inner=inner)


def classify(source: TypeShape, target: TypeShape, allow_slices: bool = True) -> ConversionPlan:
    """Classify a pair of shapes that were matched by field name.

    Args:
        source (TypeShape): The shape of the source field.
        target (TypeShape): The shape of the target field.
        allow_slices (bool): Whether slice pairs may be planned; slice elements that are slices
            themselves are unresolved.

    Returns:
        ConversionPlan: Exactly one plan.
    """
    if source == target:
        return ConversionPlan(ConversionCategory.IDENTICAL, source, target)

    if isinstance(source, PrimitiveShape) and isinstance(target, PrimitiveShape):
        return _classify_value(source, target)

    if isinstance(source, PointerShape) and isinstance(target, PointerShape):
        inner = _classify_value(source.wrapped, target.wrapped)
        return _wrap(ConversionCategory.POINTER_TO_POINTER, source, target, inner)

    if isinstance(target, PointerShape) and not isinstance(source, (PointerShape, SliceShape)):
        inner = _classify_value(source, target.wrapped)
        return _wrap(ConversionCategory.VALUE_TO_POINTER, source, target, inner)

    if isinstance(source, PointerShape) and not isinstance(target, SliceShape):
        inner = _classify_value(source.wrapped, target)
        return _wrap(ConversionCategory.POINTER_TO_VALUE, source, target, inner)

    if isinstance(source, SliceShape) and isinstance(target, SliceShape):
        if not allow_slices:
            return _unresolved(source, target, "nested slices")
        inner = classify(source.element, target.element, allow_slices=False)
        return _wrap(ConversionCategory.SLICE_TO_SLICE, source, target, inner)

    if isinstance(source, StructShape) and isinstance(target, StructShape):
        return ConversionPlan(ConversionCategory.STRUCT_TO_STRUCT, source, target)

    return _unresolved(source, target, "unsupported shape combination")
