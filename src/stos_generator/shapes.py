"""Structural descriptions of Go types, as consumed by the mapper generator.

A shape tree is built once by a resolver and is only read afterwards. Struct shapes may
form cycles (a struct that refers to itself through a pointer or slice field), which is why
struct identity is defined by the qualified name rather than by the field list.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, override

from stos_generator.go_types import ShapeKind


def qualify(package: str, name: str) -> str:
    """Join an import path and a type name, e.g. `example/source` and `User` to `example/source.User`."""
    if package:
        return f"{package}.{name}"
    return name


@dataclass(frozen=True)
class PrimitiveShape:
    """A type that is copied as a whole.

    Builtins have no package. Named non-struct types (`type Role string`) carry their package
    and the builtin they are ultimately declared as in `underlying`. Types that cannot be
    broken down further (maps, arrays, channels, unresolvable packages) keep their source text
    as `name` and an empty `underlying`.
    """

    kind: ClassVar[str] = ShapeKind.PRIMITIVE

    name: str
    package: str = ""
    underlying: str = ""

    @property
    def qualified_name(self) -> str:
        return qualify(self.package, self.name)

    @override
    def __str__(self) -> str:
        return self.qualified_name


@dataclass(frozen=True)
class PointerShape:
    """A pointer to another shape."""

    kind: ClassVar[str] = ShapeKind.POINTER

    wrapped: TypeShape

    @override
    def __str__(self) -> str:
        return f"*{self.wrapped}"


@dataclass(frozen=True)
class SliceShape:
    """A slice of another shape."""

    kind: ClassVar[str] = ShapeKind.SLICE

    element: TypeShape

    @override
    def __str__(self) -> str:
        return f"[]{self.element}"


@dataclass(frozen=True)
class StructField:
    """A named field of a struct, in declaration order."""

    name: str
    shape: TypeShape


@dataclass(eq=False)
class StructShape:
    """A named struct type.

    `fields` is assigned by the resolver after the shape itself has been registered, so that
    fields referring back to the struct resolve to this very instance.
    """

    kind: ClassVar[str] = ShapeKind.STRUCT

    name: str
    package: str = ""
    fields: tuple[StructField, ...] = field(default_factory=tuple)

    @property
    def qualified_name(self) -> str:
        return qualify(self.package, self.name)

    def field_by_name(self, name: str) -> StructField | None:
        """Find a field by its exact, case-sensitive name."""
        for struct_field in self.fields:
            if struct_field.name == name:
                return struct_field
        return None

    @override
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StructShape):
            return NotImplemented
        return self.qualified_name == other.qualified_name

    @override
    def __hash__(self) -> int:
        return hash((ShapeKind.STRUCT, self.qualified_name))

    @override
    def __str__(self) -> str:
        return self.qualified_name

    @override
    def __repr__(self) -> str:
        return f"StructShape({self.qualified_name!r}, fields={[f.name for f in self.fields]})"


TypeShape = PrimitiveShape | PointerShape | SliceShape | StructShape


@dataclass
class MethodDescriptor:
    """A method of the mapper interface.

    Attributes:
        name: The Go method name, e.g. `Convert`.
        inputs: Shapes of the declared parameters.
        outputs: Shapes of the declared results.
    """

    name: str
    inputs: list[TypeShape] = field(default_factory=list)
    outputs: list[TypeShape] = field(default_factory=list)

    @property
    def is_single_conversion(self) -> bool:
        """Whether the method takes exactly one value and returns exactly one value."""
        return len(self.inputs) == 1 and len(self.outputs) == 1


@dataclass
class InterfaceDescriptor:
    """The interface that the generated mapper implements.

    Attributes:
        name: The interface name, e.g. `MapperUser`.
        package_path: The import path of the package declaring the interface.
        methods: The interface methods in declaration order.
        package_name: The package clause name; defaults to the last segment of `package_path`.
    """

    name: str
    package_path: str
    methods: list[MethodDescriptor] = field(default_factory=list)
    package_name: str = ""

    def __post_init__(self):
        if not self.package_name:
            self.package_name = self.package_path.rsplit("/", 1)[-1]
