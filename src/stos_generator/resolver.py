"""Build type shapes from Go source declarations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from stos_generator.errors import InvalidInterfaceShapeError, PackageResolutionError
from stos_generator.go_source import (
    GoPackage,
    InterfaceExpr,
    NamedExpr,
    OpaqueExpr,
    PointerExpr,
    SliceExpr,
    StructExpr,
    TypeDecl,
    TypeExpr,
    parse_package,
)
from stos_generator.go_types import GO_BUILTIN_TYPES
from stos_generator.locator import PackageLocator
from stos_generator.shapes import (
    InterfaceDescriptor,
    MethodDescriptor,
    PointerShape,
    PrimitiveShape,
    SliceShape,
    StructField,
    StructShape,
    TypeShape,
    qualify,
)

logger = logging.getLogger(__name__)

MAPPER_SUFFIX = "_mapper.go"

# Bound for following chains of named types, e.g. `type A B; type B string`.
MAX_NAMED_DEPTH = 32


@dataclass(frozen=True)
class TypeRef:
    """A reference to a named type: its import path and name. Builtins have no import path."""

    package_path: str
    name: str


class TypeDescriptorResolver(Protocol):
    """Anything that can describe a named type as a shape."""

    def describe(self, type_ref: TypeRef) -> TypeShape: ...


def builtin_shape(name: str) -> PrimitiveShape:
    return PrimitiveShape(name=name, underlying=name)


class GoPackageResolver:
    """Resolves types by reading the Go sources of the packages that declare them.

    Packages are parsed once and cached. Packages that cannot be located, such as the
    standard library, yield opaque named primitives.
    """

    def __init__(self, locator: PackageLocator, excluded_suffixes: tuple[str, ...] = (MAPPER_SUFFIX,)):
        self.locator = locator
        self.excluded_suffixes = excluded_suffixes
        self._packages: dict[str, GoPackage | None] = {}
        self._structs: dict[str, StructShape] = {}

    def load_package(self, package_path: str) -> GoPackage | None:
        """Parse a package by import path, or return None if it cannot be located."""
        if package_path in self._packages:
            return self._packages[package_path]

        try:
            directory = self.locator.locate(package_path)
        except PackageResolutionError:
            logger.debug("Package %s not found, its types are copied as they are.", package_path)
            package = None
        else:
            package = parse_package(directory, self.excluded_suffixes)

        self._packages[package_path] = package
        return package

    def describe(self, type_ref: TypeRef) -> TypeShape:
        """Describe a named type.

        Args:
            type_ref (TypeRef): The type to describe.

        Returns:
            TypeShape: A struct shape for struct declarations, a primitive otherwise.
        """
        if not type_ref.package_path:
            return builtin_shape(type_ref.name)

        package = self.load_package(type_ref.package_path)
        decl = package.type_decls.get(type_ref.name) if package else None
        if decl is None:
            return PrimitiveShape(name=type_ref.name, package=type_ref.package_path)

        return self._describe_decl(type_ref.package_path, decl)

    def _describe_decl(self, package_path: str, decl: TypeDecl) -> TypeShape:
        if decl.is_alias:
            return self.shape_of(decl.type, package_path, decl.imports)

        if isinstance(decl.type, StructExpr):
            qualified_name = qualify(package_path, decl.name)
            shape = self._structs.get(qualified_name)
            if shape is not None:
                return shape

            # Registered before the fields are resolved, so that cycles end here.
            shape = StructShape(name=decl.name, package=package_path)
            self._structs[qualified_name] = shape
            shape.fields = tuple(
                StructField(field_expr.name, self.shape_of(field_expr.type, package_path, decl.imports))
                for field_expr in decl.type.fields
            )
            return shape

        return PrimitiveShape(
            name=decl.name,
            package=package_path,
            underlying=self._underlying(decl, package_path),
        )

    def _underlying(self, decl: TypeDecl, package_path: str) -> str:
        """The builtin at the end of a chain of named types, or an empty string."""
        for _ in range(MAX_NAMED_DEPTH):
            expr = decl.type
            if not isinstance(expr, NamedExpr):
                return ""

            if expr.package:
                next_package_path = decl.imports.get(expr.package, "")
                if not next_package_path:
                    return ""
            else:
                next_package_path = package_path

            package = self.load_package(next_package_path)
            next_decl = package.type_decls.get(expr.name) if package else None
            if next_decl is None:
                return expr.name if not expr.package and expr.name in GO_BUILTIN_TYPES else ""

            decl, package_path = next_decl, next_package_path

        logger.warning("Named type chain of %s is too deep.", decl.name)
        return ""

    def shape_of(self, expr: TypeExpr, package_path: str, imports: dict[str, str]) -> TypeShape:
        """Convert a type expression, as written in a file of `package_path`, into a shape."""
        if isinstance(expr, PointerExpr):
            return PointerShape(self.shape_of(expr.elem, package_path, imports))

        if isinstance(expr, SliceExpr):
            return SliceShape(self.shape_of(expr.elem, package_path, imports))

        if isinstance(expr, NamedExpr):
            if expr.package:
                imported_path = imports.get(expr.package)
                if imported_path is None:
                    logger.warning("Unknown package %s in type %s.%s.", expr.package, expr.package, expr.name)
                    return PrimitiveShape(name=f"{expr.package}.{expr.name}")
                return self.describe(TypeRef(imported_path, expr.name))

            package = self.load_package(package_path)
            if package is not None and expr.name in package.type_decls:
                return self.describe(TypeRef(package_path, expr.name))
            if expr.name in GO_BUILTIN_TYPES:
                return builtin_shape(expr.name)
            return PrimitiveShape(name=expr.name, package=package_path)

        if isinstance(expr, (StructExpr, InterfaceExpr)):
            return PrimitiveShape(name=expr.text)

        if isinstance(expr, OpaqueExpr):
            return PrimitiveShape(name=expr.text)

        raise TypeError(f"Unknown type expression: {expr!r}")

    def describe_interface(
        self, package_directory: str, interface_name: str, package_path: str | None = None
    ) -> InterfaceDescriptor:
        """Describe the mapper interface declared in a package directory.

        Args:
            package_directory (str): The directory of the package declaring the interface.
            interface_name (str): The interface name.
            package_path (str | None): The import path of the package, if it cannot be derived
                from the enclosing module.

        Returns:
            InterfaceDescriptor: The interface with the shapes of all method parameters and results.

        Raises:
            InvalidInterfaceShapeError: If the name is not declared, or is not an interface.
            PackageResolutionError: If the import path of the package cannot be determined.
        """
        if package_path is None:
            package_path = self.locator.package_path_for(package_directory)

        package = parse_package(package_directory, self.excluded_suffixes)
        self._packages[package_path] = package

        decl = package.type_decls.get(interface_name)
        if decl is None:
            raise InvalidInterfaceShapeError(f"No type {interface_name} declared in {package_directory}.")
        if not isinstance(decl.type, InterfaceExpr):
            raise InvalidInterfaceShapeError(f"Expected {interface_name} to be an interface, got {type(decl.type).__name__}.")

        methods = self._interface_methods(package, package_path, decl, set())
        logger.info("Resolved interface %s.%s with %d method(s).", package_path, interface_name, len(methods))

        return InterfaceDescriptor(
            name=interface_name,
            package_path=package_path,
            methods=methods,
            package_name=package.name,
        )

    def _interface_methods(
        self, package: GoPackage, package_path: str, decl: TypeDecl, visited: set[str]
    ) -> list[MethodDescriptor]:
        assert isinstance(decl.type, InterfaceExpr)
        visited.add(decl.name)

        methods: list[MethodDescriptor] = []
        for embed in decl.type.embeds:
            embedded = package.type_decls.get(embed.name) if isinstance(embed, NamedExpr) and not embed.package else None
            if embedded is None or not isinstance(embedded.type, InterfaceExpr):
                logger.warning("Skipping embedded type %s of interface %s.", embed, decl.name)
                continue
            if embedded.name not in visited:
                methods.extend(self._interface_methods(package, package_path, embedded, visited))

        for method in decl.type.methods:
            methods.append(
                MethodDescriptor(
                    name=method.name,
                    inputs=[self.shape_of(param.type, package_path, decl.imports) for param in method.params],
                    outputs=[self.shape_of(result.type, package_path, decl.imports) for result in method.results],
                )
            )
        return methods
