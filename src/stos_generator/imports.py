"""Collect the import paths referenced by the types of a mapper interface."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from stos_generator import helper
from stos_generator.go_types import EXCLUDED_IMPORTS
from stos_generator.shapes import InterfaceDescriptor, PointerShape, PrimitiveShape, SliceShape, StructShape, TypeShape

logger = logging.getLogger(__name__)


class ImportCollector:
    """Walks parameter and result shapes, including struct fields, and gathers their packages.

    The package declaring the interface is never imported, and neither are the packages in
    `excluded`.
    """

    def __init__(self, own_package: str, excluded: Iterable[str] = EXCLUDED_IMPORTS):
        self.own_package = own_package
        self.excluded = frozenset(excluded)
        self._visited: set[str] = set()
        self._imports: set[str] = set()

    def collect(self, descriptor: InterfaceDescriptor) -> list[str]:
        """Collect the imports of every method of an interface.

        Args:
            descriptor (InterfaceDescriptor): The interface.

        Returns:
            list[str]: The import paths, sorted.
        """
        for method in descriptor.methods:
            for shape in (*method.inputs, *method.outputs):
                self.add_shape(shape)
        return self.imports

    def add_shape(self, shape: TypeShape) -> None:
        """Add the packages referenced by a shape, descending into pointers, slices and struct fields."""
        while isinstance(shape, (PointerShape, SliceShape)):
            shape = shape.wrapped if isinstance(shape, PointerShape) else shape.element

        if isinstance(shape, PrimitiveShape):
            self._add_package(shape.package)

        elif isinstance(shape, StructShape):
            if shape.qualified_name in self._visited:
                return
            self._visited.add(shape.qualified_name)
            self._add_package(shape.package)
            for struct_field in shape.fields:
                self.add_shape(struct_field.shape)

    def _add_package(self, package: str) -> None:
        if not package or package == self.own_package:
            return
        if package in self.excluded:
            logger.debug("Not importing excluded package %s.", package)
            return
        self._imports.add(package)

    @property
    def imports(self) -> list[str]:
        """The collected import paths in lexicographic order."""
        return sorted(self._imports)


def assign_import_names(package_paths: Iterable[str]) -> dict[str, str]:
    """Give every import path a name that is unique within the generated file.

    Paths keep their default package name unless an earlier path (in lexicographic order)
    already claimed it. Such paths get the name with the lowest free numeric suffix, so
    `example.com/lib/c/v1` and `example.com/lib/c/v2` are imported as `c` and `c2`.

    Args:
        package_paths (Iterable[str]): The import paths.

    Returns:
        dict[str, str]: Import path to the name it is imported as.
    """
    paths = sorted(set(package_paths))
    names: dict[str, str] = {}
    for path in paths:
        default = helper.package_name(path)
        if default not in names.values():
            names[path] = default

    # Suffixed names must not shadow the default name of any other import.
    taken = set(names.values())
    for path in paths:
        if path in names:
            continue
        default = helper.package_name(path)
        suffix = 2
        while f"{default}{suffix}" in taken:
            suffix += 1
        names[path] = f"{default}{suffix}"
        taken.add(names[path])
        logger.debug("Importing %s as %s to avoid a name collision.", path, names[path])
    return names
