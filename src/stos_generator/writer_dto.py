from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import override

from stos_generator import helper
from stos_generator.shapes import StructShape

logger = logging.getLogger(__name__)

# Produces the body lines of the named helper converting the first struct into the second.
HelperSynthesizer = Callable[[StructShape, StructShape, str], list[str]]


@dataclass(frozen=True)
class HelperKey:
    """Identity of a nested conversion helper: the qualified names of both structs."""

    source: str
    target: str

    @classmethod
    def of(cls, source: StructShape, target: StructShape) -> HelperKey:
        return cls(source.qualified_name, target.qualified_name)


@dataclass
class HelperEntry:
    """A registered helper and, once synthesized, its body.

    The entry is created when the helper is first requested and its body is filled in
    after synthesis, so the registry never holds two entries for one key.
    """

    key: HelperKey
    name: str
    source: StructShape
    target: StructShape
    body: list[str] | None = None

    @property
    def is_synthesized(self) -> bool:
        return self.body is not None


class HelperRegistry:
    """Names nested conversion helpers and makes sure each one is generated once.

    Helpers are kept in the order in which they were first requested.
    """

    def __init__(self) -> None:
        self._entries: dict[HelperKey, HelperEntry] = {}
        self._owners: dict[str, HelperKey] = {}

    def request_helper(self, source: StructShape, target: StructShape, synthesize: HelperSynthesizer) -> str:
        """Return the name of the helper converting `source` into `target`, generating it on first use.

        The key is registered before its body is synthesized, so a struct that contains itself
        (directly or through other structs) refers to the already reserved name instead of
        recursing forever.

        Args:
            source (StructShape): The source struct.
            target (StructShape): The target struct.
            synthesize (HelperSynthesizer): Produces the body lines for a struct pair.

        Returns:
            str: The canonical helper name.
        """
        key = HelperKey.of(source, target)
        entry = self._entries.get(key)
        if entry is not None:
            return entry.name

        entry = HelperEntry(key=key, name=self._canonical_name(key, source, target), source=source, target=target)
        self._entries[key] = entry
        self._owners[entry.name] = key
        logger.debug("Registered helper %s for %s -> %s.", entry.name, key.source, key.target)

        entry.body = synthesize(source, target, entry.name)
        return entry.name

    def _canonical_name(self, key: HelperKey, source: StructShape, target: StructShape) -> str:
        name = helper.helper_method_name(source, target)
        owner = self._owners.get(name)
        if owner is None or owner == key:
            return name
        qualified = helper.qualified_helper_method_name(source, target)
        name, suffix = qualified, 2
        while name in self._owners:
            name = f"{qualified}{suffix}"
            suffix += 1
        return name

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[HelperEntry]:
        """All registered helpers, in registration order."""
        return list(self._entries.values())

    @override
    def __repr__(self) -> str:
        return f"HelperRegistry(helpers={[entry.name for entry in self._entries.values()]})"


@dataclass
class UnresolvedMapping:
    """A field pair that could not be converted and was left for manual completion."""

    function_name: str
    field_name: str
    source_type: str
    target_type: str
    reason: str


@dataclass
class GenerationContext:
    """State of one generation run.

    A context is created for every generated mapper and discarded afterwards; it is never
    shared between runs.

    Attributes:
        package_path: The import path of the package the mapper is generated into.
        registry: The nested conversion helpers.
        imports: The import paths that the generated unit refers to.
        import_names: The name each import path is imported as.
        unresolved: Field pairs that were marked for manual completion.
    """

    package_path: str
    registry: HelperRegistry = field(default_factory=HelperRegistry)
    imports: set[str] = field(default_factory=set)
    import_names: dict[str, str] = field(default_factory=dict)
    unresolved: list[UnresolvedMapping] = field(default_factory=list)

    def type_name(self, shape) -> str:
        """Render a shape as seen from the generated package."""
        return helper.go_type_name(shape, self.package_path, self.import_names)

    @property
    def sorted_imports(self) -> list[str]:
        return sorted(self.imports)
