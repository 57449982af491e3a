"""Helper functionality that is used in other modules of this package."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from stos_generator.shapes import PointerShape, PrimitiveShape, SliceShape, StructShape, TypeShape

RECEIVER_NAME = "impl"
SOURCE_NAME = "objSource"
TARGET_NAME = "objTarget"
INDENT = "\t"

_NON_IDENTIFIER = re.compile(r"[^0-9A-Za-z_]")
_MAJOR_VERSION = re.compile(r"v[0-9]+")
_GOPKG_VERSION = re.compile(r"\.v[0-9]+$")


def lower_first(name: str) -> str:
    """Lower-case the first letter of a name, e.g. `MapperUser` becomes `mapperUser`."""
    return name[:1].lower() + name[1:]


def upper_first(name: str) -> str:
    """Upper-case the first letter of a name, e.g. `source` becomes `Source`."""
    return name[:1].upper() + name[1:]


def is_exported(name: str) -> bool:
    """Whether a Go identifier is visible outside its package, i.e. starts with an upper-case letter."""
    return name[:1].isupper()


def package_name(package_path: str) -> str:
    """The default package name of an import path, i.e. its last segment.

    Major version suffixes are skipped, so `example.com/lib/v2` and `gopkg.in/yaml.v3` name
    the packages `lib` and `yaml`.

    Args:
        package_path (str): The import path, e.g. `github.com/alterasi/stos/example/source`.

    Returns:
        str: The package name, e.g. `source`.
    """
    segments = package_path.rstrip("/").split("/")
    name = segments[-1]
    if _MAJOR_VERSION.fullmatch(name) and len(segments) > 1:
        name = segments[-2]
    return _GOPKG_VERSION.sub("", name)


def impl_type_name(interface_name: str) -> str:
    """The name of the unexported struct implementing an interface.

    E.g. `MapperUser` becomes `mapperUserImpl`.
    """
    return f"{lower_first(interface_name)}Impl"


def constructor_name(interface_name: str) -> str:
    """The name of the exported constructor, e.g. `NewMapperUserImpl`."""
    return f"New{interface_name}Impl"


def go_type_name(shape: TypeShape, current_package: str = "", import_names: Mapping[str, str] | None = None) -> str:
    """Render a shape as a Go type expression.

    Named types of other packages are qualified with their import name; named types of
    `current_package` are not.

    Args:
        shape (TypeShape): The shape to render.
        current_package (str): The import path of the package the code is generated into.
        import_names (Mapping[str, str] | None): Import path to the name it is imported as.
            Paths without an entry use their default package name.

    Returns:
        str: The Go type, e.g. `[]*target.ChildrenDTO`.
    """
    if isinstance(shape, PointerShape):
        return f"*{go_type_name(shape.wrapped, current_package, import_names)}"

    if isinstance(shape, SliceShape):
        return f"[]{go_type_name(shape.element, current_package, import_names)}"

    if isinstance(shape, (PrimitiveShape, StructShape)):
        if shape.package and shape.package != current_package:
            qualifier = (import_names or {}).get(shape.package) or package_name(shape.package)
            return f"{qualifier}.{shape.name}"
        return shape.name

    raise TypeError(f"Unknown shape: {shape!r}")


def helper_method_name(source: StructShape, target: StructShape) -> str:
    """The short name of a nested conversion helper, e.g. `mapChildrenToChildrenDTO`."""
    return f"map{source.name}To{target.name}"


def qualified_helper_method_name(source: StructShape, target: StructShape) -> str:
    """The helper name with package names folded in, e.g. `mapSourceChildrenToTargetChildrenDTO`.

    Used when the short name is already taken by a different pair of structs.
    """
    source_package = upper_first(_NON_IDENTIFIER.sub("_", package_name(source.package)))
    target_package = upper_first(_NON_IDENTIFIER.sub("_", package_name(target.package)))
    return f"map{source_package}{source.name}To{target_package}{target.name}"


def indent(lines: Sequence[str], depth: int = 1) -> list[str]:
    """Indent every non-empty line by `depth` tabs."""
    prefix = INDENT * depth
    return [f"{prefix}{line}" if line else line for line in lines]


def new_if_block(condition: str, body: Sequence[str], else_body: Sequence[str] | None = None) -> list[str]:
    """Create the lines of an `if` statement, with an optional `else` branch."""
    lines = [f"if {condition} {{"]
    lines.extend(indent(body))
    if else_body:
        lines.append("} else {")
        lines.extend(indent(else_body))
    lines.append("}")
    return lines


def new_range_block(variable: str, body: Sequence[str]) -> list[str]:
    """Create the lines of a `for i, v := range <variable>` loop."""
    lines = [f"for i, v := range {variable} {{"]
    lines.extend(indent(body))
    lines.append("}")
    return lines


def join_parameters(parameters: Sequence[str] | None) -> str:
    """Joins parameters by means of ', '.

    Args:
        parameters (Sequence[str] | None): The parameters to join.

    Returns:
        str: The joined parameters.
    """
    if parameters:
        return ", ".join(p for p in parameters if p)

    else:
        return ""


def new_function(
    name: str,
    parameters: Sequence[str] | None = None,
    return_type: str | None = None,
    body: Sequence[str] = (),
    receiver: str | None = None,
) -> str:
    """Create the text of a Go function or method, followed by an empty line.

    Args:
        name (str): The function name.
        parameters (Sequence[str] | None, optional): The parameters, e.g. `objSource source.User`.
        return_type (str | None, optional): The result type, if any.
        body (Sequence[str]): The statements of the body, unindented.
        receiver (str | None, optional): The receiver, e.g. `impl *mapperUserImpl`, for methods.

    Returns:
        str: The function text.
    """
    declaration = "func "
    if receiver:
        declaration += f"({receiver}) "
    declaration += f"{name}({join_parameters(parameters)})"
    if return_type:
        declaration += f" {return_type}"

    lines = [f"{declaration} {{"]
    lines.extend(indent(body))
    lines.append("}")
    return "\n".join(lines) + "\n\n"


def new_struct_declaration(name: str) -> str:
    """Create an empty struct type declaration, e.g. `type mapperUserImpl struct{}`."""
    return f"type {name} struct{{}}\n\n"


def new_import_block(package_paths: Sequence[str], import_names: Mapping[str, str] | None = None) -> str:
    """Create an import declaration for the given import paths.

    A path is given an explicit name when `import_names` maps it to something other than its
    default package name. Returns an empty string when there is nothing to import.
    """
    if not package_paths:
        return ""

    specs = []
    for path in package_paths:
        name = (import_names or {}).get(path, package_name(path))
        specs.append(f'"{path}"' if name == package_name(path) else f'{name} "{path}"')

    lines = ["import ("]
    lines.extend(indent(specs))
    lines.append(")")
    return "\n".join(lines) + "\n\n"
