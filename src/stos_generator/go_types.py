"""Types definitions that are common in Go sources."""

from __future__ import annotations

GO_BUILTIN_TYPES = frozenset(
    {
        "any",
        "bool",
        "byte",
        "complex64",
        "complex128",
        "error",
        "float32",
        "float64",
        "int",
        "int8",
        "int16",
        "int32",
        "int64",
        "rune",
        "string",
        "uint",
        "uint8",
        "uint16",
        "uint32",
        "uint64",
        "uintptr",
    }
)

# Builtins that Go declares as aliases of another builtin.
GO_BUILTIN_ALIASES = {
    "byte": "uint8",
    "rune": "int32",
}

# Packages that are never emitted into the import block, even when a field type
# refers to them. Direct copies of such fields do not name the type.
EXCLUDED_IMPORTS = frozenset({"time"})


class ShapeKind:
    """Kinds of type shapes."""

    PRIMITIVE = "primitive"
    POINTER = "pointer"
    SLICE = "slice"
    STRUCT = "struct"
