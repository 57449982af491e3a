"""Errors raised by the mapper generator."""

from __future__ import annotations


class StosGeneratorError(Exception):
    """Base class of all errors raised by the mapper generator."""


class InvalidInterfaceShapeError(StosGeneratorError):
    """Raised when the mapper interface is missing, is not an interface, or has unusable methods."""


class UnnamedInterfaceError(StosGeneratorError):
    """Raised when the interface descriptor has no name to derive the implementation from."""


class PackageResolutionError(StosGeneratorError):
    """Raised when the directory of a Go package cannot be located."""


class WriteFailureError(StosGeneratorError):
    """Raised when the generated mapper could not be written."""


class GoSyntaxError(StosGeneratorError):
    """Raised when a Go source file cannot be read by the declaration parser."""

    def __init__(self, message: str, path: str = "", line: int = 0):
        self.path = path
        self.line = line
        location = f"{path}:{line}: " if path else ""
        super().__init__(f"{location}{message}")
