"""Map Go import paths to package directories and back."""

from __future__ import annotations

import logging
import os
import os.path
import re
from dataclasses import dataclass, field

from stos_generator.errors import PackageResolutionError

logger = logging.getLogger(__name__)

GO_MOD = "go.mod"
VENDOR_DIRECTORY = "vendor"

_MODULE_LINE = re.compile(r'^module\s+"?([^"\s]+)"?\s*$')
_REPLACE_LINE = re.compile(r'^"?([^"\s]+)"?(?:\s+\S+)?\s*=>\s*"?([^"\s]+)"?(?:\s+\S+)?\s*$')


@dataclass
class GoModule:
    """The parts of a `go.mod` file that matter for locating packages.

    Attributes:
        root: The directory containing `go.mod`.
        path: The module path, e.g. `github.com/alterasi/stos`.
        replacements: Module paths that are replaced by local directories.
    """

    root: str
    path: str
    replacements: dict[str, str] = field(default_factory=dict)


def read_module(go_mod_path: str) -> GoModule:
    """Read the module path and local `replace` directives of a `go.mod` file.

    Raises:
        PackageResolutionError: If the file has no module directive.
    """
    root = os.path.dirname(os.path.abspath(go_mod_path))
    module_path = ""
    replacements: dict[str, str] = {}
    in_replace_block = False

    with open(go_mod_path, encoding="utf8") as go_mod:
        for raw_line in go_mod:
            line = raw_line.split("//", 1)[0].strip()
            if not line:
                continue

            module_match = _MODULE_LINE.match(line)
            if module_match:
                module_path = module_match.group(1)
                continue

            if line.startswith("replace"):
                rest = line[len("replace") :].strip()
                if rest == "(":
                    in_replace_block = True
                    continue
                line = rest
            elif in_replace_block:
                if line == ")":
                    in_replace_block = False
                    continue
            else:
                continue

            replace_match = _REPLACE_LINE.match(line)
            if replace_match:
                old, new = replace_match.groups()
                # Only directory replacements can be located on disk.
                if new.startswith((".", "/")):
                    replacements[old] = os.path.normpath(os.path.join(root, new))

    if not module_path:
        raise PackageResolutionError(f"No module directive in {go_mod_path}.")

    return GoModule(root=root, path=module_path, replacements=replacements)


def find_module(start_directory: str) -> GoModule | None:
    """Find the module enclosing a directory by walking up to the nearest `go.mod`."""
    directory = os.path.abspath(start_directory)
    while True:
        candidate = os.path.join(directory, GO_MOD)
        if os.path.isfile(candidate):
            return read_module(candidate)
        parent = os.path.dirname(directory)
        if parent == directory:
            return None
        directory = parent


def default_gopaths() -> list[str]:
    """The GOPATH entries, defaulting to `~/go` like the go tool does."""
    gopath = os.environ.get("GOPATH", "")
    if gopath:
        return [entry for entry in gopath.split(os.pathsep) if entry]
    return [os.path.join(os.path.expanduser("~"), "go")]


def _relative_to(package_path: str, prefix: str) -> str | None:
    if package_path == prefix:
        return ""
    if package_path.startswith(prefix + "/"):
        return package_path[len(prefix) + 1 :]
    return None


class PackageLocator:
    """Locates package directories of the module around a starting directory.

    Lookup order: the module itself, local `replace` directives, the module's `vendor`
    directory, and finally `GOPATH/src`.
    """

    def __init__(self, start_directory: str, gopaths: list[str] | None = None):
        self.start_directory = os.path.abspath(start_directory)
        self.module = find_module(self.start_directory)
        self.gopaths = gopaths if gopaths is not None else default_gopaths()

        if self.module:
            logger.debug("Using module %s at %s.", self.module.path, self.module.root)

    def _candidates(self, package_path: str) -> list[str]:
        candidates: list[str] = []

        if self.module:
            relative = _relative_to(package_path, self.module.path)
            if relative is not None:
                candidates.append(os.path.join(self.module.root, relative))

            for old, new in self.module.replacements.items():
                relative = _relative_to(package_path, old)
                if relative is not None:
                    candidates.append(os.path.join(new, relative))

            candidates.append(os.path.join(self.module.root, VENDOR_DIRECTORY, package_path))

        for gopath in self.gopaths:
            candidates.append(os.path.join(gopath, "src", package_path))

        return candidates

    def locate(self, package_path: str) -> str:
        """Find the directory of a package.

        Args:
            package_path (str): The import path.

        Returns:
            str: The normalised directory path.

        Raises:
            PackageResolutionError: If no candidate directory exists.
        """
        for candidate in self._candidates(package_path):
            if os.path.isdir(candidate):
                return os.path.normpath(candidate)

        raise PackageResolutionError(f"Unable to locate package directory for {package_path}.")

    def package_path_for(self, directory: str) -> str:
        """Find the import path of a package directory.

        Raises:
            PackageResolutionError: If the directory is neither inside the module nor a GOPATH.
        """
        directory = os.path.abspath(directory)

        roots: list[tuple[str, str]] = []
        if self.module:
            roots.append((self.module.root, self.module.path))
        roots.extend((os.path.join(os.path.abspath(gopath), "src"), "") for gopath in self.gopaths)

        for root, prefix in roots:
            if directory == root or directory.startswith(root + os.sep):
                relative = os.path.relpath(directory, root).replace(os.sep, "/")
                if relative == ".":
                    relative = ""
                package_path = "/".join(part for part in (prefix, relative) if part)
                if package_path:
                    return package_path

        raise PackageResolutionError(f"Unable to determine package path for {directory}.")
