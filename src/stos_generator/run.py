"""Top-level module for mapper generation."""

from __future__ import annotations

import argparse
import logging
import os.path
import subprocess

from stos_generator.errors import WriteFailureError
from stos_generator.locator import PackageLocator
from stos_generator.resolver import MAPPER_SUFFIX, GoPackageResolver
from stos_generator.writer import generate_mapper

logger = logging.getLogger(__name__)

GOFMT_COMMAND = "gofmt"


def format_outputs(raw_input: str) -> str:
    """Formats raw Go source using gofmt.

    Args:
        raw_input (str): The unformatted input.

    Returns:
        str: The formatted outputs, or the input itself if gofmt is unavailable or fails.
    """
    try:
        result = subprocess.run(
            [GOFMT_COMMAND],
            input=raw_input,
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout

    except FileNotFoundError:
        logger.warning("%s not found, keeping the unformatted output.", GOFMT_COMMAND)
        return raw_input
    except subprocess.CalledProcessError as e:
        logger.error(f"gofmt formatting failed: {e}")
        logger.error(f"Stderr: {e.stderr}")
        # Return unformatted output on error
        return raw_input


def output_file_name(interface_name: str, suffix: str = MAPPER_SUFFIX) -> str:
    """The file name of a generated mapper, e.g. `mapperuser_mapper.go` for `MapperUser`."""
    return f"{interface_name.lower()}{suffix}"


def write_mapper(code: str, destination_path: str) -> None:
    """Write a generated mapper to disk.

    Raises:
        WriteFailureError: If the file could not be written.
    """
    try:
        with open(destination_path, "w", encoding="utf8") as output_file:
            output_file.write(code)
    except OSError as e:
        raise WriteFailureError(f"Failed to write file {destination_path}: {e}") from e


def generate_file(
    resolver: GoPackageResolver,
    package_directory: str,
    interface_name: str,
    output_directory: str | None = None,
    suffix: str = MAPPER_SUFFIX,
    use_gofmt: bool = True,
    package_path: str | None = None,
) -> str:
    """Entry-point for generating the mapper file of one interface.

    Args:
        resolver (GoPackageResolver): Resolves the interface and the types it refers to.
        package_directory (str): The directory of the package declaring the interface.
        interface_name (str): The interface to implement.
        output_directory (str | None): Where to write the mapper; defaults to `package_directory`.
        suffix (str): The suffix of the generated file name.
        use_gofmt (bool): Whether to run the output through gofmt.
        package_path (str | None): The import path of the package, if not derivable from go.mod.

    Returns:
        str: The path of the written file.
    """
    descriptor = resolver.describe_interface(package_directory, interface_name, package_path=package_path)
    code = generate_mapper(descriptor)
    if use_gofmt:
        code = format_outputs(code)

    destination_directory = output_directory or package_directory
    os.makedirs(destination_directory, exist_ok=True)
    destination_path = os.path.join(destination_directory, output_file_name(interface_name, suffix))

    write_mapper(code, destination_path)
    logger.info("Wrote mapper for %s to '%s'.", interface_name, destination_path)

    return destination_path


def run(args: argparse.Namespace, root_directory: str) -> list[str]:
    """Run the mapper generator for every requested interface.

    Args:
        args (argparse.Namespace): The arguments that were passed when calling the generator.
        root_directory (str): The directory, from which the generator is executed.

    Returns:
        list[str]: The paths of the written files.
    """
    package_directory = os.path.join(root_directory, args.package_dir)
    output_directory = os.path.join(root_directory, args.output_dir) if args.output_dir else None
    package_path: str | None = getattr(args, "package_path", None) or None

    locator = PackageLocator(package_directory)
    resolver = GoPackageResolver(locator, excluded_suffixes=(args.suffix,))

    written: list[str] = []
    for interface_name in args.interfaces:
        written.append(
            generate_file(
                resolver,
                package_directory,
                interface_name,
                output_directory=output_directory,
                suffix=args.suffix,
                use_gofmt=not args.skip_gofmt,
                package_path=package_path,
            )
        )

    return written
