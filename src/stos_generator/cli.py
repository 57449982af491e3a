"""Command-line interface for generating Go struct-to-struct mappers.

Notes:
    - The generated mapper implements the given interface in the interface's own package.
"""

from __future__ import annotations

import argparse
import logging
import os.path
from collections.abc import Sequence

from stos_generator.errors import StosGeneratorError
from stos_generator.resolver import MAPPER_SUFFIX
from stos_generator.run import run

logger = logging.getLogger(__name__)


def _add_verbose_argument(parser: argparse.ArgumentParser):
    """Add a verbose argument to a parser.

    Args:
        parser (argparse.ArgumentParser): The parser to add the argument to.
    """
    parser.add_argument(
        "-v",
        "--verbose",
        dest="verbose",
        default=False,
        action="store_true",
        help="log debug output, e.g. every registered helper.",
    )


def setup_parser() -> argparse.ArgumentParser:
    """Setup for the parser.

    Returns:
        argparse.ArgumentParser: The parser after setup.
    """
    parser = argparse.ArgumentParser(description="Generate struct-to-struct mappers for Go interfaces.")

    parser.add_argument(
        "-d",
        "--package-dir",
        type=str,
        default=".",
        help="directory of the Go package that declares the mapper interfaces.",
    )

    parser.add_argument(
        "-i",
        "--interface",
        dest="interfaces",
        type=str,
        nargs="+",
        required=True,
        help="names of the mapper interfaces to implement.",
    )

    parser.add_argument(
        "-o",
        "--output-dir",
        type=str,
        default="",
        help="directory to write the generated mappers to; defaults to the package directory if omitted.",
    )

    parser.add_argument(
        "--package-path",
        type=str,
        default="",
        help="import path of the package, for packages outside of a Go module.",
    )

    parser.add_argument(
        "--suffix",
        type=str,
        default=MAPPER_SUFFIX,
        help="suffix of the generated file names.",
    )

    parser.add_argument(
        "--no-gofmt",
        dest="skip_gofmt",
        default=False,
        action="store_true",
        help="skip formatting the generated mappers with gofmt.",
    )

    _add_verbose_argument(parser)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the mapper generator.

    Args:
        argv (Sequence[str] | None, optional): Run arguments. Defaults to None.

    Returns:
        int: Error code.
    """
    parser = setup_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    root_directory = os.getcwd()
    logging.info("Working from root directory: %s", root_directory)

    try:
        run(args, root_directory)
    except StosGeneratorError as e:
        logger.error("%s", e)
        return 1

    return 0
