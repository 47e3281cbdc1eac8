#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Argument parser construction for the adocflat CLI.

Assembler options are turned into arguments from the field metadata of
``AssemblerOptions`` (help text, CLI name, choices), so the option dataclass
and the command line cannot drift apart. Input/output, configuration and
logging arguments are declared by hand.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import MISSING, Field, fields
from typing import Any, Optional, Type

from adocflat.cli.custom_actions import (
    TrackingAppendAction,
    TrackingPositiveIntAction,
    TrackingStoreAction,
    TrackingStoreFalseAction,
    TrackingStoreTrueAction,
)
from adocflat.constants import (
    CONFIG_ENV_VAR,
    EXIT_ASSEMBLY_ERROR,
    EXIT_DEPENDENCY_ERROR,
    EXIT_ERROR,
    EXIT_FILE_ERROR,
    EXIT_VALIDATION_ERROR,
)
from adocflat.exceptions import (
    AssemblyError,
    AssemblyFailedError,
    DependencyError,
    ResourceError,
    ValidationError,
)
from adocflat.options import AssemblerOptions

logger = logging.getLogger(__name__)


def parse_attribute(value: str) -> tuple[str, str]:
    """Parse a ``name=value`` attribute argument; a bare ``name`` defines an empty value."""
    name, _, attr_value = value.partition("=")
    name = name.strip()
    if not name:
        raise argparse.ArgumentTypeError(f"Invalid attribute {value!r}: expected NAME=VALUE")
    return name, attr_value


class DynamicCLIBuilder:
    """Builds CLI arguments from options dataclass metadata."""

    def __init__(self) -> None:
        """Initialize the CLI builder."""
        self.dest_to_cli_flag: dict[str, str] = {}

    @staticmethod
    def _default_for(field: Field) -> Any:
        if field.default is not MISSING:
            return field.default
        if field.default_factory is not MISSING:
            return field.default_factory()
        return None

    def get_argument_kwargs(self, field: Field) -> tuple[str, dict[str, Any]]:
        """Return the CLI flag and ``add_argument`` kwargs for one options field.

        Parameters
        ----------
        field : Field
            Dataclass field of an options class

        Returns
        -------
        tuple[str, dict]
            The flag (e.g. ``--max-include-depth``) and the keyword arguments

        """
        metadata = field.metadata
        default = self._default_for(field)
        help_text = metadata.get("help", field.name.replace("_", " "))

        if isinstance(default, bool):
            if default:
                cli_name = metadata.get("cli_name", f"no-{field.name.replace('_', '-')}")
                kwargs: dict[str, Any] = {"action": TrackingStoreFalseAction, "help": help_text}
            else:
                cli_name = metadata.get("cli_name", field.name.replace("_", "-"))
                kwargs = {"action": TrackingStoreTrueAction, "help": help_text}
        elif isinstance(default, dict):
            cli_name = metadata.get("cli_name", field.name.replace("_", "-"))
            kwargs = {
                "action": TrackingAppendAction,
                "type": parse_attribute,
                "metavar": "NAME=VALUE",
                "help": f"{help_text} (can be specified multiple times)",
            }
        elif metadata.get("type") is int:
            cli_name = metadata.get("cli_name", field.name.replace("_", "-"))
            kwargs = {
                "action": TrackingPositiveIntAction,
                "metavar": "N",
                "help": f"{help_text} (default: {default})",
            }
        else:
            cli_name = metadata.get("cli_name", field.name.replace("_", "-"))
            kwargs = {"action": TrackingStoreAction, "help": f"{help_text} (default: {default})"}
            if "choices" in metadata:
                kwargs["choices"] = metadata["choices"]

        # options fall back to configuration values unless given on the command line
        kwargs["default"] = None
        kwargs["dest"] = field.name
        return f"--{cli_name}", kwargs

    def add_options_class_arguments(
        self,
        parser: argparse.ArgumentParser,
        options_class: Type[Any],
        group_name: Optional[str] = None,
    ) -> None:
        """Add one argument per field of an options dataclass."""
        group = parser.add_argument_group(group_name or f"{options_class.__name__} options")
        for field in fields(options_class):
            flag, kwargs = self.get_argument_kwargs(field)
            group.add_argument(flag, **kwargs)
            self.dest_to_cli_flag[field.name] = flag

    def build_parser(self) -> argparse.ArgumentParser:
        """Create the complete argument parser."""
        parser = argparse.ArgumentParser(
            prog="adocflat",
            description="Flatten AsciiDoc-style documents: resolve includes, check anchors and cross-references, "
            "and render the result.",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Flatten a document to plain text on stdout
  adocflat manual.adoc

  # Keep AsciiDoc markup and write to a file
  adocflat manual.adoc --mode asciidoc --out flat.adoc

  # Check several documents in parallel without writing output
  adocflat docs/*.adoc --check --parallel 4

  # Predefine attributes used in include targets
  adocflat manual.adoc --attribute partsdir=chapters
        """,
        )

        parser.add_argument("input", nargs="*", help="Input document(s) (use '-' for stdin)")
        parser.add_argument("--out", "-o", action=TrackingStoreAction, help="Output file path (default: stdout)")
        parser.add_argument(
            "--output-dir",
            action=TrackingStoreAction,
            help="Directory to write flattened documents to (for multiple inputs)",
        )
        parser.add_argument(
            "--check",
            action=TrackingStoreTrueAction,
            help="Only report errors; do not write any output",
        )
        parser.add_argument(
            "--parallel",
            "-p",
            action=TrackingPositiveIntAction,
            nargs="?",
            const=None,
            default=1,
            help="Process inputs in parallel (optionally specify number of workers, must be positive)",
        )

        resolver_group = parser.add_argument_group("Include resolution")
        resolver_group.add_argument(
            "--base-dir",
            action=TrackingStoreAction,
            metavar="DIR",
            help="Directory include targets are resolved against (default: each input's directory)",
        )
        resolver_group.add_argument(
            "--allow-outside-base",
            action=TrackingStoreTrueAction,
            help="Permit includes that resolve outside the base directory",
        )
        resolver_group.add_argument(
            "--allow-remote",
            action=TrackingStoreTrueAction,
            help="Resolve http(s):// include targets (requires httpx)",
        )

        self.add_options_class_arguments(parser, AssemblerOptions, group_name="Assembly options")

        parser.add_argument(
            "--config",
            help=f"Path to configuration file (TOML, YAML or JSON). Defaults to ${CONFIG_ENV_VAR}, then "
            ".adocflat.* or pyproject.toml [tool.adocflat] in the current directory or its parents, then home.",
        )
        parser.add_argument(
            "--no-config",
            action="store_true",
            dest="no_config",
            help="Disable loading of configuration files",
        )
        parser.add_argument(
            "--rich",
            action="store_true",
            help="Report errors as a rich table (requires rich)",
        )

        parser.add_argument(
            "--verbose",
            "-v",
            action="store_true",
            help="Enable verbose output with detailed logging (equivalent to --log-level DEBUG)",
        )
        parser.add_argument(
            "--log-level",
            choices=["DEBUG", "INFO", "WARNING", "ERROR"],
            default="WARNING",
            help="Set logging level (default: WARNING)",
        )
        parser.add_argument(
            "--log-file",
            type=str,
            metavar="PATH",
            help="Write log messages to specified file in addition to console output",
        )
        parser.add_argument(
            "--trace",
            action="store_true",
            help="Enable trace mode with timestamps and logger names",
        )

        def get_version() -> str:
            try:
                from importlib.metadata import PackageNotFoundError, version

                return version("adocflat")
            except PackageNotFoundError:
                return "unknown"

        parser.add_argument("--version", "-V", action="version", version=f"adocflat {get_version()}")

        return parser


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    return DynamicCLIBuilder().build_parser()


def get_exit_code_for_exception(exception: BaseException) -> int:
    """Map an exception to an appropriate CLI exit code.

    Parameters
    ----------
    exception : Exception
        The exception to map to an exit code

    Returns
    -------
    int
        The appropriate exit code for the exception type

    """
    if isinstance(exception, (AssemblyFailedError, AssemblyError)):
        return EXIT_ASSEMBLY_ERROR

    if isinstance(exception, (DependencyError, ImportError)):
        return EXIT_DEPENDENCY_ERROR

    if isinstance(exception, (ValidationError, argparse.ArgumentTypeError)):
        return EXIT_VALIDATION_ERROR

    if isinstance(exception, (ResourceError, OSError)):
        return EXIT_FILE_ERROR

    return EXIT_ERROR
