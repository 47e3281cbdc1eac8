"""Command-line interface for the adocflat document assembler.

The CLI flattens one or more documents: include directives are spliced,
anchors and cross-references are checked, and the result is rendered as
plain text (default) or flattened AsciiDoc.

Environment Variable Support
----------------------------
Options default from environment variables named ADOCFLAT_<OPTION_NAME>
(e.g. ``ADOCFLAT_MAX_INCLUDE_DEPTH=16``). A configuration file can be named
with ADOCFLAT_CONFIG. CLI arguments always override both.

Examples
--------
Flatten to stdout::

    $ adocflat manual.adoc

Write flattened AsciiDoc to a file::

    $ adocflat manual.adoc --mode asciidoc --out flat.adoc

Check many documents in parallel::

    $ adocflat docs/*.adoc --check --parallel

"""

#  Copyright (c) 2025 Tom Villani, Ph.D.

import argparse
import logging
import os
import sys

from adocflat.cli.builder import DynamicCLIBuilder, create_parser, get_exit_code_for_exception
from adocflat.cli.config import load_config_with_priority
from adocflat.cli.processors import STDIN_INPUT, build_options, build_resolver_settings, process_inputs
from adocflat.constants import CONFIG_ENV_VAR, EXIT_VALIDATION_ERROR
from adocflat.exceptions import ValidationError
from adocflat.logging_utils import configure_logging

logger = logging.getLogger(__name__)

__all__ = [
    "main",
    "DynamicCLIBuilder",
    "create_parser",
    "validate_arguments",
]


def _setup_logging_level(parsed_args: argparse.Namespace) -> None:
    """Set up logging level based on command-line arguments.

    Parameters
    ----------
    parsed_args : argparse.Namespace
        Parsed command-line arguments

    """
    # --trace takes highest precedence, then --verbose, then --log-level
    if parsed_args.trace:
        log_level = logging.DEBUG
    elif parsed_args.verbose and parsed_args.log_level == "WARNING":
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, parsed_args.log_level.upper())

    configure_logging(log_level, log_file=parsed_args.log_file, trace_mode=parsed_args.trace)


def validate_arguments(parsed_args: argparse.Namespace) -> list[str]:
    """Return the problems with a combination of arguments; empty when valid."""
    problems: list[str] = []
    inputs = parsed_args.input

    if not inputs:
        problems.append("Input file is required")
        return problems

    if STDIN_INPUT in inputs and len(inputs) > 1:
        problems.append("'-' (stdin) cannot be combined with other inputs")
    if parsed_args.out and parsed_args.output_dir:
        problems.append("--out and --output-dir cannot be used together")
    if parsed_args.out and len(inputs) > 1:
        problems.append("--out can only be used with a single input; use --output-dir for several")
    if len(inputs) > 1 and not (parsed_args.output_dir or parsed_args.check):
        problems.append("Multiple inputs require --output-dir or --check")
    if parsed_args.output_dir and STDIN_INPUT in inputs:
        problems.append("--output-dir cannot be used with stdin input")

    return problems


def main(args: list[str] | None = None) -> int:
    """Execute the CLI and return the process exit code."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    _setup_logging_level(parsed_args)

    problems = validate_arguments(parsed_args)
    if problems:
        for problem in problems:
            print(f"Error: {problem}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    try:
        if parsed_args.no_config:
            config = {}
        else:
            config = load_config_with_priority(parsed_args.config, os.environ.get(CONFIG_ENV_VAR))
        options = build_options(parsed_args, config)
        settings = build_resolver_settings(parsed_args, config)
    except (argparse.ArgumentTypeError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return get_exit_code_for_exception(e)

    logger.debug(f"Assembler options: {options}")
    return process_inputs(parsed_args.input, parsed_args, options, settings)


if __name__ == "__main__":
    sys.exit(main())
