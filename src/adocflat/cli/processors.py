#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Processing of CLI inputs.

Each input is assembled independently by ``assemble_single_input``, which
is a module-level function so it can run in a ``ProcessPoolExecutor``
worker. Workers return plain ``InputResult`` records; exceptions never
cross the process boundary.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from adocflat.assembler import DocumentAssembler
from adocflat.cli.builder import get_exit_code_for_exception
from adocflat.cli.config import merge_configs
from adocflat.cli.custom_actions import env_key_for, provided_args
from adocflat.cli.output import print_errors_plain, print_errors_rich, should_use_rich_output
from adocflat.constants import DEFAULT_OUTPUT_EXTENSION, EXIT_ASSEMBLY_ERROR, EXIT_SUCCESS
from adocflat.exceptions import AdocFlatError, DependencyError, ResourceNotFoundError, ValidationError
from adocflat.options import AssemblerOptions
from adocflat.resolvers import HttpResolver, ResourceResolver, default_resolver
from adocflat.utils.encoding import decode_bytes

logger = logging.getLogger(__name__)

STDIN_INPUT = "-"

RESOLVER_CONFIG_KEYS = ("base_dir", "allow_outside_base", "allow_remote", "http")

OUTPUT_EXTENSIONS = {"text": DEFAULT_OUTPUT_EXTENSION, "asciidoc": ".adoc"}


@dataclass
class InputResult:
    """Outcome of processing one CLI input."""

    display_name: str
    exit_code: int
    output_path: Optional[str] = None
    text: Optional[str] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.exit_code == EXIT_SUCCESS


def _explicit_or_env(parsed_args: argparse.Namespace, dest: str) -> bool:
    """Whether an argument's value should override configuration-file values."""
    return dest in provided_args(parsed_args) or env_key_for(dest) in os.environ


def build_options(parsed_args: argparse.Namespace, config: Dict[str, Any]) -> AssemblerOptions:
    """Combine configuration-file values and command-line flags into AssemblerOptions.

    Parameters
    ----------
    parsed_args : argparse.Namespace
        Parsed command line arguments
    config : dict
        Loaded configuration; resolver keys are ignored here

    Returns
    -------
    AssemblerOptions
        Options with command-line values taking precedence

    Raises
    ------
    ValidationError
        If the configuration names unknown options or holds invalid values

    """
    values = {key: value for key, value in config.items() if key not in RESOLVER_CONFIG_KEYS}
    if "attributes" in values and not isinstance(values["attributes"], dict):
        raise ValidationError(
            "Configuration key 'attributes' must be a table of name = value",
            parameter_name="attributes",
            parameter_value=values["attributes"],
        )

    overrides: Dict[str, Any] = {}
    for option_field in fields(AssemblerOptions):
        name = option_field.name
        value = getattr(parsed_args, name, None)
        if value is None or not _explicit_or_env(parsed_args, name):
            continue
        # repeated --attribute flags arrive as (name, value) pairs
        overrides[name] = dict(value) if name == "attributes" else value

    return AssemblerOptions.from_dict(merge_configs(values, overrides))


def build_resolver_settings(parsed_args: argparse.Namespace, config: Dict[str, Any]) -> Dict[str, Any]:
    """Collect include-resolution settings from configuration and flags.

    Raises
    ------
    ValidationError
        If the ``http`` table is not a table, names unknown settings or
        holds invalid values

    """
    http = config.get("http") or {}
    if not isinstance(http, dict):
        raise ValidationError(
            "Configuration key 'http' must be a table of resolver settings", parameter_name="http", parameter_value=http
        )
    known = {f.name for f in fields(HttpResolver)}
    unknown = sorted(set(http) - known)
    if unknown:
        raise ValidationError(
            f"Unknown http setting(s): {', '.join(unknown)}", parameter_name="http", parameter_value=unknown
        )

    settings: Dict[str, Any] = {
        "base_dir": config.get("base_dir"),
        "allow_outside_base": bool(config.get("allow_outside_base", False)),
        "allow_remote": bool(config.get("allow_remote", False)),
        "http": dict(http),
    }
    for name in ("base_dir", "allow_outside_base", "allow_remote"):
        if _explicit_or_env(parsed_args, name) and getattr(parsed_args, name, None) is not None:
            settings[name] = getattr(parsed_args, name)

    if settings["allow_remote"]:
        # validate http settings before processing any input
        HttpResolver(**settings["http"])
    return settings


def build_resolver(settings: Dict[str, Any], default_base: Path) -> ResourceResolver:
    """Create the resolver for one input."""
    return default_resolver(
        base_dir=settings.get("base_dir") or default_base,
        allow_outside_base=settings.get("allow_outside_base", False),
        allow_remote=settings.get("allow_remote", False),
        http_options=settings.get("http") or None,
    )


def output_path_for(input_name: str, output_dir: Path, options: AssemblerOptions) -> Path:
    """Return the file an input is written to inside ``--output-dir``."""
    extension = OUTPUT_EXTENSIONS.get(options.output_mode, DEFAULT_OUTPUT_EXTENSION)
    return output_dir / f"{Path(input_name).stem}{extension}"


def assemble_single_input(
    input_name: str,
    output_path: Optional[str],
    options: AssemblerOptions,
    settings: Dict[str, Any],
    check_only: bool = False,
) -> InputResult:
    """Assemble one input and write or return the rendered text.

    Parameters
    ----------
    input_name : str
        Path of the input document, or ``-`` for stdin
    output_path : str, optional
        File to write; when None the text is returned in the result
    options : AssemblerOptions
        Assembly configuration
    settings : dict
        Include-resolution settings from ``build_resolver_settings``
    check_only : bool, default False
        Validate without rendering output

    Returns
    -------
    InputResult
        Exit code, rendered text (stdout case) and collected errors

    """
    try:
        if input_name == STDIN_INPUT:
            text = sys.stdin.read()
            resolver = build_resolver(settings, Path.cwd())
            source: Optional[str] = None
        else:
            input_path = Path(input_name).resolve()
            if not input_path.is_file():
                raise ResourceNotFoundError(input_name, f"Input file not found: {input_name}")
            resolver = build_resolver(settings, input_path.parent)
            source = resolver.normalize(input_path.as_posix(), None)
            text = decode_bytes(input_path.read_bytes())

        result = DocumentAssembler(resolver, options).assemble(text, source)
    except (AdocFlatError, OSError) as e:
        logger.debug(f"{input_name}: {e}")
        return InputResult(
            input_name,
            get_exit_code_for_exception(e),
            errors=[{"kind": "error", "message": getattr(e, "message", str(e))}],
        )

    if not result.ok:
        return InputResult(input_name, EXIT_ASSEMBLY_ERROR, errors=[error.to_dict() for error in result.errors])

    if check_only:
        return InputResult(input_name, EXIT_SUCCESS)

    if output_path is None:
        return InputResult(input_name, EXIT_SUCCESS, text=result.text)

    try:
        target = Path(output_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(result.text or "", encoding="utf-8")
    except OSError as e:
        return InputResult(
            input_name,
            get_exit_code_for_exception(e),
            errors=[{"kind": "error", "message": f"Could not write {output_path}: {e}"}],
        )
    return InputResult(input_name, EXIT_SUCCESS, output_path=output_path)


def _plan_outputs(
    inputs: List[str], parsed_args: argparse.Namespace, options: AssemblerOptions
) -> List[Tuple[str, Optional[str]]]:
    if parsed_args.check:
        return [(name, None) for name in inputs]
    if parsed_args.out:
        return [(inputs[0], parsed_args.out)]
    if parsed_args.output_dir:
        output_dir = Path(parsed_args.output_dir)
        return [(name, str(output_path_for(name, output_dir, options))) for name in inputs]
    return [(name, None) for name in inputs]


def _use_parallel(parsed_args: argparse.Namespace, task_count: int) -> bool:
    if task_count < 2:
        return False
    if "parallel" in provided_args(parsed_args) and parsed_args.parallel is None:
        return True
    return isinstance(parsed_args.parallel, int) and parsed_args.parallel != 1


def process_inputs(
    inputs: List[str],
    parsed_args: argparse.Namespace,
    options: AssemblerOptions,
    settings: Dict[str, Any],
) -> int:
    """Assemble every input, sequentially or with a process pool.

    Rendered text for inputs without an output file goes to stdout in input
    order; errors are reported on stderr once all inputs are done.

    Returns
    -------
    int
        The highest exit code of any input

    """
    try:
        use_rich = should_use_rich_output(parsed_args, True)
    except DependencyError as exc:
        print(f"Warning: {exc}", file=sys.stderr)
        use_rich = False

    tasks = _plan_outputs(inputs, parsed_args, options)
    results: List[Optional[InputResult]] = [None] * len(tasks)

    if _use_parallel(parsed_args, len(tasks)):
        max_workers = parsed_args.parallel if parsed_args.parallel else os.cpu_count()
        logger.debug(f"Processing {len(tasks)} inputs with {max_workers} workers")
        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(assemble_single_input, name, output_path, options, settings, parsed_args.check): index
                for index, (name, output_path) in enumerate(tasks)
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()
    else:
        for index, (name, output_path) in enumerate(tasks):
            results[index] = assemble_single_input(name, output_path, options, settings, parsed_args.check)

    max_exit_code = EXIT_SUCCESS
    failures: List[Tuple[str, List[Dict[str, Any]]]] = []
    for result in filter(None, results):
        if result.ok:
            if result.text is not None:
                sys.stdout.write(result.text)
            elif result.output_path:
                logger.info(f"[OK] {result.display_name} -> {result.output_path}")
            else:
                logger.info(f"[OK] {result.display_name}")
        else:
            failures.append((result.display_name, result.errors))
            max_exit_code = max(max_exit_code, result.exit_code)

    if failures:
        if use_rich:
            print_errors_rich(failures)
        else:
            print_errors_plain(failures)

    return max_exit_code
