#  Copyright (c) 2025 Tom Villani, Ph.D.

# adocflat/options.py
"""Configuration options for document assembly.

This module defines the frozen options dataclass consumed by the assembler.
Field metadata carries the help text and CLI names used by the command-line
builder, so options and flags stay in one place.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, fields, replace
from typing import Any

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self

from adocflat.constants import (
    DEFAULT_COMPACT_INCLUDE_SYNTAX,
    DEFAULT_MAX_INCLUDE_DEPTH,
    DEFAULT_OUTPUT_MODE,
    DEFAULT_REFTEXT_FROM_TITLE,
    DEFAULT_VALIDATE_ANCHORS,
    DEFAULT_VALIDATE_REFERENCES,
    OUTPUT_MODES,
    OutputMode,
)
from adocflat.exceptions import ValidationError


@dataclass(frozen=True)
class CloneFrozenMixin:
    """Mixin providing frozen dataclass cloning capabilities."""

    def create_updated(self, **kwargs: Any) -> Self:
        """Create a new instance with updated field values.

        Parameters
        ----------
        **kwargs : Any
            Field names and their new values

        Returns
        -------
        Self
            New instance with specified fields updated

        """
        return replace(self, **kwargs)


@dataclass(frozen=True)
class AssemblerOptions(CloneFrozenMixin):
    """Configuration options for the document assembler.

    Parameters
    ----------
    output_mode : {"text", "asciidoc"}, default "text"
        How the flattened document is rendered. ``text`` drops anchors and
        replaces cross-references with their display text; ``asciidoc``
        keeps the flattened source as written.
    max_include_depth : int, default 64
        Maximum nesting of includes below the root document.
    validate_anchors : bool, default True
        Report duplicate anchor identifiers.
    validate_references : bool, default True
        Report cross-references without a matching anchor.
    attributes : dict, default empty
        Document attributes predefined by the caller, available to
        ``{name}`` references in include targets. Attribute entries in the
        document override them.
    compact_include_syntax : bool, default True
        Also recognize the compact ``include(target)`` directive form.
    default_reftext_from_title : bool, default True
        Use the section title following a block anchor as its default
        reference text.

    """

    output_mode: OutputMode = field(
        default=DEFAULT_OUTPUT_MODE,
        metadata={
            "help": "Render mode: plain text with references substituted, or flattened AsciiDoc",
            "choices": list(OUTPUT_MODES),
            "cli_name": "mode",
        },
    )
    max_include_depth: int = field(
        default=DEFAULT_MAX_INCLUDE_DEPTH,
        metadata={"help": "Maximum nesting depth of include directives", "type": int},
    )
    validate_anchors: bool = field(
        default=DEFAULT_VALIDATE_ANCHORS,
        metadata={"help": "Report duplicate anchor identifiers", "cli_name": "no-validate-anchors"},
    )
    validate_references: bool = field(
        default=DEFAULT_VALIDATE_REFERENCES,
        metadata={"help": "Report unresolved cross-references", "cli_name": "no-validate-references"},
    )
    attributes: dict[str, str] = field(
        default_factory=dict,
        metadata={"help": "Predefined document attributes (name=value)", "cli_name": "attribute"},
    )
    compact_include_syntax: bool = field(
        default=DEFAULT_COMPACT_INCLUDE_SYNTAX,
        metadata={"help": "Recognize include(target) in addition to include::target[]"},
    )
    default_reftext_from_title: bool = field(
        default=DEFAULT_REFTEXT_FROM_TITLE,
        metadata={"help": "Use the following section title as an anchor's reference text"},
    )

    def __post_init__(self) -> None:
        """Validate option values.

        Raises
        ------
        ValidationError
            If any field value is outside its valid range.

        """
        if not isinstance(self.max_include_depth, int) or isinstance(self.max_include_depth, bool):
            raise ValidationError(
                f"max_include_depth must be an integer, got {type(self.max_include_depth).__name__}",
                parameter_name="max_include_depth",
                parameter_value=self.max_include_depth,
            )
        for name in ("validate_anchors", "validate_references", "compact_include_syntax", "default_reftext_from_title"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ValidationError(
                    f"{name} must be true or false, got {value!r}",
                    parameter_name=name,
                    parameter_value=value,
                )
        if not isinstance(self.attributes, dict):
            raise ValidationError(
                f"attributes must be a mapping of name to value, got {type(self.attributes).__name__}",
                parameter_name="attributes",
                parameter_value=self.attributes,
            )
        if not isinstance(self.output_mode, str) or self.output_mode not in OUTPUT_MODES:
            raise ValidationError(
                f"output_mode must be one of {', '.join(OUTPUT_MODES)}, got {self.output_mode!r}",
                parameter_name="output_mode",
                parameter_value=self.output_mode,
            )
        if self.max_include_depth < 1:
            raise ValidationError(
                f"max_include_depth must be positive, got {self.max_include_depth}",
                parameter_name="max_include_depth",
                parameter_value=self.max_include_depth,
            )
        for name, value in self.attributes.items():
            if not name or not isinstance(name, str):
                raise ValidationError(
                    f"Attribute names must be non-empty strings, got {name!r}",
                    parameter_name="attributes",
                    parameter_value=name,
                )
            if not isinstance(value, str):
                raise ValidationError(
                    f"Attribute '{name}' must have a string value, got {type(value).__name__}",
                    parameter_name="attributes",
                    parameter_value=value,
                )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AssemblerOptions":
        """Build options from a configuration mapping, rejecting unknown keys.

        Parameters
        ----------
        data : dict
            Mapping of field names to values, typically from a config file

        Returns
        -------
        AssemblerOptions
            The constructed options

        Raises
        ------
        ValidationError
            If the mapping names a field that does not exist

        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError(
                f"Unknown assembler option(s): {', '.join(unknown)}",
                parameter_name="options",
                parameter_value=unknown,
            )
        values = dict(data)
        if isinstance(values.get("attributes"), dict):
            values["attributes"] = {str(k): str(v) for k, v in values["attributes"].items()}
        return cls(**values)
