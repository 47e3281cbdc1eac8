"""adocflat - flatten AsciiDoc-style documents.

adocflat resolves include directives recursively, checks that anchor
identifiers are unique and that every cross-reference points at an anchor,
and renders the flattened result as plain text or as AsciiDoc.

The pipeline has four stages, each usable on its own:

- ``parse``: raw text to a block-level Document
- ``resolve_includes``: splice included resources, detecting cycles
- ``validate_anchors`` / ``resolve_cross_references``: exhaustive checks
- ``render``: flattened Document to text

Examples
--------
Flatten text whose includes live in memory:

    >>> from adocflat import assemble_text
    >>> assemble_text("A\\ninclude(x)\\nB", {"x": "middle"})
    'A\\nmiddle\\nB'

Collect errors instead of raising:

    >>> from adocflat import DocumentAssembler
    >>> result = DocumentAssembler({}).assemble("See <<missing>>.")
    >>> [error.kind.value for error in result.errors]
    ['unresolved-reference']

Flatten a file, resolving includes relative to it:

    >>> from adocflat import assemble_file
    >>> text = assemble_file("docs/manual.adoc")

"""

#  Copyright (c) 2025 Tom Villani, Ph.D.

import sys

if sys.version_info < (3, 10):
    raise ImportError(
        "adocflat requires Python 3.10 or later. "
        f"You are using Python {sys.version_info.major}.{sys.version_info.minor}."
    )

__version__ = "0.1.0"

from adocflat.assembler import (
    AssemblyResult,
    DocumentAssembler,
    assemble_file,
    assemble_text,
    render,
    resolve_cross_references,
    resolve_includes,
    validate_anchors,
)
from adocflat.document import (
    AnchorBlock,
    AnchorDefinition,
    AttributeEntry,
    CrossReference,
    Document,
    IncludeBlock,
    InlineAnchor,
    SourcePosition,
    TextBlock,
)
from adocflat.exceptions import (
    AdocFlatError,
    AssemblyError,
    AssemblyFailedError,
    CyclicIncludeError,
    DependencyError,
    DuplicateAnchorError,
    ErrorKind,
    IncludeDepthError,
    MissingResourceError,
    ResourceError,
    ResourceNotFoundError,
    SecurityError,
    UnresolvedReferenceError,
    ValidationError,
)
from adocflat.options import AssemblerOptions
from adocflat.parser import DocumentParser, parse
from adocflat.resolvers import (
    ChainResolver,
    FileSystemResolver,
    HttpResolver,
    MappingResolver,
    ResourceResolver,
    as_resolver,
    default_resolver,
)

__all__ = [
    "__version__",
    # Pipeline
    "assemble_text",
    "assemble_file",
    "DocumentAssembler",
    "AssemblyResult",
    "AssemblerOptions",
    "DocumentParser",
    "parse",
    "resolve_includes",
    "validate_anchors",
    "resolve_cross_references",
    "render",
    # Document model
    "Document",
    "SourcePosition",
    "TextBlock",
    "IncludeBlock",
    "AnchorBlock",
    "AttributeEntry",
    "CrossReference",
    "InlineAnchor",
    "AnchorDefinition",
    # Resolvers
    "ResourceResolver",
    "MappingResolver",
    "FileSystemResolver",
    "HttpResolver",
    "ChainResolver",
    "as_resolver",
    "default_resolver",
    # Exceptions
    "AdocFlatError",
    "ValidationError",
    "ErrorKind",
    "AssemblyError",
    "MissingResourceError",
    "CyclicIncludeError",
    "IncludeDepthError",
    "DuplicateAnchorError",
    "UnresolvedReferenceError",
    "AssemblyFailedError",
    "ResourceError",
    "ResourceNotFoundError",
    "SecurityError",
    "DependencyError",
]
