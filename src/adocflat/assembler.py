#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/adocflat/assembler.py
"""Document assembly pipeline.

The pipeline runs in a fixed order:

1. ``parse``: raw text to a Document (never fails)
2. ``resolve_includes``: splice every include, depth first, fail fast
3. ``validate_anchors`` and ``resolve_cross_references``: exhaustive checks
   over the flattened document
4. ``render``: flattened document to output text

Include resolution uses an explicit frame stack together with the set of
paths currently being resolved, so include cycles and overly deep chains are
reported as errors instead of exhausting the interpreter's call stack.

Examples
--------
Flatten a document whose includes live in memory:

    >>> assemble_text("A\\ninclude(x)\\nB", {"x": "middle"})
    'A\\nmiddle\\nB'

"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional, Union

from adocflat.constants import ANONYMOUS_SOURCE, UNRESOLVED_XREF_TEXT_TEMPLATE, OutputMode
from adocflat.document import (
    AnchorBlock,
    AttributeEntry,
    Block,
    CrossReference,
    Document,
    IncludeBlock,
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
    IncludeDepthError,
    MissingResourceError,
    UnresolvedReferenceError,
    ValidationError,
)
from adocflat.options import AssemblerOptions
from adocflat.parser import DocumentParser
from adocflat.resolvers import FileSystemResolver, MappingResolver, ResourceContent, ResourceResolver, as_resolver
from adocflat.selectors import apply_include_attributes
from adocflat.utils.text import expand_attribute_refs, split_lines

logger = logging.getLogger(__name__)

ResolverLike = Union[ResourceResolver, Mapping[str, ResourceContent]]


@dataclass
class _Frame:
    """One resource being spliced; the root document is the bottom frame."""

    path: Optional[str]
    blocks: tuple[Block, ...]
    leveloffset: int = 0
    include: Optional[IncludeBlock] = None
    output_start: int = 0
    index: int = 0


def _emit_include_end(frame: _Frame, output: list[Block]) -> None:
    """Give the spliced content the include line's own terminator.

    The included text loses exactly one trailing line terminator and takes
    the include line's terminator instead, so a resource with no directives
    behaves as if its text were pasted in place of the directive.
    """
    include = frame.include
    if include is None:
        return
    if len(output) > frame.output_start:
        output[-1] = replace(output[-1], terminator=include.terminator)
    elif include.terminator:
        output.append(TextBlock("", include.terminator, include.position))


def resolve_includes(
    doc: Document,
    resolver: ResolverLike,
    options: Optional[AssemblerOptions] = None,
    parser: Optional[DocumentParser] = None,
) -> Document:
    """Splice every include directive, recursively, in document order.

    Parameters
    ----------
    doc : Document
        Parsed root document
    resolver : ResourceResolver or Mapping
        Source of included resources; a plain mapping is wrapped in a
        MappingResolver
    options : AssemblerOptions, optional
        Depth limit and predefined attributes
    parser : DocumentParser, optional
        Parser for included resources; built from ``options`` when omitted

    Returns
    -------
    Document
        Flattened document (no IncludeBlock remains)

    Raises
    ------
    MissingResourceError
        If an include target cannot be resolved and is not optional
    CyclicIncludeError
        If an include chain revisits a resource still being resolved
    IncludeDepthError
        If nesting exceeds ``options.max_include_depth``

    """
    options = options or AssemblerOptions()
    parser = parser or DocumentParser(options.compact_include_syntax, options.default_reftext_from_title)
    resolver = as_resolver(resolver)

    root_path = None if doc.source == ANONYMOUS_SOURCE else doc.source
    stack: list[_Frame] = [_Frame(path=root_path, blocks=doc.blocks)]
    in_progress: set[str] = {root_path} if root_path else set()
    attributes: dict[str, str] = dict(options.attributes)
    output: list[Block] = []

    while stack:
        frame = stack[-1]
        if frame.index >= len(frame.blocks):
            stack.pop()
            if frame.path is not None and frame.include is not None:
                in_progress.discard(frame.path)
            _emit_include_end(frame, output)
            continue

        block = frame.blocks[frame.index]
        frame.index += 1

        if isinstance(block, AttributeEntry):
            if block.is_unset:
                attributes.pop(block.name, None)
            else:
                attributes[block.name] = block.value or ""
            output.append(block)
            continue

        if not isinstance(block, IncludeBlock):
            output.append(block)
            continue

        new_frame = _open_include(block, frame, stack, in_progress, attributes, resolver, options, parser)
        if new_frame is None:
            continue
        new_frame.output_start = len(output)
        stack.append(new_frame)
        if new_frame.path is not None:
            in_progress.add(new_frame.path)

    return Document(blocks=tuple(output), source=doc.source)


def _open_include(
    block: IncludeBlock,
    frame: _Frame,
    stack: list[_Frame],
    in_progress: set[str],
    attributes: Mapping[str, str],
    resolver: ResourceResolver,
    options: AssemblerOptions,
    parser: DocumentParser,
) -> Optional[_Frame]:
    """Resolve one include directive into a new frame, or None if it is skipped."""
    target = expand_attribute_refs(block.target, attributes)
    path = resolver.normalize(target, frame.path)

    if path in in_progress:
        chain = [f.path for f in stack if f.path is not None]
        raise CyclicIncludeError(path, block.position, chain)

    if len(stack) > options.max_include_depth:
        raise IncludeDepthError(path, block.position, options.max_include_depth)

    try:
        text = resolver.read(path)
    except DependencyError:
        raise
    except (AdocFlatError, OSError, UnicodeError) as e:
        reason = e.message if isinstance(e, AdocFlatError) else str(e)
        if block.is_optional:
            logger.warning(f"{block.position}: skipping optional include {path}: {reason}")
            return None
        raise MissingResourceError(path, block.position, reason=reason, original_error=e) from e

    logger.debug(f"{block.position}: including {path}")
    numbered = [(index + 1, content, terminator) for index, (content, terminator) in enumerate(split_lines(text))]
    try:
        lines, leveloffset = apply_include_attributes(numbered, block.attributes, frame.leveloffset, path)
    except ValidationError as e:
        logger.warning(f"{block.position}: ignoring invalid include attributes for {path}: {e.message}")
        lines, leveloffset = numbered, frame.leveloffset

    included = parser.parse_lines(lines, source=path)
    return _Frame(path=path, blocks=included.blocks, leveloffset=leveloffset, include=block)


def validate_anchors(doc: Document) -> list[DuplicateAnchorError]:
    """Report every anchor identifier declared more than once.

    Parameters
    ----------
    doc : Document
        Flattened document

    Returns
    -------
    list[DuplicateAnchorError]
        One error per duplicate declaration; empty when every identifier is unique

    """
    first_seen: dict[str, SourcePosition] = {}
    errors: list[DuplicateAnchorError] = []
    for anchor in doc.anchors():
        if anchor.identifier in first_seen:
            errors.append(DuplicateAnchorError(anchor.identifier, anchor.position, first_seen[anchor.identifier]))
        else:
            first_seen[anchor.identifier] = anchor.position
    return errors


def resolve_cross_references(doc: Document) -> list[UnresolvedReferenceError]:
    """Report every cross-reference without a matching anchor.

    Inter-document references (``xref:other.adoc#id[]``) are not checked.

    Parameters
    ----------
    doc : Document
        Flattened document

    Returns
    -------
    list[UnresolvedReferenceError]
        One error per unresolved reference, in document order

    """
    identifiers = {anchor.identifier for anchor in doc.anchors()}
    errors: list[UnresolvedReferenceError] = []
    for xref in doc.cross_references():
        if xref.is_external or not xref.target:
            continue
        if xref.target not in identifiers:
            errors.append(UnresolvedReferenceError(xref.target, xref.position, xref.markup))
    return errors


def _display_text(xref: CrossReference, reftexts: Mapping[str, Optional[str]]) -> str:
    if xref.text:
        return xref.text
    if xref.is_external:
        return f"{xref.document}#{xref.target}" if xref.target else str(xref.document)
    reftext = reftexts.get(xref.target)
    if reftext:
        return reftext
    return UNRESOLVED_XREF_TEXT_TEMPLATE.format(id=xref.target)


def _render_text_line(block: TextBlock, reftexts: Mapping[str, Optional[str]], attributes: Mapping[str, str]) -> str:
    """Substitute cross-references and drop inline anchors in one line."""
    if block.verbatim:
        return block.content
    replacements: list[tuple[int, int, str]] = [(*xref.span, _display_text(xref, reftexts)) for xref in block.xrefs]
    replacements.extend((*anchor.span, "") for anchor in block.anchors)
    replacements.sort()

    parts: list[str] = []
    cursor = 0
    for start, end, text in replacements:
        if start < cursor:
            # overlapping markup (e.g. an anchor inside xref text); the earlier match wins
            continue
        parts.append(block.content[cursor:start])
        parts.append(text)
        cursor = end
    parts.append(block.content[cursor:])
    return expand_attribute_refs("".join(parts), attributes, unescape=True)


def render(doc: Document, mode: OutputMode = "text", attributes: Optional[Mapping[str, str]] = None) -> str:
    """Render a flattened document to text.

    Parameters
    ----------
    doc : Document
        Flattened document
    mode : {"text", "asciidoc"}, default "text"
        ``text`` drops anchors and attribute entries, substitutes
        cross-references with their display text and expands defined
        attribute references, unescaping ``\\{name}``; ``asciidoc`` reproduces the flattened source
    attributes : Mapping[str, str], optional
        Attributes defined before the document starts

    Returns
    -------
    str
        Rendered output

    Raises
    ------
    ValidationError
        If the document still contains include directives or the mode is unknown

    """
    if not doc.is_flattened:
        raise ValidationError("Cannot render a document with unresolved include directives", "doc")

    if mode == "asciidoc":
        parts = []
        for block in doc.blocks:
            if isinstance(block, TextBlock):
                parts.append(block.content + block.terminator)
            else:
                parts.append(block.raw + block.terminator)
        return "".join(parts)

    if mode != "text":
        raise ValidationError(f"Unknown render mode: {mode!r}", "mode", mode)

    reftexts: dict[str, Optional[str]] = {}
    for anchor in doc.anchors():
        reftexts.setdefault(anchor.identifier, anchor.reftext)

    current: dict[str, str] = dict(attributes or {})
    out: list[str] = []
    for block in doc.blocks:
        if isinstance(block, AnchorBlock):
            continue
        if isinstance(block, AttributeEntry):
            if block.is_unset:
                current.pop(block.name, None)
            else:
                current[block.name] = block.value or ""
            continue
        if isinstance(block, TextBlock):
            out.append(_render_text_line(block, reftexts, current) + block.terminator)
    return "".join(out)


@dataclass(frozen=True)
class AssemblyResult:
    """Outcome of assembling one document.

    Either ``text`` holds the rendered output and ``errors`` is empty, or
    ``text`` is None and ``errors`` lists every problem found.
    """

    text: Optional[str]
    errors: tuple[AssemblyError, ...] = field(default_factory=tuple)
    document: Optional[Document] = None

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> str:
        """Return the rendered text, or raise AssemblyFailedError with every collected error."""
        if self.errors or self.text is None:
            raise AssemblyFailedError(self.errors)
        return self.text


class DocumentAssembler:
    """Run the full pipeline for documents sharing a resolver and options.

    Parameters
    ----------
    resolver : ResourceResolver or Mapping, optional
        Source of included resources; defaults to an empty mapping
    options : AssemblerOptions, optional
        Assembly configuration

    Examples
    --------
    >>> assembler = DocumentAssembler({"a": "include(b)", "b": "include(a)"})
    >>> result = assembler.assemble("include(a)")
    >>> result.ok, result.errors[0].identifier
    (False, 'a')

    """

    def __init__(self, resolver: Optional[ResolverLike] = None, options: Optional[AssemblerOptions] = None):
        """Initialize the assembler."""
        self.options = options or AssemblerOptions()
        self.resolver = as_resolver(resolver) if resolver is not None else MappingResolver({})
        self.parser = DocumentParser(
            compact_include_syntax=self.options.compact_include_syntax,
            default_reftext_from_title=self.options.default_reftext_from_title,
        )

    def parse(self, text: str, source: Optional[str] = None) -> Document:
        return self.parser.parse(text, source or ANONYMOUS_SOURCE)

    def resolve_includes(self, doc: Document) -> Document:
        return resolve_includes(doc, self.resolver, self.options, self.parser)

    def validate(self, doc: Document) -> list[AssemblyError]:
        """Run the enabled validations and return every error found."""
        errors: list[AssemblyError] = []
        if self.options.validate_anchors:
            errors.extend(validate_anchors(doc))
        if self.options.validate_references:
            errors.extend(resolve_cross_references(doc))
        return errors

    def render(self, doc: Document) -> str:
        return render(doc, self.options.output_mode, self.options.attributes)

    def assemble(self, text: str, source: Optional[str] = None) -> AssemblyResult:
        """Parse, flatten, validate and render a document.

        Parameters
        ----------
        text : str
            Root document text
        source : str, optional
            Canonical path of the root document in the resolver's namespace;
            relative include targets are resolved against it

        Returns
        -------
        AssemblyResult
            Rendered text, or every error collected

        """
        doc = self.parse(text, source)
        try:
            flattened = self.resolve_includes(doc)
        except AssemblyError as e:
            logger.debug(f"Include resolution failed: {e.message}")
            return AssemblyResult(text=None, errors=(e,), document=doc)

        errors = self.validate(flattened)
        if errors:
            logger.debug(f"Validation found {len(errors)} error(s) in {flattened.source}")
            return AssemblyResult(text=None, errors=tuple(errors), document=flattened)

        return AssemblyResult(text=self.render(flattened), document=flattened)


def assemble_text(
    text: str,
    resolver: Optional[ResolverLike] = None,
    options: Optional[AssemblerOptions] = None,
    source: Optional[str] = None,
) -> str:
    """Assemble a document given as text.

    Parameters
    ----------
    text : str
        Root document text
    resolver : ResourceResolver or Mapping, optional
        Source of included resources
    options : AssemblerOptions, optional
        Assembly configuration
    source : str, optional
        Canonical path of the root document

    Returns
    -------
    str
        Rendered output

    Raises
    ------
    AssemblyFailedError
        If any stage reported errors

    """
    return DocumentAssembler(resolver, options).assemble(text, source).raise_for_errors()


def assemble_file(
    path: Union[str, Path],
    resolver: Optional[ResourceResolver] = None,
    options: Optional[AssemblerOptions] = None,
) -> str:
    """Assemble a document read from the filesystem.

    Includes are resolved relative to the file, and by default may not
    leave the file's directory.

    Parameters
    ----------
    path : str or Path
        Root document file
    resolver : ResourceResolver, optional
        Resolver to use; defaults to a FileSystemResolver rooted at the
        file's directory
    options : AssemblerOptions, optional
        Assembly configuration

    Returns
    -------
    str
        Rendered output

    Raises
    ------
    AssemblyFailedError
        If any stage reported errors
    ResourceError
        If the root file itself cannot be read

    """
    file_path = Path(path).resolve()
    resolver = resolver or FileSystemResolver(file_path.parent)
    source = resolver.normalize(file_path.as_posix(), None)
    text = resolver.read(source)
    return assemble_text(text, resolver, options, source=source)
