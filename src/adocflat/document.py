#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/adocflat/document.py
"""Block model for documents processed by the assembler.

A document is an ordered, immutable sequence of line-level blocks. Each
block records where it came from so that errors raised at any later stage
can point back at the resource and line that produced it.

Block Kinds
-----------
- TextBlock: one literal line, with the cross-references and inline anchors
  found in it
- IncludeBlock: an include directive waiting to be spliced
- AnchorBlock: a block anchor such as ``[[id]]`` or ``[#id]``
- AttributeEntry: a document attribute line such as ``:name: value``

After include resolution a document contains no IncludeBlock; such a
document is called flattened.

"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from adocflat.constants import ANONYMOUS_SOURCE, INCLUDE_ATTR_OPTS, INCLUDE_OPT_OPTIONAL


@dataclass(frozen=True)
class SourcePosition:
    """Logical position of a block.

    Parameters
    ----------
    source : str
        Resource path the block was read from, or ``<input>`` for an
        anonymous root document
    line : int
        1-based line number within that resource

    """

    source: str = ANONYMOUS_SOURCE
    line: int = 1

    def __str__(self) -> str:
        return f"{self.source}:{self.line}"


@dataclass(frozen=True)
class CrossReference:
    """A reference to an anchor identifier.

    Parameters
    ----------
    target : str
        Anchor identifier being referenced
    text : str or None
        Explicit display text, if the reference supplied one
    markup : str
        Exact source text of the reference (e.g. ``<<intro,Intro>>``)
    position : SourcePosition
        Where the reference occurs
    span : tuple of int
        Start and end offsets of the markup within the line content
    document : str or None
        Path of another document for inter-document references
        (``xref:other.adoc#id[]``); such references are not checked
        against the local anchor set

    """

    target: str
    text: Optional[str]
    markup: str
    position: SourcePosition
    span: tuple[int, int] = (0, 0)
    document: Optional[str] = None

    @property
    def is_external(self) -> bool:
        """Whether the reference points into a different document."""
        return bool(self.document)


@dataclass(frozen=True)
class InlineAnchor:
    """An anchor declared inside a line of prose (``[[id]]`` or ``anchor:id[]``)."""

    identifier: str
    reftext: Optional[str]
    markup: str
    span: tuple[int, int] = (0, 0)


@dataclass(frozen=True)
class TextBlock:
    """A single literal line.

    Parameters
    ----------
    content : str
        Line content without its terminator
    terminator : str
        The line terminator as it appeared in the source (``"\\n"``,
        ``"\\r\\n"``, ...) or ``""`` for a final unterminated line
    position : SourcePosition
        Origin of the line
    xrefs : tuple of CrossReference
        Cross-references found in the line
    anchors : tuple of InlineAnchor
        Inline anchors found in the line
    verbatim : bool
        True for lines inside listing, literal, comment or passthrough
        blocks and for ``//`` comment lines; such lines are never scanned
        or substituted

    """

    content: str
    terminator: str = "\n"
    position: SourcePosition = field(default_factory=SourcePosition)
    xrefs: tuple[CrossReference, ...] = ()
    anchors: tuple[InlineAnchor, ...] = ()
    verbatim: bool = False


@dataclass(frozen=True)
class IncludeBlock:
    """An include directive.

    Parameters
    ----------
    target : str
        Target path exactly as written (attribute references unexpanded)
    attributes : dict
        Parsed attribute list (``lines``, ``tags``, ``leveloffset``, ``opts``...)
    raw : str
        The directive line as written, without terminator
    terminator : str
        Line terminator of the directive line
    position : SourcePosition
        Where the directive occurs

    """

    target: str
    attributes: dict[str, str] = field(default_factory=dict)
    raw: str = ""
    terminator: str = "\n"
    position: SourcePosition = field(default_factory=SourcePosition)

    @property
    def is_optional(self) -> bool:
        """Whether a missing target should be skipped instead of failing."""
        opts = self.attributes.get(INCLUDE_ATTR_OPTS, "")
        return INCLUDE_OPT_OPTIONAL in {opt.strip() for opt in opts.split(",")}


@dataclass(frozen=True)
class AnchorBlock:
    """A block anchor on a line of its own.

    Parameters
    ----------
    identifier : str
        The anchor identifier
    reftext : str or None
        Default display text for references to this anchor
    raw : str
        The anchor line as written
    terminator : str
        Line terminator of the anchor line
    position : SourcePosition
        Where the anchor is declared

    """

    identifier: str
    reftext: Optional[str] = None
    raw: str = ""
    terminator: str = "\n"
    position: SourcePosition = field(default_factory=SourcePosition)


@dataclass(frozen=True)
class AttributeEntry:
    """A document attribute entry (``:name: value`` or ``:name!:``)."""

    name: str
    value: Optional[str]
    raw: str = ""
    terminator: str = "\n"
    position: SourcePosition = field(default_factory=SourcePosition)

    @property
    def is_unset(self) -> bool:
        return self.value is None


Block = Union[TextBlock, IncludeBlock, AnchorBlock, AttributeEntry]


@dataclass(frozen=True)
class AnchorDefinition:
    """An anchor collected from a document, block-level or inline."""

    identifier: str
    reftext: Optional[str]
    position: SourcePosition


@dataclass(frozen=True)
class Document:
    """Ordered, immutable sequence of blocks.

    Parameters
    ----------
    blocks : tuple of Block
        Blocks in document order
    source : str
        Name of the resource the document was parsed from

    """

    blocks: tuple[Block, ...] = ()
    source: str = ANONYMOUS_SOURCE

    def __iter__(self) -> Iterator[Block]:
        return iter(self.blocks)

    def __len__(self) -> int:
        return len(self.blocks)

    @property
    def is_flattened(self) -> bool:
        """True when no include directives remain."""
        return not any(isinstance(block, IncludeBlock) for block in self.blocks)

    def includes(self) -> list[IncludeBlock]:
        return [block for block in self.blocks if isinstance(block, IncludeBlock)]

    def anchors(self) -> list[AnchorDefinition]:
        """Collect every anchor in document order, block anchors and inline anchors alike.

        Returns
        -------
        list[AnchorDefinition]
            Anchors in the order they appear

        """
        found: list[AnchorDefinition] = []
        for block in self.blocks:
            if isinstance(block, AnchorBlock):
                found.append(AnchorDefinition(block.identifier, block.reftext, block.position))
            elif isinstance(block, TextBlock):
                for anchor in block.anchors:
                    found.append(AnchorDefinition(anchor.identifier, anchor.reftext, block.position))
        return found

    def cross_references(self) -> list[CrossReference]:
        """Collect every cross-reference in document order."""
        return [xref for block in self.blocks if isinstance(block, TextBlock) for xref in block.xrefs]
