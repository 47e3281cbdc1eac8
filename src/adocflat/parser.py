#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/adocflat/parser.py
"""Line-oriented parser producing the block model.

The parser recognizes include directives, block and inline anchors,
attribute entries and cross-references. Parsing is permissive and never
fails: a line that only resembles a directive is kept as literal text.

Recognized Syntax
-----------------
- Includes: ``include::target[attrs]`` and, when enabled, ``include(target)``
- Block anchors: ``[[id]]``, ``[[id,reftext]]``, ``[#id]``, ``[#id.role]``
- Inline anchors: ``[[id]]`` and ``anchor:id[reftext]`` inside prose
- Cross-references: ``<<id>>``, ``<<id,text>>``, ``xref:id[text]`` and
  inter-document forms such as ``xref:other.adoc#id[]``
- Attribute entries: ``:name: value`` and ``:name!:`` / ``:!name:``

Lines inside listing, literal, comment and passthrough blocks, and ``//``
comment lines, are verbatim: only include directives are recognized there.

"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Iterable, Optional

from adocflat.constants import ANONYMOUS_SOURCE, DEFAULT_COMPACT_INCLUDE_SYNTAX, DEFAULT_REFTEXT_FROM_TITLE
from adocflat.document import (
    AnchorBlock,
    AttributeEntry,
    Block,
    CrossReference,
    Document,
    IncludeBlock,
    InlineAnchor,
    SourcePosition,
    TextBlock,
)
from adocflat.utils.text import block_delimiter, is_line_comment, match_heading, split_lines

logger = logging.getLogger(__name__)

_ID = r"(?:[^\W\d]|:)[\w:.-]*"
_SHORTHAND_ID = r"(?:[^\W\d]|:)[\w:-]*"
_INCLUDE_ATTR_PATTERN = re.compile(r"""([A-Za-z][\w-]*)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^,]*))""")

NumberedLine = tuple[int, str, str]


def parse_include_attributes(attr_text: str) -> dict[str, str]:
    """Parse the attribute list of an include directive.

    Named attributes may be quoted to allow commas in their value
    (``lines="1..3,5"``). Positional attributes are ignored.

    Parameters
    ----------
    attr_text : str
        Text between the brackets of ``include::target[...]``

    Returns
    -------
    dict[str, str]
        Attribute names mapped to their unquoted values

    """
    attributes: dict[str, str] = {}
    for match in _INCLUDE_ATTR_PATTERN.finditer(attr_text):
        name = match.group(1).lower()
        if match.group(2) is not None:
            value = match.group(2)
        elif match.group(3) is not None:
            value = match.group(3)
        else:
            value = (match.group(4) or "").strip()
        attributes[name] = value
    return attributes


class DocumentParser:
    """Parse raw text into a Document.

    Parameters
    ----------
    compact_include_syntax : bool, default True
        Also recognize ``include(target)`` lines
    default_reftext_from_title : bool, default True
        Give a block anchor immediately followed by a section title that
        title as its reference text

    Examples
    --------
    >>> doc = DocumentParser().parse("[[intro]]\\n== Introduction\\nSee <<intro>>.")
    >>> [a.reftext for a in doc.anchors()]
    ['Introduction']

    """

    def __init__(
        self,
        compact_include_syntax: bool = DEFAULT_COMPACT_INCLUDE_SYNTAX,
        default_reftext_from_title: bool = DEFAULT_REFTEXT_FROM_TITLE,
    ):
        """Initialize the parser and its patterns."""
        self.compact_include_syntax = compact_include_syntax
        self.default_reftext_from_title = default_reftext_from_title

        self.include_pattern = re.compile(r"^include::([^\[\s][^\[]*)\[(.*)\][ \t]*$")
        self.compact_include_pattern = re.compile(r"^include\(([^()\s][^()]*?)\)[ \t]*$")
        self.block_anchor_pattern = re.compile(rf"^\[\[({_ID})(?:,\s*([^\]]*?))?\]\][ \t]*$")
        self.block_id_pattern = re.compile(rf"^\[#({_SHORTHAND_ID})(?:[.%][^\],]*)?(?:,[^\]]*)?\][ \t]*$")
        self.attribute_pattern = re.compile(r"^:(!)?([\w][\w-]*)(!)?:(?:[ \t]+(.*?))?[ \t]*$")

        self.inline_anchor_pattern = re.compile(rf"\[\[({_ID})(?:,\s*([^\]]*?))?\]\]")
        self.anchor_macro_pattern = re.compile(rf"anchor:({_ID})\[([^\]]*)\]")
        self.xref_pattern = re.compile(r"<<([^\s,<>]+?)(?:\s*,\s*([^<>]*?))?>>")
        self.xref_macro_pattern = re.compile(r"xref:([^\s\[]+)\[([^\]]*)\]")

    def parse(self, text: str, source: str = ANONYMOUS_SOURCE) -> Document:
        """Parse raw text into a Document.

        Parameters
        ----------
        text : str
            Raw document text
        source : str, default "<input>"
            Name recorded in every block position

        Returns
        -------
        Document
            The parsed document

        """
        numbered = [(index + 1, content, terminator) for index, (content, terminator) in enumerate(split_lines(text))]
        return self.parse_lines(numbered, source)

    def parse_lines(self, lines: Iterable[NumberedLine], source: str = ANONYMOUS_SOURCE) -> Document:
        """Parse pre-split, numbered lines into a Document.

        Line numbers are taken as given so that a sub-region selected from a
        larger resource keeps the resource's own numbering.

        Parameters
        ----------
        lines : iterable of (int, str, str)
            ``(line_number, content, terminator)`` triples
        source : str
            Name recorded in every block position

        Returns
        -------
        Document
            The parsed document

        """
        blocks: list[Block] = []
        open_delimiter: Optional[str] = None

        for line_num, content, terminator in lines:
            position = SourcePosition(source, line_num)

            include = self._match_include(content, terminator, position)
            if include is not None:
                blocks.append(include)
                continue

            delimiter = block_delimiter(content)
            if delimiter is not None:
                if open_delimiter is None:
                    open_delimiter = delimiter
                elif delimiter == open_delimiter:
                    open_delimiter = None
                blocks.append(TextBlock(content, terminator, position, verbatim=True))
                continue

            if open_delimiter is not None or is_line_comment(content):
                blocks.append(TextBlock(content, terminator, position, verbatim=True))
                continue

            blocks.append(self._parse_line(content, terminator, position))

        if open_delimiter is not None:
            logger.debug(f"{source}: unterminated delimited block '{open_delimiter}'")

        if self.default_reftext_from_title:
            blocks = self._assign_title_reftexts(blocks)

        return Document(blocks=tuple(blocks), source=source)

    def _match_include(self, content: str, terminator: str, position: SourcePosition) -> Optional[IncludeBlock]:
        match = self.include_pattern.match(content)
        if match:
            return IncludeBlock(
                target=match.group(1).strip(),
                attributes=parse_include_attributes(match.group(2)),
                raw=content,
                terminator=terminator,
                position=position,
            )
        if self.compact_include_syntax:
            match = self.compact_include_pattern.match(content)
            if match:
                return IncludeBlock(target=match.group(1).strip(), raw=content, terminator=terminator, position=position)
        return None

    def _parse_line(self, content: str, terminator: str, position: SourcePosition) -> Block:
        """Classify a non-verbatim line that is not an include."""
        match = self.block_anchor_pattern.match(content)
        if match:
            reftext = match.group(2).strip() if match.group(2) else None
            return AnchorBlock(match.group(1), reftext or None, content, terminator, position)

        match = self.block_id_pattern.match(content)
        if match:
            return AnchorBlock(match.group(1), None, content, terminator, position)

        match = self.attribute_pattern.match(content)
        if match:
            unset = match.group(1) is not None or match.group(3) is not None
            value = None if unset else (match.group(4) or "")
            return AttributeEntry(match.group(2), value, content, terminator, position)

        return TextBlock(
            content,
            terminator,
            position,
            xrefs=self._scan_xrefs(content, position),
            anchors=self._scan_inline_anchors(content),
        )

    def _scan_inline_anchors(self, content: str) -> tuple[InlineAnchor, ...]:
        anchors: list[InlineAnchor] = []
        for match in self.inline_anchor_pattern.finditer(content):
            reftext = match.group(2).strip() if match.group(2) else None
            anchors.append(InlineAnchor(match.group(1), reftext or None, match.group(0), match.span()))
        for match in self.anchor_macro_pattern.finditer(content):
            reftext = match.group(2).strip() or None
            anchors.append(InlineAnchor(match.group(1), reftext, match.group(0), match.span()))
        anchors.sort(key=lambda anchor: anchor.span[0])
        return tuple(anchors)

    def _scan_xrefs(self, content: str, position: SourcePosition) -> tuple[CrossReference, ...]:
        xrefs: list[CrossReference] = []
        for match in self.xref_pattern.finditer(content):
            text = match.group(2).strip() if match.group(2) else None
            xrefs.append(self._make_xref(match.group(1), text or None, match, position))
        for match in self.xref_macro_pattern.finditer(content):
            text = match.group(2).strip() or None
            xrefs.append(self._make_xref(match.group(1), text, match, position))
        xrefs.sort(key=lambda xref: xref.span[0])
        return tuple(xrefs)

    @staticmethod
    def _make_xref(raw_target: str, text: Optional[str], match: re.Match[str], position: SourcePosition) -> CrossReference:
        """Split ``doc.adoc#id`` style targets into document and fragment."""
        document: Optional[str] = None
        target = raw_target
        if "#" in raw_target:
            document, target = raw_target.split("#", 1)
        elif raw_target.endswith(".adoc"):
            document, target = raw_target, ""
        return CrossReference(
            target=target,
            text=text,
            markup=match.group(0),
            position=position,
            span=match.span(),
            document=document or None,
        )

    @staticmethod
    def _assign_title_reftexts(blocks: list[Block]) -> list[Block]:
        """Give block anchors without reftext the title of the section they precede."""
        result = list(blocks)
        for index, block in enumerate(result):
            if not isinstance(block, AnchorBlock) or block.reftext is not None:
                continue
            following = result[index + 1] if index + 1 < len(result) else None
            if isinstance(following, TextBlock) and not following.verbatim:
                heading = match_heading(following.content)
                if heading is not None:
                    result[index] = replace(block, reftext=heading[1])
        return result


def parse(text: str, source: str = ANONYMOUS_SOURCE) -> Document:
    """Parse text with default settings."""
    return DocumentParser().parse(text, source)
