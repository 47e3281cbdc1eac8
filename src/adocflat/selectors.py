#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/adocflat/selectors.py
"""Sub-region selection and adjustment of included content.

Before included text is parsed, the include directive's attributes may
narrow it down and adjust it:

- ``lines=1..3;7;10..-1`` keeps the listed line ranges (``-1`` or an empty
  upper bound means the last line). When given, tag selection is ignored.
- ``tag=name`` / ``tags=a;b;!c;*;**`` keeps the regions between
  ``tag::name[]`` and ``end::name[]`` markers. Marker lines are always
  dropped.
- ``leveloffset=+1`` / ``-1`` / ``2`` shifts section titles.
- ``indent=N`` strips the common indentation and re-indents by N spaces.

All functions work on numbered lines so the selected lines keep their line
numbers in the included resource.

"""

from __future__ import annotations

import logging
import re
from typing import Mapping, Optional

from adocflat.constants import (
    INCLUDE_ATTR_INDENT,
    INCLUDE_ATTR_LEVELOFFSET,
    INCLUDE_ATTR_LINES,
    INCLUDE_ATTR_TAG,
    INCLUDE_ATTR_TAGS,
    MAX_SECTION_LEVEL,
)
from adocflat.exceptions import ValidationError
from adocflat.utils.text import block_delimiter, match_heading

logger = logging.getLogger(__name__)

NumberedLine = tuple[int, str, str]

TAG_MARKER_PATTERN = re.compile(r"\b(tag|end)::([\w.-]+)\[\]")
_LINE_RANGE_PATTERN = re.compile(r"^\s*(-?\d+)\s*(?:\.\.\s*(-?\d*)\s*)?$")


def parse_line_ranges(spec: str) -> list[tuple[int, Optional[int]]]:
    """Parse a ``lines`` attribute value.

    Parameters
    ----------
    spec : str
        Ranges separated by ``;`` or ``,`` (e.g. ``"1..3;7;10..-1"``)

    Returns
    -------
    list[tuple[int, int or None]]
        ``(start, end)`` pairs; ``end`` is None for an open range

    Raises
    ------
    ValidationError
        If a range cannot be parsed

    """
    ranges: list[tuple[int, Optional[int]]] = []
    for part in re.split(r"[;,]", spec):
        if not part.strip():
            continue
        match = _LINE_RANGE_PATTERN.match(part)
        if not match:
            raise ValidationError(
                f"Invalid line range: {part.strip()!r}", parameter_name=INCLUDE_ATTR_LINES, parameter_value=spec
            )
        start = int(match.group(1))
        if match.group(2) is None:
            end: Optional[int] = start
        elif match.group(2) in ("", "-1"):
            end = None
        else:
            end = int(match.group(2))
        ranges.append((start, end))
    return ranges


def select_lines(lines: list[NumberedLine], spec: str) -> list[NumberedLine]:
    """Keep the lines whose number falls in any of the given ranges, in file order."""
    ranges = parse_line_ranges(spec)
    selected = []
    for line in lines:
        number = line[0]
        if any(number >= start and (end is None or number <= end) for start, end in ranges):
            selected.append(line)
    return selected


def parse_tag_selection(spec: str) -> dict[str, bool]:
    """Parse a ``tag``/``tags`` attribute value into tag name -> included."""
    selection: dict[str, bool] = {}
    for part in re.split(r"[;,]", spec):
        name = part.strip()
        if not name:
            continue
        if name.startswith("!"):
            selection[name[1:]] = False
        else:
            selection[name] = True
    return selection


def select_tags(lines: list[NumberedLine], spec: str, source: str = "") -> list[NumberedLine]:
    """Keep the lines inside the selected tagged regions.

    The innermost enclosing tag with an explicit selection decides whether a
    line is kept. ``*`` selects every tagged region, ``**`` every line, and a
    list made only of negations implies ``**``, so ``!*`` keeps only untagged lines.

    Parameters
    ----------
    lines : list of (int, str, str)
        Numbered lines of the included resource
    spec : str
        Tag selection (e.g. ``"setup;!debug"``)
    source : str, optional
        Resource name used in log messages

    Returns
    -------
    list of (int, str, str)
        Selected lines with tag marker lines removed

    """
    selection = parse_tag_selection(spec)
    wildcard = selection.pop("*", None)
    all_lines = selection.pop("**", None)
    if all_lines is None:
        has_positive = any(selection.values()) or wildcard is True
        all_lines = not has_positive and (bool(selection) or wildcard is False)
    untagged_default = bool(all_lines)

    active: list[str] = []
    seen: set[str] = set()
    selected: list[NumberedLine] = []

    for line in lines:
        number, content, _terminator = line
        marker = TAG_MARKER_PATTERN.search(content)
        if marker:
            kind, name = marker.group(1), marker.group(2)
            if kind == "tag":
                active.append(name)
                seen.add(name)
            elif name in active:
                # close the tag and anything left open inside it
                del active[len(active) - 1 - active[::-1].index(name) :]
            else:
                logger.warning(f"{source}:{number}: unexpected end tag '{name}'")
            continue

        if not active:
            keep = untagged_default
        else:
            keep = None
            for name in reversed(active):
                if name in selection:
                    keep = selection[name]
                    break
            if keep is None:
                keep = wildcard if wildcard is not None else untagged_default
        if keep:
            selected.append(line)

    for name in active:
        logger.warning(f"{source}: tag '{name}' was not closed")
    for name, included in selection.items():
        if included and name not in seen:
            logger.warning(f"{source}: tag '{name}' not found")

    return selected


def parse_leveloffset(value: str) -> tuple[int, bool]:
    """Parse a ``leveloffset`` value.

    Returns
    -------
    tuple[int, bool]
        ``(offset, relative)``; ``relative`` is True for signed values

    """
    text = value.strip()
    try:
        offset = int(text)
    except ValueError as e:
        raise ValidationError(
            f"Invalid leveloffset: {value!r}",
            parameter_name=INCLUDE_ATTR_LEVELOFFSET,
            parameter_value=value,
            original_error=e,
        ) from e
    return offset, text[:1] in ("+", "-")


def shift_headings(lines: list[NumberedLine], offset: int) -> list[NumberedLine]:
    """Shift section titles by ``offset`` levels, clamped to the valid range.

    Lines inside verbatim blocks are left unchanged.
    """
    if offset == 0:
        return lines
    shifted: list[NumberedLine] = []
    open_delimiter: Optional[str] = None
    for number, content, terminator in lines:
        delimiter = block_delimiter(content)
        if delimiter is not None:
            if open_delimiter is None:
                open_delimiter = delimiter
            elif delimiter == open_delimiter:
                open_delimiter = None
        elif open_delimiter is None:
            heading = match_heading(content)
            if heading is not None:
                level, title = heading
                new_level = min(max(level + offset, 0), MAX_SECTION_LEVEL - 1)
                content = f"{'=' * (new_level + 1)} {title}"
        shifted.append((number, content, terminator))
    return shifted


def reindent(lines: list[NumberedLine], indent: int) -> list[NumberedLine]:
    """Strip the common leading indentation of non-blank lines and indent by ``indent`` spaces."""
    widths = [len(content) - len(content.lstrip(" \t")) for _, content, _ in lines if content.strip()]
    common = min(widths) if widths else 0
    prefix = " " * indent
    result: list[NumberedLine] = []
    for number, content, terminator in lines:
        if content.strip():
            content = prefix + content[common:]
        result.append((number, content, terminator))
    return result


def apply_include_attributes(
    lines: list[NumberedLine],
    attributes: Mapping[str, str],
    inherited_leveloffset: int = 0,
    source: str = "",
) -> tuple[list[NumberedLine], int]:
    """Apply every selector and adjustment named in an include's attributes.

    Parameters
    ----------
    lines : list of (int, str, str)
        Numbered lines of the included resource
    attributes : Mapping[str, str]
        The include directive's attributes
    inherited_leveloffset : int, default 0
        Level offset already in effect for the including document
    source : str, optional
        Resource name used in log messages

    Returns
    -------
    tuple[list of (int, str, str), int]
        The adjusted lines and the level offset in effect for them, which
        nested includes inherit

    Raises
    ------
    ValidationError
        If an attribute value is malformed

    """
    if INCLUDE_ATTR_LINES in attributes:
        lines = select_lines(lines, attributes[INCLUDE_ATTR_LINES])
    elif INCLUDE_ATTR_TAGS in attributes or INCLUDE_ATTR_TAG in attributes:
        spec = attributes.get(INCLUDE_ATTR_TAGS, attributes.get(INCLUDE_ATTR_TAG, ""))
        lines = select_tags(lines, spec, source)

    leveloffset = inherited_leveloffset
    if INCLUDE_ATTR_LEVELOFFSET in attributes:
        offset, relative = parse_leveloffset(attributes[INCLUDE_ATTR_LEVELOFFSET])
        leveloffset = inherited_leveloffset + offset if relative else offset
    lines = shift_headings(lines, leveloffset)

    if INCLUDE_ATTR_INDENT in attributes:
        try:
            indent = int(attributes[INCLUDE_ATTR_INDENT])
        except ValueError as e:
            raise ValidationError(
                f"Invalid indent: {attributes[INCLUDE_ATTR_INDENT]!r}",
                parameter_name=INCLUDE_ATTR_INDENT,
                parameter_value=attributes[INCLUDE_ATTR_INDENT],
                original_error=e,
            ) from e
        if indent >= 0:
            lines = reindent(lines, indent)

    return lines, leveloffset
