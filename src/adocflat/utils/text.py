#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/adocflat/utils/text.py
"""Line-level text utilities shared by the parser and the include selectors.

Functions
---------
split_lines : Split text into (content, terminator) pairs
block_delimiter : Detect delimited-block fences
match_heading : Recognize section titles
expand_attribute_refs : Substitute ``{name}`` attribute references

Examples
--------
Splitting keeps every terminator, so joining the pairs restores the text:

    >>> split_lines("a\\r\\nb")
    [('a', '\\r\\n'), ('b', '')]

"""

from __future__ import annotations

import re
from typing import Mapping, Optional

from adocflat.constants import MIN_DELIMITER_LENGTH, VERBATIM_BLOCK_DELIMITER_CHARS

# Same boundaries as str.splitlines()
LINE_TERMINATOR_PATTERN = re.compile(r"(?:\r\n|[\n\r\v\f\x1c\x1d\x1e\x85\u2028\u2029])\Z")

HEADING_PATTERN = re.compile(r"^(={1,6})[ \t]+(\S.*?)(?:[ \t]+\1)?[ \t]*$")

ATTRIBUTE_REF_PATTERN = re.compile(r"(\\)?\{([\w][\w-]*)\}")


def split_lines(text: str) -> list[tuple[str, str]]:
    """Split text into lines, keeping each line's terminator separately.

    Parameters
    ----------
    text : str
        Text to split

    Returns
    -------
    list[tuple[str, str]]
        ``(content, terminator)`` pairs; the terminator of a final
        unterminated line is ``""``

    """
    pairs: list[tuple[str, str]] = []
    for line in text.splitlines(keepends=True):
        match = LINE_TERMINATOR_PATTERN.search(line)
        if match:
            pairs.append((line[: match.start()], match.group(0)))
        else:
            pairs.append((line, ""))
    return pairs


def block_delimiter(content: str) -> Optional[str]:
    """Return the fence string if the line opens or closes a verbatim block.

    Listing (``----``), literal (``....``), comment (``////``) and
    passthrough (``++++``) fences are recognized.

    Parameters
    ----------
    content : str
        Line content without terminator

    Returns
    -------
    str or None
        The delimiter, or None if the line is not a verbatim block fence

    """
    stripped = content.rstrip()
    if len(stripped) < MIN_DELIMITER_LENGTH:
        return None
    first = stripped[0]
    if first in VERBATIM_BLOCK_DELIMITER_CHARS and all(c == first for c in stripped):
        return stripped
    return None


def match_heading(content: str) -> Optional[tuple[int, str]]:
    """Recognize a section title line.

    Returns
    -------
    tuple[int, str] or None
        ``(level, title)`` where level 0 is the document title (``=``)

    """
    match = HEADING_PATTERN.match(content)
    if not match:
        return None
    return len(match.group(1)) - 1, match.group(2)


def is_line_comment(content: str) -> bool:
    """Whether the line is a ``//`` comment (and not a ``////`` block fence)."""
    return content.startswith("//") and not content.startswith("////")


def expand_attribute_refs(text: str, attributes: Mapping[str, str], unescape: bool = False) -> str:
    """Replace ``{name}`` references with attribute values.

    Undefined references are left untouched. Escaped references
    (``\\{name}``) are never substituted; with ``unescape`` their backslash
    is dropped, as in rendered output.

    Parameters
    ----------
    text : str
        Text containing attribute references
    attributes : Mapping[str, str]
        Defined attributes
    unescape : bool, default False
        Remove the backslash of escaped references

    Returns
    -------
    str
        Text with defined references substituted

    """

    def _replace(match: re.Match[str]) -> str:
        escaped, name = match.group(1), match.group(2)
        if escaped:
            return match.group(0)[1:] if unescape else match.group(0)
        if name in attributes:
            return attributes[name]
        return match.group(0)

    return ATTRIBUTE_REF_PATTERN.sub(_replace, text)
