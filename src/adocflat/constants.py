#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Constants and default values for the adocflat library.

This module centralizes hardcoded values and default configuration constants
used across the assembler, the resource resolvers and the CLI.

Constants are organized by category:
1. Type Definitions - Literal types and type aliases
2. Assembly Behavior - Include resolution and validation defaults
3. Directive Syntax - Markers recognized by the parser
4. Resource Resolution - Filesystem and network defaults
5. CLI - Configuration discovery and exit codes
"""

from __future__ import annotations

from typing import Literal

# =============================================================================
# Type Definitions
# =============================================================================

OutputMode = Literal["text", "asciidoc"]
OUTPUT_MODES: tuple[str, ...] = ("text", "asciidoc")

# =============================================================================
# Assembly Behavior
# =============================================================================

DEFAULT_OUTPUT_MODE: OutputMode = "text"
DEFAULT_MAX_INCLUDE_DEPTH = 64
DEFAULT_VALIDATE_ANCHORS = True
DEFAULT_VALIDATE_REFERENCES = True
DEFAULT_COMPACT_INCLUDE_SYNTAX = True
DEFAULT_REFTEXT_FROM_TITLE = True

# Display name used for a root document that was not loaded from a named resource
ANONYMOUS_SOURCE = "<input>"

# Fallback display text when a cross-reference has neither explicit text nor a reftext
UNRESOLVED_XREF_TEXT_TEMPLATE = "[{id}]"

# =============================================================================
# Directive Syntax
# =============================================================================

# Delimiters of blocks whose content is verbatim (no anchor/xref scanning):
# listing, literal, comment and passthrough blocks
VERBATIM_BLOCK_DELIMITER_CHARS = ("-", ".", "/", "+")
MIN_DELIMITER_LENGTH = 4

# Include attribute names with special meaning
INCLUDE_ATTR_LINES = "lines"
INCLUDE_ATTR_TAG = "tag"
INCLUDE_ATTR_TAGS = "tags"
INCLUDE_ATTR_LEVELOFFSET = "leveloffset"
INCLUDE_ATTR_INDENT = "indent"
INCLUDE_ATTR_OPTS = "opts"
INCLUDE_OPT_OPTIONAL = "optional"

MAX_SECTION_LEVEL = 6

# =============================================================================
# Resource Resolution
# =============================================================================

DEFAULT_ENCODING_FALLBACKS: tuple[str, ...] = ("utf-8", "utf-8-sig", "latin-1")
DEFAULT_CHARDET_SAMPLE_SIZE = 8192
DEFAULT_CHARDET_CONFIDENCE_THRESHOLD = 0.7

DEFAULT_HTTP_TIMEOUT = 10.0
DEFAULT_HTTP_MAX_SIZE_BYTES = 5 * 1024 * 1024
DEFAULT_HTTP_REQUIRE_HTTPS = True
DEFAULT_USER_AGENT = "adocflat/0.1 (+include resolver)"

DISABLE_NETWORK_ENV_VAR = "ADOCFLAT_DISABLE_NETWORK"

# =============================================================================
# CLI
# =============================================================================

CONFIG_ENV_VAR = "ADOCFLAT_CONFIG"
CONFIG_FILENAMES: tuple[str, ...] = (".adocflat.toml", ".adocflat.yaml", ".adocflat.yml", ".adocflat.json")
PYPROJECT_TOOL_SECTION = "adocflat"
DEFAULT_OUTPUT_EXTENSION = ".txt"

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_DEPENDENCY_ERROR = 2
EXIT_VALIDATION_ERROR = 3
EXIT_FILE_ERROR = 4
EXIT_ASSEMBLY_ERROR = 6
