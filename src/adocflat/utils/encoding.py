#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/adocflat/utils/encoding.py
"""Character encoding detection and handling utilities.

Included resources are read as bytes and decoded here: chardet-based
detection first, then a list of fallback encodings.
"""

from __future__ import annotations

import logging
from typing import Sequence

import chardet

from adocflat.constants import (
    DEFAULT_CHARDET_CONFIDENCE_THRESHOLD,
    DEFAULT_CHARDET_SAMPLE_SIZE,
    DEFAULT_ENCODING_FALLBACKS,
)

logger = logging.getLogger(__name__)


def detect_encoding(
    data: bytes,
    sample_size: int = DEFAULT_CHARDET_SAMPLE_SIZE,
    confidence_threshold: float = DEFAULT_CHARDET_CONFIDENCE_THRESHOLD,
) -> str | None:
    """Detect character encoding of binary data using chardet.

    Parameters
    ----------
    data : bytes
        Binary data to analyze
    sample_size : int, default 8192
        Number of bytes to sample for detection (uses first N bytes)
    confidence_threshold : float, default 0.7
        Minimum confidence level (0.0-1.0) required to trust detection

    Returns
    -------
    str | None
        Detected encoding name, or None if detection fails or confidence
        is below threshold

    """
    sample = data[:sample_size] if len(data) > sample_size else data
    result = chardet.detect(sample)

    if not result or not result.get("encoding"):
        logger.debug("chardet: No encoding detected")
        return None

    encoding = result["encoding"]
    confidence = result.get("confidence") or 0.0
    logger.debug(f"chardet detected encoding: {encoding} (confidence: {confidence:.2f})")

    if confidence >= confidence_threshold:
        return encoding
    logger.debug(f"chardet confidence {confidence:.2f} below threshold {confidence_threshold}")
    return None


def decode_bytes(
    data: bytes,
    fallback_encodings: Sequence[str] | None = None,
    use_chardet: bool = True,
) -> str:
    """Decode binary data as text with automatic encoding detection.

    Attempts, in order:
    1. A UTF-8 byte order mark, if present
    2. chardet-based detection (if enabled)
    3. Fallback encodings in order
    4. UTF-8 with error replacement

    Parameters
    ----------
    data : bytes
        Binary data to decode
    fallback_encodings : sequence of str, optional
        Encodings to try in order; defaults to utf-8, utf-8-sig, latin-1
    use_chardet : bool, default True
        Whether to attempt chardet-based detection first

    Returns
    -------
    str
        Decoded text content

    Examples
    --------
    >>> decode_bytes(b"Hello, world!")
    'Hello, world!'

    """
    if fallback_encodings is None:
        fallback_encodings = DEFAULT_ENCODING_FALLBACKS

    if data.startswith(b"\xef\xbb\xbf"):
        return data.decode("utf-8-sig")

    # Plain UTF-8 is by far the most common case and chardet often reports
    # ascii/Windows code pages for short UTF-8 samples
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        pass

    if use_chardet:
        detected_encoding = detect_encoding(data)
        if detected_encoding:
            try:
                text = data.decode(detected_encoding)
                logger.debug(f"Successfully decoded with chardet-detected encoding: {detected_encoding}")
                return text
            except (UnicodeDecodeError, LookupError) as e:
                logger.debug(f"Failed to decode with chardet-detected encoding {detected_encoding}: {e}")

    for encoding in fallback_encodings:
        try:
            text = data.decode(encoding)
            logger.debug(f"Successfully decoded with encoding: {encoding}")
            return text
        except UnicodeDecodeError as e:
            logger.debug(f"Failed to decode with {encoding}: {e}")
        except LookupError as e:
            logger.debug(f"Unknown encoding {encoding}: {e}")

    logger.warning("All encoding attempts failed, using utf-8 with error replacement")
    return data.decode("utf-8", errors="replace")
