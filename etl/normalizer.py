# WORKFLOW: Normalize raw oracle code lines into full-length tariff codes.
# Used by: Extraction pipeline after structured code extraction
# Functions:
# 1. resolve_code_digits() - Pick the code source and rebuild partial codes from the parent
# 2. split_code_digits() - Derive code_10 / code_14 from a digit string
# 3. normalize_candidate() - RawCodeCandidate -> ExtractedCodeCandidate (or None)
# 4. format_hs_code() - Dotted display form
#
# Normalization flow: code_10_reconstructed or code_raw -> digits -> parent prefix -> length rules -> candidate

import logging
import re
from typing import Optional, Tuple

from api.schemas.response import ExtractedCodeCandidate
from api.schemas.validation import RawCodeCandidate
from etl.duty_parser import parse_duty_rate

logger = logging.getLogger(__name__)

NON_DIGITS = re.compile(r"\D")

MIN_CODE_DIGITS = 6
MIN_PARENT_DIGITS = 4


def digits_only(value: Optional[str]) -> str:
    return NON_DIGITS.sub("", value or "")


def resolve_code_digits(raw: RawCodeCandidate) -> Optional[str]:
    """
    Build the digit string of a raw candidate.

    Args:
        raw: Oracle code line

    Returns:
        Digit string of at least 6 digits, or None when the code cannot be rebuilt
    """
    source = raw.code_10_reconstructed or raw.code_raw
    digits = digits_only(source)

    if len(digits) < MIN_CODE_DIGITS and raw.parent_code:
        parent_digits = digits_only(raw.parent_code)
        if len(parent_digits) >= MIN_PARENT_DIGITS:
            digits = parent_digits + digits

    if len(digits) < MIN_CODE_DIGITS:
        return None
    return digits


def split_code_digits(digits: str) -> Tuple[str, Optional[str]]:
    """
    Derive code_10 and code_14 from a digit string.

    Args:
        digits: Digit string (at least 6 digits)

    Returns:
        Tuple of (code_10, code_14 or None)
    """
    if len(digits) >= 14:
        return digits[:10], digits[:14]
    if len(digits) > 10:
        return digits[:10], digits.ljust(14, "0")
    return digits.ljust(10, "0"), None


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def normalize_candidate(raw: RawCodeCandidate, page_number: int = 1) -> Optional[ExtractedCodeCandidate]:
    """
    Normalize one raw code line.

    Args:
        raw: Validated oracle code line
        page_number: Source page of the line

    Returns:
        ExtractedCodeCandidate, or None when the code is too short to rebuild
    """
    digits = resolve_code_digits(raw)
    if digits is None:
        logger.debug(f"Skipping short code: {raw.code_raw!r}")
        return None

    code_10, code_14 = split_code_digits(digits)

    confidence = raw.confidence
    if confidence is not None:
        confidence = min(max(confidence, 0.0), 1.0)

    return ExtractedCodeCandidate(
        code_10=code_10,
        code_14=code_14,
        label_fr=raw.label_fr.strip(),
        unit=_clean_optional(raw.unit),
        droit=parse_duty_rate(raw.droit),
        notes=_clean_optional(raw.notes),
        page_number=max(1, page_number),
        extraction_confidence=confidence,
    )


def format_hs_code(code: str) -> str:
    """Format a code for display, e.g. "0303140000" -> "0303.14.00.00"."""
    digits = digits_only(code)
    if len(digits) >= 10:
        base = f"{digits[:4]}.{digits[4:6]}.{digits[6:8]}.{digits[8:10]}"
        return f"{base}.{digits[10:14]}" if len(digits) >= 14 else base
    if len(digits) >= 6:
        return f"{digits[:4]}.{digits[4:6]}"
    return digits
