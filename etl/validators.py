# WORKFLOW: Structural validation of normalized tariff code candidates.
# Used by: Extraction pipeline between normalization and deduplication
# Functions:
# 1. validate_candidate() - Errors (exclude) and warnings (keep) for one candidate
# 2. validate_candidates() - Filter a batch, attaching warnings to survivors
#
# Validation flow: Candidate -> Code checks -> Label checks -> Unit/rate checks -> ValidationResult
# Only error-level findings remove a candidate before deduplication.

import logging
import re
from typing import List, Sequence, Tuple

from api.schemas.response import ExtractedCodeCandidate, ValidationResult

logger = logging.getLogger(__name__)

CODE_10_PATTERN = re.compile(r'^\d{10}$')
CODE_14_PATTERN = re.compile(r'^\d{14}$')
SUBHEADING_PATTERN = re.compile(r'^\d{6}$')
NON_LABEL_PATTERN = re.compile(r'^[\d\W_]+$')

MIN_LABEL_LENGTH = 3
MAX_LABEL_LENGTH = 500
MIN_DUTY_RATE = 0.0
MAX_DUTY_RATE = 200.0

STANDARD_UNITS = {
    "u", "kg", "l", "m", "m2", "m3", "p/st", "tonne", "ct", "g",
    "pair", "paire", "1000u", "1000 u", "t", "kw", "kwh",
}


def validate_candidate(candidate: ExtractedCodeCandidate) -> ValidationResult:
    """
    Validate one normalized candidate.

    Args:
        candidate: Candidate to validate

    Returns:
        ValidationResult with errors and warnings
    """
    errors = []
    warnings = []

    code_10 = candidate.code_10 or ""
    if not CODE_10_PATTERN.match(code_10):
        errors.append(f"Invalid code_10: {code_10!r}")

    chapter = code_10[:2]
    if not chapter.isdigit() or not 1 <= int(chapter) <= 99:
        errors.append(f"Invalid chapter: {chapter!r}")

    subheading = code_10[:6]
    if not SUBHEADING_PATTERN.match(subheading):
        errors.append(f"Invalid subheading: {subheading!r}")

    if candidate.code_14 is not None:
        if not CODE_14_PATTERN.match(candidate.code_14):
            errors.append(f"Invalid code_14: {candidate.code_14!r}")
        elif not candidate.code_14.startswith(code_10):
            warnings.append("code_14 does not start with code_10")

    label = candidate.label_fr or ""
    if len(label) < MIN_LABEL_LENGTH:
        errors.append("Label too short or missing")
    elif NON_LABEL_PATTERN.match(label):
        errors.append("Label contains only digits or punctuation")

    if len(label) > MAX_LABEL_LENGTH:
        warnings.append(f"Very long label ({len(label)} chars)")

    if candidate.unit and candidate.unit.lower() not in STANDARD_UNITS:
        warnings.append(f"Non-standard unit: {candidate.unit}")

    if candidate.droit is not None and not MIN_DUTY_RATE <= candidate.droit <= MAX_DUTY_RATE:
        warnings.append(f"Unusual duty rate: {candidate.droit}%")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def validate_candidates(
    candidates: Sequence[ExtractedCodeCandidate],
) -> Tuple[List[ExtractedCodeCandidate], int]:
    """
    Keep valid candidates, attaching their warnings.

    Args:
        candidates: Normalized candidates

    Returns:
        Tuple of (valid candidates with warnings, number of rejected candidates)
    """
    valid = []
    rejected = 0

    for candidate in candidates:
        result = validate_candidate(candidate)
        if not result.is_valid:
            rejected += 1
            logger.debug(f"Invalid code {candidate.code_10}: {', '.join(result.errors)}")
            continue
        if result.warnings:
            candidate = candidate.model_copy(update={"warnings": list(result.warnings)})
        valid.append(candidate)

    if rejected:
        logger.info(f"Validation rejected {rejected} of {len(candidates)} candidates")

    return valid, rejected
