# WORKFLOW: Heuristic quality metrics for an extraction run.
# Used by: Extraction pipeline when building the aggregate result
# Functions:
# 1. assess_quality() - codes_per_page, coverage_percent and estimated_accuracy
#
# The accuracy figure is a confidence signal for downstream consumers, not a
# calibrated measure. Page-image runs start from a higher base than whole-document runs.

from dataclasses import dataclass
from enum import Enum

from api.schemas.response import ExtractionQuality


class ExtractionSource(str, Enum):
    ENCODED_DOCUMENT = "encoded_document"
    PAGE_IMAGES = "page_images"


@dataclass(frozen=True)
class AccuracyProfile:
    base: float
    all_pages_bonus: float
    codes_found_bonus: float
    dense_pages_bonus: float
    no_failures_bonus: float
    cap: float


ACCURACY_PROFILES = {
    ExtractionSource.ENCODED_DOCUMENT: AccuracyProfile(0.70, 0.10, 0.10, 0.05, 0.05, 0.95),
    ExtractionSource.PAGE_IMAGES: AccuracyProfile(0.75, 0.10, 0.08, 0.05, 0.02, 0.98),
}

DENSE_PAGE_THRESHOLD = 5


def assess_quality(
    source: ExtractionSource,
    pages_total: int,
    pages_successful: int,
    unique_codes: int,
) -> ExtractionQuality:
    """
    Compute quality metrics for a run.

    Args:
        source: Whether pages came from an encoded document or pre-rendered images
        pages_total: Units attempted
        pages_successful: Units with OCR text
        unique_codes: Codes left after deduplication

    Returns:
        ExtractionQuality (accuracy rounded to 2 decimals, codes/page to 1, coverage to int)
    """
    if pages_total <= 0:
        return ExtractionQuality()

    pages_failed = pages_total - pages_successful
    codes_per_page = unique_codes / pages_successful if pages_successful > 0 else 0.0
    coverage_percent = pages_successful / pages_total * 100

    profile = ACCURACY_PROFILES[source]
    accuracy = profile.base
    if pages_successful == pages_total:
        accuracy += profile.all_pages_bonus
    if unique_codes > 0:
        accuracy += profile.codes_found_bonus
    if codes_per_page > DENSE_PAGE_THRESHOLD:
        accuracy += profile.dense_pages_bonus
    if pages_failed == 0:
        accuracy += profile.no_failures_bonus
    accuracy = min(accuracy, profile.cap)

    return ExtractionQuality(
        estimated_accuracy=round(accuracy, 2),
        codes_per_page=round(codes_per_page, 1),
        coverage_percent=int(round(coverage_percent)),
    )
