# WORKFLOW: Page count estimation and processing strategy selection.
# Used by: Extraction pipeline for encoded (not pre-rendered) documents
# Functions:
# 1. estimate_page_count() - Guess page count from structural markers or size
# 2. select_strategy() - Choose single / multipass / chunked plan
#
# Strategy flow: Document bytes -> Page estimate -> Plan (units + pass policy)
# Estimation is advisory only; there is no ground truth for encoded documents.

import math
import re
from dataclasses import dataclass, field
from typing import List

from api.schemas.response import ExtractionStrategy

TYPE_PAGE_MARKER = re.compile(rb"/Type\s*/Page\b")
PAGE_MARKER = re.compile(rb"/Page\s")

BYTES_PER_PAGE_ESTIMATE = 50000
MAX_SIZE_ESTIMATE = 100

SINGLE_MAX_PAGES = 3
MULTIPASS_MAX_PAGES = 20
MULTIPASS_PAGES_PER_PASS = 5
MULTIPASS_MAX_PASSES = 4
CHUNK_PAGES = 10


@dataclass(frozen=True)
class PlannedUnit:
    """One OCR call over the whole document, hinted to a page or page range."""
    page_number: int
    first_page: int
    last_page: int


@dataclass(frozen=True)
class ExtractionPlan:
    strategy: ExtractionStrategy
    estimated_pages: int
    units: List[PlannedUnit] = field(default_factory=list)
    passes: int = 1

    @property
    def supplemental_units(self) -> List[PlannedUnit]:
        """Multipass units run only when the first pass looks incomplete."""
        if self.strategy != ExtractionStrategy.MULTIPASS:
            return []
        return self.units[1:]


def estimate_page_count(content: bytes) -> int:
    """
    Estimate the number of pages in an encoded document.

    Args:
        content: Raw document bytes

    Returns:
        Estimated page count (at least 1)
    """
    type_page_markers = len(TYPE_PAGE_MARKER.findall(content))
    if type_page_markers > 0:
        return type_page_markers

    page_markers = len(PAGE_MARKER.findall(content))
    if page_markers > 1:
        return math.ceil(page_markers / 2)

    estimated_from_size = max(1, math.ceil(len(content) / BYTES_PER_PAGE_ESTIMATE))
    return min(estimated_from_size, MAX_SIZE_ESTIMATE)


def select_strategy(estimated_pages: int) -> ExtractionPlan:
    """
    Choose a processing plan from an estimated page count.

    Args:
        estimated_pages: Page count from estimate_page_count()

    Returns:
        ExtractionPlan listing the OCR units to run
    """
    n = max(1, estimated_pages)

    if n <= SINGLE_MAX_PAGES:
        return ExtractionPlan(
            strategy=ExtractionStrategy.SINGLE,
            estimated_pages=n,
            units=[PlannedUnit(page_number=1, first_page=1, last_page=n)],
        )

    if n <= MULTIPASS_MAX_PAGES:
        passes = min(MULTIPASS_MAX_PASSES, math.ceil(n / MULTIPASS_PAGES_PER_PASS))
        units = [PlannedUnit(page_number=1, first_page=1, last_page=n)]
        units.extend(
            PlannedUnit(page_number=p, first_page=1, last_page=n) for p in range(2, passes + 1)
        )
        return ExtractionPlan(
            strategy=ExtractionStrategy.MULTIPASS,
            estimated_pages=n,
            units=units,
            passes=passes,
        )

    chunks = math.ceil(n / CHUNK_PAGES)
    units = []
    for chunk in range(chunks):
        first = chunk * CHUNK_PAGES + 1
        last = min((chunk + 1) * CHUNK_PAGES, n)
        units.append(PlannedUnit(page_number=first, first_page=first, last_page=last))
    return ExtractionPlan(
        strategy=ExtractionStrategy.CHUNKED,
        estimated_pages=n,
        units=units,
        passes=chunks,
    )
