# WORKFLOW: Aggregate per-page OCR text into one document text.
# Used by: Extraction pipeline between OCR and chunking
# Functions:
# 1. aggregate_pages() - Join successful pages in page order with delimiters
# 2. AggregatedText.page_for_offset() - Map a text offset back to its page
#
# Aggregation flow: Page results -> Sort -> "--- Page N ---" blocks -> Full text + coverage

import bisect
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from api.schemas.response import PageExtractionResult

PAGE_DELIMITER = "--- Page {page_number} ---\n"
PAGE_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class AggregatedText:
    text: str
    pages_total: int
    pages_successful: int
    # (offset of delimiter, page number), ascending by offset
    page_offsets: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def pages_failed(self) -> int:
        return self.pages_total - self.pages_successful

    @property
    def coverage_percent(self) -> float:
        if self.pages_total == 0:
            return 0.0
        return self.pages_successful / self.pages_total * 100

    def page_for_offset(self, offset: int) -> int:
        """Return the page whose block contains ``offset`` (first page when before any block)."""
        if not self.page_offsets:
            return 1
        starts = [start for start, _ in self.page_offsets]
        idx = bisect.bisect_right(starts, offset) - 1
        return self.page_offsets[max(idx, 0)][1]


def aggregate_pages(page_results: Sequence[PageExtractionResult]) -> AggregatedText:
    """
    Join successful page texts in page order.

    Args:
        page_results: Results of every attempted unit, in any order

    Returns:
        AggregatedText with full text, counts and page offsets
    """
    successful = sorted((p for p in page_results if p.success), key=lambda p: p.page_number)

    blocks = []
    page_offsets = []
    offset = 0
    for page in successful:
        if blocks:
            offset += len(PAGE_SEPARATOR)
        block = PAGE_DELIMITER.format(page_number=page.page_number) + page.text
        page_offsets.append((offset, page.page_number))
        blocks.append(block)
        offset += len(block)

    return AggregatedText(
        text=PAGE_SEPARATOR.join(blocks),
        pages_total=len(page_results),
        pages_successful=len(successful),
        page_offsets=page_offsets,
    )
