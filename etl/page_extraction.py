# WORKFLOW: Bounded-concurrency OCR over page units.
# Used by: Extraction pipeline (page images in parallel batches, encoded documents sequentially)
# Functions:
# 1. PageExtractionOrchestrator.extract_page() - One OCR call with retry, never raises
# 2. PageExtractionOrchestrator.run() - Sequential batches of concurrent units
#
# Batch flow: Units -> Batches of <= C -> gather(OCR calls) -> Delay -> Next batch -> Sort by page
# A failing unit becomes a failed PageExtractionResult; it never aborts its batch or later batches.

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from api.schemas.response import PageExtractionResult
from core.config import Settings
from services.oracles import OcrOracle, OracleError
from services.retry import SleepFunc, call_with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OcrUnit:
    page_number: int
    image_bytes: bytes
    instruction: str


class PageExtractionOrchestrator:
    """Runs OCR oracle calls in sequential batches of bounded concurrency."""

    def __init__(self, oracle: Optional[OcrOracle], settings: Settings, sleep: SleepFunc = asyncio.sleep):
        self.oracle = oracle
        self.settings = settings
        self.sleep = sleep

    async def extract_page(self, unit: OcrUnit) -> PageExtractionResult:
        """
        OCR a single unit.

        Args:
            unit: Page number, image bytes and instruction

        Returns:
            PageExtractionResult; failures are reported, not raised
        """
        start_time = time.monotonic()

        if self.oracle is None:
            return PageExtractionResult(
                page_number=unit.page_number,
                success=False,
                error="OCR oracle not configured",
                processing_time_ms=0,
            )

        try:
            text = await call_with_retry(
                self.oracle.read_page,
                unit.image_bytes,
                unit.instruction,
                max_retries=self.settings.max_retries,
                backoff_seconds=self.settings.retry_backoff_seconds,
                timeout=self.settings.call_timeout_seconds,
                retry_timeouts=self.settings.retry_timeouts,
                sleep=self.sleep,
                label=f"Page {unit.page_number}",
            )
        except OracleError as e:
            logger.error(f"Page {unit.page_number} failed: {e}")
            return PageExtractionResult(
                page_number=unit.page_number,
                success=False,
                error=str(e),
                processing_time_ms=_elapsed_ms(start_time),
            )

        logger.info(f"Page {unit.page_number}: extracted {len(text)} chars")
        return PageExtractionResult(
            page_number=unit.page_number,
            success=True,
            text=text,
            processing_time_ms=_elapsed_ms(start_time),
        )

    async def run(self, units: Sequence[OcrUnit], concurrency: Optional[int] = None) -> List[PageExtractionResult]:
        """
        OCR all units in sequential batches.

        Args:
            units: Units to process
            concurrency: Batch size; defaults to settings.max_concurrent_units

        Returns:
            One PageExtractionResult per unit, sorted by page number
        """
        batch_size = max(1, concurrency or self.settings.max_concurrent_units)
        results: List[PageExtractionResult] = []

        for i in range(0, len(units), batch_size):
            batch = units[i:i + batch_size]
            logger.info(
                f"Processing OCR batch {i // batch_size + 1}, "
                f"pages {batch[0].page_number}-{batch[-1].page_number}"
            )

            batch_results = await asyncio.gather(*(self.extract_page(unit) for unit in batch))
            results.extend(batch_results)

            if i + batch_size < len(units):
                await self.sleep(self.settings.batch_delay_seconds)

        return sorted(results, key=lambda r: r.page_number)


def _elapsed_ms(start_time: float) -> int:
    return int((time.monotonic() - start_time) * 1000)
