# WORKFLOW: Complete tariff extraction pipeline: OCR -> aggregate -> chunk -> extract -> normalize -> validate -> dedup.
# Used by: Extraction endpoints, any caller holding a scanned tariff document
# Pipeline steps:
# 1. estimate_page_count() / select_strategy() - Plan OCR for encoded documents
# 2. PageExtractionOrchestrator - OCR units in bounded batches
# 3. aggregate_pages() - Ordered full text with page delimiters
# 4. chunk_text() - Bounded overlapping chunks
# 5. CodeExtractionOrchestrator - Structured extraction per chunk
# 6. normalize_candidate() / validate_candidates() - Full-length, structurally valid codes
# 7. deduplicate_candidates() - One record per code_10
# 8. assess_quality() - Heuristic metrics
#
# Entrypoints always return an AggregateExtractionResult. Operational failures degrade single
# units; only a missing oracle configuration short-circuits to an empty result.

import asyncio
import logging
import time
from typing import List, Optional, Sequence, Tuple

from api.schemas.request import PageImage, check_unique_page_numbers
from api.schemas.response import (
    AggregateExtractionResult,
    ExtractedCodeCandidate,
    ExtractionStrategy,
    PageExtractionResult,
)
from api.schemas.validation import RawCodeCandidate
from core.config import Settings
from etl.aggregator import AggregatedText, aggregate_pages
from etl.chunker import TextChunk, chunk_text
from etl.code_extraction import CodeExtractionOrchestrator
from etl.deduplicator import deduplicate_candidates
from etl.normalizer import normalize_candidate
from etl.page_extraction import OcrUnit, PageExtractionOrchestrator
from etl.quality import ExtractionSource, assess_quality
from etl.strategy import ExtractionPlan, PlannedUnit, estimate_page_count, select_strategy
from etl.validators import validate_candidates
from services.oracles import ExtractionOracle, OcrOracle, create_oracles
from services.prompts import PAGE_INSTRUCTION_TEMPLATE, PAGE_RANGE_INSTRUCTION_TEMPLATE, TARIFF_PAGE_PROMPT
from services.retry import SleepFunc

logger = logging.getLogger(__name__)


class TariffExtractionPipeline:
    """Extracts a deduplicated tariff code table from scanned documents."""

    def __init__(
        self,
        settings: Settings,
        ocr_oracle: Optional[OcrOracle] = None,
        extraction_oracle: Optional[ExtractionOracle] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        if ocr_oracle is None and extraction_oracle is None and settings.oracle_configured:
            ocr_oracle, extraction_oracle = create_oracles(settings)

        self.settings = settings
        self.sleep = sleep
        self.configured = ocr_oracle is not None and extraction_oracle is not None
        self.page_orchestrator = PageExtractionOrchestrator(ocr_oracle, settings, sleep=sleep)
        self.code_orchestrator = CodeExtractionOrchestrator(extraction_oracle, settings, sleep=sleep)

    async def extract_from_encoded_document(self, content: bytes, filename: str) -> AggregateExtractionResult:
        """
        Extract tariff codes from an encoded document (e.g. a scanned PDF).

        Args:
            content: Raw document bytes
            filename: Original file name, for logs and placeholders

        Returns:
            AggregateExtractionResult
        """
        start_time = time.monotonic()

        if not self.configured:
            logger.warning(f"Oracle not configured, cannot process document {filename}")
            return AggregateExtractionResult(
                filename=filename,
                full_text=f"[Document not processed: {filename}]",
                processing_time_ms=_elapsed_ms(start_time),
            )

        estimated_pages = estimate_page_count(content)
        plan = select_strategy(estimated_pages)
        logger.info(
            f"Starting extraction: {filename}, estimated {estimated_pages} page(s), "
            f"strategy {plan.strategy.value}"
        )

        page_results = await self._run_plan(plan, content)
        return await self._finish(
            filename=filename,
            source=ExtractionSource.ENCODED_DOCUMENT,
            strategy=plan.strategy,
            total_pages=plan.estimated_pages,
            page_results=page_results,
            start_time=start_time,
        )

    async def extract_from_page_images(self, page_images: Sequence[PageImage], filename: str) -> AggregateExtractionResult:
        """
        Extract tariff codes from pages the caller already rendered to images.

        Args:
            page_images: Rendered pages with unique page numbers
            filename: Original file name

        Returns:
            AggregateExtractionResult; raises ValueError on duplicate page numbers
        """
        check_unique_page_numbers(page.page_number for page in page_images)

        start_time = time.monotonic()
        total_pages = len(page_images)

        if not self.configured:
            logger.warning(f"Oracle not configured, cannot process page images of {filename}")
            return AggregateExtractionResult(
                filename=filename,
                strategy=ExtractionStrategy.PAGE_IMAGES,
                total_pages=total_pages,
                pages_failed=total_pages,
                full_text=f"[Pages not processed: {filename}]",
                processing_time_ms=_elapsed_ms(start_time),
            )

        logger.info(f"Processing {total_pages} page images with vision OCR: {filename}")

        units = [
            OcrUnit(
                page_number=page.page_number,
                image_bytes=page.image_bytes,
                instruction=PAGE_INSTRUCTION_TEMPLATE.format(
                    prompt=TARIFF_PAGE_PROMPT, page=page.page_number, total=total_pages
                ),
            )
            for page in page_images
        ]
        page_results = await self.page_orchestrator.run(units)

        return await self._finish(
            filename=filename,
            source=ExtractionSource.PAGE_IMAGES,
            strategy=ExtractionStrategy.PAGE_IMAGES,
            total_pages=total_pages,
            page_results=page_results,
            start_time=start_time,
        )

    async def extract_text_from_document(self, content: bytes, filename: str) -> str:
        """Return only the aggregated OCR text of an encoded document."""
        result = await self.extract_from_encoded_document(content, filename)
        return result.full_text

    async def _run_plan(self, plan: ExtractionPlan, content: bytes) -> List[PageExtractionResult]:
        """Run the OCR units of a plan against the whole document."""
        if plan.strategy == ExtractionStrategy.SINGLE:
            unit = OcrUnit(page_number=1, image_bytes=content, instruction=TARIFF_PAGE_PROMPT)
            return [await self.page_orchestrator.extract_page(unit)]

        if plan.strategy == ExtractionStrategy.MULTIPASS:
            first_pass = await self.page_orchestrator.extract_page(
                self._document_unit(plan.units[0], content, total=plan.estimated_pages)
            )
            page_results = [first_pass]

            min_chars = plan.estimated_pages * self.settings.multipass_min_chars_per_page
            if len(first_pass.text) >= min_chars:
                return page_results

            logger.info(f"First pass incomplete, running {len(plan.supplemental_units)} additional passes")
            for planned in plan.supplemental_units:
                await self.sleep(self.settings.batch_delay_seconds)
                result = await self.page_orchestrator.extract_page(
                    self._document_unit(planned, content, total=plan.passes)
                )
                if result.success and len(result.text) > self.settings.supplemental_pass_min_chars:
                    page_results.append(result)
                else:
                    logger.info(f"Discarding supplemental pass {planned.page_number}")
            return page_results

        units = [self._range_unit(planned, content, total=plan.estimated_pages) for planned in plan.units]
        logger.info(f"Large document, processing in {len(units)} sequential page ranges")
        return await self.page_orchestrator.run(units, concurrency=1)

    def _document_unit(self, planned: PlannedUnit, content: bytes, total: int) -> OcrUnit:
        instruction = PAGE_INSTRUCTION_TEMPLATE.format(prompt=TARIFF_PAGE_PROMPT, page=planned.page_number, total=total)
        return OcrUnit(page_number=planned.page_number, image_bytes=content, instruction=instruction)

    def _range_unit(self, planned: PlannedUnit, content: bytes, total: int) -> OcrUnit:
        instruction = PAGE_RANGE_INSTRUCTION_TEMPLATE.format(
            prompt=TARIFF_PAGE_PROMPT, first=planned.first_page, last=planned.last_page, total=total
        )
        return OcrUnit(page_number=planned.page_number, image_bytes=content, instruction=instruction)

    async def _finish(
        self,
        filename: str,
        source: ExtractionSource,
        strategy: ExtractionStrategy,
        total_pages: int,
        page_results: List[PageExtractionResult],
        start_time: float,
    ) -> AggregateExtractionResult:
        """Aggregate OCR text, extract codes and build the final result."""
        aggregated = aggregate_pages(page_results)
        logger.info(
            f"OCR complete: {aggregated.pages_successful}/{aggregated.pages_total} pages, "
            f"{aggregated.coverage_percent:.0f}% coverage, {len(aggregated.text)} chars total"
        )

        all_codes, unique_codes = await self._extract_codes(aggregated)
        logger.info(
            f"Extraction complete: {len(all_codes)} total codes, "
            f"{len(unique_codes)} unique after deduplication"
        )

        quality = assess_quality(
            source,
            pages_total=aggregated.pages_total,
            pages_successful=aggregated.pages_successful,
            unique_codes=len(unique_codes),
        )

        return AggregateExtractionResult(
            filename=filename,
            strategy=strategy,
            total_pages=total_pages,
            pages_processed=aggregated.pages_successful,
            pages_failed=aggregated.pages_failed,
            full_text=aggregated.text,
            all_hs_codes=all_codes,
            unique_hs_codes=unique_codes,
            page_results=page_results,
            processing_time_ms=_elapsed_ms(start_time),
            extraction_quality=quality,
        )

    async def _extract_codes(
        self, aggregated: AggregatedText
    ) -> Tuple[List[ExtractedCodeCandidate], List[ExtractedCodeCandidate]]:
        """Chunk the text, extract, normalize, validate and deduplicate codes."""
        if not aggregated.text:
            return [], []

        chunks = chunk_text(aggregated.text, self.settings.chunk_size, self.settings.chunk_overlap)
        logger.info(f"Extracting codes from {len(chunks)} text chunk(s)")

        chunk_results = await self.code_orchestrator.run(chunks)

        normalized = []
        for chunk, chunk_result in zip(chunks, chunk_results):
            for raw in chunk_result.candidates:
                candidate = normalize_candidate(raw, page_number=_source_page(chunk, raw, aggregated))
                if candidate is not None:
                    normalized.append(candidate)

        valid, _ = validate_candidates(normalized)
        unique = deduplicate_candidates(valid)
        return valid, list(unique.values())


def _source_page(chunk: TextChunk, raw: RawCodeCandidate, aggregated: AggregatedText) -> int:
    """Page of the delimiter preceding the raw code inside the chunk (chunk start as fallback).

    The chunk's own slice is searched before its overlap prefix.
    """
    needle = raw.code_raw.strip()
    position = -1
    if needle:
        position = chunk.text.find(needle, chunk.overlap)
        if position < 0:
            position = chunk.text.find(needle)
    if position < 0:
        position = chunk.overlap
    return aggregated.page_for_offset(chunk.window_start + position)


def _elapsed_ms(start_time: float) -> int:
    return int((time.monotonic() - start_time) * 1000)
