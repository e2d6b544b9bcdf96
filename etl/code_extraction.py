# WORKFLOW: Bounded-concurrency structured code extraction over text chunks.
# Used by: Extraction pipeline after chunking
# Functions:
# 1. CodeExtractionOrchestrator.extract_chunk() - One extraction call with retry, never raises
# 2. CodeExtractionOrchestrator.run() - Sequential batches of concurrent chunk calls
#
# Batch flow: Chunks -> Skip short chunks -> Batches of <= C -> gather(extraction calls) -> Parse/validate payload
# A chunk that exhausts retries, fails permanently or returns a malformed payload contributes zero candidates.

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from api.schemas.validation import PayloadParseError, RawCodeCandidate, parse_extraction_payload, schema_validator
from core.config import Settings
from etl.chunker import TextChunk
from services.oracles import ExtractionOracle, OracleError
from services.retry import SleepFunc, call_with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChunkExtractionResult:
    chunk_index: int
    candidates: List[RawCodeCandidate] = field(default_factory=list)
    skipped: bool = False
    error: Optional[str] = None


class CodeExtractionOrchestrator:
    """Runs extraction oracle calls over chunks in sequential batches."""

    def __init__(self, oracle: Optional[ExtractionOracle], settings: Settings, sleep: SleepFunc = asyncio.sleep):
        self.oracle = oracle
        self.settings = settings
        self.sleep = sleep

    async def extract_chunk(self, chunk: TextChunk) -> ChunkExtractionResult:
        """
        Extract raw code lines from one chunk.

        Args:
            chunk: Text chunk

        Returns:
            ChunkExtractionResult; failures yield zero candidates
        """
        if len(chunk.text) < self.settings.min_chunk_content:
            logger.debug(f"Chunk {chunk.index + 1}: {len(chunk.text)} chars, below minimum, skipped")
            return ChunkExtractionResult(chunk_index=chunk.index, skipped=True)

        if self.oracle is None:
            return ChunkExtractionResult(chunk_index=chunk.index, error="Extraction oracle not configured")

        try:
            payload = await call_with_retry(
                self.oracle.extract_codes,
                chunk.text,
                schema_validator.schema,
                chunk.index + 1,
                max_retries=self.settings.max_retries,
                backoff_seconds=self.settings.retry_backoff_seconds,
                timeout=self.settings.call_timeout_seconds,
                retry_timeouts=self.settings.retry_timeouts,
                sleep=self.sleep,
                label=f"Chunk {chunk.index + 1}",
            )
        except OracleError as e:
            logger.error(f"Code extraction failed for chunk {chunk.index + 1}: {e}")
            return ChunkExtractionResult(chunk_index=chunk.index, error=str(e))

        try:
            candidates = parse_extraction_payload(payload)
        except PayloadParseError as e:
            logger.error(f"Unreadable extraction payload for chunk {chunk.index + 1}: {e}")
            return ChunkExtractionResult(chunk_index=chunk.index, error=str(e))

        logger.info(f"Chunk {chunk.index + 1}: {len(candidates)} raw code lines")
        return ChunkExtractionResult(chunk_index=chunk.index, candidates=candidates)

    async def run(self, chunks: Sequence[TextChunk]) -> List[ChunkExtractionResult]:
        """
        Extract code lines from all chunks.

        Args:
            chunks: Chunks from chunk_text()

        Returns:
            One ChunkExtractionResult per chunk, in chunk order
        """
        batch_size = max(1, self.settings.max_concurrent_units)
        results: List[ChunkExtractionResult] = []

        for i in range(0, len(chunks), batch_size):
            batch = chunks[i:i + batch_size]
            batch_results = await asyncio.gather(*(self.extract_chunk(chunk) for chunk in batch))
            results.extend(batch_results)

            if i + batch_size < len(chunks):
                await self.sleep(self.settings.batch_delay_seconds)

        return results
