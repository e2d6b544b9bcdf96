# WORKFLOW: Tests for the page OCR and code extraction orchestrators.
# Used by: CI/CD pipelines, development testing
# Test scenarios:
# 1. Batches of at most C units with a delay between batches
# 2. Failed units become failed results without aborting the run
# 3. Short chunks skipped, malformed payloads yield zero candidates
# 4. Missing oracles reported per unit

import json
import threading
import time

import pytest

from conftest import FakeExtractionOracle, FakeOcrOracle, TROUT_ROW, rate_limited, tariff_page
from etl.chunker import TextChunk
from etl.code_extraction import CodeExtractionOrchestrator
from etl.page_extraction import OcrUnit, PageExtractionOrchestrator
from services.oracles import OracleError, OracleErrorKind


def units(count):
    return [OcrUnit(page_number=n, image_bytes=f"page-{n}".encode(), instruction=f"[PAGE {n}/{count}]")
            for n in range(1, count + 1)]


def chunk(text, index=0):
    return TextChunk(index=index, start=0, end=len(text), overlap=0, text=text)


class ConcurrencyTracker:
    """OCR oracle that records how many calls run at the same time."""

    def __init__(self):
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def read_page(self, image_bytes, instruction):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.02)
        with self._lock:
            self.active -= 1
        return image_bytes.decode()


@pytest.mark.asyncio
async def test_pages_run_in_bounded_batches(make_settings, recording_sleep):
    tracker = ConcurrencyTracker()
    orchestrator = PageExtractionOrchestrator(tracker, make_settings(max_concurrent_units=4), sleep=recording_sleep)

    results = await orchestrator.run(list(reversed(units(6))))

    assert [r.page_number for r in results] == [1, 2, 3, 4, 5, 6]
    assert all(r.success for r in results)
    assert results[0].text == "page-1"
    assert tracker.max_active <= 4
    assert recording_sleep.delays == [0.5]


@pytest.mark.asyncio
async def test_explicit_concurrency_overrides_settings(make_settings, recording_sleep):
    oracle = FakeOcrOracle(default="text")
    orchestrator = PageExtractionOrchestrator(oracle, make_settings(), sleep=recording_sleep)

    await orchestrator.run(units(3), concurrency=1)

    assert recording_sleep.delays == [0.5, 0.5]


@pytest.mark.asyncio
async def test_failed_page_does_not_abort_run(make_settings, recording_sleep):
    oracle = FakeOcrOracle(
        answers={b"page-2": OracleError(OracleErrorKind.PAYMENT_REQUIRED, "quota exhausted", 402)},
        default="text",
    )
    orchestrator = PageExtractionOrchestrator(oracle, make_settings(), sleep=recording_sleep)

    results = await orchestrator.run(units(3))

    assert [r.success for r in results] == [True, False, True]
    assert "PAYMENT_REQUIRED" in results[1].error
    assert results[1].text == ""
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_rate_limited_page_fails_after_retries(make_settings, recording_sleep):
    oracle = FakeOcrOracle(answers={b"page-1": rate_limited()})
    orchestrator = PageExtractionOrchestrator(oracle, make_settings(), sleep=recording_sleep)

    result = await orchestrator.extract_page(units(1)[0])

    assert not result.success
    assert "RATE_LIMIT" in result.error
    assert len(oracle.calls) == 3
    assert recording_sleep.delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_missing_ocr_oracle_is_reported(make_settings):
    orchestrator = PageExtractionOrchestrator(None, make_settings())

    result = await orchestrator.extract_page(units(1)[0])

    assert not result.success
    assert result.error == "OCR oracle not configured"


@pytest.mark.asyncio
async def test_chunk_candidates_are_parsed(make_settings, recording_sleep):
    oracle = FakeExtractionOracle()
    orchestrator = CodeExtractionOrchestrator(oracle, make_settings(), sleep=recording_sleep)

    result = await orchestrator.extract_chunk(chunk(tariff_page(TROUT_ROW), index=2))

    assert result.error is None
    assert [c.code_raw for c in result.candidates] == ["0303.14 00 00"]
    assert oracle.calls[0]["chunk_number"] == 3
    assert oracle.calls[0]["schema"]["required"] == ["codes"]


@pytest.mark.asyncio
async def test_short_chunk_is_skipped(make_settings):
    oracle = FakeExtractionOracle()
    orchestrator = CodeExtractionOrchestrator(oracle, make_settings())

    result = await orchestrator.extract_chunk(chunk("--- Page 1 ---\n"))

    assert result.skipped
    assert result.candidates == []
    assert oracle.calls == []


@pytest.mark.asyncio
async def test_malformed_payload_yields_no_candidates(make_settings):
    orchestrator = CodeExtractionOrchestrator(FakeExtractionOracle(payload="not json"), make_settings())

    result = await orchestrator.extract_chunk(chunk(tariff_page(TROUT_ROW)))

    assert result.candidates == []
    assert "invalid JSON" in result.error


@pytest.mark.asyncio
async def test_missing_extraction_oracle_is_reported(make_settings):
    orchestrator = CodeExtractionOrchestrator(None, make_settings())

    result = await orchestrator.extract_chunk(chunk(tariff_page(TROUT_ROW)))

    assert result.error == "Extraction oracle not configured"


@pytest.mark.asyncio
async def test_chunks_keep_order_across_batches(make_settings, recording_sleep):
    payload = json.dumps({"codes": [{"code_raw": "0303.14 00 00", "label_fr": "Truites"}]})
    orchestrator = CodeExtractionOrchestrator(
        FakeExtractionOracle(payload=payload), make_settings(max_concurrent_units=2), sleep=recording_sleep
    )
    chunks = [chunk(tariff_page(TROUT_ROW), index=i) for i in range(5)]

    results = await orchestrator.run(chunks)

    assert [r.chunk_index for r in results] == [0, 1, 2, 3, 4]
    assert all(len(r.candidates) == 1 for r in results)
    assert recording_sleep.delays == [0.5, 0.5]


class RateLimitedTwice:
    """Extraction oracle answering 429 twice before succeeding."""

    def __init__(self):
        self.calls = 0

    def extract_codes(self, chunk_text, schema, chunk_number=1):
        self.calls += 1
        if self.calls <= 2:
            raise rate_limited()
        return json.dumps({"codes": [{"code_raw": "0303.14 00 00", "label_fr": "Truites"}]})


@pytest.mark.asyncio
async def test_chunk_recovers_after_two_rate_limits(make_settings, recording_sleep):
    oracle = RateLimitedTwice()
    orchestrator = CodeExtractionOrchestrator(oracle, make_settings(), sleep=recording_sleep)

    result = await orchestrator.extract_chunk(chunk(tariff_page(TROUT_ROW)))

    assert result.error is None
    assert len(result.candidates) == 1
    assert oracle.calls == 3
    assert recording_sleep.delays == [2.0, 4.0]
