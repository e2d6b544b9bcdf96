# WORKFLOW: Shared fixtures for the tariff extraction test suite.
# Used by: All tests
# Fixtures:
# 1. make_settings - Settings factory with a configured oracle and test-friendly limits
# 2. recording_sleep - Awaitable sleep that records delays instead of waiting
# 3. fake_ocr / fake_extraction - Offline oracles with scripted answers
#
# No test touches the network: oracles are replaced by in-process fakes.

import json
import re
import threading
from typing import Any, Callable, Dict, List, Optional

import pytest

from core.config import Settings
from services.oracles import OracleError, OracleErrorKind

TROUT_ROW = "0303.14 00 00 | – – Truites (Salmo trutta, Oncorhynchus mykiss) | 10 | kg"

PAGE_HEADER = (
    "TARIF DES DOUANES - CHAPITRE 3\n"
    "POISSONS ET CRUSTACES, MOLLUSQUES ET AUTRES INVERTEBRES AQUATIQUES\n"
    "CODIFICATION | DESIGNATION DES PRODUITS | DROIT | UNITE\n"
)


def build_settings(**overrides) -> Settings:
    values = {
        "oracle_url": "http://oracle.test",
        "oracle_api_key": "test-key",
        "oracle_requires_api_key": True,
        "max_concurrent_units": 4,
        "max_retries": 2,
        "retry_backoff_seconds": 2.0,
        "batch_delay_seconds": 0.5,
        "call_timeout_seconds": 5.0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    return build_settings


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


class FakeOcrOracle:
    """OCR oracle answering from a script keyed by image bytes or instruction marker."""

    def __init__(self, answers: Optional[Dict[Any, Any]] = None, default: str = ""):
        self.answers = answers or {}
        self.default = default
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def read_page(self, image_bytes: bytes, instruction: str) -> str:
        with self._lock:
            self.calls.append({"image_bytes": image_bytes, "instruction": instruction})

        answer = self.answers.get(image_bytes)
        if answer is None:
            for key, value in self.answers.items():
                if isinstance(key, str) and key in instruction:
                    answer = value
                    break
        if answer is None:
            answer = self.default

        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeExtractionOracle:
    """Extraction oracle that reports every trout row found in the chunk."""

    def __init__(self, payload: Optional[str] = None):
        self.payload = payload
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def extract_codes(self, chunk_text: str, schema: Dict[str, Any], chunk_number: int = 1) -> str:
        with self._lock:
            self.calls.append({"chunk_text": chunk_text, "schema": schema, "chunk_number": chunk_number})

        if self.payload is not None:
            return self.payload

        codes = []
        for match in re.finditer(r"^(\d{4}\.\d{2}(?: \d{2})*) \| (.+?) \| (.+?) \| (.+)$", chunk_text, re.MULTILINE):
            codes.append({
                "code_raw": match.group(1),
                "label_fr": match.group(2),
                "droit": match.group(3),
                "unit": match.group(4),
            })
        return json.dumps({"codes": codes})


def rate_limited() -> OracleError:
    return OracleError(OracleErrorKind.RATE_LIMIT, "too many requests", 429)


def tariff_page(*rows: str) -> str:
    return PAGE_HEADER + "\n".join(rows)
