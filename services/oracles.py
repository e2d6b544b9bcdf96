# WORKFLOW: Oracle clients for OCR and structured tariff code extraction.
# Used by: Page extraction orchestrator (OCR), code extraction orchestrator (extraction)
# Classes/functions:
# 1. OracleErrorKind / OracleError - Failure taxonomy shared by both oracles
# 2. classify_oracle_error() - Map client exceptions to the taxonomy
# 3. OcrOracle.read_page() - Image bytes + instruction -> page text
# 4. ExtractionOracle.extract_codes() - Chunk text + JSON schema -> raw JSON payload
# 5. create_oracles() - Build both oracles from Settings
#
# Call flow: Orchestrator -> retry helper -> oracle (sync, run in a worker thread) -> Ollama API
# Oracles never retry on their own; retry policy lives in services/retry.py.

import logging
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import httpx
import ollama

from core.config import Settings
from services.prompts import CODE_EXTRACTION_SYSTEM_PROMPT, CODE_EXTRACTION_USER_TEMPLATE

logger = logging.getLogger(__name__)


class OracleErrorKind(str, Enum):
    RATE_LIMIT = "RATE_LIMIT"
    PAYMENT_REQUIRED = "PAYMENT_REQUIRED"
    TIMEOUT = "TIMEOUT"
    GENERIC = "GENERIC"


class OracleError(Exception):
    """Failure reported by an oracle call."""

    def __init__(self, kind: OracleErrorKind, message: str = "", status_code: Optional[int] = None):
        self.kind = kind
        self.status_code = status_code
        super().__init__(message or kind.value)

    @property
    def is_transient(self) -> bool:
        return self.kind in (OracleErrorKind.RATE_LIMIT, OracleErrorKind.TIMEOUT)

    def __str__(self) -> str:
        message = super().__str__()
        if message == self.kind.value:
            return message
        return f"{self.kind.value}: {message}"


def classify_oracle_error(error: Exception) -> OracleError:
    """
    Map an exception raised by the Ollama client to an OracleError.

    Args:
        error: Exception raised during an oracle call

    Returns:
        OracleError with the matching kind
    """
    if isinstance(error, OracleError):
        return error

    if isinstance(error, ollama.ResponseError):
        status_code = getattr(error, "status_code", None)
        if status_code == 429:
            return OracleError(OracleErrorKind.RATE_LIMIT, str(error.error), status_code)
        if status_code == 402:
            return OracleError(OracleErrorKind.PAYMENT_REQUIRED, str(error.error), status_code)
        if status_code in (408, 504):
            return OracleError(OracleErrorKind.TIMEOUT, str(error.error), status_code)
        return OracleError(OracleErrorKind.GENERIC, f"API error: {status_code}", status_code)

    if isinstance(error, httpx.TimeoutException):
        return OracleError(OracleErrorKind.TIMEOUT, str(error) or "request timed out")

    return OracleError(OracleErrorKind.GENERIC, str(error) or type(error).__name__)


def _build_client(settings: Settings) -> ollama.Client:
    headers = {}
    if settings.oracle_api_key:
        headers["Authorization"] = f"Bearer {settings.oracle_api_key}"
    return ollama.Client(
        host=settings.oracle_url,
        headers=headers,
        timeout=settings.call_timeout_seconds,
    )


class OcrOracle:
    """Vision model that transcribes one page image (or a whole document) to text."""

    def __init__(self, settings: Settings, client: Optional[ollama.Client] = None):
        self.client = client or _build_client(settings)
        self.model = settings.ocr_model
        self.options = {
            "temperature": settings.oracle_temperature,
            "num_predict": settings.oracle_max_tokens,
        }

    def read_page(self, image_bytes: bytes, instruction: str) -> str:
        """
        Transcribe an image to text.

        Args:
            image_bytes: Page image or encoded document bytes
            instruction: OCR instruction, including the page hint

        Returns:
            Transcribed text, raises OracleError on failure
        """
        try:
            response = self.client.generate(
                model=self.model,
                prompt=instruction,
                images=[image_bytes],
                options=self.options,
            )
        except Exception as e:
            raise classify_oracle_error(e) from e

        text = response["response"] or ""
        logger.debug(f"OCR call returned {len(text)} chars")
        return text


class ExtractionOracle:
    """Text model that returns tariff code lines as JSON matching a schema."""

    def __init__(self, settings: Settings, client: Optional[ollama.Client] = None):
        self.client = client or _build_client(settings)
        self.model = settings.extraction_model
        self.options = {
            "temperature": settings.oracle_temperature,
            "num_predict": settings.oracle_max_tokens,
        }

    def extract_codes(self, chunk_text: str, schema: Dict[str, Any], chunk_number: int = 1) -> str:
        """
        Request structured code lines for one text chunk.

        Args:
            chunk_text: Chunk of aggregated OCR text
            schema: JSON schema the answer must follow
            chunk_number: 1-based chunk number, used in the prompt

        Returns:
            Raw JSON string, raises OracleError on failure
        """
        prompt = CODE_EXTRACTION_USER_TEMPLATE.format(chunk=chunk_number, text=chunk_text)
        try:
            response = self.client.generate(
                model=self.model,
                prompt=prompt,
                system=CODE_EXTRACTION_SYSTEM_PROMPT,
                format=schema,
                options=self.options,
            )
        except Exception as e:
            raise classify_oracle_error(e) from e

        return response["response"] or ""


def create_oracles(settings: Settings) -> Tuple[OcrOracle, ExtractionOracle]:
    """Create OCR and extraction oracles sharing one HTTP client."""
    client = _build_client(settings)
    return OcrOracle(settings, client=client), ExtractionOracle(settings, client=client)
