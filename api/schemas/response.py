# WORKFLOW: Pydantic result models produced by the tariff extraction pipeline.
# Used by: Extraction pipeline stages, extraction endpoints, export, testing
# Schemas include:
# 1. PageExtractionResult - Outcome of one OCR unit (page, pass or page range)
# 2. ExtractedCodeCandidate - One normalized tariff code record
# 3. ValidationResult - Errors/warnings for one candidate
# 4. ExtractionQuality - Heuristic quality metrics
# 5. AggregateExtractionResult - Final result returned to callers
#
# Result flow: OCR units -> Page results -> Candidates -> Validation -> Dedup -> Aggregate result
# All models are frozen: once built they are never mutated.

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExtractionStrategy(str, Enum):
    SINGLE = "single"
    MULTIPASS = "multipass"
    CHUNKED = "chunked"
    PAGE_IMAGES = "page_images"


class PageExtractionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    page_number: int = Field(..., ge=1)
    success: bool
    text: str = ""
    error: Optional[str] = None
    processing_time_ms: int = Field(0, ge=0)


class ExtractedCodeCandidate(BaseModel):
    """A normalized tariff code record extracted from document text."""

    model_config = ConfigDict(frozen=True)

    code_10: str
    code_14: Optional[str] = None
    label_fr: str
    unit: Optional[str] = None
    droit: Optional[float] = Field(None, description="Duty rate in percent; None means unknown")
    notes: Optional[str] = None
    page_number: int = Field(1, ge=1)
    extraction_confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    warnings: List[str] = Field(default_factory=list)


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ExtractionQuality(BaseModel):
    model_config = ConfigDict(frozen=True)

    estimated_accuracy: float = Field(0.0, ge=0.0, le=1.0)
    codes_per_page: float = Field(0.0, ge=0.0)
    coverage_percent: int = Field(0, ge=0, le=100)


class AggregateExtractionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str
    strategy: Optional[ExtractionStrategy] = None
    total_pages: int = Field(0, ge=0)
    pages_processed: int = Field(0, ge=0)
    pages_failed: int = Field(0, ge=0)
    full_text: str = ""
    all_hs_codes: List[ExtractedCodeCandidate] = Field(default_factory=list)
    unique_hs_codes: List[ExtractedCodeCandidate] = Field(default_factory=list)
    page_results: List[PageExtractionResult] = Field(default_factory=list)
    processing_time_ms: int = Field(0, ge=0)
    extraction_quality: ExtractionQuality = Field(default_factory=ExtractionQuality)
