# WORKFLOW: Extraction endpoints for scanned tariff documents.
# Used by: Direct API calls, batch ingestion scripts, integration testing
# Endpoints:
# 1. /extract/document - Whole encoded document (base64), strategy chosen from page estimate
# 2. /extract/pages - Pre-rendered page images (base64), OCR per page
#
# Request flow: HTTP POST -> Request validation -> Size check -> Pipeline -> JSON result or CSV table
# Operational failures (OCR errors, rate limits, bad payloads) are reported inside the 200 body;
# only malformed requests (422) and unexpected errors (500) change the status code.

import logging
from enum import Enum

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from api.schemas.request import ExtractDocumentRequest, ExtractPagesRequest
from api.schemas.response import AggregateExtractionResult
from core.config import Settings, settings
from etl.export import codes_to_csv
from etl.pipeline import TariffExtractionPipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["extraction"])


class OutputFormat(str, Enum):
    JSON = "json"
    CSV = "csv"


def get_settings() -> Settings:
    return settings


def get_pipeline(app_settings: Settings = Depends(get_settings)) -> TariffExtractionPipeline:
    """Build an extraction pipeline from the application settings."""
    return TariffExtractionPipeline(app_settings)


def _check_upload_size(size: int, app_settings: Settings) -> None:
    if size > app_settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Upload too large: {size} bytes (limit {app_settings.max_upload_bytes})",
        )


def _render(result: AggregateExtractionResult, output: OutputFormat):
    if output == OutputFormat.CSV:
        return Response(
            content=codes_to_csv(result.unique_hs_codes),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{result.filename}.codes.csv"'},
        )
    return result


@router.post("/extract/document", response_model=AggregateExtractionResult)
async def extract_document(
    request: ExtractDocumentRequest,
    output: OutputFormat = Query(OutputFormat.JSON),
    pipeline: TariffExtractionPipeline = Depends(get_pipeline),
    app_settings: Settings = Depends(get_settings),
):
    """
    Extract tariff codes from a whole encoded document.

    The page count is estimated from the document bytes and the OCR strategy
    (single, multipass or chunked) is chosen from it.
    """
    content = request.content_bytes()
    _check_upload_size(len(content), app_settings)

    try:
        logger.info(f"Document extraction request: {request.filename}, {len(content)} bytes")
        result = await pipeline.extract_from_encoded_document(content, request.filename)
        logger.info(
            f"Document extraction finished: {request.filename}, "
            f"{len(result.unique_hs_codes)} unique codes in {result.processing_time_ms} ms"
        )
        return _render(result, output)

    except Exception as e:
        logger.error(f"Document extraction failed for {request.filename}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to extract document: {str(e)}",
        )


@router.post("/extract/pages", response_model=AggregateExtractionResult)
async def extract_pages(
    request: ExtractPagesRequest,
    output: OutputFormat = Query(OutputFormat.JSON),
    pipeline: TariffExtractionPipeline = Depends(get_pipeline),
    app_settings: Settings = Depends(get_settings),
):
    """Extract tariff codes from pre-rendered page images."""
    page_images = request.page_images()
    _check_upload_size(sum(len(page.image_bytes) for page in page_images), app_settings)

    try:
        logger.info(f"Page extraction request: {request.filename}, {len(page_images)} pages")
        result = await pipeline.extract_from_page_images(page_images, request.filename)
        logger.info(
            f"Page extraction finished: {request.filename}, "
            f"{result.pages_processed}/{result.total_pages} pages, {len(result.unique_hs_codes)} unique codes"
        )
        return _render(result, output)

    except Exception as e:
        logger.error(f"Page extraction failed for {request.filename}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to extract pages: {str(e)}",
        )
