# WORKFLOW: Pydantic request schemas and pipeline inputs.
# Used by: Extraction endpoints for request validation, pipeline entrypoints
# Schemas include:
# 1. PageImage - Pre-rendered page image handed to the pipeline
# 2. PageImagePayload - Base64 page image as received over HTTP
# 3. ExtractDocumentRequest - For /extract/document
# 4. ExtractPagesRequest - For /extract/pages
#
# Validation flow: HTTP request -> Pydantic validation -> base64 decode -> PageImage -> Pipeline

import base64
import binascii
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def decode_base64_payload(value: str) -> bytes:
    """Decode a base64 string, accepting an optional data URL prefix."""
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 content: {e}")


def check_unique_page_numbers(page_numbers: Iterable[int]) -> None:
    """Raise ValueError when a page number appears more than once."""
    numbers = list(page_numbers)
    duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate page numbers: {duplicates}")


class PageImage(BaseModel):
    """A page already rendered to an image by the caller."""

    model_config = ConfigDict(frozen=True)

    page_number: int = Field(..., ge=1)
    image_bytes: bytes
    width: Optional[int] = Field(None, gt=0)
    height: Optional[int] = Field(None, gt=0)


class PageImagePayload(BaseModel):
    page_number: int = Field(..., ge=1, description="1-based page number")
    image_base64: str = Field(..., min_length=1, description="PNG/JPEG page image, base64 encoded")
    width: Optional[int] = Field(None, gt=0)
    height: Optional[int] = Field(None, gt=0)

    @field_validator("image_base64")
    @classmethod
    def validate_image_base64(cls, v: str) -> str:
        if not decode_base64_payload(v):
            raise ValueError("Page image is empty")
        return v

    def to_page_image(self) -> PageImage:
        return PageImage(
            page_number=self.page_number,
            image_bytes=decode_base64_payload(self.image_base64),
            width=self.width,
            height=self.height,
        )


class ExtractDocumentRequest(BaseModel):
    """Request schema for whole-document extraction."""
    filename: str = Field(..., min_length=1, max_length=255, description="Original file name")
    content_base64: str = Field(..., min_length=1, description="Document bytes, base64 encoded")

    @field_validator("content_base64")
    @classmethod
    def validate_content_base64(cls, v: str) -> str:
        if not decode_base64_payload(v):
            raise ValueError("Document content is empty")
        return v

    def content_bytes(self) -> bytes:
        return decode_base64_payload(self.content_base64)


class ExtractPagesRequest(BaseModel):
    """Request schema for pre-rendered page image extraction."""
    filename: str = Field(..., min_length=1, max_length=255, description="Original file name")
    pages: List[PageImagePayload] = Field(..., min_length=1, description="Rendered pages")

    @field_validator("pages")
    @classmethod
    def validate_unique_page_numbers(cls, v: List[PageImagePayload]) -> List[PageImagePayload]:
        check_unique_page_numbers(page.page_number for page in v)
        return v

    def page_images(self) -> List[PageImage]:
        return [page.to_page_image() for page in self.pages]
