"""Pydantic request/response schemas for the FastAPI endpoints."""

from typing import Any

from pydantic import BaseModel


class TextRequest(BaseModel):
    """Already OCR'd text to extract fields from."""

    text: str


class DocumentResponse(BaseModel):
    """Response schema for one extracted document."""

    success: bool
    document_type: str
    valid: bool
    confidence: float
    comments: str | None = None
    data: dict[str, Any]
    processing_time_ms: float


class BatchErrorResponse(BaseModel):
    """A file that could not be processed in a batch."""

    filename: str
    message: str


class BatchResponse(BaseModel):
    """Response schema for batch processing of independent documents."""

    success: bool
    total_documents: int
    successful: int
    failed: int
    records: list[dict[str, Any]]
    errors: list[BatchErrorResponse]


class DocumentTypeInfo(BaseModel):
    """A supported document type and the fields it needs to be valid."""

    name: str
    display_name: str
    critical_fields: list[str]
    fields: list[str]


class DocumentTypesResponse(BaseModel):
    """Response schema listing supported document types."""

    document_types: list[DocumentTypeInfo]


class CarnetResponse(BaseModel):
    """A stored carnet."""

    id: int
    created_at: str
    record: dict[str, Any]


class CarnetListResponse(BaseModel):
    """One page of stored carnets."""

    page: int
    page_size: int
    total: int
    items: list[CarnetResponse]


class StatisticsResponse(BaseModel):
    """Counts of stored carnets by validity."""

    total: int
    valid: int
    invalid: int


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
