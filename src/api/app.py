"""FastAPI application for the customs document OCR API.

Exposes extraction for every supported document type, from uploaded
PNG scans or from already OCR'd text, plus storage of extracted
customs agent cards. Carnets may also be uploaded as scanned PDF.
"""

import shutil
import time
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from src.documents.base import DocumentRecord
from src.documents.carnet import CarnetAduanero
from src.documents.registry import EXTRACTORS
from src.documents.types import DocumentType
from src.ocr.document_processor import (
    BatchError,
    DocumentProcessor,
    InvalidImageError,
    OCRUnavailableError,
)
from src.storage.repository import CarnetRepository, StoredCarnet, create_repository
from src.utils.config import AppConfig, load_config
from src.utils.logger import get_logger

from .schemas import (
    BatchErrorResponse,
    BatchResponse,
    CarnetListResponse,
    CarnetResponse,
    DocumentResponse,
    DocumentTypeInfo,
    DocumentTypesResponse,
    HealthResponse,
    StatisticsResponse,
    TextRequest,
)

logger = get_logger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="Customs Document OCR API",
    description="Extract structured fields from scanned Chilean customs documents",
    version=VERSION,
)


@lru_cache
def get_config() -> AppConfig:
    return load_config()


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().server.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache
def get_processor() -> DocumentProcessor:
    return DocumentProcessor(get_config())


@lru_cache
def get_repository() -> CarnetRepository:
    return create_repository(get_config().storage.backend)


Processor = Annotated[DocumentProcessor, Depends(get_processor)]
Repository = Annotated[CarnetRepository, Depends(get_repository)]


def _document_response(
    record: DocumentRecord, document_type: DocumentType, start_time: float
) -> DocumentResponse:
    return DocumentResponse(
        success=True,
        document_type=document_type.value,
        valid=record.valid,
        confidence=record.confidence,
        comments=record.comments,
        data=record.to_dict(),
        processing_time_ms=(time.time() - start_time) * 1000,
    )


def _carnet_response(stored: StoredCarnet) -> CarnetResponse:
    return CarnetResponse(
        id=stored.id,
        created_at=stored.created_at.isoformat(),
        record=stored.record.to_dict(),
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
    )


@app.get("/documents/types", response_model=DocumentTypesResponse)
async def list_document_types(processor: Processor) -> DocumentTypesResponse:
    """List supported document types with their critical fields."""
    types = []
    for doc_type, extractor_cls in EXTRACTORS.items():
        record_fields = extractor_cls.record_type().fields()
        types.append(
            DocumentTypeInfo(
                name=doc_type.value,
                display_name=extractor_cls.display_name,
                critical_fields=processor.rules_engine.critical_fields(doc_type),
                fields=list(record_fields),
            )
        )
    return DocumentTypesResponse(document_types=types)


@app.post("/documents/{document_type}/process", response_model=DocumentResponse)
async def process_document(
    document_type: DocumentType,
    files: Annotated[list[UploadFile], File(...)],
    processor: Processor,
    repository: Repository,
) -> DocumentResponse:
    """Extract one document from one or more scanned pages.

    Pages are merged field by field. Carnets are also stored.

    Args:
        document_type: Which rule table to apply.
        files: PNG scans of the document's pages, or a PDF for carnets.

    Returns:
        The extracted record with validity and confidence.
    """
    start_time = time.time()
    max_files = processor.config.extraction.max_merge_files
    if not files or len(files) > max_files:
        raise HTTPException(
            status_code=400,
            detail=f"Se requieren entre 1 y {max_files} archivos",
        )

    contents = [await f.read() for f in files]
    names = [f.filename or "document" for f in files]
    try:
        record = processor.process_many(contents, document_type, names)
    except InvalidImageError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except OCRUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    if isinstance(record, CarnetAduanero):
        repository.add(record)
    return _document_response(record, document_type, start_time)


@app.post("/documents/{document_type}/process-text", response_model=DocumentResponse)
async def process_text(
    document_type: DocumentType,
    request: TextRequest,
    processor: Processor,
) -> DocumentResponse:
    """Extract a document from text that was already OCR'd."""
    start_time = time.time()
    if not request.text.strip():
        raise HTTPException(status_code=400, detail="El texto no puede estar vacío")
    record = processor.process_text(request.text, document_type)
    return _document_response(record, document_type, start_time)


@app.post("/documents/{document_type}/batch", response_model=BatchResponse)
async def process_batch(
    document_type: DocumentType,
    files: Annotated[list[UploadFile], File(...)],
    processor: Processor,
    repository: Repository,
) -> BatchResponse:
    """Extract independent documents one after another.

    A file that fails is reported in ``errors`` and the rest continue.
    Carnets whose card number is already stored are reported as errors.
    """
    max_files = processor.config.extraction.max_batch_files
    if not files or len(files) > max_files:
        raise HTTPException(
            status_code=400,
            detail=f"Se permiten entre 1 y {max_files} archivos por lote",
        )

    contents = [await f.read() for f in files]
    names = [f.filename or "document" for f in files]
    batch = processor.process_batch(contents, document_type, names)

    records: list[DocumentRecord] = []
    errors = list(batch.errors)
    for record in batch.records:
        if isinstance(record, CarnetAduanero):
            if record.numero_carne and repository.exists_by_number(record.numero_carne):
                errors.append(
                    BatchError(
                        filename=record.file_name or "document",
                        message=f"Carné {record.numero_carne} ya existe",
                    )
                )
                continue
            repository.add(record)
        records.append(record)

    order = {name: i for i, name in reversed(list(enumerate(names)))}
    errors.sort(key=lambda e: order.get(e.filename, len(names)))

    return BatchResponse(
        success=bool(records),
        total_documents=len(files),
        successful=len(records),
        failed=len(errors),
        records=[r.to_dict() for r in records],
        errors=[BatchErrorResponse(filename=e.filename, message=e.message) for e in errors],
    )


@app.get("/carnets", response_model=CarnetListResponse)
async def list_carnets(
    repository: Repository,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    search: Annotated[str | None, Query()] = None,
) -> CarnetListResponse:
    """List stored carnets, newest first."""
    items = repository.list(page=page, page_size=page_size, search=search)
    return CarnetListResponse(
        page=page,
        page_size=page_size,
        total=repository.count(),
        items=[_carnet_response(s) for s in items],
    )


@app.get("/carnets/statistics", response_model=StatisticsResponse)
async def carnet_statistics(repository: Repository) -> StatisticsResponse:
    """Return counts of stored carnets."""
    return StatisticsResponse(**repository.statistics())


@app.get("/carnets/{carnet_id}", response_model=CarnetResponse)
async def get_carnet(carnet_id: int, repository: Repository) -> CarnetResponse:
    """Return one stored carnet."""
    stored = repository.get(carnet_id)
    if stored is None:
        raise HTTPException(status_code=404, detail=f"Carné {carnet_id} no encontrado")
    return _carnet_response(stored)


@app.delete("/carnets/{carnet_id}", status_code=204)
async def delete_carnet(carnet_id: int, repository: Repository) -> None:
    """Delete one stored carnet."""
    if not repository.delete(carnet_id):
        raise HTTPException(status_code=404, detail=f"Carné {carnet_id} no encontrado")
