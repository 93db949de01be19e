"""File pipeline from scanned images to extracted customs records.

Checks the PNG signature, hashes the content, runs OCR through the
gateway, and hands the text to the extractor for the document type.
Types with a PDF rule table also accept scanned PDFs, whose pages are
rendered to PNG and read one after another.
"""

import dataclasses
import hashlib
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from src.documents.base import DocumentRecord
from src.documents.registry import (
    FILE_PREFIXES,
    PDF_EXTRACTORS,
    get_extractor,
    get_pdf_extractor,
)
from src.documents.types import DocumentType, Pipeline
from src.utils.config import AppConfig
from src.utils.logger import get_logger
from src.validation.rules_engine import RulesEngine

from .pdf_handler import PDFHandler, is_pdf
from .tesseract_engine import OCRGateway, TesseractEngine

logger = get_logger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

Source = Path | str | bytes | BinaryIO


class DocumentProcessingError(Exception):
    """Base error for documents that cannot be processed."""


class InvalidImageError(DocumentProcessingError, ValueError):
    """The uploaded file is not a valid PNG image."""

    def __init__(self, message: str = "El archivo no es un PNG válido") -> None:
        super().__init__(message)


class OCRUnavailableError(DocumentProcessingError):
    """The OCR gateway could not read the image."""


@dataclass
class BatchError:
    """A file that failed inside a batch."""

    filename: str
    message: str


@dataclass
class BatchResult:
    """Outcome of a batch, both lists in submission order."""

    records: list[DocumentRecord] = field(default_factory=list)
    errors: list[BatchError] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.records) + len(self.errors)


def validate_png(data: bytes) -> None:
    """Raise :class:`InvalidImageError` unless ``data`` starts with the PNG signature."""
    if not data.startswith(PNG_SIGNATURE):
        raise InvalidImageError()


def compute_hash(source: bytes | BinaryIO) -> str:
    """Return the lowercase hex SHA-256 of bytes or a binary stream.

    A stream is read to the end and rewound to the start.
    """
    if isinstance(source, bytes):
        return hashlib.sha256(source).hexdigest()
    digest = hashlib.sha256()
    source.seek(0)
    for chunk in iter(lambda: source.read(65536), b""):
        digest.update(chunk)
    source.seek(0)
    return digest.hexdigest()


def _read_source(source: Source) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, (str, Path)):
        return Path(source).read_bytes()
    source.seek(0)
    data = source.read()
    source.seek(0)
    return data


class DocumentProcessor:
    """End-to-end pipeline for scanned customs documents.

    Args:
        config: Application configuration object.
        ocr_engine: OCR gateway. Defaults to a Tesseract engine built
            from ``config.ocr``.
        rules_engine: Validity rules shared by all extractors.
        pdf_handler: Renders PDF uploads to page images.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        ocr_engine: OCRGateway | None = None,
        rules_engine: RulesEngine | None = None,
        pdf_handler: PDFHandler | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.ocr_engine = ocr_engine or TesseractEngine(
            tesseract_cmd=self.config.ocr.tesseract_cmd,
            default_lang=self.config.ocr.default_lang,
            psm=self.config.ocr.psm,
        )
        rules_path = self.config.extraction.rules_path
        self.rules_engine = rules_engine or RulesEngine(
            Path(rules_path) if rules_path else None
        )
        self.pdf_handler = pdf_handler or PDFHandler(dpi=self.config.ocr.pdf_dpi)

    def process(
        self,
        source: Source,
        filename: str | None = None,
        document_type: DocumentType | str = DocumentType.CARNET_ADUANERO,
    ) -> DocumentRecord:
        """Process one scanned image.

        Args:
            source: Path, raw bytes, or a binary stream of a PNG image,
                or of a PDF for types that accept one.
            filename: Display name. Defaults to the path's name.
            document_type: Which rule table to apply.

        Returns:
            The extracted record with file name and hash set.

        Raises:
            InvalidImageError: If the content is not a PNG image, or not
                a readable PDF.
            OCRUnavailableError: If the OCR gateway failed.
        """
        if filename is None:
            filename = Path(source).name if isinstance(source, (str, Path)) else "document"
        logger.info("Processing %s as %s", filename, document_type)

        data = _read_source(source)
        if is_pdf(data) and DocumentType(document_type) in PDF_EXTRACTORS:
            file_hash = compute_hash(data)
            text = "\n".join(self._read(page, filename) for page in self._pdf_pages(data))
            extractor = get_pdf_extractor(
                document_type, self.config.extraction, self.rules_engine
            )
        else:
            validate_png(data)
            file_hash = compute_hash(data)
            text = self._read(data, filename)
            extractor = get_extractor(document_type, self.config.extraction, self.rules_engine)

        record = extractor.extract(text, Pipeline.FILE)
        return dataclasses.replace(record, file_name=filename, file_hash=file_hash)

    def _read(self, image: bytes, filename: str) -> str:
        result = self.ocr_engine.analyze(image)
        if not result.success:
            logger.error("OCR failed for %s: %s", filename, result.error)
            raise OCRUnavailableError(result.error or "OCR no disponible")
        return result.text

    def _pdf_pages(self, data: bytes) -> list[bytes]:
        try:
            pages = self.pdf_handler.pdf_to_images(data)
        except RuntimeError as exc:
            raise InvalidImageError(f"El archivo no es un PDF válido: {exc}") from exc
        if not pages:
            raise InvalidImageError("El PDF no contiene páginas")
        return pages

    def process_text(
        self, text: str, document_type: DocumentType | str
    ) -> DocumentRecord:
        """Extract a record from text that was already OCR'd."""
        extractor = get_extractor(document_type, self.config.extraction, self.rules_engine)
        return extractor.extract(text, Pipeline.TEXT)

    def process_many(
        self,
        sources: Sequence[Source],
        document_type: DocumentType | str,
        filenames: Sequence[str] | None = None,
    ) -> DocumentRecord:
        """Process several scanned pages of the same document.

        Each field takes the first non-empty value across the pages.

        Args:
            sources: Pages in reading order.
            document_type: Which rule table to apply.
            filenames: Display names matching ``sources``.

        Returns:
            One merged record. A single page is returned unchanged.

        Raises:
            ValueError: If ``sources`` is empty.
            InvalidImageError: If any page is not a PNG image.
            OCRUnavailableError: If the OCR gateway failed on any page.
        """
        if not sources:
            raise ValueError("At least one file is required")

        doc_type = DocumentType(document_type)
        names = list(filenames) if filenames else [None] * len(sources)
        records = [
            self.process(source, name, doc_type) for source, name in zip(sources, names)
        ]
        if len(records) == 1:
            return records[0]

        extractor = get_extractor(doc_type, self.config.extraction, self.rules_engine)
        merged_name = f"{FILE_PREFIXES[doc_type]}_Combinado_{len(records)}_partes"
        logger.info("Merging %d pages into %s", len(records), merged_name)
        return extractor.merge(records, file_name=merged_name)

    def process_batch(
        self,
        sources: Sequence[Source],
        document_type: DocumentType | str,
        filenames: Sequence[str] | None = None,
    ) -> BatchResult:
        """Process independent documents one after another.

        A failing file is recorded as a :class:`BatchError` and the batch
        carries on.

        Args:
            sources: Documents in submission order.
            document_type: Which rule table to apply.
            filenames: Display names matching ``sources``.

        Returns:
            Records and errors, each in submission order.
        """
        batch = BatchResult()
        names = list(filenames) if filenames else [None] * len(sources)
        for source, name in zip(sources, names):
            if name is None:
                name = Path(source).name if isinstance(source, (str, Path)) else "document"
            try:
                batch.records.append(self.process(source, name, document_type))
            except (DocumentProcessingError, OSError) as exc:
                logger.error("Failed to process %s: %s", name, exc)
                batch.errors.append(BatchError(filename=name, message=str(exc)))

        logger.info(
            "Batch finished: %d processed, %d failed",
            len(batch.records),
            len(batch.errors),
        )
        return batch
