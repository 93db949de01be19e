"""Tests for PDF rendering and the PDF carnet pipeline."""

import hashlib
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from src.documents.base import METHOD_MANUAL
from src.documents.carnet import CarnetAduanero
from src.documents.carnet_pdf import CarnetAduaneroPdf
from src.documents.types import DocumentType
from src.ocr.document_processor import DocumentProcessor, InvalidImageError
from src.ocr.pdf_handler import PDFHandler, is_pdf
from src.ocr.tesseract_engine import OCRResult
from src.utils.config import AppConfig, OCRConfig

PDF_BYTES = b"%PDF-1.4 fake content"

PAGE_ONE = (
    "SERVICIO NACIONAL DE ADUANAS Dirección Regional Aduana "
    "CARNÉ ADUANERO Nº 1234 Nombre ..... GONZALO ADOLFO GONZALEZ PINO"
)
PAGE_TWO = "RUT. 12.345.678-9 Fecha Emisión: 15 MAR 2020 VALIDO POR 3 AÑOS"


def _mock_pil_image(width: int = 300, height: int = 200) -> Image.Image:
    """Create a blank PIL image."""
    return Image.new("RGB", (width, height), color=(255, 255, 255))


class FakeOCR:
    """OCR gateway returning canned results in call order."""

    def __init__(self, *results: OCRResult) -> None:
        self.results = list(results)
        self.calls: list[bytes] = []

    def analyze(self, image_bytes: bytes) -> OCRResult:
        self.calls.append(image_bytes)
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


class FakePDFHandler:
    """Returns fixed page images instead of rendering."""

    def __init__(self, pages: list[bytes] | None = None, error: Exception | None = None) -> None:
        self.pages = pages if pages is not None else [b"page-1", b"page-2"]
        self.error = error

    def pdf_to_images(self, pdf_source: Path | bytes) -> list[bytes]:
        if self.error:
            raise self.error
        return self.pages


class TestPDFHandler:
    """Tests for the PDFHandler class."""

    def test_init_default_dpi(self) -> None:
        handler = PDFHandler()
        assert handler.dpi == 300

    @patch("src.ocr.pdf_handler.convert_from_path")
    def test_pdf_to_images_from_path(self, mock_convert: MagicMock) -> None:
        mock_convert.return_value = [_mock_pil_image(), _mock_pil_image()]
        handler = PDFHandler(dpi=200)

        with patch.object(Path, "exists", return_value=True):
            images = handler.pdf_to_images(Path("/fake/doc.pdf"))

        assert len(images) == 2
        mock_convert.assert_called_once_with("/fake/doc.pdf", dpi=200)

    @patch("src.ocr.pdf_handler.convert_from_bytes")
    def test_pages_are_png_bytes(self, mock_convert: MagicMock) -> None:
        mock_convert.return_value = [_mock_pil_image()]
        images = PDFHandler().pdf_to_images(PDF_BYTES)

        assert len(images) == 1
        assert images[0].startswith(b"\x89PNG\r\n\x1a\n")

    def test_pdf_to_images_file_not_found(self) -> None:
        with pytest.raises(FileNotFoundError):
            PDFHandler().pdf_to_images(Path("/nonexistent/file.pdf"))

    @patch("src.ocr.pdf_handler.convert_from_bytes", side_effect=ValueError("bad xref"))
    def test_conversion_failure(self, mock_convert: MagicMock) -> None:
        with pytest.raises(RuntimeError, match="bad xref"):
            PDFHandler().pdf_to_images(PDF_BYTES)

    def test_signature(self) -> None:
        assert is_pdf(PDF_BYTES) is True
        assert is_pdf(b"\x89PNG\r\n\x1a\n") is False


class TestPdfCarnetPipeline:
    """Tests for carnets uploaded as PDF."""

    def test_pages_read_in_order(self) -> None:
        ocr = FakeOCR(OCRResult(text=PAGE_ONE), OCRResult(text=PAGE_TWO))
        processor = DocumentProcessor(ocr_engine=ocr, pdf_handler=FakePDFHandler())

        record = processor.process(PDF_BYTES, "carnet.pdf", DocumentType.CARNET_ADUANERO)

        assert ocr.calls == [b"page-1", b"page-2"]
        assert isinstance(record, CarnetAduaneroPdf)
        assert record.file_name == "carnet.pdf"
        assert record.file_hash == hashlib.sha256(PDF_BYTES).hexdigest()
        assert record.extraction_method == METHOD_MANUAL
        assert record.confidence == 0.7
        assert record.rut == "12.345.678-9"
        assert record.estado == "Vencido"
        assert record.valid is True

    def test_pdf_for_other_types_is_rejected(self) -> None:
        ocr = FakeOCR(OCRResult(text=PAGE_ONE))
        processor = DocumentProcessor(ocr_engine=ocr, pdf_handler=FakePDFHandler())

        with pytest.raises(InvalidImageError, match="PNG"):
            processor.process(PDF_BYTES, "guia.pdf", DocumentType.GUIA_DESPACHO)
        assert ocr.calls == []

    def test_unreadable_pdf(self) -> None:
        handler = FakePDFHandler(error=RuntimeError("PDF conversion failed: bad xref"))
        processor = DocumentProcessor(
            ocr_engine=FakeOCR(OCRResult(text=PAGE_ONE)), pdf_handler=handler
        )
        with pytest.raises(InvalidImageError, match="PDF"):
            processor.process(PDF_BYTES, "carnet.pdf", "carnet_aduanero")

    def test_empty_pdf(self) -> None:
        processor = DocumentProcessor(
            ocr_engine=FakeOCR(OCRResult(text=PAGE_ONE)), pdf_handler=FakePDFHandler([])
        )
        with pytest.raises(InvalidImageError, match="páginas"):
            processor.process(PDF_BYTES, "carnet.pdf", "carnet_aduanero")

    def test_dpi_from_config(self) -> None:
        config = AppConfig(ocr=OCRConfig(pdf_dpi=150))
        processor = DocumentProcessor(config, ocr_engine=FakeOCR(OCRResult(text="")))
        assert processor.pdf_handler.dpi == 150

    def test_batch_mixes_png_and_pdf(self, png_bytes: bytes) -> None:
        ocr = FakeOCR(OCRResult(text=PAGE_ONE + " " + PAGE_TWO))
        processor = DocumentProcessor(
            ocr_engine=ocr, pdf_handler=FakePDFHandler([b"page-1"])
        )
        batch = processor.process_batch(
            [png_bytes, PDF_BYTES], "carnet_aduanero", ["a.png", "b.pdf"]
        )
        assert batch.errors == []
        assert type(batch.records[0]) is CarnetAduanero
        assert isinstance(batch.records[1], CarnetAduaneroPdf)
