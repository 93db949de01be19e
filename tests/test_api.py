"""Tests for the FastAPI REST endpoints."""

import io
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from src.api.app import app, get_processor, get_repository
from src.ocr.document_processor import DocumentProcessor
from src.ocr.tesseract_engine import OCRResult
from src.storage.repository import InMemoryCarnetRepository

CARNET_OCR = (
    "SERVICIO NACIONAL DE ADUANAS CARNÉ ADUANERO "
    "Nombre ..... GONZALO ANDRES PEREZ SOTO RUT 15.970.128-K "
    "N8 Fecha 01.02.2020 Resol. 01"
)
COMPROBANTE_OCR = "Folio 4560010758 RUT 76.123.456-7 Total Pagado 8.153.962"


def _make_test_image_bytes() -> bytes:
    """Create a minimal PNG image as bytes."""
    img = Image.new("RGB", (200, 100), color=(255, 255, 255))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class FakeOCR:
    """OCR gateway returning canned results in call order."""

    def __init__(self, *results: OCRResult) -> None:
        self.results = list(results)

    def analyze(self, image_bytes: bytes) -> OCRResult:
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


class _Harness:
    """Test client wired to a fake OCR gateway and a fresh repository."""

    def __init__(self) -> None:
        self.repository = InMemoryCarnetRepository()
        self.use_ocr(OCRResult(text=CARNET_OCR))
        app.dependency_overrides[get_processor] = lambda: self.processor
        app.dependency_overrides[get_repository] = lambda: self.repository
        self.client = TestClient(app)

    def use_ocr(self, *results: OCRResult) -> None:
        self.processor = DocumentProcessor(ocr_engine=FakeOCR(*results))


@pytest.fixture
def harness():
    """Create a test client with overridden dependencies."""
    h = _Harness()
    yield h
    app.dependency_overrides.clear()


def _upload(*names: str, content: bytes | None = None) -> list[tuple[str, tuple]]:
    data = content if content is not None else _make_test_image_bytes()
    return [("files", (name, data, "image/png")) for name in names]


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_health(self, harness: _Harness) -> None:
        with patch("src.api.app.shutil.which", return_value="/usr/bin/tesseract"):
            response = harness.client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["tesseract_available"] is True


class TestDocumentTypesEndpoint:
    """Tests for GET /documents/types."""

    def test_lists_all_types(self, harness: _Harness) -> None:
        response = harness.client.get("/documents/types")
        assert response.status_code == 200
        types = {t["name"]: t for t in response.json()["document_types"]}
        assert len(types) == 7
        assert types["comprobante_transaccion"]["critical_fields"] == [
            "numero_folio",
            "total_pagado",
        ]
        assert "numero_carne" in types["carnet_aduanero"]["fields"]


class TestProcessEndpoint:
    """Tests for POST /documents/{document_type}/process."""

    def test_carnet_is_stored(self, harness: _Harness) -> None:
        response = harness.client.post(
            "/documents/carnet_aduanero/process", files=_upload("carnet.png")
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["valid"] is True
        assert data["confidence"] == 0.8
        assert data["data"]["numero_carne"] == "N8"
        assert data["data"]["file_name"] == "carnet.png"
        assert harness.repository.count() == 1

    def test_other_types_are_not_stored(self, harness: _Harness) -> None:
        harness.use_ocr(OCRResult(text=COMPROBANTE_OCR))
        response = harness.client.post(
            "/documents/comprobante_transaccion/process", files=_upload("ct.png")
        )
        assert response.status_code == 200
        assert response.json()["data"]["numero_folio"] == "4560010758"
        assert harness.repository.count() == 0

    def test_two_pages_merged(self, harness: _Harness) -> None:
        harness.use_ocr(
            OCRResult(text="DECLARACION DE INGRESO 6020123456-7"),
            OCRResult(text="FECHA DE VENCIMIENTO: 15/07/2025"),
        )
        response = harness.client.post(
            "/documents/declaracion_ingreso/process",
            files=_upload("p1.png", "p2.png"),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["data"]["file_name"] == "DI_Combinado_2_partes"
        assert data["confidence"] == 0.7

    def test_pdf_carnet_is_stored(self, harness: _Harness) -> None:
        harness.use_ocr(OCRResult(text=CARNET_OCR + " Fecha Emisión: 15 MAR 2020"))
        with patch(
            "src.ocr.pdf_handler.convert_from_bytes",
            return_value=[Image.new("RGB", (20, 20), color=(255, 255, 255))],
        ):
            response = harness.client.post(
                "/documents/carnet_aduanero/process",
                files=[("files", ("carnet.pdf", b"%PDF-1.4 scan", "application/pdf"))],
            )
        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["confidence"] == 0.7
        assert data["data"]["fecha_emision"] == "2020-03-15"
        assert data["data"]["estado"] == "Vigente"
        assert harness.repository.count() == 1

    def test_too_many_files(self, harness: _Harness) -> None:
        response = harness.client.post(
            "/documents/declaracion_ingreso/process",
            files=_upload("1.png", "2.png", "3.png"),
        )
        assert response.status_code == 400

    def test_invalid_png(self, harness: _Harness) -> None:
        response = harness.client.post(
            "/documents/carnet_aduanero/process",
            files=_upload("fake.png", content=b"GIF89a not a png"),
        )
        assert response.status_code == 400
        assert "PNG" in response.json()["detail"]
        assert harness.repository.count() == 0

    def test_ocr_unavailable(self, harness: _Harness) -> None:
        harness.use_ocr(OCRResult.failure("Tesseract OCR no configurado"))
        response = harness.client.post(
            "/documents/carnet_aduanero/process", files=_upload("carnet.png")
        )
        assert response.status_code == 503
        assert response.json()["detail"] == "Tesseract OCR no configurado"

    def test_unknown_document_type(self, harness: _Harness) -> None:
        response = harness.client.post(
            "/documents/factura/process", files=_upload("x.png")
        )
        assert response.status_code == 422


class TestProcessTextEndpoint:
    """Tests for POST /documents/{document_type}/process-text."""

    def test_text_extraction(self, harness: _Harness) -> None:
        response = harness.client.post(
            "/documents/comprobante_transaccion/process-text",
            json={"text": COMPROBANTE_OCR},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["document_type"] == "comprobante_transaccion"
        assert data["data"]["total_pagado"] == 8153962.0
        assert data["data"]["extraction_method"] == "Texto OCR"

    def test_incomplete_text(self, harness: _Harness) -> None:
        response = harness.client.post(
            "/documents/comprobante_transaccion/process-text",
            json={"text": "Folio 4560010758"},
        )
        data = response.json()
        assert data["valid"] is False
        assert data["comments"].startswith("No se pudieron extraer")

    def test_empty_text(self, harness: _Harness) -> None:
        response = harness.client.post(
            "/documents/carnet_aduanero/process-text", json={"text": "   "}
        )
        assert response.status_code == 400


class TestBatchEndpoint:
    """Tests for POST /documents/{document_type}/batch."""

    def test_partial_failure_and_duplicates(self, harness: _Harness) -> None:
        files = (
            _upload("a.png")
            + _upload("bad.png", content=b"not an image")
            + _upload("c.png")
        )
        response = harness.client.post("/documents/carnet_aduanero/batch", files=files)

        assert response.status_code == 200
        data = response.json()
        assert data["total_documents"] == 3
        assert data["successful"] == 1
        assert data["failed"] == 2
        assert [r["file_name"] for r in data["records"]] == ["a.png"]
        assert [e["filename"] for e in data["errors"]] == ["bad.png", "c.png"]
        assert data["errors"][1]["message"] == "Carné N8 ya existe"
        assert harness.repository.count() == 1

    def test_all_fail(self, harness: _Harness) -> None:
        harness.use_ocr(OCRResult.failure("Error en el motor OCR: timeout"))
        response = harness.client.post(
            "/documents/comprobante_transaccion/batch", files=_upload("a.png")
        )
        data = response.json()
        assert data["success"] is False
        assert data["errors"][0]["message"] == "Error en el motor OCR: timeout"

    def test_batch_limit(self, harness: _Harness) -> None:
        names = [f"{i}.png" for i in range(11)]
        response = harness.client.post(
            "/documents/carnet_aduanero/batch", files=_upload(*names)
        )
        assert response.status_code == 400


class TestCarnetEndpoints:
    """Tests for the stored carnet endpoints."""

    def _store(self, harness: _Harness) -> int:
        response = harness.client.post(
            "/documents/carnet_aduanero/process", files=_upload("carnet.png")
        )
        assert response.status_code == 200
        return harness.repository.list()[0].id

    def test_list_and_search(self, harness: _Harness) -> None:
        self._store(harness)
        response = harness.client.get("/carnets", params={"search": "perez"})
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["record"]["rut"] == "15.970.128-K"

        response = harness.client.get("/carnets", params={"search": "lopez"})
        assert response.json()["items"] == []

    def test_invalid_paging(self, harness: _Harness) -> None:
        assert harness.client.get("/carnets", params={"page": 0}).status_code == 422

    def test_get_and_delete(self, harness: _Harness) -> None:
        carnet_id = self._store(harness)

        response = harness.client.get(f"/carnets/{carnet_id}")
        assert response.status_code == 200
        assert response.json()["id"] == carnet_id

        assert harness.client.delete(f"/carnets/{carnet_id}").status_code == 204
        assert harness.client.get(f"/carnets/{carnet_id}").status_code == 404
        assert harness.client.delete(f"/carnets/{carnet_id}").status_code == 404

    def test_statistics(self, harness: _Harness) -> None:
        self._store(harness)
        response = harness.client.get("/carnets/statistics")
        assert response.json() == {"total": 1, "valid": 1, "invalid": 0}
