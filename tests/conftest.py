"""Shared test fixtures for the customs document OCR test suite."""

import io
from pathlib import Path

import pytest
from PIL import Image


def _make_png_bytes(width: int = 200, height: int = 100) -> bytes:
    """Create a small white PNG image as bytes."""
    img = Image.new("RGB", (width, height), color=(255, 255, 255))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    """Create a minimal valid PNG image."""
    return _make_png_bytes()


@pytest.fixture
def comprobante_text() -> str:
    """OCR text of a paid transaction receipt."""
    return (
        "TESORERIA GENERAL DE LA REPUBLICA\r\n"
        "Folio 4560010758\r\n"
        "RUT 76.123.456-7\r\n"
        "Total Pagado 8.153.962\n"
    )


@pytest.fixture
def carnet_text() -> str:
    """OCR text of a customs agent card."""
    return (
        "SERVICIO NACIONAL DE ADUANAS\n"
        "CARNÉ ADUANERO\n"
        "Nombre ..... GONZALO ANDRES PEREZ SOTO\n"
        "RUT 15.970.128-K\n"
        "N8 Fecha 01.02.2020 Resol. 01\n"
    )


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
