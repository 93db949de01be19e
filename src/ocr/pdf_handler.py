"""PDF to image conversion for scanned carnets delivered as PDF.

Renders every page to PNG bytes so the pages can go through the same
OCR gateway as uploaded PNG scans.
"""

import io
from pathlib import Path

from pdf2image import convert_from_bytes, convert_from_path

from src.utils.logger import get_logger

logger = get_logger(__name__)

PDF_SIGNATURE = b"%PDF"


def is_pdf(data: bytes) -> bool:
    return data.startswith(PDF_SIGNATURE)


class PDFHandler:
    """Handles PDF to image conversion for OCR processing.

    Args:
        dpi: Resolution for PDF rendering. Higher values produce
            better OCR results but use more memory.
    """

    def __init__(self, dpi: int = 300) -> None:
        self.dpi = dpi

    def pdf_to_images(self, pdf_source: Path | bytes) -> list[bytes]:
        """Convert a PDF to one PNG image per page.

        Args:
            pdf_source: Path to a PDF file or raw PDF bytes.

        Returns:
            PNG bytes of each page, in page order.

        Raises:
            FileNotFoundError: If a path is given and the file does not exist.
            RuntimeError: If PDF conversion fails.
        """
        try:
            if isinstance(pdf_source, str | Path):
                path = Path(pdf_source)
                if not path.exists():
                    raise FileNotFoundError(f"PDF file not found: {path}")
                pil_images = convert_from_path(str(path), dpi=self.dpi)
            else:
                pil_images = convert_from_bytes(pdf_source, dpi=self.dpi)

            pages = []
            for img in pil_images:
                buf = io.BytesIO()
                img.save(buf, format="PNG")
                pages.append(buf.getvalue())
            logger.info("Converted PDF to %d images at %d DPI", len(pages), self.dpi)
            return pages

        except FileNotFoundError:
            raise
        except Exception as exc:
            raise RuntimeError(f"PDF conversion failed: {exc}") from exc
