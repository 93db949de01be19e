"""Tesseract OCR gateway.

Turns image bytes into raw text. Failures are returned as an
unsuccessful :class:`OCRResult` rather than as text, so callers never
run extraction on an error message.
"""

import io
from dataclasses import dataclass
from typing import Protocol

import pytesseract
from PIL import Image, UnidentifiedImageError

from src.utils.logger import get_logger, preview

logger = get_logger(__name__)


@dataclass(frozen=True)
class OCRResult:
    """Outcome of one OCR call."""

    text: str
    success: bool = True
    error: str | None = None
    language: str | None = None

    @classmethod
    def failure(cls, message: str) -> "OCRResult":
        return cls(text="", success=False, error=message)


class OCRGateway(Protocol):
    """Anything that can read text from image bytes."""

    def analyze(self, image_bytes: bytes) -> OCRResult: ...


class TesseractEngine:
    """OCR gateway backed by a local Tesseract install.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: OCR language code.
        psm: Tesseract page segmentation mode.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "spa",
        psm: int = 3,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.psm = psm

    def analyze(self, image_bytes: bytes) -> OCRResult:
        """Read the text of an image.

        Text blocks are joined with single spaces.

        Args:
            image_bytes: Encoded image content.

        Returns:
            The recognized text, or a failed result naming the cause.
        """
        try:
            with Image.open(io.BytesIO(image_bytes)) as image:
                raw = pytesseract.image_to_string(
                    image, lang=self.default_lang, config=f"--psm {self.psm}"
                )
        except pytesseract.TesseractNotFoundError:
            logger.error("Tesseract executable not found")
            return OCRResult.failure("Tesseract OCR no configurado")
        except (pytesseract.TesseractError, UnidentifiedImageError, OSError) as exc:
            logger.error("OCR engine error: %s", exc)
            return OCRResult.failure(f"Error en el motor OCR: {exc}")

        text = " ".join(block.strip() for block in raw.split("\n\n") if block.strip())
        logger.info("OCR extracted %d characters: %s", len(text), preview(text))
        return OCRResult(text=text, language=self.default_lang)
