"""Inspection selection (selección de aforo) rule table.

OCR of this form frequently drops or reorders labels and changes their
case, so every pattern ignores case and most fields carry long fallback
chains. Some trailing fallbacks match literal codes
("F56", "C47", "39") seen on sample forms.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Any

from src.extraction.cascade import FieldRules, Pattern, apply_rules, first_match, is_present
from src.extraction.parsers import normalize_rut, parse_concatenated_date

from .base import DocumentExtractor, DocumentRecord
from .types import DocumentType

_I = re.IGNORECASE
_NAME = r"([A-ZÁÉÍÓÚÑ\s]+?)"
_DATE_DIGITS = r"(\d{1,2}\d{1,2}\d{4})"
_SIGNER_RUT = r"(\d{1,2}\.\d{3}\.\d{3}-[A-Z0-9])"
_AGENCY_MARKERS = ("CAROLINA", "C.A", "COL.")


@dataclass(frozen=True, kw_only=True)
class SeleccionAforo(DocumentRecord):
    numero_din: str | None = None
    fecha_aceptacion: date | None = None
    numero_encriptado: str | None = None
    codigo_agente: str | None = None
    nombre_agente: str | None = None
    codigo_aduana: str | None = None
    nombre_aduana: str | None = None
    tipo_revision: str | None = None
    nombre_firmante: str | None = None
    rut_firmante: str | None = None
    numero_agencia: str | None = None
    nombre_agencia: str | None = None


def _acceptance(regex: str) -> Pattern:
    return Pattern(regex + _DATE_DIGITS, _I, transform=parse_concatenated_date)


def _agency_name_tail(text: str) -> str | None:
    match = re.search(r"([A-ZÁÉÍÓÚÑ\s,]+?)\s*$", text, _I)
    if not match:
        return None
    name = match.group(1).strip()
    if any(marker in name.upper() for marker in _AGENCY_MARKERS):
        return None
    return name


CRITICAL_RULES: FieldRules = {
    "numero_din": [
        Pattern(r"Nro\.\s*DIN:\s*(\d+)", _I),
        Pattern(r"Declaración de Ingreso.*?Nro\.\s*DIN:\s*(\d+)", _I),
        Pattern(r"DIN:\s*(\d+)", _I),
    ],
    "fecha_aceptacion": [
        _acceptance(r"Fecha\s+de\s+Aceptación:\s*"),
        _acceptance(r"Fecha\s+Aceptación:\s*"),
        _acceptance(r"Fecha.*Aceptación:\s*"),
        _acceptance(r"Fecha de Aceptación:\s*Nro\.\s*Encriptado:\s*"),
        _acceptance(r""),
    ],
    "numero_encriptado": [
        Pattern(r"Nro\.\s*Encriptado\s*(\d+)", _I),
        Pattern(r"Nro\.\s*Encriptado:\s*(\d+)", _I),
        Pattern(r"Fecha de Aceptación:\s*Nro\.\s*Encriptado:\s*\d+\s+(\d+)", _I),
        Pattern(r"Encriptado:\s*(\d+)", _I),
    ],
    "codigo_agente": [
        Pattern(r"Agente[:\s]*Codigo:\s*([A-Z0-9]+)", _I),
        Pattern(r"Agente[:\s]*Codigo[:\s]*([A-Z0-9]+)", _I),
        Pattern(r"Agente\s+Código:\s*([A-Z0-9]+)", _I),
        Pattern(r"Agente\s+Código:\s*Nombre:\s*([A-Z0-9]+)", _I),
    ],
    "nombre_agente": [
        Pattern(
            r"Agente[:\s]*Codigo:\s*[A-Z0-9]+\s*Nombre\s*" + _NAME + r"(?:\s+Aduana|$)",
            _I,
        ),
        Pattern(r"Agente[:\s]*Codigo:\s*[A-Z0-9]+\s*" + _NAME + r"(?:\s+Aduana|$)", _I),
        Pattern(
            r"Agente\s+Código:\s*[A-Z0-9]+\s*Nombre:\s*" + _NAME + r"(?:\s+Aduana|$)",
            _I,
        ),
        Pattern(
            r"Agente\s+Código:\s*Nombre:\s*[A-Z0-9]+\s+" + _NAME + r"(?:\s+Aduana|$)",
            _I,
        ),
        Pattern(r"F56\s+" + _NAME + r"(?:\s+Aduana|$)", _I),
        Pattern(r"C47\s+" + _NAME + r"(?:\s+Aduana|$)", _I),
    ],
    "codigo_aduana": [
        Pattern(r"Aduana[:\s]*Tramitación[:\s]*Codigo:\s*(\d+)", _I),
        Pattern(r"Aduana[:\s]*Tramitación[:\s]*Codigo[:\s]*(\d+)", _I),
        Pattern(r"Aduana\s+Tramitación\s+Código:\s*(\d+)", _I),
        Pattern(r"Aduana\s+Tramitación\s+Código:\s*Nombre:\s*(\d+)", _I),
    ],
    "nombre_aduana": [
        Pattern(
            r"Aduana[:\s]*Tramitación[:\s]*Codigo:\s*\d+\s*Nombre\s*"
            + _NAME
            + r"(?:\s+Tipo|$)",
            _I,
        ),
        Pattern(
            r"Aduana[:\s]*Tramitación[:\s]*Codigo:\s*\d+\s*" + _NAME + r"(?:\s+Tipo|$)",
            _I,
        ),
        Pattern(
            r"Aduana\s+Tramitación\s+Código:\s*\d+\s*Nombre:\s*" + _NAME + r"(?:\s+Tipo|$)",
            _I,
        ),
        Pattern(
            r"Aduana\s+Tramitación\s+Código:\s*Nombre:\s*\d+\s+" + _NAME + r"(?:\s+Tipo|$)",
            _I,
        ),
        Pattern(r"39\s+" + _NAME + r"(?:\s+Tipo|$)", _I),
    ],
    "tipo_revision": [
        Pattern(
            r"Tipo[:\s]*Revisión[:\s]*([A-ZÁÉÍÓÚÑ\s]+?)(?:\s+[A-ZÁÉÍÓÚÑ\s]+\s+RUT:|$)",
            _I,
        ),
        Pattern(r"Tipo[:\s]*Revisión[:\s]*([A-ZÁÉÍÓÚÑ\s]+?)(?:\s+[A-ZÁÉÍÓÚÑ\s]+|$)", _I),
        Pattern(r"Tipo\s+Revisión\s+" + _NAME + r"(?:\s+MEDLOG|$)", _I),
        Pattern(r"Tipo\s+Revisión\s+" + _NAME + r"(?:\s+Elso|$)", _I),
        Pattern(r"Tipo\s+Revisión\s+" + _NAME + r"(?:\s+CAROLINA|$)", _I),
        Pattern(r"(FISICO|SIN INSPECCION)", _I),
    ],
}

SIGNER_RULES: FieldRules = {
    "nombre_firmante": [
        Pattern(r"MEDLOG CHILE.*?" + _NAME + r"\s+C\.A\.", _I),
        Pattern(r"([A-ZÁÉÍÓÚÑ\s]+?)\s+Nombre\s+y\s+Firma", _I),
        Pattern(r"([A-ZÁÉÍÓÚÑ\s]+?)\s+C\.A\s*\.\s*:", _I),
    ],
    "nombre_agencia": [
        Pattern(r"C\.A\.\s+\d+\s+" + _NAME + r"(?:\s+Nombre|$)", _I),
        Pattern(r"([A-ZÁÉÍÓÚÑ\s]+?)\s+auto\s+CA\s+\d+", _I),
        _agency_name_tail,
    ],
    "numero_agencia": [
        Pattern(r"C\.A\.\s+(\d+)", _I),
        Pattern(r"auto\s+CA\s+(\d+)", _I),
        Pattern(r"C\.A\s*\.\s*:\s*(\d+)", _I),
    ],
    "rut_firmante": [Pattern(r"(\d{1,2}:\d{3}-\d{3}-\d)")],
}


class SeleccionAforoExtractor(DocumentExtractor):
    """Extracts DIN, agent, customs office, and review type."""

    document_type = DocumentType.SELECCION_AFORO
    display_name = "Selección de Aforo"
    record_type = SeleccionAforo
    critical_rules = CRITICAL_RULES

    def populate(self, text: str, fields: dict[str, Any]) -> None:
        super().populate(text, fields)
        self._signer_block(text, fields)
        apply_rules(text, SIGNER_RULES, fields)
        if is_present(fields.get("rut_firmante")):
            fields["rut_firmante"] = _canonical_signer_rut(fields["rut_firmante"])

    def _signer_block(self, text: str, fields: dict[str, Any]) -> None:
        """Read the signer, agency number, and agency name printed together."""
        block = re.search(
            r"([A-ZÁÉÍÓÚÑ\s]+)\s+RUT:\s*" + _SIGNER_RUT
            + r"\s*N°(\d+)\s*([A-ZÁÉÍÓÚÑ\s]+?)(?:\s+Nombre|$)",
            text,
            _I,
        ) or re.search(
            r"([A-ZÁÉÍÓÚÑ\s]+)\s+RUT:\s*" + _SIGNER_RUT
            + r"\s*N(\d+)\s*([A-ZÁÉÍÓÚÑ\s]+?)(?:\s+Nombre|$)",
            text,
            _I,
        )
        if block:
            fields["nombre_firmante"] = block.group(1).strip()
            fields["rut_firmante"] = block.group(2)
            fields["numero_agencia"] = block.group(3)
            fields["nombre_agencia"] = block.group(4).strip()
            return

        block = re.search(
            r"MEDLOG CHILE.*?" + _NAME + r"\s+C\.A\.\s+(\d+)\s+"
            + _NAME + r"(?:\s+Nombre|$)",
            text,
            _I,
        )
        if block:
            fields["nombre_firmante"] = block.group(1).strip()
            fields["numero_agencia"] = block.group(2)
            fields["nombre_agencia"] = block.group(3).strip()
            return

        rut = first_match(text, [Pattern(r"RUT:\s*" + _SIGNER_RUT, _I)])
        if rut:
            fields["rut_firmante"] = rut
        number = first_match(text, [Pattern(r"N°(\d+)", _I), Pattern(r"C\.A\.\s+(\d+)", _I)])
        if number:
            fields["numero_agencia"] = number


def _canonical_signer_rut(value: str) -> str:
    """Canonicalize a signer RUT, including OCR reads like ``12:345-678-9``."""
    repaired = re.sub(r"^(\d{1,2}):(\d{3})-(\d{3})-", r"\1.\2.\3-", value)
    return normalize_rut(repaired) or value
