"""Rule table for carnets delivered as scanned PDF.

The PDF layout prints the emission date with abbreviated months
(``Fecha Emisión: 15 MAR 2020``), a validity period instead of an
expiry date, and the resolution date and AGAD code of the issuer.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Any

from src.extraction.cascade import FieldRules, Pattern
from src.extraction.parsers import (
    add_years,
    normalize_rut,
    parse_abbreviated_date,
    parse_date,
)

from .carnet import ADDITIONAL_RULES, CRITICAL_RULES, CarnetAduanero, CarnetAduaneroExtractor

_I = re.IGNORECASE

ENTIDAD_ANAGENA = "anagena - asociación nacional de agentes de aduanas"
ENTIDAD_ADUANA = "Dirección Regional Aduana"
ESTADO_VIGENTE = "Vigente"
ESTADO_VENCIDO = "Vencido"


@dataclass(frozen=True, kw_only=True)
class CarnetAduaneroPdf(CarnetAduanero):
    fecha_emision: date | None = None
    fecha_vencimiento: date | None = None
    fecha_resolucion: date | None = None
    agad_cod: str | None = None
    entidad_emisora: str | None = None
    estado: str | None = None


def _emission_date(text: str) -> date | None:
    match = re.search(r"Fecha\s+Emisi[óo]n:\s*(\d{1,2})\s+([A-Z]{3})\s+(\d{4})", text, _I)
    if not match:
        return None
    return parse_abbreviated_date(*match.groups())


def _issuer(text: str) -> str | None:
    if "anagena" in text:
        return ENTIDAD_ANAGENA
    if "Aduana" in text:
        return ENTIDAD_ADUANA
    return None


PDF_CRITICAL_RULES: FieldRules = {
    **CRITICAL_RULES,
    "rut": [
        Pattern(r"RUT\.\s*(\d{1,2}\.\d{3}\.\d{3}-[0-9K])", _I, transform=normalize_rut),
        *CRITICAL_RULES["rut"],
    ],
}

PDF_ADDITIONAL_RULES: FieldRules = {
    **ADDITIONAL_RULES,
    "numero_carne": [Pattern(r"N[º°]\s*(\d+)"), *ADDITIONAL_RULES["numero_carne"]],
    "fecha_emision": [_emission_date],
    "fecha_resolucion": [
        Pattern(r"Fecha\s+(\d{2}\.\d{2}\.\d{4})", transform=lambda v: parse_date(v, "%d.%m.%Y")),
    ],
    "agad_cod": [
        Pattern(r"AGAD\s+Cod\s*[A-Z]\s*-\s*(\d+)", _I, transform=lambda n: f"E-{n}"),
    ],
    "entidad_emisora": [_issuer],
}


class CarnetAduaneroPdfExtractor(CarnetAduaneroExtractor):
    """Extracts a carnet from the OCR text of its PDF pages.

    Beyond the card fields it derives the expiry date from the
    ``VALIDO POR N AÑOS`` clause and whether the card is still current.
    """

    display_name = "Carné Aduanero PDF"
    record_type = CarnetAduaneroPdf
    critical_rules = PDF_CRITICAL_RULES
    additional_rules = PDF_ADDITIONAL_RULES
    manual_file_pipeline = True

    def populate(self, text: str, fields: dict[str, Any]) -> None:
        super().populate(text, fields)

        emitted = fields.get("fecha_emision")
        validity = re.search(r"VALIDO\s+POR\s+(\d+)\s+A[ÑN]OS?", text, _I)
        if validity and emitted:
            fields["fecha_vencimiento"] = add_years(emitted, int(validity.group(1)))

        expires = fields.get("fecha_vencimiento")
        if expires:
            fields["estado"] = ESTADO_VIGENTE if expires > date.today() else ESTADO_VENCIDO
        elif emitted:
            fields["estado"] = ESTADO_VIGENTE
