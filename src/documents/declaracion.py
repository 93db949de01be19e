"""Import declaration (declaración de ingreso, DIN) rule table.

Labels are matched case-sensitively and most values are kept as the
printed strings. A few literal fallbacks (agent, consignor, ports) come
from sample declarations and only fire on those exact names.
"""

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from functools import partial

from src.extraction.cascade import FieldRules, Pattern
from src.extraction.parsers import normalize_rut, parse_chilean_amount, parse_date

from .base import DocumentExtractor, DocumentRecord
from .types import DocumentType

_AMOUNT = r"(\d{1,3}(?:\.\d{3})*(?:,\d{2})?)"
_INTEGER = r"(\d{1,3}(?:\.\d{3})*)"
_RUT = r"RUT[:\s]*(\d{1,2}\.\d{3}\.\d{3}-\d)"
_slash_date = partial(parse_date, fmt="%d/%m/%Y")


@dataclass(frozen=True, kw_only=True)
class DeclaracionIngreso(DocumentRecord):
    numero_identificacion: str | None = None
    fecha_vencimiento: date | None = None
    tipo_operacion: str | None = None
    codigo_tipo_operacion: str | None = None
    tipo_bulto: str | None = None
    peso_bruto: str | None = None
    sello_contenedor: str | None = None
    fecha_aceptacion: date | None = None
    total_pagar: str | None = None
    aduana: str | None = None
    despachante: str | None = None
    nombre_importador: str | None = None
    rut_importador: str | None = None
    descripcion_mercancias: str | None = None
    consignatario: str | None = None
    rut_consignatario: str | None = None
    consignante: str | None = None
    pais_origen: str | None = None
    puerto_embarque: str | None = None
    puerto_desembarque: str | None = None
    compania_transportista: str | None = None
    manifiesto: str | None = None
    documento_transporte: str | None = None
    valor_cif: str | None = None
    valor_fob: str | None = None
    flete: str | None = None
    seguro: str | None = None
    moneda: str | None = None
    forma_pago: str | None = None
    clausula_compra: str | None = None
    certificado_origen: str | None = None


def _largest_amount(
    text: str,
    pattern: str,
    below: Decimal | None = None,
    above: Decimal | None = None,
) -> str | None:
    """Pick the printed amount with the largest value inside a range.

    Args:
        text: Text to scan.
        pattern: Regex with one group capturing a Chilean-format amount.
        below: Exclusive upper bound.
        above: Exclusive lower bound.

    Returns:
        The amount as printed, or ``None`` when none fits.
    """
    best: tuple[Decimal, str] | None = None
    for raw in re.findall(pattern, text):
        value = parse_chilean_amount(raw)
        if value is None:
            continue
        if below is not None and value >= below:
            continue
        if above is not None and value <= above:
            continue
        if best is None or value > best[0]:
            best = (value, raw)
    return best[1] if best else None


_largest_below_100k = partial(_largest_amount, pattern=_AMOUNT, below=Decimal(100000))


def _cif_value(text: str) -> str | None:
    """Pick the CIF value: the largest positive amount below 100.000.

    Nothing is picked unless some amount ends the text or precedes a label.
    """
    if not re.search(_AMOUNT + r"(?=\s*$|\s*[A-Z])", text):
        return None
    return _largest_amount(text, _AMOUNT, below=Decimal(100000), above=Decimal(0))


CRITICAL_RULES: FieldRules = {
    "numero_identificacion": [Pattern(r"(\d{10}-\d)")],
    "fecha_vencimiento": [
        Pattern(
            r"FECHA\s+DE\s+VENCIMIENTO[:\s]*(\d{2}/\d{2}/\d{4})", transform=_slash_date
        ),
    ],
    "tipo_operacion": [Pattern(r"Tipo\s+Operacion[:\s]*([A-Z\s\.]+?)(?=\d{3}|$)")],
    "codigo_tipo_operacion": [Pattern(r"Tipo\s+Operacion[:\s]*[A-Z\s\.]+?\s*(\d{3})")],
    "tipo_bulto": [Pattern(r"CONT40[:\s]*(\d+)", transform=lambda n: f"CONT40 {n}")],
    "peso_bruto": [
        Pattern(r"CUENTAS\s+Y\s+VALORES[:\s]*.*?" + _AMOUNT, re.DOTALL),
        _largest_below_100k,
    ],
    "sello_contenedor": [Pattern(r"([A-Z]{4}\s+\d{6}-\d\s+SELLO\s+[A-Z0-9]+)")],
    "fecha_aceptacion": [
        Pattern(
            r"FECHA\s+DE\s+ACEPTACIÓN[:\s]*(\d{2}/\d{2}/\d{4})", transform=_slash_date
        ),
    ],
    "total_pagar": [
        Pattern(r"OPERACIONES\s+CON\s+PAGO\s+DIFERIDO[:\s]*.*?" + _INTEGER, re.DOTALL),
        partial(_largest_amount, pattern=_INTEGER, above=Decimal(1000000)),
    ],
}

ADDITIONAL_RULES: FieldRules = {
    "nombre_importador": [
        Pattern(r"([A-Z]+\s+[A-Z]+\s+[A-Z]+)(?=\r\n|\s+\d{2}\s+[A-Z])"),
    ],
    "rut_importador": [Pattern(_RUT, transform=normalize_rut)],
    "descripcion_mercancias": [
        Pattern(
            r"DESCRIPCION\s+DE\s+MERCANCIAS[:\s]*([A-Z0-9\s\-\.]+?)(?=\d{4}|$)"
        ),
    ],
    "aduana": [Pattern(r"(SAN\s+ANTONIO)")],
    "despachante": [Pattern(r"(WALTER\s+PEREZ\s+SALAS)")],
    "consignatario": [
        Pattern(r"IDENTIFICACION[:\s]*([A-Z\s&\.]+?)(?=\r\n|\s+UNION|\s+Comuna)"),
    ],
    "rut_consignatario": [Pattern(_RUT, transform=normalize_rut)],
    "consignante": [Pattern(r"(BOHUA\s+TRADE\s+CO[\.\s]+LIMITED?)")],
    "pais_origen": [Pattern(r"(CHINA)")],
    "puerto_embarque": [Pattern(r"(NWGBO|NINGBO)")],
    "puerto_desembarque": [Pattern(r"SAN ANTONIO", group=0)],
    "compania_transportista": [
        Pattern(r"(MEDITERRANEAN\s+SHIPPING\s+CO[\.\s]+SA[I]?)"),
    ],
    "manifiesto": [Pattern(r"Manifiesto[:\s]*(\d+)")],
    "documento_transporte": [Pattern(r"Docto\.\s+Transporte[:\s]*([A-Z0-9]+)")],
    "valor_cif": [_cif_value],
    "valor_fob": [Pattern(r"Valor\s+EX-Fábrica[:\s]*([\d\.,]+)")],
    "flete": [Pattern(r"Gastos\s+Hasta\s+FOB[:\s]*([\d\.,]+)")],
    "seguro": [Pattern(r"Seguro[:\s]*([\d\.,]+)")],
    "moneda": [Pattern(r"Moneda[:\s]*([A-Z\s]+)")],
    "forma_pago": [Pattern(r"Forva\s+Pago[:\s]*([A-Z]+)")],
    "clausula_compra": [Pattern(r"(CFR)")],
    "certificado_origen": [Pattern(r"CERT\.ORIG[:\s]*([A-Z0-9]+)")],
}


class DeclaracionIngresoExtractor(DocumentExtractor):
    """Extracts the identification number and cargo details of a DIN."""

    document_type = DocumentType.DECLARACION_INGRESO
    display_name = "Declaración de Ingreso"
    record_type = DeclaracionIngreso
    critical_rules = CRITICAL_RULES
    additional_rules = ADDITIONAL_RULES
    manual_file_pipeline = True
