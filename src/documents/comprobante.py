"""Payment receipt (comprobante de transacción) rule table."""

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from functools import partial

from src.extraction.cascade import Pattern
from src.extraction.parsers import parse_chilean_amount, parse_date, parse_datetime

from .base import DocumentExtractor, DocumentRecord
from .types import DocumentType

_I = re.IGNORECASE


@dataclass(frozen=True, kw_only=True)
class ComprobanteTransaccion(DocumentRecord):
    numero_folio: str | None = None
    total_pagado: Decimal | None = None
    rut: str | None = None
    formulario: str | None = None
    fecha_vencimiento: date | None = None
    moneda_pago: str | None = None
    fecha_pago: datetime | None = None
    institucion_recaudadora: str | None = None
    identificador_transaccion: str | None = None
    codigo_barras: str | None = None
    numero_referencia: str | None = None


CRITICAL_RULES = {
    "numero_folio": [Pattern(r"Folio\s+(\d+)", _I)],
    "total_pagado": [
        Pattern(r"Total Pagado\s+([\d\.,]+)", _I, transform=parse_chilean_amount),
    ],
}

ADDITIONAL_RULES = {
    "rut": [
        Pattern(r"Rut - Rol\s+(\d{8}-\d)", _I),
        Pattern(r"RUT\s+(\d{1,2}\.\d{3}\.\d{3}-\d)", _I),
        Pattern(r"RUT\s+(\d{2}\.\d{3}\.\d{3}-\d)", _I),
    ],
    "formulario": [Pattern(r"Formulario\s+(\d+)", _I)],
    "fecha_vencimiento": [
        Pattern(
            r"Vencimiento\s+(\d{2}-\d{2}-\d{4})",
            _I,
            transform=partial(parse_date, fmt="%d-%m-%Y"),
        ),
    ],
    "moneda_pago": [Pattern(r"Moneda de Pago\s+([A-Z]+)", _I)],
    "fecha_pago": [
        Pattern(
            r"Fecha Pago\s+(\d{2}-\d{2}-\d{4}\s+\d{2}:\d{2}:\d{2})",
            _I,
            transform=parse_datetime,
        ),
    ],
    "institucion_recaudadora": [
        Pattern(r"Institución Recaudadora\s+([A-Z\s]+?)(?:\s+Identificador|$)", _I),
        Pattern(r"Institución Recaudadora\s+([A-Z\s]+)", _I),
    ],
    "identificador_transaccion": [
        Pattern(r"Identificador de Transacción\s+(\d+-\d+)", _I),
        Pattern(r"Identificador de Transacción\s+([A-Z0-9\s\-]+?)(?:\s+No válido|$)", _I),
        Pattern(r"(\d+\s*-\s*\d+)"),
    ],
    "codigo_barras": [
        Pattern(r"No válido para pago en Instituciones Recaudadoras\s+(\d{26})", _I),
        Pattern(r"(\d{26}[A-Z])"),
        Pattern(r"(\d{26})"),
    ],
    "numero_referencia": [Pattern(r"(\d{26})")],
}


class ComprobanteTransaccionExtractor(DocumentExtractor):
    """Extracts folio, amount, and payment details from a receipt."""

    document_type = DocumentType.COMPROBANTE_TRANSACCION
    display_name = "Comprobante de Transacción"
    record_type = ComprobanteTransaccion
    critical_rules = CRITICAL_RULES
    additional_rules = ADDITIONAL_RULES
