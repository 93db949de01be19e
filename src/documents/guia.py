"""Dispatch guide (guía de despacho) rule tables.

Each customs agency prints its own letterhead and labels, so the guide is
classified once and only that agency's table is applied. Guides from
unknown agencies only get the critical fields, using labels common to
both known layouts.
"""

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from functools import partial
from typing import Any

from src.extraction.cascade import FieldRules, Pattern, apply_rules, is_present
from src.extraction.parsers import (
    normalize_rut,
    parse_comma_decimal,
    parse_date,
    parse_int,
    parse_spanish_date,
    parse_us_amount,
)
from src.extraction.vendors import GuiaVendor, classify_guia_vendor
from src.utils.logger import get_logger

from .base import DocumentExtractor, DocumentRecord
from .types import DocumentType

logger = get_logger(__name__)

_I = re.IGNORECASE
_RUT = r"(\d{1,2}\.\d{3}\.\d{3}-\d)"
_WORDS = r"([A-ZÁÉÍÓÚÑ\s]+?)"
_ADDRESS = r"[A-ZÁÉÍÓÚÑ\s\d\-\.\|']"


@dataclass(frozen=True, kw_only=True)
class GuiaDespacho(DocumentRecord):
    numero_guia: str | None = None
    rut_emisor: str | None = None
    fecha_documento: date | None = None
    formato: str | None = None
    nombre_emisor: str | None = None
    giro_emisor: str | None = None
    direccion_emisor: str | None = None
    ciudad_emisor: str | None = None
    nombre_receptor: str | None = None
    rut_receptor: str | None = None
    giro_receptor: str | None = None
    direccion_receptor: str | None = None
    ciudad_receptor: str | None = None
    comuna_receptor: str | None = None
    transportista: str | None = None
    patente_vehiculo: str | None = None
    chofer: str | None = None
    ubicacion: str | None = None
    origen: str | None = None
    destino: str | None = None
    numero_despacho: str | None = None
    fecha_despacho: date | None = None
    aduana: str | None = None
    referencia: str | None = None
    tipo_operacion: str | None = None
    numero_dau: str | None = None
    conocimiento_embarque: str | None = None
    manifiesto: str | None = None
    peso: Decimal | None = None
    cif_usd: Decimal | None = None
    observaciones: str | None = None
    cantidad_bultos: int | None = None
    tipo_bulto: str | None = None
    neto: Decimal | None = None
    iva: Decimal | None = None
    total: Decimal | None = None


def _spanish_date(text: str) -> date | None:
    match = re.search(
        r"Fecha\s*:\s*(\d{1,2})\s+de\s+([A-Za-z]+)\s+del\s+(\d{4})", text, _I
    )
    if not match:
        return None
    return parse_spanish_date(*match.groups())


def _comma_rut(value: str) -> str | None:
    return normalize_rut(value.replace(",", "."))


_dash_date = partial(parse_date, fmt="%d-%m-%Y")


JORGE_STEIN_CRITICAL: FieldRules = {
    "numero_guia": [Pattern(r"No\s+(\d+)", _I)],
    "rut_emisor": [
        Pattern(r"R\.U\.T\s*\.\s*:\s*" + _RUT, _I, transform=normalize_rut),
    ],
    "fecha_documento": [_spanish_date],
}

JORGE_STEIN_ADDITIONAL: FieldRules = {
    "nombre_emisor": [
        Pattern(
            r"Agencia\s+de\s+Aduanas\s+([A-ZÁÉÍÓÚÑ\s]+?)\s+y\s+Cia\.",
            _I,
            transform=lambda name: f"Agencia de Aduanas {name} y Cía. Ltda.",
        ),
    ],
    "giro_emisor": [Pattern(r"Giro:\s*" + _WORDS + r"\s+Casa\s+Matriz:", _I)],
    "direccion_emisor": [
        Pattern(r"Casa\s+Matriz:\s*(" + _ADDRESS + r"+?)\s+SGS", _I),
    ],
    "ciudad_emisor": [
        Pattern(r"Casa\s+Matriz:\s*" + _ADDRESS + r"+?([A-ZÁÉÍÓÚÑ]+)(?:\s+SGS)", _I),
    ],
    "nombre_receptor": [
        Pattern(r"Señores\s*:\s*([A-ZÁÉÍÓÚÑ\s\.]+?)\s+Dirección", _I),
    ],
    "rut_receptor": [
        Pattern(r"R\.U\.T\.\s*:\s*(\d{1,2},\d{3},\d{3}-\d)", _I, transform=_comma_rut),
    ],
    "direccion_receptor": [
        Pattern(r"Dirección\s*:\s*([A-ZÁÉÍÓÚÑ\s\d]+?)\s+Comuna", _I),
    ],
    "comuna_receptor": [Pattern(r"Comuna\s*:\s*" + _WORDS + r"\s+Ciudad", _I)],
    "ciudad_receptor": [
        Pattern(r"Ciudad\s*:\s*" + _WORDS + r"\s+Dirección\s+de\s+Entrega", _I),
    ],
    "transportista": [
        Pattern(r"Transporte\s*:\s*" + _WORDS + r"(?:\s+Chofer|\s*$)", _I),
    ],
    "patente_vehiculo": [
        Pattern(
            r"Patente\s+Vehiculo\s*:\s*([A-ZÁÉÍÓÚÑ\s\d]+?)(?:\s+NºSELLO|\s*$)", _I
        ),
    ],
    "chofer": [Pattern(r"Chofer\s*:\s*" + _WORDS + r"(?:\s+Patente|\s*$)", _I)],
    "destino": [
        Pattern(
            r"Dirección\s+de\s+Entrega\s*:\s*([A-ZÁÉÍÓÚÑ\s\d\-\.\,]+?)(?:\s+SIRVASE|\s*$)",
            _I,
        ),
    ],
    "numero_despacho": [
        Pattern(r"Nuestro\s+Despacho\s*:\s*([A-ZÁÉÍÓÚÑ\s\d\-]+)", _I),
    ],
    "aduana": [Pattern(r"Aduana\s*:\s*" + _WORDS + r"(?:\s+R\.U\.T\.|\s*$)", _I)],
    "referencia": [
        Pattern(r"Su\s+Referencia\s*:\s*([A-ZÁÉÍÓÚÑ\s\d\-]+?)\s+Nuestro", _I),
    ],
    "conocimiento_embarque": [
        Pattern(r"Conocimiento\s+Nº:\s*([A-Z0-9\-]+?)(?:\s+Señores|\s*$)", _I),
    ],
    "manifiesto": [Pattern(r"Manifiesto\s+Nº:\s*(\d+)", _I)],
    "peso": [
        Pattern(
            r"KILOS\s+BRUTOS\s+[A-ZÁÉÍÓÚÑ\s\d]+\s+\d+\s+[A-ZÁÉÍÓÚÑ\s\d]+\s+"
            r"[A-ZÁÉÍÓÚÑ\s\d]+\s+([\d\.,]+)",
            _I,
            transform=parse_comma_decimal,
        ),
    ],
    "cif_usd": [
        Pattern(
            r"Valor\s+Aduanero\s+US\s*\$\s*([\d\.,]+)", _I, transform=parse_us_amount
        ),
    ],
    "cantidad_bultos": [
        Pattern(
            r"CANTIDAD\s+Y\s+TIPO\s+BULTOS\s+[A-ZÁÉÍÓÚÑ\s\d]+\s+(\d+)",
            _I,
            transform=parse_int,
        ),
    ],
    "tipo_bulto": [
        Pattern(
            r"CANTIDAD\s+Y\s+TIPO\s+BULTOS\s+[A-ZÁÉÍÓÚÑ\s\d]+\s+\d+\s+([A-ZÁÉÍÓÚÑ\s\d]+)",
            _I,
        ),
    ],
    "observaciones": [
        Pattern(r"OBSERVACIONES\s+([A-ZÁÉÍÓÚÑ\s\d\-\.]+?)(?:\s+Firma|\s*$)", _I),
    ],
}

ALBERTO_RUBIO_CRITICAL: FieldRules = {
    "numero_guia": [Pattern(r"N[°º]\s*(\d+)", _I)],
    "rut_emisor": [Pattern(r"R\.U\.T\.\s*:\s*" + _RUT, _I, transform=normalize_rut)],
    "fecha_documento": [
        Pattern(r"FECHA\s*:\s*(\d{1,2}-\d{1,2}-\d{4})", _I, transform=_dash_date),
    ],
}

ALBERTO_RUBIO_ADDITIONAL: FieldRules = {
    "nombre_emisor": [Pattern(r"Razón Social:\s*" + _WORDS + r"\s+Giro:", _I)],
    "giro_emisor": [Pattern(r"Giro:\s*" + _WORDS + r"\s+Dirección:", _I)],
    "direccion_emisor": [
        Pattern(r"Dirección:\s*([A-ZÁÉÍÓÚÑ\s\d\-\.]+?)\s+Teléfono:", _I),
    ],
    "ciudad_emisor": [
        Pattern(
            r"Dirección:\s*[A-ZÁÉÍÓÚÑ\s\d\-\.]+?([A-ZÁÉÍÓÚÑ]+)(?:\s+Teléfono:)", _I
        ),
    ],
    "nombre_receptor": [
        Pattern(r"SEÑOR\s*\(ES\)\s*:\s*([A-ZÁÉÍÓÚÑ\s\.]+?)\s+RUT\s*:", _I),
    ],
    "rut_receptor": [Pattern(r"RUT\s*:\s*" + _RUT, _I, transform=normalize_rut)],
    "direccion_receptor": [
        Pattern(
            r"DIRECCIÓN\s*:\s*([A-ZÁÉÍÓÚÑ\s\d\-\.]+?)\s+TIPO\s+DESPACHO\s*:", _I
        ),
    ],
    "comuna_receptor": [Pattern(r"COMUNA\s*:\s*" + _WORDS + r"\s+CIUDAD\s*:", _I)],
    "ciudad_receptor": [Pattern(r"CIUDAD\s*:\s*" + _WORDS + r"\s+ADUANA", _I)],
    "transportista": [
        Pattern(
            r"TRANSPORTADO\s+POR\s*:\s*([A-ZÁÉÍÓÚÑ\s\d\.]+?)\s+VEHÍCULO\s*:", _I
        ),
    ],
    "patente_vehiculo": [
        Pattern(r"PATENTE\s*:\s*([A-ZÁÉÍÓÚÑ\s\d\-]+?)\s+CHOFER\s*:", _I),
    ],
    "chofer": [
        Pattern(r"CHOFER\s*:\s*" + _WORDS + r"\s+DIRECCIÓN\s+DESTINO\s*:", _I),
    ],
    "destino": [
        Pattern(
            r"DIRECCIÓN\s+DESTINO\s*:\s*([A-ZÁÉÍÓÚÑ\s\d\-\.\,]+?)(?:\s+IDENTIFICACIÓN|\s*$)",
            _I,
        ),
    ],
    "numero_despacho": [Pattern(r"N°\s+DESPACHO\s*:\s*(\d+)", _I)],
    "aduana": [Pattern(r"ADUANA\s+" + _WORDS + r"\s+REF\.\s*:", _I)],
    "referencia": [Pattern(r"REF\.\s*:\s*([A-ZÁÉÍÓÚÑ\s\d\-]+?)\s+NAVE:", _I)],
    "conocimiento_embarque": [
        Pattern(
            r"CONOCIMIENTO\s+N°\s*:\s*([A-Z0-9\-]+?)(?:\s+IDENTIFICACIÓN|\s*$)", _I
        ),
    ],
    "manifiesto": [Pattern(r"MANIFIESTO\s+N°\s*:\s*(\d+)", _I)],
    "peso": [
        Pattern(
            r"PESO\s+BRUTO\s*\(Kgs\.\)\s*:\s*([\d\.,]+)",
            _I,
            transform=parse_comma_decimal,
        ),
    ],
    "cif_usd": [
        Pattern(
            r"VALOR\s+CIF\s*:\s*USD\s*\$\s*:\s*([\d\.,]+)",
            _I,
            transform=parse_comma_decimal,
        ),
    ],
    "cantidad_bultos": [Pattern(r"CANTIDAD\s+(\d+)", _I, transform=parse_int)],
    "tipo_bulto": [Pattern(r"TIPO\s+O\s+CLASE\s+([A-ZÁÉÍÓÚÑ\s\d]+)", _I)],
    "observaciones": [
        Pattern(
            r"OBSERVACIONES\s+RECEPCION\s+CONSIGNATARIO:\s*"
            r"([A-ZÁÉÍÓÚÑ\s\d\-\.]+?)(?:\s+Timbre|\s*$)",
            _I,
        ),
    ],
}

UNKNOWN_CRITICAL: FieldRules = {
    "numero_guia": [Pattern(r"(?:No\s+|N[°º]\s*)(\d+)", _I)],
    "rut_emisor": [
        Pattern(r"R\.U\.T\s*\.?\s*:\s*" + _RUT, _I, transform=normalize_rut),
    ],
    "fecha_documento": [
        Pattern(
            r"Fecha\s*:\s*(\d{1,2}-\d{1,2}-\d{4})", _I, transform=_dash_date
        ),
    ],
}

VENDOR_TABLES: dict[GuiaVendor, tuple[FieldRules, FieldRules]] = {
    GuiaVendor.JORGE_STEIN: (JORGE_STEIN_CRITICAL, JORGE_STEIN_ADDITIONAL),
    GuiaVendor.ALBERTO_RUBIO: (ALBERTO_RUBIO_CRITICAL, ALBERTO_RUBIO_ADDITIONAL),
    GuiaVendor.UNKNOWN: (UNKNOWN_CRITICAL, {}),
}


class GuiaDespachoExtractor(DocumentExtractor):
    """Extracts dispatch guide fields using the detected agency's layout."""

    document_type = DocumentType.GUIA_DESPACHO
    display_name = "Guía de Despacho"
    record_type = GuiaDespacho
    critical_rules = UNKNOWN_CRITICAL
    defaults = {
        "origen": "N",
        "conocimiento_embarque": "N",
        "tipo_bulto": "DESPACHO",
    }

    def populate(self, text: str, fields: dict[str, Any]) -> None:
        vendor = classify_guia_vendor(text)
        fields["formato"] = str(vendor)
        critical, additional = VENDOR_TABLES[vendor]

        apply_rules(text, critical, fields)
        for name in critical:
            if is_present(fields.get(name)):
                logger.info("Guía de Despacho %s: %s", name, fields[name])
        apply_rules(text, additional, fields)

        if fields.get("fecha_documento") is not None:
            fields["fecha_despacho"] = fields["fecha_documento"]
