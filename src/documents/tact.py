"""Container dispatch authorization (TACT/ADC) rule table.

Authorizations are issued by different shipping lines. The carrier is
classified once and drives the issuer name, the bill of lading default,
and the seal number fallbacks.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from src.extraction.cascade import FieldRules, Pattern, apply_rules, first_match
from src.extraction.parsers import normalize_rut, parse_datetime
from src.extraction.vendors import Carrier, classify_carrier
from src.utils.logger import get_logger

from .base import DocumentExtractor, DocumentRecord
from .types import DocumentType

logger = get_logger(__name__)

_I = re.IGNORECASE
_CONTAINER_HYPHEN = r"[A-Z]{4}\d{6}-\d"
_CONTAINER_PLAIN = r"[A-Z]{4}\d{7}"


@dataclass(frozen=True, kw_only=True)
class TactAdc(DocumentRecord):
    numero_tatc: str | None = None
    numero_contenedor: str | None = None
    numero_sellos: str | None = None
    empresa_emisora: str | None = None
    direccion_empresa: str | None = None
    rut_emisor: str | None = None
    fecha_emision: datetime | None = None
    tipo_documento: str | None = None
    bl_armador: str | None = None
    consignatario: str | None = None
    rut_consignatario: str | None = None
    direccion_consignatario: str | None = None
    forwarder: str | None = None
    linea_operadora: str | None = None
    servicio_almacenaje: str | None = None
    guarda_almacen: str | None = None
    rut_guarda_almacen: str | None = None
    puerto_origen: str | None = None
    puerto_descarga: str | None = None
    puerto_embarque: str | None = None
    puerto_destino: str | None = None
    puerto_transbordo: str | None = None
    tipo_bulto: str | None = None
    cantidad: int | None = None
    peso: Decimal | None = None
    volumen: Decimal | None = None
    estado: str | None = None


def _issue_timestamp(text: str) -> datetime | None:
    match = re.search(
        r"FECHA GARANTIA\s+(\d{4}-\d{2}-\d{2})\s+(\d{2}:\d{2}:\d{2})", text, _I
    )
    if match:
        return parse_datetime(" ".join(match.groups()), "%Y-%m-%d %H:%M:%S")
    match = re.search(r"Fecha-Hora\s+(\d{2}-\d{2}-\d{4})\s+(\d{2}:\d{2}:\d{2})", text, _I)
    if match:
        return parse_datetime(" ".join(match.groups()))
    match = re.search(
        r"GARANTIA\s*-\s*FECHA\s+(\d+)\s+(\d{2}-\d{2}-\d{4})\s+(\d{2}:\d{2}:\d{2})",
        text,
        _I,
    )
    if match:
        return parse_datetime(f"{match.group(2)} {match.group(3)}")
    match = re.search(r"(\d{1,2}/\d{1,2}/\d{2}),\s*(\d{1,2}:\d{2})", text)
    if match:
        return parse_datetime(" ".join(match.groups()), "%d/%m/%y %H:%M")
    return None


def _container_count(text: str) -> int | None:
    count = len(re.findall(_CONTAINER_HYPHEN, text, _I)) or len(
        re.findall(_CONTAINER_PLAIN, text, _I)
    )
    return count or None


CRITICAL_RULES: FieldRules = {
    "numero_tatc": [
        Pattern(r"TATC\s+(\d{16})", _I),
        Pattern(r"Número Tatc\s+(\d{16})", _I),
        Pattern(r"(\d{16})\s+\d{2}/\d{2}/\d{4}"),
        Pattern(r"(\d{16})"),
    ],
    "numero_contenedor": [
        Pattern(r"Contenedor\s+(" + _CONTAINER_HYPHEN + ")", _I, transform=str.upper),
        Pattern(r"Contenedor\s+(" + _CONTAINER_PLAIN + ")", _I, transform=str.upper),
        Pattern(r"(" + _CONTAINER_HYPHEN + r")\s+\d+\s+[A-Z]+", _I, transform=str.upper),
        Pattern(r"(" + _CONTAINER_PLAIN + ")", _I, transform=str.upper),
    ],
}

ADDITIONAL_RULES: FieldRules = {
    "tipo_documento": [
        Pattern(r"AUTORIZACIÓN DE DESPACHO DE CONTENEDORES A\.D\.C\.", _I, group=0),
        Pattern(r"Autorización Despacho de Contenedores", _I, group=0),
        Pattern(r"Servicio de Liberación", _I, group=0),
    ],
    "puerto_origen": [
        Pattern(r"PUERTO\s+([A-Z]+)", _I),
        Pattern(r"AGENCIA\s+([A-Z\s]+?)(?=\s+NAVE|$)", _I),
    ],
    "linea_operadora": [
        Pattern(r"NAVE\s*/\s*VIAJE\s+([A-Z\s]+)", _I),
        Pattern(r"NAVE\s*-\s*VIAJE\s+([A-Z\s/]+?)(?=\s+BILL|$)", _I),
    ],
    "fecha_emision": [_issue_timestamp],
    "tipo_bulto": [
        Pattern(r"Pies Tipo\s+(\d+\s+[A-Z]+)", _I),
        Pattern(r"Tipo\s+(\d+[A-Z]+)", _I),
        Pattern(r"(" + _CONTAINER_PLAIN + r")\s+(\d+[A-Z]+)", _I, group=2),
    ],
    "cantidad": [_container_count],
    "guarda_almacen": [
        Pattern(r"MEDLOG CHILE EXTRAPORTUARIOS LA POLVORA", _I, group=0),
        Pattern(r"MEDLOG\s+([A-Z\s]+)", _I, transform=lambda v: f"MEDLOG {v}"),
        Pattern(
            r"CHILE INLAND SERVICES\s*\(([A-Z0-9]+)\)",
            _I,
            transform=lambda v: f"CHILE INLAND SERVICES ({v})",
        ),
    ],
}


class TactAdcExtractor(DocumentExtractor):
    """Extracts TATC, container, and seal data from a dispatch authorization."""

    document_type = DocumentType.TACT_ADC
    display_name = "TACT/ADC"
    record_type = TactAdc
    critical_rules = CRITICAL_RULES
    additional_rules = ADDITIONAL_RULES
    defaults = {"estado": "AUTORIZADO"}
    success_message = (
        "Documento TACT/ADC (Autorización de Despacho de Contenedores) "
        "procesado exitosamente"
    )

    def populate(self, text: str, fields: dict[str, Any]) -> None:
        carrier = classify_carrier(text)
        if carrier is not Carrier.UNKNOWN:
            fields["empresa_emisora"] = str(carrier)

        super().populate(text, fields)
        fields["numero_sellos"] = self._seal_number(text, fields.get("numero_contenedor"))
        fields["bl_armador"] = self._bill_of_lading(text, carrier)
        self._parties(text, fields)

        # last resort: the container owner prefix
        fields["servicio_almacenaje"] = first_match(
            text,
            [
                Pattern(r"Depósito\s+([A-Z\s]+)", _I),
                Pattern(r"Deposito\s+([A-Z\s]+)", _I),
                Pattern(r"(CHILE INLAND SERVICES)", _I),
                lambda _: (fields.get("numero_contenedor") or "")[:4],
            ],
        )

    def _seal_number(self, text: str, container: str | None) -> str | None:
        """Find the seal number, borrowing from the B/L or container if needed."""
        seal = first_match(
            text,
            [
                Pattern(r"Sellos:\s*([A-Z0-9]+)", _I),
                Pattern(r"([A-Z]{3,4}\d{6,7})", _I, transform=str.upper),
            ],
        )
        if seal:
            return seal
        bl_match = re.search(r"BILL OF LADING\s+([A-Z0-9]+)", text, _I)
        if bl_match is None:
            return container
        bill = bl_match.group(1)
        return bill[-6:] if len(bill) >= 6 else None

    def _bill_of_lading(self, text: str, carrier: Carrier) -> str | None:
        bill = first_match(
            text,
            [
                Pattern(r"BL\s+([A-Z0-9]+)", _I),
                Pattern(r"BILL OF LADING\s+([A-Z0-9]+)", _I),
            ],
        )
        if bill:
            return bill
        if carrier is Carrier.IANTAYLOR or "Servicios de Liberación" in text:
            return "0"
        return None

    def _parties(self, text: str, fields: dict[str, Any]) -> None:
        """Extract customs agent, client, and consignee blocks."""
        agent = re.search(r"AGENTE ADUANA\s+(\d{8}-\d)\s+([^-]+)", text, _I)
        if agent:
            fields["rut_emisor"] = normalize_rut(agent.group(1))
            fields["direccion_empresa"] = agent.group(2).strip()
        else:
            agent = re.search(r"AGENTE DE ADUANA\s+([A-Z\s]+)", text, _I)
            if agent:
                fields["direccion_empresa"] = agent.group(1).strip()

        client = re.search(r"CLIENTE\s+(\d{8}-\d)\s+([^-]+)", text, _I)
        if client:
            fields["rut_consignatario"] = normalize_rut(client.group(1))
            fields["consignatario"] = client.group(2).strip()
        else:
            client = re.search(
                r"CLIENTE GARANTIA\s+([A-Z\s]+?)(?=\s+CONSIGNATARIO|\s+GARANTIA|$)",
                text,
                _I,
            )
            if client:
                fields["consignatario"] = client.group(1).strip()

        if fields.get("consignatario"):
            return
        consignee = re.search(r"CONSIGNATARIO\s+(\d{8}-\d)\s+([^-]+)", text, _I)
        if consignee:
            fields["rut_consignatario"] = normalize_rut(consignee.group(1))
            fields["consignatario"] = consignee.group(2).strip()
            return
        consignee = re.search(r"CONSIGNATARIO\s+([A-Z\s]+?)(?=\s+GARANTIA|$)", text, _I)
        if consignee:
            fields["consignatario"] = consignee.group(1).strip()
