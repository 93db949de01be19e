"""Reception document (documento de recepción, D.R.) rule table.

Labels are matched case-sensitively. Many fields end at a line break in
the printed form; on normalized text those captures only succeed when
the value runs to the end of the text.
"""

import re
from dataclasses import dataclass
from datetime import date
from functools import partial
from typing import Any

from src.extraction.cascade import FieldRules, Pattern, is_present
from src.extraction.parsers import normalize_rut, parse_date

from .base import DocumentExtractor, DocumentRecord
from .types import DocumentType

_EOL = r"(?=\r\n|\n|$)"
_slash_date = partial(parse_date, fmt="%d/%m/%Y")


@dataclass(frozen=True, kw_only=True)
class DocumentoRecepcion(DocumentRecord):
    numero_documento: str | None = None
    situacion_documento: str | None = None
    numero_manifiesto: str | None = None
    fecha_manifiesto_sna: date | None = None
    fecha_inicio_almacenaje: date | None = None
    fecha_inicio_90_dias: date | None = None
    fecha_termino_90_dias: date | None = None
    tipo_documento: str | None = None
    bl_armador: str | None = None
    consignatario: str | None = None
    rut_consignatario: str | None = None
    direccion_consignatario: str | None = None
    linea_operadora: str | None = None
    servicio_almacenaje: str | None = None
    guarda_almacen: str | None = None
    rut_guarda_almacen: str | None = None
    puerto_origen: str | None = None
    puerto_embarque: str | None = None
    puerto_descarga: str | None = None
    puerto_destino: str | None = None
    puerto_transbordo: str | None = None
    nave_viaje: str | None = None
    almacen: str | None = None
    destino_carga: str | None = None
    zona: str | None = None
    origen: str | None = None
    tipo_bulto: str | None = None
    contenedor: str | None = None
    tatc: str | None = None
    cantidad: str | None = None
    peso: str | None = None
    volumen: str | None = None
    estado: str | None = None
    rut_emisor: str | None = None
    fecha_emision: str | None = None
    medio_emision: str | None = None
    forwarder: str | None = None
    agencia_aduana: str | None = None
    ubicacion: str | None = None
    marcas: str | None = None


def _without_spaces(value: str) -> str:
    return value.replace(" ", "")


CRITICAL_RULES: FieldRules = {
    "numero_documento": [
        Pattern(
            r"(?:Nº|N°|No\.?)\s*D\.?R\.?\s*\.?\s*:?\s*(\d{4}[-\s]*\d+)",
            transform=_without_spaces,
        ),
        Pattern(r"Nº\s+D\.R\s*\.\s*:\s*(\d{4}\s*-\s*\d+)", transform=_without_spaces),
        Pattern(r"Nº\s+D\.R\s*\.\s*:\s*(\d{4}-\s*\d+)", transform=_without_spaces),
    ],
    "situacion_documento": [
        Pattern(r"(?:Situación|Situacion)\s+D\.?R\.?\s*\.?\s*:?\s*([A-Z]+)"),
        Pattern(r"Situación\s+D\.R\s*\.\s*:\s*([A-Z]+)"),
    ],
    "numero_manifiesto": [Pattern(r"(?:Manifiesto|Mnfto)\s*:?\s*(\d+)")],
}

ADDITIONAL_RULES: FieldRules = {
    "fecha_manifiesto_sna": [
        Pattern(
            r"(?:Fch\.?|Fecha)\s*(?:Mnfto|Manifiesto)\s+SNA\s*:?\s*(\d{2}/\d{2}/\d{4})",
            transform=_slash_date,
        ),
    ],
    "fecha_inicio_almacenaje": [
        Pattern(
            r"(?:Fch\.?|Fecha)\s*Inicio\s+(?:Alm|Almacenaje)\s*\.?\s*:?\s*(\d{2}/\d{2}/\d{4})",
            transform=_slash_date,
        ),
    ],
    "tipo_documento": [
        Pattern(r"Tipo\s+D\.?R\.?\s*\.?\s*:?\s*([A-Z\s\-]+?)" + _EOL),
        Pattern(r"Tipo\s+D\.R\s*\.\s*:\s*([A-Z\s\-]+?)" + _EOL),
    ],
    "bl_armador": [
        Pattern(r"BL\s+(?:Armador|Arm)\s*:?\s*([A-Z0-9\(\)\/\s]+?)" + _EOL),
        Pattern(r"BL\s+Armador\s*:?\s*([A-Z0-9\(\)\/\s]+?)" + _EOL),
    ],
    "direccion_consignatario": [
        Pattern(r"(?:Dirección|Direccion)\s*:?\s*([A-Z0-9\s\-,]+?)" + _EOL),
    ],
    "linea_operadora": [
        Pattern(r"(?:Linea|Línea)\s+Operadora\s*:?\s*([A-Z\s\-\.]+?)" + _EOL),
    ],
    "puerto_origen": [Pattern(r"(?:Pto\.?|Puerto)\s*Origen\s*:?\s*([A-Z]+)")],
    "puerto_embarque": [Pattern(r"(?:Pto\.?|Puerto)\s*Embarque\s*:?\s*([A-Z]+)")],
    "puerto_descarga": [
        Pattern(r"(?:Pto\.?|Puerto)\s*Descarga\s*:?\s*([A-Z\s]+?)" + _EOL),
        Pattern(r"Pto\.Descarga\s*:?\s*([A-Z\s]+?)" + _EOL),
    ],
    "nave_viaje": [
        Pattern(r"(?:Nave/Viaje|Nave|Viaje)\s*:?\s*([A-Z\s]+/\s*[A-Z0-9]+?)" + _EOL),
    ],
    "almacen": [Pattern(r"(?:Almacén|Almacen)\s*:?\s*([A-Z\s]+?)" + _EOL)],
    "puerto_transbordo": [Pattern(r"(?:Pto\.?|Puerto)\s*Transbordo\s*:?\s*([A-Z]+)")],
    "puerto_destino": [Pattern(r"Pto\.\s+Destino\s*[:\s]*([A-Z\s]+)")],
    "destino_carga": [Pattern(r"Destino\s+Carga\s*:?\s*([A-Z]+)")],
    "zona": [Pattern(r"Zona\s*:?\s*([A-Z]+)")],
    "origen": [Pattern(r"Origen\s*[:\s]*([A-Z]+)")],
    "servicio_almacenaje": [
        Pattern(r"Srv\.\s+Almacenaje\s*[:\s]*([A-Z0-9\s\(\)]+)"),
        Pattern(r"(?:Srv\.?|Servicio)\s+Almacenaje\s*[:\s]*([A-Z0-9\s\(\)]+)"),
        Pattern(r"(?:Srv\.?|Servicio)\s*Almacenaje\s*:?\s*([A-Z0-9\s\-\'\(\)]+?)" + _EOL),
    ],
    "agencia_aduana": [Pattern(r"Agencia\s+de\s+Aduana\s*:?\s*([A-Z\s]+?)" + _EOL)],
    "fecha_inicio_90_dias": [
        Pattern(r"Inicio\s+90\s+(?:Dias|Días)\s*[:\s]*(\d{2}/\d{2}/\d{4})", transform=_slash_date),
    ],
    "fecha_termino_90_dias": [
        Pattern(
            r"(?:Término|Termino)\s+90\s+(?:Días|Dias)\s*[:\s]*(\d{2}/\d{2}/\d{4})",
            transform=_slash_date,
        ),
    ],
    "forwarder": [Pattern(r"Forwarder\s*:?\s*([A-Z\s]+?)" + _EOL)],
    "contenedor": [
        Pattern(r"Contenedor\s*:\s*([A-Z0-9\s\-]+?)" + _EOL),
        Pattern(r"Contenedor\s*[:\s]*([A-Z0-9\s\-]+)"),
    ],
    "tatc": [Pattern(r"TATC\s*[:\s]*(\d+)")],
    "cantidad": [Pattern(r"Cantidad\s*[:\s]*(\d+)")],
    "peso": [Pattern(r"Peso\s*[:\s]*([\d\.,]+)")],
    "volumen": [Pattern(r"Volumen\s*[:\s]*([\d\.,]+)")],
    "estado": [Pattern(r"Estado\s*[:\s]*([A-Z]+)")],
    "ubicacion": [Pattern(r"Ubicación\s*[:\s]*(\d+)")],
    "tipo_bulto": [
        Pattern(r"Tipo\s+Bulto\s*:?\s*([A-Z0-9\s\-]+?)" + _EOL),
        Pattern(r"Tipo\s+Bulto\s*[:\s]*([A-Z0-9\s\-]+)"),
    ],
    "marcas": [
        Pattern(r"Marcas\s*[:\s]*([A-Z0-9\s&\(\)#\-\.]+)"),
        Pattern(r"\(H40\)\s*40", group=0),
    ],
}


class DocumentoRecepcionExtractor(DocumentExtractor):
    """Extracts document number, status, and manifest from a D.R."""

    document_type = DocumentType.DOCUMENTO_RECEPCION
    display_name = "Documento de Recepción"
    incomplete_message = (
        "No se pudieron extraer todos los campos requeridos "
        "del documento de recepción"
    )
    record_type = DocumentoRecepcion
    critical_rules = CRITICAL_RULES
    additional_rules = ADDITIONAL_RULES
    error_prefix = "Error durante el procesamiento"
    manual_file_pipeline = True

    def populate(self, text: str, fields: dict[str, Any]) -> None:
        super().populate(text, fields)
        self._consignee(text, fields)
        self._warehouse_keeper(text, fields)
        self._issuer(text, fields)

    def _consignee(self, text: str, fields: dict[str, Any]) -> None:
        match = re.search(
            r"Consignatario\s*:?\s*\((\d{8}-\d)\)\s*([A-Z\s]+?)" + _EOL, text
        )
        if match:
            fields["rut_consignatario"] = normalize_rut(match.group(1))
            fields["consignatario"] = match.group(2).strip()
        else:
            match = re.search(r"Consignatario\s*:?\s*\((\d{8}-\d)\)", text)
            if match:
                fields["rut_consignatario"] = normalize_rut(match.group(1))

        if not is_present(fields.get("consignatario")):
            match = re.search(r"CONSIGNATA\s*RIO\s*:\s*([A-Z\s]+)", text)
            if match:
                fields["consignatario"] = match.group(1).strip()

    def _warehouse_keeper(self, text: str, fields: dict[str, Any]) -> None:
        match = re.search(r"Guarda\s+Almacén\s*[:\s]*([A-Z\s]+)\s*\((\d{8}-\d)\)", text)
        if match:
            fields["guarda_almacen"] = match.group(1).strip()
            fields["rut_guarda_almacen"] = normalize_rut(match.group(2))
            return
        match = re.search(r"Guarda\s+Almacén\s*[:\s]*([A-Z\s]+)", text) or re.search(
            r"(?:Guarda\s+)?Almacén\s*:?\s*([A-Z\s]+\([0-9\-]+\)?)" + _EOL, text
        )
        if match:
            fields["guarda_almacen"] = match.group(1).strip()

    def _issuer(self, text: str, fields: dict[str, Any]) -> None:
        """Extract who issued the D.R., when, and through which channel."""
        match = re.search(
            r"Emitido\s+por\s*:?\s*(\d{8}-\d)\s+el\s+"
            r"(\d{2}-\d{2}-\d{4}\s+\d{2}:\d{2}:\d{2})\s+\(([A-Z]+)\)",
            text,
        )
        if match:
            fields["rut_emisor"] = normalize_rut(match.group(1))
            fields["fecha_emision"] = match.group(2)
            fields["medio_emision"] = match.group(3)
