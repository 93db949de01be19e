"""Enumerations shared by extractors, validation, and the outer layers."""

from enum import StrEnum


class DocumentType(StrEnum):
    """Supported customs document types."""

    CARNET_ADUANERO = "carnet_aduanero"
    COMPROBANTE_TRANSACCION = "comprobante_transaccion"
    DECLARACION_INGRESO = "declaracion_ingreso"
    DOCUMENTO_RECEPCION = "documento_recepcion"
    GUIA_DESPACHO = "guia_despacho"
    SELECCION_AFORO = "seleccion_aforo"
    TACT_ADC = "tact_adc"


class Pipeline(StrEnum):
    """Where the text being extracted came from."""

    TEXT = "text"
    FILE = "file"
