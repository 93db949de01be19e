"""Lookup from document type to its extractor."""

from src.utils.config import ExtractionConfig
from src.validation.rules_engine import RulesEngine

from .aforo import SeleccionAforoExtractor
from .base import DocumentExtractor
from .carnet import CarnetAduaneroExtractor
from .carnet_pdf import CarnetAduaneroPdfExtractor
from .comprobante import ComprobanteTransaccionExtractor
from .declaracion import DeclaracionIngresoExtractor
from .guia import GuiaDespachoExtractor
from .recepcion import DocumentoRecepcionExtractor
from .tact import TactAdcExtractor
from .types import DocumentType

EXTRACTORS: dict[DocumentType, type[DocumentExtractor]] = {
    DocumentType.CARNET_ADUANERO: CarnetAduaneroExtractor,
    DocumentType.COMPROBANTE_TRANSACCION: ComprobanteTransaccionExtractor,
    DocumentType.DECLARACION_INGRESO: DeclaracionIngresoExtractor,
    DocumentType.DOCUMENTO_RECEPCION: DocumentoRecepcionExtractor,
    DocumentType.GUIA_DESPACHO: GuiaDespachoExtractor,
    DocumentType.SELECCION_AFORO: SeleccionAforoExtractor,
    DocumentType.TACT_ADC: TactAdcExtractor,
}

# Types that also accept scanned PDF uploads, with their PDF rule table.
PDF_EXTRACTORS: dict[DocumentType, type[DocumentExtractor]] = {
    DocumentType.CARNET_ADUANERO: CarnetAduaneroPdfExtractor,
}

# Prefix used when naming a record merged from several scanned pages.
FILE_PREFIXES: dict[DocumentType, str] = {
    DocumentType.CARNET_ADUANERO: "CA",
    DocumentType.COMPROBANTE_TRANSACCION: "CT",
    DocumentType.DECLARACION_INGRESO: "DI",
    DocumentType.DOCUMENTO_RECEPCION: "DR",
    DocumentType.GUIA_DESPACHO: "GD",
    DocumentType.SELECCION_AFORO: "SA",
    DocumentType.TACT_ADC: "TACT",
}


def get_extractor(
    document_type: DocumentType | str,
    config: ExtractionConfig | None = None,
    rules_engine: RulesEngine | None = None,
) -> DocumentExtractor:
    """Build the extractor for a document type.

    Args:
        document_type: Type value, either the enum or its string form.
        config: Extraction settings supplying the confidence constants.
        rules_engine: Validity rules shared between extractors.

    Returns:
        A ready extractor instance.

    Raises:
        ValueError: If the document type is unknown.
    """
    doc_type = DocumentType(document_type)
    config = config or ExtractionConfig()
    return EXTRACTORS[doc_type](
        rules_engine=rules_engine,
        text_confidence=config.text_confidence,
        file_confidence=config.file_confidence,
    )


def get_pdf_extractor(
    document_type: DocumentType | str,
    config: ExtractionConfig | None = None,
    rules_engine: RulesEngine | None = None,
) -> DocumentExtractor:
    """Build the PDF extractor for a document type.

    Raises:
        ValueError: If the type does not accept PDF uploads.
    """
    doc_type = DocumentType(document_type)
    if doc_type not in PDF_EXTRACTORS:
        raise ValueError(f"{doc_type} does not accept PDF files")
    config = config or ExtractionConfig()
    return PDF_EXTRACTORS[doc_type](
        rules_engine=rules_engine,
        text_confidence=config.text_confidence,
        file_confidence=config.file_confidence,
    )
