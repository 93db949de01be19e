"""Shared record and extractor scaffolding for customs documents.

Every document type pairs a frozen record dataclass with an extractor
that runs its critical and additional rule tables, applies defaults,
and stamps validity, confidence, and comments.
"""

import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar

from src.extraction.cascade import FieldRules, apply_rules, is_present
from src.extraction.normalizer import normalize_text
from src.utils.logger import get_logger, preview
from src.validation.rules_engine import RulesEngine

from .types import DocumentType, Pipeline

logger = get_logger(__name__)

METHOD_OCR = "Tesseract OCR"
METHOD_MANUAL = "Extracción Manual"
METHOD_TEXT = "Texto OCR"


@dataclass(frozen=True, kw_only=True)
class DocumentRecord:
    """Metadata common to every extracted document."""

    file_name: str | None = None
    file_hash: str | None = None
    extraction_method: str = METHOD_TEXT
    raw_text: str = ""
    confidence: float = 0.8
    comments: str | None = None
    valid: bool = False
    processed_at: datetime = field(default_factory=datetime.now)

    METADATA_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {
            "file_name",
            "file_hash",
            "extraction_method",
            "raw_text",
            "confidence",
            "comments",
            "valid",
            "processed_at",
        }
    )

    def fields(self) -> dict[str, Any]:
        """Return the document's own fields without metadata."""
        return {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if f.name not in self.METADATA_FIELDS
        }

    def to_dict(self) -> dict[str, Any]:
        """Return all fields as JSON-serializable values."""
        return {
            f.name: _jsonable(getattr(self, f.name)) for f in dataclasses.fields(self)
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


class DocumentExtractor:
    """Base extractor driven by declarative rule tables.

    Subclasses declare the record type and rule tables; those with
    vendor-specific layouts override :meth:`populate`.

    Args:
        rules_engine: Validity rules. Defaults to the built-in table.
        text_confidence: Confidence stamped on text pipeline records.
        file_confidence: Confidence stamped on manual file pipeline records.
    """

    document_type: ClassVar[DocumentType]
    display_name: ClassVar[str]
    record_type: ClassVar[type[DocumentRecord]]
    critical_rules: ClassVar[FieldRules] = {}
    additional_rules: ClassVar[FieldRules] = {}
    defaults: ClassVar[dict[str, Any]] = {}
    error_prefix: ClassVar[str] = "Error procesando texto"
    success_message: ClassVar[str | None] = None
    manual_file_pipeline: ClassVar[bool] = False
    incomplete_message: ClassVar[str] = ""

    def __init__(
        self,
        rules_engine: RulesEngine | None = None,
        text_confidence: float = 0.8,
        file_confidence: float = 0.7,
    ) -> None:
        self.rules_engine = rules_engine or RulesEngine()
        self.text_confidence = text_confidence
        self.file_confidence = file_confidence

    def incomplete_comment(self) -> str:
        """Comment stamped on records missing a critical field."""
        return self.incomplete_message or (
            "No se pudieron extraer todos los campos requeridos "
            f"del documento de {self.display_name}"
        )

    def extraction_method(self, pipeline: Pipeline) -> str:
        if pipeline is Pipeline.TEXT:
            return METHOD_TEXT
        return METHOD_MANUAL if self.manual_file_pipeline else METHOD_OCR

    def extract(self, raw_text: str, pipeline: Pipeline = Pipeline.TEXT) -> DocumentRecord:
        """Extract a record from raw OCR text.

        Missing fields never raise. An unexpected error is recorded in
        ``comments`` and the fields found up to that point are kept.

        Args:
            raw_text: Text returned by the OCR gateway.
            pipeline: Whether the text came from a text request or a file.

        Returns:
            The populated record with validity and confidence set.
        """
        text = normalize_text(raw_text)
        logger.info("Processing %s text: %s", self.display_name, preview(text))

        manual = pipeline is Pipeline.FILE and self.manual_file_pipeline
        fields: dict[str, Any] = {}
        comments: str | None = None
        try:
            self.populate(text, fields)
        except Exception as exc:
            logger.exception("Error extracting %s fields", self.display_name)
            prefix = "Error durante el procesamiento" if manual else self.error_prefix
            comments = f"{prefix}: {exc}"

        for name, default in self.defaults.items():
            if not is_present(fields.get(name)):
                fields[name] = default

        report = self.rules_engine.validate(fields, self.document_type)
        if comments is None:
            if report.all_valid:
                comments = self.success_message
            else:
                comments = self.incomplete_comment()
                logger.warning(
                    "Incomplete %s, missing: %s",
                    self.display_name,
                    ", ".join(report.missing_fields),
                )

        return self.record_type(
            **fields,
            extraction_method=self.extraction_method(pipeline),
            raw_text=text,
            confidence=self.file_confidence if manual else self.text_confidence,
            comments=comments,
            valid=report.all_valid,
        )

    def populate(self, text: str, fields: dict[str, Any]) -> None:
        """Fill ``fields`` from the normalized text.

        Critical fields are attempted before additional ones.
        """
        apply_rules(text, self.critical_rules, fields)
        for name in self.critical_rules:
            if is_present(fields.get(name)):
                logger.info("%s %s: %s", self.display_name, name, fields[name])
        apply_rules(text, self.additional_rules, fields)

    def merge(self, records: Sequence[DocumentRecord], file_name: str | None = None) -> DocumentRecord:
        """Combine several scanned pages of one document.

        Each field takes the first non-empty value across the pages, in
        the order given. Validity is recomputed on the merged fields.

        Args:
            records: Records extracted from the individual pages.
            file_name: Name for the combined record.

        Returns:
            A single merged record.

        Raises:
            ValueError: If ``records`` is empty.
        """
        if not records:
            raise ValueError("At least one record is required to merge")

        merged: dict[str, Any] = {}
        for name in records[0].fields():
            candidates = [
                getattr(r, name) for r in records if is_present(getattr(r, name, None))
            ]
            default = self.defaults.get(name)
            # a page-level default must not hide a real value on a later page
            merged[name] = next(
                (v for v in candidates if v != default),
                candidates[0] if candidates else None,
            )

        report = self.rules_engine.validate(merged, self.document_type)
        first = records[0]
        return type(first)(
            **merged,
            file_name=file_name or first.file_name,
            file_hash=first.file_hash if len(records) == 1 else None,
            extraction_method=first.extraction_method,
            raw_text=" ".join(r.raw_text for r in records if r.raw_text),
            confidence=first.confidence,
            comments=(self.success_message if report.all_valid else self.incomplete_comment()),
            valid=report.all_valid,
        )
