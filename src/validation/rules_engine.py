"""Critical-field validation rules for extracted customs documents.

A document is valid when every critical field of its type passes its
rules. Rules are declared per document type and can be overridden
from a YAML file.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from src.documents.types import DocumentType
from src.utils.logger import get_logger

logger = get_logger(__name__)

_REQUIRED = {"type": "required"}
_POSITIVE = {"type": "positive_amount"}

DEFAULT_RULES: dict[str, dict[str, list[dict]]] = {
    DocumentType.CARNET_ADUANERO: {
        "titulo": [_REQUIRED],
        "nombre_completo": [_REQUIRED],
        "rut": [_REQUIRED],
    },
    DocumentType.COMPROBANTE_TRANSACCION: {
        "numero_folio": [_REQUIRED],
        "total_pagado": [_REQUIRED, _POSITIVE],
    },
    DocumentType.GUIA_DESPACHO: {
        "numero_guia": [_REQUIRED],
        "rut_emisor": [_REQUIRED],
        "fecha_documento": [_REQUIRED],
    },
    DocumentType.TACT_ADC: {
        "numero_tatc": [_REQUIRED],
        "numero_contenedor": [_REQUIRED],
        "numero_sellos": [_REQUIRED],
    },
    DocumentType.DECLARACION_INGRESO: {
        "numero_identificacion": [_REQUIRED],
    },
    DocumentType.DOCUMENTO_RECEPCION: {
        "numero_documento": [_REQUIRED],
        "situacion_documento": [_REQUIRED],
        "numero_manifiesto": [_REQUIRED],
    },
    DocumentType.SELECCION_AFORO: {
        "numero_din": [_REQUIRED],
        "tipo_revision": [_REQUIRED],
        "nombre_agente": [_REQUIRED],
    },
}


@dataclass
class ValidationResult:
    """Result of a single field validation check."""

    field_name: str
    is_valid: bool
    message: str
    rule_name: str


@dataclass
class ValidationReport:
    """Aggregated validation report for a document."""

    all_valid: bool
    results: list[ValidationResult]
    warnings: list[str] = field(default_factory=list)

    @property
    def missing_fields(self) -> list[str]:
        """Critical fields that failed at least one rule, in rule order."""
        missing: list[str] = []
        for result in self.results:
            if not result.is_valid and result.field_name not in missing:
                missing.append(result.field_name)
        return missing


class RulesEngine:
    """Validates extracted fields against per-document critical rules.

    Args:
        rules_path: Optional YAML file mapping document types to field
            rules. Types present in the file replace the defaults.
    """

    def __init__(self, rules_path: Path | None = None) -> None:
        self.rules = self._load_rules(rules_path)
        self._validators = {
            "required": self._validate_required,
            "positive_amount": self._validate_positive_amount,
        }

    def _load_rules(self, path: Path | None) -> dict[str, dict[str, list[dict]]]:
        """Load validation rules, falling back to the built-in table.

        Args:
            path: Path to the rules file, if any.

        Returns:
            Dictionary of document-type-specific rules.
        """
        rules = {str(k): v for k, v in DEFAULT_RULES.items()}
        if path is not None and path.exists():
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
            if data:
                logger.info("Loaded validation rules from %s", path)
                rules.update(data)
        return rules

    def critical_fields(self, document_type: str) -> list[str]:
        """List the critical fields declared for a document type."""
        return list(self.rules.get(document_type, {}))

    def validate(self, fields: dict[str, Any], document_type: str) -> ValidationReport:
        """Validate extracted fields against document-type rules.

        Args:
            fields: Extracted field name-value pairs.
            document_type: Type of document for rule selection.

        Returns:
            Validation report; ``all_valid`` is true only when every
            critical field passed.
        """
        results: list[ValidationResult] = []
        warnings: list[str] = []

        doc_rules = self.rules.get(document_type)
        if doc_rules is None:
            warnings.append(f"No rules for document type: {document_type}")
            doc_rules = {}

        for field_name, rules in doc_rules.items():
            value = fields.get(field_name)
            for rule in rules:
                rule_type = rule.get("type")
                validator = self._validators.get(rule_type)
                if not validator:
                    warnings.append(f"Unknown rule type: {rule_type}")
                    continue
                results.append(validator(field_name, value))

        all_valid = all(r.is_valid for r in results)
        logger.info(
            "Validation for %s: %s (%d checks)",
            document_type,
            "PASSED" if all_valid else "FAILED",
            len(results),
        )
        return ValidationReport(all_valid=all_valid, results=results, warnings=warnings)

    def _validate_required(self, field_name: str, value: Any) -> ValidationResult:
        """Check if a required field is present and non-empty."""
        if value is not None and str(value).strip():
            return ValidationResult(field_name, True, "Required field present", "required")
        return ValidationResult(
            field_name, False, f"Required field missing: {field_name}", "required"
        )

    def _validate_positive_amount(self, field_name: str, value: Any) -> ValidationResult:
        """Check if a value is a positive amount."""
        if value is None:
            return ValidationResult(
                field_name, False, "No amount to validate", "positive_amount"
            )
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return ValidationResult(
                field_name, False, f"Invalid amount format: {value}", "positive_amount"
            )
        if amount > 0:
            return ValidationResult(
                field_name, True, f"Valid positive amount: {amount}", "positive_amount"
            )
        return ValidationResult(
            field_name, False, f"Amount must be positive: {amount}", "positive_amount"
        )
