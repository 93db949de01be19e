"""Letterhead and carrier classification for vendor-specific rule tables.

Detects which issuer produced a document by looking for identifying
substrings, so each document is classified once and then dispatched
to the rule table for that layout.
"""

import re
from dataclasses import dataclass
from enum import StrEnum

from src.utils.logger import get_logger

logger = get_logger(__name__)


class GuiaVendor(StrEnum):
    """Customs agencies whose dispatch guide layouts are known."""

    JORGE_STEIN = "jorge_stein"
    ALBERTO_RUBIO = "alberto_rubio"
    UNKNOWN = "unknown"


class Carrier(StrEnum):
    """Shipping lines issuing container dispatch authorizations."""

    MAERSK = "MAERSK"
    MSC = "Mediterranean Shipping Company (Chile) S.A."
    IANTAYLOR = "IANTAYLOR"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class VendorSignature:
    """Identifiers that mark a document as coming from one vendor."""

    variant: StrEnum
    identifiers: tuple[str, ...]
    flags: int = 0

    def matches(self, text: str) -> bool:
        return any(re.search(ident, text, self.flags) for ident in self.identifiers)


_GUIA_SIGNATURES: tuple[VendorSignature, ...] = (
    VendorSignature(GuiaVendor.JORGE_STEIN, (r"Jorge Stein", r"stein\.cl")),
    VendorSignature(GuiaVendor.ALBERTO_RUBIO, (r"Alberto Rubio", r"agenciarubio\.cl")),
)

_CARRIER_SIGNATURES: tuple[VendorSignature, ...] = (
    VendorSignature(Carrier.MAERSK, (r"MAERSK",), re.IGNORECASE),
    VendorSignature(Carrier.MSC, (r"Mediterranean Shipping Company",), re.IGNORECASE),
    VendorSignature(Carrier.IANTAYLOR, (r"IANTAYLOR",), re.IGNORECASE),
)


def _classify(
    text: str, signatures: tuple[VendorSignature, ...], default: StrEnum
) -> StrEnum:
    for signature in signatures:
        if signature.matches(text):
            return signature.variant
    return default


def classify_guia_vendor(text: str) -> GuiaVendor:
    """Detect the customs agency letterhead of a dispatch guide.

    Args:
        text: Normalized OCR text of the guide.

    Returns:
        The matching vendor, checked in declaration order, or
        ``GuiaVendor.UNKNOWN``.
    """
    vendor = _classify(text, _GUIA_SIGNATURES, GuiaVendor.UNKNOWN)
    logger.info("Dispatch guide vendor: %s", vendor)
    return GuiaVendor(vendor)


def classify_carrier(text: str) -> Carrier:
    """Detect the shipping line of a TACT/ADC authorization.

    Args:
        text: Normalized OCR text of the authorization.

    Returns:
        The first matching carrier, or ``Carrier.UNKNOWN``.
    """
    carrier = _classify(text, _CARRIER_SIGNATURES, Carrier.UNKNOWN)
    logger.info("TACT/ADC carrier: %s", carrier)
    return Carrier(carrier)
