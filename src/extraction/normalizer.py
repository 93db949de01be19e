"""Text normalization applied to raw OCR output before extraction."""

import re

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_text(raw: str | None) -> str:
    """Collapse line breaks and whitespace runs into single spaces.

    Case and accents are left untouched.

    Args:
        raw: Raw text returned by the OCR gateway.

    Returns:
        Single-line text with no leading or trailing whitespace.
    """
    if not raw:
        return ""
    text = raw.replace("\r\n", " ").replace("\n", " ")
    text = _WHITESPACE_RUN.sub(" ", text)
    return text.strip()
