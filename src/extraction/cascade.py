"""Ordered regex cascades for field extraction.

Each field is described by a list of candidate steps tried in order:
label-anchored patterns first, loose fallbacks last. The first step
that yields a non-empty value wins.
"""

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from src.utils.logger import get_logger

logger = get_logger(__name__)

Transform = Callable[[str], Any]


@dataclass(frozen=True)
class Pattern:
    """A single candidate regex with an optional post-processor.

    Attributes:
        regex: Regular expression searched anywhere in the text.
        flags: ``re`` flags for the search.
        group: Capture group holding the value; ``0`` takes the whole match.
        transform: Converts the trimmed capture. Returning ``None`` makes
            the cascade move on to the next step.
    """

    regex: str
    flags: int = 0
    group: int = 1
    transform: Transform | None = None

    def apply(self, text: str) -> Any | None:
        match = re.search(self.regex, text, self.flags)
        if not match:
            return None
        raw = match.group(self.group)
        if raw is None:
            return None
        value = raw.strip()
        if not value:
            return None
        if self.transform is None:
            return value
        return self.transform(value)


Step = Pattern | Callable[[str], Any]
FieldRules = Mapping[str, Sequence[Step]]


def is_present(value: Any) -> bool:
    """Return whether a field value counts as extracted."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def first_match(text: str, steps: Sequence[Step]) -> Any | None:
    """Try each step in order and return the first present value.

    Args:
        text: Normalized OCR text.
        steps: Ordered candidate patterns or callables taking the text.

    Returns:
        The first non-empty value, or ``None`` when every step fails.
    """
    for step in steps:
        value = step.apply(text) if isinstance(step, Pattern) else step(text)
        if is_present(value):
            return value
    return None


def apply_rules(
    text: str,
    rules: FieldRules,
    fields: dict[str, Any],
    overwrite: bool = False,
) -> dict[str, Any]:
    """Run every field cascade of a rule table against the text.

    Args:
        text: Normalized OCR text.
        rules: Field name to ordered steps.
        fields: Field values collected so far. Updated in place.
        overwrite: Replace values that are already present.

    Returns:
        The same ``fields`` mapping, for chaining.
    """
    for field_name, steps in rules.items():
        if not overwrite and is_present(fields.get(field_name)):
            continue
        value = first_match(text, steps)
        if value is None:
            logger.debug("No pattern matched field '%s'", field_name)
            continue
        fields[field_name] = value
    return fields
