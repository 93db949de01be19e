"""Post-processors for raw regex captures.

Converts captured strings into amounts, dates, and canonical RUTs.
Every parser returns ``None`` on malformed input instead of raising,
so a bad capture leaves the field unset.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from src.utils.logger import get_logger

logger = get_logger(__name__)


SPANISH_MONTHS: dict[str, int] = {
    "enero": 1,
    "febrero": 2,
    "marzo": 3,
    "abril": 4,
    "mayo": 5,
    "junio": 6,
    "julio": 7,
    "agosto": 8,
    "septiembre": 9,
    "octubre": 10,
    "noviembre": 11,
    "diciembre": 12,
}

# ENE, FEB, ... DIC as printed on carnet PDFs
MONTH_ABBREVIATIONS: dict[str, int] = {
    name[:3].upper(): number for name, number in SPANISH_MONTHS.items()
}

_CONCATENATED_DATE =re.compile(r"(\d{1,2})(\d{1,2})(\d{4})")
_RUT_SEPARATORS = re.compile(r"[.,\s]+")
_RUT_SHAPE = re.compile(r"^(\d{7,8})-?([0-9K])$")


def _to_decimal(value: str) -> Decimal | None:
    try:
        return Decimal(value)
    except InvalidOperation:
        logger.debug("Could not parse amount: %s", value)
        return None


def parse_chilean_amount(value: str) -> Decimal | None:
    """Parse an amount written with ``.`` thousands and ``,`` decimals.

    ``"8.153.962"`` becomes ``8153962`` and ``"33.177,00"`` becomes
    ``33177.00``.
    """
    return _to_decimal(value.strip().replace(".", "").replace(",", "."))


def parse_us_amount(value: str) -> Decimal | None:
    """Parse a USD amount written with ``,`` thousands and ``.`` decimals."""
    return _to_decimal(value.strip().replace(",", ""))


def parse_comma_decimal(value: str) -> Decimal | None:
    """Parse an amount by turning ``,`` into ``.`` without touching dots.

    Values that mix both separators, such as ``"12.215,00"``, do not
    survive this rule and yield ``None``.
    """
    return _to_decimal(value.strip().replace(",", "."))


def parse_int(value: str) -> int | None:
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_date(value: str, fmt: str = "%d-%m-%Y") -> date | None:
    """Parse a date with an explicit ``strptime`` format.

    Args:
        value: Captured date text.
        fmt: Expected format, e.g. ``%d/%m/%Y`` or ``%d.%m.%Y``.

    Returns:
        The parsed date, or ``None`` when the text does not fit.
    """
    try:
        return datetime.strptime(value.strip(), fmt).date()
    except ValueError:
        logger.debug("Could not parse date %r with %s", value, fmt)
        return None


def parse_datetime(value: str, fmt: str = "%d-%m-%Y %H:%M:%S") -> datetime | None:
    """Parse a timestamp with an explicit ``strptime`` format."""
    try:
        return datetime.strptime(" ".join(value.split()), fmt)
    except ValueError:
        logger.debug("Could not parse timestamp %r with %s", value, fmt)
        return None


def month_from_name(name: str) -> int | None:
    """Look up a Spanish month name, ignoring case."""
    return SPANISH_MONTHS.get(name.strip().lower())


def parse_spanish_date(day: str, month_name: str, year: str) -> date | None:
    """Build a date from verbose Spanish parts like ``26 de Junio del 2025``.

    Args:
        day: Day of month digits.
        month_name: Spanish month name in any case.
        year: Four-digit year.

    Returns:
        The date, or ``None`` for an unknown month or impossible day.
    """
    month = month_from_name(month_name)
    if month is None:
        return None
    try:
        return date(int(year), month, int(day))
    except ValueError:
        return None


def parse_abbreviated_date(day: str, month_abbr: str, year: str) -> date | None:
    """Build a date from ``15 MAR 2020`` style parts."""
    month = MONTH_ABBREVIATIONS.get(month_abbr.strip().upper())
    if month is None:
        return None
    try:
        return date(int(year), month, int(day))
    except ValueError:
        return None


def add_years(start: date, years: int) -> date:
    """Shift a date by whole years, moving 29 February to the 28th."""
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        return start.replace(year=start.year + years, day=28)


def parse_concatenated_date(value: str) -> date | None:
    """Parse a separator-less ``ddMMyyyy`` run positionally.

    The day takes up to two digits first, then the month, then four
    year digits, so ``"12062025"`` is 12 June 2025.
    """
    match = _CONCATENATED_DATE.search(value)
    if not match:
        return None
    day, month, year = match.groups()
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def normalize_rut(value: str) -> str | None:
    """Canonicalize a Chilean RUT to ``DD.DDD.DDD-V``.

    Accepts dot, comma, or space grouping and ungrouped bodies, with or
    without the hyphen before the check digit. The check digit is not
    verified.

    Args:
        value: Raw RUT text such as ``15,970,128-k``.

    Returns:
        Canonical RUT with an upper-case ``K``, or ``None`` when the text
        is not RUT-shaped.
    """
    compact = _RUT_SEPARATORS.sub("", value.strip()).upper()
    compact = re.sub(r"-+", "-", compact)
    match = _RUT_SHAPE.match(compact)
    if not match:
        return None
    body, check_digit = match.groups()
    grouped = f"{int(body):,}".replace(",", ".")
    return f"{grouped}-{check_digit}"
