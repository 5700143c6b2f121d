"""Locale-aware parsing of amounts and dates found on Turkish and international receipts"""
import math
import re
from datetime import date, datetime
from typing import Any, Callable, List, Optional, Tuple

_CURRENCY_TOKENS = re.compile(r"(?i)(TRY|TL|USD|EUR|GBP|[₺$€£])")
_WHITESPACE = re.compile(r"\s+")

# Accepted amount shapes, tried in order; each converts the body to a float() literal
_AMOUNT_PATTERNS: List[Tuple[str, re.Pattern, Callable[[str], str]]] = [
    ("integer", re.compile(r"^\d+$"), lambda s: s),
    # 4.499,00 / 1.234
    ("dot_thousands", re.compile(r"^\d{1,3}(\.\d{3})+(,\d+)?$"),
     lambda s: s.replace(".", "").replace(",", ".")),
    # 4,499.00 / 1,234
    ("comma_thousands", re.compile(r"^\d{1,3}(,\d{3})+(\.\d+)?$"),
     lambda s: s.replace(",", "")),
    # 12,50
    ("comma_decimal", re.compile(r"^\d+,\d+$"), lambda s: s.replace(",", ".")),
    # 12.50
    ("dot_decimal", re.compile(r"^\d+\.\d+$"), lambda s: s),
]


def _finite(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def parse_amount(value: Any) -> Optional[float]:
    """Coerce a number or a locale-formatted currency string to float.

    Returns None for anything that does not match a known shape. Zero is a
    valid amount and is returned as 0.0.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return _finite(float(value))
        except OverflowError:
            return None
    if not isinstance(value, str):
        return None

    text = _WHITESPACE.sub("", _CURRENCY_TOKENS.sub("", value))
    sign = 1.0
    if text[:1] in ("-", "+"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    for _name, pattern, convert in _AMOUNT_PATTERNS:
        if pattern.match(text):
            return _finite(sign * float(convert(text)))
    return None


_MONTHS = [
    ("ocak", 1), ("subat", 2), ("mart", 3), ("nisan", 4), ("mayis", 5),
    ("haziran", 6), ("temmuz", 7), ("agustos", 8), ("eylul", 9), ("ekim", 10),
    ("kasim", 11), ("aralik", 12),
    ("january", 1), ("february", 2), ("march", 3), ("april", 4), ("may", 5),
    ("june", 6), ("july", 7), ("august", 8), ("september", 9), ("october", 10),
    ("november", 11), ("december", 12),
]

_FOLD = str.maketrans({"ı": "i", "ş": "s", "ğ": "g", "ü": "u", "ö": "o", "ç": "c", "\u0307": None})


def _month_number(name: str) -> Optional[int]:
    folded = name.lower().translate(_FOLD)
    if len(folded) < 3:
        return None
    for month_name, number in _MONTHS:
        if month_name.startswith(folded):
            return number
    return None


# (pattern, group order) where order names which group holds year/month/day
_DATE_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$"), "ymd"),
    (re.compile(r"^(\d{4})[/.](\d{1,2})[/.](\d{1,2})$"), "ymd"),
    (re.compile(r"^(\d{1,2})[./-](\d{1,2})[./-](\d{4})$"), "dmy"),
    (re.compile(r"^(\d{1,2})\.?\s+([^\W\d_]+)\.?\s+(\d{4})$"), "dMy"),
]


def parse_date(value: Any) -> Optional[str]:
    """Parse a receipt date into ISO YYYY-MM-DD, or None if unrecognised"""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return None

    text = value.strip()
    for pattern, order in _DATE_PATTERNS:
        match = pattern.match(text)
        if not match:
            continue
        first, second, third = match.groups()
        if order == "ymd":
            year, month, day = int(first), int(second), int(third)
        elif order == "dmy":
            day, month, year = int(first), int(second), int(third)
        else:
            month = _month_number(second)
            if month is None:
                return None
            day, year = int(first), int(third)
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            return None
    return None
