"""Locale-tolerant currency parsing"""

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")

_SPACES = ("\u00a0", "\u202f", "\u2009", " ", "'", "\u2019")
_CURRENCY = re.compile(r"[^\W\d_]+\.?")  # "kr.", "NOK", "EUR"
_NON_NUMERIC = re.compile(r"[^0-9,.\-]")
_WHOLE_UNITS = re.compile(r"[,.]-+(?=\)?$)")  # "1 000,-" is 1000 with no decimals


def normalize_amount(raw: Any) -> Decimal:
    """
    Convert a spreadsheet cell to a Decimal amount.

    Accepts numbers as-is and strings in Norwegian, European or US notation:
        "1 234,56"   -> 1234.56
        "1.234,56"   -> 1234.56
        "1,234.56"   -> 1234.56
        "(500)"      -> -500
        "kr 1 000-"  -> -1000
        "kr 1 000,-" -> 1000

    Separator resolution:
    - both ',' and '.' present: the last one is the decimal separator
    - only ',': one comma is a decimal comma, several are thousands separators
    - only '.': one dot is a decimal point, several are thousands separators

    Empty or unparsable input yields 0.
    """
    if raw is None or isinstance(raw, bool):
        return ZERO
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else ZERO
    if isinstance(raw, int):
        return Decimal(raw)
    if isinstance(raw, float):
        if not math.isfinite(raw):
            return ZERO
        return Decimal(repr(raw))

    text = str(raw).strip()
    for space in _SPACES:
        text = text.replace(space, "")
    text = text.replace("\u2212", "-")
    if not text:
        return ZERO

    text = _CURRENCY.sub("", text)
    text = _WHOLE_UNITS.sub("", text)

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]

    text = _NON_NUMERIC.sub("", text)
    if text.endswith("-"):
        negative = True
        text = text.rstrip("-")
    if text.startswith("-"):
        negative = True
    text = text.replace("-", "").rstrip(",.")
    if not text:
        return ZERO

    text = _resolve_separators(text)

    try:
        value = Decimal(text)
    except InvalidOperation:
        return ZERO

    return -value if negative else value


def _resolve_separators(text: str) -> str:
    """Return text with thousands separators dropped and '.' as decimal point"""
    has_comma = "," in text
    has_dot = "." in text

    if has_comma and has_dot:
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")

    if has_comma:
        if text.count(",") == 1:
            return text.replace(",", ".")
        return text.replace(",", "")

    if has_dot and text.count(".") > 1:
        return text.replace(".", "")

    return text
