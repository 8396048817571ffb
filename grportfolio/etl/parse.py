from __future__ import annotations

import datetime as dt
import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any

import pandas as pd

# US month-first forms come before ISO so "1/2/25" is January 2nd
_DATE_FORMATS = ("%m/%d/%y", "%m/%d/%Y", "%Y-%m-%d", "%Y/%m/%d")
_CURRENCY_SYMBOLS = ("$", "€", "£")


def parse_currency(value: Any) -> float:
    """Parse currency-like strings/numbers into float.

    Handles symbols, thousands commas, parentheses negatives and trailing
    ``.0`` exports such as ``"$60,000.0"``. Anything unparsable is 0.0.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return 0.0 if math.isnan(number) or math.isinf(number) else number

    text = str(value).strip()
    if text == "":
        return 0.0

    is_negative = text.startswith("(") and text.endswith(")")
    for symbol in _CURRENCY_SYMBOLS:
        text = text.replace(symbol, "")
    text = text.replace("(", "").replace(")", "").replace(",", "").strip()

    try:
        number = Decimal(text)
    except InvalidOperation:
        return 0.0
    result = float(-number if is_negative else number)
    # Decimal accepts exponents beyond float range; those overflow to inf
    return result if math.isfinite(result) else 0.0


def parse_revenue_amount(value: Any) -> float:
    """Revenue amounts are non-negative; negatives and junk collapse to 0.0."""
    return max(0.0, parse_currency(value))


def parse_date(value: Any) -> dt.date | None:
    """Parse contract dates (``M/D/YY``, ``M/D/YYYY``, ISO) to a date, or None."""
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    text = clean_string(value)
    if not text:
        return None

    for fmt in _DATE_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt).date()
        except ValueError:
            pass
    # Only fall back to pandas when the text at least carries digits
    if not any(ch.isdigit() for ch in text):
        return None
    try:
        ts = pd.to_datetime(text, errors="coerce")
        if pd.isna(ts):
            return None
        return ts.date()
    except (ValueError, TypeError, OverflowError):
        return None


def clean_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    text = str(value)
    # Collapse whitespace and normalize unicode dashes to ASCII hyphen
    text = re.sub(r"\s+", " ", text, flags=re.MULTILINE).strip()
    text = text.replace("\u2013", "-").replace("\u2014", "-")
    return text
