from __future__ import annotations

import datetime as dt
import re
from typing import Any, Optional, Tuple

from grportfolio.etl.parse import clean_string, parse_date
from grportfolio.utils.logger import get_logger
from grportfolio.utils.types import (
    ContractStatus,
    STATUS_DONE,
    STATUS_HOLD,
    STATUS_IN_FORCE,
    STATUS_PROPOSAL,
)

logger = get_logger(__name__)

_EXPIRED_RE = re.compile(r"^expired\b[:\s]*(?P<date>.*)$", re.IGNORECASE)
_EXPIRES_RE = re.compile(r"^expires\b[:\s]*(?P<date>.*)$", re.IGNORECASE)


def is_annotated_period(contract_period: Any) -> bool:
    """True for the single-date ``Expired <date>`` / ``expires <date>`` forms."""
    text = clean_string(contract_period)
    return bool(_EXPIRED_RE.match(text) or _EXPIRES_RE.match(text))


def split_contract_period(contract_period: Any) -> Optional[Tuple[str, str]]:
    """Split ``start-end`` on the first hyphen; None when there is no separator."""
    text = clean_string(contract_period)
    if "-" not in text:
        return None
    start, end = text.split("-", 1)
    return start.strip(), end.strip()


def derive_status(contract_period: Any, today: Optional[dt.date] = None) -> ContractStatus:
    """Map a raw contract period to IF / D / P / H relative to ``today``.

    ``today`` defaults to the system date at call time. Malformed periods
    degrade to Hold with a warning; this function never raises.
    """
    if today is None:
        today = dt.date.today()
    elif isinstance(today, dt.datetime):
        today = today.date()

    if not isinstance(contract_period, str) or not contract_period.strip():
        logger.warning("Missing contract period %r; status Hold", contract_period)
        return STATUS_HOLD

    text = clean_string(contract_period)

    if _EXPIRED_RE.match(text):
        return STATUS_DONE

    expires = _EXPIRES_RE.match(text)
    if expires:
        expiry = parse_date(expires.group("date"))
        if expiry is None:
            logger.warning("Unparsable expiry date in contract period %r; status Hold", contract_period)
            return STATUS_HOLD
        return STATUS_DONE if expiry < today else STATUS_IN_FORCE

    parts = split_contract_period(text)
    if parts is None or not parts[0] or not parts[1]:
        logger.warning("Contract period %r is not a start-end range; status Hold", contract_period)
        return STATUS_HOLD

    start, end = parse_date(parts[0]), parse_date(parts[1])
    if start is None or end is None:
        logger.warning("Unparsable dates in contract period %r; status Hold", contract_period)
        return STATUS_HOLD

    if start <= today <= end:
        return STATUS_IN_FORCE
    if end < today:
        return STATUS_DONE
    if start > today:
        return STATUS_PROPOSAL
    return STATUS_HOLD
