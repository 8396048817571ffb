"""
Data validation for client batches.
Separates blocking issues from non-blocking warnings.
"""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Sequence

from grportfolio.scoring.status import is_annotated_period, split_contract_period
from grportfolio.utils.logger import get_logger
from grportfolio.utils.types import CONFLICT_RISKS, INTERACTION_FREQUENCIES, Client

logger = get_logger(__name__)

DEFAULT_YEARS = (2023, 2024, 2025)


class ValidationResult:
    """Container for validation results."""

    def __init__(self):
        self.issues: List[str] = []
        self.warnings: List[str] = []
        self.client_count: int = 0
        self.valid_clients: List[Client] = []

    @property
    def is_valid(self) -> bool:
        """Valid when there are no issues; warnings never block."""
        return len(self.issues) == 0

    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def add_issue(self, message: str):
        self.issues.append(message)

    def add_warning(self, message: str):
        self.warnings.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "issues": list(self.issues),
            "warnings": list(self.warnings),
            "client_count": self.client_count,
            "valid_client_names": [c.name for c in self.valid_clients],
        }


def _as_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def _check_range(result: ValidationResult, client: Client, field_name: str, lo: float, hi: float):
    value = getattr(client, field_name)
    if value is None:
        return
    number = _as_number(value)
    if number is None or not (lo <= number <= hi):
        result.add_warning(f'Client "{client.name}" has {field_name} {value!r} outside {lo:g}-{hi:g}')


def _validate_enhancements(client: Client, result: ValidationResult):
    _check_range(result, client, "relationship_strength", 1, 10)
    _check_range(result, client, "strategic_fit_score", 1, 10)
    _check_range(result, client, "relationship_intensity", 1, 10)
    _check_range(result, client, "renewal_probability", 0, 1)

    if client.conflict_risk is not None and client.conflict_risk not in CONFLICT_RISKS:
        result.add_warning(f'Client "{client.name}" has unknown conflict risk {client.conflict_risk!r}')

    hours = _as_number(client.time_commitment)
    if client.time_commitment is not None and (hours is None or hours <= 0):
        result.add_warning(f'Client "{client.name}" has no positive time commitment and cannot be optimized')

    freq = (client.interaction_frequency or "").strip()
    if freq and freq not in INTERACTION_FREQUENCIES:
        result.add_warning(f'Client "{client.name}" has unknown interaction frequency {freq!r}')


def validate_clients(clients: Sequence[Client], years: Optional[Sequence[int]] = None) -> ValidationResult:
    """Check a client batch for structural and semantic problems.

    Issues: blank names, and contract periods that are missing or are neither
    a ``start-end`` range nor an ``Expired``/``expires`` annotation.
    Warnings: zero revenue across ``years`` and out-of-range enhancement values.
    """
    years = tuple(years or DEFAULT_YEARS)
    result = ValidationResult()
    clients = list(clients or [])
    result.client_count = len(clients)

    for index, client in enumerate(clients):
        name = (client.name or "").strip()
        if not name:
            result.add_issue(f"Row {index + 1} has missing client name")
        else:
            result.valid_clients.append(client)

        if client.total_revenue(years) == 0:
            result.add_warning(f'Client "{client.name}" has zero revenue across all years')

        period = (client.contract_period or "").strip()
        if not period or (split_contract_period(period) is None and not is_annotated_period(period)):
            result.add_issue(f'Client "{client.name}" has invalid contract period: "{client.contract_period}"')

        _validate_enhancements(client, result)

    logger.info(
        "Validated %d clients: %d issues, %d warnings",
        result.client_count,
        len(result.issues),
        len(result.warnings),
    )
    return result
