"""
Centralized record types for the portfolio engine.
Keeps the client shape, status codes and enhancement defaults in one place.
"""
from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Literal, Mapping, Optional

ContractStatus = Literal["IF", "D", "P", "H"]
ConflictRisk = Literal["Low", "Medium", "High"]

STATUS_IN_FORCE: ContractStatus = "IF"
STATUS_DONE: ContractStatus = "D"
STATUS_PROPOSAL: ContractStatus = "P"
STATUS_HOLD: ContractStatus = "H"
ALL_STATUSES: tuple[str, ...] = (STATUS_IN_FORCE, STATUS_DONE, STATUS_PROPOSAL, STATUS_HOLD)

STATUS_LABELS: Dict[str, str] = {
    STATUS_IN_FORCE: "Active",
    STATUS_PROPOSAL: "Prospect",
    STATUS_DONE: "Former",
    STATUS_HOLD: "Inactive",
}

CONFLICT_RISKS: tuple[str, ...] = ("Low", "Medium", "High")
INTERACTION_FREQUENCIES: tuple[str, ...] = ("Daily", "Weekly", "Monthly", "Quarterly", "As-Needed")

# System defaults applied to enhancement fields on creation
ENHANCEMENT_DEFAULTS: Dict[str, Any] = {
    "practice_area": [],
    "relationship_strength": 5,
    "conflict_risk": "Medium",
    "time_commitment": 40.0,
    "renewal_probability": 0.7,
    "strategic_fit_score": 5,
    "notes": "",
    "primary_lobbyist": "",
    "client_originator": "",
    "lobbyist_team": [],
    "interaction_frequency": "",
    "relationship_intensity": 5,
}

DERIVED_FIELDS: tuple[str, ...] = (
    "average_revenue",
    "revenue_score",
    "growth_score",
    "efficiency_score",
    "strategic_value",
)


def normalize_revenue(revenue: Mapping[Any, Any] | None) -> Dict[int, float]:
    """Key revenue by integer year; non-numeric or NaN amounts become 0.0."""
    out: Dict[int, float] = {}
    for raw_year, raw_amount in (revenue or {}).items():
        year = int(float(str(raw_year).strip()))
        try:
            amount = float(raw_amount) if raw_amount is not None else 0.0
        except (TypeError, ValueError):
            amount = 0.0
        out[year] = amount if math.isfinite(amount) else 0.0
    return out


@dataclass
class Client:
    """A single tracked client relationship."""

    name: str
    contract_period: str = ""
    status: ContractStatus = STATUS_HOLD
    revenue: Dict[int, float] = field(default_factory=dict)
    id: Optional[str] = None

    practice_area: list[str] = field(default_factory=list)
    relationship_strength: Optional[float] = 5
    conflict_risk: Optional[ConflictRisk] = "Medium"
    time_commitment: Optional[float] = 40.0
    renewal_probability: Optional[float] = 0.7
    strategic_fit_score: Optional[float] = 5
    notes: str = ""
    primary_lobbyist: str = ""
    client_originator: str = ""
    lobbyist_team: list[str] = field(default_factory=list)
    interaction_frequency: str = ""
    relationship_intensity: Optional[float] = 5

    # Enhancement fields edited by hand; survive re-imports even at their default value
    touched_fields: set[str] = field(default_factory=set)

    average_revenue: Optional[float] = None
    revenue_score: Optional[float] = None
    growth_score: Optional[float] = None
    efficiency_score: Optional[float] = None
    strategic_value: Optional[float] = None

    def __post_init__(self) -> None:
        self.revenue = normalize_revenue(self.revenue)
        self.touched_fields = set(self.touched_fields or ())

    @property
    def status_label(self) -> str:
        return STATUS_LABELS.get(self.status, "Inactive")

    def revenue_for(self, year: int) -> float:
        return float(self.revenue.get(int(year), 0.0))

    def total_revenue(self, years) -> float:
        return sum(self.revenue_for(y) for y in years)

    def enhancements(self) -> Dict[str, Any]:
        return {name: copy.deepcopy(getattr(self, name)) for name in ENHANCEMENT_DEFAULTS}

    def without_derived(self) -> "Client":
        return replace(self, **{name: None for name in DERIVED_FIELDS})

    def to_dict(self) -> Dict[str, Any]:
        out = {f.name: copy.deepcopy(getattr(self, f.name)) for f in fields(self)}
        out["touched_fields"] = sorted(self.touched_fields)
        out["status_label"] = self.status_label
        return out


def is_default_value(field_name: str, value: Any) -> bool:
    """True when ``value`` still equals the system default for an enhancement field.

    None, blank strings and empty lists count as default.
    """
    if field_name not in ENHANCEMENT_DEFAULTS:
        raise ValueError(f"'{field_name}' is not an enhancement field")
    default = ENHANCEMENT_DEFAULTS[field_name]
    if value is None:
        return True
    if isinstance(default, list):
        return len(value or []) == 0
    if isinstance(default, str):
        return str(value).strip() == default
    try:
        return math.isclose(float(value), float(default))
    except (TypeError, ValueError):
        return False


def apply_enhancements(client: Client, **changes: Any) -> Client:
    """Manual edit path: return a copy with ``changes`` applied and marked as touched."""
    unknown = set(changes) - set(ENHANCEMENT_DEFAULTS)
    if unknown:
        raise ValueError(f"Unknown enhancement fields: {sorted(unknown)}")
    updated = replace(client, **copy.deepcopy(changes))
    updated.touched_fields = set(client.touched_fields) | set(changes)
    return updated
