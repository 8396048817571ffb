"""What-if math over a scored portfolio: capacity, growth and succession."""
from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Iterable, Sequence

from dateutil.relativedelta import relativedelta

from grportfolio.utils.logger import get_logger
from grportfolio.utils.types import Client

logger = get_logger(__name__)

# Share of current revenue assumed expandable per strategic-value segment
EXPANSION_RATES = {"high_value": 0.20, "medium_value": 0.10, "low_value": 0.05}


def _revenue(client: Client) -> float:
    return float(client.average_revenue or 0.0)


def _hours(client: Client) -> float:
    return float(client.time_commitment or 0.0)


def _segment_totals(clients: Sequence[Client]) -> Dict[str, float]:
    return {"count": len(clients), "revenue": sum(_revenue(c) for c in clients)}


def value_segments(clients: Sequence[Client]) -> Dict[str, list[Client]]:
    """Split by strategic value: high >= 8, medium 5-8, low < 5."""
    segments: Dict[str, list[Client]] = {"high_value": [], "medium_value": [], "low_value": []}
    for client in clients:
        value = float(client.strategic_value or 0.0)
        if value >= 8:
            segments["high_value"].append(client)
        elif value >= 5:
            segments["medium_value"].append(client)
        else:
            segments["low_value"].append(client)
    return segments


def capacity_scenario(
    clients: Sequence[Client],
    current_capacity: float = 100.0,
    target_utilization: float = 85.0,
    new_hires: int = 0,
    hours_per_hire: float = 40.0,
) -> Dict[str, Any]:
    """Utilization today versus after adding ``new_hires`` at ``hours_per_hire`` each."""
    total_hours = sum(_hours(c) for c in clients)
    total_revenue = sum(_revenue(c) for c in clients)
    current_utilization = (total_hours / current_capacity) * 100 if current_capacity > 0 else 0.0

    additional_capacity = new_hires * hours_per_hire
    new_total_capacity = current_capacity + additional_capacity
    new_utilization = (total_hours / new_total_capacity) * 100 if new_total_capacity > 0 else 0.0

    revenue_per_hour = total_revenue / total_hours if total_hours > 0 else 0.0
    additional_revenue_capacity = additional_capacity * revenue_per_hour * (target_utilization / 100)
    capacity_gap = (
        max(0.0, total_hours / (target_utilization / 100) - current_capacity) if target_utilization > 0 else 0.0
    )

    return {
        "current_capacity": current_capacity,
        "current_utilization": round(current_utilization, 2),
        "total_hours": total_hours,
        "new_hires": new_hires,
        "additional_capacity": additional_capacity,
        "new_total_capacity": new_total_capacity,
        "new_utilization": round(new_utilization, 2),
        "target_utilization": target_utilization,
        "revenue_per_hour": round(revenue_per_hour, 2),
        "additional_revenue_capacity": round(additional_revenue_capacity, 2),
        "capacity_gap": round(capacity_gap, 2),
        "utilization_improvement": round(new_utilization - current_utilization, 2),
    }


def growth_scenario(
    clients: Sequence[Client],
    target_revenue: float,
    time_horizon_months: int = 12,
    as_of: dt.date | None = None,
) -> Dict[str, Any]:
    """Revenue gap to ``target_revenue`` and how much segment expansion could close."""
    as_of = as_of or dt.date.today()
    current_revenue = sum(_revenue(c) for c in clients)
    required_growth = target_revenue - current_revenue
    growth_percentage = (required_growth / current_revenue) * 100 if current_revenue > 0 else 0.0
    monthly_growth_rate = growth_percentage / time_horizon_months if time_horizon_months > 0 else 0.0

    segments = value_segments(clients)
    expansion = {
        name: round(sum(_revenue(c) for c in members) * EXPANSION_RATES[name], 2)
        for name, members in segments.items()
    }
    total_expansion = sum(expansion.values())

    return {
        "current_revenue": current_revenue,
        "target_revenue": target_revenue,
        "required_growth": required_growth,
        "growth_percentage": round(growth_percentage, 2),
        "monthly_growth_rate": round(monthly_growth_rate, 2),
        "time_horizon_months": time_horizon_months,
        "target_date": (as_of + relativedelta(months=time_horizon_months)).isoformat(),
        "expansion_potential": expansion,
        "total_expansion_potential": round(total_expansion, 2),
        "gap_after_expansion": round(max(0.0, required_growth - total_expansion), 2),
        "client_segments": {name: _segment_totals(members) for name, members in segments.items()},
    }


def succession_scenario(clients: Sequence[Client], departing_lobbyists: Iterable[str]) -> Dict[str, Any]:
    """Clients and revenue exposed when ``departing_lobbyists`` leave.

    A client is at risk when its primary lobbyist or anyone on its team is
    departing. Risk level follows relationship strength: < 5 high, 5-8
    medium, >= 8 low.
    """
    departing = {" ".join(str(n).split()).casefold() for n in departing_lobbyists if str(n).strip()}

    def _at_risk(client: Client) -> bool:
        team = [client.primary_lobbyist, *(client.lobbyist_team or [])]
        return any(" ".join(str(m).split()).casefold() in departing for m in team if m)

    at_risk = [c for c in clients if _at_risk(c)]
    total_revenue = sum(_revenue(c) for c in clients)
    revenue_at_risk = sum(_revenue(c) for c in at_risk)

    levels: Dict[str, list[Client]] = {"high": [], "medium": [], "low": []}
    for client in at_risk:
        strength = float(client.relationship_strength or 0.0)
        if strength < 5:
            levels["high"].append(client)
        elif strength < 8:
            levels["medium"].append(client)
        else:
            levels["low"].append(client)

    logger.info("Succession scenario: %d of %d clients at risk", len(at_risk), len(clients))
    return {
        "total_clients_at_risk": len(at_risk),
        "total_revenue_at_risk": revenue_at_risk,
        "risk_percentage": round((revenue_at_risk / total_revenue) * 100, 2) if total_revenue > 0 else 0.0,
        "departing_lobbyists": sorted(departing),
        "risk_by_level": {level: _segment_totals(members) for level, members in levels.items()},
        "affected_clients": [
            {
                "id": c.id,
                "name": c.name,
                "revenue": _revenue(c),
                "primary_lobbyist": c.primary_lobbyist,
                "relationship_strength": c.relationship_strength,
                "strategic_value": c.strategic_value,
            }
            for c in at_risk
        ],
    }
