from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from grportfolio.utils.config import OptimizerConfig
from grportfolio.utils.logger import get_logger
from grportfolio.utils.types import Client

logger = get_logger(__name__)


@dataclass
class OptimizationResult:
    clients: List[Client] = field(default_factory=list)
    total_revenue: float = 0.0
    total_hours: float = 0.0
    average_strategic_value: float = 0.0
    utilization_rate: float = 0.0
    excluded_client_count: int = 0
    eligible_count: int = 0
    max_capacity: float = 0.0

    @property
    def client_count(self) -> int:
        return len(self.clients)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clients": [c.to_dict() for c in self.clients],
            "client_count": self.client_count,
            "total_revenue": self.total_revenue,
            "total_hours": self.total_hours,
            "average_strategic_value": self.average_strategic_value,
            "utilization_rate": self.utilization_rate,
            "excluded_client_count": self.excluded_client_count,
            "eligible_count": self.eligible_count,
            "max_capacity": self.max_capacity,
        }


def _hours(client: Client) -> float:
    try:
        value = float(client.time_commitment) if client.time_commitment is not None else 0.0
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(value) else value


def rank_eligible(clients: Sequence[Client], cfg: OptimizerConfig | None = None) -> pd.DataFrame:
    """Eligible clients ordered by strategic value, highest first.

    Eligibility: status in the configured set (IF, P) and a positive monthly
    time commitment. The sort is stable, so ties keep their input order.
    """
    cfg = cfg or OptimizerConfig()
    statuses = {s.upper() for s in cfg.eligible_statuses}
    frame = pd.DataFrame(
        {
            "position": range(len(clients)),
            "status": [str(c.status or "").upper() for c in clients],
            "hours": [_hours(c) for c in clients],
            "strategic_value": [c.strategic_value if c.strategic_value is not None else 0.0 for c in clients],
        }
    )
    if frame.empty:
        return frame
    eligible = frame[frame["status"].isin(statuses) & (frame["hours"] > 0)]
    return eligible.sort_values("strategic_value", ascending=False, kind="mergesort")


def optimize_portfolio(
    clients: Sequence[Client],
    max_capacity: Optional[float] = None,
    cfg: OptimizerConfig | None = None,
) -> OptimizationResult:
    """Greedy capacity-constrained selection over scored clients.

    Walks eligible clients from the highest strategic value down, taking each
    one whose hours still fit and skipping (not stopping at) those that do
    not. This is a value-greedy heuristic and can leave capacity unused.
    """
    cfg = cfg or OptimizerConfig()
    capacity = float(cfg.max_capacity if max_capacity is None else max_capacity)
    clients = list(clients or [])
    if not clients:
        return OptimizationResult(max_capacity=capacity)

    ranked = rank_eligible(clients, cfg)
    selected: List[Client] = []
    used = 0.0
    for position, hours in zip(ranked["position"], ranked["hours"]):
        if used + hours <= capacity:
            selected.append(clients[int(position)])
            used += hours

    eligible_count = len(ranked)
    total_revenue = sum(float(c.average_revenue or 0.0) for c in selected)
    avg_value = (
        sum(float(c.strategic_value or 0.0) for c in selected) / len(selected) if selected else 0.0
    )
    utilization = (used / capacity) * 100.0 if capacity > 0 else 0.0

    result = OptimizationResult(
        clients=selected,
        total_revenue=round(total_revenue, 2),
        total_hours=round(used, 2),
        average_strategic_value=round(avg_value, 2),
        utilization_rate=round(utilization, 2),
        excluded_client_count=eligible_count - len(selected),
        eligible_count=eligible_count,
        max_capacity=capacity,
    )
    logger.info(
        "Selected %d of %d eligible clients: %.1f/%.1f hours (%.2f%% utilization), %d excluded",
        len(selected),
        eligible_count,
        used,
        capacity,
        result.utilization_rate,
        result.excluded_client_count,
    )
    return result
