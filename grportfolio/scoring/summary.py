from __future__ import annotations

from typing import Any, Dict, List, Sequence

import pandas as pd

from grportfolio.utils.types import ALL_STATUSES, STATUS_LABELS, Client


def _portfolio_frame(clients: Sequence[Client]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "name": [c.name for c in clients],
            "status": [c.status for c in clients],
            "revenue": [float(c.average_revenue or 0.0) for c in clients],
            "strategic_value": [float(c.strategic_value or 0.0) for c in clients],
            "conflict_risk": [c.conflict_risk or "Unknown" for c in clients],
            "practice_area": [list(c.practice_area or []) for c in clients],
        }
    )


def practice_area_breakdown(clients: Sequence[Client]) -> Dict[str, Dict[str, float]]:
    """Client count and revenue per practice area; multi-area clients count in each."""
    frame = _portfolio_frame(clients)
    if frame.empty:
        return {}
    exploded = frame.explode("practice_area").dropna(subset=["practice_area"])
    if exploded.empty:
        return {}
    grouped = exploded.groupby("practice_area", sort=True).agg(count=("name", "size"), revenue=("revenue", "sum"))
    return {
        str(area): {"count": int(row["count"]), "revenue": float(row["revenue"])}
        for area, row in grouped.iterrows()
    }


def summarize_portfolio(clients: Sequence[Client], top_n: int = 5) -> Dict[str, Any]:
    """Plain-dict portfolio summary for reporting and the advice generator.

    Expects scored clients; unscored ones contribute zero revenue and value.
    """
    clients = list(clients or [])
    frame = _portfolio_frame(clients)

    status_breakdown = {s: 0 for s in ALL_STATUSES}
    revenue_by_status = {STATUS_LABELS[s]: 0.0 for s in ALL_STATUSES}
    risk_profile: Dict[str, int] = {}
    top_clients: List[Dict[str, Any]] = []
    if not frame.empty:
        for status, count in frame["status"].value_counts().items():
            status_breakdown[str(status)] = int(count)
        for status, revenue in frame.groupby("status")["revenue"].sum().items():
            label = STATUS_LABELS.get(str(status), STATUS_LABELS["P"])
            revenue_by_status[label] = revenue_by_status.get(label, 0.0) + float(revenue)
        risk_profile = {str(k): int(v) for k, v in frame["conflict_risk"].value_counts().sort_index().items()}

        ranked = frame.sort_values("strategic_value", ascending=False, kind="mergesort").head(top_n)
        for _, row in ranked.iterrows():
            top_clients.append(
                {
                    "name": row["name"],
                    "revenue": float(row["revenue"]),
                    "strategic_value": float(row["strategic_value"]),
                    "status": row["status"],
                    "practice_area": list(row["practice_area"]),
                }
            )

    return {
        "total_clients": len(clients),
        "total_revenue": float(frame["revenue"].sum()) if not frame.empty else 0.0,
        "avg_strategic_value": round(float(frame["strategic_value"].mean()), 2) if not frame.empty else 0.0,
        "status_breakdown": status_breakdown,
        "revenue_by_status": revenue_by_status,
        "practice_areas": practice_area_breakdown(clients),
        "risk_profile": risk_profile,
        "top_clients": top_clients,
    }
