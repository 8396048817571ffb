"""Batch strategic-value scoring.

Scores depend on batch-wide revenue bounds, so a call must see the whole
portfolio at once; scoring a subset renormalizes against that subset only.
"""
from __future__ import annotations

from dataclasses import replace
from typing import List, Sequence

import numpy as np
import pandas as pd

from grportfolio.utils.config import ScoringConfig
from grportfolio.utils.logger import get_logger
from grportfolio.utils.types import Client

logger = get_logger(__name__)

# Neutral fallbacks for unset relationship inputs
NEUTRAL_RELATIONSHIP = 5.0
NEUTRAL_STRATEGIC_FIT = 5.0
NEUTRAL_RENEWAL = 0.5

SCORE_COLUMNS = ["average_revenue", "revenue_score", "growth_score", "efficiency_score", "strategic_value"]


def _revenue_col(year: int) -> str:
    return f"rev_{year}"


def clients_to_frame(clients: Sequence[Client], years: Sequence[int]) -> pd.DataFrame:
    """Flatten the scoring inputs of a batch into one row per client (input order)."""
    records = []
    for client in clients:
        row = {
            "name": client.name,
            "status": client.status,
            "time_commitment": client.time_commitment,
            "relationship_strength": client.relationship_strength,
            "strategic_fit_score": client.strategic_fit_score,
            "renewal_probability": client.renewal_probability,
            "conflict_risk": client.conflict_risk,
        }
        for year in years:
            row[_revenue_col(year)] = client.revenue_for(year)
        records.append(row)
    frame = pd.DataFrame.from_records(records)
    numeric = ["time_commitment", "relationship_strength", "strategic_fit_score", "renewal_probability"]
    for col in numeric:
        frame[col] = pd.to_numeric(frame[col], errors="coerce")
    return frame


def _round_half_up(values: pd.Series, decimals: int) -> pd.Series:
    """Round half up (3.125 -> 3.13); Series.round rounds ties to even."""
    factor = 10.0 ** decimals
    return np.floor(values * factor + 0.5) / factor


def _conflict_penalty(risk: object, cfg: ScoringConfig) -> float:
    if risk is None or (isinstance(risk, float) and np.isnan(risk)):
        return cfg.unset_conflict_penalty
    key = str(risk).strip().title()
    return float(cfg.conflict_penalties.get(key, cfg.unset_conflict_penalty))


def score_frame(clients: Sequence[Client], cfg: ScoringConfig | None = None) -> pd.DataFrame:
    """Compute derived scores for a batch and return them as a DataFrame.

    Columns: ``name``, ``status`` and the five derived fields, one row per
    input client in input order.
    """
    cfg = cfg or ScoringConfig()
    years = sorted(set(int(y) for y in cfg.years))
    if not clients:
        return pd.DataFrame(columns=["name", "status", *SCORE_COLUMNS])

    frame = clients_to_frame(clients, years)
    rev_cols = [_revenue_col(y) for y in years]
    revenue = frame[rev_cols].fillna(0.0).clip(lower=0.0)

    # Step 1: normalization base
    avg = revenue.mean(axis=1)
    lo, hi = float(avg.min()), float(avg.max())

    # Step 2: min-max revenue score; uniform batches get the neutral midpoint
    if hi == lo:
        revenue_score = pd.Series(5.0, index=frame.index)
    else:
        revenue_score = (avg - lo) / (hi - lo) * 10.0

    # Step 3: CAGR between the earliest and latest configured years
    periods = years[-1] - years[0]
    if periods > 0:
        initial = revenue[rev_cols[0]].where(revenue[rev_cols[0]] > 0, 1.0)
        final = revenue[rev_cols[-1]]
        cagr = np.power(final / initial, 1.0 / periods) - 1.0
    else:
        cagr = pd.Series(0.0, index=frame.index)
    growth_score = ((cagr + 0.5) * 10.0).clip(lower=0.0, upper=10.0)

    # Step 4: revenue per monthly hour against the baseline
    hours = frame["time_commitment"].fillna(1.0).clip(lower=1.0)
    efficiency_score = (avg / hours / cfg.efficiency_baseline_per_hour).clip(upper=10.0)

    # Step 5: flat conflict penalty
    penalty = frame["conflict_risk"].map(lambda r: _conflict_penalty(r, cfg)).astype(float)

    relationship = frame["relationship_strength"].fillna(NEUTRAL_RELATIONSHIP)
    strategic_fit = frame["strategic_fit_score"].fillna(NEUTRAL_STRATEGIC_FIT)
    renewal = frame["renewal_probability"].fillna(NEUTRAL_RENEWAL)

    w = cfg.weights
    weighted = (
        revenue_score * w["revenue"]
        + growth_score * w["growth"]
        + relationship * w["relationship"]
        + strategic_fit * w["strategic_fit"]
        + renewal * 10.0 * w["renewal"]
        + efficiency_score * w["efficiency"]
    )
    # Step 6: penalize, round, floor at zero
    strategic_value = _round_half_up(weighted - penalty, 2).clip(lower=0.0)

    out = pd.DataFrame(
        {
            "name": frame["name"],
            "status": frame["status"],
            "average_revenue": _round_half_up(avg, 0),
            "revenue_score": _round_half_up(revenue_score, 2),
            "growth_score": _round_half_up(growth_score, 2),
            "efficiency_score": _round_half_up(efficiency_score, 2),
            "strategic_value": strategic_value,
        }
    )
    return out


def score_clients(clients: Sequence[Client], cfg: ScoringConfig | None = None) -> List[Client]:
    """Return copies of ``clients`` annotated with derived scores.

    Derived fields on the inputs are ignored, so rescoring the same stored
    fields always yields the same values.
    """
    clients = list(clients or [])
    if not clients:
        return []
    scores = score_frame(clients, cfg)
    scored: List[Client] = []
    for client, row in zip(clients, scores.itertuples(index=False)):
        scored.append(
            replace(
                client,
                average_revenue=float(row.average_revenue),
                revenue_score=float(row.revenue_score),
                growth_score=float(row.growth_score),
                efficiency_score=float(row.efficiency_score),
                strategic_value=float(row.strategic_value),
            )
        )
    logger.info(
        "Scored %d clients (mean strategic value %.2f)",
        len(scored),
        float(scores["strategic_value"].mean()),
    )
    return scored
