from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from grportfolio.etl.contracts import (
    ContractViolation,
    check_blank_names,
    check_duplicate_names,
    check_required_columns,
)
from grportfolio.etl.parse import clean_string, parse_revenue_amount
from grportfolio.etl.reconcile import ReconciliationPlan, reconcile
from grportfolio.scoring.status import derive_status
from grportfolio.scoring.strategic import score_clients
from grportfolio.utils.config import Config, IngestConfig, load_config
from grportfolio.utils.logger import get_logger
from grportfolio.utils.types import Client
from grportfolio.validation.client_validator import ValidationResult, validate_clients


logger = get_logger(__name__)


def robust_read_csv(path: Path) -> pd.DataFrame:
    encodings = ["utf-8", "utf-8-sig", "latin-1", "cp1252"]
    last_err: Exception | None = None
    for enc in encodings:
        try:
            # Keep every cell as text; revenue and dates are parsed per row
            return pd.read_csv(path, encoding=enc, dtype=str, keep_default_na=False)
        except (UnicodeDecodeError, pd.errors.ParserError) as e:
            last_err = e
            continue
    raise ValueError(f"Could not read CSV {path}: {last_err}")


def check_client_frame(df: pd.DataFrame, cfg: IngestConfig, table_name: str = "client_csv") -> List[ContractViolation]:
    """Frame-level checks for an uploaded client CSV.

    Only a missing name column blocks the import; a missing contract or year
    column just yields Hold statuses or zero revenue for every row.
    """
    violations: List[ContractViolation] = []
    violations += check_required_columns(df, table_name, [cfg.name_column], blocking=True)
    optional = [cfg.contract_column] + [cfg.revenue_column(y) for y in cfg.years]
    violations += check_required_columns(df, table_name, optional, blocking=False)
    violations += check_blank_names(df, table_name, cfg.name_column)
    violations += check_duplicate_names(df, table_name, cfg.name_column)
    return violations


def read_client_csv(path: str | Path, cfg: Config | None = None) -> List[Dict[str, str]]:
    """Load an uploaded client CSV as a list of raw row dicts."""
    cfg = cfg or load_config()
    path = Path(path)
    df = robust_read_csv(path)
    df.columns = [clean_string(c) for c in df.columns]
    logger.info("Read %d rows from %s", len(df), path)

    violations = check_client_frame(df, cfg.ingest, table_name=path.name)
    for v in violations:
        logger.warning("Contract violation in %s: %s", v.table_name, v.details)
    blocking = [v for v in violations if v.blocking]
    if blocking and cfg.ingest.fail_on_contract_breach:
        raise ValueError(f"{path.name} breaches the client CSV contract: {[v.details for v in blocking]}")
    return df.to_dict(orient="records")


def _row_to_client(row: Mapping[str, Any], cfg: IngestConfig, today: dt.date | None) -> Optional[Client]:
    name = clean_string(row.get(cfg.name_column))
    if not name:
        return None
    contract_period = clean_string(row.get(cfg.contract_column))
    revenue = {year: parse_revenue_amount(row.get(cfg.revenue_column(year))) for year in cfg.years}
    return Client(
        name=name,
        contract_period=contract_period,
        status=derive_status(contract_period, today=today),
        revenue=revenue,
    )


def process_rows(
    rows: Iterable[Mapping[str, Any]] | pd.DataFrame,
    today: dt.date | None = None,
    cfg: IngestConfig | None = None,
) -> List[Client]:
    """Turn raw CSV rows into clients with default enhancement fields.

    Rows with a blank client name are dropped silently. ``today`` pins the
    reference date for status derivation.
    """
    cfg = cfg or IngestConfig()
    if today is None:
        today = dt.date.today()
    if isinstance(rows, pd.DataFrame):
        rows = rows.to_dict(orient="records")

    clients: List[Client] = []
    skipped = 0
    for row in rows or []:
        client = _row_to_client(row, cfg, today)
        if client is None:
            skipped += 1
            continue
        clients.append(client)
    if skipped:
        logger.info("Skipped %d rows without a client name", skipped)
    return clients


@dataclass
class IngestResult:
    plan: ReconciliationPlan
    validation: ValidationResult
    clients: List[Client] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "counts": self.plan.counts(),
            "preserved": self.plan.preserved,
            "validation": self.validation.to_dict(),
            "clients": [c.to_dict() for c in self.clients],
        }


def ingest_rows(
    store,
    user_id: int,
    rows: Iterable[Mapping[str, Any]] | pd.DataFrame,
    today: dt.date | None = None,
    cfg: Config | None = None,
    strict: bool = False,
) -> IngestResult:
    """Process, reconcile and persist one CSV batch for ``user_id``.

    The store applies the whole plan in a single transaction. Afterwards the
    user's full portfolio is rescored so normalization reflects the live set.
    With ``strict`` an invalid batch raises before anything is written.
    """
    cfg = cfg or load_config()
    parsed = process_rows(rows, today=today, cfg=cfg.ingest)
    validation = validate_clients(parsed, years=cfg.ingest.years)
    for warning in validation.warnings:
        logger.warning(warning)
    for issue in validation.issues:
        logger.warning("Validation issue: %s", issue)
    if strict and not validation.is_valid:
        raise ValueError(f"Batch failed validation with {len(validation.issues)} issues")

    existing = store.fetch_existing_by_names(user_id, [c.name for c in parsed])
    plan = reconcile(parsed, existing)
    store.apply_plan(user_id, plan)

    portfolio = score_clients(store.list_clients(user_id), cfg.scoring)
    return IngestResult(plan=plan, validation=validation, clients=portfolio)
