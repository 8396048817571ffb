from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

import pandas as pd


@dataclass
class ContractViolation:
    table_name: str
    column_name: str
    violation_type: str
    details: str
    blocking: bool = False


def check_required_columns(
    df: pd.DataFrame, table_name: str, required: Iterable[str], *, blocking: bool = True
) -> List[ContractViolation]:
    missing = [c for c in required if c not in df.columns]
    return [
        ContractViolation(
            table_name=table_name,
            column_name=col,
            violation_type="missing_column",
            details=f"Column '{col}' not found in {table_name}",
            blocking=blocking,
        )
        for col in missing
    ]


def check_duplicate_names(df: pd.DataFrame, table_name: str, name_column: str) -> List[ContractViolation]:
    """Flag client names that appear more than once (case-insensitive)."""
    if name_column not in df.columns:
        return []
    names = df[name_column].fillna("").astype(str).str.split().str.join(" ").str.casefold()
    names = names[names != ""]
    dup_mask = names.duplicated(keep=False)
    if not dup_mask.any():
        return []
    dup_names = sorted(set(names[dup_mask]))
    return [
        ContractViolation(
            table_name=table_name,
            column_name=name_column,
            violation_type="duplicate_name",
            details=f"{int(dup_mask.sum())} rows share {len(dup_names)} client names: {dup_names[:5]}",
        )
    ]


def check_blank_names(df: pd.DataFrame, table_name: str, name_column: str) -> List[ContractViolation]:
    if name_column not in df.columns:
        return []
    blank = df[name_column].fillna("").astype(str).str.strip().eq("")
    count = int(blank.sum())
    if count == 0:
        return []
    return [
        ContractViolation(
            table_name=table_name,
            column_name=name_column,
            violation_type="blank_name",
            details=f"{count} rows without a client name will be skipped",
        )
    ]
