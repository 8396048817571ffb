from __future__ import annotations

import math
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from grportfolio.utils.paths import DEFAULT_CONFIG_PATH, DEFAULT_SQLITE_PATH


DEFAULT_WEIGHTS: Dict[str, float] = {
    "revenue": 0.30,
    "growth": 0.20,
    "relationship": 0.20,
    "strategic_fit": 0.15,
    "renewal": 0.10,
    "efficiency": 0.05,
}

DEFAULT_CONFLICT_PENALTIES: Dict[str, float] = {"High": 3.0, "Medium": 1.0, "Low": 0.0}


@dataclass
class Database:
    sqlite_path: Path = DEFAULT_SQLITE_PATH
    echo: bool = False


@dataclass
class IngestConfig:
    years: list[int] = field(default_factory=lambda: [2023, 2024, 2025])
    name_column: str = "CLIENT"
    contract_column: str = "Contract Period"
    revenue_column_template: str = "{year} Contracts"
    # Raise instead of warn when the CSV is missing its name column
    fail_on_contract_breach: bool = True

    def revenue_column(self, year: int) -> str:
        return self.revenue_column_template.format(year=year)


@dataclass
class ScoringConfig:
    years: list[int] = field(default_factory=lambda: [2023, 2024, 2025])
    weights: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    conflict_penalties: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_CONFLICT_PENALTIES))
    unset_conflict_penalty: float = 1.0
    # Revenue per monthly hour that earns a full efficiency score of 10
    efficiency_baseline_per_hour: float = 1000.0


@dataclass
class OptimizerConfig:
    max_capacity: float = 2000.0
    eligible_statuses: list[str] = field(default_factory=lambda: ["IF", "P"])


@dataclass
class Logging:
    level: str = "INFO"


@dataclass
class Config:
    database: Database = field(default_factory=Database)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    optimizer: OptimizerConfig = field(default_factory=OptimizerConfig)
    logging: Logging = field(default_factory=Logging)

    def to_dict(self) -> Dict[str, Any]:
        def _convert(obj: Any) -> Any:
            if isinstance(obj, Path):
                return str(obj)
            if isinstance(obj, dict):
                return {k: _convert(v) for k, v in obj.items()}
            if isinstance(obj, list):
                return [_convert(v) for v in obj]
            return obj

        return {
            "database": _convert(asdict(self.database)),
            "ingest": _convert(asdict(self.ingest)),
            "scoring": _convert(asdict(self.scoring)),
            "optimizer": _convert(asdict(self.optimizer)),
            "logging": _convert(asdict(self.logging)),
        }


def _load_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _merge_overrides(base: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not overrides:
        return base

    def deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
        out = dict(a)
        for k, v in (b or {}).items():
            if isinstance(v, dict) and isinstance(out.get(k), dict):
                out[k] = deep_merge(out[k], v)
            else:
                out[k] = v
        return out

    return deep_merge(base, overrides)


def _parse_years(raw: Any) -> list[int]:
    if raw is None:
        return [2023, 2024, 2025]
    if isinstance(raw, (int, str)):
        raw = [raw]
    try:
        years = sorted({int(str(y).strip()) for y in raw})
    except (TypeError, ValueError) as e:
        raise ValueError(f"years must be a list of integer years, got {raw!r}") from e
    if not years:
        raise ValueError("years must contain at least one year")
    return years


def _parse_weights(raw: Any) -> Dict[str, float]:
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ValueError("scoring.weights must be a mapping of component -> weight")
    unknown = set(raw) - set(DEFAULT_WEIGHTS)
    if unknown:
        raise ValueError(f"Unknown scoring.weights keys: {sorted(unknown)}. Allowed: {sorted(DEFAULT_WEIGHTS)}")
    weights = dict(DEFAULT_WEIGHTS)
    for key, val in raw.items():
        try:
            weights[key] = float(val)
        except (TypeError, ValueError) as e:
            raise ValueError(f"scoring.weights.{key} must be a number") from e
    if any((not math.isfinite(w)) or w < 0 for w in weights.values()):
        raise ValueError("scoring.weights must be finite and non-negative")
    total_w = sum(weights.values())
    if total_w <= 0:
        raise ValueError("scoring.weights must sum to a positive number")
    return {k: w / total_w for k, w in weights.items()}


def _parse_penalties(raw: Any) -> Dict[str, float]:
    penalties = dict(DEFAULT_CONFLICT_PENALTIES)
    for key, val in (raw or {}).items():
        try:
            penalties[str(key).strip().title()] = float(val)
        except (TypeError, ValueError) as e:
            raise ValueError(f"scoring.conflict_penalties.{key} must be a number") from e
    return penalties


def load_config(config_path: Optional[str | Path] = None, cli_overrides: Optional[Dict[str, Any]] = None) -> Config:
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    cfg_path_obj = Path(config_path)
    cfg_dict = _load_yaml(cfg_path_obj) if cfg_path_obj.exists() else {}

    allowed_top = {"database", "ingest", "scoring", "optimizer", "logging"}
    unknown_top = set(cfg_dict.keys()) - allowed_top
    if unknown_top:
        raise ValueError(f"Unknown top-level config keys: {sorted(unknown_top)}. Allowed: {sorted(allowed_top)}")

    env_sqlite_path = os.getenv("GRPORTFOLIO_SQLITE_PATH")
    env_max_capacity = os.getenv("GRPORTFOLIO_MAX_CAPACITY")
    env_log_level = os.getenv("GRPORTFOLIO_LOG_LEVEL")
    if env_sqlite_path:
        cfg_dict.setdefault("database", {})["sqlite_path"] = env_sqlite_path
    if env_max_capacity is not None:
        try:
            cfg_dict.setdefault("optimizer", {})["max_capacity"] = float(env_max_capacity)
        except ValueError:
            raise ValueError(f"GRPORTFOLIO_MAX_CAPACITY must be numeric, got {env_max_capacity!r}")
    if env_log_level:
        cfg_dict.setdefault("logging", {})["level"] = env_log_level

    cfg_dict = _merge_overrides(cfg_dict, cli_overrides)

    database = cfg_dict.get("database", {}) or {}
    ingest_cfg = cfg_dict.get("ingest", {}) or {}
    scoring_cfg = cfg_dict.get("scoring", {}) or {}
    opt_cfg = cfg_dict.get("optimizer", {}) or {}
    log_cfg = cfg_dict.get("logging", {}) or {}

    # Scoring and ingest share one year window unless scoring overrides it
    years = _parse_years(ingest_cfg.get("years"))
    scoring_years = _parse_years(scoring_cfg["years"]) if scoring_cfg.get("years") is not None else list(years)

    template = str(ingest_cfg.get("revenue_column_template", "{year} Contracts"))
    if "{year}" not in template:
        raise ValueError("ingest.revenue_column_template must contain '{year}'")

    baseline = float(scoring_cfg.get("efficiency_baseline_per_hour", 1000.0))
    if not math.isfinite(baseline) or baseline <= 0:
        raise ValueError("scoring.efficiency_baseline_per_hour must be a positive number")

    max_capacity = float(opt_cfg.get("max_capacity", 2000.0))
    if not math.isfinite(max_capacity):
        raise ValueError("optimizer.max_capacity must be finite")

    cfg = Config(
        database=Database(
            sqlite_path=Path(database.get("sqlite_path", DEFAULT_SQLITE_PATH)).resolve(),
            echo=bool(database.get("echo", False)),
        ),
        ingest=IngestConfig(
            years=years,
            name_column=str(ingest_cfg.get("name_column", "CLIENT")),
            contract_column=str(ingest_cfg.get("contract_column", "Contract Period")),
            revenue_column_template=template,
            fail_on_contract_breach=bool(ingest_cfg.get("fail_on_contract_breach", True)),
        ),
        scoring=ScoringConfig(
            years=scoring_years,
            weights=_parse_weights(scoring_cfg.get("weights")),
            conflict_penalties=_parse_penalties(scoring_cfg.get("conflict_penalties")),
            unset_conflict_penalty=float(scoring_cfg.get("unset_conflict_penalty", 1.0)),
            efficiency_baseline_per_hour=baseline,
        ),
        optimizer=OptimizerConfig(
            max_capacity=max_capacity,
            eligible_statuses=[
                str(s).strip().upper() for s in (opt_cfg.get("eligible_statuses") or ["IF", "P"]) if str(s).strip()
            ],
        ),
        logging=Logging(level=str(log_cfg.get("level", "INFO")).upper()),
    )
    return cfg
