import math

import pytest
import yaml

from grportfolio.utils.config import DEFAULT_WEIGHTS, load_config
from grportfolio.utils.paths import DEFAULT_CONFIG_PATH


@pytest.fixture(autouse=True)
def reset_env(monkeypatch):
    for var in ["GRPORTFOLIO_SQLITE_PATH", "GRPORTFOLIO_MAX_CAPACITY", "GRPORTFOLIO_LOG_LEVEL"]:
        monkeypatch.delenv(var, raising=False)


def _write(tmp_path, payload):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(payload), encoding="utf-8")
    return path


def test_shipped_config_loads_with_defaults():
    cfg = load_config(DEFAULT_CONFIG_PATH)
    assert cfg.ingest.years == [2023, 2024, 2025]
    assert cfg.ingest.revenue_column(2024) == "2024 Contracts"
    assert cfg.scoring.years == cfg.ingest.years
    assert cfg.optimizer.max_capacity == 2000
    assert cfg.optimizer.eligible_statuses == ["IF", "P"]
    assert math.isclose(sum(cfg.scoring.weights.values()), 1.0)
    assert cfg.scoring.weights["revenue"] == pytest.approx(DEFAULT_WEIGHTS["revenue"])
    assert cfg.scoring.conflict_penalties == {"High": 3.0, "Medium": 1.0, "Low": 0.0}


def test_unknown_top_level_key_rejected(tmp_path):
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, {"etl": {}}))


@pytest.mark.parametrize(
    "scoring",
    [
        {"weights": {"revenue": -1}},
        {"weights": {"revenue": float("inf")}},
        {"weights": {"popularity": 0.5}},
        {"weights": {k: 0 for k in DEFAULT_WEIGHTS}},
        {"efficiency_baseline_per_hour": 0},
    ],
)
def test_invalid_scoring_rejected(tmp_path, scoring):
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, {"scoring": scoring}))


def test_weights_are_normalized(tmp_path):
    cfg = load_config(_write(tmp_path, {"scoring": {"weights": {k: 2 for k in DEFAULT_WEIGHTS}}}))
    assert all(w == pytest.approx(1 / 6) for w in cfg.scoring.weights.values())


def test_revenue_template_needs_year(tmp_path):
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, {"ingest": {"revenue_column_template": "Contracts"}}))


def test_env_and_cli_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("GRPORTFOLIO_MAX_CAPACITY", "750")
    monkeypatch.setenv("GRPORTFOLIO_SQLITE_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("GRPORTFOLIO_LOG_LEVEL", "debug")
    cfg = load_config(tmp_path / "missing.yaml", cli_overrides={"ingest": {"years": [2024, 2025]}})
    assert cfg.optimizer.max_capacity == 750
    assert cfg.database.sqlite_path == (tmp_path / "env.db").resolve()
    assert cfg.logging.level == "DEBUG"
    assert cfg.ingest.years == [2024, 2025]
    assert cfg.scoring.years == [2024, 2025]


def test_bad_env_capacity(tmp_path, monkeypatch):
    monkeypatch.setenv("GRPORTFOLIO_MAX_CAPACITY", "lots")
    with pytest.raises(ValueError):
        load_config(tmp_path / "missing.yaml")


def test_to_dict_is_plain(tmp_path):
    payload = load_config(_write(tmp_path, {"database": {"sqlite_path": str(tmp_path / "x.db")}})).to_dict()
    assert isinstance(payload["database"]["sqlite_path"], str)
    assert payload["optimizer"]["max_capacity"] == 2000
