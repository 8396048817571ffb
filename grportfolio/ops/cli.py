from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from grportfolio.etl.ingest import ingest_rows, process_rows, read_client_csv
from grportfolio.etl.store import ClientStore
from grportfolio.pipeline.optimize import optimize_portfolio
from grportfolio.pipeline.scenarios import capacity_scenario, growth_scenario, succession_scenario
from grportfolio.scoring.strategic import score_clients, score_frame
from grportfolio.scoring.summary import summarize_portfolio
from grportfolio.utils.config import Config, load_config
from grportfolio.utils.db import get_db_connection
from grportfolio.utils.logger import apply_log_level, get_logger
from grportfolio.utils.normalize import normalize_label_list
from grportfolio.utils.paths import DEFAULT_CONFIG_PATH
from grportfolio.utils.types import ENHANCEMENT_DEFAULTS, apply_enhancements
from grportfolio.validation.client_validator import validate_clients


logger = get_logger(__name__)

_config_option = click.option("--config", default=str(DEFAULT_CONFIG_PATH.resolve()), show_default=False)
_user_option = click.option("--user-id", required=True, type=int, help="Owner of the portfolio")
_today_option = click.option(
    "--today",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Reference date for contract status (YYYY-MM-DD); defaults to today",
)


def _load(config: str) -> Config:
    cfg = load_config(config)
    apply_log_level(cfg.logging.level)
    return cfg


def _open_store(cfg: Config) -> ClientStore:
    return ClientStore(get_db_connection(cfg))


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _scored_portfolio(cfg: Config, user_id: int):
    store = _open_store(cfg)
    clients = store.list_clients(user_id)
    if not clients:
        logger.warning("User %s has no clients; ingest a CSV first", user_id)
    return score_clients(clients, cfg.scoring)


def _parse_enhancement(name: str, raw: str) -> Any:
    default = ENHANCEMENT_DEFAULTS[name]
    if isinstance(default, list):
        return normalize_label_list(raw)
    if isinstance(default, str):
        return raw.strip()
    try:
        return float(raw)
    except ValueError as e:
        raise click.BadParameter(f"{name} must be numeric, got {raw!r}") from e


@click.group()
def cli() -> None:
    """Lobbying client portfolio analytics."""


@cli.command()
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_user_option
@_today_option
@click.option("--strict/--no-strict", default=True, help="Refuse to write a batch with validation issues")
@_config_option
def ingest(csv_path: Path, user_id: int, today, strict: bool, config: str) -> None:
    """Import a client CSV, merging with what the user already has."""
    cfg = _load(config)
    try:
        rows = read_client_csv(csv_path, cfg)
        result = ingest_rows(
            _open_store(cfg),
            user_id,
            rows,
            today=today.date() if today else None,
            cfg=cfg,
            strict=strict,
        )
    except ValueError as e:
        logger.error("Ingest of %s failed: %s", csv_path, e)
        sys.exit(1)

    counts = result.plan.counts()
    logger.info(
        "Imported %s for user %s: %d inserted, %d updated",
        csv_path.name,
        user_id,
        counts["inserted"],
        counts["updated"],
    )
    _echo_json({"counts": counts, "preserved": result.plan.preserved, "validation": result.validation.to_dict()})


@cli.command()
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_today_option
@_config_option
def validate(csv_path: Path, today, config: str) -> None:
    """Check a client CSV without writing anything."""
    cfg = _load(config)
    try:
        rows = read_client_csv(csv_path, cfg)
    except ValueError as e:
        logger.error("%s", e)
        sys.exit(1)
    clients = process_rows(rows, today=today.date() if today else None, cfg=cfg.ingest)
    result = validate_clients(clients, years=cfg.ingest.years)
    _echo_json(result.to_dict())
    if not result.is_valid:
        logger.error("%s has %d validation issues", csv_path.name, len(result.issues))
        sys.exit(1)


@cli.command()
@_user_option
@_config_option
def score(user_id: int, config: str) -> None:
    """Print strategic scores for every stored client."""
    cfg = _load(config)
    store = _open_store(cfg)
    frame = score_frame(store.list_clients(user_id), cfg.scoring)
    _echo_json(frame.to_dict(orient="records"))


@cli.command()
@_user_option
@click.option("--capacity", type=float, default=None, help="Monthly hours available; defaults to config")
@_config_option
def optimize(user_id: int, capacity: Optional[float], config: str) -> None:
    """Pick the highest-value clients that fit within capacity."""
    cfg = _load(config)
    result = optimize_portfolio(_scored_portfolio(cfg, user_id), max_capacity=capacity, cfg=cfg.optimizer)
    _echo_json(result.to_dict())


@cli.command()
@_user_option
@click.option("--top-n", default=5, type=int)
@_config_option
def summary(user_id: int, top_n: int, config: str) -> None:
    """Portfolio summary: status mix, revenue, practice areas, top clients."""
    cfg = _load(config)
    _echo_json(summarize_portfolio(_scored_portfolio(cfg, user_id), top_n=top_n))


@cli.command()
@_user_option
@click.option("--client-id", required=True)
@click.option("--set", "assignments", multiple=True, required=True, help="field=value, repeatable")
@_config_option
def enhance(user_id: int, client_id: str, assignments: Tuple[str, ...], config: str) -> None:
    """Edit enhancement fields by hand; edited fields survive later imports."""
    cfg = _load(config)
    changes: Dict[str, Any] = {}
    for item in assignments:
        name, sep, raw = item.partition("=")
        name = name.strip()
        if not sep or name not in ENHANCEMENT_DEFAULTS:
            raise click.BadParameter(f"expected <enhancement field>=<value>, got {item!r}", param_hint="--set")
        changes[name] = _parse_enhancement(name, raw)

    store = _open_store(cfg)
    client = store.get_client(user_id, client_id)
    if client is None:
        logger.error("Client %s not found for user %s", client_id, user_id)
        sys.exit(1)
    saved = store.save_enhancements(user_id, apply_enhancements(client, **changes))
    _echo_json(saved.to_dict())


@cli.command()
@_user_option
@click.option("--client-id", required=True)
@_config_option
def delete(user_id: int, client_id: str, config: str) -> None:
    """Remove a client and its revenue history."""
    cfg = _load(config)
    if not _open_store(cfg).delete_client(user_id, client_id):
        logger.error("Client %s not found for user %s", client_id, user_id)
        sys.exit(1)
    logger.info("Deleted client %s", client_id)


@cli.group()
def scenario() -> None:
    """What-if analysis over the scored portfolio."""


@scenario.command("capacity")
@_user_option
@click.option("--current-capacity", default=100.0, type=float)
@click.option("--target-utilization", default=85.0, type=float)
@click.option("--new-hires", default=0, type=int)
@click.option("--hours-per-hire", default=40.0, type=float)
@_config_option
def capacity_cmd(
    user_id: int,
    current_capacity: float,
    target_utilization: float,
    new_hires: int,
    hours_per_hire: float,
    config: str,
) -> None:
    cfg = _load(config)
    _echo_json(
        capacity_scenario(
            _scored_portfolio(cfg, user_id),
            current_capacity=current_capacity,
            target_utilization=target_utilization,
            new_hires=new_hires,
            hours_per_hire=hours_per_hire,
        )
    )


@scenario.command("growth")
@_user_option
@click.option("--target-revenue", required=True, type=float)
@click.option("--months", "time_horizon_months", default=12, type=int)
@_config_option
def growth_cmd(user_id: int, target_revenue: float, time_horizon_months: int, config: str) -> None:
    cfg = _load(config)
    _echo_json(
        growth_scenario(
            _scored_portfolio(cfg, user_id),
            target_revenue=target_revenue,
            time_horizon_months=time_horizon_months,
        )
    )


@scenario.command("succession")
@_user_option
@click.option("--departing", multiple=True, required=True, help="Lobbyist name, repeatable")
@_config_option
def succession_cmd(user_id: int, departing: Tuple[str, ...], config: str) -> None:
    cfg = _load(config)
    _echo_json(succession_scenario(_scored_portfolio(cfg, user_id), departing))


if __name__ == "__main__":
    cli()
