"""CLI entry point for journal analytics reports.

Reads trades (a JSON array of trade objects) or a playbook setup from
disk, runs the analytics engine and prints the result as JSON.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import click
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .core.config import Settings, load_settings
from .core.errors import DataError, JournalError
from .core.models import (
    ChecklistItem,
    PlaybookConfluence,
    PlaybookRubric,
    PlaybookRule,
    Trade,
)
from .observability.logger import get_logger, new_run_id, setup_logging

logger = get_logger(__name__)

_TRADES = TypeAdapter(list[Trade])


class SetupInput(BaseModel):
    """A playbook plus the boxes ticked for one setup."""

    rules: list[PlaybookRule] = Field(default_factory=list)
    rules_checked: dict[str, bool] = Field(default_factory=dict)
    confluences: list[PlaybookConfluence] = Field(default_factory=list)
    conf_checked: dict[str, bool] = Field(default_factory=dict)
    checklist: list[ChecklistItem] = Field(default_factory=list)
    checklist_checked: dict[str, bool] = Field(default_factory=dict)
    invalidations: list[str] = Field(default_factory=list)
    rubric: PlaybookRubric | None = None


def load_trades(path: str | Path) -> list[Trade]:
    """Parse a JSON array of trades from *path*."""
    try:
        return _TRADES.validate_json(Path(path).read_bytes())
    except (OSError, ValidationError) as exc:
        raise DataError(f"Cannot load trades from {path}: {exc}") from exc


def load_setup(path: str | Path) -> SetupInput:
    """Parse a playbook setup document from *path*."""
    try:
        return SetupInput.model_validate_json(Path(path).read_bytes())
    except (OSError, ValidationError) as exc:
        raise DataError(f"Cannot load setup from {path}: {exc}") from exc


def _emit(payload: dict[str, Any]) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _now_like(trades: list[Trade]) -> datetime:
    """Current UTC time, naive when the trade timestamps are naive."""
    now = datetime.now(timezone.utc)
    if trades and trades[0].entry_time.tzinfo is None:
        return now.replace(tzinfo=None)
    return now


def _bootstrap(config: str | None) -> Settings:
    settings = load_settings(config)
    setup_logging(
        level=settings.observability.log_level,
        format=settings.observability.log_format,
    )
    new_run_id()
    return settings


@click.group()
def main() -> None:
    """Trading journal analytics."""


@main.command()
@click.argument("trades_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", default=None, help="Config file path (TOML)")
@click.option("--balance", type=float, default=None, help="Starting balance override")
def stats(trades_file: str, config: str | None, balance: float | None) -> None:
    """Performance statistics and trader score for a trade file."""
    from .journal.performance import calculate_performance_metrics
    from .journal.ratios import max_drawdown, sharpe_r, sortino_r
    from .journal.r_multiple import expectancy_r, net_r
    from .journal.stats import calculate_trade_stats
    from .journal.trader_score import trader_score_breakdown

    try:
        settings = _bootstrap(config)
        trades = load_trades(trades_file)
    except JournalError as exc:
        raise click.ClickException(str(exc)) from exc

    starting = balance if balance is not None else settings.analytics.starting_balance
    logger.info("stats_report", trades=len(trades), starting_balance=starting)

    trade_stats = calculate_trade_stats(trades, starting_balance=starting)
    performance = calculate_performance_metrics(
        trades,
        starting_balance=starting,
        risk_per_r_pct=settings.analytics.risk_per_r_pct,
    )
    _emit({
        "stats": asdict(trade_stats),
        "r": {
            "net_r": net_r(trades),
            "expectancy_r": expectancy_r(trades),
            "sharpe_r": sharpe_r(trades),
            "sortino_r": sortino_r(trades),
            "max_drawdown": asdict(max_drawdown(trades)),
        },
        "trader_score": asdict(trader_score_breakdown(trade_stats, starting)),
        "performance": asdict(performance),
    })


@main.command()
@click.argument("trades_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--balance", type=float, required=True, help="Account balance")
@click.option("--as-of", "as_of", default=None, help="Evaluation time (ISO 8601), default now")
@click.option("--config", default=None, help="Config file path (TOML)")
def risk(trades_file: str, balance: float, as_of: str | None, config: str | None) -> None:
    """Risk metrics, limit checks and Kelly sizing."""
    from .risk.calculator import (
        calculate_risk_metrics,
        evaluate_risk_rules,
        optimal_position_size,
    )

    try:
        settings = _bootstrap(config)
        trades = load_trades(trades_file)
    except JournalError as exc:
        raise click.ClickException(str(exc)) from exc

    try:
        when = datetime.fromisoformat(as_of) if as_of else _now_like(trades)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--as-of") from exc

    analytics = settings.analytics
    metrics = calculate_risk_metrics(trades, balance, settings.risk, as_of=when)
    rules = evaluate_risk_rules(
        metrics, settings.risk, warning_threshold=analytics.warning_threshold
    )
    sizing = optimal_position_size(
        trades,
        min_sample=analytics.kelly_min_sample,
        fraction=analytics.kelly_fraction,
        max_suggested_risk_pct=analytics.max_suggested_risk_pct,
        default_risk_pct=analytics.default_risk_pct,
    )
    logger.info(
        "risk_report",
        trades=len(trades),
        violated=sum(1 for r in rules if r.status == "violated"),
    )
    _emit({
        "metrics": asdict(metrics),
        "rules": [asdict(r) for r in rules],
        "kelly": asdict(sizing),
    })


@main.command()
@click.argument("setup_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", default=None, help="Config file path (TOML)")
def grade(setup_file: str, config: str | None) -> None:
    """Score and grade a setup against its playbook."""
    from .playbook.scoring import explain, score_setup

    try:
        settings = _bootstrap(config)
        setup = load_setup(setup_file)
    except JournalError as exc:
        raise click.ClickException(str(exc)) from exc

    result = score_setup(
        rules=setup.rules,
        rules_checked=setup.rules_checked,
        confluences=setup.confluences,
        conf_checked=setup.conf_checked,
        rubric=setup.rubric or settings.rubric,
        checklist=setup.checklist,
        checklist_checked=setup.checklist_checked,
        invalidations=setup.invalidations,
        primary_multiplier=settings.analytics.primary_multiplier,
    )
    logger.info("setup_graded", grade=result.grade, score=round(result.score, 4))
    _emit({**asdict(result), "explanation": explain(result)})


if __name__ == "__main__":
    main()
