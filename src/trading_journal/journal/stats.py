"""Aggregate trade statistics in account currency.

Rolls an unordered collection of open and closed trades into counts,
win rate, profit factor, averages, best/worst day and net profit.

Usage::

    stats = calculate_trade_stats(trades, starting_balance=25_000)
    print(stats.win_rate)       # 60.0 (percent of closed trades)
    print(stats.profit_factor)  # 3.0
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from ..core.enums import TradeOutcome
from ..core.models import Trade
from .r_multiple import compute_r

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TradeStats:
    """Currency-based summary of a trade collection."""

    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0  # Percent of closed trades (0-100)
    total_pnl: float = 0.0
    gross_wins: float = 0.0
    gross_losses: float = 0.0  # Magnitude
    profit_factor: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0  # Negative (or 0.0)
    largest_win: float = 0.0
    largest_loss: float = 0.0  # Negative (or 0.0)
    best_day: float = 0.0
    worst_day: float = 0.0
    total_fees: float = 0.0
    net_profit: float = 0.0
    avg_trade_duration: float | None = None  # Hours
    avg_risk_reward: float | None = None
    roi_percentage: float = 0.0


@dataclass(frozen=True)
class DailyAggregate:
    """Summed P&L and R of the trades falling on one calendar day."""

    day: date
    pnl: float
    r: float
    trades: int


def profit_factor(gross_wins: float, gross_losses: float) -> float:
    """Gross wins / gross losses.

    Without losses, or when the ratio overflows, the factor equals the
    gross wins when positive and 0.0 otherwise, so the result is always
    finite and non-negative.
    """
    if gross_losses > 0:
        ratio = gross_wins / gross_losses
        if math.isfinite(ratio):
            return round(ratio, 2)
    return round(gross_wins, 2) if gross_wins > 0 else 0.0


def _is_win(trade: Trade) -> bool:
    if trade.pnl > 0:
        return True
    if trade.pnl < 0:
        return False
    return trade.outcome == TradeOutcome.WIN


def _is_loss(trade: Trade) -> bool:
    if trade.pnl < 0:
        return True
    if trade.pnl > 0:
        return False
    return trade.outcome == TradeOutcome.LOSS


def calculate_trade_stats(
    trades: list[Trade],
    starting_balance: float | None = None,
) -> TradeStats:
    """Compute :class:`TradeStats` for *trades*.

    Win/loss counts, win rate and the gross figures cover closed trades
    only; P&L, fees and the best/worst day cover every trade supplied.
    """
    if not trades:
        return TradeStats()

    closed = [t for t in trades if t.is_closed]
    wins = [t for t in closed if _is_win(t)]
    losses = [t for t in closed if _is_loss(t)]

    total_pnl = sum(t.pnl for t in trades)
    total_fees = sum(t.fees for t in trades)
    gross_wins = sum(t.pnl for t in wins)
    loss_sum = sum(t.pnl for t in losses)
    gross_losses = abs(loss_sum)

    days = daily_aggregates(trades, by="entry")
    best_day = max((d.pnl for d in days), default=0.0)
    worst_day = min((d.pnl for d in days), default=0.0)

    net_profit = total_pnl - total_fees
    roi = 0.0
    if starting_balance is not None and starting_balance > 0:
        roi = round(net_profit / starting_balance * 100, 2)

    stats = TradeStats(
        total_trades=len(trades),
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=round(len(wins) / len(closed) * 100, 2) if closed else 0.0,
        total_pnl=round(total_pnl, 2),
        gross_wins=round(gross_wins, 2),
        gross_losses=round(gross_losses, 2),
        profit_factor=profit_factor(gross_wins, gross_losses),
        avg_win=round(gross_wins / len(wins), 2) if wins else 0.0,
        avg_loss=round(loss_sum / len(losses), 2) if losses else 0.0,
        largest_win=round(max(t.pnl for t in wins), 2) if wins else 0.0,
        largest_loss=round(min(t.pnl for t in losses), 2) if losses else 0.0,
        best_day=round(best_day, 2),
        worst_day=round(worst_day, 2),
        total_fees=round(total_fees, 2),
        net_profit=round(net_profit, 2),
        avg_trade_duration=_avg_hold_hours(closed),
        avg_risk_reward=_avg_risk_reward(trades),
        roi_percentage=roi,
    )
    logger.debug(
        "Trade stats: %d trades, %d closed, win_rate=%.2f, pf=%.2f",
        stats.total_trades, len(closed), stats.win_rate, stats.profit_factor,
    )
    return stats


def _avg_hold_hours(closed: list[Trade]) -> float | None:
    durations = [h for t in closed if (h := t.hold_hours) is not None and h > 0]
    if not durations:
        return None
    return round(sum(durations) / len(durations), 2)


def _avg_risk_reward(trades: list[Trade]) -> float | None:
    ratios = []
    for t in trades:
        ratio = t.planned_rr if t.planned_rr is not None else compute_r(t)
        if ratio is not None:
            ratios.append(ratio)
    if not ratios:
        return None
    return round(sum(ratios) / len(ratios), 2)


# ---------------------------------------------------------------------------
# Daily aggregation
# ---------------------------------------------------------------------------

def daily_aggregates(trades: Iterable[Trade], by: str = "exit") -> list[DailyAggregate]:
    """Group trades by calendar day, sorted ascending.

    Args:
        trades: Trades to aggregate.
        by: ``"exit"`` keys on the exit date (entry date for open trades),
            ``"entry"`` keys on the entry date.
    """
    if by not in ("exit", "entry"):
        raise ValueError(f"by must be 'exit' or 'entry', got {by!r}")

    pnl: dict[date, float] = defaultdict(float)
    r_sum: dict[date, float] = defaultdict(float)
    count: dict[date, int] = defaultdict(int)

    for t in trades:
        ts = t.entry_time if by == "entry" else t.closed_or_opened_at
        key = ts.date()
        pnl[key] += t.pnl
        r_sum[key] += compute_r(t) or 0.0
        count[key] += 1

    return [
        DailyAggregate(day=d, pnl=round(pnl[d], 2), r=round(r_sum[d], 2), trades=count[d])
        for d in sorted(pnl)
    ]


def day_win_pct(trades: Iterable[Trade]) -> float:
    """Percent of trading days (by exit date) that closed green."""
    days = daily_aggregates(trades, by="exit")
    if not days:
        return 0.0
    green = sum(1 for d in days if d.pnl > 0)
    return round(green / len(days) * 100, 2)
