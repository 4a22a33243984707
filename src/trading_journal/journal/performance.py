"""Performance report: equity curve, drawdown periods and monthly breakdown.

Builds the full :class:`PerformanceMetrics` snapshot for a trade set.
Win/loss figures here are in R: a closed trade wins when its R is above
zero, and trades without an R are left out of every R figure while still
counting in trade totals, hold times and volume.  The equity curve converts each day's R into currency at a fixed
fraction of the starting balance (1R = ``risk_per_r_pct`` % by default
1%), which is how the journal projects a risk-normalized account.

Usage::

    metrics = calculate_performance_metrics(trades, starting_balance=10_000)
    print(metrics.sharpe_ratio)          # 1.42 or None
    print(metrics.max_drawdown_percent)  # 3.1
    for month in metrics.monthly:
        print(month.month, month.profit)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date

import numpy as np

from ..core.models import Trade
from .r_multiple import compute_r
from .ratios import calmar_ratio, recovery_factor_r, sharpe_r, sortino_r
from .stats import profit_factor

logger = logging.getLogger(__name__)


# ================================================================== #
# Value objects                                                       #
# ================================================================== #

@dataclass(frozen=True)
class EquityCurvePoint:
    day: date
    equity: float
    drawdown: float
    drawdown_percent: float
    trades: int  # Cumulative closed trades up to and including this day
    daily_return: float  # Percent change from the previous point


@dataclass(frozen=True)
class DrawdownPeriod:
    """One under-water stretch of the equity curve."""

    start: date
    end: date
    depth: float
    depth_percent: float
    duration_days: int
    recovered_on: date | None = None  # None while still under water


@dataclass(frozen=True)
class MonthlyPerformance:
    month: str  # "YYYY-MM"
    trades: int
    profit: float  # R
    win_rate: float
    profit_factor: float
    avg_r: float


@dataclass(frozen=True)
class DailyPerformance:
    day: date
    trades: int
    profit: float  # R
    win_rate: float
    wins: int
    losses: int


@dataclass(frozen=True)
class PerformanceMetrics:
    """Flat snapshot of a trade set's performance.

    A fresh instance is produced per calculation; ratios that need more
    data than is available are ``None``.
    """

    total_trades: int = 0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    expectancy: float = 0.0
    sharpe_ratio: float | None = None
    sortino_ratio: float | None = None
    calmar_ratio: float = 0.0
    recovery_factor: float = 0.0
    max_drawdown: float = 0.0
    max_drawdown_percent: float = 0.0
    avg_drawdown: float = 0.0
    avg_drawdown_duration: float = 0.0
    longest_drawdown_duration: int = 0
    profit_per_trade: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    avg_r_multiple: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    consecutive_wins: int = 0
    consecutive_losses: int = 0
    avg_hold_time: float = 0.0
    avg_win_hold_time: float = 0.0
    avg_loss_hold_time: float = 0.0
    total_volume: float = 0.0
    avg_trades_per_day: float = 0.0
    profitable_months: int = 0
    total_months: int = 0
    best_month: float = 0.0
    worst_month: float = 0.0
    avg_monthly_return: float = 0.0
    monthly_return_std_dev: float = 0.0
    monthly: tuple[MonthlyPerformance, ...] = ()
    equity_curve: tuple[EquityCurvePoint, ...] = ()
    drawdown_periods: tuple[DrawdownPeriod, ...] = ()


# ================================================================== #
# Equity curve and drawdown periods                                   #
# ================================================================== #

def _closed_by_exit(trades: list[Trade]) -> list[Trade]:
    closed = [t for t in trades if t.is_closed and t.exit_time is not None]
    return sorted(closed, key=lambda t: t.exit_time)


def equity_curve(
    trades: list[Trade],
    starting_balance: float = 10_000.0,
    risk_per_r_pct: float = 1.0,
) -> list[EquityCurvePoint]:
    """Daily equity curve of closed trades, one point per exit day."""
    closed = _closed_by_exit(trades)
    if not closed:
        return []

    by_day: dict[date, list[Trade]] = defaultdict(list)
    for t in closed:
        by_day[t.exit_time.date()].append(t)

    risk_per_r = starting_balance * risk_per_r_pct / 100
    equity = starting_balance
    peak = starting_balance
    count = 0
    points: list[EquityCurvePoint] = []

    for day in sorted(by_day):
        day_trades = by_day[day]
        day_r = sum(compute_r(t) or 0.0 for t in day_trades)

        prev_equity = equity
        equity += day_r * risk_per_r
        count += len(day_trades)
        peak = max(peak, equity)

        drawdown = peak - equity
        points.append(EquityCurvePoint(
            day=day,
            equity=round(equity, 2),
            drawdown=round(drawdown, 2),
            drawdown_percent=round(drawdown / peak * 100, 2) if peak > 0 else 0.0,
            trades=count,
            daily_return=(
                round((equity - prev_equity) / prev_equity * 100, 4)
                if prev_equity > 0 else 0.0
            ),
        ))

    return points


def drawdown_periods(curve: list[EquityCurvePoint]) -> list[DrawdownPeriod]:
    """Split an equity curve into under-water periods.

    A period opens on the first point below the running peak and closes
    on the first point back at the peak.  A period still open at the end
    of the curve is reported without a recovery date.
    """
    periods: list[DrawdownPeriod] = []
    start: EquityCurvePoint | None = None
    depth = 0.0
    depth_pct = 0.0

    for point in curve:
        if point.drawdown > 0:
            if start is None:
                start = point
                depth, depth_pct = point.drawdown, point.drawdown_percent
            elif point.drawdown > depth:
                depth, depth_pct = point.drawdown, point.drawdown_percent
        elif start is not None:
            periods.append(DrawdownPeriod(
                start=start.day,
                end=point.day,
                depth=depth,
                depth_percent=depth_pct,
                duration_days=(point.day - start.day).days,
                recovered_on=point.day,
            ))
            start = None

    if start is not None:
        last = curve[-1]
        periods.append(DrawdownPeriod(
            start=start.day,
            end=last.day,
            depth=depth,
            depth_percent=depth_pct,
            duration_days=(last.day - start.day).days,
        ))

    return periods


# ================================================================== #
# Monthly / daily breakdown                                           #
# ================================================================== #

def _scored(trades: list[Trade]) -> list[tuple[Trade, float]]:
    """Trades paired with their R; trades without an R are left out."""
    return [(t, r) for t in trades if (r := compute_r(t)) is not None]


def _r_split(trades: list[Trade]) -> tuple[list[float], list[float], list[float]]:
    """(all R, winning R, losing R) over the trades that have an R."""
    rs = [r for _, r in _scored(trades)]
    return rs, [r for r in rs if r > 0], [r for r in rs if r < 0]


def _pct(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def monthly_performance(trades: list[Trade]) -> list[MonthlyPerformance]:
    """Per-month R breakdown of closed trades, oldest month first."""
    by_month: dict[str, list[Trade]] = defaultdict(list)
    for t in _closed_by_exit(trades):
        by_month[t.exit_time.strftime("%Y-%m")].append(t)

    months = []
    for month in sorted(by_month):
        month_trades = by_month[month]
        rs, wins, losses = _r_split(month_trades)
        profit = sum(rs)
        months.append(MonthlyPerformance(
            month=month,
            trades=len(month_trades),
            profit=round(profit, 2),
            win_rate=_pct(len(wins), len(rs)),
            profit_factor=profit_factor(sum(wins), abs(sum(losses))),
            avg_r=round(profit / len(rs), 2) if rs else 0.0,
        ))
    return months


def daily_performance(trades: list[Trade]) -> list[DailyPerformance]:
    """Per-day R breakdown of closed trades, oldest day first."""
    by_day: dict[date, list[Trade]] = defaultdict(list)
    for t in _closed_by_exit(trades):
        by_day[t.exit_time.date()].append(t)

    days = []
    for day in sorted(by_day):
        day_trades = by_day[day]
        rs, wins, losses = _r_split(day_trades)
        days.append(DailyPerformance(
            day=day,
            trades=len(day_trades),
            profit=round(sum(rs), 2),
            win_rate=_pct(len(wins), len(rs)),
            wins=len(wins),
            losses=len(losses),
        ))
    return days


# ================================================================== #
# Aggregate metrics                                                   #
# ================================================================== #

def _streaks(rs: list[float]) -> tuple[int, int]:
    """Longest run of winning and of losing trades; scratches break neither."""
    best_win = best_loss = win_run = loss_run = 0
    for r in rs:
        if r > 0:
            win_run += 1
            loss_run = 0
            best_win = max(best_win, win_run)
        elif r < 0:
            loss_run += 1
            win_run = 0
            best_loss = max(best_loss, loss_run)
    return best_win, best_loss


def _mean_hold(trades: list[Trade]) -> float:
    hours = [h for t in trades if (h := t.hold_hours) is not None and h > 0]
    return round(sum(hours) / len(hours), 2) if hours else 0.0


def calculate_performance_metrics(
    trades: list[Trade],
    starting_balance: float = 10_000.0,
    risk_per_r_pct: float = 1.0,
) -> PerformanceMetrics:
    """Compute a :class:`PerformanceMetrics` snapshot for closed *trades*."""
    closed = _closed_by_exit(trades)
    if not closed:
        return PerformanceMetrics()

    # R figures cover trades with an R; counts, hold times and volume cover all
    scored = _scored(closed)
    rs, win_rs, loss_rs = _r_split(closed)
    total = len(closed)
    win_rate = _pct(len(win_rs), len(rs))

    total_win_r = sum(win_rs)
    total_loss_r = abs(sum(loss_rs))
    avg_win = total_win_r / len(win_rs) if win_rs else 0.0
    avg_loss = total_loss_r / len(loss_rs) if loss_rs else 0.0
    avg_r = sum(rs) / len(rs) if rs else 0.0

    curve = equity_curve(closed, starting_balance, risk_per_r_pct)
    periods = drawdown_periods(curve)
    max_dd = max((p.depth for p in periods), default=0.0)
    max_dd_pct = max((p.depth_percent for p in periods), default=0.0)

    final_equity = curve[-1].equity if curve else starting_balance
    total_return_pct = (
        (final_equity - starting_balance) / starting_balance * 100
        if starting_balance > 0 else 0.0
    )

    wins = [t for t, r in scored if r > 0]
    losses = [t for t, r in scored if r < 0]
    consecutive_wins, consecutive_losses = _streaks(rs)

    first_exit = closed[0].exit_time
    last_exit = closed[-1].exit_time
    trading_days = max(1, (last_exit - first_exit).days)

    monthly = monthly_performance(closed)
    monthly_profits = [m.profit for m in monthly]

    metrics = PerformanceMetrics(
        total_trades=total,
        win_rate=win_rate,
        profit_factor=profit_factor(total_win_r, total_loss_r),
        expectancy=round(avg_r, 2),
        sharpe_ratio=sharpe_r(closed),
        sortino_ratio=sortino_r(closed),
        calmar_ratio=calmar_ratio(total_return_pct, max_dd_pct),
        recovery_factor=recovery_factor_r(closed),
        max_drawdown=round(max_dd, 2),
        max_drawdown_percent=round(max_dd_pct, 2),
        avg_drawdown=(
            round(sum(p.depth for p in periods) / len(periods), 2) if periods else 0.0
        ),
        avg_drawdown_duration=(
            round(sum(p.duration_days for p in periods) / len(periods), 2)
            if periods else 0.0
        ),
        longest_drawdown_duration=max((p.duration_days for p in periods), default=0),
        profit_per_trade=round((final_equity - starting_balance) / total, 2),
        avg_win=round(avg_win, 2),
        avg_loss=round(avg_loss, 2),
        avg_r_multiple=round(avg_r, 2),
        largest_win=max(win_rs, default=0.0),
        largest_loss=min(loss_rs, default=0.0),
        consecutive_wins=consecutive_wins,
        consecutive_losses=consecutive_losses,
        avg_hold_time=_mean_hold(closed),
        avg_win_hold_time=_mean_hold(wins),
        avg_loss_hold_time=_mean_hold(losses),
        total_volume=round(sum(t.size for t in closed), 4),
        avg_trades_per_day=round(total / trading_days, 2),
        profitable_months=sum(1 for p in monthly_profits if p > 0),
        total_months=len(monthly),
        best_month=max(monthly_profits, default=0.0),
        worst_month=min(monthly_profits, default=0.0),
        avg_monthly_return=(
            round(sum(monthly_profits) / len(monthly_profits), 2) if monthly_profits else 0.0
        ),
        monthly_return_std_dev=(
            round(float(np.std(monthly_profits)), 2) if monthly_profits else 0.0
        ),
        monthly=tuple(monthly),
        equity_curve=tuple(curve),
        drawdown_periods=tuple(periods),
    )
    logger.debug(
        "Performance metrics: %d trades, expectancy=%.2fR, max_dd=%.2f%%",
        total, metrics.expectancy, metrics.max_drawdown_percent,
    )
    return metrics
