"""Composite trader score: six sub-metrics folded into one 0-100 number.

Each sub-metric is mapped to points through its own piecewise-linear
curve, written as an ordered table of :class:`Band` breakpoints:

    Metric               Points   Full marks
    ─────────────────────────────────────────────
    Win rate              20      50-70%
    Profit factor         20      >= 2.5
    Avg win / avg loss    15      >= 2.0
    Consistency           15      best/worst day <= 2
    Drawdown ratio        15      drawdown <= 10% of net profit
    Recovery factor       15      net profit / drawdown >= 5

The drawdown figure is the magnitude of the worst single day.

Usage::

    stats = calculate_trade_stats(trades)
    score = trader_score(stats, total_balance=25_000)   # 73.5
    detail = trader_score_breakdown(stats, 25_000)
    print(detail.profit_factor, detail.consistency)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from .ratios import day_volatility_ratio
from .stats import TradeStats

logger = logging.getLogger(__name__)

_INF = math.inf


@dataclass(frozen=True)
class Band:
    """One linear segment of a scoring curve.

    Scores ``base + slope * (value - anchor)`` for values in
    ``[low, high]``.  ``anchor`` defaults to ``low``.
    """

    low: float
    high: float
    base: float
    slope: float = 0.0
    anchor: float | None = None

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high

    def points(self, value: float) -> float:
        anchor = self.low if self.anchor is None else self.anchor
        return self.base + self.slope * (value - anchor)


def interpolate(value: float, bands: tuple[Band, ...], cap: float) -> float:
    """Score *value* against the first band containing it, within [0, cap]."""
    for band in bands:
        if band.contains(value):
            return max(0.0, min(cap, band.points(value)))
    return 0.0


# ================================================================== #
# Curves                                                              #
# ================================================================== #

WIN_RATE_MAX = 20.0
WIN_RATE_BANDS = (
    Band(50, 70, 20),
    Band(40, 50, 15, 0.5),
    Band(70, 80, 15, -0.5, anchor=80),
    Band(30, 40, 10, 0.5),
    Band(80, 90, 10, -0.5, anchor=90),
    Band(20, 30, 5, 0.5),
    Band(90, _INF, 5),
)

PROFIT_FACTOR_MAX = 20.0
PROFIT_FACTOR_BANDS = (
    Band(2.5, _INF, 20),
    Band(2.0, 2.5, 18, 4.0),
    Band(1.5, 2.0, 14, 8.0),
    Band(1.2, 1.5, 10, 4 / 0.3),
    Band(1.0, 1.2, 5, 25.0),
)

WIN_LOSS_MAX = 15.0
WIN_LOSS_BANDS = (
    Band(2.0, _INF, 15),
    Band(1.5, 2.0, 12, 6.0),
    Band(1.0, 1.5, 8, 8.0),
    Band(0.5, 1.0, 4, 8.0),
)

CONSISTENCY_MAX = 15.0
CONSISTENCY_BANDS = (
    Band(0, 2, 15),
    Band(2, 3, 12, -3.0, anchor=3),
    Band(3, 5, 8, -2.0, anchor=5),
    Band(5, 10, 4, -0.8, anchor=10),
)

DRAWDOWN_MAX = 15.0
DRAWDOWN_BANDS = (
    Band(0, 10, 15),
    Band(10, 20, 12, -0.3, anchor=20),
    Band(20, 30, 8, -0.4, anchor=30),
    Band(30, 50, 4, -0.2, anchor=50),
)

RECOVERY_MAX = 15.0
RECOVERY_BANDS = (
    Band(5, _INF, 15),
    Band(3, 5, 12, 1.5),
    Band(2, 3, 9, 3.0),
    Band(1, 2, 5, 4.0),
)


# ================================================================== #
# Scoring                                                             #
# ================================================================== #

@dataclass(frozen=True)
class TraderScoreBreakdown:
    """Points per sub-metric plus the inputs that produced them."""

    score: float = 0.0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    win_loss_ratio: float = 0.0
    consistency: float = 0.0
    drawdown: float = 0.0
    recovery_factor: float = 0.0
    inputs: dict[str, float] | None = None
    roi_pct: float | None = None  # Net profit relative to total_balance


def trader_score_breakdown(
    stats: TradeStats,
    total_balance: float | None = None,
) -> TraderScoreBreakdown:
    """Score *stats* and return each component."""
    roi = None
    if total_balance is not None and total_balance > 0:
        roi = round(stats.net_profit / total_balance * 100, 2)

    if stats.total_trades == 0:
        return TraderScoreBreakdown(roi_pct=roi)

    avg_win = abs(stats.avg_win)
    avg_loss = abs(stats.avg_loss)
    win_loss_ratio = avg_win / avg_loss if avg_loss > 0 else 0.0

    volatility = day_volatility_ratio(stats)

    net_profit = stats.net_profit
    max_drawdown = abs(stats.worst_day)
    drawdown_ratio = max_drawdown / net_profit * 100 if net_profit > 0 else 100.0
    recovery = net_profit / max_drawdown if max_drawdown > 0 else 0.0

    parts = {
        "win_rate": interpolate(stats.win_rate, WIN_RATE_BANDS, WIN_RATE_MAX),
        "profit_factor": interpolate(
            stats.profit_factor, PROFIT_FACTOR_BANDS, PROFIT_FACTOR_MAX
        ),
        "win_loss_ratio": interpolate(win_loss_ratio, WIN_LOSS_BANDS, WIN_LOSS_MAX),
        "consistency": interpolate(volatility, CONSISTENCY_BANDS, CONSISTENCY_MAX),
        "drawdown": interpolate(drawdown_ratio, DRAWDOWN_BANDS, DRAWDOWN_MAX),
        "recovery_factor": interpolate(recovery, RECOVERY_BANDS, RECOVERY_MAX),
    }
    total = max(0.0, min(100.0, round(sum(parts.values()), 2)))

    logger.debug("Trader score %.2f from %s", total, parts)
    return TraderScoreBreakdown(
        score=total,
        **{name: round(points, 2) for name, points in parts.items()},
        inputs={
            "win_loss_ratio": round(win_loss_ratio, 4),
            "volatility": round(volatility, 4),
            "drawdown_ratio": round(drawdown_ratio, 4),
            "recovery_factor": round(recovery, 4),
        },
        roi_pct=roi,
    )


def trader_score(stats: TradeStats, total_balance: float | None = None) -> float:
    """Composite 0-100 score; exactly 0 for an empty trade collection."""
    if stats.total_trades == 0:
        return 0.0
    return trader_score_breakdown(stats, total_balance).score
