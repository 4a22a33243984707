"""Risk-adjusted ratios on the R-series.

Sharpe and Sortino use the population standard deviation (divide by N)
and scale by sqrt(N).  Both return ``None`` for "insufficient data"
rather than 0.0, which would read as "no edge".

Max drawdown is tracked separately in R and in currency: the two curves
can diverge when fees or position sizing differ from the risk-normalized
outcome, so each keeps its own running peak and trough.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime

import numpy as np

from ..core.models import Trade
from .r_multiple import compute_r, net_r, r_values
from .stats import TradeStats

logger = logging.getLogger(__name__)

_MIN_RATIO_SAMPLE = 2
_ZERO_VARIANCE = 1e-12  # Float noise from averaging identical values


def sharpe_r(trades: list[Trade]) -> float | None:
    """Sharpe = mean(R) / stdev(R) * sqrt(N).

    None with fewer than two R values or zero variance.
    """
    values = np.asarray(r_values(trades), dtype=float)
    if values.size < _MIN_RATIO_SAMPLE:
        return None

    stdev = float(np.std(values))
    if stdev < _ZERO_VARIANCE:
        return None

    return round(float(np.mean(values)) / stdev * math.sqrt(values.size), 2)


def sortino_r(trades: list[Trade]) -> float | None:
    """Sortino = mean(R) / downside_dev(R) * sqrt(N).

    The downside deviation is the root-mean-square of the losing R values.
    None with fewer than two R values or when nothing lost.
    """
    values = np.asarray(r_values(trades), dtype=float)
    if values.size < _MIN_RATIO_SAMPLE:
        return None

    downside = values[values < 0]
    if downside.size == 0:
        return None

    downside_dev = float(np.sqrt(np.mean(downside ** 2)))
    return round(float(np.mean(values)) / downside_dev * math.sqrt(values.size), 2)


# ---------------------------------------------------------------------------
# Drawdown
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DrawdownResult:
    """Deepest peak-to-trough decline of one cumulative series.

    ``amount`` equals ``peak_value - trough_value``.  Indices refer to
    the trades sorted by exit-or-entry time.
    """

    amount: float = 0.0
    peak_value: float = 0.0
    trough_value: float = 0.0
    peak_index: int | None = None  # None when the peak is the starting point
    trough_index: int | None = None
    peak_at: datetime | None = None
    trough_at: datetime | None = None


@dataclass(frozen=True)
class MaxDrawdown:
    """Max drawdown measured in R and in account currency."""

    r: DrawdownResult = field(default_factory=DrawdownResult)
    currency: DrawdownResult = field(default_factory=DrawdownResult)


class _DrawdownTracker:
    """Running peak / max-decline bookkeeping for one cumulative series."""

    def __init__(self) -> None:
        self.cumulative = 0.0
        self.peak = 0.0
        self.peak_index: int | None = None
        self.peak_at: datetime | None = None
        self.result = DrawdownResult()

    def update(self, index: int, at: datetime, value: float) -> None:
        self.cumulative += value
        if self.cumulative > self.peak:
            self.peak = self.cumulative
            self.peak_index = index
            self.peak_at = at

        drawdown = self.peak - self.cumulative
        if drawdown > self.result.amount:
            self.result = DrawdownResult(
                amount=drawdown,
                peak_value=self.peak,
                trough_value=self.cumulative,
                peak_index=self.peak_index,
                trough_index=index,
                peak_at=self.peak_at,
                trough_at=at,
            )

    def rounded(self) -> DrawdownResult:
        res = self.result
        return DrawdownResult(
            amount=round(res.amount, 2),
            peak_value=round(res.peak_value, 2),
            trough_value=round(res.trough_value, 2),
            peak_index=res.peak_index,
            trough_index=res.trough_index,
            peak_at=res.peak_at,
            trough_at=res.trough_at,
        )


def max_drawdown(trades: list[Trade]) -> MaxDrawdown:
    """Max drawdown in R and currency over trades ordered by close time.

    Trades without an R contribute 0R to the R curve but their P&L still
    moves the currency curve.
    """
    ordered = sorted(trades, key=lambda t: t.closed_or_opened_at)
    r_tracker = _DrawdownTracker()
    ccy_tracker = _DrawdownTracker()

    for index, trade in enumerate(ordered):
        at = trade.closed_or_opened_at
        r_tracker.update(index, at, compute_r(trade) or 0.0)
        ccy_tracker.update(index, at, trade.pnl)

    result = MaxDrawdown(r=r_tracker.rounded(), currency=ccy_tracker.rounded())
    logger.debug(
        "Max drawdown over %d trades: %.2fR / %.2f",
        len(ordered), result.r.amount, result.currency.amount,
    )
    return result


def recovery_factor_r(trades: list[Trade]) -> float:
    """Net R / |max drawdown R|; 0.0 when there was never a decline."""
    dd = max_drawdown(trades).r.amount
    if dd == 0:
        return 0.0
    return round(net_r(trades) / abs(dd), 2)


def calmar_ratio(total_return_pct: float, max_drawdown_pct: float) -> float:
    """Return over max drawdown percent; 0.0 without a drawdown."""
    if max_drawdown_pct == 0:
        return 0.0
    return round(total_return_pct / abs(max_drawdown_pct), 2)


def day_volatility_ratio(stats: TradeStats) -> float:
    """|best day| / |worst day|; 0.0 when the worst day is flat."""
    worst = abs(stats.worst_day)
    if worst == 0:
        return 0.0
    return abs(stats.best_day) / worst
