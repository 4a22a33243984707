"""R-multiple calculation: the risk-normalized outcome of a trade.

R = ((exit - entry) * direction) / |entry - stop|

An R-multiple only exists when entry, stop and exit prices are all known
and the stop is not at the entry price.  ``None`` means "risk undefined"
and is distinct from a breakeven trade (R = 0.0).  Every aggregate in
this module filters ``None`` out, so trades journaled without a stop drop
out of R statistics while still counting in currency statistics.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from ..core.enums import Direction, TradeResult
from ..core.models import Trade

# R beyond which a trade counts as a winner or loser rather than a scratch
BREAKEVEN_BAND_R = 0.1

# Minimum number of R values before outlier trimming is applied
_MIN_OUTLIER_SAMPLE = 10
_OUTLIER_TAIL = 0.025


def compute_r(trade: Trade) -> float | None:
    """R-multiple of a single trade rounded to 2 dp, or None if undefined."""
    if trade.entry_price is None or trade.stop_price is None or trade.exit_price is None:
        return None

    risk = abs(trade.entry_price - trade.stop_price)
    if risk == 0:
        return None

    direction = 1 if trade.direction == Direction.LONG else -1
    return round((trade.exit_price - trade.entry_price) * direction / risk, 2)


def r_values(trades: Iterable[Trade]) -> list[float]:
    """R-series of the trades that have one, in input order."""
    return [r for r in (compute_r(t) for t in trades) if r is not None]


def net_r(trades: Iterable[Trade]) -> float:
    """Sum of R across trades (0.0 when no trade has an R)."""
    return round(sum(r_values(trades)), 2)


def expectancy_r(trades: Iterable[Trade]) -> float | None:
    """Mean R per trade, None when no trade has an R."""
    values = r_values(trades)
    if not values:
        return None
    return round(sum(values) / len(values), 2)


def trade_result(trade: Trade) -> TradeResult:
    """Classify a trade by R, treating |R| <= 0.1 and missing R as breakeven."""
    r = compute_r(trade)
    if r is None:
        return TradeResult.BREAKEVEN
    if r > BREAKEVEN_BAND_R:
        return TradeResult.WINNER
    if r < -BREAKEVEN_BAND_R:
        return TradeResult.LOSER
    return TradeResult.BREAKEVEN


def remove_outliers(trades: list[Trade]) -> list[Trade]:
    """Drop the 2.5% tails of the R distribution.

    Needs at least 10 trades with an R; smaller samples are returned
    unchanged.  Trades without an R are dropped when trimming applies.
    """
    scored = sorted(
        ((t, r) for t in trades if (r := compute_r(t)) is not None),
        key=lambda item: item[1],
    )
    if len(scored) < _MIN_OUTLIER_SAMPLE:
        return trades

    lower = scored[math.floor(len(scored) * _OUTLIER_TAIL)][1]
    upper = scored[math.ceil(len(scored) * (1 - _OUTLIER_TAIL)) - 1][1]
    return [
        t for t in trades
        if (r := compute_r(t)) is not None and lower <= r <= upper
    ]


# ---------------------------------------------------------------------------
# Pip / R:R helpers
# ---------------------------------------------------------------------------

def r_from_pips(
    pips: float | None,
    stop_pips: float | None,
    risk_r: float = 1.0,
) -> float | None:
    """Realized R from a signed pip result and the planned stop distance."""
    if pips is None or stop_pips is None or stop_pips == 0:
        return None
    return pips / stop_pips * risk_r


def planned_rr(target_pips: float | None, stop_pips: float | None) -> float | None:
    """Planned reward:risk from target and stop distances."""
    if target_pips is None or stop_pips is None or stop_pips == 0:
        return None
    return abs(target_pips) / abs(stop_pips)


def parse_rr(rr: str | float | None) -> float | None:
    """Parse R:R notation: ``"1:2"`` -> 2.0, ``"2"`` -> 2.0, ``2`` -> 2.0."""
    if rr is None:
        return None
    if isinstance(rr, (int, float)):
        return float(rr)

    s = "".join(rr.split())
    if ":" in s:
        parts = s.split(":")
        if len(parts) != 2:
            return None
        try:
            reward = float(parts[1])
        except ValueError:
            return None
        return reward if math.isfinite(reward) else None

    try:
        value = float(s)
    except ValueError:
        return None
    return value if math.isfinite(value) else None
