"""Trade builders shared by the test suite."""

from __future__ import annotations

from datetime import datetime, timedelta

from trading_journal.core.enums import Direction, TradeStatus
from trading_journal.core.models import Trade

BASE_TIME = datetime(2024, 3, 4, 9, 30, 0)


def make_trade(
    pnl: float = 0.0,
    *,
    trade_id: str = "t1",
    symbol: str = "EURUSD",
    direction: Direction = Direction.LONG,
    status: TradeStatus = TradeStatus.CLOSED,
    entry_price: float | None = 100.0,
    exit_price: float | None = None,
    stop_price: float | None = 95.0,
    size: float = 1.0,
    fees: float = 0.0,
    entry_time: datetime | None = None,
    exit_time: datetime | None = None,
    hold: timedelta | None = timedelta(hours=2),
    **kwargs,
) -> Trade:
    """Build a Trade; exit_time defaults to entry_time + hold for closed trades."""
    entry_time = entry_time or BASE_TIME
    if exit_time is None and status == TradeStatus.CLOSED and hold is not None:
        exit_time = entry_time + hold
    if status == TradeStatus.OPEN:
        exit_price = None
    return Trade(
        trade_id=trade_id,
        symbol=symbol,
        direction=direction,
        status=status,
        entry_price=entry_price,
        exit_price=exit_price,
        stop_price=stop_price,
        size=size,
        pnl=pnl,
        fees=fees,
        entry_time=entry_time,
        exit_time=exit_time,
        **kwargs,
    )


def make_r_trade(
    r: float,
    *,
    day: int = 0,
    trade_id: str | None = None,
    risk_amount: float = 100.0,
    **kwargs,
) -> Trade:
    """A closed long trade with the given R and pnl = r * risk_amount.

    Entry 100, stop 90 (10 points of risk), exit 100 + 10 * r.
    """
    entry_time = BASE_TIME + timedelta(days=day)
    return make_trade(
        pnl=r * risk_amount,
        trade_id=trade_id or f"t{day}",
        entry_price=100.0,
        stop_price=90.0,
        exit_price=100.0 + 10.0 * r,
        entry_time=entry_time,
        **kwargs,
    )
