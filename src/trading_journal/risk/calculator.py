"""Risk management calculations: Kelly sizing and risk-limit evaluation.

Derives live :class:`RiskMetrics` from the trade history and compares
them with the user's :class:`RiskSettings`.  Each configured limit is
evaluated on its own and classified as ``ok`` (< 80% of the limit),
``warning`` (80-100%) or ``violated`` (>= 100%).

Window risk is the sum of absolute losses inside a trailing window
anchored at the evaluation time, so a large win in the same window
never masks the losses taken alongside it.

Usage::

    metrics = calculate_risk_metrics(trades, 25_000, settings, as_of=now)
    for rule in evaluate_risk_rules(metrics, settings):
        print(rule.name, rule.status)

    sizing = optimal_position_size(trades)
    print(sizing.fractional_kelly)   # half-Kelly, percent of balance
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..core.enums import RiskStatus
from ..core.models import RiskSettings, Trade
from ..journal.r_multiple import compute_r

logger = logging.getLogger(__name__)

DEFAULT_WARNING_THRESHOLD = 0.8
DEFAULT_KELLY_MIN_SAMPLE = 30

DAILY_WINDOW = timedelta(days=1)
WEEKLY_WINDOW = timedelta(days=7)
MONTHLY_WINDOW = timedelta(days=30)


# ================================================================== #
# Kelly criterion                                                     #
# ================================================================== #

@dataclass(frozen=True)
class KellyResult:
    """Kelly sizing suggestion; all figures are percent of balance."""

    kelly: float
    fractional_kelly: float
    suggested_risk: float
    sample_size: int
    sufficient_sample: bool


def kelly_criterion(win_rate: float, avg_win: float, avg_loss: float) -> float:
    """Full Kelly fraction (0..1) for a win rate in percent.

    Kelly = p - (1 - p) / b where b = avg_win / avg_loss.  A negative
    Kelly means no edge and is reported as 0.
    """
    avg_loss = abs(avg_loss)
    if avg_loss == 0 or avg_win <= 0:
        return 0.0

    p = win_rate / 100
    b = avg_win / avg_loss
    return max(0.0, p - (1 - p) / b)


def optimal_position_size(
    trades: list[Trade],
    min_sample: int = DEFAULT_KELLY_MIN_SAMPLE,
    fraction: float = 0.5,
    max_suggested_risk_pct: float = 2.0,
    default_risk_pct: float = 1.0,
) -> KellyResult:
    """Kelly sizing from closed trades that have an R-multiple.

    Below *min_sample* trades the estimate is too unstable to use, so a
    zero Kelly with the default risk suggestion is returned instead.
    """
    rs = [r for t in trades if t.is_closed and (r := compute_r(t)) is not None]
    if len(rs) < min_sample:
        return KellyResult(
            kelly=0.0,
            fractional_kelly=0.0,
            suggested_risk=default_risk_pct,
            sample_size=len(rs),
            sufficient_sample=False,
        )

    wins = [r for r in rs if r > 0]
    losses = [abs(r) for r in rs if r < 0]
    win_rate = len(wins) / len(rs) * 100
    avg_win = sum(wins) / len(wins) if wins else 0.0
    avg_loss = sum(losses) / len(losses) if losses else 0.0

    kelly = kelly_criterion(win_rate, avg_win, avg_loss)
    fractional = kelly * fraction
    return KellyResult(
        kelly=round(kelly * 100, 2),
        fractional_kelly=round(fractional * 100, 2),
        suggested_risk=round(min(fractional * 100, max_suggested_risk_pct), 2),
        sample_size=len(rs),
        sufficient_sample=True,
    )


# ================================================================== #
# Risk metrics                                                        #
# ================================================================== #

@dataclass(frozen=True)
class RiskMetrics:
    account_balance: float
    account_equity: float
    current_drawdown: float
    current_drawdown_percent: float
    daily_risk_used: float
    daily_risk_remaining: float
    weekly_risk_used: float
    weekly_risk_remaining: float
    monthly_risk_used: float
    monthly_risk_remaining: float
    consecutive_losses: int
    average_risk_per_trade: float  # Planned risk in currency
    largest_loss: float  # Negative (or 0.0)
    open_positions: int
    open_positions_risk: float


def _pct_of(amount: float, balance: float) -> float:
    return amount / balance * 100 if balance > 0 else 0.0


def window_loss(trades: list[Trade], as_of: datetime, window: timedelta) -> float:
    """Sum of |loss| for closed trades exiting in ``(as_of - window, as_of]``."""
    start = as_of - window
    return sum(
        abs(t.pnl)
        for t in trades
        if t.is_closed and t.exit_time is not None
        and start < t.exit_time <= as_of and t.pnl < 0
    )


def calculate_risk_metrics(
    trades: list[Trade],
    account_balance: float,
    settings: RiskSettings,
    as_of: datetime,
) -> RiskMetrics:
    """Compute :class:`RiskMetrics` as of *as_of*.

    *account_balance* is the balance the closed P&L accrues on; equity
    is that balance plus all closed P&L up to *as_of*.
    """
    closed = sorted(
        (t for t in trades
         if t.is_closed and (t.exit_time is None or t.exit_time <= as_of)),
        key=lambda t: t.closed_or_opened_at,
    )
    open_trades = [t for t in trades if not t.is_closed]

    equity = account_balance
    peak = account_balance
    for t in closed:
        equity += t.pnl
        peak = max(peak, equity)
    drawdown = peak - equity

    daily = window_loss(closed, as_of, DAILY_WINDOW)
    weekly = window_loss(closed, as_of, WEEKLY_WINDOW)
    monthly = window_loss(closed, as_of, MONTHLY_WINDOW)

    streak = 0
    for t in reversed(closed):
        if t.pnl >= 0:
            break
        streak += 1

    planned = [risk for t in closed if (risk := t.planned_risk) is not None]
    losses = [t.pnl for t in closed if t.pnl < 0]

    def remaining(limit_pct: float, used: float) -> float:
        return max(0.0, account_balance * limit_pct / 100 - used)

    return RiskMetrics(
        account_balance=account_balance,
        account_equity=round(equity, 2),
        current_drawdown=round(drawdown, 2),
        current_drawdown_percent=round(drawdown / peak * 100, 2) if peak > 0 else 0.0,
        daily_risk_used=round(daily, 2),
        daily_risk_remaining=round(remaining(settings.max_daily_risk, daily), 2),
        weekly_risk_used=round(weekly, 2),
        weekly_risk_remaining=round(remaining(settings.max_weekly_risk, weekly), 2),
        monthly_risk_used=round(monthly, 2),
        monthly_risk_remaining=round(remaining(settings.max_monthly_risk, monthly), 2),
        consecutive_losses=streak,
        average_risk_per_trade=round(sum(planned) / len(planned), 2) if planned else 0.0,
        largest_loss=round(min(losses), 2) if losses else 0.0,
        open_positions=len(open_trades),
        open_positions_risk=round(
            sum(t.planned_risk or 0.0 for t in open_trades), 2
        ),
    )


# ================================================================== #
# Rule evaluation                                                     #
# ================================================================== #

@dataclass(frozen=True)
class RiskRule:
    id: str
    name: str
    description: str
    status: RiskStatus
    current: float
    limit: float
    unit: str


def classify(
    current: float,
    limit: float,
    warning_threshold: float = DEFAULT_WARNING_THRESHOLD,
) -> RiskStatus:
    """``violated`` at or past *limit*, ``warning`` from the threshold up."""
    if current >= limit:
        return RiskStatus.VIOLATED
    if current >= limit * warning_threshold:
        return RiskStatus.WARNING
    return RiskStatus.OK


def evaluate_risk_rules(
    metrics: RiskMetrics,
    settings: RiskSettings,
    warning_threshold: float = DEFAULT_WARNING_THRESHOLD,
) -> list[RiskRule]:
    """Evaluate every configured limit independently."""
    balance = metrics.account_balance
    checks = [
        ("per-trade-risk", "Per-Trade Risk", "Average planned risk per trade",
         _pct_of(metrics.average_risk_per_trade, balance),
         settings.max_risk_per_trade, "%"),
        ("daily-risk", "Daily Risk Limit", "Maximum risk allowed per day",
         _pct_of(metrics.daily_risk_used, balance), settings.max_daily_risk, "%"),
        ("weekly-risk", "Weekly Risk Limit", "Maximum risk allowed per week",
         _pct_of(metrics.weekly_risk_used, balance), settings.max_weekly_risk, "%"),
        ("monthly-risk", "Monthly Risk Limit", "Maximum risk allowed per month",
         _pct_of(metrics.monthly_risk_used, balance), settings.max_monthly_risk, "%"),
        ("max-drawdown", "Maximum Drawdown", "Maximum allowed equity decline",
         metrics.current_drawdown_percent, settings.max_drawdown, "%"),
        ("consecutive-losses", "Consecutive Losses", "Maximum consecutive losing trades",
         metrics.consecutive_losses, settings.max_consecutive_losses, "trades"),
        ("open-positions", "Open Positions", "Maximum number of open positions",
         metrics.open_positions, settings.max_open_positions, "positions"),
    ]

    rules = []
    for rule_id, name, description, current, limit, unit in checks:
        status = classify(current, limit, warning_threshold)
        if status == RiskStatus.VIOLATED:
            logger.warning(
                "Risk limit BREACHED: %s current=%.2f%s limit=%.2f%s",
                name, current, unit, limit, unit,
            )
        rules.append(RiskRule(
            id=rule_id,
            name=name,
            description=description,
            status=status,
            current=round(float(current), 2),
            limit=float(limit),
            unit=unit,
        ))
    return rules


# ================================================================== #
# Pre-trade helpers                                                   #
# ================================================================== #

def risk_reward(entry_price: float, stop_loss: float, take_profit: float) -> float:
    """Reward:risk of a planned trade; 0.0 with no stop distance."""
    risk = abs(entry_price - stop_loss)
    reward = abs(take_profit - entry_price)
    return reward / risk if risk > 0 else 0.0


def position_size(
    account_balance: float,
    risk_pct: float,
    entry_price: float,
    stop_loss: float,
) -> float:
    """Units to trade so a stop-out loses *risk_pct* of the balance."""
    stop_distance = abs(entry_price - stop_loss)
    if stop_distance == 0:
        return 0.0
    return account_balance * risk_pct / 100 / stop_distance


def validate_trade_risk(
    entry_price: float,
    stop_loss: float,
    take_profit: float,
    size: float,
    account_balance: float,
    settings: RiskSettings,
) -> list[str]:
    """Violations of the per-trade limits for a planned trade (empty if none)."""
    violations = []

    rr = risk_reward(entry_price, stop_loss, take_profit)
    if rr < settings.risk_reward_minimum:
        violations.append(
            f"Risk-reward ratio {rr:.2f} is below minimum {settings.risk_reward_minimum}"
        )

    risk_pct = _pct_of(abs(entry_price - stop_loss) * size, account_balance)
    if risk_pct > settings.max_risk_per_trade:
        violations.append(
            f"Position risk {risk_pct:.2f}% exceeds maximum {settings.max_risk_per_trade}%"
        )

    return violations
