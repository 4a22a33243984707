"""Trade journal analytics: R-multiples, statistics and scoring.

Turns a list of journaled trades into risk-normalized performance
figures.  Every function takes its inputs as arguments and returns a
fresh value object; nothing is cached between calls.

Key components
--------------
compute_r                       R-multiple of one trade (None when undefined)
calculate_trade_stats           Currency statistics: win rate, profit factor, days
sharpe_r / sortino_r            Risk-adjusted ratios on the R-series
max_drawdown                    Peak-to-trough decline in R and currency
calculate_performance_metrics   Equity curve, drawdown periods, monthly breakdown
trader_score                    Composite 0-100 trader score
"""

from .r_multiple import compute_r, expectancy_r, net_r, r_values, trade_result
from .stats import DailyAggregate, TradeStats, calculate_trade_stats, daily_aggregates
from .ratios import (
    DrawdownResult,
    MaxDrawdown,
    calmar_ratio,
    max_drawdown,
    recovery_factor_r,
    sharpe_r,
    sortino_r,
)
from .performance import PerformanceMetrics, calculate_performance_metrics
from .trader_score import TraderScoreBreakdown, trader_score, trader_score_breakdown

__all__ = [
    "compute_r",
    "expectancy_r",
    "net_r",
    "r_values",
    "trade_result",
    "DailyAggregate",
    "TradeStats",
    "calculate_trade_stats",
    "daily_aggregates",
    "DrawdownResult",
    "MaxDrawdown",
    "calmar_ratio",
    "max_drawdown",
    "recovery_factor_r",
    "sharpe_r",
    "sortino_r",
    "PerformanceMetrics",
    "calculate_performance_metrics",
    "TraderScoreBreakdown",
    "trader_score",
    "trader_score_breakdown",
]
