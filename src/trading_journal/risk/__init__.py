"""Risk management: Kelly sizing and risk-limit evaluation."""

from .calculator import (
    KellyResult,
    RiskMetrics,
    RiskRule,
    calculate_risk_metrics,
    classify,
    evaluate_risk_rules,
    kelly_criterion,
    optimal_position_size,
    position_size,
    risk_reward,
    validate_trade_risk,
)

__all__ = [
    "KellyResult",
    "RiskMetrics",
    "RiskRule",
    "calculate_risk_metrics",
    "classify",
    "evaluate_risk_rules",
    "kelly_criterion",
    "optimal_position_size",
    "position_size",
    "risk_reward",
    "validate_trade_risk",
]
