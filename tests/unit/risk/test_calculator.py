"""Tests for Kelly sizing, risk metrics and risk-limit evaluation."""

from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from trading_journal.core.enums import RiskStatus, TradeStatus
from trading_journal.core.models import RiskSettings
from trading_journal.risk.calculator import (
    RiskMetrics,
    calculate_risk_metrics,
    classify,
    evaluate_risk_rules,
    kelly_criterion,
    optimal_position_size,
    position_size,
    risk_reward,
    validate_trade_risk,
    window_loss,
)

from tests.helpers import BASE_TIME, make_r_trade, make_trade

AS_OF = BASE_TIME + timedelta(days=40)


def _closed_at(pnl: float, before: timedelta, trade_id: str, **kwargs):
    exit_time = AS_OF - before
    return make_trade(
        pnl,
        trade_id=trade_id,
        entry_time=exit_time - timedelta(hours=1),
        exit_time=exit_time,
        **kwargs,
    )


def _metrics(**overrides) -> RiskMetrics:
    values = dict(
        account_balance=10_000.0,
        account_equity=10_000.0,
        current_drawdown=0.0,
        current_drawdown_percent=0.0,
        daily_risk_used=0.0,
        daily_risk_remaining=300.0,
        weekly_risk_used=0.0,
        weekly_risk_remaining=600.0,
        monthly_risk_used=0.0,
        monthly_risk_remaining=1_000.0,
        consecutive_losses=0,
        average_risk_per_trade=0.0,
        largest_loss=0.0,
        open_positions=0,
        open_positions_risk=0.0,
    )
    values.update(overrides)
    return RiskMetrics(**values)


# ================================================================== #
# Kelly                                                               #
# ================================================================== #

class TestKelly:
    def test_formula(self):
        # 0.6 - 0.4 / 2
        assert kelly_criterion(60, 2, 1) == pytest.approx(0.4)

    def test_negative_edge_is_zero(self):
        assert kelly_criterion(40, 1, 1) == 0.0

    def test_no_losses_is_zero(self):
        assert kelly_criterion(100, 2, 0) == 0.0

    def test_avg_loss_sign_ignored(self):
        assert kelly_criterion(60, 2, -1) == pytest.approx(0.4)

    def test_small_sample_placeholder(self):
        trades = [make_r_trade(1.0, day=i) for i in range(29)]
        result = optimal_position_size(trades)
        assert result.sufficient_sample is False
        assert result.kelly == 0.0
        assert result.fractional_kelly == 0.0
        assert result.suggested_risk == 1.0
        assert result.sample_size == 29

    def test_half_kelly_capped(self):
        trades = [make_r_trade(2.0, day=i) for i in range(18)]
        trades += [make_r_trade(-1.0, day=18 + i) for i in range(12)]
        result = optimal_position_size(trades)
        assert result.sufficient_sample is True
        assert result.kelly == 40.0
        assert result.fractional_kelly == 20.0
        assert result.suggested_risk == 2.0

    def test_custom_fraction_and_sample(self):
        trades = [make_r_trade(2.0, day=0), make_r_trade(-1.0, day=1),
                  make_r_trade(-1.0, day=2), make_r_trade(2.0, day=3)]
        result = optimal_position_size(
            trades, min_sample=4, fraction=0.25, max_suggested_risk_pct=50
        )
        # p = 0.5, b = 2 -> 0.25; quarter Kelly -> 6.25%
        assert result.kelly == 25.0
        assert result.suggested_risk == 6.25

    def test_trades_without_r_not_counted(self):
        trades = [make_trade(100, stop_price=None, exit_price=110) for _ in range(40)]
        assert optimal_position_size(trades).sample_size == 0


# ================================================================== #
# Metrics                                                             #
# ================================================================== #

class TestRiskMetrics:
    @pytest.fixture
    def trades(self):
        return [
            _closed_at(-300, timedelta(days=20), "month"),
            _closed_at(-200, timedelta(days=3), "week"),
            _closed_at(1_000, timedelta(hours=5), "big-win"),
            _closed_at(-100, timedelta(hours=2), "today"),
            # Exits after the evaluation time: ignored
            _closed_at(-5_000, -timedelta(hours=1), "future"),
        ]

    def test_trailing_windows_sum_losses(self, trades):
        m = calculate_risk_metrics(trades, 10_000, RiskSettings(), as_of=AS_OF)
        assert m.daily_risk_used == 100.0
        assert m.weekly_risk_used == 300.0
        assert m.monthly_risk_used == 600.0

    def test_remaining_budget(self, trades):
        m = calculate_risk_metrics(trades, 10_000, RiskSettings(), as_of=AS_OF)
        assert m.daily_risk_remaining == 200.0
        assert m.weekly_risk_remaining == 300.0
        assert m.monthly_risk_remaining == 400.0

    def test_remaining_never_negative(self):
        trades = [_closed_at(-1_000, timedelta(hours=1), "big-loss")]
        m = calculate_risk_metrics(trades, 10_000, RiskSettings(), as_of=AS_OF)
        assert m.daily_risk_remaining == 0.0

    def test_equity_and_drawdown(self, trades):
        m = calculate_risk_metrics(trades, 10_000, RiskSettings(), as_of=AS_OF)
        assert m.account_equity == 10_400.0
        assert m.current_drawdown == 100.0
        assert m.current_drawdown_percent == 0.95
        assert m.largest_loss == -300.0

    def test_trailing_loss_streak(self):
        trades = [
            _closed_at(100, timedelta(days=4), "a"),
            _closed_at(-10, timedelta(days=3), "b"),
            _closed_at(-10, timedelta(days=2), "c"),
            _closed_at(-10, timedelta(days=1), "d"),
        ]
        m = calculate_risk_metrics(trades, 10_000, RiskSettings(), as_of=AS_OF)
        assert m.consecutive_losses == 3

    def test_open_positions(self):
        trades = [
            make_trade(0, status=TradeStatus.OPEN, entry_price=100, stop_price=95, size=2),
            make_trade(0, status=TradeStatus.OPEN, stop_price=None, trade_id="t2"),
        ]
        m = calculate_risk_metrics(trades, 10_000, RiskSettings(), as_of=AS_OF)
        assert m.open_positions == 2
        assert m.open_positions_risk == 10.0

    def test_average_planned_risk(self):
        trades = [
            _closed_at(10, timedelta(days=1), "a", entry_price=100, stop_price=95, size=10),
            _closed_at(10, timedelta(days=2), "b", entry_price=100, stop_price=90, size=10),
        ]
        m = calculate_risk_metrics(trades, 10_000, RiskSettings(), as_of=AS_OF)
        assert m.average_risk_per_trade == 75.0

    def test_window_loss_boundaries(self):
        trades = [
            _closed_at(-50, timedelta(days=1), "edge"),  # Exactly one day back: outside
            _closed_at(-25, timedelta(0), "now"),  # At as_of: inside
        ]
        assert window_loss(trades, AS_OF, timedelta(days=1)) == 25


# ================================================================== #
# Rule evaluation                                                     #
# ================================================================== #

class TestClassify:
    def test_ok(self):
        assert classify(79, 100) == RiskStatus.OK

    def test_warning_at_threshold(self):
        assert classify(80, 100) == RiskStatus.WARNING

    def test_violated_at_limit(self):
        assert classify(100, 100) == RiskStatus.VIOLATED
        assert classify(150, 100) == RiskStatus.VIOLATED

    def test_custom_threshold(self):
        assert classify(60, 100, warning_threshold=0.5) == RiskStatus.WARNING


class TestEvaluateRiskRules:
    def test_one_rule_per_limit(self):
        rules = evaluate_risk_rules(_metrics(), RiskSettings())
        assert [r.id for r in rules] == [
            "per-trade-risk",
            "daily-risk",
            "weekly-risk",
            "monthly-risk",
            "max-drawdown",
            "consecutive-losses",
            "open-positions",
        ]
        assert all(r.status == RiskStatus.OK for r in rules)

    def test_rules_evaluated_independently(self):
        metrics = _metrics(daily_risk_used=300.0, weekly_risk_used=500.0, consecutive_losses=1)
        rules = {r.id: r for r in evaluate_risk_rules(metrics, RiskSettings())}
        assert rules["daily-risk"].status == RiskStatus.VIOLATED
        assert rules["daily-risk"].current == 3.0
        assert rules["weekly-risk"].status == RiskStatus.WARNING
        assert rules["monthly-risk"].status == RiskStatus.OK
        assert rules["consecutive-losses"].status == RiskStatus.OK

    def test_per_trade_risk_as_percent_of_balance(self):
        metrics = _metrics(average_risk_per_trade=90.0)
        rules = {r.id: r for r in evaluate_risk_rules(metrics, RiskSettings())}
        assert rules["per-trade-risk"].current == 0.9
        assert rules["per-trade-risk"].status == RiskStatus.WARNING

    def test_counts_use_their_own_units(self):
        metrics = _metrics(consecutive_losses=5, open_positions=4)
        rules = {r.id: r for r in evaluate_risk_rules(metrics, RiskSettings())}
        assert rules["consecutive-losses"].status == RiskStatus.VIOLATED
        assert rules["consecutive-losses"].unit == "trades"
        assert rules["open-positions"].status == RiskStatus.WARNING

    def test_violation_logged(self, caplog):
        metrics = _metrics(current_drawdown_percent=20.0)
        with caplog.at_level(logging.WARNING, logger="trading_journal.risk.calculator"):
            evaluate_risk_rules(metrics, RiskSettings())
        assert "Maximum Drawdown" in caplog.text


# ================================================================== #
# Pre-trade helpers                                                   #
# ================================================================== #

class TestPreTrade:
    def test_risk_reward(self):
        assert risk_reward(100, 95, 110) == 2.0
        assert risk_reward(100, 100, 110) == 0.0

    def test_position_size(self):
        assert position_size(10_000, 1, 100, 95) == 20.0
        assert position_size(10_000, 1, 100, 100) == 0.0

    def test_validate_trade_risk_passes(self):
        assert validate_trade_risk(100, 95, 110, 20, 10_000, RiskSettings()) == []

    def test_validate_trade_risk_violations(self):
        violations = validate_trade_risk(100, 95, 105, 30, 10_000, RiskSettings())
        assert len(violations) == 2
        assert "below minimum" in violations[0]
        assert "exceeds maximum" in violations[1]
