"""Core input models for the analytics engine.

These are the read-only records the caller hands to the engine: trades,
playbook rubric/rules/confluences and risk settings.  All of them are
frozen; computed outputs live next to the code that produces them.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import Direction, RuleType, TradeOutcome, TradeStatus


# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------

class Trade(BaseModel):
    """One journaled trade as supplied by the trade-retrieval service."""

    model_config = ConfigDict(frozen=True)

    trade_id: str = ""
    symbol: str = ""
    direction: Direction = Direction.LONG
    status: TradeStatus = TradeStatus.CLOSED

    # Prices
    entry_price: float | None = None
    exit_price: float | None = None  # None while open
    stop_price: float | None = None  # None when no stop was recorded
    size: float = 0.0

    # Realized result in account currency
    pnl: float = 0.0
    fees: float = 0.0

    # Timing
    entry_time: datetime
    exit_time: datetime | None = None

    outcome: TradeOutcome | None = None  # Tiebreaker for pnl == 0
    planned_rr: float | None = None  # Planned reward:risk, e.g. 2.0 for 1:2
    playbook_id: str | None = None

    @property
    def is_closed(self) -> bool:
        return self.status == TradeStatus.CLOSED

    @property
    def closed_or_opened_at(self) -> datetime:
        """Exit time when known, otherwise entry time (ordering key)."""
        return self.exit_time or self.entry_time

    @property
    def hold_hours(self) -> float | None:
        """Hours between entry and exit, None without an exit timestamp."""
        if self.exit_time is None:
            return None
        return (self.exit_time - self.entry_time).total_seconds() / 3600.0

    @property
    def planned_risk(self) -> float | None:
        """Currency at risk between entry and stop for the full size."""
        if self.entry_price is None or self.stop_price is None:
            return None
        return abs(self.entry_price - self.stop_price) * self.size


# ---------------------------------------------------------------------------
# Playbook
# ---------------------------------------------------------------------------

class PlaybookRule(BaseModel):
    """A playbook rule with its priority tier and weight."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str = ""
    type: RuleType = RuleType.SHOULD
    weight: float = 1.0

    @field_validator("type", mode="before")
    @classmethod
    def _legacy_optional(cls, value: object) -> object:
        # Older playbooks stored the lowest tier as "optional"
        if value == "optional":
            return RuleType.CONSIDER
        return value


class PlaybookConfluence(BaseModel):
    """A supporting factor checked off when the setup is present."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str = ""
    weight: float = 1.0
    primary: bool = False


class ChecklistItem(BaseModel):
    """A pre-trade checklist entry."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str = ""
    weight: float = 1.0
    primary: bool = False


def _default_cutoffs() -> dict[str, float]:
    return {"A+": 0.95, "A": 0.90, "B": 0.80, "C": 0.70, "D": 0.60}


class PlaybookRubric(BaseModel):
    """Weights, must-rule penalty and grade cutoffs for setup scoring.

    The engine does not normalize the three weights; callers validate
    with :func:`trading_journal.playbook.scoring.validate_rubric`.
    """

    model_config = ConfigDict(frozen=True)

    weight_rules: float = 0.5
    weight_confluences: float = 0.2
    weight_checklist: float = 0.3
    must_rule_penalty: float = 0.4
    min_checks: int = 0
    grade_cutoffs: dict[str, float] = Field(default_factory=_default_cutoffs)


# ---------------------------------------------------------------------------
# Risk
# ---------------------------------------------------------------------------

class RiskSettings(BaseModel):
    """User-configured risk limits.  Percentages are of account balance."""

    model_config = ConfigDict(frozen=True)

    max_risk_per_trade: float = 1.0
    max_daily_risk: float = 3.0
    max_weekly_risk: float = 6.0
    max_monthly_risk: float = 10.0
    max_drawdown: float = 15.0
    max_consecutive_losses: int = 5
    max_open_positions: int = 5
    max_correlated_positions: int = 2
    risk_reward_minimum: float = 1.5
