"""Enumerations used across the journal analytics engine."""

from enum import Enum


class Direction(str, Enum):
    LONG = "long"
    SHORT = "short"


class TradeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class TradeOutcome(str, Enum):
    """Recorded outcome, used as a tiebreaker for zero-P&L trades."""

    WIN = "win"
    LOSS = "loss"
    BREAKEVEN = "breakeven"


class TradeResult(str, Enum):
    """R-based classification with a +/-0.1R breakeven band."""

    WINNER = "winner"
    LOSER = "loser"
    BREAKEVEN = "breakeven"


class RuleType(str, Enum):
    MUST = "must"
    SHOULD = "should"
    CONSIDER = "consider"


class RiskStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    VIOLATED = "violated"
