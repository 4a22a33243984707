"""Playbook setup scoring: weighted rubric score and letter grade.

Grades how closely a live or backtested trade followed its playbook.
Three weighted buckets feed the raw score:

    Bucket        Fraction satisfied
    ─────────────────────────────────────────────
    Rules         sum(weight checked) / sum(weight)
    Confluences   same, primary items x primary_multiplier
    Checklist     same, primary items x primary_multiplier

A missed ``must`` rule multiplies the score by ``1 - must_rule_penalty``
once, however many must-rules were missed.  An empty bucket counts as
fully satisfied so playbooks that do not use a dimension are not
penalized for it.

Usage::

    result = score_setup(
        rules=rules,
        rules_checked={"r1": True, "r2": False},
        confluences=confluences,
        conf_checked={"c1": True},
        rubric=default_rubric(),
    )
    print(result.grade)   # "B"
    print(result.score)   # 0.84
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from ..core.enums import RuleType
from ..core.errors import RubricValidationError
from ..core.models import ChecklistItem, PlaybookConfluence, PlaybookRubric, PlaybookRule

logger = logging.getLogger(__name__)

FALLBACK_GRADE = "F"
DEFAULT_PRIMARY_MULTIPLIER = 1.2

# Share of the checklist weight moved to rules when no checklist is used;
# the remainder goes to confluences (0.3 -> +0.2 rules / +0.1 confluences).
CHECKLIST_TO_RULES_SHARE = 2 / 3

_WEIGHT_SUM_TOLERANCE = 0.01


@dataclass(frozen=True)
class ScoreParts:
    """Breakdown of a setup score for display and debugging."""

    rules_pct: float = 0.0
    conf_pct: float = 0.0
    checklist_pct: float = 0.0
    missed_must: bool = False
    has_invalidations: bool = False
    below_min_checks: bool = False
    must_count: int = 0
    must_hit: int = 0
    should_count: int = 0
    should_hit: int = 0
    consider_count: int = 0
    consider_hit: int = 0
    primary_conf_count: int = 0
    primary_conf_hit: int = 0
    checklist_count: int = 0
    checklist_hit: int = 0
    primary_checklist_count: int = 0
    primary_checklist_hit: int = 0


@dataclass(frozen=True)
class ScoreResult:
    score: float  # 0..1
    grade: str
    parts: ScoreParts = field(default_factory=ScoreParts)


# ================================================================== #
# Rubric helpers                                                      #
# ================================================================== #

def default_rubric() -> PlaybookRubric:
    """Rubric assigned to new playbooks."""
    return PlaybookRubric()


def redistribute_checklist_weight(rubric: PlaybookRubric) -> PlaybookRubric:
    """Fold the checklist weight into rules and confluences.

    Used when the caller has no checklist so the total weight is kept
    instead of silently dropped.
    """
    extra = rubric.weight_checklist
    if extra == 0:
        return rubric
    to_rules = extra * CHECKLIST_TO_RULES_SHARE
    return rubric.model_copy(update={
        "weight_rules": rubric.weight_rules + to_rules,
        "weight_confluences": rubric.weight_confluences + (extra - to_rules),
        "weight_checklist": 0.0,
    })


def validate_rubric(rubric: PlaybookRubric) -> None:
    """Raise :class:`RubricValidationError` for an inconsistent rubric.

    The scoring engine never calls this; configuration editors do.
    """
    problems = []
    total = rubric.weight_rules + rubric.weight_confluences + rubric.weight_checklist
    if abs(total - 1.0) > _WEIGHT_SUM_TOLERANCE:
        problems.append(
            "Rule, confluence, and checklist weights must sum to 1.0 "
            f"(currently {total:.2f})"
        )
    if not 0 <= rubric.must_rule_penalty <= 1:
        problems.append("Must-rule penalty must be between 0 and 1")
    if rubric.min_checks < 0:
        problems.append("Minimum checks cannot be negative")
    if problems:
        raise RubricValidationError(problems)


def grade_for(
    score: float,
    cutoffs: Mapping[str, float],
    fallback: str = FALLBACK_GRADE,
) -> str:
    """Highest grade whose cutoff *score* meets, else *fallback*."""
    for grade, cutoff in sorted(cutoffs.items(), key=lambda kv: kv[1], reverse=True):
        if score >= cutoff:
            return grade
    return fallback


# ================================================================== #
# Scoring                                                             #
# ================================================================== #

def _weighted_pct(
    items: Sequence[PlaybookRule | PlaybookConfluence | ChecklistItem],
    checked: Mapping[str, bool],
    primary_multiplier: float = 1.0,
) -> float:
    """Weighted fraction of *items* checked; 1.0 for an empty set."""
    total = 0.0
    hit = 0.0
    for item in items:
        weight = item.weight
        if getattr(item, "primary", False):
            weight *= primary_multiplier
        total += weight
        if checked.get(item.id):
            hit += weight
    if total == 0:
        return 1.0
    return hit / total


def _count_parts(
    rules: Sequence[PlaybookRule],
    rules_checked: Mapping[str, bool],
    confluences: Sequence[PlaybookConfluence],
    conf_checked: Mapping[str, bool],
    checklist: Sequence[ChecklistItem],
    checklist_checked: Mapping[str, bool],
) -> dict[str, int]:
    def tier(rule_type: RuleType) -> tuple[int, int]:
        tier_rules = [r for r in rules if r.type == rule_type]
        return len(tier_rules), sum(1 for r in tier_rules if rules_checked.get(r.id))

    must_count, must_hit = tier(RuleType.MUST)
    should_count, should_hit = tier(RuleType.SHOULD)
    consider_count, consider_hit = tier(RuleType.CONSIDER)
    primary_conf = [c for c in confluences if c.primary]
    primary_check = [c for c in checklist if c.primary]

    return {
        "must_count": must_count,
        "must_hit": must_hit,
        "should_count": should_count,
        "should_hit": should_hit,
        "consider_count": consider_count,
        "consider_hit": consider_hit,
        "primary_conf_count": len(primary_conf),
        "primary_conf_hit": sum(1 for c in primary_conf if conf_checked.get(c.id)),
        "checklist_count": len(checklist),
        "checklist_hit": sum(1 for c in checklist if checklist_checked.get(c.id)),
        "primary_checklist_count": len(primary_check),
        "primary_checklist_hit": sum(
            1 for c in primary_check if checklist_checked.get(c.id)
        ),
    }


def score_setup(
    rules: Sequence[PlaybookRule],
    rules_checked: Mapping[str, bool],
    confluences: Sequence[PlaybookConfluence],
    conf_checked: Mapping[str, bool],
    rubric: PlaybookRubric,
    checklist: Sequence[ChecklistItem] | None = None,
    checklist_checked: Mapping[str, bool] | None = None,
    invalidations: Sequence[str] | None = None,
    primary_multiplier: float = DEFAULT_PRIMARY_MULTIPLIER,
) -> ScoreResult:
    """Score a setup against its playbook.

    Args:
        rules: Playbook rules with tier and weight.
        rules_checked: Rule id -> followed.
        confluences: Playbook confluences.
        conf_checked: Confluence id -> present.
        rubric: Weights, penalty and grade cutoffs (used as given).
        checklist: Checklist items; when omitted or empty the checklist
            weight is redistributed to rules and confluences.
        checklist_checked: Checklist id -> met.
        invalidations: Ids of invalidation conditions present; any
            invalidation fails the setup outright.
        primary_multiplier: Weight multiplier for primary confluences and
            checklist items.
    """
    checklist = checklist or []
    checklist_checked = checklist_checked or {}
    counts = _count_parts(
        rules, rules_checked, confluences, conf_checked, checklist, checklist_checked
    )

    if invalidations:
        logger.debug("Setup invalidated by %s", list(invalidations))
        return ScoreResult(
            score=0.0,
            grade=FALLBACK_GRADE,
            parts=ScoreParts(
                has_invalidations=True,
                **{k: v for k, v in counts.items() if not k.endswith("_hit")},
            ),
        )

    weights = rubric if checklist else redistribute_checklist_weight(rubric)

    rules_pct = _weighted_pct(rules, rules_checked)
    conf_pct = _weighted_pct(confluences, conf_checked, primary_multiplier)
    checklist_pct = (
        _weighted_pct(checklist, checklist_checked, primary_multiplier)
        if checklist else 0.0
    )

    score = (
        weights.weight_rules * rules_pct
        + weights.weight_confluences * conf_pct
        + weights.weight_checklist * checklist_pct
    )

    missed_must = counts["must_hit"] < counts["must_count"]
    if missed_must:
        score *= 1 - rubric.must_rule_penalty

    score = max(0.0, min(1.0, score))

    checks = (
        sum(1 for r in rules if rules_checked.get(r.id))
        + sum(1 for c in confluences if conf_checked.get(c.id))
        + counts["checklist_hit"]
    )

    result = ScoreResult(
        score=score,
        grade=grade_for(score, rubric.grade_cutoffs),
        parts=ScoreParts(
            rules_pct=rules_pct,
            conf_pct=conf_pct,
            checklist_pct=checklist_pct,
            missed_must=missed_must,
            below_min_checks=checks < rubric.min_checks,
            **counts,
        ),
    )
    logger.debug(
        "Setup scored %.3f (%s): rules=%.2f conf=%.2f checklist=%.2f missed_must=%s",
        result.score, result.grade, rules_pct, conf_pct, checklist_pct, missed_must,
    )
    return result


def explain(result: ScoreResult) -> str:
    """One-line human-readable summary of a :class:`ScoreResult`."""
    parts = result.parts
    if parts.has_invalidations:
        return "Invalidated setup -> automatic F"

    notes = []
    if parts.missed_must:
        missed = parts.must_count - parts.must_hit
        notes.append(
            f"Missed {missed}/{parts.must_count} must-rule(s) -> penalty applied"
        )
    else:
        notes.append("All must-rules followed")

    if parts.should_count > 0:
        notes.append(f"{parts.should_hit}/{parts.should_count} should-rules followed")
    if parts.primary_conf_count > 0:
        notes.append(
            f"{parts.primary_conf_hit}/{parts.primary_conf_count} primary confluences used"
        )
    if parts.checklist_count > 0:
        notes.append(f"{parts.checklist_hit}/{parts.checklist_count} checklist items met")
    if parts.primary_checklist_count > 0:
        notes.append(
            f"{parts.primary_checklist_hit}/{parts.primary_checklist_count} primary checks"
        )
    if parts.below_min_checks:
        notes.append("Below minimum number of checks")

    return ", ".join(notes)
