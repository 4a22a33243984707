"""Tests for playbook setup scoring, grading and rubric validation."""

from __future__ import annotations

import pytest

from trading_journal.core.enums import RuleType
from trading_journal.core.errors import ConfigError, RubricValidationError
from trading_journal.core.models import (
    ChecklistItem,
    PlaybookConfluence,
    PlaybookRubric,
    PlaybookRule,
)
from trading_journal.playbook.scoring import (
    default_rubric,
    explain,
    grade_for,
    redistribute_checklist_weight,
    score_setup,
    validate_rubric,
)


# ================================================================== #
# Helper factories                                                    #
# ================================================================== #

def _rule(rule_id: str, rule_type: RuleType = RuleType.SHOULD, weight: float = 1.0):
    return PlaybookRule(id=rule_id, label=rule_id, type=rule_type, weight=weight)


def _conf(conf_id: str, weight: float = 1.0, primary: bool = False):
    return PlaybookConfluence(id=conf_id, label=conf_id, weight=weight, primary=primary)


def _check(item_id: str, weight: float = 1.0, primary: bool = False):
    return ChecklistItem(id=item_id, label=item_id, weight=weight, primary=primary)


def _score(rules=(), rules_checked=None, confluences=(), conf_checked=None,
           rubric=None, **kwargs):
    return score_setup(
        rules=list(rules),
        rules_checked=rules_checked or {},
        confluences=list(confluences),
        conf_checked=conf_checked or {},
        rubric=rubric or default_rubric(),
        **kwargs,
    )


# ================================================================== #
# Scoring                                                             #
# ================================================================== #

class TestScoreSetup:
    def test_everything_checked_is_a_plus(self):
        result = _score(
            rules=[_rule("r1"), _rule("r2", RuleType.MUST)],
            rules_checked={"r1": True, "r2": True},
            confluences=[_conf("c1")],
            conf_checked={"c1": True},
        )
        assert result.score == pytest.approx(1.0)
        assert result.grade == "A+"

    def test_empty_rules_and_confluences_count_as_satisfied(self):
        result = _score()
        assert result.parts.rules_pct == 1.0
        assert result.parts.conf_pct == 1.0
        assert result.score == pytest.approx(1.0)

    def test_zero_weight_set_counts_as_satisfied(self):
        result = _score(rules=[_rule("r1", weight=0.0)])
        assert result.parts.rules_pct == 1.0

    def test_weighted_rules(self):
        result = _score(
            rules=[_rule("r1", weight=3.0), _rule("r2", weight=1.0)],
            rules_checked={"r1": True},
        )
        assert result.parts.rules_pct == pytest.approx(0.75)
        # 0.7 * 0.75 + 0.3 * 1.0 with the checklist weight redistributed
        assert result.score == pytest.approx(0.825)
        assert result.grade == "B"

    def test_primary_confluence_weighted_up(self):
        result = _score(
            confluences=[_conf("c1", primary=True), _conf("c2")],
            conf_checked={"c1": True},
        )
        assert result.parts.conf_pct == pytest.approx(1.2 / 2.2)
        assert result.parts.primary_conf_count == 1
        assert result.parts.primary_conf_hit == 1

    def test_primary_multiplier_is_configurable(self):
        result = _score(
            confluences=[_conf("c1", primary=True), _conf("c2")],
            conf_checked={"c1": True},
            primary_multiplier=1.0,
        )
        assert result.parts.conf_pct == pytest.approx(0.5)

    def test_checklist_uses_rubric_weights(self):
        result = _score(
            rules=[_rule("r1")],
            rules_checked={"r1": True},
            confluences=[_conf("c1")],
            conf_checked={"c1": True},
            checklist=[_check("k1"), _check("k2")],
            checklist_checked={"k1": True},
        )
        assert result.parts.checklist_pct == pytest.approx(0.5)
        assert result.score == pytest.approx(0.85)
        assert result.grade == "B"
        assert result.parts.checklist_count == 2
        assert result.parts.checklist_hit == 1

    def test_missed_must_rule_scenario(self):
        rubric = PlaybookRubric(
            weight_rules=0.7, weight_confluences=0.3, weight_checklist=0.0,
            must_rule_penalty=0.4,
        )
        result = _score(
            rules=[_rule("m1", RuleType.MUST, weight=0.0), _rule("s1")],
            rules_checked={"s1": True},
            confluences=[_conf("c1")],
            conf_checked={"c1": True},
            rubric=rubric,
        )
        assert result.parts.missed_must is True
        assert result.score == pytest.approx(0.60)

    def test_missed_must_rule_penalty(self):
        result = _score(
            rules=[_rule("m1", RuleType.MUST), _rule("s1")],
            rules_checked={"s1": True},
            confluences=[_conf("c1")],
            conf_checked={"c1": True},
        )
        # (0.7 * 0.5 + 0.3 * 1.0) * 0.6
        assert result.score == pytest.approx(0.39)
        assert result.grade == "F"
        assert result.parts.must_count == 1
        assert result.parts.must_hit == 0

    def test_penalty_applied_once(self):
        rules = [_rule(f"m{i}", RuleType.MUST) for i in range(3)]
        one = _score(rules=rules, rules_checked={"m1": True, "m2": True})
        three = _score(rules=rules)
        assert one.parts.missed_must and three.parts.missed_must
        assert one.score == pytest.approx((0.7 * 2 / 3 + 0.3) * 0.6)
        assert three.score == pytest.approx(0.3 * 0.6)

    def test_invalidation_is_automatic_f(self):
        result = _score(
            rules=[_rule("r1")],
            rules_checked={"r1": True},
            invalidations=["news-spike"],
        )
        assert result.score == 0.0
        assert result.grade == "F"
        assert result.parts.has_invalidations is True

    def test_below_min_checks(self):
        rubric = PlaybookRubric(min_checks=3)
        result = _score(
            rules=[_rule("r1"), _rule("r2")],
            rules_checked={"r1": True, "r2": True, "unknown": True},
            rubric=rubric,
        )
        assert result.parts.below_min_checks is True

    def test_min_checks_met(self):
        rubric = PlaybookRubric(min_checks=2)
        result = _score(
            rules=[_rule("r1")],
            rules_checked={"r1": True},
            confluences=[_conf("c1")],
            conf_checked={"c1": True},
            rubric=rubric,
        )
        assert result.parts.below_min_checks is False

    def test_tier_counts(self):
        result = _score(
            rules=[
                _rule("m1", RuleType.MUST),
                _rule("s1", RuleType.SHOULD),
                _rule("s2", RuleType.SHOULD),
                _rule("o1", RuleType.CONSIDER),
            ],
            rules_checked={"m1": True, "s2": True, "o1": True},
        )
        parts = result.parts
        assert (parts.must_count, parts.must_hit) == (1, 1)
        assert (parts.should_count, parts.should_hit) == (2, 1)
        assert (parts.consider_count, parts.consider_hit) == (1, 1)


# ================================================================== #
# Rubric helpers                                                      #
# ================================================================== #

class TestRubric:
    def test_default_rubric(self):
        rubric = default_rubric()
        assert (rubric.weight_rules, rubric.weight_confluences, rubric.weight_checklist) == (
            0.5, 0.2, 0.3,
        )
        assert rubric.must_rule_penalty == 0.4
        assert rubric.grade_cutoffs["A+"] == 0.95

    def test_redistribute_checklist_weight(self):
        rubric = redistribute_checklist_weight(default_rubric())
        assert rubric.weight_rules == pytest.approx(0.7)
        assert rubric.weight_confluences == pytest.approx(0.3)
        assert rubric.weight_checklist == 0.0

    def test_redistribute_leaves_original(self):
        original = default_rubric()
        redistribute_checklist_weight(original)
        assert original.weight_checklist == 0.3

    def test_optional_is_consider(self):
        assert PlaybookRule(id="x", type="optional").type == RuleType.CONSIDER

    def test_validate_default_passes(self):
        validate_rubric(default_rubric())  # Should not raise

    def test_validate_weight_sum(self):
        rubric = PlaybookRubric(weight_rules=0.6, weight_confluences=0.3, weight_checklist=0.3)
        with pytest.raises(RubricValidationError, match="sum to 1.0"):
            validate_rubric(rubric)

    def test_validate_collects_problems(self):
        rubric = PlaybookRubric(weight_rules=0.9, must_rule_penalty=1.5, min_checks=-1)
        with pytest.raises(RubricValidationError) as excinfo:
            validate_rubric(rubric)
        assert len(excinfo.value.problems) == 3
        assert isinstance(excinfo.value, ConfigError)


class TestGrading:
    @pytest.mark.parametrize(
        "score, grade",
        [(1.0, "A+"), (0.95, "A+"), (0.92, "A"), (0.85, "B"), (0.7, "C"),
         (0.6, "D"), (0.59, "F"), (0.0, "F")],
    )
    def test_default_cutoffs(self, score, grade):
        assert grade_for(score, default_rubric().grade_cutoffs) == grade

    def test_custom_fallback(self):
        assert grade_for(0.1, {"pass": 0.5}, fallback="fail") == "fail"

    def test_cutoff_order_does_not_matter(self):
        cutoffs = {"D": 0.6, "A": 0.9, "C": 0.7}
        assert grade_for(0.95, cutoffs) == "A"
        assert grade_for(0.75, cutoffs) == "C"


class TestExplain:
    def test_invalidated(self):
        result = _score(invalidations=["x"])
        assert explain(result) == "Invalidated setup -> automatic F"

    def test_missed_must(self):
        result = _score(
            rules=[_rule("m1", RuleType.MUST), _rule("m2", RuleType.MUST), _rule("s1")],
            rules_checked={"m1": True, "s1": True},
        )
        text = explain(result)
        assert "Missed 1/2 must-rule(s)" in text
        assert "1/1 should-rules followed" in text

    def test_all_musts_followed(self):
        result = _score(rules=[_rule("m1", RuleType.MUST)], rules_checked={"m1": True})
        assert explain(result).startswith("All must-rules followed")
