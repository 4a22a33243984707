"""Playbook setup scoring and grading."""

from .scoring import (
    ScoreParts,
    ScoreResult,
    default_rubric,
    explain,
    grade_for,
    redistribute_checklist_weight,
    score_setup,
    validate_rubric,
)

__all__ = [
    "ScoreParts",
    "ScoreResult",
    "default_rubric",
    "explain",
    "grade_for",
    "redistribute_checklist_weight",
    "score_setup",
    "validate_rubric",
]
