"""
assessment_engine/services/score_calculator.py
Deterministic composite scoring for rubric assessments.

Pure functions only: no database access, no clock, no randomness. The same
rubric and judgments always produce the same ScoreResult.

    score_i     = level.points x criterion.weight
    max_i       = max(level.points in criterion) x criterion.weight
    total_score = sum(score_i)
    max_score   = rubric.max_points          (taken from the rubric, not recomputed)
    percentage  = 100 x total_score / max_score

Percentages are left unrounded; rounding is a display concern.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from assessment_engine.errors import AssessmentValidationError, ScoringInvariantError, ErrorCode


@dataclass(frozen=True)
class Judgment:
    """An evaluator's chosen level for one criterion."""
    criterion_id: str
    level_id: str
    comment: Optional[str] = None


@dataclass(frozen=True)
class CriterionScore:
    criterion_id: str
    level_id: str
    score: float
    max_score: float
    comment: Optional[str]
    position: int
    criterion_name: str = ""
    level_name: str = ""


@dataclass(frozen=True)
class ScoreResult:
    total_score: float
    max_score: float
    percentage: float
    criteria: List[CriterionScore] = field(default_factory=list)


def compute_score(rubric, judgments: Sequence[Judgment]) -> ScoreResult:
    """
    Compute the composite score of a complete judgment set.

    Args:
        rubric: Rubric with loaded criteria and levels
        judgments: One judgment per criterion (see validate_completeness)

    Returns:
        ScoreResult with per-criterion rows in rubric order

    Raises:
        AssessmentValidationError: a judgment names a criterion that is not in
            the rubric, or a level that does not belong to its criterion
        ScoringInvariantError: rubric.max_points is not positive
    """
    max_score = float(rubric.max_points or 0)
    if max_score <= 0:
        raise ScoringInvariantError(
            f"max_points must be positive, got {rubric.max_points}",
            rubric_id=rubric.id
        )

    positions = {criterion.id: index for index, criterion in enumerate(rubric.criteria)}
    rows: List[CriterionScore] = []

    for judgment in judgments:
        criterion = rubric.find_criterion(judgment.criterion_id)
        if criterion is None:
            raise AssessmentValidationError(
                f"Criterion '{judgment.criterion_id}' is not part of this rubric",
                code=ErrorCode.UNKNOWN_CRITERION,
                unknown_criterion_ids=[judgment.criterion_id]
            )

        level = criterion.find_level(judgment.level_id)
        if level is None:
            raise AssessmentValidationError(
                f"Level '{judgment.level_id}' does not belong to criterion '{criterion.name}'",
                code=ErrorCode.UNKNOWN_LEVEL,
                details={"criterion_id": criterion.id, "level_id": judgment.level_id}
            )

        weight = float(criterion.weight)
        rows.append(CriterionScore(
            criterion_id=criterion.id,
            level_id=level.id,
            score=float(level.points) * weight,
            max_score=float(criterion.max_level_points) * weight,
            comment=judgment.comment,
            position=positions[criterion.id],
            criterion_name=criterion.name,
            level_name=level.name,
        ))

    rows.sort(key=lambda row: row.position)
    total_score = sum((row.score for row in rows), 0.0)

    return ScoreResult(
        total_score=total_score,
        max_score=max_score,
        percentage=100 * total_score / max_score,
        criteria=rows,
    )
