"""
assessment_engine/services/completeness.py
Checks that a grading payload judges every rubric criterion exactly once.
"""
from collections import Counter
from typing import Sequence

from assessment_engine.errors import AssessmentValidationError, ErrorCode
from assessment_engine.services.score_calculator import Judgment


def validate_completeness(rubric, judgments: Sequence[Judgment]) -> None:
    """
    Raise AssessmentValidationError unless each rubric criterion has exactly
    one judgment and no judgment names a foreign criterion.

    Missing criteria are reported first (in rubric order) since that is what
    the evaluator has to fix; unknown and duplicate ids ride along in the
    same error.
    """
    rubric_ids = [criterion.id for criterion in rubric.criteria]
    known = set(rubric_ids)
    counts = Counter(judgment.criterion_id for judgment in judgments)

    missing = [criterion_id for criterion_id in rubric_ids if criterion_id not in counts]
    unknown = sorted(criterion_id for criterion_id in counts if criterion_id not in known)
    duplicates = sorted(criterion_id for criterion_id, n in counts.items() if n > 1 and criterion_id in known)

    if missing:
        raise AssessmentValidationError(
            f"{len(missing)} rubric criteria have no selected level",
            code=ErrorCode.INCOMPLETE_CRITERIA,
            missing_criterion_ids=missing,
            unknown_criterion_ids=unknown,
            duplicate_criterion_ids=duplicates
        )
    if unknown:
        raise AssessmentValidationError(
            "Judgments reference criteria that are not part of this rubric",
            code=ErrorCode.UNKNOWN_CRITERION,
            unknown_criterion_ids=unknown,
            duplicate_criterion_ids=duplicates
        )
    if duplicates:
        raise AssessmentValidationError(
            "Each criterion may be judged only once",
            code=ErrorCode.DUPLICATE_CRITERION,
            duplicate_criterion_ids=duplicates
        )
