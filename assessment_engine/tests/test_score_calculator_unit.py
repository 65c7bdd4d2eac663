"""
Unit Tests for composite scoring and completeness checks

No database: rubrics are built as unsaved ORM objects.
"""
import pytest

from assessment_engine.errors import AssessmentValidationError, ScoringInvariantError, ErrorCode
from assessment_engine.services.completeness import validate_completeness
from assessment_engine.services.score_calculator import Judgment, compute_score
from assessment_engine.tests.factories import build_rubric, best_judgments, single_criterion_rubric


class TestComputeScore:

    def test_worked_example_scores_85(self):
        result = compute_score(build_rubric(), best_judgments())

        assert result.total_score == 85.0
        assert result.max_score == 100.0
        assert result.percentage == 85.0

    def test_per_criterion_rows_use_weighted_points(self):
        result = compute_score(build_rubric(), best_judgments())

        c1, c2 = result.criteria
        assert (c1.criterion_id, c1.score, c1.max_score) == ("c1", 40.0, 40.0)
        assert (c2.criterion_id, c2.score, c2.max_score) == ("c2", 45.0, 45.0)

    def test_lower_levels(self):
        judgments = [Judgment("c1", "l1a"), Judgment("c2", "l2a")]
        result = compute_score(build_rubric(), judgments)

        assert result.total_score == 35.0
        assert result.percentage == 35.0

    def test_rows_follow_rubric_order_not_judgment_order(self):
        judgments = list(reversed(best_judgments()))
        result = compute_score(build_rubric(), judgments)

        assert [row.criterion_id for row in result.criteria] == ["c1", "c2"]
        assert [row.position for row in result.criteria] == [0, 1]

    def test_deterministic(self):
        rubric = build_rubric()
        first = compute_score(rubric, best_judgments("solid", "thin"))
        second = compute_score(rubric, list(reversed(best_judgments("solid", "thin"))))

        assert first == second

    @pytest.mark.parametrize("max_points", [100.0, 90.0, 300.0, 7.0])
    def test_percentage_identity(self, max_points):
        result = compute_score(build_rubric(max_points=max_points), best_judgments())

        assert result.max_score == max_points
        assert result.percentage == 100 * result.total_score / result.max_score

    def test_max_score_comes_from_rubric(self):
        # Rubric contract says 85, rubric claims 200: the stored max wins
        result = compute_score(build_rubric(max_points=200.0), best_judgments())

        assert result.max_score == 200.0
        assert result.percentage == 42.5

    def test_comments_are_carried(self):
        result = compute_score(build_rubric(), best_judgments("clean code", None))

        assert result.criteria[0].comment == "clean code"
        assert result.criteria[1].comment is None

    def test_zero_max_points_is_internal_error(self):
        rubric = single_criterion_rubric("rz", "cz", "lz", max_points=0.0)

        with pytest.raises(ScoringInvariantError) as exc_info:
            compute_score(rubric, [Judgment("cz", "lz")])

        assert exc_info.value.status_code == 500
        assert exc_info.value.code == ErrorCode.SCORING_INVARIANT
        assert exc_info.value.details["log_id"]

    def test_unknown_level_fails_closed(self):
        judgments = [Judgment("c1", "nope"), Judgment("c2", "l2b")]

        with pytest.raises(AssessmentValidationError) as exc_info:
            compute_score(build_rubric(), judgments)

        assert exc_info.value.code == ErrorCode.UNKNOWN_LEVEL

    def test_level_of_another_criterion_is_rejected(self):
        judgments = [Judgment("c1", "l2b"), Judgment("c2", "l2b")]

        with pytest.raises(AssessmentValidationError) as exc_info:
            compute_score(build_rubric(), judgments)

        assert exc_info.value.code == ErrorCode.UNKNOWN_LEVEL
        assert exc_info.value.details["criterion_id"] == "c1"

    def test_unknown_criterion_fails_closed(self):
        judgments = best_judgments() + [Judgment("c9", "l1a")]

        with pytest.raises(AssessmentValidationError) as exc_info:
            compute_score(build_rubric(), judgments)

        assert exc_info.value.code == ErrorCode.UNKNOWN_CRITERION
        assert exc_info.value.unknown_criterion_ids == ["c9"]


class TestValidateCompleteness:

    def test_complete_set_passes(self):
        validate_completeness(build_rubric(), best_judgments())

    def test_missing_criterion_is_reported_exactly(self):
        judgments = [Judgment("c1", "l1b")]

        with pytest.raises(AssessmentValidationError) as exc_info:
            validate_completeness(build_rubric(), judgments)

        error = exc_info.value
        assert error.status_code == 400
        assert error.code == ErrorCode.INCOMPLETE_CRITERIA
        assert error.missing_criterion_ids == ["c2"]
        assert error.details["missing_criterion_ids"] == ["c2"]

    def test_empty_judgments_report_all_in_rubric_order(self):
        with pytest.raises(AssessmentValidationError) as exc_info:
            validate_completeness(build_rubric(), [])

        assert exc_info.value.missing_criterion_ids == ["c1", "c2"]

    def test_foreign_criterion_is_rejected(self):
        judgments = best_judgments() + [Judgment("c9", "l1a")]

        with pytest.raises(AssessmentValidationError) as exc_info:
            validate_completeness(build_rubric(), judgments)

        assert exc_info.value.code == ErrorCode.UNKNOWN_CRITERION
        assert exc_info.value.unknown_criterion_ids == ["c9"]
        assert exc_info.value.missing_criterion_ids == []

    def test_duplicate_criterion_is_rejected(self):
        judgments = best_judgments() + [Judgment("c1", "l1a")]

        with pytest.raises(AssessmentValidationError) as exc_info:
            validate_completeness(build_rubric(), judgments)

        assert exc_info.value.code == ErrorCode.DUPLICATE_CRITERION
        assert exc_info.value.duplicate_criterion_ids == ["c1"]

    def test_missing_takes_precedence_and_carries_other_problems(self):
        judgments = [Judgment("c1", "l1a"), Judgment("c1", "l1b"), Judgment("c9", "x")]

        with pytest.raises(AssessmentValidationError) as exc_info:
            validate_completeness(build_rubric(), judgments)

        error = exc_info.value
        assert error.code == ErrorCode.INCOMPLETE_CRITERIA
        assert error.missing_criterion_ids == ["c2"]
        assert error.unknown_criterion_ids == ["c9"]
        assert error.duplicate_criterion_ids == ["c1"]
