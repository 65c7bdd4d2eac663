"""
Pydantic Schemas for rubric assessments

Request and response models for grading and reading assessments. The wire
format is camelCase; Python code uses snake_case field names.
"""
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel

from assessment_engine.orm.assessment import Assessment, CriterionAssessment
from assessment_engine.orm.rubric import Rubric, RubricCriterion, RubricLevel
from assessment_engine.orm.submission import SubmissionStatus
from assessment_engine.services.grading_service import GradeRequest, GradingOutcome
from assessment_engine.services.rubric_service import (
    CriterionDraft, LevelDraft, RubricDraft, DEFAULT_MAX_POINTS
)
from assessment_engine.services.score_calculator import Judgment


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Grading Request
# ============================================================================

class CriterionJudgmentIn(CamelModel):
    """Selected level for one criterion."""
    criterion_id: str = Field(..., min_length=1, description="Rubric criterion being judged")
    level_id: str = Field(..., min_length=1, description="Chosen level of that criterion")
    comment: Optional[str] = Field(None, max_length=5000)

    def to_judgment(self) -> Judgment:
        return Judgment(criterion_id=self.criterion_id, level_id=self.level_id, comment=self.comment or None)


class GradeSubmissionRequest(CamelModel):
    """Schema for grading a submission (POST /api/assessments)."""
    rubric_id: str = Field(..., min_length=1)
    submission_id: str = Field(..., min_length=1)
    criteria_assessments: List[CriterionJudgmentIn] = Field(..., description="One judgment per rubric criterion")
    feedback: Optional[str] = Field(None, max_length=20000)
    generate_feedback: bool = Field(False, description="Render markdown feedback when none is given")

    def to_grade_request(self) -> GradeRequest:
        return GradeRequest(
            rubric_id=self.rubric_id,
            submission_id=self.submission_id,
            judgments=[item.to_judgment() for item in self.criteria_assessments],
            feedback=self.feedback,
            generate_feedback=self.generate_feedback,
        )


# ============================================================================
# Assessment Responses
# ============================================================================

class CriterionAssessmentOut(CamelModel):
    id: str
    criterion_id: str
    level_id: str
    score: float
    max_score: float
    comment: Optional[str] = None
    position: int

    @classmethod
    def from_row(cls, row: CriterionAssessment) -> "CriterionAssessmentOut":
        return cls(
            id=row.id,
            criterion_id=row.criterion_id,
            level_id=row.level_id,
            score=row.score,
            max_score=row.max_score,
            comment=row.comment,
            position=row.position,
        )


class UserSummaryOut(CamelModel):
    id: str
    full_name: str
    email: str


class SubmissionSummaryOut(CamelModel):
    id: str
    student_id: str
    project_id: str
    status: SubmissionStatus


class AssessmentOut(CamelModel):
    id: str
    rubric_id: str
    submission_id: str
    evaluator_id: str
    total_score: float
    max_score: float
    percentage: float
    feedback: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    evaluator: Optional[UserSummaryOut] = None
    submission: Optional[SubmissionSummaryOut] = None
    criteria_assessments: List[CriterionAssessmentOut] = Field(default_factory=list)

    @classmethod
    def from_assessment(cls, assessment: Assessment) -> "AssessmentOut":
        """Build from an assessment loaded with rows, evaluator and submission."""
        evaluator = assessment.evaluator
        submission = assessment.submission
        return cls(
            id=assessment.id,
            rubric_id=assessment.rubric_id,
            submission_id=assessment.submission_id,
            evaluator_id=assessment.evaluator_id,
            total_score=assessment.total_score,
            max_score=assessment.max_score,
            percentage=assessment.percentage,
            feedback=assessment.feedback,
            created_at=assessment.created_at,
            updated_at=assessment.updated_at,
            evaluator=UserSummaryOut(**evaluator.to_summary()) if evaluator else None,
            submission=SubmissionSummaryOut(
                id=submission.id,
                student_id=submission.student_id,
                project_id=submission.project_id,
                status=submission.status,
            ) if submission else None,
            criteria_assessments=[CriterionAssessmentOut.from_row(row) for row in assessment.criterion_assessments],
        )


class GradeSubmissionResponse(CamelModel):
    success: bool = True
    created: bool
    status_changed: bool
    data: AssessmentOut

    @classmethod
    def from_outcome(cls, outcome: GradingOutcome) -> "GradeSubmissionResponse":
        return cls(
            created=outcome.created,
            status_changed=outcome.status_changed,
            data=AssessmentOut.from_assessment(outcome.assessment),
        )


class AssessmentListResponse(CamelModel):
    success: bool = True
    count: int
    data: List[AssessmentOut]


class AssessmentDetailResponse(CamelModel):
    success: bool = True
    data: AssessmentOut


# ============================================================================
# Rubric Responses
# ============================================================================

class RubricLevelOut(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    points: float
    position: int

    @classmethod
    def from_level(cls, level: RubricLevel) -> "RubricLevelOut":
        return cls(
            id=level.id,
            name=level.name,
            description=level.description,
            points=level.points,
            position=level.position,
        )


class RubricCriterionOut(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    weight: float
    position: int
    levels: List[RubricLevelOut] = Field(default_factory=list)

    @classmethod
    def from_criterion(cls, criterion: RubricCriterion) -> "RubricCriterionOut":
        return cls(
            id=criterion.id,
            name=criterion.name,
            description=criterion.description,
            weight=criterion.weight,
            position=criterion.position,
            levels=[RubricLevelOut.from_level(level) for level in criterion.levels],
        )


class RubricOut(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    max_points: float
    is_published: bool
    project_id: Optional[str] = None
    criteria: List[RubricCriterionOut] = Field(default_factory=list)

    @classmethod
    def from_rubric(cls, rubric: Rubric) -> "RubricOut":
        return cls(
            id=rubric.id,
            title=rubric.title,
            description=rubric.description,
            max_points=rubric.max_points,
            is_published=rubric.is_published,
            project_id=rubric.project_id,
            criteria=[RubricCriterionOut.from_criterion(c) for c in rubric.criteria],
        )


class RubricResponse(CamelModel):
    success: bool = True
    data: RubricOut


class RubricListResponse(CamelModel):
    success: bool = True
    count: int
    data: List[RubricOut]


class RubricDeletedResponse(CamelModel):
    success: bool = True
    message: str = "Rubric deleted successfully"


# ============================================================================
# Rubric Authoring
# ============================================================================

class RubricLevelIn(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    points: float = Field(..., ge=0)
    description: Optional[str] = Field(None, max_length=5000)


class RubricCriterionIn(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    weight: float = Field(1.0, gt=0)
    levels: List[RubricLevelIn] = Field(default_factory=list)


class CreateRubricRequest(CamelModel):
    """Schema for creating a rubric (POST /api/rubrics)."""
    title: str = Field(..., max_length=255)
    description: Optional[str] = Field(None, max_length=20000)
    max_points: float = Field(DEFAULT_MAX_POINTS)
    project_id: Optional[str] = None
    is_published: bool = False
    criteria: List[RubricCriterionIn] = Field(default_factory=list, description="In display order")

    def to_draft(self) -> RubricDraft:
        return RubricDraft(
            title=self.title,
            description=self.description,
            max_points=self.max_points,
            project_id=self.project_id,
            is_published=self.is_published,
            criteria=[
                CriterionDraft(
                    name=c.name,
                    description=c.description,
                    weight=c.weight,
                    levels=[
                        LevelDraft(name=level.name, points=level.points, description=level.description)
                        for level in c.levels
                    ],
                )
                for c in self.criteria
            ],
        )
