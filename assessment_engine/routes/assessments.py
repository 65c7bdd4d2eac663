"""
assessment_engine/routes/assessments.py
Grading and assessment read endpoints
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.database import get_db
from assessment_engine.orm.user import User
from assessment_engine.rate_limit import limiter, grading_limit
from assessment_engine.rbac import get_current_user
from assessment_engine.schemas.assessment import (
    GradeSubmissionRequest,
    GradeSubmissionResponse,
    AssessmentListResponse,
    AssessmentDetailResponse,
    AssessmentOut,
)
from assessment_engine.services.access_guard import Actor
from assessment_engine.services.assessment_repository import (
    AssessmentQuery, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
)
from assessment_engine.services.grading_service import GradingService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/assessments", tags=["Assessments"])


def get_grading_service(request: Request, db: AsyncSession = Depends(get_db)) -> GradingService:
    """GradingService bound to the request session and the app's notifier."""
    return GradingService(db, notifier=getattr(request.app.state, "notifier", None))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=GradeSubmissionResponse)
@limiter.limit(grading_limit)
async def grade_submission(
    request: Request,
    response: Response,
    payload: GradeSubmissionRequest,
    current_user: User = Depends(get_current_user),
    service: GradingService = Depends(get_grading_service),
):
    """
    Grade a submission against a rubric.

    201 when this evaluator's assessment was created, 200 when an existing
    one was replaced. Course instructor, course mentors and admins only.
    """
    actor = Actor.from_user(current_user)
    outcome = await service.grade_submission(actor, payload.to_grade_request())

    if not outcome.created:
        response.status_code = status.HTTP_200_OK

    return GradeSubmissionResponse.from_outcome(outcome)


@router.get("", response_model=AssessmentListResponse)
async def list_assessments(
    submission_id: Optional[str] = Query(None, alias="submissionId"),
    rubric_id: Optional[str] = Query(None, alias="rubricId"),
    evaluator_id: Optional[str] = Query(None, alias="evaluatorId"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    service: GradingService = Depends(get_grading_service),
):
    """
    List assessments visible to the caller, newest first.

    Students see assessments of their own submissions; instructors and
    mentors see their courses; admins see everything.
    """
    query = AssessmentQuery(
        submission_id=submission_id,
        rubric_id=rubric_id,
        evaluator_id=evaluator_id,
        limit=limit,
        offset=offset,
    )
    assessments = await service.list_assessments(Actor.from_user(current_user), query)
    data = [AssessmentOut.from_assessment(a) for a in assessments]
    return AssessmentListResponse(count=len(data), data=data)


@router.get("/{assessment_id}", response_model=AssessmentDetailResponse)
async def get_assessment(
    assessment_id: str,
    current_user: User = Depends(get_current_user),
    service: GradingService = Depends(get_grading_service),
):
    assessment = await service.get_assessment(Actor.from_user(current_user), assessment_id)
    return AssessmentDetailResponse(data=AssessmentOut.from_assessment(assessment))
