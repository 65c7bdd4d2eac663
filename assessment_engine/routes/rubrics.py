"""
assessment_engine/routes/rubrics.py
Rubric authoring and read endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.database import get_db
from assessment_engine.orm.user import User
from assessment_engine.rbac import get_current_user
from assessment_engine.routes.assessments import get_grading_service
from assessment_engine.schemas.assessment import (
    CreateRubricRequest,
    RubricDeletedResponse,
    RubricListResponse,
    RubricResponse,
    RubricOut,
)
from assessment_engine.services.access_guard import Actor
from assessment_engine.services.grading_service import GradingService
from assessment_engine.services.rubric_service import RubricService

router = APIRouter(prefix="/rubrics", tags=["Rubrics"])


def get_rubric_service(db: AsyncSession = Depends(get_db)) -> RubricService:
    return RubricService(db)


@router.get("", response_model=RubricListResponse)
async def list_rubrics(
    project_id: Optional[str] = Query(None, alias="projectId"),
    current_user: User = Depends(get_current_user),
    service: RubricService = Depends(get_rubric_service),
):
    """
    Rubrics of a project, or the caller's own rubrics when no project is given.
    Students only see published rubrics of courses they are enrolled in.
    """
    rubrics = await service.list_rubrics(Actor.from_user(current_user), project_id)
    data = [RubricOut.from_rubric(r) for r in rubrics]
    return RubricListResponse(count=len(data), data=data)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=RubricResponse)
async def create_rubric(
    payload: CreateRubricRequest,
    current_user: User = Depends(get_current_user),
    service: RubricService = Depends(get_rubric_service),
):
    rubric = await service.create_rubric(Actor.from_user(current_user), payload.to_draft())
    return RubricResponse(data=RubricOut.from_rubric(rubric))


@router.get("/{rubric_id}", response_model=RubricResponse)
async def get_rubric(
    rubric_id: str,
    current_user: User = Depends(get_current_user),
    service: GradingService = Depends(get_grading_service),
):
    """
    Rubric with ordered criteria and levels.
    Staff and admins always; enrolled students once it is published.
    """
    rubric = await service.get_rubric(Actor.from_user(current_user), rubric_id)
    return RubricResponse(data=RubricOut.from_rubric(rubric))


@router.delete("/{rubric_id}", response_model=RubricDeletedResponse)
async def delete_rubric(
    rubric_id: str,
    current_user: User = Depends(get_current_user),
    service: RubricService = Depends(get_rubric_service),
):
    """Course instructor or admin. Rubrics already used for grading cannot be deleted."""
    await service.delete_rubric(Actor.from_user(current_user), rubric_id)
    return RubricDeletedResponse()
