"""
assessment_engine/services/rubric_service.py
Rubric authoring: list, create and delete.

Rubrics are immutable once graded against. Deleting a rubric that any
assessment references is refused with RUBRIC_IN_USE; criteria and levels
of an unused rubric are removed with it.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from assessment_engine.database import unit_of_work
from assessment_engine.errors import BadRequestError, ForbiddenError, NotFoundError, ErrorCode
from assessment_engine.orm.assessment import Assessment
from assessment_engine.orm.base import new_id
from assessment_engine.orm.course import Project
from assessment_engine.orm.rubric import Rubric, RubricCriterion, RubricLevel
from assessment_engine.orm.user import UserRole
from assessment_engine.services.access_guard import AccessGuard, Actor, CourseMembership
from assessment_engine.services.assessment_repository import storage_failure
from assessment_engine.services.stores import RubricStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_POINTS = 100.0
AUTHOR_ROLES = (UserRole.instructor, UserRole.mentor, UserRole.admin)


@dataclass(frozen=True)
class LevelDraft:
    name: str
    points: float
    description: Optional[str] = None


@dataclass(frozen=True)
class CriterionDraft:
    name: str
    levels: List[LevelDraft] = field(default_factory=list)
    description: Optional[str] = None
    weight: float = 1.0


@dataclass(frozen=True)
class RubricDraft:
    """A new rubric as submitted by its author. Order of criteria and levels is kept."""
    title: str
    criteria: List[CriterionDraft] = field(default_factory=list)
    description: Optional[str] = None
    max_points: float = DEFAULT_MAX_POINTS
    project_id: Optional[str] = None
    is_published: bool = False


class RubricService:

    def __init__(self, db: AsyncSession, membership: Optional[CourseMembership] = None):
        self.db = db
        self.guard = AccessGuard(db, membership)
        self.rubrics = RubricStore(db)

    async def _get_project(self, project_id: str) -> Project:
        result = await self.db.execute(
            select(Project).where(Project.id == project_id).options(selectinload(Project.course))
        )
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundError("Project", project_id, ErrorCode.PROJECT_NOT_FOUND)
        return project

    async def list_rubrics(self, actor: Actor, project_id: Optional[str] = None) -> List[Rubric]:
        """
        With a project: every rubric of it for staff and admins, published
        ones for enrolled students.
        Without a project: the rubrics the actor authored.
        """
        if project_id:
            project = await self._get_project(project_id)
            if actor.is_admin or await self.guard.is_course_staff(actor, project.course_id):
                return await self.rubrics.list_for_project(project_id)
            if not await self.guard.membership.is_enrolled(project.course_id, actor.id):
                raise ForbiddenError("You are not enrolled in this course")
            return await self.rubrics.list_for_project(project_id, published_only=True)

        if actor.role not in AUTHOR_ROLES:
            raise ForbiddenError("You do not have permission to view rubrics")
        return await self.rubrics.list_created_by(actor.id)

    def _check_draft(self, draft: RubricDraft) -> None:
        if not draft.title or not draft.title.strip():
            raise BadRequestError("Rubric title is required")
        if not draft.criteria:
            raise BadRequestError("At least one criterion is required")
        if draft.max_points <= 0:
            raise BadRequestError("maxPoints must be positive", details={"max_points": draft.max_points})
        empty = [criterion.name for criterion in draft.criteria if not criterion.levels]
        if empty:
            raise BadRequestError("Every criterion needs at least one level", details={"criteria": empty})

    async def create_rubric(self, actor: Actor, draft: RubricDraft) -> Rubric:
        """
        Create a rubric with its criteria and levels in one transaction.

        Raises:
            ForbiddenError: actor is not an instructor, mentor or admin, or is
                not staff of the project's course
            BadRequestError: missing title, no criteria, a criterion without
                levels, or non-positive max points
            NotFoundError: project_id does not exist
            InternalError: storage failure (opaque, logged)
        """
        if actor.role not in AUTHOR_ROLES:
            raise ForbiddenError("Only instructors and mentors can create rubrics")
        self._check_draft(draft)

        try:
            async with unit_of_work(self.db):
                rubric = await self._insert(actor, draft)
        except SQLAlchemyError as exc:
            raise storage_failure(exc, f"creation of rubric by {actor.id}", "Failed to save rubric") from exc

        logger.info(
            f"Rubric created: id={rubric.id}, project={rubric.project_id}, "
            f"criteria={len(rubric.criteria)}, by={actor.id}"
        )
        return rubric

    async def _insert(self, actor: Actor, draft: RubricDraft) -> Rubric:
        if draft.project_id:
            project = await self._get_project(draft.project_id)
            if not actor.is_admin and not await self.guard.is_course_staff(actor, project.course_id):
                raise ForbiddenError("You do not have permission to create rubrics for this project")

        rubric = Rubric(
            id=new_id(),
            title=draft.title.strip(),
            description=draft.description or None,
            max_points=draft.max_points,
            is_published=draft.is_published,
            project_id=draft.project_id or None,
            created_by_id=actor.id,
            criteria=[
                RubricCriterion(
                    id=new_id(),
                    name=criterion.name,
                    description=criterion.description or None,
                    weight=criterion.weight,
                    position=index,
                    levels=[
                        RubricLevel(
                            id=new_id(),
                            name=level.name,
                            description=level.description or None,
                            points=level.points,
                            position=level_index,
                        )
                        for level_index, level in enumerate(criterion.levels)
                    ],
                )
                for index, criterion in enumerate(draft.criteria)
            ],
        )
        self.db.add(rubric)
        await self.db.flush()
        return rubric

    async def _can_delete(self, actor: Actor, rubric: Rubric) -> bool:
        if actor.is_admin:
            return True
        if rubric.project is None:
            return rubric.created_by_id == actor.id
        return await self.guard.membership.is_instructor(rubric.project.course_id, actor.id)

    async def delete_rubric(self, actor: Actor, rubric_id: str) -> None:
        """
        Delete an unused rubric with its criteria and levels.

        Raises:
            NotFoundError: rubric does not exist
            ForbiddenError: actor is neither admin nor the course instructor
                (the author, for a rubric without a project)
            BadRequestError: RUBRIC_IN_USE when assessments reference it
            InternalError: storage failure (opaque, logged)
        """
        try:
            async with unit_of_work(self.db):
                rubric = await self.rubrics.get(rubric_id)
                if rubric is None:
                    raise NotFoundError("Rubric", rubric_id, ErrorCode.RUBRIC_NOT_FOUND)

                if not await self._can_delete(actor, rubric):
                    raise ForbiddenError("You do not have permission to delete this rubric")

                result = await self.db.execute(
                    select(func.count(Assessment.id)).where(Assessment.rubric_id == rubric_id)
                )
                in_use = result.scalar_one()
                if in_use:
                    raise BadRequestError(
                        "Cannot delete a rubric that is being used in assessments",
                        code=ErrorCode.RUBRIC_IN_USE,
                        details={"assessment_count": in_use}
                    )

                await self.db.delete(rubric)
        except SQLAlchemyError as exc:
            raise storage_failure(exc, f"deletion of rubric {rubric_id} by {actor.id}", "Failed to delete rubric") from exc

        logger.info(f"Rubric deleted: id={rubric_id}, by={actor.id}")
