"""
assessment_engine/services/stores.py
Read-side loaders for the records the grading core consumes but does not own.
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from assessment_engine.orm.course import Project
from assessment_engine.orm.rubric import Rubric, RubricCriterion
from assessment_engine.orm.submission import Submission


class RubricStore:
    """Loads rubrics with criteria and levels in display order."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _with_details(self, query):
        return query.options(
            selectinload(Rubric.criteria).selectinload(RubricCriterion.levels),
            selectinload(Rubric.project).selectinload(Project.course),
        )

    async def get(self, rubric_id: str) -> Optional[Rubric]:
        result = await self.db.execute(self._with_details(select(Rubric).where(Rubric.id == rubric_id)))
        return result.scalar_one_or_none()

    async def list_for_project(self, project_id: str, published_only: bool = False) -> List[Rubric]:
        """Rubrics attached to a project, most recently updated first."""
        query = select(Rubric).where(Rubric.project_id == project_id)
        if published_only:
            query = query.where(Rubric.is_published.is_(True))
        query = query.order_by(Rubric.updated_at.desc(), Rubric.id)
        result = await self.db.execute(self._with_details(query))
        return list(result.scalars().all())

    async def list_created_by(self, user_id: str) -> List[Rubric]:
        query = (
            select(Rubric)
            .where(Rubric.created_by_id == user_id)
            .order_by(Rubric.updated_at.desc(), Rubric.id)
        )
        result = await self.db.execute(self._with_details(query))
        return list(result.scalars().all())


class SubmissionStore:
    """Loads submissions together with their project and course."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, submission_id: str, for_update: bool = False) -> Optional[Submission]:
        query = (
            select(Submission)
            .where(Submission.id == submission_id)
            .options(selectinload(Submission.project).selectinload(Project.course))
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()
