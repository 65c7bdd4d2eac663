"""
assessment_engine/services/access_guard.py
Who may grade or view a submission.

Grading is allowed for the course instructor, course mentors, and admins.
The owning student may view assessments of their own submission but never
grade it.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.errors import ForbiddenError, NotFoundError, ErrorCode
from assessment_engine.orm.course import Course, CourseEnrollment, EnrollmentRole
from assessment_engine.orm.rubric import Rubric
from assessment_engine.orm.submission import Submission
from assessment_engine.orm.user import User, UserRole
from assessment_engine.services.stores import RubricStore, SubmissionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Plain snapshot of the acting user, safe to use across rollbacks."""
    id: str
    role: UserRole

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=user.role)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin


class CourseMembership(Protocol):
    """
    Course membership lookups supplied by the course collaborator.

    staff_course_ids scopes the assessment list for instructors and mentors;
    it must agree with is_instructor / is_mentor.
    """

    async def is_instructor(self, course_id: str, user_id: str) -> bool: ...

    async def is_mentor(self, course_id: str, user_id: str) -> bool: ...

    async def is_enrolled(self, course_id: str, user_id: str) -> bool: ...

    async def staff_course_ids(self, user_id: str) -> List[str]: ...


class DatabaseCourseMembership:
    """CourseMembership backed by the courses / course_enrollments tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _enrollment_role(self, course_id: str, user_id: str) -> Optional[EnrollmentRole]:
        result = await self.db.execute(
            select(CourseEnrollment.role).where(
                and_(
                    CourseEnrollment.course_id == course_id,
                    CourseEnrollment.user_id == user_id
                )
            )
        )
        return result.scalar_one_or_none()

    async def is_instructor(self, course_id: str, user_id: str) -> bool:
        result = await self.db.execute(select(Course.instructor_id).where(Course.id == course_id))
        if result.scalar_one_or_none() == user_id:
            return True
        return await self._enrollment_role(course_id, user_id) == EnrollmentRole.instructor

    async def is_mentor(self, course_id: str, user_id: str) -> bool:
        return await self._enrollment_role(course_id, user_id) == EnrollmentRole.mentor

    async def is_enrolled(self, course_id: str, user_id: str) -> bool:
        return await self._enrollment_role(course_id, user_id) is not None

    async def staff_course_ids(self, user_id: str) -> List[str]:
        """Courses the user instructs or mentors."""
        owned = await self.db.execute(select(Course.id).where(Course.instructor_id == user_id))
        enrolled = await self.db.execute(
            select(CourseEnrollment.course_id).where(
                and_(
                    CourseEnrollment.user_id == user_id,
                    CourseEnrollment.role.in_([EnrollmentRole.instructor, EnrollmentRole.mentor])
                )
            )
        )
        return sorted(set(owned.scalars().all()) | set(enrolled.scalars().all()))


@dataclass
class GradingContext:
    """Everything authorize_grading resolved, handed on to the scoring pipeline."""
    submission: Submission
    rubric: Rubric
    course_id: str


class AccessGuard:
    """Resolves submission and rubric and decides whether the actor may act on them."""

    def __init__(self, db: AsyncSession, membership: Optional[CourseMembership] = None):
        self.db = db
        self.membership = membership or DatabaseCourseMembership(db)
        self.rubrics = RubricStore(db)
        self.submissions = SubmissionStore(db)

    async def is_course_staff(self, actor: Actor, course_id: str) -> bool:
        if await self.membership.is_instructor(course_id, actor.id):
            return True
        return await self.membership.is_mentor(course_id, actor.id)

    async def authorize_grading(self, actor: Actor, submission_id: str, rubric_id: str) -> GradingContext:
        """
        Raises NotFoundError when the submission or rubric cannot be resolved,
        ForbiddenError when the actor is neither course staff nor admin.
        Performs no writes; the submission row is locked for the enclosing
        transaction so the workflow transition cannot race.
        """
        submission = await self.submissions.get(submission_id, for_update=True)
        if submission is None:
            raise NotFoundError("Submission", submission_id, ErrorCode.SUBMISSION_NOT_FOUND)

        rubric = await self.rubrics.get(rubric_id)
        if rubric is None:
            raise NotFoundError("Rubric", rubric_id, ErrorCode.RUBRIC_NOT_FOUND)

        course_id = submission.project.course_id

        if not actor.is_admin and not await self.is_course_staff(actor, course_id):
            logger.warning(
                f"Grading denied: user {actor.id} ({actor.role.value}) on submission {submission_id} "
                f"in course {course_id}"
            )
            raise ForbiddenError("You are not authorized to grade this submission")

        return GradingContext(submission=submission, rubric=rubric, course_id=course_id)

    async def visible_course_ids(self, actor: Actor) -> List[str]:
        """Courses whose assessments the actor sees as staff."""
        return await self.membership.staff_course_ids(actor.id)

    async def can_view(self, actor: Actor, submission: Submission) -> bool:
        if actor.is_admin:
            return True
        if submission.student_id == actor.id:
            return True
        return await self.is_course_staff(actor, submission.project.course_id)

    async def can_view_rubric(self, actor: Actor, rubric: Rubric) -> bool:
        """Staff always; enrolled students only once the rubric is published."""
        if actor.is_admin:
            return True
        if rubric.project is None:
            return actor.id == rubric.created_by_id
        course_id = rubric.project.course_id
        if await self.is_course_staff(actor, course_id):
            return True
        if not await self.membership.is_enrolled(course_id, actor.id):
            return False
        return bool(rubric.is_published)
