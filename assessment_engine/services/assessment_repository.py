"""
assessment_engine/services/assessment_repository.py
Persistence for rubric assessments.

Write rules:
- One Assessment per (rubric_id, submission_id, evaluator_id). The key is a
  real unique constraint; upsert locks the existing row (SELECT ... FOR
  UPDATE) before branching, and a concurrent duplicate insert surfaces as
  IntegrityError for the caller to retry as an update.
- Re-grading replaces ALL criterion rows (delete, then insert). Rows are
  never patched in place.
- upsert joins the caller's open transaction and leaves the commit to the
  caller; with no transaction open it runs in its own unit of work. Either
  way header and rows land together or not at all.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import select, delete, and_, or_
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from assessment_engine.database import unit_of_work
from assessment_engine.errors import InternalError, new_log_id
from assessment_engine.orm.assessment import Assessment, CriterionAssessment
from assessment_engine.orm.base import new_id
from assessment_engine.orm.course import Project
from assessment_engine.orm.rubric import Rubric
from assessment_engine.orm.submission import Submission
from assessment_engine.services.score_calculator import Judgment, ScoreResult, compute_score

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 500


@dataclass(frozen=True)
class AssessmentQuery:
    """Typed filter for the read path. Unset fields do not filter."""
    submission_id: Optional[str] = None
    rubric_id: Optional[str] = None
    evaluator_id: Optional[str] = None
    limit: int = DEFAULT_PAGE_SIZE
    offset: int = 0


@dataclass(frozen=True)
class AssessmentScope:
    """
    Which assessments a reader may see.

    unrestricted: admins.
    Otherwise the union of assessments on submissions owned by owner_id and
    assessments on submissions in course_ids.
    """
    unrestricted: bool = False
    owner_id: Optional[str] = None
    course_ids: List[str] = field(default_factory=list)

    @classmethod
    def everything(cls) -> "AssessmentScope":
        return cls(unrestricted=True)


def storage_failure(exc: Exception, context: str, message: str = "Failed to save assessment") -> InternalError:
    """Log a storage failure with a correlation id and build the opaque error."""
    log_id = new_log_id()
    retryable = isinstance(exc, (OperationalError, PoolTimeoutError))
    logger.error(f"[{log_id}] Storage failure during {context}: {type(exc).__name__}: {exc}")
    return InternalError(
        message=message,
        log_id=log_id,
        retryable=retryable
    )


@dataclass
class UpsertResult:
    assessment: Assessment
    created: bool


class AssessmentRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_key(
        self,
        rubric_id: str,
        submission_id: str,
        evaluator_id: str,
        for_update: bool = False
    ) -> Optional[Assessment]:
        query = select(Assessment).where(
            and_(
                Assessment.rubric_id == rubric_id,
                Assessment.submission_id == submission_id,
                Assessment.evaluator_id == evaluator_id
            )
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def upsert(
        self,
        rubric: Rubric,
        submission: Submission,
        evaluator_id: str,
        judgments: Sequence[Judgment],
        feedback: Optional[str] = None,
        score: Optional[ScoreResult] = None
    ) -> UpsertResult:
        """
        Create or replace the evaluator's assessment of a submission.

        Joins the open transaction if there is one (the caller commits),
        otherwise commits its own. Flushes before returning so a duplicate-key
        race is reported here rather than at commit.

        Args:
            rubric: Rubric with criteria and levels loaded
            submission: Submission being graded
            evaluator_id: Acting evaluator
            judgments: Complete, validated judgment set
            feedback: Overall feedback text
            score: Precomputed score for judgments (computed if omitted)

        Returns:
            UpsertResult(assessment, created)

        Raises:
            IntegrityError: a concurrent insert won the race for the same key
            InternalError: any other storage failure (opaque, logged)
        """
        if score is None:
            score = compute_score(rubric, judgments)

        try:
            if self.db.in_transaction():
                return await self._write(rubric, submission, evaluator_id, score, feedback)
            async with unit_of_work(self.db):
                return await self._write(rubric, submission, evaluator_id, score, feedback)
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            raise storage_failure(exc, f"upsert of submission {submission.id} by {evaluator_id}") from exc

    async def _write(
        self,
        rubric: Rubric,
        submission: Submission,
        evaluator_id: str,
        score: ScoreResult,
        feedback: Optional[str]
    ) -> UpsertResult:
        existing = await self.find_by_key(rubric.id, submission.id, evaluator_id, for_update=True)
        now = datetime.utcnow()

        if existing is not None:
            await self.db.execute(
                delete(CriterionAssessment).where(CriterionAssessment.assessment_id == existing.id)
            )
            self.db.expire(existing, ["criterion_assessments"])
            existing.total_score = score.total_score
            existing.max_score = score.max_score
            existing.percentage = score.percentage
            existing.feedback = feedback
            existing.updated_at = now
            assessment = existing
            created = False
        else:
            assessment = Assessment(
                id=new_id(),
                rubric_id=rubric.id,
                submission_id=submission.id,
                evaluator_id=evaluator_id,
                total_score=score.total_score,
                max_score=score.max_score,
                percentage=score.percentage,
                feedback=feedback,
                created_at=now,
                updated_at=now,
            )
            self.db.add(assessment)
            created = True

        for row in score.criteria:
            self.db.add(CriterionAssessment(
                id=new_id(),
                assessment_id=assessment.id,
                criterion_id=row.criterion_id,
                level_id=row.level_id,
                score=row.score,
                max_score=row.max_score,
                comment=row.comment,
                position=row.position,
                created_at=now,
                updated_at=now,
            ))

        await self.db.flush()

        logger.info(
            f"Assessment {'created' if created else 'replaced'}: id={assessment.id}, "
            f"submission={submission.id}, evaluator={evaluator_id}, "
            f"total={score.total_score}/{score.max_score}, rows={len(score.criteria)}"
        )
        return UpsertResult(assessment=assessment, created=created)

    def _with_details(self, query):
        return query.options(
            selectinload(Assessment.criterion_assessments),
            selectinload(Assessment.evaluator),
            selectinload(Assessment.submission).selectinload(Submission.project),
        ).execution_options(populate_existing=True)

    async def get(self, assessment_id: str) -> Optional[Assessment]:
        """Assessment with criterion rows, evaluator and submission loaded."""
        result = await self.db.execute(
            self._with_details(select(Assessment).where(Assessment.id == assessment_id))
        )
        return result.scalar_one_or_none()

    async def reload(self, assessment: Assessment) -> Assessment:
        """Refresh an assessment after commit so nested rows reflect storage."""
        fresh = await self.get(assessment.id)
        if fresh is None:
            raise storage_failure(
                LookupError(f"assessment {assessment.id} vanished after commit"),
                "reload",
                "Failed to load assessment"
            )
        return fresh

    async def list(self, query: AssessmentQuery, scope: AssessmentScope) -> List[Assessment]:
        """Assessments matching query within scope, newest first."""
        stmt = (
            select(Assessment)
            .join(Submission, Submission.id == Assessment.submission_id)
            .join(Project, Project.id == Submission.project_id)
        )

        if query.submission_id:
            stmt = stmt.where(Assessment.submission_id == query.submission_id)
        if query.rubric_id:
            stmt = stmt.where(Assessment.rubric_id == query.rubric_id)
        if query.evaluator_id:
            stmt = stmt.where(Assessment.evaluator_id == query.evaluator_id)

        if not scope.unrestricted:
            visible = []
            if scope.owner_id:
                visible.append(Submission.student_id == scope.owner_id)
            if scope.course_ids:
                visible.append(Project.course_id.in_(scope.course_ids))
            if not visible:
                return []
            stmt = stmt.where(or_(*visible))

        limit = max(1, min(query.limit, MAX_PAGE_SIZE))
        stmt = (
            stmt.order_by(Assessment.created_at.desc(), Assessment.id.desc())
            .offset(max(0, query.offset))
            .limit(limit)
        )

        result = await self.db.execute(self._with_details(stmt))
        return list(result.scalars().all())
