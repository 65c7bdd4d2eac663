"""
assessment_engine/services/grading_service.py
Grading pipeline and read path for rubric assessments.

WRITE PATH (grade_submission):
    AccessGuard -> validate_completeness -> compute_score
        -> AssessmentRepository.upsert -> SubmissionWorkflow (create only)
        -> COMMIT
        -> NotificationDispatcher (create only, best-effort)

CONCURRENCY SAFETY:
- Guard, scoring, upsert and status transition share one transaction
  (SERIALIZABLE on PostgreSQL); the submission row is locked by the guard
- Unique constraint on (rubric_id, submission_id, evaluator_id)
- IntegrityError from a concurrent first grade is retried once; the retry
  finds the winner's row and takes the update branch

NOTIFICATION ASYMMETRY:
- The student is notified when an evaluator first grades a submission.
  Re-grades do not notify.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.config.feature_flags import feature_flags as default_flags
from assessment_engine.database import unit_of_work
from assessment_engine.errors import (
    AssessmentValidationError, ForbiddenError, InternalError, NotFoundError, ErrorCode, new_log_id
)
from assessment_engine.orm.assessment import Assessment
from assessment_engine.orm.rubric import Rubric
from assessment_engine.services.access_guard import AccessGuard, Actor, CourseMembership
from assessment_engine.services.assessment_repository import (
    AssessmentRepository, AssessmentQuery, AssessmentScope, UpsertResult, storage_failure
)
from assessment_engine.services.completeness import validate_completeness
from assessment_engine.services.feedback_generator import generate_feedback
from assessment_engine.services.notification_dispatcher import NotificationDispatcher, ASSESSMENT_KIND
from assessment_engine.services.score_calculator import Judgment, compute_score
from assessment_engine.services.stores import RubricStore
from assessment_engine.state_machines.submission_workflow import SubmissionWorkflow

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2


@dataclass(frozen=True)
class GradeRequest:
    rubric_id: str
    submission_id: str
    judgments: List[Judgment] = field(default_factory=list)
    feedback: Optional[str] = None
    generate_feedback: bool = False


@dataclass
class GradingOutcome:
    assessment: Assessment
    created: bool
    status_changed: bool


class GradingService:
    """Entry point for grading a submission and reading assessments back."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[NotificationDispatcher] = None,
        membership: Optional[CourseMembership] = None,
        flags=None
    ):
        self.db = db
        self.notifier = notifier
        self.flags = flags or default_flags
        self.guard = AccessGuard(db, membership)
        self.repository = AssessmentRepository(db)
        self.rubrics = RubricStore(db)

    # =========================================================================
    # Write path
    # =========================================================================

    async def grade_submission(self, actor: Actor, request: GradeRequest) -> GradingOutcome:
        """
        Grade a submission against a rubric on behalf of actor.

        Returns:
            GradingOutcome(assessment, created, status_changed). created is
            False when the evaluator's previous assessment was replaced.

        Raises:
            NotFoundError: submission or rubric does not exist
            ForbiddenError: actor may not grade this submission
            AssessmentValidationError: judgments do not cover the rubric exactly
            InternalError: storage failure or unscorable rubric
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                async with unit_of_work(self.db):
                    result, student_id, status_changed = await self._grade_in_transaction(actor, request)
                break
            except IntegrityError as exc:
                if attempt >= MAX_ATTEMPTS:
                    log_id = new_log_id()
                    logger.error(
                        f"[{log_id}] Assessment upsert still conflicting after {attempt} attempts: "
                        f"submission={request.submission_id}, evaluator={actor.id}: {exc}"
                    )
                    raise InternalError("Failed to save assessment", log_id=log_id, retryable=True) from exc
                logger.warning(
                    f"Concurrent first grade of submission {request.submission_id} by {actor.id}; "
                    f"retrying as update"
                )
            except SQLAlchemyError as exc:
                raise storage_failure(
                    exc, f"grading of submission {request.submission_id} by {actor.id}"
                ) from exc

        assessment_id = result.assessment.id

        logger.info(
            f"Submission {request.submission_id} graded by {actor.id}: "
            f"assessment={assessment_id}, created={result.created}, status_changed={status_changed}"
        )

        if result.created:
            await self._notify_student(student_id, assessment_id, result.assessment.percentage)

        assessment = await self.repository.reload(result.assessment)
        return GradingOutcome(assessment=assessment, created=result.created, status_changed=status_changed)

    async def _grade_in_transaction(
        self,
        actor: Actor,
        request: GradeRequest
    ) -> Tuple[UpsertResult, str, bool]:
        context = await self.guard.authorize_grading(actor, request.submission_id, request.rubric_id)
        rubric, submission = context.rubric, context.submission

        if rubric.project_id and rubric.project_id != submission.project_id:
            raise AssessmentValidationError(
                "Rubric does not belong to the submission's project",
                code=ErrorCode.RUBRIC_MISMATCH,
                details={"rubric_id": rubric.id, "submission_id": submission.id}
            )

        validate_completeness(rubric, request.judgments)
        score = compute_score(rubric, request.judgments)

        feedback = request.feedback or None
        if feedback is None and request.generate_feedback and self.flags.is_enabled("FEATURE_AUTO_FEEDBACK"):
            feedback = generate_feedback(rubric, score)

        result = await self.repository.upsert(
            rubric, submission, actor.id, request.judgments, feedback, score=score
        )

        status_changed = False
        if result.created:
            status_changed = SubmissionWorkflow.on_assessment_created(submission)
            await self.db.flush()

        return result, submission.student_id, status_changed

    async def _notify_student(self, student_id: str, assessment_id: str, percentage: float) -> None:
        if self.notifier is None or not self.flags.is_enabled("FEATURE_ASSESSMENT_NOTIFICATIONS"):
            return
        try:
            await self.notifier.notify(
                recipient_user_id=student_id,
                kind=ASSESSMENT_KIND,
                related_assessment_id=assessment_id,
                message=f"Your project submission has been assessed ({round(percentage, 2)}%)"
            )
        except Exception:
            logger.exception(f"Failed to notify student {student_id} about assessment {assessment_id}")

    # =========================================================================
    # Read path
    # =========================================================================

    async def scope_for(self, actor: Actor) -> AssessmentScope:
        if actor.is_admin:
            return AssessmentScope.everything()
        course_ids = await self.guard.visible_course_ids(actor)
        return AssessmentScope(owner_id=actor.id, course_ids=course_ids)

    async def list_assessments(self, actor: Actor, query: AssessmentQuery) -> List[Assessment]:
        """Assessments the actor may see, newest first."""
        scope = await self.scope_for(actor)
        return await self.repository.list(query, scope)

    async def get_assessment(self, actor: Actor, assessment_id: str) -> Assessment:
        """Invisible assessments are reported as missing."""
        assessment = await self.repository.get(assessment_id)
        if assessment is None or not await self.guard.can_view(actor, assessment.submission):
            raise NotFoundError("Assessment", assessment_id, ErrorCode.ASSESSMENT_NOT_FOUND)
        return assessment

    async def get_rubric(self, actor: Actor, rubric_id: str) -> Rubric:
        rubric = await self.rubrics.get(rubric_id)
        if rubric is None:
            raise NotFoundError("Rubric", rubric_id, ErrorCode.RUBRIC_NOT_FOUND)
        if not await self.guard.can_view_rubric(actor, rubric):
            raise ForbiddenError("You do not have permission to view this rubric")
        return rubric
