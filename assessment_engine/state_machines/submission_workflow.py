"""
Submission Workflow State Machine

Server-side status rules for project submissions as far as the grading core
is concerned: PENDING -> REVIEWED -> APPROVED. The remaining statuses are
owned by the review collaborator and only appear here so the table is total.
"""
import logging
from typing import Dict, List

from assessment_engine.orm.submission import Submission, SubmissionStatus

logger = logging.getLogger(__name__)


class InvalidTransitionError(Exception):
    """Raised when an invalid status transition is attempted."""
    def __init__(self, from_status: SubmissionStatus, to_status: SubmissionStatus):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot transition submission from {from_status.value} to {to_status.value}")


class SubmissionWorkflow:
    """
    Status transitions for a submission.

    Only on_assessment_created is driven by this core. It runs inside the
    grading transaction, on the creation branch of the upsert only.
    """

    # Valid transitions: {current_status: [allowed_next_statuses]}
    ALLOWED_TRANSITIONS: Dict[SubmissionStatus, List[SubmissionStatus]] = {
        SubmissionStatus.PENDING: [
            SubmissionStatus.REVIEWED,
            SubmissionStatus.APPROVED,
            SubmissionStatus.REVISION_REQUESTED,
            SubmissionStatus.REJECTED,
        ],
        SubmissionStatus.LATE: [
            SubmissionStatus.REVIEWED,
            SubmissionStatus.APPROVED,
            SubmissionStatus.REJECTED,
        ],
        SubmissionStatus.REVIEWED: [
            SubmissionStatus.APPROVED,
            SubmissionStatus.REVISION_REQUESTED,
            SubmissionStatus.REJECTED,
        ],
        SubmissionStatus.REVISION_REQUESTED: [
            SubmissionStatus.REVIEWED,
            SubmissionStatus.PENDING,
        ],
        SubmissionStatus.REJECTED: [
            SubmissionStatus.REVIEWED,
        ],
        SubmissionStatus.APPROVED: [],
    }

    @classmethod
    def can_transition(cls, from_status: SubmissionStatus, to_status: SubmissionStatus) -> bool:
        return to_status in cls.ALLOWED_TRANSITIONS.get(from_status, [])

    @classmethod
    def transition(cls, submission: Submission, to_status: SubmissionStatus) -> None:
        if not cls.can_transition(submission.status, to_status):
            raise InvalidTransitionError(submission.status, to_status)
        logger.info(f"Submission {submission.id}: {submission.status.value} -> {to_status.value}")
        submission.status = to_status

    @classmethod
    def on_assessment_created(cls, submission: Submission) -> bool:
        """
        First assessment of a submission by an evaluator.

        Moves the submission to REVIEWED unless it is already APPROVED (or
        already REVIEWED). Returns True when the status changed.
        """
        if submission.status is None:
            submission.status = SubmissionStatus.PENDING
        if submission.status in (SubmissionStatus.APPROVED, SubmissionStatus.REVIEWED):
            return False
        cls.transition(submission, SubmissionStatus.REVIEWED)
        return True
