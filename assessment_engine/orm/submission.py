"""
assessment_engine/orm/submission.py
Student project submissions and their review workflow status
"""
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from assessment_engine.orm.base import BaseModel


class SubmissionStatus(str, PyEnum):
    """Submission lifecycle status"""
    PENDING = "PENDING"                        # Awaiting first assessment
    REVIEWED = "REVIEWED"                      # At least one assessment recorded
    APPROVED = "APPROVED"                      # Final; set by the review collaborator
    REVISION_REQUESTED = "REVISION_REQUESTED"  # Collaborator-managed
    REJECTED = "REJECTED"                      # Collaborator-managed
    LATE = "LATE"                              # Collaborator-managed


class Submission(BaseModel):
    __tablename__ = "submissions"

    student_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(SQLEnum(SubmissionStatus), default=SubmissionStatus.PENDING, nullable=False, index=True)
    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    project = relationship("Project")
    student = relationship("User", foreign_keys=[student_id])

    def __repr__(self):
        return f"<Submission(id={self.id}, student={self.student_id}, status={self.status})>"
