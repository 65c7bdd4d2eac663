"""
assessment_engine/orm/assessment.py
Rubric assessments: one header per (rubric, submission, evaluator) plus one
row per judged criterion.

The unique constraint is what makes the grading upsert race-safe: a second
concurrent insert for the same key fails with IntegrityError and is retried
as an update.
"""
from sqlalchemy import Column, String, Text, Float, Integer, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from assessment_engine.orm.base import BaseModel


class Assessment(BaseModel):
    __tablename__ = "assessments"

    rubric_id = Column(String(36), ForeignKey("rubrics.id", ondelete="RESTRICT"), nullable=False, index=True)
    submission_id = Column(String(36), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    evaluator_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    total_score = Column(Float, nullable=False, default=0.0)
    max_score = Column(Float, nullable=False)
    percentage = Column(Float, nullable=False, default=0.0)
    feedback = Column(Text, nullable=True)

    criterion_assessments = relationship(
        "CriterionAssessment",
        back_populates="assessment",
        cascade="all, delete-orphan",
        order_by="CriterionAssessment.position",
    )
    evaluator = relationship("User", foreign_keys=[evaluator_id])
    submission = relationship("Submission")

    __table_args__ = (
        UniqueConstraint("rubric_id", "submission_id", "evaluator_id", name="uq_assessment_rubric_submission_evaluator"),
        Index("idx_assessments_created", "created_at"),
    )

    def __repr__(self):
        return (
            f"<Assessment(id={self.id}, submission={self.submission_id}, "
            f"evaluator={self.evaluator_id}, total={self.total_score}/{self.max_score})>"
        )


class CriterionAssessment(BaseModel):
    __tablename__ = "criterion_assessments"

    assessment_id = Column(String(36), ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True)
    criterion_id = Column(String(36), ForeignKey("rubric_criteria.id", ondelete="RESTRICT"), nullable=False)
    level_id = Column(String(36), ForeignKey("rubric_levels.id", ondelete="RESTRICT"), nullable=False)

    score = Column(Float, nullable=False)
    max_score = Column(Float, nullable=False)
    comment = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=0)

    assessment = relationship("Assessment", back_populates="criterion_assessments")

    def __repr__(self):
        return f"<CriterionAssessment(criterion={self.criterion_id}, level={self.level_id}, score={self.score})>"
