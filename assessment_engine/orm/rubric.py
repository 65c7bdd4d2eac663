"""
assessment_engine/orm/rubric.py
Weighted grading rubrics: Rubric -> RubricCriterion -> RubricLevel

max_points is expected to equal the sum of (best level points x weight)
over all criteria. It is a grading contract and is not enforced on write.
"""
from typing import Optional
from sqlalchemy import Column, String, Text, Float, Integer, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from assessment_engine.orm.base import BaseModel


class Rubric(BaseModel):
    __tablename__ = "rubrics"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    max_points = Column(Float, nullable=False, default=100.0)
    is_published = Column(Boolean, default=False, nullable=False)

    project_id = Column(String(36), ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    criteria = relationship(
        "RubricCriterion",
        back_populates="rubric",
        cascade="all, delete-orphan",
        order_by="RubricCriterion.position",
    )
    project = relationship("Project")

    def __repr__(self):
        return f"<Rubric(id={self.id}, title={self.title}, max_points={self.max_points})>"

    def find_criterion(self, criterion_id: str) -> Optional["RubricCriterion"]:
        for criterion in self.criteria:
            if criterion.id == criterion_id:
                return criterion
        return None


class RubricCriterion(BaseModel):
    __tablename__ = "rubric_criteria"

    rubric_id = Column(String(36), ForeignKey("rubrics.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    weight = Column(Float, nullable=False, default=1.0)
    position = Column(Integer, nullable=False, default=0)

    rubric = relationship("Rubric", back_populates="criteria")
    levels = relationship(
        "RubricLevel",
        back_populates="criterion",
        cascade="all, delete-orphan",
        order_by="RubricLevel.position",
    )

    def find_level(self, level_id: str) -> Optional["RubricLevel"]:
        for level in self.levels:
            if level.id == level_id:
                return level
        return None

    @property
    def max_level_points(self) -> float:
        """Best achievable level points (0 for a criterion without levels)."""
        return max((level.points for level in self.levels), default=0.0)


class RubricLevel(BaseModel):
    __tablename__ = "rubric_levels"

    criterion_id = Column(String(36), ForeignKey("rubric_criteria.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    points = Column(Float, nullable=False, default=0.0)
    position = Column(Integer, nullable=False, default=0)

    criterion = relationship("RubricCriterion", back_populates="levels")
