"""
assessment_engine/orm/course.py
Course, enrollment and project records consumed by the grading core.
CRUD over these tables belongs to the course collaborator.
"""
from enum import Enum
from sqlalchemy import Column, String, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship

from assessment_engine.orm.base import BaseModel


class EnrollmentRole(str, Enum):
    """Role of a user inside one course"""
    student = "student"
    mentor = "mentor"
    instructor = "instructor"


class Course(BaseModel):
    __tablename__ = "courses"

    title = Column(String(255), nullable=False)
    instructor_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    enrollments = relationship("CourseEnrollment", back_populates="course", cascade="all, delete-orphan")
    projects = relationship("Project", back_populates="course", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Course(id={self.id}, title={self.title})>"


class CourseEnrollment(BaseModel):
    __tablename__ = "course_enrollments"

    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(SQLEnum(EnrollmentRole), nullable=False, default=EnrollmentRole.student)

    course = relationship("Course", back_populates="enrollments")

    __table_args__ = (
        UniqueConstraint("course_id", "user_id", name="uq_course_enrollment_user"),
    )


class Project(BaseModel):
    __tablename__ = "projects"

    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)

    course = relationship("Course", back_populates="projects")

    def __repr__(self):
        return f"<Project(id={self.id}, course={self.course_id})>"
