"""
ORM models for the assessment engine.
Importing this package registers every table on Base.metadata.
"""
from assessment_engine.orm.base import Base, BaseModel
from assessment_engine.orm.user import User, UserRole
from assessment_engine.orm.course import Course, CourseEnrollment, EnrollmentRole, Project
from assessment_engine.orm.rubric import Rubric, RubricCriterion, RubricLevel
from assessment_engine.orm.submission import Submission, SubmissionStatus
from assessment_engine.orm.assessment import Assessment, CriterionAssessment
from assessment_engine.orm.notification import Notification

__all__ = [
    "Base",
    "BaseModel",
    "User",
    "UserRole",
    "Course",
    "CourseEnrollment",
    "EnrollmentRole",
    "Project",
    "Rubric",
    "RubricCriterion",
    "RubricLevel",
    "Submission",
    "SubmissionStatus",
    "Assessment",
    "CriterionAssessment",
    "Notification",
]
