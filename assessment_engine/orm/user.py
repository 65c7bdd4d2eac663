"""
assessment_engine/orm/user.py
User accounts as seen by the grading core (owned by the identity collaborator)
"""
from enum import Enum
from sqlalchemy import Column, String, Boolean, Enum as SQLEnum

from assessment_engine.orm.base import BaseModel


class UserRole(str, Enum):
    """Platform-wide roles"""
    student = "student"
    instructor = "instructor"
    mentor = "mentor"
    admin = "admin"


class User(BaseModel):
    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.student, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    def to_summary(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
        }
