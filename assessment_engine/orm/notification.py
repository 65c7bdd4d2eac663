"""
assessment_engine/orm/notification.py
In-app notifications written by the database notification dispatcher
"""
from sqlalchemy import Column, String, Text, Boolean, ForeignKey

from assessment_engine.orm.base import BaseModel


class Notification(BaseModel):
    __tablename__ = "notifications"

    recipient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(String(32), nullable=False, default="ASSESSMENT")
    related_assessment_id = Column(String(36), ForeignKey("assessments.id", ondelete="SET NULL"), nullable=True)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<Notification(id={self.id}, recipient={self.recipient_id}, kind={self.kind})>"
