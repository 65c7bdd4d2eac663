"""
Notification Dispatcher

Tells a student that their submission has been assessed.

This module defines the NotificationDispatcher interface and provides:
- DatabaseNotificationDispatcher (default, writes an in-app notification row)
- LoggingNotificationDispatcher (log only, for tests and headless deployments)

Delivery is best-effort. GradingService calls notify after the grading
transaction has committed and swallows any exception it raises, so a
dispatcher failure never fails or rolls back a grade.

Usage:
    dispatcher = DatabaseNotificationDispatcher(database.session_factory)
    await dispatcher.notify(
        recipient_user_id=student_id,
        related_assessment_id=assessment_id,
        message="Your project has been assessed"
    )
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from assessment_engine.orm.notification import Notification

logger = logging.getLogger(__name__)

ASSESSMENT_KIND = "ASSESSMENT"


# =============================================================================
# Dispatcher Interface
# =============================================================================

class NotificationDispatcher(ABC):
    """Delivery channel for grading notifications."""

    @abstractmethod
    async def notify(
        self,
        recipient_user_id: str,
        kind: str = ASSESSMENT_KIND,
        related_assessment_id: Optional[str] = None,
        message: str = ""
    ) -> None:
        """
        Deliver one notification.

        Args:
            recipient_user_id: User to notify (the submission's student)
            kind: Notification category
            related_assessment_id: Assessment the notification refers to
            message: Human-readable text
        """
        pass


# =============================================================================
# Database Dispatcher (Default)
# =============================================================================

class DatabaseNotificationDispatcher(NotificationDispatcher):
    """
    Writes a Notification row using its own session and transaction.

    The grading session has already committed when notify runs; using a
    separate session keeps a failed insert from touching it.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def notify(
        self,
        recipient_user_id: str,
        kind: str = ASSESSMENT_KIND,
        related_assessment_id: Optional[str] = None,
        message: str = ""
    ) -> None:
        async with self.session_factory() as session:
            session: AsyncSession
            async with session.begin():
                session.add(Notification(
                    recipient_id=recipient_user_id,
                    kind=kind,
                    related_assessment_id=related_assessment_id,
                    message=message,
                ))
        logger.info(f"Notification ({kind}) queued for user {recipient_user_id}")


# =============================================================================
# Logging Dispatcher
# =============================================================================

class LoggingNotificationDispatcher(NotificationDispatcher):
    """Records notifications in memory and in the log. Nothing is delivered."""

    def __init__(self):
        self.sent: List[dict] = []

    async def notify(
        self,
        recipient_user_id: str,
        kind: str = ASSESSMENT_KIND,
        related_assessment_id: Optional[str] = None,
        message: str = ""
    ) -> None:
        self.sent.append({
            "recipient_user_id": recipient_user_id,
            "kind": kind,
            "related_assessment_id": related_assessment_id,
            "message": message,
        })
        logger.info(
            f"Notification ({kind}) for user {recipient_user_id}, "
            f"assessment {related_assessment_id}: {message}"
        )
