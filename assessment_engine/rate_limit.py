"""
assessment_engine/rate_limit.py
Rate limiter shared by the app and the routes that decorate with it.
"""
import logging

from slowapi import Limiter
from slowapi.util import get_remote_address

from assessment_engine.config.settings import Settings

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)

_grading_limit = Settings.grading_rate_limit


def grading_limit() -> str:
    """Limit string for POST /api/assessments, resolved per request."""
    return _grading_limit


def configure_limiter(settings: Settings) -> Limiter:
    global _grading_limit
    _grading_limit = settings.grading_rate_limit
    limiter.enabled = settings.rate_limit_enabled
    logger.info(
        f"Rate limiter configured: grading={_grading_limit}, enabled={settings.rate_limit_enabled}"
    )
    return limiter
