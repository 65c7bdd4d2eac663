"""
assessment_engine/errors.py
Centralized error taxonomy for the grading API

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

HTTP STATUS CODE DISCIPLINE:
- 400: Grading payload rejected (incomplete or inconsistent criteria)
- 401: No authenticated acting user
- 403: Authenticated but not allowed to grade / view
- 404: Rubric, submission or assessment does not exist
- 422: Request body failed schema validation (pydantic)
- 429: Rate limit exceeded
- 500: Storage failure or scoring invariant violation (never user input)
"""

import uuid
import logging
from typing import Optional, Dict, Any, List

from fastapi import status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_FIELD = "MISSING_FIELD"
    INCOMPLETE_CRITERIA = "INCOMPLETE_CRITERIA"
    UNKNOWN_CRITERION = "UNKNOWN_CRITERION"
    UNKNOWN_LEVEL = "UNKNOWN_LEVEL"
    DUPLICATE_CRITERION = "DUPLICATE_CRITERION"
    RUBRIC_MISMATCH = "RUBRIC_MISMATCH"
    INVALID_INPUT = "INVALID_INPUT"
    RUBRIC_IN_USE = "RUBRIC_IN_USE"

    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID = "AUTH_INVALID"

    FORBIDDEN = "FORBIDDEN"

    NOT_FOUND = "NOT_FOUND"
    RUBRIC_NOT_FOUND = "RUBRIC_NOT_FOUND"
    SUBMISSION_NOT_FOUND = "SUBMISSION_NOT_FOUND"
    ASSESSMENT_NOT_FOUND = "ASSESSMENT_NOT_FOUND"
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"

    RATE_LIMITED = "RATE_LIMITED"

    INTERNAL_ERROR = "INTERNAL_ERROR"
    SCORING_INVARIANT = "SCORING_INVARIANT"


def new_log_id() -> str:
    """Short correlation id shared between a log line and an error response."""
    return str(uuid.uuid4())[:8]


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


class BadRequestError(APIError):
    """400 Bad Request - Invalid input"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Bad Request",
            message=message,
            code=code,
            details=details
        )


class UnauthorizedError(APIError):
    """401 Unauthorized - Authentication required"""
    def __init__(self, message: str = "Authentication required", code: str = ErrorCode.AUTH_REQUIRED):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="Unauthorized",
            message=message,
            code=code
        )


class ForbiddenError(APIError):
    """403 Forbidden - Access denied"""
    def __init__(self, message: str, code: str = ErrorCode.FORBIDDEN, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error="Forbidden",
            message=message,
            code=code,
            details=details
        )


class NotFoundError(APIError):
    """404 Not Found - Resource does not exist"""
    def __init__(self, resource: str, identifier: Any = None, code: str = ErrorCode.NOT_FOUND):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Not Found",
            message=message,
            code=code
        )


class AssessmentValidationError(APIError):
    """
    400 - The grading payload does not match the rubric.

    Carries the offending criterion ids so the caller can re-prompt the
    evaluator for exactly those criteria.
    """
    def __init__(
        self,
        message: str,
        code: str = ErrorCode.VALIDATION_ERROR,
        missing_criterion_ids: Optional[List[str]] = None,
        unknown_criterion_ids: Optional[List[str]] = None,
        duplicate_criterion_ids: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.missing_criterion_ids = list(missing_criterion_ids or [])
        self.unknown_criterion_ids = list(unknown_criterion_ids or [])
        self.duplicate_criterion_ids = list(duplicate_criterion_ids or [])

        payload = dict(details or {})
        if self.missing_criterion_ids:
            payload["missing_criterion_ids"] = self.missing_criterion_ids
        if self.unknown_criterion_ids:
            payload["unknown_criterion_ids"] = self.unknown_criterion_ids
        if self.duplicate_criterion_ids:
            payload["duplicate_criterion_ids"] = self.duplicate_criterion_ids

        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Validation Error",
            message=message,
            code=code,
            details=payload or None
        )


class InternalError(APIError):
    """500 Internal Server Error - storage or invariant failure, opaque to the caller"""
    def __init__(
        self,
        message: str = "An internal error occurred",
        log_id: Optional[str] = None,
        retryable: bool = False,
        code: str = ErrorCode.INTERNAL_ERROR
    ):
        self.log_id = log_id or new_log_id()
        self.retryable = retryable
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Internal Error",
            message=message,
            code=code,
            details={"log_id": self.log_id, "retryable": retryable}
        )


class ScoringInvariantError(InternalError):
    """Rubric data violates a scoring invariant (e.g. max_points is zero)."""
    def __init__(self, message: str, rubric_id: Optional[str] = None):
        log_id = new_log_id()
        logger.error(f"[{log_id}] Scoring invariant violated for rubric {rubric_id}: {message}")
        super().__init__(
            message="Rubric configuration prevents scoring",
            log_id=log_id,
            code=ErrorCode.SCORING_INVARIANT
        )
        self.reason = message
        self.rubric_id = rubric_id


def get_error_summary() -> Dict[str, Any]:
    """Error handling documentation served by the health endpoint."""
    return {
        "version": "1.0.0",
        "status_codes": {
            "400": "Invalid input or grading payload rejected",
            "401": "Authentication required",
            "403": "Access forbidden",
            "404": "Resource not found",
            "422": "Schema validation error",
            "429": "Rate limit exceeded",
            "500": "Internal error (storage or scoring invariant)",
        },
        "error_codes": sorted(
            value for key, value in vars(ErrorCode).items() if not key.startswith("_")
        ),
    }
