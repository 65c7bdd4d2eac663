"""
assessment_engine/rbac.py
Acting-user resolution for the grading API.

Tokens are issued by the identity collaborator; this module only verifies
them. Expected claims: sub (user id), type == "access", exp.
"""
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.database import get_db
from assessment_engine.errors import UnauthorizedError, ErrorCode
from assessment_engine.orm.user import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str, secret_key: str, algorithm: str) -> Optional[dict]:
    """Decode and validate JWT token"""
    try:
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError:
        return None


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from the bearer access token.
    Raises 401 if the token is missing, invalid, expired, or names an
    inactive/unknown user.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()

    settings = request.app.state.settings
    payload = decode_token(credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm)
    if not payload or payload.get("type") != "access":
        raise UnauthorizedError("Invalid or expired token", ErrorCode.AUTH_INVALID)

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid or expired token", ErrorCode.AUTH_INVALID)

    result = await db.execute(select(User).where(User.id == str(user_id)))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        logger.warning(f"Token for unknown or inactive user {user_id} rejected")
        raise UnauthorizedError("Invalid or expired token", ErrorCode.AUTH_INVALID)

    request.state.user = {"id": user.id, "role": user.role.value}
    return user
