"""
JWT authentication dependency.
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError

from voice_journal.database import get_db
from voice_journal.models.user import User
from voice_journal.services.database import db_service
from voice_journal.utils.jwt import verify_token
from voice_journal.utils.logger import get_logger

logger = get_logger("jwt_middleware")

# Missing credentials are rejected with 401 in get_current_user
security = HTTPBearer(auto_error=False)

CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"}
)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Resolve the authenticated user from the bearer token.

    Raises:
        HTTPException: 401 if the token is missing, invalid, or the user is
            gone; 403 if the account is deactivated
    """
    if credentials is None:
        logger.debug("Request without bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        token_data = verify_token(credentials.credentials, expected_type="access")
    except JWTError as e:
        logger.warning("JWT verification failed", error=str(e))
        raise CREDENTIALS_EXCEPTION

    user = await db_service.get_user_by_id(db, token_data.user_id)

    if not user:
        logger.warning("User not found for valid token", user_id=str(token_data.user_id))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if not user.is_active:
        logger.warning("Inactive user attempted access", user_id=str(user.id))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated"
        )

    logger.debug("User authenticated", user_id=str(user.id))
    return user
