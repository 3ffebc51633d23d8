"""
Authentication service for user registration, login, and token management.

Identity is the only thing the recording pipeline needs from here: every
pipeline operation runs for the user resolved from the bearer token.
"""
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError

from voice_journal.models.user import User
from voice_journal.schemas.auth import UserCreate, UserLogin, UserResponse, Token
from voice_journal.services.database import db_service
from voice_journal.utils.security import verify_password
from voice_journal.utils.jwt import create_access_token, create_refresh_token, verify_token
from voice_journal.utils.logger import get_logger

logger = get_logger("auth_service")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


def _deactivated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="User account is deactivated"
    )


class AuthService:
    """Service for authentication operations."""

    @staticmethod
    def issue_tokens(user: User) -> Token:
        """Create a fresh access/refresh token pair for a user."""
        return Token(
            access_token=create_access_token(user.id, user.email),
            refresh_token=create_refresh_token(user.id, user.email),
            token_type="bearer",
            user=UserResponse.model_validate(user)
        )

    async def register_user(
        self,
        db: AsyncSession,
        user_data: UserCreate
    ) -> User:
        """
        Register a new user.

        Raises:
            HTTPException: If the email is taken or registration fails
        """
        try:
            user = await db_service.create_user(db, user_data)
            logger.info("User registered successfully", user_id=str(user.id), email=user.email)
            return user

        except HTTPException:
            raise
        except Exception as e:
            logger.error(
                "User registration failed",
                email=user_data.email,
                error=str(e),
                exc_info=True
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Registration failed"
            )

    async def authenticate_user(
        self,
        db: AsyncSession,
        login_data: UserLogin
    ) -> Token:
        """
        Authenticate a user and generate access/refresh tokens.

        Args:
            db: Database session
            login_data: User login credentials

        Returns:
            Token object with access and refresh tokens

        Raises:
            HTTPException: If authentication fails
        """
        user = await db_service.get_user_by_email(db, login_data.email)

        if not user or not verify_password(login_data.password, user.hashed_password):
            logger.warning("Login failed - invalid credentials", email=login_data.email)
            raise _unauthorized("Invalid email or password")

        if not user.is_active:
            logger.warning("Login failed - user not active", email=login_data.email)
            raise _deactivated()

        logger.info("User authenticated successfully", user_id=str(user.id))
        return self.issue_tokens(user)

    async def refresh_access_token(
        self,
        db: AsyncSession,
        refresh_token: str
    ) -> Token:
        """
        Generate new access and refresh tokens using a refresh token.

        Raises:
            HTTPException: If token is invalid or user not found
        """
        try:
            token_data = verify_token(refresh_token, expected_type="refresh")
        except JWTError as e:
            logger.warning("Token refresh failed - invalid token", error=str(e))
            raise _unauthorized("Invalid or expired refresh token")

        user = await db_service.get_user_by_id(db, token_data.user_id)

        if not user:
            logger.warning("Token refresh failed - user not found", user_id=str(token_data.user_id))
            raise _unauthorized("User not found")

        if not user.is_active:
            logger.warning("Token refresh failed - user not active", user_id=str(user.id))
            raise _deactivated()

        logger.info("Access token refreshed successfully", user_id=str(user.id))
        return self.issue_tokens(user)


# Global auth service instance
auth_service = AuthService()
