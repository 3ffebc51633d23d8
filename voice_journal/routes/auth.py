"""
API routes for authentication operations.

Sign-out is client-side: tokens are stateless, so the client discards them.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from voice_journal.database import get_db
from voice_journal.middleware.jwt import get_current_user
from voice_journal.models.user import User
from voice_journal.schemas.auth import UserCreate, UserLogin, UserResponse, Token, RefreshTokenRequest
from voice_journal.services.auth import auth_service
from voice_journal.utils.logger import get_logger

logger = get_logger("auth_routes")

router = APIRouter()


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="Create a new user account with email and password"
)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user account.

    Raises:
        HTTPException: If email already exists or registration fails
    """
    logger.info("Registration attempt", email=user_data.email)

    user = await auth_service.register_user(db, user_data)
    await db.commit()

    return UserResponse.model_validate(user)


@router.post(
    "/login",
    response_model=Token,
    summary="Login user",
    description="Authenticate user and receive access and refresh tokens"
)
async def login(
    login_data: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    logger.info("Login attempt", email=login_data.email)
    return await auth_service.authenticate_user(db, login_data)


@router.post(
    "/refresh",
    response_model=Token,
    summary="Refresh access token",
    description="Generate new access and refresh tokens using a valid refresh token"
)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    logger.info("Token refresh attempt")
    return await auth_service.refresh_access_token(db, refresh_data.refresh_token)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user",
    description="Identity of the authenticated user"
)
async def me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)
