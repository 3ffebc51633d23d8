"""
Pydantic schemas for accounts and bearer tokens.

The account id doubles as the owner id of every entry and storage object.
"""
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserCreate(BaseModel):
    """Registration payload."""
    email: EmailStr = Field(..., description="Account email, unique per installation")
    password: str = Field(..., min_length=8, description="Plain password, at least 8 characters")


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """Account as returned to clients; never includes the password hash."""
    id: UUID
    email: EmailStr
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    """Access/refresh pair issued on login and refresh."""
    access_token: str = Field(..., description="Bearer token for the API")
    refresh_token: str = Field(..., description="Exchanged for a new pair at /auth/refresh")
    token_type: str = "bearer"
    user: UserResponse


class TokenData(BaseModel):
    """Claims decoded from an access or refresh token."""
    user_id: UUID | None = None
    email: str | None = None
    token_type: str = "access"


class RefreshTokenRequest(BaseModel):
    refresh_token: str
