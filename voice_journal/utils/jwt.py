"""
JWT token utilities for authentication and signed storage URLs.
"""
from datetime import datetime, timedelta, timezone
from typing import Tuple
from uuid import UUID
from jose import JWTError, jwt
from voice_journal.config import settings
from voice_journal.schemas.auth import TokenData


def _create_token(user_id: UUID, email: str, token_type: str, expire_days: int) -> str:
    expire = datetime.now(timezone.utc) + timedelta(days=expire_days)
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "exp": expire,
        "type": token_type
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: UUID, email: str) -> str:
    """
    Create a JWT access token.

    Args:
        user_id: User's UUID
        email: User's email address

    Returns:
        Encoded JWT token string
    """
    return _create_token(user_id, email, "access", settings.ACCESS_TOKEN_EXPIRE_DAYS)


def create_refresh_token(user_id: UUID, email: str) -> str:
    """Create a JWT refresh token."""
    return _create_token(user_id, email, "refresh", settings.REFRESH_TOKEN_EXPIRE_DAYS)


def verify_token(token: str, expected_type: str = "access") -> TokenData:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token string to verify
        expected_type: Expected token type ("access" or "refresh")

    Returns:
        TokenData object with decoded token information

    Raises:
        JWTError: If token is invalid, expired, or type doesn't match
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )

        user_id_str: str | None = payload.get("sub")
        email: str | None = payload.get("email")
        token_type: str = payload.get("type", "access")

        if user_id_str is None or email is None:
            raise JWTError("Invalid token payload")

        if token_type != expected_type:
            raise JWTError(f"Invalid token type: expected {expected_type}, got {token_type}")

        return TokenData(
            user_id=UUID(user_id_str),
            email=email,
            token_type=token_type
        )

    except (JWTError, ValueError) as e:
        raise JWTError(f"Token verification failed: {str(e)}")


def create_storage_token(path: str, ttl_seconds: int) -> Tuple[str, datetime]:
    """
    Sign a storage object path into a short-lived token.

    Args:
        path: Owner-prefixed storage path
        ttl_seconds: Token lifetime

    Returns:
        Tuple of (token, expiry time)
    """
    expire = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
    to_encode = {
        "path": path,
        "exp": expire,
        "type": "storage"
    }
    token = jwt.encode(to_encode, settings.signing_key, algorithm=settings.JWT_ALGORITHM)
    return token, expire


def verify_storage_token(token: str) -> str:
    """
    Decode a signed storage token back into its path.

    Raises:
        JWTError: If the token is invalid, expired, or not a storage token
    """
    payload = jwt.decode(token, settings.signing_key, algorithms=[settings.JWT_ALGORITHM])
    path = payload.get("path")
    if payload.get("type") != "storage" or not path:
        raise JWTError("Not a storage token")
    return path
