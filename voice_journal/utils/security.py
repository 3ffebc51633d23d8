"""
Password hashing helpers.
"""
import bcrypt


def hash_password(password: str) -> str:
    """Hash a plain text password with a fresh bcrypt salt."""
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt())
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain text password against a bcrypt hash.

    Args:
        plain_password: Password as typed by the user
        hashed_password: Stored bcrypt hash

    Returns:
        True if passwords match, False otherwise
    """
    return bcrypt.checkpw(
        plain_password.encode('utf-8'),
        hashed_password.encode('utf-8')
    )
