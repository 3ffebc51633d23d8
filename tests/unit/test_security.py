"""
Unit tests for password hashing.
"""
from voice_journal.utils.security import hash_password, verify_password


def test_hash_is_not_plaintext():
    hashed = hash_password("TestPassword123!")

    assert hashed != "TestPassword123!"
    assert hashed.startswith("$2")


def test_verify_password():
    hashed = hash_password("TestPassword123!")

    assert verify_password("TestPassword123!", hashed) is True
    assert verify_password("WrongPassword123!", hashed) is False


def test_hashes_are_salted():
    assert hash_password("TestPassword123!") != hash_password("TestPassword123!")
