"""Salted password hashing for stored users."""

from typing import Optional

from passlib.hash import pbkdf2_sha256


def hash_password(password: str) -> str:
    return pbkdf2_sha256.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Check a plaintext password against a stored hash; unknown or empty hashes never match."""
    if not password_hash:
        return False
    try:
        return pbkdf2_sha256.verify(password, password_hash)
    except ValueError:
        # Not a pbkdf2_sha256 hash (e.g. a legacy plaintext value)
        return False
