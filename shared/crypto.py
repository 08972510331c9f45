"""
Cryptographic helpers: argon2 hashing for one-time codes and passwords.

Uses argon2id via argon2-cffi. A six-digit code space is small, so codes get
the same memory-hard treatment as passwords rather than a fast digest.
"""

from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_hasher = PasswordHasher()


def hash_code(code: str) -> str:
    """Hash a one-time *code* with argon2id.

    Returns:
        Argon2 hash string (includes algorithm parameters and salt).
    """
    return _hasher.hash(code)


def verify_code(code_hash: str, code: str) -> bool:
    """Constant-time check of *code* against an argon2 *code_hash*.

    Returns:
        ``True`` on a match, ``False`` on a mismatch or an unreadable hash.
    """
    try:
        return _hasher.verify(code_hash, code)
    except (VerificationError, InvalidHashError):
        return False


def hash_password(plain_password: str) -> str:
    """Hash *plain_password* with argon2id."""
    return _hasher.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify *plain_password* against an argon2 *password_hash*."""
    return verify_code(password_hash, plain_password)
