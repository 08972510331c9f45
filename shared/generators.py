"""
Random code and token generators: pure, side-effect-free functions.

Every generator here draws from the ``secrets`` module; the codes they
produce are the whole security boundary of the verification protocol.
"""

from __future__ import annotations

import secrets
import string

SESSION_ID_BYTES = 32


def generate_otp_code(length: int = 6) -> str:
    """Generate a cryptographically secure numeric OTP.

    Each digit is drawn independently, so leading zeros are allowed.

    Args:
        length: Number of digits (default 6).

    Returns:
        String of random decimal digits.
    """
    if length <= 0:
        raise ValueError("OTP length must be positive")
    return "".join(secrets.choice(string.digits) for _ in range(length))


def generate_session_id(num_bytes: int = SESSION_ID_BYTES) -> str:
    """Generate an opaque hex session id.

    Args:
        num_bytes: Random bytes before hex encoding (default 32, giving a
            64-character id).
    """
    return secrets.token_hex(num_bytes)
