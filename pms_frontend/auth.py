"""
Bearer-token inspection helpers for the PMS frontend.

The PMS backend signs its tokens with a secret the frontend never sees, so
the frontend cannot verify signatures. It still reads the claims to detect
an expired session before sending a request that would fail with 401, and
to learn the username that keys the per-user query cache. The backend
remains the only authority on whether a token is valid.
"""

from __future__ import annotations

from typing import Any

import jwt

REQUIRED_TOKEN_CLAIMS = ["sub", "exp"]


def read_token_claims(token: str, *, leeway: int = 30) -> dict[str, Any] | None:
    """
    Decode a JWT without verifying its signature and check its expiry.

    Args:
        token: The raw compact-JWS token string.
        leeway: Clock-skew tolerance in seconds for the ``exp`` check.

    Returns:
        The decoded claims on success, or ``None`` if the token is
        malformed, expired, lacks a required claim, or carries a blank
        subject.
    """
    try:
        decoded = jwt.decode(
            token,
            options={
                "verify_signature": False,
                "verify_exp": True,
                "require": REQUIRED_TOKEN_CLAIMS,
            },
            leeway=leeway,
        )
    except jwt.InvalidTokenError:
        return None

    subject = decoded.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        return None
    return decoded
