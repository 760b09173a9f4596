"""
TOKEN GENERATOR
===============
Opaque random tokens for CSRF cookies and session identifiers.
"""

# FLOW:
# - generate_token() reads 32 bytes from the OS CSPRNG.
# HOW:
# - secrets.token_bytes + URL-safe base64 without padding (cookie-safe).
# - Entropy failures raise RandomSourceError; there is no weaker fallback.

from __future__ import annotations

import base64
import secrets

from Security.errors import RandomSourceError

TOKEN_BYTES = 32


def generate_token(nbytes: int = TOKEN_BYTES) -> str:
    try:
        raw = secrets.token_bytes(nbytes)
    except (OSError, NotImplementedError) as exc:
        raise RandomSourceError() from exc
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def decode_token(token: str) -> bytes:
    """Return the raw bytes behind a token produced by generate_token()."""
    padding = "=" * (-len(token) % 4)
    return base64.urlsafe_b64decode(token + padding)
