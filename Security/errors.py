"""
SECURITY ERRORS
===============
Exception taxonomy raised by the request-authentication pipeline.

Client errors (401/403) terminate the request with a direct response.
Server faults (500) mean a broken deployment or route wiring.
"""

from __future__ import annotations


class SecurityError(Exception):
    status_code = 500
    detail = "Security check failed"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class RandomSourceError(SecurityError):
    """The OS entropy source failed; no token can be issued."""

    detail = "Secure random source unavailable"


class CSRFError(SecurityError):
    status_code = 403
    detail = "CSRF validation failed"


class CSRFMissingField(CSRFError):
    detail = "CSRF token not provided"


class CSRFMissingCookie(CSRFError):
    detail = "CSRF token cookie not found"


class CSRFMismatch(CSRFError):
    detail = "Invalid CSRF token"


class AuthenticationRequired(SecurityError):
    """Missing, unknown or expired session. Client must log in again."""

    status_code = 401
    detail = "Not authenticated"


class AccessDenied(SecurityError):
    status_code = 403
    detail = "Access denied"


class IdentityNotPresent(SecurityError):
    """Role check or handler ran without a preceding authentication layer."""

    detail = "Request identity not present"


__all__ = [
    "SecurityError",
    "RandomSourceError",
    "CSRFError",
    "CSRFMissingField",
    "CSRFMissingCookie",
    "CSRFMismatch",
    "AuthenticationRequired",
    "AccessDenied",
    "IdentityNotPresent",
]
