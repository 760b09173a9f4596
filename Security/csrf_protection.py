"""
CSRF PROTECTION
===============
Double-submit cookie CSRF guard.

FLOW:
- issue_csrf_token() sets the csrf_token cookie on a page that renders a form.
- The page echoes the same value in a hidden csrf_token field.
- CSRFProtect validates cookie against field on state-changing requests.

HOW:
- No server-side token state; validation is a constant-time comparison
  between the cookie value and the submitted form value.
- The cookie is HttpOnly and Secure; SameSite comes from configuration.
"""

from __future__ import annotations

import hmac

from starlette.requests import Request
from starlette.responses import Response

from Security.audit_trail import audit
from Security.errors import CSRFError, CSRFMismatch, CSRFMissingCookie, CSRFMissingField
from Security.middleware import SAFE_METHODS, Handler
from Security.security_config import SECURITY_SETTINGS
from Security.token_generator import generate_token


def issue_csrf_token(
    response: Response,
    token: str | None = None,
    cookie_name: str | None = None,
    max_age: int | None = None,
    secure: bool | None = None,
    same_site: str | None = None,
) -> str:
    """Set the CSRF cookie on response and return its value.

    Pass token when the page was already rendered with a value from
    generate_token(); otherwise a fresh one is generated.
    """
    if token is None:
        token = generate_token()
    max_age = SECURITY_SETTINGS["CSRF_MAX_AGE"] if max_age is None else max_age
    response.set_cookie(
        cookie_name or SECURITY_SETTINGS["CSRF_COOKIE_NAME"],
        token,
        max_age=max_age,
        expires=max_age,
        path="/",
        secure=SECURITY_SETTINGS["CSRF_COOKIE_SECURE"] if secure is None else secure,
        httponly=True,
        samesite=same_site or SECURITY_SETTINGS["CSRF_COOKIE_SAMESITE"],
    )
    return token


async def _form_token(request: Request, field_name: str) -> str:
    form = await request.form()
    value = form.get(field_name)
    if not isinstance(value, str):
        return ""
    return value


async def validate_csrf_token(
    request: Request,
    cookie_name: str | None = None,
    field_name: str | None = None,
) -> None:
    """Raise a CSRFError subclass unless form field and cookie match."""
    form_token = await _form_token(request, field_name or SECURITY_SETTINGS["CSRF_FIELD_NAME"])
    if not form_token:
        raise CSRFMissingField()

    cookie_token = request.cookies.get(cookie_name or SECURITY_SETTINGS["CSRF_COOKIE_NAME"])
    if cookie_token is None:
        raise CSRFMissingCookie()

    if not hmac.compare_digest(form_token.encode("utf-8"), cookie_token.encode("utf-8")):
        raise CSRFMismatch()


class CSRFProtect:
    """Route layer rejecting state-changing requests without a matching token."""

    def __init__(self, next_handler: Handler, cookie_name: str | None = None, field_name: str | None = None):
        self.next_handler = next_handler
        self.cookie_name = cookie_name
        self.field_name = field_name

    async def __call__(self, request: Request) -> Response:
        if request.method not in SAFE_METHODS:
            try:
                await validate_csrf_token(request, self.cookie_name, self.field_name)
            except CSRFError as exc:
                audit("csrf_rejected", details=type(exc).__name__)
                raise
        return await self.next_handler(request)
