"""
SESSION SECURITY
================
Session cookie lifecycle around login and logout.

FLOW:
- start_session() creates a store session and sets the HttpOnly cookie.
- end_session() invalidates the session named by the cookie and clears it.

HOW:
- The cookie holds only the opaque session id; identity and role are
  resolved server-side by the store on every request.
"""

from __future__ import annotations

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response

from Security.security_config import SECURITY_SETTINGS
from Security.session_store import SessionStore


async def start_session(
    response: Response,
    store: SessionStore,
    user_id: int,
    role: str,
    max_age: int | None = None,
    cookie_name: str | None = None,
) -> str:
    """Create a session on login and set its cookie. Returns the session id."""
    max_age = SECURITY_SETTINGS["SESSION_MAX_AGE"] if max_age is None else max_age
    session_id = await run_in_threadpool(store.create, user_id, role, max_age)
    response.set_cookie(
        cookie_name or SECURITY_SETTINGS["SESSION_COOKIE_NAME"],
        session_id,
        max_age=max_age,
        path="/",
        secure=SECURITY_SETTINGS["SESSION_COOKIE_SECURE"],
        httponly=True,
        samesite=SECURITY_SETTINGS["SESSION_COOKIE_SAMESITE"],
    )
    return session_id


async def end_session(
    request: Request,
    response: Response,
    store: SessionStore,
    cookie_name: str | None = None,
) -> None:
    cookie_name = cookie_name or SECURITY_SETTINGS["SESSION_COOKIE_NAME"]
    session_id = request.cookies.get(cookie_name)
    if session_id:
        await run_in_threadpool(store.invalidate, session_id)
    response.delete_cookie(
        cookie_name,
        path="/",
        secure=SECURITY_SETTINGS["SESSION_COOKIE_SECURE"],
        httponly=True,
        samesite=SECURITY_SETTINGS["SESSION_COOKIE_SAMESITE"],
    )
