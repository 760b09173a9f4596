"""
AUTHENTICATION MIDDLEWARE
=========================
Session-cookie authentication layer for protected routes.

FLOW:
- Read the session id from the session cookie.
- Missing cookie or failed lookup: 401, wrapped handler never runs.
- Valid session: attach RequestIdentity to request.state.identity.

HOW:
- The store lookup is read-only and runs in the thread pool, so a slow
  database only delays this request. Sessions are never created or
  extended here.
"""

from __future__ import annotations

import logging

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response

from Security.audit_trail import audit
from Security.errors import AuthenticationRequired
from Security.middleware import Handler
from Security.security_config import SECURITY_SETTINGS
from Security.session_store import SessionStore

logger = logging.getLogger(__name__)


class Authenticate:
    def __init__(self, next_handler: Handler, store: SessionStore, cookie_name: str | None = None):
        self.next_handler = next_handler
        self.store = store
        self.cookie_name = cookie_name or SECURITY_SETTINGS["SESSION_COOKIE_NAME"]

    async def __call__(self, request: Request) -> Response:
        session_id = request.cookies.get(self.cookie_name)
        if not session_id:
            audit("auth_session_missing")
            raise AuthenticationRequired()

        identity = await run_in_threadpool(self.store.lookup, session_id)
        if identity is None:
            audit("auth_session_rejected")
            raise AuthenticationRequired("Session not found or expired")

        request.state.identity = identity
        logger.debug("Authenticated user_id=%s role=%s", identity.user_id, identity.role)
        return await self.next_handler(request)
