"""
ACTIVITY TRACKING
=================
Structured request logging for monitoring.

FLOW:
- RequestContextMiddleware assigns a request id and binds the audit context.
- ActivityLoggingMiddleware logs each request with the resolved identity.
- Both are added app-wide in app/main.py.

HOW:
- Writes structured request logs to LOG_DIR/security.log.
"""

from __future__ import annotations

import logging
import os
import uuid
from logging.handlers import RotatingFileHandler

from starlette.middleware.base import BaseHTTPMiddleware

from Security.audit_trail import clear_audit_request_context, client_ip, set_audit_request_context
from Security.secrets_redaction import redact
from Security.security_config import SECURITY_SETTINGS

MAX_REQUEST_ID_LENGTH = 128


def _get_logger() -> logging.Logger:
    logger = logging.getLogger("security.activity")
    if logger.handlers:
        return logger

    log_dir = SECURITY_SETTINGS["LOG_DIR"]
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(os.path.join(log_dir, "security.log"), maxBytes=2_000_000, backupCount=3)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    return logger


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        request_id = (request.headers.get("x-request-id") or "").strip()
        if not request_id or len(request_id) > MAX_REQUEST_ID_LENGTH:
            request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        token = set_audit_request_context(request)
        try:
            response = await call_next(request)
        finally:
            clear_audit_request_context(token)
        response.headers["x-request-id"] = request_id
        return response


class ActivityLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app):
        super().__init__(app)
        self.logger = _get_logger()

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        identity = getattr(request.state, "identity", None)
        request_id = getattr(request.state, "request_id", None)
        query = request.url.query
        if query:
            query = redact(query)
        self.logger.info(
            "method=%s path=%s query=%s status=%s user_id=%s role=%s request_id=%s ip=%s",
            request.method,
            request.url.path,
            query or "",
            response.status_code,
            identity.user_id if identity else None,
            identity.role if identity else "",
            request_id or "",
            client_ip(request),
        )
        return response
