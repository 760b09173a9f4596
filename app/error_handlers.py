from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from Security.cors_security import apply_cors_headers
from Security.errors import SecurityError
from .app_context import templates

logger = logging.getLogger(__name__)


def _is_html_page_request(request: Request) -> bool:
    accept = (request.headers.get("accept") or "").lower()
    return "text/html" in accept


def _error_title(status_code: int) -> str:
    if status_code == 400:
        return "Bad request"
    if status_code == 401:
        return "Authentication required"
    if status_code == 403:
        return "Access denied"
    if status_code == 404:
        return "Page not found"
    if status_code == 405:
        return "Method not allowed"
    if status_code >= 500:
        return "Internal server error"
    return "Request failed"


def _error_reason(status_code: int) -> str:
    if status_code == 401:
        return "Your session is missing, expired, or invalid. Please log in again."
    if status_code == 403:
        return "You do not have permission to access this resource, or the form expired."
    if status_code == 404:
        return "The URL does not match any existing route."
    if status_code >= 500:
        return "The server hit an unexpected condition while processing your request."
    return "The request could not be completed."


def _detail_from_exc(exc: Any, fallback: str) -> str:
    raw = getattr(exc, "detail", None)
    if isinstance(raw, str) and raw.strip():
        return raw
    return fallback


def error_response(request: Request, status_code: int, detail: str, headers: dict | None = None):
    if status_code >= 500:
        detail = "Internal server error"
    if _is_html_page_request(request):
        response = templates.TemplateResponse(
            request,
            "common/error.html",
            {
                "status_code": status_code,
                "path": request.url.path,
                "detail": detail,
                "error_title": _error_title(status_code),
                "error_reason": _error_reason(status_code),
            },
            status_code=status_code,
            headers=headers,
        )
    else:
        response = JSONResponse({"detail": detail}, status_code=status_code, headers=headers)
    return apply_cors_headers(request, response)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(SecurityError)
    async def security_exception_handler(request: Request, exc: SecurityError):
        if exc.status_code >= 500:
            logger.error("Security fault on %s %s: %s", request.method, request.url.path, exc.detail)
        return error_response(request, exc.status_code, exc.detail)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        reason = _error_reason(exc.status_code)
        return error_response(request, exc.status_code, _detail_from_exc(exc, reason), getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(request, 500, "Internal server error")
