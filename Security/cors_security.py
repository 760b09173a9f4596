"""
CORS SECURITY
=============
Per-route CORS layer for the farmer and buyer routes.
"""

# FLOW:
# - Allowed Origin: echo it back with credentials allowed.
# - Preflight OPTIONS: answered here with 204, next handler not called.
# HOW:
# - Origins come from CORS_ORIGINS; "*" allows any origin.

from __future__ import annotations

from typing import Iterable

from starlette.requests import Request
from starlette.responses import Response

from Security.middleware import Handler
from Security.security_config import SECURITY_SETTINGS

DEFAULT_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS")
DEFAULT_HEADERS = ("Content-Type", "X-Request-ID")


class CORS:
    def __init__(
        self,
        next_handler: Handler,
        origins: Iterable[str] | None = None,
        allow_credentials: bool = True,
        methods: Iterable[str] = DEFAULT_METHODS,
        headers: Iterable[str] = DEFAULT_HEADERS,
        max_age: int = 600,
    ):
        self.next_handler = next_handler
        self.origins = frozenset(SECURITY_SETTINGS["CORS_ORIGINS"] if origins is None else origins)
        self.allow_credentials = allow_credentials
        self.methods = ", ".join(methods)
        self.headers = ", ".join(headers)
        self.max_age = max_age

    def is_allowed(self, origin: str | None) -> bool:
        if not origin:
            return False
        return "*" in self.origins or origin in self.origins

    def _headers_for(self, origin: str) -> dict[str, str]:
        headers = {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers

    async def __call__(self, request: Request) -> Response:
        origin = request.headers.get("origin")
        allowed = self.is_allowed(origin)

        if request.method == "OPTIONS" and "access-control-request-method" in request.headers:
            if not allowed:
                return Response(status_code=400)
            response = Response(status_code=204, headers=self._headers_for(origin))
            response.headers["Access-Control-Allow-Methods"] = self.methods
            response.headers["Access-Control-Allow-Headers"] = self.headers
            response.headers["Access-Control-Max-Age"] = str(self.max_age)
            return response

        if not allowed:
            return await self.next_handler(request)

        # Error handlers read this to decorate 401/403 responses raised further down.
        request.state.cors_headers = self._headers_for(origin)
        response = await self.next_handler(request)
        apply_cors_headers(request, response)
        return response


def apply_cors_headers(request: Request, response: Response) -> Response:
    for name, value in (getattr(request.state, "cors_headers", None) or {}).items():
        response.headers[name] = value
    return response
