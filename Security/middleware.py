"""
ROUTE MIDDLEWARE COMPOSITION
============================
Per-route layers wrapped around a handler.

A handler is an async callable taking a Request and returning a Response.
A layer is any callable taking the next handler and returning a handler.
Layer classes receive the next handler as their first constructor argument;
bind their other dependencies with functools.partial:

    layers = [partial(CORS, origins=origins), partial(Authenticate, store=store), admin_only]
    handler = chain(dashboard, *layers)
"""

from __future__ import annotations

from typing import Awaitable, Callable

from starlette.requests import Request
from starlette.responses import Response

Handler = Callable[[Request], Awaitable[Response]]
Layer = Callable[[Handler], Handler]

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})


def chain(handler: Handler, *layers: Layer) -> Handler:
    """Wrap handler in layers; the first layer runs first."""
    for layer in reversed(layers):
        handler = layer(handler)
    return handler
