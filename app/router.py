"""
Explicit route table.

Built once at startup and handed to create_app(); every route lists the
layers wrapped around its handler, first layer outermost.
"""

from __future__ import annotations

from typing import Iterable, List

from starlette.requests import Request
from starlette.routing import BaseRoute, Route

from Security.middleware import Handler, Layer, chain


class AppRouter:
    def __init__(self, store=None):
        # Session store the routes were built with; used by the purge job.
        self.store = store
        self._routes: List[BaseRoute] = []

    def add(
        self,
        path: str,
        handler: Handler,
        methods: Iterable[str] = ("GET",),
        layers: Iterable[Layer] = (),
        name: str | None = None,
    ) -> None:
        wrapped = chain(handler, *layers)

        async def endpoint(request: Request):
            return await wrapped(request)

        self._routes.append(Route(path, endpoint, methods=list(methods), name=name or path))

    @property
    def routes(self) -> List[BaseRoute]:
        return list(self._routes)

    def paths(self) -> List[str]:
        return [route.path for route in self._routes]
