from functools import partial

from fastapi.responses import Response
from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from Security.auth_middleware import Authenticate
from Security.metrics import render_latest
from Security.rbac import admin_only, buyer_only, current_identity, farmer_or_admin
from Security.session_store import SessionStore

from .app_context import render_form
from .models import User


class DashboardHandler:
    """Landing pages shown after login."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def _load_user(self, user_id: int):
        db = self.session_factory()
        try:
            user = db.query(User).filter(User.id == user_id).first()
            if user is None:
                return None
            return {"id": user.id, "name": user.name, "email": user.email, "role": user.role}
        finally:
            db.close()

    async def _render(self, request: Request, title: str):
        identity = current_identity(request)
        user = await run_in_threadpool(self._load_user, identity.user_id)
        # Logout form on every page needs the CSRF token.
        return render_form(
            request,
            "dashboard.html",
            {"title": title, "user": user, "identity": identity},
        )

    async def admin_dashboard(self, request: Request):
        return await self._render(request, "Admin dashboard")

    async def farmer_dashboard(self, request: Request):
        return await self._render(request, "Farmer dashboard")

    async def buyer_home(self, request: Request):
        return await self._render(request, "Marketplace")

    async def metrics(self, request: Request):
        payload, content_type = render_latest()
        return Response(payload, media_type=content_type)


def register_dashboard_routes(router, store: SessionStore, session_factory: sessionmaker, cors) -> None:
    authenticated = partial(Authenticate, store=store)
    handler = DashboardHandler(session_factory)

    router.add("/admin/dashboard", handler.admin_dashboard, layers=[authenticated, admin_only])
    router.add("/admin/metrics", handler.metrics, layers=[authenticated, admin_only])
    router.add(
        "/farmer/dashboard",
        handler.farmer_dashboard,
        methods=["GET", "OPTIONS"],
        layers=[cors, authenticated, farmer_or_admin],
    )
    router.add(
        "/buyer/home",
        handler.buyer_home,
        methods=["GET", "OPTIONS"],
        layers=[cors, authenticated, buyer_only],
    )
