from functools import partial

from fastapi.responses import RedirectResponse
from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from Security.audit_trail import audit
from Security.auth_middleware import Authenticate
from Security.csrf_protection import CSRFProtect
from Security.rbac import current_identity, require_roles
from Security.session_security import end_session, start_session
from Security.session_store import SessionStore

from .app_context import landing_page_for, render_form
from .auth import authenticate_user, normalize_email
from .models import ROLES


class WebAuthHandler:
    """Login and logout pages for one role."""

    def __init__(self, role: str, store: SessionStore, session_factory: sessionmaker):
        self.role = role
        self.store = store
        self.session_factory = session_factory

    def _authenticate(self, email: str, password: str):
        db = self.session_factory()
        try:
            user = authenticate_user(db, email, password, self.role)
            return (user.id, user.role) if user else None
        finally:
            db.close()

    async def login_page(self, request: Request):
        return render_form(request, "auth/login.html", {"role": self.role})

    async def login_submit(self, request: Request):
        form = await request.form()
        email = normalize_email(form.get("email"))
        password = form.get("password") or ""

        result = await run_in_threadpool(self._authenticate, email, password)
        if result is None:
            audit("auth_login_failed", details=f"role={self.role}")
            return render_form(
                request,
                "auth/login.html",
                {"role": self.role, "email": email, "error": "Invalid credentials"},
                status_code=401,
            )

        user_id, role = result
        response = RedirectResponse(landing_page_for(role), status_code=303)
        await start_session(response, self.store, user_id, role)
        audit("auth_login_success", user_id=user_id, details=f"role={role}")
        return response

    async def logout(self, request: Request):
        identity = current_identity(request)
        response = RedirectResponse(f"/{self.role}/login", status_code=303)
        await end_session(request, response, self.store)
        audit("auth_logout", user_id=identity.user_id, details=f"role={identity.role}")
        return response


def register_web_auth_routes(router, store: SessionStore, session_factory: sessionmaker, cors) -> None:
    authenticated = partial(Authenticate, store=store)
    for role in ROLES:
        handler = WebAuthHandler(role, store, session_factory)
        # Admin pages are same-origin only; farmer and buyer pages accept CORS.
        outer = [] if role == "admin" else [cors]
        router.add(f"/{role}/login", handler.login_page, methods=["GET"], layers=outer, name=f"{role}_login_page")
        router.add(
            f"/{role}/login",
            handler.login_submit,
            methods=["POST", "OPTIONS"] if outer else ["POST"],
            layers=[*outer, CSRFProtect],
            name=f"{role}_login",
        )
        router.add(
            f"/{role}/logout",
            handler.logout,
            methods=["POST", "OPTIONS"] if outer else ["POST"],
            layers=[*outer, CSRFProtect, authenticated, require_roles(role)],
            name=f"{role}_logout",
        )
