from contextlib import asynccontextmanager
from functools import partial
import logging
import os

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.responses import RedirectResponse
import uvicorn

from Security.activity_logging import ActivityLoggingMiddleware, RequestContextMiddleware
from Security.cors_security import CORS
from Security.security_config import SECURITY_SETTINGS
from Security.session_store import SessionStore, SqlSessionStore

from .dashboard_routes import register_dashboard_routes
from .database import Base, SessionLocal, engine
from .error_handlers import register_error_handlers
from .router import AppRouter
from .web_auth_routes import register_web_auth_routes

logger = logging.getLogger(__name__)


def purge_expired_sessions(store: SessionStore) -> None:
    try:
        removed = store.purge_expired()
    except Exception:
        logger.exception("Session purge failed")
        return
    if removed:
        logger.info("Purged %s expired sessions", removed)


async def root_redirect(request):
    return RedirectResponse("/buyer/login", status_code=303)


def build_router(store: SessionStore | None = None, session_factory=None, cors_origins=None) -> AppRouter:
    """Route table of the marketplace, constructed once at startup."""
    session_factory = session_factory or SessionLocal
    if store is None:
        store = SqlSessionStore(session_factory)
    cors = partial(CORS, origins=cors_origins)

    router = AppRouter(store)
    router.add("/", root_redirect, name="root")
    register_web_auth_routes(router, store, session_factory, cors)
    register_dashboard_routes(router, store, session_factory, cors)
    return router


def create_app(router: AppRouter | None = None, purge_minutes: int | None = None) -> FastAPI:
    router = router or build_router()
    if purge_minutes is None:
        purge_minutes = SECURITY_SETTINGS["SESSION_PURGE_MINUTES"]

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Base.metadata.create_all(bind=engine)
        scheduler = None
        if purge_minutes > 0 and router.store is not None:
            scheduler = BackgroundScheduler()
            scheduler.add_job(
                purge_expired_sessions,
                "interval",
                minutes=purge_minutes,
                args=[router.store],
                id="purge_sessions_job",
            )
            scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown()

    app = FastAPI(routes=router.routes, lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    register_error_handlers(app)
    # Last added runs first: request id is bound before activity is logged.
    app.add_middleware(ActivityLoggingMiddleware)
    app.add_middleware(RequestContextMiddleware)
    return app


def serve(router: AppRouter, host: str | None = None, port: int | None = None) -> None:
    host = host or os.getenv("HOST", "0.0.0.0")
    port = port or int(os.getenv("PORT", "8080"))
    logger.info("Server starting on %s:%s", host, port)
    uvicorn.run(create_app(router), host=host, port=port, proxy_headers=True)


app = create_app()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    serve(build_router())
