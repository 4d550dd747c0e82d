import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from edulearn.accounting.cache import TTLCache
from edulearn.accounting.routes import router as accounting_router
from edulearn.accounting.service import TokenAccountant
from edulearn.auth.deps import get_db
from edulearn.auth.oauth import router as oauth_router
from edulearn.auth.routes import router as auth_router
from edulearn.config import settings, validate_runtime_config
from edulearn.db.seed import seed_catalog
from edulearn.db.session import SessionLocal, init_db
from edulearn.events.routes import router as events_router
from edulearn.llm.routes import router as llm_router
from edulearn.middleware.ratelimit import FixedWindowRateLimiter, RateLimitMiddleware
from edulearn.models.event import Event
from edulearn.models.resource import Resource
from edulearn.models.user import User
from edulearn.resources.routes import router as resources_router
from edulearn.users.routes import router as users_router
from edulearn.utils.log import configure_logging

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    validate_runtime_config(settings)

    app = FastAPI(title=settings.app_name)

    app.state.rate_limiter = FixedWindowRateLimiter()
    app.state.accountant = TokenAccountant(TTLCache(settings.token_status_cache_seconds), settings.token_limit)
    app.state.models_cache = TTLCache(settings.models_cache_seconds)
    app.state.http_transport = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(
        RateLimitMiddleware,
        limiter=app.state.rate_limiter,
        window_seconds=settings.rate_limit_window_seconds,
        max_calls=settings.rate_limit_max_calls,
        trusted_proxies=settings.trusted_proxy_list,
        include_path_prefixes=("/openrouter/chat",),
    )

    # fixed /auth paths must be registered before /auth/{provider}
    app.include_router(auth_router)
    app.include_router(oauth_router)
    app.include_router(accounting_router)
    app.include_router(users_router)
    app.include_router(llm_router)
    app.include_router(resources_router)
    app.include_router(events_router)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.on_event("startup")
    def on_startup():
        init_db()
        if settings.seed_demo_data:
            db = SessionLocal()
            try:
                seed_catalog(db)
            finally:
                db.close()

    @app.get("/", tags=["root"])
    def root():
        return {"name": settings.app_name, "env": settings.app_env}

    @app.get("/health", tags=["root"])
    def health(db: Session = Depends(get_db)):
        try:
            db.execute(text("SELECT 1"))
            counts = {
                "users": db.query(User).count(),
                "resources": db.query(Resource).count(),
                "events": db.query(Event).count(),
            }
        except SQLAlchemyError:
            logger.exception("Health check failed")
            return JSONResponse(
                status_code=503,
                content={"status": "error", "database": "unavailable"},
            )
        return {
            "status": "ok",
            "database": "connected",
            "counts": counts,
            "server_api_key": bool(settings.openrouter_api_key),
        }

    return app


app = create_app()
