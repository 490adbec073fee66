import os
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
import structlog

from .config import settings
from .db import Base, engine
from .logging import setup_logging, RequestIdMiddleware
from .auth.router import router as auth_router
from .routes.companies import router as companies_router
from .routes.branches import router as branches_router
from .routes.employees import router as employees_router
from .routes.tasks import router as tasks_router
from .routes.reports import router as reports_router
from .routes.messages import router as messages_router
from .routes.realtime import router as realtime_router
from .routes.dashboard import router as dashboard_router
from .routes.pages import router as pages_router, fallback_router, spa_html_middleware


log = structlog.get_logger("hrms")


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.rate_limit_enabled,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    @app.exception_handler(SQLAlchemyError)
    async def _db_error(request: Request, exc: SQLAlchemyError):
        log.error("database_error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"detail": f"Database error: {(str(exc).splitlines() or [exc.__class__.__name__])[0]}"})

    app.middleware("http")(spa_html_middleware)

    # Routers
    app.include_router(auth_router)
    app.include_router(companies_router)
    app.include_router(branches_router)
    app.include_router(employees_router)
    app.include_router(tasks_router)
    app.include_router(reports_router)
    app.include_router(messages_router)
    app.include_router(realtime_router)
    app.include_router(dashboard_router)
    app.include_router(pages_router)

    @app.get("/health", include_in_schema=False)
    def health():
        return {"status": "ok", "environment": settings.environment}

    # Metrics
    Instrumentator().instrument(app).expose(app)

    # After all API routers: built assets and the 404 page
    app.include_router(fallback_router)

    @app.on_event("startup")
    def _startup():
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
            log.info("tables_verified", tables=len(Base.metadata.tables))

    return app


app = create_app()
