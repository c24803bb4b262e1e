"""ASGI entry point: ``uvicorn autoshop.main:app``."""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from autoshop.api import (
    admin_router,
    appointments_router,
    auth_router,
    notifications_router,
    projects_router,
    tasks_router,
    time_logs_router,
    vehicles_router,
)
from autoshop.config import settings
from autoshop.database import engine, lifespan_db
from autoshop.utils.logging import get_logger, setup_logging

setup_logging(debug=settings.debug)
logger = get_logger("main")

ROUTERS = (
    (auth_router, "/auth", "Authentication"),
    (vehicles_router, "/vehicles", "Vehicles"),
    (appointments_router, "/appointments", "Appointments"),
    (projects_router, "/projects", "Projects"),
    (tasks_router, "/tasks", "Tasks"),
    (time_logs_router, "/time-logs", "Time Logs"),
    (admin_router, "/admin", "Admin"),
    (notifications_router, "/notifications", "Notifications"),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with lifespan_db():
        logger.info("application_started", version=settings.app_version, driver=engine.dialect.driver)
        yield
    logger.info("application_stopped")


async def bind_request_context(request: Request, call_next):
    """Tag every log line emitted while serving a request with its id and route."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, method=request.method, path=request.url.path)
    started = time.perf_counter()

    response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    if response.status_code >= 400:
        logger.info(
            "request_failed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
    return response


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Appointments, service projects and completion reports for a vehicle service shop",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.middleware("http")(bind_request_context)

    for router, path, tag in ROUTERS:
        application.include_router(router, prefix=f"{settings.api_prefix}{path}", tags=[tag])
    return application


app = create_app()


@app.get("/health", tags=["Health"])
async def health_check():
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("database_unreachable", error=str(exc))
        return {"status": "degraded", "database": "unreachable", "version": settings.app_version}
    return {"status": "healthy", "database": "connected", "version": settings.app_version}
