"""
FastAPI API Server.

REST API for the appointment and call dashboard: bookings, call activity,
analytics, user and organization administration, plus live collections over
WebSocket.

Start with:
    uvicorn src.api_server:app --reload --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv
load_dotenv(".env.local")

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.analytics import router as analytics_router
from src.api.appointments import router as appointments_router
from src.api.auth import router as auth_router
from src.api.calls import router as calls_router
from src.api.live import router as live_router
from src.api.middleware import RateLimitMiddleware, RequestIdMiddleware
from src.api.organizations import router as organizations_router
from src.api.users import router as users_router
from src.config import get_settings
from src.errors import DashboardError, ValidationError
from src.logging_config import get_logger, setup_logging
from src.realtime import ChangeFeed

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle hooks."""
    settings = get_settings()
    logger.info("api_server_starting", environment=settings.environment.value)
    if not hasattr(app.state, "feed"):
        app.state.feed = ChangeFeed(settings)
    yield
    await app.state.feed.close()
    logger.info("api_server_stopping")


app = FastAPI(
    title="Appointment Dashboard API",
    description="Appointments, call activity and analytics for client organizations",
    version="0.1.0",
    lifespan=lifespan,
)

# Middleware (last added runs first)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DashboardError)
async def dashboard_error_handler(request: Request, exc: DashboardError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=str(exc))
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = {
        ".".join(str(part) for part in err["loc"] if part != "body") or "body": err["msg"]
        for err in exc.errors()
    }
    error = ValidationError(field_errors=fields)
    return JSONResponse(error.to_dict(), status_code=error.status_code)


# Routers
app.include_router(auth_router)
app.include_router(appointments_router)
app.include_router(calls_router)
app.include_router(analytics_router)
app.include_router(users_router)
app.include_router(organizations_router)
app.include_router(live_router)


@app.get("/health", tags=["System"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "service": "appointment-dashboard"}


@app.get("/", tags=["System"])
async def root() -> dict[str, str]:
    """API root."""
    return {
        "service": "Appointment Dashboard",
        "version": "0.1.0",
        "docs": "/docs",
    }
