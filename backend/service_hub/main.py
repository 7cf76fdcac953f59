"""
FastAPI application entry point for the Shivalik Service Hub backend.

Wires configuration, logging, CORS with origin pattern matching, the
MongoDB-backed session middleware, the API route groups and the
Socket.IO server. ``socket_app`` is the ASGI application to serve.
"""

import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from service_hub.api.routes import admin, auth, cart, payment, products, stats, user_auth
from service_hub.core.config import get_settings
from service_hub.core.cors import CORS_HEADERS, CORS_METHODS, OriginPolicy, OriginPolicyCORSMiddleware
from service_hub.core.logging import (
    clear_context,
    configure_logging,
    get_logger,
    get_request_id,
    log_performance,
    set_request_id,
)
from service_hub.core.rate_limit import limiter
from service_hub.core.sessions import SessionMiddleware
from service_hub.database.connection import (
    DatabaseConnectionError,
    close_database_connection,
    connect_to_database,
    ensure_indexes,
    ping_database,
)
from service_hub.database.session_store import MongoSessionStore
from service_hub.realtime.server import create_asgi_app, create_realtime_server
from service_hub.services.auth.repository import AdminRepository
from service_hub.services.notifications.email import verify_email_transport

# Configure logging before application initialization
configure_logging()
logger = get_logger(__name__)

settings = get_settings()
origin_policy = OriginPolicy(settings.cors_origins, settings.cors_origin_pattern)
session_store = MongoSessionStore(settings.session_collection)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Connect to MongoDB and verify external services on startup.

    The process exits with status 1 when MongoDB is unreachable; the
    mail transport check only logs.
    """
    logger.info(
        "Application starting",
        environment=settings.environment,
        debug=settings.debug,
        version=settings.app_version,
    )

    with log_performance(logger, "application_startup"):
        try:
            database = await connect_to_database()
        except DatabaseConnectionError as e:
            logger.error("MongoDB connection failed", error=str(e), **e.context)
            raise SystemExit(1) from e

        await ensure_indexes(database, settings.session_collection)

        if settings.admin_username and settings.admin_password:
            await AdminRepository(database).ensure_admin(
                settings.admin_username, settings.admin_password
            )

        await verify_email_transport()

    logger.info(
        "Server ready",
        port=settings.port,
        allowed_origins=list(settings.cors_origins),
        origin_pattern=settings.cors_origin_pattern,
    )

    yield

    logger.info("Application shutting down")
    await close_database_connection()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Shivalik Service Hub backend API",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=settings.debug,
)

# Configure rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """
    Middleware for request logging and correlation ID management.

    Sets request ID for correlation, logs request details, and measures
    response time. Clears context after request processing.
    """
    request_id = set_request_id(request.headers.get("X-Request-ID"))

    logger.info(
        "Request received",
        method=request.method,
        path=request.url.path,
        origin=request.headers.get("origin"),
    )

    try:
        with log_performance(
            logger,
            "request_processing",
            method=request.method,
            path=request.url.path,
        ):
            response = await call_next(request)

        response.headers["X-Request-ID"] = request_id

        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )
        return response
    finally:
        clear_context()


# Starlette runs the last added middleware first: CORS, then sessions.
app.add_middleware(
    SessionMiddleware,
    store=session_store,
    secret_key=settings.session_secret,
    cookie_name=settings.session_cookie_name,
    max_age=settings.session_max_age_seconds,
    touch_after=settings.session_touch_after_seconds,
    same_site=settings.cookie_samesite,
    https_only=settings.cookie_secure,
)
app.add_middleware(
    OriginPolicyCORSMiddleware,
    policy=origin_policy,
    allow_methods=CORS_METHODS,
    allow_headers=CORS_HEADERS,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return validation errors as structured JSON."""
    logger.warning(
        "Request validation failed",
        method=request.method,
        path=request.url.path,
        errors=exc.errors(),
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation Error",
            "message": "Request validation failed",
            "details": jsonable_encoder(exc.errors()),
            "request_id": get_request_id(),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with structured error response.

    Logs error with full context and returns generic error message
    to avoid exposing internal details.
    """
    logger.error(
        "Unhandled exception",
        method=request.method,
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred",
            "request_id": get_request_id(),
        },
    )


@app.get("/", tags=["Health"], summary="API information")
async def root() -> dict:
    return {
        "message": "Shivalik Service Hub Backend API",
        "cors": "Configured with pattern matching for Vercel deployments",
        "allowedOrigins": list(settings.cors_origins),
        "vercelPattern": settings.cors_origin_pattern,
    }


@app.get(
    "/health",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Health check endpoint",
)
async def health_check(request: Request) -> dict[str, str]:
    """
    Basic health check endpoint.

    Always returns 200 OK while the process is serving; echoes the Origin
    header to help diagnose CORS setups.
    """
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "origin": request.headers.get("origin") or "No origin header",
    }


@app.get(
    "/ready",
    tags=["Health"],
    summary="Readiness check endpoint",
)
async def readiness_check():
    """Report whether MongoDB answers; 503 when it does not."""
    if not await ping_database():
        logger.warning("Readiness check failed", database="unhealthy")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "database": "unhealthy"},
        )
    return {"status": "ready", "database": "healthy"}


app.include_router(auth.router, prefix="/api/auth")
app.include_router(products.router, prefix="/api/products")
app.include_router(admin.router, prefix="/api/admin")
app.include_router(user_auth.router, prefix="/api/user-auth")
app.include_router(cart.router, prefix="/api/cart")
app.include_router(payment.router, prefix="/api/payment")
app.include_router(stats.router, prefix="/api/stats")

sio = create_realtime_server(origin_policy)
app.state.sio = sio
socket_app = create_asgi_app(sio, app)


def run() -> None:
    """
    Serve the application with uvicorn.

    Exits with status 1 when startup fails, e.g. MongoDB is unreachable.
    uvicorn swallows the ``SystemExit`` raised in ``lifespan`` and would
    otherwise exit with its own startup-failure status.
    """
    if settings.reload:
        uvicorn.run(
            "service_hub.main:socket_app",
            host=settings.host,
            port=settings.port,
            reload=True,
            log_level=settings.log_level.lower(),
        )
        return

    config = uvicorn.Config(
        socket_app,
        host=settings.host,
        port=settings.port,
        lifespan="on",
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config)
    server.run()

    if not server.started:
        logger.error("Server failed to start", port=settings.port)
        sys.exit(1)


if __name__ == "__main__":
    run()
