"""
Habit Tracker API - Main Application
====================================

FastAPI application entry point with middleware configuration
and route registration.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import newrelic.agent

# Configure logging for the application (root logger defaults to WARNING)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.core.errors import setup_exception_handlers
from app.core.rate_limit import rate_limit
from app.db.session import close_db, init_db
from app.services.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


# =============================================================================
# New Relic Transaction Enrichment Middleware (Raw ASGI)
# =============================================================================

class NewRelicTransactionMiddleware:
    """
    Raw ASGI middleware that adds custom attributes to every New Relic
    transaction: response status, latency, HTTP method, route pattern and
    user ID (when authenticated).

    Raw ASGI keeps the route handler in the same task, so New Relic's
    contextvars-based spans for DB and Redis calls stay attached.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration_ms = (time.perf_counter() - start) * 1000

            txn = newrelic.agent.current_transaction()
            if txn:
                # Route pattern (e.g. "/api/v1/habits/{habit_id}") for grouping
                route = scope.get("route")
                route_path = route.path if route else scope.get("path", "unknown")

                client = scope.get("client")
                client_ip = client[0] if client else "unknown"

                newrelic.agent.add_custom_attributes([
                    ("http.method", scope.get("method", "")),
                    ("http.route", route_path),
                    ("http.status_code", status_code),
                    ("http.duration_ms", round(duration_ms, 2)),
                    ("http.client_ip", client_ip),
                    ("environment", settings.ENVIRONMENT),
                ])

                # Set by get_current_user
                state = scope.get("state")
                user_id = state.get("user_id") if isinstance(state, dict) else None
                if user_id:
                    newrelic.agent.add_custom_attribute("enduser.id", str(user_id))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Opens and closes the database engine and the Redis client used by the
    rate limiter. Startup continues when either is unreachable so health
    checks keep answering.
    """
    logger.info("Starting Habit Tracker API (%s)", settings.ENVIRONMENT)

    try:
        await init_db()
    except Exception as e:
        logger.warning("Database connection failed: %s", e)

    try:
        await init_redis()
    except Exception as e:
        # The rate limiter fails open without Redis
        logger.warning("Redis connection failed: %s", e)

    yield

    logger.info("Shutting down Habit Tracker API")
    await close_db()
    await close_redis()


# Create FastAPI application
app = FastAPI(
    title="Habit Tracker API",
    description="""
## Multi-tenant Habit Tracking Backend

### Features
- **Authentication**: Email/password with bearer tokens
- **Habits**: Daily, monthly and annual habits with completion history
- **Tags**: Personal tags plus shared system tags, attached to habits

### Rate Limits
- 10 requests per 30 seconds per user (or per IP when anonymous)
    """,
    version="1.0.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
    responses={
        401: {"description": "Not authenticated"},
        403: {"description": "Permission denied"},
        404: {"description": "Resource not found"},
        409: {"description": "Resource conflict"},
        422: {"description": "Validation error"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Internal server error"},
        503: {"description": "Storage temporarily unavailable"},
    },
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# New Relic transaction enrichment (adds custom attrs to every transaction)
app.add_middleware(NewRelicTransactionMiddleware)

# Setup exception handlers
setup_exception_handlers(app)


# =============================================================================
# Health Check Endpoints
# =============================================================================

@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """
    Health check endpoint.
    """
    return {
        "status": "healthy",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
    }


@app.get("/", tags=["Health"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "Habit Tracker API",
        "version": "1.0.0",
        "docs": "/docs" if settings.is_development else "Disabled in production",
    }


# =============================================================================
# API Routes
# =============================================================================

from app.api.v1 import auth, habits, tags, users

rate_limited = [Depends(rate_limit)]

app.include_router(
    auth.router, prefix="/api/v1/auth", tags=["Authentication"], dependencies=rate_limited
)
app.include_router(
    users.router, prefix="/api/v1/users", tags=["Users"], dependencies=rate_limited
)
app.include_router(
    habits.router, prefix="/api/v1/habits", tags=["Habits"], dependencies=rate_limited
)
app.include_router(
    tags.router, prefix="/api/v1/tags", tags=["Tags"], dependencies=rate_limited
)
