"""FastAPI application entrypoint — lifespan, routers, middleware."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from app.config import get_settings
from app.database import engine
from app.middleware.logging import RequestLoggingMiddleware, configure_structured_logging
from app.middleware.rate_limit import RateLimitMiddleware
from app.routes import plans

logger = structlog.get_logger("cropcycle")

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup / shutdown lifecycle.

    Startup:
      1. Initialize structured logging
      2. Verify database connectivity
      3. Connect to Redis (generation rate limiting)

    Shutdown:
      1. Close Redis connection pool
      2. Dispose SQLAlchemy engine
    """
    settings = get_settings()
    configure_structured_logging(settings)
    logger.info(
        "cropcycle_starting",
        log_level=settings.log_level,
        text_generation_configured=bool(settings.anthropic_api_key),
    )

    redis: Redis | None = None
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))

        redis = Redis.from_url(settings.redis_url, decode_responses=True)
        await redis.ping()
        app.state.redis = redis
    except Exception as exc:
        logger.exception("startup_failure", error=str(exc))
        raise

    yield

    logger.info("cropcycle_shutting_down")
    if redis is not None:
        await redis.aclose()
    await engine.dispose()


async def _run_readiness_checks(app: FastAPI) -> dict[str, dict[str, Any]]:
    checks: dict[str, dict[str, Any]] = {}
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
        checks["database"] = {"ok": True, "message": "ok"}
    except Exception as exc:
        checks["database"] = {"ok": False, "message": str(exc)}

    redis_client = getattr(app.state, "redis", None)
    if redis_client is None:
        checks["redis"] = {"ok": False, "message": "not connected"}
    else:
        try:
            await redis_client.ping()
            checks["redis"] = {"ok": True, "message": "ok"}
        except Exception as exc:
            checks["redis"] = {"ok": False, "message": str(exc)}
    return checks


app = FastAPI(
    title="CropCycle API",
    description=(
        "Crop lifecycle plan engine. Turns farm parameters into a dated sequence "
        "of cultivation tasks, with generated plans backed by an offline fallback, "
        "and tracks step completion and progress."
    ),
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── Middleware ──────────────────────────────────────────────────────────────
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


# ── Health checks ───────────────────────────────────────────────────────────
@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Liveness only; the database and Redis are not contacted."""
    return {
        "status": "ok",
        "service": "cropcycle",
        "version": VERSION,
    }


@app.get("/health/ready", tags=["system"])
async def readiness_check() -> JSONResponse:
    """Readiness — database and Redis must both answer."""
    checks = await _run_readiness_checks(app)
    ready = all(check["ok"] for check in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ok" if ready else "degraded", "checks": checks},
    )


# ── Router registration ────────────────────────────────────────────────────
app.include_router(plans.router, prefix="/api/v1")
