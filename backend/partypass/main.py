"""
PartyPass API - Main Application Entry Point

Event ticketing for party organisers:
- Sellers issue QR tickets against an admin-set quota
- Door staff redeem each ticket exactly once, even under concurrent scans
- Approval and ticket notifications over email and WhatsApp
- Structured logging with request correlation and Prometheus metrics
"""

import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from partypass.api.middleware import RequestLoggingMiddleware
from partypass.api.router import api_router
from partypass.core.config import get_settings
from partypass.core.logging import get_logger, setup_logging
from partypass.core.metrics import metrics_endpoint
from partypass.db.base import Base
from partypass.db.session import AsyncSessionLocal, engine
from partypass.services.auth_service import seed_admin
from partypass.services.channel_factory import build_dispatcher
from partypass.services.interfaces.rate_limiter import RateLimiter
from partypass.services.rate_limit_service import build_rate_limiter

import partypass.models  # noqa: F401  (registers tables on Base.metadata)

settings = get_settings()
logger = get_logger(__name__)


async def sweep_rate_limiter(limiter: RateLimiter, interval: float) -> None:
    """Drop expired rate-limit windows until cancelled."""
    while True:
        await asyncio.sleep(interval)
        removed = await limiter.sweep()
        if removed:
            logger.debug("rate_limit_swept", removed=removed)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    if settings.DB_AUTO_CREATE:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_schema_ready")

    async with AsyncSessionLocal() as db:
        await seed_admin(db)

    sweeper = asyncio.create_task(
        sweep_rate_limiter(app.state.rate_limiter, settings.RATE_LIMIT_SWEEP_INTERVAL_SECONDS)
    )

    yield

    # Cleanup
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper
    await app.state.rate_limiter.close()
    await engine.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event ticketing API with quota-safe issuance and single-use redemption",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.state.rate_limiter = build_rate_limiter(settings)
app.state.notifier = build_dispatcher(settings)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_exception", error=str(exc))
    message = "Internal server error" if settings.ENVIRONMENT == "production" else str(exc)
    return JSONResponse(status_code=500, content={"error": message})


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Custom middleware
app.add_middleware(RequestLoggingMiddleware)

# Routes
app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "rate_limiter": app.state.rate_limiter.__class__.__name__,
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"{settings.APP_NAME} running",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
