"""
Provider Reservation API - Main Application Entry Point

Reserves fixed-duration time slots with service providers:
- Overlap-free admission per provider (provider lock row + row locks)
- Reservation lifecycle state machine with an append-only audit trail
- Deterministic Decimal pricing
- Redis caching of provider daily schedules
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reservation_api.core.config import get_settings
from reservation_api.core.exceptions import ReservationError
from reservation_api.core.logging import setup_logging, get_logger
from reservation_api.core.metrics import metrics_endpoint
from reservation_api.api.router import api_router
from reservation_api.api.middleware import REQUEST_ID_HEADER, RequestLoggingMiddleware
from reservation_api.services.cache_service import get_redis, close_redis, get_cache_stats

settings = get_settings()
logger = get_logger(__name__)


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

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    yield

    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Provider time-slot reservations with conflict-free admission",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER, "Retry-After"],
)

# Custom middleware
app.add_middleware(RequestLoggingMiddleware)

# Routes
app.include_router(api_router)


def _error_body(request: Request, code: str, message: str, details) -> dict:
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": getattr(request.state, "request_id", None),
        },
    }


@app.exception_handler(ReservationError)
async def reservation_error_handler(request: Request, exc: ReservationError):
    if exc.status_code >= 500:
        logger.error("reservation_error", code=exc.error_code, detail=exc.detail)
    else:
        logger.info("reservation_rejected", code=exc.error_code, detail=exc.detail)

    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.error_code, exc.detail, exc.extra_data),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=_error_body(
            request, "VALIDATION_ERROR", "Request validation failed.", jsonable_encoder(exc.errors())
        ),
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
