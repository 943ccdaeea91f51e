"""FastAPI main application for the CAFFE Observer Platform."""
# type: ignore

import time
from contextlib import asynccontextmanager

import asyncpg
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from google.api_core.exceptions import GoogleAPIError
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.routes import (
    alerts,
    analytics,
    assignments,
    audit,
    auth,
    certificate_templates,
    certificates,
    check_ins,
    documents,
    monitoring,
    notifications,
    parishes,
    polling_stations,
    quizzes,
    reports,
    sentiment,
    settings as settings_routes,
    traffic,
    training,
    training_ai,
    training_resources,
    users,
)
from app.core.config import settings
from app.core.database import close_db_pool, get_pool, init_db_pool
from app.core.logging_config import get_logger, setup_logging
from app.core.responses import error_response, error_response_dict, success_response
from app.services import event_tracking
from app.utils.spaces import ensure_bucket_exists, get_s3_client

setup_logging()
logger = get_logger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "img-src 'self' data: https:; "
            "connect-src 'self' https:; "
            "frame-ancestors 'none'"
        )

        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains; preload"
            )

        # Observers share their location when checking in
        response.headers["Permissions-Policy"] = (
            "geolocation=(self), camera=(self), microphone=(), payment=()"
        )

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database pool and prepare storage and event tracking."""
    logger.info("Starting CAFFE Observer Platform...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    if settings.ENVIRONMENT != "test":
        await init_db_pool(settings)

        try:
            ensure_bucket_exists()
            logger.info(f"Document storage ready: {settings.SPACES_BUCKET}")
        except Exception as e:
            logger.warning(f"Could not initialize storage bucket: {e}")

        try:
            if await event_tracking.initialize():
                logger.info(f"BigQuery event tracking ready: {settings.BIGQUERY_DATASET}")
        except GoogleAPIError as e:
            logger.warning(f"Could not initialize BigQuery event tracking: {e}")

    yield

    if settings.ENVIRONMENT != "test":
        await close_db_pool()
    logger.info("Shutting down CAFFE Observer Platform...")


app = FastAPI(
    title="CAFFE Observer Platform",
    description="""
    **CAFFE Observer Platform** - Election observation management for Jamaica

    Features:
    - Observer registration, roles and polling station assignments
    - Geofenced check-ins at polling stations
    - Incident, routine and final reports with document uploads
    - Critical incident alerts with escalation
    - Observer training courses, quizzes and verifiable certificates
    - Social media sentiment monitoring
    - Polling station geocoding and traffic conditions
    - Per-parish operational analytics

    ## Authentication

    Most endpoints require a JWT in the Authorization header:

    ```
    Authorization: Bearer <your_jwt_token>
    ```

    ## Roles

    - **admin**: Full access, including user management, exports and settings
    - **coordinator**: Manages assignments, reviews reports and responds to alerts
    - **observer**: Checks in, submits reports and completes training

    ## API Versioning

    - `/api/v1/*` - Version 1 (current stable)
    - `/api/*` - Latest version
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(SecurityHeadersMiddleware)

if settings.ENVIRONMENT == "development":
    logger.info("CORS: development mode, allowing all origins")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
        expose_headers=["*"],
    )
else:
    logger.info(f"CORS: allowed origins {settings.cors_origins_list}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["Authorization", "Content-Type", "Accept", "Origin", "User-Agent"],
        expose_headers=["Content-Disposition"],
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Render HTTP exceptions in the standard error envelope."""
    if isinstance(exc.detail, dict):
        return error_response_dict(exc.detail, exc.status_code)
    return error_response_dict(
        {"success": False, "message": exc.detail, "data": None, "errors": None},
        exc.status_code,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    errors = {}
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors[field] = error["msg"]

    return error_response_dict(
        {"success": False, "message": "Validation failed", "data": None, "errors": errors},
        422,
    )


@app.exception_handler(asyncpg.exceptions.PostgresError)
async def database_exception_handler(request: Request, exc: asyncpg.exceptions.PostgresError):
    logger.error(f"Database error: {exc}", exc_info=True)
    return error_response_dict(
        {"success": False, "message": "Database error occurred", "data": None, "errors": None},
        500,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return error_response_dict(
        {
            "success": False,
            "message": "An unexpected error occurred",
            "data": None,
            "errors": None,
        },
        500,
    )


ROUTERS = [
    auth.router,
    users.router,
    parishes.router,
    polling_stations.router,
    assignments.router,
    check_ins.router,
    reports.router,
    documents.router,
    training.router,
    training_resources.router,
    quizzes.router,
    training_ai.router,
    certificates.router,
    certificate_templates.router,
    sentiment.router,
    monitoring.router,
    traffic.router,
    analytics.router,
    analytics.dashboard_router,
    alerts.router,
    notifications.router,
    audit.router,
    settings_routes.router,
]

v1_router = APIRouter(prefix="/api/v1")
latest_router = APIRouter(prefix="/api")
for router in ROUTERS:
    v1_router.include_router(router)
    latest_router.include_router(router)

app.include_router(v1_router)
app.include_router(latest_router)


@app.get("/health")
async def health_check():
    """
    Health check for monitoring and load balancers.

    Returns 200 when the database answers, 503 otherwise. Storage problems
    only mark the storage check as degraded.
    """
    health_status = {"status": "healthy", "timestamp": time.time(), "checks": {}}
    all_healthy = True

    health_status["checks"]["api"] = {"status": "healthy", "message": "API is running"}

    try:
        pool = get_pool()
        if pool is None:
            raise RuntimeError("Database pool is not initialized")
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")

        pool_size = pool.get_size()
        pool_idle = pool.get_idle_size()
        health_status["checks"]["database"] = {
            "status": "healthy",
            "message": "Database is accessible",
            "pool": {
                "size": pool_size,
                "max": pool.get_max_size(),
                "idle": pool_idle,
                "active": pool_size - pool_idle,
            },
        }
    except (asyncpg.PostgresError, OSError, RuntimeError) as e:
        all_healthy = False
        health_status["checks"]["database"] = {
            "status": "unhealthy",
            "message": f"Database check failed: {e!s}",
        }

    try:
        get_s3_client().head_bucket(Bucket=settings.SPACES_BUCKET)
        health_status["checks"]["storage"] = {
            "status": "healthy",
            "message": "Storage is accessible",
            "bucket": settings.SPACES_BUCKET,
        }
    except Exception as e:
        health_status["checks"]["storage"] = {
            "status": "degraded",
            "message": f"Storage check warning: {e!s}",
        }

    if not all_healthy:
        health_status["status"] = "unhealthy"
        raise error_response(message="Health check failed", data=health_status, status_code=503)

    return success_response(data=health_status)
