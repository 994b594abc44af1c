"""FastAPI application entry point with lifecycle management."""

import asyncio
import traceback
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import TokenService
from .candidate_routes import router as candidate_router
from .config import settings
from .db import Database
from .employer_routes import router as employer_router, jobs_router
from .errors import AppError, classify_integrity_error
from .logger import logger
from .mailer import Mailer, build_mailer
from .middleware import (
    graceful_shutdown_middleware,
    add_request_id_middleware,
    request_logging_middleware,
    security_headers_middleware,
)
from .monitoring import setup_monitoring
from .ratelimit import limiter, rate_limit_exceeded_handler
from .routes import router, auth_router
from .schemas import ErrorCode
from .video_routes import router as video_router

# ==================== Graceful Shutdown ====================


class GracefulShutdownManager:
    """Manages graceful shutdown of the application.

    Tracks active requests and ensures all in-flight requests complete
    before shutting down database connections.
    """

    def __init__(self):
        self.is_shutting_down = False
        self.active_requests = 0
        self.shutdown_timeout = settings.GRACEFUL_SHUTDOWN_TIMEOUT

    def request_started(self):
        """Track a new incoming request."""
        if not self.is_shutting_down:
            self.active_requests += 1

    def request_finished(self):
        """Mark a request as completed."""
        self.active_requests -= 1

    async def initiate_shutdown(self):
        """Stop accepting requests and wait (bounded) for in-flight ones."""
        if self.is_shutting_down:
            return

        logger.info("Graceful shutdown initiated")
        self.is_shutting_down = True

        if self.active_requests <= 0:
            logger.info("No active requests - proceeding with immediate shutdown")
            return

        logger.info(f"Waiting for {self.active_requests} active request(s) to complete...")
        loop = asyncio.get_running_loop()
        start_time = loop.time()
        while self.active_requests > 0:
            if loop.time() - start_time >= self.shutdown_timeout:
                logger.warning(
                    f"Shutdown timeout ({self.shutdown_timeout}s) reached with "
                    f"{self.active_requests} request(s) still active - forcing shutdown"
                )
                return
            await asyncio.sleep(0.1)
        logger.info("All active requests completed successfully")


# ==================== Application Lifecycle ====================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - handles startup and graceful shutdown."""
    logger.info(f"Starting {settings.APP_NAME} in {settings.APP_ENV} mode")
    logger.info("Database schema managed by Alembic migrations")
    logger.info(f"{settings.APP_NAME} started successfully - ready to accept requests")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await app.state.shutdown_manager.initiate_shutdown()
    await app.state.database.dispose()
    logger.info(f"{settings.APP_NAME} shutdown complete")


# ==================== Exception Handlers ====================


def _error_response(status_code: int, error: str, message: str, details=None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "message": message, "details": details or {}},
        headers=headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _error_response(exc.status_code, exc.error, exc.message, exc.details, headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return _error_response(400, ErrorCode.VALIDATION_ERROR, "Validation failed", {"errors": errors})


HTTP_ERROR_CODES = {
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    503: ErrorCode.SERVICE_UNAVAILABLE,
}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    error = HTTP_ERROR_CODES.get(exc.status_code, ErrorCode.VALIDATION_ERROR if exc.status_code < 500 else ErrorCode.INTERNAL_ERROR)
    return _error_response(exc.status_code, error, message, headers=getattr(exc, "headers", None))


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    status_code, error, message = classify_integrity_error(exc)
    logger.warning(f"Constraint violation on {request.method} {request.url.path}: {error}")
    return _error_response(status_code, error, message)


async def pool_timeout_handler(request: Request, exc: PoolTimeoutError) -> JSONResponse:
    logger.error(f"Database pool exhausted on {request.method} {request.url.path}")
    return _error_response(
        503,
        ErrorCode.SERVICE_UNAVAILABLE,
        "Service temporarily unavailable, please retry",
        headers={"Retry-After": str(settings.DB_POOL_TIMEOUT)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(
        f"[{request_id}] Unhandled error on {request.method} {request.url.path}: {str(exc)}",
        exc_info=exc,
    )
    details = {}
    if not settings.is_production:
        details["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return _error_response(500, ErrorCode.INTERNAL_ERROR, "Internal server error", details)


# ==================== Application Setup ====================


def create_app(
    database: Database | None = None,
    tokens: TokenService | None = None,
    mailer: Mailer | None = None,
    enable_monitoring: bool = True,
) -> FastAPI:
    """Build the application with its collaborators attached to ``app.state``."""
    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

    app.state.database = database or Database.from_settings(settings)
    app.state.tokens = tokens or TokenService(settings)
    app.state.mailer = mailer or build_mailer(settings)
    app.state.shutdown_manager = GracefulShutdownManager()

    # Middleware registration (first registered = innermost layer)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(add_request_id_middleware)
    app.middleware("http")(graceful_shutdown_middleware)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(PoolTimeoutError, pool_timeout_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include API routes
    app.include_router(router)
    app.include_router(auth_router)
    app.include_router(candidate_router)
    app.include_router(employer_router)
    app.include_router(jobs_router)
    app.include_router(video_router)

    # Prometheus collectors are process-global; only one app per process registers them
    if enable_monitoring:
        setup_monitoring(app)

    return app


app = create_app()
