# Essential imports
import asyncio
import time
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.concurrency import run_in_threadpool
from contextlib import asynccontextmanager

from routers import auth, users, mailboxes

# Import all models for SQLAlchemy relationship resolution
import models  # noqa: F401
from core.database import Base, engine, SessionLocal

# Rate limiter imports
from slowapi.errors import RateLimitExceeded
from middleware.rate_limiter import limiter

# Logging imports
from core.logging_config import setup_logging
from utils.logger import get_logger, log_request, is_sensitive_field
from middleware import RequestIDMiddleware, get_request_id, install_request_id_filter
from core.config import settings
from core.exceptions import AppException, ErrorCode
from schemas.response import ApiResponse, FieldError
from utils.deps import get_refresh_token_service

# CORS imports
from fastapi.middleware.cors import CORSMiddleware

# Initialize logging
setup_logging(
    log_level=settings.LOG_LEVEL,
    log_dir=settings.LOG_DIR
)
install_request_id_filter()

logger = get_logger(__name__)


async def sweep_expired_refresh_tokens(interval_seconds: int):
    """Delete expired refresh tokens every interval_seconds until cancelled."""
    service = get_refresh_token_service()

    def sweep():
        db = SessionLocal()
        try:
            return service.delete_expired_tokens(db)
        finally:
            db.close()

    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await run_in_threadpool(sweep)
        except Exception:
            # Keep the loop alive; the next sweep retries
            logger.exception("Expired refresh token sweep failed")


# Lifecycle events logging
@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)

    sweeper = None
    if settings.REFRESH_TOKEN_CLEANUP_INTERVAL_MINUTES > 0:
        sweeper = asyncio.create_task(
            sweep_expired_refresh_tokens(settings.REFRESH_TOKEN_CLEANUP_INTERVAL_MINUTES * 60)
        )

    logger.info("Application startup complete", extra={"event": "startup"})
    yield

    if sweeper is not None:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
    logger.info("Application shutting down", extra={"event": "shutdown"})


app = FastAPI(
    title="Email Client API",
    description="Authentication and session backend for the email client",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# HTTP Request Logging Middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every HTTP request with method, path, status code and duration.
    """
    start_time = time.time()

    response = await call_next(request)

    log_request(
        logger,
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=(time.time() - start_time) * 1000,
        client_ip=request.client.host if request.client else None
    )

    return response


# Add request ID middleware (outermost, so the id covers the logging middleware too)
app.add_middleware(RequestIDMiddleware)


# Health check
@app.get("/health")
async def health_check():
    logger.debug("Health check requested")
    return {"status": "Healthy"}


def error_response(error_code: ErrorCode, message: str | None = None,
                   errors: list[FieldError] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=error_code.status_code,
        content=ApiResponse.error(error_code, message, errors).to_json()
    )


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    logger.warning(
        f"{type(exc).__name__}: {exc.message}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_code": exc.code,
        }
    )
    return error_response(exc.error_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        # loc is ("body", "email") for body fields
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = ".".join(location) or "body"
        rejected = error.get("input")
        # Never echo back passwords and tokens
        if is_sensitive_field(field) or not isinstance(rejected, (str, int, float, bool)):
            rejected = None
        errors.append(FieldError(
            field=field,
            message=error.get("msg", "Invalid value"),
            rejected_value=rejected,
        ))

    logger.warning(
        "Request validation failed",
        extra={"path": request.url.path, "fields": [e.field for e in errors]}
    )
    return error_response(ErrorCode.VALIDATION_ERROR, errors=errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(ErrorCode.RESOURCE_NOT_FOUND)
    if exc.status_code == 405:
        return error_response(ErrorCode.METHOD_NOT_ALLOWED)
    return JSONResponse(
        status_code=exc.status_code,
        content=ApiResponse(success=False, message=str(exc.detail)).to_json()
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(
        "Rate limit exceeded",
        extra={"path": request.url.path, "limit": str(exc.detail)}
    )
    return error_response(ErrorCode.TOO_MANY_REQUESTS)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Last resort for unexpected failures (database down, bugs).

    The full stack trace goes to the log; the client only gets SYSTEM_001.
    """
    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "request_id": get_request_id(request)
        },
        exc_info=True
    )

    return error_response(ErrorCode.INTERNAL_SERVER_ERROR)


# Including routers
app.include_router(auth.router, prefix=settings.API_PREFIX)
app.include_router(users.router, prefix=settings.API_PREFIX)
app.include_router(mailboxes.router, prefix=settings.API_PREFIX)


# Add rate limiter to the app
app.state.limiter = limiter
