"""
Smart LMS document-store API
Pass-through REST endpoints over users, courses, progress and chat sessions
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from routes import bootstrap, users, courses, progress, chats
from config import settings
from db import init_db
from schemas import ErrorResponse

from utils.structured_logging import (
    configure_logging,
    get_logger,
    log_request_middleware,
    LogCategory,
)

configure_logging(level=settings.LOG_LEVEL)
logger = get_logger("app")

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Document store ready", category=LogCategory.SYSTEM, extra={"port": settings.PORT})
    yield


app = FastAPI(
    title="Smart LMS API",
    description="Document store for users, courses, progress and chat sessions",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# CORS configuration - Load from environment
origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials="*" not in origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Correlation-ID"],
)


# Structured logging middleware - adds correlation IDs and logs all requests
@app.middleware("http")
async def structured_logging_middleware(request: Request, call_next):
    return await log_request_middleware(request, call_next)


def _error_response(request: Request, status_code: int, error, detail=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            detail=detail,
            status_code=status_code,
            request_id=getattr(request.state, "request_id", None),
            correlation_id=getattr(request.state, "correlation_id", None),
        ).model_dump(),
    )


# Global exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with proper structure and logging"""
    errors = [
        {"field": ".".join(str(loc) for loc in error["loc"]), "message": error["msg"], "code": error["type"]}
        for error in exc.errors()
    ]

    logger.warning(
        "Validation error",
        category=LogCategory.ERROR,
        request_method=request.method,
        request_path=request.url.path,
        error_type="ValidationError",
        error_message=f"{len(errors)} validation errors",
        extra={"errors": errors},
    )
    return _error_response(request, 422, "Validation Error", errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with proper structure and logging"""
    if exc.status_code >= 500:
        logger.error(
            f"HTTP {exc.status_code} error",
            category=LogCategory.ERROR,
            request_method=request.method,
            request_path=request.url.path,
            response_status=exc.status_code,
            error_message=str(exc.detail),
        )
    elif exc.status_code >= 400:
        logger.warning(
            f"HTTP {exc.status_code} client error",
            category=LogCategory.ERROR,
            request_method=request.method,
            request_path=request.url.path,
            response_status=exc.status_code,
            error_message=str(exc.detail),
        )

    return _error_response(request, exc.status_code, exc.detail, exc.detail)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with structured logging"""
    logger.critical(
        "Unexpected server error",
        category=LogCategory.ERROR,
        exception=exc,
        request_method=request.method,
        request_path=request.url.path,
    )
    return _error_response(
        request, 500, "Internal Server Error", "An unexpected error occurred. Please try again later."
    )


app.include_router(bootstrap.router, prefix="/api", tags=["Bootstrap"])
app.include_router(users.router, prefix="/api", tags=["Users"])
app.include_router(courses.router, prefix="/api", tags=["Courses"])
app.include_router(progress.router, prefix="/api", tags=["Progress"])
app.include_router(chats.router, prefix="/api", tags=["Chats"])


@app.get("/", tags=["System"])
async def root():
    """Service information"""
    return {
        "name": "Smart LMS API",
        "version": API_VERSION,
        "status": "operational",
        "documentation": {"swagger": "/docs", "redoc": "/redoc", "openapi_spec": "/openapi.json"},
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "endpoints": ["/api/init", "/api/seed", "/api/users", "/api/courses", "/api/progress", "/api/chats"],
    }


@app.get("/health", tags=["System"])
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": API_VERSION,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
