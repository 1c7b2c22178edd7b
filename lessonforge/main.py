"""
LessonForge

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lessonforge.api.deps import get_request_id
from lessonforge.api.middleware import RateLimitMiddleware, RequestIdMiddleware, REQUEST_ID_HEADER
from lessonforge.api.v1 import router as api_v1_router
from lessonforge.config import get_settings
from lessonforge.database import close_db, init_db
from lessonforge.errors import (
    InvalidRange,
    LessonForgeError,
    NoActiveRefinement,
    NotFoundOrForbidden,
    OperationInProgress,
    PersistenceUnavailable,
    ProviderUnavailable,
    ValidationError,
)
from lessonforge.logging_config import configure_logging, get_logger
from lessonforge.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)

# Most specific first; the first isinstance match wins.
ERROR_STATUS = (
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidRange, status.HTTP_409_CONFLICT),
    (NoActiveRefinement, status.HTTP_409_CONFLICT),
    (OperationInProgress, status.HTTP_409_CONFLICT),
    (NotFoundOrForbidden, status.HTTP_404_NOT_FOUND),
    (ProviderUnavailable, status.HTTP_502_BAD_GATEWAY),
    (PersistenceUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: LessonForgeError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    configure_logging(settings)

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down...")
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    LessonForge

    Build lesson plans from searched topics and subtopics, generate content
    for each one, refine selected passages and export the combined document.
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# Last added = outermost. CORS wraps everything so 429s and errors carry its headers.
_cors_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
]

app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_headers(request: Request) -> dict:
    """CORS headers for error responses (500s can bypass the CORS middleware)."""
    origin = request.headers.get("origin") or ""
    headers = {
        "Access-Control-Allow-Origin": origin if origin in _cors_origins else _cors_origins[0],
        "Access-Control-Allow-Credentials": "true",
    }
    req_id = get_request_id(request)
    if req_id:
        headers[REQUEST_ID_HEADER] = req_id
    return headers


@app.exception_handler(LessonForgeError)
async def domain_exception_handler(request: Request, exc: LessonForgeError):
    code = status_for(exc)
    if code >= 500:
        logger.warning("%s: %s", exc.code, exc.message, extra={"path": request.url.path})
    content = {"detail": exc.message, "code": exc.code}
    field = getattr(exc, "field", None)
    if field:
        content["field"] = field
    return JSONResponse(status_code=code, content=content, headers=_error_headers(request))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    headers = _error_headers(request)
    if exc.headers:
        headers.update(exc.headers)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation error", "code": ValidationError.code, "errors": errors},
        headers=_error_headers(request),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    req_id = get_request_id(request)
    if settings.debug:
        content = {"detail": str(exc), "type": type(exc).__name__, "request_id": req_id}
    else:
        content = {"detail": "Internal server error", "request_id": req_id}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        headers=_error_headers(request),
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    return HealthResponse(status="ok", version=settings.version, database="connected")


@app.get("/", tags=["Root"])
async def root():
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {"v1": settings.api_v1_prefix},
    }


app.include_router(api_v1_router, prefix=settings.api_v1_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lessonforge.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
