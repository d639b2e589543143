"""
FastAPI Application.

Essay grading service with:
- Modular router structure
- JWT bearer authentication
- Centralized error handling
- Correlation IDs on every request
- CORS support
"""

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.lifespan import lifespan
from api.routers import (
    classrooms_router,
    essays_router,
    evaluations_router,
    health_router,
)
from config import settings
from utils.errors import BaseApplicationError, ValidationError, get_error_handler
from utils.monitoring import clear_correlation_id, get_correlation_id, get_logger, set_correlation_id

logger = get_logger(__name__)


# ============================================================================
# FastAPI Application
# ============================================================================

app = FastAPI(
    title="Essay Grading Service",
    description="""
    **Essay grading with automated analysis and human review**

    - Automated five-competency analysis, deduplicated and cached per essay
    - Human competency evaluations reconciled into one final score
    - Classrooms, enrollments and statistics
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    redirect_slashes=False,
)


# ============================================================================
# Middleware Stack
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Correlation-ID"],
    expose_headers=["X-Correlation-ID"],
    max_age=600,
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    """Bind the caller's X-Correlation-ID (or a fresh one) to the request."""
    incoming = request.headers.get("X-Correlation-ID")
    if incoming:
        set_correlation_id(incoming)
    correlation_id = get_correlation_id()
    try:
        response = await call_next(request)
    finally:
        clear_correlation_id()
    response.headers["X-Correlation-ID"] = correlation_id
    return response


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(BaseApplicationError)
async def application_error_handler(request: Request, exc: BaseApplicationError):
    """Handle application errors."""
    error_handler = get_error_handler()
    error_handler.log_error(exc, context={
        "path": request.url.path,
        "method": request.method,
        "correlation_id": get_correlation_id()
    })

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Render malformed request bodies as validation errors."""
    errors = exc.errors()
    field = ".".join(str(part) for part in errors[0]["loc"]) if errors else None
    error = ValidationError("Invalid request", field=field)
    error.details["errors"] = [
        {"loc": [str(part) for part in e["loc"]], "msg": e["msg"]} for e in errors
    ]
    return await application_error_handler(request, error)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    error_handler = get_error_handler()
    error_handler.log_error(exc, context={
        "path": request.url.path,
        "method": request.method,
        "correlation_id": get_correlation_id()
    })

    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "correlation_id": get_correlation_id()
        }
    )


# ============================================================================
# Routers
# ============================================================================

app.include_router(health_router)
app.include_router(essays_router)
app.include_router(evaluations_router)
app.include_router(classrooms_router)
