"""
PromptDash - Main Application.

FastAPI application with modular architecture and feature flags.
"""

import logging
import sys
import traceback
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from promptdash import __version__
from promptdash.config import get_settings
from promptdash.exceptions import PromptDashException
from promptdash.schemas import HealthResponse

# Import module routers
from promptdash.modules.commands import router as commands_router
from promptdash.modules.usage import router as usage_router

# Configure standard logging
logging.basicConfig(
    level=getattr(logging, get_settings().app_log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("promptdash")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    logger.info(
        f"Starting PromptDash API v{__version__} "
        f"[env={settings.app_env}] "
        f"[model={settings.gemini.model}] "
        f"[features={settings.features.to_dict()}]"
    )
    if not settings.gemini.api_key:
        logger.warning("GEMINI_API_KEY is not set; /api/prompt will answer 500 until it is configured")
    yield
    logger.info("Shutting down PromptDash API")


# Create FastAPI application
app = FastAPI(
    title="PromptDash API",
    description="Natural-language dashboard editing: free-form requests become validated dashboard commands.",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Middleware
# =============================================================================


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.info(f"[{request_id}] {request.method} {request.url.path}")

    response = await call_next(request)

    logger.info(f"[{request_id}] {request.method} {request.url.path} -> {response.status_code}")

    return response


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to all requests."""
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    return response


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(PromptDashException)
async def promptdash_exception_handler(request: Request, exc: PromptDashException):
    """Handle PromptDash custom exceptions."""
    request_id = getattr(request.state, "request_id", None)

    if exc.status_code >= 500:
        logger.error(f"[{request_id}] {exc.code} - {exc.message} ({exc.details})")
    else:
        logger.warning(f"[{request_id}] {exc.code} - {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "details": exc.details,
            "code": exc.code,
            "request_id": request_id,
        },
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render request body and query errors in the standard error shape."""
    request_id = getattr(request.state, "request_id", None)
    errors = [
        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]
    logger.warning(f"[{request_id}] REQUEST_INVALID - {len(errors)} error(s) on {request.url.path}")

    return JSONResponse(
        status_code=422,
        content={
            "error": "Invalid request",
            "details": {"errors": errors},
            "code": "REQUEST_INVALID",
            "request_id": request_id,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    request_id = getattr(request.state, "request_id", None)

    # Log the full traceback
    logger.error(f"Unhandled exception on {request.url.path}")
    logger.error(f"Exception type: {type(exc).__name__}")
    logger.error(f"Traceback:\n{traceback.format_exc()}")

    return JSONResponse(
        status_code=500,
        content={
            "error": "Failed to process",
            "details": str(exc) if get_settings().app_debug else "Something went wrong. Please try again with a different request.",
            "code": "INTERNAL_ERROR",
            "request_id": request_id,
        },
    )


# =============================================================================
# Health Check
# =============================================================================


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Health check endpoint."""
    settings = get_settings()
    return HealthResponse(
        status="healthy" if settings.gemini.api_key else "degraded",
        version=__version__,
        features=settings.features.to_dict(),
        app_env=settings.app_env,
        is_production=settings.is_production,
        gemini_configured=bool(settings.gemini.api_key),
    )


# =============================================================================
# Register Module Routers
# =============================================================================

app.include_router(commands_router)
app.include_router(usage_router)


# =============================================================================
# Root Endpoint
# =============================================================================


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint redirect to docs."""
    return {"message": "Welcome to PromptDash API", "docs": "/docs"}
