"""
Placement Quiz Service - Main Application

FastAPI backend with:
- PostgreSQL for quizzes, questions and attempts
- OpenAI-compatible model for one-time quiz generation per domain
- MongoDB (optional) for raw model output

Refuses to start without a store credential and a model API key.

Run: uvicorn app.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.exceptions import ConfigurationError, InvalidAttempt, QuizServiceError
from app.core.logging_config import setup_logging
from app.db.mongodb import init_mongo_indexes, mongo_enabled, test_mongo_connection
from app.db.postgres import init_quiz_tables, test_postgres_connection
from app.schemas.schemas import ErrorResponse, HealthResponse

settings = get_settings()
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Fail fast: no lazy discovery of missing credentials on the first request
_missing = settings.missing_required()
if _missing:
    logger.critical("Missing required configuration: %s", ", ".join(_missing))
    raise ConfigurationError(_missing)

# Create FastAPI app
app = FastAPI(
    title="Placement Quiz Service",
    description="""
    Domain skill quizzes for the placement platform.

    ## Features
    - **Quizzes**: 10 multiple-choice questions per domain, generated once and cached
    - **Attempts**: Server-side scoring and attempt history per student
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


def _error_body(message: str, detail) -> dict:
    body = ErrorResponse(message=message, error=detail if settings.debug and detail else None)
    return body.model_dump(exclude_none=True)


@app.exception_handler(QuizServiceError)
async def quiz_error_handler(request: Request, exc: QuizServiceError):
    """Map the service error taxonomy onto status codes and messages."""
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.detail)
    else:
        logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies use the same envelope as every other client error."""
    logger.info("Invalid request on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content=_error_body(InvalidAttempt.message, str(exc)))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all: every unhandled exception returns a clean JSON envelope."""
    logger.error("Unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
    return JSONResponse(status_code=500, content=_error_body("Internal server error.", str(exc)))


# Startup event
@app.on_event("startup")
async def startup_event():
    """Create quiz tables and MongoDB indexes on startup."""
    logger.info("Model: %s via %s", settings.openai_model, settings.openai_base_url)
    await run_in_threadpool(init_quiz_tables)

    if mongo_enabled():
        try:
            await run_in_threadpool(init_mongo_indexes)
        except PyMongoError as e:
            logger.warning("MongoDB index initialization failed: %s", e)
    else:
        logger.info("MONGODB_URI not set; generation log disabled")


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "Placement Quiz Service"}


@app.get("/health", tags=["Health"], response_model=HealthResponse)
async def health_check():
    """Detailed health check."""
    store_ok = await run_in_threadpool(test_postgres_connection)
    if mongo_enabled():
        mongodb = "connected" if await run_in_threadpool(test_mongo_connection) else "disconnected"
    else:
        mongodb = "disabled"

    return HealthResponse(
        status="healthy" if store_ok else "degraded",
        store="connected" if store_ok else "disconnected",
        mongodb=mongodb
    )
