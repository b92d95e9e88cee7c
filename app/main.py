"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.logging import setup_logging
from app.middleware.request_context import BodySizeLimitMiddleware, RequestIDMiddleware
from app.rules.engine import get_engine
from app.rules.exceptions import (
    EngineError,
    FormulaEvaluationError,
    NoMatchingClassification,
    NoMatchingFormula,
)

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

SERVICE_NAME = "Rule Compute API"

# Engine error kind -> HTTP status
ENGINE_ERROR_STATUS: dict[type[EngineError], int] = {
    NoMatchingClassification: status.HTTP_400_BAD_REQUEST,
    NoMatchingFormula: status.HTTP_500_INTERNAL_SERVER_ERROR,
    FormulaEvaluationError: 422,
}

# Framework HTTP errors -> envelope message
HTTP_ERROR_MESSAGES: dict[int, str] = {
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
}


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build the ``{code, message}`` error envelope."""
    return JSONResponse(
        status_code=status_code,
        content={"code": status_code, "message": message},
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    logger.info(f"Starting {SERVICE_NAME} (env={settings.env})")

    # Load rulesets once; a broken ruleset file should stop startup
    engine = get_engine()
    logger.info(f"Rulesets ready for selectors {engine.registry.selectors}")

    yield

    # Shutdown
    logger.info(f"Shutting down {SERVICE_NAME}")


# Create FastAPI application
app = FastAPI(
    title=SERVICE_NAME,
    description="Classifies boolean inputs and computes label formulas with overlay rulesets",
    version="0.1.0",
    docs_url="/docs" if settings.is_dev else None,
    redoc_url="/redoc" if settings.is_dev else None,
    openapi_url="/openapi.json" if settings.is_dev else None,
    lifespan=lifespan,
)

# Body size cap
app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)

# Request id (added last so it runs first)
app.add_middleware(RequestIDMiddleware)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report missing or invalid fields as INVALID_PARAMS_FORMAT."""
    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())][1:]
        if loc and loc[0] not in fields and not loc[0].isdigit():
            fields.append(loc[0])

    logger.info(
        f"Rejected invalid params: {fields or 'malformed body'}",
        extra={"request_id": getattr(request.state, "request_id", None)},
    )

    message = "INVALID_PARAMS_FORMAT"
    if fields:
        message = f"{message}: {', '.join(fields)}"
    return error_response(status.HTTP_400_BAD_REQUEST, message)


@app.exception_handler(EngineError)
async def engine_exception_handler(request: Request, exc: EngineError) -> JSONResponse:
    """Map engine error kinds to HTTP errors."""
    status_code = ENGINE_ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error(
            f"Ruleset defect: {exc}",
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
    return error_response(status_code, exc.code)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render framework HTTP errors in the shared envelope."""
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        logger.warning(f"Method not allowed: {request.method} {request.url.path}")
    message = HTTP_ERROR_MESSAGES.get(exc.status_code, str(exc.detail))
    return error_response(exc.status_code, message)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions."""
    logger.exception(f"Unhandled exception: {exc}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "UNHANDLED_REJECTION")


# Include API router
app.include_router(api_router, prefix="/api/v1")


# Root endpoint
@app.get("/", include_in_schema=False)
async def root() -> dict:
    """Service info."""
    return {
        "service": SERVICE_NAME,
        "version": "0.1.0",
        "docs": "/docs" if settings.is_dev else "Disabled in production",
    }


def run() -> None:
    """Run the API with uvicorn using configured host and port."""
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
