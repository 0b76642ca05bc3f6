"""
Module: main.py
Description: FastAPI application entry point for Trigger Relay.

Initializes the FastAPI application with the cron and trigger routes
and the global error handlers. The Mangum adapter exposes it as an
AWS Lambda handler.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from mangum import Mangum

from trigger_relay.config import settings
from trigger_relay.exceptions import TriggerNotFoundError
from trigger_relay.handlers.cron import router as cron_router
from trigger_relay.handlers.triggers import router as triggers_router
from trigger_relay.utils.logger import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title="Trigger Relay",
    description="Polls external sources for new items and delivers them to webhooks",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.include_router(cron_router)
app.include_router(triggers_router)


@app.get("/health")
async def health_check():
    """Basic application health information."""
    logger.info("Health check requested")

    return {
        "status": "ok",
        "message": "Trigger Relay is healthy",
        "version": settings.app_version,
        "environment": settings.stage
    }


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Log HTTP exceptions and return a structured error body."""
    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.status_code,
                "message": exc.detail,
                "type": "http_exception"
            }
        }
    )


@app.exception_handler(TriggerNotFoundError)
async def trigger_not_found_handler(request: Request, exc: TriggerNotFoundError):
    return JSONResponse(
        status_code=404,
        content={
            "error": {
                "code": 404,
                "message": str(exc),
                "type": "not_found"
            }
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Log unexpected exceptions and return a generic error body."""
    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": 500,
                "message": "Internal server error",
                "type": "internal_error"
            }
        }
    )


@app.on_event("startup")
async def startup_event():
    """Application startup event handler."""
    logger.info(
        "Starting Trigger Relay",
        version=settings.app_version,
        stage=settings.stage,
        region=settings.aws_region
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event handler."""
    logger.info("Shutting down Trigger Relay")


# Lambda handler
handler = Mangum(app, lifespan="off")
