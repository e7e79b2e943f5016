"""
Main application entry point for the PPE Training Service.
"""
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from ppe_trainer.api.api_v1.api import api_router
from ppe_trainer.api.deps import get_container
from ppe_trainer.core.config import settings
from ppe_trainer.core.exceptions import (
    APIError,
    DetectorError,
    api_error_handler,
    detector_error_handler,
    generic_error_handler,
    sqlalchemy_error_handler,
    validation_error_handler,
)
from ppe_trainer.core.logging import logger, setup_logging
from ppe_trainer.db.database import Base, engine
from ppe_trainer.models import kv_entry  # noqa: F401  (registers the table)


# Setup application logging
setup_logging()


# Startup and shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handle startup and shutdown events for the application.
    """
    # Startup: Create database tables if they don't exist
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    orchestrator = None
    if settings.CAMERA_SOURCE:
        orchestrator = get_container().orchestrator
        orchestrator.start(settings.DETECTION_INTERVAL_SECONDS)

    logger.info("PPE Training Service started")
    yield

    # Shutdown: stop automatic detection
    logger.info("PPE Training Service shutting down...")
    if orchestrator is not None:
        await orchestrator.stop()


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.PROJECT_DESCRIPTION,
    version=settings.API_VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan
)


# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Custom exception handlers
app.add_exception_handler(APIError, api_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(DetectorError, detector_error_handler)
app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
app.add_exception_handler(Exception, generic_error_handler)


# Performance middleware to log request processing time
@app.middleware("http")
async def log_request_time(request: Request, call_next):
    """
    Middleware to log request processing time.
    """
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time

    logger.debug(f"Request {request.method} {request.url.path} processed in {process_time:.4f}s")
    response.headers["X-Process-Time"] = str(process_time)

    return response


# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


# Root endpoint
@app.get("/", status_code=status.HTTP_200_OK)
async def root():
    """
    Root endpoint for the API service.
    """
    return {
        "name": settings.PROJECT_NAME,
        "version": settings.API_VERSION,
        "message": "Welcome to the PPE Training Service",
        "docs_url": "/docs",
        "api_prefix": settings.API_V1_STR
    }


if __name__ == "__main__":
    # Use this for development only
    import uvicorn

    uvicorn.run(
        "ppe_trainer.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
