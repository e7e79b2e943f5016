"""
Custom exceptions and exception handlers for the PPE Training Service.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError

from ppe_trainer.core.logging import logger


class APIError(Exception):
    """Base class for API exceptions."""
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class NotFoundError(APIError):
    """Exception raised when a resource is not found."""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, message=message)


class BadRequestError(APIError):
    """Exception raised for validation or client-side errors."""
    def __init__(self, message: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, message=message)


class ConflictError(APIError):
    """Exception raised when an operation conflicts with one already running."""
    def __init__(self, message: str = "Conflict with an operation in progress"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, message=message)


class DetectorError(Exception):
    """Raised when the base detector cannot produce a result (network or parse failure)."""


# Exception handlers

async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handler for custom API exceptions."""
    logger.error(f"API Error: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message}
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for validation errors."""
    errors = []
    for error in exc.errors():
        location = " -> ".join([str(loc) for loc in error.get("loc", [])])
        message = error.get("msg", "Validation error")
        errors.append(f"{location}: {message}")

    error_message = "Validation error" if len(errors) == 0 else errors[0]
    logger.warning(f"Validation Error: {', '.join(errors)}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": error_message,
            "errors": errors
        }
    )


async def detector_error_handler(request: Request, exc: DetectorError) -> JSONResponse:
    """Handler for base detector failures."""
    logger.error(f"Detector Error: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "success": False,
            "message": f"Detection failed: {str(exc)}"
        }
    )


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handler for SQLAlchemy errors."""
    logger.error(f"Database Error: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "Database error occurred"
        }
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.opt(exception=exc).error(f"Unhandled Exception: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "Internal server error"
        }
    )
