"""
Health check API endpoints.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ppe_trainer.core.config import settings
from ppe_trainer.core.logging import logger
from ppe_trainer.db.database import get_db
from ppe_trainer.models.schemas.common import HealthResponse, utcnow


router = APIRouter()


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health Check",
    description="Check the health and status of the API service."
)
async def health_check(db: Session = Depends(get_db)):
    """
    Check the health and status of the API service.

    - **Checks database connectivity**
    - **Returns service version**
    - **Includes current timestamp**
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        db_status = "error"

    return {
        "status": "ok" if db_status == "ok" else "error",
        "version": settings.API_VERSION,
        "database": db_status,
        "timestamp": utcnow()
    }
