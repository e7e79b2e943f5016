"""
Main API router that includes all endpoint groups.
"""
from fastapi import APIRouter

from ppe_trainer.api.api_v1.endpoints import (
    detections,
    export,
    folders,
    health,
    samples,
    training,
)

# Create the main API router
api_router = APIRouter()

# Include all endpoint groups
api_router.include_router(
    folders.router,
    prefix="/folders",
    tags=["Training Folders"]
)

api_router.include_router(
    samples.router,
    prefix="/samples",
    tags=["Training Samples"]
)

api_router.include_router(
    training.router,
    prefix="/training",
    tags=["Training"]
)

api_router.include_router(
    detections.router,
    prefix="/detections",
    tags=["Detections"]
)

api_router.include_router(
    export.router,
    prefix="/export",
    tags=["Export"]
)

api_router.include_router(
    health.router,
    prefix="/health",
    tags=["Health"]
)
