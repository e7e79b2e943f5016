"""
Detection API endpoints: analyze frames, enhance results and manage the
photo history.
"""
from typing import List, Union

from fastapi import APIRouter, Depends, File, UploadFile, status

from ppe_trainer.api.deps import get_enhancer, get_orchestrator, get_photo_store, read_image_upload
from ppe_trainer.core.exceptions import ConflictError, NotFoundError
from ppe_trainer.models.schemas.common import ResponseStatus
from ppe_trainer.models.schemas.detection import DetectionResult, EnhancedDetectionResult, SavedPhoto
from ppe_trainer.services.orchestrator import DetectionOrchestrator
from ppe_trainer.services.photo_history import PhotoHistoryStore
from ppe_trainer.services.prediction import PredictionEnhancer


router = APIRouter()

DetectionResponse = Union[EnhancedDetectionResult, DetectionResult]


@router.post(
    "",
    response_model=DetectionResponse,
    status_code=status.HTTP_200_OK,
    summary="Analyze Image",
    description="Detect PPE in an uploaded image, enhance the result and save it to the photo history."
)
async def analyze_image(
    file: UploadFile = File(...),
    orchestrator: DetectionOrchestrator = Depends(get_orchestrator)
):
    """
    Analyze one image.

    Returns 409 while another analysis is running and 503 when the base
    detector fails.
    """
    content = await read_image_upload(file)
    result = await orchestrator.analyze(content, mime_type=file.content_type)
    if result is None:
        raise ConflictError("An analysis is already in progress")
    return result


@router.post(
    "/enhance",
    response_model=DetectionResponse,
    status_code=status.HTTP_200_OK,
    summary="Enhance Detection",
    description="Apply training-data enhancement to a base detection result."
)
async def enhance_detection(
    base: DetectionResult,
    enhancer: PredictionEnhancer = Depends(get_enhancer)
):
    return enhancer.enhance(base)


@router.get(
    "/status",
    status_code=status.HTTP_200_OK,
    summary="Detection Status",
    description="Whether an analysis or automatic detection is running, and the last detector error."
)
async def get_detection_status(orchestrator: DetectionOrchestrator = Depends(get_orchestrator)):
    return {
        "busy": orchestrator.busy,
        "automatic": orchestrator.running,
        "last_error": orchestrator.last_error
    }


@router.get(
    "/photos",
    response_model=List[SavedPhoto],
    status_code=status.HTTP_200_OK,
    summary="List Photos",
    description="Saved detection photos, oldest first (at most 50)."
)
async def list_photos(photos: PhotoHistoryStore = Depends(get_photo_store)):
    return photos.get_all_photos()


@router.delete(
    "/photos/{photo_id}",
    response_model=ResponseStatus,
    status_code=status.HTTP_200_OK,
    summary="Delete Photo"
)
async def delete_photo(photo_id: str, photos: PhotoHistoryStore = Depends(get_photo_store)):
    if not photos.delete_photo(photo_id):
        raise NotFoundError(f"Photo {photo_id} not found")
    return {"success": True, "message": f"Photo {photo_id} deleted"}


@router.delete(
    "/photos",
    response_model=ResponseStatus,
    status_code=status.HTTP_200_OK,
    summary="Clear Photos"
)
async def clear_photos(photos: PhotoHistoryStore = Depends(get_photo_store)):
    photos.clear_all()
    return {"success": True, "message": "All photos deleted"}
