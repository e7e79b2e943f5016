"""
Training sample API endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from ppe_trainer.api.deps import get_folder_store, get_repository, read_image_upload
from ppe_trainer.core.exceptions import NotFoundError
from ppe_trainer.models.schemas.common import ResponseStatus
from ppe_trainer.models.schemas.training import PPELabels, TrainingSampleSummary
from ppe_trainer.services.training_folders import TrainingFolderStore
from ppe_trainer.services.training_images import PREDICTION_SAMPLE_LIMIT, TrainingImageRepository


router = APIRouter()


@router.post(
    "",
    response_model=TrainingSampleSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Save Sample",
    description="Upload a labeled training image into a folder, or the default folder when none is given."
)
async def save_sample(
    file: UploadFile = File(...),
    helmet: bool = Form(False),
    gloves: bool = Form(False),
    safety_glasses: bool = Form(False),
    mask: bool = Form(False),
    vest: bool = Form(False),
    folder_id: Optional[str] = Form(None),
    training_session_id: Optional[str] = Form(None),
    folders: TrainingFolderStore = Depends(get_folder_store)
):
    content = await read_image_upload(file)
    labels = PPELabels(helmet=helmet, gloves=gloves, safety_glasses=safety_glasses, mask=mask, vest=vest)

    sample = folders.save_sample(
        content,
        file.filename or "upload.jpg",
        labels,
        folder_id=folder_id,
        training_session_id=training_session_id,
        mime_type=file.content_type,
    )
    return TrainingSampleSummary.model_validate(sample.model_dump())


@router.get(
    "/high-quality",
    response_model=List[TrainingSampleSummary],
    status_code=status.HTTP_200_OK,
    summary="High Quality Samples",
    description="High-quality samples used for prediction, highest confidence first."
)
async def list_high_quality_samples(
    limit: int = Query(PREDICTION_SAMPLE_LIMIT, ge=1, le=500),
    repository: TrainingImageRepository = Depends(get_repository)
):
    samples = repository.high_quality_samples_for_prediction(limit)
    return [TrainingSampleSummary.model_validate(s.model_dump()) for s in samples]


@router.delete(
    "/{sample_id}",
    response_model=ResponseStatus,
    status_code=status.HTTP_200_OK,
    summary="Delete Sample",
    description="Delete a training sample from whichever folder holds it."
)
async def delete_sample(sample_id: str, folders: TrainingFolderStore = Depends(get_folder_store)):
    if not folders.delete_sample(sample_id):
        raise NotFoundError(f"Training sample {sample_id} not found")
    return {"success": True, "message": f"Training sample {sample_id} deleted"}
