"""
Training folder API endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from ppe_trainer.api.deps import get_folder_store, get_repository, read_image_upload
from ppe_trainer.core.exceptions import NotFoundError
from ppe_trainer.models.schemas.common import ResponseStatus
from ppe_trainer.models.schemas.training import (
    FolderCreate,
    PPELabels,
    TrainingFolder,
    TrainingFolderSummary,
    TrainingSampleSummary,
    TrainingStats,
)
from ppe_trainer.services.training_folders import TrainingFolderStore
from ppe_trainer.services.training_images import TrainingImageRepository


router = APIRouter()


@router.get(
    "",
    response_model=List[TrainingFolderSummary],
    status_code=status.HTTP_200_OK,
    summary="List Folders",
    description="List all training folders with sample metadata (no image payloads)."
)
async def list_folders(folders: TrainingFolderStore = Depends(get_folder_store)):
    return [TrainingFolderSummary.model_validate(f.model_dump()) for f in folders.get_all_folders()]


@router.post(
    "",
    response_model=TrainingFolder,
    status_code=status.HTTP_201_CREATED,
    summary="Create Folder",
    description="Create a new empty training folder."
)
async def create_folder(
    folder_in: FolderCreate,
    folders: TrainingFolderStore = Depends(get_folder_store)
):
    return folders.create_folder(folder_in.name, folder_in.description)


@router.post(
    "/default",
    response_model=TrainingFolder,
    status_code=status.HTTP_200_OK,
    summary="Get Or Create Default Folder",
    description="Return the default training folder, creating it if it does not exist."
)
async def get_or_create_default_folder(folders: TrainingFolderStore = Depends(get_folder_store)):
    return folders.get_or_create_default_folder()


@router.get(
    "/stats",
    response_model=TrainingStats,
    status_code=status.HTTP_200_OK,
    summary="Training Image Statistics",
    description="Counts by quality tier and label plus folder-level averages."
)
async def get_training_stats(repository: TrainingImageRepository = Depends(get_repository)):
    return repository.stats()


@router.get(
    "/{folder_id}",
    response_model=TrainingFolder,
    status_code=status.HTTP_200_OK,
    summary="Get Folder",
    description="Get a training folder including its samples."
)
async def get_folder(folder_id: str, folders: TrainingFolderStore = Depends(get_folder_store)):
    folder = folders.get_folder(folder_id)
    if folder is None:
        raise NotFoundError(f"Training folder {folder_id} not found")
    return folder


@router.delete(
    "/{folder_id}",
    response_model=ResponseStatus,
    status_code=status.HTTP_200_OK,
    summary="Delete Folder",
    description="Delete a training folder and all of its samples."
)
async def delete_folder(folder_id: str, folders: TrainingFolderStore = Depends(get_folder_store)):
    if not folders.delete_folder(folder_id):
        raise NotFoundError(f"Training folder {folder_id} not found")
    return {"success": True, "message": f"Training folder {folder_id} deleted"}


@router.post(
    "/{folder_id}/samples",
    response_model=TrainingSampleSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Add Sample To Folder",
    description="Upload a labeled training image into a folder."
)
async def add_sample_to_folder(
    folder_id: str,
    file: UploadFile = File(...),
    helmet: bool = Form(False),
    gloves: bool = Form(False),
    safety_glasses: bool = Form(False),
    mask: bool = Form(False),
    vest: bool = Form(False),
    training_session_id: Optional[str] = Form(None),
    folders: TrainingFolderStore = Depends(get_folder_store)
):
    """
    Upload a labeled image.

    Quality comes from the upload size and confidence from how many of the
    five items are labeled present.
    """
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
