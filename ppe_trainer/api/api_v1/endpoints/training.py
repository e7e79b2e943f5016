"""
Training session and model API endpoints.
"""
from typing import List

from fastapi import APIRouter, Depends, Query, status

from ppe_trainer.api.deps import get_folder_store, get_ledger, get_runner
from ppe_trainer.models.schemas.common import ResponseStatus
from ppe_trainer.models.schemas.session import (
    CurrentModelDescriptor,
    LedgerStats,
    RetrainingStatus,
    TrainingRunRequest,
    TrainingSession,
    TrainingSessionCreate,
)
from ppe_trainer.services.training_folders import TrainingFolderStore
from ppe_trainer.services.training_runner import TrainingRunner
from ppe_trainer.services.training_sessions import TrainingSessionLedger


router = APIRouter()


@router.get(
    "/sessions",
    response_model=List[TrainingSession],
    status_code=status.HTTP_200_OK,
    summary="List Training Sessions",
    description="Recorded training sessions, newest first (at most 20)."
)
async def list_sessions(ledger: TrainingSessionLedger = Depends(get_ledger)):
    return ledger.get_sessions()


@router.post(
    "/sessions",
    response_model=TrainingSession,
    status_code=status.HTTP_201_CREATED,
    summary="Record Training Session",
    description="Record a training session produced elsewhere and fold it into the current model."
)
async def record_session(
    session_in: TrainingSessionCreate,
    ledger: TrainingSessionLedger = Depends(get_ledger)
):
    session = TrainingSession(**session_in.model_dump())
    ledger.record_session(session)
    return session


@router.post(
    "/run",
    response_model=TrainingSession,
    status_code=status.HTTP_201_CREATED,
    summary="Run Training",
    description="Run the simulated training steps and record the resulting session."
)
async def run_training(
    run_in: TrainingRunRequest,
    runner: TrainingRunner = Depends(get_runner)
):
    return await runner.run(run_in.total_images)


@router.get(
    "/model",
    response_model=CurrentModelDescriptor,
    status_code=status.HTTP_200_OK,
    summary="Current Model",
    description="The cumulative model descriptor."
)
async def get_current_model(ledger: TrainingSessionLedger = Depends(get_ledger)):
    return ledger.current_model()


@router.get(
    "/stats",
    response_model=LedgerStats,
    status_code=status.HTTP_200_OK,
    summary="Training Statistics"
)
async def get_training_stats(ledger: TrainingSessionLedger = Depends(get_ledger)):
    return ledger.stats()


@router.get(
    "/needs-retraining",
    response_model=RetrainingStatus,
    status_code=status.HTTP_200_OK,
    summary="Retraining Status",
    description="Whether the model is over a week old or has seen fewer than 50 images."
)
async def get_retraining_status(ledger: TrainingSessionLedger = Depends(get_ledger)):
    return ledger.retraining_status()


@router.get(
    "/recommendations",
    response_model=List[str],
    status_code=status.HTTP_200_OK,
    summary="Training Recommendations"
)
async def get_recommendations(ledger: TrainingSessionLedger = Depends(get_ledger)):
    return ledger.recommendations()


@router.get(
    "/projected-accuracy",
    status_code=status.HTTP_200_OK,
    summary="Projected Accuracy",
    description="Accuracy expected after training on additional images."
)
async def get_projected_accuracy(
    base_accuracy: float = Query(..., ge=0, le=100),
    training_images: int = Query(..., ge=0),
    ledger: TrainingSessionLedger = Depends(get_ledger)
):
    return {
        "base_accuracy": base_accuracy,
        "training_images": training_images,
        "projected_accuracy": ledger.projected_accuracy(base_accuracy, training_images)
    }


@router.delete(
    "",
    response_model=ResponseStatus,
    status_code=status.HTTP_200_OK,
    summary="Clear Training Data",
    description="Remove all training folders, sessions and the model descriptor."
)
async def clear_training_data(
    ledger: TrainingSessionLedger = Depends(get_ledger),
    folders: TrainingFolderStore = Depends(get_folder_store)
):
    ledger.clear()
    folders.clear_all()
    return {"success": True, "message": "All training data cleared"}
