"""
Schemas for training sessions and the current model descriptor.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field

from ppe_trainer.models.schemas.common import utcnow


class SessionStatus(str, Enum):
    """Status of a recorded training session."""
    COMPLETED = "completed"
    FAILED = "failed"
    IN_PROGRESS = "in_progress"


class TrainingSession(BaseModel):
    """One recorded (simulated) training run. Immutable once written."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=utcnow)
    total_images: int = Field(..., ge=0)
    accuracy: float
    model_version: str
    epochs: int
    validation_loss: float
    training_time_seconds: float
    status: SessionStatus = SessionStatus.COMPLETED

    model_config = ConfigDict(frozen=True, protected_namespaces=())


class TrainingSessionCreate(BaseModel):
    """Schema for recording a training session from an external trainer."""
    total_images: int = Field(..., ge=0)
    accuracy: float = Field(..., ge=0, le=100)
    model_version: str
    epochs: int = Field(50, ge=1)
    validation_loss: float = Field(0.0, ge=0)
    training_time_seconds: float = Field(0.0, ge=0)
    status: SessionStatus = SessionStatus.COMPLETED

    model_config = ConfigDict(
        protected_namespaces=(),
        json_schema_extra={
            "example": {
                "total_images": 24,
                "accuracy": 96.4,
                "model_version": "v1760860800000",
                "epochs": 50,
                "validation_loss": 0.061,
                "training_time_seconds": 118.0,
                "status": "completed"
            }
        }
    )


class TrainingRunRequest(BaseModel):
    """Request to run a simulated training pass over a batch of images."""
    total_images: int = Field(..., ge=1)


class ModelParameters(BaseModel):
    """Hyperparameter echo stored with the model descriptor."""
    learning_rate: float = 0.001
    batch_size: int = 32
    epochs: int = 10
    layers: int = 6


class CurrentModelDescriptor(BaseModel):
    """Cumulative summary of all recorded training."""
    version: str = "v1.0.0"
    accuracy: float = 85.0
    trained_images: int = 0
    last_training_at: datetime = Field(default_factory=utcnow)
    parameters: ModelParameters = Field(default_factory=ModelParameters)
    # True only for the default persisted before any session is recorded
    is_default: bool = False


class ModelEvolutionEntry(BaseModel):
    """One point in the recent accuracy history."""
    version: str
    accuracy: float
    date: datetime


class LedgerStats(BaseModel):
    """Training session statistics."""
    total_sessions: int
    completed_sessions: int
    total_training_time: int
    average_accuracy: float
    current_model: CurrentModelDescriptor
    last_training: Optional[datetime] = None
    total_images_processed: int
    model_evolution: List[ModelEvolutionEntry] = []

    model_config = ConfigDict(protected_namespaces=())


class RetrainingStatus(BaseModel):
    """Whether the model should be retrained."""
    needs_retraining: bool
    days_since_training: float
    total_images: int
