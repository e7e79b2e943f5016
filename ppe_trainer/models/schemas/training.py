"""
Schemas for training samples, folders and training-image statistics.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ppe_trainer.models.schemas.common import utcnow


class ImageQuality(str, Enum):
    """Coarse quality tier derived from file size."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PPELabels(BaseModel):
    """The five tracked PPE items for one training image."""
    helmet: bool = False
    gloves: bool = False
    safety_glasses: bool = False
    mask: bool = False
    vest: bool = False

    def count(self) -> int:
        """Number of items labeled as present."""
        return sum(1 for present in self.model_dump().values() if present)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "helmet": True,
                "gloves": True,
                "safety_glasses": False,
                "mask": False,
                "vest": True
            }
        }
    )


class TrainingSample(BaseModel):
    """One labeled training image."""
    id: str
    file_name: str
    image_data: str  # base64
    image_uri: str   # data URI
    labels: PPELabels
    uploaded_at: datetime = Field(default_factory=utcnow)
    training_session_id: Optional[str] = None
    used_for_prediction: bool = True
    quality: ImageQuality
    confidence: float


class TrainingSampleSummary(BaseModel):
    """Training sample without the encoded image payload."""
    id: str
    file_name: str
    labels: PPELabels
    uploaded_at: datetime
    training_session_id: Optional[str] = None
    used_for_prediction: bool
    quality: ImageQuality
    confidence: float


class TrainingFolder(BaseModel):
    """A named, ordered collection of samples with derived aggregates."""
    id: str
    name: str
    description: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    samples: List[TrainingSample] = []
    total_images: int = 0
    avg_quality: float = 0.0
    avg_confidence: float = 0.0


class TrainingFolderSummary(BaseModel):
    """Folder listing entry; samples are reduced to their metadata."""
    id: str
    name: str
    description: str
    created_at: datetime
    samples: List[TrainingSampleSummary] = []
    total_images: int
    avg_quality: float
    avg_confidence: float


class FolderCreate(BaseModel):
    """Schema for creating a training folder."""
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Obra Norte",
                "description": "Images from the north construction site"
            }
        }
    )


class TrainingStats(BaseModel):
    """Cross-folder statistics of the stored training images."""
    total_folders: int
    total_images: int
    high_quality_images: int
    medium_quality_images: int
    low_quality_images: int
    images_with_helmet: int
    images_with_gloves: int
    images_with_glasses: int
    images_with_mask: int
    images_with_vest: int
    avg_quality_score: float
    avg_confidence_score: float
    ready_for_prediction: bool
