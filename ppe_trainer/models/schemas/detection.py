"""
Schemas for PPE detection results, enhanced results and saved photos.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ppe_trainer.models.schemas.common import utcnow


class DetectedItem(BaseModel):
    """One item the base detector claims to see."""
    type: str
    confidence: Optional[float] = None


class DetectionResult(BaseModel):
    """Base detector output for a single frame."""
    has_helmet: bool = False
    has_gloves: bool = False
    has_safety_glasses: bool = False
    has_mask: bool = False
    has_vest: bool = False
    confidence: float = Field(..., ge=0, le=100)
    details: str = ""
    overall_compliance: bool = False
    missing_items: List[str] = []
    timestamp: datetime = Field(default_factory=utcnow)
    detected_items: Optional[List[DetectedItem]] = None
    analysis_steps: List[str] = []

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "has_helmet": True,
                "has_gloves": False,
                "has_safety_glasses": True,
                "has_mask": False,
                "has_vest": True,
                "confidence": 82,
                "details": "One worker with helmet and vest near the scaffold",
                "overall_compliance": False,
                "missing_items": ["Protective gloves", "Mask"],
                "detected_items": [{"type": "helmet"}, {"type": "safety glasses"}, {"type": "vest"}]
            }
        }
    )


class TrainingEnhancement(BaseModel):
    """How stored training data moved the confidence."""
    base_accuracy: float
    training_boost: float
    model_version: str
    trained_images: int
    pattern_match_score: Optional[float] = None

    model_config = ConfigDict(protected_namespaces=())


class EnsembleScores(BaseModel):
    """Ensemble metrics attached to an enhanced result."""
    neural_score: float
    model_agreement: float
    uncertainty_level: float
    cross_validation_score: float
    analysis_models: List[str]

    model_config = ConfigDict(protected_namespaces=())


class EnhancedDetectionResult(DetectionResult):
    """Detection result adjusted with training-data statistics."""
    neural_score: float
    model_agreement: float
    uncertainty_level: float
    cross_validation_score: float
    analysis_models: List[str] = []
    training_enhancement: TrainingEnhancement
    training_data_used: bool = True
    training_images_count: int = 0
    avg_training_quality: float = 0.0

    model_config = ConfigDict(protected_namespaces=())


class SavedPhoto(BaseModel):
    """A detection snapshot kept in the photo history."""
    id: str
    image_uri: str
    timestamp: datetime = Field(default_factory=utcnow)
    detection_result: Dict[str, Any]
    filename: str
