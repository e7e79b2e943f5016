"""
Prediction enhancement: adjusts a base detection using stored training data.
"""
from typing import List, Optional, Union

from ppe_trainer.core.logging import logger
from ppe_trainer.models.schemas.detection import (
    DetectedItem,
    DetectionResult,
    EnhancedDetectionResult,
    TrainingEnhancement,
)
from ppe_trainer.models.schemas.training import TrainingSample
from ppe_trainer.services.scoring import ConsensusEnsembleScorer, EnsembleScorer
from ppe_trainer.services.training_images import TrainingImageRepository
from ppe_trainer.services.training_sessions import TrainingSessionLedger

MAX_ENHANCED_CONFIDENCE = 98.0
PATTERN_SAMPLE_LIMIT = 20
DEFAULT_PATTERN_MATCH = 0.5

# Label field -> keyword searched for in a detected item's normalized type
LABEL_KEYWORDS = {
    "helmet": "helmet",
    "gloves": "gloves",
    "safety_glasses": "safetyglasses",
    "mask": "mask",
    "vest": "vest",
}


def _normalize(item_type: str) -> str:
    return item_type.lower().replace(" ", "").replace("_", "").replace("-", "")


def pattern_match_score(detected_items: Optional[List[DetectedItem]],
                        samples: List[TrainingSample]) -> float:
    """
    Fraction of (sample, label) pairs where "the detector saw this item"
    equals the sample's label. 0.5 when the detector gave no item list.
    """
    if detected_items is None:
        return DEFAULT_PATTERN_MATCH

    seen = [_normalize(item.type) for item in detected_items]
    present = {
        field: any(keyword in item for item in seen)
        for field, keyword in LABEL_KEYWORDS.items()
    }

    matches = 0
    total = 0
    for sample in samples[:PATTERN_SAMPLE_LIMIT]:
        labels = sample.labels.model_dump()
        for field in LABEL_KEYWORDS:
            total += 1
            if present[field] == labels[field]:
                matches += 1

    return matches / total if total > 0 else DEFAULT_PATTERN_MATCH


class PredictionEnhancer:
    """
    Combines a base detection with repository statistics.
    """

    def __init__(self, repository: TrainingImageRepository, ledger: TrainingSessionLedger,
                 scorer: Optional[EnsembleScorer] = None):
        self.repository = repository
        self.ledger = ledger
        self.scorer = scorer or ConsensusEnsembleScorer()

    def enhance(self, base: DetectionResult) -> Union[DetectionResult, EnhancedDetectionResult]:
        """
        Return the enhanced result, or ``base`` itself when no high-quality
        training samples are available.
        """
        samples = self.repository.high_quality_samples_for_prediction()
        if not samples:
            return base

        stats = self.repository.stats()
        pattern_match = pattern_match_score(base.detected_items, samples)
        boost = pattern_match * 10 + (stats.avg_confidence_score / 100) * 5
        confidence = min(MAX_ENHANCED_CONFIDENCE, base.confidence + boost)

        annotation = (
            f"Training-optimized: {len(samples)} high-quality images "
            f"(pattern match {round(pattern_match * 100)}%)"
        )
        details = f"{base.details} | {annotation}" if base.details else annotation

        fields = base.model_dump(include=set(DetectionResult.model_fields))
        fields.update(confidence=confidence, details=details)
        adjusted = DetectionResult.model_validate(fields)
        ensemble = self.scorer.score(adjusted)

        enhanced = EnhancedDetectionResult(
            **fields,
            **ensemble.model_dump(),
            training_enhancement=TrainingEnhancement(
                base_accuracy=confidence - boost,
                training_boost=boost,
                model_version=self.ledger.current_model().version,
                trained_images=stats.total_images,
                pattern_match_score=pattern_match,
            ),
            training_data_used=True,
            training_images_count=len(samples),
            avg_training_quality=stats.avg_quality_score,
        )

        logger.debug(f"Prediction enhanced with {len(samples)} training images: "
                     f"{base.confidence:.1f} -> {confidence:.1f}")
        return enhanced
