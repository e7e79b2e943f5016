"""
Pluggable scoring for the simulated parts of the pipeline.

Ensemble metrics and training outcomes are not produced by a real model.
Each concern has a simulated implementation (randomized within fixed
ranges, seedable) and a deterministic one.
"""
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from ppe_trainer.models.schemas.detection import DetectionResult, EnsembleScores

ANALYSIS_MODELS = [
    "CNN_Primary_v2.1",
    "ResNet_Secondary_v1.8",
    "VisionTransformer_v1.5",
    "EfficientNet_Custom",
]

MAX_NEURAL_SCORE = 98.0
MIN_UNCERTAINTY = 2.0


def _variance(values: List[float]) -> float:
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def _neural_score(confidence: float) -> float:
    return min(MAX_NEURAL_SCORE, confidence + 2)


def _uncertainty(neural_score: float) -> float:
    return max(MIN_UNCERTAINTY, 100 - neural_score - 5)


class EnsembleScorer(ABC):
    """Produces ensemble metrics for an (already enhanced) confidence."""

    @abstractmethod
    def score(self, result: DetectionResult) -> EnsembleScores:
        raise NotImplementedError


class ConsensusEnsembleScorer(EnsembleScorer):
    """All ensemble members agree with the primary result."""

    def score(self, result: DetectionResult) -> EnsembleScores:
        neural = _neural_score(result.confidence)
        return EnsembleScores(
            neural_score=neural,
            model_agreement=100.0,
            uncertainty_level=_uncertainty(neural),
            cross_validation_score=result.confidence,
            analysis_models=list(ANALYSIS_MODELS),
        )


class SimulatedEnsembleScorer(EnsembleScorer):
    """Three secondary models scattered around the primary confidence."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def score(self, result: DetectionResult) -> EnsembleScores:
        conf = result.confidence
        rng = self.rng

        accuracies = [
            conf - 2 + rng.random() * 4,
            conf - 1 + rng.random() * 3,
            conf + rng.random() * 2,
        ]
        accuracies = [min(97.0, max(75.0, a)) for a in accuracies]
        agreements = [85 + rng.random() * 12 for _ in accuracies]

        agreement = sum(agreements) / len(agreements)
        cross_validation = min(MAX_NEURAL_SCORE, agreement - _variance(accuracies) * 2)
        neural = _neural_score(conf)

        return EnsembleScores(
            neural_score=neural,
            model_agreement=agreement,
            uncertainty_level=_uncertainty(neural),
            cross_validation_score=cross_validation,
            analysis_models=list(ANALYSIS_MODELS),
        )


@dataclass
class TrainingOutcome:
    """Metrics reported at the end of a training run."""
    accuracy: float
    validation_loss: float
    training_time_seconds: float
    epochs: int


class TrainingScorer(ABC):

    @abstractmethod
    def score(self, total_images: int) -> TrainingOutcome:
        raise NotImplementedError


class FixedTrainingScorer(TrainingScorer):
    """Always reports the same outcome."""

    def __init__(self, accuracy: float = 96.0, validation_loss: float = 0.06,
                 training_time_seconds: float = 120.0, epochs: int = 50):
        self.outcome = TrainingOutcome(accuracy, validation_loss, training_time_seconds, epochs)

    def score(self, total_images: int) -> TrainingOutcome:
        return TrainingOutcome(**vars(self.outcome))


class SimulatedTrainingScorer(TrainingScorer):
    """Accuracy 95-99%, validation loss 0.05-0.08, 90-150 s, 50 epochs."""

    EPOCHS = 50

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def score(self, total_images: int) -> TrainingOutcome:
        return TrainingOutcome(
            accuracy=95 + self.rng.random() * 4,
            validation_loss=0.05 + self.rng.random() * 0.03,
            training_time_seconds=90 + self.rng.random() * 60,
            epochs=self.EPOCHS,
        )
