"""
Cross-folder read views over the stored training samples.
"""
from typing import List

from ppe_trainer.models.schemas.training import ImageQuality, TrainingSample, TrainingStats
from ppe_trainer.services.training_folders import TrainingFolderStore

PREDICTION_SAMPLE_LIMIT = 50
READY_FOR_PREDICTION_MIN = 10


class TrainingImageRepository:
    """Flattened, filtered and ranked views of all samples across folders."""

    def __init__(self, folders: TrainingFolderStore):
        self.folders = folders

    def all_samples(self) -> List[TrainingSample]:
        """Every sample, folder by folder in upload order."""
        return [sample for folder in self.folders.get_all_folders() for sample in folder.samples]

    def high_quality_samples_for_prediction(self, limit: int = PREDICTION_SAMPLE_LIMIT) -> List[TrainingSample]:
        """
        High-quality samples flagged for prediction, best confidence first.

        The sort is stable, so samples with equal confidence keep their
        folder-then-upload order.
        """
        eligible = [
            s for s in self.all_samples()
            if s.used_for_prediction and s.quality == ImageQuality.HIGH
        ]
        eligible.sort(key=lambda s: s.confidence, reverse=True)
        return eligible[:limit]

    def stats(self) -> TrainingStats:
        """
        Counts by quality tier and label, plus folder-level averages.

        ``avg_quality_score`` and ``avg_confidence_score`` are the mean of
        the per-folder averages, not a mean over samples: a folder with two
        samples weighs as much as one with two hundred.
        """
        folders = self.folders.get_all_folders()
        samples = [s for f in folders for s in f.samples]

        high = sum(1 for s in samples if s.quality == ImageQuality.HIGH)
        folder_count = len(folders)

        return TrainingStats(
            total_folders=folder_count,
            total_images=len(samples),
            high_quality_images=high,
            medium_quality_images=sum(1 for s in samples if s.quality == ImageQuality.MEDIUM),
            low_quality_images=sum(1 for s in samples if s.quality == ImageQuality.LOW),
            images_with_helmet=sum(1 for s in samples if s.labels.helmet),
            images_with_gloves=sum(1 for s in samples if s.labels.gloves),
            images_with_glasses=sum(1 for s in samples if s.labels.safety_glasses),
            images_with_mask=sum(1 for s in samples if s.labels.mask),
            images_with_vest=sum(1 for s in samples if s.labels.vest),
            avg_quality_score=sum(f.avg_quality for f in folders) / folder_count if folder_count else 0.0,
            avg_confidence_score=sum(f.avg_confidence for f in folders) / folder_count if folder_count else 0.0,
            ready_for_prediction=high >= READY_FOR_PREDICTION_MIN,
        )
