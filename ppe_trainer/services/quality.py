"""
Derived scores for training samples: quality tier from file size and
label-completeness confidence.
"""
from ppe_trainer.models.schemas.training import ImageQuality, PPELabels

MIB = 1024 * 1024
HIGH_QUALITY_MIN_BYTES = 2 * MIB
MEDIUM_QUALITY_MIN_BYTES = MIB // 2

BASE_CONFIDENCE = 70.0
CONFIDENCE_PER_LABEL = 5.0
MAX_SAMPLE_CONFIDENCE = 95.0

_QUALITY_RANK = {
    ImageQuality.HIGH: 3,
    ImageQuality.MEDIUM: 2,
    ImageQuality.LOW: 1,
}


def classify_image_quality(size_bytes: int) -> ImageQuality:
    """
    Quality tier of an upload. Thresholds are strict: exactly 2 MiB is
    medium and exactly 0.5 MiB is low.
    """
    if size_bytes > HIGH_QUALITY_MIN_BYTES:
        return ImageQuality.HIGH
    if size_bytes > MEDIUM_QUALITY_MIN_BYTES:
        return ImageQuality.MEDIUM
    return ImageQuality.LOW


def quality_rank(quality: ImageQuality) -> int:
    return _QUALITY_RANK.get(ImageQuality(quality), 1)


def estimate_label_confidence(labels: PPELabels) -> float:
    """70 plus 5 per labeled item, capped at 95."""
    return min(MAX_SAMPLE_CONFIDENCE, BASE_CONFIDENCE + CONFIDENCE_PER_LABEL * labels.count())
