"""Tests for training-data enhancement of detection results."""
import pytest

from conftest import make_sample
from ppe_trainer.models.schemas.detection import DetectedItem, DetectionResult, EnhancedDetectionResult
from ppe_trainer.services.prediction import DEFAULT_PATTERN_MATCH, pattern_match_score


def fill_folder(folders, count, size_bytes=None, **labels):
    folder = folders.create_folder("Obra")
    kwargs = {} if size_bytes is None else {"size_bytes": size_bytes}
    for _ in range(count):
        folders.add_sample(folder.id, make_sample(**kwargs, **labels))
    return folder


def test_no_samples_returns_base_unchanged(enhancer):
    base = DetectionResult(confidence=70, details="Base analysis")

    result = enhancer.enhance(base)

    assert result is base
    assert result.confidence == 70
    assert not isinstance(result, EnhancedDetectionResult)


def test_only_low_quality_samples_returns_base(enhancer, folders):
    fill_folder(folders, 5, size_bytes=100, helmet=True)
    base = DetectionResult(confidence=70)

    assert enhancer.enhance(base) is base


def test_boost_of_ten_scenario(enhancer, folders):
    """15 high-quality samples at confidence 80 and a 0.6 pattern match give a boost of 10."""
    fill_folder(folders, 15, helmet=True, gloves=True)
    # Nothing detected: glasses, mask and vest match, helmet and gloves do not
    base = DetectionResult(confidence=70, details="Base analysis", detected_items=[])

    result = enhancer.enhance(base)

    enhancement = result.training_enhancement
    assert enhancement.pattern_match_score == pytest.approx(0.6)
    assert enhancement.training_boost == pytest.approx(10)
    assert result.confidence == pytest.approx(80)
    assert enhancement.base_accuracy == pytest.approx(70)
    assert enhancement.trained_images == 15
    assert enhancement.model_version == "v1.0.0"
    assert result.training_data_used is True
    assert result.training_images_count == 15


def test_confidence_is_capped_at_98(enhancer, folders):
    fill_folder(folders, 3, helmet=True, gloves=True)
    base = DetectionResult(confidence=95, detected_items=[])

    assert enhancer.enhance(base).confidence == 98


def test_confidence_bounds_over_base_range(enhancer, folders):
    fill_folder(folders, 4, helmet=True, vest=True)

    for base_confidence in range(0, 99, 7):
        result = enhancer.enhance(DetectionResult(confidence=base_confidence))
        assert base_confidence <= result.confidence <= 98


def test_details_are_appended_not_replaced(enhancer, folders):
    fill_folder(folders, 2)
    base = DetectionResult(confidence=60, details="Two workers near the crane")

    result = enhancer.enhance(base)

    assert result.details.startswith("Two workers near the crane | ")
    assert "2 high-quality images" in result.details


def test_detection_fields_are_carried_over(enhancer, folders, base_result):
    fill_folder(folders, 2)

    result = enhancer.enhance(base_result)

    assert result.has_helmet is True
    assert result.has_vest is True
    assert result.has_gloves is False
    assert result.missing_items == base_result.missing_items
    assert result.timestamp == base_result.timestamp


def test_consensus_ensemble_scores(enhancer, folders):
    fill_folder(folders, 1)

    result = enhancer.enhance(DetectionResult(confidence=90))

    assert result.neural_score == min(98, result.confidence + 2)
    assert result.model_agreement == 100
    assert result.cross_validation_score == result.confidence
    assert len(result.analysis_models) == 4


def test_pattern_match_defaults_without_detected_items():
    samples = [make_sample(helmet=True)]
    assert pattern_match_score(None, samples) == DEFAULT_PATTERN_MATCH


def test_pattern_match_normalizes_item_names():
    samples = [make_sample(helmet=True, safety_glasses=True)]
    items = [DetectedItem(type="Hard Helmet"), DetectedItem(type="safety-glasses")]

    assert pattern_match_score(items, samples) == 1.0


def test_pattern_match_uses_at_most_twenty_samples():
    matching = [make_sample(helmet=True) for _ in range(20)]
    mismatching = [make_sample() for _ in range(20)]

    assert pattern_match_score([DetectedItem(type="helmet")], matching + mismatching) == 1.0
