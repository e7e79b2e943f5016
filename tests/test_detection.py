"""Tests for the chat-completion detector and reply parsing."""
import asyncio
import io
import json

import httpx
import pytest
from PIL import Image

from conftest import make_image_bytes
from ppe_trainer.core.exceptions import DetectorError
from ppe_trainer.services.detection import (
    ChatCompletionDetector,
    StaticDetector,
    compress_image,
    parse_detection_content,
)

API_URL = "https://detector.test/v1/chat/completions"


def chat_reply(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def make_detector(handler, api_key="secret"):
    return ChatCompletionDetector(API_URL, api_key=api_key, transport=httpx.MockTransport(handler))


def test_compress_image_downscales_wide_frames():
    compressed = compress_image(make_image_bytes(1280, 720))

    with Image.open(io.BytesIO(compressed)) as image:
        assert image.format == "JPEG"
        assert image.size == (640, 360)


def test_compress_image_rejects_garbage():
    with pytest.raises(DetectorError):
        compress_image(b"definitely not an image")


def test_detector_sends_request_and_parses_reply():
    captured = {}

    def handler(request):
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = json.loads(request.content)
        reply = json.dumps({
            "has_helmet": True,
            "has_gloves": False,
            "has_safety_glasses": True,
            "has_mask": False,
            "has_vest": True,
            "confidence": 88,
            "details": "One worker on the scaffold",
            "overall_compliance": False,
            "detected_items": ["helmet", "safety glasses", "vest"],
        })
        return httpx.Response(200, json=chat_reply(f"Here is the analysis:\n{reply}"))

    result = asyncio.run(make_detector(handler).detect(make_image_bytes()))

    assert captured["auth"] == "Bearer secret"
    assert captured["body"]["model"] == "deepseek-chat"
    user_content = captured["body"]["messages"][1]["content"]
    assert user_content[1]["image_url"]["url"].startswith("data:image/jpeg;base64,")

    assert result.has_helmet is True
    assert result.has_gloves is False
    assert result.confidence == 88
    assert result.missing_items == ["Protective gloves", "Mask"]
    assert [item.type for item in result.detected_items] == ["helmet", "safety glasses", "vest"]
    assert result.details == "One worker on the scaffold"


def test_detector_without_api_key_sends_no_authorization():
    def handler(request):
        assert "Authorization" not in request.headers
        return httpx.Response(200, json=chat_reply('{"has_helmet": true, "confidence": 90}'))

    result = asyncio.run(make_detector(handler, api_key=None).detect(make_image_bytes()))
    assert result.has_helmet is True


def test_http_error_raises_detector_error():
    def handler(request):
        return httpx.Response(500, json={"error": "boom"})

    with pytest.raises(DetectorError):
        asyncio.run(make_detector(handler).detect(make_image_bytes()))


def test_network_error_raises_detector_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(DetectorError):
        asyncio.run(make_detector(handler).detect(make_image_bytes()))


def test_unexpected_response_shape_raises_detector_error():
    def handler(request):
        return httpx.Response(200, json={"choices": []})

    with pytest.raises(DetectorError):
        asyncio.run(make_detector(handler).detect(make_image_bytes()))


def test_confidence_is_clamped_and_defaulted():
    assert parse_detection_content('{"confidence": 140}').confidence == 100
    assert parse_detection_content('{"confidence": -5}').confidence == 0
    assert parse_detection_content('{"confidence": "high"}').confidence == 75
    assert parse_detection_content('{"has_vest": true}').confidence == 75


def test_missing_detected_items_stays_none():
    result = parse_detection_content('{"has_helmet": true, "confidence": 80}')
    assert result.detected_items is None
    assert "Safety helmet" not in result.missing_items


def test_keyword_fallback_for_plain_text_reply():
    result = parse_detection_content("The worker wears a casco and a high-visibility vest.")

    assert result.confidence == 50
    assert result.has_helmet is True
    assert result.has_vest is True
    assert result.has_gloves is False
    assert result.has_mask is False
    assert result.overall_compliance is False
    assert result.missing_items == ["Analysis requires manual review"]
    assert result.details.startswith("Text analysis (recovery mode)")


def test_static_detector_returns_copies(base_result):
    detector = StaticDetector(base_result)

    first = asyncio.run(detector.detect(b""))
    first.confidence = 10

    assert asyncio.run(detector.detect(b"")).confidence == 70
    assert detector.calls == 2
