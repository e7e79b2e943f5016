"""
Base PPE detectors.

``ChatCompletionDetector`` asks an OpenAI-style chat-completion endpoint to
describe the frame as JSON. ``StaticDetector`` returns a fixed result.
"""
import base64
import io
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from PIL import Image

from ppe_trainer.core.exceptions import DetectorError
from ppe_trainer.core.logging import logger
from ppe_trainer.models.schemas.common import utcnow
from ppe_trainer.models.schemas.detection import DetectedItem, DetectionResult

DEFAULT_CONFIDENCE = 75.0
FALLBACK_CONFIDENCE = 50.0

# Result flag -> name reported when the item is missing
MISSING_ITEM_NAMES = {
    "has_helmet": "Safety helmet",
    "has_gloves": "Protective gloves",
    "has_safety_glasses": "Safety glasses",
    "has_mask": "Mask",
    "has_vest": "Safety vest",
}

# Result flag -> words that count as the item being mentioned (recovery mode)
FALLBACK_KEYWORDS = {
    "has_helmet": ("helmet", "hard hat", "casco"),
    "has_gloves": ("gloves", "guantes"),
    "has_safety_glasses": ("glasses", "goggles", "gafas"),
    "has_mask": ("mask", "respirator", "mascarilla"),
    "has_vest": ("vest", "chaleco"),
}

SYSTEM_PROMPT = (
    "You are an industrial safety expert. Analyze images with maximum precision "
    "to detect personal protective equipment. Reply only with valid JSON."
)

USER_PROMPT = """Inspect every person in the image and look for: helmets, gloves,
safety glasses or goggles, masks or respirators, and high-visibility vests.

Reply ONLY with a JSON object:
{
  "has_helmet": boolean,
  "has_gloves": boolean,
  "has_safety_glasses": boolean,
  "has_mask": boolean,
  "has_vest": boolean,
  "confidence": number (0-100),
  "details": "step by step description of the analysis",
  "overall_compliance": boolean,
  "detected_items": ["helmet", "vest", ...]
}"""


def compress_image(image_bytes: bytes, max_width: int = 640, quality: int = 60) -> bytes:
    """
    Downscale to ``max_width`` and re-encode as JPEG.

    Raises:
        DetectorError: if the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as source:
            image = source.convert("RGB")
    except OSError as e:
        raise DetectorError(f"Unreadable image: {e}") from e

    if image.width > max_width:
        height = max(1, round(image.height * max_width / image.width))
        image = image.resize((max_width, height))

    output = io.BytesIO()
    image.save(output, format="JPEG", quality=quality)
    return output.getvalue()


def _missing_items(flags: Dict[str, bool]) -> List[str]:
    return [name for flag, name in MISSING_ITEM_NAMES.items() if not flags[flag]]


def _parse_confidence(value: Any) -> float:
    try:
        confidence = float(value) if value is not None else DEFAULT_CONFIDENCE
    except (TypeError, ValueError):
        confidence = DEFAULT_CONFIDENCE
    return min(100.0, max(0.0, confidence))


def _parse_detected_items(value: Any) -> Optional[List[DetectedItem]]:
    if not isinstance(value, list):
        return None

    items = []
    for entry in value:
        if isinstance(entry, str):
            items.append(DetectedItem(type=entry))
        elif isinstance(entry, dict) and "type" in entry:
            items.append(DetectedItem(type=str(entry["type"]), confidence=entry.get("confidence")))
    return items


def parse_detection_content(content: str, analysis_steps: Optional[List[str]] = None) -> DetectionResult:
    """
    Build a detection result from a model reply.

    The first ``{...}`` span is parsed as JSON. A reply without valid JSON
    falls back to keyword matching at reduced confidence.
    """
    steps = list(analysis_steps or [])
    text = content.strip()
    start = text.find("{")
    end = text.rfind("}") + 1
    if start != -1 and end > start:
        text = text[start:end]

    try:
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError("reply is not a JSON object")
    except ValueError as e:
        logger.warning(f"Detector reply is not JSON, using keyword recovery: {e}")
        lowered = content.lower()
        flags = {
            flag: any(word in lowered for word in words)
            for flag, words in FALLBACK_KEYWORDS.items()
        }
        return DetectionResult(
            **flags,
            confidence=FALLBACK_CONFIDENCE,
            details=f"Text analysis (recovery mode): {content[:200]}",
            overall_compliance=False,
            missing_items=["Analysis requires manual review"],
            timestamp=utcnow(),
            analysis_steps=steps + ["Recovered from unparseable reply"],
        )

    flags = {flag: bool(payload.get(flag, False)) for flag in MISSING_ITEM_NAMES}
    return DetectionResult(
        **flags,
        confidence=_parse_confidence(payload.get("confidence")),
        details=str(payload.get("details") or "Analysis completed"),
        overall_compliance=bool(payload.get("overall_compliance", False)),
        missing_items=_missing_items(flags),
        timestamp=utcnow(),
        detected_items=_parse_detected_items(payload.get("detected_items")),
        analysis_steps=steps + ["Validated reply"],
    )


class BaseDetector(ABC):
    """Turns one encoded frame into a detection result."""

    @abstractmethod
    async def detect(self, image_bytes: bytes) -> DetectionResult:
        """
        Raises:
            DetectorError: on network or parse failure
        """
        raise NotImplementedError


class StaticDetector(BaseDetector):
    """Returns a copy of the same result for every frame."""

    def __init__(self, result: DetectionResult):
        self.result = result
        self.calls = 0

    async def detect(self, image_bytes: bytes) -> DetectionResult:
        self.calls += 1
        return self.result.model_copy(deep=True)


class ChatCompletionDetector(BaseDetector):
    """
    Detector backed by an OpenAI-compatible chat-completion endpoint.
    """

    def __init__(self, api_url: str, api_key: Optional[str] = None, model: str = "deepseek-chat",
                 timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            api_url: chat-completion endpoint URL
            api_key: bearer token, omitted from the request when None
            model: model name sent with the request
            timeout: request timeout in seconds
            transport: optional httpx transport (e.g. ``httpx.MockTransport``)
        """
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.transport = transport

    def _build_payload(self, jpeg_bytes: bytes) -> Dict[str, Any]:
        data_uri = "data:image/jpeg;base64," + base64.b64encode(jpeg_bytes).decode("ascii")
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": USER_PROMPT},
                        {"type": "image_url", "image_url": {"url": data_uri}},
                    ],
                },
            ],
            "max_tokens": 600,
            "temperature": 0.1,
            "top_p": 0.8,
        }

    async def detect(self, image_bytes: bytes) -> DetectionResult:
        steps = ["Compressing frame"]
        jpeg_bytes = compress_image(image_bytes)

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        steps.append("Requesting PPE analysis")
        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), transport=self.transport) as client:
                response = await client.post(self.api_url, json=self._build_payload(jpeg_bytes), headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise DetectorError(f"Detector API returned {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise DetectorError(f"Detector API unreachable: {e}") from e
        except ValueError as e:
            raise DetectorError("Detector API returned invalid JSON") from e

        logger.debug(f"Detector replied in {time.time() - start_time:.3f}s")

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise DetectorError("Detector API returned an unexpected response shape") from e

        if not isinstance(content, str):
            raise DetectorError("Detector API returned non-text content")

        steps.append("Parsing analysis")
        return parse_detection_content(content, steps)
