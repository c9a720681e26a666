"""
Clients for the defect detection backend.

Production code depends on InferenceClient only. HttpInferenceClient talks
to the detection service; SimulatedInferenceClient replays canned results
for demos and UI work without a backend.
"""
import logging
import random
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import requests

from src import config
from src.errors import InferenceError, InvalidResponseError
from src.models import Detection, DetectionResult

logger = logging.getLogger(__name__)


class InferenceClient(ABC):
    """Anything that turns image bytes into a DetectionResult."""

    @abstractmethod
    def analyze(self, image_bytes: bytes, filename: str = 'image.png') -> DetectionResult:
        """
        Run defect detection on one image.

        Raises:
            InferenceError: if no result could be obtained
        """


def parse_response(payload: Any) -> DetectionResult:
    """
    Validate a service payload of the form
    {"detections": [...], "confidence": number}.

    Raises:
        InvalidResponseError: if the payload does not match that shape
    """
    if not isinstance(payload, dict):
        raise InvalidResponseError(f"response must be a JSON object, got {type(payload).__name__}")

    raw_detections = payload.get('detections')
    if not isinstance(raw_detections, list):
        raise InvalidResponseError("response has no 'detections' list")

    confidence = payload.get('confidence')
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise InvalidResponseError(f"response confidence must be a number, got {confidence!r}")
    if not 0.0 <= confidence <= 100.0:
        raise InvalidResponseError(f"response confidence out of [0, 100]: {confidence!r}")

    detections = tuple(Detection.from_dict(item) for item in raw_detections)
    return DetectionResult(detections=detections, confidence=round(float(confidence), 1))


class HttpInferenceClient(InferenceClient):
    """Posts the image to the detection service's /predict/ endpoint."""

    def __init__(self, base_url: str = config.API_URL, timeout: float = config.API_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.url = base_url.rstrip('/') + config.PREDICT_PATH
        self.timeout = timeout
        self.session = session or requests.Session()

    def analyze(self, image_bytes: bytes, filename: str = 'image.png') -> DetectionResult:
        logger.info("Posting %s (%d bytes) to %s", filename, len(image_bytes), self.url)
        try:
            response = self.session.post(
                self.url,
                files={'file': (filename, image_bytes)},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("Inference request failed: %s", e)
            raise InferenceError(f"Detection service unavailable: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            logger.error("Inference response is not JSON: %s", e)
            raise InvalidResponseError("Detection service returned invalid JSON") from e

        result = parse_response(payload)
        logger.info("Received %d detections, confidence %.1f",
                    len(result.detections), result.confidence)
        return result


# Canned results used by the simulated backend
_TYPE1_RESULT = (
    Detection(1, 0.7109375, 0.51171875, 0.11953125, 0.10390625),
    Detection(1, 0.64140625, 0.89921875, 0.2734375, 0.2015625),
)
_TYPE2_RESULT = (
    Detection(2, 0.7109375, 0.51171875, 0.11953125, 0.10390625),
)
_CLEAN_RESULT = (
    Detection(0, 0.315625, 0.57578125, 0.35390625, 0.5234375),
)


def simulated_confidence(detections, rng: random.Random) -> float:
    """
    Placeholder confidence: 98 without detections, 80 with any, plus
    uniform noise of +/-5, clamped to [50, 100], one decimal.
    """
    base = 80.0 if len(detections) > 0 else 98.0
    noise = rng.random() * 10 - 5
    value = max(config.MIN_CONFIDENCE, min(config.MAX_CONFIDENCE, base + noise))
    return round(value, 1)


class SimulatedInferenceClient(InferenceClient):
    """
    Fabricates detection results after a fixed delay.

    Only meant for running the UI without a detection service. Results are
    random: 70% defective (half two type 1 boxes, half one type 2 box) and
    30% a single clean region.
    """

    def __init__(self, latency: float = config.SIMULATED_LATENCY,
                 rng: Optional[random.Random] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.latency = latency
        self.rng = rng or random.Random()
        self.sleep = sleep

    def analyze(self, image_bytes: bytes, filename: str = 'image.png') -> DetectionResult:
        logger.debug("Simulating inference for %s", filename)
        self.sleep(self.latency)

        if self.rng.random() > 0.3:
            detections = _TYPE1_RESULT if self.rng.random() > 0.5 else _TYPE2_RESULT
        else:
            detections = _CLEAN_RESULT

        return DetectionResult(detections=detections,
                               confidence=simulated_confidence(detections, self.rng))


def create_client(mode: str = config.INFERENCE_MODE) -> InferenceClient:
    """Build the client selected by LABELSENSE_INFERENCE."""
    if mode == 'simulated':
        logger.warning("Using simulated inference, results are random")
        return SimulatedInferenceClient()
    if mode != 'http':
        raise ValueError(f"Unknown inference mode: {mode!r} (expected 'http' or 'simulated')")
    return HttpInferenceClient()

