# trapcam/services/species_detection.py
"""
Species detection client — sends an image to the external animal
recognition service and returns the detections above the confidence
threshold.

Endpoint: POST {ANIMAL_RECOGNITION_SERVER}/detect
Form:     file=<jpeg bytes>, country=<ISO alpha-2>
Response: {"success": true, "country": "DK",
           "detections": [{"uuid": "...", "species_id": 12, "common_name": "Red fox",
                           "class_name": "mammalia", "taxa_level": "species",
                           "confidence": 87.5}]}

Detection is optional: when the server is not configured, or answers with
anything other than a usable 2xx JSON body, the result is an empty list.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from trapcam.config import settings
from trapcam.utils.logger import get_logger

logger = get_logger(__name__)

DETECT_PATH = "/detect"


@dataclass
class Detection:
    species_id: Optional[str]
    confidence: float
    external_id: Optional[str] = None
    common_name: Optional[str] = None
    class_name: Optional[str] = None
    taxa_level: Optional[str] = None
    order_name: Optional[str] = None
    family_name: Optional[str] = None
    genus: Optional[str] = None


def _text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_detection_response(payload) -> list[Detection]:
    """
    Translate the recognition service's JSON body into Detection objects.
    This is the only place that knows the service's response shape.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")

    raw_detections = payload.get("detections") or []
    if not isinstance(raw_detections, list):
        raise ValueError("'detections' is not a list")

    detections = []
    for raw in raw_detections:
        if not isinstance(raw, dict):
            logger.warning(f"[DETECT] Skipping malformed detection entry: {raw!r}")
            continue
        try:
            confidence = float(raw.get("confidence"))
        except (TypeError, ValueError):
            logger.warning(f"[DETECT] Skipping detection without numeric confidence: {raw!r}")
            continue
        detections.append(Detection(
            species_id=_text(raw.get("species_id")),
            confidence=confidence,
            external_id=_text(raw.get("uuid")),
            common_name=_text(raw.get("common_name")),
            class_name=_text(raw.get("class_name")),
            taxa_level=_text(raw.get("taxa_level")),
            order_name=_text(raw.get("order")),
            family_name=_text(raw.get("family")),
            genus=_text(raw.get("genus")),
        ))
    return detections


def country_hint_for(camera) -> str:
    """Country code of the camera's location, or the configured fallback."""
    location = getattr(camera, "location", None)
    code = getattr(location, "country_code", None) if location is not None else None
    return (code or settings.DEFAULT_COUNTRY_CODE).upper()


class SpeciesDetectionClient:
    def __init__(self, endpoint: Optional[str], confidence_threshold: float, timeout: float):
        self.endpoint = endpoint.rstrip("/") if endpoint else None
        self.confidence_threshold = confidence_threshold
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.endpoint)

    async def detect(self, image_bytes: bytes, country_hint: str) -> list[Detection]:
        """Detections at or above the confidence threshold; [] on any service problem."""
        if not self.enabled:
            logger.info("[DETECT] Animal recognition server not configured, skipping detection")
            return []

        url = f"{self.endpoint}{DETECT_PATH}"
        files = {"file": ("image.jpg", image_bytes, "image/jpeg")}
        data = {"country": country_hint}
        logger.info(f"[DETECT] POST {url} country={country_hint} ({len(image_bytes)} bytes)")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, files=files, data=data)
        except httpx.HTTPError as e:
            logger.warning(f"[DETECT] Request to {url} failed: {e!r}")
            return []

        if response.status_code < 200 or response.status_code >= 300:
            logger.warning(
                f"[DETECT] Detection failed with HTTP {response.status_code}: {response.text[:500]}"
            )
            return []

        try:
            detections = parse_detection_response(response.json())
        except ValueError as e:
            logger.warning(f"[DETECT] Malformed detection response: {e}")
            return []

        kept = []
        for detection in detections:
            if detection.confidence < self.confidence_threshold:
                logger.info(
                    f"[DETECT] Skipping {detection.common_name or detection.species_id} "
                    f"confidence {detection.confidence} < {self.confidence_threshold}"
                )
                continue
            kept.append(detection)

        logger.info(f"[DETECT] {len(kept)}/{len(detections)} detections above threshold")
        return kept


def get_detection_client() -> SpeciesDetectionClient:
    return SpeciesDetectionClient(
        endpoint=settings.ANIMAL_RECOGNITION_SERVER,
        confidence_threshold=settings.ANIMAL_DETECTION_CONFIDENCE_THRESHOLD,
        timeout=settings.DETECTION_TIMEOUT_SECONDS,
    )
