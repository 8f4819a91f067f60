# trapcam/services/image_service.py
"""
Image ingestion pipeline.

  upload to blob store -> persist Image row -> species detection
      -> attach animals / set highlight -> hand notification to the dispatcher

Each stage needs the previous stage's output, so they run strictly in order.
Detection is best-effort: any failure there leaves the image as it was
persisted (no animals, highlight false) and sends no notification.
"""

import base64
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from trapcam.exceptions import BlobStoreError
from trapcam.models.image import Image
from trapcam.models.types import as_utc, utcnow
from trapcam.services.animal_service import resolve_detection
from trapcam.services.blob_store import get_blob_store
from trapcam.services.notification_service import build_new_image_message, get_dispatcher
from trapcam.services.species_detection import country_hint_for, get_detection_client
from trapcam.utils.logger import get_logger

logger = get_logger(__name__)


def decode_image_base64(text: str) -> bytes:
    """Decode a base64 image, with or without a 'data:image/jpeg;base64,' prefix."""
    if not text or not text.strip():
        raise ValueError("Image data is empty")
    if "," in text:
        text = text.split(",", 1)[1]
    data = base64.b64decode("".join(text.split()), validate=True)
    if not data:
        raise ValueError("Image data is empty")
    return data


def image_key(camera_id) -> str:
    return f"{camera_id}/{uuid.uuid4()}.image.jpg"


def upload_image(camera_id, image_bytes: bytes) -> str:
    if not image_bytes:
        raise ValueError("Image data is empty")
    store = get_blob_store()
    return store.upload_bytes(store.image_bucket, image_key(camera_id), image_bytes)


def save_image(db: Session, camera, s3_key: str, capture_time: Optional[datetime]) -> Image:
    image = Image(
        camera_id=camera.id,
        s3_key=s3_key,
        image_date=as_utc(capture_time) if capture_time else utcnow(),
        highlight=False,
    )
    db.add(image)
    db.commit()
    db.refresh(image)
    logger.info(f"[IMAGE] Saved image {image.id} for camera {camera.id}")
    return image


def _schedule_notification(db: Session, camera, image: Image):
    try:
        message = build_new_image_message(db, camera, image)
        if message is not None:
            get_dispatcher().submit(message)
    except Exception as e:
        logger.error(f"[IMAGE] Could not schedule notification for image {image.id}: {e!r}")


async def detect_and_save_animals(db: Session, image: Image, image_bytes: bytes, camera,
                                  detection_client=None) -> Image:
    client = detection_client or get_detection_client()
    image_id = image.id
    try:
        detections = await client.detect(image_bytes, country_hint_for(camera))

        known = {animal.id for animal in image.animals}
        resolved = []
        for detection in detections:
            animal = resolve_detection(db, detection)
            if animal.id not in known:
                known.add(animal.id)
                resolved.append(animal)

        if resolved:
            image.animals.extend(resolved)
            image.highlight = True
        db.commit()
        db.refresh(image)
        logger.info(f"[IMAGE] Image {image.id}: {len(resolved)} new animal(s), "
                    f"highlight={image.highlight}")
    except Exception as e:
        logger.error(f"[IMAGE] Detection failed for image {image_id}: {e}", exc_info=True)
        db.rollback()
        return image

    _schedule_notification(db, camera, image)
    return image


async def ingest_image(db: Session, camera, image_bytes: bytes,
                       capture_time: Optional[datetime], detection_client=None) -> Optional[Image]:
    """Upload, persist and classify one image. None if the upload failed."""
    try:
        key = upload_image(camera.id, image_bytes)
    except (BlobStoreError, ValueError) as e:
        logger.error(f"[IMAGE] Upload failed for camera {camera.id}: {e}")
        return None

    image = save_image(db, camera, key, capture_time)
    return await detect_and_save_animals(db, image, image_bytes, camera, detection_client)


def image_url(image_s3_key: Optional[str], ttl_minutes: int = 60) -> str:
    """Presigned download URL for an image key; empty string if unavailable."""
    if not image_s3_key:
        return ""
    store = get_blob_store()
    try:
        return store.presigned_url(store.image_bucket, image_s3_key, ttl_minutes)
    except BlobStoreError as e:
        logger.warning(f"[IMAGE] Could not presign {image_s3_key}: {e}")
        return ""
