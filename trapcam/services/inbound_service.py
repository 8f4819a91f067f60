# trapcam/services/inbound_service.py
"""
Inbound email ingestion — turns one email from a trail camera into:
  - an uploaded, species-tagged Image (if the email carries a photo)
  - updated camera battery and last-contact telemetry
  - an EmailArchive row with the compressed body in the blob store

Only validation and camera resolution reject the email. The image, battery
and telemetry steps are isolated: their failures are logged and the email is
still archived. Archival itself is the step of record, so its errors
propagate to the caller.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from trapcam.exceptions import CameraNotFoundError, InboundValidationError
from trapcam.models.email_archive import EmailArchive
from trapcam.models.types import force_utc, utcnow
from trapcam.services.battery_extractor import extract_battery_info
from trapcam.services.camera_service import (
    find_camera_by_email,
    update_camera_battery_info,
    update_camera_last_contact,
)
from trapcam.services.email_archive_service import archive_email
from trapcam.services.image_service import decode_image_base64, ingest_image
from trapcam.utils.logger import get_logger

logger = get_logger(__name__)

REQUIRED_FIELDS = (("toEmail", "to_email"), ("fromEmail", "from_email"), ("body", "body"))


def validate_request(request):
    missing = [label for label, attr in REQUIRED_FIELDS
               if not (getattr(request, attr, None) or "").strip()]
    if missing:
        raise InboundValidationError(f"Required fields are missing: {', '.join(missing)}")


def capture_time_for(request) -> datetime:
    """Declared email time read as UTC (offset ignored), else now."""
    if request.date_time is None:
        logger.warning("[INBOUND] No date specified, using UTC now")
        return utcnow()
    return force_utc(request.date_time)


async def _ingest_image_branch(db: Session, camera, request, image_bytes: Optional[bytes],
                               capture_time: datetime, detection_client) -> Optional[str]:
    if image_bytes is None and not request.image_base64:
        return None
    try:
        if image_bytes is None:
            image_bytes = decode_image_base64(request.image_base64)
        image = await ingest_image(db, camera, image_bytes, capture_time, detection_client)
    except Exception as e:
        logger.error(f"[INBOUND] Image processing failed for camera {camera.id}: {e}", exc_info=True)
        db.rollback()
        return None
    return image.s3_key if image is not None else None


def _update_battery(db: Session, camera_id, body: str):
    try:
        battery = extract_battery_info(body)
        if battery is None:
            logger.debug(f"[INBOUND] No battery reading in email for camera {camera_id}")
            return
        logger.info(f"[INBOUND] Battery information extracted: {battery.raw_match}")
        update_camera_battery_info(db, camera_id, battery)
    except Exception as e:
        logger.error(f"[INBOUND] Battery update failed for camera {camera_id}: {e}", exc_info=True)
        db.rollback()


def _update_last_contact(db: Session, camera_id):
    try:
        update_camera_last_contact(db, camera_id)
        logger.info(f"[INBOUND] Updated last contact time for camera {camera_id}")
    except Exception as e:
        logger.error(f"[INBOUND] Last contact update failed for camera {camera_id}: {e}", exc_info=True)
        db.rollback()


async def ingest_email(db: Session, request, image_bytes: Optional[bytes] = None,
                       detection_client=None) -> EmailArchive:
    """
    Ingest one inbound email. Raises InboundValidationError or
    CameraNotFoundError before any write; returns the EmailArchive row.
    """
    validate_request(request)

    camera = find_camera_by_email(db, request.to_email)
    if camera is None:
        logger.warning(f"[INBOUND] Email for non-existent camera address: {request.to_email}")
        raise CameraNotFoundError(request.to_email)

    camera_id = camera.id
    capture_time = capture_time_for(request)
    logger.info(f"[INBOUND] Email for camera {camera_id} from {request.from_email} "
                f"(image={'yes' if image_bytes or request.image_base64 else 'no'})")

    image_key = await _ingest_image_branch(db, camera, request, image_bytes, capture_time,
                                           detection_client)
    _update_battery(db, camera_id, request.body)
    _update_last_contact(db, camera_id)

    archive = archive_email(db, request, camera, image_key, capture_time)
    logger.info(f"[INBOUND] Email archived successfully for camera {camera_id} "
                f"from {request.from_email}")
    return archive
